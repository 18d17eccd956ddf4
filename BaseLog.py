#! /usr/bin/env python
# -*- python-fmt -*-

## Copyright (c) 2025  University of Washington.
##
## Redistribution and use in source and binary forms, with or without
## modification, are permitted provided that the following conditions are met:
##
## 1. Redistributions of source code must retain the above copyright notice, this
##    list of conditions and the following disclaimer.
##
## 2. Redistributions in binary form must reproduce the above copyright notice,
##    this list of conditions and the following disclaimer in the documentation
##    and/or other materials provided with the distribution.
##
## 3. Neither the name of the University of Washington nor the names of its
##    contributors may be used to endorse or promote products derived from this
##    software without specific prior written permission.
##
## THIS SOFTWARE IS PROVIDED BY THE UNIVERSITY OF WASHINGTON AND CONTRIBUTORS “AS
## IS” AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
## IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
## DISCLAIMED. IN NO EVENT SHALL THE UNIVERSITY OF WASHINGTON OR CONTRIBUTORS BE
## LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
## CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE
## GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
## HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT
## LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT
## OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.

""" Logging for the log consolidation tools

A single BaseLogger is set up per process (from the command line options);
everything else reports through the log_XXXX routines below.  Until the
BaseLogger is set up, messages are written to stderr.
"""

import collections
import inspect
import logging
import os
import sys
import traceback

# Location added to messages, by level
#   "caller" - module(line number) of the code calling log_XXXX
#   "parent" - module(line number) one frame further up (for utility routines)
#   "exc"    - the traceback of the exception being handled, if any
#   None     - nothing
_default_locations = {
    "DEBUG": "caller",
    "INFO": "caller",
    "WARNING": "caller",
    "ERROR": "caller",
    "CRITICAL": "exc",
}


class BaseLogger:
    """
    BaseLogger: process wide wrapper around a logging.Logger
    """

    self = None  # the global instance
    is_initialized = False
    opts = None
    log = None

    # log_info and log_debug calls are dropped without going into logging
    # unless enabled (-v or --debug).  Warnings and up always go through.
    debug_enabled = info_enabled = False

    def __init__(self, opts, include_time=False):
        """Sets up the process logger from opts (base_log, debug, verbose)

        Only the first instance does anything
        """
        if BaseLogger.is_initialized:
            return

        BaseLogger.self = self
        BaseLogger.opts = opts

        caller = os.path.splitext(os.path.basename(inspect.stack()[1].filename))[0]
        BaseLogger.log = logging.getLogger(caller)
        BaseLogger.log.setLevel(logging.DEBUG)

        if getattr(opts, "debug", False):
            level = logging.DEBUG
            BaseLogger.debug_enabled = BaseLogger.info_enabled = True
        elif getattr(opts, "verbose", False):
            level = logging.INFO
            BaseLogger.info_enabled = True
        else:
            level = logging.WARNING

        handlers = [logging.StreamHandler()]
        if getattr(opts, "base_log", None):
            handlers.append(logging.FileHandler(opts.base_log))
        for handler in handlers:
            self.setHandler(handler, level, include_time)

        BaseLogger.is_initialized = True
        log_info("Process id = %d" % os.getpid())
        if getattr(opts, "config_file_not_found", False):
            log_warning(f"Config file {opts.config_file_name} was not found")

    def setHandler(self, handler, level, include_time):
        """Adds a handler to the process logger"""
        if include_time:
            fmt = logging.Formatter(
                "%(asctime)s: %(levelname)s: %(message)s", "%H:%M:%S %d %b %Y %Z"
            )
        else:
            # No timestamps - makes runs easier to compare
            fmt = logging.Formatter("%(levelname)s: %(message)s")
        handler.setLevel(level)
        handler.setFormatter(fmt)
        BaseLogger.log.addHandler(handler)

    def getLogger(self):
        """The process logger"""
        return BaseLogger.log


def _log_caller_info(s, loc, depth=4):
    """Prefixes (or suffixes) s with location information

    depth is the number of frames between the code calling log_XXXX and here
    """
    s = str(s)
    if loc in ("caller", "parent"):
        if loc == "parent":
            depth += 1
        frames = traceback.extract_stack(limit=depth)
        if len(frames) == depth:
            frame = frames[0]
            s = f"{os.path.basename(frame.filename)}({frame.lineno}): {s}"
    elif loc == "exc":
        if sys.exc_info()[0] is not None:
            s = f"{s}:\n{traceback.format_exc()}"
    elif loc is not None:
        s = f"({loc}?): {s}"
    return s


# level -> message key -> number of times issued
_issued = collections.defaultdict(collections.Counter)


def _emit(level, s, loc, max_count):
    """Sends a message to the process logger (or stderr if there is none yet)

    max_count - maximum number of times a message is issued
        > 0 - counted per module(line number)
        < 0 - counted per module(line number) and message text
    """
    s = _log_caller_info(s, loc)

    if max_count:
        key = s.split(":")[0] if max_count > 0 else s
        _issued[level][key] += 1
        count = _issued[level][key]
        if count > abs(max_count):
            return
        if count == abs(max_count):
            s += " (Max message count exceeded)"

    if BaseLogger.log is None:
        sys.stderr.write(f"{level}: {s}\n")
    else:
        BaseLogger.log.log(logging.getLevelName(level), s)


def log_critical(s, loc=_default_locations["CRITICAL"]):
    """Report string to baselog as a CRITICAL error"""
    _emit("CRITICAL", s, loc, None)


def log_error(s, loc=_default_locations["ERROR"], max_count=None):
    """Report string to baselog as an ERROR"""
    _emit("ERROR", s, loc, max_count)


def log_warning(s, loc=_default_locations["WARNING"], max_count=None):
    """Report string to baselog as a WARNING
    Input:
    s - string to be logged
    max_count - maximum number of times this warning should be issued (see _emit)
    """
    _emit("WARNING", s, loc, max_count)


def log_info(s, loc=_default_locations["INFO"], max_count=None):
    """Report string to baselog as INFO"""
    if BaseLogger.info_enabled:
        _emit("INFO", s, loc, max_count)


def log_debug(s, loc=_default_locations["DEBUG"], max_count=None):
    """Report string to baselog as DEBUG info"""
    if BaseLogger.debug_enabled:
        _emit("DEBUG", s, loc, max_count)
