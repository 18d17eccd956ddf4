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

"""Misc utility routines"""

# Important note - due to the wide spread use of Utils in other modules, no routines
# included in this file should rely on other modules beyond BaseLog and Globals -
# this is to reduce the chance of circular references when loading

import calendar
import math
import pathlib
import re
import sys
import time
from typing import Any

import numpy as np
import xarray as xr
import yaml

import Globals
from BaseLog import log_critical, log_error, log_info, log_warning
from Globals import DiveOrdering, OutputFormat


def is_float(s):
    """Test a string to see if converts to an float"""
    try:
        float(s)
        return True
    except Exception:
        return False


def is_number(x):
    """True for scalar numeric values (python or numpy), excluding strings"""
    return isinstance(x, (int, float, np.number, np.bool_)) and not isinstance(
        x, (str, bytes)
    )


def fix_gps_rollover(struct_time):
    """Fixes time stamps set from GPS units with the epoch rollover bug"""
    if struct_time.tm_year >= 1999 and struct_time.tm_year <= 2001:
        log_warning("GPS Rollover found (%s)" % (struct_time,), max_count=5)
        tmp = calendar.timegm(struct_time) + 619315200  # 1024*7*86400
        struct_time = time.gmtime(tmp)
        del tmp
    return struct_time


def parse_time(ts, f_gps_rollover=False):
    """Parse a standard time stamp from a log file header, returning time in epoch seconds

    The header form is "month day year-1900 hour minute second", optionally followed
    by milliseconds
    """
    time_parts = ts.split()
    if len(time_parts) < 6:
        raise ValueError(f"Time stamp ({ts}) has too few parts")
    if int(time_parts[2]) - 100 < 0:
        year_part = int(time_parts[2])
    else:
        year_part = int(time_parts[2]) - 100

    if len(time_parts) >= 7:
        sec_part = time_parts[5]
        dec_sec_part = float(time_parts[6]) / 1000.0
    else:
        sec_parts = time_parts[5].split(".")
        sec_part = sec_parts[0]
        if len(sec_parts) == 2:
            dec_sec_part, _ = math.modf(float(time_parts[5]))
        else:
            dec_sec_part = 0.0

    time_string = "%s %s %02d %s %s %s" % (
        time_parts[0],
        time_parts[1],
        year_part,
        time_parts[3],
        time_parts[4],
        sec_part,
    )
    time_struct = time.strptime(time_string, "%m %d %y %H %M %S")
    if f_gps_rollover:
        time_struct = fix_gps_rollover(time_struct)
    return calendar.timegm(time_struct) + dec_sec_part


def format_time(t):
    """Formats epoch seconds for reports"""
    if t is None or (isinstance(t, float) and math.isnan(t)):
        return "None"
    return time.strftime("%H:%M:%S %d %b %Y %Z", time.gmtime(t))


def normalize_version(v):
    """Version stamp as a list of ints, for comparison (trailing zeros and suffixes dropped)"""
    parts = []
    for part in str(v).split("."):
        m = re.match(r"\d+", part)
        if m is None:
            break
        parts.append(int(m.group(0)))
    while parts and parts[-1] == 0:
        parts.pop()
    return parts


def check_versions():
    """Checks and reports versions of python and the required libraries"""

    log_info("logcat version: %s" % Globals.logcat_version)

    log_info(
        "Python version %d.%d.%d"
        % (sys.version_info[0], sys.version_info[1], sys.version_info[2])
    )
    if sys.version_info < Globals.required_python_version:
        msg = "python %s or greater required" % str(Globals.required_python_version)
        log_critical(msg)
        raise RuntimeError(msg)

    for name, version, required in (
        ("Numpy", np.__version__, Globals.required_numpy_version),
        ("Xarray", xr.__version__, Globals.required_xarray_version),
    ):
        log_info("%s version %s" % (name, version))
        if normalize_version(version) < normalize_version(required):
            msg = "%s %s or greater required" % (name, required)
            log_critical(msg)
            raise RuntimeError(msg)


logcat_cfg_keys = ("format", "params", "period", "ordering")


def load_logcat_cfg(cfg_file: pathlib.Path | str | None) -> dict[str, Any]:
    """Loads a yaml config file with the settings for combining log files.

    Args:
        cfg_file: Fully qualified path to a config file

    Returns:
        dictionary of the valid settings found in the file (possibly empty)
    """

    if cfg_file is None:
        return {}

    try:
        with open(cfg_file, "r") as fi:
            cfg_dict = yaml.safe_load(fi.read())
    except Exception:
        log_error(f"Could not process {cfg_file} - ignoring contents", "exc")
        return {}

    if cfg_dict is None:
        return {}
    if not isinstance(cfg_dict, dict):
        log_warning(f"{cfg_file} is not a dictionary - ignoring contents")
        return {}

    ret_dict = {}
    for k, v in cfg_dict.items():
        if k not in logcat_cfg_keys:
            log_warning(f"Setting {k} in {cfg_file} not known - skipping")
            continue
        if k == "format":
            if v not in [x.value for x in OutputFormat]:
                log_warning(f"Format {v} in {cfg_file} not supported - skipping")
                continue
        elif k == "ordering":
            if v not in [x.value for x in DiveOrdering]:
                log_warning(f"Ordering {v} in {cfg_file} not supported - skipping")
                continue
        elif k == "params":
            if isinstance(v, str):
                v = "all" if v == "all" else [v]
            elif not (isinstance(v, list) and all(isinstance(x, str) for x in v)):
                log_warning(
                    f"Params in {cfg_file} are not a list of names ({type(v)}) - skipping"
                )
                continue
        elif k == "period":
            if v != "all" and not (
                isinstance(v, list) and len(v) == 2 and all(is_number(x) for x in v)
            ):
                log_warning(
                    f"Period {v} in {cfg_file} is not 'all' or [t_min, t_max] - skipping"
                )
                continue
            if v != "all":
                v = (float(v[0]), float(v[1]))
        ret_dict[k] = v

    return ret_dict
