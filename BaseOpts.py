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

"""
  Options for the log consolidation tools

  Each option has a default, may be set on the command line and may be set
  again (trumping the command line) in a configuration file
"""

import argparse
import configparser
import copy
import dataclasses
import inspect
import os
import pdb
import sys
import time
import traceback
import typing

from Globals import DiveOrdering, OutputFormat


def FullPath(x):
    """Absolute path, with ~ expanded (lists are expanded element by element)"""
    # unset optional paths come through as the empty string
    if x == "":
        return x
    if isinstance(x, list):
        return [FullPath(y) for y in x]
    return os.path.abspath(os.path.expanduser(x))


def FullPathTrailingSlash(x):
    """Absolute directory path, ending in /"""
    if x == "":
        return x
    return os.path.join(FullPath(x), "")


class FullPathAction(argparse.Action):
    """Stores the argument as an absolute path"""

    convert = staticmethod(FullPath)

    def __call__(self, parser, namespace, values, option_string=None):
        setattr(
            namespace, self.dest, values if values is None else self.convert(values)
        )


class FullPathTrailingSlashAction(FullPathAction):
    """Stores the argument as an absolute directory path"""

    convert = staticmethod(FullPathTrailingSlash)


def ParamList(x):
    """Converts a comma separated list of parameter names

    Returns "all" or a list of parameter/member names
    """
    if isinstance(x, (list, tuple)):
        names = [str(y).strip() for y in x]
    else:
        names = [y.strip() for y in str(x).split(",")]
    names = [y for y in names if y]
    if not names or names == ["all"]:
        return "all"
    return names


def TimePeriod(x):
    """Converts a "t_min,t_max" string (epoch seconds) to a tuple

    Returns "all" or (t_min, t_max)
    """
    if isinstance(x, (list, tuple)):
        parts = list(x)
    else:
        if x.strip() == "all":
            return "all"
        parts = x.replace(",", " ").split()
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"{x} is not of the form t_min,t_max")
    try:
        return (float(parts[0]), float(parts[1]))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Could not convert {x} to times") from exc


# kwargs holds anything argparse.add_argument accepts, plus
#
# section:str - config file section the option is read from (default "base")
@dataclasses.dataclass
class options_t:
    """One entry in the options table"""

    default_val: typing.Any
    group: set | None  # modules the option applies to - None for all
    args: tuple
    var_type: typing.Any
    kwargs: dict

    def __post_init__(self):
        if not isinstance(self.args, tuple):
            raise ValueError("args is not a tuple")
        if not isinstance(self.kwargs, dict):
            raise ValueError("kwargs is not a dict")
        if self.group is not None:
            self.group = set(self.group)

    def applies_to(self, calling_module):
        return self.group is None or calling_module in self.group

    @property
    def positional(self):
        return not self.args[0].startswith("-")

    @property
    def section(self):
        return self.kwargs.get("section", "base")


global_options_dict = {
    "generate_sample_conf": options_t(
        False,
        None,
        ("--generate_sample_conf",),
        bool,
        {
            "help": "Print a sample conf file to stdout and exit",
            "action": "store_true",
        },
    ),
    "config_file_name": options_t(
        None,
        None,
        ("--config", "-c"),
        FullPath,
        {"help": "configuration file", "action": FullPathAction},
    ),
    "base_log": options_t(
        "",
        None,
        ("--base_log",),
        FullPath,
        {
            "help": "log file, records all levels of notifications",
            "action": FullPathAction,
        },
    ),
    "debug": options_t(
        False,
        None,
        ("--debug",),
        bool,
        {"action": "store_true", "help": "log/display debug messages"},
    ),
    "verbose": options_t(
        False,
        None,
        ("--verbose", "-v"),
        bool,
        {"action": "store_true", "help": "print status messages to stdout"},
    ),
    "mission_dir": options_t(
        "",
        ("LogCat",),
        ("-m", "--mission_dir"),
        FullPathTrailingSlash,
        {
            "help": "directory holding the dive log files",
            "action": FullPathTrailingSlashAction,
        },
    ),
    "log_files": options_t(
        [],
        ("LogCat",),
        ("log_files",),
        str,
        {
            "help": "Seaglider log files to combine (default - all dive logs in the mission_dir)",
            "nargs": "*",
            "action": FullPathAction,
        },
    ),
    "format": options_t(
        OutputFormat.array.value,
        ("LogCat",),
        ("--format",),
        str,
        {
            "help": "Layout of compound parameters in the output",
            "choices": [x.value for x in OutputFormat],
            "section": "logcat",
        },
    ),
    "params": options_t(
        "all",
        ("LogCat",),
        ("--params",),
        ParamList,
        {
            "help": "Comma separated list of parameters (or parameter_member names) to retain",
            "section": "logcat",
        },
    ),
    "period": options_t(
        "all",
        ("LogCat",),
        ("--period",),
        TimePeriod,
        {
            "help": "Only include dives starting in t_min,t_max (epoch seconds, inclusive)",
            "section": "logcat",
        },
    ),
    "ordering": options_t(
        DiveOrdering.lexicographic.value,
        ("LogCat",),
        ("--ordering",),
        str,
        {
            "help": "Dive ordering - by (mission, dive) or by the legacy rank index",
            "choices": [x.value for x in DiveOrdering],
            "section": "logcat",
        },
    ),
    "params_file": options_t(
        None,
        ("LogCat",),
        ("--params_file",),
        FullPath,
        {
            "help": "yaml file with format, params, period and ordering settings",
            "action": FullPathAction,
            "section": "logcat",
        },
    ),
}


def generate_sample_conf_file(options_dict, calling_module, fo=sys.stdout):
    """Writes a sample .conf file, all settings commented out"""
    print(f"#\n# Sample conf file for {calling_module}.py", file=fo)
    print(f"# Generated with python {calling_module}.py --generate_sample_conf\n#", file=fo)

    sections = {}
    for name, opt in options_dict.items():
        if name in ("config_file_name", "generate_sample_conf"):
            continue
        if opt.positional or not opt.applies_to(calling_module):
            continue
        sections.setdefault(opt.section, []).append((name, opt))

    for section_name, opts in sections.items():
        print(f"[{section_name}]", file=fo)
        for name, opt in opts:
            if opt.var_type is bool:
                sample = int(opt.default_val)
            elif opt.var_type is FullPath:
                sample = "<path_to_file>"
            elif opt.var_type is FullPathTrailingSlash:
                sample = "<path_to_directory>"
            else:
                sample = opt.default_val
            print(f"#\n# {opt.kwargs['help']}\n#{name} = {sample}", file=fo)
        print("#", file=fo)


class HelpFormatter(
    argparse.ArgumentDefaultsHelpFormatter, argparse.RawDescriptionHelpFormatter
):
    """Shows defaults and keeps the description layout"""


class BaseOptions:
    """
    BaseOptions: options for the log consolidation code and utilities.
       Defaults are trumped by command-line arguments; command-line arguments
       are trumped by options listed in the configuration file.
    """

    def __init__(
        self,
        description,
        additional_arguments=None,
        alt_cmdline=None,
        calling_module=None,
    ):
        """
        Input:
            description - help description
            additional_arguments - dictionary of options_t for options specific to
                                   a single module
            alt_cmdline - alternate command line - a string (or list) of options
                          used in place of sys.argv[1:]
            calling_module - name of the module the options are for (default - the caller)
        """
        if calling_module is None:
            calling_module = os.path.splitext(
                os.path.basename(inspect.stack()[1].filename)
            )[0]
        self.calling_module = calling_module

        options_dict = {
            k: v
            for k, v in (global_options_dict | (additional_arguments or {})).items()
            if v.applies_to(calling_module)
        }

        if "--generate_sample_conf" in sys.argv:
            generate_sample_conf_file(options_dict, calling_module)
            sys.exit(0)

        for k, v in options_dict.items():
            setattr(self, k, v.default_val)

        self._ap = self._build_parser(description, options_dict)
        if isinstance(alt_cmdline, str):
            alt_cmdline = alt_cmdline.split()
        # None means sys.argv
        self._opts = self._ap.parse_args(alt_cmdline)

        for k in options_dict:
            if hasattr(self._opts, k):
                setattr(self, k, getattr(self._opts, k))

        self.config_file_name = self._opts.config_file_name
        if self.config_file_name is not None:
            self._apply_config(self.config_file_name, options_dict)

    @staticmethod
    def _build_parser(description, options_dict):
        ap = argparse.ArgumentParser(description=description, formatter_class=HelpFormatter)
        for k, v in options_dict.items():
            kwargs = copy.deepcopy(v.kwargs)
            kwargs.pop("section", None)
            if not (v.var_type is bool and "action" in kwargs):
                kwargs["type"] = v.var_type
            if not v.positional:
                kwargs["dest"] = k
            kwargs["default"] = v.default_val
            ap.add_argument(*v.args, **kwargs)
        return ap

    def _apply_config(self, config_file_name, options_dict):
        """Updates the object from the contents of a config file"""
        if not os.path.exists(config_file_name):
            self.config_file_not_found = True
            return

        cp = configparser.RawConfigParser()
        try:
            cp.read(config_file_name)
        except configparser.Error as exc:
            raise RuntimeError(f"ERROR parsing {config_file_name}") from exc

        for k, v in options_dict.items():
            if k == "config_file_name" or v.positional:
                continue
            if not cp.has_option(v.section, k):
                continue
            if v.var_type is bool:
                try:
                    val = cp.getboolean(v.section, k)
                except ValueError as exc:
                    raise ValueError(
                        f"Could not convert {k} from {config_file_name} to boolean"
                    ) from exc
            else:
                try:
                    val = v.var_type(cp.get(v.section, k))
                except (ValueError, argparse.ArgumentTypeError) as exc:
                    raise ValueError(
                        f"Could not convert {k} from {config_file_name} to requested type"
                    ) from exc
                if "choices" in v.kwargs and val not in v.kwargs["choices"]:
                    raise ValueError(
                        f"{val} for {k} in {config_file_name} is not one of {v.kwargs['choices']}"
                    )
            setattr(self, k, val)


if __name__ == "__main__":
    # Force to be in UTC
    os.environ["TZ"] = "UTC"
    time.tzset()

    try:
        base_opts = BaseOptions("Log consolidation options test", calling_module="LogCat")
    except Exception:
        _, _, traceb = sys.exc_info()
        traceback.print_exc()
        pdb.post_mortem(traceb)
    else:
        for opt_name in sorted(global_options_dict):
            if hasattr(base_opts, opt_name):
                print(f"{opt_name}: {getattr(base_opts, opt_name)}")
