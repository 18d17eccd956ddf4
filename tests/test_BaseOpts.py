# -*- python-fmt -*-

## Copyright (c) 2024  University of Washington.
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


import argparse

import pytest

import BaseOpts


def test_defaults():
    base_opts = BaseOpts.BaseOptions("test", alt_cmdline=[], calling_module="LogCat")
    assert base_opts.format == "array"
    assert base_opts.params == "all"
    assert base_opts.period == "all"
    assert base_opts.ordering == "lexicographic"
    assert base_opts.log_files == []
    assert base_opts.params_file is None


def test_command_line(tmp_path):
    base_opts = BaseOpts.BaseOptions(
        "test",
        alt_cmdline=f"--format struct --params GC,TGT_NAME --period 100,200 --ordering rank -m {tmp_path}",
        calling_module="LogCat",
    )
    assert base_opts.format == "struct"
    assert base_opts.params == ["GC", "TGT_NAME"]
    assert base_opts.period == (100.0, 200.0)
    assert base_opts.ordering == "rank"
    assert base_opts.mission_dir == str(tmp_path) + "/"


def test_bad_choice():
    with pytest.raises(SystemExit):
        BaseOpts.BaseOptions(
            "test", alt_cmdline=["--format", "xml"], calling_module="LogCat"
        )


def test_config_file_trumps_command_line(tmp_path):
    conf = tmp_path.joinpath("logcat.conf")
    conf.write_text("[base]\ndebug = 1\n[logcat]\nformat = merged\nperiod = 1,2\n")
    base_opts = BaseOpts.BaseOptions(
        "test",
        alt_cmdline=["--format", "struct", "--params", "X", "-c", str(conf)],
        calling_module="LogCat",
    )
    assert base_opts.format == "merged"
    assert base_opts.period == (1.0, 2.0)
    assert base_opts.params == ["X"]
    assert base_opts.debug
    assert base_opts.config_file_name == str(conf)


def test_config_file_bad_value(tmp_path):
    conf = tmp_path.joinpath("logcat.conf")
    conf.write_text("[logcat]\nordering = random\n")
    with pytest.raises(ValueError):
        BaseOpts.BaseOptions(
            "test", alt_cmdline=["-c", str(conf)], calling_module="LogCat"
        )


def test_missing_config_file(tmp_path):
    base_opts = BaseOpts.BaseOptions(
        "test",
        alt_cmdline=["-c", str(tmp_path.joinpath("none.conf"))],
        calling_module="LogCat",
    )
    assert base_opts.config_file_not_found


@pytest.mark.parametrize(
    "value,expected",
    (("all", "all"), ("", "all"), ("GC, X ,", ["GC", "X"]), (["A"], ["A"])),
)
def test_param_list(value, expected):
    assert BaseOpts.ParamList(value) == expected


def test_time_period():
    assert BaseOpts.TimePeriod("all") == "all"
    assert BaseOpts.TimePeriod("1 2") == (1.0, 2.0)
    with pytest.raises(argparse.ArgumentTypeError):
        BaseOpts.TimePeriod("1,2,3")
    with pytest.raises(argparse.ArgumentTypeError):
        BaseOpts.TimePeriod("a,b")
