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


import os
import pathlib
import shutil
import time
from collections.abc import Callable
from typing import Any

import numpy as np
import pytest

from BaseLog import BaseLogger
from LogRecord import Header, Record

testdata_dir = pathlib.Path(__file__).parent.joinpath("testdata")


def init_logger() -> None:
    """Sets up BaseLog so warnings reach the pytest caplog fixture"""
    BaseLogger(None)


def check_log(caplog: Any, allowed_msgs: list[str]) -> None:
    """Fails the test for any WARNING, ERROR or CRITICAL msg not in allowed_msgs"""
    bad_errors = ""
    for record in caplog.records:
        for msg in allowed_msgs:
            if msg in record.getMessage():
                break
        else:
            if record.levelname in ["CRITICAL", "ERROR", "WARNING"]:
                bad_errors += f"{record.levelname}:{record.getMessage()}\n"
    if bad_errors:
        pytest.fail(bad_errors)


def logged(caplog: Any, msg: str, levelname: str = "WARNING") -> bool:
    """True if msg appears in a caplog record of the given level"""
    return any(
        msg in record.getMessage() and record.levelname == levelname
        for record in caplog.records
    )


def run_mission(
    data_dir: pathlib.Path,
    mission_dir: pathlib.Path,
    main_func: Callable[[list[str]], int],
    cmd_line: list[str],
    caplog: Any,
    allowed_msgs: list[str],
    expected_result: int = 0,
) -> None:
    """Copies a set of dive logs to a test directory, runs main_func over them and
    checks warning and error output against a known list

    Args:
    data_dir: original dive logs
    mission_dir: directory the logs are copied to (removed first, if it exists)
    main_func: The main() toplevel entry point called from __main__ - takes a command line argument
    cmd_line: argument to main_func
    caplog: logging capture from pytest fixture
    allowed_msgs: list of allowed messages that can appear in the caplog
    expected_result: return code expected from main_func
    """
    os.environ["TZ"] = "UTC"
    time.tzset()

    if mission_dir.exists():
        shutil.rmtree(mission_dir)
    mission_dir.mkdir(parents=True)
    for p in data_dir.iterdir():
        if p.is_dir():
            continue
        shutil.copy(p, mission_dir)
    init_logger()
    result = main_func(cmd_line)
    assert result == expected_result
    check_log(caplog, allowed_msgs)


def make_record(
    mission: int,
    dive: int,
    start: float,
    params: dict | None = None,
    values: dict | None = None,
    glider: int = 123,
    source_name: str | None = None,
) -> Record:
    """A dive record built in memory"""
    return Record(
        header=Header(
            version="66.12",
            glider_id=glider,
            mission_number=mission,
            dive_number=dive,
            start_time=start,
        ),
        start_time_seconds=start,
        params={} if params is None else params,
        values={} if values is None else values,
        source_name=(
            f"p{glider:03d}{dive:04d}.log" if source_name is None else source_name
        ),
    )


def assert_tables_equal(a: Any, b: Any) -> None:
    """Element by element comparison - NaNs compare equal, numbers are compared as floats"""
    a = np.asarray(a, dtype=object)
    b = np.asarray(b, dtype=object)
    assert a.shape == b.shape
    for x, y in zip(a.ravel(), b.ravel()):
        if isinstance(x, str) or isinstance(y, str):
            assert x == y
        elif np.isnan(float(x)):
            assert np.isnan(float(y))
        else:
            assert float(x) == float(y)
