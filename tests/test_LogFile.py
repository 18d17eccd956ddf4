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


import calendar
import io

import numpy as np
import pytest
import testutils

import LogFile
from LogRecord import Flattened, InvalidOutputFormat, Matrix, Nested, classify
from testutils import assert_tables_equal

mission_data_dir = testutils.testdata_dir.joinpath("sg123_Test")


def log_file_name(dive):
    return str(mission_data_dir.joinpath(f"p123{dive:04d}.log"))


def test_read_log_file():
    log_file = LogFile.read_log_file(log_file_name(1))
    assert log_file is not None
    assert log_file.version == "66.12"
    assert log_file.glider == 123
    assert log_file.mission == 1
    assert log_file.dive == 1
    assert log_file.start_secs == calendar.timegm((2024, 4, 23, 15, 32, 10, 0, 0, 0))
    assert log_file.source_name == "p1230001.log"

    assert len(log_file.rows["GC"]) == 2
    assert len(log_file.params["GC"]) == 12
    assert log_file.params["STATE"] == ("st_secs", "status", "result")
    assert log_file.rows["STATE"][0] == [5.0, "begin dive", None]
    assert log_file.rows["STATE"][1] == [600.0, "end dive", "TARGET_DEPTH_EXCEEDED"]

    # GPS1, GPS2 and GPS lines are all fixes
    assert "GPS1" not in log_file.rows
    assert len(log_file.rows["GPSFIX"]) == 3
    assert log_file.rows["GPSFIX"][2][:3] == ["230424", "155410", 4741.010]

    assert log_file.params["DEVICE_SECS"] == (
        "Pitch_motor",
        "Roll_motor",
        "VBD_pump",
        "Pressure",
        "Compass",
    )
    assert log_file.params["DEVICE_MAMPS"] == log_file.params["DEVICE_SECS"]
    assert log_file.params["x24V_AH"] == ("volts_min", "ampsh_tot")
    assert log_file.rows["TGT_NAME"] == [["WA1"]]
    assert log_file.rows["D_TGT"] == [[150.0]]

    fo = io.StringIO()
    log_file.dump(fo)
    assert "dive: 1" in fo.getvalue()
    assert "TGT_NAME,WA1" in fo.getvalue()


def test_array_format():
    record = LogFile.parse_log_file(log_file_name(2), "array")
    assert record.header.dive_number == 2
    assert record.start_time_seconds == record.header.start_time
    assert record.gc_head[-1] == "pitch_i"

    gc = record.values["GC"]
    assert gc.dtype == np.float64
    assert gc.shape == (3, 13)
    assert isinstance(classify(record, "GC"), Matrix)

    state = record.values["STATE"]
    assert state.dtype == object
    assert state.shape == (3, 3)

    assert_tables_equal(record.values["SM_CCo"], [[1500.0, 30.2, 0.8, 0, 0, 1000.0, 5.5]])
    assert record.scalars["TGT_NAME"] == "WA2"
    assert record.scalars["T_DIVE"] == 40.0
    assert "GC" not in record.scalars


def test_struct_format():
    record = LogFile.parse_log_file(log_file_name(1), "struct")
    assert isinstance(classify(record, "GC"), Nested)
    # Multi-line parameters are lists, others single values
    assert record.values["GC"]["st_secs"] == [10.0, 120.0]
    assert record.values["STATE"]["result"] == [None, "TARGET_DEPTH_EXCEEDED", None]
    assert record.values["FINISH"] == {"dpth": 148.3, "dens": 1025.12}


def test_merged_format():
    record = LogFile.parse_log_file(log_file_name(1), "merged")
    assert isinstance(classify(record, "GC"), Flattened)
    assert "GC" not in record.values
    assert record.values["GC_depth"] == [0.5, 25.1]
    assert record.values["FINISH_dens"] == 1025.12
    assert "FINISH_dens" not in record.scalars
    assert record.compounds["FINISH"] == ("dpth", "dens")


def test_special_header_without_lines(tmp_path):
    log_name = tmp_path.joinpath("p1230010.log")
    log_name.write_text(
        "version: 66.12\nglider: 123\nmission: 1\ndive: 10\nstart: 4 23 124 15 32 10\ndata:\n"
        "$GCHEAD,st_secs,depth\n$D_TGT,10\n"
    )
    record = LogFile.parse_log_file(str(log_name))
    assert record.params["GC"] == ("st_secs", "depth")
    assert "GC" not in record.values


def test_gc_without_header(caplog, tmp_path):
    testutils.init_logger()
    log_name = tmp_path.joinpath("p1230012.log")
    log_name.write_text(
        "version: 65.03\nglider: 123\nmission: 1\ndive: 12\nstart: 4 23 124 15 32 10\ndata:\n"
        "$GC,10,1.5,2.5,0.1,20,40\n$GC,120,1.0,2.0,0.2,30,150\n"
    )
    record = LogFile.parse_log_file(str(log_name))
    assert record.params["GC"] == LogFile.old_gc_members
    assert record.params["GC"][0] == "st_secs"
    assert record.values["GC"].shape == (2, len(LogFile.old_gc_members))
    assert list(record.values["GC"][:, 0]) == [10.0, 120.0]
    assert "GC" not in record.scalars
    assert testutils.logged(caplog, "Missing $GCHEAD in p1230012.log")


def test_extra_values(tmp_path):
    log_name = tmp_path.joinpath("p1230011.log")
    log_name.write_text(
        "version: 66.12\nglider: 123\nmission: 1\ndive: 11\nstart: 4 23 124 15 32 10\ndata:\n"
        "$NEW_PARAM,1,2,3\n$FINISH,1.0\n"
    )
    log_file = LogFile.read_log_file(str(log_name))
    assert log_file.params["NEW_PARAM"] == ("field01", "field02", "field03")
    assert log_file.rows["FINISH"] == [[1.0, None]]


def test_invalid_format():
    with pytest.raises(InvalidOutputFormat):
        LogFile.parse_log_file(log_file_name(1), "xml")


@pytest.mark.parametrize(
    "contents,msg",
    (
        ("this is not a log file\n", "first line did not contain"),
        ("version: 66.12\nglider: 123\nmission: 1\ndive: 1\n", "no valid header"),
        ("version: 66.12\nglider: 123\ndive: 1\ndata:\n$D_TGT,10\n", "Incomplete header"),
        ("version: 66.12\nglider: sg\n", "Could not parse header line"),
    ),
)
def test_bad_log_files(caplog, tmp_path, contents, msg):
    testutils.init_logger()
    log_name = tmp_path.joinpath("p1230099.log")
    log_name.write_text(contents)
    assert LogFile.parse_log_file(str(log_name)) is None
    assert testutils.logged(caplog, msg, "ERROR")


def test_missing_log_file(caplog, tmp_path):
    testutils.init_logger()
    assert LogFile.read_log_file(str(tmp_path.joinpath("p1230000.log"))) is None
    assert testutils.logged(caplog, "Could not open", "ERROR")


def test_collect_log_files():
    names = LogFile.collect_log_files(str(mission_data_dir))
    assert [n.rsplit("/", 1)[-1] for n in names] == [
        "p1230001.log",
        "p1230002.log",
        "p1230003.log",
        "p1230004.log",
    ]
