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

"""Contains all routines for extracting data from a glider's dive log file."""

import glob
import os
import pdb
import sys
import time
import traceback

import numpy as np

import BaseOpts
import Globals
import Utils
from BaseLog import (
    BaseLogger,
    log_debug,
    log_error,
    log_info,
    log_warning,
)
from Globals import OutputFormat
from LogRecord import Header, InvalidOutputFormat, Record, flat_name

DEBUG_PDB = False

# Parameters whose names are not valid identifiers or that are stored together
gps_field = "GPSFIX"
rename_params = {
    "_CALLS": "CALLS",
    "_XMS_NAKs": "XMS_NAKs",
    "_XMS_TOUTs": "XMS_TOUTs",
    "_SM_DEPTHo": "SM_DEPTHo",
    "_SM_ANGLEo": "SM_ANGLEo",
    "24V_AH": "x24V_AH",
    "10V_AH": "x10V_AH",
    "GPS1": gps_field,
    "GPS2": gps_field,
    "GPS": gps_field,
}

gps_members = (
    "ddmmyy",
    "hhmmss",
    "fixlat",
    "fixlon",
    "ttffix",
    "hordop",
    "ttafix",
    "magvar",
)

# Multi-valued parameters and the names of their values (keyed by the renamed parameter)
param_members = {
    "SPEED_LIMITS": ("min_spd", "max_spd"),
    "TGT_LATLONG": ("tgt_lat", "tgt_lon"),
    "KALMAN_CONTROL": ("spd_east", "spd_nrth"),
    "KALMAN_X": (
        "cur_mean_east",
        "cur_diur_east",
        "cur_semi_east",
        "gld_wspd_east",
        "delta_x",
    ),
    "KALMAN_Y": (
        "cur_mean_nrth",
        "cur_diur_nrth",
        "cur_semi_nrth",
        "gld_wspd_nrth",
        "delta_y",
    ),
    "MHEAD_RNG_PITCHd_Wd": ("mag_head", "tgt_rnge", "ptch_ang", "vert_vel"),
    "FINISH": ("dpth", "dens"),
    "STATE": ("st_secs", "status", "result"),
    "SM_CCo": (
        "st_secs",
        "pmp_secs",
        "pmp_amps",
        "pmp_rets",
        "pmp_errs",
        "pmp_cnts",
        "pmp_ccss",
    ),
    "ALTIM_BOTTOM_PING": ("dpth", "rnge"),
    "x24V_AH": ("volts_min", "ampsh_tot"),
    "x10V_AH": ("volts_min", "ampsh_tot"),
    "DATA_FILE_SIZE": ("bytes", "samples"),
    "CFSIZE": ("bytes_total", "bytes_free"),
    "ERRORS": (
        "bufoverrun",
        "interrupts",
        "fopen_errs",
        "fwrit_errs",
        "fclos_errs",
        "fopen_rets",
        "fwrit_rets",
        "fclos_rets",
        "ptch_errs",
        "roll_errs",
        "vbd_errs",
        "ptch_rets",
        "roll_rets",
        "vbd_rets",
        "gps_mis",
        "gps_pps",
    ),
    "CURRENT": ("cur_spd", "cur_dir", "cur_val"),
    gps_field: gps_members,
}

# Lines that name the members of other parameters
member_header_params = {
    "GCHEAD": ("GC",),
    "DEVICES": ("DEVICE_SECS", "DEVICE_MAMPS"),
    "SENSORS": ("SENSOR_SECS", "SENSOR_MAMPS"),
}

# GC layout of logs written before $GCHEAD existed
old_gc_members = (
    "st_secs",
    "pitch_ctl",
    "vbd_ctl",
    "ob_vertv",
    "data_pts",
    "end_secs",
    "pitch_secs",
    "roll_secs",
    "vbd_secs",
    "vbd_i",
    "gcphase",
    "pitch_i",
    "roll_i",
    "pitch_ad",
    "roll_ad",
    "vbd_ad",
)


def _to_float(x):
    try:
        return float(x)
    except ValueError:
        return np.nan


def _parse_gps(param, value_strs):
    """GPS lines - old style GPS1/GPS2 lines have no date"""
    if param == "GPS" or len(value_strs) >= len(gps_members):
        return value_strs[:2] + [_to_float(x) for x in value_strs[2:]]
    return [""] + value_strs[:1] + [_to_float(x) for x in value_strs[1:]]


def _parse_state(param, value_strs):
    return [_to_float(value_strs[0])] + [x.strip() for x in value_strs[1:]]


def _parse_text(param, value_strs):
    return [x.strip() for x in value_strs]


def _parse_member_names(param, value_strs):
    return [x.strip() for x in value_strs if x.strip() and x.strip() != "nil"]


# Non-numeric parameters (keyed by the parameter name as it appears in the log)
text_params = {
    "TGT_NAME": _parse_text,
    "GPS1": _parse_gps,
    "GPS2": _parse_gps,
    "GPS": _parse_gps,
    "STATE": _parse_state,
    "GCHEAD": _parse_member_names,
    "DEVICES": _parse_member_names,
    "SENSORS": _parse_member_names,
    "RECOV_CODE": _parse_text,
    "RESTART_TIME": _parse_text,
}


def _parse_values(value_strs):
    """Numeric values where possible - a single unparsable value is kept as text"""
    if all(Utils.is_float(x) for x in value_strs):
        return [float(x) for x in value_strs]
    if len(value_strs) == 1:
        return [value_strs[0].strip()]
    return [float(x) if Utils.is_float(x) else x.strip() for x in value_strs]


class LogFile:
    """Object representing a seaglider log file"""

    def __init__(self):
        self.version = None
        self.glider = None
        self.mission = None
        self.dive = None
        self.start_secs = None
        self.source_name = ""
        self.params = {}  # parameter -> member names
        self.rows = {}  # parameter -> list of lines of values
        self.gc_head = []
        self.devices = []
        self.sensors = []

    def dump(self, fo=sys.stdout):
        """Dumps out the logfile"""
        print("version: %s" % (self.version), file=fo)
        print("glider: %d" % (self.glider), file=fo)
        print("mission: %d" % (self.mission), file=fo)
        print("dive: %d" % (self.dive), file=fo)
        print("start: %s" % Utils.format_time(self.start_secs), file=fo)
        print("data:", file=fo)
        for param, rows in self.rows.items():
            members = self.params.get(param, ())
            if members:
                print("%s (%s)" % (param, ",".join(members)), file=fo)
                for row in rows:
                    print("  %s" % (row,), file=fo)
            else:
                print("%s,%s" % (param, rows[-1][0]), file=fo)

    def add_line(self, param, value_strs):
        """Adds the values from one $PARAM line"""
        field = rename_params.get(param, param)

        if param in text_params:
            values = text_params[param](param, value_strs)
        else:
            values = _parse_values(value_strs)

        if param in member_header_params:
            for which in member_header_params[param]:
                self.params[which] = tuple(values)
            if param == "GCHEAD":
                self.gc_head = values
            elif param == "DEVICES":
                self.devices = values
            else:
                self.sensors = values
            return

        if field == "GC" and field not in self.params:
            log_warning(
                "Missing $GCHEAD in %s - assuming old version" % self.source_name
            )
            self.params[field] = old_gc_members

        if field in self.rows:
            members = self.params.get(field, ())
            if not members:
                log_debug("%s repeated - using the last value" % field)
                self.rows[field] = [values]
                return
        else:
            members = tuple(self.params.get(field, param_members.get(field, ())))
            if len(values) > 1 and len(values) > len(members):
                members = members + tuple(
                    "field%02d" % ii for ii in range(len(members) + 1, len(values) + 1)
                )
            self.params[field] = members
            self.rows[field] = []

        if members:
            if len(values) < len(members):
                values = values + [None] * (len(members) - len(values))
            elif len(values) > len(members):
                log_warning(
                    "%s line has %d values, expected %d - extra values dropped"
                    % (field, len(values), len(members)),
                    max_count=5,
                )
                values = values[: len(members)]
        self.rows[field].append(values)

    def to_record(self, fmt=OutputFormat.array.value):
        """Converts to a LogRecord.Record, holding the parameters with members in the given format

        fmt:
            array  - rows x members arrays
            struct - mappings of member to value (to a list of values for multi-line parameters)
            merged - flattened parameter_member entries

        Raises:
            InvalidOutputFormat
        """
        if fmt not in [x.value for x in OutputFormat]:
            raise InvalidOutputFormat(f"Invalid output format: {fmt}")

        params = {}
        values = {}
        for field, rows in self.rows.items():
            members = self.params.get(field, ())
            if not members:
                values[field] = rows[-1][0]
                continue
            params[field] = members
            multi_line = field in Globals.special_fields or len(rows) > 1
            if fmt == OutputFormat.array.value:
                if all(Utils.is_number(x) or x is None for row in rows for x in row):
                    values[field] = np.array(
                        [[np.nan if x is None else x for x in row] for row in rows],
                        dtype=np.float64,
                    )
                else:
                    values[field] = np.array(rows, dtype=object)
                continue
            columns = {}
            for kk, member in enumerate(members):
                column = [row[kk] for row in rows]
                columns[member] = column if multi_line else column[0]
            if fmt == OutputFormat.struct.value:
                values[field] = columns
            else:
                for member, column in columns.items():
                    values[flat_name(field, member)] = column

        # Members named by a header line, but no data lines
        for field, members in self.params.items():
            if field not in self.rows and field in Globals.special_fields:
                params[field] = members

        return Record(
            header=Header(
                version=self.version,
                glider_id=self.glider,
                mission_number=self.mission,
                dive_number=self.dive,
                start_time=self.start_secs,
            ),
            start_time_seconds=self.start_secs,
            params=params,
            values=values,
            source_name=self.source_name,
            devices=tuple(self.devices),
            sensors=tuple(self.sensors),
            gc_head=tuple(self.gc_head),
        )


def read_log_file(in_filename):
    """Reads a Seaglider log file

    Returns a LogFile object or None for an error
    """
    try:
        raw_log_file = open(in_filename, "rb")
    except IOError:
        log_error("Could not open " + in_filename + " for reading")
        return None

    log_file = None
    with raw_log_file:
        line_count = 0
        in_header = True
        for raw_bytes in raw_log_file:
            line_count = line_count + 1
            try:
                raw_line = raw_bytes.decode().rstrip()
            except UnicodeDecodeError:
                log_error(
                    "Could not process line %d of %s" % (line_count, in_filename)
                )
                continue

            if in_header:
                raw_strs = raw_line.split(":", 1)
                tag = raw_strs[0].lstrip("%").strip()
                if log_file is None:
                    if tag != "version" or len(raw_strs) != 2:
                        log_error(
                            "first line did not contain an version string %s" % raw_line
                        )
                        return None
                    log_file = LogFile()
                    log_file.source_name = os.path.basename(in_filename)
                    log_file.version = raw_strs[1].strip()
                    continue
                try:
                    if tag == "glider":
                        log_file.glider = int(raw_strs[1])
                    elif tag == "mission":
                        log_file.mission = int(raw_strs[1])
                    elif tag == "dive":
                        log_file.dive = int(raw_strs[1])
                    elif tag == "start":
                        log_file.start_secs = Utils.parse_time(
                            raw_strs[1], f_gps_rollover=True
                        )
                    elif tag == "data":
                        in_header = False
                except (IndexError, ValueError):
                    log_error(
                        "Could not parse header line %d (%s) in %s"
                        % (line_count, raw_line, in_filename),
                        "exc",
                    )
                    return None
                continue

            if raw_line == "":
                continue
            raw_strs = raw_line.split(",", 1)
            if not raw_strs[0].startswith("$"):
                log_error(
                    "Could not parse line %d %s in %s"
                    % (line_count, raw_line, in_filename),
                    max_count=5,
                )
                continue
            param = raw_strs[0][1:]
            value_strs = raw_strs[1].split(",") if len(raw_strs) == 2 else [""]
            log_file.add_line(param, value_strs)

    if log_file is None or in_header:
        log_error("no valid header found in %s" % in_filename)
        return None
    if None in (log_file.glider, log_file.mission, log_file.dive, log_file.start_secs):
        log_error("Incomplete header in %s" % in_filename)
        return None

    return log_file


def parse_log_file(in_filename, fmt=OutputFormat.array.value):
    """Parses a Seaglider log file

    Input:
        in_filename - log file name
        fmt - encoding of the parameters with members (see LogFile.to_record)

    Returns:
        LogRecord.Record or None for an error

    Raises:
        InvalidOutputFormat
    """
    log_file = read_log_file(in_filename)
    if log_file is None:
        return None
    return log_file.to_record(fmt)


def collect_log_files(mission_dir):
    """Dive log files in a mission directory, in name (dive) order"""
    return sorted(glob.glob(os.path.join(mission_dir, Globals.log_file_glob)))


def main():
    """Test entry point for logfile processing"""
    base_opts = BaseOpts.BaseOptions(
        "Test entry point for logfile processing",
        additional_arguments={
            "log_file": BaseOpts.options_t(
                None,
                ("LogFile",),
                ("log_file",),
                str,
                {
                    "help": "Seaglider logfile to process",
                    "action": BaseOpts.FullPathAction,
                },
            ),
        },
        calling_module="LogFile",
    )
    BaseLogger(base_opts)  # initializes BaseLog

    log_info("Processing file: %s" % base_opts.log_file)

    log_file = read_log_file(base_opts.log_file)
    if log_file is None:
        return 1

    # You can dump the whole processed object using this method
    log_file.dump(sys.stdout)

    return 0


if __name__ == "__main__":
    # Force time and date to be in UTC
    os.environ["TZ"] = "UTC"
    time.tzset()

    retval = 1
    try:
        retval = main()
    except SystemExit:
        pass
    except Exception:
        if DEBUG_PDB:
            _, _, tb = sys.exc_info()
            traceback.print_exc()
            pdb.post_mortem(tb)

    sys.exit(retval)
