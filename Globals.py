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
Minimum package versions and common class definitions
"""

from enum import Enum

# These document level of functionality
logcat_version = "1.0.0"

# Version stamps for various packages
required_python_version = (3, 10, 0)
required_numpy_version = "1.21.0"
required_xarray_version = "2023.1.0"


# pylint: disable=E0239
class OutputFormat(str, Enum):
    """Layout of the compound parameters in a merged data set"""

    array = "array"
    merged = "merged"
    struct = "struct"


class DiveOrdering(str, Enum):
    """How dives are ordered in a merged data set"""

    lexicographic = "lexicographic"
    rank = "rank"


# Log parameters that carry a variable number of lines per dive
special_fields = ("GC", "STATE", "SM_CCo", "GPSFIX", "RECOV_CODE", "RESTART_TIME")
# Member of the special fields holding seconds since the start of the dive
special_time_member = "st_secs"

# Seaglider dive log files - pSSSDDDD.log
log_file_glob = "p[0-9][0-9][0-9][0-9][0-9][0-9][0-9].log"
