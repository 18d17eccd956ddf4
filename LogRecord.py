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

"""Per-dive log records and the encodings of their compound parameters

A record is what the upstream reader (LogFile) produces for one dive log:
the header, the dive start time, the member lists of the compound parameters
(params) and the values of all parameters (values).

A compound parameter can be held in values in one of three equivalent ways:

    nested    - values[field] is a mapping of member name to value
                (or to a column of values, for multi-line parameters)
    matrix    - values[field] is a rows x members array, columns in the
                order of params[field]
    flattened - values[field] is absent; each member is a separate entry
                values[field + "_" + member]
"""

import collections.abc
import dataclasses
from typing import Any, Mapping

import numpy as np

from Utils import is_number


class LogCatError(Exception):
    """Base class for caller errors when combining log records"""


class InvalidInputShape(LogCatError):
    """The records and the data snapshots do not line up"""


class InvalidOptions(LogCatError):
    """Malformed option arguments or an unknown option"""


class InvalidOutputFormat(LogCatError):
    """Unknown output format requested"""


@dataclasses.dataclass(frozen=True)
class Header:
    """Per-dive identity from the log file header"""

    version: Any
    glider_id: int
    mission_number: int
    dive_number: int
    start_time: float  # epoch seconds


@dataclasses.dataclass(frozen=True)
class Record:
    """Everything the log file for a single dive carries"""

    header: Header
    start_time_seconds: float
    params: Mapping[str, tuple] = dataclasses.field(default_factory=dict)
    values: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    source_name: str = ""
    devices: tuple = ()
    sensors: tuple = ()
    gc_head: tuple = ()

    @property
    def compounds(self) -> dict:
        """Compound (and special) parameter name -> member names"""
        return {k: tuple(v) for k, v in self.params.items() if v}

    @property
    def scalars(self) -> dict:
        """Parameters with a single value for the dive"""
        claimed = set()
        for field, members in self.params.items():
            if not members:
                continue
            claimed.add(field)
            if field not in self.values:
                claimed.update(flat_name(field, m) for m in members)
        return {k: v for k, v in self.values.items() if k not in claimed}


def flat_name(field: str, member: str) -> str:
    """Name of a compound member as a stand alone parameter"""
    return f"{field}_{member}"


@dataclasses.dataclass(frozen=True)
class Nested:
    members: tuple
    values: Mapping[str, Any]


@dataclasses.dataclass(frozen=True)
class Matrix:
    members: tuple
    data: Any


@dataclasses.dataclass(frozen=True)
class Flattened:
    members: tuple
    values: Mapping[str, Any]


CompoundValue = Nested | Matrix | Flattened


def classify(record: Record, field: str) -> CompoundValue | None:
    """Determine which of the three encodings a record uses for a compound parameter

    Returns None if the record does not have the parameter
    """
    members = tuple(record.params.get(field, ()))
    if not members:
        return None
    if field in record.values:
        value = record.values[field]
        if isinstance(value, collections.abc.Mapping):
            return Nested(members, value)
        return Matrix(members, value)
    return Flattened(
        members,
        {
            m: record.values[flat_name(field, m)]
            for m in members
            if flat_name(field, m) in record.values
        },
    )


def _as_column(value) -> list:
    """A member value as a list of per-line values"""
    if value is None or isinstance(value, (str, bytes)) or np.ndim(value) == 0:
        return [value]
    return list(np.ravel(np.asarray(value, dtype=object)))


def to_local_matrix(compound: CompoundValue) -> np.ndarray:
    """Normalizes any encoding to a lines x members object array

    Columns are in the record's own member order.  Cells without a value
    (short columns, members missing from a flattened or nested encoding)
    are None.
    """
    num_members = len(compound.members)
    if isinstance(compound, Matrix):
        data = np.asarray(compound.data, dtype=object)
        if data.ndim == 0:
            data = data.reshape(1, 1)
        elif data.ndim == 1:
            if num_members == 1 and data.size != 1:
                # a single member, one value per line
                data = data.reshape(-1, 1)
            else:
                data = data.reshape(1, -1)
        elif data.ndim > 2:
            data = data.reshape(data.shape[0], -1)
        if data.shape[1] == num_members:
            return data
        # Matrix narrower or wider than its member list - keep what lines up
        local = np.full((data.shape[0], num_members), None, dtype=object)
        ncols = min(num_members, data.shape[1])
        local[:, :ncols] = data[:, :ncols]
        return local

    columns = [
        _as_column(compound.values[m]) if m in compound.values else []
        for m in compound.members
    ]
    num_lines = max([len(c) for c in columns], default=0)
    local = np.full((num_lines, num_members), None, dtype=object)
    for ii, column in enumerate(columns):
        for jj, value in enumerate(column):
            local[jj, ii] = value
    return local

