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

"""Combines the per-dive records of a set of Seaglider log files into a single data set

The dives are ordered by mission and dive number (optionally restricted to a
period of dive start times), the parameters seen in any of the dives are
unified into one schema, and every parameter is laid out as a column (or a
table, for parameters with members) with one row per dive.  Parameters that
log several lines per dive (GC, STATE, SM_CCo, GPS fixes...) are concatenated
over all dives, with their line times referred to the start of the first dive.

Absent parameters and members are filled with NaN (numeric columns) or ''
(text columns), so every column of the result has the same number of rows.
"""

import collections.abc
import dataclasses
import enum
import os
import pdb
import sys
import time
import traceback
from typing import Any

import numpy as np
import xarray as xr

import BaseOpts
import Globals
import LogFile
import Utils
from BaseLog import (
    BaseLogger,
    log_critical,
    log_debug,
    log_error,
    log_info,
    log_warning,
)
from Globals import DiveOrdering, OutputFormat
from LogRecord import (
    Flattened,
    Header,
    InvalidInputShape,
    InvalidOptions,
    InvalidOutputFormat,
    LogCatError,
    Nested,
    Record,
    classify,
    flat_name,
    to_local_matrix,
)

DEBUG_PDB = False


class ColumnKind(enum.Enum):
    """Type of the values of a merged column, decided by the first value seen"""

    number = "number"
    text = "text"

    @property
    def sentinel(self):
        return np.nan if self is ColumnKind.number else ""


@dataclasses.dataclass(frozen=True)
class LogCatOptions:
    """Settings for merge()"""

    format: Any = OutputFormat.array.value
    params: Any = "all"
    period: Any = "all"
    ordering: Any = DiveOrdering.lexicographic.value


option_names = tuple(f.name for f in dataclasses.fields(LogCatOptions))


def parse_options(*args, **kwargs) -> LogCatOptions:
    """Collects options given as a single mapping, as key, value pairs and/or as keywords

    Keys are case insensitive.  The format value is checked when the data
    is formatted; all other values are checked here.

    Raises:
        InvalidOptions
    """
    if len(args) == 1 and isinstance(args[0], LogCatOptions):
        items = list(dataclasses.asdict(args[0]).items())
    elif len(args) == 1 and isinstance(args[0], collections.abc.Mapping):
        items = list(args[0].items())
    elif len(args) % 2 == 0:
        items = list(zip(args[0::2], args[1::2]))
    else:
        raise InvalidOptions(
            "Invalid optional arguments (neither key-value pairs nor a mapping)"
        )
    items.extend(kwargs.items())

    settings = {}
    for key, val in items:
        if not isinstance(key, str):
            raise InvalidOptions(f"Invalid option key: {key!r}")
        opt = key.lower()
        if opt not in option_names:
            raise InvalidOptions(f"Invalid option: {key}")
        settings[opt] = val

    opts = LogCatOptions(**settings)

    fmt = opts.format
    if isinstance(fmt, enum.Enum):
        fmt = fmt.value
    if isinstance(fmt, str):
        fmt = fmt.lower()

    params = opts.params
    if isinstance(params, str):
        params = "all" if params == "all" else (params,)
    elif isinstance(params, collections.abc.Iterable) and not isinstance(
        params, collections.abc.Mapping
    ):
        params = tuple(params)
        if not all(isinstance(p, str) for p in params):
            raise InvalidOptions(f"Invalid params: {opts.params!r}")
    else:
        raise InvalidOptions(f"Invalid params: {opts.params!r}")

    period = opts.period
    if isinstance(period, (str, bytes)):
        if period != "all":
            raise InvalidOptions(f"Invalid period: {opts.period!r}")
    else:
        try:
            t_min, t_max = period
            period = (float(t_min), float(t_max))
        except (TypeError, ValueError) as exc:
            raise InvalidOptions(f"Invalid period: {opts.period!r}") from exc

    ordering = opts.ordering
    if isinstance(ordering, enum.Enum):
        ordering = ordering.value
    if ordering not in [x.value for x in DiveOrdering]:
        raise InvalidOptions(f"Invalid ordering: {opts.ordering!r}")

    return LogCatOptions(format=fmt, params=params, period=period, ordering=ordering)


#
# Input normalizer
#
def normalize_corpus(records, snapshots=None) -> list[Record]:
    """Canonical list of records, binding the data snapshots (if any) to their records

    Input:
        records - collection of Record (None or empty is fine)
        snapshots - optional collection of per-dive value mappings, parallel to records

    Raises:
        InvalidInputShape
    """
    records = [] if records is None else list(records)
    for rec in records:
        if not isinstance(rec, Record):
            raise InvalidInputShape(f"Not a log record: {type(rec)}")
        if rec.header.mission_number is None or rec.header.dive_number is None:
            raise InvalidInputShape(
                f"Record {rec.source_name} is missing its mission or dive number"
            )

    if snapshots is not None:
        snapshots = list(snapshots)
        if len(snapshots) != len(records):
            raise InvalidInputShape(
                f"{len(records)} records but {len(snapshots)} data snapshots"
            )
        for snapshot in snapshots:
            if not isinstance(snapshot, collections.abc.Mapping):
                raise InvalidInputShape(f"Data snapshot is a {type(snapshot)}")
        records = [
            dataclasses.replace(rec, values=dict(snapshot))
            for rec, snapshot in zip(records, snapshots)
        ]
    return records


#
# Sort/filter
#
def dive_rank(records: list[Record]) -> np.ndarray:
    """Legacy ordering index - dive number offset by the scaled mission number

    The scale is the dive number span of the whole set, so the index orders
    the same as (mission, dive)
    """
    dives = np.array([r.header.dive_number for r in records], dtype=np.int64)
    missions = np.array([r.header.mission_number for r in records], dtype=np.int64)
    return (dives - dives.min()) + (missions - missions.min()) * (
        dives.max() - dives.min() + 1
    )


def dive_order(records: list[Record], ordering=DiveOrdering.lexicographic.value):
    """Indices that sort the records by mission and dive (stable for ties)"""
    if not records:
        return []
    if ordering == DiveOrdering.rank.value:
        return [int(x) for x in np.argsort(dive_rank(records), kind="stable")]
    return sorted(
        range(len(records)),
        key=lambda ii: (
            records[ii].header.mission_number,
            records[ii].header.dive_number,
        ),
    )


def select_dives(records, period="all", ordering=DiveOrdering.lexicographic.value):
    """Indices of the records in dive order, restricted to dives starting in period

    The order is computed over all records, so filtering before or after
    sorting gives the same result
    """
    order = dive_order(records, ordering)
    if isinstance(period, str) and period == "all":
        return order
    t_min, t_max = period
    return [
        ii for ii in order if t_min <= records[ii].start_time_seconds <= t_max
    ]


#
# Schema unifier
#
@dataclasses.dataclass
class UnifiedSchema:
    """The parameters (and their members) seen over a set of dives

    The presence matrices are records x field_names:
        present - the dive has the parameter
        nested - the parameter is held under its own name (not as flattened members)
        struct - the parameter is held as a mapping (not as a matrix)
    member_present/member_indices are records x members, per compound parameter;
    member_indices is the column of the member in the dive's own member order (-1 if absent)
    """

    scalar_fields: list[str]
    compound_fields: dict[str, tuple]
    special_fields: dict[str, tuple]
    present: np.ndarray
    nested: np.ndarray
    struct: np.ndarray
    member_present: dict[str, np.ndarray]
    member_indices: dict[str, np.ndarray]
    scalar_kinds: dict[str, ColumnKind]
    member_kinds: dict[str, tuple]
    # Per compound parameter, each dive's values as a lines x own-members array
    resolved: dict[str, list] = dataclasses.field(
        default_factory=dict, repr=False, compare=False
    )

    @classmethod
    def empty(cls, num_records=0):
        return cls(
            [],
            {},
            {},
            np.zeros((num_records, 0), dtype=bool),
            np.zeros((num_records, 0), dtype=bool),
            np.zeros((num_records, 0), dtype=bool),
            {},
            {},
            {},
            {},
        )

    @property
    def field_names(self) -> list[str]:
        return (
            list(self.scalar_fields)
            + list(self.compound_fields)
            + list(self.special_fields)
        )

    @property
    def record_count(self) -> int:
        return self.present.shape[0]

    def members(self, field):
        """Members of a compound or special parameter (empty for scalars)"""
        if field in self.compound_fields:
            return self.compound_fields[field]
        return self.special_fields.get(field, ())

    def field_index(self, field) -> int:
        return self.field_names.index(field)


def _scalar_value(value):
    """Unwraps 0-d arrays"""
    if isinstance(value, np.ndarray) and value.ndim == 0:
        return value.item()
    return value


def _value_kind(values):
    """Kind of the first value that is not None"""
    for value in values:
        value = _scalar_value(value)
        if value is None:
            continue
        return ColumnKind.number if Utils.is_number(value) else ColumnKind.text
    return ColumnKind.number


def _adopt_members(rec, compound, field, members, rec_scalars):
    """Folds single values named field_member into the record's compound"""
    adopted = {
        m: rec_scalars[flat_name(field, m)]
        for m in members
        if flat_name(field, m) in rec_scalars
    }
    if not adopted:
        return compound
    if compound is None:
        return Flattened(tuple(adopted), adopted)
    if isinstance(compound, Flattened):
        return Flattened(
            compound.members + tuple(adopted), {**compound.values, **adopted}
        )
    log_warning(
        f"{', '.join(flat_name(field, m) for m in adopted)} ignored in {rec.source_name} - {field} already has these members",
        max_count=5,
    )
    return compound


def unify_schema(records: list[Record], params="all") -> UnifiedSchema:
    """Computes the unified schema of a set of (sorted) records

    Input:
        records - records in their final order
        params - "all" or a collection of parameter names and parameter_member names

    Returns:
        UnifiedSchema
    """
    num_records = len(records)
    if num_records == 0:
        return UnifiedSchema.empty()

    # Pass over all dives to collect the names, in order of first appearance
    compound_members = {}
    scalar_names = {}
    record_scalars = []
    for rec in records:
        for field, members in rec.params.items():
            if not members:
                continue
            known = compound_members.setdefault(field, {})
            for member in members:
                known[member] = None
        rec_scalars = rec.scalars
        record_scalars.append(rec_scalars)
        for name in rec_scalars:
            scalar_names[name] = None

    for name in [x for x in scalar_names if x in compound_members]:
        log_warning(
            f"{name} is a parameter with members in some dives and a single value in others - single values ignored",
            max_count=-1,
        )
        del scalar_names[name]

    # Single values named like a member of a parameter are taken as that member
    claimed = {
        flat_name(field, member): field
        for field, members in compound_members.items()
        for member in members
    }
    for name in [x for x in scalar_names if x in claimed]:
        log_warning(
            f"{name} is a single value in some dives and a member of {claimed[name]} in others - merged as a member",
            max_count=-1,
        )
        del scalar_names[name]

    scalar_fields = list(scalar_names)
    compound_fields = {k: tuple(v) for k, v in compound_members.items()}

    if not (isinstance(params, str) and params == "all"):
        allowed = set(params)
        matched = set()
        scalar_fields = [x for x in scalar_fields if x in allowed]
        matched.update(scalar_fields)
        filtered = {}
        for field, members in compound_fields.items():
            if field in allowed:
                filtered[field] = members
                matched.add(field)
                continue
            kept = tuple(m for m in members if flat_name(field, m) in allowed)
            matched.update(flat_name(field, m) for m in kept)
            if kept:
                filtered[field] = kept
        compound_fields = filtered
        for name in sorted(allowed - matched):
            log_debug(f"Requested parameter {name} not found in any dive")

    special_fields = {
        k: v for k, v in compound_fields.items() if k in Globals.special_fields
    }
    compound_fields = {
        k: v for k, v in compound_fields.items() if k not in Globals.special_fields
    }

    schema = UnifiedSchema.empty(num_records)
    schema.scalar_fields = scalar_fields
    schema.compound_fields = compound_fields
    schema.special_fields = special_fields
    field_names = schema.field_names
    num_fields = len(field_names)
    schema.present = np.zeros((num_records, num_fields), dtype=bool)
    schema.nested = np.zeros((num_records, num_fields), dtype=bool)
    schema.struct = np.zeros((num_records, num_fields), dtype=bool)

    for jj, field in enumerate(scalar_fields):
        for ii, rec_scalars in enumerate(record_scalars):
            if field in rec_scalars:
                schema.present[ii, jj] = True
                schema.nested[ii, jj] = True
        schema.scalar_kinds[field] = _value_kind(
            rec_scalars[field] for rec_scalars in record_scalars if field in rec_scalars
        )

    for jj, field in enumerate(field_names[len(scalar_fields) :], len(scalar_fields)):
        members = schema.members(field)
        member_present = np.zeros((num_records, len(members)), dtype=bool)
        member_indices = np.full((num_records, len(members)), -1, dtype=np.int64)
        resolved = [None] * num_records
        for ii, rec in enumerate(records):
            compound = _adopt_members(
                rec, classify(rec, field), field, members, record_scalars[ii]
            )
            if compound is None:
                continue
            schema.present[ii, jj] = True
            schema.nested[ii, jj] = not isinstance(compound, Flattened)
            schema.struct[ii, jj] = isinstance(compound, Nested)
            resolved[ii] = to_local_matrix(compound)
            for kk, member in enumerate(members):
                if member not in compound.members:
                    continue
                if (
                    isinstance(compound, (Nested, Flattened))
                    and member not in compound.values
                ):
                    continue
                member_present[ii, kk] = True
                member_indices[ii, kk] = compound.members.index(member)

        kinds = []
        for kk in range(len(members)):
            kinds.append(
                _value_kind(
                    value
                    for ii in np.flatnonzero(member_present[:, kk])
                    for value in resolved[ii][:, member_indices[ii, kk]]
                )
            )
        schema.member_present[field] = member_present
        schema.member_indices[field] = member_indices
        schema.member_kinds[field] = tuple(kinds)
        schema.resolved[field] = resolved

    return schema


#
# Mergers
#
def _coerce(value, kind: ColumnKind, name: str):
    """A value converted to the kind of its column - the sentinel if that is not possible"""
    value = _scalar_value(value)
    if value is None:
        return kind.sentinel
    if kind is ColumnKind.number:
        if Utils.is_number(value):
            return float(value)
        if isinstance(value, str) and Utils.is_float(value):
            return float(value)
        log_warning(
            f"Non-numeric value {value!r} in numeric column {name} - using NaN",
            max_count=5,
        )
        return kind.sentinel
    if isinstance(value, bytes):
        return value.decode(errors="replace")
    if isinstance(value, str):
        return value
    if Utils.is_number(value):
        return str(value)
    log_warning(
        f"Unexpected value {value!r} in text column {name} - using ''", max_count=5
    )
    return kind.sentinel


def new_column(kind: ColumnKind, num_rows: int) -> np.ndarray:
    """Column pre-filled with the sentinel of its kind"""
    if kind is ColumnKind.number:
        return np.full(num_rows, np.nan)
    return np.full(num_rows, "", dtype=object)


def new_table(kinds, num_rows: int) -> np.ndarray:
    """Table pre-filled with the sentinels of its columns

    All numeric tables are float64, anything else an object array
    """
    if all(k is ColumnKind.number for k in kinds):
        return np.full((num_rows, len(kinds)), np.nan)
    table = np.empty((num_rows, len(kinds)), dtype=object)
    for kk, kind in enumerate(kinds):
        table[:, kk] = kind.sentinel
    return table


def merge_scalars(records: list[Record], schema: UnifiedSchema) -> dict:
    """One column per single valued parameter"""
    scalars = {}
    for jj, field in enumerate(schema.scalar_fields):
        kind = schema.scalar_kinds[field]
        column = new_column(kind, len(records))
        for ii in np.flatnonzero(schema.present[:, jj]):
            column[ii] = _coerce(records[ii].values[field], kind, field)
        scalars[field] = column
    return scalars


def merge_compounds(records: list[Record], schema: UnifiedSchema) -> dict:
    """One records x members table per parameter with members"""
    compounds = {}
    for field, members in schema.compound_fields.items():
        kinds = schema.member_kinds[field]
        table = new_table(kinds, len(records))
        member_indices = schema.member_indices[field]
        for ii, local in enumerate(schema.resolved[field]):
            if local is None or local.shape[0] == 0:
                continue
            if local.shape[0] > 1:
                log_warning(
                    f"{field} has {local.shape[0]} lines in {records[ii].source_name} - using the first",
                    max_count=5,
                )
            for kk in np.flatnonzero(member_indices[ii] >= 0):
                table[ii, kk] = _coerce(
                    local[0, member_indices[ii, kk]],
                    kinds[kk],
                    flat_name(field, members[kk]),
                )
        compounds[field] = table
    return compounds


def merge_special_blocks(records: list[Record], schema: UnifiedSchema):
    """Concatenates the multi-line parameters over all dives

    The time member of each line is moved from the start of its own dive to the
    start of the first dive.

    Returns:
        tuple(special_blocks, special_block_dives)
        special_blocks - parameter -> lines x members table
        special_block_dives - parameter -> index of the dive each line came from
    """
    special_blocks = {}
    special_block_dives = {}
    if not records:
        return (special_blocks, special_block_dives)

    start_times = np.array([r.start_time_seconds for r in records], dtype=np.float64)
    dive_start_offsets = start_times - np.min(start_times)

    for field, members in schema.special_fields.items():
        kinds = schema.member_kinds[field]
        member_indices = schema.member_indices[field]
        time_kk = None
        if Globals.special_time_member in members:
            time_kk = members.index(Globals.special_time_member)
            if kinds[time_kk] is not ColumnKind.number:
                log_warning(
                    f"{flat_name(field, Globals.special_time_member)} is not numeric - times not adjusted"
                )
                time_kk = None

        blocks = []
        dives = []
        for ii, local in enumerate(schema.resolved[field]):
            if local is None or local.shape[0] == 0:
                continue
            num_lines = local.shape[0]
            block = new_table(kinds, num_lines)
            for kk in np.flatnonzero(member_indices[ii] >= 0):
                name = flat_name(field, members[kk])
                for ll in range(num_lines):
                    block[ll, kk] = _coerce(
                        local[ll, member_indices[ii, kk]], kinds[kk], name
                    )
            if time_kk is not None:
                block[:, time_kk] = (
                    block[:, time_kk].astype(np.float64) + dive_start_offsets[ii]
                )
            blocks.append(block)
            dives.extend([ii] * num_lines)

        if blocks:
            special_blocks[field] = np.concatenate(blocks, axis=0)
        else:
            special_blocks[field] = new_table(kinds, 0)
        special_block_dives[field] = np.array(dives, dtype=np.int64)

    return (special_blocks, special_block_dives)


#
# Output formats
#
def _table_to_struct(table: np.ndarray, members, kinds) -> np.ndarray:
    """Rows of a table as a record array keyed by member name"""
    dtype = [
        (member, np.float64 if kind is ColumnKind.number else object)
        for member, kind in zip(members, kinds)
    ]
    rec = np.empty(table.shape[0], dtype=dtype)
    for kk, member in enumerate(members):
        rec[member] = table[:, kk]
    return rec


def _struct_to_table(rec: np.ndarray) -> np.ndarray:
    names = rec.dtype.names
    if all(rec.dtype[n] == np.float64 for n in names):
        table = np.full((rec.shape[0], len(names)), np.nan)
    else:
        table = np.empty((rec.shape[0], len(names)), dtype=object)
    for kk, name in enumerate(names):
        table[:, kk] = rec[name]
    return table


def format_data(dataset, fmt=OutputFormat.array.value) -> dict:
    """Lays out the merged columns and tables of a data set in one of the output formats

    Input:
        dataset - MergedDataset (its scalars, compounds and special_blocks are used)
        fmt - one of:
            array  - parameters with members are records x members tables
            merged - each member is a separate column named parameter_member;
                     there is no way back to the grouped layout from this one
            struct - parameters with members are record arrays keyed by member name

    Returns:
        dictionary of parameter name -> values

    Raises:
        InvalidOutputFormat
    """
    if isinstance(fmt, enum.Enum):
        fmt = fmt.value
    if fmt not in [x.value for x in OutputFormat]:
        raise InvalidOutputFormat(f"Invalid output format: {fmt}")

    grouped = {**dataset.compounds, **dataset.special_blocks}
    data = {k: v.copy() for k, v in dataset.scalars.items()}

    if fmt == OutputFormat.array.value:
        data.update({k: v.copy() for k, v in grouped.items()})
    elif fmt == OutputFormat.merged.value:
        for field, table in grouped.items():
            kinds = dataset.schema.member_kinds[field]
            for kk, member in enumerate(dataset.schema.members(field)):
                column = table[:, kk].copy()
                if column.dtype == object and kinds[kk] is ColumnKind.number:
                    column = column.astype(np.float64)
                data[flat_name(field, member)] = column
    else:
        for field, table in grouped.items():
            data[field] = _table_to_struct(
                table, dataset.schema.members(field), dataset.schema.member_kinds[field]
            )
    return data


def struct_to_array(data: dict) -> dict:
    """Converts struct formatted data back to the array format"""
    ret = {}
    for name, value in data.items():
        if isinstance(value, np.ndarray) and value.dtype.names:
            ret[name] = _struct_to_table(value)
        else:
            ret[name] = value
    return ret


#
# The data set
#
@dataclasses.dataclass
class MergedDataset:
    """The combined contents of a set of dive log records"""

    headers: list[Header]
    sources: list[str]
    devices: list[tuple]
    sensors: list[tuple]
    gc_heads: list[tuple]
    start_times: np.ndarray
    mission_start_time: float | None
    schema: UnifiedSchema
    scalars: dict[str, np.ndarray]
    compounds: dict[str, np.ndarray]
    special_blocks: dict[str, np.ndarray]
    special_block_dives: dict[str, np.ndarray]
    format: str = OutputFormat.array.value
    data: dict[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def record_count(self) -> int:
        return len(self.headers)

    @property
    def params(self) -> dict[str, tuple]:
        """Member names of each parameter with members"""
        return {**self.schema.compound_fields, **self.schema.special_fields}

    def dump(self, fo=sys.stdout):
        """Prints a summary of the data set"""
        print("dives: %d" % self.record_count, file=fo)
        print("start: %s" % Utils.format_time(self.mission_start_time), file=fo)
        print("format: %s" % self.format, file=fo)
        for header in self.headers:
            print(
                "  mission %d dive %d glider %s start %s"
                % (
                    header.mission_number,
                    header.dive_number,
                    header.glider_id,
                    Utils.format_time(header.start_time),
                ),
                file=fo,
            )
        print("scalars: %s" % ",".join(self.schema.scalar_fields), file=fo)
        for field, members in self.schema.compound_fields.items():
            print("%s: %s" % (field, ",".join(members)), file=fo)
        for field, members in self.schema.special_fields.items():
            print(
                "%s (%d lines): %s"
                % (field, self.special_blocks[field].shape[0], ",".join(members)),
                file=fo,
            )

    def to_xarray(self) -> xr.Dataset:
        """The data set as an (in memory) xarray Dataset"""
        dive_dim = "dive"
        data_vars = {
            "mission": (
                dive_dim,
                np.array([h.mission_number for h in self.headers], dtype=np.int64),
            ),
            "dive_number": (
                dive_dim,
                np.array([h.dive_number for h in self.headers], dtype=np.int64),
            ),
            "glider": (
                dive_dim,
                np.array([h.glider_id for h in self.headers], dtype=object),
            ),
            "start_time": (dive_dim, np.asarray(self.start_times, dtype=np.float64)),
            "source": (dive_dim, np.array(self.sources, dtype=object)),
        }
        coords = {dive_dim: np.arange(self.record_count)}

        def add_var(name, value):
            if name in data_vars or name in coords:
                log_warning(f"Duplicate variable {name} - skipping")
                return
            data_vars[name] = value

        for name, column in self.scalars.items():
            add_var(name, (dive_dim, column))
        for field, table in self.compounds.items():
            member_dim = f"{field}_member"
            coords[member_dim] = list(self.schema.compound_fields[field])
            add_var(field, ((dive_dim, member_dim), table))
        for field, table in self.special_blocks.items():
            member_dim = f"{field}_member"
            row_dim = f"{field}_row"
            coords[member_dim] = list(self.schema.special_fields[field])
            add_var(field, ((row_dim, member_dim), table))
            add_var(f"{field}_dive", (row_dim, self.special_block_dives[field]))

        attrs = {"logcat_version": Globals.logcat_version}
        if self.mission_start_time is not None:
            attrs["mission_start_time"] = self.mission_start_time
        return xr.Dataset(data_vars=data_vars, coords=coords, attrs=attrs)


def merge(records, *options, snapshots=None, **kw_options) -> MergedDataset:
    """Combines a set of per-dive log records into a single data set

    Input:
        records - collection of LogRecord.Record (possibly empty)
        options - a single mapping (or LogCatOptions), or alternating key, value pairs
        snapshots - optional per-dive value mappings, replacing the values of the
                    record at the same position
        kw_options - options as keywords:
            format - "array" (default), "merged" or "struct"
            params - "all" (default) or list of parameter and parameter_member names
            period - "all" (default) or (t_min, t_max) - inclusive bounds on the dive start time
            ordering - "lexicographic" (default) or "rank"

    Returns:
        MergedDataset

    Raises:
        InvalidOptions, InvalidInputShape, InvalidOutputFormat
    """
    opts = parse_options(*options, **kw_options)
    corpus = normalize_corpus(records, snapshots)

    selected = select_dives(corpus, opts.period, opts.ordering)
    log_info(f"{len(selected)} of {len(corpus)} dives selected")
    dive_records = [corpus[ii] for ii in selected]

    schema = unify_schema(dive_records, opts.params)
    log_debug(
        f"{len(schema.scalar_fields)} scalar, {len(schema.compound_fields)} compound, "
        f"{len(schema.special_fields)} multi-line parameters"
    )

    start_times = np.array(
        [r.start_time_seconds for r in dive_records], dtype=np.float64
    )
    special_blocks, special_block_dives = merge_special_blocks(dive_records, schema)
    dataset = MergedDataset(
        headers=[r.header for r in dive_records],
        sources=[r.source_name for r in dive_records],
        devices=[tuple(r.devices) for r in dive_records],
        sensors=[tuple(r.sensors) for r in dive_records],
        gc_heads=[tuple(r.gc_head) for r in dive_records],
        start_times=start_times,
        mission_start_time=float(np.min(start_times)) if dive_records else None,
        schema=schema,
        scalars=merge_scalars(dive_records, schema),
        compounds=merge_compounds(dive_records, schema),
        special_blocks=special_blocks,
        special_block_dives=special_block_dives,
    )
    dataset.data = format_data(dataset, opts.format)
    dataset.format = opts.format
    return dataset


def main(cmdline_args: list[str] | None = None) -> int:
    """Command line driver for combining Seaglider log files

    Returns:
        0 - success
        1 - failure
    """
    base_opts = BaseOpts.BaseOptions(
        "Command line driver for combining Seaglider log files",
        alt_cmdline=cmdline_args,
        calling_module="LogCat",
    )
    BaseLogger(base_opts)  # initializes BaseLog

    Utils.check_versions()

    log_info(
        "Started processing "
        + time.strftime("%H:%M:%S %d %b %Y %Z", time.gmtime(time.time()))
    )

    settings = {
        "format": base_opts.format,
        "params": base_opts.params,
        "period": base_opts.period,
        "ordering": base_opts.ordering,
    }
    settings.update(Utils.load_logcat_cfg(base_opts.params_file))

    log_file_names = base_opts.log_files
    if not log_file_names and base_opts.mission_dir:
        log_file_names = LogFile.collect_log_files(base_opts.mission_dir)
    if not log_file_names:
        log_error("No log files to process")
        return 1

    records = []
    for log_file_name in log_file_names:
        record = LogFile.parse_log_file(log_file_name)
        if record is None:
            log_warning(f"Could not process {log_file_name} - skipping")
            continue
        records.append(record)

    if not records:
        log_error("None of the log files could be processed")
        return 1

    try:
        dataset = merge(records, settings)
    except LogCatError:
        log_error("Could not combine log files", "exc")
        return 1

    dataset.dump(sys.stdout)

    log_info(
        "Finished processing "
        + time.strftime("%H:%M:%S %d %b %Y %Z", time.gmtime(time.time()))
    )
    return 0


if __name__ == "__main__":
    retval = 1

    # Force to be in UTC
    os.environ["TZ"] = "UTC"
    time.tzset()

    try:
        retval = main()
    except SystemExit:
        pass
    except Exception:
        if DEBUG_PDB:
            _, _, tb = sys.exc_info()
            traceback.print_exc()
            pdb.post_mortem(tb)
        log_critical("Unhandled exception in main -- exiting")

    sys.exit(retval)
