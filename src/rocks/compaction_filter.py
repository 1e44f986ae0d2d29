# Copyright 2025 Sushanth (https://github.com/sushanthpy)
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Compaction filters.

A filter sees every key/value pair rewritten by a compaction and decides
whether to keep it, drop it, rewrite its value, or drop everything up to a
bound.

Example:
    class DropDead(rocks.CompactionFilter, rocks.Shareable):
        def name(self):
            return "drop-dead"

        def filter(self, level, key, value_type, existing_value):
            if existing_value == b"DEAD":
                return rocks.Decision.REMOVE
            return rocks.Decision.KEEP

A filter registered directly with :meth:`Options.set_compaction_filter` is
shared by concurrent compactions and must mix in :class:`~rocks.Shareable`.
Use a :class:`CompactionFilterFactory` to get one filter per compaction.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Optional

from ._ffi import (
    CREATE_FILTER_FN,
    FILTER_FN,
    FLAG_FN,
    CompactionFilterFactoryVTable,
    CompactionFilterVTable,
    _FFI,
)
from .registry import DROP, NAME, box, guarded
from .slice import as_bytes, assign, view


class ValueType(IntEnum):
    VALUE = 0
    MERGE_OPERAND = 1
    BLOB_INDEX = 2


class DecisionKind(IntEnum):
    KEEP = 0
    REMOVE = 1
    CHANGE_VALUE = 2
    REMOVE_AND_SKIP_UNTIL = 3


@dataclass(frozen=True)
class Decision:
    """
    Result of :meth:`CompactionFilter.filter`.

    ``payload`` is the new value for ``CHANGE_VALUE`` and the exclusive
    upper bound for ``REMOVE_AND_SKIP_UNTIL``. A skip bound that does not
    sort after the current key is treated as ``KEEP`` by the engine.
    """
    kind: DecisionKind
    payload: Optional[bytes] = None

    KEEP: ClassVar["Decision"]
    REMOVE: ClassVar["Decision"]

    @classmethod
    def change_value(cls, new_value: bytes) -> "Decision":
        return cls(DecisionKind.CHANGE_VALUE, as_bytes(new_value, "new_value"))

    @classmethod
    def remove_and_skip_until(cls, until: bytes) -> "Decision":
        return cls(DecisionKind.REMOVE_AND_SKIP_UNTIL, as_bytes(until, "until"))


Decision.KEEP = Decision(DecisionKind.KEEP)
Decision.REMOVE = Decision(DecisionKind.REMOVE)


@dataclass(frozen=True)
class CompactionFilterContext:
    is_full_compaction: bool
    is_manual_compaction: bool
    column_family_id: int


class CompactionFilter(ABC):

    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def filter(
        self, level: int, key: bytes, value_type: ValueType, existing_value: bytes
    ) -> Decision:
        pass

    def ignore_snapshots(self) -> bool:
        return True


class CompactionFilterFactory(ABC):
    """Creates a fresh :class:`CompactionFilter` for each compaction."""

    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def create_compaction_filter(
        self, context: CompactionFilterContext
    ) -> Optional[CompactionFilter]:
        """Return a filter, or None to run this compaction unfiltered."""
        pass


def _value_type(raw: int):
    try:
        return ValueType(raw)
    except ValueError:
        return raw


@guarded(int(DecisionKind.KEEP))
def _filter(flt, level, key, key_len, value_type, value, value_len, new_value, skip_until):
    decision = flt.filter(level, view(key, key_len), _value_type(value_type), view(value, value_len))
    if decision is None:
        decision = Decision.KEEP
    elif isinstance(decision, DecisionKind):
        decision = Decision(decision)
    elif not isinstance(decision, Decision):
        raise TypeError(f"filter() must return a Decision, not {type(decision).__name__}")

    if decision.kind == DecisionKind.CHANGE_VALUE:
        assign(_FFI.get_lib(), new_value, decision.payload)
    elif decision.kind == DecisionKind.REMOVE_AND_SKIP_UNTIL:
        assign(_FFI.get_lib(), skip_until, decision.payload)
    return int(decision.kind)


@guarded(0)
def _ignore_snapshots(flt):
    return 1 if flt.ignore_snapshots() else 0


@guarded(None)
def _create_compaction_filter(factory, is_full, is_manual, cf_id):
    context = CompactionFilterContext(
        is_full_compaction=bool(is_full),
        is_manual_compaction=bool(is_manual),
        column_family_id=cf_id,
    )
    flt = factory.create_compaction_filter(context)
    if flt is None:
        return None
    return box(flt, CompactionFilter)


VTABLE = CompactionFilterVTable(
    name=NAME,
    filter=FILTER_FN(_filter),
    ignore_snapshots=FLAG_FN(_ignore_snapshots),
    drop=DROP,
)

FACTORY_VTABLE = CompactionFilterFactoryVTable(
    name=NAME,
    create_compaction_filter=CREATE_FILTER_FN(_create_compaction_filter),
    drop=DROP,
)
