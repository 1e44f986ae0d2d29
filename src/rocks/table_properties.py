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
Table properties collectors.

A collector observes every entry written into one table file and contributes
user properties that are stored in the file footer. The engine creates one
collector per file through a :class:`TablePropertiesCollectorFactory`.
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Dict, Union

from ._ffi import (
    ADD_USER_KEY_FN,
    CREATE_COLLECTOR_FN,
    FINISH_FN,
    FLAG_FN,
    TablePropertiesCollectorFactoryVTable,
    TablePropertiesCollectorVTable,
    _FFI,
)
from .registry import DROP, NAME, box, guarded
from .slice import BytesLike, as_bytes, view


class EntryType(IntEnum):
    PUT = 0
    DELETE = 1
    SINGLE_DELETE = 2
    MERGE = 3
    RANGE_DELETION = 4
    BLOB_INDEX = 5
    OTHER = 6


class UserCollectedProperties:
    """Insert-only property map of the table being finished.

    Entries are written to the table only if ``finish`` returns normally.
    """

    def __init__(self):
        self._entries: Dict[bytes, bytes] = {}

    def insert(self, key: Union[str, BytesLike], value: Union[str, BytesLike]) -> None:
        key = as_bytes(key.encode("utf-8") if isinstance(key, str) else key, "key")
        value = as_bytes(value.encode("utf-8") if isinstance(value, str) else value, "value")
        self._entries[key] = value

    __setitem__ = insert

    def items(self):
        return self._entries.items()

    def __len__(self) -> int:
        return len(self._entries)

    def _write(self, lib, props: int) -> None:
        for key, value in self._entries.items():
            lib.rocks_user_collected_props_insert(props, key, len(key), value, len(value))


class TablePropertiesCollector(ABC):

    @abstractmethod
    def name(self) -> str:
        pass

    def add_user_key(
        self, key: bytes, value: bytes, entry_type: EntryType, sequence: int, file_size: int
    ) -> None:
        pass

    @abstractmethod
    def finish(self, properties: UserCollectedProperties) -> None:
        pass

    def need_compact(self) -> bool:
        return False


class TablePropertiesCollectorFactory(ABC):

    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def create_table_properties_collector(self, column_family_id: int) -> TablePropertiesCollector:
        pass


def _entry_type(raw):
    try:
        return EntryType(raw)
    except ValueError:
        return raw


@guarded(None)
def _add_user_key(collector, key, key_len, value, value_len, entry_type, sequence, file_size):
    collector.add_user_key(
        view(key, key_len), view(value, value_len), _entry_type(entry_type), sequence, file_size
    )


@guarded(None)
def _finish(collector, props):
    properties = UserCollectedProperties()
    collector.finish(properties)
    properties._write(_FFI.get_lib(), props)


@guarded(0)
def _need_compact(collector):
    return 1 if collector.need_compact() else 0


@guarded(None)
def _create_collector(factory, cf_id):
    collector = factory.create_table_properties_collector(cf_id)
    if collector is None:
        return None
    return box(collector, TablePropertiesCollector)


VTABLE = TablePropertiesCollectorVTable(
    name=NAME,
    add_user_key=ADD_USER_KEY_FN(_add_user_key),
    finish=FINISH_FN(_finish),
    need_compact=FLAG_FN(_need_compact),
    drop=DROP,
)

FACTORY_VTABLE = TablePropertiesCollectorFactoryVTable(
    name=NAME,
    create_table_properties_collector=CREATE_COLLECTOR_FN(_create_collector),
    drop=DROP,
)
