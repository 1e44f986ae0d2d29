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
WAL replay filtering.

During recovery the engine hands every write-ahead-log record to the
registered :class:`WalFilter`, which may let it through, skip it, stop the
replay, report it as corrupted, or substitute a different batch.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Union

from ._ffi import CF_LOG_MAP_FN, LOG_RECORD_FN, WalFilterVTable, _FFI
from .errors import invoke
from .registry import DROP, NAME, guarded
from .slice import view
from .write_batch import WriteBatch


class WalProcessingOption(IntEnum):
    CONTINUE = 0
    IGNORE_CURRENT_RECORD = 1
    STOP_REPLAY = 2
    CORRUPTED_RECORD = 3


@dataclass(frozen=True)
class ChangeBatch:
    """Continue replay with ``batch`` in place of the current record."""
    batch: WriteBatch


def continue_and_change_batch(batch: WriteBatch) -> ChangeBatch:
    if not isinstance(batch, WriteBatch):
        raise TypeError(f"expected a WriteBatch, not {type(batch).__name__}")
    return ChangeBatch(batch)


WalRecordResult = Union[WalProcessingOption, ChangeBatch]


class WalFilter(ABC):

    @abstractmethod
    def name(self) -> str:
        pass

    def column_family_log_number_map(
        self, cf_lognumber: Dict[int, int], cf_name_id: Dict[str, int]
    ) -> None:
        """Called once before replay with the log number each column family starts at."""
        pass

    @abstractmethod
    def log_record_found(
        self, log_number: int, log_file_name: str, batch: WriteBatch
    ) -> WalRecordResult:
        """
        Decide what to do with one WAL record.

        Args:
            log_number: Number of the log file being replayed.
            log_file_name: Path of that log file.
            batch: The record, borrowed for this call only.

        Returns:
            A WalProcessingOption, or ``continue_and_change_batch(new_batch)``.
        """
        pass


@guarded(None)
def _column_family_log_number_map(wal_filter, cf_ids, log_numbers, n, names, name_lens, name_ids, m):
    cf_lognumber = {cf_ids[i]: log_numbers[i] for i in range(n)}
    cf_name_id = {
        view(names[i], name_lens[i]).decode("utf-8", errors="replace"): name_ids[i]
        for i in range(m)
    }
    wal_filter.column_family_log_number_map(cf_lognumber, cf_name_id)


@guarded(int(WalProcessingOption.CONTINUE))
def _log_record_found(wal_filter, log_number, file_name, file_name_len, batch, new_batch, changed):
    record = WriteBatch.borrowed(batch)
    try:
        result = wal_filter.log_record_found(
            log_number, view(file_name, file_name_len).decode("utf-8", errors="replace"), record
        )
    finally:
        record.close()

    if isinstance(result, ChangeBatch):
        invoke(_FFI.get_lib().rocks_writebatch_append, new_batch, result.batch.raw())
        changed[0] = 1
        return int(WalProcessingOption.CONTINUE)
    if result is None:
        return int(WalProcessingOption.CONTINUE)
    return int(WalProcessingOption(result))


VTABLE = WalFilterVTable(
    name=NAME,
    column_family_log_number_map=CF_LOG_MAP_FN(_column_family_log_number_map),
    log_record_found=LOG_RECORD_FN(_log_record_found),
    drop=DROP,
)
