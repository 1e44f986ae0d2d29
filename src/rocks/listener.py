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
Engine event listeners.

Callbacks run on the engine thread that performs the work (the background
flush thread calls ``on_flush_completed``, and so on) without any database
mutex held. They should return quickly; issuing writes from inside a callback
can block the engine.

Info arguments are frozen snapshots copied out of the native structures, so
they stay valid after the callback returns. Exceptions raised by a listener
are logged and otherwise ignored.

Example:
    class FlushLogger(rocks.EventListener):
        def on_flush_completed(self, info):
            print("flushed", info.cf_name, info.file_path)

    opts.add_listener(FlushLogger())
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple

from ._ffi import (
    BACKGROUND_ERROR_FN,
    CF_HANDLE_DELETION_FN,
    COMPACTION_JOB_FN,
    FILE_INGESTED_FN,
    FLUSH_JOB_FN,
    GET_COMPACTION_LISTENER_FN,
    MEMTABLE_SEALED_FN,
    ON_COMPACTION_FN,
    STALL_CHANGED_FN,
    TABLE_FILE_CREATED_FN,
    TABLE_FILE_DELETED_FN,
    CompactionEventListenerVTable,
    EventListenerVTable,
)
from .compaction_filter import ValueType
from .errors import Status
from .registry import DROP, box, guarded
from .slice import view, view_array


class FlushReason(IntEnum):
    OTHERS = 0
    GET_LIVE_FILES = 1
    SHUTDOWN = 2
    EXTERNAL_FILE_INGESTION = 3
    MANUAL_COMPACTION = 4
    WRITE_BUFFER_MANAGER = 5
    WRITE_BUFFER_FULL = 6
    TEST = 7
    DELETE_FILES = 8
    AUTO_COMPACTION = 9
    MANUAL_FLUSH = 10
    ERROR_RECOVERY = 11


class CompactionReason(IntEnum):
    UNKNOWN = 0
    LEVEL_L0_FILES_NUM = 1
    LEVEL_MAX_LEVEL_SIZE = 2
    UNIVERSAL_SIZE_AMPLIFICATION = 3
    UNIVERSAL_SIZE_RATIO = 4
    UNIVERSAL_SORTED_RUN_NUM = 5
    FIFO_MAX_SIZE = 6
    FIFO_REDUCE_NUM_FILES = 7
    FIFO_TTL = 8
    MANUAL_COMPACTION = 9
    FILES_MARKED_FOR_COMPACTION = 10
    BOTTOMMOST_FILES = 11
    TTL = 12
    FLUSH = 13
    EXTERNAL_SST_INGESTION = 14


class TableFileCreationReason(IntEnum):
    FLUSH = 0
    COMPACTION = 1
    RECOVERY = 2
    MISC = 3


class BackgroundErrorReason(IntEnum):
    FLUSH = 0
    COMPACTION = 1
    WRITE_CALLBACK = 2
    MEMTABLE = 3


class WriteStallCondition(IntEnum):
    NORMAL = 0
    DELAYED = 1
    STOPPED = 2


def _enum(enum_type, value):
    try:
        return enum_type(value)
    except ValueError:
        return value


def _text(ptr, size) -> str:
    return view(ptr, size).decode("utf-8", errors="replace")


@dataclass(frozen=True)
class FlushJobInfo:
    cf_id: int
    cf_name: str
    file_path: str
    thread_id: int
    job_id: int
    triggered_writes_slowdown: bool
    triggered_writes_stop: bool
    smallest_seqno: int
    largest_seqno: int
    flush_reason: FlushReason

    @classmethod
    def from_c(cls, c) -> "FlushJobInfo":
        return cls(
            cf_id=c.cf_id,
            cf_name=_text(c.cf_name, c.cf_name_len),
            file_path=_text(c.file_path, c.file_path_len),
            thread_id=c.thread_id,
            job_id=c.job_id,
            triggered_writes_slowdown=bool(c.triggered_writes_slowdown),
            triggered_writes_stop=bool(c.triggered_writes_stop),
            smallest_seqno=c.smallest_seqno,
            largest_seqno=c.largest_seqno,
            flush_reason=_enum(FlushReason, c.flush_reason),
        )


@dataclass(frozen=True)
class CompactionJobInfo:
    cf_id: int
    cf_name: str
    status: Optional[Status]
    thread_id: int
    job_id: int
    base_input_level: int
    output_level: int
    input_files: Tuple[str, ...]
    output_files: Tuple[str, ...]
    compaction_reason: CompactionReason

    @classmethod
    def from_c(cls, c) -> "CompactionJobInfo":
        inputs = view_array(c.input_files, c.input_file_lens, c.num_input_files)
        outputs = view_array(c.output_files, c.output_file_lens, c.num_output_files)
        return cls(
            cf_id=c.cf_id,
            cf_name=_text(c.cf_name, c.cf_name_len),
            status=Status.from_native(c.status, owned=False),
            thread_id=c.thread_id,
            job_id=c.job_id,
            base_input_level=c.base_input_level,
            output_level=c.output_level,
            input_files=tuple(p.decode("utf-8", errors="replace") for p in inputs),
            output_files=tuple(p.decode("utf-8", errors="replace") for p in outputs),
            compaction_reason=_enum(CompactionReason, c.compaction_reason),
        )


@dataclass(frozen=True)
class TableFileCreationInfo:
    db_name: str
    cf_name: str
    file_path: str
    file_size: int
    job_id: int
    reason: TableFileCreationReason
    status: Optional[Status]

    @classmethod
    def from_c(cls, c) -> "TableFileCreationInfo":
        return cls(
            db_name=_text(c.db_name, c.db_name_len),
            cf_name=_text(c.cf_name, c.cf_name_len),
            file_path=_text(c.file_path, c.file_path_len),
            file_size=c.file_size,
            job_id=c.job_id,
            reason=_enum(TableFileCreationReason, c.reason),
            status=Status.from_native(c.status, owned=False),
        )


@dataclass(frozen=True)
class TableFileDeletionInfo:
    db_name: str
    file_path: str
    job_id: int
    status: Optional[Status]

    @classmethod
    def from_c(cls, c) -> "TableFileDeletionInfo":
        return cls(
            db_name=_text(c.db_name, c.db_name_len),
            file_path=_text(c.file_path, c.file_path_len),
            job_id=c.job_id,
            status=Status.from_native(c.status, owned=False),
        )


@dataclass(frozen=True)
class MemTableInfo:
    cf_name: str
    first_seqno: int
    earliest_seqno: int
    num_entries: int
    num_deletes: int

    @classmethod
    def from_c(cls, c) -> "MemTableInfo":
        return cls(
            cf_name=_text(c.cf_name, c.cf_name_len),
            first_seqno=c.first_seqno,
            earliest_seqno=c.earliest_seqno,
            num_entries=c.num_entries,
            num_deletes=c.num_deletes,
        )


@dataclass(frozen=True)
class ExternalFileIngestionInfo:
    cf_name: str
    external_file_path: str
    internal_file_path: str
    global_seqno: int

    @classmethod
    def from_c(cls, c) -> "ExternalFileIngestionInfo":
        return cls(
            cf_name=_text(c.cf_name, c.cf_name_len),
            external_file_path=_text(c.external_file_path, c.external_file_path_len),
            internal_file_path=_text(c.internal_file_path, c.internal_file_path_len),
            global_seqno=c.global_seqno,
        )


@dataclass(frozen=True)
class WriteStallInfo:
    cf_name: str
    cur: WriteStallCondition
    prev: WriteStallCondition

    @classmethod
    def from_c(cls, c) -> "WriteStallInfo":
        return cls(
            cf_name=_text(c.cf_name, c.cf_name_len),
            cur=_enum(WriteStallCondition, c.cur),
            prev=_enum(WriteStallCondition, c.prev),
        )


class CompactionEventListener:
    """Per-key notification during compaction."""

    def on_compaction(
        self,
        level: int,
        key: bytes,
        value_type: ValueType,
        existing_value: bytes,
        sequence: int,
        is_new: bool,
    ) -> None:
        pass


class EventListener:
    """Base class for engine event listeners. Every callback is optional."""

    def on_flush_begin(self, info: FlushJobInfo) -> None:
        pass

    def on_flush_completed(self, info: FlushJobInfo) -> None:
        pass

    def on_compaction_completed(self, info: CompactionJobInfo) -> None:
        pass

    def on_table_file_created(self, info: TableFileCreationInfo) -> None:
        pass

    def on_table_file_deleted(self, info: TableFileDeletionInfo) -> None:
        pass

    def on_memtable_sealed(self, info: MemTableInfo) -> None:
        pass

    def on_column_family_handle_deletion_started(self, cf_id: int, cf_name: str) -> None:
        pass

    def on_external_file_ingested(self, info: ExternalFileIngestionInfo) -> None:
        pass

    def on_stall_conditions_changed(self, info: WriteStallInfo) -> None:
        pass

    def on_background_error(self, reason: BackgroundErrorReason, error: Status) -> bool:
        """Return True to suppress ``error`` and keep the database writable."""
        return False

    def get_compaction_event_listener(self) -> Optional[CompactionEventListener]:
        return None


@guarded(None)
def _on_flush_begin(listener, info):
    listener.on_flush_begin(FlushJobInfo.from_c(info.contents))


@guarded(None)
def _on_flush_completed(listener, info):
    listener.on_flush_completed(FlushJobInfo.from_c(info.contents))


@guarded(None)
def _on_compaction_completed(listener, info):
    listener.on_compaction_completed(CompactionJobInfo.from_c(info.contents))


@guarded(None)
def _on_table_file_created(listener, info):
    listener.on_table_file_created(TableFileCreationInfo.from_c(info.contents))


@guarded(None)
def _on_table_file_deleted(listener, info):
    listener.on_table_file_deleted(TableFileDeletionInfo.from_c(info.contents))


@guarded(None)
def _on_memtable_sealed(listener, info):
    listener.on_memtable_sealed(MemTableInfo.from_c(info.contents))


@guarded(None)
def _on_column_family_handle_deletion_started(listener, cf_id, name, name_len):
    listener.on_column_family_handle_deletion_started(cf_id, _text(name, name_len))


@guarded(None)
def _on_external_file_ingested(listener, info):
    listener.on_external_file_ingested(ExternalFileIngestionInfo.from_c(info.contents))


@guarded(None)
def _on_stall_conditions_changed(listener, info):
    listener.on_stall_conditions_changed(WriteStallInfo.from_c(info.contents))


@guarded(0)
def _on_background_error(listener, reason, status):
    error = Status.from_native(status, owned=False)
    if error is None:
        return 0
    return 1 if listener.on_background_error(_enum(BackgroundErrorReason, reason), error) else 0


@guarded(None)
def _get_compaction_event_listener(listener):
    compaction_listener = listener.get_compaction_event_listener()
    if compaction_listener is None:
        return None
    return box(compaction_listener, CompactionEventListener)


@guarded(None)
def _on_compaction(listener, level, key, key_len, value_type, value, value_len, sequence, is_new):
    listener.on_compaction(
        level,
        view(key, key_len),
        _enum(ValueType, value_type),
        view(value, value_len),
        sequence,
        bool(is_new),
    )


VTABLE = EventListenerVTable(
    on_flush_begin=FLUSH_JOB_FN(_on_flush_begin),
    on_flush_completed=FLUSH_JOB_FN(_on_flush_completed),
    on_compaction_completed=COMPACTION_JOB_FN(_on_compaction_completed),
    on_table_file_created=TABLE_FILE_CREATED_FN(_on_table_file_created),
    on_table_file_deleted=TABLE_FILE_DELETED_FN(_on_table_file_deleted),
    on_memtable_sealed=MEMTABLE_SEALED_FN(_on_memtable_sealed),
    on_column_family_handle_deletion_started=CF_HANDLE_DELETION_FN(
        _on_column_family_handle_deletion_started
    ),
    on_external_file_ingested=FILE_INGESTED_FN(_on_external_file_ingested),
    on_stall_conditions_changed=STALL_CHANGED_FN(_on_stall_conditions_changed),
    on_background_error=BACKGROUND_ERROR_FN(_on_background_error),
    get_compaction_event_listener=GET_COMPACTION_LISTENER_FN(_get_compaction_event_listener),
    drop=DROP,
)

COMPACTION_VTABLE = CompactionEventListenerVTable(
    on_compaction=ON_COMPACTION_FN(_on_compaction),
    drop=DROP,
)
