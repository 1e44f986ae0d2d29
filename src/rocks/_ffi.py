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
Native ABI of the rocks engine library.

Everything that crosses the C boundary is declared here: the loader, the
callback function-pointer types, the per-extension-point vtables, the event
info structures and the prototype table applied to every ``rocks_*`` entry
point.

Conventions:
    - byte strings travel as ``(void* ptr, size_t len)``; paths and property
      names are NUL terminated
    - every fallible entry point takes ``rocks_status_t**`` as its last
      argument; the engine stores NULL on success
    - callback outputs are written through ``rocks_string_assign`` (or
      ``rocks_user_collected_props_insert``), never returned as owned memory
"""

import logging
import os
import sys
import ctypes
import platform
import threading
from ctypes import (
    CFUNCTYPE,
    POINTER,
    Structure,
    c_char_p,
    c_double,
    c_int,
    c_int32,
    c_int64,
    c_size_t,
    c_ubyte,
    c_uint32,
    c_uint64,
    c_void_p,
)

from .config import get_config
from .errors import BridgeError, LibraryNotFoundError

logger = logging.getLogger(__name__)


def _get_target_triple() -> str:
    """Get the Rust target triple for the current platform."""
    system = platform.system().lower()
    machine = platform.machine().lower()

    if system == "darwin":
        if machine in ("arm64", "aarch64"):
            return "aarch64-apple-darwin"
        return "x86_64-apple-darwin"
    elif system == "windows":
        return "x86_64-pc-windows-msvc"
    else:  # Linux
        if machine in ("arm64", "aarch64"):
            return "aarch64-unknown-linux-gnu"
        return "x86_64-unknown-linux-gnu"


def _library_name() -> str:
    if sys.platform == "darwin":
        return "librocks.dylib"
    elif sys.platform == "win32":
        return "rocks.dll"
    return "librocks.so"


def _find_library(config=None) -> str:
    """Find the rocks native library.

    Search order:
    1. ``BridgeConfig.lib_path`` (a file, or a directory holding the library)
    2. Bundled library in wheel (lib/{target}/)
    3. Package directory
    4. Development build (target/release, target/debug)
    5. System paths (/usr/local/lib, /usr/lib)
    """
    config = config or get_config()
    lib_name = config.lib_name or _library_name()

    pkg_dir = os.path.dirname(__file__)
    target = _get_target_triple()

    search_paths = []

    if config.lib_path:
        if os.path.isfile(config.lib_path):
            return config.lib_path
        search_paths.append(config.lib_path)

    search_paths.append(os.path.join(pkg_dir, "lib", target))
    search_paths.append(os.path.join(pkg_dir, "lib"))
    search_paths.append(pkg_dir)
    search_paths.extend([
        os.path.join(pkg_dir, "..", "..", "target", "release"),
        os.path.join(pkg_dir, "..", "..", "target", "debug"),
    ])
    search_paths.extend(["/usr/local/lib", "/usr/lib"])

    for path in search_paths:
        lib_path = os.path.join(path, lib_name)
        if os.path.exists(lib_path):
            return lib_path

    raise LibraryNotFoundError(
        f"Could not find {lib_name}. "
        f"Searched in: {', '.join(search_paths[:5])}... "
        "Set ROCKS_LIB_PATH or pass lib_path to rocks.configure()."
    )


# =============================================================================
# Callback function-pointer types
# =============================================================================

# Every callback receives the opaque state word first. ``c_void_p`` arguments
# arrive in Python as ``int`` (or ``None`` for NULL).

NAME_FN = CFUNCTYPE(None, c_void_p, c_void_p)               # (state, out_string)
DROP_FN = CFUNCTYPE(None, c_void_p)                         # (state)

# comparator
COMPARE_FN = CFUNCTYPE(c_int, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t)
EQUAL_FN = CFUNCTYPE(c_ubyte, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t)
# (state, start, start_len, limit, limit_len, out_string) -> changed
SEPARATOR_FN = CFUNCTYPE(c_ubyte, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t, c_void_p)
# (state, key, key_len, out_string) -> changed
SUCCESSOR_FN = CFUNCTYPE(c_ubyte, c_void_p, c_void_p, c_size_t, c_void_p)

# merge operators
# (state, key, key_len, existing|NULL, existing_len,
#  operands, operand_lens, num_operands, out_string) -> success
FULL_MERGE_FN = CFUNCTYPE(
    c_ubyte, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t,
    POINTER(c_void_p), POINTER(c_size_t), c_size_t, c_void_p,
)
# (state, key, key_len, left, left_len, right, right_len, out_string) -> success
PARTIAL_MERGE_FN = CFUNCTYPE(
    c_ubyte, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t, c_void_p, c_size_t, c_void_p,
)
# (state, key, key_len, existing|NULL, existing_len, value, value_len, out_string) -> success
ASSOCIATIVE_MERGE_FN = CFUNCTYPE(
    c_ubyte, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t, c_void_p, c_size_t, c_void_p,
)

# compaction filter
# (state, level, key, key_len, value_type, value, value_len,
#  new_value_string, skip_until_string) -> decision
FILTER_FN = CFUNCTYPE(
    c_int, c_void_p, c_int, c_void_p, c_size_t, c_int, c_void_p, c_size_t, c_void_p, c_void_p,
)
FLAG_FN = CFUNCTYPE(c_ubyte, c_void_p)
# (state, is_full_compaction, is_manual_compaction, column_family_id) -> filter state|NULL
CREATE_FILTER_FN = CFUNCTYPE(c_void_p, c_void_p, c_ubyte, c_ubyte, c_uint32)

# slice transform
TRANSFORM_FN = CFUNCTYPE(None, c_void_p, c_void_p, c_size_t, c_void_p)
KEY_PREDICATE_FN = CFUNCTYPE(c_ubyte, c_void_p, c_void_p, c_size_t)

# table properties collector
# (state, key, key_len, value, value_len, entry_type, sequence, file_size)
ADD_USER_KEY_FN = CFUNCTYPE(
    None, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t, c_int, c_uint64, c_uint64,
)
FINISH_FN = CFUNCTYPE(None, c_void_p, c_void_p)             # (state, props)
CREATE_COLLECTOR_FN = CFUNCTYPE(c_void_p, c_void_p, c_uint32)

# write batch handler
PUT_CF_FN = CFUNCTYPE(None, c_void_p, c_uint32, c_void_p, c_size_t, c_void_p, c_size_t)
DELETE_CF_FN = CFUNCTYPE(None, c_void_p, c_uint32, c_void_p, c_size_t)
DELETE_RANGE_CF_FN = CFUNCTYPE(None, c_void_p, c_uint32, c_void_p, c_size_t, c_void_p, c_size_t)
BLOB_FN = CFUNCTYPE(None, c_void_p, c_void_p, c_size_t)
MARK_FN = CFUNCTYPE(None, c_void_p)

# wal filter
# (state, cf_ids, log_numbers, n, cf_names, cf_name_lens, cf_name_ids, m)
CF_LOG_MAP_FN = CFUNCTYPE(
    None, c_void_p, POINTER(c_uint32), POINTER(c_uint64), c_size_t,
    POINTER(c_void_p), POINTER(c_size_t), POINTER(c_uint32), c_size_t,
)
# (state, log_number, file_name, file_name_len, batch, new_batch, batch_changed) -> option
LOG_RECORD_FN = CFUNCTYPE(
    c_int, c_void_p, c_uint64, c_void_p, c_size_t, c_void_p, c_void_p, POINTER(c_ubyte),
)


# =============================================================================
# Event info structures (borrowed for the duration of one callback)
# =============================================================================

class C_FlushJobInfo(Structure):
    _fields_ = [
        ("cf_id", c_uint32),
        ("cf_name", c_void_p),
        ("cf_name_len", c_size_t),
        ("file_path", c_void_p),
        ("file_path_len", c_size_t),
        ("thread_id", c_uint64),
        ("job_id", c_int),
        ("triggered_writes_slowdown", c_ubyte),
        ("triggered_writes_stop", c_ubyte),
        ("smallest_seqno", c_uint64),
        ("largest_seqno", c_uint64),
        ("flush_reason", c_int),
    ]


class C_CompactionJobInfo(Structure):
    _fields_ = [
        ("cf_id", c_uint32),
        ("cf_name", c_void_p),
        ("cf_name_len", c_size_t),
        ("status", c_void_p),                   # borrowed rocks_status_t*, may be NULL
        ("thread_id", c_uint64),
        ("job_id", c_int),
        ("base_input_level", c_int),
        ("output_level", c_int),
        ("input_files", POINTER(c_void_p)),
        ("input_file_lens", POINTER(c_size_t)),
        ("num_input_files", c_size_t),
        ("output_files", POINTER(c_void_p)),
        ("output_file_lens", POINTER(c_size_t)),
        ("num_output_files", c_size_t),
        ("compaction_reason", c_int),
    ]


class C_TableFileCreationInfo(Structure):
    _fields_ = [
        ("db_name", c_void_p),
        ("db_name_len", c_size_t),
        ("cf_name", c_void_p),
        ("cf_name_len", c_size_t),
        ("file_path", c_void_p),
        ("file_path_len", c_size_t),
        ("file_size", c_uint64),
        ("job_id", c_int),
        ("reason", c_int),
        ("status", c_void_p),
    ]


class C_TableFileDeletionInfo(Structure):
    _fields_ = [
        ("db_name", c_void_p),
        ("db_name_len", c_size_t),
        ("file_path", c_void_p),
        ("file_path_len", c_size_t),
        ("job_id", c_int),
        ("status", c_void_p),
    ]


class C_MemTableInfo(Structure):
    _fields_ = [
        ("cf_name", c_void_p),
        ("cf_name_len", c_size_t),
        ("first_seqno", c_uint64),
        ("earliest_seqno", c_uint64),
        ("num_entries", c_uint64),
        ("num_deletes", c_uint64),
    ]


class C_ExternalFileIngestionInfo(Structure):
    _fields_ = [
        ("cf_name", c_void_p),
        ("cf_name_len", c_size_t),
        ("external_file_path", c_void_p),
        ("external_file_path_len", c_size_t),
        ("internal_file_path", c_void_p),
        ("internal_file_path_len", c_size_t),
        ("global_seqno", c_uint64),
    ]


class C_WriteStallInfo(Structure):
    _fields_ = [
        ("cf_name", c_void_p),
        ("cf_name_len", c_size_t),
        ("cur", c_int),
        ("prev", c_int),
    ]


class C_HistogramData(Structure):
    _fields_ = [
        ("median", c_double),
        ("percentile95", c_double),
        ("percentile99", c_double),
        ("average", c_double),
        ("standard_deviation", c_double),
        ("max", c_double),
        ("count", c_uint64),
        ("sum", c_uint64),
        ("min", c_double),
    ]


# listener callbacks
FLUSH_JOB_FN = CFUNCTYPE(None, c_void_p, POINTER(C_FlushJobInfo))
COMPACTION_JOB_FN = CFUNCTYPE(None, c_void_p, POINTER(C_CompactionJobInfo))
TABLE_FILE_CREATED_FN = CFUNCTYPE(None, c_void_p, POINTER(C_TableFileCreationInfo))
TABLE_FILE_DELETED_FN = CFUNCTYPE(None, c_void_p, POINTER(C_TableFileDeletionInfo))
MEMTABLE_SEALED_FN = CFUNCTYPE(None, c_void_p, POINTER(C_MemTableInfo))
# (state, cf_id, cf_name, cf_name_len)
CF_HANDLE_DELETION_FN = CFUNCTYPE(None, c_void_p, c_uint32, c_void_p, c_size_t)
FILE_INGESTED_FN = CFUNCTYPE(None, c_void_p, POINTER(C_ExternalFileIngestionInfo))
STALL_CHANGED_FN = CFUNCTYPE(None, c_void_p, POINTER(C_WriteStallInfo))
# (state, reason, borrowed status) -> suppress
BACKGROUND_ERROR_FN = CFUNCTYPE(c_ubyte, c_void_p, c_int, c_void_p)
# (state) -> compaction event listener state|NULL
GET_COMPACTION_LISTENER_FN = CFUNCTYPE(c_void_p, c_void_p)
# (state, level, key, key_len, value_type, value, value_len, sequence, is_new)
ON_COMPACTION_FN = CFUNCTYPE(
    None, c_void_p, c_int, c_void_p, c_size_t, c_int, c_void_p, c_size_t, c_uint64, c_ubyte,
)


# =============================================================================
# Vtables: one fixed function table per extension point
# =============================================================================

class ComparatorVTable(Structure):
    _fields_ = [
        ("name", NAME_FN),
        ("compare", COMPARE_FN),
        ("equal", EQUAL_FN),
        ("find_shortest_separator", SEPARATOR_FN),
        ("find_short_successor", SUCCESSOR_FN),
        ("drop", DROP_FN),
    ]


class MergeOperatorVTable(Structure):
    _fields_ = [
        ("name", NAME_FN),
        ("full_merge", FULL_MERGE_FN),
        ("partial_merge", PARTIAL_MERGE_FN),
        ("drop", DROP_FN),
    ]


class AssociativeMergeOperatorVTable(Structure):
    _fields_ = [
        ("name", NAME_FN),
        ("merge", ASSOCIATIVE_MERGE_FN),
        ("drop", DROP_FN),
    ]


class CompactionFilterVTable(Structure):
    _fields_ = [
        ("name", NAME_FN),
        ("filter", FILTER_FN),
        ("ignore_snapshots", FLAG_FN),
        ("drop", DROP_FN),
    ]


class CompactionFilterFactoryVTable(Structure):
    _fields_ = [
        ("name", NAME_FN),
        ("create_compaction_filter", CREATE_FILTER_FN),
        ("drop", DROP_FN),
    ]


class SliceTransformVTable(Structure):
    _fields_ = [
        ("name", NAME_FN),
        ("transform", TRANSFORM_FN),
        ("in_domain", KEY_PREDICATE_FN),
        ("in_range", KEY_PREDICATE_FN),
        ("drop", DROP_FN),
    ]


class EventListenerVTable(Structure):
    _fields_ = [
        ("on_flush_begin", FLUSH_JOB_FN),
        ("on_flush_completed", FLUSH_JOB_FN),
        ("on_compaction_completed", COMPACTION_JOB_FN),
        ("on_table_file_created", TABLE_FILE_CREATED_FN),
        ("on_table_file_deleted", TABLE_FILE_DELETED_FN),
        ("on_memtable_sealed", MEMTABLE_SEALED_FN),
        ("on_column_family_handle_deletion_started", CF_HANDLE_DELETION_FN),
        ("on_external_file_ingested", FILE_INGESTED_FN),
        ("on_stall_conditions_changed", STALL_CHANGED_FN),
        ("on_background_error", BACKGROUND_ERROR_FN),
        ("get_compaction_event_listener", GET_COMPACTION_LISTENER_FN),
        ("drop", DROP_FN),
    ]


class CompactionEventListenerVTable(Structure):
    _fields_ = [
        ("on_compaction", ON_COMPACTION_FN),
        ("drop", DROP_FN),
    ]


class TablePropertiesCollectorVTable(Structure):
    _fields_ = [
        ("name", NAME_FN),
        ("add_user_key", ADD_USER_KEY_FN),
        ("finish", FINISH_FN),
        ("need_compact", FLAG_FN),
        ("drop", DROP_FN),
    ]


class TablePropertiesCollectorFactoryVTable(Structure):
    _fields_ = [
        ("name", NAME_FN),
        ("create_table_properties_collector", CREATE_COLLECTOR_FN),
        ("drop", DROP_FN),
    ]


class WriteBatchHandlerVTable(Structure):
    _fields_ = [
        ("put_cf", PUT_CF_FN),
        ("delete_cf", DELETE_CF_FN),
        ("single_delete_cf", DELETE_CF_FN),
        ("delete_range_cf", DELETE_RANGE_CF_FN),
        ("merge_cf", PUT_CF_FN),
        ("log_data", BLOB_FN),
        ("mark_begin_prepare", MARK_FN),
        ("mark_end_prepare", BLOB_FN),
        ("mark_rollback", BLOB_FN),
        ("mark_commit", BLOB_FN),
        ("will_continue", FLAG_FN),
        ("drop", DROP_FN),
    ]


class WalFilterVTable(Structure):
    _fields_ = [
        ("name", NAME_FN),
        ("column_family_log_number_map", CF_LOG_MAP_FN),
        ("log_record_found", LOG_RECORD_FN),
        ("drop", DROP_FN),
    ]


# =============================================================================
# Entry point prototypes: name -> (restype, argtypes)
# =============================================================================

_ST = POINTER(c_void_p)     # rocks_status_t** out parameter
_LEN = POINTER(c_size_t)

PROTOTYPES = {
    # status
    "rocks_status_create_with_code_and_msg": (c_void_p, [c_int, c_int, c_void_p, c_size_t]),
    "rocks_status_code": (c_int, [c_void_p]),
    "rocks_status_subcode": (c_int, [c_void_p]),
    "rocks_status_get_state": (c_void_p, [c_void_p, _LEN]),
    "rocks_status_destroy": (None, [c_void_p]),

    # native output buffers
    "rocks_string_create": (c_void_p, []),
    "rocks_string_destroy": (None, [c_void_p]),
    "rocks_string_data": (c_void_p, [c_void_p, _LEN]),
    "rocks_string_assign": (None, [c_void_p, c_void_p, c_size_t]),
    "rocks_user_collected_props_insert": (None, [c_void_p, c_void_p, c_size_t, c_void_p, c_size_t]),

    # options
    "rocks_options_create": (c_void_p, []),
    "rocks_options_destroy": (None, [c_void_p]),
    "rocks_options_set_create_if_missing": (None, [c_void_p, c_ubyte]),
    "rocks_options_set_create_missing_column_families": (None, [c_void_p, c_ubyte]),
    "rocks_options_set_error_if_exists": (None, [c_void_p, c_ubyte]),
    "rocks_options_set_paranoid_checks": (None, [c_void_p, c_ubyte]),
    "rocks_options_set_disable_auto_compactions": (None, [c_void_p, c_ubyte]),
    "rocks_options_increase_parallelism": (None, [c_void_p, c_int]),
    "rocks_options_set_max_background_jobs": (None, [c_void_p, c_int]),
    "rocks_options_set_max_open_files": (None, [c_void_p, c_int]),
    "rocks_options_set_num_levels": (None, [c_void_p, c_int]),
    "rocks_options_set_level0_file_num_compaction_trigger": (None, [c_void_p, c_int]),
    "rocks_options_set_write_buffer_size": (None, [c_void_p, c_size_t]),
    "rocks_options_set_statistics": (None, [c_void_p, c_void_p]),
    "rocks_options_set_rate_limiter": (None, [c_void_p, c_void_p]),
    "rocks_options_set_row_cache": (None, [c_void_p, c_void_p]),
    "rocks_options_set_block_cache": (None, [c_void_p, c_void_p]),
    "rocks_options_set_filter_policy": (None, [c_void_p, c_void_p]),
    "rocks_options_set_prefix_extractor_fixed": (None, [c_void_p, c_size_t]),
    "rocks_options_set_prefix_extractor_capped": (None, [c_void_p, c_size_t]),

    # extension point registration: (options, state, vtable...)
    "rocks_options_set_comparator": (None, [c_void_p, c_void_p, POINTER(ComparatorVTable)]),
    "rocks_options_set_merge_operator": (None, [c_void_p, c_void_p, POINTER(MergeOperatorVTable)]),
    "rocks_options_set_associative_merge_operator": (
        None, [c_void_p, c_void_p, POINTER(AssociativeMergeOperatorVTable)],
    ),
    "rocks_options_set_compaction_filter": (None, [c_void_p, c_void_p, POINTER(CompactionFilterVTable)]),
    "rocks_options_set_compaction_filter_factory": (
        None,
        [c_void_p, c_void_p, POINTER(CompactionFilterFactoryVTable), POINTER(CompactionFilterVTable)],
    ),
    "rocks_options_set_prefix_extractor": (None, [c_void_p, c_void_p, POINTER(SliceTransformVTable)]),
    "rocks_options_add_listener": (
        None,
        [c_void_p, c_void_p, POINTER(EventListenerVTable), POINTER(CompactionEventListenerVTable)],
    ),
    "rocks_options_add_table_properties_collector_factory": (
        None,
        [
            c_void_p, c_void_p,
            POINTER(TablePropertiesCollectorFactoryVTable),
            POINTER(TablePropertiesCollectorVTable),
        ],
    ),
    "rocks_options_set_wal_filter": (None, [c_void_p, c_void_p, POINTER(WalFilterVTable)]),

    # read options
    "rocks_readoptions_create": (c_void_p, []),
    "rocks_readoptions_destroy": (None, [c_void_p]),
    "rocks_readoptions_set_verify_checksums": (None, [c_void_p, c_ubyte]),
    "rocks_readoptions_set_fill_cache": (None, [c_void_p, c_ubyte]),
    "rocks_readoptions_set_snapshot": (None, [c_void_p, c_void_p]),
    "rocks_readoptions_set_iterate_upper_bound": (None, [c_void_p, c_void_p, c_size_t]),
    "rocks_readoptions_set_iterate_lower_bound": (None, [c_void_p, c_void_p, c_size_t]),
    "rocks_readoptions_set_prefix_same_as_start": (None, [c_void_p, c_ubyte]),
    "rocks_readoptions_set_total_order_seek": (None, [c_void_p, c_ubyte]),
    "rocks_readoptions_set_tailing": (None, [c_void_p, c_ubyte]),

    # write options
    "rocks_writeoptions_create": (c_void_p, []),
    "rocks_writeoptions_destroy": (None, [c_void_p]),
    "rocks_writeoptions_set_sync": (None, [c_void_p, c_ubyte]),
    "rocks_writeoptions_disable_wal": (None, [c_void_p, c_ubyte]),
    "rocks_writeoptions_set_no_slowdown": (None, [c_void_p, c_ubyte]),
    "rocks_writeoptions_set_ignore_missing_column_families": (None, [c_void_p, c_ubyte]),

    # flush / compact range options
    "rocks_flushoptions_create": (c_void_p, []),
    "rocks_flushoptions_destroy": (None, [c_void_p]),
    "rocks_flushoptions_set_wait": (None, [c_void_p, c_ubyte]),
    "rocks_compactrangeoptions_create": (c_void_p, []),
    "rocks_compactrangeoptions_destroy": (None, [c_void_p]),
    "rocks_compactrangeoptions_set_exclusive_manual_compaction": (None, [c_void_p, c_ubyte]),
    "rocks_compactrangeoptions_set_change_level": (None, [c_void_p, c_ubyte]),
    "rocks_compactrangeoptions_set_target_level": (None, [c_void_p, c_int]),
    "rocks_compactrangeoptions_set_bottommost_level_compaction": (None, [c_void_p, c_int]),

    # db lifecycle
    "rocks_db_open": (c_void_p, [c_void_p, c_char_p, _ST]),
    "rocks_db_open_for_read_only": (c_void_p, [c_void_p, c_char_p, c_ubyte, _ST]),
    "rocks_db_open_column_families": (
        c_void_p,
        [c_void_p, c_char_p, c_int, POINTER(c_char_p), POINTER(c_void_p), POINTER(c_void_p), _ST],
    ),
    "rocks_db_list_column_families": (c_void_p, [c_void_p, c_char_p, _LEN, _ST]),
    "rocks_column_family_names_get": (c_void_p, [c_void_p, c_size_t, _LEN]),
    "rocks_column_family_names_destroy": (None, [c_void_p]),
    "rocks_destroy_db": (None, [c_void_p, c_char_p, _ST]),
    "rocks_db_close": (None, [c_void_p]),

    # column families
    "rocks_db_default_column_family": (c_void_p, [c_void_p]),
    "rocks_db_create_column_family": (c_void_p, [c_void_p, c_void_p, c_char_p, _ST]),
    "rocks_db_drop_column_family": (None, [c_void_p, c_void_p, _ST]),
    "rocks_column_family_handle_destroy": (None, [c_void_p, c_void_p]),
    "rocks_column_family_handle_get_name": (c_void_p, [c_void_p, _LEN]),
    "rocks_column_family_handle_get_id": (c_uint32, [c_void_p]),

    # reads and writes: (db, options, column_family, ...)
    "rocks_db_put": (None, [c_void_p, c_void_p, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t, _ST]),
    "rocks_db_delete": (None, [c_void_p, c_void_p, c_void_p, c_void_p, c_size_t, _ST]),
    "rocks_db_single_delete": (None, [c_void_p, c_void_p, c_void_p, c_void_p, c_size_t, _ST]),
    "rocks_db_delete_range": (
        None, [c_void_p, c_void_p, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t, _ST],
    ),
    "rocks_db_merge": (None, [c_void_p, c_void_p, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t, _ST]),
    "rocks_db_write": (None, [c_void_p, c_void_p, c_void_p, _ST]),
    "rocks_db_get": (None, [c_void_p, c_void_p, c_void_p, c_void_p, c_size_t, c_void_p, _ST]),
    "rocks_db_create_iterator": (c_void_p, [c_void_p, c_void_p, c_void_p]),
    "rocks_db_get_snapshot": (c_void_p, [c_void_p]),
    "rocks_db_release_snapshot": (None, [c_void_p, c_void_p]),
    "rocks_snapshot_get_sequence_number": (c_uint64, [c_void_p]),
    "rocks_db_flush": (None, [c_void_p, c_void_p, c_void_p, _ST]),
    "rocks_db_compact_range": (
        None, [c_void_p, c_void_p, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t, _ST],
    ),
    "rocks_db_get_property": (c_ubyte, [c_void_p, c_void_p, c_char_p, c_void_p]),
    "rocks_db_get_latest_sequence_number": (c_uint64, [c_void_p]),
    "rocks_db_get_approximate_sizes": (
        None,
        [
            c_void_p, c_void_p, c_size_t,
            POINTER(c_void_p), POINTER(c_size_t),
            POINTER(c_void_p), POINTER(c_size_t),
            POINTER(c_uint64), _ST,
        ],
    ),

    # iterator
    "rocks_iter_destroy": (None, [c_void_p]),
    "rocks_iter_valid": (c_ubyte, [c_void_p]),
    "rocks_iter_seek_to_first": (None, [c_void_p]),
    "rocks_iter_seek_to_last": (None, [c_void_p]),
    "rocks_iter_seek": (None, [c_void_p, c_void_p, c_size_t]),
    "rocks_iter_seek_for_prev": (None, [c_void_p, c_void_p, c_size_t]),
    "rocks_iter_next": (None, [c_void_p]),
    "rocks_iter_prev": (None, [c_void_p]),
    "rocks_iter_key": (c_void_p, [c_void_p, _LEN]),
    "rocks_iter_value": (c_void_p, [c_void_p, _LEN]),
    "rocks_iter_get_status": (None, [c_void_p, _ST]),

    # write batch: column family NULL means the default family
    "rocks_writebatch_create": (c_void_p, []),
    "rocks_writebatch_create_from": (c_void_p, [c_void_p, c_size_t]),
    "rocks_writebatch_destroy": (None, [c_void_p]),
    "rocks_writebatch_copy": (c_void_p, [c_void_p]),
    "rocks_writebatch_clear": (None, [c_void_p]),
    "rocks_writebatch_count": (c_int, [c_void_p]),
    "rocks_writebatch_put": (None, [c_void_p, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t]),
    "rocks_writebatch_delete": (None, [c_void_p, c_void_p, c_void_p, c_size_t]),
    "rocks_writebatch_single_delete": (None, [c_void_p, c_void_p, c_void_p, c_size_t]),
    "rocks_writebatch_delete_range": (None, [c_void_p, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t]),
    "rocks_writebatch_merge": (None, [c_void_p, c_void_p, c_void_p, c_size_t, c_void_p, c_size_t]),
    "rocks_writebatch_put_log_data": (None, [c_void_p, c_void_p, c_size_t]),
    "rocks_writebatch_set_save_point": (None, [c_void_p]),
    "rocks_writebatch_rollback_to_save_point": (None, [c_void_p, _ST]),
    "rocks_writebatch_data": (c_void_p, [c_void_p, _LEN]),
    "rocks_writebatch_iterate": (None, [c_void_p, c_void_p, POINTER(WriteBatchHandlerVTable), _ST]),
    "rocks_writebatch_append": (None, [c_void_p, c_void_p, _ST]),

    # cache
    "rocks_cache_create_lru": (c_void_p, [c_size_t]),
    "rocks_cache_destroy": (None, [c_void_p]),
    "rocks_cache_get_usage": (c_size_t, [c_void_p]),
    "rocks_cache_get_pinned_usage": (c_size_t, [c_void_p]),
    "rocks_cache_get_capacity": (c_size_t, [c_void_p]),
    "rocks_cache_set_capacity": (None, [c_void_p, c_size_t]),

    # rate limiter
    "rocks_ratelimiter_create": (c_void_p, [c_int64, c_int64, c_int32]),
    "rocks_ratelimiter_destroy": (None, [c_void_p]),
    "rocks_ratelimiter_get_bytes_per_second": (c_int64, [c_void_p]),
    "rocks_ratelimiter_set_bytes_per_second": (None, [c_void_p, c_int64]),

    # filter policy
    "rocks_filterpolicy_create_bloom": (c_void_p, [c_double]),
    "rocks_filterpolicy_destroy": (None, [c_void_p]),

    # statistics
    "rocks_statistics_create": (c_void_p, []),
    "rocks_statistics_destroy": (None, [c_void_p]),
    "rocks_statistics_copy": (c_void_p, [c_void_p]),
    "rocks_statistics_get_ticker_count": (c_uint64, [c_void_p, c_uint32]),
    "rocks_statistics_get_and_reset_ticker_count": (c_uint64, [c_void_p, c_uint32]),
    "rocks_statistics_get_ticker_counts": (c_size_t, [c_void_p, c_size_t, POINTER(c_uint64)]),
    "rocks_statistics_histogram_data": (None, [c_void_p, c_uint32, POINTER(C_HistogramData)]),
    "rocks_statistics_get_stats_level": (c_int, [c_void_p]),
    "rocks_statistics_set_stats_level": (None, [c_void_p, c_int]),
    "rocks_statistics_reset": (None, [c_void_p, _ST]),
    "rocks_statistics_to_string": (None, [c_void_p, c_void_p]),

    # persistent cache
    "rocks_persistent_cache_create": (c_void_p, [c_char_p, c_uint64, c_ubyte, _ST]),
    "rocks_persistent_cache_copy": (c_void_p, [c_void_p]),
    "rocks_persistent_cache_destroy": (None, [c_void_p]),
    "rocks_persistent_cache_get_printable_options": (None, [c_void_p, c_void_p]),
}


class _FFI:
    """FFI bindings to the native library."""

    _lib = None
    _lock = threading.Lock()

    @classmethod
    def get_lib(cls):
        if cls._lib is None:
            with cls._lock:
                if cls._lib is None:
                    lib_path = _find_library()
                    lib = ctypes.CDLL(lib_path)
                    cls._setup_bindings(lib)
                    logger.debug("Loaded rocks native library from %s", lib_path)
                    cls._lib = lib
        return cls._lib

    @classmethod
    def _setup_bindings(cls, lib):
        """Set up function signatures for the native library."""
        missing = []
        for name, (restype, argtypes) in PROTOTYPES.items():
            try:
                fn = getattr(lib, name)
            except AttributeError:
                missing.append(name)
                continue
            fn.restype = restype
            fn.argtypes = argtypes
        if missing:
            raise BridgeError(
                f"Native library is missing {len(missing)} entry point(s): "
                f"{', '.join(missing[:5])}{'...' if len(missing) > 5 else ''}"
            )
