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
Option objects.

Every option class can be built from keyword arguments, each one mapped to
the matching ``set_<name>`` method:

    opts = rocks.Options(create_if_missing=True, write_buffer_size=64 << 20)
    opts.set_merge_operator(CounterMerge())

Registering a callback object (comparator, merge operator, listener, ...)
transfers it to the engine: it stays alive until the engine no longer
needs it, even after the Python references are gone. Resources such as
:class:`~rocks.Cache` and :class:`~rocks.Statistics` are shared: the engine
keeps its own reference, so closing the Python wrapper does not detach them.
"""

import ctypes
import warnings
from enum import IntEnum
from typing import Optional

from . import comparator as _comparator
from . import compaction_filter as _compaction_filter
from . import listener as _listener
from . import merge_operator as _merge_operator
from . import slice_transform as _slice_transform
from . import table_properties as _table_properties
from . import wal_filter as _wal_filter
from ._ffi import _FFI
from .cache import Cache
from .comparator import Comparator
from .compaction_filter import CompactionFilter, CompactionFilterFactory
from .filter_policy import BloomFilterPolicy
from .handle import NativeHandle
from .listener import EventListener
from .merge_operator import AssociativeMergeOperator, MergeOperator
from .rate_limiter import RateLimiter
from .registry import Shareable, box
from .slice import BytesLike, as_bytes
from .slice_transform import SliceTransform
from .statistics import Statistics
from .table_properties import TablePropertiesCollectorFactory
from .wal_filter import WalFilter


def _flag(value) -> int:
    return 1 if value else 0


class _OptionsBase(NativeHandle):
    """Native option object configurable through ``set_<name>`` keywords."""

    _create_fn: str = ""

    def __init__(self, **kwargs):
        super().__init__(getattr(_FFI.get_lib(), self._create_fn)())
        for name, value in kwargs.items():
            setter = getattr(self, f"set_{name}", None)
            if setter is None:
                self.close()
                raise TypeError(f"{type(self).__name__} has no option {name!r}")
            setter(value)


class Options(_OptionsBase):
    """Database and column family options."""

    _create_fn = "rocks_options_create"
    _destroy_fn = "rocks_options_destroy"

    def __init__(self, **kwargs):
        self._registered = set()
        super().__init__(**kwargs)

    def _register(self, slot: str) -> None:
        if slot in self._registered:
            warnings.warn(
                f"{slot} already set on this Options; the previous one is released by the engine",
                RuntimeWarning,
                stacklevel=3,
            )
        self._registered.add(slot)

    # -- flags and sizes --------------------------------------------------

    def set_create_if_missing(self, value: bool) -> "Options":
        self._lib.rocks_options_set_create_if_missing(self.raw(), _flag(value))
        return self

    def set_create_missing_column_families(self, value: bool) -> "Options":
        self._lib.rocks_options_set_create_missing_column_families(self.raw(), _flag(value))
        return self

    def set_error_if_exists(self, value: bool) -> "Options":
        self._lib.rocks_options_set_error_if_exists(self.raw(), _flag(value))
        return self

    def set_paranoid_checks(self, value: bool) -> "Options":
        self._lib.rocks_options_set_paranoid_checks(self.raw(), _flag(value))
        return self

    def set_disable_auto_compactions(self, value: bool) -> "Options":
        self._lib.rocks_options_set_disable_auto_compactions(self.raw(), _flag(value))
        return self

    def increase_parallelism(self, total_threads: int = 16) -> "Options":
        self._lib.rocks_options_increase_parallelism(self.raw(), total_threads)
        return self

    set_increase_parallelism = increase_parallelism

    def set_max_background_jobs(self, value: int) -> "Options":
        self._lib.rocks_options_set_max_background_jobs(self.raw(), value)
        return self

    def set_max_open_files(self, value: int) -> "Options":
        """Number of open table files kept around (-1 keeps all)."""
        self._lib.rocks_options_set_max_open_files(self.raw(), value)
        return self

    def set_num_levels(self, value: int) -> "Options":
        self._lib.rocks_options_set_num_levels(self.raw(), value)
        return self

    def set_level0_file_num_compaction_trigger(self, value: int) -> "Options":
        self._lib.rocks_options_set_level0_file_num_compaction_trigger(self.raw(), value)
        return self

    def set_write_buffer_size(self, value: int) -> "Options":
        self._lib.rocks_options_set_write_buffer_size(self.raw(), value)
        return self

    # -- shared resources -------------------------------------------------

    def set_statistics(self, statistics: Statistics) -> "Options":
        self._lib.rocks_options_set_statistics(self.raw(), statistics.raw())
        return self

    def set_rate_limiter(self, rate_limiter: RateLimiter) -> "Options":
        self._lib.rocks_options_set_rate_limiter(self.raw(), rate_limiter.raw())
        return self

    def set_row_cache(self, cache: Cache) -> "Options":
        self._lib.rocks_options_set_row_cache(self.raw(), cache.raw())
        return self

    def set_block_cache(self, cache: Cache) -> "Options":
        self._lib.rocks_options_set_block_cache(self.raw(), cache.raw())
        return self

    def set_filter_policy(self, policy: BloomFilterPolicy) -> "Options":
        self._lib.rocks_options_set_filter_policy(self.raw(), policy.raw())
        return self

    def set_prefix_extractor_fixed(self, prefix_len: int) -> "Options":
        self._register("prefix_extractor")
        self._lib.rocks_options_set_prefix_extractor_fixed(self.raw(), prefix_len)
        return self

    def set_prefix_extractor_capped(self, cap_len: int) -> "Options":
        self._register("prefix_extractor")
        self._lib.rocks_options_set_prefix_extractor_capped(self.raw(), cap_len)
        return self

    # -- callback objects -------------------------------------------------

    def set_comparator(self, comparator: Comparator) -> "Options":
        """
        Order keys with ``comparator``.

        The comparator name is recorded in the database; reopening with a
        different name fails with InvalidArgument.
        """
        ptr = self.raw()
        state = box(comparator, Comparator)
        self._register("comparator")
        self._lib.rocks_options_set_comparator(
            ptr, state, ctypes.byref(_comparator.VTABLE)
        )
        return self

    def set_merge_operator(self, merge_operator) -> "Options":
        """Accepts a MergeOperator or an AssociativeMergeOperator."""
        if isinstance(merge_operator, AssociativeMergeOperator):
            return self.set_associative_merge_operator(merge_operator)
        ptr = self.raw()
        state = box(merge_operator, MergeOperator)
        self._register("merge_operator")
        self._lib.rocks_options_set_merge_operator(
            ptr, state, ctypes.byref(_merge_operator.VTABLE)
        )
        return self

    def set_associative_merge_operator(self, merge_operator: AssociativeMergeOperator) -> "Options":
        ptr = self.raw()
        state = box(merge_operator, AssociativeMergeOperator)
        self._register("merge_operator")
        self._lib.rocks_options_set_associative_merge_operator(
            ptr, state, ctypes.byref(_merge_operator.ASSOCIATIVE_VTABLE)
        )
        return self

    def set_compaction_filter(self, compaction_filter: CompactionFilter) -> "Options":
        """
        Run one filter, shared by every compaction.

        Raises:
            TypeError: the filter is not marked :class:`~rocks.Shareable`.
        """
        if not isinstance(compaction_filter, Shareable):
            raise TypeError(
                f"{type(compaction_filter).__name__} is called from concurrent compactions "
                "and must subclass rocks.Shareable; use a CompactionFilterFactory otherwise"
            )
        ptr = self.raw()
        state = box(compaction_filter, CompactionFilter)
        self._register("compaction_filter")
        self._lib.rocks_options_set_compaction_filter(
            ptr, state, ctypes.byref(_compaction_filter.VTABLE)
        )
        return self

    def set_compaction_filter_factory(self, factory: CompactionFilterFactory) -> "Options":
        ptr = self.raw()
        state = box(factory, CompactionFilterFactory)
        self._register("compaction_filter_factory")
        self._lib.rocks_options_set_compaction_filter_factory(
            ptr,
            state,
            ctypes.byref(_compaction_filter.FACTORY_VTABLE),
            ctypes.byref(_compaction_filter.VTABLE),
        )
        return self

    def set_prefix_extractor(self, transform: SliceTransform) -> "Options":
        ptr = self.raw()
        state = box(transform, SliceTransform)
        self._register("prefix_extractor")
        self._lib.rocks_options_set_prefix_extractor(
            ptr, state, ctypes.byref(_slice_transform.VTABLE)
        )
        return self

    def add_listener(self, listener: EventListener) -> "Options":
        ptr = self.raw()
        state = box(listener, EventListener)
        self._lib.rocks_options_add_listener(
            ptr,
            state,
            ctypes.byref(_listener.VTABLE),
            ctypes.byref(_listener.COMPACTION_VTABLE),
        )
        return self

    def add_table_properties_collector_factory(
        self, factory: TablePropertiesCollectorFactory
    ) -> "Options":
        ptr = self.raw()
        state = box(factory, TablePropertiesCollectorFactory)
        self._lib.rocks_options_add_table_properties_collector_factory(
            ptr,
            state,
            ctypes.byref(_table_properties.FACTORY_VTABLE),
            ctypes.byref(_table_properties.VTABLE),
        )
        return self

    def set_wal_filter(self, wal_filter: WalFilter) -> "Options":
        ptr = self.raw()
        state = box(wal_filter, WalFilter)
        self._register("wal_filter")
        self._lib.rocks_options_set_wal_filter(
            ptr, state, ctypes.byref(_wal_filter.VTABLE)
        )
        return self


class ReadOptions(_OptionsBase):
    """Per-read options. Bound keys and the snapshot are kept alive here."""

    _create_fn = "rocks_readoptions_create"
    _destroy_fn = "rocks_readoptions_destroy"

    def __init__(self, **kwargs):
        self._snapshot = None
        self._upper_bound: Optional[bytes] = None
        self._lower_bound: Optional[bytes] = None
        super().__init__(**kwargs)

    def set_verify_checksums(self, value: bool) -> "ReadOptions":
        self._lib.rocks_readoptions_set_verify_checksums(self.raw(), _flag(value))
        return self

    def set_fill_cache(self, value: bool) -> "ReadOptions":
        self._lib.rocks_readoptions_set_fill_cache(self.raw(), _flag(value))
        return self

    def set_snapshot(self, snapshot) -> "ReadOptions":
        """Read as of ``snapshot`` (None reads the latest state)."""
        self._lib.rocks_readoptions_set_snapshot(
            self.raw(), None if snapshot is None else snapshot.raw()
        )
        self._snapshot = snapshot
        return self

    @property
    def snapshot(self):
        return self._snapshot

    def set_iterate_upper_bound(self, key: Optional[BytesLike]) -> "ReadOptions":
        """Exclusive upper bound for iterators."""
        self._upper_bound = None if key is None else as_bytes(key, "iterate_upper_bound")
        bound = self._upper_bound
        self._lib.rocks_readoptions_set_iterate_upper_bound(
            self.raw(), bound, 0 if bound is None else len(bound)
        )
        return self

    def set_iterate_lower_bound(self, key: Optional[BytesLike]) -> "ReadOptions":
        """Inclusive lower bound for iterators."""
        self._lower_bound = None if key is None else as_bytes(key, "iterate_lower_bound")
        bound = self._lower_bound
        self._lib.rocks_readoptions_set_iterate_lower_bound(
            self.raw(), bound, 0 if bound is None else len(bound)
        )
        return self

    def set_prefix_same_as_start(self, value: bool) -> "ReadOptions":
        self._lib.rocks_readoptions_set_prefix_same_as_start(self.raw(), _flag(value))
        return self

    def set_total_order_seek(self, value: bool) -> "ReadOptions":
        self._lib.rocks_readoptions_set_total_order_seek(self.raw(), _flag(value))
        return self

    def set_tailing(self, value: bool) -> "ReadOptions":
        self._lib.rocks_readoptions_set_tailing(self.raw(), _flag(value))
        return self


class WriteOptions(_OptionsBase):

    _create_fn = "rocks_writeoptions_create"
    _destroy_fn = "rocks_writeoptions_destroy"

    def set_sync(self, value: bool) -> "WriteOptions":
        self._lib.rocks_writeoptions_set_sync(self.raw(), _flag(value))
        return self

    def set_disable_wal(self, value: bool) -> "WriteOptions":
        self._lib.rocks_writeoptions_disable_wal(self.raw(), _flag(value))
        return self

    def set_no_slowdown(self, value: bool) -> "WriteOptions":
        """Fail with Incomplete instead of waiting when writes are stalled."""
        self._lib.rocks_writeoptions_set_no_slowdown(self.raw(), _flag(value))
        return self

    def set_ignore_missing_column_families(self, value: bool) -> "WriteOptions":
        self._lib.rocks_writeoptions_set_ignore_missing_column_families(self.raw(), _flag(value))
        return self


class FlushOptions(_OptionsBase):

    _create_fn = "rocks_flushoptions_create"
    _destroy_fn = "rocks_flushoptions_destroy"

    def set_wait(self, value: bool) -> "FlushOptions":
        self._lib.rocks_flushoptions_set_wait(self.raw(), _flag(value))
        return self


class BottommostLevelCompaction(IntEnum):
    SKIP = 0
    IF_HAVE_COMPACTION_FILTER = 1
    FORCE = 2
    FORCE_OPTIMIZED = 3


class CompactRangeOptions(_OptionsBase):

    _create_fn = "rocks_compactrangeoptions_create"
    _destroy_fn = "rocks_compactrangeoptions_destroy"

    def set_exclusive_manual_compaction(self, value: bool) -> "CompactRangeOptions":
        self._lib.rocks_compactrangeoptions_set_exclusive_manual_compaction(self.raw(), _flag(value))
        return self

    def set_change_level(self, value: bool) -> "CompactRangeOptions":
        self._lib.rocks_compactrangeoptions_set_change_level(self.raw(), _flag(value))
        return self

    def set_target_level(self, level: int) -> "CompactRangeOptions":
        self._lib.rocks_compactrangeoptions_set_target_level(self.raw(), level)
        return self

    def set_bottommost_level_compaction(self, value: BottommostLevelCompaction) -> "CompactRangeOptions":
        self._lib.rocks_compactrangeoptions_set_bottommost_level_compaction(self.raw(), int(value))
        return self
