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
Engine statistics.

Example:
    stats = rocks.Statistics()
    opts.set_statistics(stats)
    ...
    counts = stats.get_ticker_counts()      # np.ndarray[uint64], indexed by Ticker
    print(counts[rocks.Ticker.BYTES_WRITTEN])
"""

import ctypes
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

import numpy as np

from ._ffi import C_HistogramData, _FFI
from .errors import invoke
from .handle import NativeHandle
from .slice import NativeString


class Ticker(IntEnum):
    BLOCK_CACHE_MISS = 0
    BLOCK_CACHE_HIT = 1
    BLOCK_CACHE_ADD = 2
    BLOOM_FILTER_USEFUL = 3
    MEMTABLE_HIT = 4
    MEMTABLE_MISS = 5
    COMPACTION_KEY_DROP_NEWER_ENTRY = 6
    COMPACTION_KEY_DROP_OBSOLETE = 7
    COMPACTION_KEY_DROP_USER = 8
    NUMBER_KEYS_WRITTEN = 9
    NUMBER_KEYS_READ = 10
    NUMBER_KEYS_UPDATED = 11
    BYTES_WRITTEN = 12
    BYTES_READ = 13
    NUMBER_DB_SEEK = 14
    NUMBER_DB_NEXT = 15
    NUMBER_DB_PREV = 16
    STALL_MICROS = 17
    NUMBER_MERGE_FAILURES = 18
    WAL_FILE_SYNCED = 19
    WAL_FILE_BYTES = 20
    FLUSH_WRITE_BYTES = 21
    COMPACT_READ_BYTES = 22
    COMPACT_WRITE_BYTES = 23


class Histogram(IntEnum):
    DB_GET = 0
    DB_WRITE = 1
    COMPACTION_TIME = 2
    WAL_FILE_SYNC_MICROS = 3
    DB_SEEK = 4
    BYTES_PER_READ = 5
    BYTES_PER_WRITE = 6
    FLUSH_TIME = 7


class StatsLevel(IntEnum):
    DISABLE_ALL = 0
    EXCEPT_TICKERS = 1
    EXCEPT_HISTOGRAM_OR_TIMERS = 2
    EXCEPT_TIMERS = 3
    EXCEPT_DETAILED_TIMERS = 4
    EXCEPT_TIME_FOR_MUTEX = 5
    ALL = 6


@dataclass(frozen=True)
class HistogramData:
    median: float
    percentile95: float
    percentile99: float
    average: float
    standard_deviation: float
    max: float
    count: int
    sum: int
    min: float


class Statistics(NativeHandle):
    """Ticker and histogram collector attached through ``Options.set_statistics``."""

    _destroy_fn = "rocks_statistics_destroy"
    _copy_fn = "rocks_statistics_copy"

    def __init__(self):
        super().__init__(_FFI.get_lib().rocks_statistics_create())

    def get_ticker_count(self, ticker: Union[Ticker, int]) -> int:
        return self._lib.rocks_statistics_get_ticker_count(self.raw(), int(ticker))

    def get_and_reset_ticker_count(self, ticker: Union[Ticker, int]) -> int:
        return self._lib.rocks_statistics_get_and_reset_ticker_count(self.raw(), int(ticker))

    def get_ticker_counts(self) -> np.ndarray:
        """
        Snapshot every ticker at once.

        Returns:
            ``np.ndarray`` of ``uint64`` indexed by ticker id.
        """
        total = self._lib.rocks_statistics_get_ticker_counts(self.raw(), 0, None)
        counts = np.zeros(total, dtype=np.uint64)
        if total:
            counts = np.ascontiguousarray(counts)
            written = self._lib.rocks_statistics_get_ticker_counts(
                self.raw(), total, counts.ctypes.data_as(ctypes.POINTER(ctypes.c_uint64))
            )
            counts = counts[:min(written, total)]
        return counts

    def histogram_data(self, histogram: Union[Histogram, int]) -> HistogramData:
        data = C_HistogramData()
        self._lib.rocks_statistics_histogram_data(self.raw(), int(histogram), ctypes.byref(data))
        return HistogramData(
            median=data.median,
            percentile95=data.percentile95,
            percentile99=data.percentile99,
            average=data.average,
            standard_deviation=data.standard_deviation,
            max=data.max,
            count=data.count,
            sum=data.sum,
            min=data.min,
        )

    @property
    def stats_level(self) -> StatsLevel:
        return StatsLevel(self._lib.rocks_statistics_get_stats_level(self.raw()))

    def set_stats_level(self, level: StatsLevel) -> None:
        self._lib.rocks_statistics_set_stats_level(self.raw(), int(level))

    def reset(self) -> None:
        invoke(self._lib.rocks_statistics_reset, self.raw())

    def to_string(self) -> str:
        with NativeString() as out:
            self._lib.rocks_statistics_to_string(self.raw(), out.raw())
            return out.value().decode("utf-8", errors="replace")

    def __str__(self) -> str:
        return self.to_string()
