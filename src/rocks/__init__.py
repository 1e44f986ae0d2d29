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
Rocks Python bindings

ctypes bindings to the native rocks LSM storage engine.

Provides:
- Database access with column families, iterators, snapshots and write batches
- Python extension points called by the engine: comparators, merge
  operators, compaction filters, prefix extractors, event listeners, table
  properties collectors and WAL filters
- Shared engine resources: caches, rate limiters, bloom filters, statistics
"""

import logging

from .config import BridgeConfig, configure, get_config
from .errors import (
    RocksError,
    BridgeError,
    LibraryNotFoundError,
    CallbackContractError,
    Code,
    SubCode,
    Status,
    NotFound,
    Corruption,
    NotSupported,
    InvalidArgument,
    IOError,
    MergeInProgress,
    Incomplete,
    ShutdownInProgress,
    TimedOut,
    Aborted,
    Busy,
    Expired,
    TryAgain,
    CompactionTooLarge,
    ColumnFamilyDropped,
)
from .registry import Shareable
from .comparator import Comparator
from .merge_operator import MergeOperator, AssociativeMergeOperator
from .compaction_filter import (
    CompactionFilter,
    CompactionFilterContext,
    CompactionFilterFactory,
    Decision,
    DecisionKind,
    ValueType,
)
from .slice_transform import SliceTransform
from .listener import (
    EventListener,
    CompactionEventListener,
    FlushJobInfo,
    CompactionJobInfo,
    TableFileCreationInfo,
    TableFileDeletionInfo,
    MemTableInfo,
    ExternalFileIngestionInfo,
    WriteStallInfo,
    FlushReason,
    CompactionReason,
    TableFileCreationReason,
    BackgroundErrorReason,
    WriteStallCondition,
)
from .table_properties import (
    EntryType,
    TablePropertiesCollector,
    TablePropertiesCollectorFactory,
    UserCollectedProperties,
)
from .write_batch import WriteBatch, WriteBatchHandler
from .wal_filter import WalFilter, WalProcessingOption, continue_and_change_batch
from .cache import Cache
from .rate_limiter import RateLimiter
from .filter_policy import BloomFilterPolicy
from .statistics import Statistics, Ticker, Histogram, HistogramData, StatsLevel
from .persistent_cache import PersistentCache
from .options import (
    Options,
    ReadOptions,
    WriteOptions,
    FlushOptions,
    CompactRangeOptions,
    BottommostLevelCompaction,
)
from .iterator import Iterator
from .snapshot import Snapshot
from .db import DB, ColumnFamilyHandle, DEFAULT_COLUMN_FAMILY_NAME

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
