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
User-defined key ordering.

Example:
    class ReverseComparator(rocks.Comparator):
        def name(self):
            return "reverse"

        def compare(self, a, b):
            return (a < b) - (a > b)

    opts.set_comparator(ReverseComparator())

An exception from :meth:`Comparator.compare` is logged and reported to the
engine as "equal". The name is persisted by the engine and must not change
between opens of the same database.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ._ffi import (
    COMPARE_FN,
    EQUAL_FN,
    SEPARATOR_FN,
    SUCCESSOR_FN,
    ComparatorVTable,
    _FFI,
)
from .registry import DROP, NAME, Shareable, guarded
from .slice import assign, view

logger = logging.getLogger(__name__)


class Comparator(Shareable, ABC):
    """Total order over keys. Must be stateless and thread safe."""

    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def compare(self, a: bytes, b: bytes) -> int:
        """Negative, zero or positive as ``a`` sorts before, with or after ``b``."""
        pass

    def equal(self, a: bytes, b: bytes) -> bool:
        return self.compare(a, b) == 0

    def find_shortest_separator(self, start: bytes, limit: bytes) -> Optional[bytes]:
        """
        Return a short key in ``[start, limit)``, or None to keep ``start``.

        Only used to shrink index blocks; the default never shortens.
        """
        return None

    def find_short_successor(self, key: bytes) -> Optional[bytes]:
        """Return a short key ``>= key``, or None to keep ``key``."""
        return None


def _sign(value) -> int:
    return (value > 0) - (value < 0)


@guarded(0)
def _compare(cmp, a, a_len, b, b_len):
    return _sign(cmp.compare(view(a, a_len), view(b, b_len)))


# a failing compare reports "equal", so equal() must agree with it
@guarded(1)
def _equal(cmp, a, a_len, b, b_len):
    a, b = view(a, a_len), view(b, b_len)
    try:
        return 1 if cmp.equal(a, b) else 0
    except Exception:
        logger.exception("%s.equal raised; falling back to compare", type(cmp).__name__)
    return 1 if _sign(cmp.compare(a, b)) == 0 else 0


@guarded(0)
def _find_shortest_separator(cmp, start, start_len, limit, limit_len, out):
    result = cmp.find_shortest_separator(view(start, start_len), view(limit, limit_len))
    if result is None:
        return 0
    assign(_FFI.get_lib(), out, result)
    return 1


@guarded(0)
def _find_short_successor(cmp, key, key_len, out):
    result = cmp.find_short_successor(view(key, key_len))
    if result is None:
        return 0
    assign(_FFI.get_lib(), out, result)
    return 1


VTABLE = ComparatorVTable(
    name=NAME,
    compare=COMPARE_FN(_compare),
    equal=EQUAL_FN(_equal),
    find_shortest_separator=SEPARATOR_FN(_find_shortest_separator),
    find_short_successor=SUCCESSOR_FN(_find_short_successor),
    drop=DROP,
)
