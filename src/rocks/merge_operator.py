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
Read-modify-write merge operators.

Two flavours are supported:

* :class:`MergeOperator` sees the existing value and the full list of pending
  operands at once, and may optionally combine two operands early.
* :class:`AssociativeMergeOperator` only ever combines two values; the
  engine folds the operand list pairwise.

Returning None (or raising) reports a failed merge, which the engine surfaces
as a Corruption status on the read that triggered it.

Example:
    class Concat(rocks.AssociativeMergeOperator):
        def name(self):
            return "concat"

        def merge(self, key, existing_value, value):
            if existing_value is None:
                return value
            return existing_value + b"|" + value
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ._ffi import (
    ASSOCIATIVE_MERGE_FN,
    FULL_MERGE_FN,
    PARTIAL_MERGE_FN,
    AssociativeMergeOperatorVTable,
    MergeOperatorVTable,
    _FFI,
)
from .registry import DROP, NAME, Shareable, guarded
from .slice import as_bytes, assign, view, view_array


class MergeOperator(Shareable, ABC):
    """Full merge operator."""

    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def full_merge(
        self, key: bytes, existing_value: Optional[bytes], operands: List[bytes]
    ) -> Optional[bytes]:
        """
        Apply ``operands`` (oldest first) on top of ``existing_value``.

        Args:
            key: The user key being merged.
            existing_value: Current value, or None when the key has no base.
            operands: Pending merge operands in write order.

        Returns:
            The merged value, or None if the merge failed.
        """
        pass

    def partial_merge(self, key: bytes, left: bytes, right: bytes) -> Optional[bytes]:
        """Combine two adjacent operands, or return None to leave them alone."""
        return None


class AssociativeMergeOperator(Shareable, ABC):
    """Merge operator whose operands and values share one representation."""

    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def merge(self, key: bytes, existing_value: Optional[bytes], value: bytes) -> Optional[bytes]:
        pass


def _optional_view(ptr, size):
    return None if not ptr else view(ptr, size)


def _emit(out, result) -> int:
    if result is None:
        return 0
    assign(_FFI.get_lib(), out, as_bytes(result, "merge result"))
    return 1


@guarded(0)
def _full_merge(op, key, key_len, existing, existing_len, operands, operand_lens, num_operands, out):
    return _emit(out, op.full_merge(
        view(key, key_len),
        _optional_view(existing, existing_len),
        view_array(operands, operand_lens, num_operands),
    ))


@guarded(0)
def _partial_merge(op, key, key_len, left, left_len, right, right_len, out):
    return _emit(out, op.partial_merge(view(key, key_len), view(left, left_len), view(right, right_len)))


@guarded(0)
def _associative_merge(op, key, key_len, existing, existing_len, value, value_len, out):
    return _emit(out, op.merge(
        view(key, key_len),
        _optional_view(existing, existing_len),
        view(value, value_len),
    ))


VTABLE = MergeOperatorVTable(
    name=NAME,
    full_merge=FULL_MERGE_FN(_full_merge),
    partial_merge=PARTIAL_MERGE_FN(_partial_merge),
    drop=DROP,
)

ASSOCIATIVE_VTABLE = AssociativeMergeOperatorVTable(
    name=NAME,
    merge=ASSOCIATIVE_MERGE_FN(_associative_merge),
    drop=DROP,
)
