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
Prefix extractors.

A slice transform maps a key to its prefix so that bloom filters and
``prefix_same_as_start`` iteration can work on key prefixes. Built-in fixed
and capped extractors are available directly on
:class:`~rocks.Options`; subclass :class:`SliceTransform` for anything else.
"""

import logging
from abc import ABC, abstractmethod

from ._ffi import KEY_PREDICATE_FN, TRANSFORM_FN, SliceTransformVTable, _FFI
from .registry import DROP, NAME, Shareable, borrow, guarded
from .errors import CallbackContractError
from .slice import assign, view

logger = logging.getLogger(__name__)


class SliceTransform(Shareable, ABC):

    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def transform(self, key: bytes) -> bytes:
        """Return the prefix of ``key``. Only called for keys in the domain."""
        pass

    @abstractmethod
    def in_domain(self, key: bytes) -> bool:
        pass

    def in_range(self, prefix: bytes) -> bool:
        return False


def _transform(state, key, key_len, out):
    # any failure leaves the key itself as its prefix
    lib = _FFI.get_lib()
    data = view(key, key_len)
    try:
        transform = borrow(state)
    except CallbackContractError:
        logger.critical("transform called with unknown state %r", state)
        lib.rocks_string_assign(out, data, len(data))
        return
    try:
        assign(lib, out, transform.transform(data))
    except Exception:
        logger.exception("%s.transform raised; keeping the whole key", type(transform).__name__)
        lib.rocks_string_assign(out, data, len(data))


@guarded(0)
def _in_domain(transform, key, key_len):
    return 1 if transform.in_domain(view(key, key_len)) else 0


@guarded(0)
def _in_range(transform, prefix, prefix_len):
    return 1 if transform.in_range(view(prefix, prefix_len)) else 0


VTABLE = SliceTransformVTable(
    name=NAME,
    transform=TRANSFORM_FN(_transform),
    in_domain=KEY_PREDICATE_FN(_in_domain),
    in_range=KEY_PREDICATE_FN(_in_range),
    drop=DROP,
)
