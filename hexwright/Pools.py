#!/usr/bin/env python
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0
#
# hexwright - Streaming hex codec and verified file writer
# Copyright (C) 2025-2026 hexwright contributors
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
Hex alphabets and the process-wide pools of reusable byte buffers.

Pools hand out fixed-size bytearrays. A leased buffer has exactly one holder
and must come back exactly once, with its original length.
"""

import threading

from contextlib import contextmanager

from hexwright.Kernel import Singleton

LOWERCASE_HEX_TABLE = b"0123456789abcdef"
UPPERCASE_HEX_TABLE = b"0123456789ABCDEF"

# 'A' ^ 'a': flips the case of an ASCII letter, leaves nothing else comparable
LETTER_CASE_DIFF = ord('A') ^ ord('a')

SOURCE_CHUNK_LEN = 512
ENCODE_CHUNK_LEN = SOURCE_CHUNK_LEN * 2
FORMAT_CHUNK_LEN = 1024
INT64_BUFFER_LEN = 17 # sign + 16 nibbles


def getHexTable(upper):
    return UPPERCASE_HEX_TABLE if upper else LOWERCASE_HEX_TABLE


class BufferPool:
    """Thread-safe free list of bytearrays of one fixed size."""

    def __init__(self, size: int, maxIdle: int = 64):
        if size <= 0:
            raise ValueError(f"buffer size ({size}) must be positive")
        self.size = size
        self.maxIdle = maxIdle
        self._free = []
        self._lock = threading.Lock()

    def get(self) -> bytearray:
        with self._lock:
            if self._free:
                return self._free.pop()
        return bytearray(self.size)

    def put(self, buf: bytearray):
        if len(buf) != self.size:
            raise ValueError(f"buffer of length {len(buf)} returned to a pool of size {self.size}")
        with self._lock:
            if len(self._free) < self.maxIdle:
                self._free.append(buf)

    @property
    def idle(self) -> int:
        with self._lock:
            return len(self._free)

    @contextmanager
    def lease(self):
        buf = self.get()
        try:
            yield buf
        finally:
            self.put(buf)


class PoolRegistry(Singleton):
    """The four process-wide pools used by the hex codec."""

    def initialize(self):
        self.sourceChunk = BufferPool(SOURCE_CHUNK_LEN)
        self.encodeChunk = BufferPool(ENCODE_CHUNK_LEN)
        self.formatChunk = BufferPool(FORMAT_CHUNK_LEN)
        self.int64Scratch = BufferPool(INT64_BUFFER_LEN)


def getPools() -> PoolRegistry:
    return PoolRegistry.getInstance()
