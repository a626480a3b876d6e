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
Sink and source helpers shared by the codec and the writer pipeline.

A sink is anything with write(data) returning the number of bytes taken (or
None, meaning all of them). A source is anything with readinto(buf) or
read(n); a zero-length read is end of stream.
"""

import io

from enum import Enum

from hexwright.Errors import ShortWriteError


class StreamState(Enum):
    """Lifecycle of an encoder, formatter, dumper or writer"""
    FRESH = "FRESH" # Nothing accepted yet
    WRITING = "WRITING" # At least one byte accepted
    CLOSED = "CLOSED" # Closed successfully, close() is a no-op from now on
    ERRORED = "ERRORED" # An error is latched and re-raised by every operation


def writeFully(sink, data) -> int:
    """Write data to sink; a partial write raises ShortWriteError carrying the count."""
    n = sink.write(data)
    if n is None:
        return len(data)
    if n < len(data):
        raise ShortWriteError(n, len(data))
    return n


def readSome(source, buf) -> int:
    """Fill as much of buf as the source offers in one call. Returns 0 at end of stream."""
    readinto = getattr(source, 'readinto', None)
    if readinto is not None:
        n = readinto(buf)
        return n or 0

    data = source.read(len(buf))
    if not data:
        return 0
    n = len(data)
    buf[:n] = data
    return n


class MultiWriter:
    """
    Tee: every write goes to the primary sink first, then to each copy in order.

    A failing copy raises after the primary has already received the bytes;
    callers latch that error and stop writing.
    """

    def __init__(self, primary, *copies):
        self.primary = primary
        self.copies = copies

    def write(self, data) -> int:
        n = writeFully(self.primary, data)
        for copy in self.copies:
            writeFully(copy, data)
        return n

    def flush(self):
        flush = getattr(self.primary, 'flush', None)
        if flush is not None:
            flush()


class SinkRawIO(io.RawIOBase):
    """Expose a sink as a RawIOBase so io.BufferedWriter can buffer it."""

    def __init__(self, sink):
        super().__init__()
        self._sink = sink

    def writable(self):
        return True

    def write(self, b):
        if self._sink is None:
            return len(b)
        n = self._sink.write(b)
        return len(b) if n is None else n

    def release(self):
        """Detach from the sink; bytes written afterwards are dropped."""
        self._sink = None
