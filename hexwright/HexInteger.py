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
Hex rendering of signed 64-bit integers.

digits is the minimum number of hex digits, sign excluded; shorter values are
left-padded with '0' between the sign and the most significant digit. The
result always equals format(x, '0{w}x') with w = digits, plus one when x < 0.
"""

import io

from hexwright.Errors import DstTooSmallError, ShortWriteError
from hexwright.Pools import INT64_BUFFER_LEN, getHexTable, getPools
from hexwright.Streams import writeFully

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

MIN_INT64_HEX = b"-8000000000000000"


def encodeInt64DstLen(digits: int) -> int:
    """Length of a destination buffer large enough for any int64 with the given digits."""
    if digits < INT64_BUFFER_LEN:
        return INT64_BUFFER_LEN
    return digits + 1


def _checkRange(x):
    if x < INT64_MIN or x > INT64_MAX:
        raise OverflowError(f"{x} is out of the signed 64-bit integer range")


def _leadingChunks(negative, zeros):
    # Sign and leading zeros in pieces no longer than the int64 scratch buffer
    head = (b'-' if negative else b'') + b'0' * zeros
    for i in range(0, len(head), INT64_BUFFER_LEN):
        yield head[i:i + INT64_BUFFER_LEN]


def _renderInt64(x, upper, digits):
    """Yield the rendering of x as one or more byte chunks."""
    if x == 0 and digits <= 1:
        yield b'0'
        return

    negative = x < 0
    with getPools().int64Scratch.lease() as buf:
        end = len(buf)
        if x == INT64_MIN:
            idx = end - (len(MIN_INT64_HEX) - 1)
            buf[idx:] = MIN_INT64_HEX[1:]
        else:
            ht = getHexTable(upper)
            v = -x if negative else x
            idx = end
            while True:
                idx -= 1
                buf[idx] = ht[v & 0x0F]
                v >>= 4
                if v == 0:
                    break

        if digits < INT64_BUFFER_LEN:
            while end - idx < digits:
                idx -= 1
                buf[idx] = ord('0')
            if negative:
                idx -= 1
                buf[idx] = ord('-')
        else:
            yield from _leadingChunks(negative, digits - (end - idx))
        yield bytes(buf[idx:])


def encodeInt64(dst: bytearray, x: int, upper: bool = False, digits: int = 0) -> int:
    """Write the hex of x into dst; returns the number of bytes written."""
    _checkRange(x)
    data = b''.join(_renderInt64(x, upper, digits))
    if len(dst) < len(data):
        raise DstTooSmallError(len(dst), len(data))
    dst[:len(data)] = data
    return len(data)


def encodeInt64ToString(x: int, upper: bool = False, digits: int = 0) -> str:
    _checkRange(x)
    return b''.join(_renderInt64(x, upper, digits)).decode('ascii')


def encodeInt64To(sink, x: int, upper: bool = False, digits: int = 0) -> int:
    """
    Stream the hex of x to sink; returns the number of bytes written.

    Text sinks (io.TextIOBase) receive str, every other sink receives bytes.
    """
    if sink is None:
        raise ValueError("sink is None")
    _checkRange(x)
    isText = isinstance(sink, io.TextIOBase)
    written = 0
    for chunk in _renderInt64(x, upper, digits):
        try:
            written += writeFully(sink, chunk.decode('ascii') if isText else chunk)
        except ShortWriteError as e:
            raise ShortWriteError(written + e.written) from e
    return written
