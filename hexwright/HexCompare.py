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
"""Case-insensitive checks of hex text against source bytes, without encoding them."""

from hexwright.HexCodec import asBytes, encodedLen
from hexwright.Pools import LETTER_CASE_DIFF, LOWERCASE_HEX_TABLE

ZERO = ord('0')


def _pairMatches(b, hi, lo):
    # Bytes below '0' can equal a table entry once OR'd with 0x20
    return (
        hi >= ZERO and lo >= ZERO and
        LOWERCASE_HEX_TABLE[b >> 4] == hi | LETTER_CASE_DIFF and
        LOWERCASE_HEX_TABLE[b & 0x0F] == lo | LETTER_CASE_DIFF
    )


def canEncodeTo(src, x) -> bool:
    """True if x is the hex encoding of src, in either letter case."""
    src, x = asBytes(src), asBytes(x)
    n = encodedLen(len(src))
    if n != len(x):
        return False
    for i in range(0, n, 2):
        if not _pairMatches(src[i >> 1], x[i], x[i + 1]):
            return False
    return True


def canEncodeToPrefix(src, prefix) -> bool:
    """True if prefix is a prefix (any length, odd included) of the hex encoding of src."""
    src, prefix = asBytes(src), asBytes(prefix)
    n = len(prefix)
    if n > encodedLen(len(src)):
        return False
    n -= n & 1
    for i in range(0, n, 2):
        if not _pairMatches(src[i >> 1], prefix[i], prefix[i + 1]):
            return False
    if len(prefix) & 1:
        return prefix[n] >= ZERO and LOWERCASE_HEX_TABLE[src[n >> 1] >> 4] == prefix[n] | LETTER_CASE_DIFF
    return True
