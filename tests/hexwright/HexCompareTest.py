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

import random
import unittest

from hexwright.HexCompare import canEncodeTo, canEncodeToPrefix


class CanEncodeToTest(unittest.TestCase):

    def testRandomMatches(self):
        rng = random.Random(7)
        for size in (0, 1, 2, 31, 256):
            src = bytes(rng.randrange(256) for _ in range(size))
            with self.subTest(size=size):
                self.assertTrue(canEncodeTo(src, src.hex()))
                self.assertTrue(canEncodeTo(src, src.hex().upper()))
                self.assertTrue(canEncodeTo(src, src.hex().encode()))

    def testMixedCase(self):
        self.assertTrue(canEncodeTo(b"\xab\xcd", "aBCd"))
        self.assertTrue(canEncodeTo("hi", "6869"))

    def testMismatch(self):
        self.assertFalse(canEncodeTo(b"\xab", "ac"))
        self.assertFalse(canEncodeTo(b"\xab", "ab0"))
        self.assertFalse(canEncodeTo(b"\xab", "a"))
        self.assertFalse(canEncodeTo(b"", "00"))

    def testRandomNibbleFlip(self):
        rng = random.Random(16)
        digits = "0123456789abcdef"
        for size in (1, 2, 31, 256):
            src = bytes(rng.randrange(256) for _ in range(size))
            encoded = src.hex()
            for _ in range(20):
                i = rng.randrange(len(encoded))
                flipped = rng.choice(digits.replace(encoded[i], ''))
                x = encoded[:i] + flipped + encoded[i + 1:]
                with self.subTest(size=size, index=i, digit=flipped):
                    self.assertFalse(canEncodeTo(src, x))
                    self.assertFalse(canEncodeTo(src, x.upper()))

    def testBytesBelowZeroDigitAreRejected(self):
        # 0x10 | 0x20 == ord('0') and 0x11 | 0x20 == ord('1')
        self.assertFalse(canEncodeTo(b"\x01", b"\x10\x11"))
        self.assertFalse(canEncodeTo(b"\x01", "0\x11"))
        self.assertTrue(canEncodeTo(b"\x01", "01"))

    def testNonHexCharacters(self):
        self.assertFalse(canEncodeTo(b"\x0a", "0g"))
        self.assertFalse(canEncodeTo(b"\x0a", "0 "))


class CanEncodeToPrefixTest(unittest.TestCase):

    def testEveryPrefixLength(self):
        src = b"\x01\x23\xab\xef"
        encoded = src.hex()
        for n in range(len(encoded) + 1):
            with self.subTest(n=n):
                self.assertTrue(canEncodeToPrefix(src, encoded[:n]))
                self.assertTrue(canEncodeToPrefix(src, encoded[:n].upper()))

    def testOddPrefix(self):
        self.assertTrue(canEncodeToPrefix(b"\xab\xcd", "abC"))
        self.assertFalse(canEncodeToPrefix(b"\xab\xcd", "abd"))
        self.assertFalse(canEncodeToPrefix(b"\x01", b"\x10"))

    def testTooLong(self):
        self.assertFalse(canEncodeToPrefix(b"\xab", "abc"))
        self.assertFalse(canEncodeToPrefix(b"", "a"))

    def testEmptyPrefix(self):
        self.assertTrue(canEncodeToPrefix(b"", ""))
        self.assertTrue(canEncodeToPrefix(b"\xff", ""))

    def testMismatch(self):
        self.assertFalse(canEncodeToPrefix(b"\xab\xcd", "abce"))
        self.assertFalse(canEncodeToPrefix(b"\xab\xcd", "b"))


if __name__ == '__main__':
    unittest.main()
