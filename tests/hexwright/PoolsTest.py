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

import threading
import unittest

from hexwright.Pools import (
    ENCODE_CHUNK_LEN, FORMAT_CHUNK_LEN, INT64_BUFFER_LEN, LETTER_CASE_DIFF, LOWERCASE_HEX_TABLE, SOURCE_CHUNK_LEN,
    UPPERCASE_HEX_TABLE, BufferPool, PoolRegistry, getHexTable, getPools,
)


class HexTableTest(unittest.TestCase):

    def testTables(self):
        self.assertEqual(LOWERCASE_HEX_TABLE, b"0123456789abcdef")
        self.assertEqual(UPPERCASE_HEX_TABLE, b"0123456789ABCDEF")
        self.assertIs(getHexTable(False), LOWERCASE_HEX_TABLE)
        self.assertIs(getHexTable(True), UPPERCASE_HEX_TABLE)

    def testLetterCaseDiff(self):
        self.assertEqual(LETTER_CASE_DIFF, 0x20)
        for lower, upper in zip(LOWERCASE_HEX_TABLE[10:], UPPERCASE_HEX_TABLE[10:]):
            with self.subTest(letter=chr(lower)):
                self.assertEqual(upper ^ LETTER_CASE_DIFF, lower)


class BufferPoolTest(unittest.TestCase):

    def testGetReturnsBufferOfPoolSize(self):
        pool = BufferPool(32)
        buf = pool.get()
        self.assertIsInstance(buf, bytearray)
        self.assertEqual(len(buf), 32)

    def testPutThenGetReusesBuffer(self):
        pool = BufferPool(16)
        buf = pool.get()
        pool.put(buf)
        self.assertEqual(pool.idle, 1)
        self.assertIs(pool.get(), buf)
        self.assertEqual(pool.idle, 0)

    def testPutRejectsWrongLength(self):
        pool = BufferPool(16)
        with self.assertRaises(ValueError):
            pool.put(bytearray(15))
        self.assertEqual(pool.idle, 0)

    def testInvalidSize(self):
        with self.assertRaises(ValueError):
            BufferPool(0)

    def testMaxIdle(self):
        pool = BufferPool(8, maxIdle=2)
        buffers = [pool.get() for _ in range(4)]
        for buf in buffers:
            pool.put(buf)
        self.assertEqual(pool.idle, 2)

    def testLeaseReturnsBufferOnError(self):
        pool = BufferPool(8)
        with self.assertRaises(RuntimeError):
            with pool.lease() as buf:
                self.assertEqual(len(buf), 8)
                raise RuntimeError("boom")
        self.assertEqual(pool.idle, 1)

    def testConcurrentLeases(self):
        pool = BufferPool(64)
        seen = []
        lock = threading.Lock()

        def worker():
            for _ in range(200):
                with pool.lease() as buf:
                    with lock:
                        seen.append(id(buf))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(seen), 1600)
        self.assertLessEqual(pool.idle, 8)
        self.assertGreaterEqual(pool.idle, 1)


class PoolRegistryTest(unittest.TestCase):

    def testSingleton(self):
        self.assertIs(getPools(), PoolRegistry.getInstance())

    def testPoolSizes(self):
        pools = getPools()
        self.assertEqual(pools.sourceChunk.size, SOURCE_CHUNK_LEN)
        self.assertEqual(pools.encodeChunk.size, ENCODE_CHUNK_LEN)
        self.assertEqual(pools.formatChunk.size, FORMAT_CHUNK_LEN)
        self.assertEqual(pools.int64Scratch.size, INT64_BUFFER_LEN)
        self.assertEqual(ENCODE_CHUNK_LEN, SOURCE_CHUNK_LEN * 2)
        self.assertEqual(INT64_BUFFER_LEN, 17)


if __name__ == '__main__':
    unittest.main()
