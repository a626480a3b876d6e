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

import hashlib
import io
import os
import tempfile
import unittest

from hexwright.Checksums import (
    HashChecksum, HashVerifier, checkHashChecksums, newVerifiers, verifyChecksum, verifyFileChecksum,
)
from hexwright.Errors import HashExpectedEmptyError, HashMissingError

HELLO_SHA256 = "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"
HELLO_MD5 = hashlib.md5(b"hello world").hexdigest()


class FailingReader:

    def __init__(self):
        self.closed = False

    def readinto(self, b):
        raise OSError("read failed")

    def close(self):
        self.closed = True


class HashChecksumTest(unittest.TestCase):

    def testFromAlgorithm(self):
        checksum = HashChecksum.fromAlgorithm('sha256', HELLO_SHA256)
        self.assertTrue(checksum.matches(hashlib.sha256(b"hello world").digest()))
        self.assertTrue(HashChecksum.fromAlgorithm('sha256', HELLO_SHA256.upper()).matches(
            hashlib.sha256(b"hello world").digest()))
        self.assertFalse(checksum.matches(hashlib.sha256(b"hello").digest()))

    def testUnknownAlgorithm(self):
        self.assertRaises(ValueError, HashChecksum.fromAlgorithm, 'nope', 'ab')

    def testPrefix(self):
        digest = hashlib.sha256(b"hello world").digest()
        self.assertTrue(HashChecksum(hashlib.sha256, HELLO_SHA256[:9], isPrefix=True).matches(digest))
        self.assertFalse(HashChecksum(hashlib.sha256, HELLO_SHA256[:9]).matches(digest))
        self.assertFalse(HashChecksum(hashlib.sha256, "c" + HELLO_SHA256[1:9], isPrefix=True).matches(digest))


class CheckHashChecksumsTest(unittest.TestCase):

    def testMalformed(self):
        with self.assertRaises(HashMissingError) as cm:
            checkHashChecksums([HashChecksum(hashlib.md5, HELLO_MD5), HashChecksum(None, "ab")])
        self.assertEqual(cm.exception.index, 1)

        with self.assertRaises(HashMissingError):
            checkHashChecksums([HashChecksum(lambda: None, "ab")])

        with self.assertRaises(HashExpectedEmptyError) as cm:
            checkHashChecksums([HashChecksum(hashlib.md5, "")])
        self.assertEqual(cm.exception.index, 0)

    def testFreshHashes(self):
        hashes = checkHashChecksums([HashChecksum(hashlib.md5, HELLO_MD5), HashChecksum(hashlib.sha256, "ab")])
        self.assertEqual(len(hashes), 2)
        self.assertEqual(hashes[0].hexdigest(), hashlib.md5().hexdigest())


class HashVerifierTest(unittest.TestCase):

    def testWriteAndMatch(self):
        verifier = HashVerifier(HashChecksum(hashlib.sha256, HELLO_SHA256))
        self.assertFalse(verifier.match())
        self.assertEqual(verifier.write(b"hello "), 6)
        verifier.write(b"world")
        self.assertTrue(verifier.match())
        # match() does not consume the running hash
        self.assertTrue(verifier.match())
        self.assertEqual(verifier.hexdigest(), HELLO_SHA256)

        verifier.reset()
        self.assertEqual(verifier.hexdigest(), hashlib.sha256().hexdigest())

    def testNewVerifiers(self):
        verifiers = newVerifiers([HashChecksum(hashlib.md5, HELLO_MD5), HashChecksum(hashlib.sha256, HELLO_SHA256)])
        for verifier in verifiers:
            verifier.write(b"hello world")
        self.assertTrue(all(v.match() for v in verifiers))
        self.assertEqual(newVerifiers([]), [])


class VerifyChecksumTest(unittest.TestCase):

    def testStream(self):
        self.assertTrue(verifyChecksum(io.BytesIO(b"hello world"), False, HashChecksum(hashlib.sha256, HELLO_SHA256)))
        self.assertTrue(verifyChecksum(
            io.BytesIO(b"hello world"), False,
            HashChecksum(hashlib.sha256, HELLO_SHA256), HashChecksum(hashlib.md5, HELLO_MD5[:6], isPrefix=True),
        ))
        self.assertFalse(verifyChecksum(
            io.BytesIO(b"hello world"), False,
            HashChecksum(hashlib.sha256, HELLO_SHA256), HashChecksum(hashlib.md5, "00"),
        ))

    def testLargeStream(self):
        data = os.urandom(100000)
        checksum = HashChecksum(hashlib.sha1, hashlib.sha1(data).hexdigest())
        self.assertTrue(verifyChecksum(io.BytesIO(data), False, checksum))

    def testNoFileAndNoChecksums(self):
        self.assertFalse(verifyChecksum(None, True, HashChecksum(hashlib.sha256, HELLO_SHA256)))
        self.assertTrue(verifyChecksum(io.BytesIO(b"anything"), False))

    def testCloseFile(self):
        f = io.BytesIO(b"hello world")
        verifyChecksum(f, False, HashChecksum(hashlib.sha256, HELLO_SHA256))
        self.assertFalse(f.closed)
        verifyChecksum(f, True, HashChecksum(hashlib.sha256, HELLO_SHA256))
        self.assertTrue(f.closed)

    def testReadError(self):
        reader = FailingReader()
        self.assertFalse(verifyChecksum(reader, True, HashChecksum(hashlib.sha256, HELLO_SHA256)))
        self.assertTrue(reader.closed)

    def testMalformedChecksumRaises(self):
        f = io.BytesIO(b"hello world")
        with self.assertRaises(HashExpectedEmptyError):
            verifyChecksum(f, True, HashChecksum(hashlib.sha256, ""))
        self.assertTrue(f.closed)


class VerifyFileChecksumTest(unittest.TestCase):

    def setUp(self):
        self.tempDir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tempDir.name, 'hello.txt')
        with open(self.path, 'wb') as f:
            f.write(b"hello world")

    def tearDown(self):
        self.tempDir.cleanup()

    def testFile(self):
        self.assertTrue(verifyFileChecksum(self.path, HashChecksum(hashlib.sha256, HELLO_SHA256)))
        self.assertFalse(verifyFileChecksum(self.path, HashChecksum(hashlib.sha256, HELLO_MD5)))

    def testMissingFile(self):
        missing = os.path.join(self.tempDir.name, 'missing')
        self.assertFalse(verifyFileChecksum(missing, HashChecksum(hashlib.sha256, HELLO_SHA256)))
        self.assertFalse(verifyFileChecksum(missing))


if __name__ == '__main__':
    unittest.main()
