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
import os
import tempfile
import unittest

import requests
import requests_mock

from hexwright.Checksums import HashChecksum
from hexwright.Download import createSession, httpCustomDownload, httpCustomUpdate, httpDownload, httpUpdate
from hexwright.Errors import HttpStatusError, VerificationFailedError
from hexwright.Settings import SettingsGetter
from hexwright.Utils import StallResilientAdapter

URL = "https://files.example.com/data/hello.txt"
BODY = b"hello world"
HELLO_SHA256 = "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"


def sha256Checksum(expectedHex=HELLO_SHA256):
    return HashChecksum(hashlib.sha256, expectedHex)


class DownloadTest(unittest.TestCase):

    def setUp(self):
        self.tempDir = tempfile.TemporaryDirectory()
        self.dest = os.path.join(self.tempDir.name, 'hello.txt')
        self.mocker = requests_mock.Mocker()
        self.mocker.start()
        self.addCleanup(self.mocker.stop)

    def tearDown(self):
        self.tempDir.cleanup()

    def readDest(self):
        with open(self.dest, 'rb') as f:
            return f.read()

    def assertNoTempFiles(self):
        self.assertEqual([n for n in os.listdir(self.tempDir.name) if n.endswith('.tmp')], [])

    def testDownload(self):
        self.mocker.get(URL, content=BODY, headers={'Content-Length': str(len(BODY))})
        calls = []
        n = httpDownload(URL, self.dest, 0o644, sha256Checksum(), progress=lambda done, total: calls.append((done, total)))
        self.assertEqual(n, len(BODY))
        self.assertEqual(self.readDest(), BODY)
        self.assertEqual(calls[-1], (len(BODY), len(BODY)))
        self.assertNoTempFiles()

    def testDownloadWithoutChecksums(self):
        self.mocker.get(URL, content=BODY)
        self.assertEqual(httpDownload(URL, self.dest), len(BODY))
        self.assertEqual(self.readDest(), BODY)

    def testTimeout(self):
        self.mocker.get(URL, content=BODY)
        httpDownload(URL, self.dest)
        self.assertEqual(self.mocker.last_request.timeout, SettingsGetter.getInstance().httpTimeout)
        httpDownload(URL, self.dest, timeout=5)
        self.assertEqual(self.mocker.last_request.timeout, 5)

    def testChecksumMismatchKeepsExistingFile(self):
        with open(self.dest, 'wb') as f:
            f.write(b"old")
        self.mocker.get(URL, content=b"tampered")
        with self.assertRaises(VerificationFailedError):
            httpDownload(URL, self.dest, 0o644, sha256Checksum())
        self.assertEqual(self.readDest(), b"old")
        self.assertNoTempFiles()

    def testChecksumMismatchLeavesNoFile(self):
        self.mocker.get(URL, content=b"tampered")
        self.assertRaises(VerificationFailedError, httpDownload, URL, self.dest, 0o644, sha256Checksum())
        self.assertFalse(os.path.exists(self.dest))
        self.assertNoTempFiles()

    def testEveryChecksumMustMatch(self):
        self.mocker.get(URL, content=BODY)
        md5 = HashChecksum(hashlib.md5, "00" * 16)
        self.assertRaises(VerificationFailedError, httpDownload, URL, self.dest, 0o644, sha256Checksum(), md5)
        self.assertFalse(os.path.exists(self.dest))

    def testHttpStatus(self):
        self.mocker.get(URL, status_code=404, reason="Not Found")
        with self.assertRaises(HttpStatusError) as cm:
            httpDownload(URL, self.dest)
        self.assertEqual(cm.exception.statusCode, 404)
        self.assertEqual(cm.exception.url, URL)
        self.assertIn("404", str(cm.exception))
        self.assertFalse(os.path.exists(self.dest))
        self.assertNoTempFiles()

    def testMalformedChecksumFailsBeforeRequest(self):
        self.mocker.get(URL, content=BODY)
        self.assertRaises(ValueError, httpDownload, URL, self.dest, 0o644, HashChecksum(hashlib.sha256, ""))
        self.assertEqual(self.mocker.call_count, 0)

    def testCustomRequest(self):
        self.mocker.post(URL, content=BODY)
        request = requests.Request('POST', URL, headers={'X-Token': 'secret'}, data=b"query")
        httpCustomDownload(request, self.dest, 0o644, sha256Checksum())
        self.assertEqual(self.mocker.last_request.method, 'POST')
        self.assertEqual(self.mocker.last_request.headers['X-Token'], 'secret')
        self.assertEqual(self.readDest(), BODY)

    def testCustomSession(self):
        self.mocker.get(URL, content=BODY)
        with requests.Session() as session:
            session.headers['User-Agent'] = 'hexwright-test'
            httpDownload(URL, self.dest, session=session)
        self.assertEqual(self.mocker.last_request.headers['User-Agent'], 'hexwright-test')

    def testNoneRequest(self):
        self.assertRaises(ValueError, httpCustomDownload, None, self.dest)

    def testUpdateSkipsMatchingFile(self):
        with open(self.dest, 'wb') as f:
            f.write(BODY)
        self.mocker.get(URL, content=BODY)
        self.assertFalse(httpUpdate(URL, self.dest, 0o644, sha256Checksum()))
        self.assertEqual(self.mocker.call_count, 0)

    def testUpdateDownloadsChangedFile(self):
        with open(self.dest, 'wb') as f:
            f.write(b"stale")
        self.mocker.get(URL, content=BODY)
        self.assertTrue(httpUpdate(URL, self.dest, 0o644, sha256Checksum()))
        self.assertEqual(self.readDest(), BODY)

    def testCustomUpdateWithoutChecksumsKeepsExistingFile(self):
        with open(self.dest, 'wb') as f:
            f.write(b"anything")
        self.mocker.get(URL, content=BODY)
        self.assertFalse(httpCustomUpdate(requests.Request('GET', URL), self.dest))
        self.assertEqual(self.readDest(), b"anything")


class CreateSessionTest(unittest.TestCase):

    def testAdapters(self):
        with createSession() as session:
            self.assertIsInstance(session.get_adapter('https://example.com/'), StallResilientAdapter)
            self.assertIsInstance(session.get_adapter('http://example.com/'), StallResilientAdapter)


if __name__ == '__main__':
    unittest.main()
