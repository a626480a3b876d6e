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

import functools
import hashlib

from dataclasses import dataclass
from typing import Callable

from hexwright.Errors import HashExpectedEmptyError, HashMissingError
from hexwright.HexCompare import canEncodeTo, canEncodeToPrefix
from hexwright.Kernel import getLogger
from hexwright.Pools import getPools
from hexwright.Streams import readSome

logger = getLogger(__name__)


@dataclass(frozen=True)
class HashChecksum:
    """
    Expected digest of a hash, given as hex text in either letter case.

    newHash builds a fresh hashlib-style object (update/digest). With isPrefix,
    expectedHex only has to be a prefix of the digest's hex.
    """
    newHash: Callable
    expectedHex: str
    isPrefix: bool = False

    @classmethod
    def fromAlgorithm(cls, algorithm, expectedHex, isPrefix=False):
        """HashChecksum for a hashlib algorithm name, e.g. 'sha256'."""
        hashlib.new(algorithm) # unknown algorithms fail here, not at verification
        return cls(functools.partial(hashlib.new, algorithm), expectedHex, isPrefix)

    def matches(self, digest) -> bool:
        if self.isPrefix:
            return canEncodeToPrefix(digest, self.expectedHex)
        return canEncodeTo(digest, self.expectedHex)


def _newCheckedHash(checksum, index):
    if checksum.newHash is None:
        raise HashMissingError(index)
    if not checksum.expectedHex:
        raise HashExpectedEmptyError(index)
    h = checksum.newHash()
    if h is None:
        raise HashMissingError(index, returnedNone=True)
    return h


def checkHashChecksums(checksums):
    """Validate every checksum and return one fresh hash object per checksum."""
    return [_newCheckedHash(checksum, i) for i, checksum in enumerate(checksums)]


class HashVerifier:
    """A write sink feeding a hash, plus a check of its digest against the expected hex."""

    def __init__(self, checksum: HashChecksum, index: int = 0):
        self.checksum = checksum
        self._hash = _newCheckedHash(checksum, index)

    def write(self, p) -> int:
        self._hash.update(p)
        return len(p)

    def match(self) -> bool:
        # digest() leaves the running hash untouched
        return self.checksum.matches(self._hash.digest())

    def hexdigest(self) -> str:
        return self._hash.hexdigest()

    def reset(self):
        self._hash = self.checksum.newHash()


def newVerifiers(checksums):
    return [HashVerifier(checksum, i) for i, checksum in enumerate(checksums)]


def verifyChecksum(fileobj, closeFile, *checksums) -> bool:
    """
    Hash the rest of fileobj and compare every digest with its checksum.

    Returns True when there are no checksums, False on a read error.
    Malformed checksums raise HashMissingError / HashExpectedEmptyError.
    """
    if fileobj is None:
        return False
    try:
        if not checksums:
            return True
        hashes = checkHashChecksums(checksums)
        try:
            with getPools().sourceChunk.lease() as buf:
                while True:
                    n = readSome(fileobj, buf)
                    if n == 0:
                        break
                    chunk = bytes(buf[:n])
                    for h in hashes:
                        h.update(chunk)
        except OSError as e:
            logger.debug(f"Reading for checksum verification failed: {e}")
            return False
        return all(checksum.matches(h.digest()) for checksum, h in zip(checksums, hashes))
    finally:
        if closeFile:
            try:
                fileobj.close()
            except OSError as e:
                logger.debug(f"Closing the verified file failed: {e}")


def verifyFileChecksum(path, *checksums) -> bool:
    """verifyChecksum on the file at path; a file that cannot be opened never matches."""
    try:
        f = open(path, 'rb')
    except OSError:
        return False
    return verifyChecksum(f, True, *checksums)
