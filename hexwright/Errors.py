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
Exceptions raised across hexwright.

Contract violations (negative/odd lengths, short destination buffers, missing
hashes) also derive from ValueError so callers can treat them as bad arguments.
Errors raised by an underlying sink or source are never wrapped here; they are
re-raised as the original object.
"""

# CLI exit codes
EXIT_OK = 0
EXIT_USAGE = 2
EXIT_GENERIC = 10
EXIT_VERIFICATION_FAILED = 13


class HexwrightError(Exception):
    """Base error for hexwright."""


class NegativeLengthError(HexwrightError, ValueError):

    def __init__(self, x):
        super().__init__(f"x ({x}) is negative")
        self.x = x


class OddLengthError(HexwrightError, ValueError):

    def __init__(self, x):
        super().__init__(f"x ({x}) is odd")
        self.x = x


class DstTooSmallError(HexwrightError, ValueError):

    def __init__(self, length, required):
        super().__init__(f"dst is too small, length: {length}, required: {required}")
        self.length = length
        self.required = required


class ShortWriteError(HexwrightError, IOError):
    """A sink accepted fewer bytes than it was offered."""

    def __init__(self, written, expected=None):
        if expected is None:
            message = f"short write, written: {written}"
        else:
            message = f"short write, written: {written}, expected: {expected}"
        super().__init__(message)
        self.written = written
        self.expected = expected


class ClosedError(HexwrightError):
    pass


class WriterClosedError(ClosedError):

    def __init__(self, what="writer"):
        super().__init__(f"{what} is closed")


class ReaderClosedError(ClosedError):

    def __init__(self, what="reader"):
        super().__init__(f"{what} is closed")


class NotTarError(HexwrightError):

    def __init__(self):
        super().__init__("file is not archived by tar, or is opened in raw mode")


class TarEntryError(HexwrightError):
    """Tar entry budget violated: too many or too few body bytes for the current header."""


class VerificationFailedError(HexwrightError):

    def __init__(self, filename=None):
        if filename:
            super().__init__(f"file verification failed: {filename}")
        else:
            super().__init__("file verification failed")
        self.filename = filename


class HashMissingError(HexwrightError, ValueError):

    def __init__(self, index, returnedNone=False):
        if returnedNone:
            message = f"newHash of HashChecksum with index {index} returns None"
        else:
            message = f"HashChecksum with index {index} has no newHash"
        super().__init__(message)
        self.index = index


class HashExpectedEmptyError(HexwrightError, ValueError):

    def __init__(self, index):
        super().__init__(f"HashChecksum with index {index} has an empty expectedHex")
        self.index = index


class HttpStatusError(HexwrightError):

    def __init__(self, url, statusCode, reason=None):
        status = f"{statusCode} {reason}" if reason else f"status code: {statusCode}"
        super().__init__(f"response status is not OK when downloading {url}: {status}")
        self.url = url
        self.statusCode = statusCode
        self.reason = reason


class CombinedError(HexwrightError):
    """More than one error happened while closing a stream."""

    def __init__(self, errors):
        super().__init__("; ".join(f"{type(e).__name__}: {e}" for e in errors))
        self.errors = list(errors)


def raiseCombined(errors):
    """Raise nothing, the only error, or a CombinedError holding all of them."""
    if not errors:
        return
    if len(errors) == 1:
        raise errors[0]
    raise CombinedError(errors)
