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
HTTP downloads into a verified writer.

The body is written raw to a temp sibling of the destination while every
checksum's hash sees the same bytes; the temp file replaces the destination only
when all of them match.
"""

import requests

from hexwright.Checksums import newVerifiers, verifyFileChecksum
from hexwright.Errors import HttpStatusError
from hexwright.Kernel import getLogger
from hexwright.Settings import DEFAULT_FILE_PERM, SettingsGetter
from hexwright.Utils import StallResilientAdapter, formatSize
from hexwright.Writer import WriteOptions, openWriter

logger = getLogger(__name__)


def createSession():
    session = requests.Session()
    adapter = StallResilientAdapter()
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    return session


def httpCustomDownload(request, filename, perm=DEFAULT_FILE_PERM, *checksums, session=None, timeout=None,
                       progress=None) -> int:
    """
    Send a caller-built requests.Request and store a 200 response body at filename.

    Args:
        request: requests.Request to send
        filename: Destination path
        perm: Permission bits of the created file
        checksums: HashChecksum objects the body must match
        session: requests.Session to use; a session with StallResilientAdapter by default
        timeout: Seconds, SettingsGetter().httpTimeout by default
        progress: Optional callable progress(transferred, total); total is 0 when unknown

    Returns:
        Number of body bytes written
    """
    if request is None:
        raise ValueError("request is None")

    verifiers = newVerifiers(checksums)
    settingsGetter = SettingsGetter.getInstance()
    ownSession = session is None
    if ownSession:
        session = createSession()

    try:
        prepared = session.prepare_request(request)
        response = session.send(prepared, stream=True, timeout=timeout or settingsGetter.httpTimeout)
        with response:
            if response.status_code != 200:
                raise HttpStatusError(prepared.url, response.status_code, response.reason)

            total = int(response.headers.get('Content-Length') or 0)
            logger.info(f"Downloading {prepared.url} to {filename} ({formatSize(total) if total else 'unknown size'})")

            options = WriteOptions(raw=True, backup=True, verifyFn=lambda: all(v.match() for v in verifiers))
            transferred = 0
            with openWriter(filename, perm, options, *verifiers) as writer:
                for chunk in response.iter_content(chunk_size=settingsGetter.transferChunkSize):
                    if not chunk:
                        continue
                    writer.write(chunk)
                    transferred += len(chunk)
                    if progress is not None:
                        progress(transferred, total)
    finally:
        if ownSession:
            session.close()

    logger.info(f"Downloaded {formatSize(transferred)} to {filename}")
    return transferred


def httpDownload(url, filename, perm=DEFAULT_FILE_PERM, *checksums, session=None, timeout=None, progress=None) -> int:
    """GET url into filename; see httpCustomDownload()."""
    return httpCustomDownload(
        requests.Request('GET', url), filename, perm, *checksums, session=session, timeout=timeout, progress=progress
    )


def httpCustomUpdate(request, filename, perm=DEFAULT_FILE_PERM, *checksums, session=None, timeout=None,
                     progress=None) -> bool:
    """Download only when filename does not already match every checksum. Returns True if downloaded."""
    if verifyFileChecksum(filename, *checksums):
        logger.debug(f"{filename} already matches its checksums, not downloading")
        return False
    httpCustomDownload(request, filename, perm, *checksums, session=session, timeout=timeout, progress=progress)
    return True


def httpUpdate(url, filename, perm=DEFAULT_FILE_PERM, *checksums, session=None, timeout=None, progress=None) -> bool:
    return httpCustomUpdate(
        requests.Request('GET', url), filename, perm, *checksums, session=session, timeout=timeout, progress=progress
    )
