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
Verified file writer.

Layer stack, bottom to top:

    file (temp sibling in backup mode)
    tee to the copies (hash verifiers see the bytes that land on disk)
    gzip        (.gz / .tgz, unless raw)
    tar         (.tar / .tgz, unless raw)
    buffered writer (eager with bufOpen, otherwise created when first needed)

close() flushes, closes the layers top-down, runs verifyFn and then either
renames the temp file over the destination or removes what was written.
"""

import dataclasses
import gzip
import io
import os
import secrets
import shutil
import tarfile

from dataclasses import dataclass
from typing import Callable, Optional

from hexwright.Errors import (
    NotTarError, TarEntryError, VerificationFailedError, WriterClosedError, raiseCombined,
)
from hexwright.Kernel import getLogger
from hexwright.Settings import DEFAULT_FILE_PERM, DEFAULT_GZIP_LEVEL, SettingsGetter
from hexwright.Streams import MultiWriter, SinkRawIO, readSome, writeFully

logger = getLogger(__name__)

TEMP_NAME_ATTEMPTS = 100

TAR_ENCODING = 'utf-8'


@dataclass
class WriteOptions:
    append: bool = False
    raw: bool = False # No gzip / tar layers, whatever the extension
    bufSize: int = 0 # <= 0: SettingsGetter().bufferSize
    bufOpen: bool = False
    backup: bool = False
    preserveOnFail: bool = False # Without backup: keep the destination when close fails
    mkDirs: bool = False
    verifyFn: Optional[Callable[[], bool]] = None
    gzipLevel: int = DEFAULT_GZIP_LEVEL


DEFAULT_WRITE_OPTIONS = WriteOptions(backup=True, mkDirs=True)


def isValidGzipLevel(level):
    return isinstance(level, int) and DEFAULT_GZIP_LEVEL <= level <= 9


def dirModeFor(perm):
    """Directory mode for mkDirs: perm plus search permission wherever perm can read."""
    return perm | ((perm & 0o444) >> 2)


def layersFor(base):
    """
    Layer names implied by the extensions of base, from the file upwards.

    'x.tar.gz' -> ['gzip', 'tar'], 'x.tgz' -> ['gzip', 'tar'], 'x.gz.tar' -> ['tar'].
    """
    layers = []
    name = base.lower()
    while True:
        name, ext = os.path.splitext(name)
        if ext in ('.gz', '.tgz'):
            layers.append('gzip')
            if ext == '.tgz':
                layers.append('tar')
                return layers
        elif ext == '.tar':
            layers.append('tar')
            return layers
        else:
            return layers


class TarStreamWriter:
    """
    Streaming tar writer: a header, then exactly header.size body bytes.

    tarfile.TarFile.addfile() wants the whole body up front; this writer lets
    the body arrive in pieces and pads every entry to the tar block size.
    """

    def __init__(self, sink):
        self._sink = sink
        self._remaining = 0
        self._padding = 0
        self._closed = False

    def writeHeader(self, tarInfo: tarfile.TarInfo):
        self._finishEntry()
        header = tarInfo.tobuf(tarfile.PAX_FORMAT, TAR_ENCODING, 'surrogateescape')
        writeFully(self._sink, header)
        self._remaining = tarInfo.size
        self._padding = -tarInfo.size % tarfile.BLOCKSIZE

    def write(self, data) -> int:
        if self._closed:
            raise WriterClosedError("tar writer")
        if len(data) > self._remaining:
            raise TarEntryError(f"write too long: {len(data)} bytes, {self._remaining} left in the current entry")
        writeFully(self._sink, data)
        self._remaining -= len(data)
        return len(data)

    def _finishEntry(self):
        if self._remaining > 0:
            raise TarEntryError(f"missed writing {self._remaining} bytes of the current entry")
        if self._padding:
            writeFully(self._sink, tarfile.NUL * self._padding)
            self._padding = 0

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._finishEntry()
        # End of archive: two zero blocks
        writeFully(self._sink, tarfile.NUL * (tarfile.BLOCKSIZE * 2))


def _createTempFile(directory, base, perm):
    for _ in range(TEMP_NAME_ATTEMPTS):
        path = os.path.join(directory, f"{base}.{secrets.token_hex(6)}.tmp")
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, 'O_BINARY', 0), perm)
        except FileExistsError:
            continue
        return path, os.fdopen(fd, 'wb', buffering=0)
    raise FileExistsError(f"cannot create a unique temp file for {base} in {directory or '.'}")


def _copyExisting(name, file):
    try:
        with open(name, 'rb') as existing:
            shutil.copyfileobj(existing, file)
    except FileNotFoundError:
        logger.debug(f"Nothing to append to, {name} does not exist yet")


def _removeQuietly(path):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Unable to remove {path}: {e}")


class Writer:
    """
    A writer pipeline returned by openWriter().

    The first error raised by a write-side operation is latched and re-raised by
    every later operation; close() then discards what was written. After close()
    every operation except close() raises WriterClosedError.
    """

    def __init__(self, filename, tempFilename, file, options, copies=()):
        self._filename = filename
        self._tempFilename = tempFilename
        self._options = options
        self._err = None
        self._closed = False
        self._bufWriter = None
        self._rawAdapter = None
        self._tar = None

        self._closers = [file]
        self._top = MultiWriter(file, *copies)

        if not options.raw:
            self._pushLayers(os.path.basename(filename))

        if options.bufOpen:
            self._ensureBuffered()

    def _pushLayers(self, base):
        for layer in layersFor(base):
            if layer == 'gzip':
                level = self._options.gzipLevel
                if not isValidGzipLevel(level):
                    logger.warning(f"Invalid gzip level {level}, using the default level")
                    level = DEFAULT_GZIP_LEVEL
                    self._options.gzipLevel = level
                gzipFile = gzip.GzipFile(filename='', mode='wb', compresslevel=level, fileobj=self._top, mtime=0)
                self._closers.append(gzipFile)
                self._top = gzipFile
            else:
                self._tar = TarStreamWriter(self._top)
                self._closers.append(self._tar)
                self._top = self._tar

    @property
    def filename(self):
        return self._filename

    @property
    def tempFilename(self):
        """The temp sibling actually written in backup mode, None otherwise."""
        return self._tempFilename

    @property
    def options(self) -> WriteOptions:
        return dataclasses.replace(self._options)

    @property
    def closed(self):
        return self._closed

    @property
    def buffered(self):
        return self._bufWriter is not None

    def tarEnabled(self):
        return self._tar is not None

    def _bufferSize(self):
        if self._options.bufSize > 0:
            return self._options.bufSize
        return SettingsGetter.getInstance().bufferSize

    def _ensureBuffered(self):
        if self._bufWriter is None:
            self._rawAdapter = SinkRawIO(self._top)
            self._bufWriter = io.BufferedWriter(self._rawAdapter, self._bufferSize())
        return self._bufWriter

    def _check(self):
        if self._err is not None:
            raise self._err

    def _latch(self, fn, *args):
        self._check()
        try:
            return fn(*args)
        except Exception as e:
            self._err = e
            raise

    def _write(self, data):
        if self._bufWriter is not None:
            self._bufWriter.write(data)
        else:
            writeFully(self._top, data)
        return len(data)

    def write(self, data) -> int:
        return self._latch(self._write, data)

    def writeByte(self, c: int):
        self._check()
        self._latch(self._ensureBuffered().write, bytes((c,)))

    def writeString(self, s: str) -> int:
        return self.write(s.encode('utf-8'))

    def readFrom(self, source) -> int:
        """Copy source into the pipeline until end of stream; returns the bytes read."""
        self._check()
        bufWriter = self._ensureBuffered()
        chunk = bytearray(self._bufferSize())
        n = 0
        while True:
            readLen = readSome(source, chunk)
            if readLen == 0:
                return n
            self._latch(bufWriter.write, bytes(chunk[:readLen]))
            n += readLen

    def flush(self):
        self._check()
        if self._bufWriter is not None:
            self._latch(self._bufWriter.flush)

    def _writeTarHeader(self, tarInfo):
        if self._bufWriter is not None:
            self._bufWriter.flush()
        self._tar.writeHeader(tarInfo)

    def tarWriteHeader(self, tarInfo: tarfile.TarInfo):
        """Start a new tar entry; exactly tarInfo.size bytes must follow before the next header."""
        if not self.tarEnabled():
            raise NotTarError()
        self._latch(self._writeTarHeader, tarInfo)

    def close(self):
        """
        Finish the pipeline.

        Steps, in order:
        - flush the buffered writer
        - close gzip / tar / file layers, top-down, collecting errors
        - run verifyFn when nothing failed so far
        - backup mode: rename the temp file over the destination on success,
          remove it otherwise; direct mode: remove the destination on failure
          unless preserveOnFail

        Only errors raised during close() itself are re-raised here.
        """
        if self._closed:
            return

        errors = []
        latched = self._err
        if self._bufWriter is not None:
            try:
                self._bufWriter.flush()
            except Exception as e:
                errors.append(e)
            self._rawAdapter.release()
            self._bufWriter.close()

        for closer in reversed(self._closers):
            try:
                closer.close()
            except Exception as e:
                errors.append(e)

        if latched is None and not errors and self._options.verifyFn is not None:
            try:
                if not self._options.verifyFn():
                    logger.warning(f"Verification failed for {self._filename}")
                    errors.append(VerificationFailedError(self._filename))
            except Exception as e:
                errors.append(e)

        failed = latched is not None or bool(errors)
        if self._options.backup:
            if not failed:
                try:
                    os.replace(self._tempFilename, self._filename)
                    logger.debug(f"Committed {self._tempFilename} to {self._filename}")
                except OSError as e:
                    errors.append(e)
                    _removeQuietly(self._tempFilename)
            else:
                logger.debug(f"Discarding {self._tempFilename}")
                _removeQuietly(self._tempFilename)
        elif failed and not self._options.preserveOnFail:
            logger.debug(f"Removing {self._filename} after a failed write")
            _removeQuietly(self._filename)

        self._closed = True
        self._err = WriterClosedError()
        self._bufWriter = None
        raiseCombined(errors)

    def __enter__(self):
        return self

    def __exit__(self, excType, exc, tb):
        if exc is not None and self._err is None:
            # an exception inside the block counts as a failed write
            self._err = exc
        try:
            self.close()
        except Exception as closeError:
            if exc is None:
                raise
            logger.error(f"Error closing {self._filename} while handling {excType.__name__}: {closeError}")
        return False


def openWriter(name, perm=DEFAULT_FILE_PERM, options: Optional[WriteOptions] = None, *copies) -> Writer:
    """
    Open a writer pipeline on name.

    Args:
        name: Destination path; its extensions select the gzip / tar layers
        perm: Permission bits for created files (directories get search bits added)
        options: WriteOptions, DEFAULT_WRITE_OPTIONS when None
        copies: Extra sinks receiving every byte written to the file, e.g. HashVerifier

    Returns:
        Writer
    """
    if not name:
        raise ValueError("name is empty")
    name = os.path.normpath(name)
    options = dataclasses.replace(options if options is not None else DEFAULT_WRITE_OPTIONS)
    directory, base = os.path.split(name)

    if options.mkDirs and directory:
        os.makedirs(directory, mode=dirModeFor(perm), exist_ok=True)

    tempFilename = None
    if options.backup:
        tempFilename, file = _createTempFile(directory, base, perm)
    else:
        flags = os.O_WRONLY | os.O_CREAT | getattr(os, 'O_BINARY', 0)
        flags |= os.O_APPEND if options.append else os.O_TRUNC
        file = os.fdopen(os.open(name, flags, perm), 'wb', buffering=0)

    try:
        if options.backup and options.append:
            _copyExisting(name, file)
        writer = Writer(name, tempFilename, file, options, copies)
    except Exception:
        file.close()
        if tempFilename is not None:
            _removeQuietly(tempFilename)
        raise

    logger.debug(
        f"Opened writer for {name}: temp={tempFilename}, layers={layersFor(base) if not options.raw else []}, "
        f"copies={len(copies)}"
    )
    return writer
