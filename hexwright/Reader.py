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

import bz2
import dataclasses
import gzip
import io
import os
import tarfile

from dataclasses import dataclass
from typing import Optional

from hexwright.Errors import NotTarError, ReaderClosedError, raiseCombined
from hexwright.Kernel import getLogger

logger = getLogger(__name__)


@dataclass
class ReadOptions:
    offset: int = 0 # Negative: counted from the end of the file
    limit: int = 0 # Bytes of the file to read after offset, <= 0 for no limit
    raw: bool = False # No gunzip / bunzip2 / untar, whatever the extension
    bufSize: int = 0 # <= 0: io.DEFAULT_BUFFER_SIZE


class _SectionIO(io.RawIOBase):
    """At most `remaining` bytes of an underlying binary file."""

    def __init__(self, file, remaining):
        super().__init__()
        self._file = file
        self._remaining = remaining

    def readable(self):
        return True

    def readinto(self, b):
        if self._remaining <= 0:
            return 0
        view = memoryview(b)[:self._remaining]
        n = self._file.readinto(view) or 0
        self._remaining -= n
        return n


def readLayersFor(base):
    """Decompression / archive layers implied by the extensions of base, file first."""
    layers = []
    name = base.lower()
    while True:
        name, ext = os.path.splitext(name)
        if ext in ('.gz', '.tgz'):
            layers.append('gzip')
            if ext == '.tgz':
                layers.append('tar')
                return layers
        elif ext in ('.bz2', '.tbz'):
            layers.append('bz2')
            if ext == '.tbz':
                layers.append('tar')
                return layers
        elif ext == '.tar':
            layers.append('tar')
            return layers
        else:
            return layers


class Reader:
    """
    Reader returned by openReader(), undoing the layers the extension implies.

    For tar files read() returns the body of the entry selected by the last
    tarNext(), and nothing before the first tarNext().
    """

    def __init__(self, name, file, options: ReadOptions):
        self._filename = name
        self._options = options
        self._closed = False
        self._closers = [file]
        self._tar = None
        self._entry = None

        source = self._applyOffsetAndLimit(file)
        if not options.raw:
            for layer in readLayersFor(os.path.basename(name)):
                if layer == 'gzip':
                    source = gzip.GzipFile(fileobj=source, mode='rb')
                elif layer == 'bz2':
                    source = bz2.BZ2File(source, 'rb')
                else:
                    source = tarfile.open(fileobj=source, mode='r|')
                    self._tar = source
                self._closers.append(source)
        self._source = source

    def _applyOffsetAndLimit(self, file):
        options = self._options
        if options.offset == 0 and options.limit <= 0:
            return file

        size = os.fstat(file.fileno()).st_size
        offset = options.offset if options.offset >= 0 else size + options.offset
        if offset < 0 or offset > size:
            raise ValueError(f"option offset ({options.offset}) is out of range; file size: {size}")
        file.seek(offset)
        if options.limit > 0 and options.limit < size - offset:
            return io.BufferedReader(_SectionIO(file, options.limit))
        return file

    @property
    def filename(self):
        return self._filename

    @property
    def options(self) -> ReadOptions:
        return dataclasses.replace(self._options)

    @property
    def closed(self):
        return self._closed

    def _check(self):
        if self._closed:
            raise ReaderClosedError()

    def tarEnabled(self):
        return self._tar is not None

    def tarNext(self) -> Optional[tarfile.TarInfo]:
        """Advance to the next tar entry; None at the end of the archive."""
        self._check()
        if self._tar is None:
            raise NotTarError()
        member = self._tar.next()
        if member is None:
            self._entry = None
            return None
        self._entry = self._tar.extractfile(member) if member.isreg() else None
        return member

    def read(self, n=-1) -> bytes:
        self._check()
        if self._tar is not None:
            return self._entry.read(n) if self._entry is not None else b''
        return self._source.read(n)

    def readinto(self, b) -> int:
        data = self.read(len(b))
        b[:len(data)] = data
        return len(data)

    def close(self):
        if self._closed:
            return
        self._closed = True
        errors = []
        for closer in reversed(self._closers):
            try:
                closer.close()
            except Exception as e:
                errors.append(e)
        self._entry = None
        raiseCombined(errors)

    def __enter__(self):
        return self

    def __exit__(self, excType, exc, tb):
        self.close()
        return False


def openReader(name, options: Optional[ReadOptions] = None) -> Reader:
    """
    Open name for reading, through gzip / bz2 / tar according to its extensions.

    Offset and limit select a range of the file's own bytes, before any decompression.
    """
    options = dataclasses.replace(options) if options is not None else ReadOptions()
    if os.path.isdir(name):
        raise IsADirectoryError(f"{name} is a directory")
    file = open(os.path.realpath(name), 'rb', buffering=options.bufSize if options.bufSize > 0 else -1)
    try:
        reader = Reader(name, file, options)
    except Exception:
        file.close()
        raise
    logger.debug(f"Opened reader for {name}: layers={readLayersFor(os.path.basename(name)) if not options.raw else []}")
    return reader
