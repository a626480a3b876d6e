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
Hex encoding: length arithmetic, one-shot encoding and the streaming
Encoder / Formatter.

Output grammar:
    encoded(b) = alphabet[b >> 4] alphabet[b & 0x0F]
    formatted  = (blockLen bytes encoded) (sep (blockLen bytes encoded))*

A FormatConfig with blockLen <= 0 or an empty sep is "not valid" and produces
the plain encoding. Python integers are unbounded, so the length functions
below also serve every 64-bit use.
"""

from dataclasses import dataclass
from typing import Optional, Union

from hexwright.Errors import DstTooSmallError, NegativeLengthError, OddLengthError, ShortWriteError, WriterClosedError
from hexwright.Kernel import getLogger
from hexwright.Pools import SOURCE_CHUNK_LEN, getHexTable, getPools
from hexwright.Streams import StreamState, readSome, writeFully

logger = getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class FormatConfig:
    """Block layout of formatted hex output"""
    upper: bool = False
    sep: Union[str, bytes] = ''
    blockLen: int = 0 # Source bytes per block

    def isValid(self) -> bool:
        return self.blockLen > 0 and len(self.sep) > 0

    @property
    def sepBytes(self) -> bytes:
        if isinstance(self.sep, str):
            return self.sep.encode('utf-8')
        return bytes(self.sep)


def formatCfgValid(cfg: Optional[FormatConfig]) -> bool:
    return cfg is not None and cfg.isValid()


def asBytes(src) -> BytesLike:
    if isinstance(src, str):
        return src.encode('utf-8')
    return src


def encodedLen(n: int) -> int:
    return n * 2


def decodedLen(x: int) -> int:
    if x < 0:
        raise NegativeLengthError(x)
    if x & 1:
        raise OddLengthError(x)
    return x >> 1


def formattedLen(n: int, cfg: Optional[FormatConfig] = None) -> int:
    """Length of format() output for n source bytes."""
    if n < 0:
        raise NegativeLengthError(n)
    if n == 0:
        return 0
    if not formatCfgValid(cfg):
        return encodedLen(n)
    blockLen = cfg.blockLen
    return (n - 1) // blockLen * (blockLen * 2 + len(cfg.sepBytes)) + ((n - 1) % blockLen + 1) * 2


def parsedLen(x: int, cfg: Optional[FormatConfig] = None) -> int:
    """
    Number of source bytes represented by the first x bytes of format() output.

    Exact inverse of formattedLen() on complete outputs; on a truncated output it
    counts whole pairs only and never decreases as x grows.
    """
    if x == 0:
        return 0
    if not formatCfgValid(cfg):
        return decodedLen(x)
    if x < 0:
        raise NegativeLengthError(x)
    blockSize = cfg.blockLen * 2
    stride = blockSize + len(cfg.sepBytes)
    tail = min(x % stride, blockSize)
    return x // stride * cfg.blockLen + tail // 2


def _encode(dst, src, upper: bool) -> int:
    # dst capacity is checked by the callers
    ht = getHexTable(upper)
    n = 0
    for b in src:
        dst[n] = ht[b >> 4]
        dst[n + 1] = ht[b & 0x0F]
        n += 2
    return n


def encode(dst: bytearray, src, upper: bool = False) -> int:
    """Encode src into dst and return the number of bytes written (2 * len(src))."""
    src = asBytes(src)
    required = encodedLen(len(src))
    if required > len(dst):
        raise DstTooSmallError(len(dst), required)
    return _encode(dst, src, upper)


def encodeToString(src, upper: bool = False) -> str:
    src = asBytes(src)
    dst = bytearray(encodedLen(len(src)))
    _encode(dst, src, upper)
    return dst.decode('ascii')


class Encoder:
    """
    Streaming hex encoder in front of a byte sink.

    write() returns the number of source bytes accepted, not the encoded length.
    The first error is latched and re-raised by every later call.
    """

    def __init__(self, sink, upper: bool = False):
        if sink is None:
            raise ValueError("sink is None")
        self._sink = sink
        self._upper = upper
        self._err = None
        self._state = StreamState.FRESH

    @property
    def encodeDst(self):
        """The sink receiving the encoded bytes"""
        return self._sink

    @property
    def state(self) -> StreamState:
        return self._state

    def _check(self):
        if self._err is not None:
            raise self._err

    def _latch(self, err):
        self._err = err
        self._state = StreamState.ERRORED
        return err

    def write(self, p) -> int:
        self._check()
        p = asBytes(p)
        pool = getPools().encodeChunk
        buf = pool.get()
        n = 0
        try:
            while n < len(p):
                chunk = p[n:n + SOURCE_CHUNK_LEN]
                encoded = _encode(buf, chunk, self._upper)
                try:
                    writeFully(self._sink, buf[:encoded])
                except ShortWriteError as e:
                    raise self._latch(ShortWriteError(n + (e.written >> 1), len(p))) from e
                except Exception as e:
                    raise self._latch(e)
                n += len(chunk)
                self._state = StreamState.WRITING
        finally:
            pool.put(buf)
        return n

    def writeByte(self, c: int):
        self.write(bytes((c,)))

    def writeString(self, s: str) -> int:
        return self.write(s.encode('utf-8'))

    def readFrom(self, source) -> int:
        """Encode everything the source yields until end of stream; returns bytes read."""
        self._check()
        pool = getPools().sourceChunk
        n = 0
        with pool.lease() as buf:
            while True:
                readLen = readSome(source, buf)
                if readLen == 0:
                    return n
                n += readLen
                self.write(buf[:readLen])

    def flush(self):
        self._check()

    def close(self):
        if self._state == StreamState.CLOSED:
            return
        self._check()
        self._err = WriterClosedError("hex encoder")
        self._state = StreamState.CLOSED


def format(dst: bytearray, src, cfg: Optional[FormatConfig] = None) -> int:
    """Write the formatted hex of src into dst; returns the number of bytes written."""
    src = asBytes(src)
    if not formatCfgValid(cfg):
        return encode(dst, src, cfg.upper if cfg is not None else False)

    required = formattedLen(len(src), cfg)
    if required > len(dst):
        raise DstTooSmallError(len(dst), required)

    ht = getHexTable(cfg.upper)
    sep = cfg.sepBytes
    n = 0
    for i, b in enumerate(src):
        if n > 0 and i % cfg.blockLen == 0:
            dst[n:n + len(sep)] = sep
            n += len(sep)
        dst[n] = ht[b >> 4]
        dst[n + 1] = ht[b & 0x0F]
        n += 2
    return n


def formatToString(src, cfg: Optional[FormatConfig] = None) -> str:
    return formatToBytes(src, cfg).decode('utf-8')


def formatToBytes(src, cfg: Optional[FormatConfig] = None) -> bytes:
    src = asBytes(src)
    dst = bytearray(formattedLen(len(src), cfg))
    format(dst, src, cfg)
    return bytes(dst)


def formatTo(sink, src, cfg: Optional[FormatConfig] = None) -> int:
    """Write the formatted hex of src to sink; returns the number of source bytes written."""
    src = asBytes(src)
    data = formatToBytes(src, cfg)
    try:
        writeFully(sink, data)
    except ShortWriteError as e:
        written = parsedLen(e.written, cfg) if formatCfgValid(cfg) else e.written >> 1
        raise ShortWriteError(written, len(src)) from e
    return len(src)


class Formatter:
    """
    Streaming formatter: hex encoding plus a separator every blockLen source bytes.

    Output is staged in a pooled buffer leased at the first write. flush() hands
    the unwritten part to the sink and returns the buffer to the pool only when
    everything went through; after a short write the next flush() resumes from
    the recorded index.
    """

    def __init__(self, sink, cfg: Optional[FormatConfig] = None):
        if sink is None:
            raise ValueError("sink is None")
        self._sink = sink
        self._cfg = cfg if cfg is not None else FormatConfig()
        self._ht = getHexTable(self._cfg.upper)
        if self._cfg.isValid():
            self._sep = self._cfg.sepBytes
            self._sepCd = self._cfg.blockLen
        else:
            self._sep = b''
            self._sepCd = -1 # never emit a separator
        self._buf = None
        self._idx = 0
        self._written = 0
        self._state = StreamState.FRESH

    @property
    def config(self) -> FormatConfig:
        return self._cfg

    @property
    def state(self) -> StreamState:
        return self._state

    def _checkOpen(self):
        if self._state == StreamState.CLOSED:
            raise WriterClosedError("hex formatter")

    def _lease(self):
        if self._buf is None:
            self._buf = getPools().formatChunk.get()
            self._idx, self._written = 0, 0

    def write(self, p) -> int:
        self._checkOpen()
        self._lease()
        n = 0
        for b in asBytes(p):
            self._writeByte(b)
            n += 1
        return n

    def writeByte(self, c: int):
        self._checkOpen()
        self._lease()
        self._writeByte(c)

    def readFrom(self, source) -> int:
        self._checkOpen()
        self._lease()
        n = 0
        with getPools().sourceChunk.lease() as chunk:
            while True:
                readLen = readSome(source, chunk)
                if readLen == 0:
                    return n
                n += readLen
                for b in chunk[:readLen]:
                    self._writeByte(b)

    def flush(self):
        if self._state == StreamState.CLOSED:
            return
        self._flush()

    def close(self):
        if self._state == StreamState.CLOSED:
            return
        self._flush()
        self._state = StreamState.CLOSED

    def _flush(self):
        if self._buf is None:
            return
        try:
            self._written += writeFully(self._sink, bytes(self._buf[self._written:self._idx]))
        except ShortWriteError as e:
            self._written += e.written
            raise
        getPools().formatChunk.put(self._buf)
        self._buf = None
        self._idx, self._written = 0, 0

    def _flushAndLease(self):
        self._flush()
        self._lease()

    def _writeByte(self, b: int):
        if self._sepCd == 0:
            if len(self._sep) > len(self._buf):
                self._flushAndLease()
                writeFully(self._sink, self._sep)
            else:
                if len(self._buf) - self._idx < len(self._sep):
                    self._flushAndLease()
                self._buf[self._idx:self._idx + len(self._sep)] = self._sep
                self._idx += len(self._sep)
            self._sepCd = self._cfg.blockLen

        if len(self._buf) - self._idx < 2:
            self._flushAndLease()
        buf = self._buf
        buf[self._idx] = self._ht[b >> 4]
        buf[self._idx + 1] = self._ht[b & 0x0F]
        self._idx += 2
        if self._sepCd > 0:
            self._sepCd -= 1
        self._state = StreamState.WRITING
