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
Line-framed hex dumps:

    dumped = ( prefixFn() line suffixFn(lineBytes) lineSep )+

where a line is blocksPerLine blocks separated by sep and the final line may
be short.
"""

import dataclasses
import io

from dataclasses import dataclass
from typing import Callable, Optional

from hexwright.Errors import WriterClosedError
from hexwright.HexCodec import FormatConfig, asBytes, formattedLen
from hexwright.Kernel import getLogger
from hexwright.Pools import FORMAT_CHUNK_LEN, getHexTable, getPools
from hexwright.Streams import StreamState, readSome, writeFully

logger = getLogger(__name__)

DEFAULT_BYTES_PER_LINE = 16
DEFAULT_OFFSET_DIGITS = 8


@dataclass(frozen=True)
class DumpConfig(FormatConfig):
    lineSep: str = ''
    blocksPerLine: int = 0
    prefixFn: Optional[Callable[[], bytes]] = None
    suffixFn: Optional[Callable[[bytes], bytes]] = None

    def isLineValid(self) -> bool:
        return self.blockLen > 0 and self.blocksPerLine > 0

    @property
    def bytesPerLine(self) -> int:
        if not self.isLineValid():
            return 0
        return self.blockLen * self.blocksPerLine

    @property
    def lineSepBytes(self) -> bytes:
        return asBytes(self.lineSep) if self.lineSep else b''


class Dumper:
    """
    Streaming dumper: the formatter's block layout plus per-line prefix, suffix
    and line separator.

    The first error is latched; every later call except close() re-raises it.
    """

    def __init__(self, sink, cfg: Optional[DumpConfig] = None):
        if sink is None:
            raise ValueError("sink is None")
        self._sink = sink
        self._cfg = cfg if cfg is not None else DumpConfig()
        self._ht = getHexTable(self._cfg.upper)
        self._sep = self._cfg.sepBytes if self._cfg.isValid() else b''
        self._lineSep = self._cfg.lineSepBytes
        self._sepCd = self._cfg.blockLen if self._cfg.isValid() else -1

        self._bytesPerLine = self._cfg.bytesPerLine
        self._line = None
        if self._cfg.isLineValid():
            # One buffer holds exactly one encoded line
            blocksLen = (self._cfg.blockLen * 2 + len(self._sep)) * self._cfg.blocksPerLine - len(self._sep)
            self._buf = bytearray(blocksLen)
            self._lineCd = self._bytesPerLine
            if self._cfg.suffixFn is not None:
                self._line = bytearray(self._bytesPerLine)
        else:
            self._buf = bytearray(FORMAT_CHUNK_LEN)
            self._lineCd = -1

        self._idx = 0
        self._written = 0
        self._used = False
        self._err = None
        self._state = StreamState.FRESH

    @property
    def config(self) -> DumpConfig:
        return self._cfg

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
        n = 0
        try:
            for b in asBytes(p):
                self._writeByte(b)
                n += 1
        except Exception as e:
            raise self._latch(e)
        return n

    def writeByte(self, c: int):
        self._check()
        try:
            self._writeByte(c)
        except Exception as e:
            raise self._latch(e)

    def readFrom(self, source) -> int:
        """Dump everything the source yields; read errors propagate without being latched."""
        self._check()
        n = 0
        with getPools().sourceChunk.lease() as chunk:
            while True:
                readLen = readSome(source, chunk)
                if readLen == 0:
                    return n
                n += readLen
                self.write(chunk[:readLen])

    def flush(self):
        self._check()
        try:
            self._flush()
        except Exception as e:
            raise self._latch(e)

    def close(self):
        if self._state == StreamState.CLOSED:
            return
        self._check()
        try:
            self._flush()
            if self._cfg.isLineValid():
                self._closeLine()
        except Exception as e:
            raise self._latch(e)

        self._err = WriterClosedError("hex dumper")
        self._state = StreamState.CLOSED
        self._buf = None
        self._line = None

    def _closeLine(self):
        if self._used:
            if self._lineCd >= self._bytesPerLine:
                return
        else:
            self._writePrefix()

        if self._cfg.suffixFn is not None:
            line = self._line if self._line is not None else bytearray(self._bytesPerLine)
            self._writeSuffix(bytes(line[:self._bytesPerLine - self._lineCd]))
        writeFully(self._sink, self._lineSep)

    def _writePrefix(self):
        if self._cfg.prefixFn is None:
            return
        prefix = self._cfg.prefixFn()
        if prefix:
            writeFully(self._sink, asBytes(prefix))

    def _writeSuffix(self, line):
        suffix = self._cfg.suffixFn(line)
        if suffix:
            writeFully(self._sink, asBytes(suffix))

    def _flush(self):
        if self._idx == self._written:
            self._idx, self._written = 0, 0
            return
        try:
            self._written += writeFully(self._sink, bytes(self._buf[self._written:self._idx]))
        except Exception as e:
            self._written += getattr(e, 'written', 0)
            raise
        self._idx, self._written = 0, 0

    def _writeByte(self, b: int):
        self._used = True
        self._state = StreamState.WRITING
        if self._lineCd == self._bytesPerLine:
            self._writePrefix()

        if self._sepCd == 0:
            if len(self._buf) - self._idx < len(self._sep):
                self._flush()
            if len(self._sep) > len(self._buf):
                writeFully(self._sink, self._sep)
            else:
                self._buf[self._idx:self._idx + len(self._sep)] = self._sep
                self._idx += len(self._sep)
            self._sepCd = self._cfg.blockLen

        if len(self._buf) - self._idx < 2:
            self._flush()
        if self._line is not None:
            self._line[self._bytesPerLine - self._lineCd] = b
        self._buf[self._idx] = self._ht[b >> 4]
        self._buf[self._idx + 1] = self._ht[b & 0x0F]
        self._idx += 2

        if self._sepCd > 0:
            self._sepCd -= 1
        if self._lineCd > 0:
            self._lineCd -= 1
        if self._lineCd == 0:
            self._flush()
            if self._cfg.suffixFn is not None:
                self._writeSuffix(bytes(self._line))
            writeFully(self._sink, self._lineSep)
            if self._sepCd >= 0:
                self._sepCd = self._cfg.blockLen
            self._lineCd = self._bytesPerLine


def dump(src, cfg: Optional[DumpConfig] = None) -> bytes:
    sink = io.BytesIO()
    dumpTo(sink, src, cfg)
    return sink.getvalue()


def dumpToString(src, cfg: Optional[DumpConfig] = None) -> str:
    return dump(src, cfg).decode('utf-8')


def dumpTo(sink, src, cfg: Optional[DumpConfig] = None) -> int:
    """Dump src to sink and close the dumper; returns the number of source bytes written."""
    dumper = Dumper(sink, cfg)
    try:
        n = dumper.write(src)
    except Exception:
        # report the write error, not the close error
        try:
            dumper.close()
        except Exception as closeError:
            logger.debug(f"Dumper close after a failed write: {closeError}")
        raise
    dumper.close()
    return n


def prefixBytesNo(cfg: Optional[DumpConfig], upper: bool = False, digits: int = 0, initCount: int = 0):
    """
    Return a prefixFn printing the offset of each line, e.g. "00000010: ".

    Returns None when cfg has no valid line layout.
    """
    if cfg is None or not cfg.isLineValid():
        return None
    if digits <= 0:
        digits = DEFAULT_OFFSET_DIGITS
    layout = f"%0{digits}{'X' if upper else 'x'}: "
    length = cfg.blockLen * cfg.blocksPerLine
    count = initCount

    def prefix():
        nonlocal count
        result = (layout % count).encode('ascii')
        count += length
        return result

    return prefix


def quoteLine(line: bytes) -> str:
    """Double-quoted, escaped rendering of a line; undecodable bytes become \\xNN."""
    parts = ['"']
    for ch in line.decode('utf-8', errors='surrogateescape'):
        code = ord(ch)
        if 0xDC80 <= code <= 0xDCFF:
            parts.append(f"\\x{code - 0xDC00:02x}")
        elif ch == '"':
            parts.append('\\"')
        elif ch == '\\':
            parts.append('\\\\')
        elif ch in _ESCAPES:
            parts.append(_ESCAPES[ch])
        elif ch.isprintable():
            parts.append(ch)
        elif code < 0x80:
            parts.append(f"\\x{code:02x}")
        elif code < 0x10000:
            parts.append(f"\\u{code:04x}")
        else:
            parts.append(f"\\U{code:08x}")
    parts.append('"')
    return ''.join(parts)


_ESCAPES = {
    '\a': '\\a',
    '\b': '\\b',
    '\f': '\\f',
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
    '\v': '\\v',
}


def suffixQuotedPretty(cfg: Optional[DumpConfig]):
    """
    Return a suffixFn rendering ' | "<quoted line>"', padded so that the bars of
    a short last line align with the full lines above it.

    Returns None when cfg has no valid line layout.
    """
    if cfg is None or not cfg.isLineValid():
        return None
    formatCfg = FormatConfig(upper=cfg.upper, sep=cfg.sep, blockLen=cfg.blockLen)
    length = cfg.blockLen * cfg.blocksPerLine
    fullLen = formattedLen(length, formatCfg)

    def suffix(line):
        pad = ''
        if len(line) < length:
            pad = ' ' * (fullLen - formattedLen(len(line), formatCfg))
        return f"{pad} | {quoteLine(bytes(line))}".encode('utf-8')

    return suffix


def exampleDumpConfig(upper: bool = False, bytesPerLine: int = 0) -> DumpConfig:
    """A "hexdump -C"-like layout with line offsets and a quoted text column."""
    if bytesPerLine <= 0:
        bytesPerLine = DEFAULT_BYTES_PER_LINE

    blockLen, blocksPerLine = 1, bytesPerLine
    if bytesPerLine % 2 == 0:
        blockLen, blocksPerLine = 2, bytesPerLine // 2

    cfg = DumpConfig(upper=upper, sep=' ', blockLen=blockLen, lineSep='\n', blocksPerLine=blocksPerLine)
    return dataclasses.replace(cfg, prefixFn=prefixBytesNo(cfg, upper), suffixFn=suffixQuotedPretty(cfg))
