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

import argparse
import json
import logging
import logging.config
import os
import sys

import requests

from hexwright.Checksums import HashChecksum, verifyFileChecksum
from hexwright.Download import httpDownload, httpUpdate
from hexwright.Errors import (
    EXIT_GENERIC, EXIT_OK, EXIT_USAGE, EXIT_VERIFICATION_FAILED, CombinedError, HexwrightError,
    VerificationFailedError,
)
from hexwright.HexCodec import Encoder
from hexwright.HexDump import Dumper, exampleDumpConfig
from hexwright.HexInteger import encodeInt64ToString
from hexwright.Kernel import LOG_LEVEL_MAPPING, PUBLIC_VERSION, configureGlobalLogLevel, getLogger
from hexwright.Progress import Progress
from hexwright.Reader import ReadOptions, openReader
from hexwright.Settings import DEFAULT_FILE_PERM
from hexwright.Utils import flushPrint, getEnv

logger = getLogger(__name__)


def configureLogging(logLevel):
    """
    Configure logging from --log-level, falling back to HEXWRIGHT_LOGGING_LEVEL.

    logLevel is a level name (DEBUG, INFO, WARNING, ERROR) or the path of a
    logging configuration JSON file for logging.config.dictConfig().
    """

    def suppressNoisyLogger():
        logging.getLogger('urllib3').setLevel(logging.INFO)
        logging.getLogger('urllib3.connectionpool').setLevel(logging.INFO)
        logging.getLogger('sentry_sdk').setLevel(logging.INFO)

    if logLevel is None:
        logLevel = getEnv('HEXWRIGHT_LOGGING_LEVEL', None)

    if logLevel is None:
        suppressNoisyLogger()
        return None

    if os.path.isfile(logLevel):
        try:
            with open(logLevel, 'r') as configFile:
                logging.config.dictConfig(json.load(configFile))
            logger.info(f"Logging configured from file: {logLevel}")
            suppressNoisyLogger()
            return logLevel
        except (json.JSONDecodeError, ValueError, KeyError) as e:
            flushPrint(f"Failed to load logging config from {logLevel}: {e}")
            flushPrint("Falling back to default logging level configuration")

    level = LOG_LEVEL_MAPPING.get(logLevel.upper())
    if level is not None:
        configureGlobalLogLevel(level)
        logger.info(f"Logging level set to {logLevel}")
    else:
        logger.warning(f"Invalid logging level '{logLevel}', using WARNING as default")
        configureGlobalLogLevel(logging.WARNING)

    suppressNoisyLogger()
    return logLevel


def parseChecksum(text):
    """'sha256:HEX' -> HashChecksum"""
    algorithm, sep, expectedHex = text.partition(':')
    if not sep or not algorithm or not expectedHex:
        raise argparse.ArgumentTypeError(f"Invalid checksum '{text}', expected ALGORITHM:HEX")
    try:
        return HashChecksum.fromAlgorithm(algorithm.lower(), expectedHex)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Unsupported hash algorithm '{algorithm}': {e}")


def parseInt(text):
    try:
        return int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid integer '{text}'")


def configureGlobalsParser():
    """Options accepted before or after the sub-command."""
    globalsParent = argparse.ArgumentParser(add_help=False)
    globalsParent.add_argument(
        "--log-level",
        help="Set logging level (DEBUG, INFO, WARNING, ERROR) or path to logging config JSON file",
        metavar="LEVEL_OR_FILE",
        dest="logLevel"
    )
    return globalsParent


def configureCLIParser(globalsParent=None):
    if globalsParent is None:
        globalsParent = configureGlobalsParser()

    parser = argparse.ArgumentParser(
        prog='hexwright',
        description="Streaming hex codec and verified file writer.",
        parents=[globalsParent],
    )
    parser.add_argument("--version", action="version", version=f"hexwright {PUBLIC_VERSION}")
    subparsers = parser.add_subparsers(dest='command', required=True, help='Available commands')

    encodeParser = subparsers.add_parser('encode', help='Print the hex encoding of a file', parents=[globalsParent])
    encodeParser.add_argument("file", metavar="FILE")
    encodeParser.add_argument("--upper", action="store_true", help="Use uppercase hex digits")
    encodeParser.add_argument("--raw", action="store_true", help="Do not decompress .gz / .bz2 files")

    dumpParser = subparsers.add_parser('dump', help='Print a hexdump of a file', parents=[globalsParent])
    dumpParser.add_argument("file", metavar="FILE")
    dumpParser.add_argument("--upper", action="store_true", help="Use uppercase hex digits")
    dumpParser.add_argument("--width", type=int, default=16, metavar="N", help="Bytes per line (default: 16)")
    dumpParser.add_argument("--raw", action="store_true", help="Do not decompress .gz / .bz2 files")

    intParser = subparsers.add_parser('int', help='Print a signed 64-bit integer in hex', parents=[globalsParent])
    intParser.add_argument("value", type=parseInt, metavar="VALUE", help="Integer, with 0x / 0o / 0b prefix allowed")
    intParser.add_argument("--upper", action="store_true", help="Use uppercase hex digits")
    intParser.add_argument("--digits", type=int, default=0, metavar="N", help="Minimum number of hex digits")

    verifyParser = subparsers.add_parser('verify', help='Check a file against checksums', parents=[globalsParent])
    verifyParser.add_argument("file", metavar="FILE")
    verifyParser.add_argument(
        "--checksum", type=parseChecksum, action="append", required=True, metavar="ALG:HEX", dest="checksums"
    )

    downloadParser = subparsers.add_parser('download', help='Download a URL to a file', parents=[globalsParent])
    downloadParser.add_argument("url", metavar="URL")
    downloadParser.add_argument("dest", metavar="DEST")
    downloadParser.add_argument(
        "--checksum", type=parseChecksum, action="append", default=[], metavar="ALG:HEX", dest="checksums"
    )
    downloadParser.add_argument(
        "--update", action="store_true", help="Skip the download when DEST already matches every checksum"
    )
    downloadParser.add_argument("--no-progress", action="store_true", dest="noProgress", help="Hide the progress bar")

    return parser


def runEncode(args, out):
    with openReader(args.file, ReadOptions(raw=args.raw)) as reader:
        encoder = Encoder(out, args.upper)
        encoder.readFrom(reader)
        encoder.close()
    out.write(b'\n')
    return EXIT_OK


def runDump(args, out):
    with openReader(args.file, ReadOptions(raw=args.raw)) as reader:
        dumper = Dumper(out, exampleDumpConfig(args.upper, args.width))
        dumper.readFrom(reader)
        dumper.close()
    return EXIT_OK


def runInt(args, out):
    out.write((encodeInt64ToString(args.value, args.upper, args.digits) + '\n').encode('ascii'))
    return EXIT_OK


def runVerify(args, out):
    if verifyFileChecksum(args.file, *args.checksums):
        out.write(f"{args.file}: OK\n".encode('utf-8'))
        return EXIT_OK
    out.write(f"{args.file}: FAILED\n".encode('utf-8'))
    return EXIT_VERIFICATION_FAILED


def runDownload(args, out):
    bar = None

    def onProgress(transferred, total):
        # created at the first chunk, once the total size is known
        nonlocal bar
        if bar is None:
            bar = Progress(total, useBar=True)
        bar(transferred, total)

    progress = None if args.noProgress else onProgress
    try:
        if args.update:
            updated = httpUpdate(args.url, args.dest, DEFAULT_FILE_PERM, *args.checksums, progress=progress)
            if not updated:
                out.write(f"{args.dest} is up to date\n".encode('utf-8'))
                return EXIT_OK
        else:
            httpDownload(args.url, args.dest, DEFAULT_FILE_PERM, *args.checksums, progress=progress)
    finally:
        if bar is not None:
            bar.finishBar()
    out.write(f"Saved {args.dest}\n".encode('utf-8'))
    return EXIT_OK


COMMANDS = {
    'encode': runEncode,
    'dump': runDump,
    'int': runInt,
    'verify': runVerify,
    'download': runDownload,
}


def isVerificationFailure(error):
    if isinstance(error, VerificationFailedError):
        return True
    return isinstance(error, CombinedError) and any(isinstance(e, VerificationFailedError) for e in error.errors)


def main(argv=None, out=None):
    """Entry point of the hexwright console script; returns the exit code."""
    globalsParent = configureGlobalsParser()
    parser = configureCLIParser(globalsParent)
    try:
        # --log-level may come before or after the sub-command
        globalArgs, _ = globalsParent.parse_known_args(argv)
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_USAGE

    configureLogging(globalArgs.logLevel)
    out = out if out is not None else sys.stdout.buffer

    try:
        return COMMANDS[args.command](args, out)
    except KeyboardInterrupt:
        flushPrint('\nExiting on user request (Ctrl+C)...')
        return EXIT_OK
    except OverflowError as e:
        logger.error(str(e))
        return EXIT_USAGE
    except (HexwrightError, OSError, requests.RequestException) as e:
        if isVerificationFailure(e):
            logger.error(f"Verification failed: {e}")
            return EXIT_VERIFICATION_FAILED
        logger.error(f"{args.command} failed: {e}")
        return EXIT_GENERIC


if __name__ == '__main__':
    sys.exit(main())
