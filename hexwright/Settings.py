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

import os
import platform as _platform
import zlib

from hexwright.Kernel import Singleton, getLogger

# Minimum size of the buffered writer placed on top of a writer pipeline
DEFAULT_BUFFER_SIZE = int(os.getenv('HEXWRIGHT_BUFFER_SIZE', 4 * 1024))

# Chunk size used when copying an HTTP response body into a pipeline (256 KiB)
TRANSFER_CHUNK_SIZE = int(os.getenv('HEXWRIGHT_TRANSFER_CHUNK_SIZE', 256 * 1024))

HTTP_TIMEOUT_SECONDS = float(os.getenv('HEXWRIGHT_HTTP_TIMEOUT', 60))

DEFAULT_FILE_PERM = 0o644

DEFAULT_GZIP_LEVEL = zlib.Z_DEFAULT_COMPRESSION
BEST_COMPRESSION = zlib.Z_BEST_COMPRESSION
BEST_SPEED = zlib.Z_BEST_SPEED
NO_COMPRESSION = zlib.Z_NO_COMPRESSION

logger = getLogger(__name__)


# Singleton
class SettingsGetter(Singleton):

    def initialize(self, platform=None, bufferSize=None, transferChunkSize=None, httpTimeout=None):
        """Initialize the SettingsGetter; unspecified values come from the module defaults."""
        self._platform = platform or _platform.system()
        self._bufferSize = bufferSize if bufferSize and bufferSize > 0 else DEFAULT_BUFFER_SIZE
        self._transferChunkSize = (
            transferChunkSize if transferChunkSize and transferChunkSize > 0 else TRANSFER_CHUNK_SIZE
        )
        self._httpTimeout = httpTimeout if httpTimeout and httpTimeout > 0 else HTTP_TIMEOUT_SECONDS

        logger.debug(
            f"Settings initialized: platform={self._platform}, bufferSize={self._bufferSize}, "
            f"transferChunkSize={self._transferChunkSize}, httpTimeout={self._httpTimeout}"
        )

    @property
    def platform(self):
        return self._platform

    @property
    def bufferSize(self):
        return self._bufferSize

    @property
    def transferChunkSize(self):
        return self._transferChunkSize

    @property
    def httpTimeout(self):
        return self._httpTimeout

    def isWindows(self):
        return self._platform == "Windows"

    def isLinux(self):
        return self._platform == "Linux"

    def isDarwin(self):
        return self._platform == "Darwin"
