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

import time

from tqdm import tqdm

from hexwright.Kernel import getLogger
from hexwright.Utils import ONE_MB, formatSize

logger = getLogger(__name__)

KNOWN_SIZE_BAR_FORMAT = '{desc}: {percentage:3.0f}%|{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]'
UNKNOWN_SIZE_BAR_FORMAT = '{desc}: {n_fmt} [{elapsed}, {rate_fmt}]'


class BitmathTqdm(tqdm):
    """tqdm bar printing sizes and speed with formatSize (bitmath) instead of tqdm's own units."""

    def __init__(self, *args, sizeFormatter=None, **kwargs):
        self.sizeFormatter = sizeFormatter or formatSize
        kwargs.setdefault('bar_format', KNOWN_SIZE_BAR_FORMAT)
        super().__init__(*args, unit='B', unit_scale=False, **kwargs)

    @property
    def format_dict(self):
        d = super().format_dict

        rate = d.get('rate') or 0
        d['rate_fmt'] = f"{self.sizeFormatter(int(rate)) if rate > 0 else 0}/sec"
        d['n_fmt'] = self.sizeFormatter(d.get('n', 0))

        total = d.get('total')
        d['total_fmt'] = self.sizeFormatter(total) if total is not None else '?'
        return d

    def __bool__(self):
        # tqdm raises on bool() when total is None
        return hasattr(self, 'n')


class Progress:
    """
    Transfer progress for downloads: a BitmathTqdm bar, or periodic log lines
    through loggerCallback when useBar is False.
    """

    def __init__(self, totalSize, useBar=False, desc='Download', loggerCallback=None, logInterval=2.0):
        self.totalSize = totalSize or 0
        self.useBar = useBar
        self.loggerCallback = loggerCallback or logger.info
        self.logInterval = logInterval

        self.transferred = 0
        self.startTime = time.monotonic()
        self.lastLogTime = self.startTime
        self.lastLogBytes = 0

        self.pbar = None
        if self.useBar:
            self.pbar = BitmathTqdm(
                total=self.totalSize or None,
                desc=desc,
                leave=True,
                ncols=100,
                bar_format=KNOWN_SIZE_BAR_FORMAT if self.totalSize else UNKNOWN_SIZE_BAR_FORMAT,
            )

    def __call__(self, transferred, total=None):
        """Progress callback form: progress(transferred, total)."""
        if total and not self.totalSize:
            self.totalSize = total
        self.update(transferred)

    def update(self, bytesTransferred, forceLog=False):
        previous = self.transferred
        self.transferred = bytesTransferred
        now = time.monotonic()

        if self.pbar is not None:
            if self.transferred > previous:
                self.pbar.update(self.transferred - previous)
            if self.totalSize and self.transferred >= self.totalSize:
                self.finishBar()
        elif forceLog or now - self.lastLogTime >= self.logInterval or self.transferred % (5 * ONE_MB) == 0:
            self._log(now)

    def _log(self, now):
        elapsed = now - self.lastLogTime
        speed = (self.transferred - self.lastLogBytes) / elapsed if elapsed > 0 else 0
        if self.totalSize:
            percentage = self.transferred * 100.0 / self.totalSize
            message = (
                f"Progress: {formatSize(self.transferred)}/{formatSize(self.totalSize)} "
                f"({percentage:.2f}%), {formatSize(int(speed))}/sec"
            )
        else:
            message = f"Progress: {formatSize(self.transferred)}, {formatSize(int(speed))}/sec"
        self.loggerCallback(message)

        self.lastLogTime = now
        self.lastLogBytes = self.transferred

    def getPercentage(self):
        return self.transferred * 100.0 / self.totalSize if self.totalSize > 0 else 0

    def getElapsedTime(self):
        return time.monotonic() - self.startTime

    def finishBar(self, complete=True):
        """Close the bar; with complete, fill it up to the total first."""
        if self.pbar is None:
            return
        try:
            if complete and self.pbar.total:
                remaining = self.pbar.total - self.pbar.n
                if remaining > 0:
                    self.pbar.update(remaining)
            self.pbar.refresh()
            self.pbar.close()
        except (ValueError, AttributeError) as e:
            logger.debug(f"Exception during progress bar cleanup: {e}")
        finally:
            self.pbar = None

    def __enter__(self):
        return self

    def __exit__(self, excType, excVal, excTb):
        self.finishBar(complete=excType is None)
