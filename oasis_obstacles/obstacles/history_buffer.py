################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""
Thread-safe, time-ordered observation history
"""

from __future__ import annotations

import logging
import threading
from bisect import bisect_left
from bisect import bisect_right
from typing import Optional

from oasis_obstacles.obstacles.obstacles_types import ObservationRecord


_LOG: logging.Logger = logging.getLogger(__name__)


class HistoryBuffer:
    """
    Observation records sorted by timestamp and shared between sensor
    callbacks and the map builder

    Records are only purged by snapshot_and_purge(), so between rebuild
    cycles the buffer may span more than the time window.
    """

    def __init__(self) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._records: list[ObservationRecord] = []
        self._timestamps: list[float] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def insert(self, record: ObservationRecord) -> None:
        with self._lock:
            insert_index: int = bisect_right(self._timestamps, record.timestamp)
            self._timestamps.insert(insert_index, record.timestamp)
            self._records.insert(insert_index, record)

    def snapshot_and_purge(self, time_window: float) -> list[ObservationRecord]:
        """
        Drop records older than the window and return a copy of the rest

        The window is anchored at the newest timestamp present. A record
        exactly time_window older than the newest one is kept.
        """

        with self._lock:
            if not self._records:
                return []

            latest: float = self._timestamps[-1]
            first_valid: int = bisect_left(self._timestamps, latest - time_window)
            if first_valid > 0:
                del self._records[:first_valid]
                del self._timestamps[:first_valid]

            snapshot: list[ObservationRecord] = list(self._records)

        _LOG.debug(
            "Removed %d old entries, latest=%.6f, %d retained",
            first_valid,
            latest,
            len(snapshot),
        )
        return snapshot

    def latest_time(self) -> Optional[float]:
        with self._lock:
            if not self._timestamps:
                return None
            return self._timestamps[-1]

    def clear(self) -> None:
        with self._lock:
            self._records = []
            self._timestamps = []
