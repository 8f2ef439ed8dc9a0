"""Per-unit completion tracking shared by all workers."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from .structures import ProgressEvent, TranslatedUnit

ProgressSink = Callable[[ProgressEvent], None]


class ProgressTracker:
    """Counts completed units and forwards snapshots to an optional sink.

    Increments and sink calls happen under one lock, so counts are strictly
    increasing and the sink is never entered by two workers at once.
    """

    def __init__(self, total: int, sink: Optional[ProgressSink] = None) -> None:
        self.total = total
        self._sink = sink
        self._completed = 0
        self._lock = threading.Lock()

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    def unit_completed(self, unit: TranslatedUnit) -> int:
        with self._lock:
            self._completed += 1
            completed = self._completed
            if self._sink is not None:
                self._sink(ProgressEvent(unit=unit, completed=completed, total=self.total))
        return completed
