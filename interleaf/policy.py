"""Error handling policy implementation."""

from __future__ import annotations

import sys
import threading
from typing import List, Optional, TextIO

from .errors import ErrorCategory, ErrorRecord


class ErrorPolicy:
    """Records failures absorbed by the pipeline and reports them as they occur.

    Workers share one policy, so recording is guarded by a lock. Nothing here
    aborts a run: whether the document as a whole failed is decided by the
    runner once every batch has been processed.
    """

    def __init__(self, *, stream: Optional[TextIO] = None, quiet: bool = False) -> None:
        self.records: List[ErrorRecord] = []
        self.quiet = quiet
        self._stream = stream
        self._lock = threading.Lock()

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        details: Optional[str] = None,
    ) -> ErrorRecord:
        """Record an error and echo it to stderr."""

        record = ErrorRecord(category=category, message=message, details=details)
        with self._lock:
            self.records.append(record)
            if not self.quiet:
                print(message, file=self._stream or sys.stderr)
        return record

    @property
    def messages(self) -> List[str]:
        with self._lock:
            return [record.message for record in self.records]
