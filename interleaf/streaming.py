"""Newline-delimited JSON event stream over a translation run."""

from __future__ import annotations

import json
import threading
from typing import Any, Dict, TextIO

from .errors import InterleafError
from .structures import ProgressEvent
from .translator import TranslationRunner, TranslationSummary


class EventStreamWriter:
    """Writes one self-contained JSON record per line and flushes it."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self._lock = threading.Lock()

    def write(self, event: Dict[str, Any]) -> None:
        line = json.dumps(event, ensure_ascii=False)
        with self._lock:
            self.stream.write(line + "\n")
            self.stream.flush()


def meta_event(total_units: int, model: str) -> Dict[str, Any]:
    return {"type": "meta", "total_units": total_units, "model": model}


def progress_event(event: ProgressEvent) -> Dict[str, Any]:
    return {
        "type": "progress",
        "completed": event.completed,
        "total_units": event.total,
        "unit": event.unit.to_dict(),
    }


def done_event(summary: TranslationSummary) -> Dict[str, Any]:
    return {
        "type": "done",
        "units": summary.pairs(),
        "total_units": summary.translated_units,
        "model": summary.model,
        "notes": list(summary.error_messages),
    }


def error_event(message: str) -> Dict[str, Any]:
    return {"type": "error", "message": message}


def stream_translation(
    runner: TranslationRunner,
    text: str,
    writer: EventStreamWriter,
) -> TranslationSummary | None:
    """Run a translation, emitting meta, progress and exactly one terminal event.

    Returns the summary on success and ``None`` when the error event was
    written instead.
    """

    try:
        units = runner.prepare(text)
    except InterleafError as exc:
        writer.write(error_event(str(exc)))
        return None

    writer.write(meta_event(len(units), runner.model))
    try:
        summary = runner.translate_units(
            units,
            on_progress=lambda event: writer.write(progress_event(event)),
        )
    except InterleafError as exc:
        writer.write(error_event(str(exc)))
        return None
    except Exception as exc:  # pragma: no cover - defensive catch
        writer.write(error_event(f"Translation failed unexpectedly: {exc}"))
        return None

    writer.write(done_event(summary))
    return summary
