"""High-level orchestration for document translation."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .client import TranslationClient
from .dispatcher import BoundedDispatcher
from .errors import (
    EmptyDocumentError,
    ErrorCategory,
    MalformedOutputError,
    TranslationProviderError,
)
from .policy import ErrorPolicy
from .progress import ProgressSink, ProgressTracker
from .segmenter import BatchBuilder, build_paragraph_units
from .structures import Batch, ParagraphUnit, TranslatedUnit, UnitStatus


@dataclass
class TranslationSummary:
    """Report returned after processing a document."""

    units: List[TranslatedUnit]
    total_units: int
    total_batches: int
    fallback_batches: int
    failed_unit_ids: List[int]
    model: str
    elapsed_seconds: float
    error_messages: List[str] = field(default_factory=list)

    @property
    def translated_units(self) -> int:
        return len(self.units)

    @property
    def complete(self) -> bool:
        return not self.failed_unit_ids

    def pairs(self) -> List[Dict[str, Any]]:
        return [unit.as_pair() for unit in self.units]


def merge_batch_results(
    batch_results: Iterable[Optional[Sequence[TranslatedUnit]]],
) -> List[TranslatedUnit]:
    """Flatten per-batch results and restore document order by id."""

    merged = [unit for result in batch_results if result for unit in result]
    return sorted(merged, key=lambda unit: unit.unit_id)


class TranslationRunner:
    """Coordinates segmentation, concurrent translation and merging."""

    def __init__(
        self,
        *,
        client: TranslationClient,
        max_chunk_chars: int,
        concurrency: int,
        verbose: bool = False,
        error_policy: ErrorPolicy | None = None,
    ) -> None:
        self.client = client
        self.max_chunk_chars = max(1, max_chunk_chars)
        self.concurrency = max(1, concurrency)
        self.verbose = verbose
        self.error_policy = error_policy or ErrorPolicy()

    @property
    def model(self) -> str:
        return self.client.model

    def prepare(self, text: str) -> List[ParagraphUnit]:
        """Split text into numbered units; an empty document is rejected."""

        units = build_paragraph_units(text, self.max_chunk_chars)
        if not units:
            raise EmptyDocumentError("Text is required and must contain at least one paragraph.")
        return units

    def run(self, text: str, on_progress: ProgressSink | None = None) -> TranslationSummary:
        return self.translate_units(self.prepare(text), on_progress=on_progress)

    def translate_units(
        self,
        units: Sequence[ParagraphUnit],
        *,
        on_progress: ProgressSink | None = None,
    ) -> TranslationSummary:
        start_time = time.time()
        first_record = len(self.error_policy.messages)
        if not units:
            raise EmptyDocumentError("Text is required and must contain at least one paragraph.")

        batches = BatchBuilder(self.max_chunk_chars).build(units)
        dispatcher = BoundedDispatcher(self.concurrency)
        tracker = ProgressTracker(total=len(units), sink=on_progress)
        self._notify(
            f"Prepared {len(units)} paragraphs in {len(batches)} batches "
            f"({dispatcher.worker_count(len(batches))} workers, model {self.model})."
        )

        batch_results = dispatcher.map(
            batches,
            lambda batch, _index: self._process_batch(batch, tracker),
        )
        merged = merge_batch_results(batch_results)

        translated_ids = {unit.unit_id for unit in merged}
        failed_ids = [unit.unit_id for unit in units if unit.unit_id not in translated_ids]
        messages = self.error_policy.messages[first_record:]

        if not merged:
            last_message = messages[-1] if messages else "no batch produced a result."
            raise TranslationProviderError(f"Translation failed for every batch. {last_message}")

        fallback_batches = sum(
            1
            for result in batch_results
            if result and result[0].status is UnitStatus.DONE_FALLBACK
        )

        return TranslationSummary(
            units=merged,
            total_units=len(units),
            total_batches=len(batches),
            fallback_batches=fallback_batches,
            failed_unit_ids=failed_ids,
            model=self.model,
            elapsed_seconds=time.time() - start_time,
            error_messages=messages,
        )

    def _process_batch(self, batch: Batch, tracker: ProgressTracker) -> List[TranslatedUnit]:
        paragraphs = [unit.source_text for unit in batch.units]
        try:
            result = self.client.translate(paragraphs)
            translated = [
                TranslatedUnit(
                    unit_id=unit.unit_id,
                    source_text=unit.source_text,
                    translated_text=text,
                    status=UnitStatus.DONE,
                    attempts=result.attempts,
                )
                for unit, text in zip(batch.units, result.texts)
            ]
        except TranslationProviderError as exc:
            self._notify(
                f"Batch {batch.batch_id} failed after {self.client.max_retries + 1} "
                f"attempts ({exc}). Translating its {len(batch.units)} paragraphs one by one."
            )
            try:
                translated = self._translate_fallback(batch)
            except TranslationProviderError as fallback_exc:
                ids = ", ".join(str(unit.unit_id) for unit in batch.units)
                category = (
                    ErrorCategory.FORMAT
                    if isinstance(fallback_exc, MalformedOutputError)
                    else ErrorCategory.NETWORK
                )
                self.error_policy.handle_error(
                    category,
                    f"Batch {batch.batch_id} could not be translated; "
                    f"paragraphs {ids} are missing from the result. {fallback_exc}",
                    details=str(exc),
                )
                return []

        self._notify(
            f"Processed batch {batch.batch_id} "
            f"({len(batch.units)} paragraphs, {batch.char_count} chars)."
        )
        for unit in translated:
            tracker.unit_completed(unit)
        return translated

    def _translate_fallback(self, batch: Batch) -> List[TranslatedUnit]:
        """Translate each unit of a failed batch with its own call."""

        translated: List[TranslatedUnit] = []
        for unit in batch.units:
            result = self.client.translate([unit.source_text])
            translated.append(
                TranslatedUnit(
                    unit_id=unit.unit_id,
                    source_text=unit.source_text,
                    translated_text=result.texts[0],
                    status=UnitStatus.DONE_FALLBACK,
                    attempts=result.attempts,
                )
            )
        return translated

    def _notify(self, message: str) -> None:
        if self.verbose:
            print(message, file=sys.stderr)
