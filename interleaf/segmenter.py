"""Paragraph splitting, sub-segmentation and batching utilities."""

from __future__ import annotations

import re
from typing import List, Sequence

from .structures import Batch, ParagraphUnit

LINE_ENDING_PATTERN = re.compile(r"\r\n?")
BLANK_LINE_PATTERN = re.compile(r"\n{2,}")
LINE_BREAK_PATTERN = re.compile(r"\n+")
SENTENCE_PATTERN = re.compile(r"[^.!?؟؛]+[.!?؟؛]*|[.!?؟؛]+")

BATCH_JOINT_CHARS = 2


def normalise_newlines(text: str) -> str:
    """Collapse CRLF and CR line endings into LF."""

    return LINE_ENDING_PATTERN.sub("\n", text)


def split_into_paragraphs(text: str | None) -> List[str]:
    """Split raw text into trimmed, non-empty paragraphs.

    Blank lines delimit paragraphs. When the text has no blank line at all,
    every line becomes its own paragraph instead.
    """

    normalised = normalise_newlines(text or "").strip()
    if not normalised:
        return []

    if BLANK_LINE_PATTERN.search(normalised):
        parts = BLANK_LINE_PATTERN.split(normalised)
    else:
        parts = LINE_BREAK_PATTERN.split(normalised)

    return [part.strip() for part in parts if part.strip()]


def _hard_split(text: str, budget: int) -> List[str]:
    """Cut text into fixed-width pieces of at most ``budget`` characters."""

    if budget <= 0:
        return [text]
    return [text[start : start + budget] for start in range(0, len(text), budget)]


def _split_sentences(text: str) -> List[str]:
    """Split on sentence terminators, keeping them on the preceding sentence."""

    sentences = [match.strip() for match in SENTENCE_PATTERN.findall(text)]
    sentences = [sentence for sentence in sentences if sentence]
    return sentences or [text]


def _split_segment(segment: str, budget: int) -> List[str]:
    if len(segment) <= budget:
        return [segment]

    pieces: List[str] = []
    for sentence in _split_sentences(segment):
        if len(sentence) <= budget:
            pieces.append(sentence)
        else:
            pieces.extend(_hard_split(sentence, budget))
    return pieces


def _pack_segments(chunks: Sequence[str], budget: int) -> List[str]:
    """Greedily join chunks with single spaces into budget-sized segments."""

    packed: List[str] = []
    current = ""
    for chunk in chunks:
        candidate = f"{current} {chunk}" if current else chunk
        if len(candidate) <= budget:
            current = candidate
            continue

        if current:
            packed.append(current)

        if len(chunk) <= budget:
            current = chunk
            continue

        forced = _hard_split(chunk, budget)
        packed.extend(forced[:-1])
        current = forced[-1] if forced else ""

    if current:
        packed.append(current)
    return packed


def segment_paragraph(paragraph: str, budget: int) -> List[str]:
    """Decompose a paragraph into pieces no longer than ``budget``."""

    if len(paragraph) <= budget:
        return [paragraph]

    lines = [line.strip() for line in LINE_BREAK_PATTERN.split(paragraph)]
    lines = [line for line in lines if line] or [paragraph]

    expanded: List[str] = []
    for line in lines:
        expanded.extend(_split_segment(line, budget))
    return _pack_segments(expanded, budget)


def build_paragraph_units(text: str | None, budget: int) -> List[ParagraphUnit]:
    """Number paragraphs from 1 and pre-compute their sub-segments."""

    budget = max(1, budget)
    return [
        ParagraphUnit(
            unit_id=index,
            source_text=paragraph,
            sub_segments=segment_paragraph(paragraph, budget),
        )
        for index, paragraph in enumerate(split_into_paragraphs(text), start=1)
    ]


class BatchBuilder:
    """Aggregates consecutive units into batches within a character budget."""

    def __init__(self, budget: int) -> None:
        self.budget = max(1, budget)

    def build(self, units: Sequence[ParagraphUnit]) -> List[Batch]:
        batches: List[Batch] = []
        batch_units: List[ParagraphUnit] = []
        running_total = 0

        for unit in units:
            size = len(unit.source_text)
            joint = BATCH_JOINT_CHARS if batch_units else 0
            if batch_units and running_total + joint + size > self.budget:
                batches.append(Batch(batch_id=len(batches) + 1, units=batch_units))
                batch_units = []
                running_total = 0
                joint = 0

            # An oversized unit lands alone: the next unit always overflows it.
            batch_units.append(unit)
            running_total += joint + size

        if batch_units:
            batches.append(Batch(batch_id=len(batches) + 1, units=batch_units))

        return batches
