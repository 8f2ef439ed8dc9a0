"""Core data structures for the interleaf translator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class UnitStatus(str, Enum):
    """Completion status of a translated paragraph."""

    DONE = "done"
    DONE_FALLBACK = "done_fallback"


@dataclass
class ParagraphUnit:
    """A single paragraph ready for translation."""

    unit_id: int
    source_text: str
    sub_segments: List[str] = field(default_factory=list)


@dataclass
class Batch:
    """A run of consecutive units sent to the model in one call."""

    batch_id: int
    units: List[ParagraphUnit]

    @property
    def char_count(self) -> int:
        """Total source characters including two per joint between units."""

        if not self.units:
            return 0
        return sum(len(unit.source_text) for unit in self.units) + 2 * (
            len(self.units) - 1
        )


@dataclass(frozen=True)
class TranslatedUnit:
    """A paragraph paired with its translation."""

    unit_id: int
    source_text: str
    translated_text: str
    status: UnitStatus
    attempts: int

    def as_pair(self) -> Dict[str, Any]:
        return {
            "id": self.unit_id,
            "source_text": self.source_text,
            "translated_text": self.translated_text,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.as_pair()
        data["status"] = self.status.value
        data["attempts"] = self.attempts
        return data


@dataclass(frozen=True)
class ProgressEvent:
    """Snapshot emitted when a unit completes."""

    unit: TranslatedUnit
    completed: int
    total: int


@dataclass
class ModelPrompt:
    """Structured prompt handed to a translation provider."""

    system_messages: List[str]
    user_message: str
    paragraphs: List[str]
    attempt: int
    model: str
    output_field: str

    def to_messages(self) -> List[Dict[str, str]]:
        messages = [
            {"role": "system", "content": content}
            for content in self.system_messages
            if content
        ]
        messages.append({"role": "user", "content": self.user_message})
        return messages


@dataclass
class BatchTranslation:
    """Validated model output for one call."""

    texts: List[str]
    attempts: int
