"""Error definitions for the interleaf translator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises absorbed runtime errors for reporting."""

    FORMAT = auto()
    NETWORK = auto()


class InterleafError(Exception):
    """Base exception for all custom errors."""


class EmptyDocumentError(InterleafError):
    """Raised when the input holds no translatable paragraph."""


class UnsupportedFileTypeError(InterleafError):
    """Raised when a given file extension is not supported."""


class OverwriteRefusedError(InterleafError):
    """Raised when attempting to overwrite an output without consent."""


class TranslationProviderConfigurationError(InterleafError):
    """Raised when the translation provider is misconfigured."""


class TranslationProviderError(InterleafError):
    """Raised when a call to the translation provider fails."""


class MalformedOutputError(TranslationProviderError):
    """Raised when the model output does not honour the JSON contract."""


@dataclass
class ErrorRecord:
    """Stores context for a handled error."""

    category: ErrorCategory
    message: str
    details: Optional[str] = None
