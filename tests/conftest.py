"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import Callable, List

import pytest

from interleaf.client import TranslationClient
from interleaf.structures import ModelPrompt

from tests.fakes import ScriptedProvider


@pytest.fixture
def no_sleep() -> List[float]:
    """Collects requested backoff delays instead of sleeping."""

    return []


@pytest.fixture
def make_client(no_sleep):
    """Build a client around a scripted provider that never really sleeps."""

    def factory(reply: Callable[[ModelPrompt], str], **kwargs) -> TranslationClient:
        return TranslationClient(ScriptedProvider(reply), sleep=no_sleep.append, **kwargs)

    return factory
