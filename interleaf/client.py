"""Model calls under a strict JSON output contract, with retries."""

from __future__ import annotations

import json
import random
import re
import sys
import time
from typing import Any, Callable, List, Optional, Sequence

from .errors import MalformedOutputError, TranslationProviderError
from .providers import TranslationProvider
from .structures import BatchTranslation, ModelPrompt

OUTPUT_FIELD = "translations"
JSON_ONLY_SYSTEM_RULE = "You are a translator. Output must be JSON only."
JSON_OUTPUT_CONTRACT = (
    "Return ONLY valid JSON. No extra text. No markdown. "
    f'Schema must be exactly: {{"{OUTPUT_FIELD}": string[]}}.'
)
DEFAULT_STYLE_PROMPT = (
    "You are a careful literary translator. Preserve meaning, tone, names, "
    "numbers and paragraph structure."
)

MAX_RETRIES = 2
BASE_BACKOFF_SECONDS = 0.35
MAX_JITTER_SECONDS = 0.12

FENCED_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def extract_json_candidates(raw_text: str) -> List[str]:
    """Return the strings worth parsing, in priority order."""

    text = raw_text.strip()
    candidates = [text]

    fenced = FENCED_BLOCK_PATTERN.search(text)
    if fenced and fenced.group(1):
        candidates.append(fenced.group(1).strip())

    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        candidates.append(text[first_brace : last_brace + 1])

    return candidates


def _validate_payload(payload: Any, expected_length: int) -> Optional[List[str]]:
    if not isinstance(payload, dict) or list(payload.keys()) != [OUTPUT_FIELD]:
        return None
    values = payload[OUTPUT_FIELD]
    if not isinstance(values, list) or len(values) != expected_length:
        return None
    if not all(isinstance(value, str) for value in values):
        return None
    return [value.strip() for value in values]


def parse_strict_output(raw_text: str, expected_length: int) -> List[str]:
    """Extract the translations array from raw model output.

    The first candidate from :func:`extract_json_candidates` that parses to
    ``{"translations": [...]}`` with exactly ``expected_length`` strings wins.
    Raises :class:`MalformedOutputError` when none does.
    """

    for candidate in extract_json_candidates(raw_text):
        try:
            payload = json.loads(candidate)
        except (ValueError, RecursionError):
            continue
        values = _validate_payload(payload, expected_length)
        if values is not None:
            return values

    raise MalformedOutputError(
        f'Model response was not valid strict JSON in {{"{OUTPUT_FIELD}": string[]}} '
        f"format with {expected_length} item(s)."
    )


def build_user_prompt(
    paragraphs: Sequence[str],
    attempt: int,
    *,
    source_language: str,
    target_language: str,
) -> str:
    """Compose the user message for a zero-based attempt."""

    expected_length = len(paragraphs)
    retry_rule = (
        ""
        if attempt == 0
        else f"\n\nRETRY {attempt}: STRICT JSON ONLY. Array length MUST be exactly {expected_length}."
    )
    lines = [
        f"Translate each {source_language} paragraph to {target_language}.",
        f"Paragraph count: {expected_length}",
        f"{source_language} paragraphs (JSON array):",
        json.dumps(list(paragraphs), ensure_ascii=False),
        "",
        f'{JSON_OUTPUT_CONTRACT} The "{OUTPUT_FIELD}" array length MUST equal '
        f"{expected_length}. Preserve order: {OUTPUT_FIELD}[i] maps to paragraph i.",
        retry_rule,
    ]
    return "\n".join(lines).strip()


class TranslationClient:
    """Issues model calls and enforces the output contract with retries."""

    def __init__(
        self,
        provider: TranslationProvider,
        *,
        model: str | None = None,
        style_prompt: str | None = None,
        source_language: str = "Arabic",
        target_language: str = "Persian",
        max_retries: int = MAX_RETRIES,
        base_backoff: float = BASE_BACKOFF_SECONDS,
        max_jitter: float = MAX_JITTER_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        debug: bool = False,
    ) -> None:
        self.provider = provider
        self.model = model or provider.default_model
        self.style_prompt = style_prompt or DEFAULT_STYLE_PROMPT
        self.source_language = source_language
        self.target_language = target_language
        self.max_retries = max(0, max_retries)
        self.base_backoff = base_backoff
        self.max_jitter = max_jitter
        self.debug = debug
        self._sleep = sleep

    def build_prompt(self, paragraphs: Sequence[str], attempt: int) -> ModelPrompt:
        return ModelPrompt(
            system_messages=[self.style_prompt, JSON_ONLY_SYSTEM_RULE],
            user_message=build_user_prompt(
                paragraphs,
                attempt,
                source_language=self.source_language,
                target_language=self.target_language,
            ),
            paragraphs=list(paragraphs),
            attempt=attempt,
            model=self.model,
            output_field=OUTPUT_FIELD,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the attempt following zero-based ``attempt``."""

        return self.base_backoff * (2 ** attempt) + random.uniform(0, self.max_jitter)

    def translate(self, paragraphs: Sequence[str]) -> BatchTranslation:
        """Translate paragraphs into an equal-length, order-preserving list.

        Raises the last observed :class:`TranslationProviderError` once every
        attempt has failed.
        """

        expected_length = len(paragraphs)
        if expected_length == 0:
            return BatchTranslation(texts=[], attempts=0)

        last_error: TranslationProviderError = TranslationProviderError(
            "Unknown translation error."
        )
        for attempt in range(self.max_retries + 1):
            prompt = self.build_prompt(paragraphs, attempt)
            try:
                raw_text = self.provider.complete(prompt)
                self._trace("client.response.text", raw_text)
                texts = parse_strict_output(raw_text, expected_length)
                return BatchTranslation(texts=texts, attempts=attempt + 1)
            except TranslationProviderError as exc:
                last_error = exc
                self._trace("client.attempt.failed", f"attempt {attempt + 1}: {exc}")

            if attempt < self.max_retries:
                self._sleep(self.backoff_delay(attempt))

        raise last_error

    def _trace(self, label: str, message: str) -> None:
        if self.debug:
            print(f"[interleaf][provider-debug] {label}:\n{message}", file=sys.stderr)
