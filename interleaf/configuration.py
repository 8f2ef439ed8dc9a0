"""Layered configuration loader for interleaf."""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping, Sequence

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import TranslationProviderConfigurationError

APP_NAME = "interleaf"

MIN_CHUNK_CHARS = 200
MAX_CHUNK_CHARS = 10000
MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 10
LEADING_INT_PATTERN = re.compile(r"\s*[+-]?\d+")

PROVIDER_SYNONYMS = {
    "azure_open_ai": "azure_openai",
    "azureopenai": "azure_openai",
    "azure": "azure_openai",
    "responses": "openai_responses",
    "cf": "cloudflare",
    "cloudflare_gateway": "cloudflare",
    "mock": "echo",
    "noop": "echo",
}


class InterleafConfig(BaseModel):
    """Schema describing all supported configuration options."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    LLM_PROVIDER: Literal[
        "openai", "openai_responses", "azure_openai", "cloudflare", "echo"
    ] = Field(
        default="openai",
        description="Large language model provider selection.",
    )
    OPENAI_API_KEY: str | None = Field(default=None, repr=False)
    OPENAI_BASE_URL: str | None = Field(default=None)
    AZURE_OPENAI_API_KEY: str | None = Field(default=None, repr=False)
    AZURE_OPENAI_ENDPOINT: str | None = Field(default=None)
    AZURE_OPENAI_API_VERSION: str | None = Field(default=None)
    AZURE_OPENAI_DEPLOYMENT_NAME: str | None = Field(default=None)
    CF_API_TOKEN: str | None = Field(default=None, repr=False)
    CF_ACCOUNT_ID: str | None = Field(default=None)
    CF_GATEWAY_ID: str | None = Field(default=None)
    TRANSLATION_PROMPT: str | None = Field(
        default=None,
        description="System-level style prompt sent with every request.",
    )
    TRANSLATION_MODEL: str | None = Field(default=None)
    SOURCE_LANGUAGE: str = Field(default="Arabic")
    TARGET_LANGUAGE: str = Field(default="Persian")
    MAX_CHUNK_CHARS: int = Field(default=2200)
    CONCURRENCY: int = Field(default=3)
    INTERLEAF_PROVIDER_DEBUG: bool = Field(default=False)

    @model_validator(mode="before")
    @classmethod
    def _normalise_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = {
            key: value
            for key, value in data.items()
            if not (isinstance(value, str) and not value.strip())
        }
        raw_value = data.get("LLM_PROVIDER")
        if isinstance(raw_value, str):
            normalized = raw_value.strip().lower().replace("-", "_")
            data["LLM_PROVIDER"] = PROVIDER_SYNONYMS.get(normalized, normalized)
        data["MAX_CHUNK_CHARS"] = clamp_int(
            data.get("MAX_CHUNK_CHARS"), 2200, MIN_CHUNK_CHARS, MAX_CHUNK_CHARS
        )
        data["CONCURRENCY"] = clamp_int(
            data.get("CONCURRENCY"), 3, MIN_CONCURRENCY, MAX_CONCURRENCY
        )
        return data


def clamp_int(value: Any, fallback: int, minimum: int, maximum: int) -> int:
    """Parse the leading integer of ``value`` and clamp it into ``[minimum, maximum]``.

    ``"3.7"`` reads as 3 and ``"12abc"`` as 12; a value without a leading
    integer yields ``fallback``.
    """

    if value is None:
        return fallback
    match = LEADING_INT_PATTERN.match(str(value))
    if match is None:
        return fallback
    return max(minimum, min(maximum, int(match.group(0))))


def _discover_yaml_paths(app_dir: Path) -> list[Path]:
    """Home configuration first, then the project-local file."""

    candidates = [
        Path.home() / ".config" / APP_NAME / "config.yaml",
        app_dir / "config.yaml",
    ]
    return [path for path in candidates if path.is_file()]


def _load_discovered_yaml(*, app_dir: Path) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for path in _discover_yaml_paths(app_dir):
        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise TranslationProviderConfigurationError(
                f"Configuration files could not be read: {path}: {exc}"
            ) from exc
        if parsed is None:
            continue
        if not isinstance(parsed, Mapping):
            raise TranslationProviderConfigurationError(
                f"Invalid configuration file {path}: expected a mapping at the root."
            )
        result.update(parsed)
    return result


def _merge_env_sources(
    target: dict[str, Any],
    *,
    app_dir: Path,
    environ: Mapping[str, str],
) -> None:
    """Merge .env and process environment variables into the target mapping."""

    allowed = set(InterleafConfig.model_fields.keys())

    def merge_values(values: Mapping[str, str | None]) -> None:
        for key, value in sorted(values.items()):
            if value is None or key not in allowed:
                continue
            target[key] = value

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        merge_values(dotenv_values(dotenv_path))

    merge_values(environ)


def _format_validation_errors(entries: Sequence[Mapping[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        location = ".".join(str(part) for part in entry.get("loc") or () if part not in {None, ""})
        message = str(entry.get("msg") or "Invalid value")
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def load_settings(
    app_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> InterleafConfig:
    """Build settings from YAML files, .env and the environment, later layers winning."""

    base_dir = app_dir or Path.cwd()
    combined = _load_discovered_yaml(app_dir=base_dir)
    _merge_env_sources(
        combined,
        app_dir=base_dir,
        environ=os.environ if environ is None else environ,
    )
    try:
        return InterleafConfig.model_validate(combined)
    except ValidationError as exc:
        raise TranslationProviderConfigurationError(
            _format_validation_errors(exc.errors())
        ) from exc


@lru_cache(maxsize=1)
def get_settings(app_dir: Path | None = None) -> InterleafConfig:
    """Return the validated settings, loaded once per process."""

    return load_settings(app_dir=app_dir)
