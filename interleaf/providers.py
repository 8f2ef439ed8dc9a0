"""Translation provider abstractions."""

from __future__ import annotations

import json
import sys
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from .errors import (
    MalformedOutputError,
    TranslationProviderConfigurationError,
    TranslationProviderError,
)
from .structures import ModelPrompt

if TYPE_CHECKING:  # pragma: no cover
    from .configuration import InterleafConfig


CLOUDFLARE_GATEWAY_URL = "https://gateway.ai.cloudflare.com/v1/{account}/{gateway}/compat"


class TranslationProvider(ABC):
    """Abstract adapter for a text-to-text model endpoint."""

    name = "base"
    default_model = ""

    @abstractmethod
    def complete(self, prompt: ModelPrompt) -> str:
        """Send the prompt and return the raw model output."""


class EchoTranslationProvider(TranslationProvider):
    """A provider that returns the original text (useful for dry runs)."""

    name = "echo"
    default_model = "echo"

    def complete(self, prompt: ModelPrompt) -> str:
        return json.dumps({prompt.output_field: list(prompt.paragraphs)}, ensure_ascii=False)


def _import_openai():
    try:
        import openai  # type: ignore
    except ImportError as exc:  # pragma: no cover - import guard
        raise TranslationProviderConfigurationError(
            "OpenAI Python SDK not installed. Install with `pip install openai`."
        ) from exc
    return openai


class OpenAITranslationProvider(TranslationProvider):
    """Translation provider that uses the OpenAI Chat Completions API."""

    name = "openai"
    default_model = "gpt-5-mini"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        client: Any = None,
        debug: bool = False,
    ) -> None:
        self.debug = debug
        if model:
            self.default_model = model
        self._client = client if client is not None else self._build_client(api_key, base_url)

    def _build_client(self, api_key: str | None, base_url: str | None) -> Any:
        if not api_key:
            raise TranslationProviderConfigurationError(
                "OpenAI configuration missing. Set OPENAI_API_KEY or choose a "
                "different provider."
            )
        openai = _import_openai()
        return openai.OpenAI(api_key=api_key, base_url=base_url or None)

    def complete(self, prompt: ModelPrompt) -> str:
        messages = prompt.to_messages()
        self._log_debug("provider.request.messages", messages)
        try:
            response = self._client.chat.completions.create(
                model=prompt.model or self.default_model,
                temperature=0,
                messages=messages,
            )
        except Exception as exc:  # pragma: no cover - network call
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))
        return self._extract_content(response)

    def _extract_content(self, response: Any) -> str:
        """Collect the text of the first usable choice."""

        choices = getattr(response, "choices", None) or []
        for choice in choices:
            message = getattr(choice, "message", None)
            if message is None:
                continue
            message_content = getattr(message, "content", None)
            if isinstance(message_content, list):
                parts: list[str] = []
                for part in message_content:
                    text_value = getattr(part, "text", None)
                    if text_value is None and isinstance(part, dict):
                        text_value = part.get("text")
                    if isinstance(text_value, str):
                        parts.append(text_value)
                if parts:
                    return "".join(parts)
            elif message_content:
                return str(message_content)

        raise MalformedOutputError("Translation provider response empty or unrecognised.")

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not getattr(self, "debug", False):
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[interleaf][provider-debug] {label}:\n{message}", file=sys.stderr)

    def _safe_dump_response(self, response: Any) -> Any:
        """Best-effort conversion of SDK response objects into JSON-friendly data."""

        dump = getattr(response, "model_dump", None)
        if callable(dump):
            try:
                return dump()
            except Exception:
                return repr(response)
        return str(response)


class OpenAIResponsesTranslationProvider(OpenAITranslationProvider):
    """Translation provider that uses the OpenAI Responses API."""

    name = "openai_responses"

    def complete(self, prompt: ModelPrompt) -> str:
        payload = [
            {
                "role": message["role"],
                "content": [{"type": "input_text", "text": message["content"]}],
            }
            for message in prompt.to_messages()
        ]
        self._log_debug("provider.request.input", payload)
        try:
            response = self._client.responses.create(
                model=prompt.model or self.default_model,
                input=payload,
            )
        except Exception as exc:  # pragma: no cover - network call
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))
        return self._extract_output_text(response)

    def _extract_output_text(self, response: Any) -> str:
        output_text = getattr(response, "output_text", None)
        if isinstance(output_text, str) and output_text:
            return output_text

        parts: list[str] = []
        for item in getattr(response, "output", None) or []:
            for part in getattr(item, "content", None) or []:
                text_value = getattr(part, "text", None)
                if isinstance(text_value, str):
                    parts.append(text_value)
        if parts:
            return "".join(parts)

        raise MalformedOutputError("Translation provider response empty or unrecognised.")


class AzureOpenAITranslationProvider(OpenAITranslationProvider):
    """Chat Completions against an Azure OpenAI deployment."""

    name = "azure_openai"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        endpoint: str | None = None,
        api_version: str | None = None,
        deployment_name: str | None = None,
        client: Any = None,
        debug: bool = False,
    ) -> None:
        self.debug = debug
        self.default_model = deployment_name or ""
        if client is not None:
            self._client = client
            return

        missing = [
            name
            for name, value in {
                "AZURE_OPENAI_API_KEY": api_key,
                "AZURE_OPENAI_ENDPOINT": endpoint,
                "AZURE_OPENAI_API_VERSION": api_version,
                "AZURE_OPENAI_DEPLOYMENT_NAME": deployment_name,
            }.items()
            if not value
        ]
        if missing:
            raise TranslationProviderConfigurationError(
                "Azure OpenAI configuration incomplete. Please set: "
                + ", ".join(missing)
                + "."
            )

        openai = _import_openai()
        self._client = openai.AzureOpenAI(
            api_key=api_key,
            api_version=api_version,
            azure_endpoint=endpoint,
        )


class CloudflareGatewayTranslationProvider(OpenAITranslationProvider):
    """Chat Completions routed through a Cloudflare AI Gateway compat endpoint."""

    name = "cloudflare"
    default_model = "google-ai-studio/gemini-3-pro-preview"

    def __init__(
        self,
        *,
        api_token: str | None = None,
        account_id: str | None = None,
        gateway_id: str | None = None,
        model: str | None = None,
        client: Any = None,
        debug: bool = False,
    ) -> None:
        if client is None:
            missing = [
                name
                for name, value in {
                    "CF_API_TOKEN": api_token,
                    "CF_ACCOUNT_ID": account_id,
                    "CF_GATEWAY_ID": gateway_id,
                }.items()
                if not value
            ]
            if missing:
                raise TranslationProviderConfigurationError(
                    "Cloudflare AI Gateway configuration incomplete. Please set: "
                    + ", ".join(missing)
                    + "."
                )
        super().__init__(
            api_key=api_token,
            base_url=CLOUDFLARE_GATEWAY_URL.format(account=account_id, gateway=gateway_id),
            model=model,
            client=client,
            debug=debug,
        )


def build_provider(
    name: str | None,
    settings: "InterleafConfig",
    *,
    debug: bool = False,
) -> TranslationProvider:
    """Factory to create providers by name, falling back to the configured one."""

    normalized = (name or settings.LLM_PROVIDER or "openai").strip().lower().replace("-", "_")
    model = settings.TRANSLATION_MODEL
    if normalized in {"openai", "gpt", "default", "legacy"}:
        return OpenAITranslationProvider(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            model=model,
            debug=debug,
        )
    if normalized in {"openai_responses", "responses"}:
        return OpenAIResponsesTranslationProvider(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            model=model,
            debug=debug,
        )
    if normalized in {"azure_openai", "azure_open_ai", "azure"}:
        return AzureOpenAITranslationProvider(
            api_key=settings.AZURE_OPENAI_API_KEY,
            endpoint=settings.AZURE_OPENAI_ENDPOINT,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            deployment_name=model or settings.AZURE_OPENAI_DEPLOYMENT_NAME,
            debug=debug,
        )
    if normalized in {"cloudflare", "cf", "cloudflare_gateway"}:
        return CloudflareGatewayTranslationProvider(
            api_token=settings.CF_API_TOKEN,
            account_id=settings.CF_ACCOUNT_ID,
            gateway_id=settings.CF_GATEWAY_ID,
            model=model,
            debug=debug,
        )
    if normalized in {"echo", "noop", "mock"}:
        return EchoTranslationProvider()
    raise TranslationProviderConfigurationError(
        f"Unknown translation provider '{name}'."
    )
