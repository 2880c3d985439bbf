"""Translation provider abstractions."""

from __future__ import annotations

import json
import os
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from .errors import (
    MalformedResponseError,
    RequestError,
    TranslationProviderConfigurationError,
)
from .structures import RESPONSE_FIELDS, MediaPayload, SourceEntry, TranslatedEntry

DEFAULT_TIMEOUT_SECONDS = 300.0

# JSON Schema for providers that take one; the root must be an object.
TRANSLATIONS_JSON_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "translations": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {name: {"type": "string"} for name in RESPONSE_FIELDS},
                "required": list(RESPONSE_FIELDS),
                "additionalProperties": False,
            },
        }
    },
    "required": ["translations"],
    "additionalProperties": False,
}


def build_prompt(entries: Sequence[SourceEntry], continuity_hint: str) -> str:
    """Compose the per-batch instruction prompt."""

    payload = json.dumps([entry.to_payload() for entry in entries], ensure_ascii=False)
    return (
        "You are a professional film subtitle translator and script editor.\n"
        "TASKS:\n"
        "1. Identify the SPEAKER of every line.\n"
        "   - If video is attached: use what you see and hear.\n"
        "   - If the dialogue mentions a name: use that name.\n"
        "   - Otherwise: use a generic role and number such as \"Male 1\" or \"Female 1\".\n"
        f"   - Stay consistent with speakers already named: [{continuity_hint}].\n"
        "2. Translate every line into natural Vietnamese, English and "
        "Simplified Chinese.\n"
        "Keep each id and timeRange exactly as given and return one item per input line.\n\n"
        f"Input data:\n{payload}\n\n"
        "Output JSON:\n"
        '[ { "id": "...", "timeRange": "...", "speaker": "...", '
        '"vietnamese": "...", "english": "...", "chinese": "..." } ]'
    )


def strip_code_fence(text: str) -> str:
    """Remove leading/trailing markdown code fences if present."""

    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped

    first_newline = stripped.find("\n")
    if first_newline == -1:
        return stripped
    body = stripped[first_newline + 1 :]
    closing_index = body.rfind("```")
    if closing_index != -1:
        body = body[:closing_index]
    return body.strip()


def parse_response_text(text: Optional[str]) -> List[TranslatedEntry]:
    """Decode a raw response body into translated entries."""

    if not text or not text.strip():
        raise MalformedResponseError("Translation provider returned an empty response.")
    try:
        payload = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(
            f"Translation provider returned invalid JSON: {exc}"
        ) from exc

    if isinstance(payload, dict):
        payload = payload.get("translations")
    if not isinstance(payload, list):
        raise MalformedResponseError(
            "Translation provider response malformed: expected a JSON array."
        )
    return [TranslatedEntry.from_payload(item) for item in payload]


class TranslationProvider(ABC):
    """Abstract adapter for translation services."""

    name = "provider"
    supports_media = False
    model: Optional[str] = None

    def __init__(self, *, debug: bool = False) -> None:
        self.debug = debug

    @abstractmethod
    def translate_batch(
        self,
        entries: Sequence[SourceEntry],
        *,
        continuity_hint: str,
        media: Optional[MediaPayload] = None,
    ) -> List[TranslatedEntry]:
        """Translate one batch and return the entries in response order."""

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not self.debug:
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[trisub][provider-debug] {label}:\n{message}", file=sys.stderr)

    def _log_request(self, prompt: str, media: Optional[MediaPayload]) -> None:
        self._log_debug("provider.request.prompt", prompt)
        if media is not None:
            self._log_debug(
                "provider.request.media",
                {"mime_type": media.mime_type, "bytes": media.size},
            )


class EchoTranslationProvider(TranslationProvider):
    """Returns the source text for every language (useful for dry runs)."""

    name = "echo"
    supports_media = True

    def translate_batch(
        self,
        entries: Sequence[SourceEntry],
        *,
        continuity_hint: str,
        media: Optional[MediaPayload] = None,
    ) -> List[TranslatedEntry]:
        return [
            TranslatedEntry(
                id=entry.id,
                time_range=entry.time_range,
                speaker="",
                vietnamese=entry.text,
                english=entry.text,
                chinese=entry.text,
            )
            for entry in entries
        ]


class GeminiTranslationProvider(TranslationProvider):
    """Provider backed by Google Gemini structured output; reads video inline."""

    name = "gemini"
    supports_media = True
    DEFAULT_MODEL = "gemini-3-flash-preview"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        debug: bool = False,
        client: Any = None,
    ) -> None:
        super().__init__(debug=debug)
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout or DEFAULT_TIMEOUT_SECONDS
        self._client = client if client is not None else self._build_client(api_key)

    def _build_client(self, api_key: Optional[str]) -> Any:
        api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise TranslationProviderConfigurationError(
                "Gemini configuration missing. Set GEMINI_API_KEY or choose a "
                "different provider."
            )
        try:
            from google import genai
            from google.genai import types
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(
                "Google GenAI SDK not installed. Install with `pip install google-genai`."
            ) from exc

        return genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
        )

    @staticmethod
    def _response_schema() -> Any:
        from google.genai import types

        return types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    name: types.Schema(type=types.Type.STRING) for name in RESPONSE_FIELDS
                },
                required=list(RESPONSE_FIELDS),
            ),
        )

    def translate_batch(
        self,
        entries: Sequence[SourceEntry],
        *,
        continuity_hint: str,
        media: Optional[MediaPayload] = None,
    ) -> List[TranslatedEntry]:
        from google.genai import types

        if not entries:
            return []

        prompt = build_prompt(entries, continuity_hint)
        self._log_request(prompt, media)

        parts = []
        if media is not None:
            parts.append(types.Part.from_bytes(data=media.data, mime_type=media.mime_type))
        parts.append(types.Part.from_text(text=prompt))

        try:
            response = self._client.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=parts)],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=self._response_schema(),
                ),
            )
        except Exception as exc:  # pragma: no cover - network call
            raise RequestError(f"Translation service request failed — {exc}") from exc

        text = getattr(response, "text", None)
        self._log_debug("provider.response.raw", text)
        return parse_response_text(text)


class OpenAITranslationProvider(TranslationProvider):
    """Provider backed by the OpenAI Responses API with a strict JSON schema."""

    name = "openai"
    DEFAULT_MODEL = "gpt-5-mini"

    SYSTEM_PROMPT = (
        "You are an automated subtitle translation service. Return only JSON "
        'shaped as {"translations": [...]}. Do not add commentary. Do not wrap '
        "the JSON in markdown code fences."
    )

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        debug: bool = False,
        client: Any = None,
    ) -> None:
        super().__init__(debug=debug)
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout or DEFAULT_TIMEOUT_SECONDS
        self._client = client if client is not None else self._build_client(api_key)

    def _build_client(self, api_key: Optional[str]) -> Any:
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise TranslationProviderConfigurationError(
                "OpenAI configuration missing. Set OPENAI_API_KEY or choose a "
                "different provider."
            )
        try:
            from openai import OpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(
                "OpenAI Python SDK not installed. Install with `pip install openai`."
            ) from exc

        return OpenAI(api_key=api_key, timeout=self.timeout)

    def translate_batch(
        self,
        entries: Sequence[SourceEntry],
        *,
        continuity_hint: str,
        media: Optional[MediaPayload] = None,
    ) -> List[TranslatedEntry]:
        if not entries:
            return []
        if media is not None:
            raise TranslationProviderConfigurationError(
                "The OpenAI provider cannot read video; run in lite mode."
            )

        prompt = build_prompt(entries, continuity_hint)
        self._log_request(prompt, media)

        try:
            response = self._client.responses.create(
                model=self.model,
                input=[
                    {
                        "role": "system",
                        "content": [{"type": "input_text", "text": self.SYSTEM_PROMPT}],
                    },
                    {
                        "role": "user",
                        "content": [{"type": "input_text", "text": prompt}],
                    },
                ],
                text={
                    "format": {
                        "type": "json_schema",
                        "name": "subtitle_translations",
                        "schema": TRANSLATIONS_JSON_SCHEMA,
                        "strict": True,
                    }
                },
            )
        except Exception as exc:  # pragma: no cover - network call
            raise RequestError(f"Translation service request failed — {exc}") from exc

        output_text = getattr(response, "output_text", None)
        if hasattr(output_text, "value"):
            output_text = output_text.value
        self._log_debug("provider.response.raw", output_text)
        return parse_response_text(output_text)


def build_provider(
    name: str | None,
    *,
    api_key: str | None = None,
    model: str | None = None,
    timeout: float | None = None,
    debug: bool = False,
) -> TranslationProvider:
    """Factory to create providers by name."""

    normalized = (name or "gemini").strip().lower()
    if normalized in {"gemini", "google", "google_genai", "google-genai", "default"}:
        return GeminiTranslationProvider(
            api_key=api_key, model=model, timeout=timeout, debug=debug
        )
    if normalized in {"openai", "gpt"}:
        return OpenAITranslationProvider(
            api_key=api_key, model=model, timeout=timeout, debug=debug
        )
    if normalized in {"echo", "noop", "mock"}:
        return EchoTranslationProvider(debug=debug)
    raise TranslationProviderConfigurationError(
        f"Unknown translation provider '{name}'."
    )
