"""Prepper-backed configuration loader for Trisub."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping, Sequence

from dotenv import dotenv_values
from prepper import (
    ConfigNotFound,
    Field,
    IoError,
    SchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.config import ConfigInstance
from prepper.loaders import _parse_file, _path_to_source, discover_file_paths
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .errors import TranslationProviderConfigurationError

APP_NAME = "Trisub"

PROVIDER_SYNONYMS = {
    "google": "gemini",
    "google_genai": "gemini",
    "googlegenai": "gemini",
    "gpt": "openai",
    "open_ai": "openai",
    "mock": "echo",
    "noop": "echo",
}


def normalise_provider_name(value: str | None) -> str:
    """Map free-form provider names onto the supported identifiers."""

    normalized = (value or "gemini").strip().lower().replace("-", "_")
    normalized = PROVIDER_SYNONYMS.get(normalized, normalized)
    if normalized not in {"gemini", "openai", "echo"}:
        normalized = "gemini"
    return normalized


class TrisubConfig(SchemaModel):
    """Schema describing all supported configuration options."""

    TRISUB_PROVIDER: Literal["gemini", "openai", "echo"] = Field(
        default="gemini",
        description="Translation service used for every batch.",
    )
    GEMINI_API_KEY: str | None = Field(default=None, secret=True)
    GOOGLE_API_KEY: str | None = Field(default=None, secret=True)
    OPENAI_API_KEY: str | None = Field(default=None, secret=True)
    TRISUB_MODEL: str | None = Field(
        default=None,
        description="Model identifier; defaults to the provider's own default.",
    )
    TRISUB_REQUEST_TIMEOUT: float = Field(
        default=300.0,
        description="Per-request timeout in seconds.",
    )
    TRISUB_PROVIDER_DEBUG: bool = Field(default=False)

    @model_validator(mode="before")
    def _normalise_provider(data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("TRISUB_PROVIDER")
            if isinstance(raw_value, str):
                data["TRISUB_PROVIDER"] = normalise_provider_name(raw_value)
        return data


@lru_cache(maxsize=1)
def _load_config_instance(app_dir: Path | None = None) -> ConfigInstance:
    """Load configuration layers once and cache the immutable instance."""

    base_dir = app_dir or Path.cwd()
    try:
        provenance = ProvenanceRecorder()
        combined = _load_discovered_yaml(app_dir=base_dir, provenance=provenance)
        _merge_env_sources(
            combined,
            provenance=provenance,
            app_dir=base_dir,
            schema=TrisubConfig,
        )

        if not combined:
            raise ConfigNotFound("No configuration sources were found.")

        model = TrisubConfig.validate(combined, provenance=provenance)

        return ConfigInstance(
            model=model,
            provenance=provenance,
            env_prefix=None,
            schema_cls=TrisubConfig,
        )
    except ConfigNotFound as exc:
        raise TranslationProviderConfigurationError(
            "No configuration sources were found. Provide settings via a home YAML "
            "file, a local config.yaml, a .env file, or environment variables "
            "(for example GEMINI_API_KEY)."
        ) from exc
    except IoError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration files could not be read: {exc}"
        ) from exc
    except SchemaError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration schema error: {exc}"
        ) from exc
    except ValidationError as exc:
        issues = format_validation_errors(exc.to_dict())
        raise TranslationProviderConfigurationError(issues) from exc


def _load_discovered_yaml(
    *,
    app_dir: Path,
    provenance: ProvenanceRecorder,
) -> dict[str, Any]:
    """Load YAML configuration files using Prepper's discovery rules."""

    result: dict[str, Any] = {}
    for path, label in discover_file_paths(APP_NAME, "yaml", app_dir=app_dir, extra_paths=None):
        parsed = _parse_file(path, "yaml")
        if not isinstance(parsed, Mapping):
            raise IoError(
                f"Invalid configuration file {path}: expected a mapping at the root."
            )
        merge_layer(
            result,
            parsed,
            provenance=provenance,
            source=_path_to_source(label, "yaml", path),
            layer="file",
        )
    return result


def _merge_env_sources(
    target: dict[str, Any],
    *,
    provenance: ProvenanceRecorder,
    app_dir: Path,
    schema: type[SchemaModel],
) -> None:
    """Merge .env and then process environment variables into the target mapping."""

    allowed = set(schema.__field_infos__.keys())

    def merge_values(values: Mapping[str, str | None], *, source_prefix: str) -> None:
        for key, value in sorted(values.items()):
            if value is None or key not in allowed:
                continue
            merge_layer(
                target,
                {key: value},
                provenance=provenance,
                source=f"env:{source_prefix}:{key}",
                layer="env",
            )

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        merge_values(dotenv_values(dotenv_path), source_prefix=".env")

    merge_values(dict(os.environ), source_prefix="process")


def validate_provider_settings(settings: Any, provider: str | None = None) -> None:
    """Check that the credential for the selected provider is present."""

    selected = normalise_provider_name(provider or settings.TRISUB_PROVIDER)
    errors: list[str] = []

    if selected == "gemini":
        if not (settings.GEMINI_API_KEY or settings.GOOGLE_API_KEY):
            errors.append(
                "GEMINI_API_KEY (or GOOGLE_API_KEY) is required when the provider is 'gemini'."
            )
    elif selected == "openai":
        if not settings.OPENAI_API_KEY:
            errors.append("OPENAI_API_KEY is required when the provider is 'openai'.")

    if settings.TRISUB_REQUEST_TIMEOUT is not None and settings.TRISUB_REQUEST_TIMEOUT <= 0:
        errors.append("TRISUB_REQUEST_TIMEOUT must be a positive number of seconds.")

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def format_validation_errors(entries: Sequence[dict[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("path") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("message") or entry.get("msg") or "Invalid value")
        source = entry.get("source")
        origin = f" (source: {source})" if source else ""
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}{origin}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def get_config(app_dir: Path | None = None) -> ConfigInstance:
    """Return the immutable configuration instance."""

    return _load_config_instance(app_dir=app_dir)


def get_settings(app_dir: Path | None = None) -> TrisubConfig:
    """Return the validated schema model for typed access."""

    return get_config(app_dir=app_dir).model()
