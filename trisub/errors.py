"""Error definitions for the Trisub subtitle translator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises problems reported during a run."""

    VALIDATION = auto()
    ENCODING = auto()
    REQUEST = auto()
    RESPONSE = auto()
    RECONCILIATION = auto()
    EXPORT = auto()


class TrisubError(Exception):
    """Base exception for all custom errors."""

    category: Optional[ErrorCategory] = None


class ValidationError(TrisubError):
    """Raised when the subtitle input is missing, unreadable or empty."""

    category = ErrorCategory.VALIDATION


class EncodingError(TrisubError):
    """Raised when the companion video cannot be read into a payload."""

    category = ErrorCategory.ENCODING


class RequestError(TrisubError):
    """Raised when the translation service call fails or times out."""

    category = ErrorCategory.REQUEST


class MalformedResponseError(TrisubError):
    """Raised when the service response is absent or does not fit the schema."""

    category = ErrorCategory.RESPONSE


class ExportError(TrisubError):
    """Raised when translated subtitles cannot be written."""

    category = ErrorCategory.EXPORT


class RunInProgressError(TrisubError):
    """Raised when a second run is started while one is still active."""


class AbortRequested(TrisubError):
    """Raised when the user elects to abort processing."""


class TranslationProviderConfigurationError(TrisubError):
    """Raised when the translation provider is misconfigured."""


@dataclass
class ErrorRecord:
    """Stores context for a reported problem or warning."""

    category: ErrorCategory
    message: str
    details: Optional[str] = None
