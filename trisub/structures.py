"""Core data structures for the Trisub translator."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping

from .errors import MalformedResponseError

TARGET_LANGUAGES = ("vietnamese", "english", "chinese")

RESPONSE_FIELDS = ("id", "timeRange", "speaker", "vietnamese", "english", "chinese")


class MediaMode(str, Enum):
    """Whether the companion video is sent with every batch."""

    FULL = "full"
    LITE = "lite"


class RunPhase(str, Enum):
    """Lifecycle phases of a translation run."""

    IDLE = "idle"
    READING = "reading"
    BATCHING = "batching"
    TRANSLATING = "translating"
    DONE = "done"
    FAILED = "failed"

    @property
    def active(self) -> bool:
        return self in {RunPhase.READING, RunPhase.BATCHING, RunPhase.TRANSLATING}


@dataclass(frozen=True)
class SourceEntry:
    """One subtitle cue as parsed from the input track."""

    id: str
    time_range: str
    text: str

    def to_payload(self) -> Dict[str, str]:
        return {"id": self.id, "timeRange": self.time_range, "text": self.text}


@dataclass(frozen=True)
class TranslatedEntry:
    """A cue with speaker attribution and one rendering per target language."""

    id: str
    time_range: str
    speaker: str
    vietnamese: str
    english: str
    chinese: str

    def translation(self, language: str) -> str:
        if language not in TARGET_LANGUAGES:
            raise ValueError(f"Unsupported target language '{language}'.")
        return getattr(self, language)

    @classmethod
    def from_payload(cls, item: Any) -> "TranslatedEntry":
        """Build an entry from one object of the service's JSON array."""

        if not isinstance(item, Mapping):
            raise MalformedResponseError(
                "Translation provider response malformed: expected objects."
            )
        missing = [name for name in RESPONSE_FIELDS if not isinstance(item.get(name), str)]
        if missing:
            raise MalformedResponseError(
                "Translation provider response malformed: missing fields "
                + ", ".join(missing)
                + "."
            )
        blank = [name for name in TARGET_LANGUAGES if not item[name].strip()]
        if blank:
            raise MalformedResponseError(
                f"Translation provider response malformed: entry {item['id']} has blank "
                + ", ".join(blank)
                + " translation."
            )
        return cls(
            id=item["id"],
            time_range=item["timeRange"],
            speaker=item["speaker"].strip(),
            vietnamese=item["vietnamese"],
            english=item["english"],
            chinese=item["chinese"],
        )

    def to_payload(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "timeRange": self.time_range,
            "speaker": self.speaker,
            "vietnamese": self.vietnamese,
            "english": self.english,
            "chinese": self.chinese,
        }


@dataclass(frozen=True)
class MediaPayload:
    """Binary media ready to be attached to a request."""

    mime_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass
class Batch:
    """A consecutive, order-preserving slice of cues sent in one request."""

    batch_id: int
    entries: List[SourceEntry]
