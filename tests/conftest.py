"""Shared fixtures for the Trisub test suite."""

from typing import List, Optional, Sequence

import pytest

from trisub.errors import RequestError
from trisub.providers import TranslationProvider
from trisub.structures import MediaPayload, SourceEntry, TranslatedEntry


def make_srt(count: int) -> str:
    """Build a well-formed subtitle track with ``count`` cues."""

    blocks = []
    for index in range(1, count + 1):
        seconds = index % 60
        blocks.append(
            f"{index}\n00:00:{seconds:02d},000 --> 00:00:{seconds:02d},900\nLine {index}"
        )
    return "\n\n".join(blocks)


class FakeProvider(TranslationProvider):
    """Records every call and answers with deterministic translations."""

    name = "fake"
    supports_media = True
    model = "fake-model"

    def __init__(
        self,
        *,
        speakers: Optional[dict] = None,
        fail_on_batch: Optional[int] = None,
        drop_last: bool = False,
    ) -> None:
        super().__init__()
        self.speakers = speakers or {}
        self.fail_on_batch = fail_on_batch
        self.drop_last = drop_last
        self.calls: List[dict] = []

    def translate_batch(
        self,
        entries: Sequence[SourceEntry],
        *,
        continuity_hint: str,
        media: Optional[MediaPayload] = None,
    ) -> List[TranslatedEntry]:
        self.calls.append(
            {"ids": [entry.id for entry in entries], "hint": continuity_hint, "media": media}
        )
        if self.fail_on_batch == len(self.calls):
            raise RequestError("Service unavailable")
        translated = [
            TranslatedEntry(
                id=entry.id,
                time_range=entry.time_range,
                speaker=self.speakers.get(entry.id, ""),
                vietnamese=f"vi:{entry.text}",
                english=f"en:{entry.text}",
                chinese=f"zh:{entry.text}",
            )
            for entry in entries
        ]
        if self.drop_last:
            translated = translated[:-1]
        return translated


@pytest.fixture
def srt_factory(tmp_path):
    """Write a subtitle file with the requested number of cues."""

    def factory(count: int, name: str = "input.srt"):
        path = tmp_path / name
        path.write_text(make_srt(count), encoding="utf-8")
        return path

    return factory


@pytest.fixture
def video_factory(tmp_path):
    """Create a sparse video file of the requested size."""

    def factory(size: int, name: str = "clip.mp4"):
        path = tmp_path / name
        with open(path, "wb") as handle:
            handle.truncate(size)
        return path

    return factory
