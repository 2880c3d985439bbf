"""Speaker labels carried across batches."""

from __future__ import annotations

from typing import Dict, List


class SpeakerRegistry:
    """Grow-only set of speaker labels seen during one run."""

    def __init__(self) -> None:
        # Dict keys keep first-seen order for the continuity hint.
        self._speakers: Dict[str, None] = {}

    def record(self, speaker: str) -> None:
        label = speaker.strip()
        if label:
            self._speakers.setdefault(label, None)

    def known_speakers(self) -> List[str]:
        return list(self._speakers)

    def continuity_hint(self) -> str:
        return ", ".join(self._speakers)

    def __contains__(self, speaker: object) -> bool:
        return speaker in self._speakers

    def __len__(self) -> int:
        return len(self._speakers)
