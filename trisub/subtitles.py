"""Subtitle track parsing, serialisation and export."""

from __future__ import annotations

import pathlib
from typing import Iterable, List, Sequence, Tuple

from .errors import ExportError, ValidationError
from .structures import TARGET_LANGUAGES, SourceEntry, TranslatedEntry

CUE_SEPARATOR = "\n\n"
TIME_ARROW = " --> "


def normalize_line_endings(text: str) -> str:
    """Collapse CRLF and bare CR line endings into LF."""

    return text.replace("\r\n", "\n").replace("\r", "\n")


def parse_srt(content: str) -> List[SourceEntry]:
    """Parse subtitle text into cues.

    Blocks with fewer than three lines (id, time range, text) are skipped.
    An empty result means the input held no usable cues.
    """

    entries: List[SourceEntry] = []
    for chunk in normalize_line_endings(content).split(CUE_SEPARATOR):
        lines = chunk.strip().split("\n")
        if len(lines) < 3:
            continue
        entries.append(
            SourceEntry(
                id=lines[0].strip(),
                time_range=lines[1].strip(),
                text="\n".join(lines[2:]).strip(),
            )
        )
    return entries


def read_srt(path: pathlib.Path) -> List[SourceEntry]:
    """Read and parse a subtitle file, rejecting unreadable or empty input."""

    try:
        content = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise ValidationError(f"Subtitle file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ValidationError(f"Could not read subtitle file {path}: {exc}") from exc

    entries = parse_srt(content)
    if not entries:
        raise ValidationError("The subtitle file is malformed or empty.")
    return entries


def serialize_srt(entries: Sequence[TranslatedEntry], language: str) -> str:
    """Render translated cues for one language, prefixing known speakers."""

    if language not in TARGET_LANGUAGES:
        raise ValueError(f"Unsupported target language '{language}'.")

    blocks = []
    for entry in entries:
        speaker_label = f"[{entry.speaker}] " if entry.speaker else ""
        blocks.append(
            f"{entry.id}\n{entry.time_range}\n{speaker_label}{entry.translation(language)}"
        )
    return CUE_SEPARATOR.join(blocks)


def split_time_range(time_range: str) -> Tuple[str, str]:
    """Split a raw time range line into its start and end parts for display."""

    start, _, end = time_range.partition(TIME_ARROW)
    return start.strip(), end.strip()


def export_filename(language: str) -> str:
    return f"subtitle_{language}.srt"


def write_exports(
    entries: Sequence[TranslatedEntry],
    directory: pathlib.Path,
    languages: Iterable[str] = TARGET_LANGUAGES,
    *,
    force_overwrite: bool = False,
) -> List[pathlib.Path]:
    """Write one subtitle file per language and return the written paths."""

    languages = list(languages)
    for language in languages:
        if language not in TARGET_LANGUAGES:
            raise ValueError(f"Unsupported target language '{language}'.")

    targets = [directory / export_filename(language) for language in languages]
    if not force_overwrite:
        existing = [str(path) for path in targets if path.exists()]
        if existing:
            raise ExportError(
                "Export files already exist — use the overwrite flag: "
                + ", ".join(existing)
            )

    try:
        directory.mkdir(parents=True, exist_ok=True)
        for language, path in zip(languages, targets):
            path.write_text(serialize_srt(entries, language), encoding="utf-8")
    except OSError as exc:
        raise ExportError(f"Could not write subtitle exports to {directory}: {exc}") from exc
    return targets
