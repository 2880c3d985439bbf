"""High-level orchestration of a subtitle translation run."""

from __future__ import annotations

import math
import pathlib
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .errors import ErrorCategory, TrisubError, ValidationError
from .media import LARGE_MEDIA_THRESHOLD, LargeMediaDecision, decide_media_mode, encode_media
from .providers import TranslationProvider
from .results import ResultStore
from .speakers import SpeakerRegistry
from .state import RunState
from .structures import Batch, MediaMode, MediaPayload, RunPhase, SourceEntry, TranslatedEntry
from .subtitles import read_srt

DEFAULT_BATCH_SIZE = 50


def partition_batches(
    entries: Sequence[SourceEntry],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> List[Batch]:
    """Split cues into consecutive batches of at most ``batch_size`` entries."""

    if batch_size <= 0:
        raise ValueError("Batch size must be a positive number of entries.")
    return [
        Batch(batch_id=index + 1, entries=list(entries[start : start + batch_size]))
        for index, start in enumerate(range(0, len(entries), batch_size))
    ]


def compute_progress(processed: int, total: int, *, final: bool) -> int:
    """Percentage of cues processed; 100 is reserved for the final batch."""

    if total <= 0:
        return 100 if final else 0
    percent = round(min(processed, total) / total * 100)
    if final:
        return percent
    return min(percent, 99)


@dataclass
class ReconciliationReport:
    """Differences between the ids sent in a batch and the ids returned."""

    missing: List[str] = field(default_factory=list)
    unexpected: List[str] = field(default_factory=list)
    reordered: bool = False

    @property
    def clean(self) -> bool:
        return not (self.missing or self.unexpected or self.reordered)

    def describe(self) -> str:
        problems = []
        if self.missing:
            problems.append("missing ids " + ", ".join(self.missing))
        if self.unexpected:
            problems.append("unexpected ids " + ", ".join(self.unexpected))
        if self.reordered:
            problems.append("entries returned out of order")
        return "; ".join(problems)


def reconcile_batch(
    sent: Sequence[SourceEntry],
    received: Sequence[TranslatedEntry],
) -> ReconciliationReport:
    """Compare returned ids with the batch as multisets, then by order."""

    expected_ids = [entry.id for entry in sent]
    returned_ids = [entry.id for entry in received]
    expected_counts = Counter(expected_ids)
    returned_counts = Counter(returned_ids)

    report = ReconciliationReport(
        missing=sorted((expected_counts - returned_counts).elements(), key=expected_ids.index),
        unexpected=sorted((returned_counts - expected_counts).elements(), key=returned_ids.index),
    )
    if not report.missing and not report.unexpected:
        report.reordered = expected_ids != returned_ids
    return report


@dataclass
class TranslationSummary:
    """Report returned after a run finishes or fails."""

    subtitle_path: Optional[pathlib.Path]
    video_path: Optional[pathlib.Path]
    phase: RunPhase
    media_mode: MediaMode
    total_entries: int
    translated_entries: int
    total_batches: int
    completed_batches: int
    provider_name: str
    model: Optional[str]
    speakers: List[str]
    elapsed_seconds: float
    error_message: Optional[str] = None
    error_category: Optional[ErrorCategory] = None
    warnings: List[str] = field(default_factory=list)
    export_paths: List[pathlib.Path] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.phase is RunPhase.DONE


class TranslationRunner:
    """Drives the sequential batch loop of one run."""

    def __init__(
        self,
        *,
        subtitle_path: Optional[pathlib.Path],
        provider: TranslationProvider,
        video_path: Optional[pathlib.Path] = None,
        lite_mode: bool = False,
        decide_large_media: Optional[LargeMediaDecision] = None,
        state: Optional[RunState] = None,
        results: Optional[ResultStore] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        large_media_threshold: int = LARGE_MEDIA_THRESHOLD,
        verbose: bool = False,
    ) -> None:
        self.subtitle_path = subtitle_path
        self.video_path = video_path
        self.provider = provider
        self.requested_mode = MediaMode.LITE if lite_mode else MediaMode.FULL
        self.decide_large_media = decide_large_media or (lambda path, size: False)
        self.state = state if state is not None else RunState()
        self.results = results if results is not None else ResultStore()
        self.speakers = SpeakerRegistry()
        self.batch_size = batch_size
        self.large_media_threshold = large_media_threshold
        self.verbose = verbose

        self.total_entries = 0
        self.total_batches = 0
        self.completed_batches = 0
        self.error_message: Optional[str] = None
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None

    def run(self) -> TranslationSummary:
        """Execute the run; on failure the state is marked failed and the error re-raised."""

        self.state.begin(self.requested_mode)
        self.results.clear()
        self.speakers = SpeakerRegistry()
        self.total_entries = self.total_batches = self.completed_batches = 0
        self.error_message = None
        self._start_time = time.time()
        self._end_time = None

        try:
            entries = self._read_entries()
            media = self._resolve_media()

            self.state.transition(RunPhase.BATCHING, "Splitting subtitles into batches...")
            batches = partition_batches(entries, self.batch_size)
            self.total_batches = len(batches)
            if self.verbose:
                print(
                    f"Prepared {len(entries)} subtitle entries in "
                    f"{len(batches)} batches ({self.state.media_mode.value} mode)."
                )

            self.state.transition(RunPhase.TRANSLATING, "Starting translation...")
            processed = 0
            for batch in batches:
                self._process_batch(batch, media)
                processed += len(batch.entries)
                self.completed_batches += 1
                final = self.completed_batches == self.total_batches
                self.state.advance(
                    compute_progress(processed, self.total_entries, final=final),
                    f"Translated batch {batch.batch_id} / {self.total_batches}.",
                )

            self.state.complete("Translation complete.")
        except BaseException as exc:
            self.error_message = self._describe_failure(exc)
            self.state.fail(
                f"Error: {self.error_message}", getattr(exc, "category", None)
            )
            raise
        finally:
            self._end_time = time.time()

        return self.summary()

    def _read_entries(self) -> List[SourceEntry]:
        if self.subtitle_path is None:
            raise ValidationError("Please choose a subtitle (.srt) file.")
        entries = read_srt(self.subtitle_path)
        self.total_entries = len(entries)
        return entries

    def _resolve_media(self) -> Optional[MediaPayload]:
        """Make the one media decision of the run and encode the video if kept."""

        decision = decide_media_mode(
            self.video_path,
            self.requested_mode,
            self.decide_large_media,
            supports_media=self.provider.supports_media,
            threshold=self.large_media_threshold,
        )
        self.state.set_media_mode(decision.mode)
        self.state.set_status(decision.reason)
        if self.verbose:
            print(decision.reason)
        if decision.mode is MediaMode.LITE:
            return None

        assert self.video_path is not None
        self.state.set_status("Encoding video (this may take a moment)...")
        return encode_media(self.video_path)

    def _process_batch(self, batch: Batch, media: Optional[MediaPayload]) -> None:
        self.state.set_status(
            f"Translating and attributing speakers, batch {batch.batch_id} / {self.total_batches}..."
        )
        translated = self.provider.translate_batch(
            batch.entries,
            continuity_hint=self.speakers.continuity_hint(),
            media=media,
        )

        report = reconcile_batch(batch.entries, translated)
        if not report.clean:
            message = f"Batch {batch.batch_id}: {report.describe()}."
            self.state.warn(ErrorCategory.RECONCILIATION, message)
            if self.verbose:
                print(f"Warning: {message}")

        for entry in translated:
            self.speakers.record(entry.speaker)
        self.results.extend(translated)

        if self.verbose:
            print(
                f"Processed batch {batch.batch_id} "
                f"({len(batch.entries)} sent, {len(translated)} returned)."
            )

    @staticmethod
    def _describe_failure(exc: BaseException) -> str:
        if isinstance(exc, KeyboardInterrupt):
            return "Translation interrupted by user."
        if isinstance(exc, TrisubError):
            return str(exc)
        return f"Unexpected error: {exc}"

    def summary(self) -> TranslationSummary:
        """Summarise the most recent run, including a failed one."""

        end = self._end_time or time.time()
        elapsed = end - self._start_time if self._start_time is not None else 0.0
        return TranslationSummary(
            subtitle_path=self.subtitle_path,
            video_path=self.video_path,
            phase=self.state.phase,
            media_mode=self.state.media_mode,
            total_entries=self.total_entries,
            translated_entries=len(self.results),
            total_batches=self.total_batches,
            completed_batches=self.completed_batches,
            provider_name=self.provider.name,
            model=self.provider.model,
            speakers=self.speakers.known_speakers(),
            elapsed_seconds=elapsed,
            error_message=self.error_message,
            error_category=self.state.error_category,
            warnings=[record.message for record in self.state.warnings],
        )
