"""Command line interface for the Trisub subtitle translator."""

from __future__ import annotations

import argparse
import pathlib
import sys
from typing import Any, Iterable, List, Optional, Sequence

from .configuration import get_settings, normalise_provider_name, validate_provider_settings
from .errors import (
    AbortRequested,
    ExportError,
    RunInProgressError,
    TranslationProviderConfigurationError,
    TrisubError,
)
from .media import LargeMediaDecision
from .policy import LARGE_MEDIA_CHOICES, build_media_policy
from .providers import build_provider
from .results import ResultStore
from .state import RunSnapshot, RunState
from .structures import TARGET_LANGUAGES
from .subtitles import export_filename, write_exports
from .translator import DEFAULT_BATCH_SIZE, TranslationRunner, TranslationSummary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trisub",
        description=(
            "Translate a subtitle track into Vietnamese, English and Chinese "
            "with speaker attribution."
        ),
    )
    parser.add_argument(
        "subtitle_file",
        nargs="?",
        help="Path to the .srt subtitle file to translate.",
    )
    parser.add_argument(
        "--video",
        help="Optional companion video used to identify speakers.",
    )
    parser.add_argument(
        "--lite",
        action="store_true",
        help="Text-only mode: never send the video.",
    )
    parser.add_argument(
        "--large-media",
        choices=LARGE_MEDIA_CHOICES,
        default="ask",
        help="What to do with videos over 50 MB: ask, keep sending, or switch to lite (default: ask).",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        help="Directory for subtitle_<language>.srt files. Defaults to the subtitle's folder.",
    )
    parser.add_argument(
        "-l",
        "--languages",
        default=",".join(TARGET_LANGUAGES),
        help="Comma separated languages to export (default: vietnamese,english,chinese).",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Translation provider identifier: gemini, openai or echo (default: gemini).",
    )
    parser.add_argument(
        "-m",
        "--model",
        help="Provider-specific model identifier.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-request timeout in seconds (default: 300).",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting existing export files.",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Disable prompts; large videos are then dropped unless --large-media keep is given.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )
    parser.add_argument(
        "--gui",
        action="store_true",
        help="Launch the graphical interface.",
    )
    return parser


def parse_languages(value: str) -> List[str]:
    """Turn a comma separated language list into validated names."""

    languages = [part.strip().lower() for part in value.split(",") if part.strip()]
    unknown = [language for language in languages if language not in TARGET_LANGUAGES]
    if unknown or not languages:
        raise ValueError(
            "Languages must be chosen from: " + ", ".join(TARGET_LANGUAGES) + "."
        )
    return languages


def _resolve(path: str | None) -> Optional[pathlib.Path]:
    if not path:
        return None
    return pathlib.Path(path).expanduser().resolve()


def print_progress(snapshot: RunSnapshot) -> None:
    print(f"[{snapshot.progress_percent:3d}%] {snapshot.status_message}")


def execute_translation(
    *,
    subtitle_file: str | None,
    video_file: str | None = None,
    output_dir: str | None = None,
    languages: Sequence[str] = TARGET_LANGUAGES,
    provider: str | None = None,
    model: str | None = None,
    api_key: str | None = None,
    timeout: float | None = None,
    lite: bool = False,
    large_media: str = "ask",
    force_overwrite: bool = False,
    non_interactive: bool = False,
    verbose: bool = False,
    provider_debug: bool = False,
    batch_size: int = DEFAULT_BATCH_SIZE,
    state: RunState | None = None,
    results: ResultStore | None = None,
    decide_large_media: LargeMediaDecision | None = None,
) -> tuple[int, TranslationSummary | None, str | None]:
    """Execute a translation run and return the exit code, summary, and message."""

    subtitle_path = _resolve(subtitle_file)
    video_path = _resolve(video_file)
    if video_path is not None and not video_path.is_file():
        return 1, None, f"Video file not found: {video_path}"

    if output_dir:
        export_dir = _resolve(output_dir)
    elif subtitle_path is not None:
        export_dir = subtitle_path.parent
    else:
        export_dir = pathlib.Path.cwd()
    assert export_dir is not None

    if not force_overwrite:
        existing = [
            str(export_dir / export_filename(language))
            for language in languages
            if (export_dir / export_filename(language)).exists()
        ]
        if existing:
            return 1, None, (
                "Export files already exist — rename them or use the overwrite flag: "
                + ", ".join(existing)
            )

    try:
        translation_provider = build_provider(
            provider,
            api_key=api_key,
            model=model,
            timeout=timeout,
            debug=provider_debug,
        )
        decide = decide_large_media or build_media_policy(
            large_media, interactive=not non_interactive
        )
    except (TranslationProviderConfigurationError, ValueError) as exc:
        return 1, None, str(exc)

    results = results if results is not None else ResultStore()
    runner = TranslationRunner(
        subtitle_path=subtitle_path,
        video_path=video_path,
        provider=translation_provider,
        lite_mode=lite,
        decide_large_media=decide,
        state=state,
        results=results,
        batch_size=batch_size,
        verbose=verbose,
    )
    if verbose and state is None:
        runner.state.subscribe(print_progress)

    exit_code = 0
    message: str | None = None
    try:
        runner.run()
    except RunInProgressError as exc:
        return 1, None, str(exc)
    except AbortRequested:
        exit_code, message = 2, "Translation aborted at your request."
    except KeyboardInterrupt:
        exit_code, message = 2, "Translation interrupted by user."
    except TrisubError as exc:
        exit_code, message = 1, str(exc)
    except Exception as exc:  # pragma: no cover - defensive catch
        exit_code = 1
        message = (
            f"{exc}\n"
            "An unexpected error occurred. Please rerun with --verbose for more details."
        )

    summary = runner.summary()
    entries = results.snapshot()
    if entries:
        try:
            summary.export_paths = write_exports(
                entries,
                export_dir,
                languages,
                force_overwrite=force_overwrite,
            )
        except ExportError as exc:
            exit_code = 1
            message = f"{message}\n{exc}" if message else str(exc)

    return exit_code, summary, message


def print_summary(summary: TranslationSummary) -> None:
    """Output a friendly report once processing completes."""

    if summary.succeeded:
        print("\nTranslation complete.")
    else:
        print("\nTranslation did not finish.")
    print(f"  Subtitle file:   {summary.subtitle_path}")
    if summary.video_path:
        print(f"  Video file:      {summary.video_path} ({summary.media_mode.value} mode)")
    else:
        print(f"  Media mode:      {summary.media_mode.value}")
    print(
        "  Entries:         "
        f"{summary.translated_entries} translated / {summary.total_entries} total"
    )
    print(
        f"  Batches:         {summary.completed_batches} of {summary.total_batches} completed"
    )
    print(
        f"  Provider:        {summary.provider_name}"
        + (f" ({summary.model})" if summary.model else "")
    )
    if summary.speakers:
        print(f"  Speakers:        {', '.join(summary.speakers)}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    for path in summary.export_paths:
        print(f"  Exported:        {path}")
    if summary.error_message:
        print(f"  Error:           {summary.error_message}")
        if summary.error_category:
            print(f"  Failed stage:    {summary.error_category.name.lower()}")
    if summary.warnings:
        print("  Notes:")
        for message in summary.warnings:
            print(f"    - {message}")


def provider_options(args: Any) -> tuple[int, dict[str, Any], str | None]:
    """Combine CLI flags with loaded configuration for provider construction."""

    options: dict[str, Any] = {
        "provider": args.provider,
        "model": args.model,
        "api_key": None,
        "timeout": args.timeout,
        "provider_debug": bool(args.debug_provider),
    }
    if args.provider and normalise_provider_name(args.provider) == "echo":
        options["provider"] = "echo"
        return 0, options, None

    try:
        settings = get_settings()
        provider_name = normalise_provider_name(args.provider or settings.TRISUB_PROVIDER)
        validate_provider_settings(settings, provider_name)
    except TranslationProviderConfigurationError as exc:
        return 1, options, str(exc)

    options["provider"] = provider_name
    options["model"] = args.model or settings.TRISUB_MODEL
    options["timeout"] = args.timeout or settings.TRISUB_REQUEST_TIMEOUT
    options["provider_debug"] = bool(args.debug_provider or settings.TRISUB_PROVIDER_DEBUG)
    if provider_name == "gemini":
        options["api_key"] = settings.GEMINI_API_KEY or settings.GOOGLE_API_KEY
    elif provider_name == "openai":
        options["api_key"] = settings.OPENAI_API_KEY
    return 0, options, None


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        languages = parse_languages(args.languages)
    except ValueError as exc:
        parser.error(str(exc))

    status, options, message = provider_options(args)
    if status:
        print(message)
        return status

    if args.gui:
        from .gui import launch_gui

        return launch_gui(
            args=args,
            summary_printer=print_summary,
            run_options=options,
        )

    if args.subtitle_file is None:
        parser.error("the following arguments are required: subtitle_file")

    exit_code, summary, message = execute_translation(
        subtitle_file=args.subtitle_file,
        video_file=args.video,
        output_dir=args.output_dir,
        languages=languages,
        lite=args.lite,
        large_media=args.large_media,
        force_overwrite=args.force,
        non_interactive=args.non_interactive,
        verbose=args.verbose,
        **options,
    )

    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
