"""Tkinter-based user interface for Trisub translations."""

from __future__ import annotations

import pathlib
import threading
from typing import Any, Callable, Optional

import tkinter as tk
from tkinter import filedialog, messagebox, ttk

from .errors import TranslationProviderConfigurationError, TrisubError
from .media import media_size, needs_large_media_decision
from .policy import describe_size, fixed_media_policy
from .providers import build_provider
from .results import ResultStore
from .state import RunSnapshot, RunState
from .structures import TARGET_LANGUAGES
from .subtitles import export_filename, serialize_srt, split_time_range
from .translator import TranslationRunner, TranslationSummary

SummaryPrinter = Callable[[TranslationSummary], None]

LANGUAGE_LABELS = {
    "vietnamese": "Vietnamese",
    "english": "English",
    "chinese": "Chinese",
}


class TrisubGUI:
    """Encapsulates the Tkinter UI and translation workflow."""

    def __init__(
        self,
        *,
        root: tk.Tk,
        args: Any,
        summary_printer: SummaryPrinter,
        run_options: dict[str, Any],
    ) -> None:
        self.root = root
        self.args = args
        self.summary_printer = summary_printer
        self.run_options = run_options

        self.state = RunState()
        self.results = ResultStore()
        self.exit_code: int = 0
        self._rows_shown = 0

        self._build_variables()
        self._build_ui()
        self.state.subscribe(self._on_state_change)

        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

    def _build_variables(self) -> None:
        """Initialise Tkinter control variables from CLI arguments."""

        self.subtitle_path_var = tk.StringVar(
            value=getattr(self.args, "subtitle_file", "") or ""
        )
        self.video_path_var = tk.StringVar(value=getattr(self.args, "video", "") or "")
        self.lite_var = tk.BooleanVar(value=bool(getattr(self.args, "lite", False)))
        self.progress_var = tk.DoubleVar(value=0.0)
        self.status_var = tk.StringVar(value="Ready.")

    def _build_ui(self) -> None:
        """Construct the Tkinter layout."""

        self.root.title("Trisub Translator")
        self.root.geometry("1100x640")

        main_frame = ttk.Frame(self.root, padding=20)
        main_frame.grid(row=0, column=0, sticky="nsew")
        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)
        main_frame.columnconfigure(0, weight=1)
        main_frame.rowconfigure(9, weight=1)

        ttk.Label(main_frame, text="Subtitle file (.srt)").grid(row=0, column=0, sticky="w")
        ttk.Entry(main_frame, textvariable=self.subtitle_path_var).grid(
            row=1, column=0, sticky="we", pady=(0, 10)
        )
        ttk.Button(main_frame, text="Browse…", command=self._choose_subtitle).grid(
            row=1, column=1, padx=(10, 0), sticky="we"
        )

        ttk.Label(main_frame, text="Video (optional)").grid(row=2, column=0, sticky="w")
        self.video_entry = ttk.Entry(main_frame, textvariable=self.video_path_var)
        self.video_entry.grid(row=3, column=0, sticky="we", pady=(0, 10))
        self.video_button = ttk.Button(main_frame, text="Browse…", command=self._choose_video)
        self.video_button.grid(row=3, column=1, padx=(10, 0), sticky="we")

        ttk.Checkbutton(
            main_frame,
            text="Low-end machine mode (text only, video is not sent)",
            variable=self.lite_var,
            command=self._sync_lite_mode,
        ).grid(row=4, column=0, sticky="w", pady=(0, 10))

        self.start_button = ttk.Button(
            main_frame, text="Start translation", command=self._on_start
        )
        self.start_button.grid(row=5, column=0, columnspan=2, sticky="we", pady=(0, 10))

        ttk.Progressbar(
            main_frame, variable=self.progress_var, maximum=100, mode="determinate"
        ).grid(row=6, column=0, columnspan=2, sticky="we")
        ttk.Label(main_frame, textvariable=self.status_var, foreground="#555").grid(
            row=7, column=0, columnspan=2, sticky="w", pady=(5, 10)
        )

        export_frame = ttk.Frame(main_frame)
        export_frame.grid(row=8, column=0, columnspan=2, sticky="e", pady=(0, 5))
        self.export_buttons = []
        for index, language in enumerate(TARGET_LANGUAGES):
            button = ttk.Button(
                export_frame,
                text=f"Download {LANGUAGE_LABELS[language]}",
                command=lambda lang=language: self._export(lang),
                state="disabled",
            )
            button.grid(row=0, column=index, padx=(10, 0))
            self.export_buttons.append(button)

        columns = ("start", "speaker") + TARGET_LANGUAGES
        self.table = ttk.Treeview(main_frame, columns=columns, show="headings")
        self.table.heading("start", text="Time")
        self.table.heading("speaker", text="Speaker")
        self.table.column("start", width=100, stretch=False)
        self.table.column("speaker", width=110, stretch=False)
        for language in TARGET_LANGUAGES:
            self.table.heading(language, text=LANGUAGE_LABELS[language])
            self.table.column(language, width=260)
        self.table.grid(row=9, column=0, sticky="nsew")
        scrollbar = ttk.Scrollbar(main_frame, orient="vertical", command=self.table.yview)
        scrollbar.grid(row=9, column=1, sticky="nsw")
        self.table.configure(yscrollcommand=scrollbar.set)

        self._sync_lite_mode()

    def _choose_subtitle(self) -> None:
        selection = filedialog.askopenfilename(
            title="Select a subtitle file",
            filetypes=[("Subtitles", "*.srt *.txt"), ("All files", "*.*")],
        )
        if selection:
            self.subtitle_path_var.set(selection)

    def _choose_video(self) -> None:
        selection = filedialog.askopenfilename(
            title="Select the original video",
            filetypes=[("Video", "*.mp4 *.m4v *.mkv *.mov *.webm *.avi"), ("All files", "*.*")],
        )
        if selection:
            self.video_path_var.set(selection)

    def _sync_lite_mode(self) -> None:
        """Disable the video picker while lite mode is on."""

        widget_state = "disabled" if self.lite_var.get() else "normal"
        self.video_entry.config(state=widget_state)
        self.video_button.config(state=widget_state)

    def _ask_large_media(self, video_path: Optional[pathlib.Path], supports_media: bool) -> bool:
        """Settle the large-video question on the UI thread before the run starts."""

        try:
            if not needs_large_media_decision(video_path, supports_media=supports_media):
                return False
            size = media_size(video_path)
        except TrisubError:
            return False
        keep = messagebox.askyesno(
            "Trisub",
            f"The video is {describe_size(size)} and may freeze slower machines.\n"
            "Keep using the video? (No switches to text-only mode.)",
        )
        if not keep:
            self.lite_var.set(True)
            self._sync_lite_mode()
        return keep

    def _on_start(self) -> None:
        """Gather configuration and begin the translation in a worker thread."""

        if self.state.processing:
            return

        subtitle = self.subtitle_path_var.get().strip()
        if not subtitle:
            messagebox.showerror("Trisub", "Please choose a subtitle (.srt) file.")
            return

        video = self.video_path_var.get().strip()
        video_path = pathlib.Path(video).expanduser() if video and not self.lite_var.get() else None
        try:
            provider = build_provider(
                self.run_options.get("provider"),
                api_key=self.run_options.get("api_key"),
                model=self.run_options.get("model"),
                timeout=self.run_options.get("timeout"),
                debug=bool(self.run_options.get("provider_debug")),
            )
        except TranslationProviderConfigurationError as exc:
            messagebox.showerror("Trisub", str(exc))
            return

        keep_large = self._ask_large_media(video_path, provider.supports_media)

        runner = TranslationRunner(
            subtitle_path=pathlib.Path(subtitle).expanduser(),
            video_path=video_path,
            provider=provider,
            lite_mode=self.lite_var.get(),
            decide_large_media=fixed_media_policy(keep_large),
            state=self.state,
            results=self.results,
            verbose=bool(getattr(self.args, "verbose", False)),
        )

        self._rows_shown = 0
        self.table.delete(*self.table.get_children())
        self.start_button.config(state="disabled", text="Processing…")
        for button in self.export_buttons:
            button.config(state="disabled")

        threading.Thread(target=self._execute_translation, args=(runner,), daemon=True).start()

    def _execute_translation(self, runner: TranslationRunner) -> None:
        """Run the batch loop in a worker thread."""

        message: Optional[str] = None
        try:
            runner.run()
        except TrisubError as exc:
            message = str(exc)
        except Exception as exc:  # pragma: no cover - defensive catch
            message = f"Unexpected error: {exc}"
        self.root.after(0, self._handle_result, runner.summary(), message)

    def _on_state_change(self, snapshot: RunSnapshot) -> None:
        self.root.after(0, self._apply_snapshot, snapshot)

    def _apply_snapshot(self, snapshot: RunSnapshot) -> None:
        self.progress_var.set(snapshot.progress_percent)
        self.status_var.set(snapshot.status_message or "Ready.")
        entries = self.results.snapshot()
        for entry in entries[self._rows_shown :]:
            start, _ = split_time_range(entry.time_range)
            self.table.insert(
                "",
                "end",
                values=(start, entry.speaker or "Unknown", entry.vietnamese, entry.english, entry.chinese),
            )
        self._rows_shown = len(entries)

    def _handle_result(self, summary: TranslationSummary, message: Optional[str]) -> None:
        """Update the UI after the translation completes."""

        self._apply_snapshot(self.state.snapshot())
        self.start_button.config(state="normal", text="Start translation")
        if self.results:
            for button in self.export_buttons:
                button.config(state="normal")

        self.summary_printer(summary)
        self.exit_code = 0 if summary.succeeded else 1
        if message:
            messagebox.showerror("Trisub", f"Translation did not finish.\n{message}")

    def _export(self, language: str) -> None:
        entries = self.results.snapshot()
        if not entries:
            return
        selection = filedialog.asksaveasfilename(
            title=f"Save {LANGUAGE_LABELS[language]} subtitles",
            initialfile=export_filename(language),
            defaultextension=".srt",
            filetypes=[("Subtitles", "*.srt")],
        )
        if not selection:
            return
        try:
            pathlib.Path(selection).write_text(serialize_srt(entries, language), encoding="utf-8")
        except OSError as exc:
            messagebox.showerror("Trisub", f"Could not save subtitles: {exc}")
            return
        self.status_var.set(f"Saved {selection}.")

    def _on_close(self) -> None:
        """Handle window close requests."""

        if self.state.processing:
            confirm = messagebox.askyesno(
                "Trisub",
                "A translation is currently in progress. Do you want to stop it and exit?",
            )
            if not confirm:
                return
            self.exit_code = 2

        self.root.destroy()


def launch_gui(
    *,
    args: Any,
    summary_printer: SummaryPrinter,
    run_options: dict[str, Any],
) -> int:
    """Entry point called from the CLI when --gui is provided."""

    root = tk.Tk()
    app = TrisubGUI(
        root=root,
        args=args,
        summary_printer=summary_printer,
        run_options=run_options,
    )
    root.mainloop()
    return app.exit_code
