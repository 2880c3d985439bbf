"""Policies for the one-off large video decision."""

from __future__ import annotations

import pathlib
from typing import Callable

from .errors import AbortRequested
from .media import LargeMediaDecision

LARGE_MEDIA_CHOICES = ("ask", "keep", "lite")


def describe_size(size: int) -> str:
    return f"{size / (1024 * 1024):.1f} MB"


class InteractiveMediaPolicy:
    """Asks on the terminal whether a large video should still be sent."""

    def __init__(self, *, prompt: Callable[[str], str] = input) -> None:
        self.prompt = prompt

    def __call__(self, path: pathlib.Path, size: int) -> bool:
        question = (
            f"{path.name} is {describe_size(size)}; sending it with every batch may be "
            "slow on low-end machines. Keep the video, switch to text-only, or abort? "
        )
        while True:
            response = self.prompt(question).strip().lower()
            if response in {"keep", "k", "yes", "y"}:
                return True
            if response in {"lite", "l", "text", "t", "no", "n"}:
                return False
            if response in {"abort", "a"}:
                raise AbortRequested("Abort requested by user.")
            print("Please respond with Keep, Lite, or Abort (k/l/a).")


def fixed_media_policy(keep: bool) -> LargeMediaDecision:
    """Return a decision that always keeps or always drops a large video."""

    def decide(path: pathlib.Path, size: int) -> bool:
        return keep

    return decide


def build_media_policy(choice: str, *, interactive: bool) -> LargeMediaDecision:
    """Map a ``--large-media`` choice onto a decision callable."""

    normalized = (choice or "ask").strip().lower()
    if normalized == "keep":
        return fixed_media_policy(True)
    if normalized == "lite":
        return fixed_media_policy(False)
    if normalized == "ask":
        if interactive:
            return InteractiveMediaPolicy()
        return fixed_media_policy(False)
    raise ValueError(
        f"Unknown large media choice '{choice}'. Expected one of: "
        + ", ".join(LARGE_MEDIA_CHOICES)
    )
