"""Unit tests for video payloads and the media-mode decision."""

import mimetypes

import pytest

from trisub.errors import AbortRequested, EncodingError
from trisub.media import (
    LARGE_MEDIA_THRESHOLD,
    decide_media_mode,
    encode_media,
    needs_large_media_decision,
    should_offer_media,
)
from trisub.policy import InteractiveMediaPolicy, build_media_policy, fixed_media_policy
from trisub.structures import MediaMode


def never_called(path, size):
    raise AssertionError("large media decision should not be requested")


class TestShouldOfferMedia:
    def test_requires_video_and_full_mode(self):
        assert should_offer_media(MediaMode.FULL, True)
        assert not should_offer_media(MediaMode.FULL, False)
        assert not should_offer_media(MediaMode.LITE, True)


class TestEncodeMedia:
    def test_reads_bytes_and_mime_type(self, tmp_path):
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"\x00\x01video")

        payload = encode_media(path)

        assert payload.mime_type == "video/mp4"
        assert payload.data == b"\x00\x01video"
        assert payload.to_base64() == "AAF2aWRlbw=="

    def test_missing_file_is_encoding_error(self, tmp_path):
        with pytest.raises(EncodingError):
            encode_media(tmp_path / "absent.mp4")

    @pytest.fixture
    def bare_mime_table(self, monkeypatch):
        monkeypatch.setattr(mimetypes, "knownfiles", [])
        mimetypes.init()
        yield
        monkeypatch.undo()
        mimetypes.init()

    @pytest.mark.parametrize(
        "name, expected",
        [("episode.mkv", "video/x-matroska"), ("episode.M4V", "video/mp4"), ("episode.webm", "video/webm")],
    )
    def test_picker_extensions_resolve_without_system_table(
        self, tmp_path, bare_mime_table, name, expected
    ):
        path = tmp_path / name
        path.write_bytes(b"data")

        assert encode_media(path).mime_type == expected

    def test_unknown_media_type_is_encoding_error(self, tmp_path):
        path = tmp_path / "notes.unknownext"
        path.write_bytes(b"data")

        with pytest.raises(EncodingError):
            encode_media(path)


class TestDecideMediaMode:
    def test_no_video_is_lite(self):
        decision = decide_media_mode(None, MediaMode.FULL, never_called)

        assert decision.mode is MediaMode.LITE

    def test_lite_request_wins(self, video_factory):
        decision = decide_media_mode(video_factory(10), MediaMode.LITE, never_called)

        assert decision.mode is MediaMode.LITE

    def test_small_video_is_full_without_asking(self, video_factory):
        decision = decide_media_mode(video_factory(1024), MediaMode.FULL, never_called)

        assert decision.mode is MediaMode.FULL

    def test_large_video_declined_switches_to_lite(self, video_factory):
        video = video_factory(60 * 1024 * 1024)
        asked = []

        def decline(path, size):
            asked.append(size)
            return False

        decision = decide_media_mode(video, MediaMode.FULL, decline)

        assert decision.mode is MediaMode.LITE
        assert asked == [60 * 1024 * 1024]

    def test_large_video_kept(self, video_factory):
        decision = decide_media_mode(
            video_factory(LARGE_MEDIA_THRESHOLD + 1), MediaMode.FULL, fixed_media_policy(True)
        )

        assert decision.mode is MediaMode.FULL

    def test_threshold_is_exclusive(self, video_factory):
        decision = decide_media_mode(
            video_factory(200), MediaMode.FULL, never_called, threshold=200
        )

        assert decision.mode is MediaMode.FULL

    def test_text_only_provider_downgrades(self, video_factory):
        decision = decide_media_mode(
            video_factory(10), MediaMode.FULL, never_called, supports_media=False
        )

        assert decision.mode is MediaMode.LITE


class TestNeedsLargeMediaDecision:
    def test_large_video_with_media_provider(self, video_factory):
        assert needs_large_media_decision(video_factory(60 * 1024 * 1024), supports_media=True)

    def test_text_only_provider_never_asks(self, video_factory):
        video = video_factory(60 * 1024 * 1024)

        assert not needs_large_media_decision(video, supports_media=False)
        decision = decide_media_mode(video, MediaMode.FULL, never_called, supports_media=False)
        assert decision.mode is MediaMode.LITE

    def test_small_or_absent_video(self, video_factory):
        assert not needs_large_media_decision(video_factory(1024), supports_media=True)
        assert not needs_large_media_decision(None, supports_media=True)


class TestMediaPolicies:
    def test_interactive_policy_retries_until_valid(self, tmp_path, capsys):
        answers = iter(["maybe", "k"])
        policy = InteractiveMediaPolicy(prompt=lambda question: next(answers))

        assert policy(tmp_path / "clip.mp4", 80 * 1024 * 1024) is True
        assert "Keep, Lite, or Abort" in capsys.readouterr().out

    def test_interactive_policy_lite(self, tmp_path):
        policy = InteractiveMediaPolicy(prompt=lambda question: "lite")

        assert policy(tmp_path / "clip.mp4", 1) is False

    def test_interactive_policy_abort(self, tmp_path):
        policy = InteractiveMediaPolicy(prompt=lambda question: "a")

        with pytest.raises(AbortRequested):
            policy(tmp_path / "clip.mp4", 1)

    def test_non_interactive_ask_drops_video(self, tmp_path):
        policy = build_media_policy("ask", interactive=False)

        assert policy(tmp_path / "clip.mp4", 1) is False

    def test_keep_choice(self, tmp_path):
        assert build_media_policy("keep", interactive=False)(tmp_path / "clip.mp4", 1) is True

    def test_unknown_choice(self):
        with pytest.raises(ValueError):
            build_media_policy("sometimes", interactive=True)
