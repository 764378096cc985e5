"""
Tests for the aubiotrack wrapper.
"""

import subprocess
from unittest.mock import patch

import pytest
from vinnies.analysis import beat_tracker
from vinnies.analysis.beat_tracker import (
    find_beat_tracker,
    is_beat_tracker_available,
    parse_beat_output,
    track_beats,
)


@pytest.fixture
def fake_binary(tmp_path):
    """An executable file standing in for aubiotrack."""
    binary = tmp_path / "aubiotrack"
    binary.write_text("#!/bin/sh\n")
    binary.chmod(0o755)
    return str(binary)


class TestParseBeatOutput:

    def test_one_beat_per_line(self):
        assert parse_beat_output("0.5\n1.0\n1.5\n") == [0.5, 1.0, 1.5]

    def test_bad_lines_are_dropped(self):
        output = "0.000\n0.512\nnot a number\n\n1.024  \n-3.0\nnan\ninf\n1.536"
        assert parse_beat_output(output) == [0.512, 1.024, 1.536]

    def test_empty_output(self):
        assert parse_beat_output("") == []


class TestFindBeatTracker:

    def test_configured_path_wins(self, fake_binary):
        assert find_beat_tracker(fake_binary) == fake_binary

    def test_not_installed(self, tmp_path):
        with patch.object(beat_tracker.shutil, "which", return_value=None), \
                patch.object(beat_tracker, "KNOWN_BEAT_TRACKER_PATHS", [str(tmp_path / "missing")]):
            assert find_beat_tracker() is None
            assert is_beat_tracker_available() is False

    def test_found_on_path(self, fake_binary):
        with patch.object(beat_tracker.shutil, "which", return_value=fake_binary):
            assert is_beat_tracker_available() is True


class TestTrackBeats:

    def test_returns_parsed_beats(self, fake_binary):
        completed = subprocess.CompletedProcess(
            args=[fake_binary, "-i", "song.mp3"], returncode=0, stdout="0.5\n1.0\n1.5\n", stderr=""
        )
        with patch.object(beat_tracker.subprocess, "run", return_value=completed) as run:
            beats = track_beats("song.mp3", binary=fake_binary, timeout=5)

        assert beats == [0.5, 1.0, 1.5]
        args, kwargs = run.call_args
        assert args[0] == [fake_binary, "-i", "song.mp3"]
        assert kwargs["timeout"] == 5

    def test_missing_tool_is_unavailable(self):
        with patch.object(beat_tracker, "find_beat_tracker", return_value=None):
            assert track_beats("song.mp3") is None

    def test_timeout_is_unavailable(self, fake_binary):
        error = subprocess.TimeoutExpired(cmd=fake_binary, timeout=1)
        with patch.object(beat_tracker.subprocess, "run", side_effect=error):
            assert track_beats("song.mp3", binary=fake_binary, timeout=1) is None

    def test_os_error_is_unavailable(self, fake_binary):
        with patch.object(beat_tracker.subprocess, "run", side_effect=PermissionError("denied")):
            assert track_beats("song.mp3", binary=fake_binary) is None

    def test_failed_run_is_unavailable(self, fake_binary):
        completed = subprocess.CompletedProcess(
            args=[fake_binary], returncode=1, stdout="", stderr="could not open file"
        )
        with patch.object(beat_tracker.subprocess, "run", return_value=completed):
            assert track_beats("song.mp3", binary=fake_binary) is None
