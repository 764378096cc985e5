"""
Tests for the track model, library file and folder scanner.
"""

import json
import threading
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from vinnies.library.models import Track
from vinnies.library.scanner import find_audio_files, read_track, scan_library
from vinnies.library.store import LibraryStoreError, load_tracks, save_tracks


@pytest.fixture
def analyzed_track():
    return Track(
        path="/music/Daft Punk - Around the World.mp3",
        title="Around the World",
        artist="Daft Punk",
        bpm=121.3,
        key=9,
        mode=0,
        energy=0.6,
        last_analyzed=datetime(2024, 5, 1, 21, 30, 15),
    )


@pytest.fixture
def music_folder(tmp_path):
    """A small folder tree with audio files, hidden items and a package bundle."""
    (tmp_path / "House").mkdir()
    (tmp_path / "House" / "track1.mp3").write_bytes(b"")
    (tmp_path / "House" / "track2.FLAC").write_bytes(b"")
    (tmp_path / "top.wav").write_bytes(b"")
    (tmp_path / "notes.txt").write_text("not audio")
    (tmp_path / ".hidden.mp3").write_bytes(b"")
    (tmp_path / ".cache").mkdir()
    (tmp_path / ".cache" / "cached.mp3").write_bytes(b"")
    (tmp_path / "Music Library.musiclibrary").mkdir()
    (tmp_path / "Music Library.musiclibrary" / "inside.m4a").write_bytes(b"")
    return tmp_path


class TestTrack:

    def test_camelot_derived_from_key(self):
        assert Track(path="/a.mp3", key=0, mode=1).camelot == "8B"
        assert Track(path="/a.mp3", key=9, mode=0).camelot == "8A"

    def test_no_key_means_no_camelot(self):
        assert Track(path="/a.mp3").camelot is None

    def test_with_key_updates_camelot(self):
        track = Track(path="/a.mp3", key=0, mode=1).with_key(7, 1)
        assert track.camelot == "9B"

    def test_display_title_falls_back_to_file_name(self):
        assert Track(path="/music/Some Song.mp3").display_title == "Some Song"
        assert Track(path="/music/x.mp3", title="Real Title").display_title == "Real Title"

    def test_energy_is_clamped(self):
        assert Track(path="/a.mp3").with_energy(1.4).energy == 1.0
        assert Track(path="/a.mp3").with_energy(-0.2).energy == 0.0

    def test_is_frozen(self):
        track = Track(path="/a.mp3")
        with pytest.raises(AttributeError):
            track.bpm = 120.0

    def test_stored_form_uses_library_field_names(self, analyzed_track):
        data = analyzed_track.to_dict()
        assert data["lastAnalyzed"] == "2024-05-01T21:30:15"
        assert data["camelot"] == "8A"
        assert "last_analyzed" not in data

    def test_round_trip(self, analyzed_track):
        assert Track.from_dict(analyzed_track.to_dict()) == analyzed_track

    def test_stored_camelot_kept_without_key(self):
        assert Track.from_dict({"path": "/a.mp3", "camelot": "5A"}).camelot == "5A"

    @pytest.mark.parametrize("record", [
        {},
        {"path": ""},
        {"path": 12},
        {"path": "/a.mp3", "bpm": "fast"},
        {"path": "/a.mp3", "lastAnalyzed": "yesterday"},
        ["/a.mp3"],
    ])
    def test_invalid_records(self, record):
        with pytest.raises(ValueError):
            Track.from_dict(record)


class TestLibraryStore:

    def test_save_and_load(self, tmp_path, analyzed_track):
        path = tmp_path / "library.json"
        tracks = [analyzed_track, Track(path="/music/new.mp3", title="new")]

        save_tracks(tracks, path)

        assert load_tracks(path) == tracks

    def test_file_is_json_array(self, tmp_path, analyzed_track):
        path = tmp_path / "library.json"
        save_tracks([analyzed_track], path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert isinstance(data, list)
        assert data[0]["bpm"] == 121.3

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "library.json"
        save_tracks([], path)
        assert load_tracks(path) == []

    def test_no_temp_files_left_behind(self, tmp_path, analyzed_track):
        save_tracks([analyzed_track], tmp_path / "library.json")
        assert [p.name for p in tmp_path.iterdir()] == ["library.json"]

    def test_unwritable_location(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(LibraryStoreError):
            save_tracks([], blocker / "library.json")

    def test_missing_file(self, tmp_path):
        with pytest.raises(LibraryStoreError, match="not found"):
            load_tracks(tmp_path / "missing.json")

    @pytest.mark.parametrize("content", [
        "{not json",
        '{"path": "/a.mp3"}',
        '[{"title": "no path"}]',
    ])
    def test_malformed_file(self, tmp_path, content):
        path = tmp_path / "library.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(LibraryStoreError):
            load_tracks(path)


class TestFindAudioFiles:

    def test_finds_audio_recursively(self, music_folder):
        files = find_audio_files(music_folder)
        names = sorted(f.name for f in files)
        assert names == ["top.wav", "track1.mp3", "track2.FLAC"]

    def test_results_are_sorted(self, music_folder):
        files = find_audio_files(music_folder)
        assert files == sorted(files)

    def test_custom_extensions(self, music_folder):
        files = find_audio_files(music_folder, extensions=[".WAV"])
        assert [f.name for f in files] == ["top.wav"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ValueError):
            find_audio_files(tmp_path / "nope")

    def test_file_is_not_a_directory(self, tmp_path):
        file_path = tmp_path / "song.mp3"
        file_path.write_bytes(b"")
        with pytest.raises(ValueError):
            find_audio_files(file_path)


class TestReadTrack:

    def test_uses_tags(self, tmp_path):
        audio = MagicMock()
        audio.tags = {"title": ["Strobe"], "artist": ["deadmau5"]}
        with patch("vinnies.library.scanner.mutagen.File", return_value=audio):
            track = read_track(tmp_path / "01 strobe.mp3")

        assert track.title == "Strobe"
        assert track.artist == "deadmau5"
        assert track.path == str(tmp_path / "01 strobe.mp3")

    def test_no_tags_falls_back_to_file_name(self, tmp_path):
        with patch("vinnies.library.scanner.mutagen.File", return_value=None):
            track = read_track(tmp_path / "01 strobe.mp3")

        assert track.title == "01 strobe"
        assert track.artist is None

    def test_blank_tags_fall_back_to_file_name(self, tmp_path):
        audio = MagicMock()
        audio.tags = {"title": ["  "], "artist": []}
        with patch("vinnies.library.scanner.mutagen.File", return_value=audio):
            track = read_track(tmp_path / "song.mp3")

        assert track.title == "song"
        assert track.artist is None

    def test_unreadable_file_still_becomes_track(self, tmp_path):
        with patch("vinnies.library.scanner.mutagen.File", side_effect=OSError("broken")):
            track = read_track(tmp_path / "broken.mp3")

        assert track.title == "broken"
        assert not track.is_analyzed


class TestScanLibrary:

    @pytest.fixture(autouse=True)
    def no_tags(self):
        with patch("vinnies.library.scanner.mutagen.File", return_value=None):
            yield

    def test_progress_per_file(self, music_folder):
        calls = []
        tracks = scan_library(music_folder, on_progress=lambda n, total, t: calls.append((n, total)))

        assert len(tracks) == 3
        assert calls == [(1, 3), (2, 3), (3, 3)]

    def test_cancel_stops_between_files(self, music_folder):
        cancel = threading.Event()

        def on_progress(scanned, total, track):
            cancel.set()

        tracks = scan_library(music_folder, on_progress=on_progress, cancel_event=cancel)
        assert len(tracks) == 1

    def test_empty_folder(self, tmp_path):
        assert scan_library(tmp_path) == []
