"""
Library state owner.

LibraryState holds the track list and is the only place it changes.
Scan and analysis passes run one at a time; each completed item goes
through a single update method and is announced to subscribers, so a
front end only has to render what it is told.
"""

import asyncio
import functools
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import structlog

from vinnies.analysis.analyzer import (
    BeatSource,
    EnergyEstimator,
    KeyDetector,
    iter_library_analysis,
    select_unanalyzed,
)
from vinnies.analysis.beat_tracker import DEFAULT_TIMEOUT_SECONDS, track_beats
from vinnies.library.models import Track
from vinnies.library.scanner import iter_scan
from vinnies.library.store import load_tracks, save_tracks
from vinnies.matching.engine import DEFAULT_MATCH_LIMIT, MatchResult, find_matches_for_track
from vinnies.matching.scoring import DEFAULT_BPM_TOLERANCE

logger = structlog.get_logger()


class LibraryEvents:
    """
    Event names emitted by LibraryState.

    TRACKS_CHANGED: track list replaced
        kwargs: tracks (tuple[Track, ...])
    TRACK_UPDATED: one track added or replaced
        kwargs: track (Track)
    SCAN_PROGRESS: one file scanned
        kwargs: scanned (int), total (int), track (Track)
    ANALYSIS_PROGRESS: one track analyzed
        kwargs: completed (int), total (int), track (Track)
    BUSY_CHANGED: a scan or analysis pass started or finished
        kwargs: busy (bool), operation (str)
    """

    TRACKS_CHANGED = "tracks_changed"
    TRACK_UPDATED = "track_updated"
    SCAN_PROGRESS = "scan_progress"
    ANALYSIS_PROGRESS = "analysis_progress"
    BUSY_CHANGED = "busy_changed"


class LibraryBusyError(RuntimeError):
    """A scan or analysis pass is already running."""


class LibraryState:
    """Owned track collection with subscribe/notify updates."""

    def __init__(
        self,
        tracks: Optional[List[Track]] = None,
        beat_source: Optional[BeatSource] = None,
        key_detector: Optional[KeyDetector] = None,
        energy_estimator: Optional[EnergyEstimator] = None,
        beat_tracker_path: Optional[str] = None,
        analyzer_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._tracks: List[Track] = []
        self._index: Dict[str, int] = {}
        self._subscribers: Dict[str, List[Callable[..., None]]] = {}
        self._busy = threading.Lock()
        self._cancel = threading.Event()
        self._operation: Optional[str] = None
        # Set while a pass runs in the executor; events are delivered on this loop
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        # Loop of the run_in_background call on the current worker thread
        self._caller = threading.local()
        self._set_tracks(tracks or [])

        self.beat_source = beat_source or functools.partial(
            track_beats, binary=beat_tracker_path, timeout=analyzer_timeout
        )
        self.key_detector = key_detector
        self.energy_estimator = energy_estimator

    # Subscriptions

    def subscribe(self, event: str, callback: Callable[..., None]) -> None:
        self._subscribers.setdefault(event, []).append(callback)

    def unsubscribe(self, event: str, callback: Callable[..., None]) -> bool:
        """Remove a callback. Returns False if it was not subscribed."""
        try:
            self._subscribers.get(event, []).remove(callback)
            return True
        except ValueError:
            return False

    def _emit(self, event: str, **data: Any) -> None:
        loop = self._loop
        if loop is not None:
            loop.call_soon_threadsafe(functools.partial(self._deliver, event, data))
        else:
            self._deliver(event, data)

    def _deliver(self, event: str, data: Dict[str, Any]) -> None:
        # Copy so callbacks can unsubscribe while being called
        for callback in list(self._subscribers.get(event, [])):
            try:
                callback(**data)
            except Exception as e:
                logger.error("Library subscriber failed", library_event=event, error=str(e))

    # Read access

    @property
    def tracks(self) -> Tuple[Track, ...]:
        return tuple(self._tracks)

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    @property
    def operation(self) -> Optional[str]:
        return self._operation

    def get(self, path: str) -> Optional[Track]:
        index = self._index.get(path)
        return None if index is None else self._tracks[index]

    def stats(self) -> Dict[str, int]:
        analyzed = sum(1 for t in self.tracks if t.is_analyzed)
        return {"total": len(self._tracks), "analyzed": analyzed}

    # Updates

    def _set_tracks(self, tracks: List[Track]) -> None:
        # Later duplicates of a path win
        self._tracks = []
        self._index = {}
        for track in tracks:
            self._put(track)

    def _put(self, track: Track) -> None:
        index = self._index.get(track.path)
        if index is None:
            self._index[track.path] = len(self._tracks)
            self._tracks.append(track)
        else:
            self._tracks[index] = track

    def _commit_all(self, tracks: List[Track]) -> None:
        self._set_tracks(tracks)
        self._emit(LibraryEvents.TRACKS_CHANGED, tracks=self.tracks)

    def _commit(self, track: Track) -> None:
        self._put(track)
        self._emit(LibraryEvents.TRACK_UPDATED, track=track)

    @contextmanager
    def _exclusive(self, action: str) -> Iterator[None]:
        # Outside changes are refused while a pass owns the track list
        if not self._busy.acquire(blocking=False):
            raise LibraryBusyError(f"Cannot {action}: {self._operation or 'another change'} in progress")
        try:
            yield
        finally:
            self._busy.release()

    def replace_all(self, tracks: List[Track]) -> None:
        """
        Replace the whole track list.

        Raises:
            LibraryBusyError: If a pass is running
        """
        with self._exclusive("replace tracks"):
            self._commit_all(tracks)

    def update_track(self, track: Track) -> None:
        """
        Replace the track with the same path, or append it.

        Raises:
            LibraryBusyError: If a pass is running
        """
        with self._exclusive("update track"):
            self._commit(track)

    # Long-running passes

    def _begin(self, operation: str) -> None:
        if not self._busy.acquire(blocking=False):
            raise LibraryBusyError(f"Cannot start {operation}: {self._operation or 'another change'} in progress")
        self._operation = operation
        # Only the pass holding the lock decides where events go
        self._loop = getattr(self._caller, "loop", None)
        self._cancel.clear()
        self._emit(LibraryEvents.BUSY_CHANGED, busy=True, operation=operation)

    def _end(self, operation: str) -> None:
        self._emit(LibraryEvents.BUSY_CHANGED, busy=False, operation=operation)
        self._operation = None
        self._loop = None
        self._busy.release()

    def cancel(self) -> None:
        """Ask the running pass to stop before its next item."""
        if self.is_busy:
            logger.info("Cancellation requested", operation=self._operation)
        self._cancel.set()

    def scan(self, directory: Path) -> int:
        """
        Scan a music folder, replacing the current track list.

        Tracks already known keep their analysis results. Files are
        merged in as they are read; the list only drops tracks that
        were not found once the whole folder has been scanned, so a
        cancelled scan loses nothing.

        Returns:
            Number of tracks in the library afterwards

        Raises:
            LibraryBusyError: If another pass is running
            ValueError: If the directory doesn't exist
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise ValueError(f"Directory does not exist: {directory}")

        self._begin("scan")
        try:
            previous = {t.path: t for t in self._tracks}
            found: List[Track] = []
            last = None
            for progress in iter_scan(directory, cancel_event=self._cancel):
                track = previous.get(progress.track.path, progress.track)
                found.append(track)
                self._commit(track)
                self._emit(
                    LibraryEvents.SCAN_PROGRESS,
                    scanned=progress.scanned,
                    total=progress.total,
                    track=track,
                )
                last = progress

            if self._cancel.is_set() and (last is None or last.scanned < last.total):
                logger.info("Scan stopped early, keeping existing tracks", scanned=len(found))
            else:
                self._commit_all(found)
            return len(self._tracks)
        finally:
            self._end("scan")

    def analyze(self, only_unanalyzed: bool = True) -> int:
        """
        Estimate BPM for library tracks, one at a time.

        Args:
            only_unanalyzed: Skip tracks that already have a BPM

        Returns:
            Number of tracks processed

        Raises:
            LibraryBusyError: If another pass is running
        """
        self._begin("analyze")
        try:
            pending = select_unanalyzed(self._tracks) if only_unanalyzed else list(self._tracks)
            processed = 0
            for progress in iter_library_analysis(
                pending,
                beat_source=self.beat_source,
                key_detector=self.key_detector,
                energy_estimator=self.energy_estimator,
                cancel_event=self._cancel,
            ):
                self._commit(progress.track)
                self._emit(
                    LibraryEvents.ANALYSIS_PROGRESS,
                    completed=progress.completed,
                    total=progress.total,
                    track=progress.track,
                )
                processed = progress.completed
            return processed
        finally:
            self._end("analyze")

    async def run_in_background(self, method: Callable[..., Any], *args: Any) -> Any:
        """
        Run a pass in the default executor.

        Subscriber callbacks are delivered on the calling event loop,
        not on the worker thread.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self._run_for_loop, loop, method, *args)
        )

    def _run_for_loop(self, loop: asyncio.AbstractEventLoop, method: Callable[..., Any], *args: Any) -> Any:
        self._caller.loop = loop
        try:
            return method(*args)
        finally:
            self._caller.loop = None

    # Persistence

    def load(self, path: Path) -> None:
        """
        Load the track list from a library file.

        Raises:
            LibraryStoreError: On failure; the current tracks are kept
            LibraryBusyError: If a pass is running
        """
        with self._exclusive("load library"):
            tracks = load_tracks(path)
            self._commit_all(tracks)

    def save(self, path: Path) -> None:
        save_tracks(self.tracks, path)

    # Matching

    def matches_for(
        self,
        path: str,
        bpm_tolerance: float = DEFAULT_BPM_TOLERANCE,
        limit: int = DEFAULT_MATCH_LIMIT,
    ) -> List[MatchResult]:
        """
        Tracks that mix with the library track at `path`.

        Raises:
            KeyError: If the track is not in the library
        """
        reference = self.get(path)
        if reference is None:
            raise KeyError(path)
        return find_matches_for_track(reference, self._tracks, bpm_tolerance, limit)
