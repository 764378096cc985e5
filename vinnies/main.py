"""
Main entry point for the Vinnies command line
"""

import argparse
import signal
import sys
from pathlib import Path
from typing import List, Optional

import structlog
from pydantic import ValidationError

from vinnies.analysis.beat_tracker import is_beat_tracker_available
from vinnies.config import Settings, load_settings, save_settings
from vinnies.library.models import Track
from vinnies.library.state import LibraryBusyError, LibraryEvents, LibraryState
from vinnies.library.store import LibraryStoreError
from vinnies.matching.engine import MatchResult
from vinnies.theory.camelot import (
    calculate_harmonic_compatibility,
    get_compatible_keys,
    get_key_name,
    parse_camelot,
)
from vinnies.utils.logging import setup_logging

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vinnies",
        description="Find tracks in your library that mix well together (BPM + Camelot key)",
    )
    parser.add_argument("--settings-file", help="Settings file to read and write")
    parser.add_argument("--log-level", help="Override the configured log level")

    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan the music folder for audio files")
    scan.add_argument("folder", nargs="?", help="Folder to scan (default: configured music folder)")

    analyze = sub.add_parser("analyze", help="Estimate BPM with aubiotrack")
    analyze.add_argument("--all", action="store_true", help="Re-analyze tracks that already have a BPM")

    sub.add_parser("list", help="List library tracks")
    sub.add_parser("status", help="Show library and analyzer status")

    match = sub.add_parser("match", help="Find tracks that mix with a track")
    match.add_argument("track", help="Track path or part of its title")
    match.add_argument("--tolerance", type=float, help="BPM tolerance (default: configured)")
    match.add_argument("--limit", type=int, help="Maximum number of results")

    keys = sub.add_parser("keys", help="Show compatible Camelot keys")
    keys.add_argument("camelot", help="Camelot key, e.g. 8A")

    config = sub.add_parser("config", help="Show or change settings")
    config.add_argument("--music-folder", help="Set the music folder")
    config.add_argument("--tolerance", type=float, help="Set the BPM tolerance (1-10)")

    return parser


def format_track(track: Track) -> str:
    bpm = f"{track.bpm:6.1f}" if track.bpm is not None else "     -"
    camelot = track.camelot or "-"
    artist = f" - {track.display_artist}" if track.display_artist else ""
    return f"{bpm}  {camelot:>3}  {track.display_title}{artist}"


def format_match(result: MatchResult) -> str:
    marker = result.match_type.marker
    return f"{result.score:.2f}  {marker:>2}  {format_track(result.track)}"


def resolve_track(state: LibraryState, query: str) -> Optional[Track]:
    """Find a track by exact path, then by title substring."""
    exact = state.get(query)
    if exact is not None:
        return exact

    needle = query.lower()
    found = [t for t in state.tracks if needle in t.display_title.lower()]
    if len(found) > 1:
        logger.warning("Several tracks match, using the first", query=query, count=len(found))
    return found[0] if found else None


def _load_state(settings: Settings, required: bool = True) -> LibraryState:
    state = LibraryState(
        beat_tracker_path=settings.aubiotrack_path,
        analyzer_timeout=settings.analyzer_timeout_seconds,
    )
    library_file = Path(settings.library_file)
    if required or library_file.exists():
        state.load(library_file)
    return state


def cmd_scan(args, settings: Settings) -> int:
    folder = args.folder or settings.music_folder_path
    if not folder:
        logger.error("No music folder configured; pass a folder or run 'vinnies config --music-folder'")
        return EXIT_FAILURE

    state = _load_state(settings, required=False)

    def on_progress(scanned, total, track):
        print(f"\rScanning: {scanned}/{total}", end="", file=sys.stderr, flush=True)

    state.subscribe(LibraryEvents.SCAN_PROGRESS, on_progress)
    try:
        count = state.scan(Path(folder))
    except ValueError as e:
        logger.error("Scan failed", error=str(e))
        return EXIT_FAILURE
    print(file=sys.stderr)

    state.save(Path(settings.library_file))
    stats = state.stats()
    print(f"{count} tracks ({stats['analyzed']} analyzed)")
    return EXIT_OK


def cmd_analyze(args, settings: Settings) -> int:
    if not is_beat_tracker_available(settings.aubiotrack_path):
        logger.warning("aubiotrack not found. Install with: brew install aubio")
        return EXIT_FAILURE

    state = _load_state(settings)

    def on_progress(completed, total, track):
        print(f"\rAnalyzing BPM: {completed}/{total}", end="", file=sys.stderr, flush=True)
        # Save as we go so an interrupted run keeps its results
        state.save(Path(settings.library_file))

    state.subscribe(LibraryEvents.ANALYSIS_PROGRESS, on_progress)
    processed = state.analyze(only_unanalyzed=not args.all)
    print(file=sys.stderr)

    state.save(Path(settings.library_file))
    stats = state.stats()
    print(f"{processed} tracks analyzed, {stats['analyzed']}/{stats['total']} ready")
    return EXIT_OK


def cmd_list(args, settings: Settings) -> int:
    state = _load_state(settings)
    for track in state.tracks:
        print(format_track(track))
    return EXIT_OK


def cmd_status(args, settings: Settings) -> int:
    library_file = Path(settings.library_file)
    print(f"Music folder:  {settings.music_folder_path or 'Not selected'}")
    print(f"Library file:  {library_file}")
    print(f"BPM tolerance: ±{settings.bpm_tolerance:g}")
    if library_file.exists():
        stats = _load_state(settings).stats()
        print(f"Library:       {stats['total']} tracks ({stats['analyzed']} analyzed)")
    else:
        print("Library:       No tracks loaded")
    if not is_beat_tracker_available(settings.aubiotrack_path):
        print("aubio not found. Run: brew install aubio")
    return EXIT_OK


def cmd_match(args, settings: Settings) -> int:
    state = _load_state(settings)
    reference = resolve_track(state, args.track)
    if reference is None:
        logger.error("Track not found", query=args.track)
        return EXIT_FAILURE
    if reference.bpm is None:
        logger.error("Track has no BPM yet; run 'vinnies analyze'", path=reference.path)
        return EXIT_FAILURE

    tolerance = args.tolerance if args.tolerance is not None else settings.bpm_tolerance
    limit = args.limit if args.limit is not None else settings.match_limit

    print(f"Now playing: {format_track(reference)}")
    try:
        results = state.matches_for(reference.path, bpm_tolerance=tolerance, limit=limit)
    except ValueError as e:
        logger.error("Invalid match options", error=str(e))
        return EXIT_FAILURE

    if not results:
        print("No matching tracks")
    for result in results:
        print(format_match(result))
    return EXIT_OK


def cmd_keys(args, settings: Settings) -> int:
    if parse_camelot(args.camelot) is None:
        logger.error("Invalid Camelot key", camelot=args.camelot)
        return EXIT_FAILURE

    for key in get_compatible_keys(args.camelot):
        score = calculate_harmonic_compatibility(args.camelot, key)
        print(f"{key:>3}  {get_key_name(key):<4} {score:.2f}")
    return EXIT_OK


def cmd_config(args, settings: Settings) -> int:
    changed = False
    try:
        if args.music_folder is not None:
            settings.music_folder_path = str(Path(args.music_folder).expanduser())
            changed = True
        if args.tolerance is not None:
            settings.bpm_tolerance = args.tolerance
            changed = True
    except ValidationError as e:
        logger.error("Invalid setting", error=str(e))
        return EXIT_FAILURE

    if changed:
        path = save_settings(settings, args.settings_file)
        logger.info("Settings saved", path=str(path))

    print(f"music_folder_path = {settings.music_folder_path}")
    print(f"bpm_tolerance     = {settings.bpm_tolerance:g}")
    print(f"library_file      = {settings.library_file}")
    return EXIT_OK


COMMANDS = {
    "scan": cmd_scan,
    "analyze": cmd_analyze,
    "list": cmd_list,
    "status": cmd_status,
    "match": cmd_match,
    "keys": cmd_keys,
    "config": cmd_config,
}


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully"""
    logger.info("Shutdown signal received", signal=signum)
    sys.exit(EXIT_FAILURE)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.settings_file)
    except ValidationError as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return EXIT_FAILURE

    setup_logging(args.log_level or settings.log_level, settings.log_file)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        return COMMANDS[args.command](args, settings)
    except LibraryStoreError as e:
        logger.error("Library unavailable", error=str(e))
        return EXIT_FAILURE
    except LibraryBusyError as e:
        logger.error("Library busy", error=str(e))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
