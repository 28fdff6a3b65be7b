"""
Encore CLI - Entry point

Drives one playback session from the terminal: play a catalog track, resume
the last played one, or list liked songs and recent history.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from encore.core import config
from encore.core.console import print_table, safe_print
from encore.core.output import setup_loguru
from encore.domain.catalog import CatalogError, RemoteSessionStore
from encore.domain.playback import (
    MediaEngine,
    MpvBackend,
    PlaybackController,
    PlaybackError,
    PlayingState,
    ResumeStore,
    SessionSnapshot,
)

_STATE_STYLES = {
    PlayingState.IDLE: ("■", "dim"),
    PlayingState.LOADING: ("…", "cyan"),
    PlayingState.PLAYING: ("▶", "green"),
    PlayingState.PAUSED: ("⏸", "yellow"),
    PlayingState.ERRORED: ("✗", "bold red"),
}


def _setup(cfg: config.Config) -> None:
    config.ensure_directories()
    log_file = (
        Path(cfg.logging.log_file)
        if cfg.logging.log_file
        else (config.get_data_dir() / "encore.log")
    )
    setup_loguru(log_file, level=cfg.logging.level, console_output=cfg.logging.console_output)


class SnapshotPrinter:
    """Prints a line whenever the current track or playing state changes."""

    def __init__(self) -> None:
        self._last: Optional[tuple] = None

    def __call__(self, snapshot: SessionSnapshot) -> None:
        track = snapshot.current_track
        key = (track.id if track else None, snapshot.playing_state)
        if key == self._last:
            return
        self._last = key
        if track is None:
            return
        icon, style = _STATE_STYLES[snapshot.playing_state]
        safe_print(f"{icon} {track.title} - {track.artist}", style=style)


async def _run_session(cfg: config.Config, store: RemoteSessionStore, track_id: Optional[str]) -> int:
    try:
        backend = MpvBackend.launch(cfg.player)
    except PlaybackError as e:
        safe_print(f"✗ {e}", style="bold red")
        return 1

    engine = MediaEngine(
        backend, poll_interval=cfg.player.poll_interval, volume=cfg.player.volume / 100
    )
    controller = PlaybackController(engine, store, ResumeStore())
    stopped = asyncio.Event()

    def watch_errors(snapshot: SessionSnapshot) -> None:
        if snapshot.playing_state is PlayingState.ERRORED:
            stopped.set()

    try:
        await controller.initialize()
        controller.subscribe(SnapshotPrinter())
        controller.subscribe(watch_errors)
        engine.start()

        if track_id is not None:
            try:
                track = await store.get_track(track_id)
            except CatalogError as e:
                safe_print(f"✗ Track {track_id}: {e}", style="bold red")
                return 1
            started = await controller.play(track)
        elif controller.snapshot.current_track is None:
            safe_print("Nothing to resume", style="yellow")
            return 1
        else:
            started = await controller.resume()

        if not started:
            return 1

        safe_print("Press Ctrl+C to stop", style="dim")
        await stopped.wait()
        return 1
    finally:
        await controller.drain()
        await controller.close()


async def _list_likes(store: RemoteSessionStore) -> int:
    tracks = await store.fetch_liked_tracks()
    if tracks is None:
        safe_print("Not logged in - set ENCORE_TOKEN or [auth] token", style="yellow")
        return 1

    print_table(
        f"Liked songs ({len(tracks)})",
        [("ID", "dim"), ("Title", None), ("Artist", "cyan")],
        [(track.id, track.title, track.artist) for track in tracks],
    )
    return 0


async def _list_recent(store: RemoteSessionStore) -> int:
    entries = await store.fetch_recently_played()
    if entries is None:
        safe_print("Not logged in - set ENCORE_TOKEN or [auth] token", style="yellow")
        return 1

    print_table(
        "Recently played",
        [("Played at", "dim"), ("Title", None), ("Artist", "cyan")],
        [
            (
                entry.played_at.strftime("%Y-%m-%d %H:%M") if entry.played_at else "?",
                entry.track.title,
                entry.track.artist,
            )
            for entry in entries
        ],
    )
    return 0


async def _dispatch(args: argparse.Namespace) -> int:
    cfg = config.load_config()
    _setup(cfg)
    store = RemoteSessionStore(cfg.api, cfg.auth.token)

    try:
        if args.subcommand == "play":
            return await _run_session(cfg, store, args.track_id)
        if args.subcommand == "resume":
            return await _run_session(cfg, store, None)
        if args.subcommand == "likes":
            return await _list_likes(store)
        if args.subcommand == "recent":
            return await _list_recent(store)
    except CatalogError as e:
        logger.error(f"{args.subcommand} failed: {e}")
        safe_print(f"✗ {e}", style="bold red")
        return 1
    return 2


def main() -> None:
    """Main entry point for the encore command."""
    parser = argparse.ArgumentParser(
        description="Encore - playback session controller",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    play_parser = subparsers.add_parser("play", help="Play a catalog track")
    play_parser.add_argument("track_id", help="Catalog track id")

    subparsers.add_parser("resume", help="Resume the last played track")
    subparsers.add_parser("likes", help="List liked songs")
    subparsers.add_parser("recent", help="List recently played tracks")

    args = parser.parse_args()
    if not args.subcommand:
        parser.print_help()
        sys.exit(2)

    try:
        sys.exit(asyncio.run(_dispatch(args)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
