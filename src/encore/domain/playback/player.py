"""
MPV player integration with JSON IPC for Encore

Low-level helpers are plain functions; MpvBackend is the thin stateful wrapper
the media engine drives.
"""

import asyncio
import json
import os
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, NamedTuple, Optional

from loguru import logger

from encore.core.config import PlayerConfig

from .engine import BackendStatus
from .exceptions import PlaybackError, PlaybackRejectedError

# Minimum playback time before allowing "track finished" (seconds)
MIN_PLAYBACK_TIME = 3.0

# How long start() waits for audio output to begin (seconds)
START_TIMEOUT = 5.0
START_POLL_INTERVAL = 0.05

# mpv reports idle briefly while a new file opens; only trust it after this
IDLE_GRACE_PERIOD = 1.0


class MpvProcess(NamedTuple):
    """Handle to a running mpv instance."""

    socket_path: str
    process: subprocess.Popen


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    try:
        result = subprocess.run(
            ["mpv", "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def start_mpv(config: PlayerConfig) -> Optional[MpvProcess]:
    """Start MPV with JSON IPC and return a process handle."""
    if config.mpv_socket_path:
        socket_path = config.mpv_socket_path
    else:
        temp_dir = Path(tempfile.gettempdir())
        socket_path = str(temp_dir / f"encore-mpv-{os.getpid()}")

    logger.info(f"Starting MPV player with socket: {socket_path}")

    try:
        if os.path.exists(socket_path):
            logger.debug(f"Removing existing socket: {socket_path}")
            os.unlink(socket_path)

        cmd = [
            "mpv",
            "--idle=yes",
            "--no-video",
            "--no-terminal",
            f"--input-ipc-server={socket_path}",
            f"--volume={config.volume}",
            "--keep-open=yes",
            "--pause=yes",
            "--load-scripts=no",
        ]

        process = subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
        )

        timeout = 5.0
        start_time = time.time()
        while not os.path.exists(socket_path):
            if time.time() - start_time > timeout:
                logger.error(f"MPV socket creation timeout after {timeout}s")
                process.kill()
                return None
            time.sleep(0.1)

        if send_mpv_command(socket_path, {"command": ["get_property", "idle-active"]}):
            logger.info("MPV started successfully")
            return MpvProcess(socket_path=socket_path, process=process)

        logger.error("MPV socket connection test failed")
        process.kill()
        return None

    except (subprocess.SubprocessError, OSError) as e:
        logger.error(f"Failed to start MPV: {e}")
        return None


def stop_mpv(mpv: MpvProcess) -> None:
    """Stop MPV process and cleanup."""
    try:
        mpv.process.kill()
        mpv.process.wait(timeout=2.0)
    except (OSError, subprocess.TimeoutExpired):
        pass  # Already terminated

    if os.path.exists(mpv.socket_path):
        try:
            os.unlink(mpv.socket_path)
        except OSError:
            pass


def is_mpv_running(mpv: Optional[MpvProcess]) -> bool:
    """Check if MPV process is still running with a live socket."""
    if mpv is None:
        return False
    if mpv.process.poll() is not None:
        return False
    return os.path.exists(mpv.socket_path)


def _mpv_request(socket_path: Optional[str], command: dict[str, Any]) -> Optional[dict]:
    """Send one JSON IPC command and return the decoded reply, or None."""
    if not socket_path or not os.path.exists(socket_path):
        return None

    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(2.0)
        sock.connect(socket_path)
        try:
            sock.send((json.dumps(command) + "\n").encode("utf-8"))
            response = sock.recv(4096).decode("utf-8").strip()
        finally:
            sock.close()
    except (socket.error, OSError):
        return None

    # mpv may interleave async events; the reply is the line with "error"
    for line in response.splitlines():
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if "error" in data:
            return data
    return None


def send_mpv_command(socket_path: Optional[str], command: dict[str, Any]) -> bool:
    """Send JSON IPC command to MPV."""
    reply = _mpv_request(socket_path, command)
    return reply is not None and reply.get("error") == "success"


def get_mpv_property(socket_path: Optional[str], property_name: str) -> Any:
    """Get a property value from MPV."""
    reply = _mpv_request(socket_path, {"command": ["get_property", property_name]})
    if reply is not None and reply.get("error") == "success":
        return reply.get("data")
    return None


class MpvBackend:
    """Media backend driving one mpv process.

    Justified exception to the functional helpers above: the engine needs a
    stateful handle that remembers the loaded source and when output began.
    """

    def __init__(self, mpv: MpvProcess):
        self._mpv = mpv
        self._source: Optional[str] = None
        self._load_failed = False
        self._load_requested_at: Optional[float] = None
        self._playback_started_at: Optional[float] = None
        self._last_position = 0.0
        self._last_duration = 0.0

    @classmethod
    def launch(cls, config: PlayerConfig) -> "MpvBackend":
        """Start mpv and wrap it.

        Raises:
            PlaybackError: If mpv is missing or fails to start
        """
        if not check_mpv_available():
            raise PlaybackError("mpv is not installed or not on PATH")
        mpv = start_mpv(config)
        if mpv is None:
            raise PlaybackError("Failed to start mpv")
        return cls(mpv)

    @property
    def _socket(self) -> str:
        return self._mpv.socket_path

    def load(self, locator: str) -> None:
        send_mpv_command(self._socket, {"command": ["set_property", "pause", True]})
        success = send_mpv_command(
            self._socket, {"command": ["loadfile", locator, "replace"]}
        )
        self._source = locator
        self._load_failed = not success
        self._load_requested_at = time.time()
        self._playback_started_at = None
        self._last_position = 0.0
        self._last_duration = 0.0
        if not success:
            logger.warning(f"mpv rejected loadfile for {locator}")

    async def start(self) -> None:
        """Unpause and wait until mpv reports a playing position."""
        if not is_mpv_running(self._mpv):
            raise PlaybackRejectedError("mpv is not running")
        if self._source is None or self._load_failed:
            raise PlaybackRejectedError("No playable source loaded")

        # Socket round trips can block for seconds; run them in a worker thread
        unpaused = await asyncio.to_thread(
            send_mpv_command, self._socket, {"command": ["set_property", "pause", False]}
        )
        if not unpaused:
            raise PlaybackRejectedError("mpv refused to unpause")

        started = time.monotonic()
        deadline = started + START_TIMEOUT
        while time.monotonic() < deadline:
            idle, position = await asyncio.to_thread(self._sample_start)
            if idle is False and position is not None:
                if self._playback_started_at is None:
                    self._playback_started_at = time.time()
                logger.debug(f"mpv playback started after {time.monotonic() - started:.2f}s")
                return
            if idle is True and self._idle_is_final():
                raise PlaybackRejectedError("mpv could not open the stream")
            await asyncio.sleep(START_POLL_INTERVAL)

        raise PlaybackRejectedError(f"Playback did not start within {START_TIMEOUT}s")

    def pause(self) -> None:
        send_mpv_command(self._socket, {"command": ["set_property", "pause", True]})

    def seek(self, position: float) -> None:
        if send_mpv_command(self._socket, {"command": ["seek", position, "absolute"]}):
            self._last_position = position

    def set_volume(self, volume: float) -> None:
        send_mpv_command(
            self._socket, {"command": ["set_property", "volume", round(volume * 100)]}
        )

    def unload(self) -> None:
        send_mpv_command(self._socket, {"command": ["stop"]})
        self._source = None
        self._load_failed = False
        self._playback_started_at = None

    def status(self) -> BackendStatus:
        """Sample position/duration and detect completion or failure."""
        if not is_mpv_running(self._mpv):
            error = "mpv exited" if self._source is not None else None
            return BackendStatus(self._last_position, self._last_duration, False, error)

        if self._source is None:
            return BackendStatus(0.0, 0.0, False, None)

        if self._load_failed:
            return BackendStatus(0.0, 0.0, False, "mpv could not load the stream")

        position = get_mpv_property(self._socket, "time-pos")
        duration = get_mpv_property(self._socket, "duration")
        idle = get_mpv_property(self._socket, "idle-active")
        eof = get_mpv_property(self._socket, "eof-reached")

        # Preserve previous values if a query fails to avoid 0:00 flicker
        if position is not None:
            self._last_position = float(position)
        if duration is not None:
            self._last_duration = float(duration)

        if idle is True and self._idle_is_final():
            return BackendStatus(
                self._last_position, self._last_duration, False, "mpv dropped the stream"
            )

        return BackendStatus(
            self._last_position, self._last_duration, self._is_finished(eof), None
        )

    def close(self) -> None:
        stop_mpv(self._mpv)

    def _sample_start(self) -> tuple[Any, Any]:
        return (
            get_mpv_property(self._socket, "idle-active"),
            get_mpv_property(self._socket, "time-pos"),
        )

    def _idle_is_final(self) -> bool:
        """True once mpv has had time to open the file and is still idle."""
        if self._load_requested_at is None:
            return False
        return time.time() - self._load_requested_at > IDLE_GRACE_PERIOD

    def _is_finished(self, eof: Any) -> bool:
        """Track finished: EOF flag plus a position near the end."""
        if self._playback_started_at is None:
            return False
        if time.time() - self._playback_started_at < MIN_PLAYBACK_TIME:
            return False
        duration = self._last_duration
        return eof is True and duration > 0 and self._last_position >= duration - 1.0
