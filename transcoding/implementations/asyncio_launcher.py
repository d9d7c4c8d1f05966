"""
Asyncio Process Launcher

Real process launching using asyncio subprocesses.
Spawns FFmpeg without blocking the event loop and exposes its exit and
stderr to the controllers.

This wraps asyncio.subprocess to match our ProcessLauncherInterface.
"""

import asyncio
import logging
from typing import Optional

from config.settings import FFMPEG_PATH, PROBE_TIMEOUT
from transcoding.interfaces.process_launcher_interface import (
    ProcessHandle,
    ProcessLauncherInterface,
    SpawnFailureError,
)
from transcoding.utils.process_utils import check_binary_available

# Bytes per stderr read (FFmpeg writes progress with \r, not \n)
STDERR_CHUNK_SIZE = 4096


class AsyncioProcessHandle(ProcessHandle):
    """Handle around asyncio.subprocess.Process"""

    def __init__(self, process: asyncio.subprocess.Process):
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    def send_signal(self, sig: int) -> None:
        self._process.send_signal(sig)

    def terminate(self) -> None:
        self._process.terminate()

    def kill(self) -> None:
        self._process.kill()

    async def wait(self) -> int:
        return await self._process.wait()

    async def read_stderr(self) -> bytes:
        if self._process.stderr is None:
            return b""
        return await self._process.stderr.read(STDERR_CHUNK_SIZE)


class AsyncioLauncher(ProcessLauncherInterface):
    """
    Launches FFmpeg with asyncio.create_subprocess_exec.

    Usage:
        launcher = AsyncioLauncher()
        if launcher.is_available():
            handle = await launcher.spawn(["-i", url, "out.mp4"])
            await handle.wait()
    """

    def __init__(
        self,
        binary_path: str = FFMPEG_PATH,
        probe_timeout: float = PROBE_TIMEOUT,
    ):
        """
        Args:
            binary_path: FFmpeg executable (name on PATH or full path)
            probe_timeout: Seconds allowed for "ffmpeg -version"
        """
        self.logger = logging.getLogger(__name__)
        self._binary_path = binary_path
        self.probe_timeout = probe_timeout

    @property
    def binary_path(self) -> str:
        return self._binary_path

    def is_available(self) -> bool:
        """
        Run "ffmpeg -version" synchronously.

        Blocks the event loop until FFmpeg answers, for at most
        probe_timeout seconds (PROBE_TIMEOUT). Starts in progress for other
        cameras pause for that long.
        """
        return check_binary_available(self._binary_path, self.probe_timeout)

    async def spawn(self, args: list[str]) -> ProcessHandle:
        command = [self._binary_path, *args]
        self.logger.debug(f"Spawning: {' '.join(command)}")

        try:
            # stdin=DEVNULL: FFmpeg must never wait for keyboard input
            # stdout=DEVNULL: all output goes to files, nothing on stdout
            # stderr=PIPE: diagnostics, drained by the exit watcher
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnFailureError(
                f"Failed to start {self._binary_path}: {e}",
                os_errno=e.errno,
            ) from e

        return AsyncioProcessHandle(process)
