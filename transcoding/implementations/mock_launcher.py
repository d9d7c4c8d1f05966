"""
Mock Process Launcher

Simulated FFmpeg processes for testing without a real binary.
Mimics how FFmpeg reacts to signals so stop/kill timing can be tested
deterministically.

This is a "Fake" (test double) - it has working logic but spawns nothing.
"""

import asyncio
import errno
import logging
import signal
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from transcoding.interfaces.process_launcher_interface import (
    ProcessHandle,
    ProcessLauncherInterface,
    SpawnFailureError,
)


@dataclass
class MockProcessBehavior:
    """
    How a mock process reacts once spawned.

    exit_delays maps a signal to the seconds until the process exits after
    receiving it; a missing signal (or None) means the signal is ignored.
    SIGKILL always ends the process immediately.
    """

    exit_delays: Dict[int, Optional[float]] = field(
        default_factory=lambda: {signal.SIGTERM: 0.0, signal.SIGINT: 0.0}
    )
    crash_after: Optional[float] = None  # Exit on its own after N seconds
    crash_code: int = 1
    undeliverable_signals: Set[int] = field(default_factory=set)
    stderr_lines: List[str] = field(default_factory=list)

    @classmethod
    def ignores_signals(cls) -> "MockProcessBehavior":
        """A hung process that only dies from SIGKILL"""
        return cls(exit_delays={})


class MockProcess(ProcessHandle):
    """
    Fake process handle.

    Records every signal it receives in signals_received for assertions.
    """

    def __init__(self, pid: int, args: List[str], behavior: MockProcessBehavior):
        self.logger = logging.getLogger(__name__)
        self._pid = pid
        self.args = args
        self.behavior = behavior
        self.signals_received: List[int] = []

        self._returncode: Optional[int] = None
        self._exited = asyncio.Event()
        self._stderr: "asyncio.Queue[bytes]" = asyncio.Queue()
        self._exit_timer: Optional[asyncio.TimerHandle] = None

        for line in behavior.stderr_lines:
            self._stderr.put_nowait(f"{line}\n".encode())

        if behavior.crash_after is not None:
            self._schedule_exit(behavior.crash_after, behavior.crash_code)

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def returncode(self) -> Optional[int]:
        return self._returncode

    @property
    def was_killed(self) -> bool:
        return signal.SIGKILL in self.signals_received

    def send_signal(self, sig: int) -> None:
        if self._returncode is not None:
            raise ProcessLookupError(f"[MOCK] PID {self._pid} already exited")
        if sig in self.behavior.undeliverable_signals:
            raise ValueError(f"[MOCK] Unsupported signal {sig}")

        self.signals_received.append(sig)
        self.logger.debug(f"[MOCK] PID {self._pid} received signal {sig}")

        if sig == signal.SIGKILL:
            self._exit(-signal.SIGKILL)
            return

        delay = self.behavior.exit_delays.get(sig)
        if delay is not None:
            self._schedule_exit(delay, 0)

    def terminate(self) -> None:
        self.send_signal(signal.SIGTERM)

    def kill(self) -> None:
        self.send_signal(signal.SIGKILL)

    async def wait(self) -> int:
        await self._exited.wait()
        assert self._returncode is not None
        return self._returncode

    async def read_stderr(self) -> bytes:
        chunk = await self._stderr.get()
        if not chunk:
            # Keep end-of-stream visible to later readers
            self._stderr.put_nowait(b"")
        return chunk

    # =========================================================================
    # TESTING HELPER METHODS (not part of ProcessHandle)
    # =========================================================================

    def simulate_exit(self, returncode: int = 1) -> None:
        """End the process right now, as if it crashed"""
        self._exit(returncode)

    def _schedule_exit(self, delay: float, returncode: int) -> None:
        if self._exit_timer is not None:
            return  # Already on its way out
        loop = asyncio.get_running_loop()
        self._exit_timer = loop.call_later(delay, self._exit, returncode)

    def _exit(self, returncode: int) -> None:
        if self._returncode is not None:
            return
        if self._exit_timer is not None:
            self._exit_timer.cancel()
            self._exit_timer = None
        self._returncode = returncode
        self._stderr.put_nowait(b"")
        self._exited.set()
        self.logger.debug(f"[MOCK] PID {self._pid} exited ({returncode})")


class MockLauncher(ProcessLauncherInterface):
    """
    Mock launcher for testing.

    Usage:
        launcher = MockLauncher(first_pid=4242)
        launcher.set_behavior(MockProcessBehavior.ignores_signals())
        handle = await launcher.spawn(["-i", "rtsp://cam", "out.mp4"])
        assert launcher.spawned[0].pid == 4242
    """

    def __init__(self, binary_path: str = "ffmpeg", first_pid: int = 4242):
        self.logger = logging.getLogger(__name__)
        self._binary_path = binary_path
        self._next_pid = first_pid

        self.spawned: List[MockProcess] = []
        self.probe_count = 0

        # Configuration for test scenarios
        self._available = True
        self._spawn_error_errno: Optional[int] = None
        self._behavior = MockProcessBehavior()

        self.logger.info(f"Mock Launcher initialized (first PID: {first_pid})")

    @property
    def binary_path(self) -> str:
        return self._binary_path

    def is_available(self) -> bool:
        self.probe_count += 1
        return self._available

    async def spawn(self, args: List[str]) -> ProcessHandle:
        if self._spawn_error_errno is not None:
            self.logger.error("[MOCK] Simulated spawn failure")
            raise SpawnFailureError(
                f"[MOCK] Failed to start {self._binary_path}",
                os_errno=self._spawn_error_errno,
            )

        process = MockProcess(self._next_pid, list(args), self._behavior)
        self._next_pid += 1
        self.spawned.append(process)
        self.logger.info(f"[MOCK] Spawned PID {process.pid}")
        return process

    # =========================================================================
    # TESTING HELPER METHODS (not part of ProcessLauncherInterface)
    # =========================================================================

    def simulate_unavailable(self) -> None:
        """Make the availability probe fail"""
        self._available = False

    def simulate_spawn_failure(self, os_errno: int = errno.ENOENT) -> None:
        """Make every spawn fail with the given OS error"""
        self._spawn_error_errno = os_errno

    def set_behavior(self, behavior: MockProcessBehavior) -> None:
        """Behavior for processes spawned from now on"""
        self._behavior = behavior

    def reset_test_config(self) -> None:
        self._available = True
        self._spawn_error_errno = None
        self._behavior = MockProcessBehavior()

    @property
    def spawn_count(self) -> int:
        return len(self.spawned)
