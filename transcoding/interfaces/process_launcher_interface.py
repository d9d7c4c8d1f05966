"""
Process Launcher Interface

Abstract interface for spawning and signalling external processes.
Defines the contract that the controllers depend on.

Controllers never call asyncio.create_subprocess_exec directly. They go
through a launcher, so tests can swap in MockLauncher and drive exit timing
deterministically.
"""

import errno
from abc import ABC, abstractmethod
from typing import Optional


class ProcessHandle(ABC):
    """
    Handle to one spawned process.

    Owned by the process registry. The OS owns the process itself; the
    handle only lets us signal it and observe its exit.
    """

    @property
    @abstractmethod
    def pid(self) -> int:
        """OS process id"""
        pass

    @property
    @abstractmethod
    def returncode(self) -> Optional[int]:
        """
        Exit status, or None while running.

        Negative values mean the process was ended by that signal number.
        """
        pass

    @abstractmethod
    def send_signal(self, sig: int) -> None:
        """
        Deliver a signal without waiting.

        Raises:
            ProcessLookupError: If the process already exited
            ValueError: If the platform cannot deliver this signal
        """
        pass

    @abstractmethod
    def terminate(self) -> None:
        """Send SIGTERM (or the platform equivalent)"""
        pass

    @abstractmethod
    def kill(self) -> None:
        """Send SIGKILL (or the platform equivalent)"""
        pass

    @abstractmethod
    async def wait(self) -> int:
        """
        Wait for the process to exit.

        Safe to await from several tasks at once.

        Returns:
            The return code
        """
        pass

    @abstractmethod
    async def read_stderr(self) -> bytes:
        """
        Read the next chunk of diagnostic output.

        Returns:
            Bytes read, or b"" at end of stream
        """
        pass

    @property
    def is_running(self) -> bool:
        return self.returncode is None


class ProcessLauncherInterface(ABC):
    """
    Abstract base class for process launchers.

    Usage:
        launcher = AsyncioLauncher(binary_path="ffmpeg")
        if launcher.is_available():
            handle = await launcher.spawn(["-i", url, "out.mp4"])
    """

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check whether the binary can be invoked.

        Runs synchronously. Must never raise.

        Returns:
            True if the binary ran and exited with status 0
        """
        pass

    @abstractmethod
    async def spawn(self, args: list[str]) -> ProcessHandle:
        """
        Start the binary with the given arguments.

        Args:
            args: Arguments, without the binary path

        Returns:
            Handle with a valid pid

        Raises:
            SpawnFailureError: If the OS refused to start the process
        """
        pass

    @property
    @abstractmethod
    def binary_path(self) -> str:
        """Configured executable"""
        pass


class TranscodeError(Exception):
    """
    Base exception for process manager errors.

    Raised inside components and caught at the ProcessManager boundary.
    """
    pass


class InvalidCameraIdError(TranscodeError):
    """Camera id cannot be used as a directory name"""
    pass


class DirectoryUnavailableError(TranscodeError):
    """Neither the primary nor the fallback output directory is writable"""
    pass


class SpawnFailureError(TranscodeError):
    """The OS refused to start the process"""

    def __init__(self, message: str, os_errno: Optional[int] = None):
        super().__init__(message)
        self.os_errno = os_errno

    @property
    def not_found(self) -> bool:
        """True when the executable does not exist (ENOENT)"""
        return self.os_errno == errno.ENOENT
