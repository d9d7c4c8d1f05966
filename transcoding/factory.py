"""
Launcher Factory

Factory pattern for creating process launcher implementations.
Single place to decide between real FFmpeg processes and simulated ones.
"""

import logging
from typing import Literal

from config.settings import FFMPEG_PATH, LAUNCHER_MODE
from transcoding.implementations.asyncio_launcher import AsyncioLauncher
from transcoding.implementations.mock_launcher import MockLauncher
from transcoding.interfaces.process_launcher_interface import (
    ProcessLauncherInterface,
)

# Type alias for better type hints
LauncherMode = Literal["real", "mock"]


class LauncherFactory:
    """
    Factory for creating process launchers.

    Unlike capture hardware there is no silent fallback to mock: a missing
    FFmpeg is reported by the availability probe on every start request,
    it must not turn into fake streams.

    Usage:
        # Real FFmpeg (default)
        launcher = LauncherFactory.create_launcher()

        # Simulated processes (dry runs, tests)
        launcher = LauncherFactory.create_launcher(mode="mock")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_launcher(
        cls,
        mode: LauncherMode = "real",
        binary_path: str = FFMPEG_PATH,
    ) -> ProcessLauncherInterface:
        """
        Create a process launcher.

        Args:
            mode: "real" (spawn FFmpeg) or "mock" (simulate)
            binary_path: FFmpeg executable

        Returns:
            ProcessLauncherInterface implementation

        Raises:
            ValueError: If mode is unknown
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Launcher")
            return MockLauncher(binary_path=binary_path)

        if mode == "real":
            cls._logger.info(f"Creating Asyncio Launcher (binary: {binary_path})")
            return AsyncioLauncher(binary_path=binary_path)

        raise ValueError(f"Unknown launcher mode: {mode!r}")


def create_launcher(force_mock: bool = False) -> ProcessLauncherInterface:
    """
    Quick launcher creation using LAUNCHER_MODE from settings.

    Args:
        force_mock: If True, always use mock

    Example:
        launcher = create_launcher()
    """
    mode = "mock" if force_mock else LAUNCHER_MODE
    return LauncherFactory.create_launcher(mode=mode)
