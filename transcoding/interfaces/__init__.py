"""
Transcoding Interfaces Package

Exposes abstract interfaces for process launching.
"""

from transcoding.interfaces.process_launcher_interface import (
    DirectoryUnavailableError,
    InvalidCameraIdError,
    ProcessHandle,
    ProcessLauncherInterface,
    SpawnFailureError,
    TranscodeError,
)

# Public API
__all__ = [
    # Interfaces
    "ProcessHandle",
    "ProcessLauncherInterface",
    # Exceptions
    "TranscodeError",
    "DirectoryUnavailableError",
    "InvalidCameraIdError",
    "SpawnFailureError",
]
