"""
Transcoding Models Package
"""

from transcoding.models.managed_process import (
    ManagedProcess,
    ProcessKey,
    RecordingResult,
)

__all__ = [
    "ManagedProcess",
    "ProcessKey",
    "RecordingResult",
]
