"""
Transcoding Utilities Package

Exposes shared utility functions for process management.
"""

from transcoding.utils.output_paths import OutputPathResolver, validate_camera_id
from transcoding.utils.process_utils import (
    check_binary_available,
    deliver_signal,
    describe_exit,
    stop_process,
    wait_for_exit,
)
from transcoding.utils.recording_utils import RecordingFilenameGenerator

# Public API
__all__ = [
    "OutputPathResolver",
    "RecordingFilenameGenerator",
    "check_binary_available",
    "deliver_signal",
    "describe_exit",
    "stop_process",
    "validate_camera_id",
    "wait_for_exit",
]
