"""
Transcoding Controllers Package

Controllers that own the process registry and drive FFmpeg lifecycles.
"""

from transcoding.controllers.process_manager import ProcessManager
from transcoding.controllers.process_registry import ProcessRegistry
from transcoding.controllers.recording_controller import RecordingController
from transcoding.controllers.shutdown_coordinator import ShutdownCoordinator
from transcoding.controllers.stream_controller import StreamController

# Public API
__all__ = [
    "ProcessManager",
    "ProcessRegistry",
    "RecordingController",
    "ShutdownCoordinator",
    "StreamController",
]
