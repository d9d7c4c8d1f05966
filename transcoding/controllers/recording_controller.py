"""
Recording Controller

Archival MP4 recording per camera.

FFmpeg copies the camera streams verbatim into one timestamped file.
Stopping sends SIGINT instead of SIGTERM: FFmpeg only finalizes the MP4
(trailer, +faststart relocation) on its interrupt path, so a terminated
recording can be unplayable. Finalizing takes longer than dropping a live
segment, hence the longer kill timeout.
"""

from pathlib import Path
from typing import Optional

from config.settings import RECORDING_STOP_TIMEOUT, SPAWN_SETTLE_DELAY
from transcoding.constants import ProcessKind, get_recording_command
from transcoding.controllers.base_controller import ProcessController
from transcoding.controllers.process_registry import ProcessRegistry
from transcoding.interfaces.process_launcher_interface import (
    ProcessLauncherInterface,
)
from transcoding.models.managed_process import (
    ManagedProcess,
    ProcessKey,
    RecordingResult,
)
from transcoding.utils.output_paths import OutputPathResolver
from transcoding.utils.recording_utils import RecordingFilenameGenerator


class RecordingController(ProcessController):
    """
    Starts and stops recording processes.

    Usage:
        controller = RecordingController(registry, launcher, resolver)
        result = await controller.start_recording("cam2", "rtsp://...")
        print(result.filename)  # 2025-01-15_14-30-22.mp4
        await controller.stop_recording("cam2")
    """

    kind = ProcessKind.RECORDING

    def __init__(
        self,
        registry: ProcessRegistry,
        launcher: ProcessLauncherInterface,
        resolver: OutputPathResolver,
        settle_delay: float = SPAWN_SETTLE_DELAY,
        stop_timeout: float = RECORDING_STOP_TIMEOUT,
        filename_generator: Optional[RecordingFilenameGenerator] = None,
    ):
        super().__init__(registry, launcher, resolver, settle_delay, stop_timeout)
        self.filename_generator = filename_generator or RecordingFilenameGenerator()

    def build_command(self, source_url: str, output_dir: Path) -> tuple[Path, list[str]]:
        output_path = self.filename_generator.next_path(output_dir)
        return output_path, get_recording_command(source_url, output_path)

    async def start_recording(self, camera_id: str, source_url: str) -> RecordingResult:
        """
        Start recording a camera to a new timestamped file.

        If the camera is already recording, reports the current file and
        starts nothing.

        Returns:
            RecordingResult with the output filename on success
        """
        info = await self.start(camera_id, source_url)
        if info is None:
            return RecordingResult(success=False)
        return RecordingResult(success=True, filename=info.filename)

    async def stop_recording(self, camera_id: str) -> bool:
        """Stop recording (SIGINT, SIGTERM fallback, SIGKILL after timeout)"""
        return await self.stop(camera_id)

    def is_recording(self, camera_id: str) -> bool:
        return self.registry.contains(ProcessKey(camera_id, self.kind))

    def get_recording_info(self, camera_id: str) -> Optional[ManagedProcess]:
        entry = self.registry.get(ProcessKey(camera_id, self.kind))
        return entry.info if entry else None
