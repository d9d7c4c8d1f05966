"""
Stream Controller

Live HLS preview per camera.

FFmpeg transcodes the camera feed to H.264/AAC and writes a rolling
playlist (stream.m3u8) plus numbered .ts segments that the browser player
polls. Stopping uses SIGTERM: losing the segment being written is harmless.
"""

from pathlib import Path

from config.settings import (
    HLS_LIST_SIZE,
    HLS_PLAYLIST_NAME,
    HLS_SEGMENT_DURATION,
    HLS_SEGMENT_PATTERN,
    SPAWN_SETTLE_DELAY,
    STREAM_FPS,
    STREAM_STOP_TIMEOUT,
)
from transcoding.constants import ProcessKind, get_stream_command
from transcoding.controllers.base_controller import ProcessController
from transcoding.controllers.process_registry import ProcessRegistry
from transcoding.interfaces.process_launcher_interface import (
    ProcessLauncherInterface,
)
from transcoding.models.managed_process import ProcessKey
from transcoding.utils.output_paths import OutputPathResolver


class StreamController(ProcessController):
    """
    Starts and stops HLS streaming processes.

    Usage:
        controller = StreamController(registry, launcher, resolver)
        if await controller.start_stream("cam1", "rtsp://..."):
            ...
        await controller.stop_stream("cam1")
    """

    kind = ProcessKind.STREAMING

    def __init__(
        self,
        registry: ProcessRegistry,
        launcher: ProcessLauncherInterface,
        resolver: OutputPathResolver,
        settle_delay: float = SPAWN_SETTLE_DELAY,
        stop_timeout: float = STREAM_STOP_TIMEOUT,
        segment_duration: int = HLS_SEGMENT_DURATION,
        list_size: int = HLS_LIST_SIZE,
        fps: int = STREAM_FPS,
    ):
        super().__init__(registry, launcher, resolver, settle_delay, stop_timeout)
        self.segment_duration = segment_duration
        self.list_size = list_size
        self.fps = fps

    def build_command(self, source_url: str, output_dir: Path) -> tuple[Path, list[str]]:
        playlist_path = output_dir / HLS_PLAYLIST_NAME
        segment_pattern = output_dir / HLS_SEGMENT_PATTERN
        args = get_stream_command(
            source_url,
            playlist_path,
            segment_pattern,
            segment_duration=self.segment_duration,
            list_size=self.list_size,
            fps=self.fps,
        )
        return playlist_path, args

    async def start_stream(self, camera_id: str, source_url: str) -> bool:
        """
        Start HLS streaming for a camera.

        Idempotent: if the camera is already streaming, returns True
        without spawning a second process.

        Returns:
            True if a streaming process is running (or was started)
        """
        return await self.start(camera_id, source_url) is not None

    async def stop_stream(self, camera_id: str) -> bool:
        """Stop HLS streaming for a camera (SIGTERM, SIGKILL after timeout)"""
        return await self.stop(camera_id)

    def is_streaming(self, camera_id: str) -> bool:
        return self.registry.contains(ProcessKey(camera_id, self.kind))
