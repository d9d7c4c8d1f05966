"""
Managed Process Models

Data classes describing spawned processes and operation results.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional

from transcoding.constants import ProcessKind


class ProcessKey(NamedTuple):
    """Identifies the single process slot for a camera and kind"""

    camera_id: str
    kind: ProcessKind

    def __str__(self) -> str:
        return f"{self.camera_id}-{self.kind.value}"


@dataclass(frozen=True)
class ManagedProcess:
    """
    Metadata of one spawned FFmpeg process.

    Frozen: the registry replaces entries, it never edits them, so a
    snapshot handed to a caller can't drift.
    """

    pid: int
    kind: ProcessKind
    camera_id: str
    start_time: datetime
    output_path: Path  # Playlist (.m3u8) for streaming, .mp4 for recording

    @property
    def key(self) -> ProcessKey:
        return ProcessKey(self.camera_id, self.kind)

    @property
    def filename(self) -> str:
        """Just the output filename: 2025-01-15_14-30-22.mp4"""
        return self.output_path.name

    @property
    def uptime_seconds(self) -> float:
        now = datetime.now(self.start_time.tzinfo)
        return (now - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation for status reporting"""
        return {
            "pid": self.pid,
            "kind": self.kind.value,
            "camera_id": self.camera_id,
            "start_time": self.start_time.isoformat(),
            "output_path": str(self.output_path),
            "uptime_seconds": round(self.uptime_seconds, 1),
        }


@dataclass(frozen=True)
class RecordingResult:
    """Outcome of start_recording()"""

    success: bool
    filename: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "filename": self.filename}
