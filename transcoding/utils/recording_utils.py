"""
Recording Utilities

Timestamped filename generation for archival recordings.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Optional

from config.settings import (
    RECORDING_EXTENSION,
    RECORDING_FILENAME_FORMAT,
    RECORDING_FILENAME_UTC,
)


def _default_clock() -> datetime:
    if RECORDING_FILENAME_UTC:
        return datetime.now(timezone.utc)
    return datetime.now()


class RecordingFilenameGenerator:
    """
    Generates unique, strictly increasing recording filenames.

    Format: YYYY-MM-DD_HH-mm-ss.mp4 (second resolution). If a second
    recording starts within the same second as the previous one, or a file
    with that name already exists, the timestamp is bumped one second
    forward so a finished recording is never overwritten. Directories are
    tracked separately, so cameras starting together share a timestamp.

    Usage:
        generator = RecordingFilenameGenerator()
        path = generator.next_path(Path("recordings/cam1"))
        # recordings/cam1/2025-01-15_14-30-22.mp4
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        format_string: str = RECORDING_FILENAME_FORMAT,
        extension: str = RECORDING_EXTENSION,
    ):
        """
        Args:
            clock: Returns the current time (injectable for tests)
            format_string: strftime format for the stem
            extension: File extension without the dot
        """
        self.clock = clock or _default_clock
        self.format_string = format_string
        self.extension = extension
        # Last timestamp handed out, per output directory
        self._last: Dict[Path, datetime] = {}

    def format(self, timestamp: datetime) -> str:
        return f"{timestamp.strftime(self.format_string)}.{self.extension}"

    def next_path(self, directory: Path) -> Path:
        """
        Generate the next recording path inside directory.

        Returns:
            Path that does not exist yet
        """
        timestamp = self.clock().replace(microsecond=0)
        last = self._last.get(directory)
        if last is not None and timestamp <= last:
            timestamp = last + timedelta(seconds=1)

        path = directory / self.format(timestamp)
        while path.exists():
            timestamp += timedelta(seconds=1)
            path = directory / self.format(timestamp)

        self._last[directory] = timestamp
        return path
