"""
Output Path Utilities

Per-camera output directories with a temp-dir fallback.
"""

import logging
import re
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from config.settings import FALLBACK_DIR_NAME
from transcoding.interfaces.process_launcher_interface import (
    DirectoryUnavailableError,
    InvalidCameraIdError,
)

logger = logging.getLogger(__name__)

# Letters, digits, dot, dash, underscore; no leading dot
_CAMERA_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")


def validate_camera_id(camera_id: str) -> str:
    """
    Check that a camera id is usable as a single directory name.

    Args:
        camera_id: Camera identifier from the caller

    Returns:
        The camera id unchanged

    Raises:
        InvalidCameraIdError: If empty or not a safe path component

    Example:
        validate_camera_id("camera-1")  # ok
        validate_camera_id("../etc")    # raises
    """
    if not camera_id or not _CAMERA_ID_PATTERN.match(camera_id):
        raise InvalidCameraIdError(f"Invalid camera id: {camera_id!r}")
    return camera_id


class OutputPathResolver:
    """
    Resolves and creates output directories for each camera.

    Primary location: <base dir for category>/<camera_id>
    Fallback location: <system temp>/<FALLBACK_DIR_NAME>/<category>/<camera_id>

    The fallback exists for hosts where the app directory is read-only
    (containers, some hosting providers) but /tmp is writable.

    Usage:
        resolver = OutputPathResolver({"streams": Path("public/streams")})
        output_dir = resolver.resolve_output_dir("streams", "cam1")
    """

    def __init__(
        self,
        base_dirs: Mapping[str, Path],
        fallback_root: Optional[Path] = None,
    ):
        """
        Args:
            base_dirs: Category name -> base directory
            fallback_root: Root for fallback dirs (None = system temp dir)
        """
        self.base_dirs = {category: Path(path) for category, path in base_dirs.items()}
        self.fallback_root = (
            Path(fallback_root)
            if fallback_root
            else Path(tempfile.gettempdir()) / FALLBACK_DIR_NAME
        )

    def primary_dir(self, category: str, camera_id: str) -> Path:
        try:
            base = self.base_dirs[category]
        except KeyError:
            raise DirectoryUnavailableError(f"Unknown output category: {category}")
        return base / camera_id

    def fallback_dir(self, category: str, camera_id: str) -> Path:
        return self.fallback_root / category / camera_id

    def resolve_output_dir(self, category: str, camera_id: str) -> Path:
        """
        Create (if needed) and return the output directory for a camera.

        Args:
            category: Output category ("streams" or "recordings")
            camera_id: Camera identifier

        Returns:
            Existing, writable directory

        Raises:
            DirectoryUnavailableError: If primary and fallback both fail
        """
        validate_camera_id(camera_id)
        primary = self.primary_dir(category, camera_id)

        try:
            primary.mkdir(parents=True, exist_ok=True)
            return primary
        except OSError as e:
            logger.warning(
                f"Failed to create output dir at {primary}, "
                f"falling back to temp dir: {e}"
            )

        fallback = self.fallback_dir(category, camera_id)
        try:
            fallback.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryUnavailableError(
                f"Cannot create output dir {primary} or fallback {fallback}: {e}"
            ) from e

        logger.info(f"Using fallback output dir: {fallback}")
        return fallback
