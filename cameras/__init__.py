"""
Cameras Module

Camera definitions loaded from config/cameras.yaml.
"""

from cameras.camera_config import Camera, CameraConfig

__all__ = [
    "Camera",
    "CameraConfig",
]
