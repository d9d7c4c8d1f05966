"""
Central Configuration File

ALL configuration values live here. This is the single source of truth.

Guidelines:
- Machine-specific paths and overrides go in .env, NOT here
- Import these settings in modules: from config.settings import FFMPEG_PATH
- FFmpeg argument choices live in transcoding/constants.py
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# FFMPEG CONFIGURATION
# =============================================================================

# Use "ffmpeg" if it is on PATH, or a full path like "/usr/local/bin/ffmpeg"
FFMPEG_PATH = os.getenv("FFMPEG_PATH", "ffmpeg")

# Timeout for the "ffmpeg -version" availability probe (seconds)
# The probe blocks the event loop, so keep this short
PROBE_TIMEOUT = float(os.getenv("PROBE_TIMEOUT", "2.0"))

# "real" spawns FFmpeg, "mock" simulates processes (dry runs, tests)
LAUNCHER_MODE = os.getenv("LAUNCHER_MODE", "real")

# =============================================================================
# OUTPUT CONFIGURATION
# =============================================================================

# Base directories (one subdirectory per camera is created under each)
HLS_OUTPUT_DIR = Path(os.getenv("HLS_OUTPUT_DIR", "./public/streams"))
RECORDINGS_OUTPUT_DIR = Path(os.getenv("RECORDINGS_OUTPUT_DIR", "./recordings"))

# Directory name under the system temp dir used when a base dir is not writable
FALLBACK_DIR_NAME = "camera-transcoder"

# =============================================================================
# STREAMING CONFIGURATION
# =============================================================================

HLS_SEGMENT_DURATION = 2  # seconds per .ts segment
HLS_LIST_SIZE = 5  # segments kept in the playlist
HLS_PLAYLIST_NAME = "stream.m3u8"
HLS_SEGMENT_PATTERN = "segment%03d.ts"

# Keyframe interval is one second worth of frames at this rate
STREAM_FPS = 30

AUDIO_SAMPLE_RATE = 44100  # Hz
AUDIO_BITRATE = "128k"

# =============================================================================
# RECORDING CONFIGURATION
# =============================================================================

RECORDING_EXTENSION = "mp4"
RECORDING_FILENAME_FORMAT = "%Y-%m-%d_%H-%M-%S"
RECORDING_FILENAME_UTC = os.getenv("RECORDING_FILENAME_UTC", "true").lower() == "true"

# =============================================================================
# PROCESS LIFECYCLE CONFIGURATION
# =============================================================================

# Wait after spawning so an immediate failure can clean up before we return
SPAWN_SETTLE_DELAY = float(os.getenv("SPAWN_SETTLE_DELAY", "1.0"))

# Graceful signal -> wait -> SIGKILL budgets (seconds)
STREAM_STOP_TIMEOUT = float(os.getenv("STREAM_STOP_TIMEOUT", "5.0"))
RECORDING_STOP_TIMEOUT = float(os.getenv("RECORDING_STOP_TIMEOUT", "10.0"))

# stderr lines kept per process for exit diagnostics
STDERR_TAIL_LINES = 20

# =============================================================================
# SERVICE CONFIGURATION
# =============================================================================

CAMERA_CONFIG_PATH = Path(os.getenv("CAMERA_CONFIG_PATH", "config/cameras.yaml"))

# Snapshot of active processes for external monitoring
# /tmp is intentional - standard location for watchdog monitoring
STATUS_FILE = os.getenv(
    "STATUS_FILE",
    "/tmp/transcoder_status.json",  # noqa: S108
)
STATUS_INTERVAL = float(os.getenv("STATUS_INTERVAL", "5.0"))  # seconds

# Logging Configuration
LOG_DIR = os.getenv("LOG_DIR", "/var/log/transcoder")
LOG_SERVICE_FILE = "service.log"
