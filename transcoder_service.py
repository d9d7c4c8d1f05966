"""
Transcoder Service

Host process for the FFmpeg process manager.

Owns the ProcessManager for the lifetime of the process, starts the
configured camera previews, publishes a status snapshot for monitoring,
and stops every FFmpeg child before exiting.

Lifecycle:
    STARTING -> RUNNING -> (SIGTERM / SIGINT) -> STOPPING -> exit(0)

Status file:
- JSON snapshot of every active process (pid, kind, camera, start time,
  output path), rewritten every STATUS_INTERVAL seconds
- Atomic write (temp file + rename), safe to poll from other processes
"""

import asyncio
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from cameras import CameraConfig
from config.settings import LOG_DIR, LOG_SERVICE_FILE, STATUS_FILE, STATUS_INTERVAL
from transcoding import ProcessManager


class ServiceState(Enum):
    """Lifecycle of the host process"""

    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class TranscoderService:
    """
    Runs the process manager until a termination signal arrives.

    Usage:
        service = TranscoderService()
        asyncio.run(service.run())  # Returns after graceful shutdown
    """

    def __init__(
        self,
        manager: Optional[ProcessManager] = None,
        cameras: Optional[CameraConfig] = None,
        status_file: Optional[Path] = None,
        status_interval: float = STATUS_INTERVAL,
    ):
        """
        Args:
            manager: Process manager, or None to build from settings
            cameras: Camera list, or None to load config/cameras.yaml
            status_file: Where to write the status snapshot
            status_interval: Seconds between status writes
        """
        self.logger = logging.getLogger(__name__)
        self.logger.info("Initializing Transcoder Service...")

        self.state = ServiceState.STARTING
        self.start_time = datetime.now()

        self.manager = manager if manager is not None else ProcessManager()
        # CameraConfig defines __len__, so an empty one is falsy
        self.cameras = cameras if cameras is not None else CameraConfig()

        self.status_file = Path(status_file or STATUS_FILE)
        self.status_interval = status_interval

        self._stop_requested: Optional[asyncio.Event] = None

        self.logger.info("Transcoder Service initialized successfully")

    async def run(self) -> None:
        """
        Main service loop.

        Runs until request_shutdown() is called (normally by a signal).
        """
        loop = asyncio.get_running_loop()
        self._stop_requested = asyncio.Event()

        self.manager.shutdown.install_signal_handlers(loop, self.request_shutdown)

        try:
            await self._autostart_streams()

            self.state = ServiceState.RUNNING
            self.logger.info("Transcoder Service running")

            while not self._stop_requested.is_set():
                self._write_status()
                try:
                    await asyncio.wait_for(
                        self._stop_requested.wait(),
                        timeout=self.status_interval,
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            await self._shutdown()
            self.manager.shutdown.remove_signal_handlers(loop)

    def request_shutdown(self, reason: str = "request") -> None:
        """
        Ask the service to stop. Safe to call more than once.

        Args:
            reason: Signal name or caller description, for the log
        """
        if self._stop_requested is None or self._stop_requested.is_set():
            return
        self.logger.info(f"Received {reason}, shutting down...")
        self._stop_requested.set()

    async def _autostart_streams(self) -> None:
        """Start previews for enabled cameras flagged autostart_stream"""
        cameras = [c for c in self.cameras.enabled_cameras() if c.autostart_stream]
        if not cameras:
            return

        self.logger.info(f"Auto-starting {len(cameras)} stream(s)...")
        results = await asyncio.gather(
            *(self.manager.start_stream(c.id, c.rtsp_url) for c in cameras)
        )
        for camera, started in zip(cameras, results):
            if not started:
                self.logger.warning(f"Could not auto-start stream for {camera.name}")

    async def _shutdown(self) -> None:
        """Stop every FFmpeg process, then write a final status"""
        if self.state in (ServiceState.STOPPING, ServiceState.STOPPED):
            return
        self.state = ServiceState.STOPPING
        self.logger.info("Shutting down Transcoder Service...")

        await self.manager.stop_all()

        self.state = ServiceState.STOPPED
        self._write_status()
        self.logger.info("Transcoder Service shutdown complete")

    def _write_status(self) -> None:
        """
        Write the status snapshot.

        Never raises: monitoring must not take the service down.
        """
        try:
            status = {
                "timestamp": datetime.now().isoformat(),
                "uptime_seconds": (datetime.now() - self.start_time).total_seconds(),
                "state": self.state.value,
                "pid": os.getpid(),
                **self.manager.get_status(),
            }

            # Atomic write (write to temp file, then rename)
            tmp_file = self.status_file.with_suffix(".tmp")
            tmp_file.write_text(json.dumps(status, indent=2))
            tmp_file.replace(self.status_file)

        except OSError as e:
            self.logger.warning(f"Failed to write status: {e}")


def setup_logging(log_dir: str = LOG_DIR) -> None:
    """
    Setup logging with rotation.

    Logs to both console and file with rotation:
    - Daily rotation
    - Keep 7 days of logs
    """
    logger = logging.getLogger()
    logger.setLevel(logging.INFO)

    # Console handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(message)s | %(name)s"))
    logger.addHandler(console_handler)

    file_format = logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s | %(name)s",
    )

    log_file = Path(log_dir) / LOG_SERVICE_FILE
    try:
        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(log_file),
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )
    except OSError:
        # Fallback to local logs directory if the log dir is not writable
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        fallback_log = logs_dir / "transcoder-service.log"
        logger.warning(f"Cannot write to {log_file}, using fallback: {fallback_log}")
        logger.info(
            f"To fix: sudo mkdir -p {log_dir} && sudo chown $(whoami) {log_dir}"
        )

        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(fallback_log),
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )

    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(file_format)
    logger.addHandler(file_handler)


def main() -> None:
    """
    Main entry point for the service.

    Sets up logging and runs the service until SIGTERM/SIGINT.
    """
    setup_logging()

    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info("Camera Transcoder Service Starting")
    logger.info("=" * 60)

    try:
        service = TranscoderService()
        asyncio.run(service.run())
    except Exception as e:
        logger.critical(f"Fatal error in main: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
