"""
Process Controller Base

Shared start/stop lifecycle for one kind of FFmpeg pipeline.

Start: validate -> probe -> (lock) idempotency check -> resolve output dir
       -> spawn -> register -> watch -> settle
Stop:  (lock) lookup -> graceful signal -> wait or kill -> unregister

Subclasses decide the output file and the FFmpeg arguments.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Deque, Optional, Set

from config.settings import STDERR_TAIL_LINES
from transcoding.constants import (
    GRACEFUL_SIGNALS,
    LOG_PREFIXES,
    STDERR_KEYWORDS,
    ProcessFailure,
    ProcessKind,
)
from transcoding.controllers.process_registry import ProcessRegistry, RegistryEntry
from transcoding.interfaces.process_launcher_interface import (
    DirectoryUnavailableError,
    InvalidCameraIdError,
    ProcessHandle,
    ProcessLauncherInterface,
    SpawnFailureError,
)
from transcoding.models.managed_process import ManagedProcess, ProcessKey
from transcoding.utils.output_paths import OutputPathResolver, validate_camera_id
from transcoding.utils.process_utils import describe_exit, stop_process

_LINE_SPLIT = re.compile(r"[\r\n]")


class ProcessController(ABC):
    """
    Starts and stops one kind of process per camera.

    All state lives in the shared ProcessRegistry; the controller itself
    only keeps references to its running watcher tasks.
    """

    kind: ProcessKind

    def __init__(
        self,
        registry: ProcessRegistry,
        launcher: ProcessLauncherInterface,
        resolver: OutputPathResolver,
        settle_delay: float,
        stop_timeout: float,
    ):
        self.logger = logging.getLogger(self.__class__.__module__)
        self.registry = registry
        self.launcher = launcher
        self.resolver = resolver
        self.settle_delay = settle_delay
        self.stop_timeout = stop_timeout

        # Cleared by the shutdown coordinator; new starts are refused
        self.accepting = True

        self._watchers: Set["asyncio.Task[None]"] = set()

    @property
    def prefix(self) -> str:
        return LOG_PREFIXES[self.kind]

    @abstractmethod
    def build_command(self, source_url: str, output_dir: Path) -> tuple[Path, list[str]]:
        """
        Choose the output file and FFmpeg arguments.

        Returns:
            (output_path, args) - output_path is what ManagedProcess reports
        """
        pass

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self, camera_id: str, source_url: str) -> Optional[ManagedProcess]:
        """
        Start the pipeline for a camera, or return the one already running.

        Returns:
            Metadata of the running process, or None if it could not start
        """
        if not source_url:
            self.logger.warning(
                f"[{self.prefix}] [{ProcessFailure.INVALID_SOURCE.value}] "
                f"Missing source URL for {camera_id}"
            )
            return None

        try:
            validate_camera_id(camera_id)
        except InvalidCameraIdError as e:
            self.logger.warning(
                f"[{self.prefix}] [{ProcessFailure.INVALID_SOURCE.value}] {e}"
            )
            return None

        if not self.accepting:
            self.logger.warning(
                f"[{self.prefix}] Shutting down, refusing to start {camera_id}"
            )
            return None

        if not self.launcher.is_available():
            self.logger.error(
                f"[{self.prefix}] [{ProcessFailure.BINARY_UNAVAILABLE.value}] "
                f"FFmpeg not available at '{self.launcher.binary_path}'. "
                f"Set FFMPEG_PATH to a valid executable path."
            )
            return None

        key = ProcessKey(camera_id, self.kind)
        async with self.registry.locked(key):
            existing = self.registry.get(key)
            if existing is not None:
                self.logger.info(
                    f"[{self.prefix}] Already active for {camera_id} "
                    f"(PID: {existing.info.pid})"
                )
                return existing.info

            try:
                output_dir = self.resolver.resolve_output_dir(
                    self.kind.output_category, camera_id
                )
                output_path, args = self.build_command(source_url, output_dir)

                self.logger.info(f"[{self.prefix}] Starting for {camera_id}")
                self.logger.info(f"[{self.prefix}] Output: {output_path}")
                # Debug only: the source URL usually carries credentials
                self.logger.debug(
                    f"[{self.prefix}] Command: {self.launcher.binary_path} "
                    f"{' '.join(args)}"
                )

                handle = await self.launcher.spawn(args)

            except DirectoryUnavailableError as e:
                self.logger.error(
                    f"[{self.prefix}] [{ProcessFailure.DIRECTORY_UNAVAILABLE.value}] {e}"
                )
                return None
            except SpawnFailureError as e:
                self.logger.error(
                    f"[{self.prefix} {camera_id}] "
                    f"[{ProcessFailure.SPAWN_FAILURE.value}] {e}"
                )
                if e.not_found:
                    self.logger.error(
                        f"[{self.prefix} {camera_id}] FFmpeg executable not found "
                        f"at '{self.launcher.binary_path}'. Update FFMPEG_PATH to "
                        f"the full path to ffmpeg."
                    )
                return None

            info = ManagedProcess(
                pid=handle.pid,
                kind=self.kind,
                camera_id=camera_id,
                start_time=datetime.now(timezone.utc),
                output_path=output_path,
            )
            entry = self.registry.add(handle, info)
            entry.watcher = self._spawn_watcher(entry)

            # Let an immediate crash reach the watcher before callers look
            await asyncio.sleep(self.settle_delay)

            if not handle.is_running:
                self.logger.warning(
                    f"[{self.prefix} {camera_id}] PID {info.pid} exited during startup"
                )

        return info

    async def stop(self, camera_id: str) -> bool:
        """
        Stop the pipeline for a camera.

        Not running is not an error.

        Returns:
            True once no process remains for the camera, False if the
            process could not even be force killed
        """
        key = ProcessKey(camera_id, self.kind)
        async with self.registry.locked(key):
            entry = self.registry.get(key)
            if entry is None:
                self.logger.info(f"[{self.prefix}] Not active for {camera_id}")
                return True

            label = f"{self.prefix} {camera_id}"
            self.logger.info(f"[{self.prefix}] Stopping for {camera_id}")
            entry.stopping = True

            try:
                forced = await stop_process(
                    entry.handle,
                    GRACEFUL_SIGNALS[self.kind],
                    self.stop_timeout,
                    label,
                )
            except (OSError, ValueError) as e:
                entry.stopping = False
                self.logger.error(f"[{label}] Could not kill PID {entry.info.pid}: {e}")
                return False

            self.registry.remove(key, entry.handle)

        if forced:
            self.logger.info(f"[{self.prefix}] Force killed for {camera_id}")
        else:
            self.logger.info(f"[{self.prefix}] Stopped for {camera_id}")
        return True

    # =========================================================================
    # EXIT WATCHER
    # =========================================================================

    def _spawn_watcher(self, entry: RegistryEntry) -> "asyncio.Task[None]":
        task = asyncio.create_task(
            self._watch(entry),
            name=f"watch-{entry.info.key}",
        )
        self._watchers.add(task)
        task.add_done_callback(self._watchers.discard)
        return task

    async def _watch(self, entry: RegistryEntry) -> None:
        """
        Drain stderr until the process exits, then unregister it.

        If nobody asked the process to stop, the exit is unexpected and the
        last stderr lines are logged to explain it.
        """
        handle = entry.handle
        info = entry.info
        label = f"{self.prefix} {info.camera_id}"
        tail: Deque[str] = deque(maxlen=STDERR_TAIL_LINES)

        try:
            await self._drain_stderr(handle, label, tail)
        except Exception as e:
            self.logger.warning(f"[{label}] stderr reader failed: {e}")

        returncode = await handle.wait()
        code, sig = describe_exit(returncode)
        self.logger.info(f"[{label}] Process exited with code {code}, signal {sig}")

        removed = self.registry.remove(info.key, handle)
        if removed is not None and not removed.stopping:
            self.logger.warning(
                f"[{label}] [{ProcessFailure.UNEXPECTED_EXIT.value}] "
                f"PID {info.pid} exited on its own"
            )
            if tail:
                self.logger.warning(f"[{label}] Last output:\n" + "\n".join(tail))

    async def _drain_stderr(
        self,
        handle: ProcessHandle,
        label: str,
        tail: Deque[str],
    ) -> None:
        keywords = STDERR_KEYWORDS[self.kind]
        pending = ""

        while True:
            chunk = await handle.read_stderr()
            if not chunk:
                break
            pending += chunk.decode("utf-8", errors="replace")
            *lines, pending = _LINE_SPLIT.split(pending)
            for line in lines:
                self._log_stderr_line(line, label, keywords, tail)

        self._log_stderr_line(pending, label, keywords, tail)

    def _log_stderr_line(
        self,
        line: str,
        label: str,
        keywords: tuple[str, ...],
        tail: Deque[str],
    ) -> None:
        line = line.strip()
        if not line:
            return
        tail.append(line)
        # Only log important messages (not every frame)
        if any(word in line for word in keywords):
            self.logger.info(f"[{label}] {line}")
        else:
            self.logger.debug(f"[{label}] {line}")

    @property
    def active_watchers(self) -> int:
        return len(self._watchers)
