"""
Shutdown Coordinator

Stops every registered FFmpeg process when the host is asked to exit.

Without this, FFmpeg children outlive the service (or die with it
mid-write) and the next start finds half-written playlists and files
without a trailer.
"""

import asyncio
import logging
import signal
from typing import Callable, Iterable, Optional

from config.settings import STREAM_STOP_TIMEOUT
from transcoding.constants import LOG_PREFIXES
from transcoding.controllers.process_registry import ProcessRegistry, RegistryEntry
from transcoding.utils.process_utils import stop_process

# Host termination requests routed to stop_all()
SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class ShutdownCoordinator:
    """
    Stops all processes: SIGTERM, wait, SIGKILL, for every entry at once.

    The same timeout applies to every kind. At shutdown speed matters more
    than a clean MP4 trailer.

    Usage:
        coordinator = ShutdownCoordinator(registry)
        coordinator.install_signal_handlers(loop, on_signal)
        ...
        await coordinator.stop_all()
    """

    def __init__(
        self,
        registry: ProcessRegistry,
        timeout: float = STREAM_STOP_TIMEOUT,
    ):
        self.logger = logging.getLogger(__name__)
        self.registry = registry
        self.timeout = timeout

    async def stop_all(self) -> None:
        """
        Stop every registered process and clear the registry.

        Waits for in-flight starts and stops first so a process spawned
        during shutdown is not left behind. Callers must already refuse
        new starts.
        """
        await self.registry.wait_idle()

        entries = self.registry.entries()
        self.logger.info(f"[Cleanup] Stopping all FFmpeg processes ({len(entries)})...")

        await asyncio.gather(*(self._stop_entry(entry) for entry in entries))

        self.registry.clear()
        self.logger.info("[Cleanup] All processes stopped")

    async def _stop_entry(self, entry: RegistryEntry) -> None:
        info = entry.info
        label = f"{LOG_PREFIXES[info.kind]} {info.camera_id}"
        entry.stopping = True

        try:
            await stop_process(entry.handle, signal.SIGTERM, self.timeout, label)
        except (OSError, ValueError) as e:
            self.logger.error(f"[Cleanup] Could not stop {label} (PID {info.pid}): {e}")

        self.registry.remove(info.key, entry.handle)

    def install_signal_handlers(
        self,
        loop: asyncio.AbstractEventLoop,
        on_signal: Callable[[str], None],
        signals: Iterable[signal.Signals] = SHUTDOWN_SIGNALS,
    ) -> None:
        """
        Route host termination signals to on_signal(signal_name).

        on_signal runs in the event loop and should schedule stop_all().
        Falls back to signal.signal() where the loop does not support
        signal handlers (Windows).
        """
        for sig in signals:
            try:
                loop.add_signal_handler(sig, on_signal, sig.name)
            except NotImplementedError:
                signal.signal(sig, self._make_threadsafe_handler(loop, on_signal))
            self.logger.debug(f"Installed shutdown handler for {sig.name}")

    def remove_signal_handlers(
        self,
        loop: asyncio.AbstractEventLoop,
        signals: Iterable[signal.Signals] = SHUTDOWN_SIGNALS,
    ) -> None:
        for sig in signals:
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)

    @staticmethod
    def _make_threadsafe_handler(
        loop: asyncio.AbstractEventLoop,
        on_signal: Callable[[str], None],
    ) -> Callable[[int, Optional[object]], None]:
        def handler(signum: int, _frame: Optional[object]) -> None:
            loop.call_soon_threadsafe(on_signal, signal.Signals(signum).name)

        return handler
