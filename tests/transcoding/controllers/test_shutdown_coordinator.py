"""
Shutdown Coordinator Tests

Tests for ShutdownCoordinator showing:
- stop_all resolves only after every entry is gone
- Host signal routing

To run:
    pytest tests/transcoding/controllers/test_shutdown_coordinator.py -v
"""

import asyncio
import os
import signal
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

from transcoding.constants import ProcessKind
from transcoding.controllers.shutdown_coordinator import ShutdownCoordinator
from transcoding.implementations.mock_launcher import MockProcessBehavior
from transcoding.models.managed_process import ManagedProcess

UNIT = 0.1  # seconds per time unit (matches conftest)


async def register(registry, launcher, camera_id, kind=ProcessKind.STREAMING):
    """Spawn a mock process and register it directly"""
    handle = await launcher.spawn(["-i", "rtsp://cam/stream", "out"])
    info = ManagedProcess(
        pid=handle.pid,
        kind=kind,
        camera_id=camera_id,
        start_time=datetime.now(timezone.utc),
        output_path=Path("out"),
    )
    registry.add(handle, info)
    return handle


# =============================================================================
# STOP ALL TESTS
# =============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_all_empty_registry(registry):
    """Test stop_all with nothing running returns right away."""
    coordinator = ShutdownCoordinator(registry, timeout=5 * UNIT)

    await coordinator.stop_all()

    assert len(registry) == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_all_stops_every_entry(registry, mock_launcher):
    """Test every registered process receives SIGTERM and is removed."""
    handles = [
        await register(registry, mock_launcher, "cam1"),
        await register(registry, mock_launcher, "cam2"),
        await register(registry, mock_launcher, "cam1", ProcessKind.RECORDING),
    ]
    coordinator = ShutdownCoordinator(registry, timeout=5 * UNIT)

    await coordinator.stop_all()

    assert len(registry) == 0
    for handle in handles:
        assert handle.is_running is False
        assert handle.signals_received == [signal.SIGTERM]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_all_runs_in_parallel(registry, mock_launcher):
    """Test slow processes are stopped together, not one after another."""
    mock_launcher.set_behavior(MockProcessBehavior(exit_delays={signal.SIGTERM: 2 * UNIT}))
    for camera_id in ("cam1", "cam2", "cam3"):
        await register(registry, mock_launcher, camera_id)
    coordinator = ShutdownCoordinator(registry, timeout=5 * UNIT)

    loop = asyncio.get_running_loop()
    started_at = loop.time()
    await coordinator.stop_all()
    elapsed = loop.time() - started_at

    assert len(registry) == 0
    assert elapsed < 5 * UNIT


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_all_skips_exited_processes(registry, mock_launcher):
    """Test a process that already exited is not signalled."""
    handle = await register(registry, mock_launcher, "cam1")
    handle.simulate_exit(0)
    coordinator = ShutdownCoordinator(registry, timeout=5 * UNIT)

    await coordinator.stop_all()

    assert handle.signals_received == []
    assert len(registry) == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_all_kills_process_that_cannot_be_signalled(registry, mock_launcher):
    """Test an undeliverable SIGTERM still ends in SIGKILL, not an orphan."""
    mock_launcher.set_behavior(
        MockProcessBehavior(undeliverable_signals={signal.SIGTERM})
    )
    handle = await register(registry, mock_launcher, "cam1")
    coordinator = ShutdownCoordinator(registry, timeout=2 * UNIT)

    await coordinator.stop_all()

    assert handle.signals_received == [signal.SIGKILL]
    assert handle.is_running is False
    assert len(registry) == 0


# =============================================================================
# SIGNAL HANDLER TESTS
# =============================================================================


@pytest.mark.unit
@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
@pytest.mark.asyncio
async def test_signal_routed_to_callback(registry):
    """Test SIGTERM to the host process reaches the shutdown callback."""
    coordinator = ShutdownCoordinator(registry)
    loop = asyncio.get_running_loop()
    received = asyncio.Event()
    names = []

    def on_signal(name):
        names.append(name)
        received.set()

    coordinator.install_signal_handlers(loop, on_signal, signals=(signal.SIGTERM,))
    try:
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.wait_for(received.wait(), timeout=10 * UNIT)
    finally:
        coordinator.remove_signal_handlers(loop, signals=(signal.SIGTERM,))

    assert names == ["SIGTERM"]
