"""
Transcoding Test Configuration and Fixtures

Shared fixtures for transcoding module tests.

Timeouts are scaled down: one "unit" is UNIT seconds, so a 5-unit stream
stop timeout runs in half a second.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from transcoding.controllers.process_manager import ProcessManager
from transcoding.controllers.process_registry import ProcessRegistry
from transcoding.controllers.recording_controller import RecordingController
from transcoding.controllers.shutdown_coordinator import ShutdownCoordinator
from transcoding.controllers.stream_controller import StreamController
from transcoding.implementations.mock_launcher import MockLauncher
from transcoding.utils.output_paths import OutputPathResolver
from transcoding.utils.recording_utils import RecordingFilenameGenerator

# Seconds per time unit
UNIT = 0.1

STREAM_TIMEOUT = 5 * UNIT
RECORDING_TIMEOUT = 10 * UNIT
SETTLE_DELAY = 0.01

FIXED_TIME = datetime(2024, 1, 15, 14, 30, 0, tzinfo=timezone.utc)

# =============================================================================
# LAUNCHER FIXTURES
# =============================================================================


@pytest.fixture
def mock_launcher():
    """
    Provide MockLauncher whose first process gets PID 4242.

    Usage:
        def test_spawn(mock_launcher):
            mock_launcher.set_behavior(MockProcessBehavior.ignores_signals())
    """
    return MockLauncher(first_pid=4242)


# =============================================================================
# OUTPUT FIXTURES
# =============================================================================


@pytest.fixture
def output_root(tmp_path) -> Path:
    """Root for all output written by a test"""
    return tmp_path / "output"


@pytest.fixture
def resolver(output_root):
    """
    Provide OutputPathResolver writing under a temporary directory.

    Fallback dirs are also kept inside the test's tmp_path.
    """
    return OutputPathResolver(
        {
            "streams": output_root / "streams",
            "recordings": output_root / "recordings",
        },
        fallback_root=output_root / "fallback",
    )


@pytest.fixture
def fixed_clock():
    """Clock frozen at 2024-01-15 14:30:00 UTC"""
    return lambda: FIXED_TIME


@pytest.fixture
def filename_generator(fixed_clock):
    return RecordingFilenameGenerator(clock=fixed_clock)


# =============================================================================
# CONTROLLER FIXTURES
# =============================================================================


@pytest_asyncio.fixture
async def registry():
    """
    Provide an empty ProcessRegistry.

    Processes still registered at the end of the test are stopped and their
    exit watchers allowed to finish.
    """
    process_registry = ProcessRegistry()
    yield process_registry
    await ShutdownCoordinator(process_registry, timeout=STREAM_TIMEOUT).stop_all()
    await asyncio.sleep(SETTLE_DELAY)


@pytest.fixture
def stream_controller(registry, mock_launcher, resolver):
    """
    Provide StreamController with mock processes and short timeouts.

    Usage:
        async def test_stream(stream_controller):
            await stream_controller.start_stream("cam1", "rtsp://cam/stream")
    """
    return StreamController(
        registry,
        mock_launcher,
        resolver,
        settle_delay=SETTLE_DELAY,
        stop_timeout=STREAM_TIMEOUT,
    )


@pytest.fixture
def recording_controller(registry, mock_launcher, resolver, filename_generator):
    """Provide RecordingController with a frozen clock and short timeouts"""
    return RecordingController(
        registry,
        mock_launcher,
        resolver,
        settle_delay=SETTLE_DELAY,
        stop_timeout=RECORDING_TIMEOUT,
        filename_generator=filename_generator,
    )


@pytest_asyncio.fixture
async def manager(mock_launcher, resolver, filename_generator):
    """
    Provide ProcessManager with mock processes.

    Every process still running at the end of the test is stopped.

    Usage:
        async def test_manager(manager):
            assert await manager.start_stream("cam1", "rtsp://cam/stream")
    """
    process_manager = ProcessManager(
        launcher=mock_launcher,
        resolver=resolver,
        settle_delay=SETTLE_DELAY,
        stream_stop_timeout=STREAM_TIMEOUT,
        recording_stop_timeout=RECORDING_TIMEOUT,
        filename_generator=filename_generator,
    )
    yield process_manager
    await process_manager.stop_all()
    await asyncio.sleep(SETTLE_DELAY)


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """
    Configure pytest with custom markers for transcoding tests.
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "unit_integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "requires_ffmpeg: Tests requiring FFmpeg")
