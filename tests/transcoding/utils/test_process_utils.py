"""
Process Utilities Tests

Tests for exit decoding, signal delivery and the stop sequence.

To run:
    pytest tests/transcoding/utils/test_process_utils.py -v
"""

import asyncio
import signal

import pytest

from transcoding.implementations.mock_launcher import MockProcessBehavior
from transcoding.utils.process_utils import (
    check_binary_available,
    deliver_signal,
    describe_exit,
    stop_process,
    wait_for_exit,
)

UNIT = 0.1

# =============================================================================
# EXIT DESCRIPTION
# =============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    "returncode, expected",
    [
        (0, (0, None)),
        (1, (1, None)),
        (-signal.SIGTERM, (None, "SIGTERM")),
        (-signal.SIGKILL, (None, "SIGKILL")),
        (None, (None, None)),
    ],
)
def test_describe_exit(returncode, expected):
    assert describe_exit(returncode) == expected


@pytest.mark.unit
def test_check_binary_available_missing_binary():
    assert check_binary_available("/nonexistent/bin/ffmpeg-missing", timeout=1.0) is False


# =============================================================================
# SIGNAL DELIVERY
# =============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
async def test_deliver_signal_to_exited_process(mock_launcher):
    """Test signalling a process that already exited is not an error."""
    process = await mock_launcher.spawn([])
    process.simulate_exit(0)

    deliver_signal(process, signal.SIGINT)

    assert process.signals_received == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_deliver_signal_falls_back_to_terminate(mock_launcher):
    mock_launcher.set_behavior(MockProcessBehavior(undeliverable_signals={signal.SIGINT}))
    process = await mock_launcher.spawn([])

    deliver_signal(process, signal.SIGINT)

    assert process.signals_received == [signal.SIGTERM]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_deliver_undeliverable_sigterm_raises(mock_launcher):
    mock_launcher.set_behavior(MockProcessBehavior(undeliverable_signals={signal.SIGTERM}))
    process = await mock_launcher.spawn([])

    with pytest.raises(ValueError):
        deliver_signal(process, signal.SIGTERM)


# =============================================================================
# STOP SEQUENCE
# =============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
async def test_wait_for_exit_timeout(mock_launcher):
    mock_launcher.set_behavior(MockProcessBehavior.ignores_signals())
    process = await mock_launcher.spawn([])

    assert await wait_for_exit(process, timeout=UNIT) is False
    assert process.is_running is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_process_graceful(mock_launcher):
    process = await mock_launcher.spawn([])

    forced = await stop_process(process, signal.SIGTERM, 5 * UNIT, "HLS cam1")

    assert forced is False
    assert process.returncode == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_process_forced(mock_launcher, caplog):
    mock_launcher.set_behavior(MockProcessBehavior.ignores_signals())
    process = await mock_launcher.spawn([])

    forced = await stop_process(process, signal.SIGINT, 2 * UNIT, "Recording cam2")

    assert forced is True
    assert process.signals_received == [signal.SIGINT, signal.SIGKILL]
    assert "shutdown_timeout" in caplog.text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_process_undeliverable_signal_escalates(mock_launcher, caplog):
    """Test a failed graceful signal is logged and followed by SIGKILL."""
    mock_launcher.set_behavior(MockProcessBehavior(undeliverable_signals={signal.SIGTERM}))
    process = await mock_launcher.spawn([])

    forced = await stop_process(process, signal.SIGTERM, 2 * UNIT, "HLS cam1")

    assert forced is True
    assert process.signals_received == [signal.SIGKILL]
    assert process.returncode == -signal.SIGKILL
    assert "Could not signal" in caplog.text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_process_exits_during_wait(mock_launcher):
    """Test a process exiting just before the timeout is not killed."""
    mock_launcher.set_behavior(MockProcessBehavior(exit_delays={signal.SIGTERM: 3 * UNIT}))
    process = await mock_launcher.spawn([])

    forced = await stop_process(process, signal.SIGTERM, 5 * UNIT, "HLS cam1")

    assert forced is False
    assert process.was_killed is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_process_not_running(mock_launcher):
    process = await mock_launcher.spawn([])
    process.simulate_exit(1)

    assert await stop_process(process, signal.SIGTERM, UNIT, "HLS cam1") is False
    assert process.signals_received == []
    # Nothing left scheduled on the loop
    await asyncio.sleep(0)
