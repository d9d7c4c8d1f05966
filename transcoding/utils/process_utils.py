"""
Process Utilities

Availability probe and the graceful-signal -> timeout -> kill sequence
shared by the controllers and the shutdown coordinator.
"""

import asyncio
import logging
import signal
import subprocess
from typing import Optional

from config.settings import PROBE_TIMEOUT
from transcoding.constants import ProcessFailure
from transcoding.interfaces.process_launcher_interface import ProcessHandle

logger = logging.getLogger(__name__)


def check_binary_available(binary_path: str, timeout: float = PROBE_TIMEOUT) -> bool:
    """
    Check that a binary runs, using "<binary> -version".

    Blocks for the duration of one short-lived subprocess, at most timeout
    seconds. Called from a coroutine this stalls the event loop. Never raises.

    Args:
        binary_path: Executable name or full path
        timeout: Seconds before the probe is considered failed

    Returns:
        True if the binary exited with status 0

    Example:
        if not check_binary_available("ffmpeg"):
            print("Install with: sudo apt-get install ffmpeg")
    """
    try:
        result = subprocess.run(
            [binary_path, "-version"],
            check=False,
            capture_output=True,
            timeout=timeout,
        )
        return result.returncode == 0
    except (OSError, subprocess.SubprocessError) as e:
        # Not installed, not executable, or hung
        logger.debug(f"Probe of {binary_path} failed: {e}")
        return False


def describe_exit(returncode: Optional[int]) -> tuple[Optional[int], Optional[str]]:
    """
    Split a return code into (exit code, signal name).

    asyncio reports death-by-signal as a negative return code.

    Example:
        describe_exit(-15) -> (None, "SIGTERM")
        describe_exit(1) -> (1, None)
    """
    if returncode is None or returncode >= 0:
        return returncode, None
    try:
        return None, signal.Signals(-returncode).name
    except ValueError:
        return None, f"signal {-returncode}"


async def wait_for_exit(handle: ProcessHandle, timeout: float) -> bool:
    """
    Wait for a process to exit, up to timeout seconds.

    The timer is cancelled as soon as the exit is observed.

    Returns:
        True if the process exited in time, False on timeout
    """
    try:
        await asyncio.wait_for(handle.wait(), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        return False


def deliver_signal(handle: ProcessHandle, sig: int) -> None:
    """
    Send a signal, falling back to SIGTERM if it cannot be delivered.

    Windows cannot deliver SIGINT to a child process; terminate() is the
    closest thing. A process that already exited is not an error.
    """
    try:
        handle.send_signal(sig)
        return
    except ProcessLookupError:
        return
    except (ValueError, OSError) as e:
        if sig == signal.SIGTERM:
            raise
        logger.warning(
            f"Could not deliver {signal.Signals(sig).name} to PID {handle.pid} "
            f"({e}), falling back to SIGTERM"
        )

    try:
        handle.terminate()
    except ProcessLookupError:
        pass


async def stop_process(
    handle: ProcessHandle,
    graceful_signal: int,
    timeout: float,
    label: str,
) -> bool:
    """
    Stop a process: graceful signal, wait, then SIGKILL if it is stuck.

    Args:
        handle: Process to stop
        graceful_signal: SIGTERM or SIGINT
        timeout: Seconds to wait before force killing
        label: Log prefix (e.g., "HLS cam1")

    A graceful signal that cannot be delivered is logged and the process
    is force killed at the timeout.

    Returns:
        True if the process had to be force killed

    Raises:
        OSError, ValueError: If SIGKILL itself cannot be delivered

    Example:
        forced = await stop_process(handle, signal.SIGINT, 10.0, "Recording cam2")
    """
    if not handle.is_running:
        return False

    logger.info(
        f"[{label}] Sending {signal.Signals(graceful_signal).name} to PID {handle.pid}"
    )
    try:
        deliver_signal(handle, graceful_signal)
    except (OSError, ValueError) as e:
        # Still escalate: the wait below ends in SIGKILL
        logger.error(
            f"[{label}] Could not signal PID {handle.pid}: {e}, "
            f"will force kill after {timeout:.1f}s"
        )

    if await wait_for_exit(handle, timeout):
        return False

    # Escalation is expected for a hung FFmpeg, not an error
    logger.warning(
        f"[{label}] [{ProcessFailure.SHUTDOWN_TIMEOUT.value}] PID {handle.pid} "
        f"did not exit within {timeout:.1f}s, force killing"
    )
    try:
        handle.kill()
    except ProcessLookupError:
        pass
    await handle.wait()
    return True
