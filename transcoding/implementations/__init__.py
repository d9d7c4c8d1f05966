"""
Transcoding Implementations Package

Exposes concrete implementations of the launcher interface.
"""

from transcoding.implementations.asyncio_launcher import (
    AsyncioLauncher,
    AsyncioProcessHandle,
)
from transcoding.implementations.mock_launcher import (
    MockLauncher,
    MockProcess,
    MockProcessBehavior,
)

# Public API
__all__ = [
    "AsyncioLauncher",
    "AsyncioProcessHandle",
    "MockLauncher",
    "MockProcess",
    "MockProcessBehavior",
]
