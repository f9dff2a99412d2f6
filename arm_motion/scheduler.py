"""
Frame schedulers.

A FrameScheduler is the display-refresh tick source the capture and
playback loops run on: `request_frame()` schedules one callback for the next
frame and `cancel_frame()` withdraws it. A cancelled callback never runs.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from . import constants as const
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]


class FrameScheduler(ABC):
    """Abstract per-frame callback scheduler."""

    @abstractmethod
    def request_frame(self, callback: FrameCallback):
        """
        Schedules `callback` to run once on the next frame.

        The callback receives the frame time in milliseconds.

        Returns:
            An opaque handle accepted by `cancel_frame()`.
        """

    @abstractmethod
    def cancel_frame(self, handle) -> None:
        """Cancels a pending callback. Unknown or already-run handles are ignored."""


class AsyncioFrameScheduler(FrameScheduler):
    """
    Runs frame callbacks on an asyncio event loop at a fixed frame rate.
    """

    def __init__(
        self,
        frame_rate: float = const.FRAME_RATE_HZ,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Args:
            frame_rate: Frames per second. Must be positive.
            loop: Event loop to schedule on. If None, the running loop at the
                  time of the first request is used.

        Raises:
            ConfigurationError: If frame_rate is not positive.
        """
        if frame_rate <= 0:
            raise ConfigurationError("frame_rate must be positive.")
        self.frame_rate = frame_rate
        self.interval = 1.0 / frame_rate
        self._loop = loop
        logger.debug(f"AsyncioFrameScheduler running at {frame_rate} Hz")

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def request_frame(self, callback: FrameCallback) -> asyncio.TimerHandle:
        loop = self._get_loop()
        return loop.call_later(self.interval, self._run, loop, callback)

    @staticmethod
    def _run(loop: asyncio.AbstractEventLoop, callback: FrameCallback) -> None:
        callback(loop.time() * 1000.0)

    def cancel_frame(self, handle) -> None:
        if handle is not None:
            handle.cancel()
