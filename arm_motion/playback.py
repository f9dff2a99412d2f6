"""
Real-time playback of recorded arm motions.

Playback is synchronized to wall-clock time rather than to a frame count:
each tick computes the elapsed time since playback started (offset by the
timestamp of the starting frame) and looks up the frame that was current at
that moment, so recordings play back at their original speed regardless of
how densely they were sampled.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .data_structures import MotionFrame, MotionTrajectory
from .recording import Clock, monotonic_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaybackUpdate:
    """Published whenever playback moves to a different frame"""
    frame_index: int
    shoulder_angle: float
    elbow_angle: float
    done: bool = False


def find_frame_index(frames: Sequence[MotionFrame], elapsed_ms: float) -> int:
    """
    Binary search for the frame shown at `elapsed_ms`.

    Returns the greatest index i with frames[i].timestamp <= elapsed_ms, or 0
    when `elapsed_ms` precedes the first frame. `frames` must be
    timestamp-sorted and non-empty.
    """
    left = 0
    right = len(frames) - 1
    frame_index = 0
    while left <= right:
        mid = (left + right) // 2
        if frames[mid].timestamp <= elapsed_ms:
            frame_index = mid
            left = mid + 1
        else:
            right = mid - 1
    return frame_index


class PlaybackController:
    """
    Replays a trajectory's joint angles against a clock.

    The owner calls `tick()` once per scheduler frame. `tick()` returns a
    PlaybackUpdate when the frame index changed, and stops playback itself
    after publishing the last frame. Playback that starts on the last frame
    still publishes that frame once with `done=True`, so tick-driven owners
    always see the end.
    """

    def __init__(self, clock: Optional[Clock] = None, speed: float = 1.0):
        self._clock: Clock = clock or monotonic_ms
        self.speed = speed
        self.trajectory: Optional[MotionTrajectory] = None
        self._origin = 0.0
        self._base_timestamp = 0.0
        self._current_index = 0
        self._last_published = -1
        self._playing = False
        self._paused = False

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def current_index(self) -> int:
        return self._current_index

    def _anchor(self, frame_index: int) -> None:
        self._current_index = frame_index
        self._base_timestamp = self.trajectory.frames[frame_index].timestamp
        self._origin = self._clock()
        self._last_published = frame_index

    def start(self, trajectory: MotionTrajectory, from_index: int = 0) -> bool:
        """
        Starts playback of `trajectory` at `from_index`.

        The start index is clamped into range. The starting frame is treated
        as already shown, so the first update reports a later frame.

        Returns:
            False if the trajectory has no frames, True otherwise.
        """
        if trajectory is None or not trajectory.frames:
            logger.warning("Playback requested for an empty trajectory; ignoring")
            return False

        self.trajectory = trajectory
        start_index = max(0, min(from_index, trajectory.frame_count - 1))
        self._anchor(start_index)
        self._playing = True
        self._paused = False
        logger.info(
            f"Playback started at frame {start_index}/{trajectory.frame_count - 1} "
            f"({self._base_timestamp:.1f} ms)"
        )
        return True

    def tick(self) -> Optional[PlaybackUpdate]:
        """
        Advances playback to the current clock time.

        Returns:
            A PlaybackUpdate when the displayed frame changed (with
            `done=True` on the last frame), or the final frame again when
            playback started there. Otherwise None.
        """
        trajectory = self.trajectory
        if not self._playing or trajectory is None or not trajectory.frames:
            return None

        elapsed = (self._clock() - self._origin) * self.speed + self._base_timestamp
        frame_index = find_frame_index(trajectory.frames, elapsed)
        last_index = trajectory.frame_count - 1
        done = frame_index >= last_index

        update = None
        if frame_index != self._last_published:
            self._last_published = frame_index
            self._current_index = frame_index
            frame = trajectory.frames[frame_index]
            update = PlaybackUpdate(frame_index, frame.shoulder_angle, frame.elbow_angle, done)

        if done:
            self._playing = False
            self._paused = False
            logger.info(f"Playback reached final frame {last_index}")
            if update is None:
                frame = trajectory.frames[last_index]
                update = PlaybackUpdate(last_index, frame.shoulder_angle, frame.elbow_angle, True)
        return update

    def pause(self) -> int:
        """Freezes playback on the current frame and returns its index."""
        if self._playing:
            self._playing = False
            self._paused = True
            logger.info(f"Playback paused at frame {self._current_index}")
        return self._current_index

    def resume(self) -> bool:
        """
        Continues a paused playback from the exact frame it froze on.

        Returns:
            True if playback resumed.
        """
        if not self._paused or self.trajectory is None:
            return False
        self._anchor(self._current_index)
        self._playing = True
        self._paused = False
        logger.info(f"Playback resumed at frame {self._current_index}")
        return True

    def seek(self, frame_index: int) -> Optional[PlaybackUpdate]:
        """
        Moves the playback position to `frame_index` (timeline scrubbing).

        Out-of-range indices are clamped. If playback is running it continues
        from the new frame.
        """
        trajectory = self.trajectory
        if trajectory is None or not trajectory.frames:
            return None
        frame_index = max(0, min(frame_index, trajectory.frame_count - 1))
        self._anchor(frame_index)
        frame = trajectory.frames[frame_index]
        return PlaybackUpdate(frame_index, frame.shoulder_angle, frame.elbow_angle)

    def stop(self) -> None:
        """Stops playback entirely; pause state is discarded."""
        self._playing = False
        self._paused = False
        self._last_published = -1
