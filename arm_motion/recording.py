"""
Frame capture for arm motions.

The CaptureController samples the live arm configuration once per scheduler
tick while the session is recording. A frame is appended only when a joint
moved by more than `epsilon` since the last recorded frame, so an idle
pointer does not produce runs of identical frames.
"""

import enum
import logging
import time
from typing import Callable, Optional, Tuple

from . import constants as const
from .data_structures import MotionFrame, MotionTrajectory
from .kinematics import ArmConfig, forward_kinematics

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def monotonic_ms() -> float:
    """Default clock: monotonic time in milliseconds."""
    return time.perf_counter() * 1000.0


class RecordingState(str, enum.Enum):
    """States of the recording/playback state machine."""
    IDLE = "idle"
    RECORDING = "recording"
    PLAYING = "playing"
    PAUSED = "paused"


class CaptureController:
    """
    Appends timestamped frames to a trajectory while recording.

    Timestamps continue from the last frame of the trajectory passed to
    `start()`, so recording after a redraw extends the truncated motion
    without a time gap or a jump backwards.

    The trajectory being extended lives in the `trajectory` attribute. An
    owner that replaces its trajectory between ticks (e.g. to mark it
    completed) assigns the new value there before the next tick.
    """

    def __init__(self, clock: Optional[Clock] = None, epsilon: float = const.ANGLE_CHANGE_EPSILON):
        """
        Args:
            clock: Returns the current time in milliseconds. Defaults to a
                   monotonic clock.
            epsilon: Minimum joint change (radians) that produces a new frame.
        """
        self._clock: Clock = clock or monotonic_ms
        self.epsilon = epsilon
        self.trajectory: Optional[MotionTrajectory] = None
        self._origin: Optional[float] = None
        self._last_recorded: Optional[Tuple[float, float]] = None

    @property
    def is_active(self) -> bool:
        return self._origin is not None

    def start(self, trajectory: MotionTrajectory) -> None:
        """
        Begins a recording segment on top of `trajectory`.

        The time origin is placed so that the first tick's elapsed time
        continues from the trajectory's last timestamp.
        """
        base_timestamp = trajectory.last_frame.timestamp if trajectory.frames else 0.0
        self.trajectory = trajectory
        self._origin = self._clock() - base_timestamp
        self._last_recorded = None
        logger.info(
            f"Capture started at base timestamp {base_timestamp:.1f} ms "
            f"({trajectory.frame_count} existing frames)"
        )

    def tick(self, live_config: ArmConfig) -> Optional[MotionTrajectory]:
        """
        Samples `live_config` once.

        Returns:
            A new trajectory with one frame appended when the joints moved,
            otherwise the current `trajectory` object unchanged.
        """
        trajectory = self.trajectory
        if self._origin is None or trajectory is None:
            return trajectory

        last = self._last_recorded
        changed = (
            last is None
            or abs(last[0] - live_config.shoulder_angle) > self.epsilon
            or abs(last[1] - live_config.elbow_angle) > self.epsilon
        )
        if not changed:
            return trajectory

        pose = forward_kinematics(live_config)
        frame = MotionFrame(
            timestamp=self._clock() - self._origin,
            shoulder_angle=live_config.shoulder_angle,
            elbow_angle=live_config.elbow_angle,
            elbow_position=pose.elbow_position,
            end_effector_position=pose.end_effector_position,
        )
        self._last_recorded = (live_config.shoulder_angle, live_config.elbow_angle)
        logger.debug(f"Captured frame {trajectory.frame_count} at {frame.timestamp:.1f} ms")
        self.trajectory = trajectory.append(frame)
        return self.trajectory

    def stop(self) -> Optional[MotionTrajectory]:
        """
        Ends the segment; the next `start()` begins clean.

        Returns:
            The trajectory as it stood when capture stopped.
        """
        if self._origin is not None:
            logger.info("Capture stopped")
        trajectory = self.trajectory
        self.trajectory = None
        self._origin = None
        self._last_recorded = None
        return trajectory
