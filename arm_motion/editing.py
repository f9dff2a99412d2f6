"""
Trajectory editing operations: truncation for redraw, completion detection,
and undo/redo history over whole-trajectory snapshots.
"""

import logging
from typing import List, Optional

from .data_structures import MotionTrajectory
from .geometry import Vector2D
from .kinematics import is_in_target_zone

logger = logging.getLogger(__name__)


def truncate_at(trajectory: MotionTrajectory, frame_index: int) -> Optional[MotionTrajectory]:
    """
    Keeps frames 0..frame_index so the motion can be redrawn from there.

    The result is never completed and its total time is the timestamp of
    the kept last frame.

    Returns:
        The truncated copy, or None when `frame_index` is out of range.
    """
    if trajectory is None or frame_index < 0 or frame_index >= trajectory.frame_count:
        logger.warning(f"Cannot truncate at frame {frame_index}: out of range")
        return None
    kept = trajectory.frames[: frame_index + 1]
    return trajectory.with_frames(kept, completed=False, total_time_ms=kept[-1].timestamp)


def update_completion(
    trajectory: MotionTrajectory,
    end_effector_position: Vector2D,
    target_position: Vector2D,
    radius: float,
) -> MotionTrajectory:
    """
    Marks the trajectory completed once the effector enters the target zone.

    Completion is sticky: an already completed trajectory is returned as is,
    and leaving the zone never clears the flag. Only replacing the
    trajectory object (reset, redraw, undo) does.
    """
    if trajectory.completed:
        return trajectory
    if is_in_target_zone(end_effector_position, target_position, radius):
        logger.info(f"Target reached after {trajectory.frame_count} frames")
        return trajectory.mark_completed()
    return trajectory


class TrajectoryHistory:
    """
    Undo and redo stacks of trajectory snapshots.

    Snapshots are immutable MotionTrajectory values, so the stacks can hold
    them directly without copying. Neither stack is capped.
    """

    def __init__(self):
        self._undo: List[MotionTrajectory] = []
        self._redo: List[MotionTrajectory] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def record(self, current: MotionTrajectory) -> None:
        """Saves `current` before a destructive edit; any redo branch is dropped."""
        self._undo.append(current)
        self._redo.clear()

    def undo(self, current: Optional[MotionTrajectory]) -> Optional[MotionTrajectory]:
        """
        Steps back one snapshot.

        Args:
            current: The trajectory being replaced; pushed onto the redo
                     stack when not None.

        Returns:
            The restored snapshot, or None when there is nothing to undo.
        """
        if not self._undo:
            logger.warning("Undo requested with empty history")
            return None
        previous = self._undo.pop()
        if current is not None:
            self._redo.append(current)
        logger.info(f"Undo: restored snapshot with {previous.frame_count} frames")
        return previous

    def redo(self, current: Optional[MotionTrajectory]) -> Optional[MotionTrajectory]:
        """Mirror of `undo()`."""
        if not self._redo:
            logger.warning("Redo requested with empty history")
            return None
        following = self._redo.pop()
        if current is not None:
            self._undo.append(current)
        logger.info(f"Redo: restored snapshot with {following.frame_count} frames")
        return following

    def clear_redo(self) -> None:
        self._redo.clear()

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
