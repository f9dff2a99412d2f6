"""
Data structures for recorded arm motions.

This module defines the immutable frame and trajectory types shared by the
capture, playback, smoothing and editing modules. Trajectories are values:
every edit produces a new object, so snapshots kept for undo/redo never
change underneath their owner.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from .geometry import Vector2D


@dataclass(frozen=True)
class MotionFrame:
    """Single recorded sample: joint angles plus positions cached at capture time"""
    timestamp: float  # ms since the start of the trajectory
    shoulder_angle: float
    elbow_angle: float
    elbow_position: Vector2D
    end_effector_position: Vector2D

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "shoulder_angle": self.shoulder_angle,
            "elbow_angle": self.elbow_angle,
            "elbow_position": self.elbow_position.to_dict(),
            "end_effector_position": self.end_effector_position.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MotionFrame":
        return cls(
            timestamp=float(data["timestamp"]),
            shoulder_angle=float(data["shoulder_angle"]),
            elbow_angle=float(data["elbow_angle"]),
            elbow_position=Vector2D.from_dict(data["elbow_position"]),
            end_effector_position=Vector2D.from_dict(data["end_effector_position"]),
        )


@dataclass(frozen=True)
class MotionTrajectory:
    """
    One recorded motion attempt.

    `frames` is a timestamp-sorted tuple and `total_time_ms` always equals
    the timestamp of the last frame (0 when empty). `metadata` holds labels
    supplied by the caller (prompt type, attempt count, ...) and is carried
    through every edit untouched.
    """
    frames: Tuple[MotionFrame, ...]
    start_position: Vector2D
    target_position: Vector2D
    completed: bool = False
    total_time_ms: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(
        cls,
        start_position: Vector2D,
        target_position: Vector2D,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "MotionTrajectory":
        """Creates the empty trajectory a new recording segment starts from."""
        return cls(
            frames=(),
            start_position=start_position,
            target_position=target_position,
            metadata=dict(metadata or {}),
        )

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def is_empty(self) -> bool:
        return not self.frames

    @property
    def last_frame(self) -> Optional[MotionFrame]:
        return self.frames[-1] if self.frames else None

    def with_frames(self, frames: Iterable[MotionFrame], **changes: Any) -> "MotionTrajectory":
        """
        Returns a copy holding `frames`, with `total_time_ms` kept in sync.

        Extra keyword arguments are applied as further field replacements.
        """
        frames = tuple(frames)
        changes.setdefault("total_time_ms", frames[-1].timestamp if frames else 0.0)
        return replace(self, frames=frames, metadata=dict(self.metadata), **changes)

    def append(self, frame: MotionFrame) -> "MotionTrajectory":
        """Returns a copy with `frame` appended at the end."""
        return self.with_frames(self.frames + (frame,))

    def mark_completed(self) -> "MotionTrajectory":
        return replace(self, completed=True, metadata=dict(self.metadata))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frames": [frame.to_dict() for frame in self.frames],
            "start_position": self.start_position.to_dict(),
            "target_position": self.target_position.to_dict(),
            "completed": self.completed,
            "total_time_ms": self.total_time_ms,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MotionTrajectory":
        frames = tuple(MotionFrame.from_dict(f) for f in data.get("frames", []))
        return cls(
            frames=frames,
            start_position=Vector2D.from_dict(data["start_position"]),
            target_position=Vector2D.from_dict(data["target_position"]),
            completed=bool(data.get("completed", False)),
            total_time_ms=float(data.get("total_time_ms", frames[-1].timestamp if frames else 0.0)),
            metadata=dict(data.get("metadata") or {}),
        )
