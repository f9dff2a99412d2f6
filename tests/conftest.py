"""
Shared test fixtures for the arm motion library and studio.

## Key Features

- **Deterministic time**: `FakeClock` is a millisecond clock that only moves
  when a test advances it, so capture timestamps and playback frame lookup
  are exact.
- **Manual frame ticks**: `ManualFrameScheduler` collects frame callbacks and
  runs them when the test calls `advance()`, replacing the asyncio scheduler
  in session tests.
- **Trajectory factory**: builds trajectories from joint-angle lists with
  positions computed by forward kinematics.

## Usage Pattern

```python
def test_capture(session, scheduler):
    session.start_recording()
    scheduler.advance(16)   # clock +16 ms, then one capture tick
    assert session.current_trajectory.frame_count == 1
```
"""

from typing import Callable, Dict, Optional, Sequence, Tuple

import pytest

from arm_motion.data_structures import MotionFrame, MotionTrajectory
from arm_motion.geometry import Vector2D
from arm_motion.kinematics import TwoLinkArmPlanar
from arm_motion.scheduler import FrameScheduler
from arm_motion.session import MotionSession


class FakeClock:
    """Millisecond clock advanced explicitly by tests."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class ManualFrameScheduler(FrameScheduler):
    """Frame scheduler whose frames are run on demand."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self._pending: Dict[int, Callable[[float], None]] = {}
        self._next_handle = 0
        self.frames_run = 0

    def request_frame(self, callback):
        handle = self._next_handle
        self._next_handle += 1
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle) -> None:
        self._pending.pop(handle, None)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def run_frame(self) -> int:
        """Runs every callback pending now; callbacks they request wait for the next frame."""
        callbacks = list(self._pending.values())
        self._pending.clear()
        for callback in callbacks:
            callback(self.clock())
        self.frames_run += 1
        return len(callbacks)

    def advance(self, ms: float) -> int:
        self.clock.advance(ms)
        return self.run_frame()


def make_trajectory(
    angles: Sequence[Tuple[float, float]],
    interval_ms: float = 16.0,
    arm: Optional[TwoLinkArmPlanar] = None,
    completed: bool = False,
    metadata: Optional[dict] = None,
) -> MotionTrajectory:
    """Trajectory with one frame per (shoulder, elbow) pair, `interval_ms` apart."""
    arm = arm or TwoLinkArmPlanar()
    frames = []
    for index, (shoulder, elbow) in enumerate(angles):
        pose = arm.forward_kinematics(shoulder, elbow)
        frames.append(
            MotionFrame(
                timestamp=index * interval_ms,
                shoulder_angle=shoulder,
                elbow_angle=elbow,
                elbow_position=pose.elbow_position,
                end_effector_position=pose.end_effector_position,
            )
        )
    start = frames[0].end_effector_position if frames else Vector2D(0.0, 0.0)
    trajectory = MotionTrajectory.empty(start, Vector2D(440.0, 300.0), metadata)
    return trajectory.with_frames(frames, completed=completed)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> ManualFrameScheduler:
    return ManualFrameScheduler(clock)


@pytest.fixture
def arm() -> TwoLinkArmPlanar:
    return TwoLinkArmPlanar()


@pytest.fixture
def session(scheduler: ManualFrameScheduler, clock: FakeClock) -> MotionSession:
    return MotionSession(scheduler=scheduler, clock=clock)


@pytest.fixture
def trajectory_factory():
    """Returns `make_trajectory` so tests can build trajectories inline."""
    return make_trajectory


@pytest.fixture
def sweep_trajectory() -> MotionTrajectory:
    """Ten frames sweeping the arm upwards, well away from the target zone."""
    angles = [(-1.4 + 0.04 * i, 2.8 - 0.02 * i) for i in range(10)]
    return make_trajectory(angles, metadata={"promptType": "graceful", "promptText": "Move gracefully"})
