"""
Unit tests for trajectory editing: redraw truncation, sticky completion and
the undo/redo history. Also covers the trajectory value type they operate on.
"""
import dataclasses

import pytest

from arm_motion.data_structures import MotionFrame, MotionTrajectory
from arm_motion.editing import TrajectoryHistory, truncate_at, update_completion
from arm_motion.geometry import Vector2D

TARGET = Vector2D(440.0, 300.0)

# --- Tests for MotionTrajectory ---

def test_empty_trajectory():
    trajectory = MotionTrajectory.empty(Vector2D(1, 2), TARGET, {"promptType": "soft"})
    assert trajectory.is_empty
    assert trajectory.frame_count == 0
    assert trajectory.last_frame is None
    assert trajectory.total_time_ms == 0.0
    assert trajectory.completed is False


def test_append_returns_new_trajectory(sweep_trajectory):
    frame = MotionFrame(500.0, 0.1, 0.2, Vector2D(0, 0), Vector2D(1, 1))
    extended = sweep_trajectory.append(frame)
    assert extended.frame_count == sweep_trajectory.frame_count + 1
    assert extended.total_time_ms == 500.0
    assert sweep_trajectory.frame_count == 10
    assert extended.metadata == sweep_trajectory.metadata
    assert extended.metadata is not sweep_trajectory.metadata


def test_trajectory_is_immutable(sweep_trajectory):
    with pytest.raises(dataclasses.FrozenInstanceError):
        sweep_trajectory.completed = True


def test_trajectory_dict_round_trip(sweep_trajectory):
    restored = MotionTrajectory.from_dict(sweep_trajectory.to_dict())
    assert restored == sweep_trajectory

# --- Tests for truncate_at ---

def test_truncate_keeps_prefix_and_clears_completion(sweep_trajectory):
    completed = sweep_trajectory.mark_completed()
    truncated = truncate_at(completed, 4)
    assert truncated.frame_count == 5
    assert truncated.frames == completed.frames[:5]
    assert truncated.completed is False
    assert truncated.total_time_ms == completed.frames[4].timestamp
    assert truncated.metadata == completed.metadata


def test_truncate_at_last_frame_keeps_everything(sweep_trajectory):
    truncated = truncate_at(sweep_trajectory, 9)
    assert truncated.frames == sweep_trajectory.frames


@pytest.mark.parametrize("frame_index", [-1, 10, 100])
def test_truncate_out_of_range(sweep_trajectory, frame_index):
    assert truncate_at(sweep_trajectory, frame_index) is None


def test_truncate_empty_trajectory():
    assert truncate_at(MotionTrajectory.empty(Vector2D(0, 0), TARGET), 0) is None

# --- Tests for update_completion ---

def test_completion_when_effector_enters_zone(sweep_trajectory):
    updated = update_completion(sweep_trajectory, Vector2D(445.0, 305.0), TARGET, 20.0)
    assert updated.completed
    assert updated is not sweep_trajectory


def test_no_completion_outside_zone(sweep_trajectory):
    assert update_completion(sweep_trajectory, Vector2D(300.0, 300.0), TARGET, 20.0) is sweep_trajectory


def test_completion_is_sticky(sweep_trajectory):
    completed = update_completion(sweep_trajectory, TARGET, TARGET, 20.0)
    after_leaving = update_completion(completed, Vector2D(0.0, 0.0), TARGET, 20.0)
    assert after_leaving is completed
    assert after_leaving.completed

# --- Tests for TrajectoryHistory ---

@pytest.fixture
def snapshots(sweep_trajectory):
    a = sweep_trajectory
    b = truncate_at(a, 6)
    c = truncate_at(a, 3)
    return a, b, c


def test_empty_history():
    history = TrajectoryHistory()
    assert not history.can_undo
    assert not history.can_redo
    assert history.undo(None) is None
    assert history.redo(None) is None


def test_undo_redo_round_trip(snapshots):
    a, b, c = snapshots
    history = TrajectoryHistory()
    history.record(a)
    history.record(b)
    current = c

    current = history.undo(current)
    assert current is b
    current = history.undo(current)
    assert current is a
    assert not history.can_undo
    assert history.redo_depth == 2

    current = history.redo(current)
    assert current is b
    current = history.redo(current)
    assert current is c
    assert not history.can_redo
    assert history.undo_depth == 2


def test_record_drops_redo_branch(snapshots):
    a, b, c = snapshots
    history = TrajectoryHistory()
    history.record(a)
    history.undo(b)
    assert history.can_redo
    history.record(a)
    assert not history.can_redo


def test_clear_redo_and_clear(snapshots):
    a, b, _ = snapshots
    history = TrajectoryHistory()
    history.record(a)
    history.record(b)
    history.undo(b)
    history.clear_redo()
    assert not history.can_redo
    assert history.can_undo
    history.clear()
    assert not history.can_undo
