"""
Unit tests for MotionSession.

The session runs on a ManualFrameScheduler and FakeClock (see conftest), so
each `scheduler.advance(16)` moves time by one 60 Hz frame and runs exactly
one capture or playback tick.
"""
import math

import pytest

from arm_motion import constants as const
from arm_motion.exceptions import ConfigurationError, SessionStateError
from arm_motion.geometry import Vector2D, distance, lerp_vector
from arm_motion.recording import RecordingState
from arm_motion.session import MotionSession, SessionEvent


def drag_to(session, scheduler, goal: Vector2D, steps: int = 20):
    """Drags the effector towards `goal` in straight-line steps, one frame each."""
    start = session.end_effector_position
    for step in range(1, steps + 1):
        session.move_pointer(lerp_vector(start, goal, step / steps))
        scheduler.advance(16)


def play_to_end(session, scheduler, limit: int = 1000):
    for _ in range(limit):
        if session.recording_state != RecordingState.PLAYING:
            return
        scheduler.advance(16)
    raise AssertionError("playback did not finish")

# --- Construction ---

def test_initial_state(session):
    assert session.recording_state == RecordingState.IDLE
    assert session.current_trajectory is None
    assert session.target_position == Vector2D(440.0, 300.0)
    effector = session.end_effector_position
    assert math.isclose(effector.x, 246.88, abs_tol=0.01)
    assert math.isclose(effector.y, 270.45, abs_tol=0.01)
    assert not session.can_undo
    assert not session.can_redo


@pytest.mark.parametrize(
    "kwargs",
    [{"target_radius": 0}, {"grab_radius": -1}, {"playback_speed": 0}],
)
def test_invalid_configuration(scheduler, kwargs):
    with pytest.raises(ConfigurationError):
        MotionSession(scheduler=scheduler, **kwargs)


def test_begin_motion_creates_empty_trajectory(session):
    trajectory = session.begin_motion({"promptType": "graceful"})
    assert session.current_trajectory is trajectory
    assert trajectory.is_empty
    assert trajectory.start_position == session.end_effector_position
    assert trajectory.target_position == session.target_position
    assert trajectory.metadata == {"promptType": "graceful"}

# --- Pointer control and capture ---

def test_press_far_from_effector_is_ignored(session):
    session.begin_motion()
    assert session.press(session.end_effector_position + Vector2D(50.0, 0.0)) is False
    assert not session.is_following
    assert session.recording_state == RecordingState.IDLE


def test_drag_starts_recording_and_captures_frames(session, scheduler):
    session.begin_motion()
    start = session.end_effector_position
    assert session.press(start + Vector2D(3.0, 0.0))
    assert session.is_following
    assert session.recording_state == RecordingState.RECORDING

    scheduler.advance(16)
    session.move_pointer(start + Vector2D(8.0, 5.0))
    scheduler.advance(16)
    session.move_pointer(start + Vector2D(14.0, 9.0))
    scheduler.advance(16)

    trajectory = session.current_trajectory
    assert trajectory.frame_count == 3
    assert [f.timestamp for f in trajectory.frames] == [16, 32, 48]
    last = trajectory.frames[-1]
    assert math.isclose(last.end_effector_position.x, start.x + 14.0, abs_tol=1e-6)
    assert math.isclose(last.end_effector_position.y, start.y + 9.0, abs_tol=1e-6)
    assert session.actual_target == start + Vector2D(14.0, 9.0)


def test_idle_pointer_does_not_add_frames(session, scheduler):
    session.begin_motion()
    session.press(session.end_effector_position)
    for _ in range(10):
        scheduler.advance(16)
    assert session.current_trajectory.frame_count == 1


def test_pointer_moves_without_press_do_nothing(session):
    session.begin_motion()
    before = session.arm_config
    session.move_pointer(Vector2D(300.0, 300.0))
    assert session.arm_config == before
    assert session.pointer_position == Vector2D(300.0, 300.0)
    assert session.actual_target is None
    session.move_pointer(None)
    assert session.pointer_position is None


def test_release_keeps_recording(session, scheduler):
    session.begin_motion()
    session.press(session.end_effector_position)
    session.release()
    assert not session.is_following
    assert session.recording_state == RecordingState.RECORDING
    session.stop_recording()
    assert session.recording_state == RecordingState.IDLE


def test_unreachable_pointer_is_clamped(session):
    session.begin_motion()
    session.press(session.end_effector_position)
    session.move_pointer(Vector2D(2000.0, 300.0))
    assert math.isclose(distance(session.arm.shoulder_position, session.end_effector_position), 270.0)
    assert math.isclose(session.actual_target.x, 470.0)


def test_reaching_target_completes_and_stops_recording(session, scheduler):
    session.begin_motion({"promptType": "direct"})
    session.press(session.end_effector_position)
    drag_to(session, scheduler, session.target_position)
    session.move_pointer(session.target_position)

    trajectory = session.current_trajectory
    assert trajectory.completed
    assert trajectory.frame_count > 5
    assert session.recording_state == RecordingState.IDLE
    assert not session.is_following
    assert trajectory.metadata == {"promptType": "direct"}


def test_completion_is_sticky_when_leaving_zone(session, scheduler):
    session.begin_motion()
    session.press(session.end_effector_position)
    drag_to(session, scheduler, session.target_position)
    assert session.current_trajectory.completed
    session.seek(0)
    assert session.current_trajectory.completed


def test_dragging_a_completed_motion_does_not_record(session, scheduler):
    session.begin_motion()
    session.press(session.end_effector_position)
    drag_to(session, scheduler, session.target_position)
    completed = session.current_trajectory
    assert completed.completed

    session.seek(0)
    start = session.end_effector_position
    assert session.press(start)
    for step in (1, 2):
        session.move_pointer(Vector2D(start.x - 15 * step, start.y - 15 * step))
        scheduler.advance(16)

    assert session.recording_state == RecordingState.IDLE
    assert session.current_trajectory is completed
    assert session.current_trajectory.frame_count == completed.frame_count


def test_start_recording_clears_redo(session, sweep_trajectory):
    session.begin_motion()
    session.load_trajectory(sweep_trajectory)
    session.undo()
    assert session.can_redo
    session.start_recording()
    assert not session.can_redo


def test_start_recording_without_trajectory_begins_motion(session, scheduler):
    session.start_recording()
    assert session.current_trajectory is not None
    assert scheduler.pending_count == 1
    scheduler.advance(16)
    assert session.current_trajectory.frame_count == 1

# --- Tick cancellation ---

def test_stopping_cancels_pending_tick(session, scheduler):
    session.start_recording()
    assert scheduler.pending_count == 1
    session.stop_recording()
    assert scheduler.pending_count == 0


def test_playback_cannot_start_while_recording(session, scheduler):
    session.start_recording()
    scheduler.advance(16)
    assert session.start_playback() is False
    assert session.recording_state == RecordingState.RECORDING
    assert scheduler.pending_count == 1

# --- Playback ---

def test_playback_runs_to_last_frame_and_pauses(session, scheduler, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    frames_seen = []
    session.add_listener(
        lambda event, s: frames_seen.append(s.playback_frame) if event == SessionEvent.PLAYBACK_FRAME else None
    )
    assert session.start_playback()
    assert session.recording_state == RecordingState.PLAYING

    play_to_end(session, scheduler)

    assert session.recording_state == RecordingState.PAUSED
    assert frames_seen == list(range(1, 10))
    assert session.playback_frame == 9
    last = sweep_trajectory.frames[-1]
    assert (session.arm_config.shoulder_angle, session.arm_config.elbow_angle) == (
        last.shoulder_angle,
        last.elbow_angle,
    )
    assert scheduler.pending_count == 0


def test_playback_after_finish_restarts_from_zero(session, scheduler, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    session.start_playback()
    play_to_end(session, scheduler)
    assert session.start_playback()
    assert session.playback_frame == 0
    scheduler.advance(16)
    assert session.playback_frame == 1


def test_pause_and_resume(session, scheduler, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    session.start_playback()
    for _ in range(3):
        scheduler.advance(16)
    session.stop_playback()
    assert session.recording_state == RecordingState.PAUSED
    assert session.playback_frame == 3
    assert scheduler.pending_count == 0

    scheduler.advance(1000)
    assert session.playback_frame == 3

    assert session.start_playback()
    scheduler.advance(16)
    assert session.playback_frame == 4


def test_playback_from_frame(session, scheduler, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    assert session.start_playback(from_frame=6)
    scheduler.advance(16)
    assert session.playback_frame == 7
    assert session.start_playback(from_frame=99)
    assert session.playback_frame == 9
    assert scheduler.pending_count == 1


def test_playback_of_empty_motion_is_rejected(session):
    session.begin_motion()
    assert session.start_playback() is False
    assert session.recording_state == RecordingState.IDLE


def test_press_is_ignored_during_playback(session, scheduler, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    session.start_playback()
    assert session.press(session.end_effector_position) is False
    session.stop_playback()
    assert session.press(session.end_effector_position) is False


def test_seek(session, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    assert session.seek(3) == 3
    frame = sweep_trajectory.frames[3]
    assert session.arm_config.shoulder_angle == frame.shoulder_angle
    assert session.arm_config.elbow_angle == frame.elbow_angle
    assert session.playback_frame == 3
    assert session.seek(100) == 9
    assert session.seek(-1) == 0


def test_seek_rejected_while_recording_or_empty(session):
    session.begin_motion()
    assert session.seek(0) is None
    session.start_recording()
    assert session.seek(0) is None

# --- Editing ---

def test_redraw_truncates_and_places_arm(session, sweep_trajectory):
    session.load_trajectory(sweep_trajectory.mark_completed())
    assert session.redraw_from_frame(4)
    trajectory = session.current_trajectory
    assert trajectory.frame_count == 5
    assert trajectory.completed is False
    assert session.recording_state == RecordingState.IDLE
    assert session.playback_frame == 4
    frame = sweep_trajectory.frames[4]
    assert session.arm_config.shoulder_angle == frame.shoulder_angle
    assert session.can_undo


def test_redraw_out_of_range_changes_nothing(session, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    depth = session.history.undo_depth
    assert session.redraw_from_frame(20) is False
    assert session.current_trajectory is sweep_trajectory
    assert session.history.undo_depth == depth


def test_recording_after_redraw_continues_timeline(session, scheduler, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    session.redraw_from_frame(4)
    scheduler.advance(5000)
    session.press(session.end_effector_position)
    session.move_pointer(session.end_effector_position + Vector2D(6.0, 0.0))
    scheduler.advance(16)
    trajectory = session.current_trajectory
    assert trajectory.frame_count == 6
    assert trajectory.frames[5].timestamp == sweep_trajectory.frames[4].timestamp + 16


def test_reset_undo_redo_round_trip(session, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    assert session.reset_current_motion()
    after_reset = session.current_trajectory
    assert after_reset.is_empty
    assert after_reset.metadata == sweep_trajectory.metadata

    assert session.undo()
    assert session.current_trajectory is sweep_trajectory
    assert session.redo()
    assert session.current_trajectory is after_reset


def test_undo_with_empty_history(session):
    session.begin_motion()
    assert session.undo() is False
    assert session.redo() is False


def test_undo_stops_playback(session, scheduler, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    session.redraw_from_frame(5)
    session.start_playback()
    assert session.undo()
    assert session.recording_state == RecordingState.IDLE
    assert session.playback_frame == 0
    assert scheduler.pending_count == 0


def test_complete_current_motion(session, scheduler):
    session.begin_motion()
    assert session.complete_current_motion() is None

    session.press(session.end_effector_position)
    drag_to(session, scheduler, session.target_position)
    initial = session.arm.config(const.INITIAL_SHOULDER_ANGLE, const.INITIAL_ELBOW_ANGLE)

    completed = session.complete_current_motion()
    assert completed is not None and completed.completed
    assert session.current_trajectory is None
    assert not session.can_undo
    assert session.arm_config == initial
    assert session.recording_state == RecordingState.IDLE

# --- Smoothing preview ---

def test_smoothing_requires_three_frames(session, trajectory_factory):
    session.load_trajectory(trajectory_factory([(0.0, 1.0), (0.1, 1.0)]))
    with pytest.raises(SessionStateError):
        session.begin_smoothing()


def test_smoothing_preview_is_not_allowed_while_playing(session, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    session.start_playback()
    with pytest.raises(SessionStateError):
        session.begin_smoothing()


def test_preview_without_begin_raises(session, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    with pytest.raises(SessionStateError):
        session.preview_smoothing(50)


def test_smoothing_preview_cancel_restores_original(session, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    session.begin_smoothing()
    assert session.is_smoothing
    preview = session.preview_smoothing(60)
    assert session.current_trajectory is preview
    assert preview is not sweep_trajectory
    assert session.preview_smoothing(0) is sweep_trajectory

    session.preview_smoothing(80, "moving_average")
    session.finish_smoothing(keep=False)
    assert not session.is_smoothing
    assert session.current_trajectory is sweep_trajectory


def test_smoothing_kept_is_undoable(session, sweep_trajectory):
    session.load_trajectory(sweep_trajectory)
    depth = session.history.undo_depth
    session.begin_smoothing()
    smoothed = session.preview_smoothing(80)
    session.finish_smoothing(keep=True)
    assert session.current_trajectory is smoothed
    assert session.history.undo_depth == depth + 1
    session.undo()
    assert session.current_trajectory is sweep_trajectory

# --- Events and snapshot ---

def test_listeners_receive_events(session):
    events = []

    def listener(event, s):
        events.append(event)

    session.add_listener(listener)
    session.begin_motion()
    session.start_recording()
    assert SessionEvent.TRAJECTORY_CHANGED in events
    assert SessionEvent.STATE_CHANGED in events
    assert SessionEvent.ARM_MOVED in events

    session.remove_listener(listener)
    events.clear()
    session.stop_recording()
    assert events == []


def test_to_dict(session, sweep_trajectory):
    assert session.to_dict()["trajectory"] is None
    session.load_trajectory(sweep_trajectory)
    data = session.to_dict()
    assert data["recording_state"] == "idle"
    assert data["target_position"] == {"x": 440.0, "y": 300.0}
    assert data["trajectory"]["frame_count"] == 10
    assert data["trajectory"]["metadata"]["promptType"] == "graceful"
    assert data["can_undo"] is False
    full = session.to_dict(include_frames=True)
    assert len(full["trajectory"]["frames"]) == 10
