"""
Motion session coordinator.

A MotionSession owns everything that changes while a participant draws one
motion: the live arm configuration, the current trajectory, the
recording/playback state machine, undo/redo history and the smoothing
preview. A UI layer forwards pointer events and button presses to it and
re-renders when a listener is notified.

Only one tick loop is live at a time. Every state transition cancels the
pending scheduler callback before the next loop is scheduled, and each tick
re-checks the state it was scheduled for, so a stale loop can never append
frames or move the arm after it has been left.
"""

import enum
import logging
from typing import Any, Callable, Dict, List, Optional

from . import constants as const
from .data_structures import MotionTrajectory
from .editing import TrajectoryHistory, truncate_at, update_completion
from .exceptions import ConfigurationError, SessionStateError
from .geometry import Vector2D, distance
from .kinematics import ArmConfig, TwoLinkArmPlanar, forward_kinematics, is_in_target_zone
from .playback import PlaybackController
from .recording import CaptureController, Clock, RecordingState, monotonic_ms
from .scheduler import AsyncioFrameScheduler, FrameScheduler
from .smoothing import smooth_by_strength

logger = logging.getLogger(__name__)


class SessionEvent(str, enum.Enum):
    """Kinds of change a session publishes to its listeners."""
    ARM_MOVED = "arm_moved"
    TRAJECTORY_CHANGED = "trajectory_changed"
    STATE_CHANGED = "state_changed"
    PLAYBACK_FRAME = "playback_frame"


SessionListener = Callable[[SessionEvent, "MotionSession"], None]


class MotionSession:
    """
    Coordinates capture, playback, editing and pointer control for one arm.
    """

    def __init__(
        self,
        arm: Optional[TwoLinkArmPlanar] = None,
        target_position: Optional[Vector2D] = None,
        target_radius: float = const.TARGET_RADIUS,
        scheduler: Optional[FrameScheduler] = None,
        clock: Optional[Clock] = None,
        initial_shoulder_angle: float = const.INITIAL_SHOULDER_ANGLE,
        initial_elbow_angle: float = const.INITIAL_ELBOW_ANGLE,
        grab_radius: float = const.GRAB_RADIUS,
        epsilon: float = const.ANGLE_CHANGE_EPSILON,
        playback_speed: float = const.PLAYBACK_SPEED,
    ):
        """
        Initializes a MotionSession.

        Args:
            arm: Arm geometry and IK model. Defaults to the standard canvas arm.
            target_position: Centre of the target zone. Defaults to a point
                             240 px right of the shoulder.
            target_radius: Radius of the target zone.
            scheduler: Frame tick source. Defaults to an asyncio scheduler.
            clock: Millisecond clock shared by capture and playback.
            initial_shoulder_angle: Shoulder angle the arm resets to.
            initial_elbow_angle: Elbow angle the arm resets to.
            grab_radius: How close to the end effector a press must land to
                         start dragging.
            epsilon: Minimum joint change that produces a new frame.
            playback_speed: Playback rate relative to the recorded timing.

        Raises:
            ConfigurationError: If target_radius, grab_radius or playback_speed
                                is not positive.
        """
        if target_radius <= 0:
            raise ConfigurationError("target_radius must be positive.")
        if grab_radius <= 0:
            raise ConfigurationError("grab_radius must be positive.")
        if playback_speed <= 0:
            raise ConfigurationError("playback_speed must be positive.")

        self.arm = arm or TwoLinkArmPlanar()
        self.target_position = target_position or self.arm.shoulder_position + Vector2D(
            const.TARGET_OFFSET_X, const.TARGET_OFFSET_Y
        )
        self.target_radius = target_radius
        self.grab_radius = grab_radius
        self.scheduler = scheduler or AsyncioFrameScheduler()
        self._clock: Clock = clock or monotonic_ms
        self._initial_angles = (initial_shoulder_angle, initial_elbow_angle)

        self.arm_config: ArmConfig = self.arm.config(initial_shoulder_angle, initial_elbow_angle)
        self.recording_state = RecordingState.IDLE
        self.current_trajectory: Optional[MotionTrajectory] = None
        self.history = TrajectoryHistory()
        self.playback_frame = 0

        self.is_following = False
        self.pointer_position: Optional[Vector2D] = None
        self.actual_target: Optional[Vector2D] = None

        self._capture = CaptureController(self._clock, epsilon)
        self._playback = PlaybackController(self._clock, playback_speed)
        self._pending_tick = None
        self._listeners: List[SessionListener] = []
        self._smoothing_original: Optional[MotionTrajectory] = None

        logger.info(
            f"MotionSession ready: target=({self.target_position.x}, {self.target_position.y}), "
            f"radius={self.target_radius}"
        )

    # --- Listeners ---

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            listener(event, self)

    # --- Derived state ---

    @property
    def end_effector_position(self) -> Vector2D:
        return forward_kinematics(self.arm_config).end_effector_position

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    @property
    def is_smoothing(self) -> bool:
        return self._smoothing_original is not None

    # --- Internal helpers ---

    def _set_trajectory(self, trajectory: Optional[MotionTrajectory]) -> None:
        if trajectory is self.current_trajectory:
            return
        self.current_trajectory = trajectory
        self._emit(SessionEvent.TRAJECTORY_CHANGED)

    def _check_completion(self) -> None:
        trajectory = self.current_trajectory
        if trajectory is None:
            return
        self._set_trajectory(
            update_completion(
                trajectory, self.end_effector_position, self.target_position, self.target_radius
            )
        )

    def _apply_angles(self, shoulder_angle: float, elbow_angle: float) -> None:
        self.arm_config = self.arm_config.with_angles(shoulder_angle, elbow_angle)
        self._emit(SessionEvent.ARM_MOVED)
        self._check_completion()

    def _schedule(self, callback) -> None:
        self._pending_tick = self.scheduler.request_frame(callback)

    def _cancel_pending_tick(self) -> None:
        if self._pending_tick is not None:
            self.scheduler.cancel_frame(self._pending_tick)
            self._pending_tick = None

    def _transition(self, new_state: RecordingState) -> None:
        old_state = self.recording_state
        if new_state == old_state:
            return

        self._cancel_pending_tick()
        if old_state == RecordingState.RECORDING:
            self._capture.stop()
        elif old_state == RecordingState.PLAYING:
            if new_state == RecordingState.PAUSED:
                self.playback_frame = self._playback.pause()
            else:
                self._playback.stop()
        elif old_state == RecordingState.PAUSED and new_state != RecordingState.PLAYING:
            self._playback.stop()

        self.recording_state = new_state
        logger.info(f"Recording state: {old_state.value} -> {new_state.value}")

        if new_state == RecordingState.RECORDING:
            self._capture.start(self.current_trajectory)
            self._schedule(self._capture_tick)
        self._emit(SessionEvent.STATE_CHANGED)

    def _reset_arm(self) -> None:
        self.arm.reset_follow()
        self._apply_angles(*self._initial_angles)

    # --- Tick loops ---

    def _capture_tick(self, now_ms: float) -> None:
        self._pending_tick = None
        if self.recording_state != RecordingState.RECORDING:
            return
        if self.current_trajectory is not None:
            self._capture.trajectory = self.current_trajectory
            self._set_trajectory(self._capture.tick(self.arm_config))
        self._schedule(self._capture_tick)

    def _playback_tick(self, now_ms: float) -> None:
        self._pending_tick = None
        if self.recording_state != RecordingState.PLAYING:
            return
        if self.current_trajectory is None or not self.current_trajectory.frames:
            self._transition(RecordingState.IDLE)
            return

        self._playback.trajectory = self.current_trajectory
        update = self._playback.tick()
        if update is not None:
            self.playback_frame = update.frame_index
            self._emit(SessionEvent.PLAYBACK_FRAME)
            self._apply_angles(update.shoulder_angle, update.elbow_angle)
            if update.done:
                self.stop_playback()
                return
        self._schedule(self._playback_tick)

    # --- Motion lifecycle ---

    def begin_motion(self, metadata: Optional[Dict[str, Any]] = None) -> MotionTrajectory:
        """
        Starts a fresh, empty motion with the arm in its initial pose.

        Args:
            metadata: Labels carried on the trajectory (prompt type, ...).
        """
        self._transition(RecordingState.IDLE)
        self._smoothing_original = None
        self.is_following = False
        self.playback_frame = 0
        self._reset_arm()
        trajectory = MotionTrajectory.empty(
            start_position=self.end_effector_position,
            target_position=self.target_position,
            metadata=metadata,
        )
        self._set_trajectory(trajectory)
        logger.info("New motion started")
        return trajectory

    def load_trajectory(self, trajectory: MotionTrajectory) -> None:
        """
        Replaces the current motion with an existing one (e.g. an import).

        The replaced motion can be restored with `undo()`. The arm is placed
        at the first frame of the loaded motion.
        """
        self._transition(RecordingState.IDLE)
        self._smoothing_original = None
        self.is_following = False
        if self.current_trajectory is not None:
            self.history.record(self.current_trajectory)
        self.playback_frame = 0
        self._set_trajectory(trajectory)
        if trajectory.frames:
            first = trajectory.frames[0]
            self._apply_angles(first.shoulder_angle, first.elbow_angle)
        logger.info(f"Loaded trajectory with {trajectory.frame_count} frames")

    def start_recording(self) -> None:
        """Enters the recording state; starting a recording drops any redo branch."""
        if self.recording_state == RecordingState.RECORDING:
            return
        if self.current_trajectory is None:
            self.begin_motion()
        self.history.clear_redo()
        self._transition(RecordingState.RECORDING)

    def stop_recording(self) -> None:
        if self.recording_state == RecordingState.RECORDING:
            self._transition(RecordingState.IDLE)

    # --- Pointer control ---

    def press(self, point: Vector2D) -> bool:
        """
        Handles a pointer press; dragging starts when it lands on the effector.

        Presses are ignored during playback, including paused playback.

        Returns:
            True if the arm is now following the pointer.
        """
        if self.recording_state in (RecordingState.PLAYING, RecordingState.PAUSED):
            return False
        if distance(point, self.end_effector_position) > self.grab_radius:
            return False
        self.is_following = True
        self.arm.reset_follow()
        self.move_pointer(point)
        return self.is_following

    def move_pointer(self, point: Optional[Vector2D]) -> None:
        """
        Handles pointer movement; while dragging the arm follows via IK.

        Reaching the target zone releases the drag and ends the recording.
        The first drag movement while idle starts recording, unless the
        motion has already reached the target.
        """
        self.pointer_position = point
        if point is None or not self.is_following:
            self.actual_target = None
            return

        if is_in_target_zone(self.end_effector_position, self.target_position, self.target_radius):
            self.is_following = False
            self.actual_target = None
            self.stop_recording()
            return

        solution = self.arm.follow(
            point, self.arm_config.shoulder_angle, self.arm_config.elbow_angle
        )
        if solution is None:
            return
        self.actual_target = solution.clamped_target
        self._apply_angles(solution.shoulder_angle, solution.elbow_angle)

        trajectory = self.current_trajectory
        if self.recording_state == RecordingState.IDLE and not (trajectory and trajectory.completed):
            self.start_recording()

    def release(self) -> None:
        self.is_following = False
        self.actual_target = None

    # --- Playback ---

    def start_playback(self, from_frame: Optional[int] = None) -> bool:
        """
        Plays the current trajectory.

        Without `from_frame` a paused playback resumes exactly where it froze;
        a playback that already reached the final frame restarts from 0.

        Returns:
            True if playback started.
        """
        trajectory = self.current_trajectory
        if self.recording_state == RecordingState.RECORDING:
            logger.warning("Cannot start playback while recording")
            return False
        if trajectory is None or not trajectory.frames:
            logger.warning("Nothing to play back")
            return False

        last_index = trajectory.frame_count - 1
        resume = (
            from_frame is None
            and self._playback.is_paused
            and self._playback.trajectory is trajectory
            and self.playback_frame < last_index
        )
        if from_frame is not None:
            self.playback_frame = max(0, min(from_frame, last_index))
        elif self.playback_frame >= last_index:
            self.playback_frame = 0

        self.is_following = False
        self._transition(RecordingState.PLAYING)
        # Restarting while already playing keeps the state; drop the old loop
        self._cancel_pending_tick()
        if resume:
            self._playback.resume()
        else:
            self._playback.start(trajectory, self.playback_frame)
        self._schedule(self._playback_tick)
        return True

    def stop_playback(self) -> None:
        """Freezes playback on the current frame (state becomes paused)."""
        if self.recording_state == RecordingState.PLAYING:
            self._transition(RecordingState.PAUSED)

    def seek(self, frame_index: int) -> Optional[int]:
        """
        Scrubs the timeline: moves the arm to the pose of `frame_index`.

        Returns:
            The clamped frame index, or None when there is nothing to seek in
            or the session is recording.
        """
        trajectory = self.current_trajectory
        if trajectory is None or not trajectory.frames:
            return None
        if self.recording_state == RecordingState.RECORDING:
            return None
        self._playback.trajectory = trajectory
        update = self._playback.seek(frame_index)
        self.playback_frame = update.frame_index
        self._emit(SessionEvent.PLAYBACK_FRAME)
        self._apply_angles(update.shoulder_angle, update.elbow_angle)
        return update.frame_index

    # --- Editing ---

    def reset_current_motion(self) -> bool:
        """
        Discards the current motion (undoable) and starts over.

        Returns:
            True if there was a motion to reset.
        """
        trajectory = self.current_trajectory
        if trajectory is None:
            return False
        self.history.record(trajectory)
        self.begin_motion(trajectory.metadata)
        logger.info("Current motion reset")
        return True

    def redraw_from_frame(self, frame_index: int) -> bool:
        """
        Truncates the motion after `frame_index` so it can be redrawn.

        The arm is placed at the kept final frame and the session goes idle;
        the next drag continues recording from there.

        Returns:
            False when `frame_index` is out of range (nothing changes).
        """
        trajectory = self.current_trajectory
        if trajectory is None:
            return False
        truncated = truncate_at(trajectory, frame_index)
        if truncated is None:
            return False

        self.history.record(trajectory)
        self._transition(RecordingState.IDLE)
        self.playback_frame = frame_index
        self._set_trajectory(truncated)
        frame = truncated.frames[-1]
        self._apply_angles(frame.shoulder_angle, frame.elbow_angle)
        logger.info(f"Redrawing from frame {frame_index}")
        return True

    def _restore(self, trajectory: MotionTrajectory) -> None:
        if self.recording_state in (RecordingState.RECORDING, RecordingState.PLAYING):
            self._transition(RecordingState.IDLE)
        self._smoothing_original = None
        self.playback_frame = 0
        self._set_trajectory(trajectory)

    def undo(self) -> bool:
        previous = self.history.undo(self.current_trajectory)
        if previous is None:
            return False
        self._restore(previous)
        return True

    def redo(self) -> bool:
        following = self.history.redo(self.current_trajectory)
        if following is None:
            return False
        self._restore(following)
        return True

    def complete_current_motion(self) -> Optional[MotionTrajectory]:
        """
        Hands over a completed motion and clears the session for the next one.

        Returns:
            The completed trajectory, or None if the current motion has not
            reached the target yet.
        """
        trajectory = self.current_trajectory
        if trajectory is None or not trajectory.completed:
            logger.warning("Cannot complete a motion that has not reached the target")
            return None
        self._transition(RecordingState.IDLE)
        self.history.clear()
        self._smoothing_original = None
        self.is_following = False
        self.playback_frame = 0
        self._set_trajectory(None)
        self._reset_arm()
        logger.info(
            f"Motion completed: {trajectory.frame_count} frames, {trajectory.total_time_ms:.0f} ms"
        )
        return trajectory

    # --- Smoothing preview ---

    def begin_smoothing(self) -> None:
        """
        Opens a smoothing preview on the current motion.

        Raises:
            SessionStateError: If the motion has fewer than three frames or a
                               recording/playback is running.
        """
        trajectory = self.current_trajectory
        if trajectory is None or trajectory.frame_count < const.GAUSSIAN_MIN_FRAMES:
            raise SessionStateError(
                "Not enough frames to smooth. Record a longer motion.",
                state=self.recording_state.value,
            )
        if self.recording_state in (RecordingState.RECORDING, RecordingState.PLAYING):
            raise SessionStateError(
                "Cannot smooth while recording or playing.", state=self.recording_state.value
            )
        self._smoothing_original = trajectory

    def preview_smoothing(
        self, strength: float, method: str = const.SMOOTHING_METHOD_GAUSSIAN
    ) -> MotionTrajectory:
        """Replaces the current motion with the original smoothed at `strength`."""
        if self._smoothing_original is None:
            raise SessionStateError("No smoothing preview is open.")
        smoothed = smooth_by_strength(self._smoothing_original, strength, method, self.arm)
        self._set_trajectory(smoothed)
        return smoothed

    def finish_smoothing(self, keep: bool = True) -> None:
        """
        Closes the preview, keeping the smoothed motion or restoring the original.

        A kept change is recorded in the undo history.
        """
        original = self._smoothing_original
        if original is None:
            return
        self._smoothing_original = None
        if not keep:
            self._set_trajectory(original)
        elif self.current_trajectory is not original:
            self.history.record(original)

    # --- Snapshot ---

    def to_dict(self, include_frames: bool = False) -> Dict[str, Any]:
        """Plain-data view of the session for transport layers."""
        pose = forward_kinematics(self.arm_config)
        trajectory = self.current_trajectory
        data: Dict[str, Any] = {
            "recording_state": self.recording_state.value,
            "shoulder_angle": self.arm_config.shoulder_angle,
            "elbow_angle": self.arm_config.elbow_angle,
            "elbow_position": pose.elbow_position.to_dict(),
            "end_effector_position": pose.end_effector_position.to_dict(),
            "target_position": self.target_position.to_dict(),
            "target_radius": self.target_radius,
            "is_following": self.is_following,
            "actual_target": self.actual_target.to_dict() if self.actual_target else None,
            "playback_frame": self.playback_frame,
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
            "is_smoothing": self.is_smoothing,
            "trajectory": None,
        }
        if trajectory is not None:
            if include_frames:
                data["trajectory"] = trajectory.to_dict()
            else:
                data["trajectory"] = {
                    "frame_count": trajectory.frame_count,
                    "completed": trajectory.completed,
                    "total_time_ms": trajectory.total_time_ms,
                    "metadata": dict(trajectory.metadata),
                }
        return data
