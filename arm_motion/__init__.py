"""
Arm Motion Kinematics and Trajectory Library
============================================

This library provides the kinematics and trajectory engine for recording
expressive motions of a two-segment planar arm: forward and inverse
kinematics with workspace clamping and elbow continuity, timestamped frame
capture, real-time playback, smoothing, and trajectory editing with
undo/redo. A MotionSession ties these together for an interactive front end.
"""

# Import the constants module and alias it as 'const' for patterned access
from . import constants as const

from .geometry import (
    Vector2D,
    distance,
    angle_to,
    polar_to_cartesian,
    normalize_angle,
    lerp_angle,
    lerp_vector,
)

from .kinematics import (
    ArmConfig,
    ArmPose,
    IKSolution,
    TwoLinkArmPlanar,
    forward_kinematics,
    inverse_kinematics,
    solve_closest_configuration,
    is_in_target_zone,
)

from .data_structures import MotionFrame, MotionTrajectory
from .recording import CaptureController, RecordingState
from .playback import PlaybackController, PlaybackUpdate, find_frame_index
from .smoothing import (
    smooth_moving_average,
    smooth_gaussian,
    smooth_by_strength,
    strength_to_window_size,
    strength_to_sigma,
)
from .editing import TrajectoryHistory, truncate_at, update_completion
from .scheduler import FrameScheduler, AsyncioFrameScheduler
from .session import MotionSession, SessionEvent

from .exceptions import (
    ArmMotionError,
    ConfigurationError,
    KinematicsError,
    TrajectoryError,
    TrajectoryFormatError,
    SessionStateError,
)

__version__ = "0.3.0"

__all__ = [
    "const",

    # Geometry
    "Vector2D",
    "distance",
    "angle_to",
    "polar_to_cartesian",
    "normalize_angle",
    "lerp_angle",
    "lerp_vector",

    # Kinematics
    "ArmConfig",
    "ArmPose",
    "IKSolution",
    "TwoLinkArmPlanar",
    "forward_kinematics",
    "inverse_kinematics",
    "solve_closest_configuration",
    "is_in_target_zone",

    # Trajectories, capture and playback
    "MotionFrame",
    "MotionTrajectory",
    "CaptureController",
    "RecordingState",
    "PlaybackController",
    "PlaybackUpdate",
    "find_frame_index",

    # Smoothing and editing
    "smooth_moving_average",
    "smooth_gaussian",
    "smooth_by_strength",
    "strength_to_window_size",
    "strength_to_sigma",
    "TrajectoryHistory",
    "truncate_at",
    "update_completion",

    # Scheduling and session
    "FrameScheduler",
    "AsyncioFrameScheduler",
    "MotionSession",
    "SessionEvent",

    # Exceptions
    "ArmMotionError",
    "ConfigurationError",
    "KinematicsError",
    "TrajectoryError",
    "TrajectoryFormatError",
    "SessionStateError",
]
