"""
Trajectory smoothing.

Both smoothing transforms are pure: they return a new trajectory and leave
the input untouched. Trajectories below a transform's size floor come back
as the very same object, so smoothing a short motion is a no-op rather than
an error.

Note the two transforms treat positions differently. The Gaussian variant
recomputes elbow and effector positions from the smoothed angles; the
moving-average variant keeps the positions captured at record time. Callers
that need consistent positions after a moving average should recompute them
with forward kinematics.
"""

import logging
import math
from typing import List, Optional

from . import constants as const
from .data_structures import MotionFrame, MotionTrajectory
from .exceptions import ConfigurationError
from .kinematics import TwoLinkArmPlanar

logger = logging.getLogger(__name__)


def _window_bounds(index: int, half_window: int, frame_count: int):
    return max(0, index - half_window), min(frame_count - 1, index + half_window)


def smooth_moving_average(
    trajectory: MotionTrajectory, window_size: int = const.DEFAULT_WINDOW_SIZE
) -> MotionTrajectory:
    """
    Applies a moving average to the joint angles.

    Args:
        trajectory: The trajectory to smooth.
        window_size: Number of frames in the symmetric window; the window is
                     clipped at both ends of the trajectory.

    Returns:
        A smoothed copy, or `trajectory` itself when it has fewer than
        `window_size` frames. Positions are left as captured.

    Raises:
        ConfigurationError: If `window_size` is smaller than 1.
    """
    frames = trajectory.frames
    if window_size < 1:
        raise ConfigurationError(f"Moving average window must be at least 1, got {window_size}.")
    if len(frames) < window_size:
        return trajectory

    half_window = window_size // 2
    smoothed: List[MotionFrame] = []
    for index, frame in enumerate(frames):
        start, end = _window_bounds(index, half_window, len(frames))
        count = end - start + 1
        shoulder_sum = sum(frames[i].shoulder_angle for i in range(start, end + 1))
        elbow_sum = sum(frames[i].elbow_angle for i in range(start, end + 1))
        smoothed.append(
            MotionFrame(
                timestamp=frame.timestamp,
                shoulder_angle=shoulder_sum / count,
                elbow_angle=elbow_sum / count,
                elbow_position=frame.elbow_position,
                end_effector_position=frame.end_effector_position,
            )
        )

    logger.debug(f"Moving average (window={window_size}) applied to {len(frames)} frames")
    return trajectory.with_frames(smoothed, total_time_ms=trajectory.total_time_ms)


def gaussian_window_size(sigma: float) -> int:
    """Window covering +/- 3 sigma: 2*ceil(3*sigma) + 1 frames."""
    return math.ceil(sigma * 3) * 2 + 1


def smooth_gaussian(
    trajectory: MotionTrajectory,
    sigma: float = const.DEFAULT_SIGMA,
    arm: Optional[TwoLinkArmPlanar] = None,
) -> MotionTrajectory:
    """
    Applies Gaussian-weighted smoothing to the joint angles.

    Neighbours at offset d are weighted exp(-d^2 / (2 sigma^2)). Elbow and
    effector positions are recomputed from the smoothed angles so they stay
    consistent with them.

    Args:
        trajectory: The trajectory to smooth.
        sigma: Standard deviation of the kernel, in frames. Must be positive.
        arm: Arm geometry used to recompute positions. Defaults to the
             standard canvas arm.

    Returns:
        A smoothed copy, or `trajectory` itself when it has fewer than three
        frames.

    Raises:
        ConfigurationError: If sigma is not positive.
    """
    frames = trajectory.frames
    if len(frames) < const.GAUSSIAN_MIN_FRAMES:
        return trajectory
    if sigma <= 0:
        raise ConfigurationError(f"Gaussian sigma must be positive, got {sigma}.")

    if arm is None:
        arm = TwoLinkArmPlanar()

    half_window = gaussian_window_size(sigma) // 2
    two_sigma_sq = 2 * sigma * sigma
    smoothed: List[MotionFrame] = []
    for index, frame in enumerate(frames):
        start, end = _window_bounds(index, half_window, len(frames))
        shoulder_sum = 0.0
        elbow_sum = 0.0
        weight_sum = 0.0
        for i in range(start, end + 1):
            offset = i - index
            weight = math.exp(-(offset * offset) / two_sigma_sq)
            shoulder_sum += frames[i].shoulder_angle * weight
            elbow_sum += frames[i].elbow_angle * weight
            weight_sum += weight

        shoulder_angle = shoulder_sum / weight_sum
        elbow_angle = elbow_sum / weight_sum
        pose = arm.forward_kinematics(shoulder_angle, elbow_angle)
        smoothed.append(
            MotionFrame(
                timestamp=frame.timestamp,
                shoulder_angle=shoulder_angle,
                elbow_angle=elbow_angle,
                elbow_position=pose.elbow_position,
                end_effector_position=pose.end_effector_position,
            )
        )

    logger.debug(f"Gaussian smoothing (sigma={sigma:.2f}) applied to {len(frames)} frames")
    return trajectory.with_frames(smoothed, total_time_ms=trajectory.total_time_ms)


def _clamp_strength(strength: float) -> float:
    return max(const.SMOOTHING_STRENGTH_MIN, min(const.SMOOTHING_STRENGTH_MAX, strength))


def strength_to_window_size(strength: float) -> int:
    """Maps strength 0..100 onto a moving-average window of 1..15 frames."""
    strength = _clamp_strength(strength)
    span = const.MAX_WINDOW_SIZE - const.MIN_WINDOW_SIZE
    return max(const.MIN_WINDOW_SIZE, math.floor(const.MIN_WINDOW_SIZE + (strength / 100) * span))


def strength_to_sigma(strength: float) -> float:
    """Maps strength 0..100 onto a Gaussian sigma of 0.5..5.0 frames."""
    strength = _clamp_strength(strength)
    return const.MIN_SIGMA + (strength / 100) * (const.MAX_SIGMA - const.MIN_SIGMA)


def smooth_by_strength(
    trajectory: MotionTrajectory,
    strength: float,
    method: str = const.SMOOTHING_METHOD_GAUSSIAN,
    arm: Optional[TwoLinkArmPlanar] = None,
) -> MotionTrajectory:
    """
    Smooths `trajectory` using a user-facing strength in [0, 100].

    Strength 0 is the identity and returns `trajectory` itself.

    Raises:
        ConfigurationError: If `method` is not a known smoothing method.
    """
    if method not in const.SMOOTHING_METHODS:
        raise ConfigurationError(
            f"Unknown smoothing method '{method}'. Expected one of {const.SMOOTHING_METHODS}."
        )
    if _clamp_strength(strength) <= 0:
        return trajectory
    if method == const.SMOOTHING_METHOD_MOVING_AVERAGE:
        return smooth_moving_average(trajectory, strength_to_window_size(strength))
    return smooth_gaussian(trajectory, strength_to_sigma(strength), arm)
