"""
Kinematics module for the arm motion library.

This module provides forward and inverse kinematics for a two-segment planar
arm with a fixed shoulder. Inverse kinematics never fails: targets outside the
reachable annulus are clamped onto its boundary along the shoulder->target
ray, so the end effector always ends up at the nearest reachable point.

For direct manipulation (dragging the end effector) both elbow
configurations are solved and the one closest to the current joint angles is
kept, which prevents the arm from visibly flipping between elbow-up and
elbow-down while the pointer moves.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import NamedTuple, Optional

from . import constants as const
from .exceptions import ConfigurationError
from .geometry import Vector2D, angle_to, distance, polar_to_cartesian

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArmConfig:
    """
    Complete state of the arm: fixed geometry plus the two joint angles.

    Attributes:
        shoulder_position: Fixed base position on the canvas.
        upper_arm_length: Length of the shoulder->elbow segment.
        lower_arm_length: Length of the elbow->effector segment.
        shoulder_angle: Angle of the upper arm from the +x axis (radians).
        elbow_angle: Angle of the lower arm relative to the upper arm (radians).
    """
    shoulder_position: Vector2D
    upper_arm_length: float
    lower_arm_length: float
    shoulder_angle: float
    elbow_angle: float

    def __post_init__(self):
        if self.upper_arm_length <= 0 or self.lower_arm_length <= 0:
            raise ConfigurationError("Arm segment lengths must be positive.")

    def with_angles(self, shoulder_angle: float, elbow_angle: float) -> "ArmConfig":
        """Returns a copy of this configuration with new joint angles."""
        return replace(self, shoulder_angle=shoulder_angle, elbow_angle=elbow_angle)


class ArmPose(NamedTuple):
    """Joint and effector positions produced by forward kinematics."""
    elbow_position: Vector2D
    end_effector_position: Vector2D


class IKSolution(NamedTuple):
    """Joint angles reaching `clamped_target`, the nearest reachable point."""
    shoulder_angle: float
    elbow_angle: float
    clamped_target: Vector2D


def forward_kinematics(config: ArmConfig) -> ArmPose:
    """
    Calculates the elbow and end-effector positions for a configuration.

    Args:
        config: The arm configuration.

    Returns:
        An ArmPose with the elbow and end-effector positions.
    """
    elbow_position = polar_to_cartesian(
        config.shoulder_position, config.shoulder_angle, config.upper_arm_length
    )
    # The elbow angle is relative to the upper arm
    absolute_lower_angle = config.shoulder_angle + config.elbow_angle
    end_effector_position = polar_to_cartesian(
        elbow_position, absolute_lower_angle, config.lower_arm_length
    )
    return ArmPose(elbow_position, end_effector_position)


def _clamped_acos(value: float) -> float:
    return math.acos(max(-1.0, min(1.0, value)))


def inverse_kinematics(
    shoulder_position: Vector2D,
    target_position: Vector2D,
    upper_arm_length: float,
    lower_arm_length: float,
    elbow_up: bool = True,
) -> IKSolution:
    """
    Calculates joint angles that place the end effector at a target.

    Unreachable targets are clamped onto the workspace boundary first: onto
    the max-reach circle when too far, onto the min-reach circle when too
    close. The solution always reaches the returned `clamped_target`.

    Args:
        shoulder_position: Fixed shoulder position.
        target_position: Desired end-effector position.
        upper_arm_length: Length of the upper arm segment.
        lower_arm_length: Length of the lower arm segment.
        elbow_up: Selects the elbow-up (True) or elbow-down (False) solution.

    Returns:
        An IKSolution with both joint angles and the clamped target.
    """
    dist = distance(shoulder_position, target_position)

    max_reach = upper_arm_length + lower_arm_length
    min_reach = abs(upper_arm_length - lower_arm_length)

    clamped_target = target_position
    if dist > max_reach:
        ray_angle = angle_to(shoulder_position, target_position)
        clamped_target = polar_to_cartesian(shoulder_position, ray_angle, max_reach)
        dist = max_reach
    elif dist < min_reach:
        ray_angle = angle_to(shoulder_position, target_position)
        clamped_target = polar_to_cartesian(shoulder_position, ray_angle, min_reach)
        dist = min_reach

    angle_to_target = angle_to(shoulder_position, clamped_target)

    # Law of cosines: interior angle between the two segments
    cos_interior = (
        upper_arm_length * upper_arm_length
        + lower_arm_length * lower_arm_length
        - dist * dist
    ) / (2 * upper_arm_length * lower_arm_length)
    interior_angle = _clamped_acos(cos_interior)

    # Relative rotation of the lower arm, as forward kinematics expects it
    elbow_angle = (math.pi - interior_angle) if elbow_up else -(math.pi - interior_angle)

    if dist > 0:
        cos_offset = (
            upper_arm_length * upper_arm_length
            + dist * dist
            - lower_arm_length * lower_arm_length
        ) / (2 * upper_arm_length * dist)
    else:
        # Only reachable with equal segment lengths: the arm folds onto itself
        cos_offset = 1.0
    shoulder_offset = _clamped_acos(cos_offset)

    shoulder_angle = (
        angle_to_target - shoulder_offset if elbow_up else angle_to_target + shoulder_offset
    )

    return IKSolution(shoulder_angle, elbow_angle, clamped_target)


def joint_distance(solution: IKSolution, shoulder_angle: float, elbow_angle: float) -> float:
    """Combined absolute joint change needed to move to `solution`."""
    return abs(solution.shoulder_angle - shoulder_angle) + abs(solution.elbow_angle - elbow_angle)


def solve_closest_configuration(
    shoulder_position: Vector2D,
    target_position: Vector2D,
    upper_arm_length: float,
    lower_arm_length: float,
    current_shoulder_angle: float,
    current_elbow_angle: float,
) -> IKSolution:
    """
    Solves both elbow configurations and returns the one nearest the current pose.

    The cost is |d_shoulder| + |d_elbow|. Elbow-up wins only when strictly
    cheaper, so exact ties resolve to elbow-down.
    """
    up = inverse_kinematics(
        shoulder_position, target_position, upper_arm_length, lower_arm_length, True
    )
    down = inverse_kinematics(
        shoulder_position, target_position, upper_arm_length, lower_arm_length, False
    )
    dist_up = joint_distance(up, current_shoulder_angle, current_elbow_angle)
    dist_down = joint_distance(down, current_shoulder_angle, current_elbow_angle)
    return up if dist_up < dist_down else down


def is_in_target_zone(point: Vector2D, target: Vector2D, radius: float) -> bool:
    """True when `point` lies within `radius` of `target` (boundary inclusive)."""
    return distance(point, target) <= radius


class TwoLinkArmPlanar:
    """
    A 2-DOF planar arm (RR configuration) with a fixed shoulder.

    Bundles the arm geometry with the kinematics functions above so callers
    do not have to thread lengths and shoulder position through every call.
    An optional `movement_threshold` lets `follow()` skip re-solving when the
    pointer has barely moved since the last solved target.
    """

    def __init__(
        self,
        upper_arm_length: float = const.UPPER_ARM_LENGTH,
        lower_arm_length: float = const.LOWER_ARM_LENGTH,
        shoulder_position: Optional[Vector2D] = None,
        movement_threshold: float = 0.0,
    ):
        """
        Initializes a TwoLinkArmPlanar model.

        Args:
            upper_arm_length: Length of the first segment (shoulder to elbow).
            lower_arm_length: Length of the second segment (elbow to effector).
            shoulder_position: Fixed base position. Defaults to the canvas shoulder.
            movement_threshold: Minimum pointer displacement (canvas units) that
                                `follow()` treats as significant.

        Raises:
            ConfigurationError: If a segment length is not positive or the
                                threshold is negative.
        """
        if upper_arm_length <= 0 or lower_arm_length <= 0:
            raise ConfigurationError("Link lengths must be positive.")
        if movement_threshold < 0:
            raise ConfigurationError("movement_threshold cannot be negative.")

        self.upper_arm_length = float(upper_arm_length)
        self.lower_arm_length = float(lower_arm_length)
        self.shoulder_position = shoulder_position or Vector2D(const.SHOULDER_X, const.SHOULDER_Y)
        self.movement_threshold = float(movement_threshold)
        self._last_target: Optional[Vector2D] = None

        logger.info(
            f"Initialized TwoLinkArmPlanar: Upper={self.upper_arm_length}, "
            f"Lower={self.lower_arm_length}, Shoulder=({self.shoulder_position.x}, "
            f"{self.shoulder_position.y})"
        )

    @property
    def max_reach(self) -> float:
        return self.upper_arm_length + self.lower_arm_length

    @property
    def min_reach(self) -> float:
        return abs(self.upper_arm_length - self.lower_arm_length)

    def config(self, shoulder_angle: float, elbow_angle: float) -> ArmConfig:
        """Builds an ArmConfig for this geometry at the given joint angles."""
        return ArmConfig(
            shoulder_position=self.shoulder_position,
            upper_arm_length=self.upper_arm_length,
            lower_arm_length=self.lower_arm_length,
            shoulder_angle=shoulder_angle,
            elbow_angle=elbow_angle,
        )

    def forward_kinematics(self, shoulder_angle: float, elbow_angle: float) -> ArmPose:
        return forward_kinematics(self.config(shoulder_angle, elbow_angle))

    def inverse_kinematics(self, target: Vector2D, elbow_up: bool = True) -> IKSolution:
        return inverse_kinematics(
            self.shoulder_position, target, self.upper_arm_length, self.lower_arm_length, elbow_up
        )

    def solve_closest(
        self, target: Vector2D, shoulder_angle: float, elbow_angle: float
    ) -> IKSolution:
        return solve_closest_configuration(
            self.shoulder_position,
            target,
            self.upper_arm_length,
            self.lower_arm_length,
            shoulder_angle,
            elbow_angle,
        )

    def follow(
        self, target: Vector2D, shoulder_angle: float, elbow_angle: float
    ) -> Optional[IKSolution]:
        """
        Continuity-preserving IK for pointer dragging.

        Returns None when the target moved less than `movement_threshold`
        since the last solved target; otherwise solves and remembers it.
        """
        if (
            self._last_target is not None
            and self.movement_threshold > 0
            and distance(self._last_target, target) < self.movement_threshold
        ):
            return None
        self._last_target = target
        return self.solve_closest(target, shoulder_angle, elbow_angle)

    def reset_follow(self) -> None:
        """Forgets the last solved target so the next `follow()` always solves."""
        self._last_target = None

    def get_parameters(self) -> dict:
        """Return the parameters of this arm model."""
        return {
            "type": self.__class__.__name__,
            "upper_arm_length": self.upper_arm_length,
            "lower_arm_length": self.lower_arm_length,
            "shoulder_position": self.shoulder_position.to_dict(),
            "movement_threshold": self.movement_threshold,
        }

    def __repr__(self) -> str:
        params = self.get_parameters()
        param_str = ", ".join(f"{k}={v}" for k, v in params.items() if k != "type")
        return f"{self.__class__.__name__}({param_str})"
