# arm_motion/geometry.py
"""
Planar geometry primitives shared by the kinematics and trajectory modules.
"""
import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Vector2D:
    """Immutable 2D point or vector in canvas coordinates."""
    x: float
    y: float

    def __add__(self, other: "Vector2D") -> "Vector2D":
        return Vector2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vector2D") -> "Vector2D":
        return Vector2D(self.x - other.x, self.y - other.y)

    def __mul__(self, factor: float) -> "Vector2D":
        return Vector2D(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict) -> "Vector2D":
        return cls(float(data["x"]), float(data["y"]))


def distance(p1: Vector2D, p2: Vector2D) -> float:
    """Euclidean distance between two points."""
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    return math.sqrt(dx * dx + dy * dy)


def angle_to(p1: Vector2D, p2: Vector2D) -> float:
    """Angle of the ray from p1 to p2, in (-pi, pi]."""
    return math.atan2(p2.y - p1.y, p2.x - p1.x)


def polar_to_cartesian(origin: Vector2D, angle: float, length: float) -> Vector2D:
    """Point at `length` from `origin` in direction `angle`."""
    return Vector2D(
        origin.x + math.cos(angle) * length,
        origin.y + math.sin(angle) * length,
    )


def normalize_angle(angle: float) -> float:
    """Reduce an angle to (-pi, pi] by repeated 2*pi shifts."""
    while angle > math.pi:
        angle -= 2 * math.pi
    while angle <= -math.pi:
        angle += 2 * math.pi
    return angle


def lerp_angle(a: float, b: float, t: float) -> float:
    """
    Interpolate between two angles along the shortest arc.

    Both angles are normalized first, so interpolating 3.0 -> -3.0 passes
    through +/-pi rather than through 0.
    """
    a = normalize_angle(a)
    b = normalize_angle(b)

    diff = b - a
    if diff > math.pi:
        diff -= 2 * math.pi
    if diff < -math.pi:
        diff += 2 * math.pi

    return a + diff * t


def lerp_vector(v1: Vector2D, v2: Vector2D, t: float) -> Vector2D:
    """Linear interpolation between two vectors."""
    return Vector2D(
        v1.x + (v2.x - v1.x) * t,
        v1.y + (v2.y - v1.y) * t,
    )
