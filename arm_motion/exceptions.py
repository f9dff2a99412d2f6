# arm_motion/exceptions.py
"""
Custom exceptions for the arm motion library.
"""


class ArmMotionError(Exception):
    """Base exception class for all arm motion library errors."""
    def __init__(self, message, *args, frame_index=None, state=None):
        super().__init__(message, *args)
        self.message = message
        self.frame_index = frame_index
        self.state = state

    def __str__(self):
        base_message = super().__str__()

        details = []
        if self.frame_index is not None:
            details.append(f"Frame: {self.frame_index}")
        if self.state is not None:
            details.append(f"State: {self.state}")

        if details:
            return f"{base_message} ({', '.join(details)})"
        return base_message


class ConfigurationError(ArmMotionError):
    """Errors related to arm geometry, scheduler or session configuration."""



class KinematicsError(ArmMotionError):
    """Errors related to malformed kinematics input."""



class TrajectoryError(ArmMotionError):
    """Errors related to trajectory data."""



class TrajectoryFormatError(TrajectoryError):
    """Raised when serialized trajectory data cannot be parsed."""

    def __init__(self, message, line_number=None):
        super().__init__(message)
        self.line_number = line_number

    def __str__(self):
        if self.line_number is not None:
            return f"{self.message} - line {self.line_number}"
        return self.message


class SessionStateError(ArmMotionError):
    """An operation was requested in a session state that does not allow it."""

