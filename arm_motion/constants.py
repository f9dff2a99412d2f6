# arm_motion/constants.py
"""
Constants for the arm motion library.
Defaults for the drawing canvas, arm geometry, target zone, capture timing
and smoothing ranges. All distances are canvas pixels, all angles radians,
all times milliseconds unless the name says otherwise.
"""
import math

# Canvas
CANVAS_WIDTH = 800
CANVAS_HEIGHT = 600

# Arm geometry
UPPER_ARM_LENGTH = 150.0
LOWER_ARM_LENGTH = 120.0
SHOULDER_X = 200.0
SHOULDER_Y = CANVAS_HEIGHT / 2
INITIAL_SHOULDER_ANGLE = -math.radians(80)  # Upper arm pointing up
INITIAL_ELBOW_ANGLE = math.radians(160)     # Relative to the upper arm

# Target zone
TARGET_RADIUS = 20.0
TARGET_OFFSET_X = 240.0  # Inside the 270 px max reach
TARGET_OFFSET_Y = 0.0

# Pointer interaction
GRAB_RADIUS = 20.0  # Hit box around the end effector for starting a drag

# Capture / playback timing
FRAME_RATE_HZ = 60
FRAME_INTERVAL_MS = 1000.0 / FRAME_RATE_HZ
ANGLE_CHANGE_EPSILON = 1e-4  # Minimum joint change (rad) that produces a new frame
PLAYBACK_SPEED = 1.0

# Smoothing
SMOOTHING_METHOD_GAUSSIAN = "gaussian"
SMOOTHING_METHOD_MOVING_AVERAGE = "moving_average"
SMOOTHING_METHODS = (SMOOTHING_METHOD_GAUSSIAN, SMOOTHING_METHOD_MOVING_AVERAGE)

SMOOTHING_STRENGTH_MIN = 0.0
SMOOTHING_STRENGTH_MAX = 100.0
MIN_WINDOW_SIZE = 1
MAX_WINDOW_SIZE = 15
MIN_SIGMA = 0.5
MAX_SIGMA = 5.0
DEFAULT_WINDOW_SIZE = 5
DEFAULT_SIGMA = 2.0
GAUSSIAN_MIN_FRAMES = 3
