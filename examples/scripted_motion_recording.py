"""
Example: Recording, smoothing and replaying a scripted arm motion.

This script drives a `MotionSession` the way a pointer would. It shows:
1. Creating a session on the asyncio frame scheduler.
2. Grabbing the end effector and dragging it along a curved path to the
   target zone, which records a trajectory.
3. Smoothing the recorded trajectory with a Gaussian preview.
4. Replaying the result in real time.
5. Writing the trajectory as CSV.

Run it directly: `python examples/scripted_motion_recording.py`
"""
import asyncio
import logging
import math
from pathlib import Path

from arm_motion import MotionSession, RecordingState, Vector2D, lerp_vector
from arm_motion_studio.export import save_trajectory

# --- Configuration ---
LOG_LEVEL = logging.INFO

DRAG_STEPS = 60             # Pointer updates along the path
POINTER_INTERVAL_S = 1 / 60  # Time between pointer updates
ARC_HEIGHT = 80.0           # Sideways bulge of the path, in canvas pixels
SMOOTHING_STRENGTH = 40.0
OUTPUT_FILE = Path("scripted_motion.csv")

# --- Logging Setup ---
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ScriptedMotionExample")


def arc_point(start: Vector2D, end: Vector2D, t: float) -> Vector2D:
    """Point at fraction `t` along a path from start to end that bows upwards."""
    base = lerp_vector(start, end, t)
    return Vector2D(base.x, base.y - math.sin(math.pi * t) * ARC_HEIGHT)


async def main():
    """
    Main asynchronous function: record, smooth, replay and save one motion.
    """
    session = MotionSession()
    session.begin_motion({"promptType": "arc", "promptText": "Reach over the obstacle"})

    # --- 1. Grab the end effector ---
    start = session.end_effector_position
    if not session.press(start):
        logger.error("Could not grab the end effector.")
        return
    logger.info(f"Grabbed effector at ({start.x:.1f}, {start.y:.1f})")

    # --- 2. Drag towards the target until the session stops recording ---
    for step in range(1, DRAG_STEPS + 1):
        session.move_pointer(arc_point(start, session.target_position, step / DRAG_STEPS))
        await asyncio.sleep(POINTER_INTERVAL_S)
        if session.recording_state == RecordingState.IDLE:
            break
    session.release()
    session.stop_recording()

    trajectory = session.current_trajectory
    logger.info(
        f"Recorded {trajectory.frame_count} frames over {trajectory.total_time_ms:.0f} ms "
        f"(completed: {trajectory.completed})"
    )

    # --- 3. Smooth the recording ---
    if trajectory.frame_count >= 3:
        session.begin_smoothing()
        smoothed = session.preview_smoothing(SMOOTHING_STRENGTH)
        session.finish_smoothing(keep=True)
        logger.info(f"Kept smoothing at strength {SMOOTHING_STRENGTH} ({smoothed.frame_count} frames)")

    # --- 4. Replay in real time ---
    if session.start_playback(0):
        while session.recording_state == RecordingState.PLAYING:
            await asyncio.sleep(0.05)
        logger.info(f"Playback finished at frame {session.playback_frame}")

    # --- 5. Save ---
    save_trajectory(session.current_trajectory, OUTPUT_FILE, participant_id="demo", session_id="example")
    logger.info(f"Trajectory written to {OUTPUT_FILE.resolve()}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Example interrupted by user.")
