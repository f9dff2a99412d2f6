"""
CSV and ZIP export/import for recorded motions.

A trajectory CSV has one row per frame:

    participantId, sessionId, <metadata columns>, frameIndex, timestamp,
    shoulderAngle, elbowAngle, endEffectorX, endEffectorY, elbowX, elbowY

A session summary CSV has one row per trajectory. `build_zip()` bundles the
summary with every trajectory CSV of a session into a single archive.
"""

import csv
import io
import json
import logging
import random
import string
import time
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from arm_motion.data_structures import MotionFrame, MotionTrajectory
from arm_motion.exceptions import TrajectoryFormatError
from arm_motion.geometry import Vector2D

logger = logging.getLogger(__name__)

ID_COLUMNS = ("participantId", "sessionId")
FRAME_COLUMNS = (
    "frameIndex",
    "timestamp",
    "shoulderAngle",
    "elbowAngle",
    "endEffectorX",
    "endEffectorY",
    "elbowX",
    "elbowY",
)
SUMMARY_COLUMNS = ("attemptCount", "totalTimeMs", "frameCount", "completed")

# Metadata that only appears in the session summary
SUMMARY_ONLY_METADATA = ("attemptCount",)

_ID_ALPHABET = string.ascii_lowercase + string.digits
_BASE36_DIGITS = string.digits + string.ascii_lowercase


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _rows_to_csv(headers: Sequence[str], rows: Iterable[Dict[str, Any]]) -> str:
    """Writes rows as CSV text; fields holding a comma or quote get quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_format_value(row.get(header)) for header in headers])
    return buffer.getvalue()


def _metadata_columns(trajectories: Iterable[MotionTrajectory]) -> List[str]:
    columns: List[str] = []
    for trajectory in trajectories:
        for key in trajectory.metadata:
            if key not in columns and key not in SUMMARY_ONLY_METADATA:
                columns.append(key)
    return columns


def trajectory_to_csv(trajectory: MotionTrajectory, participant_id: str, session_id: str) -> str:
    """Serializes one trajectory as frame rows."""
    metadata_columns = _metadata_columns([trajectory])
    headers = list(ID_COLUMNS) + metadata_columns + list(FRAME_COLUMNS)

    rows = []
    for index, frame in enumerate(trajectory.frames):
        row: Dict[str, Any] = {"participantId": participant_id, "sessionId": session_id}
        for key in metadata_columns:
            row[key] = trajectory.metadata.get(key)
        row.update(
            frameIndex=index,
            timestamp=frame.timestamp,
            shoulderAngle=frame.shoulder_angle,
            elbowAngle=frame.elbow_angle,
            endEffectorX=frame.end_effector_position.x,
            endEffectorY=frame.end_effector_position.y,
            elbowX=frame.elbow_position.x,
            elbowY=frame.elbow_position.y,
        )
        rows.append(row)
    return _rows_to_csv(headers, rows)


def session_to_csv(
    trajectories: Sequence[MotionTrajectory],
    participant_id: str,
    session_id: str,
    prompt_set: Optional[str] = None,
) -> str:
    """Serializes a summary row per trajectory."""
    metadata_columns = _metadata_columns(trajectories)
    headers = list(ID_COLUMNS) + ["promptSet"] + metadata_columns + list(SUMMARY_COLUMNS)

    rows = []
    for trajectory in trajectories:
        row: Dict[str, Any] = {
            "participantId": participant_id,
            "sessionId": session_id,
            "promptSet": prompt_set,
        }
        for key in metadata_columns:
            row[key] = trajectory.metadata.get(key)
        row.update(
            attemptCount=trajectory.metadata.get("attemptCount", 1),
            totalTimeMs=trajectory.total_time_ms,
            frameCount=trajectory.frame_count,
            completed=trajectory.completed,
        )
        rows.append(row)
    return _rows_to_csv(headers, rows)


def set_indicator(prompt_set: Optional[str]) -> str:
    """File-name tag for a prompt set: 'M' for metaphor prompts, 'L' otherwise."""
    return "M" if prompt_set == "metaphor" else "L"


def build_zip(
    trajectories: Sequence[MotionTrajectory],
    participant_id: str,
    session_id: str,
    prompt_set: Optional[str] = None,
) -> bytes:
    """
    Bundles a session summary and every trajectory CSV into ZIP bytes.

    Archive members are named `session_{participant}_{set}_{session}.csv`
    and `trajectory_{participant}_{set}_{promptType}.csv`. Trajectories
    without a prompt type are named by position; a repeated name gets the
    trajectory's position appended.
    """
    indicator = set_indicator(prompt_set)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(
            f"session_{participant_id}_{indicator}_{session_id}.csv",
            session_to_csv(trajectories, participant_id, session_id, prompt_set),
        )
        used_names = set()
        for index, trajectory in enumerate(trajectories):
            label = trajectory.metadata.get("promptType") or str(index + 1)
            name = f"trajectory_{participant_id}_{indicator}_{label}.csv"
            if name in used_names:
                name = f"trajectory_{participant_id}_{indicator}_{label}_{index + 1}.csv"
            used_names.add(name)
            archive.writestr(name, trajectory_to_csv(trajectory, participant_id, session_id))

    logger.info(f"Built ZIP for session {session_id} with {len(trajectories)} trajectories")
    return buffer.getvalue()


def _parse_float(row: Dict[str, str], column: str, line_number: int) -> float:
    try:
        return float(row[column])
    except (TypeError, ValueError) as exc:
        raise TrajectoryFormatError(
            f"Invalid value {row.get(column)!r} in column '{column}'", line_number=line_number
        ) from exc


def import_trajectory_csv(text: str) -> MotionTrajectory:
    """
    Parses a trajectory CSV back into a trajectory.

    The imported motion is marked completed; its start and target positions
    are the first and last effector positions. Columns other than ids and
    frame data become metadata (taken from the first row).

    Raises:
        TrajectoryFormatError: If a frame column is missing, a value is not
                               numeric, or there are no frame rows.
    """
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise TrajectoryFormatError("CSV has no header row")
    missing = [c for c in FRAME_COLUMNS if c != "frameIndex" and c not in reader.fieldnames]
    if missing:
        raise TrajectoryFormatError(f"CSV is missing columns: {', '.join(missing)}", line_number=1)

    frames: List[MotionFrame] = []
    metadata: Dict[str, Any] = {}
    for row in reader:
        if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
            continue
        line_number = reader.line_num
        if not frames:
            metadata = {
                key: value
                for key, value in row.items()
                if key is not None and key not in ID_COLUMNS and key not in FRAME_COLUMNS
            }
        frames.append(
            MotionFrame(
                timestamp=_parse_float(row, "timestamp", line_number),
                shoulder_angle=_parse_float(row, "shoulderAngle", line_number),
                elbow_angle=_parse_float(row, "elbowAngle", line_number),
                elbow_position=Vector2D(
                    _parse_float(row, "elbowX", line_number),
                    _parse_float(row, "elbowY", line_number),
                ),
                end_effector_position=Vector2D(
                    _parse_float(row, "endEffectorX", line_number),
                    _parse_float(row, "endEffectorY", line_number),
                ),
            )
        )

    if not frames:
        raise TrajectoryFormatError("CSV contains no frames")

    frames.sort(key=lambda f: f.timestamp)
    logger.info(f"Imported trajectory with {len(frames)} frames")
    return MotionTrajectory(
        frames=tuple(frames),
        start_position=frames[0].end_effector_position,
        target_position=frames[-1].end_effector_position,
        completed=True,
        total_time_ms=frames[-1].timestamp,
        metadata=metadata,
    )


def load_trajectory(path: Path) -> MotionTrajectory:
    """Reads a trajectory from a `.csv` export or a `.json` dump."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".csv":
        return import_trajectory_csv(text)
    try:
        return MotionTrajectory.from_dict(json.loads(text))
    except (ValueError, KeyError, TypeError) as exc:
        raise TrajectoryFormatError(f"Invalid trajectory JSON in {path}: {exc}") from exc


def save_trajectory(
    trajectory: MotionTrajectory,
    path: Path,
    participant_id: str = "",
    session_id: str = "",
) -> None:
    """Writes a trajectory as CSV (for `.csv` paths) or JSON."""
    path = Path(path)
    if path.suffix.lower() == ".csv":
        path.write_text(trajectory_to_csv(trajectory, participant_id, session_id), encoding="utf-8")
    else:
        path.write_text(json.dumps(trajectory.to_dict(), indent=2), encoding="utf-8")
    logger.info(f"Saved trajectory ({trajectory.frame_count} frames) to {path}")


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def _random_suffix(length: int) -> str:
    return "".join(random.choices(_ID_ALPHABET, k=length))


def generate_session_id() -> str:
    """Unique session id: `session_{epoch ms}_{7 random chars}`."""
    return f"session_{int(time.time() * 1000)}_{_random_suffix(7)}"


def generate_participant_id() -> str:
    """Random participant id for anonymous users: `user_{base36 ms}_{9 chars}`."""
    return f"user_{_base36(int(time.time() * 1000))}_{_random_suffix(9)}"
