"""
HTTP server exposing a motion session.

Provides a REST API that lets a browser front end or a script drive a
MotionSession: pointer events, recording, playback, timeline seek, editing,
smoothing preview, stateless FK/IK queries and CSV/ZIP export of the
completed motions.
"""

import logging
import math
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from arm_motion import constants as const
from arm_motion.data_structures import MotionTrajectory
from arm_motion.exceptions import (
    ArmMotionError,
    ConfigurationError,
    KinematicsError,
    SessionStateError,
    TrajectoryFormatError,
)
from arm_motion.geometry import Vector2D
from arm_motion.session import MotionSession

from . import __version__
from .export import (
    build_zip,
    generate_participant_id,
    generate_session_id,
    import_trajectory_csv,
    set_indicator,
    trajectory_to_csv,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ConfigurationError: 400,
    KinematicsError: 422,
    TrajectoryFormatError: 422,
    SessionStateError: 409,
}


# Pydantic Models for Request Validation
class PointPayload(BaseModel):
    x: float
    y: float


class PointerMovePayload(BaseModel):
    x: Optional[float] = None
    y: Optional[float] = None


class MotionPayload(BaseModel):
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ImportPayload(BaseModel):
    csv: str


class PlaybackPayload(BaseModel):
    from_frame: Optional[int] = None


class FramePayload(BaseModel):
    frame_index: int


class SmoothingPreviewPayload(BaseModel):
    strength: float = Field(ge=const.SMOOTHING_STRENGTH_MIN, le=const.SMOOTHING_STRENGTH_MAX)
    method: str = const.SMOOTHING_METHOD_GAUSSIAN


class SmoothingFinishPayload(BaseModel):
    keep: bool = True


class ForwardKinematicsPayload(BaseModel):
    shoulder_angle: float
    elbow_angle: float


class InverseKinematicsPayload(BaseModel):
    x: float
    y: float
    elbow_up: Optional[bool] = None
    current_shoulder_angle: Optional[float] = None
    current_elbow_angle: Optional[float] = None


def _checked_point(x: float, y: float) -> Vector2D:
    if not (math.isfinite(x) and math.isfinite(y)):
        raise KinematicsError(f"Point coordinates must be finite, got ({x}, {y}).")
    return Vector2D(x, y)


def error_status_code(exc: ArmMotionError) -> int:
    """HTTP status for a library error; the most specific mapped class wins."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 400


class SessionHTTPServer:
    """
    HTTP server wrapping one MotionSession.

    Completed motions handed over by `/motion/complete` are kept in
    `completed_motions` for export.
    """

    def __init__(
        self,
        session: MotionSession,
        port: int = 8765,
        host: str = "127.0.0.1",
        config_manager=None,
        participant_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ):
        """
        Initialize the session server.

        Args:
            session: The MotionSession to expose
            port: Port to bind server to
            host: Host address to bind to
            config_manager: Optional configuration manager for profile listing
            participant_id: Participant id used in exports (generated if None)
            session_id: Session id used in exports (generated if None)
        """
        self.session = session
        self.config_manager = config_manager
        self.port = port
        self.host = host
        self.participant_id = participant_id or generate_participant_id()
        self.session_id = session_id or generate_session_id()
        self.completed_motions: List[MotionTrajectory] = []

        self.app = FastAPI(
            title="Arm Motion Studio API",
            description="Drive an arm motion recording session over HTTP",
            version=__version__,
            docs_url="/docs",
            redoc_url="/redoc",
        )

        # Add CORS middleware for browser access
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._setup_routes()

    def _state(self, success: bool = True, **extra: Any) -> Dict[str, Any]:
        result = {"success": success, "session": self.session.to_dict()}
        result.update(extra)
        return result

    def _setup_routes(self):
        """Setup API routes"""
        app = self.app
        session = self.session

        @app.exception_handler(ArmMotionError)
        async def arm_motion_error_handler(request: Request, exc: ArmMotionError):
            status_code = error_status_code(exc)
            logger.warning(f"{request.method} {request.url.path} rejected ({status_code}): {exc}")
            return JSONResponse(
                status_code=status_code,
                content={"error": type(exc).__name__, "detail": str(exc)},
            )

        @app.get("/", summary="API information")
        async def root():
            """Get API information and available endpoints"""
            return {
                "name": "Arm Motion Studio API",
                "version": __version__,
                "participant_id": self.participant_id,
                "session_id": self.session_id,
                "endpoints": {
                    "/session": "Get session state",
                    "/motion": "Begin a new motion (POST)",
                    "/motion/import": "Load a motion from CSV text (POST)",
                    "/pointer/press|move|release": "Pointer events (POST)",
                    "/recording/start|stop": "Recording control (POST)",
                    "/playback/start|stop|seek": "Playback control (POST)",
                    "/edit/reset|redraw|undo|redo": "Editing (POST)",
                    "/motion/complete": "Hand over a completed motion (POST)",
                    "/smoothing/begin|preview|finish": "Smoothing preview (POST)",
                    "/kinematics/forward|inverse": "Stateless kinematics (POST)",
                    "/export/current.csv": "Current motion as CSV",
                    "/export/session.zip": "Completed motions as ZIP",
                    "/docs": "Interactive API documentation",
                },
            }

        @app.get("/health", summary="Health check")
        async def health():
            return {"status": "ok", "recording_state": session.recording_state.value}

        @app.get("/session", summary="Get session state")
        async def get_session(frames: bool = False):
            return session.to_dict(include_frames=frames)

        # Motion lifecycle
        @app.post("/motion", summary="Begin a new motion")
        async def begin_motion(payload: MotionPayload):
            session.begin_motion(payload.metadata)
            return self._state()

        @app.post("/motion/import", summary="Load a motion from trajectory CSV text")
        async def import_motion(payload: ImportPayload):
            session.load_trajectory(import_trajectory_csv(payload.csv))
            return self._state()

        @app.post("/motion/complete", summary="Hand over the completed motion")
        async def complete_motion():
            trajectory = session.complete_current_motion()
            if trajectory is None:
                raise HTTPException(status_code=409, detail="The current motion has not reached the target.")
            self.completed_motions.append(trajectory)
            return self._state(completed_count=len(self.completed_motions))

        # Pointer events
        @app.post("/pointer/press", summary="Pointer press")
        async def pointer_press(payload: PointPayload):
            following = session.press(_checked_point(payload.x, payload.y))
            return self._state(following)

        @app.post("/pointer/move", summary="Pointer move (null coordinates: pointer left)")
        async def pointer_move(payload: PointerMovePayload):
            point = None
            if payload.x is not None and payload.y is not None:
                point = _checked_point(payload.x, payload.y)
            session.move_pointer(point)
            return self._state()

        @app.post("/pointer/release", summary="Pointer release")
        async def pointer_release():
            session.release()
            return self._state()

        # Recording and playback
        @app.post("/recording/start", summary="Start recording")
        async def start_recording():
            session.start_recording()
            return self._state()

        @app.post("/recording/stop", summary="Stop recording")
        async def stop_recording():
            session.stop_recording()
            return self._state()

        @app.post("/playback/start", summary="Start or resume playback")
        async def start_playback(payload: PlaybackPayload):
            return self._state(session.start_playback(payload.from_frame))

        @app.post("/playback/stop", summary="Pause playback")
        async def stop_playback():
            session.stop_playback()
            return self._state()

        @app.post("/playback/seek", summary="Scrub the timeline")
        async def seek(payload: FramePayload):
            return self._state(session.seek(payload.frame_index) is not None)

        # Editing
        @app.post("/edit/reset", summary="Reset the current motion")
        async def reset_motion():
            return self._state(session.reset_current_motion())

        @app.post("/edit/redraw", summary="Redraw from a frame")
        async def redraw(payload: FramePayload):
            return self._state(session.redraw_from_frame(payload.frame_index))

        @app.post("/edit/undo", summary="Undo")
        async def undo():
            return self._state(session.undo())

        @app.post("/edit/redo", summary="Redo")
        async def redo():
            return self._state(session.redo())

        # Smoothing preview
        @app.post("/smoothing/begin", summary="Open a smoothing preview")
        async def begin_smoothing():
            session.begin_smoothing()
            return self._state()

        @app.post("/smoothing/preview", summary="Preview a smoothing strength")
        async def preview_smoothing(payload: SmoothingPreviewPayload):
            session.preview_smoothing(payload.strength, payload.method)
            return self._state()

        @app.post("/smoothing/finish", summary="Keep or discard the preview")
        async def finish_smoothing(payload: SmoothingFinishPayload):
            session.finish_smoothing(payload.keep)
            return self._state()

        # Stateless kinematics
        @app.post("/kinematics/forward", summary="Forward kinematics")
        async def forward(payload: ForwardKinematicsPayload):
            if not (math.isfinite(payload.shoulder_angle) and math.isfinite(payload.elbow_angle)):
                raise KinematicsError("Joint angles must be finite.")
            pose = session.arm.forward_kinematics(payload.shoulder_angle, payload.elbow_angle)
            return {
                "elbow_position": pose.elbow_position.to_dict(),
                "end_effector_position": pose.end_effector_position.to_dict(),
            }

        @app.post("/kinematics/inverse", summary="Inverse kinematics")
        async def inverse(payload: InverseKinematicsPayload):
            target = _checked_point(payload.x, payload.y)
            if payload.elbow_up is not None:
                solution = session.arm.inverse_kinematics(target, payload.elbow_up)
            else:
                shoulder = payload.current_shoulder_angle
                elbow = payload.current_elbow_angle
                if shoulder is None or elbow is None:
                    shoulder = session.arm_config.shoulder_angle
                    elbow = session.arm_config.elbow_angle
                solution = session.arm.solve_closest(target, shoulder, elbow)
            return {
                "shoulder_angle": solution.shoulder_angle,
                "elbow_angle": solution.elbow_angle,
                "clamped_target": solution.clamped_target.to_dict(),
            }

        # Export
        @app.get("/export/current.csv", summary="Current motion as CSV")
        async def export_current():
            trajectory = session.current_trajectory
            if trajectory is None or trajectory.is_empty:
                raise HTTPException(status_code=404, detail="No recorded motion to export.")
            return Response(
                content=trajectory_to_csv(trajectory, self.participant_id, self.session_id),
                media_type="text/csv",
            )

        @app.get("/export/session.zip", summary="Completed motions as ZIP")
        async def export_zip(prompt_set: Optional[str] = None):
            if not self.completed_motions:
                raise HTTPException(status_code=404, detail="No completed motions to export.")
            data = build_zip(self.completed_motions, self.participant_id, self.session_id, prompt_set)
            filename = f"robot_arm_data_{self.participant_id}_{set_indicator(prompt_set)}.zip"
            return Response(
                content=data,
                media_type="application/zip",
                headers={"Content-Disposition": f'attachment; filename="{filename}"'},
            )

        # Configuration
        if self.config_manager:
            @app.get("/config", summary="Get configuration summary")
            async def get_config():
                return self.config_manager.get_config_summary()

            @app.get("/config/profiles", summary="List configuration profiles")
            async def list_profiles():
                return {"profiles": self.config_manager.list_profiles()}

    async def start_server(self):
        """
        Start the HTTP server.

        This method runs indefinitely until cancelled.
        """
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="info",
        )
        server = uvicorn.Server(config)
        logger.info(f"Session API starting on http://{self.host}:{self.port}")
        await server.serve()

    def get_server_info(self) -> Dict[str, Any]:
        """Get server configuration information"""
        return {
            "host": self.host,
            "port": self.port,
            "docs_url": f"http://{self.host}:{self.port}/docs",
            "participant_id": self.participant_id,
            "session_id": self.session_id,
        }
