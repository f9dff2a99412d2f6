"""
Rich console dashboard for replaying recorded motions.

Shows the frame being played, the joint angles and positions, playback
progress and a short event log while a MotionSession plays a trajectory.
"""

import asyncio
import math
import time
from dataclasses import dataclass
from typing import List, Optional

from rich.align import Align
from rich.columns import Columns
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table
from rich.text import Text

from arm_motion.recording import RecordingState
from arm_motion.session import MotionSession, SessionEvent


@dataclass
class DashboardState:
    """Current state of the dashboard display"""
    start_time: float
    refresh_rate_ms: int


class ReplayDashboard:
    """
    Live console view of a session's playback.

    Features:
    - Current frame, timestamp and joint angles
    - End effector and elbow positions, distance to the target
    - Playback progress bar
    - Scrolling event log fed by session events
    """

    def __init__(
        self,
        session: MotionSession,
        refresh_rate_ms: int = 50,
        no_color: bool = False,
        console: Optional[Console] = None,
    ):
        """
        Initialize the replay dashboard.

        Args:
            session: The session whose current trajectory is replayed
            refresh_rate_ms: Dashboard refresh rate in milliseconds
            no_color: Disable color output for compatibility
            console: Console to render to (a default console if None)
        """
        self.session = session
        self.console = console or Console(no_color=no_color)
        self.state = DashboardState(start_time=time.time(), refresh_rate_ms=refresh_rate_ms)

        self.event_log: List[str] = []
        self.max_log_entries = 20

        self.progress = Progress(
            TextColumn("[bold blue]Playback"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total} frames"),
            auto_refresh=False,
            console=self.console,
        )
        self._task_id = self.progress.add_task("playback", total=1)

        session.add_listener(self._on_session_event)

    def _on_session_event(self, event: SessionEvent, session: MotionSession) -> None:
        if event == SessionEvent.STATE_CHANGED:
            self.add_event(f"State: {session.recording_state.value}")
        elif event == SessionEvent.TRAJECTORY_CHANGED and session.current_trajectory is not None:
            self.add_event(f"Trajectory loaded ({session.current_trajectory.frame_count} frames)")

    def add_event(self, message: str):
        """Add an event to the log"""
        timestamp = time.strftime("%H:%M:%S")
        self.event_log.append(f"[{timestamp}] {message}")
        if len(self.event_log) > self.max_log_entries:
            self.event_log.pop(0)

    def _create_header(self) -> Panel:
        trajectory = self.session.current_trajectory
        title_text = Text("Arm Motion Replay", style="bold blue")
        elapsed = time.time() - self.state.start_time
        status_text = Text(
            f"State: {self.session.recording_state.value} | Elapsed: {elapsed:.1f}s", style="dim"
        )
        if trajectory is not None and trajectory.completed:
            status_text.append(" | COMPLETED", style="bold green")
        return Panel(
            Columns([Align.left(title_text), Align.right(status_text)]),
            title="Status",
            border_style="blue",
        )

    def _create_pose_panel(self) -> Panel:
        session = self.session
        trajectory = session.current_trajectory
        if trajectory is None or trajectory.is_empty:
            return Panel(
                Align.center(Text("No trajectory loaded", style="dim")),
                title="Pose",
                border_style="yellow",
            )

        frame_index = min(session.playback_frame, trajectory.frame_count - 1)
        frame = trajectory.frames[frame_index]
        effector = session.end_effector_position
        to_target = math.hypot(
            session.target_position.x - effector.x, session.target_position.y - effector.y
        )

        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column("Field", style="bold cyan", width=14)
        table.add_column("Value", style="white")
        table.add_row("Frame:", f"{frame_index} / {trajectory.frame_count - 1}")
        table.add_row("Time:", f"{frame.timestamp:.1f} ms / {trajectory.total_time_ms:.1f} ms")
        table.add_row("Shoulder:", f"{math.degrees(session.arm_config.shoulder_angle):.1f}°")
        table.add_row("Elbow:", f"{math.degrees(session.arm_config.elbow_angle):.1f}°")
        table.add_row("Effector:", f"({effector.x:.1f}, {effector.y:.1f})")
        table.add_row("To target:", f"{to_target:.1f} px")
        return Panel(table, title="Pose", border_style="green")

    def _create_event_log_panel(self) -> Panel:
        log_text = Text()
        for entry in self.event_log:
            log_text.append(entry + "\n", style="dim")
        if not self.event_log:
            log_text.append("No events yet...", style="dim italic")
        return Panel(log_text, title="Event Log", border_style="white")

    def _update_progress(self) -> None:
        trajectory = self.session.current_trajectory
        total = max(1, trajectory.frame_count - 1) if trajectory is not None else 1
        completed = min(self.session.playback_frame, total)
        self.progress.update(self._task_id, total=total, completed=completed)

    def render(self) -> Group:
        """Build the full dashboard renderable."""
        self._update_progress()
        return Group(
            self._create_header(),
            self._create_pose_panel(),
            Panel(self.progress.make_tasks_table(self.progress.tasks), border_style="blue"),
            self._create_event_log_panel(),
        )

    async def run(self, from_frame: Optional[int] = None) -> bool:
        """
        Play the session's trajectory while rendering the dashboard.

        Returns:
            True if playback ran to completion, False if it could not start.
        """
        if not self.session.start_playback(from_frame):
            self.add_event("Nothing to play back")
            self.console.print(self.render())
            return False

        self.add_event("Replay started")
        refresh = self.state.refresh_rate_ms / 1000.0
        with Live(self.render(), console=self.console, auto_refresh=False) as live:
            while self.session.recording_state == RecordingState.PLAYING:
                await asyncio.sleep(refresh)
                live.update(self.render(), refresh=True)
            self.add_event("Replay finished")
            live.update(self.render(), refresh=True)
        return True
