"""
Command-Line Interface for Arm Motion Studio.
Uses 'click' for CLI argument parsing and command structure.
"""
import asyncio
import json
import logging
import math
from dataclasses import asdict
from pathlib import Path
from typing import Optional, Tuple

import click

from arm_motion import constants as const
from arm_motion.exceptions import ArmMotionError
from arm_motion.editing import truncate_at
from arm_motion.smoothing import smooth_by_strength, smooth_gaussian, smooth_moving_average

from .config_manager import ConfigurationManager, StudioConfig, build_arm, build_session
from .export import (
    build_zip,
    generate_participant_id,
    generate_session_id,
    load_trajectory,
    save_trajectory,
)
from .http_server import SessionHTTPServer
from .rich_dashboard import ReplayDashboard

# Basic logging setup for the studio
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ArmMotionCLI")


def _config(ctx: click.Context) -> StudioConfig:
    return ctx.obj["config"]


def _load(path: str):
    try:
        return load_trajectory(Path(path))
    except ArmMotionError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level.",
    show_default=True,
)
@click.option(
    "--config-profile",
    type=str,
    help="Load configuration from named profile.",
)
@click.option(
    "--config-dir",
    type=str,
    help="Directory for configuration files (default: ~/.arm_motion_config).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, config_profile: Optional[str], config_dir: Optional[str]):
    """
    Arm Motion Studio.

    Tools for inspecting, smoothing, editing, bundling and replaying recorded
    2-link arm motions, and for serving a live recording session over HTTP.
    """
    numeric_log_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(numeric_log_level)
    logger.setLevel(numeric_log_level)

    config_manager = ConfigurationManager(config_dir)
    if config_profile:
        config = config_manager.load_config(config_profile)
        if config is None:
            raise click.ClickException(f"Failed to load configuration profile: {config_profile}")
        config_manager.current_config = config
        logger.info(f"Loaded configuration profile: {config_profile}")
    else:
        config = config_manager.load_or_default()

    ctx.ensure_object(dict)
    ctx.obj["config_manager"] = config_manager
    ctx.obj["config"] = config


@cli.command()
@click.argument("trajectory_file", type=click.Path(exists=True, dir_okay=False))
def info(trajectory_file: str):
    """Print a summary of a recorded trajectory (.csv or .json)."""
    trajectory = _load(trajectory_file)
    click.echo(f"Frames:      {trajectory.frame_count}")
    click.echo(f"Duration:    {trajectory.total_time_ms:.1f} ms")
    click.echo(f"Completed:   {'yes' if trajectory.completed else 'no'}")
    click.echo(f"Start:       ({trajectory.start_position.x:.1f}, {trajectory.start_position.y:.1f})")
    click.echo(f"Target:      ({trajectory.target_position.x:.1f}, {trajectory.target_position.y:.1f})")
    if trajectory.frames:
        shoulder = [math.degrees(f.shoulder_angle) for f in trajectory.frames]
        elbow = [math.degrees(f.elbow_angle) for f in trajectory.frames]
        click.echo(f"Shoulder:    {min(shoulder):.1f}° .. {max(shoulder):.1f}°")
        click.echo(f"Elbow:       {min(elbow):.1f}° .. {max(elbow):.1f}°")
    for key, value in trajectory.metadata.items():
        click.echo(f"{key}: {value}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("output_file", type=click.Path(dir_okay=False, writable=True))
@click.option(
    "--method",
    type=click.Choice(list(const.SMOOTHING_METHODS)),
    help="Smoothing method (default from configuration).",
)
@click.option(
    "--strength",
    type=click.FloatRange(const.SMOOTHING_STRENGTH_MIN, const.SMOOTHING_STRENGTH_MAX),
    help="Smoothing strength 0-100 (default from configuration).",
)
@click.option("--window-size", type=click.IntRange(min=1), help="Explicit moving-average window.")
@click.option("--sigma", type=float, help="Explicit Gaussian sigma, in frames.")
@click.pass_context
def smooth(
    ctx: click.Context,
    input_file: str,
    output_file: str,
    method: Optional[str],
    strength: Optional[float],
    window_size: Optional[int],
    sigma: Optional[float],
):
    """Smooth a trajectory and write the result."""
    config = _config(ctx)
    trajectory = _load(input_file)
    arm = build_arm(config)
    try:
        if window_size is not None:
            smoothed = smooth_moving_average(trajectory, window_size)
        elif sigma is not None:
            smoothed = smooth_gaussian(trajectory, sigma, arm)
        else:
            smoothed = smooth_by_strength(
                trajectory,
                config.smoothing_strength if strength is None else strength,
                method or config.smoothing_method,
                arm,
            )
        save_trajectory(smoothed, Path(output_file))
    except ArmMotionError as e:
        raise click.ClickException(str(e)) from e

    if smoothed is trajectory:
        click.echo("Trajectory too short or strength 0: written unchanged.")
    click.echo(f"Wrote {smoothed.frame_count} frames to {output_file}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("output_file", type=click.Path(dir_okay=False, writable=True))
@click.option("--frame", "frame_index", required=True, type=int, help="Last frame to keep.")
def truncate(input_file: str, output_file: str, frame_index: int):
    """Keep frames 0..FRAME of a trajectory (the redraw cut)."""
    trajectory = _load(input_file)
    truncated = truncate_at(trajectory, frame_index)
    if truncated is None:
        raise click.ClickException(
            f"Frame {frame_index} is out of range (0..{trajectory.frame_count - 1})."
        )
    save_trajectory(truncated, Path(output_file))
    click.echo(f"Wrote {truncated.frame_count} frames to {output_file}")


@cli.command()
@click.argument("trajectory_files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", required=True, type=click.Path(dir_okay=False, writable=True))
@click.option("--participant-id", type=str, help="Participant id (generated if omitted).")
@click.option("--session-id", type=str, help="Session id (generated if omitted).")
@click.option("--prompt-set", type=click.Choice(["laban", "metaphor"]), default="laban", show_default=True)
def bundle(
    trajectory_files: Tuple[str, ...],
    output: str,
    participant_id: Optional[str],
    session_id: Optional[str],
    prompt_set: str,
):
    """Bundle trajectories into a session ZIP of CSV files."""
    trajectories = [_load(path) for path in trajectory_files]
    participant_id = participant_id or generate_participant_id()
    session_id = session_id or generate_session_id()
    Path(output).write_bytes(build_zip(trajectories, participant_id, session_id, prompt_set))
    click.echo(f"Wrote {len(trajectories)} trajectories to {output} (participant {participant_id})")


@cli.command()
@click.argument("trajectory_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--from-frame", type=int, help="Frame to start playback from.")
@click.option("--refresh-rate", default=50, type=int, help="Dashboard refresh rate in milliseconds.", show_default=True)
@click.option("--no-color", is_flag=True, help="Disable color output for compatibility.")
@click.pass_context
def replay(ctx: click.Context, trajectory_file: str, from_frame: Optional[int], refresh_rate: int, no_color: bool):
    """Replay a trajectory in real time on a console dashboard."""
    trajectory = _load(trajectory_file)
    try:
        session = build_session(_config(ctx))
    except ArmMotionError as e:
        raise click.ClickException(str(e)) from e
    session.load_trajectory(trajectory)
    dashboard = ReplayDashboard(session, refresh_rate_ms=refresh_rate, no_color=no_color)

    try:
        asyncio.run(dashboard.run(from_frame))
    except KeyboardInterrupt:
        logger.info("Replay interrupted by user.")


@cli.command()
@click.option("--host", type=str, help="Host for the session server (default from configuration).")
@click.option("--port", type=int, help="Port for the session server (default from configuration).")
@click.option("--participant-id", type=str, help="Participant id used in exports.")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int], participant_id: Optional[str]):
    """Serve a live recording session over HTTP."""
    config = _config(ctx)
    host = host or config.host
    port = port or config.port
    try:
        session = build_session(config)
    except ArmMotionError as e:
        raise click.ClickException(str(e)) from e
    session.begin_motion()

    server = SessionHTTPServer(
        session,
        port=port,
        host=host,
        config_manager=ctx.obj["config_manager"],
        participant_id=participant_id,
    )
    logger.info(f"API documentation available at http://{host}:{port}/docs")
    try:
        asyncio.run(server.start_server())
    except KeyboardInterrupt:
        logger.info("Server stopped by user.")


@cli.group()
def config():
    """Manage configuration profiles."""


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Print the full configuration as JSON.")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool):
    """Show the active configuration."""
    config_manager: ConfigurationManager = ctx.obj["config_manager"]
    if as_json:
        click.echo(json.dumps(asdict(_config(ctx)), indent=2))
    else:
        click.echo(json.dumps(config_manager.get_config_summary(), indent=2))


@config.command("list")
@click.pass_context
def config_list(ctx: click.Context):
    """List saved profiles."""
    profiles = ctx.obj["config_manager"].list_profiles()
    if not profiles:
        click.echo("No saved profiles.")
    for name in profiles:
        click.echo(name)


@config.command("save")
@click.argument("profile_name")
@click.pass_context
def config_save(ctx: click.Context, profile_name: str):
    """Save the active configuration as PROFILE_NAME."""
    config_manager: ConfigurationManager = ctx.obj["config_manager"]
    active = _config(ctx)
    active.name = profile_name
    if not config_manager.save_config(active, profile_name):
        raise click.ClickException(f"Failed to save profile '{profile_name}'")
    click.echo(f"Saved profile '{profile_name}'")


@config.command("set")
@click.argument("parameter")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, parameter: str, value: str):
    """Set PARAMETER of the active configuration (value parsed as JSON if possible)."""
    config_manager: ConfigurationManager = ctx.obj["config_manager"]
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = value
    if not config_manager.update_parameter(parameter, parsed):
        raise click.ClickException(f"Could not set {parameter} = {value}")
    click.echo(f"{parameter} = {parsed!r}")


def main():
    """Runs the command-line interface."""
    cli(obj={})
