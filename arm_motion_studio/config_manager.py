"""
Configuration Management for Arm Motion Studio.

This module provides:
- The StudioConfig dataclass (arm geometry, target zone, timing, smoothing
  defaults, server settings)
- Configuration profiles (save/load named setups as JSON)
- Runtime parameter updates with validation
- Helpers that build the arm model and session a configuration describes
"""

import json
import logging
import math
import os
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from arm_motion import constants as const
from arm_motion.exceptions import ConfigurationError
from arm_motion.geometry import Vector2D
from arm_motion.kinematics import TwoLinkArmPlanar
from arm_motion.scheduler import AsyncioFrameScheduler, FrameScheduler
from arm_motion.session import MotionSession

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = "~/.arm_motion_config"


@dataclass
class StudioConfig:
    """Main studio configuration."""
    # Arm geometry
    upper_arm_length: float = const.UPPER_ARM_LENGTH
    lower_arm_length: float = const.LOWER_ARM_LENGTH
    shoulder_x: float = const.SHOULDER_X
    shoulder_y: float = const.SHOULDER_Y
    initial_shoulder_angle_deg: float = math.degrees(const.INITIAL_SHOULDER_ANGLE)
    initial_elbow_angle_deg: float = math.degrees(const.INITIAL_ELBOW_ANGLE)
    movement_threshold: float = 0.0

    # Target zone, relative to the shoulder
    target_offset_x: float = const.TARGET_OFFSET_X
    target_offset_y: float = const.TARGET_OFFSET_Y
    target_radius: float = const.TARGET_RADIUS
    grab_radius: float = const.GRAB_RADIUS

    # Capture / playback
    frame_rate: float = const.FRAME_RATE_HZ
    epsilon: float = const.ANGLE_CHANGE_EPSILON
    playback_speed: float = const.PLAYBACK_SPEED

    # Smoothing defaults
    smoothing_method: str = const.SMOOTHING_METHOD_GAUSSIAN
    smoothing_strength: float = 50.0

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8765
    log_level: str = "INFO"

    # Metadata
    name: str = "default"
    description: str = "Default studio configuration"
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    modified_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def validate(self) -> None:
        """
        Checks the values a session cannot work with.

        Raises:
            ConfigurationError: On the first invalid value found.
        """
        if self.upper_arm_length <= 0 or self.lower_arm_length <= 0:
            raise ConfigurationError("Arm segment lengths must be positive.")
        if self.target_radius <= 0 or self.grab_radius <= 0:
            raise ConfigurationError("target_radius and grab_radius must be positive.")
        if self.frame_rate <= 0:
            raise ConfigurationError("frame_rate must be positive.")
        if self.playback_speed <= 0:
            raise ConfigurationError("playback_speed must be positive.")
        if self.smoothing_method not in const.SMOOTHING_METHODS:
            raise ConfigurationError(
                f"Unknown smoothing method '{self.smoothing_method}'. "
                f"Expected one of {const.SMOOTHING_METHODS}."
            )
        if not const.SMOOTHING_STRENGTH_MIN <= self.smoothing_strength <= const.SMOOTHING_STRENGTH_MAX:
            raise ConfigurationError("smoothing_strength must be within 0..100.")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Invalid port {self.port}.")

    @property
    def shoulder_position(self) -> Vector2D:
        return Vector2D(self.shoulder_x, self.shoulder_y)

    @property
    def target_position(self) -> Vector2D:
        return Vector2D(
            self.shoulder_x + self.target_offset_x, self.shoulder_y + self.target_offset_y
        )


def build_arm(config: StudioConfig) -> TwoLinkArmPlanar:
    """Creates the arm model described by `config`."""
    return TwoLinkArmPlanar(
        upper_arm_length=config.upper_arm_length,
        lower_arm_length=config.lower_arm_length,
        shoulder_position=config.shoulder_position,
        movement_threshold=config.movement_threshold,
    )


def build_session(
    config: StudioConfig,
    scheduler: Optional[FrameScheduler] = None,
    clock=None,
) -> MotionSession:
    """
    Creates a MotionSession from `config`.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    config.validate()
    if scheduler is None:
        scheduler = AsyncioFrameScheduler(config.frame_rate)
    return MotionSession(
        arm=build_arm(config),
        target_position=config.target_position,
        target_radius=config.target_radius,
        scheduler=scheduler,
        clock=clock,
        initial_shoulder_angle=math.radians(config.initial_shoulder_angle_deg),
        initial_elbow_angle=math.radians(config.initial_elbow_angle_deg),
        grab_radius=config.grab_radius,
        epsilon=config.epsilon,
        playback_speed=config.playback_speed,
    )


class ConfigurationManager:
    """Manages studio configuration profiles."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_dir: Directory to store configuration files. Defaults to ~/.arm_motion_config
        """
        if config_dir is None:
            config_dir = os.path.expanduser(DEFAULT_CONFIG_DIR)

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.profiles_dir = self.config_dir / "profiles"
        self.profiles_dir.mkdir(exist_ok=True)

        self.current_config: Optional[StudioConfig] = None
        self.config_file = self.config_dir / "current_config.json"

        logger.info(f"Configuration manager initialized with config dir: {self.config_dir}")

    def _config_path(self, config_name: str) -> Path:
        if config_name == "current":
            return self.config_file
        return self.profiles_dir / f"{config_name}.json"

    def create_default_config(self) -> StudioConfig:
        """Create a default configuration."""
        return StudioConfig()

    def load_config(self, config_name: str = "current") -> Optional[StudioConfig]:
        """Load configuration from file.

        Args:
            config_name: Name of configuration to load. "current" loads the current active config.

        Returns:
            StudioConfig if found and readable, None otherwise
        """
        config_file = self._config_path(config_name)
        if not config_file.exists():
            logger.warning(f"Configuration file not found: {config_file}")
            return None

        try:
            with open(config_file, "r") as f:
                config_data = json.load(f)
            known = {item.name for item in fields(StudioConfig)}
            unknown = sorted(set(config_data) - known)
            if unknown:
                logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
            config = StudioConfig(**{k: v for k, v in config_data.items() if k in known})
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error loading configuration {config_name}: {e}")
            return None

        logger.info(f"Loaded configuration: {config_name}")
        return config

    def load_or_default(self, config_name: str = "current") -> StudioConfig:
        """Load a configuration, falling back to defaults; the result becomes current."""
        config = self.load_config(config_name) or self.create_default_config()
        self.current_config = config
        return config

    def save_config(self, config: StudioConfig, config_name: str = "current") -> bool:
        """Save configuration to file.

        Args:
            config: Configuration to save
            config_name: Name to save configuration as. "current" saves as active config.

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self._config_path(config_name)
        try:
            config.modified_at = datetime.now().isoformat()
            with open(config_file, "w") as f:
                json.dump(asdict(config), f, indent=2)
        except OSError as e:
            logger.error(f"Error saving configuration {config_name}: {e}")
            return False

        logger.info(f"Saved configuration: {config_name}")
        return True

    def list_profiles(self) -> List[str]:
        """List all available configuration profiles."""
        return sorted(profile_file.stem for profile_file in self.profiles_dir.glob("*.json"))

    def delete_profile(self, profile_name: str) -> bool:
        """Delete a configuration profile.

        Returns:
            True if deleted successfully, False otherwise
        """
        if profile_name == "current":
            logger.error("Cannot delete current configuration")
            return False

        profile_file = self._config_path(profile_name)
        if not profile_file.exists():
            logger.warning(f"Profile not found: {profile_name}")
            return False

        profile_file.unlink()
        logger.info(f"Deleted profile: {profile_name}")
        return True

    def update_parameter(self, parameter: str, value: Any) -> bool:
        """Update one parameter of the current configuration and persist it.

        The new value is validated; an invalid value leaves the configuration
        unchanged.

        Returns:
            True if updated successfully, False otherwise
        """
        if not self.current_config:
            logger.error("No current configuration loaded")
            return False
        if parameter not in {item.name for item in fields(StudioConfig)}:
            logger.error(f"Invalid parameter: {parameter}")
            return False

        old_value = getattr(self.current_config, parameter)
        setattr(self.current_config, parameter, value)
        try:
            self.current_config.validate()
        except (ConfigurationError, TypeError) as e:
            setattr(self.current_config, parameter, old_value)
            logger.error(f"Rejected {parameter} = {value!r}: {e}")
            return False

        self.save_config(self.current_config)
        logger.info(f"Updated parameter {parameter}: {old_value!r} -> {value!r}")
        return True

    def get_config_summary(self) -> Dict[str, Any]:
        """Get a summary of the current configuration."""
        if not self.current_config:
            return {"status": "No configuration loaded"}

        config = self.current_config
        return {
            "name": config.name,
            "description": config.description,
            "arm": {
                "upper_arm_length": config.upper_arm_length,
                "lower_arm_length": config.lower_arm_length,
                "shoulder": [config.shoulder_x, config.shoulder_y],
            },
            "target": {
                "position": [config.target_position.x, config.target_position.y],
                "radius": config.target_radius,
            },
            "frame_rate": config.frame_rate,
            "smoothing": {
                "method": config.smoothing_method,
                "strength": config.smoothing_strength,
            },
            "server": f"{config.host}:{config.port}",
        }
