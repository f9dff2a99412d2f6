"""
Unit tests for the studio configuration layer.
"""
import json
import math

import pytest

from arm_motion.exceptions import ConfigurationError
from arm_motion.geometry import Vector2D
from arm_motion_studio.config_manager import (
    ConfigurationManager,
    StudioConfig,
    build_arm,
    build_session,
)

# --- Fixtures ---

@pytest.fixture
def manager(tmp_path) -> ConfigurationManager:
    return ConfigurationManager(str(tmp_path / "config"))

# --- Tests for StudioConfig ---

def test_default_config_matches_canvas():
    config = StudioConfig()
    config.validate()
    assert config.shoulder_position == Vector2D(200.0, 300.0)
    assert config.target_position == Vector2D(440.0, 300.0)
    assert math.isclose(config.initial_shoulder_angle_deg, -80.0)
    assert math.isclose(config.initial_elbow_angle_deg, 160.0)


@pytest.mark.parametrize(
    "changes",
    [
        {"upper_arm_length": 0},
        {"target_radius": -1},
        {"grab_radius": 0},
        {"frame_rate": 0},
        {"playback_speed": 0},
        {"smoothing_method": "median"},
        {"smoothing_strength": 101},
        {"port": 0},
    ],
)
def test_validate_rejects(changes):
    with pytest.raises(ConfigurationError):
        StudioConfig(**changes).validate()


def test_build_arm_and_session(scheduler, clock):
    config = StudioConfig(upper_arm_length=100, lower_arm_length=80, shoulder_x=0, shoulder_y=0, target_offset_x=150)
    arm = build_arm(config)
    assert arm.max_reach == 180
    session = build_session(config, scheduler=scheduler, clock=clock)
    assert session.target_position == Vector2D(150.0, 0.0)
    assert session.scheduler is scheduler
    assert math.isclose(session.arm_config.shoulder_angle, math.radians(-80))


def test_build_session_validates(scheduler):
    with pytest.raises(ConfigurationError):
        build_session(StudioConfig(frame_rate=-1), scheduler=scheduler)

# --- Tests for ConfigurationManager ---

def test_directories_created(manager):
    assert manager.config_dir.is_dir()
    assert manager.profiles_dir.is_dir()
    assert manager.get_config_summary() == {"status": "No configuration loaded"}


def test_missing_config_falls_back_to_default(manager):
    assert manager.load_config() is None
    config = manager.load_or_default()
    assert config == manager.current_config
    assert config.name == "default"


def test_save_and_load_profile(manager):
    config = StudioConfig(name="lab", target_radius=25.0)
    assert manager.save_config(config, "lab")
    assert manager.list_profiles() == ["lab"]
    loaded = manager.load_config("lab")
    assert loaded.target_radius == 25.0
    assert loaded.name == "lab"


def test_load_ignores_unknown_keys(manager):
    data = {"target_radius": 30.0, "legacy_option": True}
    manager.config_file.write_text(json.dumps(data))
    config = manager.load_config()
    assert config.target_radius == 30.0


def test_load_invalid_json_returns_none(manager):
    manager.config_file.write_text("{broken")
    assert manager.load_config() is None


def test_delete_profile(manager):
    manager.save_config(StudioConfig(), "old")
    assert manager.delete_profile("old")
    assert manager.list_profiles() == []
    assert manager.delete_profile("old") is False
    assert manager.delete_profile("current") is False


def test_update_parameter_persists(manager):
    manager.load_or_default()
    assert manager.update_parameter("frame_rate", 120)
    assert manager.load_config().frame_rate == 120


@pytest.mark.parametrize(
    "parameter, value",
    [("frame_rate", 0), ("frame_rate", "fast"), ("no_such_parameter", 1)],
)
def test_update_parameter_rejects(manager, parameter, value):
    manager.load_or_default()
    assert manager.update_parameter(parameter, value) is False
    assert manager.current_config.frame_rate == 60


def test_update_parameter_without_config(manager):
    assert manager.update_parameter("frame_rate", 30) is False


def test_config_summary(manager):
    manager.load_or_default()
    summary = manager.get_config_summary()
    assert summary["target"] == {"position": [440.0, 300.0], "radius": 20.0}
    assert summary["server"] == "127.0.0.1:8765"
    assert summary["smoothing"] == {"method": "gaussian", "strength": 50.0}
