"""Tests for config loading (config.py)."""

from __future__ import annotations

from pathlib import Path

from mission_control.config import _parse_users, load_board_config
from mission_control.constants import DEFAULT_PORT, DEFAULT_VIEWER_QUEUE_SIZE


def test_defaults_without_file(tmp_path: Path) -> None:
    config = load_board_config(tmp_path, env={})
    assert config.data_dir == tmp_path.resolve()
    assert config.port == DEFAULT_PORT
    assert config.auth_enabled is False
    assert config.users == {}
    assert config.log_level == "INFO"


def test_file_values(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text(
        "server:\n"
        "  host: 0.0.0.0\n"
        "  port: 8080\n"
        "  viewer_queue_size: 8\n"
        "auth:\n"
        "  enabled: true\n"
        "  users:\n"
        "    michael: s3cret\n"
        "logging:\n"
        "  level: DEBUG\n",
        encoding="utf-8",
    )
    config = load_board_config(tmp_path, env={})
    assert config.host == "0.0.0.0"
    assert config.port == 8080
    assert config.viewer_queue_size == 8
    assert config.auth_enabled is True
    assert config.users == {"michael": "s3cret"}
    assert config.log_level == "DEBUG"


def test_env_overrides_file(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("server:\n  port: 8080\n", encoding="utf-8")
    env = {
        "MISSION_CONTROL_PORT": "9000",
        "MISSION_CONTROL_AUTH_ENABLED": "yes",
        "MISSION_CONTROL_USERS": "michael:a, jarvis:b",
        "MISSION_CONTROL_LOG_LEVEL": "WARNING",
    }
    config = load_board_config(tmp_path, env=env)
    assert config.port == 9000
    assert config.auth_enabled is True
    assert config.users == {"michael": "a", "jarvis": "b"}
    assert config.log_level == "WARNING"


def test_data_dir_from_env(tmp_path: Path) -> None:
    target = tmp_path / "elsewhere"
    config = load_board_config(env={"MISSION_CONTROL_DATA_DIR": str(target)})
    assert config.data_dir == target.resolve()


def test_broken_file_ignored(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("server: [oops", encoding="utf-8")
    config = load_board_config(tmp_path, env={})
    assert config.port == DEFAULT_PORT


def test_bad_queue_size_falls_back(tmp_path: Path) -> None:
    config = load_board_config(tmp_path, env={"MISSION_CONTROL_VIEWER_QUEUE": "0"})
    assert config.viewer_queue_size == DEFAULT_VIEWER_QUEUE_SIZE


def test_parse_users_skips_malformed() -> None:
    assert _parse_users("michael:pw,broken,:nouser") == {"michael": "pw"}
    assert _parse_users({"a": 1}) == {"a": "1"}
