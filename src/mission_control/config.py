"""Load board configuration from `<data_dir>/config.yaml` and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .constants import (
    CONFIG_FILE,
    DATA_DIR_NAME,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_VIEWER_QUEUE_SIZE,
)
from .io_utils import _load_data_with_error

ENV_PREFIX = "MISSION_CONTROL_"


@dataclass
class BoardConfig:
    """Runtime settings for the board server."""

    data_dir: Path = field(default_factory=lambda: Path.cwd() / DATA_DIR_NAME)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    auth_enabled: bool = False
    users: dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"
    viewer_queue_size: int = DEFAULT_VIEWER_QUEUE_SIZE


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _parse_users(raw: Any) -> dict[str, str]:
    """Accept either a mapping or a ``user:password,user:password`` string."""
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}
    users: dict[str, str] = {}
    for item in str(raw or "").split(","):
        name, sep, password = item.strip().partition(":")
        if sep and name:
            users[name] = password
    return users


def load_file_config(data_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional config file.

    Args:
        data_dir: Board storage root.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    path = data_dir / CONFIG_FILE
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def load_board_config(data_dir: Optional[Path] = None, env: Optional[dict[str, str]] = None) -> BoardConfig:
    """Build a :class:`BoardConfig` from the config file overlaid by the environment.

    Args:
        data_dir: Storage root; falls back to ``MISSION_CONTROL_DATA_DIR`` then ``./data``.
        env: Environment mapping (defaults to ``os.environ``).

    Returns:
        The resolved configuration. A broken config file is logged and ignored.
    """
    env = dict(os.environ if env is None else env)
    if data_dir is None:
        raw_dir = env.get(f"{ENV_PREFIX}DATA_DIR")
        data_dir = Path(raw_dir) if raw_dir else Path.cwd() / DATA_DIR_NAME
    data_dir = data_dir.resolve()

    file_config, err = load_file_config(data_dir)
    if err:
        logger.warning("Ignoring unreadable config file: {}", err)

    config = BoardConfig(data_dir=data_dir)

    server = _get_nested(file_config, "server") or {}
    if isinstance(server, dict):
        config.host = str(server.get("host", config.host))
        config.port = int(server.get("port", config.port))
        config.viewer_queue_size = int(server.get("viewer_queue_size", config.viewer_queue_size))
    auth = _get_nested(file_config, "auth") or {}
    if isinstance(auth, dict):
        config.auth_enabled = _parse_bool(auth.get("enabled", config.auth_enabled))
        config.users = _parse_users(auth.get("users", {}))
    level = _get_nested(file_config, "logging", "level")
    if isinstance(level, str) and level:
        config.log_level = level

    if f"{ENV_PREFIX}HOST" in env:
        config.host = env[f"{ENV_PREFIX}HOST"]
    if f"{ENV_PREFIX}PORT" in env:
        config.port = int(env[f"{ENV_PREFIX}PORT"])
    if f"{ENV_PREFIX}AUTH_ENABLED" in env:
        config.auth_enabled = _parse_bool(env[f"{ENV_PREFIX}AUTH_ENABLED"])
    if f"{ENV_PREFIX}USERS" in env:
        config.users = _parse_users(env[f"{ENV_PREFIX}USERS"])
    if f"{ENV_PREFIX}LOG_LEVEL" in env:
        config.log_level = env[f"{ENV_PREFIX}LOG_LEVEL"]
    if f"{ENV_PREFIX}VIEWER_QUEUE" in env:
        config.viewer_queue_size = int(env[f"{ENV_PREFIX}VIEWER_QUEUE"])

    if config.viewer_queue_size < 1:
        config.viewer_queue_size = DEFAULT_VIEWER_QUEUE_SIZE
    return config
