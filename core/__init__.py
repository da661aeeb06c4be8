"""Supervisor facade and access-layer configuration."""

from .config import (  # noqa: F401
    ProxyConfig,
    LOG_LEVELS,
    load_config,
    save_config,
    load_json,
    save_json,
)
from .supervisor import Supervisor, apply_log_level  # noqa: F401
