"""Access-layer configuration and JSON helpers."""
from __future__ import annotations

from dataclasses import dataclass, asdict, fields
import json
from pathlib import Path
from typing import Dict, Union

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ProxyConfig:
    deprecation_advisories: bool = True  # one LegacyNameWarning per call site
    compat_enabled: bool = True  # resolve legacy camelCase names at all
    caching: bool = True  # False re-queries the interface on every access
    log_level: str = "WARNING"  # applied to the package loggers by Supervisor

    def __post_init__(self) -> None:
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{self.log_level}', expected one of {', '.join(LOG_LEVELS)}")


def _dataclass_from_dict(cls, data: Dict) -> object:
    names = {f.name for f in fields(cls)}
    unknown = set(data) - names
    if unknown:
        raise ValueError(f"{cls.__name__} has no field(s) {sorted(unknown)}")
    return cls(**data)


def load_json(path: Path, cls):
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return _dataclass_from_dict(cls, data)


def save_json(path: Path, obj) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(obj), f, indent=2)


def load_config(path: Union[str, Path]) -> ProxyConfig:
    """Read a ProxyConfig from JSON; missing keys keep their defaults."""
    return load_json(Path(path), ProxyConfig)


def save_config(path: Union[str, Path], config: ProxyConfig) -> None:
    save_json(Path(path), config)


__all__ = ["ProxyConfig", "LOG_LEVELS", "load_config", "save_config", "load_json", "save_json"]
