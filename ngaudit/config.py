"""Configuration loading for ngaudit (.ngaudit.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml

from .errors import ConfigError
from .models import TIERS

CONFIG_FILENAME = ".ngaudit.yml"

_EXECUTORS = ("thread", "process")


@dataclass
class RunnerConfig:
    """Worker pool settings for the check runner."""

    workers: Union[int, str] = "auto"
    executor: str = "thread"
    timeout: Optional[float] = None


@dataclass
class ChecksConfig:
    """Check enablement."""

    enabled: List[str] = field(default_factory=list)
    disabled: List[str] = field(default_factory=list)


@dataclass
class AuditConfig:
    """Represents the settings defined in .ngaudit.yml."""

    root: Path
    tier: str = "material"
    pages: List[Path] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    checks: ChecksConfig = field(default_factory=ChecksConfig)
    optimize: bool = True


def load_config(config_path: Path) -> AuditConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return AuditConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = AuditConfig(root=root)

    tier = _as_str(data.get("tier"))
    if tier and tier.lower() in TIERS:
        config.tier = tier.lower()

    config.pages = [root / page for page in _as_str_list(data.get("pages"))]
    config.exclude_paths = _as_str_list(data.get("exclude_paths"))

    runner_data = _as_dict(data.get("runner"))
    if runner_data:
        config.runner = RunnerConfig(
            workers=_as_workers(runner_data.get("workers")),
            executor=_as_executor(runner_data.get("executor")),
            timeout=_as_float(runner_data.get("timeout")),
        )

    checks_data = _as_dict(data.get("checks"))
    if checks_data:
        config.checks = ChecksConfig(
            enabled=_as_str_list(checks_data.get("enabled")),
            disabled=_as_str_list(checks_data.get("disabled")),
        )

    optimize = _as_bool(data.get("optimize"))
    if optimize is not None:
        config.optimize = optimize

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.name == CONFIG_FILENAME:
        return config_path.resolve()
    # Only an existing file stands for its directory; anything else is a project root.
    if config_path.is_file():
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return (config_path / CONFIG_FILENAME).resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if parsed > 0 else None
    return None


def _as_workers(value: Any) -> Union[int, str]:
    if isinstance(value, bool):
        return "auto"
    if isinstance(value, int):
        return max(1, value)
    if isinstance(value, str):
        stripped = value.strip().lower()
        if stripped.isdigit():
            return max(1, int(stripped))
    return "auto"


def _as_executor(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in _EXECUTORS:
        return value.strip().lower()
    return "thread"


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "AuditConfig",
    "ChecksConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "RunnerConfig",
    "load_config",
]
