"""Engine settings from TOML files and environment variables.

Loads ~/.slicewise/defaults.toml (global) and slicewise.toml (project),
merges them, then applies SLICEWISE_* environment variables on top.

    # slicewise.toml
    [engine]
    threads = 8            # -1 = all hardware threads
    oversubscription = 4   # slices per worker when grainsize is automatic

    [logging]
    level = "DEBUG"
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from slicewise.observability.logging import LOG_LEVELS, LogLevel

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".slicewise" / "defaults.toml"
PROJECT_CONFIG_NAME = "slicewise.toml"

ENV_THREADS: Final = "SLICEWISE_NUM_THREADS"
ENV_OVERSUBSCRIPTION: Final = "SLICEWISE_OVERSUBSCRIPTION"
ENV_LOG_LEVEL: Final = "SLICEWISE_LOG_LEVEL"

ALL_THREADS: Final = -1
DEFAULT_OVERSUBSCRIPTION: Final = 4


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    with path.open("rb") as f:
        return tomllib.load(f)


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("engine", {})
    merged.setdefault("logging", {})
    return merged


def hardware_threads() -> int:
    return os.cpu_count() or 1


def _parse_int(value: Any, source: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{source} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValueError(f"{source} must be an integer, got {value!r}")


def _parse_threads(value: Any, source: str) -> int:
    threads = _parse_int(value, source)
    if threads == ALL_THREADS:
        return hardware_threads()
    if threads < 1:
        raise ValueError(
            f"{source} must be a positive integer or {ALL_THREADS} (all threads), got {threads}"
        )
    return threads


def _parse_oversubscription(value: Any, source: str) -> int:
    factor = _parse_int(value, source)
    if factor < 1:
        raise ValueError(f"{source} must be >= 1, got {factor}")
    return factor


def _parse_level(value: Any, source: str) -> LogLevel:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"{source} must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
    return level  # type: ignore[return-value]


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Resolved engine settings.

    Attributes:
        threads: Worker threads in the pool.
        oversubscription: Target slices per worker for automatic grain size.
        log_level: Level to enable logging at, or None to keep it disabled.
    """

    threads: int
    oversubscription: int = DEFAULT_OVERSUBSCRIPTION
    log_level: LogLevel | None = None


def resolve_settings(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineSettings:
    """Merge TOML configuration and environment into EngineSettings.

    Environment variables win over the project file, which wins over the
    global file.

    Raises:
        ValueError: If any setting is malformed. The message names its source.
    """
    env = os.environ if environ is None else environ
    config = load_config(project_dir=project_dir, global_path=global_path)
    engine = config["engine"]
    logging_cfg = config["logging"]

    if ENV_THREADS in env:
        threads = _parse_threads(env[ENV_THREADS], ENV_THREADS)
    elif "threads" in engine:
        threads = _parse_threads(engine["threads"], "[engine] threads")
    else:
        threads = hardware_threads()

    if ENV_OVERSUBSCRIPTION in env:
        oversubscription = _parse_oversubscription(env[ENV_OVERSUBSCRIPTION], ENV_OVERSUBSCRIPTION)
    elif "oversubscription" in engine:
        oversubscription = _parse_oversubscription(
            engine["oversubscription"], "[engine] oversubscription"
        )
    else:
        oversubscription = DEFAULT_OVERSUBSCRIPTION

    log_level: LogLevel | None = None
    if env.get(ENV_LOG_LEVEL):
        log_level = _parse_level(env[ENV_LOG_LEVEL], ENV_LOG_LEVEL)
    elif "level" in logging_cfg:
        log_level = _parse_level(logging_cfg["level"], "[logging] level")

    return EngineSettings(
        threads=threads,
        oversubscription=oversubscription,
        log_level=log_level,
    )
