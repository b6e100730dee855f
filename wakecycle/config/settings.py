"""Scheduler configuration.

SchedulerConfig is read by every cycle and replaced (never mutated) on update.
AppConfig bundles it with logging settings for YAML-driven startup.

Config path resolution order for load_config():
  1. path argument
  2. WAKECYCLE_CONFIG env var
  3. config/wakecycle.yaml
A missing file yields defaults.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from wakecycle.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path("config/wakecycle.yaml")
CONFIG_ENV_VAR = "WAKECYCLE_CONFIG"

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class InterruptSensitivity(str, Enum):
    """How hard the scheduler backs off when the host is under load."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class StaleRunningPolicy(str, Enum):
    """What initialize() does with tasks left RUNNING by an abrupt stop."""
    LEAVE = "leave"
    REQUEUE = "requeue"
    FAIL = "fail"


class SchedulerConfig(BaseModel):
    max_concurrent_tasks: int = Field(default=3, ge=1)
    max_tasks_per_cycle: int = Field(default=5, ge=1)
    task_timeout_s: float = Field(default=30.0, gt=0)
    default_max_retries: int = Field(default=3, ge=0)
    enable_resource_balancing: bool = True
    cpu_threshold: float = Field(default=80.0, ge=0, le=100)
    memory_threshold: float = Field(default=85.0, ge=0, le=100)
    interrupt_sensitivity: InterruptSensitivity = InterruptSensitivity.HIGH
    cycle_history_size: int = Field(default=100, ge=1)
    shutdown_timeout_s: float = Field(default=10.0, ge=0)
    shutdown_poll_interval_s: float = Field(default=0.1, gt=0)
    stale_running_policy: StaleRunningPolicy = StaleRunningPolicy.LEAVE

    def merged(self, **updates: Any) -> "SchedulerConfig":
        """Return a validated copy with `updates` applied. Raises ValidationError."""
        unknown = set(updates) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown scheduler config fields: {sorted(unknown)}")
        return type(self).model_validate({**self.model_dump(), **updates})


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    json_format: bool = True
    console_output: bool = True

    @field_validator("level")
    @classmethod
    def _valid_level(cls, v: str) -> str:
        v = v.upper()
        if v not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level must be one of {sorted(_VALID_LOG_LEVELS)}, got '{v}'"
            )
        return v


class AppConfig(BaseModel):
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _resolve_config_path(config_path: str | Path | None) -> Path:
    if config_path:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_config(config_path: Optional[str | Path] = None) -> AppConfig:
    """Load AppConfig from YAML. Unknown top-level sections are ignored."""
    path = _resolve_config_path(config_path)
    data = _load_yaml(path)
    known = {k: v for k, v in data.items() if k in AppConfig.model_fields}
    try:
        return AppConfig(**known)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration in {path}: {problems}") from e
