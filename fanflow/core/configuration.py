"""
Configuration management for the fan-out executor.

Settings come from (in increasing priority): model defaults, the `executor:`
section of a YAML file, and FANFLOW_* environment variables.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from .errors import InvalidArgument
from .models import FailurePolicy

logger = logging.getLogger(__name__)

ENV_MAX_WORKERS = "FANFLOW_MAX_WORKERS"
ENV_POLICY = "FANFLOW_POLICY"
ENV_DEADLINE = "FANFLOW_DEADLINE"


class ExecutorSettings(BaseModel):
    """Tunables for FanOutExecutor.

    max_workers=None sizes each owned pool to the batch, so every task of
    the batch gets its own thread.
    """
    max_workers: Optional[int] = None
    policy: FailurePolicy = FailurePolicy.FAIL_FAST
    deadline: Optional[float] = None
    thread_name_prefix: str = "fanflow"

    @field_validator("max_workers")
    @classmethod
    def workers_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError(f"max_workers must be >= 1: {v}")
        return v

    @field_validator("deadline")
    @classmethod
    def deadline_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"deadline must be > 0: {v}")
        return v

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutorSettings":
        """Validate a plain mapping, reporting problems as InvalidArgument."""
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise InvalidArgument(f"invalid executor settings: {e}") from e

    def merged(self, **overrides: Any) -> "ExecutorSettings":
        """Return a copy with the non-None overrides applied and re-validated."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return ExecutorSettings.from_dict(data)


class SettingsLoader:
    """Loader for executor settings files."""

    def __init__(self, config_file: Optional[Union[str, Path]] = None, environ: Optional[Mapping[str, str]] = None):
        self.config_file = Path(config_file) if config_file is not None else None
        self.environ = os.environ if environ is None else environ

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Settings file not found: {self.config_file}")

    def load(self) -> ExecutorSettings:
        data: Dict[str, Any] = {}
        if self.config_file is not None:
            data.update(self._read_file())
        data.update(self._read_environment())
        settings = ExecutorSettings.from_dict(data)
        logger.debug(f"Executor settings: {settings.model_dump()}")
        return settings

    def _read_file(self) -> Dict[str, Any]:
        with open(self.config_file, "r") as f:
            raw = yaml.safe_load(f) or {}
        logger.info(f"Loading executor settings from {self.config_file}")
        if not isinstance(raw, dict):
            raise InvalidArgument(f"{self.config_file}: top level must be a mapping")
        section = raw.get("executor", raw)
        if not isinstance(section, dict):
            raise InvalidArgument(f"{self.config_file}: 'executor' must be a mapping")
        return dict(section)

    def _read_environment(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.environ.get(ENV_MAX_WORKERS):
            out["max_workers"] = self.environ[ENV_MAX_WORKERS]
        if self.environ.get(ENV_POLICY):
            out["policy"] = self.environ[ENV_POLICY]
        if self.environ.get(ENV_DEADLINE):
            out["deadline"] = self.environ[ENV_DEADLINE]
        return out


def load_settings(config_file: Optional[Union[str, Path]] = None) -> ExecutorSettings:
    return SettingsLoader(config_file).load()
