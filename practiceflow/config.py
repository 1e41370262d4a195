from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_API_TIMEOUT,
    DEFAULT_MILESTONE_LIMIT,
    DEFAULT_RECENT_ACTIVITY_LIMIT,
    DEFAULT_WORKDAY_HOURS,
)


class EngineConfig(BaseModel):
    """Behaviour switches for the workflow engine."""

    strict_cycle_detection: bool = False
    skipped_satisfies_prerequisites: bool = False
    workday_hours: int = Field(default=DEFAULT_WORKDAY_HOURS, gt=0)
    recent_activity_limit: int = Field(default=DEFAULT_RECENT_ACTIVITY_LIMIT, ge=0)
    milestone_limit: int = Field(default=DEFAULT_MILESTONE_LIMIT, ge=0)


class AutomationConfig(BaseModel):
    """Settings for the built-in effect handlers."""

    api_timeout: float = DEFAULT_API_TIMEOUT


class PracticeflowConfig(BaseModel):
    """Top-level configuration model."""

    engine: EngineConfig = EngineConfig()
    automation: AutomationConfig = AutomationConfig()
    database_url: Optional[str] = None
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> PracticeflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to PRACTICEFLOW_CONFIG
            env variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("PRACTICEFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = PracticeflowConfig(**data)
    else:
        config = PracticeflowConfig()

    env_db_url = os.getenv("PRACTICEFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    return config
