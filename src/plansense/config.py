"""
Configuration system for PlanSense.

Implements 12-factor config principles:
- Environment variables as primary config source
- Optional JSON or YAML config file for local development
- Per-rule enable/disable switches

Usage:
    from plansense.config import get_config

    config = get_config()
    if config.is_rule_enabled("FULL_TABLE_SCAN"):
        ...
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from plansense.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "PLANSENSE_"


class Config(BaseModel):
    """
    PlanSense configuration.

    Thresholds drive the plan rule engine; the limits guard the parsers
    against pathological input.
    """

    model_config = ConfigDict(frozen=True)

    # Plan rule thresholds
    large_table_rows: int = Field(
        default=5000,
        ge=0,
        description="Row count above which a full table scan is reported",
    )
    high_join_cost: int = Field(
        default=50000,
        ge=0,
        description="Join cost product above which a join is reported",
    )
    low_filtered_percent: float = Field(
        default=30.0,
        ge=0,
        le=100,
        description="Filtered percentage below which filtering is reported",
    )

    # Resource limits
    max_subquery_depth: int = Field(
        default=32,
        gt=0,
        description="Maximum nesting depth for recursive subquery parsing",
    )
    max_explain_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Maximum size of EXPLAIN text accepted by the parser",
    )

    disabled_rules: list[str] = Field(
        default_factory=list,
        description="Plan rule IDs that should not run",
    )

    @field_validator("disabled_rules")
    @classmethod
    def _normalize_rule_ids(cls, value: list[str]) -> list[str]:
        return [r.strip().upper() for r in value if r.strip()]

    def is_rule_enabled(self, rule_id: str) -> bool:
        """Check if a rule is enabled."""
        return rule_id.upper() not in self.disabled_rules


def _parse_env_int(key: str, default: int) -> int:
    """Parse integer from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Could not parse %s=%s, using %s", key, value, default)
        return default


def _parse_env_float(key: str, default: float) -> float:
    """Parse float from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Could not parse %s=%s, using %s", key, value, default)
        return default


def load_config_from_env() -> Config:
    """
    Load configuration from environment variables.

    Examples:
    - PLANSENSE_LARGE_TABLE_ROWS=20000
    - PLANSENSE_HIGH_JOIN_COST=100000
    - PLANSENSE_LOW_FILTERED_PERCENT=10
    - PLANSENSE_MAX_SUBQUERY_DEPTH=8
    - PLANSENSE_DISABLED_RULES=USING_FILESORT,LOW_FILTERED
    """
    defaults = Config()
    kwargs: dict[str, Any] = {
        "large_table_rows": _parse_env_int(
            f"{ENV_PREFIX}LARGE_TABLE_ROWS", defaults.large_table_rows
        ),
        "high_join_cost": _parse_env_int(
            f"{ENV_PREFIX}HIGH_JOIN_COST", defaults.high_join_cost
        ),
        "low_filtered_percent": _parse_env_float(
            f"{ENV_PREFIX}LOW_FILTERED_PERCENT", defaults.low_filtered_percent
        ),
        "max_subquery_depth": _parse_env_int(
            f"{ENV_PREFIX}MAX_SUBQUERY_DEPTH", defaults.max_subquery_depth
        ),
        "max_explain_bytes": _parse_env_int(
            f"{ENV_PREFIX}MAX_EXPLAIN_BYTES", defaults.max_explain_bytes
        ),
    }

    disabled = os.environ.get(f"{ENV_PREFIX}DISABLED_RULES")
    if disabled:
        kwargs["disabled_rules"] = [r.strip().upper() for r in disabled.split(",") if r.strip()]

    try:
        return Config(**kwargs)
    except ValidationError as e:
        logger.warning("Invalid environment configuration, using defaults: %s", e)
        return defaults


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON or YAML file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid.
    """
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}", config_key="config_file")

    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Cannot read config file {path}: {e}", config_key="config_file"
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}",
            config_key="config_file",
        )

    try:
        return Config(**data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(x) for x in first["loc"])
        raise ConfigurationError(
            f"Invalid config value for '{key}': {first['msg']}", config_key=key
        ) from e


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. PLANSENSE_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
