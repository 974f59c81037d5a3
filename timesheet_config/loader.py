"""
YAML loader for the timesheet configuration.

Responsibility:
    Reads a YAML document and parses it into ``TimesheetConfig``.  Performs
    type checks only; it never touches the kernel.

Failure modes:
    - ``FileNotFoundError`` -- the file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``KeyError`` -- a required key (``config_id``, ``version``,
      ``database.url``) is missing.
    - ``ValueError`` -- a value has the wrong type or range.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from timesheet_config.schema import (
    DatabaseSettings,
    LoggingSettings,
    TimesheetConfig,
    WorkflowSettings,
)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping, got {type(data).__name__}")
    return data


def parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def parse_positive_int(value: Any, name: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{name} must be a mapping")
    return section


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    """Parse DatabaseSettings.  ``url`` is required."""
    url = data["url"]
    if not isinstance(url, str) or not url.strip():
        raise ValueError("database.url must be a non-empty string")
    return DatabaseSettings(
        url=url.strip(),
        echo=parse_bool(data.get("echo", False), "database.echo"),
        pool_size=parse_positive_int(data.get("pool_size", 20), "database.pool_size"),
        max_overflow=parse_positive_int(
            data.get("max_overflow", 10), "database.max_overflow"
        ),
        pool_pre_ping=parse_bool(data.get("pool_pre_ping", True), "database.pool_pre_ping"),
        pool_timeout=parse_positive_int(
            data.get("pool_timeout", 30), "database.pool_timeout"
        ),
        pool_recycle=parse_positive_int(
            data.get("pool_recycle", 1800), "database.pool_recycle"
        ),
    )


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}, got {level!r}")
    return LoggingSettings(level=level)


def parse_workflow(data: dict[str, Any]) -> WorkflowSettings:
    return WorkflowSettings(
        notify_manager_on_submission=parse_bool(
            data.get("notify_manager_on_submission", True),
            "workflow.notify_manager_on_submission",
        ),
        notify_admin_on_manager_approval=parse_bool(
            data.get("notify_admin_on_manager_approval", True),
            "workflow.notify_admin_on_manager_approval",
        ),
        default_contract_days=parse_positive_int(
            data.get("default_contract_days", 365), "workflow.default_contract_days"
        ),
    )


def parse_config(data: dict[str, Any]) -> TimesheetConfig:
    """
    Parse a full configuration document.

    Postconditions:
        - Returns a frozen TimesheetConfig whose ``checksum`` is
          ``compute_checksum(data)``.
    """
    return TimesheetConfig(
        config_id=str(data["config_id"]),
        version=parse_positive_int(data["version"], "version"),
        database=parse_database(_section(data, "database")),
        logging=parse_logging(_section(data, "logging")),
        workflow=parse_workflow(_section(data, "workflow")),
        checksum=compute_checksum(data),
    )


def log_level(settings: LoggingSettings) -> int:
    """Numeric ``logging`` level for the configured name."""
    return logging.getLevelName(settings.level)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums; key order in the
    YAML source does not matter.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
