"""
timesheet_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``timesheet_kernel``.  The kernel MUST NEVER
    import from ``timesheet_config``; ``timesheet_config.bridges`` translates
    the config into kernel inputs.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Deterministic checksum: the same YAML document always yields the same
      checksum, independent of key order and of the environment override.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` -- a required key is missing.
    - ``ValueError`` -- a value is malformed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``TIMESHEET_CONFIG_TRACE`` log entry with the config id, version,
    checksum and whether the database URL came from the environment.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from timesheet_config.loader import load_yaml_file, parse_config
from timesheet_config.schema import (
    DatabaseSettings,
    LoggingSettings,
    TimesheetConfig,
    WorkflowSettings,
)

_logger = logging.getLogger("timesheet_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"
DATABASE_URL_ENV = "TIMESHEET_DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> TimesheetConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to the packaged
            ``timesheet_config/defaults.yaml``.

    Returns:
        A frozen TimesheetConfig.  When ``TIMESHEET_DATABASE_URL`` is set
        and non-empty it replaces ``database.url``.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value is malformed.
    """
    source = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(source))

    env_url = os.environ.get(DATABASE_URL_ENV, "").strip()
    if env_url:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=env_url),
        )

    _logger.info(
        "TIMESHEET_CONFIG_TRACE",
        extra={
            "trace_type": "TIMESHEET_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(source),
            "database_url_from_env": bool(env_url),
        },
    )
    return config


__all__ = [
    "DATABASE_URL_ENV",
    "DEFAULT_CONFIG_PATH",
    "DatabaseSettings",
    "LoggingSettings",
    "TimesheetConfig",
    "WorkflowSettings",
    "get_active_config",
]
