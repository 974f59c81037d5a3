"""
TimesheetConfig schema.

Typed, frozen view of the YAML configuration.  The loader parses raw YAML
into these types; bridges translate them into kernel inputs.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection and pool settings passed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_pre_ping: bool = True
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class WorkflowSettings:
    """Workflow switches; mirrors ``WorkflowPolicy`` field for field."""

    notify_manager_on_submission: bool = True
    notify_admin_on_manager_approval: bool = True
    default_contract_days: int = 365


@dataclass(frozen=True)
class TimesheetConfig:
    """
    Root configuration artifact.

    ``checksum`` is the SHA-256 of the parsed source document (before the
    environment override), so two processes reading the same file agree on
    it.
    """

    config_id: str
    version: int
    database: DatabaseSettings
    logging: LoggingSettings
    workflow: WorkflowSettings
    checksum: str = ""
