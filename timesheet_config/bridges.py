"""
Config → Kernel Bridges.

Functions that convert a TimesheetConfig into kernel inputs.  These live in
timesheet_config (the producer) because the kernel must NEVER import
timesheet_config.

Usage:
    from timesheet_config import get_active_config
    from timesheet_config.bridges import (
        build_workflow_policy,
        configure_logging_from_config,
        init_engine_from_config,
    )

    config = get_active_config()
    configure_logging_from_config(config)
    init_engine_from_config(config)
    policy = build_workflow_policy(config)
"""

from __future__ import annotations

from sqlalchemy import Engine

from timesheet_config.loader import log_level
from timesheet_config.schema import TimesheetConfig
from timesheet_kernel.db.engine import init_engine_from_url
from timesheet_kernel.domain.policy import WorkflowPolicy
from timesheet_kernel.logging_config import configure_logging


def build_workflow_policy(config: TimesheetConfig) -> WorkflowPolicy:
    """Build the kernel's WorkflowPolicy from ``config.workflow``."""
    workflow = config.workflow
    return WorkflowPolicy(
        notify_manager_on_submission=workflow.notify_manager_on_submission,
        notify_admin_on_manager_approval=workflow.notify_admin_on_manager_approval,
        default_contract_days=workflow.default_contract_days,
    )


def init_engine_from_config(config: TimesheetConfig) -> Engine:
    """Initialize the module-level engine from ``config.database``."""
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_pre_ping=db.pool_pre_ping,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )


def configure_logging_from_config(config: TimesheetConfig) -> None:
    """Configure kernel logging at the configured level (idempotent)."""
    configure_logging(level=log_level(config.logging))
