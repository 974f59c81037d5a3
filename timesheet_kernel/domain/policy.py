"""
WorkflowPolicy -- tunable knobs for the submission workflow.

The kernel only sees this frozen value object; ``timesheet_config.bridges``
builds it from YAML.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class WorkflowPolicy:
    """
    Behavior switches consumed by the services.

    Guarantees:
        - ``default_contract_days`` is positive.
    """

    notify_manager_on_submission: bool = True
    notify_admin_on_manager_approval: bool = True
    default_contract_days: int = 365

    def __post_init__(self) -> None:
        if self.default_contract_days <= 0:
            raise ValueError("default_contract_days must be positive")
