"""Planner configuration and logging setup."""
import logging
import os
from dataclasses import dataclass, field

import structlog

LOCAL_USER_ID = 1
DEFAULT_CERTIFICATION_ID = 1


@dataclass(frozen=True)
class PlanConfig:
    """Static time budgets and ratios used by plan generation.

    Passed into the planner rather than read from module globals so tests
    can exercise alternative budgets.
    """

    learning_minutes: int = 45
    practice_minutes: int = 30
    review_minutes: int = 15
    drill_minutes: int = 15
    phase_minutes: dict = field(
        default_factory=lambda: {"early": 45, "middle": 60, "late": 120}
    )
    early_phase_ratio: float = 0.4
    middle_phase_ratio: float = 0.3
    max_plan_days: int = 365
    weak_domain_fraction: float = 0.5

    def budget_for(self, phase: str) -> int:
        return self.phase_minutes[phase]


DEFAULT_CONFIG = PlanConfig()


def configure_logging(level: str | None = None) -> None:
    """Route structlog output through stdlib logging at the given level."""
    level_name = (level or os.environ.get("CERT_PLANNER_LOG_LEVEL", "WARNING")).upper()
    logging.basicConfig(format="%(message)s", level=getattr(logging, level_name, logging.WARNING))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
