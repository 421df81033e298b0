"""Planner exceptions."""


class PlannerError(Exception):
    """Base class for errors raised by plan operations."""


class PlanValidationError(PlannerError):
    """Caller supplied invalid input, e.g. a target date not in the future."""


class PlanNotFoundError(PlannerError):
    """Referenced plan or task does not exist."""


class PlanStateError(PlannerError):
    """Operation not allowed in the plan's current status."""
