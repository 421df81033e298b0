"""Data classes for the planner domain model."""
from dataclasses import asdict, dataclass, field
from typing import Optional

TASK_TYPES = ("learning", "practice", "review", "drill")
PLAN_STATUSES = ("active", "completed", "abandoned")


@dataclass(frozen=True)
class DomainReadiness:
    domain_id: int
    domain_name: str
    score: float


@dataclass(frozen=True)
class LearningPathItem:
    order: int
    title: str
    item_type: str = "course"


@dataclass
class PlanContext:
    """Inputs read once per generate/regenerate call."""

    domain_readiness: list
    incomplete_learning_items: list
    due_review_cards: int


@dataclass(frozen=True)
class PlannedTask:
    """A candidate task produced by a phase policy, not yet persisted."""

    task_type: str
    target_id: Optional[int]
    estimated_minutes: int
    notes: str


@dataclass
class DayPlan:
    day_index: int
    phase: str
    tasks: list = field(default_factory=list)


@dataclass
class StudyPlanTask:
    id: int
    study_plan_day_id: int
    task_type: str
    estimated_minutes: int
    target_id: Optional[int] = None
    completed_at: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "StudyPlanTask":
        return cls(
            id=row["id"],
            study_plan_day_id=row["study_plan_day_id"],
            task_type=row["task_type"],
            estimated_minutes=row["estimated_minutes"],
            target_id=row["target_id"],
            completed_at=row["completed_at"],
            notes=row["notes"],
        )


@dataclass
class StudyPlanDay:
    id: int
    study_plan_id: int
    date: str
    is_complete: bool = False
    tasks: list = field(default_factory=list)


@dataclass
class StudyPlan:
    id: int
    user_id: int
    certification_id: int
    target_exam_date: str
    status: str
    created_at: str
    updated_at: str
    days: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RegenerationResult:
    plan: StudyPlan
    tasks_removed: int
    tasks_generated: int
