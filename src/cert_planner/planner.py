"""Study plan generation and regeneration.

A plan runs from today up to the day before the target exam date. Its days
are split into three contiguous phases:

- early: learning path items, with reviews every other day
- middle: learning every other day, practice on weak domains, reviews
- late: heavy practice and timed drills on weak domains, daily reviews

Generation and regeneration share ``plan_days``; they differ only in the
day range they cover and in how much of each day's budget is already used.
"""
import math
from datetime import date, datetime, timedelta

import structlog

from cert_planner.config import DEFAULT_CONFIG, PlanConfig
from cert_planner.db import get_connection, transaction
from cert_planner.errors import PlanNotFoundError, PlanStateError, PlanValidationError
from cert_planner.models import (
    DayPlan,
    PlanContext,
    PlannedTask,
    RegenerationResult,
    StudyPlan,
    StudyPlanDay,
    StudyPlanTask,
)
from cert_planner.readiness import get_domain_readiness
from cert_planner.reviews import count_due_reviews
from cert_planner.seed import load_learning_path
from cert_planner.study import get_incomplete_learning_items, is_day_complete

logger = structlog.get_logger()


def _timestamp(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


# --- Phases ---


def phase_boundaries(total_days: int, config: PlanConfig = DEFAULT_CONFIG) -> tuple[int, int]:
    """Return (early_end, middle_end) as exclusive day indexes."""
    early_end = math.floor(total_days * config.early_phase_ratio)
    middle_end = early_end + math.floor(total_days * config.middle_phase_ratio)
    return early_end, middle_end


def phase_for_day(day_index: int, boundaries: tuple[int, int]) -> str:
    early_end, middle_end = boundaries
    if day_index < early_end:
        return "early"
    if day_index < middle_end:
        return "middle"
    return "late"


def select_weak_domains(domain_readiness: list, config: PlanConfig = DEFAULT_CONFIG) -> list:
    """Lowest-scoring half of the domains, weakest first."""
    ranked = sorted(domain_readiness, key=lambda d: d.score)
    return ranked[: math.ceil(len(ranked) * config.weak_domain_fraction)]


# --- Phase policies ---


class _DayBudget:
    def __init__(self, minutes: int):
        self.remaining = minutes
        self.tasks = []

    def add(self, task: PlannedTask) -> None:
        if task.estimated_minutes <= self.remaining:
            self.tasks.append(task)
            self.remaining -= task.estimated_minutes


def _learning_task(order: int, config: PlanConfig) -> PlannedTask:
    return PlannedTask("learning", order, config.learning_minutes, f"Complete learning path item #{order}")


def _practice_task(domain, config: PlanConfig, label: str = "Practice") -> PlannedTask:
    return PlannedTask("practice", domain.domain_id, config.practice_minutes, f"{label}: {domain.domain_name}")


def _review_task(config: PlanConfig) -> PlannedTask:
    return PlannedTask("review", None, config.review_minutes, "Review spaced repetition cards")


def early_phase_tasks(day_index, next_learning_item, weak_domains, due_review_cards, config=DEFAULT_CONFIG):
    budget = _DayBudget(config.budget_for("early"))
    if next_learning_item is not None:
        budget.add(_learning_task(next_learning_item, config))
    if day_index % 2 == 0 and due_review_cards > 0:
        budget.add(_review_task(config))
    return budget.tasks


def middle_phase_tasks(day_index, next_learning_item, weak_domains, due_review_cards, config=DEFAULT_CONFIG):
    budget = _DayBudget(config.budget_for("middle"))
    if day_index % 2 == 0 and next_learning_item is not None:
        budget.add(_learning_task(next_learning_item, config))
    if weak_domains:
        budget.add(_practice_task(weak_domains[day_index % len(weak_domains)], config))
    if due_review_cards > 0:
        budget.add(_review_task(config))
    return budget.tasks


def late_phase_tasks(day_index, next_learning_item, weak_domains, due_review_cards, config=DEFAULT_CONFIG):
    budget = _DayBudget(config.budget_for("late"))
    if weak_domains:
        domain = weak_domains[day_index % len(weak_domains)]
        budget.add(_practice_task(domain, config, "Intensive practice"))

    # One slot per weak domain plus one mixed-domain slot
    drill_index = day_index % (len(weak_domains) + 1)
    if drill_index < len(weak_domains):
        drill_domain = weak_domains[drill_index]
        budget.add(PlannedTask(
            "drill", drill_domain.domain_id, config.drill_minutes,
            f"Timed drill: {drill_domain.domain_name}",
        ))
    else:
        budget.add(PlannedTask("drill", None, config.drill_minutes, "Timed drill: Mixed domains"))

    if len(weak_domains) > 1:
        domain = weak_domains[(day_index + 1) % len(weak_domains)]
        budget.add(_practice_task(domain, config, "Additional practice"))
    if due_review_cards > 0:
        budget.add(_review_task(config))
    return budget.tasks


PHASE_POLICIES = {
    "early": early_phase_tasks,
    "middle": middle_phase_tasks,
    "late": late_phase_tasks,
}


def fit_to_budget(candidates: list, budget: int) -> list:
    """Accept candidates in order, skipping any that would exceed the budget."""
    accepted = []
    used = 0
    for task in candidates:
        if used + task.estimated_minutes > budget:
            continue
        accepted.append(task)
        used += task.estimated_minutes
    return accepted


def plan_days(
    day_count: int,
    context: PlanContext,
    config: PlanConfig = DEFAULT_CONFIG,
    used_minutes: list | None = None,
) -> list[DayPlan]:
    """Build the task list for each of ``day_count`` consecutive days.

    ``used_minutes[i]`` is subtracted from day i's phase budget. Learning
    path items are handed out in catalog order, each at most once.
    """
    boundaries = phase_boundaries(day_count, config)
    weak_domains = select_weak_domains(context.domain_readiness, config)
    learning_items = context.incomplete_learning_items
    cursor = 0

    day_plans = []
    for day_index in range(day_count):
        phase = phase_for_day(day_index, boundaries)
        next_item = learning_items[cursor] if cursor < len(learning_items) else None
        candidates = PHASE_POLICIES[phase](
            day_index, next_item, weak_domains, context.due_review_cards, config
        )
        used = used_minutes[day_index] if used_minutes else 0
        accepted = fit_to_budget(candidates, config.budget_for(phase) - used)
        cursor += sum(1 for t in accepted if t.task_type == "learning")
        day_plans.append(DayPlan(day_index=day_index, phase=phase, tasks=accepted))
    return day_plans


# --- Persistence ---


def load_plan_context(
    db_path: str,
    user_id: int,
    certification_id: int,
    now: datetime,
    catalog: list,
    readiness_source=get_domain_readiness,
) -> PlanContext:
    # Readiness failures propagate; no fallback to defaults
    domain_readiness = readiness_source(db_path, user_id, certification_id)
    return PlanContext(
        domain_readiness=list(domain_readiness),
        incomplete_learning_items=get_incomplete_learning_items(
            db_path, user_id, certification_id, catalog
        ),
        due_review_cards=count_due_reviews(db_path, user_id, now),
    )


def _parse_target_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise PlanValidationError("Target exam date must be in YYYY-MM-DD format") from e


def _insert_tasks(conn, day_id: int, tasks: list) -> None:
    conn.executemany(
        """INSERT INTO study_plan_tasks
        (study_plan_day_id, task_type, target_id, estimated_minutes, notes)
        VALUES (?, ?, ?, ?, ?)""",
        [(day_id, t.task_type, t.target_id, t.estimated_minutes, t.notes) for t in tasks],
    )


def generate_study_plan(
    db_path: str,
    user_id: int,
    certification_id: int,
    target_exam_date,
    *,
    config: PlanConfig = DEFAULT_CONFIG,
    catalog: list | None = None,
    readiness_source=None,
    now: datetime | None = None,
) -> StudyPlan:
    """Create a new active plan, abandoning any previous active plan.

    The abandon, the plan insert and every day and task insert happen in
    one transaction.
    """
    now = now or datetime.now()
    today = now.date()
    target = _parse_target_date(target_exam_date)
    total_days = (target - today).days
    if total_days < 1:
        logger.warning("plan_rejected", user_id=user_id, target_exam_date=str(target_exam_date))
        raise PlanValidationError("Target exam date must be in the future")
    if total_days > config.max_plan_days:
        logger.warning("plan_rejected", user_id=user_id, target_exam_date=str(target_exam_date))
        raise PlanValidationError(
            f"Target exam date must be within {config.max_plan_days} days"
        )

    context = load_plan_context(
        db_path, user_id, certification_id, now,
        catalog if catalog is not None else load_learning_path(),
        readiness_source or get_domain_readiness,
    )
    day_plans = plan_days(total_days, context, config)

    stamp = _timestamp(now)
    conn = get_connection(db_path)
    try:
        with transaction(conn):
            abandoned = conn.execute(
                """UPDATE study_plans SET status = 'abandoned', updated_at = ?
                WHERE user_id = ? AND certification_id = ? AND status = 'active'""",
                (stamp, user_id, certification_id),
            ).rowcount
            plan_id = conn.execute(
                """INSERT INTO study_plans
                (user_id, certification_id, target_exam_date, status, created_at, updated_at)
                VALUES (?, ?, ?, 'active', ?, ?)""",
                (user_id, certification_id, target.isoformat(), stamp, stamp),
            ).lastrowid
            for day_plan in day_plans:
                day_date = today + timedelta(days=day_plan.day_index)
                day_id = conn.execute(
                    "INSERT INTO study_plan_days (study_plan_id, date) VALUES (?, ?)",
                    (plan_id, day_date.isoformat()),
                ).lastrowid
                _insert_tasks(conn, day_id, day_plan.tasks)
    finally:
        conn.close()

    if abandoned:
        logger.info("plans_abandoned", user_id=user_id, certification_id=certification_id, count=abandoned)
    logger.info(
        "plan_generated",
        plan_id=plan_id,
        user_id=user_id,
        certification_id=certification_id,
        total_days=total_days,
        task_count=sum(len(d.tasks) for d in day_plans),
        weak_domains=[d.domain_id for d in select_weak_domains(context.domain_readiness, config)],
        due_review_cards=context.due_review_cards,
    )
    return get_study_plan(db_path, plan_id)


def regenerate_study_plan(
    db_path: str,
    plan_id: int,
    keep_completed_tasks: bool = True,
    *,
    config: PlanConfig = DEFAULT_CONFIG,
    catalog: list | None = None,
    readiness_source=None,
    now: datetime | None = None,
) -> RegenerationResult:
    """Re-plan the days from today onward with fresh readiness and progress.

    Phase boundaries are recomputed over the remaining days only. Past days
    are left exactly as they are.
    """
    now = now or datetime.now()
    today = now.date().isoformat()

    conn = get_connection(db_path)
    plan = conn.execute("SELECT * FROM study_plans WHERE id = ?", (plan_id,)).fetchone()
    conn.close()
    if not plan:
        raise PlanNotFoundError(f"Study plan {plan_id} not found")
    if plan["status"] != "active":
        raise PlanStateError("Can only regenerate active plans")

    context = load_plan_context(
        db_path, plan["user_id"], plan["certification_id"], now,
        catalog if catalog is not None else load_learning_path(),
        readiness_source or get_domain_readiness,
    )

    tasks_removed = 0
    tasks_generated = 0
    conn = get_connection(db_path)
    try:
        with transaction(conn):
            current = conn.execute("SELECT status FROM study_plans WHERE id = ?", (plan_id,)).fetchone()
            if not current or current["status"] != "active":
                raise PlanStateError("Can only regenerate active plans")

            remaining_days = conn.execute(
                """SELECT * FROM study_plan_days
                WHERE study_plan_id = ? AND date >= ? ORDER BY date""",
                (plan_id, today),
            ).fetchall()

            used_minutes = []
            for day in remaining_days:
                existing = conn.execute(
                    "SELECT * FROM study_plan_tasks WHERE study_plan_day_id = ?", (day["id"],)
                ).fetchall()
                completed = [t for t in existing if t["completed_at"] is not None]
                if keep_completed_tasks:
                    to_remove = [t for t in existing if t["completed_at"] is None]
                    used_minutes.append(sum(t["estimated_minutes"] for t in completed))
                else:
                    to_remove = list(existing)
                    used_minutes.append(0)
                conn.executemany(
                    "DELETE FROM study_plan_tasks WHERE id = ?", [(t["id"],) for t in to_remove]
                )
                tasks_removed += len(to_remove)

            day_plans = plan_days(len(remaining_days), context, config, used_minutes)
            for day, day_plan in zip(remaining_days, day_plans):
                _insert_tasks(conn, day["id"], day_plan.tasks)
                tasks_generated += len(day_plan.tasks)
                conn.execute(
                    "UPDATE study_plan_days SET is_complete = ? WHERE id = ?",
                    (int(is_day_complete(conn, day["id"])), day["id"]),
                )

            conn.execute(
                "UPDATE study_plans SET updated_at = ? WHERE id = ?", (_timestamp(now), plan_id)
            )
    finally:
        conn.close()

    logger.info(
        "plan_regenerated",
        plan_id=plan_id,
        remaining_days=len(day_plans),
        keep_completed_tasks=keep_completed_tasks,
        tasks_removed=tasks_removed,
        tasks_generated=tasks_generated,
    )
    return RegenerationResult(
        plan=get_study_plan(db_path, plan_id),
        tasks_removed=tasks_removed,
        tasks_generated=tasks_generated,
    )


# --- Queries ---


def get_study_plan(db_path: str, plan_id: int) -> StudyPlan | None:
    """Fetch a plan with its days (by date) and tasks (in creation order)."""
    conn = get_connection(db_path)
    plan = conn.execute("SELECT * FROM study_plans WHERE id = ?", (plan_id,)).fetchone()
    if not plan:
        conn.close()
        return None
    days = conn.execute(
        "SELECT * FROM study_plan_days WHERE study_plan_id = ? ORDER BY date", (plan_id,)
    ).fetchall()
    tasks = conn.execute(
        """SELECT t.* FROM study_plan_tasks t
        JOIN study_plan_days d ON t.study_plan_day_id = d.id
        WHERE d.study_plan_id = ?
        ORDER BY t.id""",
        (plan_id,),
    ).fetchall()
    conn.close()

    tasks_by_day = {}
    for t in tasks:
        tasks_by_day.setdefault(t["study_plan_day_id"], []).append(StudyPlanTask.from_row(t))

    return StudyPlan(
        id=plan["id"],
        user_id=plan["user_id"],
        certification_id=plan["certification_id"],
        target_exam_date=plan["target_exam_date"],
        status=plan["status"],
        created_at=plan["created_at"],
        updated_at=plan["updated_at"],
        days=[
            StudyPlanDay(
                id=d["id"],
                study_plan_id=d["study_plan_id"],
                date=d["date"],
                is_complete=bool(d["is_complete"]),
                tasks=tasks_by_day.get(d["id"], []),
            )
            for d in days
        ],
    )


def get_active_study_plan(db_path: str, user_id: int, certification_id: int) -> StudyPlan | None:
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT id FROM study_plans
        WHERE user_id = ? AND certification_id = ? AND status = 'active'
        ORDER BY created_at DESC, id DESC LIMIT 1""",
        (user_id, certification_id),
    ).fetchone()
    conn.close()
    return get_study_plan(db_path, row["id"]) if row else None


def abandon_study_plan(db_path: str, plan_id: int, now: datetime | None = None) -> None:
    conn = get_connection(db_path)
    try:
        plan = conn.execute("SELECT status FROM study_plans WHERE id = ?", (plan_id,)).fetchone()
        if not plan:
            raise PlanNotFoundError(f"Study plan {plan_id} not found")
        if plan["status"] != "active":
            raise PlanStateError("Plan is already inactive")
        conn.execute(
            "UPDATE study_plans SET status = 'abandoned', updated_at = ? WHERE id = ?",
            (_timestamp(now or datetime.now()), plan_id),
        )
        conn.commit()
    finally:
        conn.close()
    logger.info("plan_abandoned", plan_id=plan_id)


def plan_progress(plan: StudyPlan, today: date | None = None) -> dict:
    """Summary counts for a plan plus today's tasks."""
    today_str = (today or date.today()).isoformat()
    todays_day = next((d for d in plan.days if d.date == today_str), None)
    total_tasks = sum(len(d.tasks) for d in plan.days)
    completed_tasks = sum(1 for d in plan.days for t in d.tasks if t.completed_at is not None)
    return {
        "todays_tasks": todays_day.tasks if todays_day else [],
        "total_days": len(plan.days),
        "completed_days": sum(1 for d in plan.days if d.is_complete),
        "total_tasks": total_tasks,
        "completed_tasks": completed_tasks,
        "percent_complete": round(completed_tasks / total_tasks * 100) if total_tasks else 0,
    }
