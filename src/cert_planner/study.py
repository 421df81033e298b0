"""Learning path progress and study plan task completion."""
from datetime import datetime

import structlog

from cert_planner.db import get_connection
from cert_planner.errors import PlanNotFoundError, PlanStateError

logger = structlog.get_logger()


def get_completed_learning_items(db_path: str, user_id: int, certification_id: int) -> set[int]:
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT path_item_order FROM learning_path_progress
        WHERE user_id = ? AND certification_id = ? AND completed_at IS NOT NULL""",
        (user_id, certification_id),
    ).fetchall()
    conn.close()
    return {r["path_item_order"] for r in rows}


def get_incomplete_learning_items(
    db_path: str, user_id: int, certification_id: int, catalog: list
) -> list[int]:
    """Ordinals of catalog items the user has not finished, in catalog order."""
    completed = get_completed_learning_items(db_path, user_id, certification_id)
    return [item.order for item in catalog if item.order not in completed]


def mark_learning_item_complete(
    db_path: str,
    user_id: int,
    certification_id: int,
    path_item_order: int,
    now: datetime | None = None,
) -> None:
    completed_at = (now or datetime.now()).isoformat(timespec="seconds")
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO learning_path_progress (user_id, certification_id, path_item_order, completed_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(user_id, certification_id, path_item_order) DO UPDATE SET completed_at=?""",
        (user_id, certification_id, path_item_order, completed_at, completed_at),
    )
    conn.commit()
    conn.close()


def is_day_complete(conn, day_id: int) -> bool:
    """A day is complete when it has tasks and every one of them is done."""
    row = conn.execute(
        """SELECT COUNT(*) as total,
            SUM(CASE WHEN completed_at IS NOT NULL THEN 1 ELSE 0 END) as done
        FROM study_plan_tasks WHERE study_plan_day_id = ?""",
        (day_id,),
    ).fetchone()
    return row["total"] > 0 and row["done"] == row["total"]


def complete_task(
    db_path: str,
    plan_id: int,
    task_id: int,
    notes: str | None = None,
    now: datetime | None = None,
) -> tuple[dict, bool]:
    """Mark a plan task done. Returns the task and whether its day is now complete."""
    conn = get_connection(db_path)
    try:
        plan = conn.execute("SELECT * FROM study_plans WHERE id = ?", (plan_id,)).fetchone()
        if not plan:
            raise PlanNotFoundError(f"Study plan {plan_id} not found")
        if plan["status"] != "active":
            raise PlanStateError("Cannot modify tasks on inactive plan")

        task = conn.execute(
            """SELECT t.* FROM study_plan_tasks t
            JOIN study_plan_days d ON t.study_plan_day_id = d.id
            WHERE t.id = ? AND d.study_plan_id = ?""",
            (task_id, plan_id),
        ).fetchone()
        if not task:
            raise PlanNotFoundError(f"Task {task_id} not found in plan {plan_id}")

        day_id = task["study_plan_day_id"]
        if task["completed_at"] is not None:
            return dict(task), is_day_complete(conn, day_id)

        completed_at = (now or datetime.now()).isoformat(timespec="seconds")
        conn.execute(
            "UPDATE study_plan_tasks SET completed_at = ?, notes = ? WHERE id = ?",
            (completed_at, notes if notes is not None else task["notes"], task_id),
        )
        day_complete = is_day_complete(conn, day_id)
        if day_complete:
            conn.execute("UPDATE study_plan_days SET is_complete = 1 WHERE id = ?", (day_id,))
        conn.execute("UPDATE study_plans SET updated_at = ? WHERE id = ?", (completed_at, plan_id))
        conn.commit()

        updated = conn.execute("SELECT * FROM study_plan_tasks WHERE id = ?", (task_id,)).fetchone()
    finally:
        conn.close()

    logger.info("task_completed", plan_id=plan_id, task_id=task_id, day_complete=day_complete)
    return dict(updated), day_complete
