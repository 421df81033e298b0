"""Plan regeneration over the remaining days."""
from datetime import date, datetime, timedelta

import pytest

from cert_planner.db import get_connection, init_db
from cert_planner.errors import PlanNotFoundError, PlanStateError
from cert_planner.models import DomainReadiness
from cert_planner.planner import (
    abandon_study_plan,
    generate_study_plan,
    get_study_plan,
    regenerate_study_plan,
)
from cert_planner.reviews import record_review
from cert_planner.seed import seed_all
from cert_planner.study import complete_task, mark_learning_item_complete

NOW = datetime(2026, 3, 2, 9, 30)
TARGET = date(2026, 3, 12)


def _setup(db_path, readiness, due_review=True):
    init_db(db_path)
    seed_all(db_path)
    if due_review:
        record_review(db_path, 1, 500, "again", now=NOW - timedelta(days=2))
    return generate_study_plan(db_path, 1, 1, TARGET, readiness_source=lambda *_: readiness, now=NOW)


def _regenerate(db_path, plan_id, readiness, keep=True, days_later=8):
    return regenerate_study_plan(
        db_path, plan_id, keep,
        readiness_source=lambda *_: readiness,
        now=NOW + timedelta(days=days_later),
    )


def _snapshot(db_path):
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM study_plan_tasks ORDER BY id").fetchall()
    days = conn.execute("SELECT * FROM study_plan_days ORDER BY id").fetchall()
    plans = conn.execute("SELECT * FROM study_plans ORDER BY id").fetchall()
    conn.close()
    return [dict(r) for r in rows], [dict(d) for d in days], [dict(p) for p in plans]


def test_regenerate_keeps_completed_tasks(tmp_db, readiness):
    plan = _setup(tmp_db, readiness)
    day8 = plan.days[8]
    done = day8.tasks[0]
    complete_task(tmp_db, plan.id, done.id, now=NOW + timedelta(days=8))

    result = _regenerate(tmp_db, plan.id, readiness, keep=True)

    assert result.tasks_removed == 3 + 4
    assert result.tasks_generated == 4 + 4
    new_day8 = result.plan.days[8]
    assert done.id in [t.id for t in new_day8.tasks]
    kept = next(t for t in new_day8.tasks if t.id == done.id)
    assert kept.completed_at is not None
    # 30 completed minutes + 90 regenerated fit the 120 minute late budget
    assert sum(t.estimated_minutes for t in new_day8.tasks) == 120


def test_regenerate_fills_residual_budget_past_oversized_task(tmp_db, readiness):
    plan = _setup(tmp_db, readiness)
    learning = plan.days[4].tasks[0]
    assert learning.task_type == "learning"
    complete_task(tmp_db, plan.id, learning.id, now=NOW)

    result = _regenerate(tmp_db, plan.id, readiness, keep=True, days_later=0)

    # 15 minutes left of 60: the next learning item is skipped, the review fits
    day4 = result.plan.days[4]
    assert [(t.task_type, t.completed_at is not None) for t in day4.tasks] == [
        ("learning", True),
        ("review", False),
    ]


def test_regenerate_without_keeping_removes_everything(tmp_db, readiness):
    plan = _setup(tmp_db, readiness)
    done = plan.days[8].tasks[0]
    complete_task(tmp_db, plan.id, done.id, now=NOW + timedelta(days=8))

    result = _regenerate(tmp_db, plan.id, readiness, keep=False)

    assert result.tasks_removed == 8
    assert result.tasks_generated == 8
    ids = [t.id for d in result.plan.days for t in d.tasks]
    assert done.id not in ids
    assert all(t.completed_at is None for d in result.plan.days[8:] for t in d.tasks)


def test_regenerate_never_touches_past_days(tmp_db, readiness):
    plan = _setup(tmp_db, readiness)
    before = {d.date: [(t.id, t.task_type) for t in d.tasks] for d in plan.days[:8]}

    result = _regenerate(tmp_db, plan.id, readiness)

    after = {d.date: [(t.id, t.task_type) for t in d.tasks] for d in result.plan.days[:8]}
    assert after == before
    assert len(result.plan.days) == 10


def test_regenerate_close_to_exam_is_all_late(tmp_db, readiness):
    plan = _setup(tmp_db, readiness, due_review=False)
    result = _regenerate(tmp_db, plan.id, readiness, days_later=8)
    remaining = result.plan.days[8:]
    for day in remaining:
        assert "learning" not in [t.task_type for t in day.tasks]
        assert "drill" in [t.task_type for t in day.tasks]


def test_regenerate_recomputes_phases_over_remaining_days(tmp_db, readiness):
    plan = _setup(tmp_db, readiness, due_review=False)
    # From day 0 again: the whole plan is remaining, same shape as before
    result = _regenerate(tmp_db, plan.id, readiness, days_later=0)
    kinds = [[t.task_type for t in d.tasks] for d in result.plan.days]
    assert kinds[:4] == [["learning"]] * 4
    assert kinds[7:] == [["practice", "drill", "practice"]] * 3


def test_regenerate_uses_fresh_context(tmp_db, readiness):
    plan = _setup(tmp_db, readiness, due_review=False)
    mark_learning_item_complete(tmp_db, 1, 1, 1)
    mark_learning_item_complete(tmp_db, 1, 1, 2)
    shifted = [
        DomainReadiness(1, "Setup", 95.0),
        DomainReadiness(2, "Planning", 5.0),
        DomainReadiness(3, "Deploying", 50.0),
        DomainReadiness(4, "Operations", 90.0),
    ]
    result = _regenerate(tmp_db, plan.id, shifted, days_later=0)
    learning = [t.target_id for d in result.plan.days for t in d.tasks if t.task_type == "learning"]
    assert learning[0] == 3
    practice = {t.target_id for d in result.plan.days for t in d.tasks if t.task_type == "practice"}
    assert practice == {2, 3}


def test_regenerate_resets_day_completion(tmp_db, readiness):
    plan = _setup(tmp_db, readiness, due_review=False)
    day = plan.days[8]
    for task in day.tasks:
        complete_task(tmp_db, plan.id, task.id, now=NOW + timedelta(days=8))
    assert get_study_plan(tmp_db, plan.id).days[8].is_complete

    result = _regenerate(tmp_db, plan.id, readiness, keep=False)
    assert not result.plan.days[8].is_complete


def test_regenerate_bumps_updated_at(tmp_db, readiness):
    plan = _setup(tmp_db, readiness)
    result = _regenerate(tmp_db, plan.id, readiness)
    assert result.plan.updated_at == "2026-03-10T09:30:00"
    assert result.plan.created_at == plan.created_at


def test_regenerate_unknown_plan(tmp_db, readiness):
    init_db(tmp_db)
    with pytest.raises(PlanNotFoundError):
        _regenerate(tmp_db, 999, readiness)


def test_regenerate_inactive_plan_changes_nothing(tmp_db, readiness):
    plan = _setup(tmp_db, readiness)
    abandon_study_plan(tmp_db, plan.id, now=NOW)
    before = _snapshot(tmp_db)
    with pytest.raises(PlanStateError):
        _regenerate(tmp_db, plan.id, readiness)
    assert _snapshot(tmp_db) == before


def test_regenerate_after_exam_date_has_no_remaining_days(tmp_db, readiness):
    plan = _setup(tmp_db, readiness)
    result = _regenerate(tmp_db, plan.id, readiness, days_later=20)
    assert result.tasks_removed == 0
    assert result.tasks_generated == 0
