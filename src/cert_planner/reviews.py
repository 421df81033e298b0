"""Per-question review state with SM-2 scheduling."""
from datetime import datetime

import structlog

from cert_planner.db import get_connection
from cert_planner.sm2 import QUALITY_LEVELS, daily_review_count, next_review_state

logger = structlog.get_logger()

INITIAL_EASE_FACTOR = 2.5
INITIAL_INTERVAL = 1


def _timestamp(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


def get_review_state(db_path: str, user_id: int, question_id: int) -> dict | None:
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT * FROM review_states WHERE user_id = ? AND question_id = ?",
        (user_id, question_id),
    ).fetchone()
    conn.close()
    return dict(row) if row else None


def record_review(
    db_path: str,
    user_id: int,
    question_id: int,
    quality: str,
    now: datetime | None = None,
) -> dict:
    """Apply a rating to the user's memory state for a question.

    The state row is created on the first rating and updated in place
    afterwards. Returns the updated state.
    """
    if quality not in QUALITY_LEVELS:
        raise ValueError(f"Unknown review quality: {quality!r}")
    now = now or datetime.now()

    conn = get_connection(db_path)
    state = conn.execute(
        "SELECT * FROM review_states WHERE user_id = ? AND question_id = ?",
        (user_id, question_id),
    ).fetchone()
    if state:
        ease_factor, interval, repetitions = state["ease_factor"], state["interval"], state["repetitions"]
    else:
        ease_factor, interval, repetitions = INITIAL_EASE_FACTOR, INITIAL_INTERVAL, 0

    updated = next_review_state(quality, ease_factor, interval, repetitions, now)
    conn.execute(
        """INSERT INTO review_states
        (user_id, question_id, ease_factor, interval, repetitions, next_review_at, last_reviewed_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id, question_id) DO UPDATE SET
            ease_factor=excluded.ease_factor, interval=excluded.interval,
            repetitions=excluded.repetitions, next_review_at=excluded.next_review_at,
            last_reviewed_at=excluded.last_reviewed_at""",
        (
            user_id, question_id, updated["ease_factor"], updated["interval"],
            updated["repetitions"], _timestamp(updated["next_review_at"]), _timestamp(now),
        ),
    )
    conn.execute(
        "INSERT INTO review_log (user_id, question_id, quality, reviewed_at) VALUES (?, ?, ?, ?)",
        (user_id, question_id, quality, _timestamp(now)),
    )
    conn.commit()
    conn.close()

    logger.info(
        "review_recorded",
        user_id=user_id,
        question_id=question_id,
        quality=quality,
        interval=updated["interval"],
        ease_factor=updated["ease_factor"],
    )
    return updated


def count_due_reviews(db_path: str, user_id: int, now: datetime | None = None) -> int:
    now = now or datetime.now()
    conn = get_connection(db_path)
    count = conn.execute(
        "SELECT COUNT(*) FROM review_states WHERE user_id = ? AND next_review_at <= ?",
        (user_id, _timestamp(now)),
    ).fetchone()[0]
    conn.close()
    return count


def get_due_reviews(
    db_path: str,
    user_id: int,
    now: datetime | None = None,
    target_minutes: int = 30,
    seconds_per_card: int = 30,
) -> list[dict]:
    """Today's review batch, most overdue first, sized to the time budget."""
    now = now or datetime.now()
    limit = daily_review_count(
        count_due_reviews(db_path, user_id, now), target_minutes, seconds_per_card
    )
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT * FROM review_states
        WHERE user_id = ? AND next_review_at <= ?
        ORDER BY next_review_at ASC
        LIMIT ?""",
        (user_id, _timestamp(now), limit),
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]
