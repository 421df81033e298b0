"""Daily study streak calculation."""
from datetime import date, datetime, timedelta

from cert_planner.db import get_connection


def _as_day(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value).date()


def streak_length(timestamps, today: date | None = None) -> int:
    """Count consecutive study days ending today or yesterday.

    Several activities on one calendar day count once. A streak whose most
    recent day is yesterday is still alive; anything older is broken.
    """
    today = today or date.today()
    days = {_as_day(ts) for ts in timestamps}
    if not days:
        return 0

    if today in days:
        current = today
    elif today - timedelta(days=1) in days:
        current = today - timedelta(days=1)
    else:
        return 0

    streak = 0
    while current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def get_study_streak(db_path: str, user_id: int, today: date | None = None) -> int:
    """Streak for a user based on review and quiz activity."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT reviewed_at AS at FROM review_log WHERE user_id = ?
        UNION ALL
        SELECT answered_at AS at FROM quiz_results WHERE user_id = ?""",
        (user_id, user_id),
    ).fetchall()
    conn.close()
    return streak_length([r["at"] for r in rows], today=today)
