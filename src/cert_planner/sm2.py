"""SM-2 spaced repetition algorithm and review load estimation."""
import math
from datetime import datetime, timedelta

QUALITY_LEVELS = {
    "again": 0,
    "hard": 3,
    "good": 4,
    "easy": 5,
}

MIN_EASE_FACTOR = 1.3
MAX_DAILY_REVIEWS = 50


def next_review_state(
    quality: str,
    ease_factor: float,
    interval: int,
    repetitions: int,
    now: datetime,
) -> dict:
    """Calculate next review parameters using SM-2.

    Args:
        quality: One of "again", "hard", "good", "easy"
        ease_factor: Current ease factor (minimum 1.3)
        interval: Current interval in days
        repetitions: Number of consecutive correct reviews
        now: Time of the review; the due time keeps its time of day

    Returns:
        Dict with updated ease_factor, interval, repetitions, next_review_at.
    """
    q = QUALITY_LEVELS[quality]

    if q < 3:
        # Incorrect, reset
        new_repetitions = 0
        new_interval = 1
    else:
        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            new_interval = 1
        elif new_repetitions == 2:
            new_interval = 6
        else:
            # Halves round up
            new_interval = math.floor(interval * ease_factor + 0.5)

    new_ef = ease_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    new_ef = max(MIN_EASE_FACTOR, new_ef)

    return {
        "ease_factor": round(new_ef, 2),
        "interval": new_interval,
        "repetitions": new_repetitions,
        "next_review_at": now + timedelta(days=new_interval),
    }


def daily_review_count(
    total_due: int,
    target_minutes: int = 30,
    seconds_per_card: int = 30,
) -> int:
    """Number of due cards that fit in today's review time, capped at 50."""
    fits_in_time = (target_minutes * 60) // seconds_per_card
    return min(total_due, fits_in_time, MAX_DAILY_REVIEWS)
