"""Per-domain readiness scoring."""
from datetime import datetime

from cert_planner.db import get_connection
from cert_planner.models import DomainReadiness

COVERAGE_THRESHOLD = 10  # attempts per domain to count as fully covered


def get_readiness_label(score: float) -> str:
    if score >= 80:
        return "READY"
    elif score >= 65:
        return "LIKELY"
    elif score >= 50:
        return "NEEDS WORK"
    return "NOT READY"


def get_readiness_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 65:
        return "yellow"
    elif score >= 50:
        return "dark_orange"
    return "red"


def _domain_score(total: int, correct: int) -> float:
    if not total:
        return 0.0
    accuracy = correct / total
    coverage = min(total / COVERAGE_THRESHOLD, 1.0)
    return round(accuracy * coverage * 100, 1)


def get_domain_readiness(db_path: str, user_id: int, certification_id: int) -> list[DomainReadiness]:
    """Score every domain of a certification from the user's quiz answers.

    Accuracy is scaled down until a domain has enough attempts, so a single
    lucky answer does not read as full readiness.
    """
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT d.id, d.name,
            COUNT(r.id) as total,
            COALESCE(SUM(r.is_correct), 0) as correct
        FROM domains d
        LEFT JOIN quiz_results r ON r.domain_id = d.id AND r.user_id = ?
        WHERE d.certification_id = ?
        GROUP BY d.id
        ORDER BY d.id""",
        (user_id, certification_id),
    ).fetchall()
    conn.close()
    return [
        DomainReadiness(
            domain_id=r["id"],
            domain_name=r["name"],
            score=_domain_score(r["total"], r["correct"]),
        )
        for r in rows
    ]


def record_quiz_answer(
    db_path: str,
    user_id: int,
    domain_id: int,
    is_correct: bool,
    answered_at: datetime | None = None,
) -> None:
    answered_at = answered_at or datetime.now()
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO quiz_results (user_id, domain_id, is_correct, answered_at) VALUES (?, ?, ?, ?)",
        (user_id, domain_id, int(is_correct), answered_at.isoformat(timespec="seconds")),
    )
    conn.commit()
    conn.close()


def calc_readiness_score(db_path: str, user_id: int, certification_id: int) -> float:
    """Overall readiness: domain scores weighted by exam weight."""
    conn = get_connection(db_path)
    weights = {
        r["id"]: r["exam_weight"]
        for r in conn.execute(
            "SELECT id, exam_weight FROM domains WHERE certification_id = ?",
            (certification_id,),
        ).fetchall()
    }
    conn.close()
    total_weight = sum(weights.values())
    if not total_weight:
        return 0.0
    domains = get_domain_readiness(db_path, user_id, certification_id)
    score = sum(d.score * weights[d.domain_id] for d in domains) / total_weight
    return round(score, 1)
