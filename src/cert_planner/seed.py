"""Seed certifications and domains, and load the static learning path."""
import json
from pathlib import Path

from cert_planner.db import get_connection
from cert_planner.models import LearningPathItem

CONTENT_DIR = Path(__file__).parent / "content"


def is_seeded(db_path: str) -> bool:
    """Check whether the database has already been seeded with domains."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM domains").fetchone()[0]
    conn.close()
    return count > 0


def seed_certifications(db_path: str) -> None:
    """Insert certifications and their exam domains from certifications.json."""
    data = json.loads((CONTENT_DIR / "certifications.json").read_text())
    conn = get_connection(db_path)
    for cert in data["certifications"]:
        conn.execute(
            "INSERT OR IGNORE INTO certifications (id, code, name) VALUES (?, ?, ?)",
            (cert["id"], cert["code"], cert["name"]),
        )
        for domain in cert["domains"]:
            conn.execute(
                "INSERT OR IGNORE INTO domains (id, certification_id, name, exam_weight) VALUES (?, ?, ?, ?)",
                (domain["id"], cert["id"], domain["name"], domain["exam_weight"]),
            )
    conn.commit()
    conn.close()


def load_learning_path() -> list[LearningPathItem]:
    """Return the learning path catalog in order."""
    data = json.loads((CONTENT_DIR / "learning_path.json").read_text())
    items = [
        LearningPathItem(order=item["order"], title=item["title"], item_type=item["type"])
        for item in data["items"]
    ]
    return sorted(items, key=lambda i: i.order)


def seed_all(db_path: str) -> None:
    """Run all seed functions in order."""
    if is_seeded(db_path):
        return
    seed_certifications(db_path)
