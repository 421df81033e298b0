"""Database initialization, connection and transaction management."""
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path

DEFAULT_DB_PATH = os.environ.get(
    "CERT_PLANNER_DB", str(Path.home() / ".cert_planner" / "planner.db")
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS certifications (
    id INTEGER PRIMARY KEY,
    code TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS domains (
    id INTEGER PRIMARY KEY,
    certification_id INTEGER NOT NULL REFERENCES certifications(id),
    name TEXT NOT NULL,
    exam_weight REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS quiz_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    domain_id INTEGER NOT NULL REFERENCES domains(id),
    is_correct INTEGER NOT NULL,
    answered_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS review_states (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    question_id INTEGER NOT NULL,
    ease_factor REAL NOT NULL DEFAULT 2.5,
    interval INTEGER NOT NULL DEFAULT 1,
    repetitions INTEGER NOT NULL DEFAULT 0,
    next_review_at TEXT NOT NULL,
    last_reviewed_at TEXT,
    UNIQUE(user_id, question_id)
);

CREATE INDEX IF NOT EXISTS review_states_due_idx
    ON review_states(user_id, next_review_at);

CREATE TABLE IF NOT EXISTS review_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    question_id INTEGER NOT NULL,
    quality TEXT NOT NULL,
    reviewed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS learning_path_progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    certification_id INTEGER NOT NULL REFERENCES certifications(id),
    path_item_order INTEGER NOT NULL,
    completed_at TEXT,
    UNIQUE(user_id, certification_id, path_item_order)
);

CREATE TABLE IF NOT EXISTS study_plans (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    certification_id INTEGER NOT NULL REFERENCES certifications(id),
    target_exam_date TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active'
        CHECK (status IN ('active', 'completed', 'abandoned')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- At most one active plan per (user, certification), enforced by the store.
CREATE UNIQUE INDEX IF NOT EXISTS study_plans_one_active_idx
    ON study_plans(user_id, certification_id) WHERE status = 'active';

CREATE TABLE IF NOT EXISTS study_plan_days (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    study_plan_id INTEGER NOT NULL REFERENCES study_plans(id) ON DELETE CASCADE,
    date TEXT NOT NULL,
    is_complete INTEGER NOT NULL DEFAULT 0,
    UNIQUE(study_plan_id, date)
);

CREATE TABLE IF NOT EXISTS study_plan_tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    study_plan_day_id INTEGER NOT NULL REFERENCES study_plan_days(id) ON DELETE CASCADE,
    task_type TEXT NOT NULL
        CHECK (task_type IN ('learning', 'practice', 'review', 'drill')),
    target_id INTEGER,
    estimated_minutes INTEGER NOT NULL,
    completed_at TEXT,
    notes TEXT
);

CREATE INDEX IF NOT EXISTS study_plan_tasks_day_idx
    ON study_plan_tasks(study_plan_day_id);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path, timeout=30)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection):
    """Run the block inside a write-locked transaction.

    ``BEGIN IMMEDIATE`` takes the database write lock up front, so two
    concurrent writers serialize instead of interleaving. Any exception
    rolls back every statement issued inside the block and is re-raised.
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    conn.commit()
