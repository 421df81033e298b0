"""Tests for database initialization and connection management."""
import sqlite3

import pytest

from cert_planner.db import get_connection, init_db, transaction


def test_init_db_creates_tables(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    tables = {row[0] for row in cursor.fetchall()}
    expected = {
        "certifications", "domains", "quiz_results", "review_states",
        "review_log", "learning_path_progress", "study_plans",
        "study_plan_days", "study_plan_tasks",
    }
    assert expected.issubset(tables)
    conn.close()


def test_init_db_is_idempotent(tmp_db):
    init_db(tmp_db)
    init_db(tmp_db)  # should not raise
    conn = get_connection(tmp_db)
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    assert len(cursor.fetchall()) > 0
    conn.close()


def test_init_db_creates_parent_directory(tmp_path):
    db_path = str(tmp_path / "nested" / "planner.db")
    init_db(db_path)
    assert (tmp_path / "nested" / "planner.db").exists()


def test_get_connection_returns_row_factory(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    conn.execute("INSERT INTO certifications (id, code, name) VALUES (7, 'PCA', 'Architect')")
    row = conn.execute("SELECT code, name FROM certifications WHERE id = 7").fetchone()
    assert row["code"] == "PCA"
    conn.close()


def test_task_type_constraint(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            """INSERT INTO study_plan_tasks (study_plan_day_id, task_type, estimated_minutes)
            VALUES (1, 'nap', 10)"""
        )
    conn.close()


def test_transaction_commits(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    with transaction(conn):
        conn.execute("INSERT INTO certifications (id, code, name) VALUES (7, 'PCA', 'Architect')")
    conn.close()
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM certifications").fetchone()[0] == 1
    conn.close()


def test_transaction_rolls_back_on_error(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    with pytest.raises(RuntimeError):
        with transaction(conn):
            conn.execute("INSERT INTO certifications (id, code, name) VALUES (7, 'PCA', 'Architect')")
            raise RuntimeError("boom")
    assert conn.execute("SELECT COUNT(*) FROM certifications").fetchone()[0] == 0
    conn.close()
