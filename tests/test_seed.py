from cert_planner.db import get_connection, init_db
from cert_planner.seed import is_seeded, load_learning_path, seed_all, seed_certifications


def test_seed_certifications(tmp_db):
    init_db(tmp_db)
    seed_certifications(tmp_db)
    conn = get_connection(tmp_db)
    certs = conn.execute("SELECT * FROM certifications").fetchall()
    assert [c["code"] for c in certs] == ["ACE"]
    domains = conn.execute("SELECT * FROM domains ORDER BY id").fetchall()
    assert [d["id"] for d in domains] == [1, 2, 3, 4, 5]
    assert round(sum(d["exam_weight"] for d in domains), 3) == 1.0
    conn.close()


def test_is_seeded(tmp_db):
    init_db(tmp_db)
    assert not is_seeded(tmp_db)
    seed_certifications(tmp_db)
    assert is_seeded(tmp_db)


def test_seed_all_idempotent(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    seed_all(tmp_db)  # second call should be no-op
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM domains").fetchone()[0] == 5
    conn.close()


def test_load_learning_path():
    items = load_learning_path()
    assert len(items) == 14
    assert [i.order for i in items] == list(range(1, 15))
    assert items[0].title == "A Tour of Google Cloud Hands-on Labs"
    assert all(i.title for i in items)
