import pytest

from cert_planner.models import DomainReadiness


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_planner.db")
    return db_path


@pytest.fixture
def readiness():
    """Fixed readiness scores: domains 1 and 4 are the weak half."""
    return [
        DomainReadiness(1, "Setup", 20.0),
        DomainReadiness(2, "Planning", 80.0),
        DomainReadiness(3, "Deploying", 50.0),
        DomainReadiness(4, "Operations", 40.0),
    ]
