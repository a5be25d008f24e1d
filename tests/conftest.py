import pytest

from app import create_app
from rollcall.modules.database_manager import DatabaseManager


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(tmp_path / "store.db")
    manager.initialize_database()
    yield manager
    manager.close_all_connections()


@pytest.fixture
def empty_db(tmp_path):
    manager = DatabaseManager(tmp_path / "empty.db")
    yield manager
    manager.close_all_connections()


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", overrides={
        "DATABASE_PATH": str(tmp_path / "app.db"),
        "REPORTS_FOLDER": str(tmp_path / "reports"),
        "LOG_FILE": str(tmp_path / "logs" / "rollcall.log"),
    })
    yield app
    app.extensions["rollcall"]["db"].close_all_connections()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def teacher_client(client):
    response = client.post("/api/auth/teacher/login", json={
        "username": "oop_teacher",
        "password": "oop123",
    })
    assert response.status_code == 200
    return client


@pytest.fixture
def admin_client(client):
    response = client.post("/api/auth/admin/login", json={
        "username": "admin",
        "password": "admin123",
    })
    assert response.status_code == 200
    return client


