# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from user_client.api import UsersApiClient
from user_client.storage import LocalStorage
from user_client.store import UserStore
from user_service.config import Settings
from user_service.db import Database
from user_service.main import create_app
from user_service.models import UserRole, UserStatus
from user_service.schemas import UserResponse
from user_service.services import UserDatabaseService
from user_service.utils import PasswordHasher

TEST_SECRET = "test-secret-key"
ADMIN_EMAIL = "admin@demo.com"
ADMIN_PASSWORD = "admin123"


@pytest.fixture
def settings(tmp_path):
    """Fresh SQLite file per test; the lowest bcrypt cost keeps seeding fast."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'users.db'}",
        jwt_secret_key=TEST_SECRET,
        bcrypt_rounds=4,
        log_level="WARNING",
    )


@pytest.fixture
def client(settings):
    # The context manager runs the lifespan: table creation + demo seed.
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def service(settings):
    svc = UserDatabaseService(Database(settings.database_url), PasswordHasher(4), page_size=4)
    svc.initialize()
    yield svc
    svc.close()


@pytest.fixture
def empty_service(tmp_path):
    svc = UserDatabaseService(
        Database(f"sqlite:///{tmp_path / 'empty.db'}"),
        PasswordHasher(4),
        seed_demo_data=False,
    )
    svc.initialize()
    yield svc
    svc.close()


@pytest.fixture
def admin_token(client):
    r = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.text
    return r.json()["token"]


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


# --- Client side ---

@pytest.fixture
def storage():
    return LocalStorage()


@pytest.fixture
def api(client, storage):
    # TestClient is an httpx.Client, so the API client talks to the in-process app.
    return UsersApiClient(storage=storage, http=client)


@pytest.fixture
def store(api, storage):
    return UserStore(api, storage)


@pytest.fixture
def make_user():
    """Factory for client-side user records."""
    def _make(user_id, name=None, role=UserRole.USER, status=UserStatus.ACTIVE, birth_date="01/01/2000", **extra):
        return UserResponse(
            id=user_id,
            name=name or f"User {user_id}",
            username=f"user{user_id}",
            email=f"user{user_id}@example.com",
            role=role,
            status=status,
            birth_date=birth_date,
            **extra,
        )
    return _make
