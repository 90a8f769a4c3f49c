# tests/test_session.py
import pytest

from user_client.auth import AuthSession
from user_client.exceptions import UnauthorizedError
from user_client.storage import AUTH_TOKEN_KEY, CURRENT_USER_KEY, LOCAL_USERS_KEY, LocalStorage
from user_service.models import UserRole


@pytest.fixture
def session(api, storage, store):
    return AuthSession(api, storage, store)


def test_login_stores_credentials(session, storage):
    user = session.login("admin@demo.com", "admin123")
    assert user.username == "admin"
    assert session.is_authenticated
    assert session.role == UserRole.ADMIN
    assert storage.get(AUTH_TOKEN_KEY)
    assert storage.get(CURRENT_USER_KEY)["email"] == "admin@demo.com"


def test_failed_login_leaves_session_logged_out(session, storage):
    with pytest.raises(UnauthorizedError):
        session.login("admin@demo.com", "bad-password")
    assert not session.is_authenticated
    assert AUTH_TOKEN_KEY not in storage


def test_register_logs_in(session):
    user = session.register({
        "name": "Session Person",
        "username": "sessionperson",
        "email": "session@example.com",
        "password": "secret12",
        "birthDate": "10/10/2000",
    })
    assert session.is_authenticated
    assert session.role == UserRole.USER
    assert session.user.id == user.id


def test_load_stored_session(api, storage, store, session):
    session.login("manager@demo.com", "manager123")

    restored = AuthSession(api, storage, store)
    user = restored.load_stored()
    assert user is not None
    assert restored.role == UserRole.MANAGER


def test_load_stored_with_bad_token(api, storage, store):
    storage.set(AUTH_TOKEN_KEY, "expired-or-garbage")
    storage.set(CURRENT_USER_KEY, {"id": 1, "email": "admin@demo.com"})
    session = AuthSession(api, storage, store)

    assert session.load_stored() is None
    assert not session.is_authenticated
    assert AUTH_TOKEN_KEY not in storage
    assert CURRENT_USER_KEY not in storage


def test_load_stored_without_token(session):
    assert session.load_stored() is None


def test_logout_clears_everything(session, store, storage, make_user):
    session.login("admin@demo.com", "admin123")
    store.fetch_page(1)
    store.add_local(make_user(1001))

    session.logout()
    assert not session.is_authenticated
    assert session.user is None
    assert store.view == []
    assert AUTH_TOKEN_KEY not in storage
    assert LOCAL_USERS_KEY not in storage


# --- Durable storage ---

def test_storage_round_trip(tmp_path):
    path = tmp_path / "state" / "client.json"
    storage = LocalStorage(path)
    storage.set("filterPresets", [{"name": "admins"}])
    storage.set(AUTH_TOKEN_KEY, "t")
    storage.remove(AUTH_TOKEN_KEY)

    reloaded = LocalStorage(path)
    assert reloaded.get("filterPresets") == [{"name": "admins"}]
    assert AUTH_TOKEN_KEY not in reloaded


def test_storage_ignores_corrupt_file(tmp_path):
    path = tmp_path / "client.json"
    path.write_text("{not json", encoding="utf-8")
    storage = LocalStorage(path)
    assert storage.get(LOCAL_USERS_KEY) is None
    storage.set(LOCAL_USERS_KEY, [])
    assert LocalStorage(path).get(LOCAL_USERS_KEY) == []
