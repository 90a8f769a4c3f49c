# tests/test_auth.py
from user_service.utils import PasswordHasher, TokenManager

from .conftest import TEST_SECRET

REGISTRATION = {
    "name": "New Person",
    "username": "newperson",
    "email": "new.person@example.com",
    "password": "secret1",
    "birthDate": "09/09/1999",
}


def test_login_success(client):
    r = client.post("/api/auth/login", json={"email": "admin@demo.com", "password": "admin123"})
    assert r.status_code == 200
    body = r.json()
    assert body["token"]
    assert body["user"]["role"] == "Admin"
    assert "password" not in body["user"] and "passwordHash" not in body["user"]


def test_login_invalid_credentials(client):
    """Wrong password and unknown email look the same to the caller."""
    wrong = client.post("/api/auth/login", json={"email": "admin@demo.com", "password": "nope"})
    unknown = client.post("/api/auth/login", json={"email": "ghost@demo.com", "password": "admin123"})
    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json()["detail"] == unknown.json()["detail"] == "Invalid credentials"


def test_login_missing_fields(client):
    assert client.post("/api/auth/login", json={"email": "admin@demo.com"}).status_code == 400


def test_register_then_me(client):
    r = client.post("/api/auth/register", json=REGISTRATION)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["user"]["role"] == "User"
    assert body["user"]["status"] == "Active"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == REGISTRATION["email"]


def test_register_duplicate_email(client):
    r = client.post("/api/auth/register", json={**REGISTRATION, "email": "user@demo.com"})
    assert r.status_code == 400
    assert r.json()["detail"] == "User with this email already exists"


def test_register_duplicate_username(client):
    r = client.post("/api/auth/register", json={**REGISTRATION, "username": "manager"})
    assert r.status_code == 400


def test_register_short_password(client):
    r = client.post("/api/auth/register", json={**REGISTRATION, "password": "12345"})
    assert r.status_code == 400


def test_me_without_token(client):
    assert client.get("/api/auth/me").status_code == 401


def test_me_with_invalid_token(client):
    r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 403


def test_me_with_foreign_signature(client):
    forged = TokenManager("some-other-secret").create_access_token({"sub": "1"})
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {forged}"})
    assert r.status_code == 403


def test_me_for_deleted_user(client):
    token = client.post("/api/auth/login", json={"email": "user@demo.com", "password": "user123"}).json()["token"]
    client.delete("/api/users/3")
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 404


def test_me_with_admin_token(client, auth_headers):
    r = client.get("/api/auth/me", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["username"] == "admin"


# --- Helpers ---

def test_expired_token_is_rejected():
    tokens = TokenManager(TEST_SECRET, expire_minutes=-1)
    assert tokens.decode_token(tokens.create_access_token({"sub": "1"})) is None


def test_token_round_trip_claims():
    tokens = TokenManager(TEST_SECRET)
    payload = tokens.decode_token(tokens.create_access_token({"sub": "7", "role": "Manager"}))
    assert payload["sub"] == "7"
    assert payload["role"] == "Manager"


def test_password_hasher():
    hasher = PasswordHasher(rounds=4)
    hashed = hasher.hash("admin123")
    assert hashed != "admin123"
    assert hasher.verify("admin123", hashed)
    assert not hasher.verify("admin124", hashed)
    assert not hasher.verify("admin123", None)
    assert not hasher.verify("admin123", "not-a-bcrypt-hash")
