"""Tests for health, auth, user and profile endpoints."""

from fastapi.testclient import TestClient

from conftest import register
from heartbeat import api, main, services
from heartbeat.main import app
from heartbeat.storage import DatabaseStorage


def test_health_check(client):
    """Health reports process liveness and a live database check."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert data["database"] == "connected"
    assert data["uptime"] >= 0
    assert data["timestamp"].endswith("Z")


def test_api_test_route(client):
    """Test the liveness route reports version and database status."""
    response = client.get("/api/test")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["version"] == "1.0.0"
    assert data["database"] == "connected"


def test_unconfigured_database_degrades_gracefully(monkeypatch):
    """Without a database URL the liveness routes work and data routes return 500."""
    monkeypatch.setattr(api, "storage", DatabaseStorage(None))
    with TestClient(app) as client:
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json()["database"] == "not configured"

        response = client.post(
            "/api/auth/login", json={"username": "alice", "password": "secret"}
        )
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Database not configured"}

        users = client.get("/api/users/all")
        assert users.status_code == 500
        assert users.json()["users"] == []
        assert users.json()["count"] == 0


def test_unknown_route(client):
    """Test unmatched paths get the not-found body with the path."""
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "message": "Endpoint not found",
        "path": "/api/does-not-exist",
    }


def test_wrong_method_is_not_found(client):
    """Test a known path with the wrong method is treated as not found."""
    response = client.post("/health")
    assert response.status_code == 404
    assert response.json()["message"] == "Endpoint not found"


def test_unhandled_error_returns_generic_500(storage, monkeypatch):
    """Test unexpected failures become a generic internal error."""

    def boom(db):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(services, "list_users", boom)
    monkeypatch.setattr(main, "EXPOSE_ERROR_DETAILS", True)
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/users/all")
    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert data["message"] == "Internal server error"
    assert data["debug"] == "kaboom"


def test_register(client, clock):
    """Registration returns the public fields of the new user."""
    response = client.post(
        "/api/auth/register",
        json={"username": "alice", "password": "secret", "age": 30, "gender": "female"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["user"]["username"] == "alice"
    assert data["user"]["age"] == 30
    assert data["user"]["gender"] == "female"
    assert isinstance(data["user"]["id"], int)
    assert "password" not in data["user"]


def test_register_missing_fields(client):
    """Test registration rejects blank or absent fields."""
    response = client.post(
        "/api/auth/register", json={"username": "alice", "password": "", "age": 30}
    )
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["message"] == "All fields are required"


def test_register_whitespace_only_fields_are_missing(client):
    """Test a whitespace-only username counts as missing."""
    response = client.post(
        "/api/auth/register",
        json={"username": "   ", "password": "secret", "age": 30, "gender": "f"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "All fields are required"


def test_register_malformed_age(client):
    """Test a non-numeric age is a 400, not a 422."""
    response = client.post(
        "/api/auth/register",
        json={"username": "alice", "password": "secret", "age": "thirty", "gender": "f"},
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_register_duplicate_username(client):
    """The second registration fails and the first account is untouched."""
    first = register(client, "alice", "secret")

    response = client.post(
        "/api/auth/register",
        json={"username": "alice", "password": "other", "age": 50, "gender": "male"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Username already taken"

    login = client.post("/api/auth/login", json={"username": "alice", "password": "secret"})
    assert login.status_code == 200
    assert login.json()["user"] == first


def test_register_then_login(client, clock):
    """Test login after registration issues a token for that user."""
    user = register(client, "alice", "secret")

    response = client.post("/api/auth/login", json={"username": "alice", "password": "secret"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["token"] == f"token_{user['id']}_{int(clock().timestamp() * 1000)}"
    assert data["user"]["id"] == user["id"]
    assert "password" not in data["user"]


def test_login_wrong_password(client):
    """A known username with the wrong password is an authentication failure."""
    register(client, "alice", "secret")
    response = client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_login_unknown_user(client):
    """Test login with an unknown username is an authentication failure."""
    response = client.post("/api/auth/login", json={"username": "ghost", "password": "x"})
    assert response.status_code == 401


def test_login_missing_fields(client):
    """Test login requires both username and password."""
    response = client.post("/api/auth/login", json={"username": "alice"})
    assert response.status_code == 400
    assert response.json()["message"] == "Username and password are required"


def test_list_users_includes_passwords(client, clock):
    """Test the user listing is newest first and includes passwords."""
    register(client, "alice", "secret")
    clock.advance(minutes=1)
    register(client, "bob", "hunter2")

    response = client.get("/api/users/all")
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    # Newest first
    assert [u["username"] for u in data["users"]] == ["bob", "alice"]
    assert data["users"][0]["password"] == "hunter2"


def test_get_profile(client, clock):
    """Test fetching a profile returns public fields only."""
    user = register(client)
    response = client.get(f"/api/profile/{user['id']}")
    assert response.status_code == 200
    profile = response.json()["user"]
    assert profile["username"] == "alice"
    assert profile["created_at"] == "2024-01-15T10:00:00"
    assert "password" not in profile


def test_get_profile_not_found(client):
    """Test fetching a missing profile returns 404."""
    response = client.get("/api/profile/999")
    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


def test_get_profile_invalid_id(client):
    """Test non-integer profile ids are rejected with 400."""
    for bad_id in ("abc", "--1", "\u00b2", "1.5", "99999999999999999999999"):
        response = client.get(f"/api/profile/{bad_id}")
        assert response.status_code == 400, bad_id
        assert response.json()["message"] == "Invalid user ID"


def test_update_profile(client, clock):
    """Updates change the fields and refresh updated_at."""
    user = register(client)
    clock.advance(hours=1)

    response = client.put(
        "/api/profile/update",
        json={"userId": user["id"], "username": "alice2", "age": 31, "gender": "female"},
    )
    assert response.status_code == 200
    updated = response.json()["user"]
    assert updated["username"] == "alice2"
    assert updated["age"] == 31
    assert updated["created_at"] == "2024-01-15T10:00:00"
    assert updated["updated_at"] == "2024-01-15T11:00:00"


def test_update_profile_changes_password(client):
    """Test a matching old password allows the password change."""
    user = register(client, "alice", "secret")
    response = client.put(
        "/api/profile/update",
        json={
            "userId": user["id"],
            "username": "alice",
            "age": 30,
            "gender": "female",
            "oldPassword": "secret",
            "newPassword": "better-secret",
        },
    )
    assert response.status_code == 200

    old = client.post("/api/auth/login", json={"username": "alice", "password": "secret"})
    assert old.status_code == 401
    new = client.post("/api/auth/login", json={"username": "alice", "password": "better-secret"})
    assert new.status_code == 200


def test_update_profile_wrong_old_password(client):
    """A mismatched old password is rejected and the stored one is kept."""
    user = register(client, "alice", "secret")
    response = client.put(
        "/api/profile/update",
        json={
            "userId": user["id"],
            "username": "alice",
            "age": 30,
            "gender": "female",
            "oldPassword": "wrong",
            "newPassword": "hacked",
        },
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Old password is incorrect"

    login = client.post("/api/auth/login", json={"username": "alice", "password": "secret"})
    assert login.status_code == 200


def test_update_profile_username_conflict(client):
    """Test renaming to another user's username is a conflict."""
    register(client, "alice")
    bob = register(client, "bob")
    response = client.put(
        "/api/profile/update",
        json={"userId": bob["id"], "username": "alice", "age": 30, "gender": "male"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Username already taken"


def test_update_profile_keeping_own_username(client):
    """Test keeping your own username is not a conflict."""
    user = register(client, "alice")
    response = client.put(
        "/api/profile/update",
        json={"userId": user["id"], "username": "alice", "age": 45, "gender": "female"},
    )
    assert response.status_code == 200
    assert response.json()["user"]["age"] == 45


def test_update_profile_not_found(client):
    """Test updating a missing user returns 404."""
    response = client.put(
        "/api/profile/update",
        json={"userId": 999, "username": "ghost", "age": 30, "gender": "male"},
    )
    assert response.status_code == 404


def test_update_profile_missing_fields(client):
    """Test profile updates require username, age and gender."""
    user = register(client)
    response = client.put("/api/profile/update", json={"userId": user["id"], "age": 30})
    assert response.status_code == 400


def test_oversized_integers_are_rejected(client):
    """Test integers beyond the database INTEGER range are a 400, not a 500."""
    user = register(client)
    too_big = 10**25

    response = client.put(
        "/api/profile/update",
        json={"userId": too_big, "username": "alice", "age": 30, "gender": "female"},
    )
    assert response.status_code == 400
    assert response.json()["success"] is False

    response = client.put(
        "/api/profile/update",
        json={"userId": user["id"], "username": "alice", "age": too_big, "gender": "female"},
    )
    assert response.status_code == 400

    response = client.post(
        "/api/auth/register",
        json={"username": "bob", "password": "pw", "age": too_big, "gender": "male"},
    )
    assert response.status_code == 400
