"""Tests for registration and login."""

import pytest


def register(client, email="ada@example.com", password="s3cret-pass", username="ada"):
    return client.post(
        "/api/register", json={"email": email, "password": password, "username": username}
    )


def test_register_creates_user(client):
    """Test register creates user."""
    response = register(client)

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["username"] == "ada"
    assert body["user"]["id"]
    assert "password" not in body["user"]


@pytest.mark.parametrize(
    "payload",
    [
        {"password": "x", "username": "ada"},
        {"email": "ada@example.com", "username": "ada"},
        {"email": "ada@example.com", "password": "x"},
        {"email": "", "password": "x", "username": "ada"},
    ],
)
def test_register_missing_fields(client, payload):
    """Test register missing fields."""
    response = client.post("/api/register", json=payload)
    assert response.status_code == 400


def test_register_rejects_overlong_password(client):
    """Test register rejects overlong password."""
    response = register(client, password="x" * 73)
    assert response.status_code == 400


def test_register_duplicate_email(client):
    """Test register duplicate email."""
    register(client)

    response = register(client, username="ada-again")

    assert response.status_code == 409
    assert "error" in response.json()


def test_login_success(client):
    """Test login success."""
    user_id = register(client).json()["user"]["id"]

    response = client.post(
        "/api/login", json={"email": "ada@example.com", "password": "s3cret-pass"}
    )

    assert response.status_code == 200
    assert response.json()["user"] == {
        "id": user_id,
        "email": "ada@example.com",
        "username": "ada",
    }


def test_login_wrong_password(client):
    """Test login wrong password."""
    register(client)

    response = client.post(
        "/api/login", json={"email": "ada@example.com", "password": "wrong"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid email or password"


def test_login_unknown_email(client):
    """Test login unknown email."""
    response = client.post(
        "/api/login", json={"email": "nobody@example.com", "password": "whatever"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid email or password"


def test_login_missing_fields(client):
    """Test login missing fields."""
    response = client.post("/api/login", json={"email": "ada@example.com"})
    assert response.status_code == 400
