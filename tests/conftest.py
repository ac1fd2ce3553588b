import pytest

from glasshabit import create_app


@pytest.fixture
def app(tmp_path):
    return create_app(
        {
            "TESTING": True,
            "DATABASE_URL": "",
            "SQLITE_PATH": str(tmp_path / "test.db"),
            "SECRET_KEY": "test-secret",
            "AUTH_MODE": "token",
            "API_PREFIX": "/api",
            "POINTS_PER_COMPLETION": 10,
        }
    )


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, username="alice", password="Secret123!", secret="fluffy", **extra):
    payload = {
        "username": username,
        "email": f"{username}@example.com",
        "password": password,
        "secretKeyAnswer": secret,
        "securityQuestion": "What was the name of your first pet?",
    }
    payload.update(extra)
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    return register(client, "alice")


@pytest.fixture
def bob(client):
    return register(client, "bob", secret="rex")
