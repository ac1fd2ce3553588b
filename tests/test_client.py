import pytest

from glasshabit.client import ClientError, DataCache, SessionExpired

BASE_URL = "http://testserver/api"


class FakeResponse:
    def __init__(self, response):
        self.status_code = response.status_code
        self.ok = response.status_code < 400
        self._response = response

    def json(self):
        body = self._response.get_json(silent=True)
        if body is None:
            raise ValueError("no JSON body")
        return body


class FlaskSession:
    """Forwards requests.Session.request calls to a Flask test client."""

    def __init__(self, client):
        self.client = client
        self.calls = []

    def request(self, method, url, json=None, headers=None, timeout=None):
        path = url.replace("http://testserver", "", 1)
        self.calls.append((method, path))
        return FakeResponse(self.client.open(path, method=method, json=json, headers=headers))


@pytest.fixture
def session(client):
    return FlaskSession(client)


@pytest.fixture
def cache(session):
    cache = DataCache(BASE_URL, session=session)
    cache.register(
        {"username": "alice", "email": "alice@example.com", "secretKeyAnswer": "fluffy"},
        "Secret123!",
    )
    return cache


def test_register_hydrates_snapshot(cache):
    assert cache.user["username"] == "alice"
    assert cache.token
    assert cache.data == {"tasks": [], "logs": [], "todos": [], "expenses": [], "journal": []}


def test_every_mutation_is_followed_by_refresh(cache, session):
    session.calls.clear()
    todo = cache.add_item("todos", {"text": "milk"})
    assert session.calls == [("POST", "/api/todos"), ("GET", "/api/data")]
    assert [t["text"] for t in cache.data["todos"]] == ["milk"]

    cache.update_item("todos", {**todo, "completed": True})
    assert cache.data["todos"][0]["completed"] is True

    cache.delete_item("todos", todo["id"])
    assert cache.data["todos"] == []
    assert session.calls[-1] == ("GET", "/api/data")


def test_completion_refreshes_points(cache):
    task = cache.add_item("tasks", {"name": "Read", "category": "habit"})
    cache.add_item("logs", {"taskId": task["id"], "date": "2024-01-05"})
    assert cache.user["points"] == 10
    assert cache.data["logs"][0]["taskId"] == task["id"]


def test_server_errors_surface_message(cache):
    with pytest.raises(ClientError) as err:
        cache.add_item("expenses", {"category": "Food"})
    assert err.value.status == 400
    assert "amount" in str(err.value)


def test_unauthorized_response_drops_session(cache):
    cache.token = "forged"
    with pytest.raises(SessionExpired):
        cache.refresh()
    assert cache.token is None
    assert cache.user is None


def test_calls_without_token_fail_locally(session):
    cache = DataCache(BASE_URL, session=session)
    with pytest.raises(ClientError):
        cache.refresh()
    assert session.calls == []
    assert cache.check_session() is None


def test_login_and_check_session(cache, session):
    other = DataCache(BASE_URL, session=session)
    other.login("alice", "Secret123!")
    assert other.check_session()["username"] == "alice"


def test_reset_data_clears_local_mirror(cache):
    cache.add_item("todos", {"text": "milk"})
    with pytest.raises(ClientError) as err:
        cache.reset_data("wrong")
    assert err.value.status == 403
    assert len(cache.data["todos"]) == 1

    cache.reset_data("fluffy")
    assert cache.data["todos"] == []
