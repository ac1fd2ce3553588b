"""Caller-side mirror of one user's snapshot.

Every mutation is followed by a full ``refresh()``; the cache never patches
itself from a mutation response.  That keeps the server's obligation at
read-your-writes on the next snapshot read.
"""
from __future__ import annotations

import requests

COLLECTIONS = ("tasks", "logs", "todos", "expenses", "journal")


class ClientError(Exception):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class SessionExpired(ClientError):
    pass


def empty_snapshot() -> dict[str, list]:
    return {name: [] for name in COLLECTIONS}


class DataCache:
    def __init__(self, base_url: str, session=None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token: str | None = None
        self.user: dict | None = None
        self.data = empty_snapshot()

    def _send(self, method: str, endpoint: str, payload=None, auth: bool = True):
        headers = {"Content-Type": "application/json"}
        if auth:
            if not self.token:
                raise ClientError("Not authenticated")
            headers["Authorization"] = f"Bearer {self.token}"

        response = self.session.request(
            method,
            f"{self.base_url}{endpoint}",
            json=payload,
            headers=headers,
            timeout=self.timeout,
        )
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code == 401 and auth:
            self.logout()
            raise SessionExpired("Session expired. Please login again.", 401)
        if not response.ok:
            message = body.get("error") if isinstance(body, dict) else None
            raise ClientError(message or "API Request Failed", response.status_code)
        return body

    def _start_session(self, body: dict) -> dict:
        self.token = body["token"]
        self.user = body["user"]
        self.refresh()
        return self.user

    def register(self, profile: dict, password: str) -> dict:
        body = self._send("POST", "/auth/register", {**profile, "password": password}, auth=False)
        return self._start_session(body)

    def login(self, username: str, password: str) -> dict:
        body = self._send("POST", "/auth/login", {"username": username, "password": password}, auth=False)
        return self._start_session(body)

    def logout(self) -> None:
        self.token = None
        self.user = None
        self.data = empty_snapshot()

    def check_session(self) -> dict | None:
        if not self.token:
            return None
        try:
            self.user = self._send("GET", "/user/me")
        except ClientError:
            self.logout()
            return None
        return self.user

    def refresh(self) -> dict[str, list]:
        self.data = self._send("GET", "/data")
        return self.data

    def add_item(self, collection: str, item: dict) -> dict:
        created = self._send("POST", f"/{collection}", item)
        self.refresh()
        if collection == "logs":
            self.check_session()
        return created

    def update_item(self, collection: str, item: dict) -> dict:
        updated = self._send("PUT", f"/{collection}/{item['id']}", item)
        self.refresh()
        return updated

    def delete_item(self, collection: str, item_id: str) -> None:
        self._send("DELETE", f"/{collection}/{item_id}")
        self.refresh()

    def update_user(self, changes: dict) -> dict:
        self.user = self._send("PUT", "/user/me", changes)
        return self.user

    def reset_data(self, secret_answer: str) -> None:
        self._send("POST", "/reset-data", {"secretKeyAnswer": secret_answer})
        self.refresh()
        self.check_session()
