from __future__ import annotations

import time
import uuid

from werkzeug.security import check_password_hash, generate_password_hash

from .db import DBConn, is_duplicate_key
from .errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationFailed
from .store import RecordStore

THEMES = ("light", "dark")

PROFILE_FIELDS = ("name", "bio", "avatar", "dob", "gender", "email", "theme")


def public_profile(row) -> dict:
    return {
        "id": row["id"],
        "username": row["username"],
        "email": row["email"],
        "name": row["name"],
        "bio": row["bio"],
        "avatar": row["avatar"],
        "dob": row["dob"],
        "gender": row["gender"],
        "securityQuestion": row["security_question"],
        "theme": row["theme"],
        "points": int(row["points"]),
        "createdAt": int(row["created_at"]),
    }


def _text(payload: dict, key: str) -> str:
    value = payload.get(key)
    return "" if value is None else str(value).strip()


def _fetch_user(conn: DBConn, owner_id: str):
    return conn.execute("SELECT * FROM users WHERE id = ?", (owner_id,)).fetchone()


def user_exists(conn: DBConn, owner_id: str) -> bool:
    return conn.execute("SELECT 1 FROM users WHERE id = ?", (owner_id,)).fetchone() is not None


def register(conn: DBConn, payload: dict) -> dict:
    username = _text(payload, "username").lower()
    email = _text(payload, "email").lower()
    password = str(payload.get("password") or "")
    secret_answer = _text(payload, "secretKeyAnswer")

    if not username or not email or not password:
        raise ValidationFailed("Username, email, and password are required.")
    if not secret_answer:
        raise ValidationFailed("Secret Answer required for recovery")

    taken = conn.execute(
        "SELECT 1 FROM users WHERE username = ? OR email = ?",
        (username, email),
    ).fetchone()
    if taken:
        raise Conflict("That username or email is already registered.")

    theme = _text(payload, "theme") or "dark"
    if theme not in THEMES:
        theme = "dark"
    owner_id = uuid.uuid4().hex
    try:
        conn.execute(
            """
            INSERT INTO users (
                id, username, email, password_hash, secret_answer_hash,
                security_question, name, bio, avatar, dob, gender, theme,
                points, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?)
            """,
            (
                owner_id,
                username,
                email,
                generate_password_hash(password),
                generate_password_hash(secret_answer),
                _text(payload, "securityQuestion"),
                _text(payload, "name"),
                _text(payload, "bio"),
                _text(payload, "avatar"),
                _text(payload, "dob"),
                _text(payload, "gender"),
                theme,
                int(time.time() * 1000),
            ),
        )
    except Exception as exc:
        if is_duplicate_key(exc):
            raise Conflict("That username or email is already registered.") from exc
        raise
    return public_profile(_fetch_user(conn, owner_id))


def authenticate(conn: DBConn, payload: dict) -> dict:
    login = (_text(payload, "username") or _text(payload, "email")).lower()
    password = str(payload.get("password") or "")
    if not login or not password:
        raise ValidationFailed("Username and password are required.")

    user = conn.execute(
        "SELECT * FROM users WHERE username = ? OR email = ?",
        (login, login),
    ).fetchone()
    if user is None or not check_password_hash(user["password_hash"], password):
        raise Unauthorized("Invalid username or password.")
    return public_profile(user)


def get_profile(conn: DBConn, owner_id: str) -> dict:
    user = _fetch_user(conn, owner_id)
    if user is None:
        raise NotFound("User not found")
    return public_profile(user)


def update_profile(conn: DBConn, owner_id: str, payload: dict) -> dict:
    user = _fetch_user(conn, owner_id)
    if user is None:
        raise NotFound("User not found")

    updates: dict[str, str] = {}
    for key in PROFILE_FIELDS:
        if payload.get(key) is not None:
            updates[key] = _text(payload, key)

    if "email" in updates:
        updates["email"] = updates["email"].lower()
        if not updates["email"]:
            raise ValidationFailed("Email cannot be empty.")
        email_exists = conn.execute(
            "SELECT 1 FROM users WHERE email = ? AND id != ?",
            (updates["email"], owner_id),
        ).fetchone()
        if email_exists:
            raise Conflict("That email is already registered.")
    if "theme" in updates and updates["theme"] not in THEMES:
        raise ValidationFailed(f"Theme must be one of {', '.join(THEMES)}")

    new_password = payload.get("newPassword") or ""
    if new_password:
        current = payload.get("currentPassword") or ""
        if not current or not check_password_hash(user["password_hash"], current):
            raise Forbidden("Current password is incorrect.")
        updates["password_hash"] = generate_password_hash(new_password)

    if updates:
        assignments = ", ".join(f"{column} = ?" for column in updates)
        try:
            conn.execute(
                f"UPDATE users SET {assignments} WHERE id = ?",
                (*updates.values(), owner_id),
            )
        except Exception as exc:
            if is_duplicate_key(exc):
                raise Conflict("That email is already registered.") from exc
            raise
    return public_profile(_fetch_user(conn, owner_id))


def award_points(conn: DBConn, owner_id: str, points: int) -> None:
    if points <= 0:
        return
    conn.execute(
        "UPDATE users SET points = points + ? WHERE id = ?",
        (points, owner_id),
    )


def reset_data(conn: DBConn, owner_id: str, secret_answer: str) -> None:
    user = _fetch_user(conn, owner_id)
    if user is None:
        raise NotFound("User not found")
    if not secret_answer or not check_password_hash(user["secret_answer_hash"], secret_answer.strip()):
        raise Forbidden("Invalid Secret")

    RecordStore(conn, owner_id).clear()
    conn.execute("UPDATE users SET points = 0 WHERE id = ?", (owner_id,))
