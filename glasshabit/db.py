from __future__ import annotations

import sqlite3
from typing import Mapping

import psycopg2
import psycopg2.errors
from flask import current_app
from psycopg2.extras import RealDictCursor


class DBConn:
    def __init__(self, conn, backend: str):
        self.conn = conn
        self.backend = backend

    def execute(self, query: str, params: tuple | list = ()):
        if self.backend == "postgres":
            sql = query.replace("?", "%s")
            cur = self.conn.cursor(cursor_factory=RealDictCursor)
            cur.execute(sql, params)
            return cur
        return self.conn.execute(query, params)

    def executescript(self, script: str) -> None:
        if self.backend == "postgres":
            statements = [s.strip() for s in script.split(";") if s.strip()]
            for statement in statements:
                self.execute(statement)
        else:
            self.conn.executescript(script)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        # One connection is one transaction: commit on success, roll back otherwise.
        try:
            if exc_type is None:
                self.conn.commit()
            else:
                self.conn.rollback()
        finally:
            self.conn.close()


def backend_name(config: Mapping) -> str:
    return "postgres" if config.get("DATABASE_URL") else "sqlite"


def get_conn(config: Mapping | None = None) -> DBConn:
    if config is None:
        config = current_app.config
    if backend_name(config) == "postgres":
        conn = psycopg2.connect(config["DATABASE_URL"])
        return DBConn(conn, "postgres")
    conn = sqlite3.connect(config["SQLITE_PATH"])
    conn.row_factory = sqlite3.Row
    return DBConn(conn, "sqlite")


def is_duplicate_key(exc: BaseException) -> bool:
    if isinstance(exc, sqlite3.IntegrityError):
        return "UNIQUE constraint failed" in str(exc)
    return isinstance(exc, psycopg2.errors.UniqueViolation)


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    secret_answer_hash TEXT NOT NULL,
    security_question TEXT NOT NULL DEFAULT '',
    name TEXT NOT NULL DEFAULT '',
    bio TEXT NOT NULL DEFAULT '',
    avatar TEXT NOT NULL DEFAULT '',
    dob TEXT NOT NULL DEFAULT '',
    gender TEXT NOT NULL DEFAULT '',
    theme TEXT NOT NULL DEFAULT 'dark',
    points INTEGER NOT NULL DEFAULT 0,
    created_at {bigint} NOT NULL
);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    reason TEXT NOT NULL DEFAULT '',
    type TEXT NOT NULL DEFAULT 'PERSONAL',
    category TEXT NOT NULL,
    penalty TEXT NOT NULL DEFAULT '',
    start_date TEXT NOT NULL DEFAULT '',
    end_date TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (user_id, id)
);

CREATE TABLE IF NOT EXISTS logs (
    id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    task_id TEXT NOT NULL,
    date TEXT NOT NULL,
    remark TEXT NOT NULL DEFAULT '',
    images TEXT NOT NULL DEFAULT '[]',
    completed INTEGER NOT NULL DEFAULT 1,
    timestamp {bigint} NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, id),
    UNIQUE (user_id, task_id, date)
);

CREATE TABLE IF NOT EXISTS todos (
    id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    text TEXT NOT NULL,
    due_date TEXT NOT NULL DEFAULT '',
    completed INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, id)
);

CREATE TABLE IF NOT EXISTS expenses (
    id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    amount {real} NOT NULL,
    category TEXT NOT NULL DEFAULT 'Other',
    description TEXT NOT NULL DEFAULT '',
    date TEXT NOT NULL,
    PRIMARY KEY (user_id, id)
);

CREATE TABLE IF NOT EXISTS journal (
    id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    subject TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL,
    mood TEXT NOT NULL DEFAULT '',
    images TEXT NOT NULL DEFAULT '[]',
    date TEXT NOT NULL,
    timestamp {bigint} NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, id)
);
"""


def init_db(config: Mapping | None = None) -> None:
    with get_conn(config) as conn:
        if conn.backend == "postgres":
            conn.executescript(SCHEMA.format(bigint="BIGINT", real="DOUBLE PRECISION"))
        else:
            conn.executescript(SCHEMA.format(bigint="INTEGER", real="REAL"))
