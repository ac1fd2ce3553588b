from __future__ import annotations

from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound as RouteMissing

from . import accounts
from .db import get_conn
from .errors import ApiError, Unauthorized, ValidationFailed
from .identity import issue_token, resolve_owner
from .registry import Collection, lookup
from .snapshot import get_snapshot
from .store import RecordStore

bp = Blueprint("api", __name__)

CORS_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
CORS_HEADERS = "Content-Type, Authorization"


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        config = current_app.config
        owner_id = resolve_owner(request.headers.get("Authorization"), config)
        if config["AUTH_MODE"] == "token":
            with get_conn() as conn:
                if not accounts.user_exists(conn, owner_id):
                    current_app.logger.warning("Token subject no longer exists")
                    raise Unauthorized("Unauthorized")
        g.owner_id = owner_id
        return view(*args, **kwargs)

    return wrapped


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationFailed("Request body must be a JSON object")
    return payload


@bp.before_app_request
def preflight():
    if request.method == "OPTIONS":
        return current_app.response_class(status=204)
    return None


@bp.after_app_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = current_app.config["CORS_ALLOW_ORIGIN"]
    response.headers["Access-Control-Allow-Methods"] = CORS_METHODS
    response.headers["Access-Control-Allow-Headers"] = CORS_HEADERS
    return response


@bp.app_errorhandler(ApiError)
def handle_api_error(exc: ApiError):
    return jsonify(exc.to_dict()), exc.status


@bp.app_errorhandler(HTTPException)
def handle_http_error(exc: HTTPException):
    if isinstance(exc, (RouteMissing, MethodNotAllowed)):
        return jsonify({"error": "Route Not Found"}), 404
    return jsonify({"error": exc.description or exc.name}), exc.code or 500


@bp.app_errorhandler(Exception)
def handle_unexpected(exc: Exception):
    current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": "Internal Server Error", "detail": str(exc)}), 500


@bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@bp.route("/auth/register", methods=["POST"])
def register():
    payload = json_body()
    with get_conn() as conn:
        user = accounts.register(conn, payload)
    current_app.logger.info("Registered user %s", user["id"])
    return jsonify({"user": user, "token": issue_token(user["id"], current_app.config)}), 201


@bp.route("/auth/login", methods=["POST"])
def login():
    payload = json_body()
    try:
        with get_conn() as conn:
            user = accounts.authenticate(conn, payload)
    except ApiError:
        current_app.logger.warning("Rejected login attempt")
        raise
    current_app.logger.info("User %s logged in", user["id"])
    return jsonify({"user": user, "token": issue_token(user["id"], current_app.config)})


@bp.route("/user/me", methods=["GET"])
@login_required
def get_me():
    with get_conn() as conn:
        return jsonify(accounts.get_profile(conn, g.owner_id))


@bp.route("/user/me", methods=["PUT"])
@login_required
def update_me():
    payload = json_body()
    with get_conn() as conn:
        return jsonify(accounts.update_profile(conn, g.owner_id, payload))


@bp.route("/reset-data", methods=["POST"])
@login_required
def reset_data():
    payload = json_body()
    answer = payload.get("secretKeyAnswer")
    try:
        with get_conn() as conn:
            accounts.reset_data(conn, g.owner_id, answer if isinstance(answer, str) else "")
    except ApiError:
        current_app.logger.warning("Reset refused for user %s", g.owner_id)
        raise
    current_app.logger.info("Reset all data for user %s", g.owner_id)
    return jsonify({"success": True})


@bp.route("/data", methods=["GET"])
@login_required
def data():
    return jsonify(get_snapshot(g.owner_id, current_app.config))


@bp.route("/<collection>", methods=["GET"])
@login_required
def list_records(collection: str):
    kind = lookup(collection)
    with get_conn() as conn:
        return jsonify(RecordStore(conn, g.owner_id).list(kind))


@bp.route("/<collection>", methods=["POST"])
@login_required
def create_record(collection: str):
    kind = lookup(collection)
    payload = json_body()
    with get_conn() as conn:
        record = RecordStore(conn, g.owner_id).insert(kind, payload)
        if kind is Collection.LOGS and record["completed"]:
            accounts.award_points(conn, g.owner_id, current_app.config["POINTS_PER_COMPLETION"])
    return jsonify(record), 201


@bp.route("/<collection>/<record_id>", methods=["PUT"])
@login_required
def replace_record(collection: str, record_id: str):
    kind = lookup(collection)
    payload = json_body()
    with get_conn() as conn:
        record = RecordStore(conn, g.owner_id).replace(kind, record_id, payload)
    return jsonify(record)


@bp.route("/<collection>/<record_id>", methods=["DELETE"])
@login_required
def delete_record(collection: str, record_id: str):
    kind = lookup(collection)
    with get_conn() as conn:
        RecordStore(conn, g.owner_id).delete(kind, record_id)
    return jsonify({"success": True})
