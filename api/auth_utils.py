import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, jsonify, request

from models import User, db
from services.guard import Principal

DEFAULT_TOKEN_TTL_HOURS = 12


def _hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def issue_token(user: User) -> str:
    """Create a random token, keep its hash on the user and wrap it in a JWT.

    Only the latest issued token is accepted; issuing a new one or logging
    out invalidates the previous one.
    """

    raw_token = secrets.token_urlsafe(32)
    ttl = current_app.config.get("TOKEN_TTL_HOURS", DEFAULT_TOKEN_TTL_HOURS)
    now = datetime.now(timezone.utc)

    payload = {
        "sub": str(user.id),
        "role": user.role,
        "jti": raw_token,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=ttl)).timestamp()),
    }
    jwt_token = jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")

    user.set_api_token(_hash_token(raw_token))
    db.session.commit()
    return jwt_token


def revoke_token(user: User) -> None:
    user.clear_api_token()
    db.session.commit()


def require_api_user(*roles):
    """Decorator enforcing API bearer auth and optional role filtering.

    Exposes the user as ``request.current_api_user`` and the engine view of
    it as ``request.principal``.
    """

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth_header = request.headers.get("Authorization", "")
            if not auth_header.startswith("Bearer "):
                return jsonify({"ok": False, "error": "missing_token"}), 401
            token = auth_header.split(" ", 1)[1]
            try:
                payload = jwt.decode(
                    token, current_app.config["SECRET_KEY"], algorithms=["HS256"]
                )
            except jwt.PyJWTError:
                return jsonify({"ok": False, "error": "invalid_token"}), 401

            try:
                user_id = int(payload.get("sub", 0))
            except (TypeError, ValueError):
                return jsonify({"ok": False, "error": "invalid_token"}), 401

            user = db.session.get(User, user_id)
            if not user:
                return jsonify({"ok": False, "error": "unknown_user"}), 401

            raw_token = payload.get("jti") or ""
            if not user.auth_token_hash or not hmac.compare_digest(
                user.auth_token_hash, _hash_token(raw_token)
            ):
                return jsonify({"ok": False, "error": "revoked_token"}), 401

            if roles and user.role not in roles:
                return jsonify({"ok": False, "error": "forbidden"}), 403

            request.current_api_user = user
            request.principal = Principal.from_user(user)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
