"""
JWT session helpers and middleware for the Flask relay.

A token only carries the caller's address. The relay trusts it as the
identity of every call made with that token; proving ownership of the
address is the wallet's job, not ours.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import request, jsonify

from medledger.config import SECRET_KEY, TOKEN_EXPIRY_HOURS

# In-memory session store (use Redis in production)
# Structure: {token: {"address": str, "created_at": datetime, "last_activity": datetime}}
sessions: Dict[str, Dict[str, Any]] = {}


def generate_token(address: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": address,
        "iat": now,
        "exp": now + timedelta(hours=TOKEN_EXPIRY_HOURS),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a JWT token and return the decoded payload (or None)."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def token_required(f):
    """Decorator that resolves the caller address from a Bearer token."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        parts = auth_header.split(" ")
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return jsonify({"error": "Authentication token is missing"}), 401

        token = parts[1]
        payload = verify_token(token)
        if not payload:
            return jsonify({"error": "Invalid or expired token"}), 401

        if token not in sessions:
            return jsonify({"error": "Session not found. Please login again."}), 401

        sessions[token]["last_activity"] = datetime.now(timezone.utc)
        request.caller = payload["sub"]
        request.token = token
        return f(*args, **kwargs)

    return decorated


def cleanup_expired_sessions() -> int:
    """Remove sessions that have been inactive beyond TOKEN_EXPIRY_HOURS."""
    now = datetime.now(timezone.utc)
    expired = [
        tok for tok, data in sessions.items()
        if (now - data["last_activity"]).total_seconds() > TOKEN_EXPIRY_HOURS * 3600
    ]
    for tok in expired:
        del sessions[tok]
    if expired:
        print(f"[cleanup] Removed {len(expired)} expired sessions")
    return len(expired)
