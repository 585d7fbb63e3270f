# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


ACTOR_HEADER = "X-Actor-Id"


def require_actor(f):
    """
    Require the caller's user id and expose it as ``g.actor_id``.

    Authentication happens upstream; it forwards the authenticated user in
    the X-Actor-Id header. Returns 401 if the header is missing or is not a
    positive integer.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(ACTOR_HEADER, "").strip()

        if not raw:
            return jsonify({"error": "unauthenticated", "message": "Actor required"}), 401

        try:
            actor_id = int(raw)
        except ValueError:
            actor_id = 0
        if actor_id <= 0:
            return jsonify({"error": "unauthenticated", "message": "Invalid actor id"}), 401

        g.actor_id = actor_id
        return f(*args, **kwargs)

    return decorated_function
