"""
Bearer-token authentication for the helpdesk API.

Every request must carry the Supabase access token of the signed-in user.
The token is verified locally against the project's JWT secret; the raw
token is kept on ``g`` so the repository can ask Supabase auth who the
user is.

Usage:
    @require_auth
    def my_endpoint():
        user_id = g.user_id            # "sub" claim of the verified token
        token = g.access_token         # forwarded to TicketRepository
        ...
"""

import logging
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import request, jsonify, g

from helpdesk.tickets.errors import AuthenticationRequired
from helpdesk.utils.constants import settings

logger = logging.getLogger(__name__)

TOKEN_AUDIENCE = "authenticated"
TOKEN_ALGORITHMS = ["HS256"]


def bearer_token() -> Optional[str]:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify signature, audience and expiry of a Supabase access token.

    Returns the claims, or None when the token cannot be trusted.
    """
    secret = settings.SUPABASE_JWT_SECRET
    if not secret:
        logger.error("SUPABASE_JWT_SECRET is not set, rejecting all tokens")
        return None

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=TOKEN_ALGORITHMS,
            audience=TOKEN_AUDIENCE,
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug(f"Expired token on {request.path}")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected token on {request.path}: {e}")
    return None


def authenticate() -> Optional[str]:
    """Resolve the caller. On success g carries user_id, user_email and access_token."""
    token = bearer_token()
    if token is None:
        return None

    claims = decode_access_token(token)
    if not claims:
        return None

    g.user_id = claims["sub"]
    g.user_email = claims.get("email")
    g.access_token = token
    return g.user_id


def require_auth(f):
    """Reject the request with 401 unless it carries a valid access token."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if authenticate() is None:
            error = AuthenticationRequired("Authentication required")
            return jsonify(error.to_dict()), error.status_code
        return f(*args, **kwargs)

    return decorated
