"""Tokens: per-session CSRF tokens and per-invoice share tokens."""
import hmac
import secrets

from flask import Request, session

CSRF_SESSION_KEY = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"


def _same_token(expected: str | None, supplied: str | None) -> bool:
    if not expected or not supplied:
        return False
    return hmac.compare_digest(str(expected), str(supplied))


def ensure_csrf_token() -> str:
    return session.setdefault(CSRF_SESSION_KEY, secrets.token_urlsafe(32))


def _submitted_csrf_token(req: Request) -> str | None:
    supplied = req.headers.get(CSRF_HEADER) or req.form.get(CSRF_SESSION_KEY)
    if supplied or not req.is_json:
        return supplied
    body = req.get_json(silent=True)
    return body.get(CSRF_SESSION_KEY) if isinstance(body, dict) else None


def validate_csrf(req: Request) -> bool:
    """True when the request echoes the session's token (header, form field or JSON body)."""
    return _same_token(session.get(CSRF_SESSION_KEY), _submitted_csrf_token(req))


def generate_share_token() -> str:
    """Random token granting unauthenticated read access to one invoice."""
    return secrets.token_urlsafe(24)


def share_token_matches(expected: str | None, supplied: str | None) -> bool:
    return _same_token(expected, supplied)
