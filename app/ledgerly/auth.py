"""
Email/password accounts backed by the signed Flask session cookie.

The session only carries `user_id`. Each request resolves it to a `User`
and binds the DB session to that tenant (see `bind_tenant`).
"""
from __future__ import annotations

import time
import uuid
from collections import defaultdict, deque

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for
from werkzeug.security import check_password_hash, generate_password_hash

from app.ledgerly.audit import record_event
from app.ledgerly.db import bind_tenant, db_session
from app.ledgerly.models import BusinessSettings, Profile, User

bp = Blueprint("auth", __name__)

MIN_PASSWORD_LENGTH = 8
_PUBLIC_PREFIXES = ("/static/", "/health", "/healthz")


class LoginThrottle:
    """In-process sliding window of login attempts per client address."""

    def __init__(self, limit: int = 5, window_seconds: int = 300):
        self.limit = limit
        self.window_seconds = window_seconds
        self._attempts: dict[str, deque[float]] = defaultdict(deque)

    def _prune(self, key: str, now: float) -> deque[float]:
        attempts = self._attempts[key]
        while attempts and attempts[0] <= now - self.window_seconds:
            attempts.popleft()
        return attempts

    def blocked(self, key: str) -> bool:
        return len(self._prune(key, time.monotonic())) >= self.limit

    def hit(self, key: str) -> None:
        self._attempts[key].append(time.monotonic())

    def reset(self, key: str) -> None:
        self._attempts.pop(key, None)

    def clear(self) -> None:
        self._attempts.clear()


_login_attempts = LoginThrottle()


def _safe_next(nxt: str) -> str | None:
    # Only local paths, to avoid open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


def _resolve_user(user_id: str) -> User | None:
    s = db_session()
    user = s.get(User, str(user_id))
    if user is None or not user.is_active:
        return None
    bind_tenant(s, user.id)
    return user


def load_current_user() -> None:
    """before_request hook: sets g.request_id and g.current_user."""
    g.request_id = getattr(g, "request_id", None) or uuid.uuid4().hex
    g.current_user = None

    user_id = session.get("user_id")
    if not user_id or request.path.startswith(_PUBLIC_PREFIXES):
        return
    try:
        g.current_user = _resolve_user(user_id)
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
    if g.current_user is None:
        session.pop("user_id", None)


def _start_session(user: User) -> None:
    session.clear()
    session["user_id"] = user.id


def create_account(s, email: str, password: str, full_name: str | None = None) -> User:
    """User plus the profile and business-settings rows every account has."""
    user = User(email=email, password_hash=generate_password_hash(password), is_active=True)
    s.add(user)
    s.flush()
    # business_settings is tenant-scoped; its insert must run as the new user.
    bind_tenant(s, user.id)
    s.add(Profile(id=user.id, email=email, full_name=full_name))
    s.add(BusinessSettings(user_id=user.id, business_email=email, business_owner=full_name))
    s.flush()
    return user


def _signup_errors(s, email: str, password: str) -> list[str]:
    if not email or "@" not in email:
        return ["A valid email is required."]
    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if s.query(User.id).filter(User.email == email).first():
        errors.append("An account with that email already exists.")
    return errors


@bp.get("/login")
def login_get():
    if g.get("current_user"):
        return redirect(url_for("routes.dashboard"))
    return render_template("auth/login.html", next=(request.args.get("next") or "").strip())


@bp.post("/login")
def login_post():
    form = request.form
    email = (form.get("email") or "").strip().lower()
    nxt = (form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _login_attempts.blocked(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get"))
    _login_attempts.hit(ip)

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    valid = user is not None and user.is_active and check_password_hash(user.password_hash, form.get("password") or "")
    if not valid:
        current_app.logger.info("Failed login for %s (request_id=%s)", email, g.request_id)
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        flash("Invalid credentials.", "danger")
        return redirect(url_for("auth.login_get", next=nxt or None))

    _start_session(user)
    _login_attempts.reset(ip)
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=user.id)
    s.commit()
    return redirect(_safe_next(nxt) or url_for("routes.dashboard"))


@bp.get("/signup")
def signup_get():
    if g.get("current_user"):
        return redirect(url_for("routes.dashboard"))
    return render_template("auth/signup.html")


@bp.post("/signup")
def signup_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    full_name = (request.form.get("full_name") or "").strip() or None

    s = db_session()
    errors = _signup_errors(s, email, password)
    if errors:
        for message in errors:
            flash(message, "danger")
        return render_template("auth/signup.html", email=email, full_name=full_name), 400

    user = create_account(s, email, password, full_name)
    record_event(s, actor=user, action="auth.signup", entity_type="User", entity_id=user.id)
    s.commit()

    _start_session(user)
    flash("Welcome to Ledgerly.", "success")
    return redirect(url_for("routes.dashboard"))


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    user = g.get("current_user")
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=user.id)
        s.commit()
    session.clear()
    return redirect(url_for("routes.index"))
