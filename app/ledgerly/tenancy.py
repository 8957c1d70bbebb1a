"""
Per-user tenant isolation.

Every owned table carries a `user_id` column. Handlers never query an owned
model directly; they go through `owned_query` / `get_owned_or_404` so a user
can only ever see or touch their own rows.
"""
from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from flask import abort, g, redirect, request, url_for
from sqlalchemy.orm import Query, Session

from app.ledgerly.models import User

M = TypeVar("M")


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        # Unauthenticated → redirect to login
        if not user or not user.is_active:
            nxt = request.full_path or request.path
            # Avoid trailing '?' from full_path when there is no query string.
            if nxt.endswith("?"):
                nxt = nxt[:-1]
            return redirect(url_for("auth.login_get", next=nxt))
        return fn(*args, **kwargs)

    return wrapped


def owned_query(s: Session, model: type[M], user: User | None = None) -> "Query[M]":
    owner = user or current_user()
    return s.query(model).filter(model.user_id == owner.id)  # type: ignore[attr-defined]


def get_owned(s: Session, model: type[M], obj_id: str, user: User | None = None) -> M | None:
    return owned_query(s, model, user).filter(model.id == obj_id).one_or_none()  # type: ignore[attr-defined]


def get_owned_or_404(s: Session, model: type[M], obj_id: str, user: User | None = None) -> M:
    obj = get_owned(s, model, obj_id, user)
    if obj is None:
        abort(404)
    return obj
