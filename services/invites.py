"""Invite codes: one unique code per teacher, used by students to enroll.

Uniqueness is decided by the unique constraint on ``user.invite_code``. The
pre-check against the table only skips obviously taken candidates; a lost
race surfaces as an ``IntegrityError`` at commit and is retried like any
other collision, up to ``INVITE_CODE_MAX_ATTEMPTS`` attempts.
"""

from __future__ import annotations

import logging
import secrets
from typing import Callable

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import User, db

from .errors import ExhaustedRetries, Forbidden, NotFound

logger = logging.getLogger(__name__)

DEFAULT_CODE_BYTES = 6
DEFAULT_MAX_ATTEMPTS = 5


def generate_invite_code() -> str:
    nbytes = current_app.config.get("INVITE_CODE_BYTES", DEFAULT_CODE_BYTES)
    return secrets.token_hex(nbytes).upper()


def _code_taken(code: str) -> bool:
    return (
        db.session.query(User.id).filter(User.invite_code == code).first()
        is not None
    )


def assign_unique_code(
    apply: Callable[[str], None],
    on_conflict: Callable[[], None] | None = None,
    max_attempts: int | None = None,
) -> str:
    """Generate a free code, stage it with ``apply`` and commit.

    ``apply`` is called again on every attempt because a rollback discards
    what it staged. ``on_conflict`` runs after each rolled-back commit and
    may raise to abort the loop (e.g. when the conflict was on the email).
    """

    if max_attempts is None:
        max_attempts = current_app.config.get(
            "INVITE_CODE_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS
        )

    for attempt in range(1, max_attempts + 1):
        candidate = generate_invite_code()
        if _code_taken(candidate):
            logger.warning(
                "Invite code collision on attempt %d/%d (pre-check)",
                attempt,
                max_attempts,
            )
            continue

        apply(candidate)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if on_conflict is not None:
                on_conflict()
            logger.warning(
                "Invite code collision on attempt %d/%d (commit)",
                attempt,
                max_attempts,
            )
            continue
        return candidate

    raise ExhaustedRetries(
        f"no free invite code after {max_attempts} attempts"
    )


def get_teacher(teacher_id: int) -> User:
    teacher = db.session.get(User, teacher_id)
    if teacher is None:
        raise NotFound("teacher_not_found")
    if not teacher.is_teacher:
        raise Forbidden("not_a_teacher")
    return teacher


def ensure_code(teacher_id: int) -> str:
    teacher = get_teacher(teacher_id)
    if teacher.invite_code:
        return teacher.invite_code

    def apply(candidate: str) -> None:
        teacher.invite_code = candidate

    code = assign_unique_code(apply)
    logger.info("Issued invite code for teacher %s", teacher_id)
    return code


def rotate_code(teacher_id: int) -> str:
    teacher = get_teacher(teacher_id)

    def apply(candidate: str) -> None:
        teacher.invite_code = candidate

    code = assign_unique_code(apply)
    logger.info("Rotated invite code for teacher %s", teacher_id)
    return code


def resolve(code: str, lock: bool = False) -> int:
    """Exact, case-sensitive lookup of the teacher holding ``code``.

    ``lock`` takes a shared row lock (``FOR SHARE``) on the teacher so that a
    concurrent rotation waits until the caller's transaction ends. Backends
    without row locks, such as SQLite, serialize writers anyway.
    """

    holder = None
    if code:
        query = User.query.filter(User.invite_code == code)
        if lock:
            query = query.with_for_update(read=True)
        holder = query.first()
    if holder is None or not holder.is_teacher:
        raise NotFound("invite_code_not_found")
    return holder.id
