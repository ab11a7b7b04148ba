"""Teacher signup, student enrollment through invite codes, and login checks."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from models import User, db

from . import invites
from .errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidInviteCode,
    NotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)


def normalize_email(value: str | None) -> str:
    email = (value or "").strip().lower()
    if not email:
        raise ValidationError("missing_email")
    return email


def _email_taken(email: str) -> bool:
    return db.session.query(User.id).filter(User.email == email).first() is not None


def create_teacher(email: str, password: str, display_name: str | None = None) -> User:
    """Create a teacher together with a fresh invite code.

    The row is inserted inside the invite-code retry loop, so a code collision
    at insert time is retried while an email collision aborts with
    ``DuplicateEmail``.
    """

    email = normalize_email(email)
    if _email_taken(email):
        raise DuplicateEmail(f"{email} is already registered")

    teacher = User(email=email, role=User.ROLE_TEACHER, display_name=display_name)
    teacher.set_password(password)

    def apply(candidate: str) -> None:
        teacher.invite_code = candidate
        db.session.add(teacher)

    def on_conflict() -> None:
        if _email_taken(email):
            raise DuplicateEmail(f"{email} is already registered")

    invites.assign_unique_code(apply, on_conflict=on_conflict)
    logger.info("Created teacher %s", teacher.id)
    return teacher


def enroll(
    email: str,
    password: str,
    invite_code: str,
    display_name: str | None = None,
) -> User:
    """Create a student enrolled to the teacher holding ``invite_code``.

    The teacher row stays share-locked until the student is committed, so a
    rotation either lands before (and the code is rejected) or after (and the
    enrollment is complete). Tasks created before the enrollment are not
    assigned to the new student.
    """

    email = normalize_email(email)
    try:
        teacher_id = invites.resolve((invite_code or "").strip(), lock=True)
    except NotFound:
        raise InvalidInviteCode("invite code does not resolve to a teacher") from None
    if _email_taken(email):
        raise DuplicateEmail(f"{email} is already registered")

    student = User(
        email=email,
        role=User.ROLE_STUDENT,
        display_name=display_name,
        enrolled_teacher_id=teacher_id,
    )
    student.set_password(password)
    db.session.add(student)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEmail(f"{email} is already registered")

    logger.info("Enrolled student %s with teacher %s", student.id, student.enrolled_teacher_id)
    return student


def list_teachers() -> list[User]:
    return (
        User.query.filter(User.role == User.ROLE_TEACHER)
        .order_by(User.email.asc())
        .all()
    )


def authenticate(email: str, password: str) -> User:
    user = User.query.filter_by(email=(email or "").strip().lower()).first()
    if user is None or not user.check_password(password or ""):
        raise InvalidCredentials("invalid email or password")
    return user
