"""Task and progress mutations, each checked by the authorization guard."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from models import Progress, Task, User, db

from . import fanout
from .errors import Conflict, NotFound, ValidationError
from .guard import Operation, Principal, enforce

logger = logging.getLogger(__name__)

EDITABLE_TASK_FIELDS = ("title", "description", "due_date")

# Accepts "not_started", "NotStarted", "Not Started", "not-started", ...
_STATUS_ALIASES = {status.replace("_", ""): status for status in Progress.STATUSES}


def parse_status(value) -> str:
    if not isinstance(value, str):
        raise ValidationError("invalid_status")
    key = value.strip().lower().replace("_", "").replace("-", "").replace(" ", "")
    try:
        return _STATUS_ALIASES[key]
    except KeyError:
        raise ValidationError("invalid_status") from None


def _clean_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"invalid_{field}")
    return value.strip()


def _clean_due_date(value):
    if value is not None and not isinstance(value, datetime):
        raise ValidationError("invalid_due_date")
    return value


def get_task(task_id: int) -> Task:
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFound("task_not_found")
    return task


def create_task(
    actor: Principal,
    title: str,
    description: str,
    due_date: datetime | None = None,
) -> tuple[Task, int]:
    enforce(actor, Operation.CREATE_TASK)
    return fanout.create_task(
        actor.id,
        _clean_text(title, "title"),
        _clean_text(description, "description"),
        _clean_due_date(due_date),
    )


def update_task(actor: Principal, task_id: int, fields: dict) -> Task:
    """Apply the supplied editable fields; the owner never changes.

    Progress rows reference the task and are not touched.
    """

    task = get_task(task_id)
    enforce(actor, Operation.UPDATE_TASK, task)

    if "title" in fields:
        task.title = _clean_text(fields["title"], "title")
    if "description" in fields:
        task.description = _clean_text(fields["description"], "description")
    if "due_date" in fields:
        task.due_date = _clean_due_date(fields["due_date"])

    if any(name in fields for name in EDITABLE_TASK_FIELDS):
        db.session.commit()
        logger.info("Teacher %s updated task %s", actor.id, task_id)
    return task


def delete_task(actor: Principal, task_id: int) -> int:
    """Delete a task with all its progress rows; returns the number of rows removed."""

    task = get_task(task_id)
    enforce(actor, Operation.DELETE_TASK, task)

    removed = len(task.progress_records)
    db.session.delete(task)
    db.session.commit()
    logger.info(
        "Teacher %s deleted task %s and %d progress rows", actor.id, task_id, removed
    )
    return removed


def backfill(actor: Principal, task_id: int, include_late_enrollees: bool = False) -> int:
    task = get_task(task_id)
    enforce(actor, Operation.BACKFILL_TASK, task)
    return fanout.backfill_task(task_id, include_late_enrollees=include_late_enrollees)


def get_progress(student_id: int, task_id: int) -> Progress:
    record = Progress.query.filter_by(student_id=student_id, task_id=task_id).first()
    if record is None:
        raise NotFound("progress_not_found")
    return record


def add_progress(student_id: int, task_id: int) -> Progress:
    """Create a single progress row; the (student, task) pair must be new."""

    get_task(task_id)
    student = db.session.get(User, student_id)
    if student is None or not student.is_student:
        raise NotFound("student_not_found")

    record = Progress(
        student_id=student_id,
        task_id=task_id,
        status=Progress.STATUS_NOT_STARTED,
    )
    db.session.add(record)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict(
            f"progress for student {student_id} on task {task_id} already exists"
        ) from None
    return record


def _set_status(record: Progress, status: str) -> Progress:
    record.status = status
    record.updated_at = datetime.utcnow()
    db.session.commit()
    logger.info(
        "Student %s set task %s to %s", record.student_id, record.task_id, status
    )
    return record


def update_progress(actor: Principal, task_id: int, status) -> Progress:
    status = parse_status(status)
    enforce(actor, Operation.UPDATE_PROGRESS)
    record = get_progress(actor.id, task_id)
    enforce(actor, Operation.UPDATE_PROGRESS, record)
    return _set_status(record, status)


def update_progress_record(actor: Principal, progress_id: int, status) -> Progress:
    status = parse_status(status)
    record = db.session.get(Progress, progress_id)
    if record is None:
        raise NotFound("progress_not_found")
    enforce(actor, Operation.UPDATE_PROGRESS, record)
    return _set_status(record, status)
