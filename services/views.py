"""Role-specific read models built by joining tasks with progress rows."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from models import Progress, Task, User, db

from .guard import Principal


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def task_payload(task: Task) -> dict:
    return {
        "id": task.id,
        "owner_teacher_id": task.owner_teacher_id,
        "title": task.title,
        "description": task.description,
        "due_date": _iso(task.due_date),
        "created_at": _iso(task.created_at),
        "updated_at": _iso(task.updated_at),
    }


def list_tasks_for_student(student_id: int) -> list[dict]:
    """One entry per progress row the student has, newest progress first.

    Tasks without a row for this student are left out, never synthesized.
    """

    rows = (
        db.session.query(Progress, Task)
        .join(Task, Progress.task_id == Task.id)
        .filter(Progress.student_id == student_id)
        .order_by(Progress.updated_at.desc(), Progress.id.desc())
        .all()
    )
    items = []
    for progress, task in rows:
        entry = task_payload(task)
        entry.update(
            {
                "progress_id": progress.id,
                "status": progress.status,
                "progress_updated_at": _iso(progress.updated_at),
            }
        )
        items.append(entry)
    return items


def list_tasks_for_teacher(teacher_id: int) -> list[dict]:
    """Every task the teacher owns, newest first, with each assignee's status."""

    tasks = (
        Task.query.filter(Task.owner_teacher_id == teacher_id)
        .order_by(Task.created_at.desc(), Task.id.desc())
        .all()
    )
    if not tasks:
        return []

    assignees = defaultdict(list)
    rows = (
        db.session.query(Progress, User)
        .join(User, Progress.student_id == User.id)
        .filter(Progress.task_id.in_([task.id for task in tasks]))
        .order_by(User.email.asc())
        .all()
    )
    for progress, student in rows:
        assignees[progress.task_id].append(
            {
                "student_id": student.id,
                "email": student.email,
                "name": student.display_name,
                "status": progress.status,
                "updated_at": _iso(progress.updated_at),
            }
        )

    items = []
    for task in tasks:
        entry = task_payload(task)
        entry["assignees"] = assignees.get(task.id, [])
        items.append(entry)
    return items


def list_tasks_for(principal: Principal) -> list[dict]:
    if principal.is_teacher:
        return list_tasks_for_teacher(principal.id)
    if principal.is_student:
        return list_tasks_for_student(principal.id)
    return []
