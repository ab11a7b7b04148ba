"""Task fan-out: one progress row per student enrolled when the task is created.

Fan-out is two commits, the task and then its progress rows. A failure in
between leaves a task with missing rows; ``backfill_task`` finds and creates
them and can be run any number of times.

The roster a task belongs to is pinned by ``Task.roster_cutoff_id``, the
highest student id of the owner at creation. Ids come from the database, so
the snapshot does not depend on any worker's clock.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from models import Progress, Task, User, db

from .errors import NotFound
from .invites import get_teacher

logger = logging.getLogger(__name__)


def _students_of(teacher_id: int):
    return User.query.filter(
        User.role == User.ROLE_STUDENT,
        User.enrolled_teacher_id == teacher_id,
    )


def latest_student_id(teacher_id: int) -> int | None:
    return (
        _students_of(teacher_id).with_entities(func.max(User.id)).scalar()
    )


def roster_snapshot(teacher_id: int, up_to_id: int | None = None) -> list[User]:
    """Students enrolled to ``teacher_id``, optionally only ids up to ``up_to_id``."""

    query = _students_of(teacher_id)
    if up_to_id is not None:
        query = query.filter(User.id <= up_to_id)
    return query.order_by(User.id.asc()).all()


def task_roster(task: Task, include_late_enrollees: bool = False) -> list[User]:
    if include_late_enrollees:
        return roster_snapshot(task.owner_teacher_id)
    if task.roster_cutoff_id is None:
        return []
    return roster_snapshot(task.owner_teacher_id, up_to_id=task.roster_cutoff_id)


def create_task(
    teacher_id: int,
    title: str,
    description: str,
    due_date: datetime | None = None,
) -> tuple[Task, int]:
    get_teacher(teacher_id)

    task = Task(
        owner_teacher_id=teacher_id,
        title=title,
        description=description,
        due_date=due_date,
        roster_cutoff_id=latest_student_id(teacher_id),
    )
    db.session.add(task)
    db.session.commit()

    roster = task_roster(task)
    if roster:
        db.session.add_all(
            [
                Progress(
                    student_id=student.id,
                    task_id=task.id,
                    status=Progress.STATUS_NOT_STARTED,
                )
                for student in roster
            ]
        )
        try:
            db.session.commit()
        except IntegrityError:
            # Another writer (a backfill) inserted some rows first; fill the rest.
            db.session.rollback()
            logger.warning(
                "Fan-out for task %s hit existing progress rows, backfilling", task.id
            )
            backfill_task(task.id)

    logger.info(
        "Created task %s for teacher %s, assigned to %d students",
        task.id,
        teacher_id,
        len(roster),
    )
    return task, len(roster)


def find_missing(task_id: int, include_late_enrollees: bool = False) -> list[int]:
    """Ids of students who should have a progress row for the task but do not."""

    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFound("task_not_found")

    roster = task_roster(task, include_late_enrollees=include_late_enrollees)
    covered = {
        student_id
        for (student_id,) in db.session.query(Progress.student_id).filter(
            Progress.task_id == task_id
        )
    }
    return [student.id for student in roster if student.id not in covered]


def backfill_task(task_id: int, include_late_enrollees: bool = False) -> int:
    """Create the missing progress rows of one task; returns how many were created.

    By default only the roster as it stood at task creation is covered.
    ``include_late_enrollees`` extends the task to students who enrolled
    afterwards.
    """

    missing = find_missing(task_id, include_late_enrollees=include_late_enrollees)
    created = 0
    for student_id in missing:
        db.session.add(
            Progress(
                student_id=student_id,
                task_id=task_id,
                status=Progress.STATUS_NOT_STARTED,
            )
        )
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.info(
                "Progress for student %s on task %s already exists", student_id, task_id
            )
            continue
        created += 1

    if created:
        logger.info("Backfilled %d progress rows for task %s", created, task_id)
    return created


def teacher_task_ids(teacher_id: int) -> list[int]:
    get_teacher(teacher_id)
    return [
        task_id
        for (task_id,) in db.session.query(Task.id)
        .filter(Task.owner_teacher_id == teacher_id)
        .order_by(Task.id.asc())
    ]


def backfill_teacher(teacher_id: int, include_late_enrollees: bool = False) -> dict[int, int]:
    return {
        task_id: backfill_task(task_id, include_late_enrollees=include_late_enrollees)
        for task_id in teacher_task_ids(teacher_id)
    }
