"""Ownership rules applied before every mutation.

``check`` is pure: it only looks at the actor and the resource handed in and
never touches the database. ``enforce`` is the raising variant the services
call.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from models import Progress, Task, User

from .errors import Forbidden


class Operation(str, enum.Enum):
    CREATE_TASK = "create_task"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"
    BACKFILL_TASK = "backfill_task"
    UPDATE_PROGRESS = "update_progress"
    MANAGE_INVITE_CODE = "manage_invite_code"
    READ_OWN = "read_own"


class Decision(str, enum.Enum):
    ALLOW = "allow"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Principal:
    """The authenticated actor as handed over by the auth layer."""

    id: int
    role: str
    enrolled_teacher_id: int | None = None

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            id=user.id,
            role=user.role,
            enrolled_teacher_id=user.enrolled_teacher_id,
        )

    @property
    def is_teacher(self) -> bool:
        return self.role == User.ROLE_TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == User.ROLE_STUDENT


_TASK_OWNER_OPERATIONS = {
    Operation.UPDATE_TASK,
    Operation.DELETE_TASK,
    Operation.BACKFILL_TASK,
}


def check(actor: Principal, operation: Operation, resource=None) -> Decision:
    if operation == Operation.READ_OWN:
        return Decision.ALLOW

    if operation in (Operation.CREATE_TASK, Operation.MANAGE_INVITE_CODE):
        return Decision.ALLOW if actor.is_teacher else Decision.FORBIDDEN

    if operation in _TASK_OWNER_OPERATIONS:
        if not isinstance(resource, Task):
            return Decision.FORBIDDEN
        if actor.is_teacher and resource.owner_teacher_id == actor.id:
            return Decision.ALLOW
        return Decision.FORBIDDEN

    if operation == Operation.UPDATE_PROGRESS:
        if not actor.is_student:
            return Decision.FORBIDDEN
        # Without a record only the role can be checked; the caller scopes
        # its lookup to the actor.
        if resource is None:
            return Decision.ALLOW
        if isinstance(resource, Progress) and resource.student_id == actor.id:
            return Decision.ALLOW
        return Decision.FORBIDDEN

    return Decision.FORBIDDEN


def enforce(actor: Principal, operation: Operation, resource=None) -> None:
    if check(actor, operation, resource) is not Decision.ALLOW:
        raise Forbidden(f"{actor.role} {actor.id} may not {operation.value}")
