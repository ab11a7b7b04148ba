from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import check_password_hash, generate_password_hash

db = SQLAlchemy()


class TimestampMixin:
    """Add created_at / updated_at columns to track record lifecycle."""

    created_at = db.Column(
        db.DateTime, default=datetime.utcnow, nullable=False, index=True
    )
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
        index=True,
    )


class User(db.Model, TimestampMixin):
    """Teachers and students in one table, distinguished by role.

    A student carries ``enrolled_teacher_id`` (set once, at signup through an
    invite code); a teacher carries a globally unique ``invite_code``.
    """

    __tablename__ = "user"

    ROLE_TEACHER = "teacher"
    ROLE_STUDENT = "student"
    ROLES = (ROLE_TEACHER, ROLE_STUDENT)

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    display_name = db.Column(db.String(64))
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, index=True)
    enrolled_teacher_id = db.Column(
        db.Integer, db.ForeignKey("user.id"), index=True
    )
    invite_code = db.Column(db.String(64), unique=True)
    auth_token_hash = db.Column(db.String(128))
    token_issued_at = db.Column(db.DateTime)

    enrolled_teacher = db.relationship(
        "User",
        remote_side=[id],
        backref=db.backref("students", lazy="dynamic"),
    )

    @property
    def is_teacher(self) -> bool:
        return self.role == self.ROLE_TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == self.ROLE_STUDENT

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def set_api_token(self, token_hash: str) -> None:
        self.auth_token_hash = token_hash
        self.token_issued_at = datetime.utcnow()

    def clear_api_token(self) -> None:
        self.auth_token_hash = None
        self.token_issued_at = None

    def __repr__(self) -> str:
        return f"<User {self.id} {self.role} {self.email}>"


class Task(db.Model, TimestampMixin):
    """A piece of work owned by exactly one teacher.

    Task content is shared by every assignee; per-student state lives in
    ``Progress`` rows.
    """

    __tablename__ = "task"

    id = db.Column(db.Integer, primary_key=True)
    owner_teacher_id = db.Column(
        db.Integer, db.ForeignKey("user.id"), nullable=False, index=True
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    due_date = db.Column(db.DateTime)
    # Highest id among the owner's students when the task was created;
    # NULL when the roster was empty.
    roster_cutoff_id = db.Column(db.Integer)

    owner = db.relationship(
        "User", backref=db.backref("owned_tasks", lazy="dynamic")
    )
    progress_records = db.relationship(
        "Progress",
        back_populates="task",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Task {self.id} owner={self.owner_teacher_id} {self.title!r}>"


class Progress(db.Model, TimestampMixin):
    """One student's status on one task."""

    __tablename__ = "progress"

    STATUS_NOT_STARTED = "not_started"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_COMPLETED = "completed"
    STATUSES = (STATUS_NOT_STARTED, STATUS_IN_PROGRESS, STATUS_COMPLETED)

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(
        db.Integer, db.ForeignKey("user.id"), nullable=False, index=True
    )
    task_id = db.Column(
        db.Integer,
        db.ForeignKey("task.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = db.Column(
        db.String(20), default=STATUS_NOT_STARTED, nullable=False, index=True
    )

    student = db.relationship(
        "User", backref=db.backref("progress_records", lazy="dynamic")
    )
    task = db.relationship("Task", back_populates="progress_records")

    __table_args__ = (
        db.UniqueConstraint("student_id", "task_id", name="uq_progress_student_task"),
    )

    def __repr__(self) -> str:
        return f"<Progress student={self.student_id} task={self.task_id} {self.status}>"
