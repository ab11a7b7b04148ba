from datetime import datetime

import pytest

from models import Progress, Task, db
from services import tasks
from services.errors import Conflict, Forbidden, NotFound, ValidationError
from services.guard import Principal


@pytest.fixture
def classroom(make_teacher, make_student):
    teacher = make_teacher()
    s1 = make_student(teacher)
    s2 = make_student(teacher)
    task, _ = tasks.create_task(Principal.from_user(teacher), "Essay 1", "Write it")
    return teacher, s1, s2, task


def test_create_task_trims_and_assigns(make_teacher, make_student):
    teacher = make_teacher()
    make_student(teacher)
    due = datetime(2026, 11, 1, 9, 0)

    task, assigned = tasks.create_task(
        Principal.from_user(teacher), "  Essay 1 ", " Write it ", due
    )

    assert (task.title, task.description, task.due_date) == ("Essay 1", "Write it", due)
    assert assigned == 1


@pytest.mark.parametrize(
    "title, description",
    [("", "body"), ("   ", "body"), ("title", ""), (None, "body"), ("title", 5)],
)
def test_create_task_rejects_blank_fields(make_teacher, title, description):
    teacher = make_teacher()
    with pytest.raises(ValidationError):
        tasks.create_task(Principal.from_user(teacher), title, description)
    assert Task.query.count() == 0


def test_student_cannot_create_task(make_teacher, make_student):
    student = make_student(make_teacher())
    with pytest.raises(Forbidden):
        tasks.create_task(Principal.from_user(student), "Title", "Body")


def test_update_task_applies_only_supplied_fields(classroom):
    teacher, _, _, task = classroom
    actor = Principal.from_user(teacher)

    updated = tasks.update_task(actor, task.id, {"title": "Essay 1 (revised)"})
    assert updated.title == "Essay 1 (revised)"
    assert updated.description == "Write it"

    due = datetime(2026, 12, 24)
    tasks.update_task(actor, task.id, {"due_date": due, "owner_teacher_id": 999})
    assert task.due_date == due
    assert task.owner_teacher_id == teacher.id

    tasks.update_task(actor, task.id, {"due_date": None})
    assert task.due_date is None


def test_update_does_not_touch_progress(classroom):
    teacher, s1, _, task = classroom
    tasks.update_progress(Principal.from_user(s1), task.id, "in_progress")

    tasks.update_task(Principal.from_user(teacher), task.id, {"title": "New"})

    assert tasks.get_progress(s1.id, task.id).status == Progress.STATUS_IN_PROGRESS


def test_other_teacher_cannot_update_or_delete(classroom, make_teacher):
    _, _, _, task = classroom
    intruder = Principal.from_user(make_teacher())

    with pytest.raises(Forbidden):
        tasks.update_task(intruder, task.id, {"title": "Mine now"})
    with pytest.raises(Forbidden):
        tasks.delete_task(intruder, task.id)
    assert tasks.get_task(task.id).title == "Essay 1"


def test_student_cannot_update_task(classroom):
    _, s1, _, task = classroom
    with pytest.raises(Forbidden):
        tasks.update_task(Principal.from_user(s1), task.id, {"title": "x"})


def test_missing_task(classroom):
    teacher, _, _, _ = classroom
    actor = Principal.from_user(teacher)
    with pytest.raises(NotFound):
        tasks.update_task(actor, 999, {"title": "x"})
    with pytest.raises(NotFound):
        tasks.delete_task(actor, 999)


def test_delete_cascades_to_progress(classroom):
    teacher, s1, s2, task = classroom
    task_id = task.id

    removed = tasks.delete_task(Principal.from_user(teacher), task_id)

    assert removed == 2
    assert db.session.get(Task, task_id) is None
    assert Progress.query.filter_by(task_id=task_id).count() == 0
    for student in (s1, s2):
        with pytest.raises(NotFound):
            tasks.get_progress(student.id, task_id)


def test_update_progress_by_owner(classroom):
    _, s1, s2, task = classroom
    before = tasks.get_progress(s1.id, task.id).updated_at

    record = tasks.update_progress(Principal.from_user(s1), task.id, "InProgress")

    assert record.status == Progress.STATUS_IN_PROGRESS
    assert record.updated_at >= before
    assert tasks.get_progress(s2.id, task.id).status == Progress.STATUS_NOT_STARTED


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("not_started", Progress.STATUS_NOT_STARTED),
        ("Not Started", Progress.STATUS_NOT_STARTED),
        ("in-progress", Progress.STATUS_IN_PROGRESS),
        ("Completed", Progress.STATUS_COMPLETED),
    ],
)
def test_parse_status_aliases(raw, expected):
    assert tasks.parse_status(raw) == expected


@pytest.mark.parametrize("raw", ["done", "", None, 3])
def test_parse_status_rejects_unknown(raw):
    with pytest.raises(ValidationError):
        tasks.parse_status(raw)


def test_teacher_cannot_set_student_progress(classroom):
    teacher, _, _, task = classroom
    with pytest.raises(Forbidden):
        tasks.update_progress(Principal.from_user(teacher), task.id, "completed")


def test_progress_missing_for_unenrolled_student(classroom, make_teacher, make_student):
    _, _, _, task = classroom
    outsider = make_student(make_teacher())
    with pytest.raises(NotFound):
        tasks.update_progress(Principal.from_user(outsider), task.id, "completed")


def test_student_cannot_update_another_students_record(classroom):
    _, s1, s2, task = classroom
    other_record = tasks.get_progress(s2.id, task.id)

    with pytest.raises(Forbidden):
        tasks.update_progress_record(Principal.from_user(s1), other_record.id, "completed")
    assert tasks.get_progress(s2.id, task.id).status == Progress.STATUS_NOT_STARTED

    own = tasks.get_progress(s1.id, task.id)
    assert tasks.update_progress_record(Principal.from_user(s1), own.id, "completed").status == (
        Progress.STATUS_COMPLETED
    )


def test_update_unknown_progress_record(classroom):
    _, s1, _, _ = classroom
    with pytest.raises(NotFound):
        tasks.update_progress_record(Principal.from_user(s1), 999, "completed")


def test_second_progress_row_for_pair_conflicts(classroom):
    _, s1, _, task = classroom

    with pytest.raises(Conflict):
        tasks.add_progress(s1.id, task.id)
    assert Progress.query.filter_by(student_id=s1.id, task_id=task.id).count() == 1


def test_add_progress_for_unassigned_pair(classroom, make_student):
    teacher, _, _, task = classroom
    late = make_student(teacher)

    record = tasks.add_progress(late.id, task.id)
    assert record.status == Progress.STATUS_NOT_STARTED
    with pytest.raises(NotFound):
        tasks.add_progress(teacher.id, task.id)


def test_backfill_requires_owner(classroom, make_teacher):
    teacher, _, _, task = classroom
    with pytest.raises(Forbidden):
        tasks.backfill(Principal.from_user(make_teacher()), task.id)
    assert tasks.backfill(Principal.from_user(teacher), task.id) == 0
