from datetime import datetime, timezone

from flask import jsonify, request

from models import Progress, User
from services import tasks as task_service
from services import views
from services.errors import ValidationError

from . import api_bp
from .auth_utils import require_api_user


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _parse_due_date(value):
    """ISO-8601 string (date or datetime) or null; stored as naive UTC."""

    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError("invalid_due_date")
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError("invalid_due_date") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _progress_payload(record: Progress) -> dict:
    return {
        "id": record.id,
        "student_id": record.student_id,
        "task_id": record.task_id,
        "status": record.status,
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    }


@api_bp.get("/tasks")
@require_api_user()
def api_list_tasks():
    return jsonify({"ok": True, "data": views.list_tasks_for(request.principal)})


@api_bp.post("/tasks")
@require_api_user(User.ROLE_TEACHER)
def api_create_task():
    data = _json_body()
    task, assigned_count = task_service.create_task(
        request.principal,
        data.get("title"),
        data.get("description"),
        _parse_due_date(data.get("due_date")),
    )
    return (
        jsonify(
            {
                "ok": True,
                "data": {
                    "task": views.task_payload(task),
                    "assigned_count": assigned_count,
                },
            }
        ),
        201,
    )


@api_bp.patch("/tasks/<int:task_id>")
@require_api_user(User.ROLE_TEACHER)
def api_update_task(task_id: int):
    data = _json_body()
    fields = {
        name: data[name]
        for name in task_service.EDITABLE_TASK_FIELDS
        if name in data
    }
    if "due_date" in fields:
        fields["due_date"] = _parse_due_date(fields["due_date"])

    task = task_service.update_task(request.principal, task_id, fields)
    return jsonify({"ok": True, "data": {"task": views.task_payload(task)}})


@api_bp.delete("/tasks/<int:task_id>")
@require_api_user(User.ROLE_TEACHER)
def api_delete_task(task_id: int):
    removed = task_service.delete_task(request.principal, task_id)
    return jsonify({"ok": True, "data": {"removed_progress": removed}})


@api_bp.post("/tasks/<int:task_id>/backfill")
@require_api_user(User.ROLE_TEACHER)
def api_backfill_task(task_id: int):
    data = _json_body()
    created = task_service.backfill(
        request.principal,
        task_id,
        include_late_enrollees=bool(data.get("include_late", False)),
    )
    return jsonify({"ok": True, "data": {"created": created}})


@api_bp.put("/tasks/<int:task_id>/progress")
@require_api_user(User.ROLE_STUDENT)
def api_update_progress(task_id: int):
    data = _json_body()
    record = task_service.update_progress(request.principal, task_id, data.get("status"))
    return jsonify({"ok": True, "data": _progress_payload(record)})


@api_bp.put("/progress/<int:progress_id>")
@require_api_user(User.ROLE_STUDENT)
def api_update_progress_record(progress_id: int):
    data = _json_body()
    record = task_service.update_progress_record(
        request.principal, progress_id, data.get("status")
    )
    return jsonify({"ok": True, "data": _progress_payload(record)})
