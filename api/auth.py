from flask import jsonify, request

from models import User
from services import enrollment
from services.errors import ValidationError

from . import api_bp
from .auth_utils import issue_token, require_api_user, revoke_token

MIN_PASSWORD_LENGTH = 6


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _credentials(data: dict) -> tuple[str, str]:
    email = data.get("email")
    password = data.get("password")
    if not isinstance(email, str) or "@" not in email:
        raise ValidationError("invalid_email")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError("invalid_password")
    return email, password


def _display_name(data: dict) -> str | None:
    name = data.get("name")
    if name is None:
        return None
    if not isinstance(name, str):
        raise ValidationError("invalid_name")
    return name.strip() or None


def user_payload(user: User) -> dict:
    payload = {
        "id": user.id,
        "email": user.email,
        "name": user.display_name,
        "role": user.role,
    }
    if user.is_student:
        payload["enrolled_teacher_id"] = user.enrolled_teacher_id
    return payload


@api_bp.post("/auth/teachers")
def api_signup_teacher():
    data = _json_body()
    email, password = _credentials(data)
    teacher = enrollment.create_teacher(email, password, _display_name(data))
    return (
        jsonify(
            {
                "ok": True,
                "data": {
                    "user": user_payload(teacher),
                    "invite_code": teacher.invite_code,
                },
            }
        ),
        201,
    )


@api_bp.post("/auth/students")
def api_signup_student():
    data = _json_body()
    email, password = _credentials(data)
    invite_code = data.get("invite_code")
    if not isinstance(invite_code, str) or not invite_code.strip():
        raise ValidationError("missing_invite_code")

    student = enrollment.enroll(email, password, invite_code, _display_name(data))
    return jsonify({"ok": True, "data": {"user": user_payload(student)}}), 201


@api_bp.post("/auth/login")
def api_login():
    data = _json_body()
    email = data.get("email") or ""
    password = data.get("password") or ""
    if not email or not password:
        raise ValidationError("missing_credentials")

    user = enrollment.authenticate(email, password)
    token = issue_token(user)
    return jsonify(
        {
            "ok": True,
            "data": {
                "access_token": token,
                "user": user_payload(user),
            },
        }
    )


@api_bp.post("/auth/logout")
@require_api_user()
def api_logout():
    revoke_token(request.current_api_user)
    return jsonify({"ok": True})


@api_bp.get("/me")
@require_api_user()
def api_me():
    user: User = request.current_api_user
    data = user_payload(user)
    if user.is_teacher:
        data["invite_code"] = user.invite_code
    return jsonify({"ok": True, "data": data})


@api_bp.get("/teachers")
def api_list_teachers():
    teachers = enrollment.list_teachers()
    return jsonify(
        {
            "ok": True,
            "data": [
                {"id": t.id, "email": t.email, "name": t.display_name}
                for t in teachers
            ],
        }
    )

