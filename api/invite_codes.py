from flask import jsonify, request

from models import User
from services import invites
from services.guard import Operation, enforce

from . import api_bp
from .auth_utils import require_api_user


@api_bp.get("/invite-code")
@require_api_user(User.ROLE_TEACHER)
def api_get_invite_code():
    enforce(request.principal, Operation.MANAGE_INVITE_CODE)
    code = invites.ensure_code(request.principal.id)
    return jsonify({"ok": True, "data": {"invite_code": code}})


@api_bp.post("/invite-code/rotate")
@require_api_user(User.ROLE_TEACHER)
def api_rotate_invite_code():
    enforce(request.principal, Operation.MANAGE_INVITE_CODE)
    code = invites.rotate_code(request.principal.id)
    return jsonify({"ok": True, "data": {"invite_code": code}})
