from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort, current_app

from models.schemas.user import RoleUpdateSchema
from models.user import UserRole
from utils.decorators import jwt_required, roles_required

bp = Blueprint("users", __name__)

role_update_schema = RoleUpdateSchema()


def _users():
    return current_app.extensions["auth_service"].users


@bp.get("/users/me")
@jwt_required()
def me():
    """Get current user info."""
    return jsonify({"data": _users().to_public(g.current_user)}), 200


@bp.patch("/users/<int:user_id>/role")
@roles_required(UserRole.ADMIN)
def set_role(user_id: int):
    """
    Admin-only: set the role of a user.
    Body: { "role": "teamMember" | "projectManager" | "productOwner" | "admin" }
    """
    data = role_update_schema.load(request.get_json(silent=True) or {})
    user = _users().set_role(user_id, UserRole(data["role"]))
    if not user:
        abort(404)
    return jsonify({"data": _users().to_public(user)}), 200
