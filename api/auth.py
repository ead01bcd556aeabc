"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/me

The refresh token never appears in a JSON body: it travels in an HttpOnly
cookie scoped to /auth, while the access token is returned in the body for
the client to keep in memory.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort, current_app

from api.errors import auth_error_response
from models.schemas.user import LoginSchema, RefreshTokenSchema, RegisterSchema
from services.errors import InvalidRefreshToken, NotOwnedOrNotFound
from utils.decorators import jwt_required

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_token_schema = RefreshTokenSchema()


def _auth_service():
    return current_app.extensions["auth_service"]


def _token_body(access_token: str) -> dict:
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": _auth_service().settings.access_lifetime.seconds,
    }


def _set_refresh_cookie(response, token: str):
    cfg = current_app.config
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        token,
        max_age=_auth_service().settings.refresh_lifetime.seconds,
        path=cfg["REFRESH_COOKIE_PATH"],
        httponly=True,
        secure=cfg["REFRESH_COOKIE_SECURE"],
        samesite="Strict",
    )
    return response


def _clear_refresh_cookie(response):
    cfg = current_app.config
    response.delete_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        path=cfg["REFRESH_COOKIE_PATH"],
        httponly=True,
        secure=cfg["REFRESH_COOKIE_SECURE"],
        samesite="Strict",
    )
    return response


def _presented_refresh_token() -> str | None:
    """Cookie first, then a JSON body {"refresh_token": ...} for non-browser clients."""
    token = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    if token:
        return token
    payload = refresh_token_schema.load(request.get_json(silent=True) or {})
    return payload.get("refresh_token") or None


@bp.post("/register")
def register():
    """Register a new user. 201 with the user, 409 if the email is taken."""
    data = register_schema.load(request.get_json(silent=True) or {})
    user = _auth_service().register(data["name"], data["email"], data["password"])
    return jsonify({"data": user}), 201


@bp.post("/login")
def login():
    """Login: access token in the body, refresh token in the cookie."""
    data = login_schema.load(request.get_json(silent=True) or {})
    result = _auth_service().login(data["email"], data["password"])

    body = {"user": result["user"], **_token_body(result["access_token"])}
    response = jsonify({"data": body})
    return _set_refresh_cookie(response, result["refresh_token"]), 200


@bp.post("/refresh")
def refresh():
    """
    Use the refresh token to obtain a new access token. The refresh token is
    rotated: the presented one is revoked and a new one is set in the cookie.
    """
    token = _presented_refresh_token()
    if not token:
        abort(401, description="Refresh token not provided")

    try:
        result = _auth_service().refresh_access_token(token)
    except InvalidRefreshToken as err:
        response, status = auth_error_response(err)
        return _clear_refresh_cookie(response), status

    response = jsonify({"data": _token_body(result["access_token"])})
    return _set_refresh_cookie(response, result["refresh_token"]), 200


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Revoke the current refresh token (if any) for the authenticated user and
    clear the cookie. 403 when the token belongs to someone else.
    """
    token = _presented_refresh_token()
    if token:
        try:
            _auth_service().revoke_user_refresh_token(g.current_user.id, token)
        except NotOwnedOrNotFound as err:
            return auth_error_response(err)

    response = current_app.response_class(status=204)
    return _clear_refresh_cookie(response)


@bp.get("/me")
@jwt_required()
def me():
    """Current user info."""
    return jsonify({"data": _auth_service().users.to_public(g.current_user)}), 200
