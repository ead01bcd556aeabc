from marshmallow import Schema, fields, pre_load, validate, EXCLUDE

from models.schemas.common import normalize_email, min_length
from models.user import UserRole

ROLE_VALUES = [r.value for r in UserRole]


class _EmailNormalizingSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = normalize_email(data["email"])
        return data


class RegisterSchema(_EmailNormalizingSchema):
    name = fields.String(
        required=True,
        validate=min_length(2, "Name"),
        error_messages={"required": "Name is required"},
    )
    email = fields.Email(
        required=True,
        error_messages={"required": "Email is required", "invalid": "Please enter a valid email address"},
    )
    password = fields.String(
        required=True,
        load_only=True,
        validate=min_length(6, "Password"),
        error_messages={"required": "Password is required"},
    )


class LoginSchema(_EmailNormalizingSchema):
    email = fields.Email(
        required=True,
        error_messages={"required": "Email is required", "invalid": "Please enter a valid email address"},
    )
    password = fields.String(
        required=True,
        load_only=True,
        validate=min_length(6, "Password"),
        error_messages={"required": "Password is required"},
    )


class RefreshTokenSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(load_default=None)


class RoleUpdateSchema(Schema):
    role = fields.String(required=True, validate=validate.OneOf(ROLE_VALUES))


class UserOutSchema(Schema):
    id = fields.Integer()
    name = fields.String()
    email = fields.String()
    avatar_url = fields.String(allow_none=True)
    role = fields.Method("get_role")
    created_at = fields.DateTime()
    updated_at = fields.DateTime()

    def get_role(self, obj):
        return getattr(obj.role, "value", obj.role)
