from marshmallow import ValidationError


def normalize_email(value):
    """Strip surrounding whitespace and lower-case an email address."""
    return value.strip().lower() if isinstance(value, str) else value


def min_length(n: int, label: str):
    """Return a marshmallow validator enforcing a minimum string length."""
    def validator(value):
        if value is None or len(value) < n:
            raise ValidationError(f"{label} must be at least {n} characters")
    return validator
