#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the Project Manager API.

- Integer autoincrement primary key
- created_at set by the database on insert
- TimestampMixin adds updated_at for mutable entities
- to_dict() that formats timestamps, removes SA internals and never leaks
  password hashes

Notes:
- We use server-side defaults (func.now()) so timestamps are set consistently by the DB.
- For SQLite, func.now() maps to CURRENT_TIMESTAMP (UTC).
"""

from __future__ import annotations

from datetime import datetime
import enum

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

TIME_FMT = "%Y-%m-%dT%H:%M:%S.%f"

# Fields that must never appear in a serialized model
SENSITIVE_FIELDS = ("password", "password_hash", "token_hash")

# Declarative base for all models
Base = declarative_base()


class BaseModel:
    """
    Base mixin for all persistent models.

    - id, created_at
    - to_dict() with __class__ and timestamp formatting
    """

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        created_at is left to the DB default unless passed explicitly (e.g. in tests).
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id}) {self.to_dict()}"

    def to_dict(self) -> dict:
        """
        Return a dictionary of fields suitable for API responses:
        - Adds __class__
        - Formats datetimes to TIME_FMT and enums to their value
        - Removes SQLAlchemy internal state and sensitive fields
        """
        d = {}
        for key, value in self.__dict__.items():
            if key == "_sa_instance_state" or key in SENSITIVE_FIELDS:
                continue
            if isinstance(value, datetime):
                value = value.strftime(TIME_FMT)
            elif isinstance(value, enum.Enum):
                value = value.value
            d[key] = value
        d["__class__"] = self.__class__.__name__
        return d


class TimestampMixin:
    """Adds updated_at, refreshed by the database on every UPDATE."""

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
