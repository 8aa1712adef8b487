"""Pydantic models for the PostgreSQL control file and edit requests."""

from models.control import PG_CONTROL_VERSION, CheckPoint, ControlRecord, DBState
from models.overrides import OverrideRequest

__all__ = [
    "CheckPoint",
    "ControlRecord",
    "DBState",
    "OverrideRequest",
    "PG_CONTROL_VERSION",
]
