# -*- coding: utf-8 -*-
"""Shared column helpers for the automation models."""

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value):
    return value.isoformat() if value else None
