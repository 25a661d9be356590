"""Identifier and clock helpers for the group store."""

from __future__ import annotations

import time
import uuid


def new_id() -> str:
    """Return a new opaque identifier for a group, file, or folder."""
    return str(uuid.uuid4())


def now_ms() -> int:
    """Return the current time as integer epoch milliseconds."""
    return int(time.time() * 1000)
