"""Deterministic record keys for check-ins and joins.

These formats address pre-existing rows and must not change.
"""

from __future__ import annotations

from app.domain.connect.models import PinType


def checkin_key(user_id: str, pin_type: PinType | str, pin_id: str) -> str:
	kind = pin_type.value if isinstance(pin_type, PinType) else pin_type
	return f"{user_id}_{kind}_{pin_id}"


def join_key(user_id: str, event_id: str) -> str:
	return f"{user_id}_{event_id}"
