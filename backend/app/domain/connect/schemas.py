"""Request and query schemas for the Connect API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import Field, field_validator, model_validator

from app.domain.connect.models import ConnectModel, JoinStatus, PinType

MAX_ID_LENGTH = 200
MAX_PAGE_LIMIT = 100


class CheckInRequest(ConnectModel):
	pin_id: str = Field(min_length=1, max_length=MAX_ID_LENGTH)
	pin_type: PinType


class UpsertCurationRequest(ConnectModel):
	"""Fields left unset are not touched when patching an existing item."""

	pin_id: str = Field(min_length=1, max_length=MAX_ID_LENGTH)
	pin_type: PinType
	priority: Optional[int] = None
	active: Optional[bool] = None
	starts_at: Optional[datetime] = None
	ends_at: Optional[datetime] = None

	@field_validator("starts_at", "ends_at")
	@classmethod
	def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
		# Offset-less timestamps are read as UTC.
		if value is not None and value.tzinfo is None:
			return value.replace(tzinfo=timezone.utc)
		return value

	@model_validator(mode="after")
	def _window_order(self) -> "UpsertCurationRequest":
		if self.starts_at is not None and self.ends_at is not None and self.ends_at < self.starts_at:
			raise ValueError("ends_at must not be earlier than starts_at")
		return self

	def patch_fields(self) -> dict[str, object]:
		"""Optional fields the caller actually supplied, for patch semantics."""
		optional = ("priority", "active", "starts_at", "ends_at")
		return {
			name: getattr(self, name)
			for name in optional
			if name in self.model_fields_set and getattr(self, name) is not None
		}


class ParticipationResponse(ConnectModel):
	event_id: str
	user_id: str
	joined: bool
	status: Optional[JoinStatus] = None
