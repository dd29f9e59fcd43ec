"""Domain models for Connect presence and participation records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CHECKIN_EXPIRY_HOURS = 4
CHECKIN_TTL = timedelta(hours=CHECKIN_EXPIRY_HOURS)


class PinType(str, Enum):
	PLACE = "place"
	ACTIVITY = "activity"
	EVENT = "event"


class ActivityType(str, Enum):
	CHECKIN = "checkin"
	JOIN = "join"
	LEAVE = "leave"


class JoinStatus(str, Enum):
	JOINED = "joined"
	LEFT = "left"


class ConnectModel(BaseModel):
	"""Base for records exchanged with clients (camelCase on the wire)."""

	model_config = ConfigDict(
		alias_generator=to_camel,
		populate_by_name=True,
		from_attributes=True,
	)


class Coordinates(ConnectModel):
	lat: float
	lng: float


class CheckIn(ConnectModel):
	"""A user's presence at a pin; inactive once expires_at <= now."""

	id: str
	user_id: str
	user_name: Optional[str] = None
	user_photo_url: Optional[str] = Field(default=None, alias="userPhotoURL")
	pin_id: str
	pin_type: PinType
	pin_title: Optional[str] = None
	region: Optional[str] = None
	coordinates: Optional[Coordinates] = None
	expires_at: datetime
	created_at: datetime
	updated_at: datetime

	def is_active(self, now: datetime) -> bool:
		return self.expires_at > now


class Join(ConnectModel):
	"""Event participation; exactly one row per (user, event)."""

	id: str
	user_id: str
	user_name: Optional[str] = None
	user_photo_url: Optional[str] = Field(default=None, alias="userPhotoURL")
	event_id: str
	event_title: Optional[str] = None
	region: Optional[str] = None
	status: JoinStatus
	created_at: datetime
	updated_at: datetime


class UserActivity(ConnectModel):
	"""Immutable feed entry."""

	id: str
	type: ActivityType
	user_id: str
	user_name: Optional[str] = None
	user_photo_url: Optional[str] = Field(default=None, alias="userPhotoURL")
	pin_id: Optional[str] = None
	pin_type: Optional[PinType] = None
	pin_title: Optional[str] = None
	region: Optional[str] = None
	coordinates: Optional[Coordinates] = None
	ref_id: Optional[str] = None
	expires_at: Optional[datetime] = None
	created_at: datetime

	def is_expired(self, now: datetime) -> bool:
		"""Only check-in rows expire; join/leave rows are historical facts."""
		if self.type is not ActivityType.CHECKIN or self.expires_at is None:
			return False
		return self.expires_at <= now


class ConnectCurationItem(ConnectModel):
	id: str
	pin_id: str
	pin_type: PinType
	title: Optional[str] = None
	region: Optional[str] = None
	coordinates: Optional[Coordinates] = None
	priority: int = 0
	active: bool = True
	starts_at: Optional[datetime] = None
	ends_at: Optional[datetime] = None
	created_by: str
	created_at: datetime
	updated_at: datetime

	def is_live(self, now: datetime) -> bool:
		if not self.active:
			return False
		if self.starts_at is not None and self.starts_at > now:
			return False
		if self.ends_at is not None and self.ends_at < now:
			return False
		return True


class LiveVenue(ConnectModel):
	pin_id: str
	pin_type: PinType
	pin_title: Optional[str] = None
	region: Optional[str] = None
	coordinates: Optional[Coordinates] = None
	active_count: int


@dataclass(slots=True, frozen=True)
class PinSnapshot:
	title: Optional[str] = None
	region: Optional[str] = None
	coordinates: Optional[Coordinates] = None


@dataclass(slots=True, frozen=True)
class UserSnapshot:
	display_name: Optional[str] = None
	photo_url: Optional[str] = None


EMPTY_PIN = PinSnapshot()
EMPTY_USER = UserSnapshot()
