"""Read-only denormalization lookups against the catalog and identity tables."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from app.domain.connect.exceptions import NotFoundError
from app.domain.connect.models import (
	EMPTY_PIN,
	EMPTY_USER,
	Coordinates,
	PinSnapshot,
	UserSnapshot,
)
from app.infra.postgres import get_pool
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class PinLookup(Protocol):
	async def lookup_pin(self, pin_id: str) -> Optional[PinSnapshot]: ...


class UserLookup(Protocol):
	async def lookup_user(self, user_id: str) -> Optional[UserSnapshot]: ...


class CatalogPinLookup:
	"""Reads title/region/coordinates from the catalog `listings` table."""

	async def lookup_pin(self, pin_id: str) -> Optional[PinSnapshot]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT title, region, lat, lng FROM listings WHERE id = $1",
				pin_id,
			)
		if record is None:
			return None
		coordinates = None
		if record["lat"] is not None and record["lng"] is not None:
			coordinates = Coordinates(lat=record["lat"], lng=record["lng"])
		return PinSnapshot(title=record["title"], region=record["region"], coordinates=coordinates)


class IdentityUserLookup:
	"""Reads display name and avatar from the identity `users` table."""

	async def lookup_user(self, user_id: str) -> Optional[UserSnapshot]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT display_name, photo_url FROM users WHERE id = $1",
				user_id,
			)
		if record is None:
			return None
		return UserSnapshot(display_name=record["display_name"], photo_url=record["photo_url"])


class DenormalizationLookup:
	"""Best-effort snapshot resolution.

	Lookup failures are logged and degrade to an empty snapshot so that a
	secondary read never blocks a check-in, join or curation write.
	"""

	def __init__(
		self,
		pins: PinLookup | None = None,
		users: UserLookup | None = None,
	) -> None:
		self.pins = pins or CatalogPinLookup()
		self.users = users or IdentityUserLookup()

	async def pin(self, pin_id: str, *, required: bool = False) -> PinSnapshot:
		"""Resolve a pin snapshot.

		With ``required=True`` a pin the catalog reports as absent raises
		NotFoundError; a failed lookup still degrades to an empty snapshot.
		"""
		try:
			snapshot = await self.pins.lookup_pin(pin_id)
		except Exception:
			logger.warning("pin lookup failed", extra={"pin_id": pin_id}, exc_info=True)
			obs_metrics.inc_lookup_failure("pin")
			return EMPTY_PIN
		if snapshot is None:
			if required:
				raise NotFoundError("pin_not_found")
			return EMPTY_PIN
		return snapshot

	async def user(self, user_id: str) -> UserSnapshot:
		try:
			snapshot = await self.users.lookup_user(user_id)
		except Exception:
			logger.warning("user lookup failed", extra={"target_user_id": user_id}, exc_info=True)
			obs_metrics.inc_lookup_failure("user")
			return EMPTY_USER
		return snapshot or EMPTY_USER
