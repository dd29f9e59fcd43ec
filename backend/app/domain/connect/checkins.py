"""Check-in store: presence records keyed by (user, pin) with an absolute expiry."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from app.domain.connect import models
from app.domain.connect.activity_log import ActivityLog
from app.domain.connect.keys import checkin_key
from app.domain.connect.lookups import DenormalizationLookup
from app.domain.connect.repo import ConnectRepository
from app.infra.clock import Clock, now_utc
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)


def _snapshot_fields(pin: models.PinSnapshot, user: models.UserSnapshot) -> dict[str, object]:
	return {
		"user_name": user.display_name,
		"user_photo_url": user.photo_url,
		"pin_title": pin.title,
		"region": pin.region,
		"coordinates": pin.coordinates,
	}


class CheckInStore:
	def __init__(
		self,
		repository: ConnectRepository | None = None,
		*,
		lookups: DenormalizationLookup | None = None,
		activity_log: ActivityLog | None = None,
		clock: Clock = now_utc,
		ttl: timedelta | None = None,
	) -> None:
		self.repo = repository or ConnectRepository()
		self.lookups = lookups or DenormalizationLookup()
		self.activity_log = activity_log or ActivityLog(self.repo, clock=clock)
		self.clock = clock
		self.ttl = ttl or models.CHECKIN_TTL

	async def upsert_checkin(
		self,
		user_id: str,
		pin_id: str,
		pin_type: models.PinType,
	) -> models.CheckIn:
		"""Create or refresh the user's presence at a pin.

		Only the first check-in for a (user, pin) is feed-worthy; repeats move
		``expires_at`` to ``now + ttl`` and re-fetch the denormalized fields.
		"""
		key = checkin_key(user_id, pin_type, pin_id)
		existing = await self.repo.get_checkin(key)
		pin = await self.lookups.pin(pin_id)
		user = await self.lookups.user(user_id)
		now = self.clock()
		expires_at = now + self.ttl

		if existing is not None:
			return await self._refresh(key, pin, user, now, expires_at)

		candidate = models.CheckIn(
			id=key,
			user_id=user_id,
			pin_id=pin_id,
			pin_type=pin_type,
			expires_at=expires_at,
			created_at=now,
			updated_at=now,
			**_snapshot_fields(pin, user),
		)
		created = await self.repo.insert_checkin(candidate)
		if created is None:
			# A concurrent first check-in won the insert.
			logger.info("check-in insert lost race, refreshing", extra={"checkin_id": key})
			return await self._refresh(key, pin, user, now, expires_at)

		obs_metrics.inc_checkin("created")
		await self.activity_log.append(
			models.ActivityType.CHECKIN,
			user_id=user_id,
			user=user,
			ref_id=key,
			created_at=now,
			pin_id=pin_id,
			pin_type=pin_type,
			pin=pin,
			expires_at=created.expires_at,
		)
		return created

	async def _refresh(
		self,
		key: str,
		pin: models.PinSnapshot,
		user: models.UserSnapshot,
		now: datetime,
		expires_at: datetime,
	) -> models.CheckIn:
		changes = {"expires_at": expires_at, "updated_at": now, **_snapshot_fields(pin, user)}
		updated = await self.repo.update_checkin(key, changes)
		if updated is None:
			raise RuntimeError(f"check-in {key} vanished during refresh")
		obs_metrics.inc_checkin("refreshed")
		return updated

	async def get_active_checkins(
		self,
		region: Optional[str] = None,
		limit: Optional[int] = None,
	) -> list[models.CheckIn]:
		"""Check-ins with ``expires_at > now``, capped to bound aggregation cost."""
		cap = settings.live_venues_scan_cap
		limit = min(limit or cap, cap)
		now = self.clock()
		rows = await self.repo.list_active_checkins(now=now, region=region, limit=limit)
		return [row for row in rows if row.is_active(now)]
