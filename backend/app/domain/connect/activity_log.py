"""Append-only activity feed with read-time expiry filtering."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

import ulid

from app.domain.connect import models
from app.domain.connect.repo import ConnectRepository
from app.infra.clock import Clock, now_utc
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)


class ActivityLog:
	"""Writes one row per state change and serves the "currently happening" feed."""

	def __init__(
		self,
		repository: ConnectRepository | None = None,
		*,
		clock: Clock = now_utc,
	) -> None:
		self.repo = repository or ConnectRepository()
		self.clock = clock

	async def append(
		self,
		activity_type: models.ActivityType,
		*,
		user_id: str,
		user: models.UserSnapshot,
		ref_id: str,
		created_at: datetime,
		pin_id: Optional[str] = None,
		pin_type: Optional[models.PinType] = None,
		pin: models.PinSnapshot = models.EMPTY_PIN,
		expires_at: Optional[datetime] = None,
	) -> Optional[models.UserActivity]:
		"""Append a feed row; failures are logged and swallowed.

		The primary check-in/join write has already happened, so a missing
		feed row is an accepted degradation.
		"""
		activity = models.UserActivity(
			id=str(ulid.new()),
			type=activity_type,
			user_id=user_id,
			user_name=user.display_name,
			user_photo_url=user.photo_url,
			pin_id=pin_id,
			pin_type=pin_type,
			pin_title=pin.title,
			region=pin.region,
			coordinates=pin.coordinates,
			ref_id=ref_id,
			expires_at=expires_at,
			created_at=created_at,
		)
		try:
			stored = await self.repo.insert_activity(activity)
		except Exception:
			logger.error(
				"activity append failed",
				extra={"activity_type": activity_type.value, "ref_id": ref_id},
				exc_info=True,
			)
			obs_metrics.inc_activity_append(activity_type.value, "error")
			return None
		obs_metrics.inc_activity_append(activity_type.value, "ok")
		return stored

	async def get_active_feed(
		self,
		region: Optional[str] = None,
		limit: Optional[int] = None,
	) -> list[models.UserActivity]:
		limit = limit or settings.feed_default_limit
		rows = await self.repo.list_recent_activities(
			region=region,
			limit=limit * settings.feed_overfetch_factor,
		)
		now = self.clock()
		kept: list[models.UserActivity] = []
		dropped = 0
		for row in rows:
			if row.is_expired(now):
				dropped += 1
				continue
			kept.append(row)
			if len(kept) >= limit:
				break
		obs_metrics.inc_feed_filtered(dropped)
		return kept
