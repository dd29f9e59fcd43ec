"""Caller-facing Connect operations: access checks, rate limits, then the stores."""

from __future__ import annotations

import logging
from typing import Optional

from app.domain.connect import models, policy
from app.domain.connect.activity_log import ActivityLog
from app.domain.connect.checkins import CheckInStore
from app.domain.connect.curation import CurationStore
from app.domain.connect.exceptions import RateLimitedError
from app.domain.connect.joins import JoinStore
from app.domain.connect.live_venues import LiveVenueAggregator
from app.domain.connect.lookups import DenormalizationLookup
from app.domain.connect.repo import ConnectRepository
from app.domain.connect.schemas import ParticipationResponse, UpsertCurationRequest
from app.infra import rate_limit
from app.infra.auth import AuthenticatedUser
from app.infra.clock import Clock, now_utc
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)


def _write_budget(kind: str) -> int:
	budgets = {
		"checkin": settings.connect_checkin_rate_limit,
		"join": settings.connect_join_rate_limit,
		"leave": settings.connect_leave_rate_limit,
	}
	limit = budgets[kind]
	return limit * 10 if settings.is_dev() else limit


class ConnectService:
	def __init__(
		self,
		repository: ConnectRepository | None = None,
		*,
		lookups: DenormalizationLookup | None = None,
		clock: Clock = now_utc,
	) -> None:
		self.repo = repository or ConnectRepository()
		self.lookups = lookups or DenormalizationLookup()
		self.clock = clock
		self.activity_log = ActivityLog(self.repo, clock=clock)
		self.checkins = CheckInStore(
			self.repo, lookups=self.lookups, activity_log=self.activity_log, clock=clock
		)
		self.joins = JoinStore(
			self.repo, lookups=self.lookups, activity_log=self.activity_log, clock=clock
		)
		self.live_venues = LiveVenueAggregator(self.checkins)
		self.curation = CurationStore(self.repo, lookups=self.lookups, clock=clock)

	async def _enforce_rate_limit(self, kind: str, user: AuthenticatedUser) -> None:
		if not await rate_limit.allow(f"connect:{kind}", user.id, limit=_write_budget(kind)):
			obs_metrics.inc_rate_limit_reject(kind)
			logger.info("connect write rate limited", extra={"kind": kind})
			raise RateLimitedError()

	# --- Writes -------------------------------------------------------------

	async def check_in(
		self,
		user: AuthenticatedUser,
		pin_id: str,
		pin_type: models.PinType,
	) -> models.CheckIn:
		await self._enforce_rate_limit("checkin", user)
		return await self.checkins.upsert_checkin(user.id, pin_id, pin_type)

	async def join_event(self, user: AuthenticatedUser, event_id: str) -> models.Join:
		await self._enforce_rate_limit("join", user)
		return await self.joins.set_joined(user.id, event_id)

	async def leave_event(self, user: AuthenticatedUser, event_id: str) -> models.Join:
		await self._enforce_rate_limit("leave", user)
		return await self.joins.set_left(user.id, event_id)

	async def upsert_curation_item(
		self,
		admin: AuthenticatedUser,
		payload: UpsertCurationRequest,
	) -> models.ConnectCurationItem:
		policy.ensure_admin(admin)
		return await self.curation.upsert_by_pin_id(payload, admin.id)

	# --- Reads --------------------------------------------------------------

	async def get_participation(
		self,
		viewer: AuthenticatedUser,
		user_id: str,
		event_id: str,
	) -> ParticipationResponse:
		policy.ensure_owner_or_admin(viewer, user_id)
		join = await self.joins.get_join(user_id, event_id)
		return ParticipationResponse(
			event_id=event_id,
			user_id=user_id,
			joined=join is not None and join.status is models.JoinStatus.JOINED,
			status=join.status if join is not None else None,
		)

	async def get_active_checkins(
		self,
		region: Optional[str] = None,
		limit: Optional[int] = None,
	) -> list[models.CheckIn]:
		return await self.checkins.get_active_checkins(region, limit)

	async def get_active_feed(
		self,
		region: Optional[str] = None,
		limit: Optional[int] = None,
	) -> list[models.UserActivity]:
		return await self.activity_log.get_active_feed(region, limit)

	async def get_live_venues(
		self,
		region: Optional[str] = None,
		limit: Optional[int] = None,
	) -> list[models.LiveVenue]:
		return await self.live_venues.get_live_venues(region, limit)

	async def get_curation_items(self) -> list[models.ConnectCurationItem]:
		return await self.curation.get_active_items()
