"""Join store: event participation as a two-state machine per (user, event)."""

from __future__ import annotations

import logging
from datetime import datetime

from app.domain.connect import models
from app.domain.connect.activity_log import ActivityLog
from app.domain.connect.keys import join_key
from app.domain.connect.lookups import DenormalizationLookup
from app.domain.connect.repo import ConnectRepository
from app.infra.clock import Clock, now_utc
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_ACTIVITY_FOR_STATUS = {
	models.JoinStatus.JOINED: models.ActivityType.JOIN,
	models.JoinStatus.LEFT: models.ActivityType.LEAVE,
}


class JoinStore:
	"""Owns join rows.

	Transitions: absent -> joined, absent -> left, joined <-> left. Leaving an
	event with no prior row creates it directly as ``left`` so that absence
	is never read as participation.
	"""

	def __init__(
		self,
		repository: ConnectRepository | None = None,
		*,
		lookups: DenormalizationLookup | None = None,
		activity_log: ActivityLog | None = None,
		clock: Clock = now_utc,
	) -> None:
		self.repo = repository or ConnectRepository()
		self.lookups = lookups or DenormalizationLookup()
		self.activity_log = activity_log or ActivityLog(self.repo, clock=clock)
		self.clock = clock

	async def set_joined(self, user_id: str, event_id: str) -> models.Join:
		return await self._transition(user_id, event_id, models.JoinStatus.JOINED)

	async def set_left(self, user_id: str, event_id: str) -> models.Join:
		return await self._transition(user_id, event_id, models.JoinStatus.LEFT)

	async def get_join(self, user_id: str, event_id: str) -> models.Join | None:
		return await self.repo.get_join(join_key(user_id, event_id))

	async def is_joined(self, user_id: str, event_id: str) -> bool:
		join = await self.get_join(user_id, event_id)
		return join is not None and join.status is models.JoinStatus.JOINED

	async def _transition(
		self,
		user_id: str,
		event_id: str,
		target: models.JoinStatus,
	) -> models.Join:
		action = target.value
		key = join_key(user_id, event_id)
		existing = await self.repo.get_join(key)
		pin = await self.lookups.pin(event_id)
		user = await self.lookups.user(user_id)
		now = self.clock()

		if existing is not None and existing.status is target:
			obs_metrics.inc_join_transition(action, "noop")
			return existing

		result: models.Join | None = None
		outcome = "transitioned"
		if existing is None:
			result = await self.repo.insert_join(
				models.Join(
					id=key,
					user_id=user_id,
					user_name=user.display_name,
					user_photo_url=user.photo_url,
					event_id=event_id,
					event_title=pin.title,
					region=pin.region,
					status=target,
					created_at=now,
					updated_at=now,
				)
			)
			outcome = "created"
			if result is None:
				# Lost the insert race; apply the transition to the winner's row.
				logger.info("join insert lost race", extra={"join_id": key, "action": action})
				existing = await self.repo.get_join(key)
				if existing is None:
					raise RuntimeError(f"join {key} missing after conflicting insert")
				if existing.status is target:
					obs_metrics.inc_join_transition(action, "noop")
					return existing
				outcome = "transitioned"

		if result is None:
			result = await self.repo.update_join(key, self._changes(target, pin, user, now))
			if result is None:
				raise RuntimeError(f"join {key} vanished during update")

		obs_metrics.inc_join_transition(action, outcome)
		await self._record(target, user_id, event_id, key, pin, user, now)
		return result

	@staticmethod
	def _changes(
		target: models.JoinStatus,
		pin: models.PinSnapshot,
		user: models.UserSnapshot,
		now: datetime,
	) -> dict[str, object]:
		changes: dict[str, object] = {"status": target, "updated_at": now}
		if target is models.JoinStatus.JOINED:
			# Re-joining refreshes the snapshot; leaving only flips the status.
			changes.update(
				user_name=user.display_name,
				user_photo_url=user.photo_url,
				event_title=pin.title,
				region=pin.region,
			)
		return changes

	async def _record(
		self,
		target: models.JoinStatus,
		user_id: str,
		event_id: str,
		key: str,
		pin: models.PinSnapshot,
		user: models.UserSnapshot,
		now: datetime,
	) -> None:
		await self.activity_log.append(
			_ACTIVITY_FOR_STATUS[target],
			user_id=user_id,
			user=user,
			ref_id=key,
			created_at=now,
			pin_id=event_id,
			pin_type=models.PinType.EVENT,
			pin=pin,
		)
