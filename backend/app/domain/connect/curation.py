"""Admin-curated highlight items, upserted by pin id."""

from __future__ import annotations

import logging

import ulid

from app.domain.connect import models
from app.domain.connect.exceptions import InvalidInputError
from app.domain.connect.lookups import DenormalizationLookup
from app.domain.connect.repo import ConnectRepository
from app.domain.connect.schemas import UpsertCurationRequest
from app.infra.clock import Clock, now_utc
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)


def _pin_fields(pin: models.PinSnapshot) -> dict[str, object]:
	return {"title": pin.title, "region": pin.region, "coordinates": pin.coordinates}


class CurationStore:
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

	async def upsert_by_pin_id(
		self,
		payload: UpsertCurationRequest,
		admin_id: str,
	) -> models.ConnectCurationItem:
		"""Patch the item for ``payload.pin_id`` or create it.

		Patching touches only the supplied optional fields, plus the catalog
		snapshot when the catalog knows the pin. ``pin_type`` and ``created_by``
		are fixed at creation.
		"""
		existing = await self.repo.get_curation_by_pin(payload.pin_id)
		pin = await self.lookups.pin(payload.pin_id, required=settings.curation_require_known_pin)
		now = self.clock()

		if existing is None:
			item = models.ConnectCurationItem(
				id=str(ulid.new()),
				pin_id=payload.pin_id,
				pin_type=payload.pin_type,
				priority=payload.priority if payload.priority is not None else 0,
				active=payload.active if payload.active is not None else True,
				starts_at=payload.starts_at,
				ends_at=payload.ends_at,
				created_by=admin_id,
				created_at=now,
				updated_at=now,
				**_pin_fields(pin),
			)
			created = await self.repo.insert_curation(item)
			if created is not None:
				obs_metrics.inc_curation_upsert("created")
				logger.info(
					"curation item created",
					extra={"pin_id": payload.pin_id, "admin_id": admin_id},
				)
				return created
			existing = await self.repo.get_curation_by_pin(payload.pin_id)
			if existing is None:
				raise RuntimeError(f"curation item for pin {payload.pin_id} missing after conflict")

		changes: dict[str, object] = {**payload.patch_fields(), "updated_at": now}
		if pin is not models.EMPTY_PIN:
			changes.update(_pin_fields(pin))
		starts_at = changes.get("starts_at", existing.starts_at)
		ends_at = changes.get("ends_at", existing.ends_at)
		if starts_at is not None and ends_at is not None and ends_at < starts_at:  # type: ignore[operator]
			raise InvalidInputError("ends_at_before_starts_at")
		updated = await self.repo.update_curation(existing.id, changes)
		if updated is None:
			raise RuntimeError(f"curation item {existing.id} vanished during update")
		obs_metrics.inc_curation_upsert("updated")
		logger.info("curation item updated", extra={"pin_id": payload.pin_id, "admin_id": admin_id})
		return updated

	async def get_active_items(self) -> list[models.ConnectCurationItem]:
		"""Active items by priority desc, then dropped if outside their time window.

		The window filter runs after the capped query, so items beyond the cap
		are never considered even if they are in-window.
		"""
		rows = await self.repo.list_active_curation(limit=settings.curation_scan_cap)
		now = self.clock()
		return [item for item in rows if item.is_live(now)]
