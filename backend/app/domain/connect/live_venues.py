"""Live venue aggregation over active check-ins."""

from __future__ import annotations

from typing import Iterable, Optional

from app.domain.connect import models
from app.domain.connect.checkins import CheckInStore
from app.obs import metrics as obs_metrics
from app.settings import settings


def aggregate_live_venues(checkins: Iterable[models.CheckIn], limit: int) -> list[models.LiveVenue]:
	"""Group by pin, count, and return the top ``limit`` by count.

	The first check-in seen for a pin supplies its display fields. Ties keep
	input order (``sorted`` is stable); no secondary key is applied.
	"""
	venues: dict[str, models.LiveVenue] = {}
	for checkin in checkins:
		venue = venues.get(checkin.pin_id)
		if venue is None:
			venues[checkin.pin_id] = models.LiveVenue(
				pin_id=checkin.pin_id,
				pin_type=checkin.pin_type,
				pin_title=checkin.pin_title,
				region=checkin.region,
				coordinates=checkin.coordinates,
				active_count=1,
			)
		else:
			venue.active_count += 1
	ranked = sorted(venues.values(), key=lambda venue: venue.active_count, reverse=True)
	return ranked[:limit]


class LiveVenueAggregator:
	def __init__(self, checkins: CheckInStore | None = None) -> None:
		self.checkins = checkins or CheckInStore()

	async def get_live_venues(
		self,
		region: Optional[str] = None,
		limit: Optional[int] = None,
	) -> list[models.LiveVenue]:
		active = await self.checkins.get_active_checkins(region, settings.live_venues_scan_cap)
		obs_metrics.observe_live_venues_scan(len(active))
		return aggregate_live_venues(active, limit or settings.live_venues_default_limit)
