from datetime import timedelta

import pytest

from app.domain.connect.models import PinType
from app.maintenance.checkin_sweep import sweep_expired_checkins


@pytest.mark.asyncio
async def test_sweep_removes_only_rows_past_grace(connect_service, repo, clock):
	await connect_service.checkins.upsert_checkin("u1", "old", PinType.PLACE)
	clock.advance(hours=30)
	await connect_service.checkins.upsert_checkin("u2", "recent", PinType.PLACE)
	clock.advance(hours=5)
	# "old" expired 31h ago, "recent" 1h ago

	deleted = await sweep_expired_checkins(repo, clock=clock, grace_hours=24)

	assert deleted == 1
	assert list(repo.checkins) == ["u2_place_recent"]
	assert repo.deleted_before == [clock.now - timedelta(hours=24)]
	# feed rows are untouched
	assert len(repo.activities) == 2


@pytest.mark.asyncio
async def test_sweep_drains_in_batches(connect_service, repo, clock):
	for idx in range(5):
		await connect_service.checkins.upsert_checkin(f"u{idx}", "p", PinType.PLACE)
	clock.advance(days=3)

	deleted = await sweep_expired_checkins(repo, clock=clock, grace_hours=1, batch=2)

	assert deleted == 5
	assert repo.checkins == {}
	assert len(repo.deleted_before) == 3
