from __future__ import annotations

from datetime import timedelta

import pytest

from app.domain.connect import models
from app.domain.connect.models import ActivityType, PinType

USER = models.UserSnapshot(display_name="Ada", photo_url="https://cdn.example/ada.png")
PIN = models.PinSnapshot(
	title="Corner Cafe",
	region="downtown",
	coordinates=models.Coordinates(lat=45.5, lng=-73.57),
)


@pytest.mark.asyncio
async def test_first_checkin_creates_record_and_feed_row(connect_service, repo, pins, users, clock):
	pins.pins["pin1"] = PIN
	users.users["u1"] = USER

	checkin = await connect_service.checkins.upsert_checkin("u1", "pin1", PinType.PLACE)

	assert checkin.id == "u1_place_pin1"
	assert checkin.created_at == checkin.updated_at == clock.now
	assert checkin.expires_at == clock.now + timedelta(hours=4)
	assert checkin.pin_title == "Corner Cafe"
	assert checkin.region == "downtown"
	assert checkin.coordinates == PIN.coordinates
	assert checkin.user_name == "Ada"
	assert checkin.user_photo_url == USER.photo_url

	assert len(repo.activities) == 1
	row = repo.activities[0]
	assert row.type is ActivityType.CHECKIN
	assert row.ref_id == checkin.id
	assert row.expires_at == checkin.expires_at
	assert row.pin_id == "pin1"
	assert row.pin_type is PinType.PLACE


@pytest.mark.asyncio
async def test_repeat_checkin_refreshes_without_new_feed_row(connect_service, repo, clock):
	first = await connect_service.checkins.upsert_checkin("u1", "pin1", PinType.PLACE)
	clock.advance(minutes=90)
	second = await connect_service.checkins.upsert_checkin("u1", "pin1", PinType.PLACE)

	assert second.id == first.id
	assert len(repo.checkins) == 1
	assert second.expires_at == clock.now + timedelta(hours=4)
	assert second.expires_at > first.expires_at
	assert second.created_at == first.created_at
	assert second.updated_at == clock.now
	checkin_rows = [row for row in repo.activities if row.type is ActivityType.CHECKIN]
	assert len(checkin_rows) == 1


@pytest.mark.asyncio
async def test_repeat_checkin_refetches_denormalized_fields(connect_service, pins):
	await connect_service.checkins.upsert_checkin("u1", "pin1", PinType.PLACE)
	pins.pins["pin1"] = PIN

	refreshed = await connect_service.checkins.upsert_checkin("u1", "pin1", PinType.PLACE)

	assert refreshed.pin_title == "Corner Cafe"
	assert refreshed.region == "downtown"


@pytest.mark.asyncio
async def test_same_pin_id_with_other_type_is_a_separate_record(connect_service, repo):
	await connect_service.checkins.upsert_checkin("u1", "p", PinType.PLACE)
	await connect_service.checkins.upsert_checkin("u1", "p", PinType.EVENT)

	assert set(repo.checkins) == {"u1_place_p", "u1_event_p"}
	assert len(repo.activities) == 2


@pytest.mark.asyncio
async def test_lookup_failures_degrade_to_nulls(connect_service, pins, users):
	pins.fail = True
	users.fail = True

	checkin = await connect_service.checkins.upsert_checkin("u1", "pin1", PinType.ACTIVITY)

	assert checkin.pin_title is None
	assert checkin.region is None
	assert checkin.coordinates is None
	assert checkin.user_name is None
	assert checkin.user_photo_url is None


@pytest.mark.asyncio
async def test_activity_append_failure_keeps_checkin(connect_service, repo):
	repo.fail_activity_inserts = True

	checkin = await connect_service.checkins.upsert_checkin("u1", "pin1", PinType.PLACE)

	assert checkin.id in repo.checkins
	assert repo.activities == []


@pytest.mark.asyncio
async def test_lost_insert_race_refreshes_instead_of_duplicating(connect_service, repo, clock):
	original_get = repo.get_checkin

	async def _stale_get(checkin_id):
		# Simulate a concurrent creator landing between our read and insert.
		return None

	await connect_service.checkins.upsert_checkin("u1", "pin1", PinType.PLACE)
	clock.advance(minutes=5)
	repo.get_checkin = _stale_get
	try:
		again = await connect_service.checkins.upsert_checkin("u1", "pin1", PinType.PLACE)
	finally:
		repo.get_checkin = original_get

	assert again.expires_at == clock.now + timedelta(hours=4)
	assert len(repo.checkins) == 1
	assert len(repo.activities) == 1


@pytest.mark.asyncio
async def test_active_checkins_exclude_expired(connect_service, clock):
	await connect_service.checkins.upsert_checkin("u1", "old", PinType.PLACE)
	clock.advance(hours=3)
	await connect_service.checkins.upsert_checkin("u2", "fresh", PinType.PLACE)
	clock.advance(hours=1)

	active = await connect_service.get_active_checkins()

	assert [row.pin_id for row in active] == ["fresh"]


@pytest.mark.asyncio
async def test_checkin_is_inactive_exactly_at_expiry(connect_service, clock):
	await connect_service.checkins.upsert_checkin("u1", "pin1", PinType.PLACE)
	clock.advance(hours=4)

	assert await connect_service.get_active_checkins() == []


@pytest.mark.asyncio
async def test_active_checkins_filter_by_region_and_cap(connect_service, pins):
	pins.pins["a"] = models.PinSnapshot(region="north")
	pins.pins["b"] = models.PinSnapshot(region="south")
	await connect_service.checkins.upsert_checkin("u1", "a", PinType.PLACE)
	await connect_service.checkins.upsert_checkin("u2", "b", PinType.PLACE)
	await connect_service.checkins.upsert_checkin("u3", "a", PinType.PLACE)

	north = await connect_service.get_active_checkins("north")
	assert {row.user_id for row in north} == {"u1", "u3"}

	capped = await connect_service.get_active_checkins(limit=10_000)
	assert len(capped) == 3


def test_store_ttl_defaults_to_checkin_expiry(connect_service):
	assert connect_service.checkins.ttl == models.CHECKIN_TTL == timedelta(hours=4)
