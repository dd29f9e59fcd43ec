import logging

import pytest
from prometheus_client import REGISTRY

from app.domain.connect import models
from app.domain.connect.exceptions import NotFoundError
from app.domain.connect.lookups import DenormalizationLookup


def _failures(kind: str) -> float:
	return REGISTRY.get_sample_value("connect_lookup_failures_total", {"kind": kind}) or 0.0


@pytest.mark.asyncio
async def test_known_pin_and_user_resolve(lookups, pins, users):
	pins.pins["p1"] = models.PinSnapshot(title="Park")
	users.users["u1"] = models.UserSnapshot(display_name="Ada")

	assert (await lookups.pin("p1")).title == "Park"
	assert (await lookups.user("u1")).display_name == "Ada"


@pytest.mark.asyncio
async def test_missing_records_resolve_to_empty_snapshots(lookups):
	assert await lookups.pin("nope") is models.EMPTY_PIN
	assert await lookups.user("nope") is models.EMPTY_USER


@pytest.mark.asyncio
async def test_failures_are_logged_counted_and_degraded(lookups, pins, users, caplog):
	pins.fail = True
	users.fail = True
	before_pin = _failures("pin")
	before_user = _failures("user")

	with caplog.at_level(logging.WARNING, logger="app.domain.connect.lookups"):
		assert await lookups.pin("p1", required=True) is models.EMPTY_PIN
		assert await lookups.user("u1") is models.EMPTY_USER

	assert _failures("pin") == before_pin + 1
	assert _failures("user") == before_user + 1
	assert any("pin lookup failed" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_required_pin_absent_raises_not_found(pins, users):
	lookups = DenormalizationLookup(pins=pins, users=users)

	with pytest.raises(NotFoundError):
		await lookups.pin("ghost", required=True)
