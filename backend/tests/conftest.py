import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from app.api.connect import get_connect_service
from app.domain.connect import models
from app.domain.connect.lookups import DenormalizationLookup
from app.domain.connect.service import ConnectService
from app.infra import postgres
from app.main import app
from app.settings import settings


class FrozenClock:
	"""Controllable clock injected wherever the code asks for "now"."""

	def __init__(self, start: datetime | None = None) -> None:
		self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

	def __call__(self) -> datetime:
		return self.now

	def advance(self, **kwargs: float) -> datetime:
		self.now = self.now + timedelta(**kwargs)
		return self.now


class InMemoryConnectRepository:
	"""Dict-backed stand-in for ConnectRepository with the same contract."""

	def __init__(self) -> None:
		self.checkins: dict[str, models.CheckIn] = {}
		self.joins: dict[str, models.Join] = {}
		self.activities: list[models.UserActivity] = []
		self.curation: dict[str, models.ConnectCurationItem] = {}
		self.fail_activity_inserts = False
		self.deleted_before: list[datetime] = []

	@staticmethod
	def _patch(entity, changes: Mapping[str, Any]):
		if "id" in changes:
			raise ValueError("id is immutable")
		return entity.model_copy(update=dict(changes), deep=True)

	async def get_checkin(self, checkin_id: str) -> Optional[models.CheckIn]:
		found = self.checkins.get(checkin_id)
		return found.model_copy(deep=True) if found else None

	async def insert_checkin(self, checkin: models.CheckIn) -> Optional[models.CheckIn]:
		if checkin.id in self.checkins:
			return None
		self.checkins[checkin.id] = checkin.model_copy(deep=True)
		return checkin

	async def update_checkin(self, checkin_id: str, changes: Mapping[str, Any]) -> Optional[models.CheckIn]:
		if checkin_id not in self.checkins:
			return None
		self.checkins[checkin_id] = self._patch(self.checkins[checkin_id], changes)
		return self.checkins[checkin_id].model_copy(deep=True)

	async def list_active_checkins(self, *, now: datetime, region: Optional[str], limit: int) -> list[models.CheckIn]:
		rows = [
			row
			for row in self.checkins.values()
			if row.expires_at > now and (not region or row.region == region)
		]
		return [row.model_copy(deep=True) for row in rows[:limit]]

	async def delete_expired_checkins(self, *, before: datetime, batch: int) -> int:
		self.deleted_before.append(before)
		doomed = [key for key, row in self.checkins.items() if row.expires_at < before][:batch]
		for key in doomed:
			del self.checkins[key]
		return len(doomed)

	async def get_join(self, join_id: str) -> Optional[models.Join]:
		found = self.joins.get(join_id)
		return found.model_copy(deep=True) if found else None

	async def insert_join(self, join: models.Join) -> Optional[models.Join]:
		if join.id in self.joins:
			return None
		self.joins[join.id] = join.model_copy(deep=True)
		return join

	async def update_join(self, join_id: str, changes: Mapping[str, Any]) -> Optional[models.Join]:
		if join_id not in self.joins:
			return None
		self.joins[join_id] = self._patch(self.joins[join_id], changes)
		return self.joins[join_id].model_copy(deep=True)

	async def insert_activity(self, activity: models.UserActivity) -> models.UserActivity:
		if self.fail_activity_inserts:
			raise ConnectionError("activity store unavailable")
		self.activities.append(activity.model_copy(deep=True))
		return activity

	async def list_recent_activities(self, *, region: Optional[str], limit: int) -> list[models.UserActivity]:
		rows = [row for row in self.activities if not region or row.region == region]
		rows.sort(key=lambda row: row.created_at, reverse=True)
		return [row.model_copy(deep=True) for row in rows[:limit]]

	async def get_curation_by_pin(self, pin_id: str) -> Optional[models.ConnectCurationItem]:
		for item in self.curation.values():
			if item.pin_id == pin_id:
				return item.model_copy(deep=True)
		return None

	async def insert_curation(self, item: models.ConnectCurationItem) -> Optional[models.ConnectCurationItem]:
		if any(existing.pin_id == item.pin_id for existing in self.curation.values()):
			return None
		self.curation[item.id] = item.model_copy(deep=True)
		return item

	async def update_curation(self, item_id: str, changes: Mapping[str, Any]) -> Optional[models.ConnectCurationItem]:
		if item_id not in self.curation:
			return None
		self.curation[item_id] = self._patch(self.curation[item_id], changes)
		return self.curation[item_id].model_copy(deep=True)

	async def list_active_curation(self, *, limit: int) -> list[models.ConnectCurationItem]:
		rows = [item for item in self.curation.values() if item.active]
		rows.sort(key=lambda item: item.priority, reverse=True)
		return [row.model_copy(deep=True) for row in rows[:limit]]


class FakePinLookup:
	def __init__(self) -> None:
		self.pins: dict[str, models.PinSnapshot] = {}
		self.fail = False
		self.calls: list[str] = []

	async def lookup_pin(self, pin_id: str) -> Optional[models.PinSnapshot]:
		self.calls.append(pin_id)
		if self.fail:
			raise TimeoutError("catalog unavailable")
		return self.pins.get(pin_id)


class FakeUserLookup:
	def __init__(self) -> None:
		self.users: dict[str, models.UserSnapshot] = {}
		self.fail = False

	async def lookup_user(self, user_id: str) -> Optional[models.UserSnapshot]:
		if self.fail:
			raise TimeoutError("identity unavailable")
		return self.users.get(user_id)


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from app.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id/X-User-Roles headers, which are only
	accepted in dev mode.
	"""
	original_env = settings.environment
	original_strict = settings.curation_require_known_pin
	settings.environment = "dev"
	settings.curation_require_known_pin = False
	try:
		yield
	finally:
		settings.environment = original_env
		settings.curation_require_known_pin = original_strict


@pytest.fixture
def clock():
	return FrozenClock()


@pytest.fixture
def repo():
	return InMemoryConnectRepository()


@pytest.fixture
def pins():
	return FakePinLookup()


@pytest.fixture
def users():
	return FakeUserLookup()


@pytest.fixture
def lookups(pins, users):
	return DenormalizationLookup(pins=pins, users=users)


@pytest.fixture
def connect_service(repo, lookups, clock):
	return ConnectService(repo, lookups=lookups, clock=clock)


@pytest_asyncio.fixture
async def api_client(connect_service):
	app.dependency_overrides[get_connect_service] = lambda: connect_service
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		app.dependency_overrides.pop(get_connect_service, None)
