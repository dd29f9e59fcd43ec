"""Async repository helpers for Connect records."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Type, TypeVar

import asyncpg

from app.domain.connect import models
from app.infra.postgres import get_pool

_ModelT = TypeVar("_ModelT", bound=models.ConnectModel)

_CHECKIN_COLUMNS = (
	"id",
	"user_id",
	"user_name",
	"user_photo_url",
	"pin_id",
	"pin_type",
	"pin_title",
	"region",
	"lat",
	"lng",
	"expires_at",
	"created_at",
	"updated_at",
)
_JOIN_COLUMNS = (
	"id",
	"user_id",
	"user_name",
	"user_photo_url",
	"event_id",
	"event_title",
	"region",
	"status",
	"created_at",
	"updated_at",
)
_ACTIVITY_COLUMNS = (
	"id",
	"type",
	"user_id",
	"user_name",
	"user_photo_url",
	"pin_id",
	"pin_type",
	"pin_title",
	"region",
	"lat",
	"lng",
	"ref_id",
	"expires_at",
	"created_at",
)
_CURATION_COLUMNS = (
	"id",
	"pin_id",
	"pin_type",
	"title",
	"region",
	"lat",
	"lng",
	"priority",
	"active",
	"starts_at",
	"ends_at",
	"created_by",
	"created_at",
	"updated_at",
)


def _to_row(values: Mapping[str, Any]) -> dict[str, Any]:
	"""Flatten model values into column values (coordinates -> lat/lng, enums -> text)."""
	row: dict[str, Any] = {}
	for key, value in values.items():
		if key == "coordinates":
			if isinstance(value, models.Coordinates):
				value = value.model_dump()
			row["lat"] = value["lat"] if value else None
			row["lng"] = value["lng"] if value else None
		elif isinstance(value, Enum):
			row[key] = value.value
		else:
			row[key] = value
	return row


def _from_row(model: Type[_ModelT], record: asyncpg.Record | Mapping[str, Any]) -> _ModelT:
	data = dict(record)
	lat = data.pop("lat", None)
	lng = data.pop("lng", None)
	if lat is not None and lng is not None:
		data["coordinates"] = models.Coordinates(lat=lat, lng=lng)
	return model.model_validate(data)


def _insert_sql(table: str, columns: Sequence[str], conflict: str) -> str:
	placeholders = ", ".join(f"${idx}" for idx in range(1, len(columns) + 1))
	return (
		f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
		f"ON CONFLICT ({conflict}) DO NOTHING RETURNING *"
	)


class ConnectRepository:
	"""Thin data-access layer around asyncpg."""

	# --- Generic helpers ----------------------------------------------------

	async def _fetch_one(self, model: Type[_ModelT], query: str, *args: Any) -> _ModelT | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(query, *args)
		return _from_row(model, record) if record else None

	async def _fetch_many(self, model: Type[_ModelT], query: str, *args: Any) -> list[_ModelT]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(query, *args)
		return [_from_row(model, record) for record in records]

	async def _insert(
		self,
		model: Type[_ModelT],
		table: str,
		columns: Sequence[str],
		entity: models.ConnectModel,
		*,
		conflict: str = "id",
	) -> _ModelT | None:
		row = _to_row(entity.model_dump())
		args = [row.get(column) for column in columns]
		return await self._fetch_one(model, _insert_sql(table, columns, conflict), *args)

	async def _update(
		self,
		model: Type[_ModelT],
		table: str,
		columns: Sequence[str],
		entity_id: str,
		changes: Mapping[str, Any],
	) -> _ModelT | None:
		row = _to_row(changes)
		unknown = set(row) - set(columns) | ({"id"} & set(row))
		if unknown:
			raise ValueError(f"cannot update {table} columns: {sorted(unknown)}")
		if not row:
			return await self._fetch_one(model, f"SELECT * FROM {table} WHERE id = $1", entity_id)
		assignments = ", ".join(f"{column} = ${idx}" for idx, column in enumerate(row, start=2))
		query = f"UPDATE {table} SET {assignments} WHERE id = $1 RETURNING *"
		return await self._fetch_one(model, query, entity_id, *row.values())

	# --- Check-ins ----------------------------------------------------------

	async def get_checkin(self, checkin_id: str) -> models.CheckIn | None:
		return await self._fetch_one(models.CheckIn, "SELECT * FROM checkins WHERE id = $1", checkin_id)

	async def insert_checkin(self, checkin: models.CheckIn) -> models.CheckIn | None:
		"""Insert a new check-in; returns None if the key already exists."""
		return await self._insert(models.CheckIn, "checkins", _CHECKIN_COLUMNS, checkin)

	async def update_checkin(self, checkin_id: str, changes: Mapping[str, Any]) -> models.CheckIn | None:
		return await self._update(models.CheckIn, "checkins", _CHECKIN_COLUMNS, checkin_id, changes)

	async def list_active_checkins(
		self,
		*,
		now: datetime,
		region: Optional[str],
		limit: int,
	) -> list[models.CheckIn]:
		if region:
			return await self._fetch_many(
				models.CheckIn,
				"SELECT * FROM checkins WHERE expires_at > $1 AND region = $2 LIMIT $3",
				now,
				region,
				limit,
			)
		return await self._fetch_many(
			models.CheckIn,
			"SELECT * FROM checkins WHERE expires_at > $1 LIMIT $2",
			now,
			limit,
		)

	async def delete_expired_checkins(self, *, before: datetime, batch: int) -> int:
		query = """
		WITH doomed AS (
			SELECT id FROM checkins
			WHERE expires_at < $1
			LIMIT $2
		)
		DELETE FROM checkins c USING doomed d WHERE c.id = d.id
		RETURNING 1
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, before, batch)
		return len(rows)

	# --- Joins --------------------------------------------------------------

	async def get_join(self, join_id: str) -> models.Join | None:
		return await self._fetch_one(models.Join, "SELECT * FROM joins WHERE id = $1", join_id)

	async def insert_join(self, join: models.Join) -> models.Join | None:
		return await self._insert(models.Join, "joins", _JOIN_COLUMNS, join)

	async def update_join(self, join_id: str, changes: Mapping[str, Any]) -> models.Join | None:
		return await self._update(models.Join, "joins", _JOIN_COLUMNS, join_id, changes)

	# --- Activity feed ------------------------------------------------------

	async def insert_activity(self, activity: models.UserActivity) -> models.UserActivity:
		created = await self._insert(
			models.UserActivity, "user_activities", _ACTIVITY_COLUMNS, activity
		)
		return created or activity

	async def list_recent_activities(
		self,
		*,
		region: Optional[str],
		limit: int,
	) -> list[models.UserActivity]:
		if region:
			return await self._fetch_many(
				models.UserActivity,
				"SELECT * FROM user_activities WHERE region = $1 ORDER BY created_at DESC LIMIT $2",
				region,
				limit,
			)
		return await self._fetch_many(
			models.UserActivity,
			"SELECT * FROM user_activities ORDER BY created_at DESC LIMIT $1",
			limit,
		)

	# --- Curation -----------------------------------------------------------

	async def get_curation_by_pin(self, pin_id: str) -> models.ConnectCurationItem | None:
		return await self._fetch_one(
			models.ConnectCurationItem,
			"SELECT * FROM connect_curation WHERE pin_id = $1 LIMIT 1",
			pin_id,
		)

	async def insert_curation(self, item: models.ConnectCurationItem) -> models.ConnectCurationItem | None:
		"""Insert a curation item; returns None if the pin already has one."""
		return await self._insert(
			models.ConnectCurationItem,
			"connect_curation",
			_CURATION_COLUMNS,
			item,
			conflict="pin_id",
		)

	async def update_curation(
		self, item_id: str, changes: Mapping[str, Any]
	) -> models.ConnectCurationItem | None:
		return await self._update(
			models.ConnectCurationItem, "connect_curation", _CURATION_COLUMNS, item_id, changes
		)

	async def list_active_curation(self, *, limit: int) -> list[models.ConnectCurationItem]:
		return await self._fetch_many(
			models.ConnectCurationItem,
			"SELECT * FROM connect_curation WHERE active ORDER BY priority DESC LIMIT $1",
			limit,
		)
