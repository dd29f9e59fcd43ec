"""REST API surface for Connect (check-ins, participation, feed, venues, curation)."""

from __future__ import annotations

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Path, Query

from app.domain.connect.models import CheckIn, ConnectCurationItem, Join, LiveVenue, UserActivity
from app.domain.connect.schemas import (
	MAX_ID_LENGTH,
	MAX_PAGE_LIMIT,
	CheckInRequest,
	ParticipationResponse,
	UpsertCurationRequest,
)
from app.domain.connect.service import ConnectService
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/connect", tags=["connect"])

_service: ConnectService | None = None


def get_connect_service() -> ConnectService:
	global _service
	if _service is None:
		_service = ConnectService()
	return _service


EventId = Annotated[str, Path(min_length=1, max_length=MAX_ID_LENGTH)]
UserId = Annotated[str, Path(min_length=1, max_length=MAX_ID_LENGTH)]
Region = Annotated[Optional[str], Query(max_length=MAX_ID_LENGTH)]
Limit = Annotated[Optional[int], Query(ge=1, le=MAX_PAGE_LIMIT)]


@router.post("/checkins", response_model=CheckIn)
async def check_in(
	payload: CheckInRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ConnectService = Depends(get_connect_service),
) -> CheckIn:
	return await service.check_in(auth_user, payload.pin_id, payload.pin_type)


@router.post("/events/{event_id}/join", response_model=Join)
async def join_event(
	event_id: EventId,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ConnectService = Depends(get_connect_service),
) -> Join:
	return await service.join_event(auth_user, event_id)


@router.post("/events/{event_id}/leave", response_model=Join)
async def leave_event(
	event_id: EventId,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ConnectService = Depends(get_connect_service),
) -> Join:
	return await service.leave_event(auth_user, event_id)


@router.get("/events/{event_id}/participation", response_model=ParticipationResponse)
async def my_participation(
	event_id: EventId,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ConnectService = Depends(get_connect_service),
) -> ParticipationResponse:
	return await service.get_participation(auth_user, auth_user.id, event_id)


@router.get("/users/{user_id}/events/{event_id}/participation", response_model=ParticipationResponse)
async def user_participation(
	user_id: UserId,
	event_id: EventId,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ConnectService = Depends(get_connect_service),
) -> ParticipationResponse:
	return await service.get_participation(auth_user, user_id, event_id)


@router.get("/feed", response_model=List[UserActivity])
async def active_feed(
	region: Region = None,
	limit: Limit = None,
	_: AuthenticatedUser = Depends(get_current_user),
	service: ConnectService = Depends(get_connect_service),
) -> List[UserActivity]:
	return await service.get_active_feed(region, limit)


@router.get("/live-venues", response_model=List[LiveVenue])
async def live_venues(
	region: Region = None,
	limit: Limit = None,
	_: AuthenticatedUser = Depends(get_current_user),
	service: ConnectService = Depends(get_connect_service),
) -> List[LiveVenue]:
	return await service.get_live_venues(region, limit)


@router.get("/curation", response_model=List[ConnectCurationItem])
async def curation_items(
	_: AuthenticatedUser = Depends(get_current_user),
	service: ConnectService = Depends(get_connect_service),
) -> List[ConnectCurationItem]:
	return await service.get_curation_items()


@router.put("/curation", response_model=ConnectCurationItem)
async def upsert_curation_item(
	payload: UpsertCurationRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ConnectService = Depends(get_connect_service),
) -> ConnectCurationItem:
	return await service.upsert_curation_item(auth_user, payload)
