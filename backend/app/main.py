"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import connect, ops
from app.api.errors import install_error_handlers
from app.infra import postgres
from app.infra.scheduler import JobScheduler
from app.maintenance.checkin_sweep import sweep_expired_checkins
from app.obs import init as obs_init
from app.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	scheduler: JobScheduler | None = None
	if settings.checkin_sweep_enabled:
		scheduler = JobScheduler()
		scheduler.start()
		scheduler.schedule_every(
			"connect-checkin-sweep",
			sweep_expired_checkins,
			minutes=settings.checkin_sweep_interval_minutes,
		)
	app.state.scheduler = scheduler
	try:
		yield
	finally:
		if scheduler is not None:
			scheduler.shutdown()
		await postgres.close_pool()


app = FastAPI(title="Connect API", lifespan=lifespan)
install_error_handlers(app)
obs_init(app)

app.add_middleware(
	CORSMiddleware,
	allow_origins=["http://localhost:3000"] if settings.is_dev() else [],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

app.include_router(ops.router)
app.include_router(connect.router)
