"""Storage hygiene: delete check-ins long past their expiry.

Reads already exclude expired check-ins; this only bounds table growth.
Feed rows, joins and curation are never touched.
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta

from app.domain.connect.repo import ConnectRepository
from app.infra.clock import Clock, now_utc
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)

JOB_NAME = "connect_checkin_sweep"
# Bound a single run so one tick never monopolises the pool
MAX_BATCHES_PER_RUN = 50


async def sweep_expired_checkins(
	repository: ConnectRepository | None = None,
	*,
	clock: Clock = now_utc,
	grace_hours: int | None = None,
	batch: int | None = None,
) -> int:
	repo = repository or ConnectRepository()
	grace = timedelta(hours=settings.checkin_sweep_grace_hours if grace_hours is None else grace_hours)
	batch_size = max(1, batch or settings.checkin_sweep_batch)
	cutoff = clock() - grace
	start = time.perf_counter()
	total = 0
	try:
		for _ in range(MAX_BATCHES_PER_RUN):
			deleted = await repo.delete_expired_checkins(before=cutoff, batch=batch_size)
			total += deleted
			if deleted < batch_size:
				break
	except Exception:
		obs_metrics.record_job_run(JOB_NAME, result="error")
		logger.exception("check-in sweep failed", extra={"deleted": total})
		raise
	obs_metrics.inc_checkin_sweep(total)
	obs_metrics.record_job_run(JOB_NAME, result="ok", duration_seconds=time.perf_counter() - start)
	if total:
		logger.info("check-in sweep removed %s expired rows", total)
	return total
