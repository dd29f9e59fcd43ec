import pytest

from app.infra.scheduler import JobScheduler


async def _noop() -> None:
	return None


@pytest.mark.asyncio
async def test_schedule_every_registers_single_job():
	scheduler = JobScheduler()
	scheduler.start()
	try:
		scheduler.schedule_every("connect-checkin-sweep", _noop, minutes=30)
		scheduler.schedule_every("connect-checkin-sweep", _noop, minutes=15)
		assert scheduler.job_ids() == ["connect-checkin-sweep"]
		assert scheduler.running
	finally:
		scheduler.shutdown()
	assert not scheduler.running
