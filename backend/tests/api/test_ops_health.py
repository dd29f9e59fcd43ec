import pytest

from app.settings import settings


@pytest.mark.asyncio
async def test_liveness(api_client):
	response = await api_client.get("/health/live")
	assert response.status_code == 200
	assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_degrades_without_postgres(api_client, monkeypatch):
	from app.infra import postgres

	async def _unavailable():
		raise ConnectionRefusedError("postgres down")

	monkeypatch.setattr(postgres, "get_pool", _unavailable)

	response = await api_client.get("/health/ready")

	assert response.status_code == 503
	checks = response.json()["checks"]
	assert checks["redis"]["ok"] is True
	assert checks["postgres"]["ok"] is False


@pytest.mark.asyncio
async def test_metrics_require_admin_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "ops-secret")

	denied = await api_client.get("/metrics")
	assert denied.status_code == 403

	allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "ops-secret"})
	assert allowed.status_code == 200
	assert "connect_http_requests_total" in allowed.text
