from cafe_erp.core.config import settings


async def test_health_reports_app_and_costing_method(client):
    resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "app": settings.app_name,
        "env": settings.app_env,
        "version": "1.0.0",
        "costingMethod": settings.costing_method,
    }
