"""
API tests for the custom reports module.
Covers entity discovery, ad-hoc runs, saved definitions and the result cache endpoints.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from opsdesk.app import create_app
from opsdesk.core.database import get_db


def _build_app(data_engine, result_cache, config_db_session):
    app = create_app(data_engine=data_engine, report_cache=result_cache)

    def override_get_db():
        yield config_db_session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest_asyncio.fixture
async def client(seeded_engine, result_cache, config_db_session):
    app = _build_app(seeded_engine, result_cache, config_db_session)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestEntityEndpoints:
    """Entity discovery"""

    async def test_list_entities(self, client: AsyncClient):
        response = await client.get("/api/custom-reports/entities")
        assert response.status_code == 200

        entities = response.json()
        assert [e["key"] for e in entities] == ["orders", "clients", "products", "inventory"]
        orders = entities[0]
        assert orders["columns"]["client_name"]["is_virtual"] is True
        assert orders["columns"]["total"]["type"] == "number"
        assert orders["related_lookups"]["clients"] == {"foreign_key": "client_id", "selected_field": "name"}

    async def test_get_entity(self, client: AsyncClient):
        response = await client.get("/api/custom-reports/entities/inventory")
        assert response.status_code == 200
        assert response.json()["storage_location"] == "inventory"

    async def test_get_unknown_entity(self, client: AsyncClient):
        response = await client.get("/api/custom-reports/entities/payroll")
        assert response.status_code == 404


class TestRunEndpoint:
    """Ad-hoc report execution"""

    async def test_run_filtered_report(self, client: AsyncClient):
        response = await client.post("/api/custom-reports/run", json={
            "entity": "orders",
            "columns": ["id", "client_name", "total"],
            "filters": {"status": "pending", "total": {"op": "gte", "val": 500}},
            "order_by": "id",
        })
        assert response.status_code == 200

        result = response.json()
        assert result["total_count"] == 3
        assert result["rows"][0] == {"id": 1, "total": 750.0, "client_name": "Acme Hardware"}
        assert result["has_more"] is False
        assert result["limit"] == 1000

    async def test_run_summary_only(self, client: AsyncClient):
        response = await client.post("/api/custom-reports/run", json={
            "entity": "clients",
            "filters": {"customer_type": "retail"},
            "summary_only": True,
        })
        assert response.status_code == 200
        assert response.json()["rows"] == []
        assert response.json()["total_count"] == 2

    async def test_run_unknown_entity_is_rejected(self, client: AsyncClient):
        response = await client.post("/api/custom-reports/run", json={"entity": "payroll"})
        assert response.status_code == 400
        assert "payroll" in response.json()["detail"]

    async def test_run_without_entity_is_invalid(self, client: AsyncClient):
        response = await client.post("/api/custom-reports/run", json={"columns": ["id"]})
        assert response.status_code == 422

    async def test_data_store_failure_returns_500(self, result_cache, config_db_session):
        # Business tables were never created on this engine
        empty_engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        app = _build_app(empty_engine, result_cache, config_db_session)
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        try:
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.post("/api/custom-reports/run", json={"entity": "orders"})
        finally:
            await empty_engine.dispose()

        assert response.status_code == 500
        assert result_cache.stats() == {"entries": 0, "in_flight": 0}


class TestDefinitionEndpoints:
    """Saved report definitions"""

    async def test_definition_lifecycle(self, client: AsyncClient):
        response = await client.post("/api/custom-reports/definitions", json={
            "name": "Big Spenders",
            "entity": "clients",
            "columns": ["id", "name"],
            "filters": {},
            "limit": 50,
        })
        assert response.status_code == 200
        saved = response.json()
        assert saved["id"]
        assert saved["saved_at"]

        response = await client.get("/api/custom-reports/definitions")
        assert [d["name"] for d in response.json()] == ["Big Spenders"]

        response = await client.get(f"/api/custom-reports/definitions/{saved['id']}")
        assert response.status_code == 200
        assert response.json()["columns"] == ["id", "name"]

        response = await client.delete(f"/api/custom-reports/definitions/{saved['id']}")
        assert response.status_code == 200

        response = await client.get("/api/custom-reports/definitions")
        assert response.json() == []

    async def test_save_with_blank_name_is_invalid(self, client: AsyncClient):
        response = await client.post("/api/custom-reports/definitions", json={"name": "  ", "entity": "orders"})
        assert response.status_code == 422

    async def test_run_saved_definition(self, client: AsyncClient):
        saved = (await client.post("/api/custom-reports/definitions", json={
            "name": "Pending orders",
            "entity": "orders",
            "columns": ["id", "status"],
            "filters": {"status": "pending"},
            "limit": 2,
        })).json()

        response = await client.post(
            f"/api/custom-reports/definitions/{saved['id']}/run", json={"order_by": "id", "offset": 2}
        )
        assert response.status_code == 200
        result = response.json()
        assert [row["id"] for row in result["rows"]] == [4, 6]
        assert result["offset"] == 2
        assert result["has_more"] is False

    async def test_run_saved_definition_without_options(self, client: AsyncClient):
        saved = (await client.post("/api/custom-reports/definitions", json={
            "name": "All products", "entity": "products",
        })).json()

        response = await client.post(f"/api/custom-reports/definitions/{saved['id']}/run")
        assert response.status_code == 200
        assert response.json()["total_count"] == 3

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/custom-reports/definitions/missing"),
        ("delete", "/api/custom-reports/definitions/missing"),
        ("post", "/api/custom-reports/definitions/missing/run"),
    ])
    async def test_unknown_definition(self, client: AsyncClient, method, path):
        response = await getattr(client, method)(path)
        assert response.status_code == 404


class TestCacheEndpoints:
    """Result cache inspection and invalidation"""

    async def test_cache_status_and_clear(self, client: AsyncClient):
        await client.post("/api/custom-reports/run", json={"entity": "orders"})
        await client.post("/api/custom-reports/run", json={"entity": "orders"})

        response = await client.get("/api/custom-reports/cache")
        assert response.status_code == 200
        assert response.json() == {"entries": 1, "in_flight": 0, "ttl_seconds": 120.0}

        response = await client.delete("/api/custom-reports/cache")
        assert response.status_code == 200

        response = await client.get("/api/custom-reports/cache")
        assert response.json()["entries"] == 0
