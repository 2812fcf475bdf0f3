"""
Recuerdos Backend — API Route Tests
====================================

What:  End-to-end HTTP behavior through the FastAPI app (ASGITransport),
       backed by the in-memory store.

What we test:
    ✅ Wire naming of request and response bodies
    ✅ Status codes: 201 create, 400 validation, 404 not found, 503 store down
    ✅ Error body shape {error, message, request_id}
    ✅ Search route not captured by /recuerdos/{id}
    ✅ Stats, calendar and health endpoints
"""

import json
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from recuerdos.exceptions import StoreUnavailableError

BODY = {
    "userId": "user-ana",
    "titulo": "Atardecer",
    "descripcion": "En la playa",
    "ubicacion": "Cádiz",
    "fecha": "2024-06-15",
    "imagen": "https://images.example.com/a.jpg",
    "latitud": 36.52,
    "longitud": -6.28,
}


def _timestamp(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


async def _create(client, **overrides):
    response = await client.post("/api/recuerdos", json={**BODY, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


class TestMemoryRoutes:

    @pytest.mark.asyncio
    async def test_create_returns_201_with_wire_names(self, test_client):
        response = await test_client.post("/api/recuerdos", json=BODY)

        assert response.status_code == 201
        data = response.json()
        assert data["titulo"] == "Atardecer"
        assert data["ubicacion"] == "Cádiz"
        assert data["fecha"] == "2024-06-15"
        assert data["userId"] == "user-ana"
        assert data["imagen"] == "https://images.example.com/a.jpg"
        assert "id" in data
        assert data["fechaCreacion"] == data["fechaActualizacion"]

    @pytest.mark.asyncio
    async def test_create_missing_titulo_is_400(self, test_client):
        body = {k: v for k, v in BODY.items() if k != "titulo"}
        response = await test_client.post("/api/recuerdos", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        assert "titulo" in data["message"]
        assert data["details"]["field"] == "titulo"
        assert "request_id" in data

    @pytest.mark.asyncio
    async def test_malformed_body_is_400(self, test_client):
        response = await test_client.post("/api/recuerdos", json={**BODY, "latitud": "north"})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_non_finite_coordinate_is_400(self, test_client):
        raw = json.dumps({**BODY, "longitud": 1.0}).replace("36.52", "NaN")
        response = await test_client.post(
            "/api/recuerdos", content=raw, headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        assert data["details"]["field"] == "latitud"

        listed = await test_client.get("/api/recuerdos", params={"userId": "user-ana"})
        assert listed.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_latitude_out_of_range_is_400(self, test_client):
        response = await test_client.post("/api/recuerdos", json={**BODY, "latitud": 91.0})
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "latitud"

    @pytest.mark.asyncio
    async def test_title_longer_than_column_is_400(self, test_client):
        response = await test_client.post("/api/recuerdos", json={**BODY, "titulo": "x" * 256})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        assert data["details"]["field"] == "titulo"

    @pytest.mark.asyncio
    async def test_empty_list(self, test_client):
        response = await test_client.get("/api/recuerdos", params={"userId": "nadie"})

        assert response.status_code == 200
        assert response.json() == {"recuerdos": [], "total": 0}
        assert response.headers["X-Total-Count"] == "0"

    @pytest.mark.asyncio
    async def test_list_requires_user_id(self, test_client):
        response = await test_client.get("/api/recuerdos")
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "userId"

    @pytest.mark.asyncio
    async def test_list_ordering(self, test_client):
        for day in ("2024-01-01", "2023-12-31", "2024-06-15"):
            await _create(test_client, fecha=day)

        response = await test_client.get("/api/recuerdos", params={"userId": "user-ana"})

        assert [m["fecha"] for m in response.json()["recuerdos"]] == [
            "2024-06-15", "2024-01-01", "2023-12-31",
        ]

    @pytest.mark.asyncio
    async def test_get_foreign_is_404(self, test_client):
        created = await _create(test_client)
        response = await test_client.get(
            f"/api/recuerdos/{created['id']}", params={"userId": "user-bruno"}
        )
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert "user-ana" not in response.text

    @pytest.mark.asyncio
    async def test_partial_update(self, test_client):
        created = await _create(test_client)

        response = await test_client.put(
            f"/api/recuerdos/{created['id']}",
            json={"userId": "user-ana", "titulo": "Nuevo"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["titulo"] == "Nuevo"
        assert data["ubicacion"] == "Cádiz"
        assert data["latitud"] == 36.52
        assert _timestamp(data["fechaActualizacion"]) > _timestamp(created["fechaActualizacion"])

    @pytest.mark.asyncio
    async def test_update_unknown_is_404(self, test_client):
        response = await test_client.put("/api/recuerdos/999", json={"userId": "user-ana", "titulo": "x"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_then_404(self, test_client):
        created = await _create(test_client)
        url = f"/api/recuerdos/{created['id']}"

        first = await test_client.delete(url, params={"userId": "user-ana"})
        assert first.status_code == 200
        assert first.json() == {"success": True}

        second = await test_client.delete(url, params={"userId": "user-ana"})
        assert second.status_code == 404

    @pytest.mark.asyncio
    async def test_search(self, test_client):
        await _create(test_client, titulo="Feria", ubicacion="Sevilla")
        await _create(test_client, titulo="Cena", ubicacion="feria bar")
        await _create(test_client, titulo="Playa", ubicacion="Huelva")

        response = await test_client.get(
            "/api/recuerdos/search", params={"userId": "user-ana", "q": "FERIA"}
        )

        assert response.status_code == 200
        assert sorted(m["titulo"] for m in response.json()) == ["Cena", "Feria"]


class TestInsightRoutes:

    @pytest.mark.asyncio
    async def test_stats(self, test_client):
        await _create(test_client, fecha="2024-06-15")
        response = await test_client.get("/api/stats/user-ana")

        assert response.status_code == 200
        data = response.json()
        assert data["totalRecuerdos"] == 1
        assert data["ubicacionesFavoritas"] == [{"ubicacion": "Cádiz", "cantidad": 1}]
        assert data["recuerdosPorMes"] == [{"mes": "2024-06", "cantidad": 1}]

    @pytest.mark.asyncio
    async def test_monthly_calendar(self, test_client):
        created = await _create(test_client, fecha="2024-06-15")
        response = await test_client.get("/api/calendar/user-ana", params={"year": 2024, "month": 6})

        assert response.status_code == 200
        assert response.json() == {
            "year": 2024,
            "month": 6,
            "dias": [{
                "dia": 15,
                "recuerdos": [{"id": created["id"], "titulo": "Atardecer", "ubicacion": "Cádiz"}],
            }],
        }

    @pytest.mark.asyncio
    async def test_monthly_calendar_invalid_month(self, test_client):
        response = await test_client.get("/api/calendar/user-ana", params={"year": 2024, "month": 0})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_yearly_calendar(self, test_client):
        await _create(test_client, fecha="2024-06-15")
        response = await test_client.get("/api/calendar/user-ana/year", params={"year": 2024})

        months = response.json()["meses"]
        assert len(months) == 12
        assert months[5]["nombreMes"] == "junio"
        assert months[5]["totalRecuerdos"] == 1
        assert months[5]["primerRecuerdo"]["fecha"] == "2024-06-15"


class TestHealthAndFailures:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["store"] == "memory"
        assert data["storeStatus"] == "available"

    @pytest.mark.asyncio
    async def test_unhealthy_store_is_503(self, test_client, store):
        store.health_check = AsyncMock(return_value=False)
        response = await test_client.get("/health")
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_store_unavailable_is_503_with_retry_after(self, test_client, store):
        store.list = AsyncMock(side_effect=StoreUnavailableError(retry_after=7))
        response = await test_client.get("/api/recuerdos", params={"userId": "user-ana"})

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "7"
        assert response.json()["error"] == "store_unavailable"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get(
            "/api/recuerdos", params={"userId": "x"}, headers={"X-Request-ID": "abc12345"}
        )
        assert response.headers["X-Request-ID"] == "abc12345"
