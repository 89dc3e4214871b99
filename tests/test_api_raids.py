"""
REST API tests for the raid endpoints.
"""

from datetime import timedelta

import pytest

from conftest import T0


@pytest.mark.asyncio
async def test_index_and_health(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.text == "Welcome to codera1d"

    response = await client.get("/health")
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_create_and_list_raids(client):
    response = await client.post("/raids", json={"name": "vault", "skip_count": 3})
    assert response.status_code == 200
    assert response.json() == {
        "vault": {"remaining_code_count": 9_997, "tried_code_count": 3}
    }

    response = await client.get("/raids")
    assert response.status_code == 200
    assert response.json()["vault"]["tried_code_count"] == 3


@pytest.mark.asyncio
async def test_create_duplicate_raid_conflicts(client):
    await client.post("/raids", json={"name": "vault"})
    response = await client.post("/raids", json={"name": "vault", "skip_count": 10})

    assert response.status_code == 409
    assert "already exists" in response.json()["detail"]

    listing = (await client.get("/raids")).json()
    assert listing["vault"]["tried_code_count"] == 0


@pytest.mark.asyncio
async def test_create_rejects_negative_skip(client):
    response = await client.post("/raids", json={"name": "vault", "skip_count": -1})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_raid_is_idempotent(client):
    await client.post("/raids", json={"name": "vault"})

    for _ in range(2):
        response = await client.request("DELETE", "/raids", json={"name": "vault"})
        assert response.status_code == 200

    assert (await client.get("/raids")).json() == {}


@pytest.mark.asyncio
async def test_reserve_and_try_codes(client):
    await client.post("/raids", json={"name": "vault"})

    response = await client.post("/raids/vault/reserve_codes")
    assert response.status_code == 200
    reservation = response.json()
    assert sorted(reservation["codes"]) == sorted(["1234", "1111", "0000", "1212", "7777"])
    assert "expires_at" in reservation

    response = await client.post("/raids/vault/try_code", json={"code": reservation["codes"][0]})
    assert response.status_code == 200

    state = (await client.get("/raids/vault")).json()
    assert state["tried_codes"] == [reservation["codes"][0]]
    assert len(state["code_reservations"]) == 1
    assert len(state["remaining_codes"]) == 9_995

    summary = (await client.get("/raids")).json()["vault"]
    assert summary == {"remaining_code_count": 9_999, "tried_code_count": 1}


@pytest.mark.asyncio
async def test_unknown_raid_is_404(client):
    assert (await client.get("/raids/nope")).status_code == 404
    assert (await client.post("/raids/nope/reserve_codes")).status_code == 404
    response = await client.post("/raids/nope/try_code", json={"code": "1234"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Raid not found: nope"


@pytest.mark.asyncio
async def test_try_unknown_code_is_422(client):
    await client.post("/raids", json={"name": "vault"})
    response = await client.post("/raids/vault/try_code", json={"code": "12a4"})

    assert response.status_code == 422
    assert "Unknown code" in response.json()["detail"]


@pytest.mark.asyncio
async def test_listing_reclaims_expired_reservations(client, registry):
    await client.post("/raids", json={"name": "vault"})
    registry.reserve_codes("vault", now=T0 - timedelta(minutes=5))

    state = (await client.get("/raids/vault")).json()
    assert len(state["code_reservations"]) == 1

    await client.get("/raids")

    state = (await client.get("/raids/vault")).json()
    assert state["code_reservations"] == []
    assert len(state["remaining_codes"]) == 10_000


@pytest.mark.asyncio
async def test_persistence_failure_is_503(client, store):
    await client.post("/raids", json={"name": "vault"})
    store.fail_saves = True

    response = await client.post("/raids/vault/reserve_codes")
    assert response.status_code == 503

    response = await client.post("/raids", json={"name": "other"})
    assert response.status_code == 503

    store.fail_saves = False
    assert list((await client.get("/raids")).json()) == ["vault"]


@pytest.mark.asyncio
async def test_metrics_endpoint(client):
    await client.post("/raids", json={"name": "vault"})
    await client.post("/raids/vault/reserve_codes")

    snapshot = (await client.get("/metrics")).json()
    assert snapshot["counters"]["codes_reserved"] == 5
    assert snapshot["gauges"]["raids_active"] == 1
