"""Router tests: POST /quotes/{id}/documents."""

import pytest
from httpx import AsyncClient

from quotedocs.services.slug import generate_slug

QUOTE_BODY = {
    "owner_id": "user_001",
    "customer_name": "Ari Moss",
    "items": [{"type": "pruning", "description": "Crown thinning", "price": 35000}],
}


async def _create(client: AsyncClient) -> dict:
    resp = await client.post("/quotes", json=QUOTE_BODY)
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_document_cached_on_second_request(client: AsyncClient, renderer):
    quote = await _create(client)

    first = await client.post(f"/quotes/{quote['id']}/documents", json={"variant": "en"})
    second = await client.post(f"/quotes/{quote['id']}/documents", json={"variant": "en"})

    assert first.status_code == 200
    assert first.json()["cached"] is False
    assert second.json()["cached"] is True
    assert len(renderer.calls) == 1
    assert first.json()["quote_id"] == quote["id"]
    assert first.json()["ttl_seconds"] == 3600


@pytest.mark.asyncio
async def test_short_url_format(client: AsyncClient):
    quote = await _create(client)
    resp = await client.post(f"/quotes/{quote['id']}/documents", json={"variant": "es"})
    assert resp.json()["short_url"] == f"https://aquote.link/q/{generate_slug(quote['id'], 'es')}"


@pytest.mark.asyncio
async def test_edit_invalidates_cache(client: AsyncClient):
    quote = await _create(client)
    await client.post(f"/quotes/{quote['id']}/documents", json={})

    item = quote["items"][0]
    await client.patch(
        f"/quotes/{quote['id']}",
        json={"items": [{**{k: item[k] for k in ("item_id", "type", "description")}, "price": 36000}]},
    )
    resp = await client.post(f"/quotes/{quote['id']}/documents", json={})
    assert resp.json()["cached"] is False


@pytest.mark.asyncio
async def test_force_regenerate(client: AsyncClient, renderer):
    quote = await _create(client)
    await client.post(f"/quotes/{quote['id']}/documents", json={})
    resp = await client.post(
        f"/quotes/{quote['id']}/documents", json={"force_regenerate": True}
    )
    assert resp.json()["cached"] is False
    assert len(renderer.calls) == 2


@pytest.mark.asyncio
async def test_unknown_quote(client: AsyncClient):
    resp = await client.post("/quotes/missing/documents", json={})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_invalid_variant(client: AsyncClient):
    quote = await _create(client)
    resp = await client.post(f"/quotes/{quote['id']}/documents", json={"variant": "fr"})
    assert resp.status_code == 400
    assert "Invalid variant" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_wrong_owner(client: AsyncClient):
    quote = await _create(client)
    resp = await client.post(
        f"/quotes/{quote['id']}/documents", json={"owner_id": "someone_else"}
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_storage_write_failure(client: AsyncClient, document_backend, monkeypatch):
    quote = await _create(client)

    async def _save(key, data, content_type):
        raise RuntimeError("bucket unavailable")

    monkeypatch.setattr(document_backend, "save", _save)

    resp = await client.post(f"/quotes/{quote['id']}/documents", json={})
    assert resp.status_code == 502
    assert resp.json()["detail"] == "Failed to store document"
