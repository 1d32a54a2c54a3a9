"""Tests for the liveness endpoint."""

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient


async def test_liveness(test_app: FastAPI) -> None:
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
