"""Shared fixtures for web tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from route_pacer.route.geometry import haversine_m
from route_pacer.web.app import app, get_service
from route_pacer.web.service import PlannerService

M_PER_DEG = haversine_m(0.0, 0.0, 0.0, 1.0)


@pytest.fixture
def service():
    """Fresh in-memory planner session, frozen at t=0 unless a timestamp is given."""
    return PlannerService(time_source=lambda: 0.0)


@pytest.fixture
def client(service):
    """FastAPI test client bound to *service*."""
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_route_body(total_m: float = 10_000.0, n: int = 11, with_samples: bool = True) -> dict:
    """PUT /api/route body: a straight equatorial route with a sample per vertex."""
    step = total_m / (n - 1)
    points = [{"lat": 0.0, "lon": i * step / M_PER_DEG} for i in range(n)]
    body: dict = {"points": points, "distances_m": [i * step for i in range(n)]}
    if with_samples:
        body["samples"] = [
            {"lat": p["lat"], "lon": p["lon"], "elevation_m": 100.0 + 10.0 * (i % 2)}
            for i, p in enumerate(points)
        ]
    return body


@pytest.fixture
def route_client(client):
    """Client with the default ten-kilometre route already loaded."""
    resp = client.put("/api/route", json=make_route_body())
    assert resp.status_code == 200
    return client
