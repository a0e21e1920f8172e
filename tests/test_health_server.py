"""
Tests for the aiohttp status server.
"""

import pytest
from aiohttp import test_utils

from monitoring.evaluator import HealthEvaluator
from monitoring.health_server import HealthServer

from conftest import lost


@pytest.fixture
def evaluator(thresholds):
    return HealthEvaluator(thresholds)


class TestHealthServer:

    @pytest.mark.asyncio
    async def test_liveness_routes(self, evaluator):
        server = HealthServer(evaluator)

        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            root = await client.get("/")
            ping = await client.get("/ping")

            assert root.status == 200
            assert await root.text() == "OK"
            assert await ping.text() == "pong"

    @pytest.mark.asyncio
    async def test_health_reports_metadata(self, evaluator):
        server = HealthServer(evaluator, app_name="Edge Monitor", app_version="2.0.0")

        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.get("/health")
            body = await response.json()

        assert body["status"] == "healthy"
        assert body["app_name"] == "Edge Monitor"
        assert body["app_version"] == "2.0.0"
        assert "scheduler" not in body

    @pytest.mark.asyncio
    async def test_status_lists_target_states(self, evaluator, target):
        await evaluator.evaluate(target, lost(target))
        server = HealthServer(evaluator)

        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.get("/status")
            body = await response.json()

        entry = body["targets"][target.name]
        assert entry["state"] == "down"
        assert entry["host"] == target.host
        assert entry["loss_percent"] == 100.0
