"""Unit tests for the alert endpoints."""

import json

import httpx
import pytest

from src.features.client.errors import NotAuthorizedError
from src.features.resources import acknowledge_alert, get_alert_by_id, get_alerts
from tests.helpers.transport import bearer_of, make_client


class TestAlertCalls:
    """Tests for alert calls."""

    @pytest.mark.asyncio
    async def test_get_alerts(self) -> None:
        """Test listing alerts."""
        client, recorder, _ = make_client(
            lambda _: httpx.Response(200, json=[{"id": 1}, {"id": 2}])
        )

        alerts = await get_alerts(client)

        assert [alert["id"] for alert in alerts] == [1, 2]
        assert recorder.requests[0].url.path == "/api/v1/alerts"
        assert bearer_of(recorder.requests[0]) == "T1"

    @pytest.mark.asyncio
    async def test_get_alerts_empty(self) -> None:
        """Test that an empty response yields no alerts."""
        client, _, _ = make_client(lambda _: httpx.Response(204))

        assert await get_alerts(client) == []

    @pytest.mark.asyncio
    async def test_get_alert_by_id(self) -> None:
        """Test fetching one alert."""
        client, recorder, _ = make_client(lambda _: httpx.Response(200, json={"id": 7}))

        assert await get_alert_by_id(client, 7) == {"id": 7}
        assert recorder.requests[0].url.path == "/api/v1/alerts/7"

    @pytest.mark.asyncio
    async def test_acknowledge(self) -> None:
        """Test acknowledging an alert."""
        client, recorder, _ = make_client(lambda _: httpx.Response(204))

        await acknowledge_alert(client, 7)

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/v1/alerts/acknowledge"
        assert json.loads(request.content) == {"alertId": 7}

    @pytest.mark.asyncio
    async def test_forbidden_propagates(self) -> None:
        """Test that authorization failures surface to the caller."""
        client, _, store = make_client(lambda _: httpx.Response(403))

        with pytest.raises(NotAuthorizedError):
            await get_alerts(client)

        assert store.get() is None
