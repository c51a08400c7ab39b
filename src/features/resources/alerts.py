"""Alert endpoints.

Thin callers: each supplies a target and payload and leaves request
lifecycle handling to the client.
"""

from typing import Any

from src.features.client.pipeline import ApiClient


ALERTS_PATH = "/alerts"


async def get_alerts(client: ApiClient) -> list[Any]:
    """Fetch all alerts."""
    data = await client.get(ALERTS_PATH)
    return list(data or [])


async def get_alert_by_id(client: ApiClient, alert_id: int) -> Any:
    """Fetch a single alert by its ID."""
    return await client.get(f"{ALERTS_PATH}/{alert_id}")


async def acknowledge_alert(client: ApiClient, alert_id: int) -> None:
    """Acknowledge an alert."""
    await client.post(f"{ALERTS_PATH}/acknowledge", json_body={"alertId": alert_id})
