"""Resource-level API callers."""

from src.features.resources.alerts import acknowledge_alert, get_alert_by_id, get_alerts


__all__ = ["acknowledge_alert", "get_alert_by_id", "get_alerts"]
