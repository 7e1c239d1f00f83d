"""
Typed wrapper around the `/alerts` endpoints and display helpers for the Alerts page.

Alerts are generated on the server from the user's logs (weight gain, missed
sessions, out-of-range vitals and so on). The client can only read them and change
their status.
"""
# dialysislive/alerts.py

import logging

from dialysislive.models import Alert

logger = logging.getLogger(__name__)

ALERT_CATEGORIES = ("weight", "fluid", "vitals", "symptoms", "session")
ALERT_STATUSES = ("active", "acknowledged", "dismissed", "resolved")

# Most urgent first.
SEVERITY_ORDER = ("critical", "high", "medium", "low")

SEVERITY_ICONS = {"critical": "🚨", "high": "⚠️", "medium": "⚡", "low": "ℹ️"}
CATEGORY_ICONS = {"weight": "⚖️", "fluid": "💧", "vitals": "❤️", "symptoms": "🩺", "session": "🏥"}

EMPTY_MESSAGE = "All caught up! Check back later."


def _check_category(category):
    if category not in ALERT_CATEGORIES:
        raise ValueError(f"Unknown alert category: {category}")


class AlertService:
    """Reads alerts and changes their status."""
    def __init__(self, client):
        self.client = client

    def dashboard(self) -> dict:
        """Returns the dashboard summary.

        Returns:
            dict: `alerts` (list[Alert]), `counts` (per severity), `has_urgent` and `total`.
        """
        data = self.client.get_data("/alerts/dashboard")
        return {
            "alerts": [Alert.from_api(a) for a in data.get("alerts", [])],
            "counts": data.get("counts") or {s: 0 for s in SEVERITY_ORDER},
            "has_urgent": bool(data.get("hasUrgent")),
            "total": data.get("total", 0),
        }

    def counts(self) -> dict:
        data = self.client.get_data("/alerts/counts")
        return {
            "counts": data.get("counts") or {s: 0 for s in SEVERITY_ORDER},
            "total": data.get("total", 0),
            "has_urgent": bool(data.get("hasUrgent")),
        }

    def list_alerts(self, status=None, category=None, severity=None, limit=None, offset=None):
        params = {"status": status, "category": category, "severity": severity, "limit": limit, "offset": offset}
        data = self.client.get_data("/alerts", params=params)
        return [Alert.from_api(a) for a in data.get("alerts", [])]

    def by_category(self, category):
        _check_category(category)
        data = self.client.get_data(f"/alerts/category/{category}")
        return [Alert.from_api(a) for a in data.get("alerts", [])]

    def get_alert(self, alert_id) -> Alert:
        return Alert.from_api(self.client.get_data(f"/alerts/{alert_id}", key="alert"))

    def acknowledge(self, alert_id) -> Alert:
        return Alert.from_api(self.client.post_data(f"/alerts/{alert_id}/acknowledge", key="alert"))

    def acknowledge_all(self) -> int:
        """Acknowledges every active alert and returns how many were changed."""
        return self.client.post_data("/alerts/acknowledge-all").get("acknowledgedCount", 0)

    def dismiss(self, alert_id) -> Alert:
        return Alert.from_api(self.client.post_data(f"/alerts/{alert_id}/dismiss", key="alert"))

    def dismiss_all(self, category=None) -> int:
        """Dismisses every alert, or only those in `category`, and returns the count."""
        body = None
        if category is not None:
            _check_category(category)
            body = {"category": category}
        return self.client.post_data("/alerts/dismiss-all", json=body).get("dismissedCount", 0)

    def refresh(self):
        """Asks the server to re-evaluate the user's data and returns any new alerts."""
        data = self.client.post_data("/alerts/refresh")
        new_alerts = [Alert.from_api(a) for a in data.get("newAlerts", [])]
        logger.info("Alert refresh produced %d new alerts", len(new_alerts))
        return new_alerts

    def history(self, days=30, limit=100):
        data = self.client.get_data("/alerts/history", params={"days": days, "limit": limit})
        return [Alert.from_api(a) for a in data.get("alerts", [])]


def severity_icon(severity) -> str:
    return SEVERITY_ICONS.get(severity, SEVERITY_ICONS["low"])


def category_icon(category) -> str:
    return CATEGORY_ICONS.get(category, "📋")


def sort_by_severity(alerts):
    """Sorts alerts most urgent first, keeping the server's order within a severity."""
    rank = {severity: i for i, severity in enumerate(SEVERITY_ORDER)}
    return sorted(alerts, key=lambda a: rank.get(a.severity, len(SEVERITY_ORDER)))
