"""
Typed wrapper around the `/fluids` endpoints, used by the fluid intake page.

Amounts are always sent in millilitres.
"""
# dialysislive/fluid.py

from dialysislive.models import FluidLog

FLUID_SOURCES = ("water", "tea", "coffee", "juice", "soup", "other")
DEFAULT_TIMEZONE = "UTC"


class FluidService:
    def __init__(self, client):
        self.client = client

    def create_log(self, amount_ml, source="water", logged_at=None, notes=None) -> FluidLog:
        if source not in FLUID_SOURCES:
            raise ValueError(f"Unknown fluid source: {source}")
        payload = {"amountMl": int(round(amount_ml)), "source": source, "loggedAt": logged_at, "notes": notes}
        payload = {k: v for k, v in payload.items() if v is not None}
        return FluidLog.from_api(self.client.post_data("/fluids", json=payload, key="fluidLog"))

    def today(self, timezone=None) -> dict:
        """Returns today's logs and total intake for the given IANA time zone.

        Returns:
            dict: `{"logs": list[FluidLog], "total_ml": int, "date": str}`.
        """
        data = self.client.get_data("/fluids/today", params={"timezone": timezone or DEFAULT_TIMEZONE})
        return {
            "logs": [FluidLog.from_api(log) for log in data.get("logs", [])],
            "total_ml": data.get("totalMl", 0),
            "date": data.get("date"),
        }

    def list_logs(self, from_=None, to=None, source=None, limit=None, offset=None):
        params = {"from": from_, "to": to, "source": source, "limit": limit, "offset": offset}
        data = self.client.get_data("/fluids", params=params)
        return [FluidLog.from_api(log) for log in data.get("logs", [])]

    def delete_log(self, log_id):
        self.client.delete(f"/fluids/{log_id}")
