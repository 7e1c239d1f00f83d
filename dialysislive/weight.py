"""Typed wrapper around the `/weights` endpoints. Weights are always sent in kg."""
# dialysislive/weight.py

from dialysislive.models import WeightLog

WEIGHT_CONTEXTS = ("morning", "pre_dialysis", "post_dialysis")


class WeightService:
    def __init__(self, client):
        self.client = client

    def create_log(self, weight_kg, context="morning", logged_at=None, session_id=None, notes=None) -> WeightLog:
        if context not in WEIGHT_CONTEXTS:
            raise ValueError(f"Unknown weight context: {context}")
        payload = {
            "weightKg": round(weight_kg, 2),
            "context": context,
            "loggedAt": logged_at,
            "sessionId": session_id,
            "notes": notes,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        return WeightLog.from_api(self.client.post_data("/weights", json=payload, key="weightLog"))

    def list_logs(self, from_=None, to=None, context=None, limit=None, offset=None):
        params = {"from": from_, "to": to, "context": context, "limit": limit, "offset": offset}
        data = self.client.get_data("/weights", params=params)
        return [WeightLog.from_api(w) for w in data.get("logs", [])]

    def delete_log(self, log_id):
        self.client.delete(f"/weights/{log_id}")
