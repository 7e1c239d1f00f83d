"""
Typed wrapper around the `/vitals` endpoints.

A vital record can carry several measurements at once. The shortcut loggers below
fill in one of them and leave the rest to the server's defaults.
"""
# dialysislive/vitals.py

import logging

from dialysislive.models import VitalRecord

logger = logging.getLogger(__name__)

TEMPERATURE_UNITS = ("celsius", "fahrenheit")
BLOOD_SUGAR_UNITS = ("mg/dL", "mmol/L")
BLOOD_SUGAR_TIMINGS = ("fasting", "before_meal", "after_meal", "bedtime", "random")
WEIGHT_UNITS = ("kg", "lbs")


class VitalsService:
    """Creates and reads vital records."""
    def __init__(self, client):
        self.client = client

    def create_record(self, record: dict) -> VitalRecord:
        """Creates a vital record.

        Args:
            record (dict): The record in API form, e.g.
                `{"bloodPressure": {"systolic": 120, "diastolic": 80}, "sessionId": "..."}`.
                Keys whose value is None are left out.
        """
        payload = {k: v for k, v in record.items() if v is not None}
        data = self.client.post_data("/vitals/record", json=payload, key="vitalRecord")
        return VitalRecord.from_api(data)

    def list_records(self, from_=None, to=None, session_id=None, has_vital=None, limit=None, offset=None):
        params = {
            "from": from_, "to": to, "sessionId": session_id,
            "hasVital": has_vital, "limit": limit, "offset": offset,
        }
        data = self.client.get_data("/vitals/records", params=params)
        return [VitalRecord.from_api(r) for r in data.get("records", [])]

    def get_record(self, record_id) -> VitalRecord:
        return VitalRecord.from_api(self.client.get_data(f"/vitals/records/{record_id}", key="record"))

    def update_record(self, record_id, changes: dict) -> VitalRecord:
        data = self.client.patch_data(f"/vitals/records/{record_id}", json=changes, key="record")
        return VitalRecord.from_api(data)

    def delete_record(self, record_id):
        self.client.delete(f"/vitals/records/{record_id}")

    def today(self) -> dict:
        """Returns today's records and the latest reading of each vital."""
        data = self.client.get_data("/vitals/records/today")
        data["records"] = [VitalRecord.from_api(r) for r in data.get("records", [])]
        return data

    def summary(self, days=7) -> dict:
        return self.client.get_data("/vitals/records/summary", params={"days": days}, key="summary") or {}

    def log_blood_pressure(self, systolic, diastolic, notes=None, session_id=None):
        return self.create_record({
            "bloodPressure": {"systolic": systolic, "diastolic": diastolic},
            "notes": notes, "sessionId": session_id,
        })

    def log_heart_rate(self, bpm, notes=None, session_id=None):
        return self.create_record({"heartRate": bpm, "notes": notes, "sessionId": session_id})

    def log_blood_sugar(self, value, unit="mg/dL", timing=None, notes=None):
        if unit not in BLOOD_SUGAR_UNITS:
            raise ValueError(f"Unknown blood sugar unit: {unit}")
        sugar = {"value": value, "unit": unit}
        if timing:
            sugar["timing"] = timing
        return self.create_record({"bloodSugar": sugar, "notes": notes})

    def log_weight(self, value, unit="kg", notes=None, session_id=None):
        if unit not in WEIGHT_UNITS:
            raise ValueError(f"Unknown weight unit: {unit}")
        return self.create_record({"weight": {"value": value, "unit": unit}, "notes": notes, "sessionId": session_id})

    def log_spo2(self, percentage, notes=None, session_id=None):
        return self.create_record({"spo2": percentage, "notes": notes, "sessionId": session_id})

    def log_temperature(self, value, unit="celsius", notes=None, session_id=None):
        if unit not in TEMPERATURE_UNITS:
            raise ValueError(f"Unknown temperature unit: {unit}")
        return self.create_record({
            "temperature": {"value": value, "unit": unit}, "notes": notes, "sessionId": session_id,
        })

    def log_dialysis_vitals(self, blood_pressure=None, heart_rate=None, weight=None, spo2=None,
                            temperature=None, session_id=None, notes=None):
        """Logs several readings taken together, typically before or after a session."""
        return self.create_record({
            "bloodPressure": blood_pressure,
            "heartRate": heart_rate,
            "weight": weight,
            "spo2": spo2,
            "temperature": temperature,
            "sessionId": session_id,
            "notes": notes,
        })
