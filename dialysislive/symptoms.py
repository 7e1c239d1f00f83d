"""
This module handles symptom logging for the Symptoms page.

It provides `SymptomService` for the `/symptoms` endpoints and a few pure helpers
the page uses to summarise the user's history (counts per type, the most frequent
symptoms, and the symptoms logged on a given day).
"""
# dialysislive/symptoms.py

import logging
from collections import Counter

from dialysislive.errors import ApiError, SessionExpiredError
from dialysislive.models import SymptomLog
from dialysislive.units import parse_timestamp

logger = logging.getLogger(__name__)

SEVERITY_LABELS = ["", "Mild", "Light", "Moderate", "Strong", "Severe"]
SEVERITY_EMOJIS = ["", "😊", "😐", "😕", "😣", "😫"]

SYMPTOM_TYPES = [
    {"type": "cramping", "label": "Cramping", "icon": "💢"},
    {"type": "nausea", "label": "Nausea", "icon": "🤢"},
    {"type": "headache", "label": "Headache", "icon": "🤕"},
    {"type": "dizziness", "label": "Dizziness", "icon": "💫"},
    {"type": "fatigue", "label": "Fatigue", "icon": "😴"},
    {"type": "shortness_of_breath", "label": "Shortness of Breath", "icon": "😮‍💨"},
    {"type": "itching", "label": "Itching", "icon": "🖐️"},
    {"type": "chest_pain", "label": "Chest Pain", "icon": "💔"},
    {"type": "low_bp", "label": "Low Blood Pressure", "icon": "📉"},
    {"type": "muscle_weakness", "label": "Muscle Weakness", "icon": "🦵"},
    {"type": "restless_legs", "label": "Restless Legs", "icon": "🦶"},
    {"type": "insomnia", "label": "Insomnia", "icon": "🌙"},
    {"type": "other", "label": "Other", "icon": "📝"},
]


class SymptomService:
    def __init__(self, client):
        self.client = client

    def create_log(self, symptom_type, severity, logged_at=None, session_id=None, notes=None) -> SymptomLog:
        """Logs a symptom.

        Args:
            symptom_type (str): One of the `type` values in `SYMPTOM_TYPES`.
            severity (int): 1 (mild) to 5 (severe).
        """
        payload = {
            "symptomType": symptom_type,
            "severity": int(severity),
            "loggedAt": logged_at,
            "sessionId": session_id,
            "notes": notes,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        return SymptomLog.from_api(self.client.post_data("/symptoms", json=payload, key="symptomLog"))

    def list_logs(self, from_=None, to=None, symptom_type=None, limit=None, offset=None):
        params = {"from": from_, "to": to, "symptomType": symptom_type, "limit": limit, "offset": offset}
        data = self.client.get_data("/symptoms", params=params)
        return [SymptomLog.from_api(log) for log in data.get("logs", [])]

    def get_symptom_types(self):
        """Returns the symptom types the server knows about.

        Falls back to the built-in list when the request fails or returns nothing.
        """
        try:
            data = self.client.get_data("/symptoms/types")
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.warning("Could not load symptom types, using defaults: %s", e)
            return list(SYMPTOM_TYPES)
        if isinstance(data, dict):
            data = data.get("types") or data.get("symptomTypes")
        return list(data) if data else list(SYMPTOM_TYPES)


def symptom_label(symptom_type, types=None) -> str:
    for entry in types or SYMPTOM_TYPES:
        if entry.get("type") == symptom_type:
            return entry.get("label", symptom_type)
    return str(symptom_type).replace("_", " ").title()


def severity_label(severity) -> str:
    try:
        return SEVERITY_LABELS[int(severity)]
    except (IndexError, TypeError, ValueError):
        return ""


def count_by_type(logs) -> dict:
    return dict(Counter(log.symptom_type for log in logs))


def top_symptoms(logs, n=4):
    """Returns the `n` most frequently logged symptom types, most frequent first."""
    return [symptom_type for symptom_type, _ in Counter(log.symptom_type for log in logs).most_common(n)]


def logs_for_day(logs, day):
    """Returns the logs whose `logged_at` falls on `day` (a `datetime.date`, UTC)."""
    return [log for log in logs if log.logged_at and parse_timestamp(log.logged_at).date() == day]
