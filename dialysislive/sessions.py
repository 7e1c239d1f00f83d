"""
This module manages dialysis treatment sessions.

It defines:
- `SessionService`, the typed wrapper around the `/dialysis/sessions` endpoints.
- Pure helpers for the values the Sessions page derives (post weight, UF rate and
  its safety level, progress through the planned duration, the history table).
- `SessionWorkflow`, which runs the multi-call start and finish steps of the page.
"""
# dialysislive/sessions.py

import logging
from datetime import datetime, timezone
from enum import Enum

import pandas as pd

from dialysislive.errors import ApiError, SessionExpiredError, ValidationError
from dialysislive.models import DialysisSession, SessionEvent, VitalRecord
from dialysislive.units import (
    format_duration,
    from_metric_weight,
    parse_timestamp,
    to_metric_volume,
    to_metric_weight,
)
from dialysislive.validation import parse_number, validate_session_finish, validate_session_setup

logger = logging.getLogger(__name__)

UF_SAFE_RATE = 10
UF_CAUTION_RATE = 13

DEFAULT_PLANNED_DURATION_MIN = 240
DEFAULT_PRE_WEIGHT_KG = 76.5
DEFAULT_TARGET_UF_ML = 2500
DEFAULT_SYSTOLIC = 120
DEFAULT_DIASTOLIC = 80
DEFAULT_HEART_RATE = 72


class DialysisMode(str, Enum):
    HOME = "home"
    CLINIC = "clinic"


class DialysisType(str, Enum):
    IN_CENTER_HD = "in_center_hd"
    HOME_HD = "home_hd"
    PD_CAPD = "pd_capd"
    PD_APD = "pd_apd"
    PRE_DIALYSIS = "pre_dialysis"


class SessionStatus(str, Enum):
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    STOPPED = "stopped"
    CANCELLED = "cancelled"


class SessionRating(str, Enum):
    GOOD = "good"
    OK = "ok"
    BAD = "bad"


class EventType(str, Enum):
    VITAL_CHECK = "vital_check"
    MEDICATION = "medication"
    SYMPTOM = "symptom"
    NOTE = "note"
    ALARM = "alarm"
    INTERVENTION = "intervention"


DIALYSIS_TYPE_LABELS = {
    DialysisType.IN_CENTER_HD.value: "In-center Hemodialysis",
    DialysisType.HOME_HD.value: "Home Hemodialysis",
    DialysisType.PD_CAPD.value: "Peritoneal Dialysis (CAPD)",
    DialysisType.PD_APD.value: "Peritoneal Dialysis (APD)",
    DialysisType.PRE_DIALYSIS.value: "Pre-dialysis",
}

UF_SAFETY_ADVICE = {
    "safe": "UF rate is within safe limits. Continue monitoring vitals as usual.",
    "caution": "UF rate is elevated. Monitor for cramping, dizziness, or BP drops. "
               "Consider extending session time.",
    "risk": "High UF rate may cause cramps, hypotension, or cardiac stress. "
            "Consider reducing UF or extending session.",
}


def _value(member):
    return member.value if isinstance(member, Enum) else member


SETUP_NUMBER_FIELDS = {
    "pre_weight": "Pre-dialysis weight",
    "target_uf": "Target UF",
    "pre_systolic": "Systolic",
    "pre_diastolic": "Diastolic",
    "pre_heart_rate": "Heart rate",
    "planned_duration": "Planned duration",
}
FINISH_NUMBER_FIELDS = {
    "post_weight": "Post-dialysis weight",
    "actual_uf": "Actual UF",
    "post_systolic": "Systolic",
    "post_diastolic": "Diastolic",
    "post_heart_rate": "Heart rate",
}


def _parse_numbers(values, fields):
    """Returns a copy of `values` with the given fields parsed as numbers."""
    parsed = dict(values)
    errors = []
    for field, label in fields.items():
        if field not in values:
            continue
        try:
            parsed[field] = parse_number(values[field], label)
        except ValidationError as e:
            errors.extend(e.errors)
    if errors:
        raise ValidationError(errors)
    return parsed


def _without_none(payload):
    return {k: v for k, v in payload.items() if v is not None}


class SessionService:
    """Wraps the dialysis session endpoints."""
    def __init__(self, client):
        self.client = client

    def create_session(self, mode, dialysis_type, planned_duration_min=None, location_name=None,
                       machine_name=None) -> DialysisSession:
        payload = _without_none({
            "mode": _value(mode),
            "type": _value(dialysis_type),
            "plannedDurationMin": planned_duration_min,
            "locationName": location_name,
            "machineName": machine_name,
        })
        data = self.client.post_data("/dialysis/sessions", json=payload, key="session")
        return DialysisSession.from_api(data)

    def update_session(self, session_id, **fields) -> DialysisSession:
        """PATCHes a session. `fields` use the API's camelCase names."""
        data = self.client.patch_data(f"/dialysis/sessions/{session_id}", json=_without_none(fields), key="session")
        return DialysisSession.from_api(data)

    def add_event(self, session_id, event_type, payload=None, timestamp=None) -> SessionEvent:
        body = _without_none({"eventType": _value(event_type), "payload": payload or {}, "timestamp": timestamp})
        data = self.client.post_data(f"/dialysis/sessions/{session_id}/events", json=body, key="event")
        return SessionEvent.from_api(data)

    def end_session(self, session_id, **fields) -> DialysisSession:
        data = self.client.post_data(f"/dialysis/sessions/{session_id}/end", json=_without_none(fields), key="session")
        return DialysisSession.from_api(data)

    def list_sessions(self, from_=None, to=None, status=None, limit=None, offset=None):
        """Lists sessions, newest first.

        Returns:
            list[DialysisSession]: The matching sessions.
        """
        params = {"from": from_, "to": to, "status": _value(status), "limit": limit, "offset": offset}
        data = self.client.get_data("/dialysis/sessions", params=params)
        return [DialysisSession.from_api(s) for s in data.get("sessions", [])]

    def get_session_details(self, session_id):
        """Fetches a session with its events and vitals.

        Returns:
            tuple: `(DialysisSession, list[SessionEvent], list[VitalRecord])`.
        """
        data = self.client.get_data(f"/dialysis/sessions/{session_id}")
        return (
            DialysisSession.from_api(data.get("session") or {}),
            [SessionEvent.from_api(e) for e in data.get("events", [])],
            [VitalRecord.from_api(v) for v in data.get("vitals", [])],
        )

    def get_active_session(self):
        """Returns the session currently running, or None.

        An `in_progress` session wins over a `started` one. Lookup failures are
        logged and treated as "no active session".
        """
        try:
            for status in (SessionStatus.IN_PROGRESS, SessionStatus.STARTED):
                sessions = self.list_sessions(status=status, limit=1)
                if sessions:
                    return sessions[0]
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.warning("Could not look up the active session: %s", e)
        return None

    def analyze_sessions(self, days=30) -> dict:
        return self.client.get_data("/dialysis/sessions/analyze", params={"days": days})


def resolve_post_weight(pre_weight_kg, post_weight_kg, uf_ml):
    """Returns the post-dialysis weight, estimating it from the UF volume if needed."""
    if post_weight_kg is not None:
        return post_weight_kg
    if pre_weight_kg is None:
        return None
    return round(pre_weight_kg - (uf_ml or 0) / 1000, 2)


def uf_rate(uf_ml, weight_kg, duration_min) -> float:
    """Returns the ultrafiltration rate in ml/kg/h, or 0 if it cannot be computed."""
    if not weight_kg or weight_kg <= 0 or not duration_min or duration_min <= 0:
        return 0.0
    return uf_ml / weight_kg / (duration_min / 60)


def uf_safety_level(rate) -> str:
    if rate < UF_SAFE_RATE:
        return "safe"
    if rate < UF_CAUTION_RATE:
        return "caution"
    return "risk"


def percent_of_target(actual_ml, target_ml):
    if not target_ml:
        return None
    return round(actual_ml / target_ml * 100)


def elapsed_seconds(started_at, now=None) -> int:
    start = parse_timestamp(started_at)
    now = parse_timestamp(now) or datetime.now(timezone.utc)
    return max(0, int((now - start).total_seconds()))


def session_progress(started_at, planned_min, now=None) -> float:
    """Returns how much of the planned duration has elapsed, as a percentage capped at 100."""
    if not planned_min or planned_min <= 0:
        return 0.0
    percent = elapsed_seconds(started_at, now) / (planned_min * 60) * 100
    return min(100.0, round(percent, 1))


def sessions_to_frame(sessions, units="metric") -> pd.DataFrame:
    """Builds the session history table shown on the Sessions page and exported as CSV."""
    columns = ["Date", "Type", "Duration", "Pre Weight", "Post Weight", "Weight Loss",
               "UF (ml)", "Pre BP", "Post BP", "Rating"]
    rows = []
    for s in sessions:
        started = parse_timestamp(s.started_at) if s.started_at else None
        rows.append({
            "Date": started.strftime("%Y-%m-%d %H:%M") if started else "",
            "Type": DIALYSIS_TYPE_LABELS.get(s.dialysis_type, s.dialysis_type),
            "Duration": format_duration(s.actual_duration_min),
            "Pre Weight": _round(from_metric_weight(s.pre_weight_kg, units)),
            "Post Weight": _round(from_metric_weight(s.post_weight_kg, units)),
            "Weight Loss": _round(from_metric_weight(s.weight_loss_kg, units)),
            "UF (ml)": s.actual_uf_ml,
            "Pre BP": _bp(s.pre_bp_systolic, s.pre_bp_diastolic),
            "Post BP": _bp(s.post_bp_systolic, s.post_bp_diastolic),
            "Rating": s.session_rating or "",
        })
    return pd.DataFrame(rows, columns=columns)


def _round(value):
    return None if value is None else round(value, 1)


def _bp(systolic, diastolic):
    if systolic is None or diastolic is None:
        return ""
    return f"{systolic}/{diastolic}"


class SessionWorkflow:
    """Runs the start and finish steps of a session, which span several endpoints."""
    def __init__(self, sessions, vitals, weight):
        """Initializes the workflow.

        Args:
            sessions (SessionService): Creates, updates and ends the session.
            vitals (VitalsService): Records the pre and post vitals.
            weight (WeightService): Records the pre and post weights.
        """
        self.sessions = sessions
        self.vitals = vitals
        self.weight = weight

    def start(self, values, units="metric") -> DialysisSession:
        """Creates a session from the setup form and records the pre-dialysis readings.

        Args:
            values (dict): The setup form values, with weight and UF in `units`.
                Numbers may also be given as text.
            units (str): The user's unit preference.

        Returns:
            DialysisSession: The session, with its pre-dialysis fields set.

        Raises:
            ValidationError: If the form values are invalid.
        """
        values = _parse_numbers(values, SETUP_NUMBER_FIELDS)
        errors = validate_session_setup(values, units)
        if errors:
            raise ValidationError(errors)

        pre_weight_kg = to_metric_weight(values["pre_weight"], units)
        target_uf_ml = to_metric_volume(values["target_uf"], units)

        session = self.sessions.create_session(
            mode=values.get("mode", DialysisMode.HOME),
            dialysis_type=values.get("dialysis_type", DialysisType.HOME_HD),
            planned_duration_min=values.get("planned_duration", DEFAULT_PLANNED_DURATION_MIN),
            location_name=values.get("location_name") or None,
            machine_name=values.get("machine_name") or None,
        )
        session = self.sessions.update_session(
            session.session_id,
            preWeightKg=pre_weight_kg,
            targetUfMl=target_uf_ml,
            preBpSystolic=values.get("pre_systolic"),
            preBpDiastolic=values.get("pre_diastolic"),
            preHeartRate=values.get("pre_heart_rate"),
        )
        self._record_readings(session.session_id, values.get("pre_systolic"), values.get("pre_diastolic"),
                              values.get("pre_heart_rate"))
        self.weight.create_log(pre_weight_kg, context="pre_dialysis", session_id=session.session_id)
        logger.info("Started dialysis session %s", session.session_id)
        return session

    def finish(self, session, values, units="metric") -> DialysisSession:
        """Ends `session` with the post-dialysis form values and records the post readings."""
        values = _parse_numbers(values, FINISH_NUMBER_FIELDS)
        errors = validate_session_finish(values, units)
        if errors:
            raise ValidationError(errors)

        actual_uf_ml = to_metric_volume(values["actual_uf"], units)
        post_weight_kg = resolve_post_weight(
            session.pre_weight_kg, to_metric_weight(values.get("post_weight"), units), actual_uf_ml
        )
        ended = self.sessions.end_session(
            session.session_id,
            postWeightKg=post_weight_kg,
            actualUfMl=actual_uf_ml,
            postBpSystolic=values.get("post_systolic"),
            postBpDiastolic=values.get("post_diastolic"),
            postHeartRate=values.get("post_heart_rate"),
            sessionRating=_value(values.get("rating")),
            notes=values.get("notes") or None,
            complications=values.get("complications") or None,
        )
        self._record_readings(session.session_id, values.get("post_systolic"), values.get("post_diastolic"),
                              values.get("post_heart_rate"))
        if post_weight_kg is not None:
            self.weight.create_log(post_weight_kg, context="post_dialysis", session_id=session.session_id)
        logger.info("Finished dialysis session %s", session.session_id)
        return ended

    def _record_readings(self, session_id, systolic, diastolic, heart_rate):
        blood_pressure = None
        if systolic is not None and diastolic is not None:
            blood_pressure = {"systolic": systolic, "diastolic": diastolic}
        if blood_pressure is None and heart_rate is None:
            return None
        return self.vitals.log_dialysis_vitals(
            blood_pressure=blood_pressure, heart_rate=heart_rate, session_id=session_id
        )
