"""
Unit conversions and display formatting.

The API stores everything in metric units (kg, ml, celsius, mg/dL). Pages convert
user input to metric before sending it and convert back for display when the
user prefers imperial units.
"""
# dialysislive/units.py

from datetime import datetime, timezone

KG_PER_LB = 0.45359237
ML_PER_OZ = 29.5735295625
MGDL_PER_MMOL = 18.0

METRIC = "metric"
IMPERIAL = "imperial"
UNIT_SYSTEMS = (METRIC, IMPERIAL)


def kg_to_lb(kg: float) -> float:
    return kg / KG_PER_LB


def lb_to_kg(lb: float) -> float:
    return lb * KG_PER_LB


def ml_to_oz(ml: float) -> float:
    return ml / ML_PER_OZ


def oz_to_ml(oz: float) -> float:
    return oz * ML_PER_OZ


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def fahrenheit_to_celsius(fahrenheit: float) -> float:
    return (fahrenheit - 32) * 5 / 9


def mgdl_to_mmol(mgdl: float) -> float:
    return mgdl / MGDL_PER_MMOL


def mmol_to_mgdl(mmol: float) -> float:
    return mmol * MGDL_PER_MMOL


def _check_units(units):
    if units not in UNIT_SYSTEMS:
        raise ValueError(f"Unknown unit system: {units!r}")


def to_metric_weight(value, units=METRIC):
    """Converts a weight entered in `units` to kilograms. None passes through."""
    _check_units(units)
    if value is None:
        return None
    return lb_to_kg(value) if units == IMPERIAL else value


def from_metric_weight(kg, units=METRIC):
    """Converts kilograms to the display unit for `units`."""
    _check_units(units)
    if kg is None:
        return None
    return kg_to_lb(kg) if units == IMPERIAL else kg


def to_metric_volume(value, units=METRIC):
    """Converts a volume entered in `units` to millilitres."""
    _check_units(units)
    if value is None:
        return None
    return oz_to_ml(value) if units == IMPERIAL else value


def from_metric_volume(ml, units=METRIC):
    _check_units(units)
    if ml is None:
        return None
    return ml_to_oz(ml) if units == IMPERIAL else ml


def weight_unit(units=METRIC) -> str:
    _check_units(units)
    return "lb" if units == IMPERIAL else "kg"


def volume_unit(units=METRIC) -> str:
    _check_units(units)
    return "oz" if units == IMPERIAL else "ml"


def format_weight(kg, units=METRIC) -> str:
    """Formats a weight stored in kg for display, e.g. `'76.5 kg'` or `'168.7 lb'`."""
    if kg is None:
        return "-"
    return f"{from_metric_weight(kg, units):.1f} {weight_unit(units)}"


def format_volume(ml, units=METRIC) -> str:
    if ml is None:
        return "-"
    return f"{from_metric_volume(ml, units):,.0f} {volume_unit(units)}"


def format_duration(minutes) -> str:
    """Formats a duration in minutes as `'Xh Ym'`, or `'Ym'` below one hour."""
    if minutes is None:
        return "-"
    minutes = int(round(minutes))
    hours, mins = divmod(minutes, 60)
    if hours:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def format_elapsed(seconds) -> str:
    """Formats elapsed seconds as a `'HH:MM:SS'` timer."""
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    mins, secs = divmod(remainder, 60)
    return f"{hours:02d}:{mins:02d}:{secs:02d}"


def parse_timestamp(value):
    """Parses an ISO 8601 timestamp from the API into an aware datetime."""
    if value is None or isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value) -> str:
    """Formats an API timestamp for display, e.g. `'2025-01-31 14:05'`."""
    if not value:
        return ""
    try:
        return parse_timestamp(value).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return str(value)
