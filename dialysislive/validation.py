"""
Client-side field validation for every DialysisLive form.

All validators are pure functions: they take the raw form values and return a list
of human-readable messages. An empty list means the input is valid. Range checks
skip blank values, so "required" is reported separately from "out of range".
"""
# dialysislive/validation.py

import math

from dialysislive.errors import ValidationError
from dialysislive.units import IMPERIAL, METRIC, fahrenheit_to_celsius, kg_to_lb, to_metric_volume, to_metric_weight

SYSTOLIC_RANGE = (60, 250)
DIASTOLIC_RANGE = (30, 150)
HEART_RATE_RANGE = (30, 220)
WEIGHT_RANGE_KG = (20, 250)
# Rounded inward so every weight inside the quoted range is accepted.
WEIGHT_RANGE_LB = (math.ceil(kg_to_lb(WEIGHT_RANGE_KG[0]) * 10) / 10,
                   math.floor(kg_to_lb(WEIGHT_RANGE_KG[1]) * 10) / 10)
TEMPERATURE_RANGE_C = (34, 43)
TEMPERATURE_RANGE_F = (93, 109)
SPO2_RANGE = (70, 100)
BLOOD_SUGAR_RANGE_MGDL = (20, 600)
BLOOD_SUGAR_RANGE_MMOL = (1.1, 33.3)
UF_RANGE_ML = (0, 10000)
SEVERITY_RANGE = (1, 5)
PLANNED_DURATION_RANGE = (30, 720)
FLUID_RANGE_ML = (1, 5000)
YEARS_EXPERIENCE_RANGE = (0, 70)

MIN_DISPLAY_NAME_LENGTH = 3
MAX_BIO_LENGTH = 500
MIN_PASSWORD_LENGTH = 8

VITAL_TYPES = ("blood_pressure", "heart_rate", "weight", "temperature", "spo2", "blood_sugar")
NUTRIENT_FIELDS = ("sodium", "potassium", "phosphorus", "protein")


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _fmt(number) -> str:
    return f"{number:g}"


def parse_number(text, label="Value"):
    """Parses numeric input from a text field or a service caller.

    The pages use `st.number_input`, which already yields numbers. Service callers
    may pass text instead, and `SessionWorkflow` parses those values with this.

    Returns:
        float | None: The parsed number, or None for blank input.

    Raises:
        ValidationError: If the text is not a finite number.
    """
    if _blank(text):
        return None
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        number = text
    else:
        try:
            number = float(str(text).strip())
        except ValueError:
            raise ValidationError(f"{label} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be a number")
    return number


def _out_of_range(value, low, high) -> bool:
    return not math.isfinite(value) or value < low or value > high


def check_range(value, low, high, label, unit=""):
    """Returns an error message if `value` is outside `[low, high]`, else None.

    `unit` is appended verbatim, so pass `" mmHg"` (with the space) or `"%"`.
    """
    if _blank(value):
        return None
    if _out_of_range(value, low, high):
        return f"{label} should be between {_fmt(low)}-{_fmt(high)}{unit}"
    return None


def require(value, label):
    if _blank(value):
        return f"{label} is required"
    return None


def _collect(*messages):
    return [m for m in messages if m]


def validate_blood_pressure(systolic, diastolic):
    """Checks both readings and that diastolic is below systolic."""
    errors = _collect(
        check_range(systolic, *SYSTOLIC_RANGE, "Systolic", " mmHg"),
        check_range(diastolic, *DIASTOLIC_RANGE, "Diastolic", " mmHg"),
    )
    if not _blank(systolic) and not _blank(diastolic) and diastolic >= systolic:
        errors.append("Diastolic should be lower than systolic")
    return errors


def validate_heart_rate(value):
    return _collect(check_range(value, *HEART_RATE_RANGE, "Heart rate", " bpm"))


def validate_weight(value, units=METRIC, label="Weight"):
    """Checks a weight entered in `units` against the kilogram range."""
    if _blank(value):
        return []
    kg = to_metric_weight(value, units)
    if _out_of_range(kg, *WEIGHT_RANGE_KG):
        if units == IMPERIAL:
            return [f"{label} should be between {_fmt(WEIGHT_RANGE_LB[0])}-{_fmt(WEIGHT_RANGE_LB[1])} lb"]
        return [f"{label} should be between {WEIGHT_RANGE_KG[0]}-{WEIGHT_RANGE_KG[1]} kg"]
    return []


def validate_uf(value, units=METRIC, label="UF volume"):
    if _blank(value):
        return []
    ml = to_metric_volume(value, units)
    if _out_of_range(ml, *UF_RANGE_ML):
        return [f"{label} should be between {UF_RANGE_ML[0]}-{UF_RANGE_ML[1]} ml"]
    return []


def validate_temperature(value, units=METRIC):
    if units == IMPERIAL:
        return _collect(check_range(value, *TEMPERATURE_RANGE_F, "Temperature", "°F"))
    return _collect(check_range(value, *TEMPERATURE_RANGE_C, "Temperature", "°C"))


def validate_vital(vital_type, value1, value2=None, units=METRIC, sugar_unit="mg/dL"):
    """Validates one reading from the vitals form.

    Args:
        vital_type (str): One of `VITAL_TYPES`.
        value1: The main reading (systolic for blood pressure).
        value2: Diastolic for blood pressure, unused otherwise.
        units (str): The user's unit preference.
        sugar_unit (str): `'mg/dL'` or `'mmol/L'` for blood sugar readings.
    """
    if vital_type not in VITAL_TYPES:
        return [f"Unknown vital type: {vital_type}"]
    label = "Systolic" if vital_type == "blood_pressure" else "Value"
    errors = _collect(require(value1, label))
    if vital_type == "blood_pressure":
        errors += _collect(require(value2, "Diastolic"))
        return errors + validate_blood_pressure(value1, value2)
    if vital_type == "heart_rate":
        return errors + validate_heart_rate(value1)
    if vital_type == "weight":
        return errors + validate_weight(value1, units)
    if vital_type == "temperature":
        return errors + validate_temperature(value1, units)
    if vital_type == "spo2":
        return errors + _collect(check_range(value1, *SPO2_RANGE, "SpO2", "%"))
    if sugar_unit == "mmol/L":
        return errors + _collect(check_range(value1, *BLOOD_SUGAR_RANGE_MMOL, "Blood sugar", " mmol/L"))
    return errors + _collect(check_range(value1, *BLOOD_SUGAR_RANGE_MGDL, "Blood sugar", " mg/dL"))


def validate_session_setup(values, units=METRIC):
    """Validates the pre-dialysis form.

    Expects the keys `pre_weight`, `target_uf`, `pre_systolic`, `pre_diastolic`,
    `pre_heart_rate` and `planned_duration`. Weight and UF are in the user's units.
    """
    errors = _collect(
        require(values.get("pre_weight"), "Pre-dialysis weight"),
        require(values.get("target_uf"), "Target UF"),
    )
    errors += validate_weight(values.get("pre_weight"), units, "Pre-dialysis weight")
    errors += validate_uf(values.get("target_uf"), units, "Target UF")
    errors += validate_blood_pressure(values.get("pre_systolic"), values.get("pre_diastolic"))
    errors += validate_heart_rate(values.get("pre_heart_rate"))
    errors += _collect(check_range(values.get("planned_duration"), *PLANNED_DURATION_RANGE,
                                   "Planned duration", " minutes"))
    return errors


def validate_session_finish(values, units=METRIC):
    """Validates the post-dialysis form. Post weight is optional."""
    errors = _collect(require(values.get("actual_uf"), "Actual UF"))
    errors += validate_weight(values.get("post_weight"), units, "Post-dialysis weight")
    errors += validate_uf(values.get("actual_uf"), units, "Actual UF")
    errors += validate_blood_pressure(values.get("post_systolic"), values.get("post_diastolic"))
    errors += validate_heart_rate(values.get("post_heart_rate"))
    return errors


def validate_symptom(values):
    errors = _collect(require(values.get("symptom_type"), "Symptom"))
    severity = values.get("severity")
    if _blank(severity):
        errors.append("Severity is required")
    elif not float(severity).is_integer() or not SEVERITY_RANGE[0] <= severity <= SEVERITY_RANGE[1]:
        errors.append("Severity should be a whole number between 1-5")
    return errors


def validate_meal(values):
    errors = _collect(require(values.get("name"), "Meal name"))
    for field in NUTRIENT_FIELDS:
        amount = values.get(field)
        if _blank(amount):
            continue
        if not math.isfinite(amount):
            errors.append(f"{field.capitalize()} must be a number")
        elif amount < 0:
            errors.append(f"{field.capitalize()} cannot be negative")
    return errors


def validate_fluid(values, units=METRIC):
    amount = values.get("amount")
    errors = _collect(require(amount, "Amount"))
    if not _blank(amount):
        ml = to_metric_volume(amount, units)
        if _out_of_range(ml, *FLUID_RANGE_ML):
            errors.append(f"Amount should be between {FLUID_RANGE_ML[0]}-{FLUID_RANGE_ML[1]} ml")
    return errors


def validate_hcp_application(values):
    errors = _collect(
        require(values.get("full_name"), "Full name"),
        require(values.get("professional_title"), "Professional title"),
        require(values.get("badge_type"), "Badge type"),
    )
    errors += _collect(check_range(values.get("years_of_experience"), *YEARS_EXPERIENCE_RANGE,
                                   "Years of experience", ""))
    return errors


def validate_community_profile(values):
    errors = []
    display_name = (values.get("display_name") or "").strip()
    if len(display_name) < MIN_DISPLAY_NAME_LENGTH:
        errors.append(f"Display name must be at least {MIN_DISPLAY_NAME_LENGTH} characters")
    if len(values.get("bio") or "") > MAX_BIO_LENGTH:
        errors.append(f"Bio must be at most {MAX_BIO_LENGTH} characters")
    return errors


def validate_forum_reply(values):
    return _collect(require(values.get("content"), "Reply"))


def validate_forum_post(values):
    return _collect(
        require(values.get("title"), "Title"),
        require(values.get("content"), "Content"),
        require(values.get("category_id"), "Category"),
    )


def validate_story(values):
    return _collect(
        require(values.get("title"), "Title"),
        require(values.get("content"), "Story"),
    )


def is_strong_password(password: str) -> bool:
    """Checks if a password meets the defined strength criteria."""
    if len(password) < MIN_PASSWORD_LENGTH:
        return False
    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_special = any(not c.isalnum() for c in password)
    return has_upper and has_lower and has_digit and has_special


def validate_registration(values):
    errors = []
    email = (values.get("email") or "").strip()
    if "@" not in email:
        errors.append("Enter a valid email address")
    if not is_strong_password(values.get("password") or ""):
        errors.append(
            "Password must be at least 8 characters and include upper and lower case letters, "
            "a number and a symbol"
        )
    if values.get("confirm_password") is not None and values.get("confirm_password") != values.get("password"):
        errors.append("Passwords do not match")
    return errors
