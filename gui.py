"""
This module defines the graphical user interface (GUI) for the DialysisLive application using Streamlit.

It includes functions for rendering every page: the landing page, sign-in and sign-up
forms, and the pages reached from the main menu (dialysis sessions, symptoms, fluid
intake, nutrition scanning, alerts, the community profile, forum threads, success
stories and HCP verification).

Each page follows the same cycle: a widget changes local state, the page calls the
service layer, and Streamlit re-renders. Failed calls are shown with `st.error`, and
plan limits with `st.warning` and an upgrade hint.

The main entry point for the UI is `show_main_app`, which routes a signed-in user to
the page selected from the menu.
"""
# dialysislive/gui.py

import datetime
import logging
from functools import partial

import pandas as pd
import streamlit as st

from dialysislive.alerts import (
    ALERT_CATEGORIES,
    EMPTY_MESSAGE,
    category_icon,
    severity_icon,
    sort_by_severity,
)
from dialysislive.community import HCP_BADGE_LABELS, MILESTONE_LABELS, REPORT_REASONS
from dialysislive.errors import (
    ApiError,
    SessionExpiredError,
    SubscriptionError,
    SubscriptionLimitError,
    ValidationError,
    user_message,
)
from dialysislive.fluid import FLUID_SOURCES
from dialysislive.forms import FormState
from dialysislive.nutrition import (
    DAILY_LIMITS,
    MEAL_TYPES,
    NUTRIENTS,
    format_nutrient,
    limit_status,
    percent_of_limit,
    suggest_foods,
)
from dialysislive.sessions import (
    DEFAULT_DIASTOLIC,
    DEFAULT_HEART_RATE,
    DEFAULT_PLANNED_DURATION_MIN,
    DEFAULT_PRE_WEIGHT_KG,
    DEFAULT_SYSTOLIC,
    DEFAULT_TARGET_UF_ML,
    DIALYSIS_TYPE_LABELS,
    UF_SAFETY_ADVICE,
    DialysisMode,
    DialysisType,
    EventType,
    SessionRating,
    SessionStatus,
    elapsed_seconds,
    percent_of_target,
    session_progress,
    sessions_to_frame,
    uf_rate,
    uf_safety_level,
)
from dialysislive.subscription import upgrade_message
from dialysislive.symptoms import SEVERITY_EMOJIS, count_by_type, logs_for_day, severity_label, symptom_label, top_symptoms
from dialysislive.units import (
    METRIC,
    UNIT_SYSTEMS,
    format_duration,
    format_elapsed,
    parse_timestamp,
    format_volume,
    format_weight,
    from_metric_volume,
    from_metric_weight,
    to_metric_volume,
    volume_unit,
    weight_unit,
)
from dialysislive.validation import (
    validate_community_profile,
    validate_fluid,
    validate_forum_reply,
    validate_hcp_application,
    validate_meal,
    validate_registration,
    validate_session_finish,
    validate_session_setup,
    validate_symptom,
)

logger = logging.getLogger(__name__)

UPGRADE_HINT = "Upgrade your plan to unlock this feature."
_FAILED = object()

SAFETY_DISPLAY = {"safe": ("✓", "Safe"), "caution": ("⚠️", "Caution"), "risk": ("🚨", "Risk")}
LIMIT_STATUS_ICONS = {"ok": "🟢", "moderate": "🟡", "high": "🟠", "over": "🔴"}

FEATURE_CARDS = [
    ("🩺 Session Tracking", "Log every dialysis session with pre and post vitals, UF and weight."),
    ("📷 Nutrition Scan", "Snap a photo of your meal to estimate sodium, potassium and phosphorus."),
    ("📝 Symptom Journal", "Track how you feel and spot patterns over time."),
    ("💬 Community", "Ask questions, share stories and hear from verified professionals."),
]


def _rerun():
    """Triggers a rerun of the Streamlit app to refresh the UI."""
    st.rerun()


def _format_timestamp(timestamp_str):
    """Converts an ISO 8601 timestamp string into a readable local time, e.g. "Jan 01, 2025 • 14:30"."""
    if not timestamp_str:
        return "Unknown time"
    try:
        return parse_timestamp(timestamp_str).astimezone().strftime("%b %d, %Y • %H:%M")
    except ValueError:
        return timestamp_str


def _units():
    """Returns the user's unit preference from the session."""
    units = st.session_state.get("units", METRIC)
    return units if units in UNIT_SYSTEMS else METRIC


def _show_subscription_warning(exc):
    if isinstance(exc, SubscriptionLimitError) and exc.limit is not None:
        st.warning(f"{exc.message} {upgrade_message(exc.resource, exc.current, exc.limit)}")
    else:
        st.warning(f"{exc.message} {UPGRADE_HINT}")


def _call(action, fallback=None):
    """Runs an API call and reports failures on the page.

    Returns:
        The action's result, or `_FAILED` if it raised an `ApiError`.
        `SessionExpiredError` is re-raised so `show_main_app` can sign the user out.
    """
    try:
        return action()
    except SessionExpiredError:
        raise
    except SubscriptionError as e:
        _show_subscription_warning(e)
    except ApiError as e:
        logger.warning("Page action failed: %s", e)
        st.error(user_message(e, fallback) if fallback else user_message(e))
    return _FAILED


def _form_state(key, validator, defaults=None):
    """Returns the `FormState` kept in the session under `key`, creating it on first use."""
    if key not in st.session_state:
        st.session_state[key] = FormState(validator, defaults)
    form = st.session_state[key]
    form.validator = validator
    return form


def _submit(form, action, spinner_text="Saving..."):
    """Submits `form` and shows any failure. Returns the action's result or None."""
    try:
        with st.spinner(spinner_text):
            result = form.submit(action)
    except ValidationError as e:
        for message in e.errors:
            st.error(message)
        return None
    if form.limit_error is not None:
        _show_subscription_warning(form.limit_error)
    elif form.error:
        st.error(form.error)
    return result


def _show_errors(form):
    for message in form.errors():
        st.caption(f"⚠ {message}")


# Page navigation helpers
def set_page_landing():
    """Sets the session state to display the landing page."""
    st.session_state.auth_page = 'landing'


def set_page_login():
    """Sets the session state to display the login page."""
    st.session_state.auth_page = 'login'


def set_page_register():
    """Sets the session state to display the registration page."""
    st.session_state.auth_page = 'register'


def _sign_in(user):
    st.session_state.current_user = user
    if user is not None and user.units in UNIT_SYSTEMS:
        st.session_state.units = user.units
    st.session_state.auth_page = 'landing'
    st.session_state.page = None


# Authentication Pages
def show_landing_page():
    """Displays the landing screen with the feature cards and sign-in options."""
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h1 style='text-align: center;'>Welcome to DialysisLive</h1>", unsafe_allow_html=True)
        st.markdown(
            "<p style='text-align: center;'>Your companion for life on dialysis.</p>",
            unsafe_allow_html=True,
        )
        for title, description in FEATURE_CARDS:
            with st.container(border=True):
                st.markdown(f"**{title}**")
                st.caption(description)

        st.button("Login", on_click=set_page_login, type="primary")
        st.button("Create an Account", on_click=set_page_register)


def show_login_form(service):
    """Displays the login form and handles user authentication.

    Args:
        service: The main application service instance.
    """
    st.button("← Back", on_click=set_page_landing)
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h2 style='text-align: center;'>Sign In</h2>", unsafe_allow_html=True)
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Login")

            if submitted:
                if not email or not password:
                    st.error("Email and password are required.")
                else:
                    with st.spinner("Logging in..."):
                        try:
                            user = service.auth.login(email, password)
                        except ApiError as e:
                            logger.info("Login rejected: %s", e)
                            st.error(user_message(e, "Invalid email or password."))
                        else:
                            _sign_in(user)
                            st.rerun()


def show_register_form(service):
    """Displays the registration form and handles new account creation.

    Args:
        service: The main application service instance.
    """
    st.button("← Back", on_click=set_page_landing)
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h2 style='text-align: center;'>Create an Account</h2>", unsafe_allow_html=True)
        with st.form("register_form"):
            full_name = st.text_input("Full Name")
            email = st.text_input("Email")
            password = st.text_input(
                "Choose a Password",
                type="password",
                help="Use at least 8 characters with uppercase, lowercase, number, and symbol."
            )
            confirm_password = st.text_input("Confirm Password", type="password")
            submitted = st.form_submit_button("Register")

            if submitted:
                errors = validate_registration(
                    {"email": email, "password": password, "confirm_password": confirm_password}
                )
                if not full_name.strip():
                    errors.insert(0, "Full name is required")
                if errors:
                    for message in errors:
                        st.error(message)
                else:
                    with st.spinner("Creating your account..."):
                        try:
                            user = service.auth.register(email, password, full_name)
                        except (ApiError, ValidationError) as e:
                            st.error(user_message(e, "Registration failed. Please try again."))
                        else:
                            _sign_in(user)
                            st.rerun()


# Main Application UI
MENU_ITEMS = [
    ("Sessions", "sessions", "Start, track and finish a dialysis session, and review your history."),
    ("Symptoms", "symptoms", "Log how you feel and see which symptoms come up most."),
    ("Fluid Intake", "fluid", "Keep track of what you drink against your daily allowance."),
    ("Nutrition Scan", "nutrition", "Analyze a meal photo or food name for renal diet nutrients."),
    ("Alerts", "alerts", "Review health alerts generated from your logs."),
    ("Community Profile", "community_profile", "Set up how you appear in the community."),
    ("Forums", "forums", "Browse discussions, ask questions and reply."),
    ("Success Stories", "stories", "Read and share stories from the dialysis community."),
    ("HCP Verification", "hcp", "Apply for a verified healthcare professional badge."),
]


def show_main_app(service):
    """
    The main application router for a signed-in user.

    Shows the menu when no page is selected, otherwise renders the selected page.
    If any page finds that the session has expired, the user is signed out and
    sent back to the login form.

    Args:
        service: The main application service instance.
    """
    user = st.session_state.current_user

    if 'page' not in st.session_state:
        st.session_state.page = None
    if 'units' not in st.session_state:
        st.session_state.units = METRIC

    def _show_main_menu():
        try:
            counts = service.alerts.counts()
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.warning("Could not load alert counts: %s", e)
            counts = None
        if counts and counts["has_urgent"]:
            st.warning(f"🚨 {counts['total']} alerts need your attention.")

        st.markdown(f"## Welcome, {user.display_name}")
        st.radio("Units", UNIT_SYSTEMS, key="units", horizontal=True,
                 format_func=lambda u: "Metric (kg, ml)" if u == METRIC else "Imperial (lb, oz)")
        st.divider()
        for idx, (label, value, description) in enumerate(MENU_ITEMS):
            if st.button(label, key=f"menu_btn_{idx}"):
                st.session_state.page = value
                st.rerun()
            st.caption(description)
        st.divider()
        if st.button("Log Out", key="logout_btn"):
            with st.spinner("Logging out..."):
                service.auth.logout()
            st.session_state.current_user = None
            st.session_state.page = None
            st.session_state.auth_page = 'landing'
            st.rerun()

    def _show_back_button():
        """Renders a button to navigate back to the main menu."""
        if st.button("← Back to Main Menu"):
            st.session_state.page = None
            st.rerun()

    pages = {
        "sessions": _render_sessions_page,
        "symptoms": _render_symptoms_page,
        "fluid": _render_fluid_page,
        "nutrition": _render_nutrition_page,
        "alerts": _render_alerts_page,
        "community_profile": _render_community_profile_page,
        "forums": _render_forums_page,
        "forum_post": _render_forum_post_page,
        "stories": _render_stories_page,
        "story_detail": _render_story_detail_page,
        "hcp": _render_hcp_page,
    }

    try:
        if st.session_state.page is None:
            _show_main_menu()
            return
        renderer = pages.get(st.session_state.page)
        if renderer is None:
            st.session_state.page = None
            st.rerun()
        _show_back_button()
        renderer(service)
    except SessionExpiredError as e:
        logger.info("Session expired while rendering %s", st.session_state.page)
        st.session_state.current_user = None
        st.session_state.page = None
        st.session_state.auth_page = 'login'
        st.session_state.session_expired = True
        st.warning(str(e))


# Sessions
def _render_uf_safety(rate, target_ml=None, actual_ml=None):
    level = uf_safety_level(rate)
    icon, label = SAFETY_DISPLAY[level]
    st.metric("UF Rate", f"{rate:.1f} ml/kg/h", help="Ultrafiltration rate. Keep it below 10-13 ml/kg/h.")
    message = f"{icon} {label}: {UF_SAFETY_ADVICE[level]}"
    if level == "safe":
        st.success(message)
    elif level == "caution":
        st.warning(message)
    else:
        st.error(message)
    if target_ml and actual_ml is not None:
        st.caption(f"{percent_of_target(actual_ml, target_ml)}% of target UF removed")


def _render_sessions_page(service):
    """Renders the dialysis session flow: IDLE -> SETUP -> ACTIVE -> FINISHING -> RESULT."""
    st.markdown("<h2 style='text-align: center;'>Dialysis Sessions</h2>", unsafe_allow_html=True)
    units = _units()

    if 'session_stage' not in st.session_state:
        st.session_state.session_stage = 'IDLE'

    if st.session_state.session_stage == 'IDLE':
        active = service.sessions.get_active_session()
        if active is not None:
            st.session_state.active_session = active
            st.session_state.session_stage = 'ACTIVE'

    stage = st.session_state.session_stage
    if stage == 'IDLE':
        _render_session_idle(service, units)
    elif stage == 'SETUP':
        _render_session_setup(service, units)
    elif stage == 'ACTIVE':
        _render_session_active(service, units)
    elif stage == 'FINISHING':
        _render_session_finishing(service, units)
    elif stage == 'RESULT':
        _render_session_result(units)


def _reset_session_flow():
    st.session_state.session_stage = 'IDLE'
    for key in ('active_session', 'finished_session', 'session_setup_form', 'session_finish_form'):
        st.session_state.pop(key, None)


def _render_session_idle(service, units):
    if st.button("Start New Session", type="primary"):
        st.session_state.session_stage = 'SETUP'
        st.rerun()

    st.subheader("Session History")
    sessions = _call(lambda: service.sessions.list_sessions(status=SessionStatus.COMPLETED, limit=50),
                     "Failed to load sessions.")
    if sessions is _FAILED:
        return
    if not sessions:
        st.info("No completed sessions yet.")
        return
    frame = sessions_to_frame(sessions, units)
    st.dataframe(frame)
    st.download_button(
        "Export CSV", frame.to_csv(index=False).encode('utf-8'),
        f"dialysis_sessions_{datetime.date.today()}.csv", "text/csv"
    )


def _render_session_setup(service, units):
    st.subheader("Pre-Dialysis Setup")
    w_unit, v_unit = weight_unit(units), volume_unit(units)

    col1, col2 = st.columns(2)
    with col1:
        mode = st.selectbox("Mode", [m.value for m in DialysisMode], format_func=str.capitalize)
        dialysis_type = st.selectbox(
            "Dialysis Type", [t.value for t in DialysisType],
            index=1, format_func=lambda t: DIALYSIS_TYPE_LABELS[t],
        )
        pre_weight = st.number_input(
            f"Pre-dialysis Weight ({w_unit})",
            value=round(float(from_metric_weight(DEFAULT_PRE_WEIGHT_KG, units)), 1), step=0.1,
        )
        target_uf = st.number_input(
            f"Target UF ({v_unit})", value=float(round(from_metric_volume(DEFAULT_TARGET_UF_ML, units))), step=50.0,
        )
    with col2:
        pre_systolic = st.number_input("Systolic (mmHg)", value=DEFAULT_SYSTOLIC, step=1)
        pre_diastolic = st.number_input("Diastolic (mmHg)", value=DEFAULT_DIASTOLIC, step=1)
        pre_heart_rate = st.number_input("Heart Rate (bpm)", value=DEFAULT_HEART_RATE, step=1)
        planned_duration = st.number_input("Planned Duration (minutes)", value=DEFAULT_PLANNED_DURATION_MIN, step=15)

    form = _form_state("session_setup_form", partial(validate_session_setup, units=units))
    form.update(
        mode=mode, dialysis_type=dialysis_type, pre_weight=pre_weight, target_uf=target_uf,
        pre_systolic=pre_systolic, pre_diastolic=pre_diastolic, pre_heart_rate=pre_heart_rate,
        planned_duration=planned_duration,
    )
    _show_errors(form)

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Cancel"):
            _reset_session_flow()
            st.rerun()
    with col2:
        start = st.button("Start Session", type="primary", disabled=not form.can_submit)
    if start:
        session = _submit(form, lambda values: service.workflow.start(values, units), "Starting session...")
        if session is not None:
            st.session_state.active_session = session
            st.session_state.session_stage = 'ACTIVE'
            st.rerun()


def _render_session_active(service, units):
    session = st.session_state.active_session
    st.subheader("Session in Progress")
    planned = session.planned_duration_min or DEFAULT_PLANNED_DURATION_MIN
    if session.started_at:
        st.metric("Elapsed", format_elapsed(elapsed_seconds(session.started_at)))
        st.progress(int(session_progress(session.started_at, planned)))
    col1, col2, col3 = st.columns(3)
    col1.metric("Pre Weight", format_weight(session.pre_weight_kg, units))
    col2.metric("Target UF", format_volume(session.target_uf_ml, units))
    col3.metric("Planned", format_duration(planned))

    if session.target_uf_ml and session.pre_weight_kg:
        _render_uf_safety(uf_rate(session.target_uf_ml, session.pre_weight_kg, planned))

    note = st.text_input("Add a note to this session")
    if st.button("Add Note", disabled=not note.strip()):
        result = _call(lambda: service.sessions.add_event(session.session_id, EventType.NOTE, {"text": note.strip()}))
        if result is not _FAILED:
            st.success("Note added.")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Refresh"):
            st.rerun()
    with col2:
        if st.button("Finish Session", type="primary"):
            st.session_state.session_stage = 'FINISHING'
            st.rerun()


def _render_session_finishing(service, units):
    session = st.session_state.active_session
    st.subheader("Post-Dialysis")
    w_unit, v_unit = weight_unit(units), volume_unit(units)
    target = from_metric_volume(session.target_uf_ml or DEFAULT_TARGET_UF_ML, units)

    col1, col2 = st.columns(2)
    with col1:
        post_weight = st.number_input(
            f"Post-dialysis Weight ({w_unit})", value=None, step=0.1,
            help="Leave blank to estimate it from the pre-dialysis weight and UF removed.",
        )
        actual_uf = st.number_input(f"Fluid Removed ({v_unit})", value=float(round(target)), step=50.0)
        rating = st.selectbox("How did it go?", [r.value for r in SessionRating], format_func=str.capitalize)
    with col2:
        post_systolic = st.number_input("Systolic (mmHg)", value=118, step=1)
        post_diastolic = st.number_input("Diastolic (mmHg)", value=78, step=1)
        post_heart_rate = st.number_input("Heart Rate (bpm)", value=74, step=1)
    notes = st.text_area("Notes")

    form = _form_state("session_finish_form", partial(validate_session_finish, units=units))
    form.update(
        post_weight=post_weight, actual_uf=actual_uf, rating=rating, post_systolic=post_systolic,
        post_diastolic=post_diastolic, post_heart_rate=post_heart_rate, notes=notes,
    )
    _show_errors(form)

    if st.button("Complete Session", type="primary", disabled=not form.can_submit):
        ended = _submit(form, lambda values: service.workflow.finish(session, values, units), "Completing session...")
        if ended is not None:
            st.session_state.finished_session = ended
            st.session_state.session_stage = 'RESULT'
            st.rerun()


def _render_session_result(units):
    session = st.session_state.finished_session
    st.success("Session complete. Great job!")
    col1, col2, col3 = st.columns(3)
    col1.metric("Duration", format_duration(session.actual_duration_min))
    col2.metric("Fluid Removed", format_volume(session.actual_uf_ml, units))
    col3.metric("Weight Loss", format_weight(session.weight_loss_kg, units))
    if session.actual_uf_ml and session.pre_weight_kg and session.actual_duration_min:
        _render_uf_safety(
            uf_rate(session.actual_uf_ml, session.pre_weight_kg, session.actual_duration_min),
            session.target_uf_ml, session.actual_uf_ml,
        )
    if st.button("Done"):
        _reset_session_flow()
        st.rerun()


# Symptoms
def _render_symptoms_page(service):
    """Renders the symptom logging page with today's entries and the most frequent symptoms."""
    st.markdown("<h2 style='text-align: center;'>Symptoms</h2>", unsafe_allow_html=True)
    types = service.symptoms.get_symptom_types()
    labels = {t["type"]: f"{t.get('icon', '')} {t.get('label', t['type'])}".strip() for t in types}

    symptom_type = st.selectbox("Symptom", list(labels), format_func=lambda t: labels[t])
    severity = st.slider("Severity", 1, 5, 3)
    st.caption(f"{SEVERITY_EMOJIS[severity]} {severity_label(severity)}")
    notes = st.text_input("Notes (optional)")

    form = _form_state("symptom_form", validate_symptom)
    form.update(symptom_type=symptom_type, severity=severity, notes=notes)
    if st.button("Log Symptom", type="primary", disabled=not form.can_submit):
        logged = _submit(form, lambda v: service.symptoms.create_log(
            v["symptom_type"], v["severity"], notes=v["notes"] or None))
        if logged is not None:
            st.success(f"{labels.get(logged.symptom_type, symptom_label(logged.symptom_type, types))} logged")

    logs = _call(lambda: service.symptoms.list_logs(limit=100), "Failed to load symptoms.")
    if logs is _FAILED:
        return

    st.subheader("Today")
    today = logs_for_day(logs, datetime.datetime.now(datetime.timezone.utc).date())
    if not today:
        st.info("No symptoms logged today.")
    for log in today:
        st.markdown(
            f"**{symptom_label(log.symptom_type, types)}** · {severity_label(log.severity)} "
            f"({log.severity}/5) · {_format_timestamp(log.logged_at)}"
        )

    if logs:
        st.subheader("Most Frequent")
        counts = count_by_type(logs)
        frame = pd.DataFrame(
            [{"Symptom": symptom_label(t, types), "Times Logged": counts[t]} for t in top_symptoms(logs)]
        )
        st.dataframe(frame)


# Fluid intake
def _render_fluid_page(service):
    """Renders the fluid intake page."""
    st.markdown("<h2 style='text-align: center;'>Fluid Intake</h2>", unsafe_allow_html=True)
    units = _units()
    user = st.session_state.current_user
    timezone = getattr(user, "timezone", None)

    # Set just before the rerun that follows a logged drink.
    logged_message = st.session_state.pop("fluid_logged_message", None)
    if logged_message:
        st.success(logged_message)

    today = _call(lambda: service.fluid.today(timezone), "Failed to load today's intake.")
    if today is not _FAILED:
        st.metric("Today", format_volume(today["total_ml"], units))

    amount = st.number_input(f"Amount ({volume_unit(units)})", value=None, step=10.0)
    source = st.selectbox("Drink", FLUID_SOURCES, format_func=str.capitalize)

    form = _form_state("fluid_form", partial(validate_fluid, units=units))
    form.update(amount=amount, source=source)
    if st.button("Log Drink", type="primary", disabled=not form.can_submit):
        logged = _submit(form, lambda v: service.fluid.create_log(to_metric_volume(v["amount"], units), v["source"]))
        if logged is not None:
            st.session_state.fluid_logged_message = (
                f"Logged {format_volume(logged.amount_ml, units)} of {logged.source}.")
            st.rerun()

    if today is not _FAILED and today["logs"]:
        st.dataframe(pd.DataFrame([
            {"Time": _format_timestamp(log.logged_at), "Drink": log.source.capitalize(),
             "Amount": format_volume(log.amount_ml, units)}
            for log in today["logs"]
        ]))


# Nutrition
def _render_nutrient_table(nutrients):
    rows = []
    for nutrient in NUTRIENTS:
        amount = nutrients.get(nutrient) or 0
        percent = percent_of_limit(nutrient, amount)
        rows.append({
            "Nutrient": nutrient.capitalize(),
            "Amount": format_nutrient(nutrient, amount),
            "Daily Limit": format_nutrient(nutrient, DAILY_LIMITS[nutrient]),
            "% of Limit": f"{LIMIT_STATUS_ICONS[limit_status(percent)]} {percent}%",
        })
    st.dataframe(pd.DataFrame(rows))


def _render_analysis(service, analysis):
    if analysis.get("foodItems"):
        st.markdown("**Detected:** " + ", ".join(analysis["foodItems"]))
    _render_nutrient_table(analysis.get("estimatedNutrients") or {})
    for warning in analysis.get("warnings") or []:
        st.warning(warning)
    for recommendation in analysis.get("recommendations") or []:
        st.info(recommendation)
    if analysis.get("confidence") is not None:
        st.caption(f"Confidence: {round(analysis['confidence'] * 100) if analysis['confidence'] <= 1 else analysis['confidence']}%")

    meal_type = st.selectbox("Meal", MEAL_TYPES, format_func=str.capitalize, key="analysis_meal_type")
    name = st.text_input("Meal name", value=", ".join(analysis.get("foodItems") or []), key="analysis_meal_name")
    if st.button("Log This Meal", disabled=not name.strip()):
        nutrients = {k: v for k, v in (analysis.get("estimatedNutrients") or {}).items() if v is not None}
        meal = _call(lambda: service.nutrition.create_meal(meal_type, name.strip(), nutrients=nutrients))
        if meal is not _FAILED:
            st.success(f"{meal.name} logged.")
            st.session_state.pop("meal_analysis", None)


def _render_nutrition_page(service):
    """Renders the NutritionScan page: photo analysis, food search, manual logging and today's totals."""
    st.markdown("<h2 style='text-align: center;'>Nutrition Scan</h2>", unsafe_allow_html=True)
    scan_tab, search_tab, log_tab, today_tab = st.tabs(["Scan Photo", "Search Food", "Log Meal", "Today"])

    with scan_tab:
        uploaded = st.file_uploader("Meal photo", type=["jpg", "jpeg", "png", "webp"])
        if st.button("Analyze Meal", disabled=uploaded is None):
            mime_type = "image/jpeg" if uploaded.type == "image/jpg" else uploaded.type
            with st.spinner("Analyzing your meal..."):
                analysis = _call(lambda: service.nutrition.analyze_meal_image(uploaded.getvalue(), mime_type),
                                 "Failed to analyze the meal. Please try again.")
            if analysis is not _FAILED:
                st.session_state.meal_analysis = analysis
        if st.session_state.get("meal_analysis"):
            _render_analysis(service, st.session_state.meal_analysis)

    with search_tab:
        query = st.text_input("Food name")
        for food in suggest_foods(query):
            st.caption(
                f"{food['name']}: sodium {food['sodium']} mg, potassium {food['potassium']} mg, "
                f"phosphorus {food['phosphorus']} mg, protein {food['protein']} g"
            )
        if st.button("Analyze Food", disabled=not query.strip()):
            result = _call(lambda: service.nutrition.analyze_food_by_text(query),
                           "Failed to analyze the food. Please try again.")
            if result is not _FAILED:
                nutrients = {}
                for item in result.get("foods") or result.get("foodItems") or []:
                    if isinstance(item, dict):
                        st.markdown(f"**{item.get('name', query)}**")
                        for nutrient in NUTRIENTS:
                            value = item.get(nutrient)
                            amount = value.get("value") if isinstance(value, dict) else value
                            if amount is not None:
                                nutrients[nutrient] = nutrients.get(nutrient, 0) + amount
                if nutrients:
                    _render_nutrient_table(nutrients)
                for recommendation in result.get("recommendations") or []:
                    st.info(recommendation)

    with log_tab:
        meal_type = st.selectbox("Meal", MEAL_TYPES, format_func=str.capitalize, key="manual_meal_type")
        name = st.text_input("Meal name", key="manual_meal_name")
        cols = st.columns(len(NUTRIENTS))
        amounts = {}
        for col, nutrient in zip(cols, NUTRIENTS):
            with col:
                amounts[nutrient] = st.number_input(
                    f"{nutrient.capitalize()} ({'g' if nutrient == 'protein' else 'mg'})",
                    value=0.0, step=1.0, key=f"manual_{nutrient}",
                )
        form = _form_state("meal_form", validate_meal)
        form.update(name=name, meal_type=meal_type, **amounts)
        _show_errors(form)
        if st.button("Save Meal", type="primary", disabled=not form.can_submit):
            meal = _submit(form, lambda v: service.nutrition.create_meal(
                v["meal_type"], v["name"].strip(), nutrients={n: v[n] for n in NUTRIENTS}))
            if meal is not None:
                st.success(f"{meal.name} logged.")

    with today_tab:
        today = _call(lambda: service.nutrition.today_meals(), "Failed to load today's meals.")
        if today is not _FAILED:
            if not today["meals"]:
                st.info("No meals logged today.")
            else:
                _render_nutrient_table(today["totals"])
                for meal in today["meals"]:
                    st.markdown(f"**{meal.meal_type.capitalize()}** · {meal.name}")


# Alerts
def _render_alerts_page(service):
    """Renders the Alerts page with per-alert and bulk actions."""
    st.markdown("<h2 style='text-align: center;'>Alerts</h2>", unsafe_allow_html=True)

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("Refresh Alerts"):
            new_alerts = _call(lambda: service.alerts.refresh())
            if new_alerts is not _FAILED:
                st.toast(f"{len(new_alerts)} new alerts")
    with col2:
        if st.button("Mark All Read"):
            _call(lambda: service.alerts.acknowledge_all())
    with col3:
        if st.button("Dismiss All"):
            _call(lambda: service.alerts.dismiss_all())

    category = st.selectbox("Category", ("all",) + ALERT_CATEGORIES, format_func=str.capitalize)
    if category == "all":
        alerts = _call(lambda: service.alerts.dashboard()["alerts"], "Failed to load alerts.")
    else:
        alerts = _call(lambda: service.alerts.by_category(category), "Failed to load alerts.")
    if alerts is _FAILED:
        return

    alerts = [a for a in alerts if a.status not in ("dismissed", "resolved")]
    if not alerts:
        st.success(EMPTY_MESSAGE)
        return

    for alert in sort_by_severity(alerts):
        with st.container(border=True):
            st.markdown(f"{severity_icon(alert.severity)} **{alert.title}** · {category_icon(alert.category)}")
            st.write(alert.message)
            st.caption(_format_timestamp(alert.created_at))
            col1, col2 = st.columns(2)
            with col1:
                if alert.status == "active" and st.button("Acknowledge", key=f"ack_{alert.alert_id}"):
                    if _call(lambda: service.alerts.acknowledge(alert.alert_id)) is not _FAILED:
                        st.rerun()
            with col2:
                if st.button("Dismiss", key=f"dismiss_{alert.alert_id}"):
                    if _call(lambda: service.alerts.dismiss(alert.alert_id)) is not _FAILED:
                        st.rerun()


# Community
def _author_line(author, fallback="Community member"):
    if author is None:
        return fallback
    line = author.display_name
    if author.hcp_verified and author.hcp_badge_type:
        line += f" · ✔ {HCP_BADGE_LABELS.get(author.hcp_badge_type, HCP_BADGE_LABELS['other'])}"
    return line


def _my_profile(service):
    """Returns the user's community profile, cached for the session."""
    if "community_profile" not in st.session_state:
        st.session_state.community_profile = service.community.get_profile()
    return st.session_state.community_profile


def _render_community_profile_page(service):
    """Renders the community profile page: creation with a name check, or the profile and its editor."""
    st.markdown("<h2 style='text-align: center;'>Community Profile</h2>", unsafe_allow_html=True)
    profile = _call(lambda: _my_profile(service), "Failed to load your community profile.")
    if profile is _FAILED:
        return

    if profile is not None:
        st.subheader(_author_line(profile))
        if profile.bio:
            st.write(profile.bio)
        col1, col2, col3 = st.columns(3)
        col1.metric("Posts", profile.total_posts)
        col2.metric("Replies", profile.total_replies)
        col3.metric("Helpful", profile.total_helpful)
        st.divider()

    display_name = st.text_input("Display Name", value=profile.display_name if profile else "")
    if st.button("Check Availability", disabled=not display_name.strip()):
        result = _call(lambda: service.community.check_display_name(display_name))
        if result is not _FAILED:
            if result["available"]:
                st.success(f"'{display_name.strip()}' is available.")
            else:
                st.error(result["reason"] or "That display name is taken.")
    bio = st.text_area("Bio", value=(profile.bio or "") if profile else "", max_chars=500)

    form = _form_state("community_profile_form", validate_community_profile)
    form.update(display_name=display_name, bio=bio)
    _show_errors(form)
    label = "Save Profile" if profile else "Create Profile"
    if st.button(label, type="primary", disabled=not form.can_submit):
        if profile:
            action = lambda v: service.community.update_profile(display_name=v["display_name"], bio=v["bio"])
        else:
            action = lambda v: service.community.create_profile(v["display_name"], v["bio"] or None)
        saved = _submit(form, action)
        if saved is not None:
            st.session_state.community_profile = saved
            st.success("Profile saved.")


def _open_post(slug):
    st.session_state.forum_post_slug = slug
    st.session_state.pop("forum_thread", None)
    st.session_state.page = "forum_post"


def _render_forums_page(service):
    """Renders the forum category picker and its posts."""
    st.markdown("<h2 style='text-align: center;'>Forums</h2>", unsafe_allow_html=True)
    categories = _call(lambda: service.community.get_categories(), "Failed to load forums.")
    if categories is _FAILED:
        return
    if not categories:
        st.info("No forum categories yet.")
        return
    by_id = {c.category_id: c for c in categories}
    category_id = st.selectbox("Category", list(by_id), format_func=lambda c: by_id[c].name)
    st.caption(by_id[category_id].description)

    posts = _call(lambda: service.community.list_posts(category_id=category_id, sort="recent"))
    if posts is not _FAILED:
        if not posts:
            st.info("No discussions yet. Start one below.")
        for post in posts:
            with st.container(border=True):
                st.markdown(f"{'📌 ' if post.is_pinned else ''}**{post.title}**")
                st.caption(f"{_author_line(post.author)} · {post.reply_count} replies · {post.helpful_count} helpful")
                st.button("Open", key=f"open_{post.post_id}", on_click=_open_post, args=(post.slug,))

    with st.expander("Start a new discussion"):
        title = st.text_input("Title")
        content = st.text_area("What would you like to ask or share?")
        if st.button("Post", disabled=not (title.strip() and content.strip())):
            post = _call(lambda: service.community.create_post(category_id, title, content))
            if post is not _FAILED:
                _open_post(post.slug)
                st.rerun()


def _render_report_form(service, content_type, content_id, key):
    with st.expander("Report"):
        reason = st.selectbox(
            "Reason", list(REPORT_REASONS), key=f"reason_{key}",
            format_func=lambda r: f"{REPORT_REASONS[r][0]}: {REPORT_REASONS[r][1]}",
        )
        description = st.text_input("Details (optional)", key=f"report_details_{key}")
        if st.button("Submit Report", key=f"report_{key}"):
            result = _call(lambda: service.community.report_content(content_type, content_id, reason, description))
            if result is not _FAILED:
                st.success("Thanks. A moderator will review this.")


def _render_forum_post_page(service):
    """Renders a forum thread with helpful, accept answer, report and reply actions."""
    slug = st.session_state.get("forum_post_slug")
    if not slug:
        st.info("Select a discussion from the Forums page.")
        return

    thread = st.session_state.get("forum_thread")
    if thread is None or thread[0] != slug:
        loaded = _call(lambda: service.community.get_post(slug), "Failed to load this discussion.")
        if loaded is _FAILED:
            return
        thread = (slug, loaded[0], loaded[1])
        st.session_state.forum_thread = thread
    _, post, replies = thread

    my_profile = _call(lambda: _my_profile(service))
    my_profile = None if my_profile is _FAILED else my_profile
    is_author = my_profile is not None and post.author_id == my_profile.profile_id

    st.markdown(f"## {post.title}")
    st.caption(f"{_author_line(post.author)} · {_format_timestamp(post.created_at)}")
    st.write(post.content)
    if post.tags:
        st.caption(" ".join(f"#{tag}" for tag in post.tags))
    if st.button(f"👍 Helpful ({post.helpful_count})", key="helpful_post"):
        if _call(lambda: service.community.mark_helpful(post)) is not _FAILED:
            st.rerun()
    _render_report_form(service, "forum_post", post.post_id, "post")

    st.subheader(f"Replies ({len(replies)})")
    for reply in replies:
        with st.container(border=True):
            header = _author_line(reply.author)
            if reply.is_accepted_answer:
                header = "✅ Accepted Answer · " + header
            if reply.is_hcp_response:
                header += " · HCP response"
            st.markdown(f"**{header}**")
            st.write(reply.content)
            col1, col2 = st.columns(2)
            with col1:
                if st.button(f"👍 Helpful ({reply.helpful_count})", key=f"helpful_{reply.reply_id}"):
                    if _call(lambda: service.community.mark_helpful(reply)) is not _FAILED:
                        st.rerun()
            with col2:
                if is_author and not reply.is_accepted_answer:
                    if st.button("Accept Answer", key=f"accept_{reply.reply_id}"):
                        if _call(lambda: service.community.accept_answer(reply.reply_id, replies)) is not _FAILED:
                            st.rerun()
            _render_report_form(service, "forum_reply", reply.reply_id, reply.reply_id)

    if post.is_locked:
        st.info("This discussion is locked.")
        return
    content = st.text_area("Your reply", key="reply_content")
    form = _form_state("reply_form", validate_forum_reply)
    form.update(content=content)
    if st.button("Post Reply", type="primary", disabled=not form.can_submit):
        reply = _submit(form, lambda v: service.community.create_reply(post.post_id, v["content"]), "Posting...")
        if reply is not None:
            replies.append(reply)
            post.reply_count += 1
            st.success("Reply posted.")


def _open_story(slug):
    st.session_state.story_slug = slug
    st.session_state.pop("story", None)
    st.session_state.page = "story_detail"


def _milestone(milestone_type):
    label, icon = MILESTONE_LABELS.get(milestone_type, MILESTONE_LABELS["other"])
    return f"{icon} {label}"


def _render_stories_page(service):
    """Renders the success story list and the submission form."""
    st.markdown("<h2 style='text-align: center;'>Success Stories</h2>", unsafe_allow_html=True)
    stories = _call(lambda: service.community.list_stories(limit=20), "Failed to load stories.")
    if stories is not _FAILED:
        if not stories:
            st.info("No stories yet. Be the first to share yours.")
        for story in stories:
            with st.container(border=True):
                st.markdown(f"**{story.title}**{' ⭐' if story.is_featured else ''}")
                st.caption(f"{_milestone(story.milestone_type)} · ❤️ {story.like_count}")
                if story.excerpt:
                    st.write(story.excerpt)
                st.button("Read", key=f"read_{story.story_id}", on_click=_open_story, args=(story.slug,))

    with st.expander("Share your story"):
        title = st.text_input("Title", key="story_title")
        content = st.text_area("Your story", key="story_content")
        milestone_type = st.selectbox("Milestone", list(MILESTONE_LABELS), format_func=_milestone)
        duration = st.text_input("Time on dialysis (optional)", placeholder="e.g. 3 years")
        if st.button("Submit Story", disabled=not (title.strip() and content.strip())):
            story = _call(lambda: service.community.submit_story(
                title, content, milestone_type=milestone_type, dialysis_duration=duration))
            if story is not _FAILED:
                st.success("Thank you! Your story was submitted for review.")


def _render_story_detail_page(service):
    """Renders one success story with its like button."""
    slug = st.session_state.get("story_slug")
    if not slug:
        st.info("Select a story from the Success Stories page.")
        return
    story = st.session_state.get("story")
    if story is None or story.slug != slug:
        story = _call(lambda: service.community.get_story(slug), "Failed to load this story.")
        if story is _FAILED:
            return
        st.session_state.story = story

    st.markdown(f"## {story.title}")
    st.caption(f"{_author_line(story.author)} · {_milestone(story.milestone_type)}")
    if story.dialysis_duration:
        st.caption(f"On dialysis for {story.dialysis_duration}")
    st.write(story.content)

    liked = service.community.has_liked(story)
    if st.button(f"❤️ Like ({story.like_count})", disabled=liked):
        if _call(lambda: service.community.like_story(story)) is not _FAILED:
            st.rerun()


# HCP verification
def _render_hcp_application(service):
    full_name = st.text_input("Full Name")
    professional_title = st.text_input("Professional Title", placeholder="e.g. Registered Nurse")
    badge_type = st.selectbox("Badge", list(HCP_BADGE_LABELS), format_func=lambda b: HCP_BADGE_LABELS[b])
    col1, col2 = st.columns(2)
    with col1:
        license_number = st.text_input("License Number")
        employer = st.text_input("Employer")
        years = st.number_input("Years of Experience", value=None, step=1)
    with col2:
        license_state = st.text_input("License State/Region")
        specialization = st.text_input("Specialization")
    documents = st.text_area("Document URLs (one per line)")
    notes = st.text_area("Additional Notes")

    form = _form_state("hcp_form", validate_hcp_application)
    form.update(
        full_name=full_name, professional_title=professional_title, badge_type=badge_type,
        license_number=license_number, license_state=license_state, employer=employer,
        specialization=specialization, years_of_experience=years,
        document_urls=[line.strip() for line in documents.splitlines() if line.strip()],
        additional_notes=notes,
    )
    _show_errors(form)
    if st.button("Submit Application", type="primary", disabled=not form.can_submit):
        request = _submit(form, service.community.submit_verification, "Submitting...")
        if request is not None:
            st.success("Application submitted. We will review it shortly.")


def _render_hcp_page(service):
    """Renders the HCP verification status, or the application form if there is nothing pending."""
    st.markdown("<h2 style='text-align: center;'>HCP Verification</h2>", unsafe_allow_html=True)
    status = _call(lambda: service.community.verification_status(), "Failed to load verification status.")
    if status is _FAILED:
        return

    request = status["request"]
    if status["is_verified"]:
        badge = HCP_BADGE_LABELS.get(status["badge_type"], HCP_BADGE_LABELS["other"])
        st.success(f"✔ You are verified as a {badge}.")
        return
    if not status["has_profile"]:
        st.warning("Create a community profile before applying.")
        return
    if request is not None and request.status == "pending":
        st.info(f"Your application was received on {_format_timestamp(request.created_at)} and is under review.")
        return
    if request is not None and request.status == "more_info_needed":
        st.warning("The review team needs more information.")
        documents = st.text_area("Additional document URLs (one per line)")
        notes = st.text_area("Notes for the reviewer")
        if st.button("Send", disabled=not (documents.strip() or notes.strip())):
            urls = [line.strip() for line in documents.splitlines() if line.strip()]
            updated = _call(lambda: service.community.update_verification(
                request.request_id, document_urls=urls or None, additional_notes=notes.strip() or None))
            if updated is not _FAILED:
                st.success("Thanks, your application was updated.")
        return
    if request is not None and request.status == "rejected":
        st.error(f"Your previous application was not approved. {request.rejection_reason or ''}".strip())
    _render_hcp_application(service)
