"""
This is the main entry point for the DialysisLive Streamlit application.

This script handles the following key responsibilities:
- Sets the overall page configuration for the Streamlit app.
- Loads the settings and configures logging once per process.
- Creates one `DialysisLiveService` per browser session, with a token store scoped to that
  session, so each user has their own tokens.
- Restores a signed-in user from that session's persisted tokens when token persistence is enabled.
- Routes the user to the appropriate UI component (either the authentication pages or the main app)
  based on their login status.
"""
# dialysislive/main.py

import logging
import uuid

import streamlit as st

from dialysislive.config import configure_logging, load_settings
from dialysislive.encryption import open_token_store
from dialysislive.errors import ApiError
from dialysislive.service import DialysisLiveService
import gui

logger = logging.getLogger(__name__)

# Set the basic configuration for the Streamlit page.
st.set_page_config(
    page_title="DialysisLive",
    layout="wide"
)


def _secret_overrides():
    """Returns the top-level values from `.streamlit/secrets.toml`, or {} if there is none."""
    try:
        return {k: v for k, v in st.secrets.to_dict().items() if not isinstance(v, dict)}
    except FileNotFoundError:
        return {}


@st.cache_resource
def get_settings():
    """
    Loads the settings and configures logging.

    This function is decorated with `@st.cache_resource` so that it runs once per
    process rather than on every rerun.

    Returns:
        Settings: The resolved configuration.
    """
    settings = load_settings(_secret_overrides())
    configure_logging(settings.log_level)
    logger.info("DialysisLive starting against %s", settings.api_base_url)
    return settings


settings = get_settings()

# Session State Management
# Each browser session gets its own id, service and token file.
if 'browser_session_id' not in st.session_state:
    st.session_state.browser_session_id = uuid.uuid4().hex
if 'service' not in st.session_state:
    st.session_state.service = DialysisLiveService(
        settings, open_token_store(settings, st.session_state.browser_session_id))
service = st.session_state.service

if 'current_user' not in st.session_state:
    st.session_state.current_user = None
if 'auth_page' not in st.session_state:
    st.session_state.auth_page = 'landing'
if 'units' not in st.session_state:
    st.session_state.units = 'metric'

if st.session_state.current_user is None and service.is_authenticated:
    try:
        gui._sign_in(service.auth.me())
    except ApiError as e:
        logger.info("Stored session could not be restored: %s", e)
        service.client.tokens.clear()

# Main App Router
if st.session_state.current_user:
    gui.show_main_app(service)
else:
    if st.session_state.pop('session_expired', False):
        st.warning("Your session has expired. Please log in again.")
    if st.session_state.auth_page == 'login':
        gui.show_login_form(service)
    elif st.session_state.auth_page == 'register':
        gui.show_register_form(service)
    else:
        gui.show_landing_page()
