"""
UI tests for the DialysisLive application using Streamlit's AppTest framework.

These tests simulate user interactions with the frontend to verify that the
GUI behaves as expected. They cover page rendering, button clicks, form
submissions, submit buttons disabled by validation, and session state changes.
The service under test talks to a `FakeSession`, so no network is used.
"""
from streamlit.testing.v1 import AppTest

from dialysislive.alerts import EMPTY_MESSAGE

from conftest import user_payload

STRONG_PASSWORD = "V4lid!Pass"


def _buttons(app):
    return {btn.label: btn for btn in app.button}


def test_ui_landing_page_buttons():
    """
    Tests the navigation buttons on the landing page.

    Verifies that clicking the 'Login' and 'Create an Account' buttons correctly
    updates the `auth_page` session state to navigate to the respective forms.
    """
    def render():
        import gui as gui_module

        gui_module.show_landing_page()

    app = AppTest.from_function(render, default_timeout=15)
    app.session_state["auth_page"] = "landing"
    app.run()
    assert any("Welcome to DialysisLive" in md.value for md in app.markdown)

    _buttons(app)["Login"].click().run()
    assert app.session_state["auth_page"] == "login"

    app.session_state["auth_page"] = "landing"
    _buttons(app)["Create an Account"].click().run()
    assert app.session_state["auth_page"] == "register"


def test_ui_registration_validation(service, fake_http):
    """
    Tests the input validation on the registration form.

    Verifies that submitting the form with a weak password displays the
    appropriate error message and that nothing is sent to the server.
    """
    def render(svc):
        import gui as gui_module

        gui_module.show_register_form(svc)

    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.run()

    text_inputs = app.text_input
    text_inputs[0].input("Sam Rivera")
    text_inputs[1].input("sam@example.com")
    text_inputs[2].input("weak")
    text_inputs[3].input("weak")
    _buttons(app)["Register"].click().run()

    assert any("Password must be at least 8 characters" in err.value for err in app.error)
    assert fake_http.calls == []


def test_ui_login_success_and_failure(service, fake_http):
    """
    Tests the login form with rejected and then accepted credentials.
    """
    fake_http.fail("POST", "/auth/login", 401, "Invalid email or password")
    fake_http.ok("POST", "/auth/login", dict(
        user_payload(units="imperial"), tokens={"accessToken": "access-1", "refreshToken": "refresh-1"}))

    def render(svc):
        import gui as gui_module

        gui_module.show_login_form(svc)

    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.run()

    app.text_input[0].input("sam@example.com")
    app.text_input[1].input("wrong")
    _buttons(app)["Login"].click().run()
    assert any("Invalid email or password" in err.value for err in app.error)

    app.text_input[0].input("sam@example.com")
    app.text_input[1].input(STRONG_PASSWORD)
    _buttons(app)["Login"].click().run()

    assert app.session_state["current_user"].display_name == "Sam Rivera"
    assert app.session_state["units"] == "imperial"
    assert service.is_authenticated


def test_ui_main_menu_and_alerts_page(auth_service, fake_http):
    """
    Tests that the main menu shows the urgent alert banner and that choosing
    'Alerts' opens the alerts page with its empty state.
    """
    fake_http.ok("GET", "/alerts/counts", {"counts": {"critical": 1}, "total": 1, "hasUrgent": True})
    fake_http.ok("GET", "/alerts/dashboard", {"alerts": [], "counts": {}, "hasUrgent": False, "total": 0})

    def render(svc):
        import gui as gui_module

        gui_module.show_main_app(svc)

    app = AppTest.from_function(render, args=(auth_service,), default_timeout=15)
    app.session_state["current_user"] = auth_service.current_user
    app.run()

    assert any("Welcome, Sam Rivera" in md.value for md in app.markdown)
    assert any("1 alerts need your attention" in w.value for w in app.warning)

    _buttons(app)["Alerts"].click().run()

    assert app.session_state["page"] == "alerts"
    assert any(EMPTY_MESSAGE in s.value for s in app.success)


def test_ui_session_setup_disables_start_when_invalid(auth_service, fake_http):
    """
    Tests that the 'Start Session' button is enabled for the default setup values
    and disabled once the pre-dialysis weight is out of range.
    """
    def render(svc):
        import gui as gui_module

        gui_module.show_main_app(svc)

    app = AppTest.from_function(render, args=(auth_service,), default_timeout=15)
    app.session_state["current_user"] = auth_service.current_user
    app.session_state["page"] = "sessions"
    app.session_state["session_stage"] = "SETUP"
    app.run()

    assert not _buttons(app)["Start Session"].disabled

    app.number_input[0].set_value(600.0).run()

    assert _buttons(app)["Start Session"].disabled
    assert any("Pre-dialysis weight should be between 20-250 kg" in c.value for c in app.caption)
    assert fake_http.calls == []


def test_ui_story_like_is_counted_once(auth_service, fake_http):
    """
    Tests the like button on a success story: the count goes up after one click
    and the button is then disabled.
    """
    fake_http.ok("GET", "/success-stories/ten-years", {"story": {
        "_id": "st1", "title": "Ten years on dialysis", "content": "Still here.", "slug": "ten-years",
        "likeCount": 9}})
    fake_http.ok("POST", "/success-stories/st1/like", {"likeCount": 10})

    def render(svc):
        import gui as gui_module

        gui_module.show_main_app(svc)

    app = AppTest.from_function(render, args=(auth_service,), default_timeout=15)
    app.session_state["current_user"] = auth_service.current_user
    app.session_state["page"] = "story_detail"
    app.session_state["story_slug"] = "ten-years"
    app.run()

    _buttons(app)["❤️ Like (9)"].click().run()

    like = _buttons(app)["❤️ Like (10)"]
    assert like.disabled
    assert len(fake_http.calls_to("POST", "/success-stories/st1/like")) == 1


def test_ui_expired_session_returns_to_login(auth_service, fake_http):
    """
    Tests that a page which finds the session expired signs the user out and
    sends them back to the login form.
    """
    fake_http.fail("GET", "/hcp/status", 401, "Token expired")
    fake_http.fail("POST", "/auth/refresh", 401, "Invalid refresh token")

    def render(svc):
        import gui as gui_module

        gui_module.show_main_app(svc)

    app = AppTest.from_function(render, args=(auth_service,), default_timeout=15)
    app.session_state["current_user"] = auth_service.current_user
    app.session_state["page"] = "hcp"
    app.run()

    assert app.session_state["current_user"] is None
    assert app.session_state["auth_page"] == "login"
    assert not auth_service.is_authenticated


def test_ui_fluid_confirmation_survives_rerun(auth_service, fake_http):
    """
    Tests that logging a drink shows its confirmation on the page that is drawn
    after the rerun.
    """
    fake_http.ok("GET", "/fluids/today", {"logs": [], "totalMl": 0, "date": "2025-03-01"})
    fake_http.ok("POST", "/fluids", {"fluidLog": {"_id": "f1", "amountMl": 250, "source": "water"}})

    def render(svc):
        import gui as gui_module

        gui_module.show_main_app(svc)

    app = AppTest.from_function(render, args=(auth_service,), default_timeout=15)
    app.session_state["current_user"] = auth_service.current_user
    app.session_state["page"] = "fluid"
    app.run()

    app.number_input[0].set_value(250.0).run()
    _buttons(app)["Log Drink"].click().run()

    assert fake_http.calls_to("POST", "/fluids")[0]["json"] == {"amountMl": 250, "source": "water"}
    assert any("Logged 250 ml of water." in s.value for s in app.success)
