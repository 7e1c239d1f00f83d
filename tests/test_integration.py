"""
Integration tests for the DialysisLive application.

These tests verify the interactions between the `ApiClient`, the token store and the
typed services, using a `FakeSession` in place of the network. They cover the
authentication lifecycle, the single token refresh, error translation, and the
request shapes each service sends.
"""
import base64

import pytest
import requests

from dialysislive.errors import (
    ApiError,
    NetworkError,
    SessionExpiredError,
    SubscriptionLimitError,
    ValidationError,
)
from dialysislive.symptoms import SYMPTOM_TYPES

from conftest import session_payload, user_payload

STRONG_PASSWORD = "V4lid!Pass"


def _tokens(access, refresh):
    return {"tokens": {"accessToken": access, "refreshToken": refresh}}


def test_login_and_logout_lifecycle(service, fake_http):
    """
    Tests that logging in stores the tokens and user, and that logging out clears
    them even when the server call fails.
    """
    fake_http.ok("POST", "/auth/login", dict(user_payload(), **_tokens("access-1", "refresh-1")))
    fake_http.fail("POST", "/auth/logout", 500, "Server error")

    user = service.auth.login(" sam@example.com ", STRONG_PASSWORD)

    assert user.display_name == "Sam Rivera"
    assert service.is_authenticated
    assert service.current_user is user
    assert fake_http.calls[0]["json"] == {"email": "sam@example.com", "password": STRONG_PASSWORD}
    assert "Authorization" not in fake_http.calls[0]["headers"]

    service.auth.logout()

    assert fake_http.calls_to("POST", "/auth/logout")[0]["json"] == {"refreshToken": "refresh-1"}
    assert not service.is_authenticated
    assert service.current_user is None


def test_login_rejected(service, fake_http):
    fake_http.fail("POST", "/auth/login", 401, "Invalid email or password")

    with pytest.raises(ApiError) as excinfo:
        service.auth.login("sam@example.com", "wrong")

    assert excinfo.value.message == "Invalid email or password"
    assert not service.is_authenticated


def test_register_validates_before_sending(service, fake_http):
    with pytest.raises(ValidationError) as excinfo:
        service.auth.register("sam@example.com", "weak", "")

    assert "Full name is required" in excinfo.value.errors
    assert fake_http.calls == []


def test_expired_access_token_is_refreshed_once(auth_service, fake_http):
    """
    Tests that a 401 triggers exactly one refresh, after which the request is
    retried with the new access token.
    """
    fake_http.fail("GET", "/symptoms", 401, "Token expired")
    fake_http.ok("GET", "/symptoms", {"logs": [{"_id": "l1", "symptomType": "cramping", "severity": 3}]})
    fake_http.ok("POST", "/auth/refresh", _tokens("access-2", "refresh-2"))

    logs = auth_service.symptoms.list_logs()

    assert [log.symptom_type for log in logs] == ["cramping"]
    gets = fake_http.calls_to("GET", "/symptoms")
    assert gets[0]["headers"]["Authorization"] == "Bearer access-1"
    assert gets[1]["headers"]["Authorization"] == "Bearer access-2"
    assert fake_http.calls_to("POST", "/auth/refresh")[0]["json"] == {"refreshToken": "refresh-1"}
    assert auth_service.client.tokens.refresh_token == "refresh-2"


def test_failed_refresh_expires_session(auth_service, fake_http):
    fake_http.fail("GET", "/fluids/today", 401, "Token expired")
    fake_http.fail("POST", "/auth/refresh", 401, "Invalid refresh token")

    with pytest.raises(SessionExpiredError):
        auth_service.fluid.today()

    assert not auth_service.is_authenticated
    assert len(fake_http.calls_to("GET", "/fluids/today")) == 1


def test_missing_token_expires_session_without_request(service, fake_http):
    with pytest.raises(SessionExpiredError):
        service.alerts.counts()
    assert fake_http.calls == []


def test_subscription_limit_is_not_treated_as_auth_failure(auth_service, fake_http):
    """
    Tests that a 403 carrying a `SUB_*` code is raised as a subscription error
    rather than triggering a token refresh.
    """
    fake_http.fail(
        "POST", "/symptoms", 403, "Monthly symptom log limit reached",
        code="SUB_001", details={"resource": "symptomLogs", "current": 30, "limit": 30},
    )

    with pytest.raises(SubscriptionLimitError) as excinfo:
        auth_service.symptoms.create_log("cramping", 3)

    assert excinfo.value.limit == 30
    assert fake_http.calls_to("POST", "/auth/refresh") == []
    assert auth_service.is_authenticated


def test_connection_failure_raises_network_error(auth_service, fake_http):
    fake_http.add("GET", "/alerts/counts", requests.ConnectionError("connection refused"))

    with pytest.raises(NetworkError):
        auth_service.alerts.counts()


def test_active_session_prefers_in_progress(auth_service, fake_http):
    fake_http.ok("GET", "/dialysis/sessions", {"sessions": []})
    fake_http.ok("GET", "/dialysis/sessions", {"sessions": [session_payload("s7", status="started")]})

    active = auth_service.sessions.get_active_session()

    assert active.session_id == "s7"
    statuses = [call["params"]["status"] for call in fake_http.calls_to("GET", "/dialysis/sessions")]
    assert statuses == ["in_progress", "started"]


def test_active_session_lookup_failure_returns_none(auth_service, fake_http):
    fake_http.fail("GET", "/dialysis/sessions", 500, "Database unavailable")
    assert auth_service.sessions.get_active_session() is None


def test_session_details_returns_session_events_and_vitals(auth_service, fake_http):
    fake_http.ok("GET", "/dialysis/sessions/s1", {
        "session": session_payload("s1"),
        "events": [{"_id": "e1", "sessionId": "s1", "eventType": "note", "payload": {"text": "Cramp"}}],
        "vitals": [{"_id": "v1", "heartRate": 70}],
    })

    session, events, vitals = auth_service.sessions.get_session_details("s1")

    assert session.session_id == "s1"
    assert events[0].payload == {"text": "Cramp"}
    assert vitals[0].heart_rate == 70


def test_fluid_today_defaults_to_utc(auth_service, fake_http):
    fake_http.ok("GET", "/fluids/today", {
        "logs": [{"_id": "f1", "amountMl": 250, "source": "water", "loggedAt": "2025-03-01T09:00:00Z"}],
        "totalMl": 250,
        "date": "2025-03-01",
    })

    today = auth_service.fluid.today()

    assert today["total_ml"] == 250
    assert today["logs"][0].amount_ml == 250
    assert fake_http.calls[0]["params"] == {"timezone": "UTC"}


def test_fluid_log_payload(auth_service, fake_http):
    fake_http.ok("POST", "/fluids", {"fluidLog": {"_id": "f2", "amountMl": 237, "source": "tea"}})

    log = auth_service.fluid.create_log(236.6, "tea")

    assert log.source == "tea"
    assert fake_http.calls[0]["json"] == {"amountMl": 237, "source": "tea"}
    with pytest.raises(ValueError):
        auth_service.fluid.create_log(100, "soda-fountain")


def test_meal_image_analysis_sends_base64(auth_service, fake_http):
    """
    Tests that a meal photo is sent base64 encoded with its MIME type, and that
    unsupported image types are rejected before any request.
    """
    fake_http.ok("POST", "/nutri-audit/analyze", {"foodItems": ["rice"], "estimatedNutrients": {"sodium": 5}})

    analysis = auth_service.nutrition.analyze_meal_image(b"\x89PNG", "image/png")

    assert analysis["foodItems"] == ["rice"]
    sent = fake_http.calls[0]["json"]
    assert base64.b64decode(sent["image"]) == b"\x89PNG"
    assert sent["mimeType"] == "image/png"

    with pytest.raises(ValueError):
        auth_service.nutrition.analyze_meal_image(b"GIF89a", "image/gif")


def test_symptom_types_fall_back_to_defaults(auth_service, fake_http):
    fake_http.fail("GET", "/symptoms/types", 500, "Server error")
    assert auth_service.symptoms.get_symptom_types() == SYMPTOM_TYPES


def test_alert_bulk_actions(auth_service, fake_http):
    fake_http.ok("POST", "/alerts/dismiss-all", {"dismissedCount": 3})
    fake_http.ok("POST", "/alerts/acknowledge-all", {"acknowledgedCount": 2})

    assert auth_service.alerts.dismiss_all("fluid") == 3
    assert auth_service.alerts.acknowledge_all() == 2
    assert fake_http.calls_to("POST", "/alerts/dismiss-all")[0]["json"] == {"category": "fluid"}
    with pytest.raises(ValueError):
        auth_service.alerts.dismiss_all("sleep")


def test_display_name_check(auth_service, fake_http):
    fake_http.ok("POST", "/community/profile/check-name",
                 {"available": False, "slug": "kidneywarrior", "reason": "Display name is already taken"})

    result = auth_service.community.check_display_name("  KidneyWarrior ")

    assert result == {"available": False, "slug": "kidneywarrior", "reason": "Display name is already taken"}
    assert fake_http.calls[0]["json"] == {"displayName": "KidneyWarrior"}


def test_hcp_application_payload(auth_service, fake_http):
    fake_http.ok("POST", "/hcp/apply", {"request": {"_id": "r1", "status": "pending", "badgeType": "nurse"}})

    request = auth_service.community.submit_verification({
        "full_name": " Dana Cole ",
        "professional_title": "Dialysis Nurse",
        "badge_type": "nurse",
        "years_of_experience": 12.0,
        "document_urls": ["https://example.com/license.pdf"],
    })

    assert request.status == "pending"
    assert fake_http.calls[0]["json"] == {
        "fullName": "Dana Cole",
        "professionalTitle": "Dialysis Nurse",
        "badgeType": "nurse",
        "yearsExperience": 12,
        "documentUrls": ["https://example.com/license.pdf"],
    }
    with pytest.raises(ValidationError):
        auth_service.community.submit_verification(
            {"full_name": "Dana", "professional_title": "Nurse", "badge_type": "wizard"}
        )
