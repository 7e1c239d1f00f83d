"""
System tests for the DialysisLive application.

These tests simulate complete user journeys through the `DialysisLiveService`, from
signing in to finishing a dialysis session or taking part in a forum thread, and
check every request the journey sends along the way.
"""
import pytest

from dialysislive.errors import SubscriptionLimitError, ValidationError
from dialysislive.forms import FormState
from dialysislive.sessions import DialysisType
from dialysislive.units import IMPERIAL
from dialysislive.validation import validate_symptom

from conftest import profile_payload, session_payload, user_payload

STRONG_PASSWORD = "V4lid!Pass"


def test_full_session_workflow(service, fake_http):
    """
    Tests the whole session journey: sign in, start a session from the setup form,
    then finish it with the post-dialysis form and no measured post weight.

    The post weight is estimated from the pre weight and the fluid removed, and
    both the pre and post readings are recorded as vitals and weight logs.
    """
    fake_http.ok("POST", "/auth/login", dict(
        user_payload(), tokens={"accessToken": "access-1", "refreshToken": "refresh-1"}))
    fake_http.ok("POST", "/dialysis/sessions", {"session": session_payload("s1")})
    fake_http.ok("PATCH", "/dialysis/sessions/s1", {"session": session_payload(
        "s1", status="in_progress", preWeightKg=76.5, targetUfMl=2500)})
    fake_http.ok("POST", "/vitals/record", {"vitalRecord": {"_id": "v1"}})
    fake_http.ok("POST", "/weights", {"weightLog": {"_id": "w1"}})
    fake_http.ok("POST", "/dialysis/sessions/s1/end", {"session": session_payload(
        "s1", status="completed", preWeightKg=76.5, postWeightKg=74.1, targetUfMl=2500,
        actualUfMl=2400, actualDurationMin=238)})

    service.auth.login("sam@example.com", STRONG_PASSWORD)

    session = service.workflow.start({
        "dialysis_type": DialysisType.IN_CENTER_HD,
        "pre_weight": 76.5,
        "target_uf": 2500,
        "pre_systolic": 135,
        "pre_diastolic": 85,
        "pre_heart_rate": 76,
        "planned_duration": 240,
    })

    assert session.is_active
    assert session.pre_weight_kg == 76.5

    ended = service.workflow.finish(session, {
        "post_weight": None,
        "actual_uf": 2400,
        "post_systolic": 118,
        "post_diastolic": 76,
        "post_heart_rate": 70,
        "rating": "good",
    })

    assert ended.status == "completed"
    assert ended.weight_loss_kg == 2.4

    assert [(c["method"], c["path"]) for c in fake_http.calls] == [
        ("POST", "/auth/login"),
        ("POST", "/dialysis/sessions"),
        ("PATCH", "/dialysis/sessions/s1"),
        ("POST", "/vitals/record"),
        ("POST", "/weights"),
        ("POST", "/dialysis/sessions/s1/end"),
        ("POST", "/vitals/record"),
        ("POST", "/weights"),
    ]
    create, patch = fake_http.calls[1]["json"], fake_http.calls[2]["json"]
    assert create == {"mode": "home", "type": "in_center_hd", "plannedDurationMin": 240}
    assert patch == {"preWeightKg": 76.5, "targetUfMl": 2500, "preBpSystolic": 135,
                     "preBpDiastolic": 85, "preHeartRate": 76}

    pre_vitals, post_vitals = [c["json"] for c in fake_http.calls_to("POST", "/vitals/record")]
    assert pre_vitals == {"bloodPressure": {"systolic": 135, "diastolic": 85}, "heartRate": 76, "sessionId": "s1"}
    assert post_vitals["bloodPressure"] == {"systolic": 118, "diastolic": 76}

    pre_weight, post_weight = [c["json"] for c in fake_http.calls_to("POST", "/weights")]
    assert pre_weight == {"weightKg": 76.5, "context": "pre_dialysis", "sessionId": "s1"}
    assert post_weight == {"weightKg": 74.1, "context": "post_dialysis", "sessionId": "s1"}

    end = fake_http.calls_to("POST", "/dialysis/sessions/s1/end")[0]["json"]
    assert end["postWeightKg"] == 74.1
    assert end["actualUfMl"] == 2400
    assert end["sessionRating"] == "good"


def test_session_workflow_converts_imperial_input(auth_service, fake_http):
    fake_http.ok("POST", "/dialysis/sessions", {"session": session_payload("s2")})
    fake_http.ok("PATCH", "/dialysis/sessions/s2", {"session": session_payload("s2", preWeightKg=80.0)})
    fake_http.ok("POST", "/vitals/record", {"vitalRecord": {"_id": "v1"}})
    fake_http.ok("POST", "/weights", {"weightLog": {"_id": "w1"}})

    auth_service.workflow.start({
        "pre_weight": 176.4, "target_uf": 84.5, "pre_systolic": 128, "pre_diastolic": 82,
        "pre_heart_rate": 70, "planned_duration": 240,
    }, IMPERIAL)

    patch = fake_http.calls_to("PATCH", "/dialysis/sessions/s2")[0]["json"]
    assert patch["preWeightKg"] == pytest.approx(80.01, abs=0.01)
    assert patch["targetUfMl"] == pytest.approx(2498.96, abs=0.01)


def test_invalid_setup_sends_nothing(auth_service, fake_http):
    with pytest.raises(ValidationError) as excinfo:
        auth_service.workflow.start({"pre_weight": None, "target_uf": 2500, "planned_duration": 240})

    assert excinfo.value.errors == ["Pre-dialysis weight is required"]
    assert fake_http.calls == []


def test_symptom_form_reports_plan_limit(auth_service, fake_http):
    """
    Tests that a submission blocked by the plan limit is kept on the form for the
    page to show, together with the numbers needed for the upgrade message.
    """
    fake_http.fail("POST", "/symptoms", 403, "Monthly symptom log limit reached", code="SUB_001",
                   details={"resource": "symptomLogs", "current": 30, "limit": 30})
    form = FormState(validate_symptom, {"symptom_type": "nausea", "severity": 2})

    assert form.submit(lambda v: auth_service.symptoms.create_log(v["symptom_type"], v["severity"])) is None

    assert isinstance(form.limit_error, SubscriptionLimitError)
    assert form.limit_error.current == 30
    assert not form.in_flight


def test_forum_thread_interactions(auth_service, fake_http):
    """
    Tests a forum thread end to end: load it, mark the post and a reply helpful,
    accept an answer, report a reply and post a new reply.

    Helpful counts and the accepted-answer flags are updated locally without
    reloading the thread.
    """
    author = profile_payload("p1", "KidneyWarrior")
    fake_http.ok("GET", "/forums/posts/cramps-after-dialysis", {
        "post": {"_id": "post1", "title": "Cramps after dialysis", "content": "Any tips?",
                 "slug": "cramps-after-dialysis", "authorId": author, "helpfulCount": 1, "replyCount": 2},
        "replies": [
            {"_id": "r1", "postId": "post1", "content": "Stretch", "helpfulCount": 0, "isAcceptedAnswer": True},
            {"_id": "r2", "postId": "post1", "content": "Ask about your dry weight", "helpfulCount": 4,
             "isHCPResponse": True},
        ],
    })
    fake_http.ok("POST", "/forums/helpful", {"helpful": True})
    fake_http.ok("POST", "/forums/replies/r2/accept", {"reply": {"_id": "r2", "isAcceptedAnswer": True}})
    fake_http.ok("POST", "/forums/report", {})
    fake_http.ok("POST", "/forums/posts/post1/replies", {"reply": {"_id": "r3", "postId": "post1", "content": "Thanks!"}})

    post, replies = auth_service.community.get_post("cramps-after-dialysis")
    assert post.author.display_name == "KidneyWarrior"

    auth_service.community.mark_helpful(post)
    auth_service.community.mark_helpful(replies[1])
    assert post.helpful_count == 2
    assert replies[1].helpful_count == 5
    assert [c["json"] for c in fake_http.calls_to("POST", "/forums/helpful")] == [
        {"type": "post", "id": "post1"},
        {"type": "reply", "id": "r2"},
    ]

    auth_service.community.accept_answer("r2", replies)
    assert [r.is_accepted_answer for r in replies] == [False, True]

    auth_service.community.report_content("forum_reply", "r1", "misinformation", "  Not accurate  ")
    assert fake_http.calls_to("POST", "/forums/report")[0]["json"] == {
        "contentType": "forum_reply", "contentId": "r1", "reason": "misinformation", "description": "Not accurate",
    }
    with pytest.raises(ValidationError):
        auth_service.community.report_content("forum_reply", "r1", "")

    reply = auth_service.community.create_reply(post.post_id, "  Thanks!  ")
    assert reply.reply_id == "r3"
    assert fake_http.calls_to("POST", "/forums/posts/post1/replies")[0]["json"] == {"content": "Thanks!"}
    with pytest.raises(ValidationError):
        auth_service.community.create_reply(post.post_id, "   ")


def test_story_can_only_be_liked_once(auth_service, fake_http):
    fake_http.ok("GET", "/success-stories/ten-years", {"story": {
        "_id": "st1", "title": "Ten years on dialysis", "content": "...", "slug": "ten-years", "likeCount": 9}})
    fake_http.ok("POST", "/success-stories/st1/like", {"likeCount": 10})

    story = auth_service.community.get_story("ten-years")

    assert auth_service.community.like_story(story) is True
    assert auth_service.community.like_story(story) is False
    assert story.like_count == 10
    assert auth_service.community.has_liked(story)
    assert len(fake_http.calls_to("POST", "/success-stories/st1/like")) == 1


def test_profile_creation_and_hcp_status(auth_service, fake_http):
    fake_http.ok("GET", "/community/profile", {"hasProfile": False})
    fake_http.ok("POST", "/community/profile", {"profile": profile_payload("p5", "RenalRunner")})
    fake_http.ok("GET", "/hcp/status", {
        "hasProfile": True, "isVerified": False,
        "request": {"_id": "hr1", "status": "more_info_needed", "badgeType": "dietitian"},
    })

    assert auth_service.community.get_profile() is None
    with pytest.raises(ValidationError):
        auth_service.community.create_profile("RR")
    profile = auth_service.community.create_profile("RenalRunner", "Runner on home HD")
    assert profile.profile_id == "p5"
    assert fake_http.calls_to("POST", "/community/profile")[0]["json"] == {
        "displayName": "RenalRunner", "bio": "Runner on home HD",
    }

    status = auth_service.community.verification_status()
    assert status["has_profile"] is True
    assert status["request"].status == "more_info_needed"


def test_session_workflow_parses_text_values(auth_service, fake_http):
    """
    Tests that numbers passed to the workflow as text are parsed before validation,
    and that text which is not a finite number stops the workflow before any request.
    """
    fake_http.ok("POST", "/dialysis/sessions", {"session": session_payload("s3")})
    fake_http.ok("PATCH", "/dialysis/sessions/s3", {"session": session_payload("s3", preWeightKg=76.5)})
    fake_http.ok("POST", "/vitals/record", {"vitalRecord": {"_id": "v1"}})
    fake_http.ok("POST", "/weights", {"weightLog": {"_id": "w1"}})

    with pytest.raises(ValidationError) as excinfo:
        auth_service.workflow.start({"pre_weight": "nan", "target_uf": "2500", "pre_heart_rate": "inf"})
    assert excinfo.value.errors == ["Pre-dialysis weight must be a number", "Heart rate must be a number"]
    assert fake_http.calls == []

    auth_service.workflow.start({
        "pre_weight": " 76.5 ", "target_uf": "2500", "pre_systolic": "130", "pre_diastolic": "80",
        "pre_heart_rate": "", "planned_duration": 240,
    })

    patch = fake_http.calls_to("PATCH", "/dialysis/sessions/s3")[0]["json"]
    assert patch == {"preWeightKg": 76.5, "targetUfMl": 2500.0, "preBpSystolic": 130.0, "preBpDiastolic": 80.0}
