"""
This module defines the data models used by the DialysisLive client.

The classes mirror the request/response shapes of the DialysisLive API. They are
transient copies: the server owns every record, and the client only keeps them for
the duration of a page view. Each class has a `from_api` constructor that maps the
API's camelCase fields (and Mongo-style `_id`) to Python attributes.
"""
# dialysislive/models.py


def _id(data):
    return data.get("_id") or data.get("id")


def _ref(value):
    """Splits a reference that may be a populated document or a bare id."""
    if isinstance(value, dict):
        return _id(value), value
    return value, None


class User:
    """Represents the signed-in account.

    Attributes:
        user_id (str): The account ID.
        email (str): The login email.
        full_name (str): The user's name from their profile, if set.
        status (str): The account status reported by the server.
        onboarding_completed (bool): Whether onboarding has been finished.
        units (str): The preferred unit system ('metric' or 'imperial').
        timezone (str): The user's IANA time zone, if set.
    """
    def __init__(self, user_id, email, full_name=None, status=None, onboarding_completed=False,
                 units="metric", timezone=None):
        self.user_id = user_id
        self.email = email
        self.full_name = full_name
        self.status = status
        self.onboarding_completed = onboarding_completed
        self.units = units
        self.timezone = timezone

    @property
    def display_name(self):
        return self.full_name or self.email

    @classmethod
    def from_api(cls, data):
        user = data.get("user") or {}
        profile = data.get("profile") or {}
        return cls(
            user_id=_id(user),
            email=user.get("email"),
            full_name=profile.get("fullName"),
            status=user.get("status"),
            onboarding_completed=bool(user.get("onboardingCompleted")),
            units=profile.get("units") or "metric",
            timezone=profile.get("timezone"),
        )


class CommunityProfile:
    """Represents a user's public community identity."""
    def __init__(self, profile_id, display_name, display_name_slug=None, bio=None, avatar_url=None,
                 is_hcp=False, hcp_verified=False, hcp_badge_type=None, total_posts=0,
                 total_replies=0, total_helpful=0, joined_at=None, is_banned=False):
        self.profile_id = profile_id
        self.display_name = display_name
        self.display_name_slug = display_name_slug
        self.bio = bio
        self.avatar_url = avatar_url
        self.is_hcp = is_hcp
        self.hcp_verified = hcp_verified
        self.hcp_badge_type = hcp_badge_type
        self.total_posts = total_posts
        self.total_replies = total_replies
        self.total_helpful = total_helpful
        self.joined_at = joined_at
        self.is_banned = is_banned

    @classmethod
    def from_api(cls, data):
        return cls(
            profile_id=_id(data),
            display_name=data.get("displayName", ""),
            display_name_slug=data.get("displayNameSlug"),
            bio=data.get("bio"),
            avatar_url=data.get("avatarUrl"),
            is_hcp=bool(data.get("isHCP")),
            hcp_verified=bool(data.get("hcpVerified")),
            hcp_badge_type=data.get("hcpBadgeType"),
            total_posts=data.get("totalPosts", 0),
            total_replies=data.get("totalReplies", 0),
            total_helpful=data.get("totalHelpful", 0),
            joined_at=data.get("joinedCommunityAt"),
            is_banned=bool(data.get("isBanned")),
        )


class ForumCategory:
    def __init__(self, category_id, name, slug, description="", is_hcp_only=False, post_count=0):
        self.category_id = category_id
        self.name = name
        self.slug = slug
        self.description = description
        self.is_hcp_only = is_hcp_only
        self.post_count = post_count

    @classmethod
    def from_api(cls, data):
        return cls(
            category_id=_id(data),
            name=data.get("name", ""),
            slug=data.get("slug", ""),
            description=data.get("description", ""),
            is_hcp_only=bool(data.get("isHCPOnly")),
            post_count=data.get("postCount", 0),
        )


class ForumPost:
    """Represents a forum thread.

    Attributes:
        post_id (str): The post ID.
        slug (str): The URL slug used to fetch the post.
        author_id (str): The ID of the author's community profile.
        author (CommunityProfile): The populated author profile, when the API sends one.
        category_id (str): The ID of the category the post belongs to.
        helpful_count (int): How many users marked the post helpful.
        is_locked (bool): If True, no new replies are accepted.
    """
    def __init__(self, post_id, title, content, slug=None, author_id=None, author=None, category_id=None,
                 tags=None, is_pinned=False, is_locked=False, view_count=0, reply_count=0,
                 helpful_count=0, status="active", created_at=None):
        self.post_id = post_id
        self.title = title
        self.content = content
        self.slug = slug
        self.author_id = author_id
        self.author = author
        self.category_id = category_id
        self.tags = tags or []
        self.is_pinned = is_pinned
        self.is_locked = is_locked
        self.view_count = view_count
        self.reply_count = reply_count
        self.helpful_count = helpful_count
        self.status = status
        self.created_at = created_at

    @classmethod
    def from_api(cls, data):
        author_id, author = _ref(data.get("authorId"))
        category_id, _ = _ref(data.get("categoryId"))
        return cls(
            post_id=_id(data),
            title=data.get("title", ""),
            content=data.get("content", ""),
            slug=data.get("slug"),
            author_id=author_id,
            author=CommunityProfile.from_api(author) if author else None,
            category_id=category_id,
            tags=list(data.get("tags") or []),
            is_pinned=bool(data.get("isPinned")),
            is_locked=bool(data.get("isLocked")),
            view_count=data.get("viewCount", 0),
            reply_count=data.get("replyCount", 0),
            helpful_count=data.get("helpfulCount", 0),
            status=data.get("status", "active"),
            created_at=data.get("createdAt"),
        )


class ForumReply:
    """Represents a reply in a forum thread."""
    def __init__(self, reply_id, post_id, content, author_id=None, author=None, parent_reply_id=None,
                 is_hcp_response=False, is_accepted_answer=False, helpful_count=0, is_edited=False,
                 created_at=None):
        self.reply_id = reply_id
        self.post_id = post_id
        self.content = content
        self.author_id = author_id
        self.author = author
        self.parent_reply_id = parent_reply_id
        self.is_hcp_response = is_hcp_response
        self.is_accepted_answer = is_accepted_answer
        self.helpful_count = helpful_count
        self.is_edited = is_edited
        self.created_at = created_at

    @classmethod
    def from_api(cls, data):
        author_id, author = _ref(data.get("authorId"))
        return cls(
            reply_id=_id(data),
            post_id=data.get("postId"),
            content=data.get("content", ""),
            author_id=author_id,
            author=CommunityProfile.from_api(author) if author else None,
            parent_reply_id=data.get("parentReplyId"),
            is_hcp_response=bool(data.get("isHCPResponse")),
            is_accepted_answer=bool(data.get("isAcceptedAnswer")),
            helpful_count=data.get("helpfulCount", 0),
            is_edited=bool(data.get("isEdited")),
            created_at=data.get("createdAt"),
        )


class SuccessStory:
    def __init__(self, story_id, title, content, slug=None, author_id=None, author=None, excerpt=None,
                 tags=None, milestone_type=None, dialysis_duration=None, status="pending",
                 like_count=0, view_count=0, is_featured=False, published_at=None):
        self.story_id = story_id
        self.title = title
        self.content = content
        self.slug = slug
        self.author_id = author_id
        self.author = author
        self.excerpt = excerpt
        self.tags = tags or []
        self.milestone_type = milestone_type
        self.dialysis_duration = dialysis_duration
        self.status = status
        self.like_count = like_count
        self.view_count = view_count
        self.is_featured = is_featured
        self.published_at = published_at

    @classmethod
    def from_api(cls, data):
        author_id, author = _ref(data.get("authorId"))
        return cls(
            story_id=_id(data),
            title=data.get("title", ""),
            content=data.get("content", ""),
            slug=data.get("slug"),
            author_id=author_id,
            author=CommunityProfile.from_api(author) if author else None,
            excerpt=data.get("excerpt"),
            tags=list(data.get("tags") or []),
            milestone_type=data.get("milestoneType"),
            dialysis_duration=data.get("dialysisDuration"),
            status=data.get("status", "pending"),
            like_count=data.get("likeCount", 0),
            view_count=data.get("viewCount", 0),
            is_featured=bool(data.get("isFeatured")),
            published_at=data.get("publishedAt"),
        )


class HCPVerificationRequest:
    """Represents an application for a verified healthcare-professional badge."""
    def __init__(self, request_id, status, badge_type, rejection_reason=None, created_at=None, reviewed_at=None):
        self.request_id = request_id
        self.status = status
        self.badge_type = badge_type
        self.rejection_reason = rejection_reason
        self.created_at = created_at
        self.reviewed_at = reviewed_at

    @classmethod
    def from_api(cls, data):
        return cls(
            request_id=_id(data),
            status=data.get("status", "pending"),
            badge_type=data.get("badgeType"),
            rejection_reason=data.get("rejectionReason"),
            created_at=data.get("createdAt"),
            reviewed_at=data.get("reviewedAt"),
        )


class DialysisSession:
    """Represents a single dialysis treatment.

    Weights are in kilograms, UF volumes in millilitres and durations in minutes,
    regardless of the user's display units.
    """
    def __init__(self, session_id, mode, dialysis_type, status, started_at, ended_at=None,
                 planned_duration_min=None, actual_duration_min=None, pre_weight_kg=None,
                 post_weight_kg=None, target_uf_ml=None, actual_uf_ml=None, pre_bp_systolic=None,
                 pre_bp_diastolic=None, post_bp_systolic=None, post_bp_diastolic=None,
                 pre_heart_rate=None, post_heart_rate=None, session_rating=None, notes=None,
                 complications=None, location_name=None, machine_name=None):
        self.session_id = session_id
        self.mode = mode
        self.dialysis_type = dialysis_type
        self.status = status
        self.started_at = started_at
        self.ended_at = ended_at
        self.planned_duration_min = planned_duration_min
        self.actual_duration_min = actual_duration_min
        self.pre_weight_kg = pre_weight_kg
        self.post_weight_kg = post_weight_kg
        self.target_uf_ml = target_uf_ml
        self.actual_uf_ml = actual_uf_ml
        self.pre_bp_systolic = pre_bp_systolic
        self.pre_bp_diastolic = pre_bp_diastolic
        self.post_bp_systolic = post_bp_systolic
        self.post_bp_diastolic = post_bp_diastolic
        self.pre_heart_rate = pre_heart_rate
        self.post_heart_rate = post_heart_rate
        self.session_rating = session_rating
        self.notes = notes
        self.complications = complications or []
        self.location_name = location_name
        self.machine_name = machine_name

    @property
    def is_active(self) -> bool:
        return self.status in ("started", "in_progress")

    @property
    def weight_loss_kg(self):
        if self.pre_weight_kg is None or self.post_weight_kg is None:
            return None
        return round(self.pre_weight_kg - self.post_weight_kg, 2)

    @classmethod
    def from_api(cls, data):
        return cls(
            session_id=_id(data),
            mode=data.get("mode"),
            dialysis_type=data.get("type"),
            status=data.get("status"),
            started_at=data.get("startedAt"),
            ended_at=data.get("endedAt"),
            planned_duration_min=data.get("plannedDurationMin"),
            actual_duration_min=data.get("actualDurationMin"),
            pre_weight_kg=data.get("preWeightKg"),
            post_weight_kg=data.get("postWeightKg"),
            target_uf_ml=data.get("targetUfMl"),
            actual_uf_ml=data.get("actualUfMl"),
            pre_bp_systolic=data.get("preBpSystolic"),
            pre_bp_diastolic=data.get("preBpDiastolic"),
            post_bp_systolic=data.get("postBpSystolic"),
            post_bp_diastolic=data.get("postBpDiastolic"),
            pre_heart_rate=data.get("preHeartRate"),
            post_heart_rate=data.get("postHeartRate"),
            session_rating=data.get("sessionRating"),
            notes=data.get("notes"),
            complications=list(data.get("complications") or []),
            location_name=data.get("locationName"),
            machine_name=data.get("machineName"),
        )


class SessionEvent:
    def __init__(self, event_id, session_id, timestamp, event_type, payload=None):
        self.event_id = event_id
        self.session_id = session_id
        self.timestamp = timestamp
        self.event_type = event_type
        self.payload = payload or {}

    @classmethod
    def from_api(cls, data):
        return cls(
            event_id=_id(data),
            session_id=data.get("sessionId"),
            timestamp=data.get("timestamp"),
            event_type=data.get("eventType"),
            payload=data.get("payload") or {},
        )


class VitalRecord:
    """Represents one vitals reading, which may combine several measurements.

    Attributes:
        blood_pressure (dict): `{"systolic": int, "diastolic": int}` in mmHg.
        heart_rate (int): Beats per minute.
        temperature (dict): `{"value": float, "unit": "celsius" | "fahrenheit"}`.
        spo2 (int): Oxygen saturation percentage.
        blood_sugar (dict): `{"value": float, "unit": "mg/dL" | "mmol/L", "timing": str}`.
        weight (dict): `{"value": float, "unit": "kg" | "lbs"}`.
    """
    def __init__(self, record_id, logged_at, session_id=None, blood_pressure=None, heart_rate=None,
                 temperature=None, spo2=None, blood_sugar=None, weight=None, respiratory_rate=None,
                 notes=None, source="manual"):
        self.record_id = record_id
        self.logged_at = logged_at
        self.session_id = session_id
        self.blood_pressure = blood_pressure
        self.heart_rate = heart_rate
        self.temperature = temperature
        self.spo2 = spo2
        self.blood_sugar = blood_sugar
        self.weight = weight
        self.respiratory_rate = respiratory_rate
        self.notes = notes
        self.source = source

    @classmethod
    def from_api(cls, data):
        return cls(
            record_id=_id(data),
            logged_at=data.get("loggedAt"),
            session_id=data.get("sessionId"),
            blood_pressure=data.get("bloodPressure"),
            heart_rate=data.get("heartRate"),
            temperature=data.get("temperature"),
            spo2=data.get("spo2"),
            blood_sugar=data.get("bloodSugar"),
            weight=data.get("weight"),
            respiratory_rate=data.get("respiratoryRate"),
            notes=data.get("notes"),
            source=data.get("source", "manual"),
        )


class SymptomLog:
    """Represents one logged symptom with a 1-5 severity."""
    def __init__(self, log_id, symptom_type, severity, logged_at, session_id=None, notes=None):
        self.log_id = log_id
        self.symptom_type = symptom_type
        self.severity = severity
        self.logged_at = logged_at
        self.session_id = session_id
        self.notes = notes

    @classmethod
    def from_api(cls, data):
        return cls(
            log_id=_id(data),
            symptom_type=data.get("symptomType"),
            severity=data.get("severity"),
            logged_at=data.get("loggedAt"),
            session_id=data.get("sessionId"),
            notes=data.get("notes"),
        )


class Meal:
    """Represents a logged meal. Nutrients are in mg, except protein in g."""
    def __init__(self, meal_id, meal_type, name, nutrients=None, logged_at=None, description=None,
                 serving_size=None, image_url=None, ai_analyzed=False, notes=None):
        self.meal_id = meal_id
        self.meal_type = meal_type
        self.name = name
        self.nutrients = nutrients or {}
        self.logged_at = logged_at
        self.description = description
        self.serving_size = serving_size
        self.image_url = image_url
        self.ai_analyzed = ai_analyzed
        self.notes = notes

    @classmethod
    def from_api(cls, data):
        return cls(
            meal_id=_id(data),
            meal_type=data.get("mealType"),
            name=data.get("name", ""),
            nutrients=dict(data.get("nutrients") or {}),
            logged_at=data.get("loggedAt"),
            description=data.get("description"),
            serving_size=data.get("servingSize"),
            image_url=data.get("imageUrl"),
            ai_analyzed=bool(data.get("aiAnalyzed")),
            notes=data.get("notes"),
        )


class FluidLog:
    def __init__(self, log_id, amount_ml, source, logged_at, notes=None):
        self.log_id = log_id
        self.amount_ml = amount_ml
        self.source = source
        self.logged_at = logged_at
        self.notes = notes

    @classmethod
    def from_api(cls, data):
        return cls(
            log_id=_id(data),
            amount_ml=data.get("amountMl", 0),
            source=data.get("source", "other"),
            logged_at=data.get("loggedAt"),
            notes=data.get("notes"),
        )


class WeightLog:
    def __init__(self, log_id, weight_kg, context, logged_at, session_id=None, notes=None):
        self.log_id = log_id
        self.weight_kg = weight_kg
        self.context = context
        self.logged_at = logged_at
        self.session_id = session_id
        self.notes = notes

    @classmethod
    def from_api(cls, data):
        return cls(
            log_id=_id(data),
            weight_kg=data.get("weightKg"),
            context=data.get("context"),
            logged_at=data.get("loggedAt"),
            session_id=data.get("sessionId"),
            notes=data.get("notes"),
        )


class Alert:
    """Represents a server-generated health alert."""
    def __init__(self, alert_id, alert_type, category, severity, status, title, message,
                 value=None, threshold=None, unit=None, created_at=None):
        self.alert_id = alert_id
        self.alert_type = alert_type
        self.category = category
        self.severity = severity
        self.status = status
        self.title = title
        self.message = message
        self.value = value
        self.threshold = threshold
        self.unit = unit
        self.created_at = created_at

    @classmethod
    def from_api(cls, data):
        return cls(
            alert_id=_id(data),
            alert_type=data.get("type"),
            category=data.get("category"),
            severity=data.get("severity", "low"),
            status=data.get("status", "active"),
            title=data.get("title", ""),
            message=data.get("message", ""),
            value=data.get("value"),
            threshold=data.get("threshold"),
            unit=data.get("unit"),
            created_at=data.get("createdAt"),
        )
