"""
This module provides the community features of DialysisLive.

It defines the `CommunityService` class, which is responsible for:
- The user's community profile (display name, bio) and public profiles of others.
- Forum categories, posts and replies, including reporting content.
- Marking posts or replies helpful and accepting an answer. These update the local
  copies optimistically once the server has confirmed the action.
- Success stories, including likes.
- Healthcare professional (HCP) verification requests.
"""
# dialysislive/community.py

import logging

from dialysislive.errors import ValidationError
from dialysislive.models import (
    CommunityProfile,
    ForumCategory,
    ForumPost,
    ForumReply,
    HCPVerificationRequest,
    SuccessStory,
)
from dialysislive.validation import (
    validate_community_profile,
    validate_forum_post,
    validate_forum_reply,
    validate_hcp_application,
    validate_story,
)

logger = logging.getLogger(__name__)

HCP_BADGE_LABELS = {
    "nephrologist": "Nephrologist",
    "nurse": "Nurse",
    "dietitian": "Dietitian",
    "social_worker": "Social Worker",
    "pharmacist": "Pharmacist",
    "technician": "Technician",
    "other": "Healthcare Professional",
}

MILESTONE_LABELS = {
    "dialysis_anniversary": ("Dialysis Anniversary", "🎉"),
    "transplant": ("Transplant", "💝"),
    "health_improvement": ("Health Improvement", "📈"),
    "lifestyle_achievement": ("Lifestyle Achievement", "🏆"),
    "personal_goal": ("Personal Goal", "🎯"),
    "other": ("Other", "⭐"),
}

REPORT_REASONS = {
    "spam": ("Spam", "Unwanted promotional content or repetitive posts"),
    "harassment": ("Harassment", "Bullying, threats, or targeted attacks"),
    "misinformation": ("Misinformation", "False or misleading health information"),
    "inappropriate": ("Inappropriate", "Offensive language or content"),
    "personal_info": ("Personal Info", "Sharing private information without consent"),
    "other": ("Other", "Other violation not listed above"),
}

REPORT_CONTENT_TYPES = ("forum_post", "forum_reply")
POST_SORTS = ("recent", "popular", "unanswered")


def _without_none(payload):
    return {k: v for k, v in payload.items() if v is not None}


def _raise_if_invalid(errors):
    if errors:
        raise ValidationError(errors)


class CommunityService:
    """Wraps the community, forum, success story and HCP endpoints."""
    def __init__(self, client):
        self.client = client
        self._liked_story_ids = set()

    # Profiles

    def get_profile(self):
        """Returns the user's own community profile, or None if they have not created one."""
        data = self.client.get_data("/community/profile")
        if not data.get("hasProfile") or not data.get("profile"):
            return None
        return CommunityProfile.from_api(data["profile"])

    def create_profile(self, display_name, bio=None) -> CommunityProfile:
        _raise_if_invalid(validate_community_profile({"display_name": display_name, "bio": bio}))
        payload = _without_none({"displayName": display_name.strip(), "bio": bio or None})
        data = self.client.post_data("/community/profile", json=payload, key="profile")
        return CommunityProfile.from_api(data)

    def update_profile(self, display_name=None, bio=None, avatar_url=None) -> CommunityProfile:
        if display_name is not None or bio is not None:
            errors = validate_community_profile({"display_name": display_name, "bio": bio})
            if display_name is None:
                errors = [e for e in errors if not e.startswith("Display name")]
            _raise_if_invalid(errors)
        payload = _without_none({
            "displayName": display_name.strip() if display_name else None,
            "bio": bio,
            "avatarUrl": avatar_url,
        })
        data = self.client.patch_data("/community/profile", json=payload, key="profile")
        return CommunityProfile.from_api(data)

    def get_public_profile(self, slug) -> CommunityProfile:
        return CommunityProfile.from_api(self.client.get_data(f"/community/profile/{slug}", key="profile"))

    def check_display_name(self, display_name) -> dict:
        """Asks the server whether a display name is free.

        Returns:
            dict: `{"available": bool, "slug": str, "reason": str | None}`.
        """
        data = self.client.post_data("/community/profile/check-name", json={"displayName": display_name.strip()})
        return {
            "available": bool(data.get("available")),
            "slug": data.get("slug"),
            "reason": data.get("reason"),
        }

    # Forums

    def get_categories(self):
        data = self.client.get_data("/forums/categories")
        return [ForumCategory.from_api(c) for c in data.get("categories", [])]

    def get_category(self, slug, limit=None, offset=None, sort=None):
        """Returns `(ForumCategory, list[ForumPost])` for the category with `slug`."""
        data = self.client.get_data(f"/forums/categories/{slug}",
                                    params={"limit": limit, "offset": offset, "sort": sort})
        return (
            ForumCategory.from_api(data.get("category") or {}),
            [ForumPost.from_api(p) for p in data.get("posts", [])],
        )

    def list_posts(self, category_id=None, tag=None, limit=None, offset=None, sort=None):
        if sort is not None and sort not in POST_SORTS:
            raise ValueError(f"Unknown sort order: {sort}")
        params = {"categoryId": category_id, "tag": tag, "limit": limit, "offset": offset, "sort": sort}
        data = self.client.get_data("/forums/posts", params=params)
        return [ForumPost.from_api(p) for p in data.get("posts", [])]

    def get_post(self, slug):
        """Returns `(ForumPost, list[ForumReply])` for the post with `slug`."""
        data = self.client.get_data(f"/forums/posts/{slug}")
        return (
            ForumPost.from_api(data.get("post") or {}),
            [ForumReply.from_api(r) for r in data.get("replies", [])],
        )

    def create_post(self, category_id, title, content, tags=None) -> ForumPost:
        _raise_if_invalid(validate_forum_post({"category_id": category_id, "title": title, "content": content}))
        payload = _without_none({
            "categoryId": category_id,
            "title": title.strip(),
            "content": content.strip(),
            "tags": tags or None,
        })
        return ForumPost.from_api(self.client.post_data("/forums/posts", json=payload, key="post"))

    def update_post(self, post_id, title=None, content=None, tags=None) -> ForumPost:
        payload = _without_none({"title": title, "content": content, "tags": tags})
        return ForumPost.from_api(self.client.patch_data(f"/forums/posts/{post_id}", json=payload, key="post"))

    def create_reply(self, post_id, content, parent_reply_id=None) -> ForumReply:
        _raise_if_invalid(validate_forum_reply({"content": content}))
        payload = _without_none({"content": content.strip(), "parentReplyId": parent_reply_id})
        data = self.client.post_data(f"/forums/posts/{post_id}/replies", json=payload, key="reply")
        return ForumReply.from_api(data)

    def update_reply(self, reply_id, content) -> ForumReply:
        _raise_if_invalid(validate_forum_reply({"content": content}))
        data = self.client.patch_data(f"/forums/replies/{reply_id}", json={"content": content.strip()}, key="reply")
        return ForumReply.from_api(data)

    def mark_helpful(self, target):
        """Marks a post or reply as helpful and bumps its local count.

        Args:
            target (ForumPost | ForumReply): The item to mark.

        Returns:
            The same object, with `helpful_count` incremented.
        """
        if isinstance(target, ForumPost):
            content_type, content_id = "post", target.post_id
        elif isinstance(target, ForumReply):
            content_type, content_id = "reply", target.reply_id
        else:
            raise TypeError(f"Cannot mark {type(target).__name__} as helpful")
        self.client.post("/forums/helpful", json={"type": content_type, "id": content_id})
        target.helpful_count += 1
        return target

    def accept_answer(self, reply_id, replies):
        """Accepts `reply_id` as the answer and updates the flags on `replies`.

        Only the accepted reply keeps `is_accepted_answer` set afterwards.

        Returns:
            ForumReply: The accepted reply as returned by the server.
        """
        data = self.client.post_data(f"/forums/replies/{reply_id}/accept", key="reply")
        for reply in replies:
            reply.is_accepted_answer = reply.reply_id == reply_id
        return ForumReply.from_api(data) if data else None

    def report_content(self, content_type, content_id, reason, description=None):
        if content_type not in REPORT_CONTENT_TYPES:
            raise ValueError(f"Unknown content type: {content_type}")
        if reason not in REPORT_REASONS:
            raise ValidationError("Please select a reason")
        payload = _without_none({
            "contentType": content_type,
            "contentId": content_id,
            "reason": reason,
            "description": (description or "").strip() or None,
        })
        self.client.post("/forums/report", json=payload)
        logger.info("Reported %s %s for %s", content_type, content_id, reason)

    # Success stories

    def list_stories(self, milestone_type=None, tag=None, limit=None, offset=None):
        params = {"milestoneType": milestone_type, "tag": tag, "limit": limit, "offset": offset}
        data = self.client.get_data("/success-stories", params=params)
        return [SuccessStory.from_api(s) for s in data.get("stories", [])]

    def featured_stories(self):
        data = self.client.get_data("/success-stories/featured")
        return [SuccessStory.from_api(s) for s in data.get("stories", [])]

    def get_story(self, slug) -> SuccessStory:
        return SuccessStory.from_api(self.client.get_data(f"/success-stories/{slug}", key="story"))

    def submit_story(self, title, content, tags=None, milestone_type=None, dialysis_duration=None,
                     photo_urls=None) -> SuccessStory:
        _raise_if_invalid(validate_story({"title": title, "content": content}))
        if milestone_type is not None and milestone_type not in MILESTONE_LABELS:
            raise ValueError(f"Unknown milestone type: {milestone_type}")
        payload = _without_none({
            "title": title.strip(),
            "content": content.strip(),
            "tags": tags or None,
            "milestoneType": milestone_type,
            "dialysisDuration": dialysis_duration or None,
            "photoUrls": photo_urls or None,
        })
        return SuccessStory.from_api(self.client.post_data("/success-stories", json=payload, key="story"))

    def update_story(self, story_id, **changes) -> SuccessStory:
        """PATCHes a story. `changes` use the API's camelCase names."""
        data = self.client.patch_data(f"/success-stories/{story_id}", json=_without_none(changes), key="story")
        return SuccessStory.from_api(data)

    def withdraw_story(self, story_id):
        self.client.delete(f"/success-stories/{story_id}")

    def my_stories(self):
        data = self.client.get_data("/success-stories/my-stories")
        return [SuccessStory.from_api(s) for s in data.get("stories", [])]

    def has_liked(self, story) -> bool:
        return story.story_id in self._liked_story_ids

    def like_story(self, story) -> bool:
        """Likes a story once.

        Returns:
            bool: True if the like was sent and counted, False if the story was
                already liked in this session.
        """
        if self.has_liked(story):
            return False
        self.client.post(f"/success-stories/{story.story_id}/like")
        self._liked_story_ids.add(story.story_id)
        story.like_count += 1
        return True

    # HCP verification

    def submit_verification(self, values: dict) -> HCPVerificationRequest:
        """Applies for a verified HCP badge.

        Args:
            values (dict): The application form, with `full_name`,
                `professional_title`, `badge_type` and optionally `license_number`,
                `license_state`, `employer`, `specialization`,
                `years_of_experience`, `document_urls` and `additional_notes`.
        """
        _raise_if_invalid(validate_hcp_application(values))
        if values["badge_type"] not in HCP_BADGE_LABELS:
            raise ValidationError(f"Unknown badge type: {values['badge_type']}")
        years = values.get("years_of_experience")
        payload = _without_none({
            "fullName": values["full_name"].strip(),
            "professionalTitle": values["professional_title"].strip(),
            "badgeType": values["badge_type"],
            "licenseNumber": values.get("license_number") or None,
            "licenseState": values.get("license_state") or None,
            "employer": values.get("employer") or None,
            "specialization": values.get("specialization") or None,
            "yearsExperience": int(years) if years is not None else None,
            "documentUrls": values.get("document_urls") or None,
            "additionalNotes": values.get("additional_notes") or None,
        })
        data = self.client.post_data("/hcp/apply", json=payload, key="request")
        logger.info("Submitted HCP verification request")
        return HCPVerificationRequest.from_api(data)

    def verification_status(self) -> dict:
        """Returns the user's verification state.

        Returns:
            dict: `has_profile`, `is_verified`, `badge_type`, `verified_at` and
                `request` (an `HCPVerificationRequest` or None).
        """
        data = self.client.get_data("/hcp/status")
        request = data.get("request")
        return {
            "has_profile": bool(data.get("hasProfile")),
            "is_verified": bool(data.get("isVerified")),
            "badge_type": data.get("badgeType"),
            "verified_at": data.get("verifiedAt"),
            "request": HCPVerificationRequest.from_api(request) if request else None,
        }

    def update_verification(self, request_id, document_urls=None, additional_notes=None) -> HCPVerificationRequest:
        payload = _without_none({"documentUrls": document_urls, "additionalNotes": additional_notes})
        data = self.client.patch_data(f"/hcp/apply/{request_id}", json=payload, key="request")
        return HCPVerificationRequest.from_api(data)
