"""Plan, usage and feature lookups, plus the helpers pages use to explain plan limits."""
# dialysislive/subscription.py

PLAN_NAMES = {"free": "Free", "basic": "Basic", "premium": "Premium", "family": "Family"}

FEATURE_NAMES = {
    "sessionHistory": "Session History",
    "basicVitalsMonitoring": "Basic Vitals Monitoring",
    "medicationTracker": "Medication Tracker",
    "symptomsVitalsHub": "Symptoms & Vitals Hub",
    "aiHealthAnalysis": "AI Health Analysis",
    "nutriScanAI": "Nutri-Scan AI",
    "exportData": "Data Export (PDF/CSV)",
    "caregiverAccess": "Caregiver Access",
    "familyDashboard": "Family Dashboard",
}

RESOURCE_NAMES = {
    "sessions": "Dialysis Sessions",
    "weightLogs": "Weight Logs",
    "fluidLogs": "Fluid Logs",
    "vitalRecords": "Vital Records",
    "symptomLogs": "Symptom Logs",
    "medications": "Medications",
    "mealLogs": "Meal Logs",
    "reports": "Reports",
    "aiRequests": "AI Requests",
}


class SubscriptionService:
    def __init__(self, client):
        self.client = client

    def current(self) -> dict:
        return self.client.get_data("/subscription/current", key="subscription") or {}

    def usage(self) -> dict:
        """Returns `{"plan", "features", "usage"}`, where `usage` maps a resource to its counters."""
        return self.client.get_data("/subscription/usage")

    def feature_access(self) -> dict:
        return self.client.get_data("/subscription/features", key="features") or {}


def can_add_resource(usage_item) -> bool:
    return bool(usage_item.get("unlimited")) or usage_item.get("remaining", 0) > 0


def has_feature(features, feature) -> bool:
    return features.get(feature) is True


def plan_name(plan) -> str:
    return PLAN_NAMES.get(plan, plan)


def upgrade_message(resource, current, limit) -> str:
    resource = RESOURCE_NAMES.get(resource, resource)
    return f"You've used {current} of {limit} {resource}. Upgrade to add more."
