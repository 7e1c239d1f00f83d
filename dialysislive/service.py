"""
This module wires the DialysisLive service layer together.

`DialysisLiveService` owns one `ApiClient` and exposes one typed service per area of
the API. Pages receive this object and never build clients themselves.
"""
# dialysislive/service.py

import logging

from dialysislive.alerts import AlertService
from dialysislive.auth import AuthService
from dialysislive.client import ApiClient
from dialysislive.community import CommunityService
from dialysislive.encryption import TokenStore
from dialysislive.fluid import FluidService
from dialysislive.nutrition import NutritionService
from dialysislive.sessions import SessionService, SessionWorkflow
from dialysislive.subscription import SubscriptionService
from dialysislive.symptoms import SymptomService
from dialysislive.vitals import VitalsService
from dialysislive.weight import WeightService

logger = logging.getLogger(__name__)


class DialysisLiveService:
    """The entry point to every DialysisLive API call made by the app."""
    def __init__(self, settings, token_store=None, session=None):
        """Initializes the client and all sub-services.

        Args:
            settings (Settings): The runtime configuration.
            token_store (TokenStore, optional): Where tokens are kept. Defaults to
                an in-memory store.
            session (requests.Session, optional): The HTTP session to use.
        """
        self.settings = settings
        self.client = ApiClient(
            settings.api_base_url,
            token_store if token_store is not None else TokenStore(),
            timeout=settings.request_timeout,
            session=session,
        )
        self.auth = AuthService(self.client)
        self.sessions = SessionService(self.client)
        self.vitals = VitalsService(self.client)
        self.weight = WeightService(self.client)
        self.fluid = FluidService(self.client)
        self.symptoms = SymptomService(self.client)
        self.nutrition = NutritionService(self.client)
        self.community = CommunityService(self.client)
        self.alerts = AlertService(self.client)
        self.subscription = SubscriptionService(self.client)
        self.workflow = SessionWorkflow(self.sessions, self.vitals, self.weight)
        logger.debug("DialysisLive service configured for %s", settings.api_base_url)

    @property
    def current_user(self):
        return self.auth.current_user

    @property
    def is_authenticated(self) -> bool:
        return self.auth.is_authenticated
