"""
This module provides account authentication for the DialysisLive client.

It defines the `AuthService` class, which is responsible for:
- Registering new accounts and signing in with email/password or a Google ID token.
- Storing the access and refresh tokens returned by the API in the `TokenStore`.
- Loading the current user (`/auth/me`) and refreshing tokens on demand.
- Logging out, which always clears the local tokens.

Passwords are never stored by the client. Strength is checked before registration so
that the user gets immediate feedback.
"""
# dialysislive/auth.py

import logging

from dialysislive.errors import ApiError, ValidationError
from dialysislive.models import User
from dialysislive.validation import validate_registration

logger = logging.getLogger(__name__)


class AuthService:
    """Signs the user in and out of the DialysisLive API."""
    def __init__(self, client):
        """Initializes the service.

        Args:
            client (ApiClient): The shared API client. Its token store is the one
                updated by this service.
        """
        self.client = client
        self.current_user = None

    @property
    def is_authenticated(self) -> bool:
        return self.client.tokens.is_authenticated

    def _store_session(self, body) -> User:
        data = body.get("data") or {}
        tokens = data.get("tokens")
        if tokens and tokens.get("accessToken") and tokens.get("refreshToken"):
            self.client.tokens.set_tokens(tokens["accessToken"], tokens["refreshToken"])
        if data.get("user"):
            self.current_user = User.from_api(data)
        return self.current_user

    def register(self, email, password, full_name) -> User:
        """Creates a new account and signs it in.

        Args:
            email (str): The login email.
            password (str): The plaintext password. It must be strong.
            full_name (str): The user's name.

        Returns:
            User: The newly registered user.

        Raises:
            ValidationError: If the email or password is not acceptable.
            ApiError: If the server rejects the registration.
        """
        errors = validate_registration({"email": email, "password": password})
        if not (full_name or "").strip():
            errors.append("Full name is required")
        if errors:
            raise ValidationError(errors)
        body = self.client.request(
            "POST", "/auth/register",
            json={"email": email.strip(), "password": password, "fullName": full_name.strip()},
            auth=False,
        )
        logger.info("Registered a new account")
        return self._store_session(body)

    def login(self, email, password) -> User:
        """Signs in with email and password.

        Returns:
            User: The signed-in user.

        Raises:
            ApiError: If the credentials are rejected.
        """
        body = self.client.request(
            "POST", "/auth/login", json={"email": email.strip(), "password": password}, auth=False
        )
        return self._store_session(body)

    def google_auth(self, id_token) -> User:
        """Signs in with a Google ID token obtained by the browser."""
        body = self.client.request("POST", "/auth/google", json={"idToken": id_token}, auth=False)
        return self._store_session(body)

    def me(self) -> User:
        """Fetches the signed-in user's account and profile."""
        data = self.client.get_data("/auth/me")
        self.current_user = User.from_api(data)
        return self.current_user

    def refresh(self) -> bool:
        return self.client.refresh_tokens()

    def logout(self):
        """Revokes the refresh token on the server and clears local state.

        Local tokens are cleared even if the server call fails.
        """
        refresh_token = self.client.tokens.refresh_token
        try:
            if refresh_token:
                self.client.request("POST", "/auth/logout", json={"refreshToken": refresh_token}, auth=False)
        except ApiError as e:
            logger.warning("Logout request failed: %s", e)
        finally:
            self.client.tokens.clear()
            self.current_user = None
