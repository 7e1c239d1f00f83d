"""
This module provides `ApiClient`, the HTTP transport shared by every service.

It is responsible for:
- Building request URLs from the configured API base URL.
- Attaching the bearer token from the `TokenStore` to authenticated requests.
- Refreshing the access token once when the server rejects it, then retrying.
- Decoding the `{"success", "data", "message", "error"}` response envelope and
  translating failures into the exceptions defined in `dialysislive.errors`.

There is no retry or backoff apart from the single token refresh.
"""
# dialysislive/client.py

import logging

import requests

from dialysislive.errors import (
    ApiError,
    NetworkError,
    SessionExpiredError,
    error_from_response,
    is_subscription_error,
)

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."


def is_token_error(message) -> bool:
    """Checks if an error message indicates an invalid or expired token."""
    if not message:
        return False
    lower = message.lower()
    return (
        ("invalid" in lower and "token" in lower)
        or ("expired" in lower and "token" in lower)
        or "unauthorized" in lower
        or "jwt" in lower
    )


def _decode(response):
    """Returns the JSON body of `response`, or None if it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return None


def _response_ok(response) -> bool:
    return 200 <= response.status_code < 300


class ApiClient:
    """Sends requests to the DialysisLive REST API."""

    def __init__(self, base_url, token_store, timeout=30, session=None):
        """Initializes the client.

        Args:
            base_url (str): API base URL, e.g. `https://api.dialysis.live/api/v1`.
            token_store (TokenStore): Where the access and refresh tokens live.
            timeout (float): Per-request timeout in seconds.
            session (requests.Session, optional): The HTTP session to use.
        """
        self.base_url = base_url.rstrip("/")
        self.tokens = token_store
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, endpoint):
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _send(self, method, endpoint, json=None, params=None, token=None):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            return self.session.request(
                method,
                self._url(endpoint),
                json=json,
                params=params or None,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, endpoint, e)
            raise NetworkError(str(e)) from e

    def _expire_session(self):
        self.tokens.clear()
        raise SessionExpiredError(SESSION_EXPIRED_MESSAGE, status=401)

    def refresh_tokens(self) -> bool:
        """Exchanges the refresh token for a new token pair.

        Returns:
            bool: True if new tokens were stored, False otherwise.
        """
        refresh_token = self.tokens.refresh_token
        if not refresh_token:
            logger.info("No refresh token available")
            return False
        try:
            response = self._send("POST", "/auth/refresh", json={"refreshToken": refresh_token})
        except NetworkError:
            return False

        body = _decode(response) or {}
        if not _response_ok(response) or body.get("success") is False:
            logger.info("Token refresh failed: %s", body.get("message"))
            return False

        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        tokens = data.get("tokens") or body.get("tokens") or data
        if tokens.get("accessToken") and tokens.get("refreshToken"):
            self.tokens.set_tokens(tokens["accessToken"], tokens["refreshToken"])
            return True
        return False

    def request(self, method, endpoint, json=None, params=None, auth=True) -> dict:
        """Sends a request and returns the decoded response envelope.

        Args:
            method (str): HTTP method.
            endpoint (str): Path below the base URL, e.g. `/symptoms`.
            json (dict, optional): JSON request body.
            params (dict, optional): Query parameters. `None` values are dropped.
            auth (bool): Whether to send the bearer token and handle refreshes.

        Returns:
            dict: The decoded JSON body, or `{}` for a successful empty response.

        Raises:
            SessionExpiredError: If the token is missing or cannot be refreshed.
            NetworkError: If the server could not be reached.
            ApiError: For any other failed request (or a subclass of it).
        """
        if not auth:
            response = self._send(method, endpoint, json=json, params=params)
            return self._unwrap(response, _decode(response))

        token = self.tokens.access_token
        if not token:
            self._expire_session()

        response = self._send(method, endpoint, json=json, params=params, token=token)
        body = _decode(response)

        if response.status_code == 401 or (
            response.status_code == 403 and not is_subscription_error(response.status_code, body)
        ):
            if not self.refresh_tokens():
                self._expire_session()
            response = self._send(method, endpoint, json=json, params=params, token=self.tokens.access_token)
            body = _decode(response)

        if isinstance(body, dict) and body.get("success") is False and is_token_error(body.get("message")):
            if not self.refresh_tokens():
                self._expire_session()
            response = self._send(method, endpoint, json=json, params=params, token=self.tokens.access_token)
            body = _decode(response)
            if isinstance(body, dict) and body.get("success") is False and is_token_error(body.get("message")):
                self._expire_session()

        return self._unwrap(response, body)

    def _unwrap(self, response, body):
        if body is None:
            if not _response_ok(response):
                raise ApiError(f"Request failed: {response.status_code}", status=response.status_code)
            return {}
        if not isinstance(body, dict):
            body = {"data": body}
        if not _response_ok(response) or body.get("success") is False:
            error = error_from_response(response.status_code, body)
            logger.warning("API error %s (%s): %s", response.status_code, error.code, error.message)
            raise error
        return body

    def get(self, endpoint, params=None):
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint, json=None):
        return self.request("POST", endpoint, json=json)

    def patch(self, endpoint, json=None):
        return self.request("PATCH", endpoint, json=json)

    def delete(self, endpoint):
        return self.request("DELETE", endpoint)

    def get_data(self, endpoint, params=None, key=None):
        """Sends a GET request and returns `data`, or `data[key]` when given."""
        return _data(self.get(endpoint, params=params), key)

    def post_data(self, endpoint, json=None, key=None):
        return _data(self.post(endpoint, json=json), key)

    def patch_data(self, endpoint, json=None, key=None):
        return _data(self.patch(endpoint, json=json), key)


def _data(body, key=None):
    data = body.get("data")
    if data is None:
        data = {}
    if key is None:
        return data
    return data.get(key) if isinstance(data, dict) else None
