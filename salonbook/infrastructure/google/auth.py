from __future__ import annotations

import logging
import threading
import time

import httpx

from salonbook.application.exceptions import CalendarUnavailableError

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class GoogleTokenProvider:
    """Access tokens from a long-lived refresh token, renewed shortly before expiry."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        client: httpx.Client | None = None,
        token_url: str = GOOGLE_TOKEN_URL,
        refresh_margin_seconds: int = 300,
    ) -> None:
        if not client_id or not client_secret or not refresh_token:
            raise ValueError("GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN are required")
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._client = client or httpx.Client(timeout=10.0)
        self._token_url = token_url
        self._margin = refresh_margin_seconds
        self._access_token: str | None = None
        self._expires_at = 0.0
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def access_token(self) -> str:
        with self._lock:
            if self._access_token and time.monotonic() < self._expires_at - self._margin:
                return self._access_token
            return self._refresh()

    def invalidate(self) -> None:
        with self._lock:
            self._access_token = None
            self._expires_at = 0.0

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token()}"}

    def _refresh(self) -> str:
        try:
            response = self._client.post(
                self._token_url,
                data={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "refresh_token": self._refresh_token,
                    "grant_type": "refresh_token",
                },
            )
        except httpx.HTTPError as e:
            self._logger.error("Google token refresh failed", extra={"reason": str(e)})
            raise CalendarUnavailableError() from e

        if response.status_code != 200:
            self._logger.error("Google token refresh rejected", extra={"status": response.status_code})
            raise CalendarUnavailableError()

        tokens = response.json()
        access_token = tokens.get("access_token")
        if not access_token:
            self._logger.error("No access token in refresh response")
            raise CalendarUnavailableError()

        self._access_token = access_token
        self._expires_at = time.monotonic() + int(tokens.get("expires_in", 3600))
        self._logger.info("Google access token refreshed")
        return access_token
