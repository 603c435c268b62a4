from __future__ import annotations

import logging

import httpx

from salonbook.application.ports.verification import BotChallengePort, VerificationResult
from salonbook.core.config import settings


class TurnstileVerifier(BotChallengePort):
    """Cloudflare Turnstile siteverify. Without a secret every token is accepted."""

    def __init__(
        self,
        secret: str | None = None,
        verify_url: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._secret = secret if secret is not None else settings.TURNSTILE_SECRET
        self._verify_url = verify_url or settings.TURNSTILE_VERIFY_URL
        self._client = client or httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    def verify(self, token: str | None, remote_ip: str | None = None) -> VerificationResult:
        if not self.enabled:
            return VerificationResult(ok=True, code="disabled")
        if not token:
            return VerificationResult(ok=False, code="missing-input-response")

        data = {"secret": self._secret, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip
        try:
            response = self._client.post(self._verify_url, data=data)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self._logger.error("Turnstile verification request failed", extra={"reason": str(e)})
            return VerificationResult(ok=False, code="network-error")

        if payload.get("success"):
            return VerificationResult(ok=True)
        codes = payload.get("error-codes") or []
        return VerificationResult(ok=False, code=",".join(codes) or "invalid-input-response")
