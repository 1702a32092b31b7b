"""
Postmark email provider.

Sends through the Postmark HTTP API. Every request is bounded by a timeout.
Postmark reports failures either as a non-200 status or as a non-zero
ErrorCode in the JSON body.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.components.email.models import DEFAULT_MESSAGE_TAG, DEFAULT_TIMEOUT_SECONDS
from src.domain.errors import EmailNotConfiguredError, ProviderError

logger = logging.getLogger(__name__)

POSTMARK_API_URL = "https://api.postmarkapp.com/email"


class PostmarkProvider:
    name = "postmark"

    def __init__(
        self,
        api_token: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        message_tag: str = DEFAULT_MESSAGE_TAG,
        client: httpx.Client | None = None,
    ) -> None:
        if not api_token:
            raise EmailNotConfiguredError("Postmark API token is required")
        self.api_token = api_token
        self.timeout_seconds = timeout_seconds
        self.message_tag = message_tag
        # Injected client is used as-is (tests pass one with a MockTransport)
        self._client = client

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Postmark-Server-Token": self.api_token,
        }

    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return self._client.post(
                POSTMARK_API_URL,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout_seconds,
            )
        with httpx.Client(timeout=self.timeout_seconds) as client:
            return client.post(POSTMARK_API_URL, json=payload, headers=self._headers())

    def send_email(
        self,
        to: str,
        from_: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> None:
        payload = {
            "From": from_,
            "To": to,
            "Subject": subject,
            "HtmlBody": html_body,
            "TextBody": text_body,
            "Tag": self.message_tag,
        }

        try:
            response = self._post(payload)
        except httpx.HTTPError as e:
            raise ProviderError(f"Postmark request failed: {e}", provider=self.name) from e

        try:
            data = response.json()
        except ValueError:
            data = {"ErrorCode": -1, "Message": response.text}

        error_code = data.get("ErrorCode", 0) if isinstance(data, dict) else -1
        if response.status_code != 200 or error_code != 0:
            message = data.get("Message") if isinstance(data, dict) else None
            raise ProviderError(
                f"Postmark API error (status {response.status_code}, code {error_code}): "
                f"{message or 'unknown error'}",
                provider=self.name,
            )

        logger.debug("Postmark accepted message to %s (id=%s)", to, data.get("MessageID"))
