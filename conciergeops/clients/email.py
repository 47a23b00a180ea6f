from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..config import settings


@dataclass(frozen=True)
class EmailSendResult:
    sent: bool
    message_id: Optional[str]
    raw: dict[str, Any]


class EmailDeliveryError(RuntimeError):
    pass


class ResendEmailClient:
    """
    Thin client for the Resend HTTP API (POST /emails).

    Disabled when no API key is configured: send() then returns sent=False
    instead of raising, so local runs and tests never reach the network.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        sender: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.base = (base_url or settings.resend_base_url).rstrip("/")
        self.sender = sender or settings.email_from
        self.timeout = float(timeout if timeout is not None else settings.email_timeout_seconds)
        self._transport = transport

    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(self, *, to: str, subject: str, text: str, html: Optional[str] = None) -> EmailSendResult:
        if not self.api_key:
            return EmailSendResult(False, None, {"error": "resend_api_key not set"})

        url = f"{self.base}/emails"
        payload: dict[str, Any] = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "text": text,
        }
        if html:
            payload["html"] = html

        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(url, json=payload, headers=headers)
                r.raise_for_status()
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"email to {to} failed: {e}") from e
        except Exception as e:
            raise EmailDeliveryError(f"email to {to} failed: {type(e).__name__}: {e}") from e

        # accepted; a 2xx without a JSON body just carries no message id
        try:
            data = r.json()
        except ValueError:
            data = {}

        mid = data.get("id") if isinstance(data, dict) else None
        return EmailSendResult(sent=True, message_id=str(mid) if mid else None, raw=data if isinstance(data, dict) else {})
