import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from app.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    ok: bool
    error: Optional[str] = None
    provider_response: Any = None


class ZapiClient:
    """WhatsApp text delivery through Z-API."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        settings = get_settings()
        self.base_url = (settings.zapi_base_url or "").rstrip("/")
        self.instance_id = settings.zapi_instance_id or ""
        self.token = settings.zapi_token or ""
        self.security_token = settings.zapi_security_token or ""
        self.timeout = settings.zapi_timeout_seconds
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.base_url and self.instance_id and self.token and self.security_token)

    def _endpoint(self) -> str:
        return f"{self.base_url}/instances/{self.instance_id}/token/{self.token}/message/send-text"

    def send_text(self, to_phone: str, message: str) -> SendResult:
        if not self.is_configured():
            return SendResult(False, error="Missing Z-API configuration")

        headers = {"Content-Type": "application/json", "Client-Token": self.security_token}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(self._endpoint(), json={"phone": to_phone, "message": message}, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Z-API request failed: %s", exc)
            return SendResult(False, error=str(exc) or exc.__class__.__name__)

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            return SendResult(False, error=f"Z-API error {resp.status_code}", provider_response=data)
        return SendResult(True, provider_response=data)
