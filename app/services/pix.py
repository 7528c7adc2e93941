import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import httpx

from app.core.config import get_settings
from app.services.errors import BillingProviderError, BillingUnavailableError

logger = logging.getLogger(__name__)


class PagSeguroClient:
    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        settings = get_settings()
        self.token = settings.pagseguro_token or ""
        self.base_url = (settings.pagseguro_base_url or "").rstrip("/")
        self.expiration_minutes = settings.pix_expiration_minutes
        self.default_description = settings.pix_default_description
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.token and self.base_url)

    def create_charge(self, *, reference_id: str, amount: Decimal, description: Optional[str] = None) -> dict:
        """Create a Pix charge. Returns ``{"txid", "br_code", "expires_at"}``."""
        if not self.is_configured():
            raise BillingUnavailableError("Pix provider is not configured")

        expires_at = datetime.now(timezone.utc) + timedelta(minutes=self.expiration_minutes)
        payload = {
            "reference_id": reference_id,
            "expiration_date": expires_at.isoformat(),
            "value": {"amount": f"{Decimal(amount):.2f}"},
            "additional_information": [{"name": "descricao", "value": description or self.default_description}],
        }
        headers = {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}
        try:
            with httpx.Client(timeout=15, transport=self._transport) as client:
                resp = client.post(f"{self.base_url}/charges", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("PagSeguro request failed: %s", exc)
            raise BillingProviderError("Pix provider unreachable") from exc
        if resp.status_code >= 400:
            logger.warning("PagSeguro rejected charge (%s): %s", resp.status_code, resp.text[:500])
            raise BillingProviderError(f"PagSeguro error: {resp.text[:200]}")

        data = resp.json()
        txid = data.get("charge_id") or data.get("txid") or secrets.token_hex(16)
        qr_codes = data.get("qr_codes") or []
        br_code = (qr_codes[0].get("emv") if qr_codes else None) or data.get("brCode") or data.get("payload") or ""
        return {"txid": str(txid), "br_code": br_code, "expires_at": expires_at}


def verify_pix_signature(signature: Optional[str]) -> bool:
    secret = get_settings().pagseguro_webhook_secret
    if not secret:
        return True
    return hmac.compare_digest(str(signature or ""), secret)
