"""
Phone lookup providers for the verification gate.

Every provider answers lookup(phone) with a dict; the gate only reads
response["status"] and treats "completed" as a verified number.
Transport and HTTP failures surface as PhoneLookupError so the gate can
turn them into a phone validation error.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from leadgate.utils.logging import mask_phone

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"


class PhoneLookupError(Exception):
    """Provider could not be reached or refused the request."""


class PhoneLookupClient(ABC):
    name: str = "base"

    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    async def lookup(self, phone: str) -> dict:
        ...


class GreenSmsClient(PhoneLookupClient):
    """GreenSMS HLR lookup: POST /lookup/hlr with basic auth."""

    name = "greensms"

    def __init__(
        self,
        base_url: str,
        login: str,
        password: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.login = login
        self.password = password
        self.timeout = timeout
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.login) and bool(self.password)

    async def lookup(self, phone: str) -> dict:
        if not self.is_configured():
            logger.warning("GreenSMS credentials are missing", extra={"provider": self.name})
            return {}

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self.login, self.password),
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            ) as client:
                response = await client.post("/lookup/hlr", json={"to": phone})
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "GreenSMS lookup failed for %s: %s", mask_phone(phone), str(e),
                extra={"provider": self.name},
            )
            raise PhoneLookupError(str(e)) from e

        logger.info(
            "GreenSMS lookup %s: status=%s", mask_phone(phone), data.get("status"),
            extra={"provider": self.name},
        )
        return data if isinstance(data, dict) else {}


class TwilioLookupClient(PhoneLookupClient):
    """Twilio Lookup v2 with line type intelligence."""

    name = "twilio"

    def __init__(self, account_sid: str, auth_token: str):
        self.account_sid = account_sid
        self.auth_token = auth_token

    def is_configured(self) -> bool:
        return bool(self.account_sid) and bool(self.auth_token)

    async def lookup(self, phone: str) -> dict:
        if not self.is_configured():
            logger.warning("Twilio credentials are missing", extra={"provider": self.name})
            return {}

        try:
            from twilio.rest import Client as TwilioClient
            client = TwilioClient(self.account_sid, self.auth_token)
            # Offload synchronous Twilio Lookup SDK call to thread pool
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(
                None,
                lambda: client.lookups.v2.phone_numbers(phone).fetch(
                    fields="line_type_intelligence"
                ),
            )
        except Exception as e:
            logger.warning(
                "Twilio lookup failed for %s: %s", mask_phone(phone), str(e),
                extra={"provider": self.name},
            )
            raise PhoneLookupError(str(e)) from e

        line_type_info = getattr(result, "line_type_intelligence", {}) or {}
        phone_type = line_type_info.get("type") or "unknown"
        carrier = line_type_info.get("carrier_name") or ""
        valid = bool(getattr(result, "valid", True))

        logger.info(
            "Twilio lookup %s: type=%s carrier=%s", mask_phone(phone), phone_type, carrier,
            extra={"provider": self.name},
        )

        return {
            "status": STATUS_COMPLETED if valid and phone_type != "unknown" else "failed",
            "phone_type": phone_type,
            "carrier": carrier,
        }


def build_lookup_client(settings=None) -> PhoneLookupClient:
    """Pick the configured provider. Unknown names fall back to GreenSMS."""
    if settings is None:
        from leadgate.config import get_settings
        settings = get_settings()

    provider = (settings.phone_verification_provider or "").strip().lower()
    if provider == TwilioLookupClient.name:
        return TwilioLookupClient(settings.twilio_account_sid, settings.twilio_auth_token)

    if provider != GreenSmsClient.name:
        logger.warning("Unknown phone verification provider %r, using greensms", provider)

    return GreenSmsClient(
        base_url=settings.greensms_base_url,
        login=settings.greensms_login,
        password=settings.greensms_password,
        timeout=settings.phone_verification_timeout_seconds,
    )
