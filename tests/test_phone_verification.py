"""
Tests for leadgate/services/phone_verification.py and phone_providers.py.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from sqlalchemy import select

from leadgate.errors import PhoneNotVerified, PhoneVerificationProviderError
from leadgate.models.phone_verification import (
    PhoneVerification,
    STATUS_VERIFIED,
    STATUS_FAILED,
)
from leadgate.services.phone_providers import (
    GreenSmsClient,
    PhoneLookupClient,
    PhoneLookupError,
    TwilioLookupClient,
    build_lookup_client,
)
from leadgate.services.phone_verification import PhoneVerificationService

PHONE = "+79991234567"


class FakeLookupClient(PhoneLookupClient):
    name = "fake"

    def __init__(self, response=None, error=None, configured=True):
        self.response = response if response is not None else {"status": "completed"}
        self.error = error
        self.configured = configured
        self.calls = []

    def is_configured(self) -> bool:
        return self.configured

    async def lookup(self, phone: str) -> dict:
        self.calls.append(phone)
        if self.error:
            raise self.error
        return self.response


async def _record(db, **fields):
    values = {"phone": PHONE, "status": STATUS_VERIFIED}
    values.update(fields)
    record = PhoneVerification(**values)
    db.add(record)
    await db.flush()
    return record


# ---------------------------------------------------------------------------
# PhoneVerification.is_usable
# ---------------------------------------------------------------------------


class TestIsUsable:
    def test_verified_within_ttl(self):
        now = datetime.now(timezone.utc)
        record = PhoneVerification(phone=PHONE, status=STATUS_VERIFIED, expires_at=now + timedelta(minutes=5))
        assert record.is_usable(now) is True

    def test_verified_but_expired(self):
        now = datetime.now(timezone.utc)
        record = PhoneVerification(phone=PHONE, status=STATUS_VERIFIED, expires_at=now - timedelta(seconds=1))
        assert record.is_usable(now) is False

    def test_failed_never_usable(self):
        record = PhoneVerification(phone=PHONE, status=STATUS_FAILED)
        assert record.is_usable() is False

    def test_naive_expiry_treated_as_utc(self):
        now = datetime.now(timezone.utc)
        naive = (now + timedelta(minutes=5)).replace(tzinfo=None)
        record = PhoneVerification(phone=PHONE, status=STATUS_VERIFIED, expires_at=naive)
        assert record.is_usable(now) is True


# ---------------------------------------------------------------------------
# ensure_verified
# ---------------------------------------------------------------------------


class TestEnsureVerified:
    async def test_fresh_verified_record_skips_lookup(self, db):
        now = datetime.now(timezone.utc)
        await _record(db, verified_at=now, expires_at=now + timedelta(minutes=5))
        client = FakeLookupClient()

        await PhoneVerificationService(client, ttl_minutes=10).ensure_verified(db, PHONE)

        assert client.calls == []

    async def test_expired_record_triggers_lookup(self, db):
        past = datetime.now(timezone.utc) - timedelta(minutes=30)
        await _record(db, verified_at=past, expires_at=past + timedelta(minutes=10))
        client = FakeLookupClient({"status": "completed"})

        await PhoneVerificationService(client, ttl_minutes=10).ensure_verified(db, PHONE)

        assert client.calls == [PHONE]
        rows = (await db.execute(select(PhoneVerification))).scalars().all()
        assert len(rows) == 2

    async def test_no_record_creates_verified_one(self, db):
        client = FakeLookupClient({"status": "completed", "operator": "MTS"})

        await PhoneVerificationService(client, ttl_minutes=10).ensure_verified(db, PHONE)

        record = (await db.execute(select(PhoneVerification))).scalar_one()
        assert record.status == STATUS_VERIFIED
        assert record.verified_at is not None
        assert record.expires_at is not None
        assert record.provider_response == {"status": "completed", "operator": "MTS"}

    async def test_failed_lookup_raises_not_verified(self, db):
        client = FakeLookupClient({"status": "error"})

        with pytest.raises(PhoneNotVerified) as exc_info:
            await PhoneVerificationService(client, ttl_minutes=10).ensure_verified(db, PHONE)

        assert exc_info.value.field == "phone"
        record = (await db.execute(select(PhoneVerification))).scalar_one()
        assert record.status == STATUS_FAILED
        assert record.verified_at is None
        assert record.expires_at is None

    async def test_failed_record_keeps_rejecting_without_new_lookup(self, db):
        await _record(db, status=STATUS_FAILED)
        client = FakeLookupClient()

        with pytest.raises(PhoneNotVerified):
            await PhoneVerificationService(client, ttl_minutes=10).ensure_verified(db, PHONE)

        assert client.calls == []

    async def test_provider_error_raises_provider_error(self, db):
        client = FakeLookupClient(error=PhoneLookupError("connection refused"))

        with pytest.raises(PhoneVerificationProviderError) as exc_info:
            await PhoneVerificationService(client, ttl_minutes=10).ensure_verified(db, PHONE)

        assert exc_info.value.to_dict() == {"errors": {"phone": ["Failed to verify phone number"]}}

    async def test_empty_phone_is_noop(self, db):
        client = FakeLookupClient(error=AssertionError("must not be called"))
        await PhoneVerificationService(client, ttl_minutes=10).ensure_verified(db, None)
        await PhoneVerificationService(client, ttl_minutes=10).ensure_verified(db, "")

    async def test_disabled_provider_is_noop(self, db):
        client = FakeLookupClient(configured=False, error=AssertionError("must not be called"))
        await PhoneVerificationService(client, ttl_minutes=10).ensure_verified(db, PHONE)


# ---------------------------------------------------------------------------
# attach_lead
# ---------------------------------------------------------------------------


class TestAttachLead:
    async def test_links_newest_unclaimed_record(self, db):
        older = await _record(db)
        newer = await _record(db)

        await PhoneVerificationService(FakeLookupClient(), ttl_minutes=10).attach_lead(db, 77, PHONE)

        assert newer.lead_id == 77
        assert older.lead_id is None

    async def test_claimed_records_untouched(self, db):
        claimed = await _record(db, lead_id=5)

        await PhoneVerificationService(FakeLookupClient(), ttl_minutes=10).attach_lead(db, 77, PHONE)

        assert claimed.lead_id == 5

    async def test_no_phone_is_noop(self, db):
        await PhoneVerificationService(FakeLookupClient(), ttl_minutes=10).attach_lead(db, 77, None)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class TestGreenSmsClient:
    async def test_posts_hlr_lookup_with_basic_auth(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = request.content
            return httpx.Response(200, json={"status": "completed"})

        client = GreenSmsClient(
            "https://api3.greensms.ru", "login", "secret",
            transport=httpx.MockTransport(handler),
        )
        result = await client.lookup(PHONE)

        assert result == {"status": "completed"}
        assert seen["url"] == "https://api3.greensms.ru/lookup/hlr"
        assert seen["auth"].startswith("Basic ")
        assert PHONE.encode() in seen["body"]

    async def test_http_error_raises_lookup_error(self):
        client = GreenSmsClient(
            "https://api3.greensms.ru", "login", "secret",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        with pytest.raises(PhoneLookupError):
            await client.lookup(PHONE)

    async def test_missing_credentials(self):
        client = GreenSmsClient("https://api3.greensms.ru", "", "")
        assert client.is_configured() is False
        assert await client.lookup(PHONE) == {}


class TestTwilioLookupClient:
    async def test_known_line_type_is_completed(self):
        fake_result = SimpleNamespace(valid=True, line_type_intelligence={"type": "mobile", "carrier_name": "T-Mobile"})
        twilio_client = MagicMock()
        twilio_client.lookups.v2.phone_numbers.return_value.fetch.return_value = fake_result

        with patch("twilio.rest.Client", return_value=twilio_client):
            result = await TwilioLookupClient("AC123", "token").lookup("+15125551234")

        assert result["status"] == "completed"
        assert result["phone_type"] == "mobile"

    async def test_sdk_error_raises_lookup_error(self):
        twilio_client = MagicMock()
        twilio_client.lookups.v2.phone_numbers.return_value.fetch.side_effect = RuntimeError("401")

        with patch("twilio.rest.Client", return_value=twilio_client):
            with pytest.raises(PhoneLookupError):
                await TwilioLookupClient("AC123", "token").lookup("+15125551234")


class TestBuildLookupClient:
    def _settings(self, **overrides):
        defaults = {
            "phone_verification_provider": "greensms",
            "greensms_base_url": "https://api3.greensms.ru",
            "greensms_login": "l",
            "greensms_password": "p",
            "phone_verification_timeout_seconds": 5.0,
            "twilio_account_sid": "AC1",
            "twilio_auth_token": "t",
        }
        defaults.update(overrides)
        return SimpleNamespace(**defaults)

    def test_greensms_default(self):
        assert isinstance(build_lookup_client(self._settings()), GreenSmsClient)

    def test_twilio(self):
        client = build_lookup_client(self._settings(phone_verification_provider="Twilio"))
        assert isinstance(client, TwilioLookupClient)
        assert client.is_configured()

    def test_unknown_falls_back_to_greensms(self):
        assert isinstance(build_lookup_client(self._settings(phone_verification_provider="x")), GreenSmsClient)
