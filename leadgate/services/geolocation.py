"""
IP geolocation - city/country for a lead's IP address.

Primary: ip-api.com (free, no key, 45 req/min). Fallback: ipapi.co.
Positive answers are cached in Redis for 24h. Private, loopback, link-local
and reserved addresses never leave the process.

Enrichment is best-effort: every failure degrades to {"city": None, "country": None}.
"""
import ipaddress
import json
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

PRIMARY_URL = "http://ip-api.com/json/{ip}"
FALLBACK_URL = "https://ipapi.co/{ip}/json/"
CACHE_KEY_PREFIX = "leadgate:geolocation:"


def _empty() -> dict:
    return {"city": None, "country": None}


def is_public_ip(ip_address: str) -> bool:
    """False for anything not globally routable, and for garbage input."""
    try:
        ip = ipaddress.ip_address(ip_address.strip())
    except ValueError:
        return False
    return ip.is_global and not ip.is_multicast


class GeoLocationService:

    def __init__(
        self,
        timeout: Optional[float] = None,
        cache_ttl: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if timeout is None or cache_ttl is None:
            from leadgate.config import get_settings
            settings = get_settings()
            timeout = settings.geolocation_timeout_seconds if timeout is None else timeout
            cache_ttl = settings.geolocation_cache_ttl_seconds if cache_ttl is None else cache_ttl
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self._transport = transport

    async def get_location_by_ip(self, ip_address: Optional[str]) -> dict:
        if not ip_address or not is_public_ip(ip_address):
            return _empty()

        cache_key = f"{CACHE_KEY_PREFIX}{ip_address}"
        cached = await self._cache_get(cache_key)
        if cached is not None:
            return cached

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            result = await self._lookup_primary(client, ip_address)
            if result is None:
                result = await self._lookup_fallback(client, ip_address)

        if result is None:
            return _empty()

        await self._cache_set(cache_key, result)
        return result

    async def _lookup_primary(self, client: httpx.AsyncClient, ip_address: str) -> Optional[dict]:
        try:
            response = await client.get(
                PRIMARY_URL.format(ip=ip_address),
                params={"fields": "status,message,country,city"},
            )
            if response.is_success:
                data = response.json()
                if isinstance(data, dict) and data.get("status") == "success":
                    return {"city": data.get("city"), "country": data.get("country")}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "ip-api.com geolocation failed: %s", str(e),
                extra={"ip": ip_address, "provider": "ip-api"},
            )
        return None

    async def _lookup_fallback(self, client: httpx.AsyncClient, ip_address: str) -> Optional[dict]:
        try:
            response = await client.get(FALLBACK_URL.format(ip=ip_address))
            if response.is_success:
                data = response.json()
                if isinstance(data, dict) and "error" not in data:
                    return {"city": data.get("city"), "country": data.get("country_name")}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "ipapi.co geolocation failed: %s", str(e),
                extra={"ip": ip_address, "provider": "ipapi"},
            )
        return None

    async def _cache_get(self, key: str) -> Optional[dict]:
        try:
            from leadgate.utils.redis import get_redis
            redis = await get_redis()
            cached = await redis.get(key)
            if cached is None:
                return None
            data = json.loads(cached)
            return {"city": data.get("city"), "country": data.get("country")}
        except Exception as e:
            logger.warning("Geolocation cache read failed: %s", str(e))
            return None

    async def _cache_set(self, key: str, value: dict) -> None:
        try:
            from leadgate.utils.redis import get_redis
            redis = await get_redis()
            await redis.set(key, json.dumps(value), ex=self.cache_ttl)
        except Exception as e:
            logger.warning("Geolocation cache write failed: %s", str(e))
