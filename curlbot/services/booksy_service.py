"""Booksy booking catalog.

Every lookup tries the Booksy business API first, then the copy cached in
Redis, then the static catalog below. Results carry ``source`` and
``reliability`` so callers (and the LLM) know how fresh the data is.
"""

from datetime import date, datetime, timezone
from typing import Any, List, Optional

import httpx

from curlbot.config import settings
from curlbot.logging_config import get_logger
from curlbot.services.date_utils import next_n_dates, next_weekday_date, parse_weekday_name
from curlbot.services.session_store import SessionStore, get_session_store

logger = get_logger("booksy_service")

SERVICES_CACHE_KEY = "booksy:services"
BUSINESS_CACHE_KEY = "booksy:business"

FALLBACK_BUSINESS = {
    "name": "Akro Beauty by La Morocha Makeup",
    "address": "8865 Commodity Circle, Suite 7A, Orlando, 32819",
    "phone": "Contact via Booksy",
    "rating": 5,
    "description": "Curly hair specialist - Tatiana Orozco",
}

KNOWN_SERVICES = [
    {
        "name": "Curly Adventure (First Time)",
        "price": "$200",
        "duration": "150 minutes",
        "staff": "Tatiana Orozco",
        "description": "Complete curly hair transformation for new clients. Includes consultation, cut, and styling education.",
        "category": "new_client",
        "id": 7132273,
    },
    {
        "name": "Curly Adventure (Regular Client)",
        "price": "$180",
        "duration": "120 minutes",
        "staff": "Tatiana Orozco",
        "description": "Curly cut and style for returning clients who understand their curl pattern.",
        "category": "returning_client",
        "id": 7132274,
    },
    {
        "name": "Consultation Only",
        "price": "$50",
        "duration": "45 minutes",
        "staff": "Tatiana Orozco",
        "description": "In-depth consultation to understand your curl pattern and create a care plan.",
        "category": "consultation",
        "id": 8322085,
    },
]

BOOKING_TIPS = [
    "Book in advance for better availability",
    "Tuesday-Thursday typically have more openings",
    "Call directly for same-day appointments",
]

# Days called out in BOOKING_TIPS as having more openings
QUIET_DAYS = ["tue", "wed", "thu"]

CLIENT_TYPES = ("new_client", "returning_client", "unknown")
NEW_CLIENT_MARKERS = ("first time", "consultation", "new")


class BooksyError(Exception):
    pass


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def find_service_by_name(services: Optional[List[dict]], service_name: Optional[str]) -> Optional[dict]:
    """Find a service by exact name, then substring either way, then keyword."""
    if not services or not service_name:
        return None

    query = service_name.lower().strip()
    if not query:
        return None

    for service in services:
        if (service.get("name") or "").lower() == query:
            return service

    for service in services:
        name = (service.get("name") or "").lower()
        if name and (query in name or name in query):
            return service

    def first_with(marker: str) -> Optional[dict]:
        for service in services:
            name = (service.get("name") or "").lower()
            category = (service.get("category") or service.get("category_name") or "").lower()
            if marker in name or marker in category:
                return service
        return None

    if "consultation" in query:
        return first_with("consultation")
    if "first" in query or "new" in query:
        return first_with("first time")
    if "curly" in query:
        return first_with("curly")
    return None


def normalize_service(raw: dict, staff_name: Optional[str] = None) -> dict:
    """Flatten a Booksy ``top_services`` entry into the catalog shape."""
    variants = raw.get("variants") or []
    variant = variants[0] if variants and isinstance(variants[0], dict) else {}
    return {
        "name": raw.get("name") or "",
        "price": variant.get("service_price") or "Contact for pricing",
        "duration": f"{variant.get('duration') or 'Varies'} minutes",
        "description": raw.get("description") or "",
        "category": raw.get("category_name") or "General",
        "staff": staff_name or settings.booksy_staff_name,
        "id": raw.get("id"),
    }


def booking_instructions(service_name: str, booking_url: Optional[str] = None) -> dict:
    search_term = service_name.split(" ")[0] if service_name else ""
    return {
        "url": booking_url or settings.booksy_url,
        "instructions": [
            "1. Click the booking link to open Tata's booking page",
            f'2. Use Ctrl+F (Cmd+F on Mac) and search for "{search_term}"',
            f'3. Select "{service_name}" from the services list',
            "4. Choose your preferred date and time",
            "5. Fill out the booking form with your details",
            "6. Confirm your appointment",
        ],
        "searchTerm": search_term,
        "note": "Booksy uses a single page for all services - the search tip helps you find your specific service quickly!",
    }


def suggested_dates(from_date: Optional[date] = None) -> dict:
    start = from_date or date.today()
    quiet = []
    for name in QUIET_DAYS:
        weekday = parse_weekday_name(name)
        if weekday is not None:
            quiet.append(next_weekday_date(weekday, start))
    return {"nextSevenDays": next_n_dates(7, start), "quieterDays": sorted(quiet)}


class BooksyClient:
    """Thin client for the public Booksy customer API."""

    def __init__(
        self,
        api_base: Optional[str] = None,
        api_key: Optional[str] = None,
        business_id: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.api_base = (api_base or settings.booksy_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.booksy_api_key
        self.business_id = business_id or settings.booksy_business_id
        self.timeout_seconds = timeout_seconds or settings.booksy_timeout_seconds

    async def fetch_business(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        url = f"{self.api_base}/businesses/{self.business_id}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise BooksyError(f"Booksy request failed: {e}") from e

        if response.status_code != 200:
            raise BooksyError(f"Booksy API error: {response.status_code}")

        data = response.json()
        if not isinstance(data, dict) or not isinstance(data.get("business"), dict):
            raise BooksyError("Booksy API returned no business")
        return data


class BookingCatalog:
    def __init__(self, client: Optional[BooksyClient] = None, store: Optional[SessionStore] = None):
        self.client = client or BooksyClient()
        self.store = store
        self.cache_ttl = settings.booksy_cache_ttl_seconds

    async def _cached(self, key: str) -> Any:
        if self.store is None:
            return None
        try:
            return await self.store.get_json(key)
        except Exception as e:
            logger.warning(f"Booksy cache read failed for {key}: {e}")
            return None

    async def _cache(self, key: str, value: Any) -> None:
        if self.store is None:
            return
        try:
            await self.store.put_json(key, value, ttl_seconds=self.cache_ttl)
        except Exception as e:
            logger.warning(f"Booksy cache write failed for {key}: {e}")

    async def _live_services(self) -> tuple[list, dict]:
        data = await self.client.fetch_business()
        business = data["business"]
        services = [normalize_service(raw) for raw in business.get("top_services") or [] if isinstance(raw, dict)]
        await self._cache(SERVICES_CACHE_KEY, services)
        return services, business

    async def _services_with_source(self) -> tuple[list, str, str]:
        try:
            services, _ = await self._live_services()
            return services, "api", "high"
        except (BooksyError, KeyError, ValueError) as e:
            logger.warning(f"Booksy services API failed: {e}")

        cached = await self._cached(SERVICES_CACHE_KEY)
        if isinstance(cached, list) and cached:
            return cached, "cache", "medium"
        return [dict(service) for service in KNOWN_SERVICES], "fallback", "low"

    async def get_services(self) -> dict:
        services, source, reliability = await self._services_with_source()
        return {
            "services": services,
            "count": len(services),
            "reliability": reliability,
            "source": source,
            "timestamp": _now_iso(),
        }

    async def search_services(self, query: Optional[str]) -> dict:
        services, source, reliability = await self._services_with_source()
        term = (query or "").strip().lower()
        if term:
            matches = [
                service
                for service in services
                if term in (service.get("name") or "").lower()
                or term in (service.get("description") or "").lower()
                or term in (service.get("category") or "").lower()
            ]
        else:
            matches = services
        return {
            "query": query or "",
            "services": matches,
            "count": len(matches),
            "reliability": reliability,
            "source": source,
        }

    async def get_recommendations(self, client_type: Optional[str]) -> dict:
        client_type = client_type if client_type in CLIENT_TYPES else "unknown"
        services, source, reliability = await self._services_with_source()

        def is_new_client_service(service: dict) -> bool:
            name = (service.get("name") or "").lower()
            category = (service.get("category") or "").lower()
            return category in ("new_client", "consultation") or any(marker in name for marker in NEW_CLIENT_MARKERS)

        if client_type == "new_client":
            picks = [service for service in services if is_new_client_service(service)]
            note = "New clients start with a first-time Curly Adventure or a consultation."
        elif client_type == "returning_client":
            picks = [service for service in services if not is_new_client_service(service)]
            note = "Returning clients can book maintenance services directly."
        else:
            picks = services
            note = "Not sure where to start? A consultation is the safest first step."

        return {
            "clientType": client_type,
            "services": picks,
            "count": len(picks),
            "note": note,
            "reliability": reliability,
            "source": source,
        }

    async def get_booking_instructions(self, service_name: str) -> dict:
        services, source, reliability = await self._services_with_source()
        service = find_service_by_name(services, service_name)
        result = booking_instructions(service["name"] if service else service_name)
        result["service"] = service
        result["reliability"] = reliability
        result["source"] = source
        return result

    async def get_appointments(self, service_name: str, today: Optional[date] = None) -> dict:
        """Service details plus booking guidance and proposed dates.

        Returns a dict with ``error`` set when no service matches.
        """
        try:
            services, business = await self._live_services()
            service = find_service_by_name(services, service_name)
            if not service:
                return {
                    "error": "Service not found",
                    "query": service_name,
                    "availableServices": [s["name"] for s in services],
                    "suggestion": "Try one of the available services listed above",
                }
            location = business.get("location") or {}
            return {
                "service": service,
                "business": {
                    "name": business.get("name"),
                    "address": location.get("address"),
                    "phone": business.get("phone"),
                    "rating": business.get("reviews_stars"),
                    "reviewCount": business.get("reviews_count"),
                },
                "booking": {
                    "message": "To check real-time availability and book this service:",
                    "url": settings.booksy_url,
                    "phone": business.get("phone"),
                    "instructions": [
                        "1. Visit the Booksy link above",
                        "2. Select your preferred date and time",
                        "3. Complete the booking process",
                        "4. You will receive confirmation via email/SMS",
                    ],
                    "tips": BOOKING_TIPS,
                },
                "suggestedDates": suggested_dates(today),
                "reliability": "high",
                "source": "api",
                "timestamp": _now_iso(),
            }
        except (BooksyError, KeyError, ValueError) as e:
            logger.warning(f"Booksy appointments API failed: {e}")

        cached = await self._cached(SERVICES_CACHE_KEY)
        from_cache = isinstance(cached, list) and bool(cached)
        candidates = cached if from_cache else KNOWN_SERVICES
        service = find_service_by_name(candidates, service_name)
        if not service:
            return {
                "error": "Service not found",
                "query": service_name,
                "availableServices": [s.get("name") for s in candidates],
                "suggestion": "Try one of the available services listed above",
            }
        return {
            "service": service,
            "business": {k: FALLBACK_BUSINESS[k] for k in ("name", "address", "phone")},
            "booking": {
                "message": "Service information available, please book directly:",
                "url": settings.booksy_url,
                "instructions": ["Visit booksy.com to check availability and book"],
                "tips": BOOKING_TIPS,
            },
            "suggestedDates": suggested_dates(today),
            "reliability": "medium" if from_cache else "low",
            "source": "cache" if from_cache else "fallback",
            "timestamp": _now_iso(),
        }

    async def get_business_info(self) -> dict:
        try:
            data = await self.client.fetch_business()
            business = data["business"]
            location = business.get("location") or {}
            info = {
                "name": business.get("name"),
                "address": location.get("address"),
                "phone": business.get("phone"),
                "rating": business.get("reviews_stars"),
                "reviewCount": business.get("reviews_count"),
                "description": business.get("description"),
                "url": settings.booksy_url,
            }
            await self._cache(BUSINESS_CACHE_KEY, info)
            return {**info, "reliability": "high", "source": "api"}
        except (BooksyError, KeyError, ValueError) as e:
            logger.warning(f"Booksy business API failed: {e}")

        cached = await self._cached(BUSINESS_CACHE_KEY)
        if isinstance(cached, dict) and cached:
            return {**cached, "reliability": "medium", "source": "cache"}
        return {**FALLBACK_BUSINESS, "url": settings.booksy_url, "reliability": "low", "source": "fallback"}

    async def refresh(self) -> dict:
        """Force a fetch from the API and overwrite the cache."""
        try:
            services, _ = await self._live_services()
        except (BooksyError, KeyError, ValueError) as e:
            logger.error(f"Booksy refresh failed: {e}")
            return {"refreshed": False, "error": str(e), "timestamp": _now_iso()}
        return {
            "refreshed": True,
            "message": "Services refreshed successfully",
            "count": len(services),
            "refreshedAt": _now_iso(),
        }

    def health(self) -> dict:
        return {
            "status": "healthy",
            "timestamp": _now_iso(),
            "businessId": self.client.business_id,
            "features": ["business-api", "services-api", "kv-cache", "static-fallback"],
        }


def get_booking_catalog() -> BookingCatalog:
    return BookingCatalog(BooksyClient(), get_session_store())
