"""Shopify customer records for consultation leads."""

from typing import Optional

import httpx

from curlbot.config import settings
from curlbot.logging_config import get_logger
from curlbot.services.result import Result

logger = get_logger("crm_service")

CONSULTATION_TAGS = "whatsapp,consultation-lead,summary-complete"
SHOPIFY_TIMEOUT_SECONDS = 10.0


def _admin_url(path: str) -> str:
    return f"https://{settings.shopify_store_domain}/admin/api/{settings.shopify_api_version}/{path}"


def _headers() -> dict:
    return {"Content-Type": "application/json", "X-Shopify-Access-Token": settings.shopify_api_token or ""}


def _merge_tags(existing: Optional[str], new: Optional[str]) -> str:
    tags = []
    for raw in (existing or "", new or ""):
        for tag in raw.split(","):
            tag = tag.strip()
            if tag and tag not in tags:
                tags.append(tag)
    return ",".join(tags)


def _update_existing(client: httpx.Client, customer: dict) -> Result[dict]:
    """Find the customer by phone and merge tags/note onto it."""
    search = client.get(
        _admin_url("customers/search.json"),
        headers=_headers(),
        params={"query": f"phone:{customer['phone']}"},
    )
    if search.status_code != 200:
        return Result.failure(f"Shopify search failed: {search.status_code}", "search_failed")
    matches = search.json().get("customers") or []
    if not matches:
        return Result.failure("Shopify reported an existing customer but search found none", "not_found")

    existing = matches[0]
    update = {
        "id": existing["id"],
        "tags": _merge_tags(existing.get("tags"), customer.get("tags")),
    }
    if customer.get("note"):
        update["note"] = customer["note"]
    response = client.put(
        _admin_url(f"customers/{existing['id']}.json"),
        headers=_headers(),
        json={"customer": update},
    )
    if response.status_code != 200:
        return Result.failure(f"Shopify update failed: {response.status_code}", "update_failed")
    return Result.success(response.json().get("customer") or update)


def upsert_customer(
    first_name: Optional[str],
    phone: str,
    email: Optional[str] = None,
    tags: Optional[str] = CONSULTATION_TAGS,
    note: Optional[str] = None,
) -> Result[dict]:
    """
    Create the Shopify customer, or update it when one already exists for this phone.

    Returns Result with the customer record; skipped when Shopify is not configured.
    """
    if not settings.shopify_store_domain or not settings.shopify_api_token:
        return Result.skipped("shopify_not_configured")

    customer = {"first_name": first_name, "phone": phone, "email": email, "tags": tags, "note": note}
    customer = {key: value for key, value in customer.items() if value is not None}

    try:
        with httpx.Client(timeout=SHOPIFY_TIMEOUT_SECONDS) as client:
            response = client.post(_admin_url("customers.json"), headers=_headers(), json={"customer": customer})
            if response.status_code in (200, 201):
                logger.info("Shopify customer created", extra={"context": {"phone": phone}})
                return Result.success(response.json().get("customer") or customer)
            if response.status_code == 422:
                logger.info("Shopify customer exists, updating", extra={"context": {"phone": phone}})
                return _update_existing(client, customer)
            logger.error(f"Shopify upsert failed: {response.status_code} {response.text[:300]}")
            return Result.failure(f"Shopify error: {response.status_code}", "shopify_error")
    except httpx.HTTPError as e:
        logger.error(f"Shopify upsert error: {e}", extra={"context": {"phone": phone}})
        return Result.failure(str(e), "shopify_unreachable")
