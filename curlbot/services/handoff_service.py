"""Hands a finished consultation over to the salon: summary email and CRM record."""

import asyncio

from curlbot.logging_config import get_logger
from curlbot.services.crm_service import CONSULTATION_TAGS, upsert_customer
from curlbot.services.email_service import send_consultation_email
from curlbot.services.media_store import MediaStore
from curlbot.services.session_store import SessionStore
from curlbot.services.storage_keys import media_prefix
from curlbot.services.summary_service import generate_or_fetch_summary, photo_urls

logger = get_logger("handoff_service")

DEFAULT_FIRST_NAME = "WhatsApp Client"


async def deliver_summary(phone: str, store: SessionStore, media_store: MediaStore) -> dict:
    """Email the summary and upsert the CRM customer, once each per session.

    Runs after the webhook response while the client may keep chatting, so
    the delivery flags are written onto a fresh copy of the session once the
    integrations return.
    """
    if not await store.exists(phone):
        logger.warning("Handoff skipped: session no longer exists", extra={"context": {"phone": phone}})
        return {"email": "no_session", "crm": "no_session"}

    session = await store.load(phone)
    outcome = {"email": "already_sent", "crm": "already_upserted"}
    if session.summary_email_sent and session.crm_upserted:
        return outcome

    summary = await generate_or_fetch_summary(session, phone, media_store)
    if not summary.ok:
        logger.error(f"Handoff postponed: {summary.error}", extra={"context": {"phone": phone}})
        return {"email": summary.error_code, "crm": summary.error_code}

    updates = {}
    if not session.summary:
        updates["summary"] = summary.value

    if not session.summary_email_sent:
        urls = photo_urls(media_store.list_prefix(media_prefix("whatsapp", phone)))
        result = await asyncio.to_thread(send_consultation_email, phone, summary.value, session.history, urls)
        outcome["email"] = "sent" if result.ok else (result.error_code or "failed")
        if result.ok or result.error_code == "email_disabled":
            updates["summary_email_sent"] = True

    if not session.crm_upserted:
        result = await asyncio.to_thread(
            upsert_customer,
            session.name or DEFAULT_FIRST_NAME,
            phone,
            session.email,
            CONSULTATION_TAGS,
            summary.value,
        )
        outcome["crm"] = "upserted" if result.ok else (result.error_code or "failed")
        if result.ok:
            updates["crm_upserted"] = True

    if updates and await store.update(phone, **updates) is None:
        logger.warning("Handoff flags dropped: session reset meanwhile", extra={"context": {"phone": phone}})
    logger.info("Consultation handoff finished", extra={"context": {"phone": phone, **outcome}})
    return outcome
