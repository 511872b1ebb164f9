"""Twilio WhatsApp webhook."""

import asyncio

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status

from curlbot.config import settings
from curlbot.logging_config import LoggerAdapter, get_logger
from curlbot.services.ai_service import (
    build_history_content,
    build_messages,
    build_user_content,
    extract_summary_from_reply,
    generate_reply,
)
from curlbot.services.booksy_service import BookingCatalog, get_booking_catalog
from curlbot.services.email_service import send_consultation_email
from curlbot.services.handoff_service import deliver_summary
from curlbot.services.media_service import collect_media_urls, ingest_media
from curlbot.services.media_store import MediaStore, get_media_store
from curlbot.services.session_store import SessionStore, get_session_store
from curlbot.services.state_machine import ConsultationStatus, advance_for_message, mark_summary_ready
from curlbot.services.storage_keys import is_valid_phone, media_prefix, normalize_phone_number
from curlbot.services.summary_service import generate_or_fetch_summary, photo_urls
from curlbot.services.twilio_service import TWIML_MEDIA_TYPE, build_twiml_reply, validate_signature

logger = get_logger("whatsapp")

router = APIRouter(tags=["whatsapp"])

RESET_TRIGGERS = {"restart", "reset", "clear", "start over", "new consultation"}
EMAIL_TRIGGERS = {"send email", "email summary"}

RESET_REPLY = "No problem! I've cleared our conversation so we can start fresh. 🌱 What would you like to do next?"
NOTHING_TO_SUMMARIZE_REPLY = (
    "Sorry, I haven't captured any conversation yet to summarize. Let's chat a bit more before sending the email!"
)
EMAIL_SENT_REPLY = "Done! 💌 I've sent your consultation summary to {business} by email."
EMAIL_FAILED_REPLY = "I couldn't send the email just now. Please try again in a few minutes. 🙏"
EMAIL_DISABLED_REPLY = (
    "Your consultation summary is saved 💛 The {business} team will go over it with you at your appointment."
)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _twiml(text: str) -> Response:
    return Response(content=build_twiml_reply(text), media_type=TWIML_MEDIA_TYPE)


@router.post("/whatsapp/incoming")
async def whatsapp_incoming(
    request: Request,
    background_tasks: BackgroundTasks,
    store: SessionStore = Depends(get_session_store),
    media_store: MediaStore = Depends(get_media_store),
    catalog: BookingCatalog = Depends(get_booking_catalog),
):
    """Handle one inbound WhatsApp message and answer with TwiML."""
    content_type = request.headers.get("content-type", "")
    if not any(kind in content_type for kind in FORM_CONTENT_TYPES):
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail="Unsupported Media Type")

    form = await request.form()
    params = {key: str(value) for key, value in form.items()}

    if settings.twilio_validate_signature:
        signed_url = f"{settings.public_base_url.rstrip('/')}{request.url.path}"
        if not validate_signature(signed_url, params, request.headers.get("X-Twilio-Signature")):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid Twilio signature")

    phone = normalize_phone_number(params.get("From"))
    if not phone:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing sender")
    log = LoggerAdapter(logger, {"phone": phone})
    if not is_valid_phone(phone):
        log.warning("Invalid phone number")

    body = params.get("Body", "")
    base_url = settings.public_base_url

    media_items = await ingest_media(phone, collect_media_urls(params), media_store, base_url)
    log.info("Incoming message", context={"body_len": len(body), "media": len(media_items)})

    session = await store.load(phone)
    session.touch()
    session.progress_status = advance_for_message(
        session.progress_status, has_media=bool(media_items), has_text=bool(body.strip())
    )

    incoming = body.strip().lower()

    if incoming in RESET_TRIGGERS:
        deleted = media_store.delete_prefix(media_prefix("whatsapp", phone))
        await store.delete(phone)
        log.info("Session reset", context={"deleted_media": deleted})
        return _twiml(RESET_REPLY)

    if incoming in EMAIL_TRIGGERS:
        if not session.history:
            return _twiml(NOTHING_TO_SUMMARIZE_REPLY)
        summary = await generate_or_fetch_summary(session, phone, media_store, base_url)
        if not summary.ok:
            log.warning("Summary email skipped", context={"error_code": summary.error_code})
            await store.save(session)
            return _twiml(EMAIL_FAILED_REPLY)
        urls = photo_urls(media_store.list_prefix(media_prefix("whatsapp", phone)), base_url)
        result = await asyncio.to_thread(send_consultation_email, phone, summary.value, session.history, urls)
        session.summary = summary.value
        session.progress_status = mark_summary_ready(session.progress_status)
        if result.ok:
            session.summary_email_sent = True
            reply = EMAIL_SENT_REPLY.format(business=settings.business_name)
        elif result.error_code == "email_disabled":
            session.summary_email_sent = True
            reply = EMAIL_DISABLED_REPLY.format(business=settings.business_name)
        else:
            reply = EMAIL_FAILED_REPLY
        await store.save(session)
        return _twiml(reply)

    was_ready = session.progress_status == ConsultationStatus.SUMMARY_READY
    messages = build_messages(session, phone, build_user_content(body, media_items), base_url)
    result = await generate_reply(messages, catalog)
    reply = result.value
    if result.fallback:
        log.warning("Replying with fallback", context={"error_code": result.error_code})

    if extract_summary_from_reply(reply, session) and not was_ready:
        log.info("Consultation summary ready")
        background_tasks.add_task(deliver_summary, phone, store, media_store)

    session.history.append({"role": "user", "content": build_history_content(body, media_items)})
    session.history.append({"role": "assistant", "content": reply})
    await store.save(session)

    return _twiml(reply)
