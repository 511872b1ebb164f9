"""Follow-ups for consultations that stalled halfway."""

import asyncio
import time
from dataclasses import asdict, dataclass
from typing import Optional

from curlbot.config import settings
from curlbot.logging_config import get_logger
from curlbot.services.alert_service import alert_warning
from curlbot.services.email_service import send_consultation_email
from curlbot.services.media_store import MediaStore
from curlbot.services.session_store import ConsultationSession, SessionStore
from curlbot.services.state_machine import ConsultationStatus
from curlbot.services.storage_keys import media_prefix
from curlbot.services.summary_service import generate_or_fetch_summary, photo_urls
from curlbot.services.twilio_service import send_whatsapp_message

logger = get_logger("scheduler_service")

NUDGE_MESSAGE = (
    "Hi love! 💛 Just checking in, you were making great progress in your curl consultation! 🌱 "
    "Let me know if you're ready to finish or if you have any questions."
)


@dataclass
class FollowupStats:
    scanned: int = 0
    stale: int = 0
    emails_sent: int = 0
    nudges_sent: int = 0
    errors: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def is_stale(session: ConsultationSession, now: int, threshold_seconds: Optional[int] = None) -> bool:
    threshold = threshold_seconds if threshold_seconds is not None else settings.nudge_after_seconds
    return session.progress_status == ConsultationStatus.MIDWAY and now - session.last_active > threshold


def should_email_summary(session: ConsultationSession) -> bool:
    return not session.summary_email_sent and bool(session.name or session.has_uploaded_image())


async def _follow_up(
    phone: str,
    session: ConsultationSession,
    store: SessionStore,
    media_store: MediaStore,
    stats: FollowupStats,
) -> None:
    updates = {}

    if should_email_summary(session):
        summary = await generate_or_fetch_summary(session, phone, media_store)
        if summary.ok:
            urls = photo_urls(media_store.list_prefix(media_prefix("whatsapp", phone)))
            result = await asyncio.to_thread(send_consultation_email, phone, summary.value, session.history, urls)
            if result.ok or result.error_code == "email_disabled":
                updates["summary_email_sent"] = True
                if result.ok:
                    stats.emails_sent += 1
        else:
            logger.warning(f"Summary email skipped: {summary.error}", extra={"context": {"phone": phone}})

    if not session.nudge_sent:
        result = await asyncio.to_thread(send_whatsapp_message, phone, NUDGE_MESSAGE)
        if result.ok:
            updates["nudge_sent"] = True
            stats.nudges_sent += 1
        else:
            logger.warning(f"Nudge not sent: {result.error}", extra={"context": {"phone": phone}})

    if updates:
        await store.update(phone, **updates)


async def run_followups(store: SessionStore, media_store: MediaStore, now: Optional[int] = None) -> FollowupStats:
    """Email stalled consultations' summaries and nudge the clients once."""
    now = now if now is not None else int(time.time())
    stats = FollowupStats()

    async for phone, session in store.iter_sessions():
        stats.scanned += 1
        if not is_stale(session, now):
            continue
        stats.stale += 1
        try:
            await _follow_up(phone, session, store, media_store, stats)
        except Exception as e:
            stats.errors += 1
            logger.error(f"Follow-up failed: {e}", extra={"context": {"phone": phone}}, exc_info=True)
            await asyncio.to_thread(alert_warning, f"Follow-up failed: {e}", {"phone": phone})

    logger.info("Follow-up run finished", extra={"context": stats.as_dict()})
    return stats
