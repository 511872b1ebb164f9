"""Consultation summary emails sent through Resend."""

from typing import List, Optional

import resend

from curlbot.config import settings
from curlbot.logging_config import get_logger
from curlbot.services.alert_service import alert_error
from curlbot.services.result import Result
from curlbot.services.summary_service import display_parts, render_template

logger = get_logger("email_service")

SUPPORTED_PROVIDERS = {"resend"}


def email_subject(phone: str) -> str:
    return f"New Curl Consultation – {phone}"


def build_transcript(history: List[dict]) -> List[dict]:
    transcript = []
    for message in history:
        role = message.get("role")
        if role == "user":
            speaker = "User"
        elif role == "assistant":
            speaker = "Assistant"
        else:
            continue
        transcript.append({"speaker": speaker, "parts": display_parts(message.get("content"))})
    return transcript


def render_consultation_email(
    phone: str,
    summary: str,
    history: Optional[List[dict]] = None,
    image_urls: Optional[List[str]] = None,
) -> str:
    return render_template(
        "consultation_email.html",
        subject=email_subject(phone),
        summary=summary,
        image_urls=image_urls or [],
        transcript=build_transcript(history or []),
    )


def _send_once(payload: dict) -> str:
    resend.api_key = settings.resend_api_key
    result = resend.Emails.send(payload)
    return result.get("id", "") if isinstance(result, dict) else str(getattr(result, "id", ""))


def send_consultation_email(
    phone: str,
    summary: str,
    history: Optional[List[dict]] = None,
    image_urls: Optional[List[str]] = None,
) -> Result[str]:
    """
    Email the consultation summary to the salon.

    Returns Result with the provider message id. Skipped when email is
    disabled; retried once before alerting.
    """
    if not settings.email_enabled:
        logger.debug("Email disabled, skipping consultation email")
        return Result.skipped("email_disabled")

    provider = (settings.email_provider or "").lower()
    if provider not in SUPPORTED_PROVIDERS:
        logger.warning(f"Email provider not supported: {provider}")
        return Result.failure(f"unsupported provider: {provider}", "unsupported_provider")

    if not settings.resend_api_key:
        logger.error("RESEND_API_KEY is not configured")
        return Result.failure("RESEND_API_KEY is not configured", "missing_api_key")

    payload = {
        "from": settings.email_from,
        "to": [settings.email_to] if settings.email_to else [],
        "subject": email_subject(phone),
        "html": render_consultation_email(phone, summary, history, image_urls),
    }

    try:
        message_id = _send_once(payload)
    except Exception as e:
        logger.error(f"Error sending email, retrying once: {e}", extra={"context": {"phone": phone}})
        try:
            message_id = _send_once(payload)
        except Exception as retry_error:
            logger.error(f"Email retry failed: {retry_error}", extra={"context": {"phone": phone}})
            alert_error("Consultation email failed", {"phone": phone, "error": str(retry_error)})
            return Result.failure(str(retry_error), "send_failed")

    logger.info("Consultation email sent", extra={"context": {"phone": phone, "message_id": message_id}})
    return Result.success(message_id)
