from typing import Mapping, Optional

from twilio.base.exceptions import TwilioException
from twilio.request_validator import RequestValidator
from twilio.rest import Client
from twilio.twiml.messaging_response import MessagingResponse

from curlbot.config import settings
from curlbot.logging_config import get_logger
from curlbot.services.result import Result

logger = get_logger("twilio_service")

TWIML_MEDIA_TYPE = "text/xml; charset=UTF-8"

_twilio_client = None


def build_twiml_reply(text: str) -> str:
    """TwiML response carrying one WhatsApp message."""
    response = MessagingResponse()
    response.message(text)
    return str(response)


def validate_signature(url: str, params: Mapping[str, str], signature: Optional[str]) -> bool:
    if not settings.twilio_auth_token:
        logger.warning("Twilio signature validation requested but TWILIO_AUTH_TOKEN is missing")
        return False
    validator = RequestValidator(settings.twilio_auth_token)
    return validator.validate(url, dict(params), signature or "")


def get_twilio_client() -> Client:
    global _twilio_client
    if _twilio_client is None:
        _twilio_client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
    return _twilio_client


def send_whatsapp_message(phone: str, body: str) -> Result[str]:
    """Send an outbound WhatsApp message. Returns Result with the message SID."""
    if not settings.twilio_account_sid or not settings.twilio_auth_token or not settings.twilio_whatsapp_number:
        return Result.skipped("twilio_not_configured")

    sender = settings.twilio_whatsapp_number
    if not sender.startswith("whatsapp:"):
        sender = f"whatsapp:{sender}"

    try:
        message = get_twilio_client().messages.create(from_=sender, to=f"whatsapp:{phone}", body=body)
    except TwilioException as e:
        logger.error(f"Twilio send failed: {e}", extra={"context": {"phone": phone}})
        return Result.failure(str(e), "twilio_error")

    logger.info("WhatsApp message sent", extra={"context": {"phone": phone, "sid": message.sid}})
    return Result.success(message.sid)
