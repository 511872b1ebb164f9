import asyncio
import time
from typing import List, Optional, Union
from urllib.parse import quote

from curlbot.config import settings
from curlbot.logging_config import get_logger
from curlbot.prompts import SUMMARY_HEADER, SYSTEM_PROMPT
from curlbot.services.booksy_service import BookingCatalog, get_booking_catalog
from curlbot.services.llm import OpenAIProvider
from curlbot.services.result import Result
from curlbot.services.session_store import ConsultationSession
from curlbot.services.state_machine import ConsultationStatus, mark_summary_ready
from curlbot.services.storage_keys import is_valid_phone
from curlbot.services.tools import BOOKING_TOOLS, run_tool_calls

logger = get_logger("ai_service")

EMPTY_REPLY = "I'm having trouble understanding that request."
EMPTY_TOOL_REPLY = "I'm having trouble processing that request right now."
TRANSCRIPTION_FAILED = "Unable to transcribe audio due to an API error."
TRANSCRIPTION_EMPTY = "Audio transcribed but no text was detected."

STATIC_SERVICES_REPLY = (
    "I'm having trouble accessing the current service information, but I can help you with our services "
    "based on available data. Here are the services Tata offers:\n\n"
    "💫 *Curly Hair Services*\n"
    "• Curly Adventure (Regular client): Starting $180 | 2.5h\n"
    "• Curly Cut + Simple Definition: Starting $150 | 1.5h\n"
    "• Deep Wash and Style Only: Starting $150 | 1.5h\n\n"
    "🎨 *Color Services*\n"
    "• Curly Color Experience: Starting $250 | 2.5h\n\n"
    "🌿 *Treatments & Therapy*\n"
    "• Scalp Treatment: Starting $140 | 1.5h\n"
    "• Ozone Therapy: Starting $150 | 2h\n\n"
    "To book, visit {booking_url} 😊"
)

SERVICES_FALLBACK = """Hi there! 😊 I'm Tata's assistant. Here are the main services:

✂️ *Curly Adventure (First Time)* - $200 (2.5 hours)
Perfect for new clients to discover your curl pattern!

✂️ *Curly Adventure (Regular Client)* - $180 (2 hours)
For clients who know their curls already

💆‍♀️ *Consultation Only* - $50 (45 minutes)
Great way to start your curly journey

To book, visit Tata's Booksy page and use the "Search for service" box under her name/photo!"""

BOOKING_FALLBACK = """I'd love to help you book! 📅

To schedule your appointment:
1. Visit Tata's Booksy page
2. Look for the "Search for service" box under Tata's name/photo
3. Search for your desired service
4. Click "Book" and select your preferred time

The live calendar will show all available slots. I'm here if you need help choosing the right service! 😊"""

NEW_CLIENT_FALLBACK = """Welcome to your curly hair journey! 🌟

For first-time clients, I recommend:
✂️ *Curly Adventure (First Time)* - $200 (2.5 hours)
This includes consultation, cut, and styling education!

Or start with:
💆‍♀️ *Consultation Only* - $50 (45 minutes)
Perfect to understand your curl pattern first

Ready to book? Visit Tata's Booksy page and search for your chosen service! 😊"""

DEFAULT_FALLBACK = """Hi there! 😊 I'm Tata's assistant, here to help with your curly hair journey!

I can help you:
🔍 Find the perfect service for your curls
💰 Get pricing and duration info
📅 Guide you through booking
✨ Answer questions about curly hair care

What can I help you with today? Just let me know if you're a new or returning client and I'll show you the best options! 🌈"""

# Global LLM provider instance
_llm_provider = None


def get_llm_provider() -> OpenAIProvider:
    """Get or create LLM provider instance."""
    global _llm_provider
    if _llm_provider is None:
        _llm_provider = OpenAIProvider(api_key=settings.openai_api_key or "", default_model=settings.openai_model)
    return _llm_provider


def build_system_prompt(phone: str) -> str:
    base = settings.public_base_url.rstrip("/")
    summary_url = f"{base}/summary/whatsapp:"
    prompt = (
        SYSTEM_PROMPT.replace("{{BUSINESS_NAME}}", settings.business_name)
        .replace("{{HANDOFF_NUMBER}}", settings.handoff_whatsapp_number)
        .replace("{{SUMMARY_URL_ENCODED}}", quote(summary_url, safe=""))
        .replace("{{SUMMARY_URL}}", summary_url)
    )
    if "{{USER_PHONE}}" not in prompt:
        logger.warning("System prompt is missing the {{USER_PHONE}} placeholder")
        return prompt
    if not is_valid_phone(phone):
        logger.warning(f"Skipping phone injection due to invalid number: {phone!r}")
        return prompt
    return prompt.replace("{{USER_PHONE}}", quote(phone, safe=""))


def build_user_content(body: str, media_items: List[dict]) -> Union[str, List[dict]]:
    """Content of the user turn as sent to the model."""
    if not media_items:
        return body
    content: List[dict] = []
    for item in media_items:
        if item.get("type") == "audio_transcription":
            content.append({"type": "text", "text": f"Transcribed Audio: {item.get('transcription', '')}"})
        elif item.get("type") == "image_url":
            content.append({"type": "image_url", "image_url": item["image_url"]})
    if body:
        content.append({"type": "text", "text": body})
    return content


def build_history_content(body: str, media_items: List[dict]) -> Union[str, List[dict]]:
    """Like build_user_content, but keeps a reference to stored audio objects."""
    if not media_items:
        return body
    content: List[dict] = []
    for item in media_items:
        if item.get("type") == "audio_transcription":
            content.append({"type": "text", "text": f"Transcribed Audio: {item.get('transcription', '')}"})
            content.append({"type": "audio_reference", "original_key": item.get("original_key")})
        elif item.get("type") == "image_url":
            content.append({"type": "image_url", "image_url": item["image_url"]})
    if body:
        content.append({"type": "text", "text": body})
    return content


def _strip_internal_parts(message: dict) -> dict:
    content = message.get("content")
    if not isinstance(content, list):
        return {"role": message.get("role"), "content": content}
    parts = [part for part in content if isinstance(part, dict) and part.get("type") != "audio_reference"]
    return {"role": message.get("role"), "content": parts}


def build_messages(
    session: ConsultationSession,
    phone: str,
    user_content: Union[str, List[dict]],
    base_url: Optional[str] = None,
) -> List[dict]:
    base = (base_url or settings.public_base_url).rstrip("/")
    messages = [{"role": "system", "content": build_system_prompt(phone)}]
    if session.summary:
        messages.append({"role": "assistant", "content": session.summary})
    if session.progress_status == ConsultationStatus.SUMMARY_READY:
        messages.append(
            {
                "role": "assistant",
                "content": f"You can now send your consultation summary to {settings.business_name} 💌:\n"
                f"{base}/summary/whatsapp:{phone}",
            }
        )
    messages.extend(_strip_internal_parts(message) for message in session.history)
    messages.append({"role": "user", "content": user_content})
    return messages


def _message_text(content: object) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return " ".join(
            part.get("text", "") for part in content if isinstance(part, dict) and part.get("type") == "text"
        )
    return ""


def generate_smart_fallback(user_message: str) -> str:
    """Canned reply chosen from keywords in the user's last message."""
    message = (user_message or "").lower()
    if "service" in message or "price" in message or "cost" in message:
        return SERVICES_FALLBACK
    if "book" in message or "appointment" in message or "schedule" in message:
        return BOOKING_FALLBACK
    if "new" in message or "first time" in message:
        return NEW_CLIENT_FALLBACK
    return DEFAULT_FALLBACK


async def generate_reply(
    messages: List[dict],
    catalog: Optional[BookingCatalog] = None,
    tools_enabled: Optional[bool] = None,
) -> Result[str]:
    """
    Produce the assistant reply for an assembled conversation.

    Returns Result with the reply text. A degraded result (fallback=True)
    still carries a reply suitable for the user.
    """
    provider = get_llm_provider()
    if tools_enabled is None:
        tools_enabled = settings.function_calling_enabled
    last_user_text = _message_text(messages[-1].get("content")) if messages else ""

    start = time.monotonic()
    try:
        response = await asyncio.to_thread(
            provider.generate,
            messages,
            model=settings.openai_model,
            temperature=0.7,
            max_tokens=1000,
            tools=BOOKING_TOOLS if tools_enabled else None,
            timeout_seconds=settings.openai_timeout_seconds,
        )
    except Exception as e:
        logger.error(f"LLM completion failed: {e}")
        return Result.degraded(generate_smart_fallback(last_user_text), str(e), "llm_error")
    finally:
        logger.info(
            "Timing",
            extra={"context": {"stage": "llm_ms", "elapsed_ms": round((time.monotonic() - start) * 1000, 2)}},
        )

    if not response.tool_calls:
        return Result.success((response.content or "").strip() or EMPTY_REPLY)

    logger.info(f"Processing {len(response.tool_calls)} tool call(s)")
    catalog = catalog or get_booking_catalog()
    try:
        tool_messages = await asyncio.wait_for(
            run_tool_calls(response.tool_calls, catalog),
            timeout=settings.tool_calls_timeout_seconds,
        )
        follow_up = [*messages, response.as_message(), *tool_messages]
        final = await asyncio.to_thread(
            provider.generate,
            follow_up,
            model=settings.openai_model,
            temperature=0.7,
            max_tokens=1200,
            tools=None,
            timeout_seconds=settings.openai_timeout_seconds,
        )
    except Exception as e:
        logger.error(f"Tool calling phase failed: {e}")
        return Result.degraded(STATIC_SERVICES_REPLY.format(booking_url=settings.booksy_url), str(e), "tool_error")

    return Result.success((final.content or "").strip() or EMPTY_TOOL_REPLY)


def extract_summary_from_reply(reply: str, session: ConsultationSession) -> bool:
    """Store the reply as the session summary when it contains the summary header."""
    if not reply or SUMMARY_HEADER not in reply:
        return False
    session.summary = reply
    session.progress_status = mark_summary_ready(session.progress_status)
    return True


def transcribe_audio(audio_bytes: bytes, *, filename: str, mime_type: Optional[str] = None) -> str:
    """Transcribe a voice note. Always returns text suitable for the conversation."""
    if not settings.openai_api_key:
        logger.warning("Audio transcription skipped: OPENAI_API_KEY missing")
        return TRANSCRIPTION_FAILED

    try:
        transcript = get_llm_provider().transcribe_audio(
            audio_bytes=audio_bytes,
            filename=filename,
            mime_type=mime_type,
            timeout_seconds=30.0,
        )
    except Exception as exc:
        logger.warning(f"Audio transcription failed: {exc}")
        return TRANSCRIPTION_FAILED
    return (transcript or "").strip() or TRANSCRIPTION_EMPTY
