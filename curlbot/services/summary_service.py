"""Consultation summaries and the HTML views built on them."""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlencode

from jinja2 import Environment, FileSystemLoader, select_autoescape

from curlbot.config import settings
from curlbot.logging_config import get_logger
from curlbot.services.ai_service import get_llm_provider
from curlbot.services.media_service import public_media_url
from curlbot.services.media_store import MediaStore, StoredObject
from curlbot.services.result import Result
from curlbot.services.session_store import ConsultationSession
from curlbot.services.storage_keys import media_prefix

logger = get_logger("summary_service")

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

SUMMARY_INSTRUCTION = "Please provide a concise summary of the following consultation:"
SUMMARY_UNAVAILABLE = "Summary unavailable right now. Please review the transcript below."

template_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


def render_template(name: str, **context) -> str:
    return template_env.get_template(name).render(**context)


def token_query(token: Optional[str]) -> str:
    return f"?{urlencode({'token': token})}" if token else ""


def format_timestamp(epoch_seconds: Optional[int]) -> str:
    if not epoch_seconds:
        return "never"
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def flatten_content(content: object) -> str:
    """Reduce message content (string or part list) to plain text."""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    pieces = []
    for entry in content:
        if not isinstance(entry, dict):
            continue
        if entry.get("type") == "text" and entry.get("text"):
            pieces.append(entry["text"])
        elif entry.get("type") == "image_url" and (entry.get("image_url") or {}).get("url"):
            pieces.append(entry["image_url"]["url"])
    return " ".join(pieces)


def display_parts(content: object) -> List[dict]:
    """Message content as template-friendly parts: text and image entries."""
    if isinstance(content, str):
        return [{"kind": "text", "value": content}] if content else []
    parts = []
    for entry in content if isinstance(content, list) else []:
        if not isinstance(entry, dict):
            continue
        if entry.get("type") == "text" and entry.get("text"):
            parts.append({"kind": "text", "value": entry["text"]})
        elif entry.get("type") == "image_url" and (entry.get("image_url") or {}).get("url"):
            parts.append({"kind": "image", "value": entry["image_url"]["url"]})
    return parts


def display_history(history: List[dict]) -> List[dict]:
    return [
        {"role": message.get("role") or "unknown", "parts": display_parts(message.get("content"))}
        for message in history
        if message.get("role") in ("user", "assistant")
    ]


def photo_urls(objects: List[StoredObject], base_url: Optional[str] = None) -> List[str]:
    return [public_media_url(obj.key, base_url) for obj in objects]


async def generate_or_fetch_summary(
    session: ConsultationSession,
    phone: str,
    media_store: MediaStore,
    base_url: Optional[str] = None,
) -> Result[str]:
    """Return the stored summary, or ask the model to write one from the history.

    A failed or empty generation is a failure Result; callers must not store
    or send anything in its place.
    """
    if session.summary:
        return Result.success(session.summary)

    urls = photo_urls(media_store.list_prefix(media_prefix("whatsapp", phone)), base_url)
    messages = [{"role": "system", "content": SUMMARY_INSTRUCTION}]
    if urls:
        messages.append({"role": "system", "content": f"Photos Provided: {' | '.join(urls)}"})
    for message in session.history:
        if message.get("role") not in ("user", "assistant"):
            continue
        messages.append({"role": message["role"], "content": flatten_content(message.get("content"))})

    try:
        response = await asyncio.to_thread(
            get_llm_provider().generate,
            messages,
            model=settings.openai_summary_model,
            temperature=0.3,
            max_tokens=800,
            timeout_seconds=settings.openai_timeout_seconds,
        )
    except Exception as e:
        logger.error(f"Summary generation failed: {e}", extra={"context": {"phone": phone}})
        return Result.failure(str(e), "summary_failed")
    summary = (response.content or "").strip()
    if not summary:
        logger.warning("Summary generation returned no text", extra={"context": {"phone": phone}})
        return Result.failure("empty summary", "summary_empty")
    return Result.success(summary)


def render_summary_html(
    session: ConsultationSession,
    media_objects: List[StoredObject],
    base_url: Optional[str] = None,
) -> str:
    return render_template(
        "summary.html",
        business_name=settings.business_name,
        status=session.progress_status.value,
        last_active=format_timestamp(session.last_active),
        summary=session.summary,
        messages=display_history(session.history),
        images=photo_urls(media_objects, base_url),
    )


def render_admin_session_html(
    session: ConsultationSession,
    phone: str,
    media_objects: List[StoredObject],
    base_url: Optional[str] = None,
    token: Optional[str] = None,
) -> str:
    return render_template(
        "admin_session.html",
        query=token_query(token),
        phone=phone,
        session=session,
        status=session.progress_status.value,
        last_active=format_timestamp(session.last_active),
        messages=display_history(session.history),
        images=photo_urls(media_objects, base_url),
    )


def render_sessions_table_html(rows: List[dict], token: Optional[str] = None) -> str:
    """Rows carry phone, status, last_active (epoch) and flags."""
    prepared = [{**row, "last_active_display": format_timestamp(row.get("last_active"))} for row in rows]
    return render_template("admin_sessions.html", rows=prepared, query=token_query(token))


def render_admin_summary_html(phone: str, summary: str, token: Optional[str] = None) -> str:
    return render_template("admin_summary.html", phone=phone, summary=summary, query=token_query(token))


def render_docs_html(entries: List[dict], token: Optional[str] = None) -> str:
    return render_template("admin_docs.html", entries=entries, query=token_query(token))
