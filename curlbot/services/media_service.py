"""Download Twilio media attachments into the media store."""

import asyncio
import time
from typing import List, Optional
from urllib.parse import quote

import httpx

from curlbot.config import settings
from curlbot.logging_config import get_logger
from curlbot.services.ai_service import transcribe_audio
from curlbot.services.media_store import MediaStore
from curlbot.services.storage_keys import media_object_key

logger = get_logger("media_service")

DEFAULT_MEDIA_TYPE = "application/octet-stream"
MEDIA_DOWNLOAD_TIMEOUT_SECONDS = 15.0


def extension_for(content_type: Optional[str]) -> str:
    """'image/jpeg' -> 'jpeg', 'audio/ogg; codecs=opus' -> 'ogg', missing subtype -> 'bin'."""
    media_type = (content_type or DEFAULT_MEDIA_TYPE).split(";", 1)[0].strip()
    parts = media_type.split("/", 1)
    if len(parts) < 2 or not parts[1]:
        return "bin"
    return parts[1]


def public_media_url(key: str, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.public_base_url).rstrip("/")
    return f"{base}/images/{quote(key, safe='')}"


def collect_media_urls(form: dict) -> List[str]:
    """MediaUrl0..MediaUrl{NumMedia-1} from a Twilio webhook form."""
    try:
        count = int(form.get("NumMedia") or 0)
    except (TypeError, ValueError):
        count = 0
    urls = []
    for i in range(max(count, 0)):
        url = form.get(f"MediaUrl{i}")
        if url:
            urls.append(url)
    return urls


async def ingest_media(
    phone: str,
    media_urls: List[str],
    store: MediaStore,
    base_url: Optional[str] = None,
    now_ms: Optional[int] = None,
) -> List[dict]:
    """Store each attachment and describe it for the conversation.

    Images become ``image_url`` parts pointing at the public proxy; audio is
    transcribed into an ``audio_transcription`` item. Failed downloads are
    logged and skipped.
    """
    if not media_urls:
        return []

    auth = None
    if settings.twilio_account_sid and settings.twilio_auth_token:
        auth = (settings.twilio_account_sid, settings.twilio_auth_token)

    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    items: List[dict] = []

    async with httpx.AsyncClient(timeout=MEDIA_DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True) as client:
        for i, url in enumerate(media_urls):
            try:
                response = await client.get(url, auth=auth)
            except httpx.HTTPError as e:
                logger.error(f"Error fetching Twilio media {url}: {e}")
                continue
            if response.status_code != 200:
                logger.error(f"Failed to fetch Twilio media {url}: {response.status_code} {response.text[:200]}")
                continue

            content_type = response.headers.get("content-type") or DEFAULT_MEDIA_TYPE
            extension = extension_for(content_type)
            key = media_object_key("whatsapp", phone, f"{timestamp}-{i}.{extension}")
            data = response.content
            try:
                store.put(key, data)
            except (OSError, ValueError) as e:
                logger.error(f"Failed to store media {key}: {e}")
                continue

            if content_type.startswith("audio/"):
                transcription = await asyncio.to_thread(
                    transcribe_audio,
                    data,
                    filename=f"audio.{extension}",
                    mime_type=content_type.split(";", 1)[0],
                )
                items.append({"type": "audio_transcription", "transcription": transcription, "original_key": key})
            else:
                items.append({"type": "image_url", "image_url": {"url": public_media_url(key, base_url)}})

    logger.info(f"Ingested {len(items)} of {len(media_urls)} media item(s)", extra={"context": {"phone": phone}})
    return items
