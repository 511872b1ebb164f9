import base64
import binascii

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import HTMLResponse

from curlbot.config import settings
from curlbot.services.media_store import MediaStore, get_media_store
from curlbot.services.session_store import SessionStore, get_session_store
from curlbot.services.storage_keys import media_prefix, normalize_phone_number
from curlbot.services.summary_service import render_summary_html

router = APIRouter(tags=["summary"])


def resolve_summary_id(raw_id: str) -> str:
    """Accept ``whatsapp:+1555...``, a bare number, or base64 of ``whatsapp:+...``."""
    try:
        decoded = base64.b64decode(raw_id, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        decoded = ""
    if decoded.startswith("whatsapp:+"):
        raw_id = decoded
    return normalize_phone_number(raw_id)


@router.get("/summary/{raw_id:path}", response_class=HTMLResponse)
async def summary_page(
    raw_id: str,
    store: SessionStore = Depends(get_session_store),
    media_store: MediaStore = Depends(get_media_store),
):
    phone = resolve_summary_id(raw_id)
    if not phone or not await store.exists(phone):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    session = await store.load(phone)
    objects = media_store.list_prefix(media_prefix("whatsapp", phone))
    return HTMLResponse(render_summary_html(session, objects, settings.public_base_url))
