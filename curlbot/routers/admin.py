"""Operator dashboard for consultations, documents and follow-ups."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from sqlalchemy.orm import Session

from curlbot.config import settings
from curlbot.database import get_db
from curlbot.logging_config import get_logger
from curlbot.schemas import FollowupRunResponse
from curlbot.services.doc_sync_service import document_prompt, list_documents
from curlbot.services.media_store import MediaStore, get_media_store
from curlbot.services.scheduler_service import run_followups
from curlbot.services.session_store import SessionStore, get_session_store
from curlbot.services.storage_keys import media_prefix, normalize_phone_number
from curlbot.services.summary_service import (
    SUMMARY_UNAVAILABLE,
    generate_or_fetch_summary,
    render_admin_session_html,
    render_admin_summary_html,
    render_docs_html,
    render_sessions_table_html,
    token_query,
)

logger = get_logger("admin")

router = APIRouter(prefix="/admin", tags=["admin"])


def _require_admin_token(provided: Optional[str]) -> None:
    expected = settings.admin_token
    if not expected:
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured")
    if not provided or provided != expected:
        raise HTTPException(status_code=401, detail="Invalid admin token")


def admin_token(
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    token: Optional[str] = Query(default=None),
) -> Optional[str]:
    """Accept the token from the header or, for browser links, the query string."""
    provided = x_admin_token or token
    _require_admin_token(provided)
    return token


async def _load_existing(store: SessionStore, raw_phone: str):
    phone = normalize_phone_number(raw_phone)
    if not phone or not await store.exists(phone):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return phone, await store.load(phone)


@router.get("")
async def admin_root(token: Optional[str] = Depends(admin_token)):
    return RedirectResponse(url=f"/admin/sessions{token_query(token)}", status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get("/sessions", response_class=HTMLResponse)
async def list_sessions(
    token: Optional[str] = Depends(admin_token),
    store: SessionStore = Depends(get_session_store),
):
    rows = []
    async for phone, session in store.iter_sessions():
        rows.append(
            {
                "phone": phone,
                "status": session.progress_status.value,
                "last_active": session.last_active,
                "summary_email_sent": session.summary_email_sent,
                "nudge_sent": session.nudge_sent,
            }
        )
    rows.sort(key=lambda row: row["last_active"], reverse=True)
    return HTMLResponse(render_sessions_table_html(rows, token))


@router.get("/sessions/{phone}", response_class=HTMLResponse)
async def session_detail(
    phone: str,
    token: Optional[str] = Depends(admin_token),
    store: SessionStore = Depends(get_session_store),
    media_store: MediaStore = Depends(get_media_store),
):
    phone, session = await _load_existing(store, phone)
    objects = media_store.list_prefix(media_prefix("whatsapp", phone))
    return HTMLResponse(render_admin_session_html(session, phone, objects, settings.public_base_url, token))


@router.post("/sessions/{phone}/reset")
async def reset_session(
    phone: str,
    token: Optional[str] = Depends(admin_token),
    store: SessionStore = Depends(get_session_store),
    media_store: MediaStore = Depends(get_media_store),
):
    phone = normalize_phone_number(phone)
    if not phone:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing phone")
    deleted = media_store.delete_prefix(media_prefix("whatsapp", phone))
    await store.delete(phone)
    logger.info("Admin reset session", extra={"context": {"phone": phone, "deleted_media": deleted}})
    return RedirectResponse(url=f"/admin/sessions{token_query(token)}", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/summary/{phone}", response_class=HTMLResponse)
async def session_summary(
    phone: str,
    token: Optional[str] = Depends(admin_token),
    store: SessionStore = Depends(get_session_store),
    media_store: MediaStore = Depends(get_media_store),
):
    phone, session = await _load_existing(store, phone)
    result = await generate_or_fetch_summary(session, phone, media_store, settings.public_base_url)
    return HTMLResponse(render_admin_summary_html(phone, result.unwrap_or(SUMMARY_UNAVAILABLE), token))


@router.get("/docs", response_class=HTMLResponse)
async def docs(token: Optional[str] = Depends(admin_token), db: Session = Depends(get_db)):
    return HTMLResponse(render_docs_html(list_documents(db), token))


@router.get("/docs/{owner}/{repo}/{path:path}", response_class=PlainTextResponse)
async def doc_prompt(
    owner: str,
    repo: str,
    path: str,
    token: Optional[str] = Depends(admin_token),
    db: Session = Depends(get_db),
):
    """One synced document reassembled into prompt text."""
    prompt = document_prompt(db, owner, repo, path)
    if prompt is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not synced")
    return PlainTextResponse(prompt)


@router.post("/scheduler/run", response_model=FollowupRunResponse)
async def run_scheduler(
    token: Optional[str] = Depends(admin_token),
    store: SessionStore = Depends(get_session_store),
    media_store: MediaStore = Depends(get_media_store),
):
    stats = await run_followups(store, media_store)
    return FollowupRunResponse(**stats.as_dict())
