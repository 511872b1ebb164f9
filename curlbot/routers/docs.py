"""GitHub push webhook and manual document sync."""

import json
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from curlbot.database import get_db
from curlbot.logging_config import get_logger
from curlbot.routers.admin import admin_token
from curlbot.schemas import DocSyncRequest, DocSyncResponse, UploadHookResponse
from curlbot.services.doc_sync_service import changed_markdown_paths, sync_document, verify_github_signature

logger = get_logger("docs")

router = APIRouter(tags=["docs"])


@router.post("/uploadhook", response_model=UploadHookResponse)
async def upload_hook(
    request: Request,
    db: Session = Depends(get_db),
    x_hub_signature_256: Optional[str] = Header(default=None, alias="X-Hub-Signature-256"),
    x_github_event: Optional[str] = Header(default=None, alias="X-GitHub-Event"),
):
    body = await request.body()
    if not verify_github_signature(body, x_hub_signature_256):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    try:
        payload = json.loads(body or b"{}")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")

    if x_github_event == "ping":
        return UploadHookResponse(success=True, message="pong")

    repository = payload.get("repository") or {}
    owner_info = repository.get("owner") or {}
    owner = owner_info.get("login") or owner_info.get("name")
    repo = repository.get("name")
    if not owner or not repo:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing repository")

    synced, failed = [], []
    for path in changed_markdown_paths(payload):
        result = sync_document(db, owner, repo, path)
        (synced if result.ok else failed).append(path)

    logger.info(
        "Upload hook processed",
        extra={"context": {"repo": f"{owner}/{repo}", "synced": len(synced), "failed": len(failed)}},
    )
    return UploadHookResponse(success=not failed, synced=synced, failed=failed)


@router.post("/internal/doc-sync", response_model=DocSyncResponse)
async def doc_sync(
    request: DocSyncRequest,
    token: Optional[str] = Depends(admin_token),
    db: Session = Depends(get_db),
):
    result = sync_document(db, request.owner, request.repo, request.path)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return DocSyncResponse(success=True, chunks=result.value, message="Document synced")
