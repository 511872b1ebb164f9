"""Knowledge documents synced from GitHub markdown."""

import hashlib
import hmac
from typing import List, Optional

import httpx
from sqlalchemy.orm import Session

from curlbot.config import settings
from curlbot.logging_config import get_logger
from curlbot.models import DocChunk
from curlbot.services.ai_service import get_llm_provider
from curlbot.services.result import Result
from curlbot.services.storage_keys import doc_chunk_key

logger = get_logger("doc_sync_service")

CHARS_PER_TOKEN = 4
DEFAULT_MAX_TOKENS = 500


class DocSyncError(Exception):
    def __init__(self, message: str, status_code: int = 502):
        self.status_code = status_code
        super().__init__(message)


def chunk_text(text: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> List[str]:
    """Split text into chunks of roughly ``max_tokens`` tokens, preferring spaces."""
    max_length = max_tokens * CHARS_PER_TOKEN
    chunks = []
    start = 0
    while start < len(text):
        end = start + max_length
        if end >= len(text):
            chunks.append(text[start:])
            break
        split = text.rfind(" ", start, end + 1)
        if split <= start:
            chunks.append(text[start:end])
            start = end
        else:
            chunks.append(text[start:split])
            start = split + 1
    return chunks


def build_prompt(title: str, chunks: List[str]) -> str:
    return "\n\n".join([f"Here is the content of {title}:", *chunks])


def verify_github_signature(body: bytes, signature: Optional[str], secret: Optional[str] = None) -> bool:
    """Check an ``X-Hub-Signature-256`` header. Passes when no secret is configured."""
    secret = secret if secret is not None else settings.github_webhook_secret
    if not secret:
        return True
    if not signature or not signature.startswith("sha256="):
        return False
    expected = "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def changed_markdown_paths(payload: dict) -> List[str]:
    """Added or modified ``.md`` files across the commits of a push event."""
    paths: List[str] = []
    for commit in payload.get("commits") or []:
        for path in (commit.get("added") or []) + (commit.get("modified") or []):
            if path.lower().endswith(".md") and path not in paths:
                paths.append(path)
    return paths


def fetch_markdown(owner: str, repo: str, path: str) -> str:
    url = f"{settings.github_raw_base.rstrip('/')}/{owner}/{repo}/{settings.github_branch}/{path}"
    with httpx.Client(timeout=15.0) as client:
        response = client.get(url)
    if response.status_code != 200:
        raise DocSyncError(f"Failed to fetch document: {response.status_code}", status_code=response.status_code)
    return response.text


def sync_document(db: Session, owner: str, repo: str, path: str) -> Result[int]:
    """Fetch, chunk and embed one document, replacing its stored chunks.

    Returns Result with the number of chunks written.
    """
    try:
        content = fetch_markdown(owner, repo, path)
    except (DocSyncError, httpx.HTTPError) as e:
        logger.error(f"Doc sync fetch failed for {owner}/{repo}/{path}: {e}")
        return Result.failure(str(e), "fetch_failed")

    chunks = chunk_text(content)
    try:
        embeddings = get_llm_provider().embed(chunks) if chunks else []
    except Exception as e:
        logger.error(f"Doc sync embedding failed for {owner}/{repo}/{path}: {e}")
        return Result.failure(str(e), "embed_failed")

    db.query(DocChunk).filter(DocChunk.owner == owner, DocChunk.repo == repo, DocChunk.path == path).delete(
        synchronize_session=False
    )
    for index, (chunk, embedding) in enumerate(zip(chunks, embeddings)):
        db.add(
            DocChunk(
                key=doc_chunk_key(owner, repo, path, index),
                owner=owner,
                repo=repo,
                path=path,
                chunk_index=index,
                content=chunk,
                embedding=embedding,
            )
        )
    db.commit()

    logger.info(f"Document synced: {owner}/{repo}/{path}", extra={"context": {"chunks": len(embeddings)}})
    return Result.success(len(embeddings))


def list_documents(db: Session) -> List[dict]:
    rows = db.query(DocChunk).order_by(DocChunk.owner, DocChunk.repo, DocChunk.path, DocChunk.chunk_index).all()
    return [
        {"key": row.key, "chars": len(row.content or ""), "document": f"{row.owner}/{row.repo}/{row.path}"}
        for row in rows
    ]


def document_prompt(db: Session, owner: str, repo: str, path: str) -> Optional[str]:
    """Reassemble a synced document's chunks into the prompt text, or None if never synced."""
    rows = (
        db.query(DocChunk)
        .filter(DocChunk.owner == owner, DocChunk.repo == repo, DocChunk.path == path)
        .order_by(DocChunk.chunk_index)
        .all()
    )
    if not rows:
        return None
    return build_prompt(path, [row.content or "" for row in rows])
