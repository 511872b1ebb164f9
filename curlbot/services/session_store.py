"""Per-user consultation sessions kept in Redis.

One JSON document per WhatsApp number, keyed by ``chat_history_key``. Uploaded
media is never listed in the record; readers list the media store by prefix.
"""

import json
import time
from typing import Any, AsyncIterator, Optional

import redis.asyncio as redis_async
from pydantic import BaseModel, ConfigDict, Field, field_validator

from curlbot.config import settings
from curlbot.logging_config import get_logger
from curlbot.services.state_machine import ConsultationStatus
from curlbot.services.storage_keys import chat_history_key, chat_history_prefix, phone_from_history_key

logger = get_logger("session_store")

PLATFORM = "whatsapp"

_redis_client = None


class ConsultationSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    phone: Optional[str] = None
    history: list[dict] = Field(default_factory=list)
    progress_status: ConsultationStatus = ConsultationStatus.STARTED
    summary: Optional[str] = None
    summary_email_sent: bool = False
    crm_upserted: bool = False
    nudge_sent: bool = False
    last_active: int = 0
    name: Optional[str] = None
    email: Optional[str] = None

    @field_validator("history", mode="before")
    @classmethod
    def coerce_history(cls, value: object) -> list:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @field_validator("progress_status", mode="before")
    @classmethod
    def coerce_status(cls, value: object) -> object:
        if value in {status.value for status in ConsultationStatus}:
            return value
        return ConsultationStatus.STARTED

    @field_validator("summary_email_sent", "crm_upserted", "nudge_sent", mode="before")
    @classmethod
    def coerce_flag(cls, value: object) -> bool:
        return bool(value)

    def touch(self, now: Optional[int] = None) -> None:
        self.last_active = int(now if now is not None else time.time())

    def has_uploaded_image(self) -> bool:
        for message in self.history:
            content = message.get("content")
            if isinstance(content, list) and any(
                isinstance(part, dict) and part.get("type") == "image_url" for part in content
            ):
                return True
        return False


def get_redis_client():
    """Get or create the shared async Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis_async.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


class SessionStore:
    def __init__(self, redis_client, ttl_seconds: Optional[int] = None):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds

    async def get_json(self, key: str) -> Any:
        raw = await self.redis.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as exc:
            logger.warning(f"Discarding undecodable value for {key}: {exc}")
            return None

    async def put_json(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        await self.redis.set(key, payload, ex=ttl_seconds or self.ttl_seconds)

    async def load(self, phone: str) -> ConsultationSession:
        """Load a session, filling defaults for missing or malformed fields."""
        data = await self.get_json(chat_history_key(PLATFORM, phone))
        if not isinstance(data, dict):
            data = {}
        session = ConsultationSession.model_validate(data)
        session.phone = phone
        return session

    async def exists(self, phone: str) -> bool:
        return bool(await self.redis.exists(chat_history_key(PLATFORM, phone)))

    async def save(self, session: ConsultationSession) -> None:
        if not session.phone:
            raise ValueError("session has no phone")
        await self.put_json(chat_history_key(PLATFORM, session.phone), session.model_dump(mode="json"))

    async def update(self, phone: str, **fields: Any) -> Optional[ConsultationSession]:
        """Set ``fields`` on a freshly loaded copy and save it.

        For writers that held a session across slow calls: only the named
        fields are written, so history appended meanwhile survives. Returns
        None without writing when the session was deleted in between.
        """
        if not await self.exists(phone):
            return None
        session = await self.load(phone)
        for name, value in fields.items():
            setattr(session, name, value)
        await self.save(session)
        return session

    async def delete(self, phone: str) -> None:
        await self.redis.delete(chat_history_key(PLATFORM, phone))

    async def iter_sessions(self) -> AsyncIterator[tuple[str, ConsultationSession]]:
        pattern = f"{chat_history_prefix(PLATFORM)}*/history.json"
        async for key in self.redis.scan_iter(match=pattern, count=100):
            phone = phone_from_history_key(key, PLATFORM)
            if not phone:
                continue
            data = await self.get_json(key)
            if not isinstance(data, dict):
                continue
            session = ConsultationSession.model_validate(data)
            session.phone = phone
            yield phone, session


def get_session_store() -> SessionStore:
    return SessionStore(get_redis_client())
