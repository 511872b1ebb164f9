import re
from typing import Optional
from urllib.parse import unquote, urlparse

from curlbot.logging_config import get_logger

logger = get_logger("storage_keys")

PHONE_PATTERN = re.compile(r"^\+\d{6,15}$")
WHATSAPP_PREFIX = re.compile(r"^whatsapp:", re.IGNORECASE)


def normalize_phone_number(raw: Optional[str]) -> str:
    """Strip whitespace and the Twilio `whatsapp:` scheme from a sender id."""
    return WHATSAPP_PREFIX.sub("", (raw or "").strip())


def is_valid_phone(phone: Optional[str]) -> bool:
    return bool(phone) and bool(PHONE_PATTERN.match(phone))


def _normalize_id(platform: str, user_id: str) -> str:
    return normalize_phone_number(user_id) if platform == "whatsapp" else user_id


def chat_history_key(platform: str, user_id: str) -> str:
    if not platform or not user_id:
        logger.debug(f"chat_history_key: missing parameters platform={platform!r} id={user_id!r}")
        raise ValueError("invalid key inputs")
    return f"{platform}:{_normalize_id(platform, user_id)}/history.json"


def chat_history_prefix(platform: str) -> str:
    return f"{platform}:"


def media_prefix(platform: str, user_id: str) -> str:
    if not platform or not user_id:
        logger.debug(f"media_prefix: missing parameters platform={platform!r} id={user_id!r}")
        raise ValueError("invalid prefix inputs")
    return f"{platform}:{_normalize_id(platform, user_id)}/"


def media_object_key(platform: str, user_id: str, name: str) -> str:
    return f"{media_prefix(platform, user_id)}{name}"


def doc_chunk_key(owner: str, repo: str, path: str, index: int) -> str:
    return f"kv/docs/github:{owner}/{repo}/{path}/chunk{index}"


def phone_from_history_key(key: str, platform: str = "whatsapp") -> Optional[str]:
    """Inverse of chat_history_key for keys of the given platform."""
    prefix = chat_history_prefix(platform)
    suffix = "/history.json"
    if not key.startswith(prefix) or not key.endswith(suffix):
        return None
    return key[len(prefix) : -len(suffix)] or None


def media_key_from_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        path = urlparse(url).path
    except ValueError:
        return None
    if "/images/" not in path:
        return None
    return unquote(path.split("/images/", 1)[1]) or None
