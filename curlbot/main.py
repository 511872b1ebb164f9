import asyncio
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from curlbot import __version__
from curlbot.config import settings
from curlbot.database import init_db
from curlbot.logging_config import get_logger, setup_logging
from curlbot.routers import admin, booksy, docs, images, summary, whatsapp
from curlbot.services.media_store import get_media_store
from curlbot.services.scheduler_service import run_followups
from curlbot.services.session_store import get_session_store

setup_logging(
    settings.log_level,
    secrets=[
        settings.openai_api_key,
        settings.twilio_auth_token,
        settings.resend_api_key,
        settings.shopify_api_token,
        settings.booksy_api_key,
        settings.alert_bot_token,
        settings.admin_token,
    ],
    mask_phones=settings.log_mask_phones,
)

app = FastAPI(
    title="Curlbot",
    description="WhatsApp curl consultation assistant",
    version=__version__,
)

cors_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(whatsapp.router)
app.include_router(images.router)
app.include_router(summary.router)
app.include_router(booksy.router)
app.include_router(docs.router)
app.include_router(admin.router)

scheduler_logger = get_logger("followup_scheduler")
_scheduler_task: asyncio.Task | None = None


def _is_scheduler_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return settings.scheduler_enabled


async def _scheduler_loop() -> None:
    interval_seconds = max(settings.scheduler_interval_seconds, 1.0)
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            stats = await run_followups(get_session_store(), get_media_store())
            if stats.stale:
                scheduler_logger.info("Follow-up scheduler processed", extra={"context": stats.as_dict()})
        except asyncio.CancelledError:
            break
        except Exception as exc:
            scheduler_logger.error(
                "Follow-up scheduler loop failed",
                extra={"context": {"error": str(exc)}},
            )


@app.on_event("startup")
async def startup() -> None:
    global _scheduler_task
    init_db()
    if not _is_scheduler_enabled():
        return
    if _scheduler_task is None or _scheduler_task.done():
        _scheduler_task = asyncio.create_task(_scheduler_loop())
        scheduler_logger.info("Follow-up scheduler started")


@app.on_event("shutdown")
async def stop_scheduler() -> None:
    global _scheduler_task
    if _scheduler_task is None:
        return
    _scheduler_task.cancel()
    try:
        await _scheduler_task
    except asyncio.CancelledError:
        pass
    _scheduler_task = None


@app.get("/health")
async def health():
    return {"status": "ok"}
