from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tenant_bot.app.config import get_settings
from tenant_bot.app.dependencies import get_message_router
from tenant_bot.app.routes import router
from tenant_bot.utils.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


async def _sweep_sessions(interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            app.dependency_overrides.get(get_message_router, get_message_router)().sweep()
        except Exception:
            logger.exception("Session sweep failed")


@asynccontextmanager
async def lifespan(_: FastAPI):
    task = asyncio.create_task(_sweep_sessions(settings.session_sweep_interval_seconds))
    try:
        yield
    finally:
        task.cancel()


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
app.include_router(router)
