import asyncio
import logging

from fastapi import FastAPI

from support_chatbot.api.v1.route import api_router as MainRouter
from support_chatbot.config.config import get_settings
from support_chatbot.config.logging_config import setup_logging
from support_chatbot.db import models  # noqa: F401
from support_chatbot.db.session import Base, engine
from support_chatbot.service.retention.retention import retention_loop

settings = get_settings()
setup_logging(settings.log_level, settings.log_file)

logger = logging.getLogger(__name__)

app = FastAPI(title="support_chatbot", version="0.1.0")
app.include_router(router=MainRouter, prefix="/api/v1")


@app.on_event("startup")
def create_tables() -> None:
    Base.metadata.create_all(bind=engine)


@app.on_event("startup")
async def start_retention_sweep() -> None:
    app.state.retention_task = None
    if settings.retention_sweep_interval_seconds > 0:
        app.state.retention_task = asyncio.create_task(
            retention_loop(settings.retention_sweep_interval_seconds, settings.retention_days)
        )


@app.on_event("shutdown")
async def stop_retention_sweep() -> None:
    task = getattr(app.state, "retention_task", None)
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        logger.info("Retention sweep stopped")
