import asyncio
import logging
from datetime import timedelta

from support_chatbot.client.db.conversation_store import ConversationStore
from support_chatbot.client.db.psql import session_scope
from support_chatbot.db.models.conversation import utcnow

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


def sweep_inactive_conversations(store: ConversationStore, days: int = DEFAULT_RETENTION_DAYS) -> int:
    """Delete closed conversations (and their messages) untouched for `days` days."""
    cutoff = utcnow() - timedelta(days=days)
    deleted = store.delete_inactive_before(cutoff)
    if deleted:
        logger.info("Retention sweep deleted %s conversations older than %s days", deleted, days)
    return deleted


def _sweep_once(days: int) -> int:
    with session_scope() as db:
        return sweep_inactive_conversations(ConversationStore(db), days)


async def retention_loop(interval_seconds: int, days: int = DEFAULT_RETENTION_DAYS) -> None:
    logger.info("Retention sweep every %ss for conversations closed over %s days", interval_seconds, days)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(_sweep_once, days)
        except Exception:
            logger.exception("Retention sweep failed")
