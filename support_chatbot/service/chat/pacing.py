import asyncio
from collections.abc import Awaitable, Callable, Sequence

BASE_DELAY_MS = 1000
MS_PER_CHAR = 20
MAX_TYPING_MS = 2000


def typing_delay_ms(text: str) -> int:
    """Pause before revealing a continuation part, scaled by its length."""
    return BASE_DELAY_MS + min(len(text or "") * MS_PER_CHAR, MAX_TYPING_MS)


async def deliver_sequentially(
    parts: Sequence[str],
    send: Callable[[str], Awaitable[None]],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """
    Reveal continuation parts one at a time, in order. Each part waits for
    its own typing delay and for the previous send to finish.

    Reference pacing for presentation callers (widget bridges, connectors)
    that turn a ChatResponse's additional_responses into timed sends; the
    HTTP API itself only returns each part's delay_ms.
    """
    for part in parts:
        await sleep(typing_delay_ms(part) / 1000)
        await send(part)
