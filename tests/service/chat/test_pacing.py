import pytest

from support_chatbot.service.chat.pacing import deliver_sequentially, typing_delay_ms


def test_typing_delay_grows_with_length():
    assert typing_delay_ms("") == 1000
    assert typing_delay_ms("abcde") == 1100


def test_typing_delay_is_capped():
    assert typing_delay_ms("x" * 500) == 3000


@pytest.mark.asyncio
async def test_deliver_sequentially_keeps_order():
    events = []

    async def fake_sleep(seconds):
        events.append(("sleep", seconds))

    async def send(part):
        events.append(("send", part))

    await deliver_sequentially(["first", "second part"], send, sleep=fake_sleep)

    assert events == [
        ("sleep", typing_delay_ms("first") / 1000),
        ("send", "first"),
        ("sleep", typing_delay_ms("second part") / 1000),
        ("send", "second part"),
    ]


@pytest.mark.asyncio
async def test_deliver_sequentially_with_no_parts_sends_nothing():
    sent = []

    async def send(part):
        sent.append(part)

    async def fake_sleep(_):
        raise AssertionError("should not sleep")

    await deliver_sequentially([], send, sleep=fake_sleep)

    assert sent == []
