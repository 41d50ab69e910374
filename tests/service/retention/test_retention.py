from datetime import timedelta

from support_chatbot.db.models import Conversation
from support_chatbot.db.models.conversation import utcnow
from support_chatbot.service.retention.retention import sweep_inactive_conversations


def test_sweep_deletes_old_closed_conversations(store, db):
    old = store.create_conversation()
    store.append_message(old.id, "bye")
    store.close_conversation(old.id)
    recent = store.create_conversation()
    store.close_conversation(recent.id)
    old_id, recent_id = old.id, recent.id

    db.get(Conversation, old_id).updated_at = utcnow() - timedelta(days=31)
    db.commit()

    assert sweep_inactive_conversations(store, days=30) == 1
    assert old not in db
    assert store.get_conversation(old_id) is None
    assert store.get_messages(old_id) == []
    assert store.get_conversation(recent_id) is not None


def test_sweep_with_nothing_to_delete(store):
    store.create_conversation()

    assert sweep_inactive_conversations(store, days=30) == 0
