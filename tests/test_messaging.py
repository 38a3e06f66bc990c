from datetime import datetime, timedelta

import pytest

from apps.engine.matches import MatchService
from apps.engine.messaging import MessagingService
from core.errors import NotFoundError, ValidationError
from core.pubsub import message_channel
from models.message import Message


@pytest.fixture
async def matched(db, add_profile):
    await add_profile("alice", push_token="token-alice")
    await add_profile("bob", push_token="token-bob")
    await add_profile("carol")
    match, _ = await MatchService(db).create_match("alice", "bob")
    return match


async def add_message(db, match_id: str, sender: str, receiver: str, timestamp: datetime, read: bool = False):
    message = Message(
        id=f"{match_id}-{timestamp.isoformat()}",
        match_id=match_id,
        sender_id=sender,
        receiver_id=receiver,
        text=f"sent at {timestamp.isoformat()}",
        timestamp=timestamp,
        read=read,
    )
    db.add(message)
    await db.commit()
    return message


async def test_send_persists_unread_and_updates_match(db, matched):
    service = MessagingService(db)
    message = await service.send_message("alice_bob", "alice", "bob", "Hi Bob!")

    assert message.read is False
    assert message.sender_id == "alice"
    assert message.receiver_id == "bob"

    match = await MatchService(db).get_match("alice_bob")
    assert match.last_message_text == "Hi Bob!"
    assert match.last_message_sender_id == "alice"
    assert match.last_message_at == message.timestamp


async def test_messages_returned_in_send_order(db, matched):
    service = MessagingService(db)
    for text in ("one", "two", "three"):
        await service.send_message("alice_bob", "alice", "bob", text)

    assert [message.text for message in await service.get_messages("alice_bob")] == ["one", "two", "three"]


@pytest.mark.parametrize("text", ["", "   ", "x" * 2001])
async def test_invalid_text_rejected(db, matched, text):
    with pytest.raises(ValidationError):
        await MessagingService(db).send_message("alice_bob", "alice", "bob", text)
    assert await MessagingService(db).get_messages("alice_bob") == []


@pytest.mark.parametrize(
    "sender, receiver",
    [("alice", "alice"), ("alice", "carol"), ("carol", "bob")],
)
async def test_sender_and_receiver_must_be_members(db, matched, sender, receiver):
    with pytest.raises(ValidationError):
        await MessagingService(db).send_message("alice_bob", sender, receiver, "hello")


async def test_send_to_missing_match(db, matched):
    with pytest.raises(NotFoundError):
        await MessagingService(db).send_message("alice_carol", "alice", "carol", "hello")


async def test_mark_read_flips_only_receivers_messages(db, matched):
    service = MessagingService(db)
    await service.send_message("alice_bob", "alice", "bob", "one")
    await service.send_message("alice_bob", "alice", "bob", "two")
    await service.send_message("alice_bob", "bob", "alice", "reply")

    assert await service.mark_messages_as_read("alice_bob", "bob") == 2

    by_text = {message.text: message.read for message in await service.get_messages("alice_bob")}
    assert by_text == {"one": True, "two": True, "reply": False}


async def test_mark_read_is_idempotent(db, matched):
    service = MessagingService(db)
    await service.send_message("alice_bob", "alice", "bob", "hello")

    assert await service.mark_messages_as_read("alice_bob", "bob") == 1
    assert await service.mark_messages_as_read("alice_bob", "bob") == 0
    assert await service.get_unread_count("alice_bob", "bob") == 0


async def test_read_never_reverts(db, matched):
    service = MessagingService(db)
    await service.send_message("alice_bob", "alice", "bob", "first")
    await service.mark_messages_as_read("alice_bob", "bob")

    await service.send_message("alice_bob", "alice", "bob", "second")
    await service.send_message("alice_bob", "bob", "alice", "reply")
    await service.mark_messages_as_read("alice_bob", "alice")

    reads = {message.text: message.read for message in await service.get_messages("alice_bob")}
    assert reads == {"first": True, "second": False, "reply": True}


async def test_mark_read_by_outsider(db, matched):
    with pytest.raises(ValidationError):
        await MessagingService(db).mark_messages_as_read("alice_bob", "carol")


async def test_mark_read_on_missing_match(db, matched):
    with pytest.raises(NotFoundError):
        await MessagingService(db).mark_messages_as_read("nobody_here", "alice")


async def test_unread_count_per_receiver(db, matched):
    service = MessagingService(db)
    await service.send_message("alice_bob", "alice", "bob", "one")
    await service.send_message("alice_bob", "alice", "bob", "two")

    assert await service.get_unread_count("alice_bob", "bob") == 2
    assert await service.get_unread_count("alice_bob", "alice") == 0


async def test_conversations_sorted_by_latest_message(db, add_profile):
    for uid in ("me", "u1", "u2", "u3", "u4"):
        await add_profile(uid)
    matches = MatchService(db)
    for other in ("u1", "u2", "u3", "u4"):
        await matches.create_match("me", other)

    base = datetime(2026, 10, 19, 9, 0)
    await add_message(db, "me_u1", "u1", "me", base)
    await add_message(db, "me_u2", "me", "u2", base + timedelta(minutes=30))
    await add_message(db, "me_u2", "u2", "me", base + timedelta(minutes=5))
    await add_message(db, "me_u3", "u3", "me", base + timedelta(minutes=10))
    await add_message(db, "me_u3", "u3", "me", base + timedelta(minutes=11), read=True)

    conversations = await MessagingService(db).get_conversations("me", ["me_u4", "me_u1", "me_u2", "me_u3"])

    assert [conversation.match_id for conversation in conversations] == ["me_u2", "me_u3", "me_u1", "me_u4"]
    assert [conversation.unread_count for conversation in conversations] == [1, 1, 1, 0]
    assert conversations[0].last_message.sender_id == "me"
    assert conversations[-1].last_message is None


async def test_conversations_without_messages_keep_input_order(db, add_profile):
    for uid in ("me", "u1", "u2"):
        await add_profile(uid)
    await MatchService(db).create_match("me", "u1")
    await MatchService(db).create_match("me", "u2")

    conversations = await MessagingService(db).get_conversations("me", ["me_u2", "me_u1"])

    assert [conversation.match_id for conversation in conversations] == ["me_u2", "me_u1"]


async def test_send_and_read_publish_changes(db, matched, bus):
    listener = await bus.listen(message_channel("alice_bob"))
    service = MessagingService(db, bus)

    await service.send_message("alice_bob", "alice", "bob", "hello")
    assert await listener.get() == "changed"

    await service.mark_messages_as_read("alice_bob", "bob")
    assert await listener.get() == "changed"

    # Nothing left to flip, nothing published
    await service.mark_messages_as_read("alice_bob", "bob")
    assert listener.queue.empty()
    await listener.close()


async def test_send_notifies_receiver_with_preview(db, matched, notifier, dispatcher):
    text = "a" * 150
    await MessagingService(db, notifier=notifier).send_message("alice_bob", "alice", "bob", text)

    assert len(dispatcher.sent) == 1
    sent = dispatcher.sent[0]
    assert sent["token"] == "token-bob"
    assert sent["title"] == "Alice"
    assert sent["body"] == "a" * 100 + "..."
    assert sent["data"] == {"type": "message", "matchId": "alice_bob", "senderId": "alice"}


async def test_failed_push_does_not_fail_send(db, matched, failing_notifier):
    message = await MessagingService(db, notifier=failing_notifier).send_message("alice_bob", "bob", "alice", "hey")

    assert message.text == "hey"
    assert len(await MessagingService(db).get_messages("alice_bob")) == 1
