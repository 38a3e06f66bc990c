"""End-to-end flows across profiles, discovery, swipes, matches and chat."""

from datetime import date

from apps.engine.discovery import DiscoveryService
from apps.engine.feed import MessageFeed
from apps.engine.matches import MatchService
from apps.engine.messaging import MessagingService
from apps.engine.profiles import ProfileData, ProfileService
from apps.engine.swipes import SwipeService


def onboarding(name: str, gender: str, looking_for: str, latitude: float) -> ProfileData:
    return ProfileData(
        name=name,
        date_of_birth=date(1996, 3, 14),
        gender=gender,
        looking_for=looking_for,
        age_min=21,
        age_max=40,
        distance_radius_km=25.0,
        city="Berlin",
        latitude=latitude,
        longitude=13.405,
    )


async def test_discover_swipe_match_and_chat(session_factory, bus, notifier, dispatcher, make_recorder):
    async with session_factory() as db:
        profiles = ProfileService(db)
        await profiles.save_profile("alice", "alice@example.com", onboarding("Alice", "female", "male", 52.52))
        await profiles.save_profile("bob", "bob@example.com", onboarding("Bob", "male", "female", 52.55))
        await profiles.save_push_token("alice", "token-alice")
        await profiles.save_push_token("bob", "token-bob")

    # Alice finds Bob and likes him
    async with session_factory() as db:
        candidates = await DiscoveryService(db).fetch_profiles("alice", 10)
        assert [candidate.profile.uid for candidate in candidates] == ["bob"]
        assert 3.0 < candidates[0].distance_km < 4.0

        result = await SwipeService(db, notifier).record_swipe("alice", "bob", "like")
        assert not result.matched
        assert await DiscoveryService(db).fetch_profiles("alice", 10) == []

    # Bob finds Alice and likes her back
    async with session_factory() as db:
        candidates = await DiscoveryService(db).fetch_profiles("bob", 10)
        assert [candidate.profile.uid for candidate in candidates] == ["alice"]

        result = await SwipeService(db, notifier).record_swipe("bob", "alice", "like")
        assert result.matched
        assert result.match_id == "alice_bob"

    assert sorted(sent["token"] for sent in dispatcher.sent) == ["token-alice", "token-bob"]

    async with session_factory() as db:
        alice_matches = await MatchService(db).get_matches("alice")
        bob_matches = await MatchService(db).get_matches("bob")
        assert [item.other_user.name for item in alice_matches] == ["Bob"]
        assert [item.other_user.name for item in bob_matches] == ["Alice"]
        assert len(await MatchService(db).get_recent_matches("alice")) == 1

    feed = MessageFeed(session_factory, bus)
    alice_view = make_recorder()
    bob_view = make_recorder()
    alice_subscription = await feed.subscribe("alice_bob", alice_view)
    bob_subscription = await feed.subscribe("alice_bob", bob_view)
    try:
        assert await alice_view.next() == []
        assert await bob_view.next() == []

        async with session_factory() as db:
            await MessagingService(db, bus, notifier).send_message("alice_bob", "alice", "bob", "Coffee on Sunday?")

        bob_snapshot = await bob_view.next()
        assert [(message.text, message.read) for message in bob_snapshot] == [("Coffee on Sunday?", False)]
        assert [message.read for message in await alice_view.next()] == [False]
        assert dispatcher.sent[-1]["token"] == "token-bob"
        assert dispatcher.sent[-1]["title"] == "Alice"

        async with session_factory() as db:
            conversations = await MessagingService(db).get_conversations("bob", ["alice_bob"])
            assert conversations[0].unread_count == 1

            # Bob opens the chat
            assert await MessagingService(db, bus).mark_messages_as_read("alice_bob", "bob") == 1

        assert [message.read for message in await alice_view.next()] == [True]
        assert [message.read for message in await bob_view.next()] == [True]

        async with session_factory() as db:
            conversations = await MessagingService(db).get_conversations("bob", ["alice_bob"])
            assert conversations[0].unread_count == 0
            assert conversations[0].last_message.text == "Coffee on Sunday?"
    finally:
        await alice_subscription.unsubscribe()
        await bob_subscription.unsubscribe()


async def test_pass_blocks_match_and_hides_profile(session_factory):
    async with session_factory() as db:
        profiles = ProfileService(db)
        await profiles.save_profile("alice", None, onboarding("Alice", "female", "everyone", 52.52))
        await profiles.save_profile("bob", None, onboarding("Bob", "male", "everyone", 52.53))

    async with session_factory() as db:
        swipes = SwipeService(db)
        await swipes.record_swipe("alice", "bob", "pass")
        result = await swipes.record_swipe("bob", "alice", "like")

        assert not result.matched
        assert await DiscoveryService(db).fetch_profiles("alice", 10) == []
        assert await DiscoveryService(db).fetch_profiles("bob", 10) == []
        assert await MatchService(db).get_matches("alice") == []
