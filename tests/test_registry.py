from colloquium.models import BotEventName


async def _noop(context, payload):
    return None


def test_register_and_lookup(registry, make_bot):
    registry.register(make_bot("bot-echo"))

    assert "bot-echo" in registry
    assert registry.get("BOT-ECHO").id == "bot-echo"
    assert registry.get("bot-missing") is None
    assert len(registry) == 1


def test_last_registration_wins(registry, make_bot):
    registry.register(make_bot("bot-echo", version="1.0.0"))
    snapshot = registry.list()

    registry.register(make_bot("bot-echo", version="1.1.0"))

    assert registry.get("bot-echo").version == "1.1.0"
    assert len(registry) == 1
    # Earlier snapshots are unaffected by the replacement
    assert snapshot[0].version == "1.0.0"


def test_unregister(registry, make_bot):
    registry.register(make_bot("bot-echo"))

    removed = registry.unregister("bot-echo")

    assert removed.id == "bot-echo"
    assert registry.unregister("bot-echo") is None
    assert registry.list() == []


def test_subscribers(registry, make_bot):
    registry.register(make_bot("bot-echo"))
    registry.register(make_bot("bot-listener", events={BotEventName.REVIEWER_ASSIGNED: _noop}))

    assert [b.id for b in registry.subscribers("reviewer.assigned")] == ["bot-listener"]
    assert [b.id for b in registry.subscribers(BotEventName.REVIEWER_ASSIGNED.value)] == ["bot-listener"]
    assert registry.subscribers("file.uploaded") == []


def test_search_matches_keywords_and_description(registry, make_bot):
    registry.register(make_bot("bot-echo", keywords=("parrot",)))
    registry.register(make_bot("bot-stats", name="Stats", description="Computes summary statistics"))

    assert [b.id for b in registry.search("PARROT")] == ["bot-echo"]
    assert [b.id for b in registry.search("statistics")] == ["bot-stats"]
