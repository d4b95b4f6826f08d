import pytest

from colloquium.mentions import MentionResolver
from colloquium.models import MentionType


@pytest.fixture
def resolver(registry, repository, make_bot):
    registry.register(make_bot("bot-editorial", name="Editorial Bot"))
    return MentionResolver(registry, repository)


def test_bot_and_user_mentions_are_classified(resolver):
    mentions = resolver.find_mentions("@bot-editorial please ask @DrSmith.")

    assert [m.type for m in mentions] == [MentionType.BOT, MentionType.USER]
    assert mentions[0].bot_id == "bot-editorial"
    assert mentions[0].display_name == "Editorial Bot"
    assert mentions[0].start == 0
    assert mentions[1].original_text == "@DrSmith"
    assert mentions[1].user_id is None


def test_bot_mention_is_case_insensitive(resolver):
    mentions = resolver.find_mentions("@Bot-Editorial help")

    assert mentions[0].type == MentionType.BOT
    assert mentions[0].bot_id == "bot-editorial"


def test_unregistered_bot_suffix_is_still_a_bot_mention(resolver):
    mentions = resolver.find_mentions("run @grammar-checker and @stats-bot")

    assert [m.type for m in mentions] == [MentionType.BOT, MentionType.BOT]
    assert all(m.bot_id is None and not m.is_resolved for m in mentions)
    assert mentions[0].display_name == "grammar-checker"


@pytest.mark.parametrize(
    "content",
    [
        "write to jane@uni.edu",  # glued to a word
        "hi @ab",  # too short
        "@@DrSmith",
        "",
    ],
)
def test_non_mentions_are_ignored(resolver, content):
    assert resolver.find_mentions(content) == []


def test_mention_before_punctuation(resolver):
    mentions = resolver.find_mentions("Thanks (@DrSmith)!")

    assert len(mentions) == 1
    assert mentions[0].original_text == "@DrSmith"


def test_glued_and_adjacent_mentions_never_overlap(resolver):
    glued = resolver.find_mentions("@bot-editorial@DrSmith")

    # The second @ is glued to a word char, so only the bot mention counts
    assert [m.original_text for m in glued] == ["@bot-editorial"]
    assert (glued[0].start, glued[0].end) == (0, 14)

    adjacent = resolver.find_mentions("@a-bot,@b-bot")

    assert [(m.original_text, m.start, m.end) for m in adjacent] == [("@a-bot", 0, 6), ("@b-bot", 7, 13)]
    assert adjacent[0].end <= adjacent[1].start


def test_mention_token_length_bounds(resolver):
    longest = "a" * 30

    assert [m.display_name for m in resolver.find_mentions(f"cc @{longest} now")] == [longest]
    assert resolver.find_mentions(f"cc @{longest}a now") == []


@pytest.mark.asyncio
async def test_user_mention_resolves_against_participants(resolver):
    mentions = await resolver.resolve_mentions("@drsmith and @ada, see above", "conv-1")

    assert [m.user_id for m in mentions] == ["rev-1", "author-1"]
    # Display name falls back to the username when no name is set
    assert mentions[0].display_name == "DrSmith"
    assert mentions[1].display_name == "Ada Author"


@pytest.mark.asyncio
async def test_non_participant_stays_unresolved(resolver):
    # DrEditor exists but is not in conv-1
    mentions = await resolver.resolve_mentions("cc @DrEditor", "conv-1")

    assert mentions[0].type == MentionType.USER
    assert mentions[0].user_id is None
    assert not mentions[0].is_resolved


@pytest.mark.asyncio
async def test_resolution_skipped_without_conversation(resolver):
    mentions = await resolver.resolve_mentions("cc @DrSmith", None)

    assert mentions[0].user_id is None


def test_bot_mentions_filter(resolver):
    mentions = resolver.find_mentions("@bot-editorial help @DrSmith")

    assert [m.bot_id for m in resolver.bot_mentions(mentions)] == ["bot-editorial"]
