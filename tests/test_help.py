import pytest

from bots.editorial.bot import bot as editorial_bot
from colloquium.help import generate_bot_help, help_command_for


def test_bot_help_orders_sections_around_commands():
    text = generate_bot_help(editorial_bot)

    assert text.startswith("# Editorial Bot")
    assert text.index("## 🚀 Getting Started") < text.index("## Commands")
    assert "### `invite-reviewer`" in text
    assert "Use `@bot-editorial help command=<name>`" in text


def test_command_help_lists_enum_values():
    text = generate_bot_help(editorial_bot, "release")

    assert "### `release`" in text
    assert "One of: accept, revise, reject, update" in text
    assert "`update` releases reviews without recording a decision." in text
    assert "## Commands" not in text


def test_unknown_command_help():
    text = generate_bot_help(editorial_bot, "nope")

    assert "Unknown command `nope`" in text
    assert "`accept`" in text


def test_metadata_and_plain_text():
    text = generate_bot_help(editorial_bot, include_metadata=True, fmt="text")

    assert "Bot ID: bot-editorial" in text
    assert "make_editorial_decision" in text
    assert "**" not in text
    assert "`" not in text


@pytest.mark.asyncio
async def test_implicit_help_command():
    command = help_command_for(editorial_bot)

    result = await command.execute({"command": "accept"}, None)

    assert command.name == "help"
    assert "### `accept`" in result["messages"][0]["content"]
