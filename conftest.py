"""Shared pytest fixtures for the Colloquium bot framework and the bundled bots."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from colloquium.actions.repository import Conversation, InMemoryWorkflowRepository, Manuscript, ReviewAssignment, User
from colloquium.installations import BotInstallationManager, InMemoryInstallationStore
from colloquium.models import BotDefinition, CommandSpec, ParameterSpec
from colloquium.plugins import BotPlugin, PluginManifest
from colloquium.registry import BotRegistry
from colloquium.runtime import BotRuntime
from colloquium.security.tokens import ServiceTokenIssuer
from colloquium.settings import Settings

TEST_SECRET = "test-secret-key"
ADMIN_KEY = "test-admin-key"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        SECRET_KEY=TEST_SECRET,
        ADMIN_API_KEY=ADMIN_KEY,
        AUDIT_LOG_DIR=str(tmp_path / "logs"),
        BOT_EXECUTION_TIMEOUT=0.5,
        API_URL="http://testserver",
    )


@pytest.fixture
def repository():
    """One manuscript under review, two accepted reviewers and an editorial conversation."""
    repo = InMemoryWorkflowRepository()
    for user in (
        User(id="editor-1", email="editor@journal.org", username="editor", name="Dr. Eve Editor", role="EDITOR_IN_CHIEF"),
        User(id="author-1", email="ada@uni.edu", username="ada", name="Ada Author"),
        User(id="rev-1", email="smith@uni.edu", username="DrSmith"),
        User(id="rev-2", email="jsmith@lab.org", username="JSmith"),
        User(id="ae-1", email="ae@journal.org", username="DrEditor", name="Dr. Action Editor", role="ACTION_EDITOR"),
    ):
        repo.users[user.id] = user

    repo.manuscripts["ms-1"] = Manuscript(
        id="ms-1",
        title="Graph Methods for Open Peer Review",
        status="UNDER_REVIEW",
        author_ids=["author-1"],
    )
    repo.assignments["assign-1"] = ReviewAssignment(
        id="assign-1", manuscript_id="ms-1", reviewer_id="rev-1", status="ACCEPTED"
    )
    repo.assignments["assign-2"] = ReviewAssignment(
        id="assign-2", manuscript_id="ms-1", reviewer_id="rev-2", status="ACCEPTED"
    )
    repo.conversations["conv-1"] = Conversation(
        id="conv-1",
        manuscript_id="ms-1",
        title="Editorial Discussion",
        type="EDITORIAL",
        participants={
            "editor-1": "MODERATOR",
            "author-1": "PARTICIPANT",
            "rev-1": "PARTICIPANT",
            "rev-2": "PARTICIPANT",
        },
    )
    return repo


@pytest.fixture
def registry():
    return BotRegistry()


@pytest.fixture
def installations(registry):
    return BotInstallationManager(InMemoryInstallationStore(), registry)


@pytest.fixture
def token_issuer():
    return ServiceTokenIssuer(TEST_SECRET, ttl_seconds=300)


@pytest.fixture
def make_bot():
    """Factory for small bots with an `echo` command."""

    def factory(bot_id="bot-echo", version="1.0.0", handler=None, permissions=(), command_permissions=(), **kwargs):
        async def echo(params, context):
            return {"messages": [{"content": f"echo: {params.get('text', '')}"}]}

        commands = kwargs.pop(
            "commands",
            (
                CommandSpec(
                    name="echo",
                    description="Repeat the given text",
                    parameters=(ParameterSpec(name="text", description="Text to repeat"),),
                    permissions=frozenset(command_permissions),
                    execute=handler or echo,
                ),
            ),
        )
        return BotDefinition(
            id=bot_id,
            name=kwargs.pop("name", "Echo Bot"),
            description=kwargs.pop("description", "Repeats what it is told"),
            version=version,
            commands=commands,
            permissions=frozenset(permissions),
            **kwargs,
        )

    return factory


@pytest.fixture
def make_plugin():
    """Wraps a BotDefinition in a plugin whose manifest matches it."""

    def factory(bot, manifest_version=None, declared_permissions=None, **colloquium):
        manifest = PluginManifest.model_validate(
            {
                "name": f"@tests/{bot.id}",
                "version": manifest_version or bot.version,
                "description": bot.description or "Test bot",
                "author": {"name": "Tests"},
                "colloquium": {
                    "bot_id": bot.id,
                    "permissions": sorted(bot.permissions if declared_permissions is None else declared_permissions),
                    **colloquium,
                },
            }
        )
        return BotPlugin(manifest=manifest, bot=bot)

    return factory


@pytest.fixture
async def runtime(settings, repository):
    bot_runtime = BotRuntime(settings, repository=repository)
    await bot_runtime.startup()
    yield bot_runtime
    await bot_runtime.shutdown()


@pytest.fixture
def assignment_payloads():
    """Reviewer assignments as GET /api/reviewers/assignments/ms-1 returns them."""
    return [
        {
            "id": "assign-1",
            "manuscriptId": "ms-1",
            "reviewerId": "rev-1",
            "status": "ACCEPTED",
            "users": {"id": "rev-1", "name": None, "username": "DrSmith", "email": "smith@uni.edu"},
        },
        {
            "id": "assign-2",
            "manuscriptId": "ms-1",
            "reviewerId": "rev-2",
            "status": "ACCEPTED",
            "users": {"id": "rev-2", "name": None, "username": "JSmith", "email": "jsmith@lab.org"},
        },
    ]


@pytest.fixture
def fake_bot_client():
    """Stand-in for the SDK BotClient, usable as `async with create_bot_client(...)`."""

    def factory(assignments=None, manuscript=None, error=None):
        client = MagicMock()
        client.reviewers.list = AsyncMock(return_value=assignments or [], side_effect=error)
        client.manuscripts.get = AsyncMock(
            return_value=manuscript
            or {"id": "ms-1", "title": "Graph Methods for Open Peer Review", "authors": [{"name": "Ada Author"}]}
        )
        client.__aenter__.return_value = client
        client.__aexit__.return_value = None
        return client

    return factory
