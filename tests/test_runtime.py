from unittest.mock import patch

import pytest

from colloquium.models import BotEventName, ExecutionStatus, MentionType
from colloquium.plugins import StaticPluginSource
from colloquium.runtime import BotRuntime


async def bot_replies(repository, conversation_id):
    return [m for m in await repository.list_messages(conversation_id) if m.is_bot]


# ==========================================
# Lifecycle
# ==========================================
@pytest.mark.asyncio
async def test_startup_loads_and_installs_default_bots(runtime):
    installed = await runtime.installations.list()

    assert sorted(b.id for b in runtime.registry.list()) == ["bot-editorial", "bot-reviewer-checklist"]
    assert sorted(i.bot_id for i in installed) == ["bot-editorial", "bot-reviewer-checklist"]
    assert (await runtime.installations.get("bot-editorial")).config["requireAllReviewsComplete"] is True


@pytest.mark.asyncio
async def test_shutdown_unloads_plugins(settings, repository):
    runtime = BotRuntime(settings, repository=repository)
    await runtime.startup()

    await runtime.shutdown()

    assert len(runtime.registry) == 0
    assert runtime.plugin_loader.list_plugins() == []


@pytest.mark.asyncio
async def test_database_installation_backend(settings, repository, tmp_path):
    db_settings = settings.model_copy(
        update={"INSTALLATION_BACKEND": "database", "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'bots.db'}"}
    )
    runtime = BotRuntime(db_settings, repository=repository)
    await runtime.startup()
    try:
        await runtime.installations.set_enabled("bot-reviewer-checklist", False)
        stored = await runtime.installations.get("bot-reviewer-checklist")
    finally:
        await runtime.shutdown()

    assert runtime.engine is not None
    assert not stored.is_enabled
    assert stored.config == {"template": ""}


@pytest.mark.asyncio
async def test_custom_plugin_sources(settings, repository, make_bot, make_plugin):
    runtime = BotRuntime(
        settings, repository=repository, plugin_sources=[StaticPluginSource(make_plugin(make_bot("echo-bot")))]
    )
    await runtime.startup()
    try:
        loaded = [b.id for b in runtime.registry.list()]
        report = await runtime.handle_message("@echo-bot echo hi", "conv-1", "ms-1", "editor-1")
    finally:
        await runtime.shutdown()

    # Loaded but never installed, so it may not run
    assert loaded == ["echo-bot"]
    assert report.results[0].status == ExecutionStatus.DENIED


# ==========================================
# Inbound messages
# ==========================================
@pytest.mark.asyncio
async def test_message_without_mentions(runtime, repository):
    report = await runtime.handle_message("Looks good to me.", "conv-1", "ms-1", "editor-1")

    assert report.mentions == []
    assert report.invocations == []
    assert await bot_replies(repository, "conv-1") == []


@pytest.mark.asyncio
async def test_user_mentions_do_not_invoke_bots(runtime):
    report = await runtime.handle_message("@DrSmith could you take a look?", "conv-1", "ms-1", "editor-1")

    assert [(m.type, m.user_id) for m in report.mentions] == [(MentionType.USER, "rev-1")]
    assert report.invocations == []


@pytest.mark.asyncio
async def test_help_reply_is_persisted_under_the_message(runtime, repository):
    report = await runtime.handle_message(
        "@bot-editorial help", "conv-1", "ms-1", "editor-1", user_role="EDITOR_IN_CHIEF", message_id="msg-1"
    )

    outcome = report.invocations[0]
    assert outcome.result.status == ExecutionStatus.SUCCESS
    assert outcome.actions is None

    (reply,) = await bot_replies(repository, "conv-1")
    assert reply.id == outcome.message_ids[0]
    assert reply.parent_id == "msg-1"
    assert reply.bot_id == "bot-editorial"
    assert reply.content.startswith("# Editorial Bot")


@pytest.mark.asyncio
async def test_each_bot_mention_is_invoked_in_order(runtime):
    report = await runtime.handle_message(
        "@bot-editorial help\n@bot-reviewer-checklist help", "conv-1", "ms-1", "editor-1"
    )

    assert [r.bot_id for r in report.results] == ["bot-editorial", "bot-reviewer-checklist"]
    assert all(r.status == ExecutionStatus.SUCCESS for r in report.results)


@pytest.mark.asyncio
async def test_unknown_bot_gets_a_reply(runtime, repository):
    report = await runtime.handle_message("@grammar-bot check this", "conv-1", "ms-1", "editor-1")

    assert report.results[0].status == ExecutionStatus.UNRECOGNIZED
    (reply,) = await bot_replies(repository, "conv-1")
    assert reply.content.startswith("❓ **Unknown Bot**")
    assert "`@bot-editorial`" in reply.content


@pytest.mark.asyncio
async def test_accept_command_publishes_the_manuscript(runtime, repository):
    report = await runtime.handle_message(
        '@bot-editorial accept reason="Strong results"', "conv-1", "ms-1", "editor-1", user_role="EDITOR_IN_CHIEF"
    )

    actions = report.invocations[0].actions
    assert [o.type for o in actions.applied] == ["UPDATE_MANUSCRIPT_STATUS", "EXECUTE_PUBLICATION_WORKFLOW"]
    manuscript = repository.manuscripts["ms-1"]
    assert manuscript.status == "PUBLISHED"
    assert manuscript.doi == actions.outputs["doi"]


@pytest.mark.asyncio
async def test_disabled_bot_is_denied(runtime):
    await runtime.installations.set_enabled("bot-reviewer-checklist", False)

    report = await runtime.handle_message("@bot-reviewer-checklist generate", "conv-1", "ms-1", "editor-1")

    assert report.results[0].status == ExecutionStatus.DENIED
    assert report.results[0].errors == ["Bot invocation not permitted"]


# ==========================================
# System events
# ==========================================
@pytest.mark.asyncio
async def test_reviewer_assigned_event_posts_checklist(runtime, repository, fake_bot_client, assignment_payloads):
    client = fake_bot_client(assignments=assignment_payloads)

    with patch("bots.reviewer_checklist.bot.create_bot_client", return_value=client):
        outcomes = await runtime.handle_event(BotEventName.REVIEWER_ASSIGNED, {"reviewerId": "rev-2"}, "ms-1")
        again = await runtime.handle_event("reviewer.assigned", {"reviewerId": "rev-1"}, "ms-1")

    (review,) = await repository.list_conversations("ms-1", type="REVIEW")
    assert outcomes[0].result.status == ExecutionStatus.SUCCESS
    assert len(outcomes[0].message_ids) == 2
    assert len(again[0].message_ids) == 2

    summary, checklist = (await repository.list_messages(review.id))[:2]
    assert summary.content.startswith("**Auto-Generated Checklist** for JSmith")
    assert checklist.metadata["reviewerId"] == "assign-2"
    assert checklist.metadata["editPermissions"] == ["rev-2"]
    assert checklist.parent_id is None


@pytest.mark.asyncio
async def test_event_for_disabled_subscriber(runtime, fake_bot_client):
    await runtime.installations.set_enabled("bot-reviewer-checklist", False)

    with patch("bots.reviewer_checklist.bot.create_bot_client", return_value=fake_bot_client()) as factory:
        outcomes = await runtime.handle_event(BotEventName.REVIEWER_ASSIGNED, {"reviewerId": "rev-1"}, "ms-1")

    assert outcomes == []
    factory.assert_not_called()
