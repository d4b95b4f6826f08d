import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from colloquium.commands import build_command
from colloquium.executor import BotExecutor
from colloquium.models import (
    BotAction,
    BotActionType,
    BotEventName,
    BotResult,
    CommandSpec,
    ExecutionStatus,
    InvocationMeta,
    JournalContext,
    ParameterSpec,
)
from colloquium.security.audit import AuditLogger


@pytest.fixture
def executor(registry, installations, token_issuer):
    return BotExecutor(registry, installations, token_issuer, timeout_seconds=0.2, api_url="http://testserver")


@pytest.fixture
def meta():
    return InvocationMeta(
        manuscript_id="ms-1",
        user_id="editor-1",
        conversation_id="conv-1",
        message_id="msg-1",
        user_role="EDITOR_IN_CHIEF",
    )


@pytest.fixture
def install(registry, installations):
    async def _install(bot, **kwargs):
        registry.register(bot)
        return await installations.install(bot.id, **kwargs)

    return _install


def command_for(registry, bot_id, command, parameters=None):
    return build_command(registry.get(bot_id), bot_id, command, parameters)


@pytest.mark.asyncio
async def test_successful_invocation(executor, registry, install, make_bot, meta):
    await install(make_bot())

    result = await executor.execute(command_for(registry, "bot-echo", "echo", {"text": "hello"}), meta)

    assert result.status == ExecutionStatus.SUCCESS
    assert result.bot_id == "bot-echo"
    assert result.command == "echo"
    assert [m.content for m in result.messages] == ["echo: hello"]
    assert result.errors == []


@pytest.mark.asyncio
async def test_context_carries_scoped_token_and_config(executor, registry, install, make_bot, meta, token_issuer):
    seen = {}

    async def handler(params, context):
        seen["context"] = context
        return None

    await install(make_bot(handler=handler, permissions=("read_manuscript", "bot_storage")), initial_config={"x": 1},
                  permissions=["read_manuscript"])

    result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    context = seen["context"]
    assert result.status == ExecutionStatus.SUCCESS
    assert context.manuscript_id == "ms-1"
    assert context.conversation_id == "conv-1"
    assert context.triggered_by.user_id == "editor-1"
    assert context.triggered_by.user_role == "EDITOR_IN_CHIEF"
    assert context.triggered_by.message_id == "msg-1"
    assert context.config == {"x": 1, "apiUrl": "http://testserver"}
    assert context.journal == JournalContext()

    claims = token_issuer.verify_bot_token(context.service_token)
    assert claims.bot_id == "bot-echo"
    assert claims.manuscript_id == "ms-1"
    assert claims.permissions == frozenset({"read_manuscript"})


@pytest.mark.asyncio
async def test_uninstalled_bot_never_runs(executor, registry, make_bot, meta):
    handler = AsyncMock()
    registry.register(make_bot(handler=handler))

    result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    assert result.status == ExecutionStatus.DENIED
    assert result.errors == ["Bot invocation not permitted"]
    handler.assert_not_called()


@pytest.mark.asyncio
async def test_disabled_bot_never_runs(executor, registry, installations, install, make_bot, meta):
    handler = AsyncMock()
    await install(make_bot(handler=handler))
    await installations.set_enabled("bot-echo", False)

    result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    assert result.status == ExecutionStatus.DENIED
    handler.assert_not_called()


@pytest.mark.asyncio
async def test_command_permission_not_granted(executor, registry, install, make_bot, meta):
    handler = AsyncMock()
    await install(
        make_bot(handler=handler, permissions=("upload_files",), command_permissions=("upload_files",)),
        permissions=[],
    )

    result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    assert result.status == ExecutionStatus.DENIED
    # Which permission was missing is not disclosed to the chat
    assert "upload_files" not in result.messages[0].content
    handler.assert_not_called()


@pytest.mark.asyncio
async def test_unknown_bot(executor, registry, install, make_bot, meta):
    await install(make_bot())

    result = await executor.execute(command_for(registry, "bot-ghost", "run"), meta)

    assert result.status == ExecutionStatus.UNRECOGNIZED
    assert "Unknown Bot" in result.messages[0].content
    assert "`@bot-echo`" in result.messages[0].content
    assert result.errors == ["Unknown bot: bot-ghost"]


@pytest.mark.asyncio
async def test_unknown_command_lists_commands(executor, registry, install, make_bot, meta):
    await install(make_bot())

    result = await executor.execute(command_for(registry, "bot-echo", "bot"), meta)

    assert result.status == ExecutionStatus.UNRECOGNIZED
    content = result.messages[0].content
    assert "`echo`" in content
    assert "`help`" in content
    assert "Tip: mention the bot directly" in content


@pytest.mark.asyncio
async def test_validation_errors_are_reported_before_authorization(executor, registry, make_bot, meta):
    # Not installed: validation still answers first
    registry.register(make_bot("bot-editorial-like", commands=_commands_with_required_param()))

    result = await executor.execute(command_for(registry, "bot-editorial-like", "assign"), meta)

    assert result.status == ExecutionStatus.VALIDATION_FAILED
    assert result.errors == ["reviewer: is required"]
    assert "Invalid Parameters" in result.messages[0].content
    assert "@bot-editorial-like assign reviewer=<id>" in result.messages[0].content


def _commands_with_required_param():
    async def assign(params, context):
        return None

    return (
        CommandSpec(
            name="assign",
            description="Assign a reviewer",
            usage="@bot-editorial-like assign reviewer=<id>",
            parameters=(ParameterSpec(name="reviewer", required=True),),
            execute=assign,
        ),
    )


@pytest.mark.asyncio
async def test_handler_exception_is_redacted(executor, registry, install, make_bot, meta):
    async def handler(params, context):
        raise RuntimeError("connection to postgres://admin:hunter2@db failed")

    await install(make_bot(handler=handler))

    result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    assert result.status == ExecutionStatus.FAILED
    assert result.errors == ["Command execution failed"]
    assert all("hunter2" not in m.content for m in result.messages)
    assert "Bot Processing Failed" in result.messages[0].content


@pytest.mark.asyncio
async def test_synchronous_handler_failure_is_contained(executor, registry, install, make_bot, meta):
    def handler(params, context):
        raise KeyError("boom")

    await install(make_bot(handler=handler))

    result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    assert result.status == ExecutionStatus.FAILED


@pytest.mark.asyncio
async def test_malformed_handler_output(executor, registry, install, make_bot, meta):
    async def handler(params, context):
        return 42

    await install(make_bot(handler=handler))

    result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    assert result.status == ExecutionStatus.FAILED
    assert result.errors == ["Command execution failed"]


@pytest.mark.asyncio
async def test_soft_failure_gets_a_visible_message(executor, registry, install, make_bot, meta):
    async def handler(params, context):
        return {"errors": ["No reviewers assigned yet"]}

    await install(make_bot(handler=handler))

    result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    assert result.status == ExecutionStatus.SOFT_FAILURE
    assert result.errors == ["No reviewers assigned yet"]
    assert "- No reviewers assigned yet" in result.messages[0].content


@pytest.mark.asyncio
async def test_handler_may_return_bot_result(executor, registry, install, make_bot, meta):
    async def handler(params, context):
        return BotResult(actions=[BotAction(BotActionType.UPDATE_WORKFLOW_PHASE, {"phase": "DELIBERATION"})])

    await install(make_bot(handler=handler))

    result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    assert result.status == ExecutionStatus.SUCCESS
    assert result.actions[0].type == "UPDATE_WORKFLOW_PHASE"


@pytest.mark.asyncio
async def test_timeout_abandons_handler(executor, registry, install, make_bot, meta):
    release = asyncio.Event()

    async def handler(params, context):
        await release.wait()
        return {"messages": ["too late"]}

    await install(make_bot(handler=handler))

    result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    assert result.status == ExecutionStatus.TIMEOUT
    assert result.errors == ["Bot execution timed out"]
    assert "Bot Timed Out" in result.messages[0].content
    assert len(executor._abandoned) == 1

    # The abandoned handler keeps running and its late result is dropped
    late = next(iter(executor._abandoned))
    release.set()
    assert await late == {"messages": ["too late"]}
    assert executor._abandoned == set()


@pytest.mark.asyncio
async def test_concurrent_invocations_are_independent(executor, registry, install, make_bot, meta):
    async def handler(params, context):
        await asyncio.sleep(0.01)
        return {"messages": [params["text"]]}

    await install(make_bot(handler=handler))

    results = await asyncio.gather(
        *(executor.execute(command_for(registry, "bot-echo", "echo", {"text": str(i)}), meta) for i in range(5))
    )

    assert [r.messages[0].content for r in results] == ["0", "1", "2", "3", "4"]


# ==========================================
# Events
# ==========================================
@pytest.mark.asyncio
async def test_events_reach_only_installed_enabled_subscribers(
    executor, registry, installations, install, make_bot
):
    on_assigned = AsyncMock(return_value={"messages": ["checklist ready"]})
    on_disabled = AsyncMock()

    await install(make_bot("bot-listener", events={BotEventName.REVIEWER_ASSIGNED: on_assigned}))
    await install(make_bot("bot-sleeper", events={BotEventName.REVIEWER_ASSIGNED: on_disabled}))
    await installations.set_enabled("bot-sleeper", False)
    registry.register(make_bot("bot-unlisted", events={BotEventName.REVIEWER_ASSIGNED: on_disabled}))

    results = await executor.dispatch_event(BotEventName.REVIEWER_ASSIGNED, {"reviewerId": "rev-1"}, "ms-1", "conv-9")

    assert [(r.bot_id, r.command, r.status) for r in results] == [
        ("bot-listener", "reviewer.assigned", ExecutionStatus.SUCCESS)
    ]
    context, payload = on_assigned.await_args.args
    assert payload == {"reviewerId": "rev-1"}
    assert context.triggered_by.user_id == "system"
    assert context.triggered_by.trigger == "event"
    assert context.conversation_id == "conv-9"
    on_disabled.assert_not_called()


@pytest.mark.asyncio
async def test_failing_event_handler_posts_nothing(executor, install, make_bot):
    async def on_upload(context, payload):
        raise RuntimeError("boom")

    await install(make_bot("bot-listener", events={BotEventName.FILE_UPLOADED: on_upload}))

    results = await executor.dispatch_event("file.uploaded", {}, "ms-1")

    assert results[0].status == ExecutionStatus.FAILED
    assert results[0].messages == []


@pytest.mark.asyncio
async def test_event_without_subscribers(executor):
    assert await executor.dispatch_event("decision.released", {}, "ms-1") == []


# ==========================================
# Audit
# ==========================================
@pytest.mark.asyncio
async def test_invocations_are_audited(registry, installations, token_issuer, install, make_bot, meta, tmp_path):
    audit = AuditLogger(str(tmp_path))
    executor = BotExecutor(registry, installations, token_issuer, audit_logger=audit)
    await install(make_bot())

    try:
        await executor.execute(command_for(registry, "bot-echo", "echo", {"text": "x"}), meta)
        await executor.execute(command_for(registry, "bot-ghost", "run"), meta)
    finally:
        audit.close()

    entries = [json.loads(line) for line in (tmp_path / "audit.log").read_text().splitlines()]
    assert [(e["event_type"], e["bot_id"], e["details"]["status"]) for e in entries] == [
        ("BOT_INVOCATION", "bot-echo", "SUCCESS"),
        ("BOT_INVOCATION", "bot-ghost", "UNRECOGNIZED"),
    ]
    assert entries[0]["user_id"] == "editor-1"
    assert entries[0]["details"]["manuscriptId"] == "ms-1"


@pytest.mark.asyncio
async def test_failed_audit_write_keeps_the_result(registry, installations, token_issuer, install, make_bot, meta):
    audit = MagicMock()
    audit.log_bot_event = AsyncMock(side_effect=OSError("disk full"))
    executor = BotExecutor(registry, installations, token_issuer, audit_logger=audit)
    await install(make_bot())

    result = await executor.execute(command_for(registry, "bot-echo", "echo", {"text": "x"}), meta)

    assert result.status == ExecutionStatus.SUCCESS
    audit.log_bot_event.assert_awaited_once()


# ==========================================
# Installation store outages
# ==========================================
@pytest.mark.asyncio
async def test_installation_lookup_failure_is_contained(executor, registry, installations, install, make_bot, meta):
    handler = AsyncMock()
    await install(make_bot(handler=handler))
    outage = AsyncMock(side_effect=RuntimeError("db connection refused: password=hunter2"))

    with patch.object(installations, "get", outage):
        result = await executor.execute(command_for(registry, "bot-echo", "echo"), meta)

    assert result.status == ExecutionStatus.FAILED
    assert result.errors == ["Command execution failed"]
    assert all("hunter2" not in m.content for m in result.messages)
    handler.assert_not_called()


@pytest.mark.asyncio
async def test_event_lookup_failure_skips_only_that_bot(executor, installations, install, make_bot):
    on_assigned = AsyncMock(return_value={"messages": ["checklist ready"]})
    await install(make_bot("bot-listener", events={BotEventName.REVIEWER_ASSIGNED: on_assigned}))
    await install(make_bot("bot-flaky", events={BotEventName.REVIEWER_ASSIGNED: on_assigned}))
    real_get = installations.get

    async def flaky_get(bot_id):
        if bot_id == "bot-flaky":
            raise RuntimeError("db connection refused")
        return await real_get(bot_id)

    with patch.object(installations, "get", side_effect=flaky_get):
        results = await executor.dispatch_event(BotEventName.REVIEWER_ASSIGNED, {"reviewerId": "rev-1"}, "ms-1")

    assert [r.bot_id for r in results] == ["bot-listener"]
    on_assigned.assert_awaited_once()
