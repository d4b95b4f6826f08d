import json

import pytest

from colloquium.errors import ServiceTokenError
from colloquium.models import BotInstallation, BotPermission
from colloquium.security import AuditLogger, ServiceTokenIssuer, evaluate_command, granted_permissions


# ==========================================
# Tokens
# ==========================================
def test_bot_token_round_trip(token_issuer):
    token = token_issuer.mint_bot_token(
        "bot-echo", "ms-1", [BotPermission.READ_MANUSCRIPT, "bot_storage", BotPermission.READ_MANUSCRIPT]
    )

    claims = token_issuer.verify_bot_token(token)

    assert claims.bot_id == "bot-echo"
    assert claims.manuscript_id == "ms-1"
    assert claims.permissions == frozenset({"read_manuscript", "bot_storage"})
    assert claims.has_permission(BotPermission.BOT_STORAGE)
    assert not claims.has_permission(BotPermission.INVOKE_BOTS)
    assert claims.token_id


def test_tokens_are_unique(token_issuer):
    first = token_issuer.mint_bot_token("bot-echo", "ms-1", [])
    second = token_issuer.mint_bot_token("bot-echo", "ms-1", [])

    assert first != second


def test_expired_token(token_issuer):
    token = token_issuer.mint_bot_token("bot-echo", "ms-1", [], ttl_seconds=-10)

    with pytest.raises(ServiceTokenError) as exc:
        token_issuer.verify_bot_token(token)

    assert exc.value.error_code == "TOKEN_EXPIRED"


def test_token_signed_with_another_secret(token_issuer):
    token = ServiceTokenIssuer("another-secret").mint_bot_token("bot-echo", "ms-1", [])

    with pytest.raises(ServiceTokenError) as exc:
        token_issuer.verify_bot_token(token)

    assert exc.value.error_code == "TOKEN_INVALID"


def test_user_and_bot_tokens_are_not_interchangeable(token_issuer):
    user_token = token_issuer.mint_user_token("editor-1", role="EDITOR_IN_CHIEF")
    bot_token = token_issuer.mint_bot_token("bot-echo", "ms-1", [])

    with pytest.raises(ServiceTokenError) as exc:
        token_issuer.verify_bot_token(user_token)
    assert exc.value.error_code == "TOKEN_TYPE_MISMATCH"

    with pytest.raises(ServiceTokenError):
        token_issuer.verify_user_token(bot_token)

    claims = token_issuer.verify_user_token(user_token)
    assert (claims.user_id, claims.role) == ("editor-1", "EDITOR_IN_CHIEF")


def test_missing_token_and_secret(token_issuer):
    with pytest.raises(ServiceTokenError):
        token_issuer.verify_bot_token("")
    with pytest.raises(ValueError):
        ServiceTokenIssuer("")


# ==========================================
# Invocation policy
# ==========================================
def test_installation_grant_list_narrows_permissions(make_bot):
    bot = make_bot(permissions=("read_manuscript", "bot_storage"))

    assert granted_permissions(bot, BotInstallation(bot_id=bot.id)) == frozenset({"read_manuscript", "bot_storage"})
    assert granted_permissions(
        bot, BotInstallation(bot_id=bot.id, permissions=["bot_storage", "invoke_bots"])
    ) == frozenset({"bot_storage"})


def test_command_permission_must_be_granted(make_bot):
    bot = make_bot(permissions=("read_manuscript",), command_permissions=("read_manuscript",))
    command = bot.get_command("echo")

    assert evaluate_command(bot, BotInstallation(bot_id=bot.id), command)

    denied = evaluate_command(bot, BotInstallation(bot_id=bot.id, permissions=[]), command)
    assert not denied
    assert denied.missing == frozenset({"read_manuscript"})


def test_missing_or_disabled_installation_is_denied(make_bot):
    bot = make_bot()

    assert evaluate_command(bot, None).reasons == ["bot bot-echo is not installed"]
    assert not evaluate_command(bot, BotInstallation(bot_id=bot.id, is_enabled=False))


# ==========================================
# Audit
# ==========================================
@pytest.mark.asyncio
async def test_audit_logger_writes_json_lines(tmp_path):
    audit = AuditLogger(str(tmp_path / "audit"))
    try:
        event_id = await audit.log_bot_event("BOT_INSTALLED", "bot-echo", None, {"reinstated": False})
    finally:
        audit.close()

    lines = (tmp_path / "audit" / "audit.log").read_text().strip().splitlines()
    entry = json.loads(lines[-1])
    assert entry["event_id"] == event_id
    assert entry["event_type"] == "BOT_INSTALLED"
    assert entry["user_id"] == "system"
    assert entry["details"] == {"reinstated": False, "success": True}
