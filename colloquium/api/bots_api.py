# FilePath: "/colloquium/api/bots_api.py"
# Project: Colloquium Bot Framework
# Description: Bot management API (admin key) and bot-to-bot invocation (service token).
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, Request, Security

from ..errors import BotFrameworkError
from ..help import generate_bot_help
from ..models import BotDefinition, BotInstallation, BotPermission, InvocationMeta
from ..security.permissions import get_runtime, require_admin, require_bot_permission
from ..security.tokens import BotTokenClaims
from .schemas import ExecuteCommandRequest, InstallBotRequest, InvokeBotRequest, SetEnabledRequest, UpdateConfigRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bots", tags=["Bot Management"])

ERROR_STATUS = {
    "BOT_NOT_FOUND": 404,
    "NOT_INSTALLED": 404,
    "ALREADY_INSTALLED": 409,
    "BOT_REQUIRED": 409,
    "INVALID_CONFIG": 400,
}

ADMIN_ACTOR = "admin"


def http_error(error: BotFrameworkError) -> HTTPException:
    return HTTPException(status_code=ERROR_STATUS.get(error.error_code, 400), detail=error.to_dict())


def installation_payload(installation: Optional[BotInstallation]) -> Optional[Dict[str, Any]]:
    if installation is None:
        return None
    return {
        "botId": installation.bot_id,
        "isEnabled": installation.is_enabled,
        "isDefault": installation.is_default,
        "isRequired": installation.is_required,
        "config": installation.config,
        "permissions": installation.permissions,
        "installedAt": installation.installed_at.isoformat(),
        "updatedAt": installation.updated_at.isoformat(),
        "uninstalledAt": installation.uninstalled_at.isoformat() if installation.uninstalled_at else None,
    }


def bot_payload(bot: BotDefinition) -> Dict[str, Any]:
    return {
        "id": bot.id,
        "name": bot.name,
        "description": bot.description,
        "version": bot.version,
        "permissions": sorted(bot.permissions),
        "keywords": list(bot.keywords),
        "events": sorted(bot.events),
        "commands": [{"name": c.name, "description": c.description, "usage": c.usage} for c in bot.commands],
    }


# ==========================================
# Admin Routes
# ==========================================
@router.get("")
async def list_bots(request: Request, authorized: bool = Security(require_admin)):
    """Every registered bot merged with its installation state."""
    runtime = get_runtime(request)
    installations = {i.bot_id: i for i in await runtime.installations.list()}
    bots = []
    for bot in runtime.registry.list():
        installation = installations.get(bot.id)
        bots.append(
            {
                **bot_payload(bot),
                "isInstalled": installation is not None,
                "isEnabled": bool(installation and installation.is_enabled),
                "installation": installation_payload(installation),
            }
        )
    return {"bots": bots}


@router.get("/installed")
async def list_installed(request: Request, authorized: bool = Security(require_admin)):
    runtime = get_runtime(request)
    return {"installations": [installation_payload(i) for i in await runtime.installations.list()]}


@router.get("/{bot_id}/help")
async def bot_help(
    request: Request,
    bot_id: str,
    command: Optional[str] = None,
    fmt: str = Query("markdown", alias="format"),
    authorized: bool = Security(require_admin),
):
    bot = get_runtime(request).registry.get(bot_id)
    if bot is None:
        raise HTTPException(status_code=404, detail=f"Bot {bot_id} not found")
    return {"botId": bot.id, "help": generate_bot_help(bot, command, include_metadata=True, fmt=fmt)}


@router.post("/{bot_id}/install", status_code=201)
async def install_bot(
    request: Request,
    bot_id: str,
    body: Optional[InstallBotRequest] = None,
    authorized: bool = Security(require_admin),
):
    body = body or InstallBotRequest()
    try:
        installation = await get_runtime(request).installations.install(
            bot_id, body.config, body.permissions, actor=ADMIN_ACTOR
        )
    except BotFrameworkError as e:
        raise http_error(e) from e
    return installation_payload(installation)


@router.delete("/{bot_id}")
async def uninstall_bot(request: Request, bot_id: str, authorized: bool = Security(require_admin)):
    try:
        installation = await get_runtime(request).installations.uninstall(bot_id, actor=ADMIN_ACTOR)
    except BotFrameworkError as e:
        raise http_error(e) from e
    return installation_payload(installation)


@router.put("/{bot_id}/config")
async def update_bot_config(
    request: Request,
    bot_id: str,
    body: UpdateConfigRequest,
    authorized: bool = Security(require_admin),
):
    try:
        installation = await get_runtime(request).installations.update_config(bot_id, body.config, actor=ADMIN_ACTOR)
    except BotFrameworkError as e:
        raise http_error(e) from e
    return installation_payload(installation)


@router.put("/{bot_id}/enabled")
async def set_bot_enabled(
    request: Request,
    bot_id: str,
    body: SetEnabledRequest,
    authorized: bool = Security(require_admin),
):
    try:
        installation = await get_runtime(request).installations.set_enabled(bot_id, body.enabled, actor=ADMIN_ACTOR)
    except BotFrameworkError as e:
        raise http_error(e) from e
    return installation_payload(installation)


@router.post("/{bot_id}/execute")
async def execute_bot_command(
    request: Request,
    bot_id: str,
    body: ExecuteCommandRequest,
    authorized: bool = Security(require_admin),
):
    """Runs a structured command through the full pipeline, including action processing."""
    runtime = get_runtime(request)
    parsed = runtime.parser.build(bot_id, body.command, body.parameters)
    meta = InvocationMeta(
        manuscript_id=body.manuscript_id,
        user_id=body.user_id,
        conversation_id=body.conversation_id,
        user_role=body.user_role,
    )
    outcome = await runtime.run_command(parsed, meta, apply_actions=body.apply_actions)
    return {
        "result": outcome.result.to_dict(),
        "messageIds": outcome.message_ids,
        "actions": outcome.actions.to_dict() if outcome.actions else None,
    }


# ==========================================
# Bot-to-Bot
# ==========================================
@router.post("/invoke")
async def invoke_bot(
    request: Request,
    body: InvokeBotRequest,
    claims: BotTokenClaims = Security(require_bot_permission(BotPermission.INVOKE_BOTS)),
):
    """
    Invokes another bot on the caller's manuscript. The callee's result is returned
    to the caller; its actions are not applied here.
    """
    runtime = get_runtime(request)
    parsed = runtime.parser.build(body.bot_id, body.command, body.parameters)
    meta = InvocationMeta(manuscript_id=claims.manuscript_id, user_id=claims.bot_id, user_role="BOT")
    logger.info(f"Bot {claims.bot_id} invoking {body.bot_id} {body.command}")
    result = await runtime.executor.execute(parsed, meta)
    return result.to_dict()
