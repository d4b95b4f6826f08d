# FilePath: "/colloquium/api/storage_api.py"
# Project: Colloquium Bot Framework
# Description: Bot key-value storage routes. Scope comes from the service token:
#              a bot only ever sees its own keys for the manuscript it was invoked on.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

from fastapi import APIRouter, HTTPException, Request, Security

from ..models import BotPermission
from ..security.permissions import get_runtime, require_bot_permission
from ..security.tokens import BotTokenClaims
from ..storage import StoredValue
from .schemas import StorageValueRequest

router = APIRouter(prefix="/api/bot-storage", tags=["Bot Storage"])

storage_permission = require_bot_permission(BotPermission.BOT_STORAGE)


def stored_payload(stored: StoredValue) -> dict:
    return {"key": stored.key, "value": stored.value, "updatedAt": stored.updated_at.isoformat()}


@router.get("")
async def list_values(request: Request, claims: BotTokenClaims = Security(storage_permission)):
    items = await get_runtime(request).bot_storage.list(claims.bot_id, claims.manuscript_id)
    return {"items": [stored_payload(s) for s in items]}


@router.get("/{key}")
async def get_value(request: Request, key: str, claims: BotTokenClaims = Security(storage_permission)):
    stored = await get_runtime(request).bot_storage.get(claims.bot_id, claims.manuscript_id, key)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"Key {key} not found")
    return stored_payload(stored)


@router.put("/{key}")
async def put_value(
    request: Request,
    key: str,
    body: StorageValueRequest,
    claims: BotTokenClaims = Security(storage_permission),
):
    stored = await get_runtime(request).bot_storage.set(claims.bot_id, claims.manuscript_id, key, body.value)
    return stored_payload(stored)


@router.delete("/{key}", status_code=204)
async def delete_value(request: Request, key: str, claims: BotTokenClaims = Security(storage_permission)):
    if not await get_runtime(request).bot_storage.delete(claims.bot_id, claims.manuscript_id, key):
        raise HTTPException(status_code=404, detail=f"Key {key} not found")
