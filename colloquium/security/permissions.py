# FilePath: "/colloquium/security/permissions.py"
# Project: Colloquium Bot Framework
# Description: FastAPI dependencies guarding the admin and bot API routes.
#              Admin routes check X-Admin-Key; bot routes verify the X-Bot-Token
#              service token and the permissions embedded in it.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import hmac
import logging

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from ..errors import ServiceTokenError
from .tokens import BotTokenClaims

logger = logging.getLogger(__name__)

admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)
bot_token_header = APIKeyHeader(name="X-Bot-Token", auto_error=False)


def get_runtime(request: Request):
    return request.app.state.runtime


async def require_admin(request: Request, key: str = Security(admin_key_header)) -> bool:
    """Simple shared-secret check for admin routes."""
    expected = get_runtime(request).settings.ADMIN_API_KEY
    if not key or not hmac.compare_digest(key, expected):
        logger.warning("Rejected admin request with invalid X-Admin-Key")
        raise HTTPException(status_code=403, detail="Invalid Admin Key")
    return True


async def require_bot_token(request: Request, token: str = Security(bot_token_header)) -> BotTokenClaims:
    if not token:
        raise HTTPException(status_code=401, detail="Missing X-Bot-Token header")
    try:
        return get_runtime(request).token_issuer.verify_bot_token(token)
    except ServiceTokenError as e:
        logger.warning(f"Rejected bot token: {e.error_code}")
        raise HTTPException(status_code=401, detail=e.message) from e


def require_bot_permission(*permissions):
    """Dependency factory: the verified token must carry every listed permission."""

    async def checker(claims: BotTokenClaims = Security(require_bot_token)) -> BotTokenClaims:
        for permission in permissions:
            if not claims.has_permission(permission):
                value = getattr(permission, "value", permission)
                logger.warning(f"Bot {claims.bot_id} lacks permission {value}")
                raise HTTPException(status_code=403, detail=f"Missing permission: {value}")
        return claims

    return checker
