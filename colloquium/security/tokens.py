# FilePath: "/colloquium/security/tokens.py"
# Project: Colloquium Bot Framework
# Description: Mints and verifies signed, time-scoped JWT credentials. Bot service tokens
#              and user session tokens carry a distinct "type" claim and are never accepted
#              in place of each other.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

import jwt

from ..errors import ServiceTokenError

logger = logging.getLogger(__name__)

BOT_TOKEN_TYPE = "bot_service"
USER_TOKEN_TYPE = "user_session"


@dataclass(frozen=True)
class BotTokenClaims:
    bot_id: str
    manuscript_id: str
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    expires_at: int = 0
    token_id: str = ""

    def has_permission(self, permission: Any) -> bool:
        value = permission.value if hasattr(permission, "value") else str(permission)
        return value in self.permissions


@dataclass(frozen=True)
class UserTokenClaims:
    user_id: str
    role: Optional[str] = None
    expires_at: int = 0


class ServiceTokenIssuer:
    """HMAC-signed JWTs for bot invocations and user sessions."""

    def __init__(self, secret_key: str, ttl_seconds: int = 3600, algorithm: str = "HS256"):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.secret_key = secret_key
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm

    def _encode(self, claims: Dict[str, Any], ttl_seconds: Optional[int]) -> str:
        now = int(time.time())
        payload = {
            **claims,
            "iat": now,
            "exp": now + (self.ttl_seconds if ttl_seconds is None else ttl_seconds),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def _decode(self, token: str, expected_type: str) -> Dict[str, Any]:
        if not token:
            raise ServiceTokenError("Missing token", "TOKEN_INVALID")
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as e:
            raise ServiceTokenError("Token has expired", "TOKEN_EXPIRED") from e
        except jwt.InvalidTokenError as e:
            raise ServiceTokenError(f"Invalid token: {e}", "TOKEN_INVALID") from e

        token_type = payload.get("type")
        if token_type != expected_type:
            logger.warning(f"Rejected token of type '{token_type}' where '{expected_type}' was expected")
            raise ServiceTokenError(
                f"Expected a {expected_type} token",
                "TOKEN_TYPE_MISMATCH",
                {"expected": expected_type, "actual": token_type},
            )
        return payload

    # --- Bot service tokens ---

    def mint_bot_token(
        self,
        bot_id: str,
        manuscript_id: str,
        permissions: Iterable[Any],
        ttl_seconds: Optional[int] = None,
    ) -> str:
        values = sorted({p.value if hasattr(p, "value") else str(p) for p in permissions})
        return self._encode(
            {"type": BOT_TOKEN_TYPE, "botId": bot_id, "manuscriptId": manuscript_id, "permissions": values},
            ttl_seconds,
        )

    def verify_bot_token(self, token: str) -> BotTokenClaims:
        payload = self._decode(token, BOT_TOKEN_TYPE)
        if not payload.get("botId"):
            raise ServiceTokenError("Bot token carries no botId", "TOKEN_INVALID")
        return BotTokenClaims(
            bot_id=payload["botId"],
            manuscript_id=payload.get("manuscriptId", ""),
            permissions=frozenset(payload.get("permissions") or []),
            expires_at=payload["exp"],
            token_id=payload.get("jti", ""),
        )

    # --- User session tokens ---

    def mint_user_token(self, user_id: str, role: Optional[str] = None, ttl_seconds: Optional[int] = None) -> str:
        return self._encode({"type": USER_TOKEN_TYPE, "userId": user_id, "role": role}, ttl_seconds)

    def verify_user_token(self, token: str) -> UserTokenClaims:
        payload = self._decode(token, USER_TOKEN_TYPE)
        if not payload.get("userId"):
            raise ServiceTokenError("User token carries no userId", "TOKEN_INVALID")
        return UserTokenClaims(user_id=payload["userId"], role=payload.get("role"), expires_at=payload["exp"])
