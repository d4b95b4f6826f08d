# FilePath: "/colloquium/security/__init__.py"
# Project: Colloquium Bot Framework
# Description: Security module initialization. Exposes the audit logger, token issuer
#              and invocation policy.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

"""Security module for Colloquium bots"""

from .audit import AuditLogger
from .policy import PermissionDecision, evaluate_command, evaluate_installation, granted_permissions
from .tokens import BotTokenClaims, ServiceTokenIssuer, UserTokenClaims

__all__ = [
    "AuditLogger",
    "PermissionDecision",
    "evaluate_command",
    "evaluate_installation",
    "granted_permissions",
    "BotTokenClaims",
    "ServiceTokenIssuer",
    "UserTokenClaims",
]
