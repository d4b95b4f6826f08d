# FilePath: "/colloquium/security/policy.py"
# Project: Colloquium Bot Framework
# Module: Invocation Policy
# Version: 1.0.0
# Author: "Colloquium Contributors"
# License: Apache-2.0
# Description:
#   Decides whether a bot installation may run a given command. The installation record
#   is the authority; the registry alone never grants invocation.

from __future__ import annotations

from typing import FrozenSet, List, Optional

from ..models import BotDefinition, BotInstallation, CommandSpec


class PermissionDecision:
    """Represents the result of an invocation policy evaluation."""

    def __init__(self, allowed: bool, reasons: List[str] | None = None, missing: FrozenSet[str] | None = None):
        self.allowed = allowed
        self.reasons = reasons or []
        self.missing = missing or frozenset()

    def __bool__(self) -> bool:
        return self.allowed

    def __repr__(self) -> str:
        return f"PermissionDecision(allowed={self.allowed}, reasons={self.reasons})"


def granted_permissions(bot: BotDefinition, installation: BotInstallation) -> FrozenSet[str]:
    """Bot-declared permissions, narrowed by the installation's grant list when one is set."""
    if installation.permissions is None:
        return bot.permissions
    return bot.permissions & frozenset(installation.permissions)


def evaluate_installation(bot_id: str, installation: Optional[BotInstallation]) -> PermissionDecision:
    if installation is None or not installation.is_installed:
        return PermissionDecision(False, [f"bot {bot_id} is not installed"])
    if not installation.is_enabled:
        return PermissionDecision(False, [f"bot {bot_id} is disabled"])
    return PermissionDecision(True)


def evaluate_command(
    bot: BotDefinition,
    installation: Optional[BotInstallation],
    command: Optional[CommandSpec] = None,
) -> PermissionDecision:
    decision = evaluate_installation(bot.id, installation)
    if not decision.allowed or command is None:
        return decision

    missing = frozenset(command.permissions - granted_permissions(bot, installation))
    if missing:
        return PermissionDecision(
            False,
            [f"missing permission: {p}" for p in sorted(missing)],
            missing,
        )
    return PermissionDecision(True)
