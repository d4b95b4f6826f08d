"""
FilePath: "/colloquium/executor.py"
Project: Colloquium Bot Framework
Component: Bot Executor
Description: Runtime entry point for bot invocations.
             Resolve -> Authorize -> Build Context -> Invoke (under a deadline) -> Normalize.
             Nothing above this boundary ever receives a raw exception: every path ends
             in a BotResult stamped with an ExecutionStatus.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from .commands import render_command, resolve_command
from .installations import BotInstallationManager
from .models import (
    BotDefinition,
    BotExecutionContext,
    BotInstallation,
    BotMessage,
    BotResult,
    BotTrigger,
    CommandSpec,
    ExecutionStatus,
    InvocationMeta,
    JournalContext,
    ParsedCommand,
    TriggeredBy,
)
from .registry import BotRegistry
from .security.policy import evaluate_command, granted_permissions
from .security.tokens import ServiceTokenIssuer

logger = logging.getLogger(__name__)

SYSTEM_USER = "system"
SYSTEM_ROLE = "SYSTEM"


class BotExecutor:
    """
    Stateless per call: concurrent invocations of the same bot are not serialized here.
    """

    def __init__(
        self,
        registry: BotRegistry,
        installations: BotInstallationManager,
        token_issuer: ServiceTokenIssuer,
        timeout_seconds: float = 30.0,
        api_url: str = "",
        audit_logger=None,
    ):
        self.registry = registry
        self.installations = installations
        self.token_issuer = token_issuer
        self.timeout_seconds = timeout_seconds
        self.api_url = api_url
        self.audit_logger = audit_logger
        # Handlers abandoned after a timeout; referenced until they finish
        self._abandoned: Set[asyncio.Task] = set()

    # ==========================================
    # Command invocation
    # ==========================================
    async def execute(self, parsed: ParsedCommand, meta: InvocationMeta) -> BotResult:
        # --- Resolve ---
        bot = self.registry.get(parsed.bot_id)
        if parsed.is_unrecognized or bot is None:
            result = self._unrecognized_result(parsed, bot)
            await self._audit(result, meta, {"rawText": parsed.raw_text})
            return result

        command = resolve_command(bot, parsed.command)
        if command is None:
            parsed.unrecognized_target = "command"
            result = self._unrecognized_result(parsed, bot)
            await self._audit(result, meta, {"rawText": parsed.raw_text})
            return result

        if parsed.validation_errors:
            result = self._validation_result(bot, command, parsed)
            logger.info(f"Validation failed for @{bot.id} {command.name}: {[str(i) for i in parsed.validation_errors]}")
            await self._audit(result, meta, {"errors": [str(i) for i in parsed.validation_errors]})
            return result

        # --- Authorize ---
        try:
            installation = await self.installations.get(bot.id)
        except Exception as e:
            logger.error(f"Installation lookup failed for @{bot.id} {command.name}: {e}", exc_info=True)
            result = self._failure_result(bot.id, command.name, True)
            await self._audit(result, meta, {"stage": "authorize"})
            return result
        decision = evaluate_command(bot, installation, command)
        if not decision.allowed:
            logger.warning(f"Denied @{bot.id} {command.name} for user {meta.user_id}: {'; '.join(decision.reasons)}")
            result = self._denied_result(bot, command.name)
            await self._audit(result, meta, {"reasons": decision.reasons})
            return result

        # --- Build Context ---
        try:
            context = self.build_context(bot, installation, meta)
        except Exception as e:
            logger.error(f"Could not build context for @{bot.id} {command.name}: {e}", exc_info=True)
            result = self._failure_result(bot.id, command.name, True)
            await self._audit(result, meta, {"stage": "context"})
            return result

        # --- Invoke + Normalize ---
        result = await self._invoke(bot, command.name, lambda: command.execute(dict(parsed.parameters), context))
        await self._audit(result, meta, {"rawText": parsed.raw_text or render_command(parsed)})
        return result

    # ==========================================
    # Event dispatch
    # ==========================================
    async def dispatch_event(
        self,
        event_name: str,
        payload: Dict[str, Any],
        manuscript_id: str,
        conversation_id: Optional[str] = None,
        journal: Optional[JournalContext] = None,
    ) -> List[BotResult]:
        """Fans an event out to every installed, enabled bot that subscribes to it."""
        event_name = getattr(event_name, "value", event_name)
        meta = InvocationMeta(
            manuscript_id=manuscript_id,
            user_id=SYSTEM_USER,
            conversation_id=conversation_id,
            user_role=SYSTEM_ROLE,
            trigger=BotTrigger.EVENT.value,
            journal=journal,
        )

        targets = []
        for bot in self.registry.subscribers(event_name):
            try:
                installation = await self.installations.get(bot.id)
            except Exception as e:
                logger.error(f"Installation lookup failed for @{bot.id} on {event_name}: {e}", exc_info=True)
                continue
            decision = evaluate_command(bot, installation)
            if not decision.allowed:
                logger.debug(f"Skipping event {event_name} for @{bot.id}: {'; '.join(decision.reasons)}")
                continue
            targets.append((bot, installation))

        if not targets:
            logger.debug(f"No subscribers for event {event_name}")
            return []

        logger.info(f"Dispatching {event_name} to {len(targets)} bot(s) for manuscript {manuscript_id}")
        return list(
            await asyncio.gather(
                *(self._run_event_handler(bot, installation, event_name, payload, meta) for bot, installation in targets)
            )
        )

    async def _run_event_handler(
        self,
        bot: BotDefinition,
        installation: BotInstallation,
        event_name: str,
        payload: Dict[str, Any],
        meta: InvocationMeta,
    ) -> BotResult:
        try:
            context = self.build_context(bot, installation, meta)
        except Exception as e:
            logger.error(f"Could not build context for @{bot.id} on {event_name}: {e}", exc_info=True)
            return self._failure_result(bot.id, event_name, False)
        handler = bot.events[event_name]
        result = await self._invoke(bot, event_name, lambda: handler(context, dict(payload)), notify_on_error=False)
        await self._audit(result, meta, {"event": event_name})
        return result

    # ==========================================
    # Context
    # ==========================================
    def build_context(self, bot: BotDefinition, installation: BotInstallation, meta: InvocationMeta) -> BotExecutionContext:
        permissions = granted_permissions(bot, installation)
        service_token = self.token_issuer.mint_bot_token(bot.id, meta.manuscript_id, permissions)
        config = dict(installation.config)
        config.setdefault("apiUrl", self.api_url)

        return BotExecutionContext(
            bot_id=bot.id,
            manuscript_id=meta.manuscript_id,
            conversation_id=meta.conversation_id,
            triggered_by=TriggeredBy(
                user_id=meta.user_id,
                trigger=getattr(meta.trigger, "value", meta.trigger),
                message_id=meta.message_id,
                user_role=meta.user_role,
            ),
            journal=meta.journal or JournalContext(),
            config=config,
            service_token=service_token,
            api_url=config["apiUrl"],
        )

    # ==========================================
    # Invocation under deadline
    # ==========================================
    async def _invoke(
        self, bot: BotDefinition, label: str, call: Callable[[], Awaitable[Any]], notify_on_error: bool = True
    ) -> BotResult:
        try:
            task = asyncio.ensure_future(call())
        except Exception as e:
            logger.error(f"@{bot.id} {label} could not be started: {e}", exc_info=True)
            return self._failure_result(bot.id, label, notify_on_error)

        try:
            # shield(): on expiry we stop waiting but never cancel the handler itself
            output = await asyncio.wait_for(asyncio.shield(task), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"[timeout] @{bot.id} {label} exceeded {self.timeout_seconds}s; result will be discarded")
            self._abandon(bot.id, label, task)
            return self._stamp(
                BotResult(
                    messages=[
                        BotMessage(
                            content=f"⏱️ **Bot Timed Out**\n\n`@{bot.id} {label}` took too long to respond and was stopped."
                        )
                    ],
                    errors=["Bot execution timed out"],
                ),
                bot.id,
                label,
                ExecutionStatus.TIMEOUT,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        except Exception as e:
            logger.error(f"@{bot.id} {label} failed: {e}", exc_info=True)
            return self._failure_result(bot.id, label, notify_on_error)

        try:
            result = BotResult.from_handler_output(output)
        except (TypeError, KeyError) as e:
            logger.error(f"@{bot.id} {label} returned a malformed result: {e}", exc_info=True)
            return self._failure_result(bot.id, label, notify_on_error)

        if result.is_soft_failure:
            logger.info(f"@{bot.id} {label} reported errors: {result.errors}")
            result.messages.append(
                BotMessage(
                    content=(
                        "⚠️ **Bot Processing Warning**\n\n"
                        f"`@{bot.id} {label}` could not complete:\n"
                        + "\n".join(f"- {e}" for e in result.errors)
                    )
                )
            )
            return self._stamp(result, bot.id, label, ExecutionStatus.SOFT_FAILURE)

        return self._stamp(result, bot.id, label, ExecutionStatus.SUCCESS)

    def _abandon(self, bot_id: str, label: str, task: asyncio.Task) -> None:
        self._abandoned.add(task)

        def _discard(done: asyncio.Task) -> None:
            self._abandoned.discard(done)
            if done.cancelled():
                return
            error = done.exception()
            if error is not None:
                logger.warning(f"[timeout] Late failure from @{bot_id} {label} discarded: {error}")
            else:
                logger.info(f"[timeout] Late result from @{bot_id} {label} discarded")

        task.add_done_callback(_discard)

    # ==========================================
    # Synthetic results
    # ==========================================
    @staticmethod
    def _stamp(result: BotResult, bot_id: str, command: str, status: ExecutionStatus) -> BotResult:
        result.bot_id = bot_id
        result.command = command
        result.status = status
        return result

    def _failure_result(self, bot_id: str, label: str, notify: bool) -> BotResult:
        messages = []
        if notify:
            messages.append(
                BotMessage(
                    content=(
                        "❌ **Bot Processing Failed**\n\n"
                        f"`@{bot_id} {label}` ran into an internal error. The details have been logged."
                    )
                )
            )
        return self._stamp(
            BotResult(messages=messages, errors=["Command execution failed"]),
            bot_id,
            label,
            ExecutionStatus.FAILED,
        )

    def _unrecognized_result(self, parsed: ParsedCommand, bot: Optional[BotDefinition]) -> BotResult:
        if bot is None:
            available = ", ".join(f"`@{b.id}`" for b in self.registry.list()) or "none"
            content = (
                f"❓ **Unknown Bot**\n\nThere is no bot called `@{parsed.bot_id}`.\n\n"
                f"**Available bots:** {available}"
            )
            error = f"Unknown bot: {parsed.bot_id}"
        else:
            commands = ", ".join(f"`{c.name}`" for c in bot.commands) or "none"
            shown = parsed.command or "(none)"
            content = (
                f"❓ **Unknown Command**\n\n`@{bot.id}` has no command `{shown}`.\n\n"
                f"**Available commands:** {commands}, `help`"
            )
            if parsed.command.lower() == "bot":
                content += f"\n\n💡 Tip: mention the bot directly, e.g. `@{bot.id} help`."
            error = f"Unknown command: {shown}"

        logger.debug(f"Unrecognized invocation: {parsed.raw_text!r}")
        return self._stamp(
            BotResult(messages=[BotMessage(content=content)], errors=[error]),
            bot.id if bot else parsed.bot_id,
            parsed.command,
            ExecutionStatus.UNRECOGNIZED,
        )

    def _validation_result(self, bot: BotDefinition, command: CommandSpec, parsed: ParsedCommand) -> BotResult:
        lines = [f"⚠️ **Invalid Parameters** for `@{bot.id} {command.name}`", ""]
        lines.extend(f"- **{issue.parameter}** {issue.message}" for issue in parsed.validation_errors)
        lines.extend(["", f"**Usage:** `{command.usage or f'@{bot.id} {command.name}'}`"])
        if command.examples:
            lines.append("")
            lines.append("**Examples:**")
            lines.extend(f"- `{example}`" for example in command.examples[:3])
        return self._stamp(
            BotResult(
                messages=[BotMessage(content="\n".join(lines))],
                errors=[str(issue) for issue in parsed.validation_errors],
            ),
            bot.id,
            command.name,
            ExecutionStatus.VALIDATION_FAILED,
        )

    def _denied_result(self, bot: BotDefinition, command_name: str) -> BotResult:
        # Which permission was missing stays in the server log
        return self._stamp(
            BotResult(
                messages=[
                    BotMessage(content=f"🚫 **Not Available**\n\n`@{bot.id} {command_name}` cannot be run here.")
                ],
                errors=["Bot invocation not permitted"],
            ),
            bot.id,
            command_name,
            ExecutionStatus.DENIED,
        )

    async def _audit(self, result: BotResult, meta: InvocationMeta, details: Dict[str, Any]) -> None:
        if not self.audit_logger:
            return
        try:
            await self.audit_logger.log_bot_event(
                "BOT_INVOCATION",
                result.bot_id or "unknown",
                meta.user_id,
                {
                    "command": result.command,
                    "status": result.status.value,
                    "manuscriptId": meta.manuscript_id,
                    "trigger": getattr(meta.trigger, "value", meta.trigger),
                    "actions": len(result.actions),
                    **details,
                },
                success=result.status == ExecutionStatus.SUCCESS,
            )
        except Exception as e:
            # The result stands even when the audit line is lost
            logger.error(f"Audit write failed for @{result.bot_id} {result.command}: {e}")
