"""
FilePath: "/colloquium/runtime.py"
Project: Colloquium Bot Framework
Component: Bot Runtime
Description: Explicitly constructed container that owns every framework component
             and wires the inbound message flow:

               message -> mentions -> parse per bot mention -> execute
                       -> persist bot replies -> apply actions -> report

             Built once by the process entry point (or a test) and passed around;
             nothing here is a module-level singleton.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .actions import (
    ActionContext,
    ActionReport,
    ActionServices,
    BotActionProcessor,
    InMemoryWorkflowRepository,
    LoggingNotifier,
    Notifier,
    WorkflowRepository,
)
from .actions.repository import Conversation, Message, new_id
from .commands import CommandParser
from .database import create_engine, create_session_factory, init_models
from .executor import SYSTEM_USER, BotExecutor
from .installations import BotInstallationManager, InMemoryInstallationStore, SqlInstallationStore
from .mentions import MentionResolver
from .models import BotResult, InvocationMeta, JournalContext, MentionType, ParsedCommand, ResolvedMention
from .plugins import PluginLoader, PluginSource, source_from_spec
from .registry import BotRegistry
from .security.audit import AuditLogger
from .security.tokens import ServiceTokenIssuer
from .settings import Settings
from .storage import BotStorage

logger = logging.getLogger(__name__)


@dataclass
class InvocationOutcome:
    result: BotResult
    parsed: Optional[ParsedCommand] = None
    message_ids: List[str] = field(default_factory=list)
    actions: Optional[ActionReport] = None


@dataclass
class MessageProcessingReport:
    mentions: List[ResolvedMention] = field(default_factory=list)
    invocations: List[InvocationOutcome] = field(default_factory=list)

    @property
    def results(self) -> List[BotResult]:
        return [i.result for i in self.invocations]


class BotRuntime:
    def __init__(
        self,
        settings: Settings,
        repository: Optional[WorkflowRepository] = None,
        notifier: Optional[Notifier] = None,
        plugin_sources: Optional[Iterable[PluginSource]] = None,
        transition_guard=None,
    ):
        self.settings = settings
        self.audit_logger = AuditLogger(settings.AUDIT_LOG_DIR)
        self.registry = BotRegistry()
        self.plugin_loader = PluginLoader(self.registry, self.audit_logger)
        self._plugin_sources = list(plugin_sources) if plugin_sources is not None else None

        self.engine = None
        if settings.INSTALLATION_BACKEND == "database":
            self.engine = create_engine(settings.DATABASE_URL)
            store = SqlInstallationStore(create_session_factory(self.engine))
        else:
            store = InMemoryInstallationStore()
        self.installations = BotInstallationManager(store, self.registry, self.plugin_loader, self.audit_logger)

        self.token_issuer = ServiceTokenIssuer(
            settings.SECRET_KEY, settings.BOT_TOKEN_TTL_SECONDS, settings.BOT_TOKEN_ALGORITHM
        )
        self.executor = BotExecutor(
            self.registry,
            self.installations,
            self.token_issuer,
            timeout_seconds=settings.BOT_EXECUTION_TIMEOUT,
            api_url=settings.API_URL,
            audit_logger=self.audit_logger,
        )

        self.repository = repository or InMemoryWorkflowRepository()
        self.action_processor = BotActionProcessor(
            ActionServices(
                repository=self.repository,
                notifier=notifier or LoggingNotifier(settings.FRONTEND_URL),
                review_period_days=settings.DEFAULT_REVIEW_PERIOD_DAYS,
                doi_prefix=settings.DOI_PREFIX,
                transition_guard=transition_guard,
            ),
            self.audit_logger,
        )
        self.mention_resolver = MentionResolver(self.registry, self.repository)
        self.parser = CommandParser(self.registry)
        self.bot_storage = BotStorage()

    # ==========================================
    # Lifecycle
    # ==========================================
    async def startup(self) -> None:
        sources = self._plugin_sources
        if sources is None:
            sources = [source_from_spec(spec) for spec in self.settings.BOT_PLUGINS]
        await self.plugin_loader.load_all(sources)

        if self.engine is not None:
            await init_models(self.engine)

        installed = await self.installations.install_defaults(self.plugin_loader.list_plugins())
        logger.info(
            f"Bot runtime started: {len(self.registry)} bot(s) registered, {len(installed)} default install(s)"
        )

    async def shutdown(self) -> None:
        for plugin in self.plugin_loader.list_plugins():
            await self.plugin_loader.unload(plugin.bot_id)
        if self.engine is not None:
            await self.engine.dispose()
        self.audit_logger.close()
        logger.info("Bot runtime stopped")

    # ==========================================
    # Inbound messages
    # ==========================================
    async def handle_message(
        self,
        content: str,
        conversation_id: Optional[str],
        manuscript_id: str,
        user_id: str,
        user_role: Optional[str] = None,
        message_id: Optional[str] = None,
        journal: Optional[JournalContext] = None,
    ) -> MessageProcessingReport:
        mentions = await self.mention_resolver.resolve_mentions(content, conversation_id)
        report = MessageProcessingReport(mentions=mentions)

        parsed_commands = [p for p in (self.parser.parse_message(s) for s in self._bot_segments(content, mentions)) if p]
        if not parsed_commands:
            return report

        meta = InvocationMeta(
            manuscript_id=manuscript_id,
            user_id=user_id,
            conversation_id=conversation_id,
            message_id=message_id,
            user_role=user_role,
            journal=journal,
        )
        # Bots run concurrently; the report keeps mention order
        results = await asyncio.gather(*(self.executor.execute(p, meta) for p in parsed_commands))

        for parsed, result in zip(parsed_commands, results):
            report.invocations.append(await self._complete(parsed, result, meta))
        return report

    async def run_command(self, parsed: ParsedCommand, meta: InvocationMeta, apply_actions: bool = True) -> InvocationOutcome:
        """Executes one already-parsed command outside the mention flow (admin API)."""
        result = await self.executor.execute(parsed, meta)
        return await self._complete(parsed, result, meta, apply_actions)

    async def _complete(
        self, parsed: ParsedCommand, result: BotResult, meta: InvocationMeta, apply_actions: bool = True
    ) -> InvocationOutcome:
        outcome = InvocationOutcome(result=result, parsed=parsed)
        outcome.message_ids = await self._persist_messages(result, meta.conversation_id, meta.message_id)
        if result.actions and apply_actions:
            outcome.actions = await self.action_processor.process_actions(
                result.actions,
                ActionContext(
                    manuscript_id=meta.manuscript_id,
                    user_id=meta.user_id,
                    conversation_id=meta.conversation_id,
                    bot_id=result.bot_id,
                ),
            )
        return outcome

    @staticmethod
    def _bot_segments(content: str, mentions: List[ResolvedMention]) -> List[str]:
        """Each bot mention owns the text up to the next bot mention."""
        bot_mentions = [m for m in mentions if m.type == MentionType.BOT]
        segments = []
        for i, mention in enumerate(bot_mentions):
            end = bot_mentions[i + 1].start if i + 1 < len(bot_mentions) else len(content)
            segments.append(content[mention.start:end])
        return segments

    # ==========================================
    # System events
    # ==========================================
    async def handle_event(self, event_name: Any, payload: Dict[str, Any], manuscript_id: str) -> List[InvocationOutcome]:
        conversation = await self._review_conversation(manuscript_id)
        results = await self.executor.dispatch_event(event_name, payload, manuscript_id, conversation.id)

        outcomes = []
        for result in results:
            outcome = InvocationOutcome(result=result)
            outcome.message_ids = await self._persist_messages(result, conversation.id, None)
            if result.actions:
                outcome.actions = await self.action_processor.process_actions(
                    result.actions,
                    ActionContext(
                        manuscript_id=manuscript_id,
                        user_id=SYSTEM_USER,
                        conversation_id=conversation.id,
                        bot_id=result.bot_id,
                    ),
                )
            outcomes.append(outcome)
        return outcomes

    async def _review_conversation(self, manuscript_id: str) -> Conversation:
        existing = await self.repository.list_conversations(manuscript_id, type="REVIEW")
        if existing:
            return existing[0]
        logger.info(f"Creating review conversation for manuscript {manuscript_id}")
        return await self.repository.save_conversation(
            Conversation(id=new_id(), manuscript_id=manuscript_id, title="Review Discussion", type="REVIEW")
        )

    async def _persist_messages(
        self, result: BotResult, conversation_id: Optional[str], parent_id: Optional[str]
    ) -> List[str]:
        if not conversation_id:
            return []
        ids = []
        for message in result.messages:
            stored = await self.repository.add_message(
                Message(
                    id=new_id(),
                    conversation_id=conversation_id,
                    content=message.content,
                    author_id=result.bot_id or "system",
                    is_bot=True,
                    bot_id=result.bot_id,
                    parent_id=message.reply_to or parent_id,
                    metadata=dict(message.metadata),
                )
            )
            ids.append(stored.id)
        return ids
