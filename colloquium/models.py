"""
FilePath: "/colloquium/models.py"
Project: Colloquium Bot Framework
Description: Core data structures: bot definitions, parsed commands, execution context,
             normalized results and installation records.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ==========================================
# Enumerations
# ==========================================
class BotPermission(str, Enum):
    """Capabilities a bot may declare and a service token may carry."""

    # Bot-level capabilities
    READ_MANUSCRIPT = "read_manuscript"
    READ_FILES = "read_files"
    READ_CONVERSATIONS = "read_conversations"
    WRITE_MESSAGES = "write_messages"
    UPDATE_MANUSCRIPT = "update_manuscript"
    ASSIGN_REVIEWERS = "assign_reviewers"
    MAKE_EDITORIAL_DECISION = "make_editorial_decision"

    # Bot API permissions
    READ_MANUSCRIPT_FILES = "read_manuscript_files"
    UPLOAD_FILES = "upload_files"
    UPDATE_METADATA = "update_metadata"
    MANAGE_REVIEWERS = "manage_reviewers"
    MANAGE_WORKFLOW = "manage_workflow"
    BOT_STORAGE = "bot_storage"
    INVOKE_BOTS = "invoke_bots"

    @classmethod
    def values(cls) -> FrozenSet[str]:
        return frozenset(p.value for p in cls)


class BotTrigger(str, Enum):
    MENTION = "mention"
    KEYWORD = "keyword"
    MANUSCRIPT_SUBMITTED = "manuscript_submitted"
    REVIEW_COMPLETE = "review_complete"
    SCHEDULED = "scheduled"
    REVIEWER_ASSIGNED = "reviewer_assigned"
    EVENT = "event"


class BotEventName(str, Enum):
    MANUSCRIPT_SUBMITTED = "manuscript.submitted"
    MANUSCRIPT_STATUS_CHANGED = "manuscript.statusChanged"
    FILE_UPLOADED = "file.uploaded"
    REVIEWER_ASSIGNED = "reviewer.assigned"
    REVIEWER_STATUS_CHANGED = "reviewer.statusChanged"
    WORKFLOW_PHASE_CHANGED = "workflow.phaseChanged"
    DECISION_RELEASED = "decision.released"


class BotActionType(str, Enum):
    ASSIGN_REVIEWER = "ASSIGN_REVIEWER"
    UPDATE_MANUSCRIPT_STATUS = "UPDATE_MANUSCRIPT_STATUS"
    CREATE_CONVERSATION = "CREATE_CONVERSATION"
    RESPOND_TO_REVIEW = "RESPOND_TO_REVIEW"
    SUBMIT_REVIEW = "SUBMIT_REVIEW"
    MAKE_EDITORIAL_DECISION = "MAKE_EDITORIAL_DECISION"
    ASSIGN_ACTION_EDITOR = "ASSIGN_ACTION_EDITOR"
    EXECUTE_PUBLICATION_WORKFLOW = "EXECUTE_PUBLICATION_WORKFLOW"
    UPDATE_WORKFLOW_PHASE = "UPDATE_WORKFLOW_PHASE"
    SEND_MANUAL_REMINDER = "SEND_MANUAL_REMINDER"


class ExecutionStatus(str, Enum):
    """Outcome tag stamped onto every normalized BotResult."""

    SUCCESS = "SUCCESS"
    SOFT_FAILURE = "SOFT_FAILURE"
    UNRECOGNIZED = "UNRECOGNIZED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    DENIED = "DENIED"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"


class ParameterType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    ENUM = "enum"


class MentionType(str, Enum):
    USER = "user"
    BOT = "bot"


# ==========================================
# Bot Definitions (immutable once loaded)
# ==========================================
CommandHandler = Callable[[Dict[str, Any], "BotExecutionContext"], Awaitable[Any]]
EventHandler = Callable[["BotExecutionContext", Dict[str, Any]], Awaitable[Any]]
ParameterValidator = Callable[[Any], Optional[str]]


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    type: ParameterType = ParameterType.STRING
    description: str = ""
    required: bool = False
    default_value: Any = None
    enum_values: Tuple[str, ...] = ()
    # Returns an error message, or None when the value is acceptable
    validator: Optional[ParameterValidator] = None
    examples: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "type", ParameterType(self.type))
        object.__setattr__(self, "enum_values", tuple(self.enum_values))
        object.__setattr__(self, "examples", tuple(self.examples))

    @property
    def has_default(self) -> bool:
        return self.default_value is not None


@dataclass(frozen=True)
class CommandSpec:
    name: str
    description: str
    execute: CommandHandler
    usage: str = ""
    parameters: Tuple[ParameterSpec, ...] = ()
    examples: Tuple[str, ...] = ()
    permissions: FrozenSet[str] = frozenset()
    help: str = ""

    def __post_init__(self):
        object.__setattr__(self, "parameters", tuple(self.parameters))
        object.__setattr__(self, "examples", tuple(self.examples))
        object.__setattr__(self, "permissions", frozenset(_permission_value(p) for p in self.permissions))

    def get_parameter(self, name: str) -> Optional[ParameterSpec]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None


@dataclass(frozen=True)
class HelpSection:
    title: str
    content: str
    position: str = "after"  # "before" | "after" the command list


@dataclass(frozen=True)
class BotDefinition:
    """
    Static description of a bot: identity, commands, permissions and event handlers.
    Replaced wholesale on reload, never mutated in place.
    """

    id: str
    name: str
    description: str
    version: str
    commands: Tuple[CommandSpec, ...] = ()
    permissions: FrozenSet[str] = frozenset()
    supports_file_uploads: bool = False
    triggers: Tuple[str, ...] = ()
    events: Mapping[str, EventHandler] = field(default_factory=dict)
    keywords: Tuple[str, ...] = ()
    help_overview: str = ""
    help_sections: Tuple[HelpSection, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "commands", tuple(self.commands))
        object.__setattr__(self, "permissions", frozenset(_permission_value(p) for p in self.permissions))
        object.__setattr__(self, "triggers", tuple(_enum_value(t) for t in self.triggers))
        object.__setattr__(
            self, "events", MappingProxyType({_enum_value(k): v for k, v in dict(self.events).items()})
        )
        object.__setattr__(self, "keywords", tuple(self.keywords))
        object.__setattr__(self, "help_sections", tuple(self.help_sections))

    def get_command(self, name: str) -> Optional[CommandSpec]:
        lowered = name.lower()
        for command in self.commands:
            if command.name.lower() == lowered:
                return command
        return None

    @property
    def command_names(self) -> List[str]:
        return [c.name for c in self.commands]

    def handles_event(self, event_name: str) -> bool:
        return _enum_value(event_name) in self.events


def _enum_value(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _permission_value(value: Any) -> str:
    return _enum_value(value)


# ==========================================
# Parsing
# ==========================================
@dataclass
class ParameterIssue:
    parameter: str
    message: str

    def __str__(self) -> str:
        return f"{self.parameter}: {self.message}"


@dataclass
class ParsedCommand:
    bot_id: str
    command: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""
    is_unrecognized: bool = False
    unrecognized_target: Optional[str] = None  # "bot" | "command"
    validation_errors: List[ParameterIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.is_unrecognized and not self.validation_errors


# ==========================================
# Mentions
# ==========================================
@dataclass
class Participant:
    user_id: str
    username: str
    name: Optional[str] = None
    role: Optional[str] = None


@dataclass
class ResolvedMention:
    original_text: str
    type: MentionType
    start: int
    end: int
    user_id: Optional[str] = None
    bot_id: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.bot_id if self.type == MentionType.BOT else self.user_id)


# ==========================================
# Execution Context
# ==========================================
@dataclass
class TriggeredBy:
    user_id: str
    trigger: str = BotTrigger.MENTION.value
    message_id: Optional[str] = None
    user_role: Optional[str] = None


@dataclass
class JournalContext:
    id: str = "default"
    settings: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InvocationMeta:
    """Caller-supplied facts about one invocation."""

    manuscript_id: str
    user_id: str
    conversation_id: Optional[str] = None
    message_id: Optional[str] = None
    user_role: Optional[str] = None
    trigger: str = BotTrigger.MENTION.value
    journal: Optional[JournalContext] = None


@dataclass
class BotExecutionContext:
    """Per-invocation context handed to command and event handlers. Never persisted."""

    bot_id: str
    manuscript_id: str
    triggered_by: TriggeredBy
    conversation_id: Optional[str] = None
    journal: JournalContext = field(default_factory=JournalContext)
    config: Dict[str, Any] = field(default_factory=dict)
    service_token: str = ""
    api_url: str = ""


# ==========================================
# Results
# ==========================================
@dataclass
class BotAttachment:
    type: str  # "file" | "report" | "analysis"
    filename: str
    data: str
    mimetype: str = "application/octet-stream"

    @classmethod
    def from_value(cls, value: Any) -> "BotAttachment":
        if isinstance(value, BotAttachment):
            return value
        if isinstance(value, dict):
            return cls(
                type=value.get("type", "file"),
                filename=value["filename"],
                data=value.get("data", ""),
                mimetype=value.get("mimetype", "application/octet-stream"),
            )
        raise TypeError(f"Unsupported attachment value: {type(value).__name__}")


@dataclass
class BotMessage:
    content: str
    reply_to: Optional[str] = None
    attachments: List[BotAttachment] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_value(cls, value: Any) -> "BotMessage":
        if isinstance(value, BotMessage):
            return value
        if isinstance(value, str):
            return cls(content=value)
        if isinstance(value, dict):
            return cls(
                content=str(value.get("content", "")),
                reply_to=value.get("reply_to", value.get("replyTo")),
                attachments=[BotAttachment.from_value(a) for a in value.get("attachments") or []],
                metadata=dict(value.get("metadata") or {}),
            )
        raise TypeError(f"Unsupported message value: {type(value).__name__}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "replyTo": self.reply_to,
            "attachments": [a.__dict__.copy() for a in self.attachments],
            "metadata": self.metadata,
        }


@dataclass
class BotAction:
    type: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.type = _enum_value(self.type)

    @classmethod
    def from_value(cls, value: Any) -> "BotAction":
        if isinstance(value, BotAction):
            return value
        if isinstance(value, dict) and "type" in value:
            return cls(type=value["type"], data=dict(value.get("data") or {}))
        raise TypeError(f"Unsupported action value: {value!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "data": self.data}


@dataclass
class BotResult:
    """Uniform response envelope for every invocation outcome."""

    messages: List[BotMessage] = field(default_factory=list)
    actions: List[BotAction] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    bot_id: Optional[str] = None
    command: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.SUCCESS

    @property
    def is_soft_failure(self) -> bool:
        return bool(self.errors) and not self.messages and not self.actions

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS

    @classmethod
    def from_handler_output(cls, value: Any) -> "BotResult":
        """Accepts a BotResult, a dict shaped like one, or None."""
        if value is None:
            return cls()
        if isinstance(value, BotResult):
            return value
        if isinstance(value, dict):
            return cls(
                messages=[BotMessage.from_value(m) for m in value.get("messages") or []],
                actions=[BotAction.from_value(a) for a in value.get("actions") or []],
                errors=[str(e) for e in value.get("errors") or []],
            )
        raise TypeError(f"Handler returned unsupported result type: {type(value).__name__}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "botId": self.bot_id,
            "command": self.command,
            "status": self.status.value,
            "messages": [m.to_dict() for m in self.messages],
            "actions": [a.to_dict() for a in self.actions],
            "errors": list(self.errors),
        }


# ==========================================
# Installations
# ==========================================
class BotInstallation(BaseModel):
    """
    Per-deployment enablement and configuration record for a bot.
    Updates produce a new record (model_copy) instead of in-place mutation.
    """

    bot_id: str
    is_enabled: bool = True
    is_default: bool = False
    is_required: bool = False
    config: Dict[str, Any] = Field(default_factory=dict)
    yaml_config: Optional[str] = None
    # None grants every permission the bot declares
    permissions: Optional[List[str]] = None
    installed_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    uninstalled_at: Optional[datetime] = None

    @property
    def is_installed(self) -> bool:
        return self.uninstalled_at is None
