# FilePath: "/colloquium/actions/__init__.py"
# Project: Colloquium Bot Framework
# Description: Exposes the action processor, its context and the workflow repository.
# Author: "Colloquium Contributors"

from .context import ActionContext, ActionServices
from .notifications import LoggingNotifier, Notifier
from .processor import ActionOutcome, ActionReport, BotActionProcessor
from .repository import InMemoryWorkflowRepository, WorkflowRepository

__all__ = [
    "ActionContext",
    "ActionServices",
    "ActionOutcome",
    "ActionReport",
    "BotActionProcessor",
    "InMemoryWorkflowRepository",
    "WorkflowRepository",
    "LoggingNotifier",
    "Notifier",
]
