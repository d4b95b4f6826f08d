# FilePath: "/colloquium/actions/context.py"
# Project: Colloquium Bot Framework
# Description: Per-batch action context and the shared services action handlers use.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..errors import ActionError
from .notifications import LoggingNotifier, Notifier
from .repository import Manuscript, WorkflowRepository

# (current_status, requested_status) -> error message, or None when allowed
TransitionGuard = Callable[[str, str], Optional[str]]


@dataclass
class ActionContext:
    """Acting identity for one action batch. `outputs` collects ids produced so far."""

    manuscript_id: str
    user_id: str
    conversation_id: Optional[str] = None
    bot_id: Optional[str] = None
    outputs: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionServices:
    repository: WorkflowRepository
    notifier: Notifier = field(default_factory=LoggingNotifier)
    review_period_days: int = 30
    doi_prefix: str = "10.5555"
    transition_guard: Optional[TransitionGuard] = None

    async def require_manuscript(self, manuscript_id: str) -> Manuscript:
        manuscript = await self.repository.get_manuscript(manuscript_id)
        if manuscript is None:
            raise ActionError(f"Manuscript {manuscript_id} not found", "NOT_FOUND", {"manuscript_id": manuscript_id})
        return manuscript
