"""
FilePath: "/colloquium/actions/processor.py"
Project: Colloquium Bot Framework
Component: Bot Action Processor
Description: Applies the actions a bot returned, in order, one at a time.
             A failing action is recorded and the batch continues; ids produced by
             earlier actions are available to later ones through `$key` placeholders.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from ..errors import ActionError
from ..models import BotAction, BotActionType
from .context import ActionContext, ActionServices
from .conversation_actions import handle_create_conversation, handle_update_manuscript_status
from .editorial_actions import (
    handle_assign_action_editor,
    handle_make_editorial_decision,
    handle_update_workflow_phase,
)
from .payloads import PAYLOAD_MODELS
from .publication_actions import handle_execute_publication_workflow
from .review_actions import handle_respond_to_review, handle_submit_review
from .reviewer_actions import handle_assign_reviewer, handle_send_manual_reminder

logger = logging.getLogger(__name__)


@dataclass
class ActionOutcome:
    index: int
    type: str
    success: bool
    error: Optional[str] = None
    result: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "type": self.type, "success": self.success, "error": self.error, "result": self.result}


@dataclass
class ActionReport:
    outcomes: List[ActionOutcome] = field(default_factory=list)
    outputs: Dict[str, Any] = field(default_factory=dict)

    @property
    def applied(self) -> List[ActionOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> List[ActionOutcome]:
        return [o for o in self.outcomes if not o.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applied": len(self.applied),
            "failed": [o.to_dict() for o in self.failed],
            "outputs": self.outputs,
        }


def substitute_outputs(value: Any, outputs: Dict[str, Any]) -> Any:
    """Replaces "$key" strings with values produced earlier in the batch."""
    if isinstance(value, str) and value.startswith("$") and value[1:] in outputs:
        return outputs[value[1:]]
    if isinstance(value, dict):
        return {k: substitute_outputs(v, outputs) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_outputs(v, outputs) for v in value]
    return value


class BotActionProcessor:
    """Best effort across a batch: no action's failure prevents the next one from running."""

    def __init__(self, services: ActionServices, audit_logger=None):
        self.services = services
        self.audit_logger = audit_logger
        self.action_handlers: Dict[str, Callable] = {}
        self._register_default_handlers()

    def _register_default_handlers(self):
        self.action_handlers.update({
            BotActionType.ASSIGN_REVIEWER.value: handle_assign_reviewer,
            BotActionType.UPDATE_MANUSCRIPT_STATUS.value: handle_update_manuscript_status,
            BotActionType.CREATE_CONVERSATION.value: handle_create_conversation,
            BotActionType.RESPOND_TO_REVIEW.value: handle_respond_to_review,
            BotActionType.SUBMIT_REVIEW.value: handle_submit_review,
            BotActionType.MAKE_EDITORIAL_DECISION.value: handle_make_editorial_decision,
            BotActionType.ASSIGN_ACTION_EDITOR.value: handle_assign_action_editor,
            BotActionType.EXECUTE_PUBLICATION_WORKFLOW.value: handle_execute_publication_workflow,
            BotActionType.UPDATE_WORKFLOW_PHASE.value: handle_update_workflow_phase,
            BotActionType.SEND_MANUAL_REMINDER.value: handle_send_manual_reminder,
        })

    async def process_actions(self, actions: Iterable[Any], context: ActionContext) -> ActionReport:
        report = ActionReport(outputs=context.outputs)
        for index, raw in enumerate(actions):
            outcome = await self._process_action(index, raw, context)
            report.outcomes.append(outcome)
            if outcome.success:
                context.outputs.update(outcome.result)

        if report.outcomes:
            logger.info(
                f"Processed {len(report.outcomes)} action(s) for manuscript {context.manuscript_id}: "
                f"{len(report.applied)} applied, {len(report.failed)} failed"
            )
            await self._audit(report, context)
        return report

    async def _process_action(self, index: int, raw: Any, context: ActionContext) -> ActionOutcome:
        try:
            action = BotAction.from_value(raw)
        except TypeError as e:
            logger.error(f"Action #{index} is malformed: {e}")
            return ActionOutcome(index, "UNKNOWN", False, f"Malformed action: {e}")

        handler = self.action_handlers.get(action.type)
        if handler is None:
            logger.error(f"Action #{index}: unknown bot action type {action.type}")
            return ActionOutcome(index, action.type, False, f"Unknown action type: {action.type}")

        try:
            payload = PAYLOAD_MODELS[action.type].model_validate(substitute_outputs(action.data, context.outputs))
        except ValidationError as e:
            problems = "; ".join(f"{'.'.join(str(p) for p in err['loc']) or 'data'}: {err['msg']}" for err in e.errors())
            logger.error(f"Action #{index} {action.type} has malformed data: {problems}")
            return ActionOutcome(index, action.type, False, f"Malformed data: {problems}")

        try:
            result = await handler(payload, context, self.services)
        except ActionError as e:
            logger.error(f"Failed to process bot action {action.type} (#{index}): {e.message}")
            return ActionOutcome(index, action.type, False, e.message)
        except Exception as e:
            logger.error(f"Failed to process bot action {action.type} (#{index}): {e}", exc_info=True)
            return ActionOutcome(index, action.type, False, "Action could not be applied")

        return ActionOutcome(index, action.type, True, result=dict(result or {}))

    async def _audit(self, report: ActionReport, context: ActionContext) -> None:
        if not self.audit_logger:
            return
        try:
            await self.audit_logger.log_bot_event(
                "BOT_ACTIONS_PROCESSED",
                context.bot_id or "unknown",
                context.user_id,
                {
                    "manuscriptId": context.manuscript_id,
                    "applied": [o.type for o in report.applied],
                    "failed": [{"index": o.index, "type": o.type, "error": o.error} for o in report.failed],
                },
                success=not report.failed,
            )
        except Exception as e:
            logger.error(f"Audit write failed for actions of @{context.bot_id}: {e}")
