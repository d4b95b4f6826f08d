# FilePath: "/colloquium/actions/payloads.py"
# Project: Colloquium Bot Framework
# Description: Typed data payloads for each bot action. Bots emit camelCase keys;
#              a ValidationError here is reported as malformed action data.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

from datetime import datetime
from typing import Dict, List, Literal, Optional, Type

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..models import BotActionType
from .repository import MANUSCRIPT_STATUSES, WORKFLOW_PHASES

DECISION_STATUS = {
    "accept": "ACCEPTED",
    "accepted": "ACCEPTED",
    "reject": "REJECTED",
    "rejected": "REJECTED",
    "revise": "REVISION_REQUESTED",
    "revision": "REVISION_REQUESTED",
    "minor_revision": "REVISION_REQUESTED",
    "major_revision": "REVISION_REQUESTED",
}


class ActionPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AssignReviewerData(ActionPayload):
    reviewer_id: Optional[str] = None
    # ids or email addresses
    reviewers: List[str] = Field(default_factory=list)
    due_date: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("dueDate", "deadline", "due_date"))
    custom_message: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("customMessage", "message", "custom_message")
    )

    @field_validator("reviewers", mode="before")
    @classmethod
    def split_reviewers(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @model_validator(mode="after")
    def require_reviewer(self):
        if not self.reviewer_id and not self.reviewers:
            raise ValueError("reviewerId or reviewers is required")
        return self

    def targets(self) -> List[str]:
        targets = [self.reviewer_id] if self.reviewer_id else []
        return targets + [r for r in self.reviewers if r not in targets]


class UpdateManuscriptStatusData(ActionPayload):
    status: str
    reason: Optional[str] = None

    @field_validator("status")
    @classmethod
    def known_status(cls, value: str) -> str:
        if value not in MANUSCRIPT_STATUSES:
            raise ValueError(f"Invalid manuscript status: {value}")
        return value


class CreateConversationData(ActionPayload):
    title: str = Field(min_length=1)
    type: str = "EDITORIAL"
    privacy: str = "PRIVATE"
    participant_ids: List[str] = Field(default_factory=list)


class RespondToReviewData(ActionPayload):
    assignment_id: str
    response: Literal["ACCEPT", "DECLINE"]
    message: Optional[str] = None
    conversation_id: Optional[str] = None

    @field_validator("response", mode="before")
    @classmethod
    def upper(cls, value):
        return value.upper() if isinstance(value, str) else value


class SubmitReviewData(ActionPayload):
    assignment_id: str
    review_content: str = Field(min_length=1)
    recommendation: str
    confidential_comments: Optional[str] = None
    score: Optional[float] = Field(default=None, ge=0, le=10)


class MakeEditorialDecisionData(ActionPayload):
    decision: str
    status: Optional[str] = None
    revision_type: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def derive_status(self):
        if self.status is None:
            self.status = DECISION_STATUS.get(self.decision.lower())
        if self.status is None:
            raise ValueError(f"Cannot derive a manuscript status from decision '{self.decision}'")
        if self.status not in MANUSCRIPT_STATUSES:
            raise ValueError(f"Invalid manuscript status: {self.status}")
        return self


class AssignActionEditorData(ActionPayload):
    editor: str = Field(min_length=1)
    custom_message: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("customMessage", "message", "custom_message")
    )
    assigned_by: Optional[str] = None


class ExecutePublicationWorkflowData(ActionPayload):
    manuscript_id: Optional[str] = None
    reason: Optional[str] = None
    triggered_by: Optional[str] = None


class SendManualReminderData(ActionPayload):
    reviewer: str = Field(min_length=1)
    custom_message: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("customMessage", "message", "custom_message")
    )
    triggered_by: Optional[str] = None


class UpdateWorkflowPhaseData(ActionPayload):
    phase: str
    decision: Optional[str] = None
    notes: Optional[str] = None
    require_all_reviews_complete: bool = False

    @field_validator("phase")
    @classmethod
    def known_phase(cls, value: str) -> str:
        if value not in WORKFLOW_PHASES:
            raise ValueError(f"Invalid workflow phase: {value}")
        return value


PAYLOAD_MODELS: Dict[str, Type[ActionPayload]] = {
    BotActionType.ASSIGN_REVIEWER.value: AssignReviewerData,
    BotActionType.UPDATE_MANUSCRIPT_STATUS.value: UpdateManuscriptStatusData,
    BotActionType.CREATE_CONVERSATION.value: CreateConversationData,
    BotActionType.RESPOND_TO_REVIEW.value: RespondToReviewData,
    BotActionType.SUBMIT_REVIEW.value: SubmitReviewData,
    BotActionType.MAKE_EDITORIAL_DECISION.value: MakeEditorialDecisionData,
    BotActionType.ASSIGN_ACTION_EDITOR.value: AssignActionEditorData,
    BotActionType.EXECUTE_PUBLICATION_WORKFLOW.value: ExecutePublicationWorkflowData,
    BotActionType.UPDATE_WORKFLOW_PHASE.value: UpdateWorkflowPhaseData,
    BotActionType.SEND_MANUAL_REMINDER.value: SendManualReminderData,
}
