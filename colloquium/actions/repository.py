"""
FilePath: "/colloquium/actions/repository.py"
Project: Colloquium Bot Framework
Component: Workflow Repository
Description: Manuscript, review and conversation state mutated by bot actions.
             WorkflowRepository is the persistence contract; InMemoryWorkflowRepository
             is the reference implementation used by the runtime and the tests.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

import asyncio
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models import Participant, utcnow

MANUSCRIPT_STATUSES = (
    "SUBMITTED",
    "UNDER_REVIEW",
    "REVISION_REQUESTED",
    "REVISED",
    "ACCEPTED",
    "REJECTED",
    "PUBLISHED",
    "RETRACTED",
)

WORKFLOW_PHASES = ("REVIEW", "DELIBERATION", "RELEASED", "AUTHOR_RESPONDING")


def new_id() -> str:
    return str(uuid.uuid4())


# ==========================================
# Records
# ==========================================
@dataclass
class User:
    id: str
    email: str
    username: str
    name: Optional[str] = None
    role: str = "USER"

    @property
    def display_name(self) -> str:
        return self.name or self.username or self.email


@dataclass
class Manuscript:
    id: str
    title: str
    status: str = "SUBMITTED"
    author_ids: List[str] = field(default_factory=list)
    abstract: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    workflow_phase: str = "REVIEW"
    workflow_round: int = 1
    doi: Optional[str] = None
    submitted_at: datetime = field(default_factory=utcnow)
    accepted_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    released_at: Optional[datetime] = None
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ManuscriptFile:
    id: str
    manuscript_id: str
    filename: str
    content: str
    file_type: str = "SOURCE"
    mimetype: str = "application/octet-stream"
    uploaded_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def size(self) -> int:
        return len(self.content.encode("utf-8"))


@dataclass
class Conversation:
    id: str
    manuscript_id: str
    title: str
    type: str = "EDITORIAL"
    privacy: str = "PRIVATE"
    # user id -> MODERATOR | PARTICIPANT
    participants: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Message:
    id: str
    conversation_id: str
    content: str
    author_id: str
    is_bot: bool = False
    bot_id: Optional[str] = None
    parent_id: Optional[str] = None
    privacy: str = "PUBLIC"
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ReviewAssignment:
    id: str
    manuscript_id: str
    reviewer_id: str
    status: str = "PENDING"
    due_date: Optional[datetime] = None
    assigned_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    review_content: Optional[str] = None
    recommendation: Optional[str] = None
    score: Optional[float] = None
    confidential_comments: Optional[str] = None


@dataclass
class EditorialDecision:
    id: str
    manuscript_id: str
    decision: str
    status: str
    editor_id: str
    previous_status: Optional[str] = None
    revision_type: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ActionEditor:
    manuscript_id: str
    editor_id: str
    assigned_at: datetime = field(default_factory=utcnow)


# ==========================================
# Contract
# ==========================================
class WorkflowRepository:
    """Persistence collaborator of the action processor. All methods are coroutines."""

    # --- Manuscripts ---
    async def get_manuscript(self, manuscript_id: str) -> Optional[Manuscript]:
        raise NotImplementedError

    async def save_manuscript(self, manuscript: Manuscript) -> Manuscript:
        raise NotImplementedError

    async def update_manuscript(self, manuscript_id: str, **changes) -> Manuscript:
        raise NotImplementedError

    # --- Files ---
    async def list_files(self, manuscript_id: str) -> List[ManuscriptFile]:
        raise NotImplementedError

    async def get_file(self, file_id: str) -> Optional[ManuscriptFile]:
        raise NotImplementedError

    async def save_file(self, file: ManuscriptFile) -> ManuscriptFile:
        raise NotImplementedError

    # --- Users ---
    async def get_user(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    async def find_user(self, handle: str) -> Optional[User]:
        """Lookup by id, username or email."""
        raise NotImplementedError

    async def search_users(self, query: str) -> List[User]:
        raise NotImplementedError

    async def save_user(self, user: User) -> User:
        raise NotImplementedError

    # --- Conversations & messages ---
    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        raise NotImplementedError

    async def list_conversations(self, manuscript_id: str, type: Optional[str] = None) -> List[Conversation]:
        raise NotImplementedError

    async def save_conversation(self, conversation: Conversation) -> Conversation:
        raise NotImplementedError

    async def list_participants(self, conversation_id: str) -> List[Participant]:
        raise NotImplementedError

    async def add_message(self, message: Message) -> Message:
        raise NotImplementedError

    async def list_messages(self, conversation_id: str) -> List[Message]:
        raise NotImplementedError

    # --- Reviews ---
    async def get_assignment(self, assignment_id: str) -> Optional[ReviewAssignment]:
        raise NotImplementedError

    async def find_assignment(self, manuscript_id: str, reviewer_id: str) -> Optional[ReviewAssignment]:
        raise NotImplementedError

    async def list_assignments(self, manuscript_id: str) -> List[ReviewAssignment]:
        raise NotImplementedError

    async def save_assignment(self, assignment: ReviewAssignment) -> ReviewAssignment:
        raise NotImplementedError

    # --- Editorial ---
    async def save_decision(self, decision: EditorialDecision) -> EditorialDecision:
        raise NotImplementedError

    async def list_decisions(self, manuscript_id: str) -> List[EditorialDecision]:
        raise NotImplementedError

    async def get_action_editor(self, manuscript_id: str) -> Optional[ActionEditor]:
        raise NotImplementedError

    async def save_action_editor(self, editor: ActionEditor) -> ActionEditor:
        raise NotImplementedError


class InMemoryWorkflowRepository(WorkflowRepository):
    """
    Dict-backed repository. Writes take a single asyncio.Lock; records are replaced
    whole on update.
    """

    def __init__(self):
        self.manuscripts: Dict[str, Manuscript] = {}
        self.files: Dict[str, ManuscriptFile] = {}
        self.users: Dict[str, User] = {}
        self.conversations: Dict[str, Conversation] = {}
        self.messages: Dict[str, Message] = {}
        self.assignments: Dict[str, ReviewAssignment] = {}
        self.decisions: Dict[str, EditorialDecision] = {}
        self.action_editors: Dict[str, ActionEditor] = {}
        self._lock = asyncio.Lock()

    # --- Manuscripts ---
    async def get_manuscript(self, manuscript_id: str) -> Optional[Manuscript]:
        return self.manuscripts.get(manuscript_id)

    async def save_manuscript(self, manuscript: Manuscript) -> Manuscript:
        async with self._lock:
            self.manuscripts[manuscript.id] = manuscript
        return manuscript

    async def update_manuscript(self, manuscript_id: str, **changes) -> Manuscript:
        async with self._lock:
            current = self.manuscripts.get(manuscript_id)
            if current is None:
                raise KeyError(manuscript_id)
            updated = replace(current, updated_at=utcnow(), **changes)
            self.manuscripts[manuscript_id] = updated
        return updated

    # --- Files ---
    async def list_files(self, manuscript_id: str) -> List[ManuscriptFile]:
        return [f for f in self.files.values() if f.manuscript_id == manuscript_id]

    async def get_file(self, file_id: str) -> Optional[ManuscriptFile]:
        return self.files.get(file_id)

    async def save_file(self, file: ManuscriptFile) -> ManuscriptFile:
        async with self._lock:
            self.files[file.id] = file
        return file

    # --- Users ---
    async def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    async def find_user(self, handle: str) -> Optional[User]:
        if handle in self.users:
            return self.users[handle]
        lowered = handle.lower()
        for user in self.users.values():
            if user.username.lower() == lowered or user.email.lower() == lowered:
                return user
        return None

    async def search_users(self, query: str) -> List[User]:
        lowered = query.lower()
        return [
            u
            for u in self.users.values()
            if lowered in u.username.lower() or lowered in u.email.lower() or lowered in (u.name or "").lower()
        ]

    async def save_user(self, user: User) -> User:
        async with self._lock:
            self.users[user.id] = user
        return user

    # --- Conversations & messages ---
    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self.conversations.get(conversation_id)

    async def list_conversations(self, manuscript_id: str, type: Optional[str] = None) -> List[Conversation]:
        return [
            c
            for c in self.conversations.values()
            if c.manuscript_id == manuscript_id and (type is None or c.type == type)
        ]

    async def save_conversation(self, conversation: Conversation) -> Conversation:
        async with self._lock:
            self.conversations[conversation.id] = conversation
        return conversation

    async def list_participants(self, conversation_id: str) -> List[Participant]:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            return []
        participants = []
        for user_id, role in conversation.participants.items():
            user = self.users.get(user_id)
            if user:
                participants.append(Participant(user_id=user.id, username=user.username, name=user.name, role=role))
        return participants

    async def add_message(self, message: Message) -> Message:
        async with self._lock:
            self.messages[message.id] = message
        return message

    async def list_messages(self, conversation_id: str) -> List[Message]:
        return sorted(
            (m for m in self.messages.values() if m.conversation_id == conversation_id),
            key=lambda m: m.created_at,
        )

    # --- Reviews ---
    async def get_assignment(self, assignment_id: str) -> Optional[ReviewAssignment]:
        return self.assignments.get(assignment_id)

    async def find_assignment(self, manuscript_id: str, reviewer_id: str) -> Optional[ReviewAssignment]:
        for assignment in self.assignments.values():
            if assignment.manuscript_id == manuscript_id and assignment.reviewer_id == reviewer_id:
                return assignment
        return None

    async def list_assignments(self, manuscript_id: str) -> List[ReviewAssignment]:
        return sorted(
            (a for a in self.assignments.values() if a.manuscript_id == manuscript_id),
            key=lambda a: a.assigned_at,
        )

    async def save_assignment(self, assignment: ReviewAssignment) -> ReviewAssignment:
        async with self._lock:
            self.assignments[assignment.id] = assignment
        return assignment

    # --- Editorial ---
    async def save_decision(self, decision: EditorialDecision) -> EditorialDecision:
        async with self._lock:
            self.decisions[decision.id] = decision
        return decision

    async def list_decisions(self, manuscript_id: str) -> List[EditorialDecision]:
        return sorted(
            (d for d in self.decisions.values() if d.manuscript_id == manuscript_id),
            key=lambda d: d.created_at,
        )

    async def get_action_editor(self, manuscript_id: str) -> Optional[ActionEditor]:
        return self.action_editors.get(manuscript_id)

    async def save_action_editor(self, editor: ActionEditor) -> ActionEditor:
        async with self._lock:
            self.action_editors[editor.manuscript_id] = editor
        return editor
