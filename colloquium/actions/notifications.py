# FilePath: "/colloquium/actions/notifications.py"
# Project: Colloquium Bot Framework
# Description: Outbound notification hooks fired by action handlers (review invitations,
#              decision letters, editor assignments). Delivery is an external concern;
#              LoggingNotifier records what would have been sent.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from typing import List, Optional

from .repository import Manuscript, ReviewAssignment, User

logger = logging.getLogger(__name__)


class Notifier:
    """Notification contract. Failures raised here are logged by the caller, never fatal."""

    async def reviewer_invited(
        self, reviewer: User, manuscript: Manuscript, assignment: ReviewAssignment, message: Optional[str] = None
    ) -> None:
        raise NotImplementedError

    async def decision_made(
        self, authors: List[User], manuscript: Manuscript, decision: str, conversation_id: Optional[str] = None
    ) -> None:
        raise NotImplementedError

    async def action_editor_assigned(self, editor: User, manuscript: Manuscript, message: Optional[str] = None) -> None:
        raise NotImplementedError

    async def manuscript_published(self, authors: List[User], manuscript: Manuscript) -> None:
        raise NotImplementedError

    async def review_reminder(
        self,
        reviewer: User,
        manuscript: Manuscript,
        assignment: ReviewAssignment,
        sender: Optional[User] = None,
        message: Optional[str] = None,
    ) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    def __init__(self, frontend_url: str = "http://localhost:3000"):
        self.frontend_url = frontend_url.rstrip("/")

    async def reviewer_invited(self, reviewer, manuscript, assignment, message=None):
        link = f"{self.frontend_url}/review-invitations/{assignment.id}"
        logger.info(f"[notify] Review invitation for '{manuscript.title}' -> {reviewer.email} ({link})")

    async def decision_made(self, authors, manuscript, decision, conversation_id=None):
        for author in authors:
            logger.info(f"[notify] Decision '{decision}' for '{manuscript.title}' -> {author.email}")

    async def action_editor_assigned(self, editor, manuscript, message=None):
        logger.info(f"[notify] Action editor assignment for '{manuscript.title}' -> {editor.email}")

    async def manuscript_published(self, authors, manuscript):
        for author in authors:
            logger.info(f"[notify] '{manuscript.title}' published as {manuscript.doi} -> {author.email}")

    async def review_reminder(self, reviewer, manuscript, assignment, sender=None, message=None):
        link = f"{self.frontend_url}/manuscripts/{manuscript.id}/review"
        logger.info(f"[notify] Review reminder for '{manuscript.title}' -> {reviewer.email} ({link})")
