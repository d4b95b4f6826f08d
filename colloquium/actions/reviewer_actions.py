# FilePath: "/colloquium/actions/reviewer_actions.py"
# Project: Colloquium Bot Framework
# Description: ASSIGN_REVIEWER and SEND_MANUAL_REMINDER handlers. Unknown email addresses become new users;
#              reviewers already assigned to the manuscript are skipped. Reminders only
#              reach reviewers with an active assignment and a due date.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
import math
import re
from datetime import timedelta, timezone
from typing import Any, Dict, Optional

from ..errors import ActionError
from ..models import utcnow
from .context import ActionContext, ActionServices
from .conversation_actions import find_conversation, post_bot_message
from .payloads import AssignReviewerData, SendManualReminderData
from .repository import ReviewAssignment, User, new_id

logger = logging.getLogger(__name__)

_USERNAME_CLEAN = re.compile(r"[^a-z0-9-]+")


async def _unique_username(services: ActionServices, email: str) -> str:
    base = _USERNAME_CLEAN.sub("-", email.split("@")[0].lower()).strip("-") or "reviewer"
    candidate, suffix = base, 1
    while await services.repository.find_user(candidate):
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


async def _resolve_reviewer(services: ActionServices, handle: str) -> User:
    handle = handle.strip().lstrip("@")
    user = await services.repository.find_user(handle)
    if user:
        return user
    if "@" not in handle:
        raise ActionError(f"Reviewer {handle} not found", "NOT_FOUND", {"reviewer": handle})
    user = User(id=new_id(), email=handle.lower(), username=await _unique_username(services, handle))
    logger.info(f"Created user {user.username} for reviewer invitation {user.email}")
    return await services.repository.save_user(user)


async def handle_assign_reviewer(
    data: AssignReviewerData, context: ActionContext, services: ActionServices
) -> Dict[str, Any]:
    manuscript = await services.require_manuscript(context.manuscript_id)
    due_date = data.due_date or utcnow() + timedelta(days=services.review_period_days)

    assigned, already_assigned, failed = [], [], {}
    for handle in data.targets():
        try:
            reviewer = await _resolve_reviewer(services, handle)
        except ActionError as e:
            logger.error(f"Failed to assign reviewer {handle}: {e}")
            failed[handle] = e.message
            continue

        existing = await services.repository.find_assignment(manuscript.id, reviewer.id)
        if existing:
            already_assigned.append(existing.id)
            continue

        assignment = await services.repository.save_assignment(
            ReviewAssignment(
                id=new_id(),
                manuscript_id=manuscript.id,
                reviewer_id=reviewer.id,
                status="PENDING",
                due_date=due_date,
            )
        )
        assigned.append(assignment.id)

        try:
            await services.notifier.reviewer_invited(reviewer, manuscript, assignment, data.custom_message)
        except Exception as e:
            logger.error(f"Failed to send review invitation to {reviewer.email}: {e}", exc_info=True)

    logger.info(
        f"Bot reviewer assignment for {manuscript.id}: {len(assigned)} assigned, {len(already_assigned)} already assigned, {len(failed)} failed"
    )
    if failed and not assigned and not already_assigned:
        raise ActionError("No reviewers could be assigned", "NOT_FOUND", {"failed": failed})

    outputs: Dict[str, Any] = {"assignmentIds": assigned, "alreadyAssigned": already_assigned, "failed": failed}
    if assigned:
        outputs["assignmentId"] = assigned[0]
    return outputs


# ===== Manual reminders =====

ACTIVE_REVIEW_STATUSES = ("ACCEPTED", "IN_PROGRESS")


def urgency_text(days_left: int) -> str:
    if days_left < 0:
        overdue = abs(days_left)
        return "1 day overdue" if overdue == 1 else f"{overdue} days overdue"
    if days_left == 0:
        return "Due today"
    if days_left == 1:
        return "Due tomorrow"
    return f"Due in {days_left} days"


async def _find_reviewer_user(services: ActionServices, handle: str) -> Optional[User]:
    user = await services.repository.find_user(handle)
    if user:
        return user
    # Display names are accepted too, e.g. @"Jane Smith"
    for candidate in await services.repository.search_users(handle):
        if (candidate.name or "").lower() == handle.lower():
            return candidate
    return None


async def _reminder_failed(
    services: ActionServices, context: ActionContext, reviewer: str, reason: str, code: str, content: str
) -> None:
    logger.error(f"Manual reminder for {reviewer} on {context.manuscript_id} failed: {reason}")
    await post_bot_message(
        services,
        context.conversation_id,
        f"❌ **Reminder Failed**\n\n{content}",
        context,
        metadata={"type": "reminder_error", "reviewer": reviewer, "error": reason},
    )
    raise ActionError(reason, code, {"reviewer": reviewer})


async def handle_send_manual_reminder(
    data: SendManualReminderData, context: ActionContext, services: ActionServices
) -> Dict[str, Any]:
    manuscript = await services.require_manuscript(context.manuscript_id)
    handle = data.reviewer.strip().lstrip("@")
    mention = f"@{handle}"

    reviewer = await _find_reviewer_user(services, handle)
    if reviewer is None:
        await _reminder_failed(
            services, context, mention, "User not found", "NOT_FOUND",
            f"Could not find reviewer {mention}. Please check the username and try again.",
        )

    assignment = await services.repository.find_assignment(manuscript.id, reviewer.id)
    if assignment is None or assignment.status not in ACTIVE_REVIEW_STATUSES:
        await _reminder_failed(
            services, context, mention, "No active assignment", "INVALID_STATE",
            f"No active review assignment found for {mention} on this manuscript. The reviewer may have "
            "declined, completed their review, or not yet accepted the invitation.",
        )

    if assignment.due_date is None:
        await _reminder_failed(
            services, context, mention, "No due date", "INVALID_STATE",
            f"No due date set for {mention}'s review assignment. Please set a due date first.",
        )

    sender = await services.repository.get_user(data.triggered_by or context.user_id)
    try:
        await services.notifier.review_reminder(reviewer, manuscript, assignment, sender, data.custom_message)
    except Exception as e:
        # The reminder is the notification, so a delivery failure fails the action
        logger.error(f"Failed to send review reminder to {reviewer.email}: {e}", exc_info=True)
        await _reminder_failed(
            services, context, mention, "Notification failed", "NOTIFICATION_FAILED",
            f"Could not send reminder to {mention}. The details have been logged.",
        )

    due = assignment.due_date if assignment.due_date.tzinfo else assignment.due_date.replace(tzinfo=timezone.utc)
    days_left = math.ceil((due - utcnow()).total_seconds() / 86400)
    if days_left <= 0:
        emoji = "⚠️"
    elif days_left <= 1:
        emoji = "⏰"
    elif days_left <= 3:
        emoji = "📅"
    else:
        emoji = "📧"

    content = (
        f"{emoji} **Review Reminder (Manual)**\n\n"
        f"**Reviewer:** @{reviewer.username}\n"
        f"**Due Date:** {due.strftime('%b %d, %Y')}\n"
        f"**Status:** {urgency_text(days_left)}\n"
    )
    if data.custom_message:
        content += f"\n**Message:** {data.custom_message}\n"

    editorial = await find_conversation(services, manuscript.id, "EDITORIAL")
    message = await post_bot_message(
        services,
        editorial.id if editorial else context.conversation_id,
        content,
        context,
        metadata={
            "type": "deadline_reminder",
            "assignmentId": assignment.id,
            "daysBefore": days_left,
            "manual": True,
            "customMessage": data.custom_message,
        },
    )

    logger.info(f"Manual reminder sent to {reviewer.username} for manuscript {manuscript.id}")
    outputs: Dict[str, Any] = {"reminderAssignmentId": assignment.id, "daysBefore": days_left}
    if message:
        outputs["reminderMessageId"] = message.id
    return outputs
