# FilePath: "/colloquium/actions/review_actions.py"
# Project: Colloquium Bot Framework
# Description: RESPOND_TO_REVIEW and SUBMIT_REVIEW handlers. Both act only on the
#              acting user's own review assignment.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from dataclasses import replace
from typing import Any, Dict

from ..errors import ActionError
from ..models import utcnow
from .context import ActionContext, ActionServices
from .conversation_actions import find_conversation, post_bot_message
from .payloads import RespondToReviewData, SubmitReviewData
from .repository import ReviewAssignment

logger = logging.getLogger(__name__)


async def _own_assignment(services: ActionServices, assignment_id: str, context: ActionContext, verb: str) -> ReviewAssignment:
    assignment = await services.repository.get_assignment(assignment_id)
    if assignment is None:
        raise ActionError(f"Review assignment {assignment_id} not found", "NOT_FOUND", {"assignment_id": assignment_id})
    if assignment.reviewer_id != context.user_id:
        raise ActionError(f"You can only {verb} your own review assignments", "FORBIDDEN")
    return assignment


async def handle_respond_to_review(
    data: RespondToReviewData, context: ActionContext, services: ActionServices
) -> Dict[str, Any]:
    assignment = await _own_assignment(services, data.assignment_id, context, "respond to")
    if assignment.status != "PENDING":
        raise ActionError(
            f"You have already {assignment.status.lower()} this review invitation",
            "INVALID_STATE",
            {"status": assignment.status},
        )

    new_status = "ACCEPTED" if data.response == "ACCEPT" else "DECLINED"
    await services.repository.save_assignment(replace(assignment, status=new_status))

    reviewer = await services.repository.get_user(assignment.reviewer_id)
    reviewer_name = reviewer.display_name if reviewer else assignment.reviewer_id
    if data.message:
        # Posted into a conversation created earlier in the batch, when there is one
        target = data.conversation_id or context.outputs.get("conversationId")
        if target:
            await post_bot_message(
                services, target, data.message, context, privacy="PUBLIC",
                metadata={"type": "review_invitation_message", "assignmentId": assignment.id},
            )

    editorial = await find_conversation(services, assignment.manuscript_id, "EDITORIAL")
    if editorial:
        heading = "✅ **Review Invitation Accepted via Bot**" if new_status == "ACCEPTED" else "❌ **Review Invitation Declined via Bot**"
        await post_bot_message(
            services,
            editorial.id,
            f"{heading}\n\n**Reviewer:** {reviewer_name}",
            context,
            metadata={"type": "review_invitation_response", "assignmentId": assignment.id, "response": new_status},
        )

    logger.info(f"Review invitation {new_status.lower()} for assignment {assignment.id} via bot")
    return {"assignmentId": assignment.id, "assignmentStatus": new_status}


async def handle_submit_review(
    data: SubmitReviewData, context: ActionContext, services: ActionServices
) -> Dict[str, Any]:
    assignment = await _own_assignment(services, data.assignment_id, context, "submit reviews for")
    if assignment.status not in ("ACCEPTED", "IN_PROGRESS"):
        raise ActionError(
            f"Cannot submit review for assignment with status: {assignment.status}",
            "INVALID_STATE",
            {"status": assignment.status},
        )

    await services.repository.save_assignment(
        replace(
            assignment,
            status="COMPLETED",
            completed_at=utcnow(),
            review_content=data.review_content,
            recommendation=data.recommendation,
            score=data.score,
            confidential_comments=data.confidential_comments,
        )
    )

    review_conversation = await find_conversation(services, assignment.manuscript_id, "REVIEW")
    if review_conversation:
        content = f"📝 **Review Submitted via Bot**\n\n**Recommendation:** {data.recommendation}\n\n**Review:**\n{data.review_content}"
        if data.score is not None:
            content += f"\n\n**Score:** {data.score:g}/10"
        await post_bot_message(
            services, review_conversation.id, content, context, privacy="PUBLIC",
            metadata={
                "type": "review_submission",
                "assignmentId": assignment.id,
                "recommendation": data.recommendation,
                "score": data.score,
                "hasConfidentialComments": bool(data.confidential_comments),
            },
        )
        if data.confidential_comments:
            await post_bot_message(
                services, review_conversation.id,
                f"🔒 **Confidential Comments (via Bot)**\n\n{data.confidential_comments}",
                context,
                metadata={"type": "confidential_review_comments", "assignmentId": assignment.id},
            )

    logger.info(f"Review submitted for assignment {assignment.id} via bot")
    return {"assignmentId": assignment.id, "assignmentStatus": "COMPLETED"}
