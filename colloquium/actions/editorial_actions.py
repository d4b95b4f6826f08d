# FilePath: "/colloquium/actions/editorial_actions.py"
# Project: Colloquium Bot Framework
# Description: MAKE_EDITORIAL_DECISION, ASSIGN_ACTION_EDITOR and UPDATE_WORKFLOW_PHASE handlers.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from collections import Counter
from typing import Any, Dict, Optional

from ..errors import ActionError
from ..models import utcnow
from .context import ActionContext, ActionServices
from .conversation_actions import find_conversation, manuscript_authors, post_bot_message
from .payloads import AssignActionEditorData, MakeEditorialDecisionData, UpdateWorkflowPhaseData
from .repository import ActionEditor, Conversation, EditorialDecision, Manuscript, new_id

logger = logging.getLogger(__name__)

PHASE_LABELS = {
    "REVIEW": "Review Phase",
    "DELIBERATION": "Deliberation Phase",
    "RELEASED": "Released to Authors",
    "AUTHOR_RESPONDING": "Author Response Phase",
}


# ===== Editorial decision =====

async def handle_make_editorial_decision(
    data: MakeEditorialDecisionData, context: ActionContext, services: ActionServices
) -> Dict[str, Any]:
    manuscript = await services.require_manuscript(context.manuscript_id)
    previous = manuscript.status
    now = utcnow()

    changes: Dict[str, Any] = {"status": data.status, "workflow_phase": "RELEASED", "released_at": now}
    if data.status == "ACCEPTED":
        changes["accepted_at"] = now
    manuscript = await services.repository.update_manuscript(manuscript.id, **changes)

    decision = await services.repository.save_decision(
        EditorialDecision(
            id=new_id(),
            manuscript_id=manuscript.id,
            decision=data.decision,
            status=data.status,
            editor_id=context.user_id,
            previous_status=previous,
            revision_type=data.revision_type,
            notes=data.notes,
        )
    )

    editorial = await find_conversation(services, manuscript.id, "EDITORIAL")
    if editorial:
        await post_bot_message(
            services,
            editorial.id,
            await _decision_summary(services, manuscript, data),
            context,
            metadata={
                "type": "editorial_decision",
                "decision": data.decision,
                "previousStatus": previous,
                "newStatus": data.status,
                "revisionType": data.revision_type,
            },
        )

    try:
        await services.notifier.decision_made(
            await manuscript_authors(services, manuscript), manuscript, data.decision, context.conversation_id
        )
    except Exception as e:
        logger.error(f"Failed to send decision notification for {manuscript.id}: {e}", exc_info=True)

    outputs: Dict[str, Any] = {"decisionId": decision.id}
    if data.status == "REVISION_REQUESTED":
        conversation = await _create_revision_conversation(services, manuscript, context, data.revision_type)
        if conversation:
            outputs["revisionConversationId"] = conversation.id

    logger.info(f"Editorial decision '{data.decision}' made for manuscript {manuscript.id} via bot")
    return outputs


async def _decision_summary(services: ActionServices, manuscript: Manuscript, data: MakeEditorialDecisionData) -> str:
    lines = [
        f"⚖️ **Editorial Decision: {data.decision.replace('_', ' ').upper()}**",
        "",
        f"**Manuscript:** {manuscript.title}",
    ]
    if data.revision_type:
        lines.append(f"**Revision Type:** {data.revision_type.upper()}")
    if data.notes:
        lines.append(f"**Notes:** {data.notes}")

    completed = [a for a in await services.repository.list_assignments(manuscript.id) if a.status == "COMPLETED"]
    if completed:
        lines.extend(["", "**Review Summary:**", f"- {len(completed)} review(s) completed"])
        for recommendation, count in Counter(a.recommendation or "unknown" for a in completed).items():
            lines.append(f"- {recommendation}: {count}")
    return "\n".join(lines)


async def _create_revision_conversation(
    services: ActionServices, manuscript: Manuscript, context: ActionContext, revision_type: Optional[str]
) -> Optional[Conversation]:
    # A conversation produced earlier in this batch already serves as the revision thread
    in_batch = context.outputs.get("conversationId")
    if in_batch:
        conversation = await services.repository.get_conversation(in_batch)
        if conversation is not None:
            missing = [a for a in manuscript.author_ids if a not in conversation.participants]
            if missing:
                for author_id in missing:
                    conversation.participants[author_id] = "PARTICIPANT"
                await services.repository.save_conversation(conversation)
                logger.info(f"Added {len(missing)} author(s) to revision conversation {conversation.id}")
        return None
    for existing in await services.repository.list_conversations(manuscript.id):
        if "Revision" in existing.title:
            return None

    participants = {context.user_id: "MODERATOR"}
    for author_id in manuscript.author_ids:
        participants.setdefault(author_id, "PARTICIPANT")

    conversation = await services.repository.save_conversation(
        Conversation(
            id=new_id(),
            manuscript_id=manuscript.id,
            title=f"{revision_type or 'Manuscript'} Revision Discussion",
            type="SEMI_PUBLIC",
            privacy="PUBLIC",
            participants=participants,
        )
    )
    await post_bot_message(
        services,
        conversation.id,
        (
            "📝 **Revision Discussion Created**\n\n"
            f"This conversation is for discussing the {revision_type or 'manuscript'} revisions. "
            "Use this space to address reviewer comments "
            "and ask questions about the revision requirements."
        ),
        context,
        privacy="PUBLIC",
        metadata={"type": "revision_conversation_created", "revisionType": revision_type},
    )
    return conversation


# ===== Action editor =====

async def handle_assign_action_editor(
    data: AssignActionEditorData, context: ActionContext, services: ActionServices
) -> Dict[str, Any]:
    handle = data.editor.strip().lstrip("@")
    editor = await services.repository.find_user(handle)
    if editor is None:
        raise ActionError(f"User {data.editor} not found", "NOT_FOUND", {"editor": data.editor})

    manuscript = await services.require_manuscript(context.manuscript_id)
    previous = await services.repository.get_action_editor(manuscript.id)
    await services.repository.save_action_editor(ActionEditor(manuscript_id=manuscript.id, editor_id=editor.id))

    if previous:
        logger.info(f"Action editor updated for manuscript {manuscript.id}: {editor.username} (was {previous.editor_id})")
    else:
        logger.info(f"Action editor assigned for manuscript {manuscript.id}: {editor.username}")

    editorial = await find_conversation(services, manuscript.id, "EDITORIAL")
    if editorial:
        content = f"👤 **Action Editor Assignment via Bot**\n\n**Assigned Editor:** {editor.display_name} (@{editor.username})\n"
        if data.custom_message:
            content += f"**Message:** {data.custom_message}\n"
        await post_bot_message(
            services, editorial.id, content, context,
            metadata={"type": "action_editor_assignment", "editorId": editor.id},
        )

    try:
        await services.notifier.action_editor_assigned(editor, manuscript, data.custom_message)
    except Exception as e:
        logger.error(f"Failed to send action editor notification to {editor.email}: {e}", exc_info=True)

    return {"actionEditorId": editor.id}


# ===== Workflow phase =====

async def handle_update_workflow_phase(
    data: UpdateWorkflowPhaseData, context: ActionContext, services: ActionServices
) -> Dict[str, Any]:
    manuscript = await services.require_manuscript(context.manuscript_id)

    if data.require_all_reviews_complete:
        active = [
            a for a in await services.repository.list_assignments(manuscript.id)
            if a.status in ("ACCEPTED", "IN_PROGRESS", "COMPLETED")
        ]
        incomplete = [a for a in active if a.status != "COMPLETED"]
        if incomplete:
            raise ActionError(
                f"Cannot move to {data.phase}: {len(incomplete)} review(s) are not yet complete",
                "INVALID_STATE",
                {"incomplete": [a.id for a in incomplete]},
            )

    previous = manuscript.workflow_phase
    changes: Dict[str, Any] = {"workflow_phase": data.phase}
    if data.phase == "RELEASED":
        changes["released_at"] = utcnow()
    manuscript = await services.repository.update_manuscript(manuscript.id, **changes)

    content = (
        "🔄 **Workflow Phase Updated**\n\n"
        f"**New Phase:** {PHASE_LABELS.get(data.phase, data.phase)}\n"
        f"**Round:** {manuscript.workflow_round}\n"
    )
    if data.decision:
        content += f"**Decision:** {data.decision}\n"
    if data.notes:
        content += f"**Notes:** {data.notes}\n"
    await post_bot_message(
        services, context.conversation_id, content, context,
        metadata={
            "type": "workflow_phase_change",
            "previousPhase": previous,
            "newPhase": data.phase,
            "round": manuscript.workflow_round,
            "decision": data.decision,
        },
    )

    logger.info(f"Workflow phase for manuscript {manuscript.id} moved {previous} -> {data.phase}")
    return {"previousPhase": previous, "phase": data.phase}
