# FilePath: "/colloquium/actions/conversation_actions.py"
# Project: Colloquium Bot Framework
# Description: CREATE_CONVERSATION and UPDATE_MANUSCRIPT_STATUS handlers, plus the
#              message helpers shared by the other action modules.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from typing import Any, Dict, List, Optional

from ..errors import ActionError
from .context import ActionContext, ActionServices
from .payloads import CreateConversationData, UpdateManuscriptStatusData
from .repository import Conversation, Manuscript, Message, User, new_id

logger = logging.getLogger(__name__)


# ===== Shared helpers =====

async def find_conversation(services: ActionServices, manuscript_id: str, type: str) -> Optional[Conversation]:
    conversations = await services.repository.list_conversations(manuscript_id, type=type)
    return conversations[0] if conversations else None


async def post_bot_message(
    services: ActionServices,
    conversation_id: Optional[str],
    content: str,
    context: ActionContext,
    privacy: str = "EDITOR_ONLY",
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[Message]:
    """Writes a bot-authored system message. No-op when there is no conversation to write to."""
    if not conversation_id:
        return None
    return await services.repository.add_message(
        Message(
            id=new_id(),
            conversation_id=conversation_id,
            content=content,
            author_id=context.user_id,
            is_bot=True,
            bot_id=context.bot_id,
            privacy=privacy,
            metadata={"via": "bot", **(metadata or {})},
        )
    )


async def manuscript_authors(services: ActionServices, manuscript: Manuscript) -> List[User]:
    authors = []
    for author_id in manuscript.author_ids:
        user = await services.repository.get_user(author_id)
        if user:
            authors.append(user)
    return authors


# ===== Handlers =====

async def handle_create_conversation(
    data: CreateConversationData, context: ActionContext, services: ActionServices
) -> Dict[str, Any]:
    await services.require_manuscript(context.manuscript_id)

    # Acting user moderates; everyone else participates, de-duplicated
    participants = {context.user_id: "MODERATOR"}
    for participant_id in data.participant_ids:
        participants.setdefault(participant_id, "PARTICIPANT")

    conversation = await services.repository.save_conversation(
        Conversation(
            id=new_id(),
            manuscript_id=context.manuscript_id,
            title=data.title,
            type=data.type,
            privacy=data.privacy,
            participants=participants,
        )
    )
    logger.info(f"Created conversation {conversation.id} for manuscript {context.manuscript_id} by bot")
    return {"conversationId": conversation.id}


async def handle_update_manuscript_status(
    data: UpdateManuscriptStatusData, context: ActionContext, services: ActionServices
) -> Dict[str, Any]:
    manuscript = await services.require_manuscript(context.manuscript_id)
    previous = manuscript.status

    if services.transition_guard:
        problem = services.transition_guard(previous, data.status)
        if problem:
            raise ActionError(problem, "INVALID_STATE", {"from": previous, "to": data.status})

    await services.repository.update_manuscript(context.manuscript_id, status=data.status)

    content = (
        "📋 **Manuscript Status Updated by Editorial Bot**\n\n"
        f"**Previous Status:** {previous.replace('_', ' ')}\n"
        f"**New Status:** {data.status.replace('_', ' ')}\n"
    )
    if data.reason:
        content += f"**Reason:** {data.reason}\n"
    await post_bot_message(
        services,
        context.conversation_id,
        content,
        context,
        metadata={
            "botAction": "UPDATE_MANUSCRIPT_STATUS",
            "previousStatus": previous,
            "newStatus": data.status,
            "reason": data.reason,
        },
    )
    logger.info(f"Manuscript {context.manuscript_id} status updated {previous} -> {data.status} by bot")
    return {"previousStatus": previous, "status": data.status}
