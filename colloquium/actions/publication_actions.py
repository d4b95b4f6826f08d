# FilePath: "/colloquium/actions/publication_actions.py"
# Project: Colloquium Bot Framework
# Description: EXECUTE_PUBLICATION_WORKFLOW handler. Assigns a DOI when missing and
#              moves an ACCEPTED manuscript to PUBLISHED.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from typing import Any, Dict

from ..errors import ActionError
from ..models import utcnow
from .context import ActionContext, ActionServices
from .conversation_actions import find_conversation, manuscript_authors, post_bot_message
from .payloads import ExecutePublicationWorkflowData
from .repository import Manuscript

logger = logging.getLogger(__name__)


def generate_doi(manuscript: Manuscript, prefix: str) -> str:
    """10.<registrant>/colloquium.<year>.<short id>"""
    prefix = prefix if prefix.startswith("10.") else f"10.{prefix}"
    short_id = manuscript.id.replace("-", "")[:8]
    return f"{prefix}/colloquium.{utcnow().year}.{short_id}"


async def handle_execute_publication_workflow(
    data: ExecutePublicationWorkflowData, context: ActionContext, services: ActionServices
) -> Dict[str, Any]:
    manuscript = await services.require_manuscript(data.manuscript_id or context.manuscript_id)
    if manuscript.status != "ACCEPTED":
        raise ActionError(
            f"Cannot execute publication workflow. Manuscript status is {manuscript.status}, expected ACCEPTED",
            "INVALID_STATE",
            {"status": manuscript.status},
        )

    doi = manuscript.doi
    if not doi:
        doi = generate_doi(manuscript, services.doi_prefix)
        logger.info(f"Generated DOI for manuscript {manuscript.id}: {doi}")

    published = await services.repository.update_manuscript(
        manuscript.id, status="PUBLISHED", published_at=utcnow(), doi=doi
    )

    editorial = await find_conversation(services, manuscript.id, "EDITORIAL")
    if editorial:
        content = (
            "🚀 **Publication Workflow Completed**\n\n"
            f"**Manuscript:** {published.title}\n"
            f"**DOI:** {doi}\n"
        )
        if data.triggered_by:
            content += f"**Triggered by:** {data.triggered_by}\n"
        if data.reason:
            content += f"**Acceptance reason:** {data.reason}\n"
        await post_bot_message(
            services, editorial.id, content, context,
            metadata={
                "type": "publication_workflow_completed",
                "doi": doi,
                "publishedAt": published.published_at.isoformat(),
            },
        )

    try:
        await services.notifier.manuscript_published(await manuscript_authors(services, published), published)
    except Exception as e:
        logger.error(f"Failed to send publication notifications for {manuscript.id}: {e}", exc_info=True)

    logger.info(f"Publication workflow completed for manuscript {manuscript.id}. DOI: {doi}")
    return {"doi": doi}
