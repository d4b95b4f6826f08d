"""
FilePath: "/bots/reviewer_checklist/bot.py"
Project: Colloquium Bot Framework
Component: Reviewer Checklist Bot
Description: Generates editable review checklists for the reviewers assigned to a
             manuscript. Reviewer assignments are read back through the bot SDK.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from colloquium.models import (
    BotDefinition,
    BotEventName,
    BotExecutionContext,
    BotPermission,
    CommandSpec,
    HelpSection,
    ParameterSpec,
)
from colloquium.sdk import BotApiError, create_bot_client

logger = logging.getLogger(__name__)

BOT_ID = "bot-reviewer-checklist"
VERSION = "1.0.0"

DEFAULT_TEMPLATE = """# Reviewer Checklist

## Scientific Rigor
- [ ] The methodology is clearly described and appropriate for the research question
- [ ] Data analysis methods are appropriate and correctly applied
- [ ] Results are clearly presented and support the conclusions
- [ ] Statistical analyses are appropriate and correctly interpreted

## Significance and Novelty
- [ ] The work presents novel insights or significant contributions to the field
- [ ] The research question is clearly stated and well-motivated
- [ ] The implications of the findings are discussed appropriately

## Scholarship
- [ ] Literature review is comprehensive and up-to-date
- [ ] Prior work is appropriately cited and contextualized
- [ ] The work builds appropriately on existing knowledge

## Technical Quality
- [ ] Writing is clear, well-organized, and free of significant errors
- [ ] Figures and tables are clear and informative
- [ ] References are complete, accurate, and properly formatted

## Ethics and Standards
- [ ] Ethical considerations are appropriately addressed (if applicable)
- [ ] Conflicts of interest are disclosed
- [ ] Data collection and handling follow appropriate standards

## Reproducibility
- [ ] Study is reproducible with sufficient methodological detail
- [ ] Data availability and access are clearly stated
- [ ] Code/analysis scripts are available when applicable

## Overall Assessment
- [ ] The manuscript meets the standards for publication
- [ ] I recommend this manuscript for acceptance/revision/rejection

---
*This checklist is editable. Check off items as you complete your review.*"""

MANUSCRIPT_VARIABLES = ("{{manuscriptTitle}}", "{{authors}}")


@dataclass
class ReviewerRecord:
    id: str  # assignment id
    user_id: str
    user_name: str


# ==========================================
# Helpers
# ==========================================
def _reviewer_name(assignment: Dict[str, Any], fallback: str = "Unknown") -> str:
    user = assignment.get("users") or {}
    return user.get("name") or user.get("username") or fallback


async def get_assigned_reviewers(client) -> List[ReviewerRecord]:
    try:
        assignments = await client.reviewers.list()
    except (BotApiError, aiohttp.ClientError) as e:
        logger.error(f"Error fetching assigned reviewers: {e}")
        return []
    return [ReviewerRecord(a["id"], a.get("reviewerId"), _reviewer_name(a)) for a in assignments]


def find_reviewer(reviewers: List[ReviewerRecord], mention_or_id: str) -> Optional[ReviewerRecord]:
    """Exact id first, then exact name, then a partial name match."""
    clean = mention_or_id.lstrip("@").strip().lower()

    for reviewer in reviewers:
        if mention_or_id in (reviewer.id, reviewer.user_id):
            return reviewer
    for reviewer in reviewers:
        if reviewer.user_name.lower() == clean:
            return reviewer
    for reviewer in reviewers:
        name = reviewer.user_name.lower()
        last_word = name.split(" ")[-1] if name else ""
        if clean in name or (last_word and last_word in clean):
            return reviewer
    return None


def render_template(template: str, variables: Dict[str, str]) -> str:
    rendered = template
    for key, value in variables.items():
        if value:
            rendered = rendered.replace("{{" + key + "}}", value)
    return rendered


async def _manuscript_variables(client, template: str) -> Dict[str, str]:
    if not any(v in template for v in MANUSCRIPT_VARIABLES):
        return {}
    try:
        manuscript = await client.manuscripts.get()
    except (BotApiError, aiohttp.ClientError) as e:
        logger.warning(f"Could not load manuscript for template variables: {e}")
        return {}
    authors = ", ".join(a.get("name") or a.get("username") or "" for a in manuscript.get("authors") or [])
    return {"manuscriptTitle": manuscript.get("title") or "", "authors": authors}


def _template(context: BotExecutionContext) -> str:
    return context.config.get("template") or DEFAULT_TEMPLATE


def _checklist_message(content: str, assignment_id: str, editor_id: str) -> Dict[str, Any]:
    return {
        "content": content,
        "metadata": {"reviewerId": assignment_id, "isEditable": True, "editPermissions": [editor_id]},
    }


# ==========================================
# Command & Event Handlers
# ==========================================
async def generate(params: Dict[str, Any], context: BotExecutionContext) -> Dict[str, Any]:
    template = _template(context)

    async with create_bot_client(context) as client:
        reviewers = await get_assigned_reviewers(client)
        if not reviewers:
            return {
                "messages": [
                    {"content": "❌ **No Reviewers Assigned**\n\nThere are no assigned reviewers for this manuscript."}
                ]
            }

        requested = params.get("reviewer")
        if requested:
            target = find_reviewer(reviewers, requested)
            if target is None:
                available = ", ".join(f"@{r.user_name}" for r in reviewers)
                return {
                    "messages": [
                        {
                            "content": (
                                "❌ **Reviewer Not Found**\n\n"
                                f'Reviewer "{requested}" is not assigned to this manuscript.\n\n'
                                f"**Available reviewers:** {available}"
                            )
                        }
                    ]
                }
            targets = [target]
        else:
            targets = reviewers

        variables = await _manuscript_variables(client, template)

    checklists = [
        _checklist_message(
            render_template(template, {**variables, "reviewerName": reviewer.user_name}), reviewer.id, reviewer.user_id
        )
        for reviewer in targets
    ]

    if len(targets) == 1:
        summary = f"Generated checklist for {targets[0].user_name}"
    else:
        summary = f"Generated checklists for {len(targets)} reviewers: {', '.join(r.user_name for r in targets)}"
    logger.info(f"{summary} on manuscript {context.manuscript_id}")

    return {"messages": [{"content": f"✅ **Checklists Generated**\n\n{summary}"}] + checklists}


async def on_reviewer_assigned(context: BotExecutionContext, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    reviewer_id = payload.get("reviewerId")
    template = _template(context)

    async with create_bot_client(context) as client:
        try:
            assignments = await client.reviewers.list()
        except (BotApiError, aiohttp.ClientError) as e:
            logger.error(f"Error fetching assignments for auto-generated checklist: {e}")
            return None
        assignment = next((a for a in assignments if a.get("reviewerId") == reviewer_id), None)
        if assignment is None:
            return None
        variables = await _manuscript_variables(client, template)

    reviewer_name = _reviewer_name(assignment, "Reviewer")
    return {
        "messages": [
            {
                "content": (
                    f"**Auto-Generated Checklist** for {reviewer_name}\n\n"
                    "A review checklist has been generated for the newly assigned reviewer."
                )
            },
            _checklist_message(
                render_template(template, {**variables, "reviewerName": reviewer_name}), assignment["id"], reviewer_id
            ),
        ]
    }


# ==========================================
# Definition
# ==========================================
bot = BotDefinition(
    id=BOT_ID,
    name="Reviewer Checklist",
    description="Generates customizable review checklists for assigned reviewers using configurable templates",
    version=VERSION,
    permissions=frozenset({BotPermission.READ_MANUSCRIPT, BotPermission.WRITE_MESSAGES}),
    keywords=("checklist", "review", "criteria", "evaluation"),
    events={BotEventName.REVIEWER_ASSIGNED: on_reviewer_assigned},
    help_overview=(
        "The Reviewer Checklist bot generates customizable review checklists for assigned reviewers "
        "using configurable templates."
    ),
    help_sections=(
        HelpSection(
            title="🎯 Features",
            content=(
                "• Generates checklists for every assigned reviewer, or one targeted reviewer\n"
                "• Customizable templates with variable support\n"
                "• Checklist messages are editable by the assigned reviewer\n"
                "• Auto-generates a checklist when a reviewer is assigned"
            ),
            position="before",
        ),
        HelpSection(
            title="📋 Template Variables",
            content=(
                "Use these variables in your custom templates:\n"
                "• `{{manuscriptTitle}}` - The manuscript title\n"
                "• `{{authors}}` - List of manuscript authors\n"
                "• `{{reviewerName}}` - Name of the assigned reviewer"
            ),
            position="before",
        ),
        HelpSection(
            title="ℹ️ Configuration",
            content="Set `template` in the bot configuration to replace the default checklist.",
            position="after",
        ),
    ),
    commands=(
        CommandSpec(
            name="generate",
            description=(
                "Generate checklists for assigned reviewers, or for one reviewer targeted by @mention or id"
            ),
            usage='@bot-reviewer-checklist generate [reviewer="@username"]',
            parameters=(
                ParameterSpec(
                    name="reviewer",
                    description="Reviewer to generate a checklist for: @mention, name or id",
                    examples=("@DrSmith", "reviewer-123"),
                ),
            ),
            examples=(
                "@bot-reviewer-checklist generate",
                '@bot-reviewer-checklist generate reviewer="@DrSmith"',
            ),
            permissions=frozenset({BotPermission.READ_MANUSCRIPT}),
            execute=generate,
        ),
    ),
)
