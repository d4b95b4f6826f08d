"""
FilePath: "/bots/editorial/bot.py"
Project: Colloquium Bot Framework
Component: Editorial Bot
Description: Editorial decisions, reviewer invitations and action editor assignment.
             Commands only describe what should happen; every state change is
             returned as a bot action and applied by the action processor.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from colloquium.models import (
    BotActionType,
    BotDefinition,
    BotExecutionContext,
    BotPermission,
    CommandSpec,
    HelpSection,
    ParameterSpec,
    ParameterType,
)

logger = logging.getLogger(__name__)

BOT_ID = "bot-editorial"
VERSION = "1.0.0"

DEFAULT_EDITOR_ROLES = ("ADMIN", "EDITOR_IN_CHIEF", "ACTION_EDITOR")

DECISION_LABELS = {
    "accept": "Accept for Publication",
    "revise": "Revision Required",
    "reject": "Rejected",
    "update": "Reviews Released (No Decision)",
}

REVISION_CONVERSATION_TITLE = "Manuscript Revision Discussion"


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def _mention(handle: str) -> str:
    handle = handle.strip()
    return handle if handle.startswith("@") else f"@{handle}"


def _require_all_reviews(context: BotExecutionContext) -> bool:
    return bool(context.config.get("requireAllReviewsComplete", True))


def _validate_date(value: Any):
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return "must be a date in YYYY-MM-DD format"
    return None


# ==========================================
# Decisions
# ==========================================
async def accept(params: Dict[str, Any], context: BotExecutionContext) -> Dict[str, Any]:
    reason = params.get("reason")
    lines = [
        "🎉 **Manuscript Accepted for Publication**",
        "",
        "**Status:** ACCEPTED",
    ]
    if reason:
        lines.append(f"**Reason:** {reason}")
    lines += [
        f"**Manuscript ID:** {context.manuscript_id}",
        f"**Decision Date:** {_now()}",
        "",
        "✅ Authors will be notified of the acceptance.",
        "🚀 **Publication workflow initiated**",
    ]
    return {
        "messages": [{"content": "\n".join(lines)}],
        "actions": [
            {"type": BotActionType.UPDATE_MANUSCRIPT_STATUS.value, "data": {"status": "ACCEPTED", "reason": reason}},
            {
                "type": BotActionType.EXECUTE_PUBLICATION_WORKFLOW.value,
                "data": {"manuscriptId": context.manuscript_id, "reason": reason, "triggeredBy": "editorial-decision"},
            },
        ],
    }


async def reject(params: Dict[str, Any], context: BotExecutionContext) -> Dict[str, Any]:
    reason = params.get("reason")
    lines = ["❌ **Manuscript Rejected**", "", "**Status:** REJECTED"]
    if reason:
        lines.append(f"**Reason:** {reason}")
    lines += [
        f"**Manuscript ID:** {context.manuscript_id}",
        f"**Decision Date:** {_now()}",
        "",
        "📧 Authors will be notified of the rejection with feedback.",
    ]
    return {
        "messages": [{"content": "\n".join(lines)}],
        "actions": [
            {"type": BotActionType.UPDATE_MANUSCRIPT_STATUS.value, "data": {"status": "REJECTED", "reason": reason}},
        ],
    }


async def release(params: Dict[str, Any], context: BotExecutionContext) -> Dict[str, Any]:
    """
    Releases reviews to the authors. accept, revise and reject record an editorial
    decision; update only moves the workflow phase.
    """
    decision = params["decision"]
    notes = params.get("notes")

    lines = [
        "📨 **Reviews Released to Authors**",
        "",
        f"**Decision:** {DECISION_LABELS.get(decision, decision)}",
        f"**Manuscript ID:** {context.manuscript_id}",
        f"**Release Date:** {_now()}",
    ]
    if notes:
        lines.append(f"**Notes:** {notes}")
    lines += ["", "✅ Authors have been notified and can now view reviews."]

    actions: List[Dict[str, Any]] = []
    if decision == "update":
        actions.append(
            {
                "type": BotActionType.UPDATE_WORKFLOW_PHASE.value,
                "data": {
                    "phase": "RELEASED",
                    "decision": decision,
                    "notes": notes,
                    "requireAllReviewsComplete": _require_all_reviews(context),
                },
            }
        )
    else:
        if decision == "revise":
            # Created first so the decision reuses it as the revision thread
            actions.append(
                {
                    "type": BotActionType.CREATE_CONVERSATION.value,
                    "data": {"title": REVISION_CONVERSATION_TITLE, "type": "SEMI_PUBLIC", "privacy": "PUBLIC"},
                }
            )
        actions.append(
            {"type": BotActionType.MAKE_EDITORIAL_DECISION.value, "data": {"decision": decision, "notes": notes}}
        )
        if decision == "accept":
            actions.append(
                {
                    "type": BotActionType.EXECUTE_PUBLICATION_WORKFLOW.value,
                    "data": {"manuscriptId": context.manuscript_id, "reason": notes, "triggeredBy": "editorial-release"},
                }
            )

    return {"messages": [{"content": "\n".join(lines)}], "actions": actions}


async def request_revision(params: Dict[str, Any], context: BotExecutionContext) -> Dict[str, Any]:
    deadline = params.get("deadline")
    notes = params.get("notes")

    lines = [
        "📝 **Revision Requested**",
        "",
        "**Status:** Revision Requested",
        f"**Manuscript ID:** {context.manuscript_id}",
    ]
    if deadline:
        lines.append(f"**Deadline:** {deadline}")
    if notes:
        lines.append(f"**Requirements:** {notes}")
    lines += [f"**Request Date:** {_now()}", "", "✅ Reviews have been released. Authors have been notified."]

    decision_notes = notes
    if deadline:
        decision_notes = f"{notes}\n\nRevised submission due {deadline}" if notes else f"Revised submission due {deadline}"

    return {
        "messages": [{"content": "\n".join(lines)}],
        "actions": [
            {
                "type": BotActionType.MAKE_EDITORIAL_DECISION.value,
                "data": {"decision": "revise", "notes": decision_notes},
            }
        ],
    }


async def begin_deliberation(params: Dict[str, Any], context: BotExecutionContext) -> Dict[str, Any]:
    notes = params.get("notes")
    lines = ["🤝 **Deliberation Phase Started**", "", f"**Manuscript ID:** {context.manuscript_id}"]
    if notes:
        lines.append(f"**Notes:** {notes}")
    lines += [f"**Started:** {_now()}", "", "✅ Reviewers can now see each other's reviews."]
    return {
        "messages": [{"content": "\n".join(lines)}],
        "actions": [
            {
                "type": BotActionType.UPDATE_WORKFLOW_PHASE.value,
                "data": {
                    "phase": "DELIBERATION",
                    "notes": notes,
                    "requireAllReviewsComplete": _require_all_reviews(context),
                },
            }
        ],
    }


# ==========================================
# Assignments
# ==========================================
async def assign_editor(params: Dict[str, Any], context: BotExecutionContext) -> Dict[str, Any]:
    allowed_roles = context.config.get("editorRoles") or DEFAULT_EDITOR_ROLES
    role = context.triggered_by.user_role
    if role not in allowed_roles:
        logger.info(f"Action editor assignment refused for role {role}")
        return {
            "messages": [
                {
                    "content": (
                        "❌ **Access Denied**\n\n"
                        "You do not have permission to assign action editors. "
                        f"Allowed roles: {', '.join(allowed_roles)}."
                    )
                }
            ]
        }

    editor = _mention(params["editor"])
    message = params.get("message")
    lines = [
        "👤 **Action Editor Assigned**",
        "",
        f"**Manuscript ID:** {context.manuscript_id}",
        f"**Action Editor:** {editor}",
    ]
    if message:
        lines.append(f"**Message:** {message}")
    lines += ["", "✅ Assignment notification has been sent to the action editor."]

    return {
        "messages": [{"content": "\n".join(lines)}],
        "actions": [
            {
                "type": BotActionType.ASSIGN_ACTION_EDITOR.value,
                "data": {"editor": editor, "customMessage": message, "assignedBy": context.triggered_by.user_id},
            }
        ],
    }


async def invite_reviewer(params: Dict[str, Any], context: BotExecutionContext) -> Dict[str, Any]:
    reviewers = [r.lstrip("@") for r in params["reviewers"]]
    deadline = params.get("deadline")
    message = params.get("message")

    lines = ["📧 **Reviewer Invitations Sent**", "", f"**Manuscript ID:** {context.manuscript_id}", "**Reviewers:**"]
    lines += [f"- {r}" for r in reviewers]
    lines.append(f"**Deadline:** {deadline or 'Journal default'}")
    if message:
        lines.append(f"**Message:** {message}")

    data: Dict[str, Any] = {"reviewers": reviewers, "customMessage": message}
    if deadline:
        data["dueDate"] = deadline
    return {
        "messages": [{"content": "\n".join(lines)}],
        "actions": [{"type": BotActionType.ASSIGN_REVIEWER.value, "data": data}],
    }


async def send_reminder(params: Dict[str, Any], context: BotExecutionContext) -> Dict[str, Any]:
    allowed_roles = context.config.get("editorRoles") or DEFAULT_EDITOR_ROLES
    role = context.triggered_by.user_role
    if role not in allowed_roles:
        logger.info(f"Manual reminder refused for role {role}")
        return {
            "messages": [
                {
                    "content": (
                        "❌ **Access Denied**\n\n"
                        "You do not have permission to send reviewer reminders. "
                        f"Allowed roles: {', '.join(allowed_roles)}."
                    )
                }
            ]
        }

    reviewer = _mention(params["reviewer"])
    message = params.get("message")
    lines = [
        "📧 **Manual Reminder**",
        "",
        f"**Manuscript ID:** {context.manuscript_id}",
        f"**Reviewer:** {reviewer}",
    ]
    if message:
        lines.append(f"**Message:** {message}")
    lines += ["", "✅ Reminder will be sent to the reviewer and posted to the editorial conversation."]

    return {
        "messages": [{"content": "\n".join(lines)}],
        "actions": [
            {
                "type": BotActionType.SEND_MANUAL_REMINDER.value,
                "data": {"reviewer": reviewer, "customMessage": message, "triggeredBy": context.triggered_by.user_id},
            }
        ],
    }


# ==========================================
# Definition
# ==========================================
REASON = ParameterSpec(name="reason", description="Optional reason for the decision")
NOTES = ParameterSpec(name="notes", description="Optional notes")
DEADLINE = ParameterSpec(
    name="deadline",
    description="Deadline in YYYY-MM-DD format",
    validator=_validate_date,
    examples=("2026-11-15",),
)

bot = BotDefinition(
    id=BOT_ID,
    name="Editorial Bot",
    description="Assists with editorial decisions, reviewer invitations and action editor management",
    version=VERSION,
    permissions=frozenset(
        {
            BotPermission.READ_MANUSCRIPT,
            BotPermission.UPDATE_MANUSCRIPT,
            BotPermission.ASSIGN_REVIEWERS,
            BotPermission.MAKE_EDITORIAL_DECISION,
        }
    ),
    keywords=("editorial decision", "review status", "invite reviewer", "assign editor", "manuscript status"),
    help_overview="Streamlines manuscript management: reviewer invitations, editorial decisions and review release.",
    help_sections=(
        HelpSection(
            title="🚀 Getting Started",
            content="Use `invite-reviewer` to invite reviewers, then `release` or `accept` / `reject` to decide.",
            position="before",
        ),
        HelpSection(
            title="📋 Workflow Steps",
            content=(
                "1. Submit manuscript → 2. Assign action editor → 3. Invite reviewers → "
                "4. Reviewers accept → 5. Release reviews with a decision"
            ),
            position="before",
        ),
    ),
    commands=(
        CommandSpec(
            name="accept",
            description="Accept a manuscript for publication and initiate the publication workflow",
            usage='@bot-editorial accept [reason="reason for acceptance"]',
            parameters=(REASON,),
            examples=('@bot-editorial accept', '@bot-editorial accept reason="Excellent methodology"'),
            permissions=frozenset({BotPermission.MAKE_EDITORIAL_DECISION}),
            execute=accept,
        ),
        CommandSpec(
            name="reject",
            description="Reject a manuscript",
            usage='@bot-editorial reject [reason="reason for rejection"]',
            parameters=(REASON,),
            examples=('@bot-editorial reject', '@bot-editorial reject reason="Does not meet journal scope"'),
            permissions=frozenset({BotPermission.MAKE_EDITORIAL_DECISION}),
            execute=reject,
        ),
        CommandSpec(
            name="assign-editor",
            description="Assign an action editor to a manuscript",
            usage='@bot-editorial assign-editor <editor> [message="custom message"]',
            parameters=(
                ParameterSpec(name="editor", description="@mention of the user to assign", required=True),
                ParameterSpec(name="message", description="Message included with the assignment notification"),
            ),
            examples=(
                "@bot-editorial assign-editor @DrEditor",
                '@bot-editorial assign-editor editor=@SeniorEditor message="Please handle this urgently"',
            ),
            permissions=frozenset({BotPermission.ASSIGN_REVIEWERS}),
            execute=assign_editor,
        ),
        CommandSpec(
            name="invite-reviewer",
            description="Invite reviewers by @mention or email address",
            usage='@bot-editorial invite-reviewer <reviewers> [deadline="YYYY-MM-DD"] [message="custom message"]',
            parameters=(
                ParameterSpec(
                    name="reviewers",
                    type=ParameterType.ARRAY,
                    description="Comma-separated reviewer emails or @mentions",
                    required=True,
                ),
                DEADLINE,
                ParameterSpec(name="message", description="Custom message for the invitation"),
            ),
            examples=(
                "@bot-editorial invite-reviewer reviewer@university.edu",
                '@bot-editorial invite-reviewer @DrSmith,expert@domain.com deadline="2026-11-15"',
            ),
            permissions=frozenset({BotPermission.ASSIGN_REVIEWERS}),
            execute=invite_reviewer,
        ),
        CommandSpec(
            name="release",
            description="Release reviews to authors with an editorial decision",
            usage='@bot-editorial release <decision> [notes="additional notes"]',
            parameters=(
                ParameterSpec(
                    name="decision",
                    type=ParameterType.ENUM,
                    description="The editorial decision",
                    required=True,
                    enum_values=("accept", "revise", "reject", "update"),
                ),
                NOTES,
            ),
            examples=(
                "@bot-editorial release decision=revise",
                '@bot-editorial release decision=accept notes="Outstanding contribution"',
            ),
            permissions=frozenset({BotPermission.MAKE_EDITORIAL_DECISION}),
            execute=release,
            help="`update` releases reviews without recording a decision.",
        ),
        CommandSpec(
            name="request-revision",
            description="Request revisions from the authors",
            usage='@bot-editorial request-revision [deadline="YYYY-MM-DD"] [notes="revision requirements"]',
            parameters=(DEADLINE, NOTES),
            examples=(
                "@bot-editorial request-revision",
                '@bot-editorial request-revision deadline="2026-11-15" notes="Major revisions required"',
            ),
            permissions=frozenset({BotPermission.MAKE_EDITORIAL_DECISION}),
            execute=request_revision,
        ),
        CommandSpec(
            name="begin-deliberation",
            description="Move to the deliberation phase where reviewers see each other's reviews",
            usage='@bot-editorial begin-deliberation [notes="optional notes"]',
            parameters=(NOTES,),
            examples=("@bot-editorial begin-deliberation",),
            permissions=frozenset({BotPermission.MAKE_EDITORIAL_DECISION}),
            execute=begin_deliberation,
        ),
        CommandSpec(
            name="send-reminder",
            description="Send a manual reminder to a reviewer about their pending review",
            usage='@bot-editorial send-reminder <reviewer> [message="custom message"]',
            parameters=(
                ParameterSpec(name="reviewer", description="@mention of the reviewer to remind", required=True),
                ParameterSpec(name="message", description="Custom message included with the reminder"),
            ),
            examples=(
                "@bot-editorial send-reminder @DrSmith",
                '@bot-editorial send-reminder @DrSmith message="Please prioritize this review"',
            ),
            permissions=frozenset({BotPermission.ASSIGN_REVIEWERS}),
            execute=send_reminder,
            help="The reviewer needs an accepted or in-progress assignment with a due date.",
        ),
    ),
)
