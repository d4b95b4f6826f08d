import pytest

from bots.editorial import bot as editorial
from colloquium.models import BotExecutionContext, TriggeredBy


def make_context(role="EDITOR_IN_CHIEF", **config):
    return BotExecutionContext(
        bot_id=editorial.BOT_ID,
        manuscript_id="ms-1",
        conversation_id="conv-1",
        triggered_by=TriggeredBy(user_id="editor-1", user_role=role),
        config=config,
    )


def action_types(result):
    return [a["type"] for a in result["actions"]]


# ==========================================
# Decisions
# ==========================================
@pytest.mark.asyncio
async def test_accept_starts_publication():
    result = await editorial.accept({"reason": "Excellent methodology"}, make_context())

    assert action_types(result) == ["UPDATE_MANUSCRIPT_STATUS", "EXECUTE_PUBLICATION_WORKFLOW"]
    assert result["actions"][0]["data"] == {"status": "ACCEPTED", "reason": "Excellent methodology"}
    assert result["actions"][1]["data"]["manuscriptId"] == "ms-1"
    assert "**Reason:** Excellent methodology" in result["messages"][0]["content"]


@pytest.mark.asyncio
async def test_reject_without_reason():
    result = await editorial.reject({}, make_context())

    assert action_types(result) == ["UPDATE_MANUSCRIPT_STATUS"]
    assert "**Reason:**" not in result["messages"][0]["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "decision, expected",
    [
        ("accept", ["MAKE_EDITORIAL_DECISION", "EXECUTE_PUBLICATION_WORKFLOW"]),
        ("revise", ["CREATE_CONVERSATION", "MAKE_EDITORIAL_DECISION"]),
        ("reject", ["MAKE_EDITORIAL_DECISION"]),
        ("update", ["UPDATE_WORKFLOW_PHASE"]),
    ],
)
async def test_release_actions_per_decision(decision, expected):
    result = await editorial.release({"decision": decision}, make_context())

    assert action_types(result) == expected
    assert f"**Decision:** {editorial.DECISION_LABELS[decision]}" in result["messages"][0]["content"]


@pytest.mark.asyncio
async def test_release_update_honours_review_completion_setting():
    strict = await editorial.release({"decision": "update"}, make_context())
    relaxed = await editorial.release({"decision": "update"}, make_context(requireAllReviewsComplete=False))

    assert strict["actions"][0]["data"]["requireAllReviewsComplete"] is True
    assert relaxed["actions"][0]["data"]["requireAllReviewsComplete"] is False


@pytest.mark.asyncio
async def test_request_revision_folds_deadline_into_notes():
    result = await editorial.request_revision({"deadline": "2026-11-15", "notes": "Expand section 4"}, make_context())

    assert result["actions"] == [
        {
            "type": "MAKE_EDITORIAL_DECISION",
            "data": {"decision": "revise", "notes": "Expand section 4\n\nRevised submission due 2026-11-15"},
        }
    ]
    assert "**Deadline:** 2026-11-15" in result["messages"][0]["content"]


@pytest.mark.asyncio
async def test_begin_deliberation():
    result = await editorial.begin_deliberation({}, make_context())

    assert result["actions"][0]["data"]["phase"] == "DELIBERATION"


# ==========================================
# Assignments
# ==========================================
@pytest.mark.asyncio
async def test_assign_editor_requires_editor_role():
    result = await editorial.assign_editor({"editor": "@DrEditor"}, make_context(role="REVIEWER"))

    assert "actions" not in result
    assert result["messages"][0]["content"].startswith("❌ **Access Denied**")


@pytest.mark.asyncio
async def test_assign_editor_uses_configured_roles():
    context = make_context(role="MANAGING_EDITOR", editorRoles=["MANAGING_EDITOR"])

    result = await editorial.assign_editor({"editor": "DrEditor", "message": "Urgent"}, context)

    assert result["actions"][0]["data"] == {"editor": "@DrEditor", "customMessage": "Urgent", "assignedBy": "editor-1"}


@pytest.mark.asyncio
async def test_invite_reviewer():
    result = await editorial.invite_reviewer(
        {"reviewers": ["@DrSmith", "expert@domain.com"], "deadline": "2026-11-15"}, make_context()
    )

    assert result["actions"][0]["data"] == {
        "reviewers": ["DrSmith", "expert@domain.com"],
        "customMessage": None,
        "dueDate": "2026-11-15",
    }
    assert "- expert@domain.com" in result["messages"][0]["content"]


@pytest.mark.asyncio
async def test_send_reminder():
    result = await editorial.send_reminder({"reviewer": "DrSmith", "message": "Please prioritize"}, make_context())

    assert result["actions"] == [
        {
            "type": "SEND_MANUAL_REMINDER",
            "data": {"reviewer": "@DrSmith", "customMessage": "Please prioritize", "triggeredBy": "editor-1"},
        }
    ]
    assert result["messages"][0]["content"].startswith("📧 **Manual Reminder**")


@pytest.mark.asyncio
async def test_send_reminder_requires_editor_role():
    result = await editorial.send_reminder({"reviewer": "@DrSmith"}, make_context(role="AUTHOR"))

    assert "actions" not in result
    assert result["messages"][0]["content"].startswith("❌ **Access Denied**")



def test_deadline_validator():
    assert editorial._validate_date("2026-11-15") is None
    assert editorial._validate_date("15/11/2026") == "must be a date in YYYY-MM-DD format"
