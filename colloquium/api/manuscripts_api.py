# FilePath: "/colloquium/api/manuscripts_api.py"
# Project: Colloquium Bot Framework
# Description: Manuscript, file, reviewer and user routes called by bots through the SDK.
#              Every manuscript-scoped route rejects tokens minted for another manuscript.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request, Security
from fastapi.responses import PlainTextResponse

from ..actions.repository import Manuscript, ManuscriptFile, ReviewAssignment, User, new_id
from ..models import BotPermission
from ..security.permissions import get_runtime, require_bot_permission
from ..security.tokens import BotTokenClaims
from .schemas import AssignReviewerRequest, UploadFileRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Bot API"])

read_manuscript = require_bot_permission(BotPermission.READ_MANUSCRIPT)
read_files = require_bot_permission(BotPermission.READ_MANUSCRIPT_FILES)
upload_files = require_bot_permission(BotPermission.UPLOAD_FILES)
assign_reviewers = require_bot_permission(BotPermission.ASSIGN_REVIEWERS)


def check_scope(claims: BotTokenClaims, manuscript_id: str) -> None:
    if claims.manuscript_id != manuscript_id:
        logger.warning(f"Bot {claims.bot_id} token for {claims.manuscript_id} used on manuscript {manuscript_id}")
        raise HTTPException(status_code=403, detail="Token not valid for this manuscript")


async def load_manuscript(request: Request, manuscript_id: str) -> Manuscript:
    manuscript = await get_runtime(request).repository.get_manuscript(manuscript_id)
    if manuscript is None:
        raise HTTPException(status_code=404, detail=f"Manuscript {manuscript_id} not found")
    return manuscript


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def user_payload(user: User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "username": user.username, "email": user.email}


def file_payload(file: ManuscriptFile) -> Dict[str, Any]:
    return {
        "id": file.id,
        "filename": file.filename,
        "fileType": file.file_type,
        "mimetype": file.mimetype,
        "size": file.size,
        "uploadedBy": file.uploaded_by,
        "createdAt": _iso(file.created_at),
    }


def assignment_payload(assignment: ReviewAssignment, reviewer: Optional[User]) -> Dict[str, Any]:
    return {
        "id": assignment.id,
        "manuscriptId": assignment.manuscript_id,
        "reviewerId": assignment.reviewer_id,
        "status": assignment.status,
        "dueDate": _iso(assignment.due_date),
        "assignedAt": _iso(assignment.assigned_at),
        "completedAt": _iso(assignment.completed_at),
        "users": user_payload(reviewer) if reviewer else None,
    }


# ==========================================
# Manuscripts
# ==========================================
@router.get("/articles/{manuscript_id}")
async def get_manuscript(request: Request, manuscript_id: str, claims: BotTokenClaims = Security(read_manuscript)):
    check_scope(claims, manuscript_id)
    manuscript = await load_manuscript(request, manuscript_id)
    repository = get_runtime(request).repository

    authors = []
    for author_id in manuscript.author_ids:
        user = await repository.get_user(author_id)
        authors.append(user_payload(user) if user else {"id": author_id, "name": None, "username": None, "email": None})

    return {
        "id": manuscript.id,
        "title": manuscript.title,
        "abstract": manuscript.abstract,
        "status": manuscript.status,
        "keywords": manuscript.keywords,
        "authors": authors,
        "workflowPhase": manuscript.workflow_phase,
        "workflowRound": manuscript.workflow_round,
        "doi": manuscript.doi,
        "submittedAt": _iso(manuscript.submitted_at),
        "publishedAt": _iso(manuscript.published_at),
        "updatedAt": _iso(manuscript.updated_at),
    }


# ==========================================
# Files
# ==========================================
@router.get("/articles/{manuscript_id}/files")
async def list_files(request: Request, manuscript_id: str, claims: BotTokenClaims = Security(read_files)):
    check_scope(claims, manuscript_id)
    await load_manuscript(request, manuscript_id)
    files = await get_runtime(request).repository.list_files(manuscript_id)
    return {"files": [file_payload(f) for f in files]}


@router.post("/articles/{manuscript_id}/files", status_code=201)
async def upload_file(
    request: Request,
    manuscript_id: str,
    body: UploadFileRequest,
    claims: BotTokenClaims = Security(upload_files),
):
    check_scope(claims, manuscript_id)
    await load_manuscript(request, manuscript_id)
    stored = await get_runtime(request).repository.save_file(
        ManuscriptFile(
            id=new_id(),
            manuscript_id=manuscript_id,
            filename=body.filename,
            content=body.content,
            file_type=body.file_type,
            mimetype=body.mimetype,
            uploaded_by=claims.bot_id,
        )
    )
    logger.info(f"Bot {claims.bot_id} uploaded {stored.filename} to manuscript {manuscript_id}")
    return {"files": [file_payload(stored)]}


@router.get("/articles/{manuscript_id}/files/{file_id}/download", response_class=PlainTextResponse)
async def download_file(
    request: Request,
    manuscript_id: str,
    file_id: str,
    claims: BotTokenClaims = Security(read_files),
):
    check_scope(claims, manuscript_id)
    file = await get_runtime(request).repository.get_file(file_id)
    if file is None or file.manuscript_id != manuscript_id:
        raise HTTPException(status_code=404, detail=f"File {file_id} not found")
    return PlainTextResponse(file.content, media_type=file.mimetype if file.mimetype.startswith("text/") else "text/plain")


# ==========================================
# Reviewers
# ==========================================
@router.get("/reviewers/assignments/{manuscript_id}")
async def list_assignments(request: Request, manuscript_id: str, claims: BotTokenClaims = Security(read_manuscript)):
    check_scope(claims, manuscript_id)
    repository = get_runtime(request).repository
    assignments = []
    for assignment in await repository.list_assignments(manuscript_id):
        assignments.append(assignment_payload(assignment, await repository.get_user(assignment.reviewer_id)))
    return {"assignments": assignments}


@router.post("/articles/{manuscript_id}/reviewers", status_code=201)
async def assign_reviewer(
    request: Request,
    manuscript_id: str,
    body: AssignReviewerRequest,
    claims: BotTokenClaims = Security(assign_reviewers),
):
    check_scope(claims, manuscript_id)
    await load_manuscript(request, manuscript_id)
    repository = get_runtime(request).repository

    reviewer = await repository.find_user(body.reviewer_id)
    if reviewer is None:
        raise HTTPException(status_code=404, detail=f"User {body.reviewer_id} not found")
    if await repository.find_assignment(manuscript_id, reviewer.id):
        raise HTTPException(status_code=409, detail=f"{reviewer.display_name} is already assigned")

    try:
        due_date = datetime.fromisoformat(body.due_date) if body.due_date else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid dueDate: {body.due_date}") from e

    assignment = await repository.save_assignment(
        ReviewAssignment(
            id=new_id(),
            manuscript_id=manuscript_id,
            reviewer_id=reviewer.id,
            status=body.status,
            due_date=due_date,
        )
    )
    logger.info(f"Bot {claims.bot_id} assigned reviewer {reviewer.id} to manuscript {manuscript_id}")
    return assignment_payload(assignment, reviewer)


# ==========================================
# Users
# ==========================================
@router.get("/users")
async def search_users(request: Request, search: str = "", claims: BotTokenClaims = Security(read_manuscript)):
    if not search.strip():
        return {"users": []}
    users = await get_runtime(request).repository.search_users(search.strip())
    return {"users": [user_payload(u) for u in users]}


@router.get("/users/{user_id}")
async def get_user(request: Request, user_id: str, claims: BotTokenClaims = Security(read_manuscript)):
    user = await get_runtime(request).repository.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return user_payload(user)
