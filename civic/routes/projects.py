"""
Community project proposals and voting.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status

from civic.db import DbClient, ProjectRecord, UserRecord, VoteRecord
from civic.dependencies import get_current_user, get_db_client
from civic.permissions import ensure_can_modify, is_elevated
from civic.routes.deps import Pagination, get_pagination
from civic.schemas import (
    ApiResponse,
    ProjectCreate,
    ProjectDetailOut,
    ProjectOut,
    ProjectUpdate,
    ProjectVoteOut,
    ProjectVotesOut,
    VoteCountsOut,
    VoteOut,
    VoteRequest,
    VoterOut,
    success_response,
)
from civic.types import ProjectStatus
from civic.voting import VoteCounts, cast_vote, tally_votes

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user)])

PROJECT_NOT_FOUND = "Project not found"


def _get_project_or_404(db: DbClient, project_id: int) -> ProjectRecord:
    project = db.get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail=PROJECT_NOT_FOUND)
    return project


def _counts_out(counts: VoteCounts) -> VoteCountsOut:
    return VoteCountsOut(**counts.as_dict())


def _vote_entries(votes: list[VoteRecord]) -> list[ProjectVoteOut]:
    return [
        ProjectVoteOut(
            vote_type=vote.vote_type,
            user=VoterOut(id=vote.user.id, username=vote.user.username)
            if vote.user
            else None,
        )
        for vote in votes
    ]


@router.post(
    "",
    response_model=ApiResponse[ProjectOut],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
def create_project(
    payload: ProjectCreate,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    project = db.create_project(payload.title, payload.description, user.id)
    logger.info("Project created: %s by user %s", project.title, user.id)
    return success_response(
        ProjectOut(**project.as_dict()), message="Project created successfully"
    )


@router.get(
    "",
    response_model=ApiResponse[list[ProjectOut]],
    response_model_exclude_unset=True,
)
def list_projects(
    pagination: Pagination = Depends(get_pagination),
    project_status: Optional[ProjectStatus] = Query(None, alias="status"),
    proposer: Optional[int] = Query(None, ge=1),
    db: DbClient = Depends(get_db_client),
):
    projects, total = db.list_projects(
        status=project_status,
        proposer_id=proposer,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    vote_types = db.list_vote_types(p.id for p in projects)
    data = [
        ProjectOut(
            **project.as_dict(),
            vote_counts=_counts_out(tally_votes(vote_types.get(project.id, []))),
        )
        for project in projects
    ]
    return success_response(data, meta=pagination.meta(total))


@router.get(
    "/{project_id}",
    response_model=ApiResponse[ProjectDetailOut],
    response_model_exclude_unset=True,
)
def get_project(
    project_id: int = Path(..., ge=1),
    db: DbClient = Depends(get_db_client),
):
    project = _get_project_or_404(db, project_id)
    votes = db.list_votes(project_id)
    return success_response(
        ProjectDetailOut(
            **project.as_dict(),
            vote_counts=_counts_out(tally_votes(v.vote_type for v in votes)),
            votes=_vote_entries(votes),
        )
    )


@router.put(
    "/{project_id}",
    response_model=ApiResponse[ProjectOut],
    response_model_exclude_unset=True,
)
def update_project(
    payload: ProjectUpdate,
    project_id: int = Path(..., ge=1),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    project = _get_project_or_404(db, project_id)
    ensure_can_modify(user, project.proposer_id)

    # Status changes from non-elevated owners are dropped, not rejected.
    new_status = payload.status if is_elevated(user) else None
    updated = db.update_project(
        project_id,
        title=payload.title,
        description=payload.description,
        status=new_status,
    )
    logger.info("Project updated: %s by user %s", updated.title, user.id)
    return success_response(
        ProjectOut(**updated.as_dict()), message="Project updated successfully"
    )


@router.delete(
    "/{project_id}",
    response_model=ApiResponse[None],
    response_model_exclude_unset=True,
)
def delete_project(
    project_id: int = Path(..., ge=1),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    project = _get_project_or_404(db, project_id)
    ensure_can_modify(user, project.proposer_id)
    db.delete_project(project_id)
    logger.info("Project deleted: %s by user %s", project.title, user.id)
    return success_response(message="Project deleted successfully")


@router.post(
    "/{project_id}/vote",
    response_model=ApiResponse[VoteOut],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"description": "Vote updated"}},
)
def vote_on_project(
    payload: VoteRequest,
    response: Response,
    project_id: int = Path(..., ge=1),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    _get_project_or_404(db, project_id)
    vote, created = cast_vote(db, user.id, project_id, payload.vote_type)
    if created:
        logger.info(
            "Vote created: %s on project %s by user %s",
            vote.vote_type.value,
            project_id,
            user.id,
        )
        message = "Vote created successfully"
    else:
        logger.info(
            "Vote updated: %s on project %s by user %s",
            vote.vote_type.value,
            project_id,
            user.id,
        )
        response.status_code = status.HTTP_200_OK
        message = "Vote updated successfully"
    return success_response(VoteOut(**vote.as_dict()), message=message)


@router.get(
    "/{project_id}/votes",
    response_model=ApiResponse[ProjectVotesOut],
    response_model_exclude_unset=True,
)
def get_project_votes(
    project_id: int = Path(..., ge=1),
    db: DbClient = Depends(get_db_client),
):
    _get_project_or_404(db, project_id)
    votes = db.list_votes(project_id)
    return success_response(
        ProjectVotesOut(
            project_id=project_id,
            vote_counts=_counts_out(tally_votes(v.vote_type for v in votes)),
            votes=_vote_entries(votes),
        )
    )
