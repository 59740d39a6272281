"""
Digital townhall meeting management.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from civic.db import DbClient, TownhallRecord, UserRecord
from civic.dependencies import get_current_user, get_db_client
from civic.permissions import ensure_can_modify, is_elevated
from civic.routes.deps import DateRange, Pagination, get_date_range, get_pagination
from civic.schemas import (
    ApiResponse,
    TownhallCreate,
    TownhallOut,
    TownhallUpdate,
    success_response,
)
from civic.types import TownhallStatus

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user)])

TOWNHALL_NOT_FOUND = "Townhall not found"


def _get_townhall_or_404(db: DbClient, townhall_id: int) -> TownhallRecord:
    townhall = db.get_townhall(townhall_id)
    if not townhall:
        raise HTTPException(status_code=404, detail=TOWNHALL_NOT_FOUND)
    return townhall


@router.post(
    "",
    response_model=ApiResponse[TownhallOut],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
def create_townhall(
    payload: TownhallCreate,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    townhall = db.create_townhall(
        title=payload.title,
        description=payload.description,
        organizer_id=user.id,
        scheduled_at=payload.scheduled_at,
        zoom_link=str(payload.zoom_link) if payload.zoom_link else None,
    )
    logger.info("Townhall created: %s by user %s", townhall.title, user.id)
    return success_response(
        TownhallOut(**townhall.as_dict()), message="Townhall created successfully"
    )


@router.get(
    "",
    response_model=ApiResponse[list[TownhallOut]],
    response_model_exclude_unset=True,
)
def list_townhalls(
    pagination: Pagination = Depends(get_pagination),
    date_range: DateRange = Depends(get_date_range),
    townhall_status: Optional[TownhallStatus] = Query(None, alias="status"),
    organizer: Optional[int] = Query(None, ge=1),
    db: DbClient = Depends(get_db_client),
):
    townhalls, total = db.list_townhalls(
        status=townhall_status,
        organizer_id=organizer,
        from_date=date_range.from_date,
        to_date=date_range.to_date,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    data = [TownhallOut(**townhall.as_dict()) for townhall in townhalls]
    return success_response(data, meta=pagination.meta(total))


@router.get(
    "/{townhall_id}",
    response_model=ApiResponse[TownhallOut],
    response_model_exclude_unset=True,
)
def get_townhall(
    townhall_id: int = Path(..., ge=1),
    db: DbClient = Depends(get_db_client),
):
    townhall = _get_townhall_or_404(db, townhall_id)
    return success_response(TownhallOut(**townhall.as_dict()))


@router.put(
    "/{townhall_id}",
    response_model=ApiResponse[TownhallOut],
    response_model_exclude_unset=True,
)
def update_townhall(
    payload: TownhallUpdate,
    townhall_id: int = Path(..., ge=1),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    townhall = _get_townhall_or_404(db, townhall_id)
    ensure_can_modify(user, townhall.organizer_id)

    updated = db.update_townhall(
        townhall_id,
        title=payload.title,
        description=payload.description,
        scheduled_at=payload.scheduled_at,
        zoom_link=str(payload.zoom_link) if payload.zoom_link else None,
        status=payload.status if is_elevated(user) else None,
    )
    logger.info("Townhall updated: %s by user %s", updated.title, user.id)
    return success_response(
        TownhallOut(**updated.as_dict()), message="Townhall updated successfully"
    )


@router.delete(
    "/{townhall_id}",
    response_model=ApiResponse[None],
    response_model_exclude_unset=True,
)
def delete_townhall(
    townhall_id: int = Path(..., ge=1),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    townhall = _get_townhall_or_404(db, townhall_id)
    ensure_can_modify(user, townhall.organizer_id)
    db.delete_townhall(townhall_id)
    logger.info("Townhall deleted: %s by user %s", townhall.title, user.id)
    return success_response(message="Townhall deleted successfully")
