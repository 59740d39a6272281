"""
Read access to mirrored X posts plus the admin-triggered refresh.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from civic.db import DbClient, UserRecord
from civic.dependencies import get_db_client, get_sync_service, require_roles
from civic.routes.deps import DateRange, Pagination, get_date_range, get_pagination
from civic.schemas import ApiResponse, RefreshResult, XUpdateOut, success_response
from civic.types import Role
from civic.x_updates import XUpdateSyncService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[list[XUpdateOut]],
    response_model_exclude_unset=True,
)
def list_x_updates(
    pagination: Pagination = Depends(get_pagination),
    date_range: DateRange = Depends(get_date_range),
    author: Optional[str] = Query(None, min_length=1, max_length=100),
    db: DbClient = Depends(get_db_client),
):
    updates, total = db.list_x_updates(
        author=author.strip() if author else None,
        from_date=date_range.from_date,
        to_date=date_range.to_date,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    data = [XUpdateOut(**update.as_dict()) for update in updates]
    return success_response(data, meta=pagination.meta(total))


@router.post(
    "/refresh",
    response_model=ApiResponse[RefreshResult],
    response_model_exclude_unset=True,
)
def refresh_x_updates(
    user: UserRecord = Depends(require_roles(Role.ADMIN)),
    sync_service: XUpdateSyncService = Depends(get_sync_service),
):
    new_updates = sync_service.run_cycle()
    logger.info(
        "X updates refreshed by user %s: %d new updates", user.id, len(new_updates)
    )
    return success_response(
        RefreshResult(new_updates_count=len(new_updates)),
        message="X updates refreshed successfully",
    )


@router.get(
    "/{update_id}",
    response_model=ApiResponse[XUpdateOut],
    response_model_exclude_unset=True,
)
def get_x_update(
    update_id: int = Path(..., ge=1),
    db: DbClient = Depends(get_db_client),
):
    update = db.get_x_update(update_id)
    if not update:
        raise HTTPException(status_code=404, detail="X update not found")
    return success_response(XUpdateOut(**update.as_dict()))
