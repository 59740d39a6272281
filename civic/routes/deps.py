"""
Query-string dependencies shared by the list endpoints.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, Query

from civic.schemas import PageMeta, to_utc


@dataclass
class Pagination:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> PageMeta:
        return PageMeta(
            page=self.page,
            limit=self.limit,
            total=total,
            pages=math.ceil(total / self.limit),
        )


def get_pagination(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> Pagination:
    return Pagination(page=page, limit=limit)


@dataclass
class DateRange:
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None


def get_date_range(
    from_date: Optional[datetime] = Query(None),
    to_date: Optional[datetime] = Query(None),
) -> DateRange:
    from_date = to_utc(from_date) if from_date else None
    to_date = to_utc(to_date) if to_date else None
    if from_date and to_date and from_date >= to_date:
        raise HTTPException(status_code=400, detail="From date must be before to date")
    return DateRange(from_date=from_date, to_date=to_date)
