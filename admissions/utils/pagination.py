"""Pagination and sorting utilities for list endpoints."""

import math
from dataclasses import dataclass
from typing import Literal

from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery

from admissions.schemas.common import PaginationSummary


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

SortOrder = Literal["asc", "desc"]


@dataclass
class PaginationParams:
    """Pagination and sort parameters from the query string."""
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: str = "createdAt"
    sort_order: SortOrder = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def get_pagination(
    page: int = Query(DEFAULT_PAGE, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description=f"Items per page (max {MAX_LIMIT})"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
) -> PaginationParams:
    """Read `page`, `limit`, `sortBy` and `sortOrder` from the query string."""
    return PaginationParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


def apply_sort(query: SQLAlchemyQuery, columns: dict, pagination: PaginationParams, default: str = "createdAt"):
    """
    Order a query by a whitelisted camelCase sort key.

    Unknown keys fall back to `default`.
    """
    column = columns.get(pagination.sort_by) or columns[default]
    return query.order_by(column.asc() if pagination.sort_order == "asc" else column.desc())


def paginate_query(query: SQLAlchemyQuery, pagination: PaginationParams) -> tuple[list, int]:
    """Return one page of `query` and the unpaged row count."""
    total = query.order_by(None).count()
    items = query.offset(pagination.offset).limit(pagination.limit).all()
    return items, total


def build_summary(total: int, returned: int, pagination: PaginationParams) -> PaginationSummary:
    return PaginationSummary(
        current_page=pagination.page,
        total_pages=math.ceil(total / pagination.limit) if pagination.limit else 0,
        total_items=total,
        has_next=pagination.offset + returned < total,
        has_prev=pagination.page > 1,
    )
