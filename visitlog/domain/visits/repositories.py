"""Repository for visit data access."""
from __future__ import annotations

from advanced_alchemy.filters import LimitOffset, OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository

from visitlog.domain.visits.models import Visit


class VisitRepository(SQLAlchemyAsyncRepository[Visit]):
    """Repository for Visit model."""

    model_type = Visit

    async def list_page(self, page: int, page_size: int) -> tuple[list[Visit], int]:
        """Return one page of visits, most recent first, and the total count.

        Args:
            page: 1-indexed page number.
            page_size: Rows per page.

        Returns:
            The rows of the requested page and the number of rows in the table.
        """
        return await self.list_and_count(
            LimitOffset(limit=page_size, offset=(page - 1) * page_size),
            OrderBy(field_name="visited_at", sort_order="desc"),
        )
