"""
Paginator for public link listings.

Turns a 1-indexed (page, per_page) request into a bounded offset query over
visible links (newest first) and reports whether another page exists.

End-of-data detection asks the store for one row more than the page size:
if that extra row comes back there is a next page. This keeps the contract
independent of a total COUNT(*) and stays correct while new links are created.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..config import settings
from ..errors import ValidationFailed
from ..models import Link
from ..storage.base import BaseStorage


@dataclass(frozen=True)
class Page:
    items: List[Link] = field(default_factory=list)
    next_page: Optional[int] = None
    page: int = 1
    per_page: int = 10


class Paginator:
    def __init__(
        self,
        storage: BaseStorage,
        default_per_page: Optional[int] = None,
        max_per_page: Optional[int] = None,
    ):
        self.storage = storage
        self.default_per_page = default_per_page or settings.DEFAULT_PER_PAGE
        self.max_per_page = max_per_page or settings.MAX_PER_PAGE

    def paginate(self, page: int = 1, per_page: Optional[int] = None) -> Page:
        """
        Return one window of visible links.

        Args:
            page (int): 1-indexed page number.
            per_page (Optional[int]): Page size; defaults to `default_per_page`,
                capped at `max_per_page`.

        Returns:
            Page: items (at most per_page) and next_page (None on the last page
            or past the end of the data).

        Raises:
            ValidationFailed: If page or per_page is below 1.
        """
        if per_page is None:
            per_page = self.default_per_page

        errors = []
        if page < 1:
            errors.append("Page must be a positive integer")
        if per_page < 1:
            errors.append("Per page must be a positive integer")
        if errors:
            raise ValidationFailed(errors)

        per_page = min(per_page, self.max_per_page)
        rows = self.storage.list_visible(offset=(page - 1) * per_page, limit=per_page + 1)
        has_more = len(rows) > per_page
        return Page(
            items=rows[:per_page],
            next_page=page + 1 if has_more else None,
            page=page,
            per_page=per_page,
        )
