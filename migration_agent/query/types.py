"""
Item query types.

Describes the selection query sent to an ItemQueryEngine and the
content records the bundled engines select from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class TaxQuery:
    """Restricts selection to items carrying one of the given terms."""

    taxonomy: str
    terms: list[str]
    field: str = "slug"

    def to_dict(self) -> dict[str, Any]:
        return {"taxonomy": self.taxonomy, "field": self.field, "terms": list(self.terms)}


@dataclass
class ItemQuery:
    """Selection query for items to migrate.

    Attributes:
        post_types: Types to select
        post_status: Only items with this status are selected
        fields: What the engine returns; only "ids" is supported
        per_page: Page size, non-positive for all matches
        page: 1-based page number
        ignore_sticky_posts: When False, sticky items sort ahead of the rest
        tax_query: Optional taxonomy restrictions, all of which must match
        post_in: Optional explicit id allow-list
    """

    post_types: list[str]
    post_status: str = "publish"
    fields: str = "ids"
    per_page: int = -1
    page: int = 1
    ignore_sticky_posts: bool = True
    tax_query: list[TaxQuery] = field(default_factory=list)
    post_in: list[int] | None = None

    @property
    def offset(self) -> int:
        """Number of matches skipped before the requested page."""
        if self.per_page <= 0:
            return 0
        return max(self.page - 1, 0) * self.per_page

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        data: dict[str, Any] = {
            "post_type": list(self.post_types),
            "post_status": self.post_status,
            "fields": self.fields,
            "posts_per_page": self.per_page,
            "paged": self.page,
            "ignore_sticky_posts": self.ignore_sticky_posts,
        }
        if self.tax_query:
            data["tax_query"] = [t.to_dict() for t in self.tax_query]
        if self.post_in is not None:
            data["post__in"] = list(self.post_in)
        return data


@dataclass
class QueryResult:
    """Result of an item query.

    Attributes:
        ids: Matching item ids for the requested page, in processing order
        found: Total number of matches across all pages
    """

    ids: list[int] = field(default_factory=list)
    found: int = 0

    def pages(self, per_page: int) -> int:
        """Number of pages the matches span for a page size."""
        if self.found <= 0:
            return 0
        size = per_page if per_page > 0 else self.found
        return -(-self.found // size)


@dataclass
class ContentItem:
    """A content entity that can be selected for migration.

    ``published`` is stored in UTC; naive values are read as UTC.
    """

    id: int
    post_type: str = "post"
    status: str = "publish"
    published: datetime = field(default_factory=lambda: datetime.now(UTC))
    sticky: bool = False
    terms: dict[str, list[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Naive timestamps are taken as UTC
        if self.published.tzinfo is None:
            self.published = self.published.replace(tzinfo=UTC)
        else:
            self.published = self.published.astimezone(UTC)

    def has_term(self, taxonomy: str, slugs: list[str]) -> bool:
        """Whether the item carries any of the slugs in the taxonomy."""
        return any(slug in self.terms.get(taxonomy, []) for slug in slugs)
