"""
Selection query construction.

Turns MigrationOptions into the ItemQuery an engine executes.
"""

from __future__ import annotations

from ..config import AgentConfig, split_csv
from ..types import MigrationOptions
from ..utils import parse_id_list
from .types import ItemQuery, TaxQuery


def resolve_post_types(options: MigrationOptions, config: AgentConfig) -> list[str]:
    """Resolve the type filter, falling back to the configured defaults."""
    post_types = split_csv(options.post_type)
    return post_types or list(config.default_post_types)


def build_item_query(options: MigrationOptions, config: AgentConfig) -> ItemQuery:
    """Build the base selection query, before filters and the id allow-list."""
    query = ItemQuery(
        post_types=resolve_post_types(options, config),
        post_status="publish",
        fields="ids",
        per_page=options.per_page,
        page=options.page,
        ignore_sticky_posts=True,
    )

    if options.catalog:
        query.tax_query.append(
            TaxQuery(taxonomy=config.catalog_taxonomy, terms=[config.catalog_term], field="slug")
        )

    return query


def apply_allow_list(query: ItemQuery, options: MigrationOptions) -> ItemQuery:
    """Restrict the query to the explicit ``only`` ids, if any were given."""
    if options.only:
        query.post_in = parse_id_list(options.only)
    return query
