"""
Extension points for the migration agent.

Hosts customize selection and editor pacing by passing callables to
the MigrationAgent constructor:

- Query filters receive the assembled ItemQuery and return the query
  to execute. They run in registration order.
- A save-delay policy maps the current item id to the delay the editor
  waits before saving.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from .exceptions import ConfigurationError
from .query.types import ItemQuery
from .types import MigrationOptions

QueryParamsFilter = Callable[[ItemQuery, list[str], MigrationOptions], ItemQuery]
SaveDelayPolicy = Callable[[int], float | int]


def apply_query_filters(
    query: ItemQuery,
    post_types: list[str],
    options: MigrationOptions,
    filters: Sequence[QueryParamsFilter],
) -> ItemQuery:
    """Pass a query through each filter in order.

    Raises:
        ConfigurationError: If a filter returns None
    """
    for query_filter in filters:
        result = query_filter(query, list(post_types), options)
        if result is None:
            name = getattr(query_filter, "__name__", repr(query_filter))
            raise ConfigurationError("query_filters", f"{name} returned None")
        query = result
    return query


def no_save_delay(item_id: int) -> int:
    """Default policy: save immediately."""
    return 0


def fixed_save_delay(delay: float | int) -> SaveDelayPolicy:
    """Build a policy that waits the same delay for every item."""
    if delay < 0:
        raise ConfigurationError("save_delay", "must not be negative", str(delay))

    def policy(item_id: int) -> float | int:
        return delay

    return policy
