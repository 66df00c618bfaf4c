"""
Client link building.

Edit links carry the active client marker so the editor can tell, on
page load, that it is mid-migration for that item.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .utils import parse_int_prefix, sanitize_text_field

EDIT_PAGE = "post.php"


def add_query_args(url: str, args: Mapping[str, Any]) -> str:
    """Add query arguments to a URL.

    Existing parameters are kept; same-named ones are replaced.
    """
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update({key: str(value) for key, value in args.items()})
    return urlunsplit(parts._replace(query=urlencode(query)))


def parse_client_marker(value: Any) -> int:
    """Sanitize a raw client marker and coerce it to an item id (0 if invalid)."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ""
    return parse_int_prefix(sanitize_text_field(value))


class ClientLinkBuilder:
    """Builds edit-view links for items in a migration batch."""

    def __init__(self, admin_url: str, client_param: str = "ctb_client") -> None:
        """
        Args:
            admin_url: Base URL of the admin area
            client_param: Query parameter marking the active migration item
        """
        self.admin_url = admin_url
        self.client_param = client_param

    def edit_link(self, item_id: Any) -> str:
        """Return the edit link for an item, or "" for a missing id."""
        if not item_id:
            return ""

        # The edit page sits under the admin path; any base query is kept
        parts = urlsplit(self.admin_url)
        path = parts.path if parts.path.endswith("/") else parts.path + "/"
        base = urlunsplit(parts._replace(path=path + EDIT_PAGE))
        args = {
            "post": item_id,
            "action": "edit",
            self.client_param: item_id,
        }
        return add_query_args(base, args)

    def has_client_param(self, query_params: Mapping[str, Any] | None) -> bool:
        """Whether request query parameters carry a non-zero client marker."""
        if not query_params:
            return False
        return parse_client_marker(query_params.get(self.client_param, "")) != 0
