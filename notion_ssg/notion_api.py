"""
Thin client over the Notion API used by the exporter.

Covers what a sync run needs from Notion:
- Requests throttled to 3 per second
- Cursor-paged database queries
- Block trees fetched with their children
- Streaming asset downloads
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator, Optional

import requests
from notion_client import Client
from notion_client.errors import APIResponseError
from ratelimit import limits, sleep_and_retry
from rich.console import Console

console = Console()

# Notion API rate limit: 3 requests per second
RATE_LIMIT_CALLS = 3
RATE_LIMIT_PERIOD = 1  # second

# Database query semantics (one data source per database) are those of this version.
NOTION_API_VERSION = "2022-06-28"

DOWNLOAD_TIMEOUT = 30  # seconds
DOWNLOAD_CHUNK_SIZE = 8192


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _file_url(obj: Optional[dict]) -> Optional[str]:
    """URL of a Notion file object (external or Notion-hosted), if any."""
    if not obj:
        return None
    if obj.get("type") == "external":
        return (obj.get("external") or {}).get("url")
    if obj.get("type") == "file":
        return (obj.get("file") or {}).get("url")
    return None


@dataclass
class NotionPage:
    """A database row: its typed properties plus page metadata."""

    id: str
    properties: dict = field(default_factory=dict)
    created_time: Optional[datetime] = None
    last_edited_time: Optional[datetime] = None
    url: str = ""
    icon: Optional[str] = None
    cover: Optional[str] = None

    @property
    def normalized_id(self) -> str:
        """Page ID without dashes, the form used by the reference map."""
        return self.id.replace("-", "").lower()

    @classmethod
    def from_api_response(cls, page: dict) -> "NotionPage":
        """Create NotionPage from API response."""
        # Emoji icons are not images; only file icons are mirrored
        icon = page.get("icon")
        icon_url = _file_url(icon) if icon and icon.get("type") in ("external", "file") else None

        return cls(
            id=page["id"],
            properties=page.get("properties") or {},
            created_time=_parse_time(page.get("created_time")),
            last_edited_time=_parse_time(page.get("last_edited_time")),
            url=page.get("url", ""),
            icon=icon_url,
            cover=_file_url(page.get("cover")),
        )


@dataclass
class NotionBlock:
    """Represents a Notion block."""

    id: str
    type: str
    has_children: bool
    content: dict
    children: list["NotionBlock"] = field(default_factory=list)

    @classmethod
    def from_api_response(cls, block: dict) -> "NotionBlock":
        """Create NotionBlock from API response."""
        block_type = block["type"]

        return cls(
            id=block["id"].replace("-", ""),
            type=block_type,
            has_children=block.get("has_children", False),
            content=block.get(block_type) or {},
        )


class NotionAPI:
    """
    Rate-limited access to databases, block trees and file downloads.

    Every Notion call goes through ``_rate_limited_call``; asset downloads
    go straight to the file host with ``requests``.
    """

    def __init__(self, token: str):
        """
        Initialize the Notion API client.

        Args:
            token: Notion integration token.
        """
        self.client = Client(auth=token, notion_version=NOTION_API_VERSION)
        self._request_count = 0

    @sleep_and_retry
    @limits(calls=RATE_LIMIT_CALLS, period=RATE_LIMIT_PERIOD)
    def _rate_limited_call(self, func, *args, **kwargs) -> Any:
        """Execute a rate-limited API call."""
        self._request_count += 1
        return func(*args, **kwargs)

    def query_database(self, database_id: str) -> list[NotionPage]:
        """
        Get every page of a database.

        Follows ``next_cursor`` until ``has_more`` is false. Each request
        depends on the previous cursor, so this loop is sequential.

        Args:
            database_id: The ID of the database.

        Returns:
            List of NotionPage objects in the order Notion returns them.
        """
        pages = []
        has_more = True
        start_cursor = None

        formatted_id = self._format_id(database_id)

        while has_more:
            body = {"start_cursor": start_cursor} if start_cursor else {}
            try:
                response = self._rate_limited_call(
                    self.client.request,
                    path=f"databases/{formatted_id}/query",
                    method="POST",
                    body=body,
                )
            except APIResponseError as e:
                console.print(f"[red]API Error querying database {database_id}: {e}[/red]")
                raise

            for page in response.get("results", []):
                pages.append(NotionPage.from_api_response(page))

            has_more = response.get("has_more", False)
            start_cursor = response.get("next_cursor")

        return pages

    def get_database_title(self, database_id: str) -> str:
        """
        Get a database's display title.

        Returns:
            The title's plain text, or the database ID when it has none.
        """
        try:
            response = self._rate_limited_call(
                self.client.databases.retrieve,
                database_id=self._format_id(database_id),
            )
        except APIResponseError as e:
            console.print(f"[red]API Error fetching database {database_id}: {e}[/red]")
            raise

        title = "".join(part.get("plain_text", "") for part in response.get("title") or [])
        return title or database_id

    def get_page_blocks(self, page_id: str, recursive: bool = True) -> list[NotionBlock]:
        """
        Get all blocks from a page.

        Args:
            page_id: The Notion page ID.
            recursive: Whether to fetch children recursively.

        Returns:
            List of NotionBlock objects (with children populated if recursive).
        """
        return self._fetch_blocks(page_id, recursive)

    def _fetch_blocks(self, block_id: str, recursive: bool) -> list[NotionBlock]:
        """Recursively fetch blocks."""
        blocks = []
        has_more = True
        start_cursor = None

        formatted_id = self._format_id(block_id)

        while has_more:
            response = self._rate_limited_call(
                self.client.blocks.children.list,
                block_id=formatted_id,
                start_cursor=start_cursor,
            )

            for block_data in response.get("results", []):
                block = NotionBlock.from_api_response(block_data)

                # Child pages are separate documents, not nested content
                if recursive and block.has_children and block.type != "child_page":
                    block.children = self._fetch_blocks(block.id, recursive)

                blocks.append(block)

            has_more = response.get("has_more", False)
            start_cursor = response.get("next_cursor")

        return blocks

    def iter_bytes(self, url: str) -> Iterator[bytes]:
        """
        Stream a remote resource.

        Raises:
            requests.RequestException: On connection errors or non-2xx responses.
        """
        with requests.get(url, timeout=DOWNLOAD_TIMEOUT, stream=True) as response:
            response.raise_for_status()
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    yield chunk

    def _format_id(self, object_id: str) -> str:
        """
        Format a page or database ID for API calls.

        Notion accepts both forms in most places; the dashed UUID form
        is the one it returns, so use it consistently.
        """
        clean_id = object_id.replace("-", "")

        if len(clean_id) == 32:
            return f"{clean_id[:8]}-{clean_id[8:12]}-{clean_id[12:16]}-{clean_id[16:20]}-{clean_id[20:]}"

        return object_id

    @property
    def request_count(self) -> int:
        """Number of API requests made."""
        return self._request_count
