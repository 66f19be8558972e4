"""Exceptions raised by the sync engine."""


class NotionSSGError(Exception):
    """Base class for all sync errors."""


class ConfigError(NotionSSGError, ValueError):
    """Missing or malformed configuration. Raised before any remote call."""


class EnumerationError(NotionSSGError):
    """
    Listing a source's pages (or its metadata) failed.

    Fatal for the whole run: the reference map would be incomplete.
    """

    def __init__(self, source_id: str, cause: Exception):
        self.source_id = source_id
        self.cause = cause
        super().__init__(f"Failed to enumerate database {source_id}: {cause}")
