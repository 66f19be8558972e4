"""
Notion → Static Site Markdown Sync

Mirrors Notion databases into a tree of Markdown files with YAML front
matter, plus a local copy of every referenced image, ready for a static
site generator build.
"""

__version__ = "1.0.0"

from .config import Config, SlugRule, SourceConfig
from .errors import ConfigError, EnumerationError, NotionSSGError
from .sync_engine import SourceResult, SyncEngine, run_sync

__all__ = [
    "Config",
    "ConfigError",
    "EnumerationError",
    "NotionSSGError",
    "SlugRule",
    "SourceConfig",
    "SourceResult",
    "SyncEngine",
    "run_sync",
]
