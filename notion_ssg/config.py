"""
Configuration management for Notion → static site sync.

Loads the Notion token from the environment (or a .env file) and the
list of databases to export from a JSON or YAML config file.
"""

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_CONFIG_FILES = ("notion.config.json", "notion.config.yaml", "notion.config.yml")
DEFAULT_IMAGES_DIR = "src/images/notion"
DEFAULT_SITE_ROOT = "src"
DEFAULT_WORKERS = 4

_DATABASE_ID = re.compile(r"[0-9a-f]{32}")
_DASHED_UUID = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")

# Config file keys → SourceConfig fields. snake_case spellings are accepted too.
_SOURCE_KEYS = {
    "databaseId": "database_id",
    "id": "database_id",
    "srcDir": "output_dir",
    "srcDirImages": "images_dir",
    "basePath": "base_path",
    "excludeProperties": "exclude_properties",
    "frontMatter": "front_matter",
    "cleanBeforeSync": "clean_before_sync",
}


def extract_database_id(value: str) -> str:
    """
    Normalize a database reference to its 32-character hex ID.

    Examples:
        "0123456789abcdef0123456789abcdef" -> unchanged
        "01234567-89ab-cdef-0123-456789abcdef" -> dashes stripped
        "https://www.notion.so/ws/Blog-0123...cdef?v=..." -> "0123...cdef"
    """
    candidate = str(value or "").strip().lower()

    dashed = _DASHED_UUID.search(candidate)
    if dashed:
        return dashed.group(0).replace("-", "")

    match = _DATABASE_ID.search(candidate)
    if match:
        return match.group(0)

    raise ConfigError(f"Invalid Notion database ID or URL: {value!r}")


@dataclass(frozen=True)
class SlugRule:
    """How a page's slug is derived."""

    from_: str = "title"
    fallback: str = "id"
    lower: bool = True

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SlugRule":
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"'slug' must be a mapping, got {type(data).__name__}")
        return cls(
            from_=str(data.get("from", data.get("from_", "title"))),
            fallback=str(data.get("fallback", "id")),
            lower=data.get("lower", True) is not False,
        )


@dataclass(frozen=True)
class SourceConfig:
    """Export settings for one Notion database."""

    database_id: str
    output_dir: Path
    images_dir: Path
    base_path: str
    layout: str
    slug: SlugRule = field(default_factory=SlugRule)
    permalink: str = ""
    exclude_properties: frozenset = frozenset()
    front_matter: dict = field(default_factory=dict)
    clean_before_sync: bool = True
    images_dir_explicit: bool = False

    @classmethod
    def from_dict(cls, data: Any, root: Path) -> "SourceConfig":
        """
        Build a source from one entry of the config file's ``databases`` list.

        Args:
            data: The raw mapping from the config file.
            root: Project root that relative directories are resolved against.

        Raises:
            ConfigError: If a required field is missing or malformed.
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Each database entry must be a mapping, got {data!r}")

        values = {_SOURCE_KEYS.get(key, key): value for key, value in data.items()}

        for required in ("database_id", "output_dir", "base_path", "layout"):
            if not values.get(required):
                raise ConfigError(
                    f"Missing required field '{required}' in database config {data!r}"
                )

        base_path = str(values["base_path"])
        images_dir = values.get("images_dir")
        exclude = values.get("exclude_properties") or []
        extras = values.get("front_matter") or {}

        if not isinstance(exclude, (list, tuple, set, frozenset)):
            raise ConfigError("'excludeProperties' must be a list of property names")
        if not isinstance(extras, dict):
            raise ConfigError("'frontMatter' must be a mapping")

        return cls(
            database_id=extract_database_id(values["database_id"]),
            output_dir=(root / str(values["output_dir"])).resolve(),
            images_dir=(root / str(images_dir or DEFAULT_IMAGES_DIR)).resolve(),
            base_path=base_path,
            layout=str(values["layout"]),
            slug=SlugRule.from_dict(values.get("slug")),
            permalink=values.get("permalink") or f"{base_path.rstrip('/')}/{{slug}}/",
            exclude_properties=frozenset(str(name) for name in exclude),
            front_matter=dict(extras),
            clean_before_sync=values.get("clean_before_sync", True) is not False,
            images_dir_explicit=bool(images_dir),
        )


@dataclass
class Config:
    """
    Central configuration for a sync run.

    The token comes from the environment; the sources come from the
    config file. Secrets are never read from the config file.
    """

    notion_token: str
    sources: list[SourceConfig] = field(default_factory=list)
    root: Path = field(default_factory=lambda: Path.cwd())
    site_root: Optional[Path] = None
    workers: int = DEFAULT_WORKERS
    debug: bool = False

    def __post_init__(self):
        if isinstance(self.root, str):
            self.root = Path(self.root)
        if self.site_root is None:
            self.site_root = self.root / DEFAULT_SITE_ROOT
        elif isinstance(self.site_root, str):
            self.site_root = self.root / self.site_root
        self.workers = max(1, int(self.workers))

    def validate(self) -> None:
        """
        Check the run can start.

        Raises:
            ConfigError: If the token or the source list is unusable.
        """
        if not self.notion_token:
            raise ConfigError("A Notion token is required")
        if not self.sources:
            raise ConfigError("Config must have a 'databases' list with at least one database")
        for source in self.sources:
            if not isinstance(source, SourceConfig):
                raise ConfigError(f"Malformed source configuration: {source!r}")
            if not (source.database_id and source.output_dir and source.base_path and source.layout):
                raise ConfigError(f"Incomplete source configuration for {source.database_id!r}")

    @classmethod
    def from_dict(cls, data: Any, notion_token: str, root: Path) -> "Config":
        """Build a Config from the parsed config file contents."""
        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a mapping at the top level")

        databases = data.get("databases")
        if not isinstance(databases, list) or not databases:
            raise ConfigError("Config must have a 'databases' list with at least one database")

        return cls(
            notion_token=notion_token,
            sources=[SourceConfig.from_dict(entry, root) for entry in databases],
            root=root,
            site_root=data.get("siteRoot", data.get("site_root")),
            workers=data.get("workers", DEFAULT_WORKERS),
        )

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        env_file: Optional[Path] = None,
        root: Optional[Path] = None,
    ) -> "Config":
        """
        Load configuration from the environment and a config file.

        Args:
            config_path: Explicit config file. If not provided, looks for
                notion.config.json / .yaml / .yml in the project root.
            env_file: Optional path to a .env file.
            root: Project root. Defaults to the current directory.

        Returns:
            Validated Config instance.

        Raises:
            ConfigError: If the token, the config file, or a source is missing or invalid.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        root = Path(root) if root else Path.cwd()

        notion_token = os.getenv("NOTION_TOKEN")
        if not notion_token:
            raise ConfigError(
                "NOTION_TOKEN environment variable is required.\n"
                "Create a Notion integration at https://www.notion.so/my-integrations"
            )

        path = cls._find_config_file(config_path, root)
        data = cls._read_config_file(path)
        config = cls.from_dict(data, notion_token=notion_token, root=root)

        workers = os.getenv("NOTION_SSG_WORKERS")
        if workers:
            try:
                config.workers = max(1, int(workers))
            except ValueError:
                raise ConfigError(f"NOTION_SSG_WORKERS must be an integer, got {workers!r}")
        config.debug = os.getenv("DEBUG", "false").lower() == "true"

        config.validate()
        return config

    @staticmethod
    def _find_config_file(config_path: Optional[Path], root: Path) -> Path:
        if config_path:
            path = Path(config_path)
            if not path.is_absolute():
                path = root / path
            if not path.exists():
                raise ConfigError(f"Config file not found: {config_path}")
            return path

        for name in DEFAULT_CONFIG_FILES:
            candidate = root / name
            if candidate.exists():
                return candidate

        raise ConfigError(
            "No notion.config.json, notion.config.yaml, or notion.config.yml "
            "found in project root"
        )

    @staticmethod
    def _read_config_file(path: Path) -> Any:
        try:
            with open(path, encoding="utf-8") as f:
                if path.suffix == ".json":
                    return json.load(f)
                return yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not parse config file {path}: {e}") from e
