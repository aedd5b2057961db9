"""Configuration loading for Babbler.

Supports two formats, discovered in the project root:
1. TOML via babbler_config.toml or .babbler.toml
2. JSON via babbler_config.json or .babbler.json
"""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

# Field limits carried over from the column widths of existing deployments
DEFAULT_AUTHOR_SIZE = 32
DEFAULT_CATEGORY_SIZE = 64
DEFAULT_SUB_CATEGORY_SIZE = 64
DEFAULT_TITLE_SIZE = 255


@dataclass
class BabblerConfig:
    """Configuration for a project's entry database."""

    # Project identification
    project_name: str = "unnamed"
    project_root: Path = field(default_factory=Path.cwd)

    # Database file (relative to project_root unless absolute)
    database: str = "babbler.db"

    # Maximum lengths enforced by the entry store
    author_size: int = DEFAULT_AUTHOR_SIZE
    category_size: int = DEFAULT_CATEGORY_SIZE
    sub_category_size: int = DEFAULT_SUB_CATEGORY_SIZE
    title_size: int = DEFAULT_TITLE_SIZE

    # Seconds to wait for the provisioning lock
    lock_timeout: float = 10.0

    def __post_init__(self) -> None:
        for name in ("author_size", "category_size", "sub_category_size", "title_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.lock_timeout <= 0:
            raise ValueError(f"lock_timeout must be positive, got {self.lock_timeout!r}")

    def get_database_path(self) -> Path:
        path = Path(self.database)
        if path.is_absolute():
            return path
        return self.project_root / path

    def field_limits(self) -> dict[str, int]:
        """Map of column name -> maximum length."""
        return {
            "category": self.category_size,
            "sub_category": self.sub_category_size,
            "title": self.title_size,
            "author": self.author_size,
        }


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def dict_to_config(data: dict[str, Any], project_root: Path) -> BabblerConfig:
    """Convert dictionary to BabblerConfig.

    Raises:
        ValueError: If a limit is not a positive integer.
    """
    kwargs: dict[str, Any] = {"project_root": project_root}

    if "project" in data:
        proj = data["project"]
        if "name" in proj:
            kwargs["project_name"] = proj["name"]

    if "database" in data:
        db = data["database"]
        if "path" in db:
            kwargs["database"] = db["path"]
        if "lock_timeout" in db:
            kwargs["lock_timeout"] = float(db["lock_timeout"])

    if "limits" in data:
        limits = data["limits"]
        if "author" in limits:
            kwargs["author_size"] = limits["author"]
        if "category" in limits:
            kwargs["category_size"] = limits["category"]
        if "sub_category" in limits:
            kwargs["sub_category_size"] = limits["sub_category"]
        if "title" in limits:
            kwargs["title_size"] = limits["title"]

    return BabblerConfig(**kwargs)


def find_config_file(project_root: Path) -> Optional[Path]:
    """Find configuration file in project root.

    Search order:
    1. babbler_config.toml
    2. babbler_config.json
    3. .babbler.toml
    4. .babbler.json
    """
    candidates = [
        "babbler_config.toml",
        "babbler_config.json",
        ".babbler.toml",
        ".babbler.json",
    ]

    for name in candidates:
        path = project_root / name
        if path.exists():
            return path

    return None


def load_config(project_root: Path, config_path: Optional[Path] = None) -> BabblerConfig:
    """Load project configuration.

    Args:
        project_root: Root directory of the project
        config_path: Optional explicit path to config file

    Returns:
        BabblerConfig instance
    """
    if config_path is None:
        config_path = find_config_file(project_root)

    if config_path is None:
        # No config file - use defaults
        return BabblerConfig(project_root=project_root)

    suffix = config_path.suffix.lower()

    if suffix == ".toml":
        return dict_to_config(load_toml_config(config_path), project_root)

    elif suffix == ".json":
        return dict_to_config(load_json_config(config_path), project_root)

    else:
        raise ValueError(f"Unsupported config file type: {suffix}")
