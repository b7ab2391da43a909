"""Settings for an mdpuml run.

Settings come from three layers, later layers winning:

1. Built-in defaults
2. An optional YAML file (``mdpuml.yaml`` in the project root, or ``--config``)
3. Command-line options

Example mdpuml.yaml:

    version: 1
    server_url: https://plantuml.example.com
    markdown_directory: docs
    puml_directory: docs/diagrams
    output_images: true
    image_formats: [png, svg]
    shorten_links: false
    timeout: 60
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mdpuml.errors import ConfigurationError

__all__ = [
    "CONFIG_FILE_NAME",
    "LOCAL_SERVER_URL",
    "PUBLIC_SERVER_URL",
    "ImageFormat",
    "Settings",
    "load_settings",
]

CONFIG_FILE_NAME = "mdpuml.yaml"

# Current config schema version
CURRENT_CONFIG_VERSION = 1

PUBLIC_SERVER_URL = "https://www.plantuml.com/plantuml"
LOCAL_SERVER_URL = "http://localhost:8080"

ImageFormat = Literal["png", "svg"]


class Settings(BaseModel):
    """Validated settings for a single run (or a hot-reload loop)."""

    model_config = ConfigDict(extra="forbid")

    version: int = Field(default=1, description="Config schema version")

    server_url: str | None = Field(
        default=None,
        description="PlantUML server base URL (public server, or localhost when embedding)",
    )
    shortener_url: str = Field(
        default="https://tinyurl.com/api-create.php",
        description="TinyURL-compatible shortening endpoint",
    )
    timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="HTTP request timeout in seconds",
    )

    root_directory: Path = Field(
        default_factory=Path.cwd, description="Project root directory"
    )
    markdown_directory: Path | None = Field(
        default=None, description="Directory containing markdown files (default: root)"
    )
    puml_directory: Path | None = Field(
        default=None, description="Directory containing puml files (default: root)"
    )
    dist_directory: Path | None = Field(
        default=None, description="Image output directory (default: root/dist_puml)"
    )

    embed: bool = Field(
        default=False, description="Embed exported SVGs instead of linking to the server"
    )
    output_images: bool = Field(default=False, description="Export rendered images")
    image_formats: list[ImageFormat] = Field(
        default_factory=lambda: ["png"], description="Formats to export"
    )
    shorten_links: bool = Field(default=True, description="Shorten render URLs")

    respect_gitignore: bool = Field(
        default=True, description="Skip files matched by the gitignore"
    )
    gitignore_path: Path | None = Field(
        default=None, description="Gitignore to honor (default: root/.gitignore)"
    )

    hot_reload: bool = Field(default=False, description="Re-run on an interval")
    interval_seconds: float = Field(
        default=2.0, gt=0, description="Seconds between hot-reload passes"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    @field_validator("image_formats", mode="before")
    @classmethod
    def _expand_both(cls, value: Any) -> Any:
        if value == "both" or value == ["both"]:
            return ["png", "svg"]
        if isinstance(value, str):
            return [value]
        return value

    def resolved(self) -> Settings:
        """Return a copy with directory defaults and embed-mode rules applied.

        Embed mode needs local SVG files, so it forces image export in SVG
        format, link shortening, and a local server unless one is configured.
        """
        root = self.root_directory.expanduser().resolve()

        def _dir(value: Path | None, default: Path) -> Path:
            if value is None:
                return default
            value = value.expanduser()
            return value if value.is_absolute() else (root / value).resolve()

        gitignore_default = self.gitignore_path is None
        updates: dict[str, Any] = {
            "root_directory": root,
            "markdown_directory": _dir(self.markdown_directory, root),
            "puml_directory": _dir(self.puml_directory, root),
            "dist_directory": _dir(self.dist_directory, root / "dist_puml"),
            "gitignore_path": _dir(self.gitignore_path, root / ".gitignore"),
        }

        # An implicit gitignore that does not exist is simply not used
        if gitignore_default and not updates["gitignore_path"].exists():
            updates["respect_gitignore"] = False

        if self.embed:
            updates["server_url"] = self.server_url or LOCAL_SERVER_URL
            updates["image_formats"] = ["svg"]
            updates["output_images"] = True
            updates["shorten_links"] = True
        else:
            updates["server_url"] = self.server_url or PUBLIC_SERVER_URL

        return self.model_copy(update=updates)


def _load_yaml_file(config_path: Path) -> dict[str, Any]:
    """Load and parse a YAML config file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping.
    """
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Error reading {config_path}: {e}") from e

    if raw_data is None:
        return {}
    if not isinstance(raw_data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at the root")
    return raw_data


def _validate_version(data: dict[str, Any], config_path: Path) -> None:
    config_version = data.get("version")
    if config_version is None:
        logger.debug(f"Config file missing 'version' field, assuming version 1: {config_path}")
        data["version"] = 1
    elif not isinstance(config_version, int) or config_version > CURRENT_CONFIG_VERSION:
        raise ConfigurationError(
            f"Config version {config_version} is not supported. "
            f"Maximum supported version is {CURRENT_CONFIG_VERSION}."
        )


def load_settings(
    config_path: Path | str | None = None,
    *,
    root_directory: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Build settings from an optional YAML file plus explicit overrides.

    Resolution order for the file (when ``config_path`` is None):
    1. ``<root_directory>/mdpuml.yaml``
    2. Built-in defaults

    Relative directories in the file are resolved against the file's
    directory when it sets no ``root_directory`` of its own.

    Args:
        config_path: Explicit config file (must exist)
        root_directory: Project root used to find the default config file
        overrides: Values that take precedence over the file (None values ignored)

    Returns:
        Settings with defaults and embed-mode rules applied

    Raises:
        ConfigurationError: If the file or the merged values are invalid.
    """
    data: dict[str, Any] = {}
    root = (root_directory or Path.cwd()).expanduser()

    if config_path is not None:
        resolved_path: Path | None = Path(config_path).expanduser()
    else:
        candidate = root / CONFIG_FILE_NAME
        resolved_path = candidate if candidate.exists() else None

    if resolved_path is not None:
        logger.debug(f"Loading config from {resolved_path}")
        data = _load_yaml_file(resolved_path)
        _validate_version(data, resolved_path)
        base = resolved_path.parent.resolve()
        file_root = Path(str(data.get("root_directory", base))).expanduser()
        data["root_directory"] = str(file_root if file_root.is_absolute() else base / file_root)
    elif root_directory is not None:
        data["root_directory"] = str(root)

    data.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        source = resolved_path or "command line"
        raise ConfigurationError(f"Invalid configuration in {source}: {e}") from e

    return settings.resolved()
