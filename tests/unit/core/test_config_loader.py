"""Unit tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from mdpuml.config import LOCAL_SERVER_URL, PUBLIC_SERVER_URL, Settings, load_settings
from mdpuml.errors import ConfigurationError


@pytest.mark.unit
@pytest.mark.core
def test_settings_defaults(tmp_path: Path) -> None:
    """Defaults resolve every directory against the root."""
    settings = Settings(root_directory=tmp_path).resolved()
    root = tmp_path.resolve()

    assert settings.server_url == PUBLIC_SERVER_URL
    assert settings.markdown_directory == root
    assert settings.puml_directory == root
    assert settings.dist_directory == root / "dist_puml"
    assert settings.gitignore_path == root / ".gitignore"
    assert settings.image_formats == ["png"]
    assert settings.shorten_links is True
    assert settings.output_images is False
    assert settings.interval_seconds == 2.0


@pytest.mark.unit
@pytest.mark.core
def test_missing_default_gitignore_disables_filtering(tmp_path: Path) -> None:
    settings = Settings(root_directory=tmp_path).resolved()
    assert settings.respect_gitignore is False

    (tmp_path / ".gitignore").write_text("build/\n")
    settings = Settings(root_directory=tmp_path).resolved()
    assert settings.respect_gitignore is True


@pytest.mark.unit
@pytest.mark.core
def test_explicit_gitignore_kept_even_if_missing(tmp_path: Path) -> None:
    settings = Settings(root_directory=tmp_path, gitignore_path=Path("custom.ignore")).resolved()

    assert settings.respect_gitignore is True
    assert settings.gitignore_path == tmp_path.resolve() / "custom.ignore"


@pytest.mark.unit
@pytest.mark.core
def test_embed_forces_svg_export_and_local_server(tmp_path: Path) -> None:
    settings = Settings(
        root_directory=tmp_path,
        embed=True,
        image_formats=["png"],
        shorten_links=False,
    ).resolved()

    assert settings.server_url == LOCAL_SERVER_URL
    assert settings.image_formats == ["svg"]
    assert settings.output_images is True
    assert settings.shorten_links is True


@pytest.mark.unit
@pytest.mark.core
def test_embed_keeps_explicit_server(tmp_path: Path) -> None:
    settings = Settings(
        root_directory=tmp_path, embed=True, server_url="http://puml:9000"
    ).resolved()
    assert settings.server_url == "http://puml:9000"


@pytest.mark.unit
@pytest.mark.core
@pytest.mark.parametrize(
    ("value", "expected"),
    [("both", ["png", "svg"]), ("svg", ["svg"]), (["png", "svg"], ["png", "svg"])],
)
def test_image_formats_accepts_both(value: object, expected: list[str]) -> None:
    assert Settings(image_formats=value).image_formats == expected


@pytest.mark.unit
@pytest.mark.core
def test_invalid_image_format_rejected() -> None:
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        Settings(image_formats=["gif"])


@pytest.mark.unit
@pytest.mark.core
def test_load_settings_from_default_file(tmp_path: Path) -> None:
    """mdpuml.yaml in the root is picked up and relative paths use its directory."""
    (tmp_path / "mdpuml.yaml").write_text(
        yaml.dump(
            {
                "version": 1,
                "markdown_directory": "docs",
                "output_images": True,
                "image_formats": "both",
                "timeout": 60,
            }
        )
    )

    settings = load_settings(root_directory=tmp_path)

    assert settings.root_directory == tmp_path.resolve()
    assert settings.markdown_directory == tmp_path.resolve() / "docs"
    assert settings.output_images is True
    assert settings.image_formats == ["png", "svg"]
    assert settings.timeout == 60.0


@pytest.mark.unit
@pytest.mark.core
def test_overrides_win_over_file(tmp_path: Path) -> None:
    config_path = tmp_path / "custom.yaml"
    config_path.write_text(yaml.dump({"server_url": "http://file", "shorten_links": True}))

    settings = load_settings(
        config_path,
        overrides={"server_url": "http://cli", "shorten_links": False, "embed": None},
    )

    assert settings.server_url == "http://cli"
    assert settings.shorten_links is False
    assert settings.embed is False


@pytest.mark.unit
@pytest.mark.core
def test_explicit_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_settings(tmp_path / "nope.yaml")


@pytest.mark.unit
@pytest.mark.core
def test_invalid_yaml_raises(tmp_path: Path) -> None:
    config_path = tmp_path / "mdpuml.yaml"
    config_path.write_text("embed: [unclosed\n")

    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_settings(config_path)


@pytest.mark.unit
@pytest.mark.core
def test_unknown_key_raises(tmp_path: Path) -> None:
    config_path = tmp_path / "mdpuml.yaml"
    config_path.write_text(yaml.dump({"not_a_setting": 1}))

    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        load_settings(config_path)


@pytest.mark.unit
@pytest.mark.core
def test_future_version_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "mdpuml.yaml"
    config_path.write_text(yaml.dump({"version": 99}))

    with pytest.raises(ConfigurationError, match="not supported"):
        load_settings(config_path)
