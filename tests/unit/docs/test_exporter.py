"""Tests for exporting rendered diagrams."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from mdpuml.cache import RenderCache
from mdpuml.errors import RenderError
from mdpuml.exporter import ArtifactMap, export_artifacts, output_path_for


def _export(make_client, paths: list[Path], root: Path, formats: list[str]) -> ArtifactMap:
    async def _run() -> ArtifactMap:
        async with make_client() as client:
            cache = RenderCache(paths, client, shorten=False)
            for path in paths:
                await cache.resolve(path, path.read_text())
            return await export_artifacts(
                cache,
                client,
                root_directory=root,
                dist_directory=root / "dist_puml",
                image_formats=formats,
            )

    return asyncio.run(_run())


@pytest.mark.unit
@pytest.mark.docs
class TestOutputPathFor:
    """Test output_path_for."""

    def test_mirrors_tree_under_dist(self, tmp_path: Path):
        diagram = tmp_path / "docs" / "arch" / "system.puml"
        dist = tmp_path / "dist_puml"

        assert output_path_for(diagram, tmp_path, dist, "png") == dist / "docs" / "arch" / "system.png"

    def test_outside_root_uses_file_name(self, tmp_path: Path):
        diagram = Path("/elsewhere/system.puml")
        dist = tmp_path / "dist_puml"

        assert output_path_for(diagram, tmp_path, dist, "svg") == dist / "system.svg"


@pytest.mark.unit
@pytest.mark.docs
class TestExportArtifacts:
    """Test export_artifacts against a mocked render service."""

    def test_writes_every_format(self, make_client, services, write_file, tmp_path):
        root = tmp_path.resolve()
        a = write_file("a.puml", "A -> B")
        b = write_file("docs/sub/b.puml", "B -> C")

        artifacts = _export(make_client, [a, b], root, ["png", "svg"])

        dist = root / "dist_puml"
        assert artifacts == {
            "png": {a: dist / "a.png", b: dist / "docs" / "sub" / "b.png"},
            "svg": {a: dist / "a.svg", b: dist / "docs" / "sub" / "b.svg"},
        }
        assert (dist / "a.png").read_bytes() == b"<png>"
        assert (dist / "docs" / "sub" / "b.svg").read_bytes() == b"<svg>"
        assert len(services.renders) == 4

    def test_clears_previous_output(self, make_client, write_file, tmp_path):
        root = tmp_path.resolve()
        stale = write_file("dist_puml/old.png", "stale")
        a = write_file("a.puml", "A -> B")

        _export(make_client, [a], root, ["png"])

        assert not stale.exists()
        assert (root / "dist_puml" / "a.png").exists()

    def test_no_content_response_writes_body(self, make_client, services, write_file, tmp_path):
        root = tmp_path.resolve()
        services.status_for_format["svg"] = 400
        a = write_file("defs.puml", "!define X 1")

        artifacts = _export(make_client, [a], root, ["svg"])

        assert artifacts["svg"][a].read_bytes() == b"<svg>error</svg>"

    def test_server_error_raises(self, make_client, services, write_file, tmp_path):
        root = tmp_path.resolve()
        services.status_for_format["png"] = 500
        a = write_file("a.puml", "A -> B")

        with pytest.raises(RenderError) as exc_info:
            _export(make_client, [a], root, ["png"])

        assert exc_info.value.status_code == 500

    def test_missing_output_logged_and_export_continues(
        self, make_client, write_file, tmp_path, log_messages
    ):
        root = tmp_path.resolve()
        a = write_file("a.puml", "A -> B")
        b = write_file("b.puml", "B -> C")

        with patch("mdpuml.exporter.Path.exists", return_value=False):
            artifacts = _export(make_client, [a, b], root, ["png"])

        assert set(artifacts["png"]) == {a, b}
        errors = [m for m in log_messages if "could not be saved" in m]
        assert len(errors) == 2
        assert all("Buffered data: <png>" in m for m in errors)
