"""Run a full pass: resolve diagrams, export images, rewrite markdown."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

import httpx
from loguru import logger

from mdpuml.cache import RenderCache
from mdpuml.config import Settings
from mdpuml.errors import ConfigurationError
from mdpuml.exporter import ArtifactMap, export_artifacts
from mdpuml.http_client import RenderClient
from mdpuml.logging import log
from mdpuml.resolver import resolve_all
from mdpuml.rewriter import process_document
from mdpuml.scanner import discover, load_ignore_rules

__all__ = ["RunSummary", "run", "run_forever", "run_once"]


@dataclass
class RunSummary:
    """Counts from a completed pass."""

    diagrams: int = 0
    documents: int = 0
    changed: int = 0
    artifacts: int = 0


def _require_dir(path: Path | None, label: str) -> Path:
    if path is None or not path.is_dir():
        raise ConfigurationError(f"That's an invalid {label} folder path: {path}")
    return path


async def run_once(
    settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
) -> RunSummary:
    """Run one pass over the configured directories.

    Args:
        settings: Resolved settings (see ``Settings.resolved``)
        transport: Optional httpx transport override (used by tests)

    Raises:
        ConfigurationError: If the markdown or puml directory is missing.
        DanglingReferenceError: If markdown references an unknown diagram.
        CycleError: If diagrams link to each other in a cycle.
        RenderError: If the render service or shortener fails.
    """
    md_dir = _require_dir(settings.markdown_directory, "md")
    puml_dir = _require_dir(settings.puml_directory, "puml")
    root = settings.root_directory

    rules = (
        load_ignore_rules(settings.gitignore_path)
        if settings.respect_gitignore and settings.gitignore_path is not None
        else []
    )
    md_paths = discover(md_dir, ".md", root=root, rules=rules)
    puml_paths = discover(puml_dir, ".puml", root=root, rules=rules)
    summary = RunSummary(diagrams=len(puml_paths), documents=len(md_paths))

    with log("runner.pass", diagrams=len(puml_paths), documents=len(md_paths)) as span:
        async with RenderClient(
            settings.server_url or "",
            shortener_url=settings.shortener_url,
            timeout=settings.timeout,
            transport=transport,
        ) as client:
            cache = RenderCache(puml_paths, client, shorten=settings.shorten_links)
            await resolve_all(puml_paths, cache)

            artifacts: ArtifactMap = {}
            if settings.output_images:
                artifacts = await export_artifacts(
                    cache,
                    client,
                    root_directory=root,
                    dist_directory=settings.dist_directory or root / "dist_puml",
                    image_formats=settings.image_formats,
                )
                summary.artifacts = sum(len(v) for v in artifacts.values())

        for md_path in md_paths:
            if process_document(md_path, cache, embed=settings.embed, artifacts=artifacts):
                summary.changed += 1

        span.add(changed=summary.changed, artifacts=summary.artifacts)

    logger.info(
        f"Processed {summary.diagrams} diagrams and {summary.documents} markdown files "
        f"({summary.changed} updated)"
    )
    return summary


async def run_forever(
    settings: Settings,
    *,
    iterations: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """Re-run passes every ``settings.interval_seconds``.

    A failing pass is logged and the loop keeps going.

    Args:
        settings: Resolved settings
        iterations: Stop after this many passes (None runs until interrupted)
        transport: Optional httpx transport override (used by tests)
    """
    count = 0
    while iterations is None or count < iterations:
        try:
            await run_once(settings, transport=transport)
        except Exception:
            logger.exception("Pass failed, retrying on next interval")
        count += 1
        if iterations is None or count < iterations:
            await asyncio.sleep(settings.interval_seconds)


def run(settings: Settings) -> RunSummary | None:
    """Run a single pass, or loop forever when hot reload is enabled."""
    if settings.hot_reload:
        asyncio.run(run_forever(settings))
        return None
    return asyncio.run(run_once(settings))
