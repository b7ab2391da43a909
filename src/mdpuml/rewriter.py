"""Rewrite diagram references in markdown files.

A markdown file marks where a diagram should appear with a hidden comment:

    <!--![System overview](./diagrams/system.puml)-->   image
    <!--[System overview](./diagrams/system.puml)-->    hyperlink

On each run the visible markdown immediately before the comment is replaced
with a fresh link or image pointing at the rendered diagram, and the comment
is written back unchanged so the next run can find it again.
"""

from __future__ import annotations

import html
import os
import re
from collections.abc import Callable
from pathlib import Path

from loguru import logger

from mdpuml.cache import RenderCache, ResolvedEntry
from mdpuml.errors import DanglingReferenceError
from mdpuml.exporter import ArtifactMap
from mdpuml.logging import log

__all__ = [
    "DIRECTIVE_RE",
    "process_document",
    "replace_ignoring_code",
    "rewrite_document",
]

# Visible content a previous run may have produced: image-link, hyperlink or <img />
_VISIBLE = (
    r"\[!\[[^\]\n]*\]\([^)\s]*\)\]\([^)\s]*\)"
    r"|\[[^\]\n]*\]\([^)\s]*\)"
    r"|<img [^>\n]*/>"
)

DIRECTIVE_RE = re.compile(
    rf"(?P<visible>{_VISIBLE})?<!--(?P<link>!?\[[^\]]+\])\((?P<path>[^)]+\.puml)\)-->"
)

_CODE_BLOCK_RE = r"```[\s\S]*?```"
_INLINE_CODE_RE = r"`[^\n]*?`"


def _replace_ignoring(pattern: str, text: str, replace: Callable[[str], str]) -> str:
    # A capturing split keeps the matched code segments at odd indices
    parts = re.split(f"({pattern})", text)
    return "".join(part if i % 2 else replace(part) for i, part in enumerate(parts))


def replace_ignoring_code(text: str, replace: Callable[[str], str]) -> str:
    """Apply ``replace`` to every part of ``text`` outside code blocks and spans."""
    return _replace_ignoring(
        _CODE_BLOCK_RE,
        text,
        lambda chunk: _replace_ignoring(_INLINE_CODE_RE, chunk, replace),
    )


def _relative_src(target: Path, md_path: Path) -> str:
    return Path(os.path.relpath(target, md_path.parent)).as_posix()


def rewrite_document(
    md_path: Path,
    text: str,
    cache: RenderCache,
    *,
    embed: bool = False,
    artifacts: ArtifactMap | None = None,
) -> str:
    """Return ``text`` with every diagram directive rewritten.

    Args:
        md_path: Absolute path of the markdown file (directive paths are
            relative to its directory)
        text: Current markdown content
        cache: Resolved render cache
        embed: Emit ``<img>`` elements pointing at exported SVGs instead of
            linking to the render server
        artifacts: Exported files, required for embed mode

    Raises:
        DanglingReferenceError: If a directive names an unknown diagram.
    """
    artifacts = artifacts or {}

    def _rewrite(match: re.Match[str]) -> str:
        link_text = match.group("link")
        link_path = match.group("path")
        puml_path = (md_path.parent / link_path).resolve()
        entry = cache.get(puml_path)
        if not isinstance(entry, ResolvedEntry):
            raise DanglingReferenceError(link_path, puml_path, md_path)

        directive = f"<!--{link_text}({link_path})-->"
        if link_text.startswith("!"):
            if embed:
                alt_text = html.escape(link_text[2:-1].strip(), quote=True)
                svg = artifacts.get("svg", {}).get(puml_path)
                if svg is None or not svg.exists():
                    logger.error(f"Diagram file '{svg}' does not exist")
                src = _relative_src(svg, md_path) if svg is not None else ""
                return f'<img alt="{alt_text}" src="{src}" />{directive}'
            return f"[{link_text}({entry.url})]({entry.url}){directive}"
        return f"{link_text}({entry.url}){directive}"

    return replace_ignoring_code(text, lambda chunk: DIRECTIVE_RE.sub(_rewrite, chunk))


def process_document(
    md_path: Path,
    cache: RenderCache,
    *,
    embed: bool = False,
    artifacts: ArtifactMap | None = None,
) -> bool:
    """Rewrite a markdown file in place.

    Returns:
        True if the file content changed.
    """
    logger.info(f"Processing md file at {md_path}")
    with log("rewriter.process", file=md_path.name) as span:
        original = md_path.read_text(encoding="utf-8")
        updated = rewrite_document(md_path, original, cache, embed=embed, artifacts=artifacts)
        md_path.write_text(updated, encoding="utf-8")
        changed = updated != original
        span.add(changed=changed)
        return changed
