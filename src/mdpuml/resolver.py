"""Resolve $link references between PlantUML files.

A diagram can link to other diagrams with ``$link="other.puml"``. Before a
diagram is encoded, each linked diagram is resolved first and the link is
rewritten to point at its render URL, so clicking an element in the rendered
SVG opens the linked diagram.

Relative ``!include`` directives are inlined so the render server does not
need access to the local filesystem.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from mdpuml.cache import PENDING, RenderCache, ResolvedEntry
from mdpuml.errors import CycleError
from mdpuml.logging import log

__all__ = ["expand_includes", "find_links", "resolve", "resolve_all"]

LINK_RE = re.compile(r"""\$link=["']([^"']+)['"]""", re.MULTILINE)
INCLUDE_RE = re.compile(r"!include (.*)")


def find_links(text: str) -> list[tuple[str, str]]:
    """Return unique ``(directive, target)`` pairs in order of first appearance."""
    seen: dict[str, str] = {}
    for match in LINK_RE.finditer(text):
        seen.setdefault(match.group(0), match.group(1))
    return list(seen.items())


def expand_includes(path: Path, text: str) -> str:
    """Replace relative ``!include`` directives with the included file's text.

    Targets are resolved against the including file's directory. Targets that
    do not exist locally (e.g. ``!include <C4/C4_Container>``) are left as-is.
    Included text is not scanned again.
    """

    def _replace(match: re.Match[str]) -> str:
        target = (path.parent / match.group(1).strip()).resolve()
        if target.is_file():
            return target.read_text(encoding="utf-8")
        logger.debug(f"Include target not found locally, keeping directive: {match.group(0)}")
        return match.group(0)

    return INCLUDE_RE.sub(_replace, text)


async def resolve(
    path: Path,
    cache: RenderCache,
    stack: tuple[Path, ...] = (),
) -> ResolvedEntry | Path:
    """Resolve a diagram and everything it links to.

    Args:
        path: Absolute path of the diagram
        cache: Render cache for this pass
        stack: Diagrams currently being resolved above this one

    Returns:
        The diagram's ResolvedEntry, or ``path`` unchanged when it is not a
        registered diagram.

    Raises:
        CycleError: If ``path`` links back to one of its ancestors.
        RenderError: If encoding or shortening fails.
    """
    if path in stack:
        chain = stack[stack.index(path) :] + (path,)
        raise CycleError(chain)

    state = cache.get(path)
    if state is None:
        return path
    if isinstance(state, ResolvedEntry):
        return state
    if state is not PENDING:
        # In flight on another branch; waiting on it is a deadlock if it
        # already (transitively) links back to the diagram asking for it
        if stack:
            chain = cache.find_chain(path, stack[-1])
            if chain is not None:
                raise CycleError((stack[-1],) + chain)
        return await state

    cache.begin(path)
    try:
        entry = await _resolve_pending(path, cache, stack + (path,))
    except Exception as e:
        cache.fail(path, e)
        raise
    return entry


async def _resolve_pending(
    path: Path, cache: RenderCache, stack: tuple[Path, ...]
) -> ResolvedEntry:
    with log("resolver.resolve", file=path.name, depth=len(stack)) as span:
        data = path.read_text(encoding="utf-8")
        links = find_links(data)
        targets = [(path.parent / target).resolve() for _, target in links]
        cache.record_links(path, targets)

        # Wait for every branch, even after one fails, so nothing outlives the pass
        children = await asyncio.gather(
            *(resolve(t, cache, stack) for t in targets), return_exceptions=True
        )
        for child in children:
            if isinstance(child, BaseException):
                raise child

        for (directive, _), child in zip(links, children):
            if isinstance(child, ResolvedEntry):
                data = data.replace(directive, f'$link="{child.url}"')

        data = expand_includes(path, data)
        entry = await cache.resolve(path, data)
        span.add(links=len(links))
        return entry


async def resolve_all(paths: Iterable[Path], cache: RenderCache) -> list[ResolvedEntry]:
    """Resolve every diagram in ``paths`` one after another."""
    resolved: list[ResolvedEntry] = []
    for p in paths:
        result = await resolve(p, cache)
        if isinstance(result, ResolvedEntry):
            resolved.append(result)
    return resolved
