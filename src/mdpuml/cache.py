"""In-memory render cache keyed by absolute diagram path.

Every diagram discovered in a pass is registered as PENDING up front. A path
that was never registered is not a managed diagram (for example an external
``$link`` URL), which is how the resolver tells internal and external links
apart.

State of a registered path:
    PENDING -> in flight (asyncio.Future) -> ResolvedEntry

A path reaches ResolvedEntry at most once and never goes back.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from loguru import logger

from mdpuml.encoding import encode_plantuml
from mdpuml.http_client import RenderClient

__all__ = [
    "LINK_FORMAT",
    "PENDING",
    "CacheState",
    "Pending",
    "RenderCache",
    "ResolvedEntry",
]

# Format used for the links written into markdown and $link references
LINK_FORMAT = "svg"


class Pending(enum.Enum):
    """Marker for a registered diagram that has not been resolved yet."""

    PENDING = "pending"


PENDING = Pending.PENDING


@dataclass(frozen=True)
class ResolvedEntry:
    """Final rendered form of a diagram file."""

    path: Path
    text: str
    encoding: str
    url: str


CacheState = Union[Pending, "asyncio.Future[ResolvedEntry]", ResolvedEntry]


class RenderCache:
    """Maps diagram paths to their pending, in-flight or resolved state."""

    def __init__(
        self,
        paths: Iterable[Path],
        client: RenderClient,
        *,
        shorten: bool = True,
    ) -> None:
        """Register every diagram path as pending.

        Args:
            paths: Absolute paths of all diagram files in this pass
            client: Client used to build and shorten render URLs
            shorten: Whether render URLs go through the link shortener
        """
        self.client = client
        self.shorten = shorten
        self._states: dict[Path, CacheState] = {Path(p): PENDING for p in paths}
        self._links: dict[Path, tuple[Path, ...]] = {}

    def __contains__(self, path: object) -> bool:
        return path in self._states

    def __len__(self) -> int:
        return len(self._states)

    def get(self, path: Path) -> CacheState | None:
        """Return the current state of ``path``, or None if it was never registered."""
        return self._states.get(path)

    def entries(self) -> list[tuple[Path, ResolvedEntry]]:
        """Resolved entries in registration order."""
        return [
            (path, state)
            for path, state in self._states.items()
            if isinstance(state, ResolvedEntry)
        ]

    def record_links(self, path: Path, targets: Iterable[Path]) -> None:
        """Remember the diagrams ``path`` links to."""
        self._links[path] = tuple(t for t in targets if t in self._states)

    def find_chain(self, start: Path, goal: Path) -> tuple[Path, ...] | None:
        """Return a chain of recorded links from ``start`` to ``goal``, if any."""
        seen: set[Path] = set()
        todo: list[tuple[Path, ...]] = [(start,)]
        while todo:
            chain = todo.pop()
            if chain[-1] == goal:
                return chain
            if chain[-1] in seen:
                continue
            seen.add(chain[-1])
            todo.extend(chain + (nxt,) for nxt in self._links.get(chain[-1], ()))
        return None

    def begin(self, path: Path) -> asyncio.Future[ResolvedEntry]:
        """Mark a pending path as in flight and return its future."""
        state = self._states.get(path)
        if state is not PENDING:
            raise RuntimeError(f"Cannot start resolving {path}: state is {state!r}")
        future: asyncio.Future[ResolvedEntry] = asyncio.get_running_loop().create_future()
        self._states[path] = future
        return future

    def fail(self, path: Path, error: BaseException) -> None:
        """Propagate a failure to everyone awaiting ``path``."""
        state = self._states.get(path)
        if isinstance(state, asyncio.Future) and not state.done():
            state.set_exception(error)
            # Mark retrieved so an unawaited failure does not warn at shutdown
            state.exception()

    async def resolve(self, path: Path, text: str) -> ResolvedEntry:
        """Encode ``text``, assign a render URL and store the entry for ``path``.

        Raises:
            RenderError: If shortening the URL fails.
        """
        encoded = encode_plantuml(text)
        url = self.client.render_url(LINK_FORMAT, encoded)
        if self.shorten:
            url = await self.client.shorten(url)

        entry = ResolvedEntry(path=path, text=text, encoding=encoded, url=url)
        state = self._states.get(path)
        self._states[path] = entry
        if isinstance(state, asyncio.Future) and not state.done():
            state.set_result(entry)

        logger.debug(f"Resolved {path.name} -> {url}")
        return entry
