"""Exception types raised by mdpuml."""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "ConfigurationError",
    "CycleError",
    "DanglingReferenceError",
    "MdPumlError",
    "RenderError",
]


class MdPumlError(Exception):
    """Base class for all mdpuml failures."""


class ConfigurationError(MdPumlError):
    """Raised when settings point at missing inputs or cannot be parsed."""


class DanglingReferenceError(MdPumlError):
    """Raised when a markdown directive names a diagram that was never scanned."""

    def __init__(self, link_path: str, resolved: Path, document: Path) -> None:
        self.link_path = link_path
        self.resolved = resolved
        self.document = document
        super().__init__(
            f"Could not find puml for md link path = {link_path}, "
            f"absolute path = {resolved} (in {document})"
        )


class CycleError(MdPumlError):
    """Raised when $link references form a cycle."""

    def __init__(self, chain: tuple[Path, ...]) -> None:
        self.chain = chain
        super().__init__(
            "Cyclic $link reference: " + " -> ".join(p.name for p in chain)
        )


class RenderError(MdPumlError):
    """Raised when the render service or link shortener fails."""

    def __init__(
        self, message: str, *, status_code: int | None = None, body: bytes = b""
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)
