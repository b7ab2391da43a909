"""Discover markdown and PlantUML files, honoring .gitignore patterns."""

from __future__ import annotations

import fnmatch
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

__all__ = ["IgnoreRule", "discover", "is_ignored", "load_ignore_rules", "parse_ignore_rules"]


@dataclass(frozen=True)
class IgnoreRule:
    """A single gitignore pattern."""

    pattern: str
    directory_only: bool = False
    anchored: bool = False
    negate: bool = False

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        """Check whether a root-relative posix path matches this rule."""
        if self.directory_only and not is_dir:
            return False
        if self.anchored or "/" in self.pattern:
            return fnmatch.fnmatchcase(rel_path, self.pattern)
        return fnmatch.fnmatchcase(rel_path.rsplit("/", 1)[-1], self.pattern)


def parse_ignore_rules(lines: Sequence[str]) -> list[IgnoreRule]:
    """Parse gitignore lines into rules, skipping blanks and comments."""
    rules: list[IgnoreRule] = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        directory_only = line.endswith("/")
        line = line.rstrip("/")
        anchored = line.startswith("/")
        line = line.lstrip("/")
        if line:
            rules.append(IgnoreRule(line, directory_only, anchored, negate))
    return rules


def load_ignore_rules(gitignore_path: Path) -> list[IgnoreRule]:
    """Load rules from a .gitignore file; a missing file yields no rules."""
    if not gitignore_path.is_file():
        logger.debug(f"No gitignore at {gitignore_path}")
        return []
    rules = parse_ignore_rules(gitignore_path.read_text(encoding="utf-8").splitlines())
    logger.debug(f"Loaded {len(rules)} ignore rules from {gitignore_path}")
    return rules


def _matches(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def is_ignored(path: Path, root: Path, rules: Sequence[IgnoreRule]) -> bool:
    """Check ``path`` and each of its parent directories against ``rules``.

    Paths outside ``root`` are never ignored.
    """
    if not rules:
        return False
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        return False

    for i in range(1, len(parts)):
        if _matches("/".join(parts[:i]), True, rules):
            return True
    return _matches("/".join(parts), False, rules)


def discover(
    directory: Path,
    suffix: str,
    *,
    root: Path | None = None,
    rules: Sequence[IgnoreRule] = (),
) -> list[Path]:
    """Find files under ``directory`` ending in ``suffix``.

    Args:
        directory: Directory to search recursively
        suffix: File suffix including the dot (e.g. ".puml")
        root: Directory ignore patterns are relative to (defaults to ``directory``)
        rules: Parsed gitignore rules

    Returns:
        Sorted absolute paths of matching files
    """
    directory = directory.resolve()
    root = (root or directory).resolve()
    found = [
        p
        for p in directory.rglob(f"*{suffix}")
        if p.is_file() and not is_ignored(p, root, rules)
    ]
    return sorted(found)
