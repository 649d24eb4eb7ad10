"""
Shared pieces of the per-language import strategies.

Strategies are lexical: they find import targets with regular expressions and
check candidate files on disk. Nothing here parses or executes code.
"""

from pathlib import Path
from typing import Iterable, Optional, Protocol

LOCAL_PREFIXES = ("./", "../", "/")


class ImportStrategy(Protocol):
    """
    Protocol for one language family.

    extract() returns raw targets in source order (duplicates allowed);
    resolve() maps one target to an existing file, or None.
    """

    languages: frozenset[str]

    def extract(self, content: str) -> list[str]:
        ...

    def resolve(self, source_path: Path, target: str) -> Optional[Path]:
        ...


def is_local_specifier(target: str) -> bool:
    """True for ./x, ../x and /x; False for package names."""
    return target.startswith(LOCAL_PREFIXES)


def existing_file(candidate: Path) -> Optional[Path]:
    try:
        if candidate.is_file():
            return candidate.resolve()
    except OSError:
        pass
    return None


def resolve_with_extensions(base_dir: Path, target: str, extensions: Iterable[str]) -> Optional[Path]:
    """
    Resolve target against base_dir the way bundlers do.

    Order: the target as written if it already has a known extension, then
    <target><ext> and <target>/index<ext> for each extension, then the exact
    path.
    """
    extensions = tuple(extensions)

    if target.endswith(extensions):
        found = existing_file(base_dir / target)
        if found:
            return found

    for ext in extensions:
        found = existing_file(base_dir / f"{target}{ext}") or existing_file(
            base_dir / target / f"index{ext}"
        )
        if found:
            return found

    return existing_file(base_dir / target)


def dedupe(paths: Iterable[Path]) -> list[str]:
    """Unique path strings in first-seen order."""
    seen: dict[str, None] = {}
    for path in paths:
        seen.setdefault(str(path), None)
    return list(seen)
