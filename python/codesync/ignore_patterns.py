"""
.gitignore pattern matching and file filtering.

Three layers decide whether a path is tracked, and all of them must agree:
1. Static include list (SOURCE_FILE_PATTERNS) - the file must match one
2. Static exclude list (EXCLUDED_DIRECTORIES, editor temp files) - must match none
3. The workspace's .gitignore - cached per root, reloaded when its mtime changes

Single glob patterns are compiled with pathspec's gitwildmatch implementation;
the rules below decide which parts of the path each pattern is tried against.
"""

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from pathspec import PathSpec

from codesync.ignore_defaults import (
    ALWAYS_IGNORED_NAMES,
    EDITOR_TEMP_PATTERNS,
    EXCLUDED_DIRECTORIES,
    GITIGNORE_FILENAME,
    SOURCE_FILE_PATTERNS,
)

logger = logging.getLogger("codesync.ignore_patterns")


@dataclass(frozen=True)
class GitignoreRule:
    """One non-comment .gitignore line."""

    pattern: str  # Pattern text without the leading "!"
    negated: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════════════════════


def parse_gitignore(content: str, fold_negations: bool = False) -> list[GitignoreRule]:
    """
    Parse .gitignore content into rules.

    Args:
        content: Raw file content
        fold_negations: If True, "!pattern" becomes a plain "pattern" rule
                        (legacy behavior) instead of a re-include rule

    Returns:
        Rules in file order. Blank lines, comments and lines that fail to
        compile are dropped.
    """
    rules: list[GitignoreRule] = []

    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue

        negated = trimmed.startswith("!")
        pattern = trimmed[1:] if negated else trimmed
        if not pattern:
            continue

        if _compile_pattern(pattern) is None:
            logger.debug(f"Skipping malformed gitignore pattern: {trimmed}")
            continue

        rules.append(GitignoreRule(pattern, negated and not fold_negations))

    return rules


@functools.lru_cache(maxsize=4096)
def _compile_pattern(pattern: str) -> Optional[PathSpec]:
    """Compile a single gitwildmatch pattern (None if it doesn't compile)."""
    try:
        return PathSpec.from_lines("gitwildmatch", [pattern])
    except ValueError:
        # GitWildMatchPatternError subclasses ValueError
        return None


def _match(pattern: str, candidate: str) -> bool:
    spec = _compile_pattern(pattern)
    return spec is not None and spec.match_file(candidate)


# ═══════════════════════════════════════════════════════════════════════════════
# Matching
# ═══════════════════════════════════════════════════════════════════════════════


def matches_pattern(rel_path: str, pattern: str) -> bool:
    """
    Check a workspace-relative path against one gitignore pattern.

    - "dir/"  matches any ancestor directory named dir (only from the root
              when the pattern is rooted, e.g. "/build/")
    - "/name" is anchored to the workspace root
    - "a/b"   is tried against the full path and every path suffix
    - "name"  is tried against the basename and every path segment

    Args:
        rel_path: Path relative to the workspace root, "/"-separated
        pattern: Pattern text (no "!" prefix)
    """
    if not rel_path or not pattern:
        return False

    parts = rel_path.split("/")

    if pattern.endswith("/"):
        dir_pattern = pattern[:-1]
        if not dir_pattern:
            return False
        rooted = dir_pattern.startswith("/")
        for i in range(len(parts) - 1):
            if _match(dir_pattern, "/".join(parts[: i + 1])):
                return True
            if not rooted and _match(dir_pattern, parts[i]):
                return True
        return False

    if pattern.startswith("/"):
        return _match(pattern, rel_path)

    if "/" in pattern:
        return any(_match(pattern, "/".join(parts[i:])) for i in range(len(parts)))

    return any(_match(pattern, part) for part in parts if part)


def is_ignored_by_rules(rel_path: str, rules: Iterable[GitignoreRule]) -> bool:
    """
    Evaluate rules in order; the last matching rule decides.

    A matching negated rule re-includes a path excluded by an earlier rule.
    """
    ignored = False
    for rule in rules:
        if rule.negated != ignored:
            # Rule can't change the outcome
            continue
        if matches_pattern(rel_path, rule.pattern):
            ignored = not rule.negated
    return ignored


# ═══════════════════════════════════════════════════════════════════════════════
# PatternFilter
# ═══════════════════════════════════════════════════════════════════════════════


class PatternFilter:
    """
    Decides whether a path is excluded from tracking.

    The filter is path-based only: it never stats the file itself (the
    tracker skips directories separately). The only I/O is reading and
    stat-ing each workspace's .gitignore.
    """

    def __init__(
        self,
        workspace_roots: Iterable[Path],
        include_patterns: Optional[list[str]] = None,
        exclude_patterns: Optional[list[str]] = None,
        fold_negations: bool = False,
    ):
        """
        Args:
            workspace_roots: Root directories being tracked
            include_patterns: Static include globs (default: SOURCE_FILE_PATTERNS)
            exclude_patterns: Static exclude globs (default: EXCLUDED_DIRECTORIES)
            fold_negations: Treat "!pattern" as "pattern" (legacy behavior)
        """
        self._roots = [Path(root).resolve() for root in workspace_roots]
        self._include_spec = PathSpec.from_lines(
            "gitwildmatch",
            SOURCE_FILE_PATTERNS if include_patterns is None else include_patterns,
        )
        self._exclude_spec = PathSpec.from_lines(
            "gitwildmatch",
            list(EXCLUDED_DIRECTORIES if exclude_patterns is None else exclude_patterns),
        )
        self._temp_spec = PathSpec.from_lines("gitwildmatch", EDITOR_TEMP_PATTERNS)
        self._fold_negations = fold_negations

        # root -> (gitignore mtime, parsed rules)
        self._gitignore_cache: dict[Path, tuple[float, list[GitignoreRule]]] = {}

    @property
    def workspace_roots(self) -> list[Path]:
        return list(self._roots)

    def workspace_root_for(self, path: Path) -> Optional[Path]:
        """Return the tracked root containing path (deepest root wins)."""
        path = Path(path)
        best: Optional[Path] = None
        for root in self._roots:
            if path == root or root in path.parents:
                if best is None or len(root.parts) > len(best.parts):
                    best = root
        return best

    def relative_path(self, path: Path) -> Optional[str]:
        """Unix-style path relative to its workspace root, or None if outside."""
        root = self.workspace_root_for(path)
        if root is None:
            return None
        return Path(path).relative_to(root).as_posix()

    def is_excluded(self, path: Path) -> bool:
        """
        Check whether path should NOT be tracked.

        Paths outside every workspace root are always excluded.
        """
        path = Path(path)
        root = self.workspace_root_for(path)
        if root is None:
            return True

        rel_path = path.relative_to(root).as_posix()
        if rel_path in ("", "."):
            return True

        parts = rel_path.split("/")
        if any(part in ALWAYS_IGNORED_NAMES for part in parts):
            return True

        if self._temp_spec.match_file(parts[-1]):
            return True

        if self._exclude_spec.match_file(rel_path):
            return True

        if is_ignored_by_rules(rel_path, self._rules_for(root)):
            logger.debug(f"{rel_path} ignored by .gitignore")
            return True

        return not self._include_spec.match_file(rel_path)

    def should_descend(self, dir_path: Path) -> bool:
        """
        Check whether discovery should walk into a directory.

        Only exclusion layers apply here; the include list is for files.
        """
        dir_path = Path(dir_path)
        root = self.workspace_root_for(dir_path)
        if root is None:
            return False
        if dir_path == root:
            return True

        rel_dir = dir_path.relative_to(root).as_posix()
        if any(part in ALWAYS_IGNORED_NAMES for part in rel_dir.split("/")):
            return False
        if self._exclude_spec.match_file(f"{rel_dir}/"):
            return False

        # Probe with a child path so directory-only patterns ("dist/") apply
        return not is_ignored_by_rules(f"{rel_dir}/_", self._rules_for(root))

    def _rules_for(self, root: Path) -> list[GitignoreRule]:
        """Return cached .gitignore rules for root, reloading on mtime change."""
        gitignore = root / GITIGNORE_FILENAME
        try:
            mtime = gitignore.stat().st_mtime
        except OSError:
            # Missing .gitignore means no extra patterns
            self._gitignore_cache.pop(root, None)
            return []

        cached = self._gitignore_cache.get(root)
        if cached is not None and cached[0] == mtime:
            return cached[1]

        try:
            content = gitignore.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {gitignore}: {e}")
            return []

        rules = parse_gitignore(content, fold_negations=self._fold_negations)
        self._gitignore_cache[root] = (mtime, rules)
        logger.debug(f"Loaded {len(rules)} gitignore patterns from {gitignore}")
        return rules

    def load_gitignore(self, root: Path) -> list[GitignoreRule]:
        """Force a (re)load of a root's .gitignore and return its rules."""
        root = Path(root).resolve()
        self._gitignore_cache.pop(root, None)
        return self._rules_for(root)

    def invalidate(self, root: Optional[Path] = None) -> None:
        """Drop cached .gitignore rules for one root (or all roots)."""
        if root is None:
            self._gitignore_cache.clear()
        else:
            self._gitignore_cache.pop(Path(root).resolve(), None)

    def loaded_patterns(self) -> dict[Path, list[str]]:
        """Cached pattern lines per root, for debugging."""
        return {
            root: [f"!{r.pattern}" if r.negated else r.pattern for r in rules]
            for root, (_, rules) in self._gitignore_cache.items()
        }

    def is_gitignore(self, path: Path) -> bool:
        """Check whether path is the .gitignore of a tracked root."""
        path = Path(path)
        return path.name == GITIGNORE_FILENAME and path.parent in self._roots
