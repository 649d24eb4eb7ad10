"""
Python import extraction.

`import a.b, c as d` and `from a.b import x` at the start of a line. Relative
imports climb one directory per dot beyond the first. Standard-library names
on a fixed allow-list, and private `_modules`, are never resolved.
"""

import re
from pathlib import Path
from typing import Optional

from codesync.imports.base import existing_file

IMPORT_STATEMENT = re.compile(r"^[ \t]*import[ \t]+([\w. \t,]+)", re.MULTILINE)
FROM_STATEMENT = re.compile(r"^[ \t]*from[ \t]+([\w.]+)[ \t]+import[ \t]+\(?([\w \t,]*)", re.MULTILINE)

STDLIB_MODULES = frozenset(
    {
        "os", "sys", "math", "random", "datetime", "re", "json", "collections",
        "itertools", "functools", "time", "typing", "pathlib", "shutil", "subprocess",
        "argparse", "logging", "io", "csv", "urllib", "http", "socket", "email",
        "unittest", "threading", "multiprocessing", "asyncio", "concurrent",
    }
)  # fmt: skip


def is_stdlib_module(module: str) -> bool:
    if module.startswith("."):
        return False
    top = module.split(".")[0]
    return top in STDLIB_MODULES or top.startswith("_")


def _split_names(names: str) -> list[str]:
    """'a as b, c' -> ['a', 'c']"""
    result = []
    for item in names.split(","):
        words = item.split()
        if words:
            result.append(words[0])
    return result


class PythonImports:
    languages = frozenset({"python"})

    def __init__(self, search_roots: Optional[list[Path]] = None):
        """
        Args:
            search_roots: Extra directories for absolute imports (workspace roots)
        """
        self._search_roots = list(search_roots or [])

    def extract(self, content: str) -> list[str]:
        matches: list[tuple[int, str]] = []

        for m in IMPORT_STATEMENT.finditer(content):
            matches.extend((m.start(), name) for name in _split_names(m.group(1)))

        for m in FROM_STATEMENT.finditer(content):
            module = m.group(1)
            if module.strip(".") == "":
                # from . import a, b - each name may be a sibling module
                matches.extend((m.start(), f"{module}{name}") for name in _split_names(m.group(2)))
            else:
                matches.append((m.start(), module))

        matches.sort()
        return [target for _, target in matches if not is_stdlib_module(target)]

    def resolve(self, source_path: Path, target: str) -> Optional[Path]:
        dots = len(target) - len(target.lstrip("."))
        module_parts = [p for p in target[dots:].split(".") if p]

        if dots:
            base_dir = source_path.parent
            for _ in range(dots - 1):
                base_dir = base_dir.parent
            candidates = [base_dir]
        else:
            candidates = [source_path.parent, *self._search_roots]

        for base_dir in candidates:
            found = self._module_file(base_dir, module_parts)
            if found:
                return found

        # from . import name where name is an attribute of the package
        if dots and len(module_parts) == 1:
            return existing_file(candidates[0] / "__init__.py")
        return None

    @staticmethod
    def _module_file(base_dir: Path, module_parts: list[str]) -> Optional[Path]:
        if not module_parts:
            return existing_file(base_dir / "__init__.py")
        module_path = base_dir.joinpath(*module_parts)
        return existing_file(module_path.with_name(f"{module_path.name}.py")) or existing_file(
            module_path / "__init__.py"
        )
