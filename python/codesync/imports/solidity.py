"""
Solidity import extraction.

Relative imports resolve against the importing file. Package-style imports
(@openzeppelin/contracts/..., forge-std/Test.sol) are looked up by walking up
from the importing file and trying the usual dependency roots at each level:
node_modules/, lib/ and foundry's lib/<package>/src/.
"""

import re
from pathlib import Path
from typing import Optional

from codesync.imports.base import existing_file, is_local_specifier, resolve_with_extensions

EXTENSIONS = (".sol",)

# import "x"; import {A, B as C} from "x"; import * as A from "x"; import "x" as A
IMPORT_STATEMENT = re.compile(r"""\bimport\s+(?:[\w\s{},*]+?\s+from\s+)?["']([^"'\n]+)["']""")


class SolidityImports:
    languages = frozenset({"solidity"})

    def __init__(self, stop_dirs: Optional[list[Path]] = None):
        """
        Args:
            stop_dirs: Directories where the upward search ends (workspace roots)
        """
        self._stop_dirs = {Path(d).resolve() for d in (stop_dirs or [])}

    def extract(self, content: str) -> list[str]:
        return [m.group(1) for m in IMPORT_STATEMENT.finditer(content)]

    def resolve(self, source_path: Path, target: str) -> Optional[Path]:
        if is_local_specifier(target):
            return resolve_with_extensions(source_path.parent, target, EXTENSIONS)
        return self._resolve_package(source_path.parent, target)

    def _resolve_package(self, start_dir: Path, target: str) -> Optional[Path]:
        package, _, rest = target.partition("/")
        if package.startswith("@"):
            scope_pkg, _, rest = rest.partition("/")
            package = f"{package}/{scope_pkg}"

        directory = start_dir
        while True:
            candidates = [
                directory / target,
                directory / "node_modules" / target,
                directory / "lib" / target,
            ]
            if rest:
                candidates.append(directory / "lib" / package / "src" / rest)
            for candidate in candidates:
                found = existing_file(candidate)
                if found:
                    return found

            if directory in self._stop_dirs or directory.parent == directory:
                return None
            directory = directory.parent
