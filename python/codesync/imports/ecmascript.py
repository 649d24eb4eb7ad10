"""
JavaScript / TypeScript import extraction.

Covers static imports and re-exports, side-effect imports, dynamic import()
and CommonJS require(). Only local specifiers are resolved; bare package names
(react, @scope/pkg) belong to the registry and are skipped.
"""

import re
from pathlib import Path
from typing import Optional

from codesync.imports.base import is_local_specifier, resolve_with_extensions

EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")

# import x from './a'; import { a, b } from "./a"; import './side-effect'; export * from './a'
STATIC_IMPORT = re.compile(r"""\b(?:import|export)\s+(?:type\s+)?(?:[\w\s{},*$]+?\s+from\s+)?['"]([^'"\n]+)['"]""")
DYNAMIC_IMPORT = re.compile(r"""\bimport\s*\(\s*['"]([^'"\n]+)['"]\s*\)""")
REQUIRE_CALL = re.compile(r"""\brequire\s*\(\s*['"]([^'"\n]+)['"]\s*\)""")


class EcmaScriptImports:
    languages = frozenset({"javascript", "typescript", "javascriptreact", "typescriptreact"})

    def extract(self, content: str) -> list[str]:
        matches = []
        for pattern in (STATIC_IMPORT, DYNAMIC_IMPORT, REQUIRE_CALL):
            matches.extend((m.start(), m.group(1)) for m in pattern.finditer(content))
        matches.sort()
        return [target for _, target in matches if is_local_specifier(target)]

    def resolve(self, source_path: Path, target: str) -> Optional[Path]:
        return resolve_with_extensions(source_path.parent, target, EXTENSIONS)
