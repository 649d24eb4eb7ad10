"""
ImportGraphResolver - maps a file's import statements to local files.

Used by the facade to attach imported files to a context request. Resolution
is one level deep; the caller expands recursively with its own visited set.
"""

import logging
from pathlib import Path
from typing import Optional

from codesync.imports.base import ImportStrategy, dedupe
from codesync.imports.ecmascript import EcmaScriptImports
from codesync.imports.python import PythonImports
from codesync.imports.solidity import SolidityImports

logger = logging.getLogger("codesync.imports")


class ImportGraphResolver:
    """
    Dispatches to a strategy by language id.

    Supported: javascript, typescript, javascriptreact, typescriptreact,
    python, solidity. Anything else resolves to no imports.
    """

    def __init__(self, workspace_roots: Optional[list[Path]] = None):
        roots = [Path(r).resolve() for r in (workspace_roots or [])]
        self._strategies: dict[str, ImportStrategy] = {}
        for strategy in (EcmaScriptImports(), PythonImports(roots), SolidityImports(roots)):
            self.register(strategy)

    def register(self, strategy: ImportStrategy) -> None:
        """Add (or replace) the strategy for each of its languages."""
        for language in strategy.languages:
            self._strategies[language] = strategy

    @property
    def supported_languages(self) -> list[str]:
        return sorted(self._strategies)

    def resolve_imports(self, path: Path, content: str, language: str) -> list[str]:
        """
        Absolute paths of the local files imported by path.

        Unresolvable targets are logged at debug level and dropped. Never
        raises; a failing strategy yields an empty list.
        """
        strategy = self._strategies.get(language)
        if strategy is None:
            logger.debug(f"Import resolution not supported for language: {language}")
            return []

        source_path = Path(path).resolve()
        try:
            resolved = []
            for target in strategy.extract(content):
                found = strategy.resolve(source_path, target)
                if found is None:
                    logger.debug(f"Could not resolve import {target!r} from {source_path}")
                elif found != source_path:
                    resolved.append(found)
            return dedupe(resolved)
        except Exception as e:
            logger.error(f"Error resolving imports for {source_path}: {e}", exc_info=True)
            return []
