"""
Language detection by file extension.

Language ids follow the editor convention (javascriptreact, typescriptreact)
so that ids coming from an editor and ids detected from a path agree.
"""

from pathlib import Path

PLAINTEXT = "plaintext"

EXTENSION_LANGUAGES: dict[str, str] = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "typescriptreact",
    ".py": "python",
    ".pyi": "python",
    ".sol": "solidity",
    ".toml": "toml",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".md": "markdown",
    ".sh": "shell",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
}

# Files identified by name rather than extension
FILENAME_LANGUAGES: dict[str, str] = {
    ".gitmodules": "properties",
    "Dockerfile": "docker",
    "Makefile": "makefile",
}


def detect_language(file_path: str | Path) -> str:
    """
    Detect a file's language id from its name.

    Returns:
        Language id, or "plaintext" when the extension is unknown
    """
    path = Path(file_path)
    if path.name in FILENAME_LANGUAGES:
        return FILENAME_LANGUAGES[path.name]
    return EXTENSION_LANGUAGES.get(path.suffix.lower(), PLAINTEXT)
