"""
Default include/exclude patterns for workspace tracking.

This module contains the static configuration used by ignore_patterns.py.
All patterns use gitignore (gitwildmatch) syntax and are matched against
paths relative to the workspace root.
"""

# ═══════════════════════════════════════════════════════════════════════════════
# Include List
# ═══════════════════════════════════════════════════════════════════════════════
# A file is only tracked if it matches at least one of these patterns.

SOURCE_FILE_PATTERNS = [
    # Smart contracts
    "*.sol",
    # TypeScript / JavaScript
    "*.ts",
    "*.tsx",
    "*.js",
    "*.jsx",
    # Python
    "*.py",
    # Project configuration (Cargo.toml, pyproject.toml, foundry.toml)
    "*.toml",
    # Git submodule manifests (foundry dependencies)
    ".gitmodules",
]

# ═══════════════════════════════════════════════════════════════════════════════
# Exclude List
# ═══════════════════════════════════════════════════════════════════════════════
# Always excluded, regardless of .gitignore content.

EXCLUDED_DIRECTORIES = [
    # ═══════════════════════════════════════════
    # Dependencies
    # ═══════════════════════════════════════════
    "node_modules/",
    "**/lib/forge-std/",
    "forge-std/",
    "**/lib/openzeppelin-contracts/",
    # ═══════════════════════════════════════════
    # Version control
    # ═══════════════════════════════════════════
    ".git/",
    # ═══════════════════════════════════════════
    # Build output
    # ═══════════════════════════════════════════
    "dist/",
    "build/",
    "out/",
    "coverage/",
    ".next/",
    ".vscode-test/",
    # ═══════════════════════════════════════════
    # Tests (not useful as assistant context)
    # ═══════════════════════════════════════════
    "__tests__/",
    "*.test.*",
    "*.spec.*",
]

# Names ignored wherever they appear, file or directory
ALWAYS_IGNORED_NAMES = frozenset({".git", ".vscode", ".idea", ".DS_Store"})

# Editor temp/backup files. These are created and deleted rapidly and would
# otherwise race with classification.
EDITOR_TEMP_PATTERNS = [
    "*.tmp",
    "*.tmp.*",  # file.py.tmp.12345.67890
    "*~",  # Vim/Emacs backups
    "*.swp",
    "*.swo",
    ".#*",  # Emacs lock files
]

GITIGNORE_FILENAME = ".gitignore"
