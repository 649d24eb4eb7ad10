"""
Lexical import resolution for context assembly.
"""

from .resolver import ImportGraphResolver

__all__ = ["ImportGraphResolver"]
