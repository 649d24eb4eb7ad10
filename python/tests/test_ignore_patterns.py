"""
Test .gitignore pattern matching and the layered PatternFilter.
"""

import os

import pytest
from pathlib import Path

from codesync.ignore_patterns import (
    GitignoreRule,
    PatternFilter,
    is_ignored_by_rules,
    matches_pattern,
    parse_gitignore,
)


@pytest.fixture
def test_workspace(tmp_path):
    """Create a temporary workspace with various file types."""
    workspace = (tmp_path / "ws").resolve()
    (workspace / "src" / "dist").mkdir(parents=True)
    (workspace / "dist").mkdir()
    (workspace / "node_modules" / "pkg").mkdir(parents=True)
    (workspace / ".git").mkdir()

    (workspace / "src" / "main.ts").write_text("export {}")
    (workspace / "src" / "dist" / "app.js").write_text("")
    (workspace / "dist" / "app.js").write_text("")
    (workspace / "node_modules" / "pkg" / "index.js").write_text("")
    (workspace / ".git" / "config").write_text("")
    (workspace / "README.md").write_text("# README")
    return workspace


class TestMatchesPattern:
    """Single-pattern matching rules."""

    def test_directory_pattern_matches_at_root(self):
        assert matches_pattern("node_modules/pkg/index.js", "node_modules/") is True

    def test_directory_pattern_matches_nested(self):
        assert matches_pattern("packages/a/node_modules/pkg/index.js", "node_modules/") is True

    def test_directory_pattern_needs_a_directory(self):
        # A file named like the directory is not matched by "name/"
        assert matches_pattern("src/node_modules", "node_modules/") is False

    def test_bare_pattern_matches_basename(self):
        assert matches_pattern("src/app.log", "*.log") is True

    def test_bare_pattern_matches_any_segment(self):
        assert matches_pattern("src/generated/types.ts", "generated") is True

    def test_rooted_pattern_not_at_root(self):
        assert matches_pattern("src/dist/app.js", "/dist") is False

    def test_rooted_pattern_at_root(self):
        assert matches_pattern("dist/app.js", "/dist") is True

    def test_rooted_directory_pattern(self):
        assert matches_pattern("build/out.js", "/build/") is True
        assert matches_pattern("src/build/out.js", "/build/") is False

    def test_slash_pattern_matches_suffix(self):
        assert matches_pattern("packages/web/src/gen/api.ts", "src/gen") is True

    def test_empty_inputs(self):
        assert matches_pattern("", "*.log") is False
        assert matches_pattern("a.log", "") is False


class TestParseGitignore:

    def test_skips_comments_and_blanks(self):
        rules = parse_gitignore("# comment\n\n*.log\n  \nbuild/\n")
        assert [r.pattern for r in rules] == ["*.log", "build/"]

    def test_negation_is_kept(self):
        rules = parse_gitignore("*.log\n!keep.log\n")
        assert rules == [GitignoreRule("*.log"), GitignoreRule("keep.log", negated=True)]

    def test_negation_folded_in_compat_mode(self):
        rules = parse_gitignore("*.log\n!keep.log\n", fold_negations=True)
        assert rules == [GitignoreRule("*.log"), GitignoreRule("keep.log")]

    def test_last_match_wins(self):
        rules = parse_gitignore("*.log\n!keep.log\n")
        assert is_ignored_by_rules("src/app.log", rules) is True
        assert is_ignored_by_rules("src/keep.log", rules) is False

    def test_later_pattern_reexcludes(self):
        rules = parse_gitignore("*.log\n!keep.log\nsrc/\n")
        assert is_ignored_by_rules("src/keep.log", rules) is True


class TestPatternFilter:
    """The three filter layers together."""

    def test_default_excludes_node_modules(self, test_workspace):
        pf = PatternFilter([test_workspace])
        assert pf.is_excluded(test_workspace / "node_modules" / "pkg" / "index.js") is True

    def test_always_ignored_git_directory(self, test_workspace):
        pf = PatternFilter([test_workspace], include_patterns=["*"])
        assert pf.is_excluded(test_workspace / ".git" / "config") is True

    def test_include_list_filters_extensions(self, test_workspace):
        pf = PatternFilter([test_workspace])
        assert pf.is_excluded(test_workspace / "src" / "main.ts") is False
        assert pf.is_excluded(test_workspace / "README.md") is True

    def test_outside_workspace_is_excluded(self, test_workspace, tmp_path):
        pf = PatternFilter([test_workspace])
        assert pf.is_excluded(tmp_path / "elsewhere.ts") is True

    def test_editor_temp_files_excluded(self, test_workspace):
        pf = PatternFilter([test_workspace])
        assert pf.is_excluded(test_workspace / "src" / "main.ts.tmp.1234") is True
        assert pf.is_excluded(test_workspace / "src" / ".#main.ts") is True

    def test_gitignore_log_pattern(self, test_workspace):
        (test_workspace / ".gitignore").write_text("*.log\n")
        pf = PatternFilter([test_workspace], include_patterns=["*"])
        assert pf.is_excluded(test_workspace / "src" / "app.log") is True

    def test_gitignore_rooted_pattern(self, test_workspace):
        (test_workspace / ".gitignore").write_text("/dist\n")
        # No static excludes, so only the .gitignore decides
        pf = PatternFilter([test_workspace], exclude_patterns=[])
        assert pf.is_excluded(test_workspace / "src" / "dist" / "app.js") is False
        assert pf.is_excluded(test_workspace / "dist" / "app.js") is True

    def test_gitignore_negation_reincludes(self, test_workspace):
        (test_workspace / ".gitignore").write_text("*.js\n!app.js\n")
        pf = PatternFilter([test_workspace], exclude_patterns=[])
        assert pf.is_excluded(test_workspace / "dist" / "app.js") is False
        assert pf.is_excluded(test_workspace / "dist" / "other.js") is True

    def test_gitignore_negation_folded(self, test_workspace):
        (test_workspace / ".gitignore").write_text("*.js\n!app.js\n")
        pf = PatternFilter([test_workspace], exclude_patterns=[], fold_negations=True)
        assert pf.is_excluded(test_workspace / "dist" / "app.js") is True

    def test_missing_gitignore_means_no_patterns(self, test_workspace):
        pf = PatternFilter([test_workspace])
        assert pf.load_gitignore(test_workspace) == []
        assert pf.is_excluded(test_workspace / "src" / "main.ts") is False

    def test_gitignore_reloaded_when_mtime_changes(self, test_workspace):
        gitignore = test_workspace / ".gitignore"
        gitignore.write_text("*.ts\n")
        pf = PatternFilter([test_workspace])
        target = test_workspace / "src" / "main.ts"
        assert pf.is_excluded(target) is True

        gitignore.write_text("*.log\n")
        stat = gitignore.stat()
        os.utime(gitignore, (stat.st_atime, stat.st_mtime + 5))
        assert pf.is_excluded(target) is False

    def test_invalidate_and_loaded_patterns(self, test_workspace):
        (test_workspace / ".gitignore").write_text("*.log\n!keep.log\n")
        pf = PatternFilter([test_workspace])
        pf.load_gitignore(test_workspace)
        assert pf.loaded_patterns() == {test_workspace: ["*.log", "!keep.log"]}

        pf.invalidate(test_workspace)
        assert pf.loaded_patterns() == {}

    def test_should_descend(self, test_workspace):
        (test_workspace / ".gitignore").write_text("generated/\n")
        pf = PatternFilter([test_workspace])
        assert pf.should_descend(test_workspace / "src") is True
        assert pf.should_descend(test_workspace / "node_modules") is False
        assert pf.should_descend(test_workspace / ".git") is False
        assert pf.should_descend(test_workspace / "src" / "generated") is False

    def test_nested_workspace_root_wins(self, test_workspace):
        inner = test_workspace / "src"
        pf = PatternFilter([test_workspace, inner])
        assert pf.workspace_root_for(inner / "main.ts") == inner
        assert pf.relative_path(inner / "main.ts") == "main.ts"

    def test_is_gitignore(self, test_workspace):
        pf = PatternFilter([test_workspace])
        assert pf.is_gitignore(test_workspace / ".gitignore") is True
        assert pf.is_gitignore(test_workspace / "src" / ".gitignore") is False
        assert pf.is_gitignore(Path("/elsewhere/.gitignore")) is False
