"""
Pytest configuration and fixtures for codesync tests.

Specialized fixtures are organized in the fixtures/ directory:
- fixtures.workspace: temp workspaces, metadata stores, trackers
- fixtures.sync: fake uploaders and token providers
"""

import pytest

# Load fixture modules
pytest_plugins = [
    "tests.fixtures.workspace",
    "tests.fixtures.sync",
]


@pytest.fixture
def sample_typescript_code():
    """Sample TypeScript module with local and package imports."""
    return """
import { readFile } from 'fs';
import { helper } from './helper';
import type { Options } from "./types";

export function main(opts: Options) {
    return helper(opts);
}
"""
