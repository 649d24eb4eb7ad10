"""
Pytest fixtures for codesync tests.

Fixtures are organized by test category:
- workspace.py: temp workspaces, metadata stores, change trackers
- sync.py: fake uploaders, token providers, coordinators
"""
