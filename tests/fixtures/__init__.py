# tests/fixtures/__init__.py
"""Shared pytest fixtures for cpt tests.

Available fixtures:
- workflow_db: in-memory engine store, fresh per test
- sqlite_url: URL of an engine store in a temporary SQLite file
"""
