"""Unit tests for the database layer in indaba/core/database.

Covers engine and session helpers, the milestone seed and the repositories.
All tests use in-memory SQLite so no database service is required.
"""
