"""
Database Connection and Session Management.

The engine and session factory live in ``indaba.core.database``; this module
re-exports what the API layer needs for dependency injection.
"""

from indaba.core.database import async_session_maker, engine, get_session, init_db

__all__ = ["async_session_maker", "engine", "get_session", "init_db"]
