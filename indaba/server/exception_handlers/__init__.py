"""
Exception handlers for the Indaba Care server.

This package turns domain errors into their HTTP responses and logs any
unhandled exception. ``setup_exception_handlers`` registers them with the
FastAPI application.
"""

from .global_handler import setup_exception_handlers

__all__ = ["setup_exception_handlers"]
