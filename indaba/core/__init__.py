"""
Core utilities and configuration for Indaba Care.

This package provides functionality shared by the server and the database
layer: logging configuration, monitoring, errors, security helpers, the
activity feed and AI helpers.
"""

from indaba.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
