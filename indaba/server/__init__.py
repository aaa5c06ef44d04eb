"""
Indaba Care Server Package.

This package contains the web server implementation for Indaba Care.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Server configuration, constants and database wiring.
    exception_handlers: Mapping of domain errors to HTTP responses.
    middleware: Request tracing and timing.
    services: Authentication dependencies and shared business logic.
"""
