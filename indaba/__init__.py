"""Indaba Care.

Backend for a childcare-coordination platform shared by nannies, parents and
administrators.

High-level architecture
-----------------------

- ``indaba.core`` holds everything that is independent of HTTP: logging and
  monitoring setup, the error hierarchy, password/token security, the
  in-process activity feed, AI helpers and the database layer (entities and
  repositories).
- ``indaba.server`` is the FastAPI application. Routers under
  ``server/api/v1`` validate input with the I/O models in
  ``indaba.core.models.io``, enforce role rules through the dependencies in
  ``server/services`` and talk to the database through an ``AsyncSession``.

Offline clients queue their mutations locally and replay them through the
``/api/v1/sync/operation`` endpoint, which records every replay in a sync log.
"""

__version__ = "0.1.0"
