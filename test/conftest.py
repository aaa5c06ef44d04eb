from __future__ import annotations

import os
from pathlib import Path

import httpx
import pytest
from dotenv import load_dotenv

TEST_ROOT = Path(__file__).resolve().parent

load_dotenv(TEST_ROOT / ".env", override=False)

# indaba reads its settings at import time, so the environment must be complete before collection.
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-at-least-32-characters-long")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGFIRE_ENABLED", "false")
# AI helpers must take their rule-based path in tests.
os.environ.pop("OPENAI_API_KEY", None)

LOCAL_PREFIXES = ("http://localhost", "http://127.0.0.1", "http://test", "http://mock", "https://mock", "/")


@pytest.fixture(autouse=True)
def _block_external_http(monkeypatch: pytest.MonkeyPatch):
    """Fail any test that lets httpx reach beyond the in-process ASGI app."""
    real_async_request = httpx.AsyncClient.request
    real_sync_request = httpx.Client.request

    def _check(url) -> None:
        if not str(url).startswith(LOCAL_PREFIXES):
            raise RuntimeError(f"External HTTP blocked in tests: {url}")

    async def guarded_async(self, method, url, *args, **kwargs):
        _check(url)
        return await real_async_request(self, method, url, *args, **kwargs)

    def guarded_sync(self, method, url, *args, **kwargs):
        _check(url)
        return real_sync_request(self, method, url, *args, **kwargs)

    monkeypatch.setattr(httpx.AsyncClient, "request", guarded_async)
    monkeypatch.setattr(httpx.Client, "request", guarded_sync)
