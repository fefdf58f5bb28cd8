"""Global pytest configuration."""

from __future__ import annotations

import asyncio
import inspect
import logging

import pytest


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):  # type: ignore[override]
    """Run ``async def`` tests to completion on a fresh event loop."""
    if not inspect.iscoroutinefunction(pyfuncitem.obj):
        return None
    testargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
    asyncio.run(pyfuncitem.obj(**testargs))
    return True


@pytest.fixture(autouse=True)
def _quiet_httpx():
    """httpx logs every request at INFO; keep test output to our own loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    yield


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio support")
