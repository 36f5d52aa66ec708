import asyncio

import pytest

from db import acquire_handle


@pytest.fixture
def location(tmp_path):
    """Path to a store that does not exist yet"""
    return str(tmp_path / "test.db")


@pytest.fixture
def handle(location):
    h = asyncio.run(acquire_handle(location))
    yield h
    h.dispose()


@pytest.fixture
def session(handle):
    s = handle.session()
    try:
        yield s
    finally:
        s.rollback()
        s.close()
