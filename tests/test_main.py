import asyncio
import os

import pytest

import main
from config import get_settings


@pytest.fixture
def settings_env(monkeypatch):
    def apply(location):
        monkeypatch.setenv("DATABASE_PATH", location)
        get_settings.cache_clear()
    yield apply
    get_settings.cache_clear()


def test_startup_creates_store(settings_env, tmp_path):
    location = str(tmp_path / "planner.db")
    settings_env(location)

    assert asyncio.run(main.main()) == 0
    assert os.path.exists(location)


def test_startup_aborts_on_unreachable_store(settings_env, tmp_path):
    settings_env(str(tmp_path / "nope" / "planner.db"))

    assert asyncio.run(main.main()) == 1
