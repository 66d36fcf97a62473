import os

import pytest

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")


def fixture_path(name: str) -> str:
    return os.path.join(FIXTURES, name)


def read_fixture(name: str) -> str:
    with open(fixture_path(name), "r", encoding="utf-8") as f:
        return f.read()


@pytest.fixture
def no_config(tmp_path, monkeypatch):
    """Run with a cwd that has no config file above it."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
