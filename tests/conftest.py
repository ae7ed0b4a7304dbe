"""
Pytest configuration og shared fixtures.
"""

import os

import pytest

from telemetry_agent.dependencies import reset_singletons


@pytest.fixture(autouse=True)
def clean_singletons():
    """Automatically reset singletons before hver test."""
    reset_singletons()
    yield
    reset_singletons()


@pytest.fixture
def exchange_dir(tmp_path):
    """Watched directory inside a temporary folder."""
    directory = tmp_path / "exchange"
    directory.mkdir()
    return directory


def write_csv(directory, name: str, lines, encoding: str = "shift_jis"):
    """Helper til at oprette delimited test filer."""
    path = directory / name
    with open(path, "w", encoding=encoding, newline="") as f:
        f.write("\r\n".join(lines) + ("\r\n" if lines else ""))
    return path


@pytest.fixture
def make_csv():
    return write_csv


@pytest.fixture
def isolated_cwd(tmp_path, monkeypatch):
    """Run in a temp dir so no real settings.env is picked up."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith(("WATCH_", "TELEMETRY_", "DEFAULT_")):
            monkeypatch.delenv(key, raising=False)
    return tmp_path
