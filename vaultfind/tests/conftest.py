"""Shared fixtures: a throwaway vault on disk and a backend over it."""

import tempfile
from pathlib import Path

import pytest

from vaultfind.engine.bus import EventBus
from vaultfind.engine.config import Config
from vaultfind.engine.vault import VaultBackend


@pytest.fixture
def temp_vault():
    """Create a temporary vault for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        vault_path = Path(tmpdir) / "test_vault"
        vault_path.mkdir()
        yield vault_path.resolve()


@pytest.fixture
def test_config(temp_vault):
    return Config(vault_path=temp_vault)


@pytest.fixture
def backend(test_config):
    return VaultBackend(test_config)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def write_note(temp_vault):
    """Write a note as exact bytes (no newline translation)."""
    def _write(path: str, text: str) -> Path:
        note_path = temp_vault / path
        note_path.parent.mkdir(parents=True, exist_ok=True)
        note_path.write_bytes(text.encode("utf-8"))
        return note_path
    return _write
