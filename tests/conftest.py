import asyncio
import json
from pathlib import Path
from typing import List

import pytest
from typer.testing import CliRunner

from swiffcore.domain.events.base import DomainEvent
from swiffcore.domain.models.entities import Entity
from swiffcore.domain.models.errors import PersistenceError
from swiffcore.infrastructure.cli.display import ConsoleDisplay
from swiffcore.infrastructure.config import settings
from swiffcore.infrastructure.persistence.memory_store import InMemoryStore


class FailingStore(InMemoryStore):
    """InMemoryStore whose save fails once fail_on is set and matches."""

    def __init__(self):
        super().__init__()
        self.fail_on = None  # predicate taking the entity, or None
        self.save_calls: List[Entity] = []

    async def save(self, entity: Entity) -> None:
        self.save_calls.append(entity)
        if self.fail_on is not None and self.fail_on(entity):
            raise PersistenceError("save", OSError("disk full"))
        await super().save(entity)


class SlowStore(InMemoryStore):
    """InMemoryStore whose save suspends for a fixed delay."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    async def save(self, entity: Entity) -> None:
        await asyncio.sleep(self.delay)
        await super().save(entity)


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def slow_store():
    return SlowStore(delay=0.01)


@pytest.fixture
def events():
    """Collects domain events; pass ``events.append`` as an event sink."""
    collected: List[DomainEvent] = []
    return collected


@pytest.fixture
def mock_console_display(mocker):
    """Mocks the ConsoleDisplay where main.py builds it."""
    mock = mocker.MagicMock(spec=ConsoleDisplay)
    mocker.patch('swiffcore.main.ConsoleDisplay', return_value=mock)
    return mock


@pytest.fixture
def test_fs(tmp_path: Path):
    """Creates import files for integration tests."""
    base = tmp_path / "integration_fs"
    base.mkdir()
    (base / "people.json").write_text(json.dumps([
        {"id": "p1", "name": "Ada", "email": "ada@example.com"},
        {"id": "p2", "name": "Grace", "email": "grace@example.com"},
    ]))
    (base / "subscriptions.yaml").write_text(
        "- id: s1\n  name: Music\n  price: 9.99\n"
        "- id: s2\n  name: Video\n  price: 12.5\n  billing_cycle: yearly\n"
    )
    (base / "bad_people.json").write_text(json.dumps([
        {"id": "p1", "name": "Ada"},
        {"id": "p2", "name": "   "},
        {"id": "p3", "name": "Linus"},
    ]))
    return base


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch):
    """Points the store at a temporary directory and keeps logging quiet."""
    monkeypatch.setenv("SWIFF_STORAGE_DIR", str(tmp_path / "store"))
    settings.set_config_for_testing({"autosave.debounce_delay": 0.01, "logging.level": "WARNING"})
    yield
    settings.clear_test_config()
