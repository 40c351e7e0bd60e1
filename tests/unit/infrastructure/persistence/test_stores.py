import asyncio
from datetime import datetime

import diskcache as dc
import pytest

from swiffcore.domain.models.entities import Person, Subscription, Transaction
from swiffcore.domain.models.errors import EntityNotFoundError, PersistenceError
from swiffcore.infrastructure.persistence.disk_store import DiskStore
from swiffcore.infrastructure.persistence.memory_store import InMemoryStore


@pytest.fixture
def disk_store(tmp_path):
    store = DiskStore(tmp_path / "store")
    yield store
    store.close()


@pytest.fixture(params=["memory", "disk"])
def any_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryStore()
    else:
        store = DiskStore(tmp_path / "store")
        yield store
        store.close()


def test_save_and_fetch(any_store):
    person = Person(name="Ada", email="ada@example.com", id="p1")

    async def scenario():
        await any_store.save(person)
        return await any_store.fetch("person", "p1")

    assert asyncio.run(scenario()) == person


def test_fetch_missing_returns_none(any_store):
    assert asyncio.run(any_store.fetch("person", "nope")) is None


def test_collections_are_independent(any_store):
    async def scenario():
        await any_store.save(Person(name="Ada", id="x"))
        await any_store.save(Subscription(name="Music", id="x"))
        return (
            await any_store.fetch_all("person"),
            await any_store.fetch_all("subscription"),
            await any_store.fetch_all("transaction"),
        )

    people, subscriptions, transactions = asyncio.run(scenario())
    assert [p.name for p in people] == ["Ada"]
    assert [s.name for s in subscriptions] == ["Music"]
    assert transactions == []


def test_save_replaces_existing(any_store):
    async def scenario():
        await any_store.save(Person(name="Ada", id="p1"))
        await any_store.save(Person(name="Ada Lovelace", id="p1"))
        return await any_store.fetch_all("person")

    assert [p.name for p in asyncio.run(scenario())] == ["Ada Lovelace"]


def test_delete(any_store):
    async def scenario():
        await any_store.save(Person(name="Ada", id="p1"))
        await any_store.delete("person", "p1")
        return await any_store.fetch("person", "p1")

    assert asyncio.run(scenario()) is None


def test_delete_missing_raises(any_store):
    with pytest.raises(EntityNotFoundError):
        asyncio.run(any_store.delete("person", "nope"))


def test_clear_one_kind_or_all(any_store):
    async def scenario():
        await any_store.save(Person(name="Ada", id="p1"))
        await any_store.save(Subscription(name="Music", id="s1"))
        await any_store.clear("person")
        after_one = (await any_store.fetch_all("person"), await any_store.fetch_all("subscription"))
        await any_store.clear()
        return after_one, await any_store.fetch_all("subscription")

    (people, subscriptions), remaining = asyncio.run(scenario())
    assert people == []
    assert len(subscriptions) == 1
    assert remaining == []


def test_memory_store_isolates_caller_mutation():
    store = InMemoryStore()
    person = Person(name="Ada", id="p1")

    async def scenario():
        await store.save(person)
        person.name = "Changed"
        fetched = await store.fetch("person", "p1")
        fetched.name = "Changed again"
        return await store.fetch("person", "p1")

    assert asyncio.run(scenario()).name == "Ada"


def test_disk_store_survives_new_instance(tmp_path):
    when = datetime(2024, 5, 1, 12, 30)
    transaction = Transaction(title="Rent", amount=-900.0, date=when, id="t1")

    first = DiskStore(tmp_path / "store")
    asyncio.run(first.save(transaction))
    first.close()

    second = DiskStore(tmp_path / "store")
    try:
        fetched = asyncio.run(second.fetch("transaction", "t1"))
    finally:
        second.close()
    assert fetched == transaction
    assert fetched.date == when


def test_disk_store_wraps_backend_errors(disk_store, mocker):
    mocker.patch.object(dc.Cache, "set", side_effect=OSError("read-only file system"))

    with pytest.raises(PersistenceError) as exc_info:
        asyncio.run(disk_store.save(Person(name="Ada")))

    assert isinstance(exc_info.value.underlying, OSError)
    assert "Failed to save data" in str(exc_info.value)


def test_disk_store_unwritable_root(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(PersistenceError):
        DiskStore(blocker / "store")
