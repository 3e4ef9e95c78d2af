"""Watchlist store behaviour, including persistence across restarts."""

from __future__ import annotations

import asyncio

from app.database import Database
from app.models import MediaIdentity, MediaSummary
from app.services.watchlist import WatchlistStore


def _summary(media_id: int, media_type: str = "movie", **overrides) -> MediaSummary:
    fields = {"id": media_id, "type": media_type, "title": f"Title {media_id}"}
    fields.update(overrides)
    return MediaSummary(**fields)


async def _open_store(database_path) -> tuple[Database, WatchlistStore]:
    database = Database(f"sqlite+aiosqlite:///{database_path}")
    await database.create_all()
    store = WatchlistStore(database.session_factory)
    await store.load()
    return database, store


def test_add_is_idempotent_and_refreshes_summary(tmp_path) -> None:
    async def runner() -> None:
        database, store = await _open_store(tmp_path / "watchlist.db")
        try:
            await store.add(_summary(1, vote_average=6.0))
            await store.add(_summary(2))
            await store.add(_summary(1, vote_average=7.5))

            entries = store.list()
            assert [entry.identity.id for entry in entries] == [1, 2]
            assert entries[0].item.vote_average == 7.5
        finally:
            await database.dispose()

    asyncio.run(runner())


def test_remove_absent_identity_is_a_noop(tmp_path) -> None:
    async def runner() -> None:
        database, store = await _open_store(tmp_path / "watchlist.db")
        try:
            await store.add(_summary(1))
            assert await store.remove(MediaIdentity(id=99, type="movie")) is False
            assert await store.remove(MediaIdentity(id=1, type="series")) is False
            assert store.contains(1)
            assert await store.remove(MediaIdentity(id=1, type="movie")) is True
            assert not store.contains(1)
            assert store.list() == []
        finally:
            await database.dispose()

    asyncio.run(runner())


def test_contains_reflects_net_effect_of_mutations(tmp_path) -> None:
    operations = [
        ("add", 1), ("add", 2), ("remove", 1), ("add", 1), ("add", 1),
        ("remove", 3), ("remove", 2), ("add", 4),
    ]

    async def runner() -> None:
        database, store = await _open_store(tmp_path / "watchlist.db")
        expected: dict[int, None] = {}
        try:
            for operation, media_id in operations:
                if operation == "add":
                    await store.add(_summary(media_id))
                    expected.setdefault(media_id, None)
                else:
                    await store.remove(MediaIdentity(id=media_id, type="movie"))
                    expected.pop(media_id, None)
                for candidate in range(1, 5):
                    assert store.contains(candidate) == (candidate in expected)
            assert [entry.identity.id for entry in store.list()] == list(expected)
        finally:
            await database.dispose()

    asyncio.run(runner())


def test_identity_key_is_composite_but_contains_uses_bare_id(tmp_path) -> None:
    async def runner() -> None:
        database, store = await _open_store(tmp_path / "watchlist.db")
        try:
            await store.add(_summary(10, "movie"))
            await store.add(_summary(10, "series"))

            assert len(store) == 2
            assert store.contains(10)
            assert store.contains_identity(MediaIdentity(id=10, type="series"))

            await store.remove(MediaIdentity(id=10, type="movie"))
            # The series with the same numeric id still answers for the bare id.
            assert store.contains(10)
            assert not store.contains_identity(MediaIdentity(id=10, type="movie"))
        finally:
            await database.dispose()

    asyncio.run(runner())


def test_explicit_identity_tags_the_entry(tmp_path) -> None:
    async def runner() -> None:
        database, store = await _open_store(tmp_path / "watchlist.db")
        try:
            entry = await store.add(_summary(5, "movie"), MediaIdentity(id=5, type="series"))
            assert entry.identity.type == "series"
            assert entry.item.type == "series"
        finally:
            await database.dispose()

    asyncio.run(runner())


def test_toggle_adds_then_removes(tmp_path) -> None:
    async def runner() -> None:
        database, store = await _open_store(tmp_path / "watchlist.db")
        try:
            assert await store.toggle(_summary(3)) is True
            assert store.contains(3)
            assert await store.toggle(_summary(3)) is False
            assert not store.contains(3)
        finally:
            await database.dispose()

    asyncio.run(runner())


def test_entries_survive_restart(tmp_path) -> None:
    database_path = tmp_path / "watchlist.db"

    async def first_session() -> None:
        database, store = await _open_store(database_path)
        try:
            await store.add(_summary(1))
            await store.add(_summary(2, "series"))
            await store.remove(MediaIdentity(id=1, type="movie"))
            await store.add(_summary(3))
            await store.flush()
        finally:
            await database.dispose()

    async def second_session() -> None:
        database, store = await _open_store(database_path)
        try:
            assert [entry.identity for entry in store.list()] == [
                MediaIdentity(id=2, type="series"),
                MediaIdentity(id=3, type="movie"),
            ]
            assert store.contains(2)
            assert not store.contains(1)
        finally:
            await database.dispose()

    asyncio.run(first_session())
    asyncio.run(second_session())


def test_mutation_before_load_keeps_saved_entries(tmp_path) -> None:
    database_path = tmp_path / "watchlist.db"

    async def first_session() -> None:
        database, store = await _open_store(database_path)
        try:
            await store.add(_summary(1))
            await store.add(_summary(2))
        finally:
            await database.dispose()

    async def unloaded_session() -> None:
        database = Database(f"sqlite+aiosqlite:///{database_path}")
        try:
            store = WatchlistStore(database.session_factory)
            await asyncio.gather(
                store.add(_summary(3)),
                store.remove(MediaIdentity(id=1, type="movie")),
            )
            assert store.loaded
        finally:
            await database.dispose()

    async def reader() -> list[int]:
        database, store = await _open_store(database_path)
        try:
            return [entry.identity.id for entry in store.list()]
        finally:
            await database.dispose()

    asyncio.run(first_session())
    asyncio.run(unloaded_session())
    assert asyncio.run(reader()) == [2, 3]


def test_concurrent_mutations_persist_final_state(tmp_path) -> None:
    database_path = tmp_path / "watchlist.db"

    async def writer() -> None:
        database, store = await _open_store(database_path)
        try:
            await asyncio.gather(*(store.add(_summary(media_id)) for media_id in range(1, 6)))
        finally:
            await database.dispose()

    async def reader() -> list[int]:
        database, store = await _open_store(database_path)
        try:
            return [entry.identity.id for entry in store.list()]
        finally:
            await database.dispose()

    asyncio.run(writer())
    assert asyncio.run(reader()) == [1, 2, 3, 4, 5]
