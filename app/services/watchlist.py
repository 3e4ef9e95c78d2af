"""Persistent watchlist of user-saved titles."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import KeyValueRecord
from ..models import MediaIdentity, MediaSummary, WatchlistEntry

logger = logging.getLogger(__name__)


class WatchlistStore:
    """Ordered set of saved titles, keyed by ``(id, type)``.

    Reads and writes against the in-memory entries are immediate; every
    mutation then serializes the full entry list into a single key-value
    row. Mutations load the persisted list first if :meth:`load` has not
    run yet, so they never overwrite saved entries. Call :meth:`flush` on
    teardown.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        key: str = "watchlist",
    ):
        self._session_factory = session_factory
        self._key = key
        self._entries: dict[tuple[int, str], WatchlistEntry] = {}
        self._write_lock = asyncio.Lock()
        self._loaded = False
        self._load_lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        """Replace the in-memory entries with the persisted list."""

        async with self._session_factory() as session:
            record = await session.get(KeyValueRecord, self._key)
            payload = record.payload if record is not None else None

        entries: dict[tuple[int, str], WatchlistEntry] = {}
        if isinstance(payload, list):
            for raw in payload:
                try:
                    entry = WatchlistEntry.model_validate(raw)
                except ValidationError as exc:
                    logger.warning("Skipping unreadable watchlist entry: %s", exc)
                    continue
                entries[self._entry_key(entry.identity)] = entry
        elif payload is not None:
            logger.warning("Ignoring unexpected watchlist payload of type %s", type(payload).__name__)

        self._entries = entries
        self._loaded = True
        logger.info("Loaded %s watchlist entries", len(entries))

    async def add(
        self, item: MediaSummary, identity: MediaIdentity | None = None
    ) -> WatchlistEntry:
        """Save a title, or refresh its stored summary if already present."""

        await self._ensure_loaded()
        resolved = identity or item.identity
        if item.identity != resolved:
            item = item.model_copy(update={"id": resolved.id, "type": resolved.type})

        key = self._entry_key(resolved)
        existing = self._entries.get(key)
        if existing is not None:
            entry = existing.model_copy(update={"item": item})
        else:
            entry = WatchlistEntry(identity=resolved, item=item, added_at=datetime.utcnow())
        # Reassigning an existing key keeps its insertion position.
        self._entries[key] = entry
        await self._persist()
        return entry

    async def remove(self, identity: MediaIdentity) -> bool:
        """Remove a title. Returns ``False`` when it was not saved."""

        await self._ensure_loaded()
        removed = self._entries.pop(self._entry_key(identity), None)
        if removed is None:
            return False
        await self._persist()
        return True

    async def toggle(self, item: MediaSummary, identity: MediaIdentity | None = None) -> bool:
        """Add the title if absent, otherwise remove it. Returns the new membership."""

        await self._ensure_loaded()
        resolved = identity or item.identity
        if self.contains_identity(resolved):
            await self.remove(resolved)
            return False
        await self.add(item, resolved)
        return True

    def contains(self, media_id: int) -> bool:
        """Return whether any saved entry has this numeric id, whatever its type."""

        return any(media_id == entry_id for entry_id, _ in self._entries)

    def contains_identity(self, identity: MediaIdentity) -> bool:
        return self._entry_key(identity) in self._entries

    def list(self) -> list[WatchlistEntry]:
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    async def flush(self) -> None:
        """Write the current entries regardless of pending mutations."""

        if not self._loaded:
            return
        await self._persist()

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        async with self._load_lock:
            if not self._loaded:
                await self.load()

    async def _persist(self) -> None:
        async with self._write_lock:
            # Snapshot under the lock: the last write carries the newest entries.
            payload = [entry.model_dump(mode="json") for entry in self._entries.values()]
            async with self._session_factory() as session:
                record = await session.get(KeyValueRecord, self._key)
                if record is None:
                    session.add(KeyValueRecord(key=self._key, payload=payload))
                else:
                    record.payload = payload
                await session.commit()

    @staticmethod
    def _entry_key(identity: MediaIdentity) -> tuple[int, str]:
        return identity.id, identity.type
