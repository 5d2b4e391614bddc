"""Site settings and stored translations.

Both are small key/value tables edited from the admin area. Settings
are read far more often than written, so the whole table is cached and
dropped on every write.
"""

import json
import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from cineverse._internal.clock import to_db, utcnow
from cineverse.cache.store import Cache
from cineverse.data.manager import DatabaseManager
from cineverse.errors import NotFound, ValidationError

logger = logging.getLogger("cineverse.settings")

SETTINGS_CACHE_KEY = "settings:all"
SETTINGS_TTL = 3600


class Settings:
    __slots__ = ("_clock", "cache", "db")

    def __init__(
        self, db: DatabaseManager, cache: Cache, *, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self.db = db
        self.cache = cache
        self._clock = clock

    async def all(self) -> dict[str, Any]:
        return await self.cache.remember(SETTINGS_CACHE_KEY, SETTINGS_TTL, self._load)

    async def get(self, key: str, default: Any = None) -> Any:
        return (await self.all()).get(key, default)

    async def put(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Create or replace each key. Values are stored as JSON."""
        now = to_db(self._clock())
        async with self.db.transaction():
            for key, value in values.items():
                encoded = json.dumps(value)
                updated = await self.db.table("settings").where("key", key).update(
                    {"value": encoded, "updated_at": now}
                )
                if not updated:
                    await self.db.insert("settings", {"key": key, "value": encoded, "updated_at": now})
        await self.cache.forget(SETTINGS_CACHE_KEY)
        logger.info("Updated settings: %s", ", ".join(sorted(values)))
        return await self.all()

    async def _load(self) -> dict[str, Any]:
        rows = await self.db.table("settings").order_by("key").get()
        return {row["key"]: _decode(row["value"]) for row in rows}


class Translations:
    __slots__ = ("_clock", "db", "languages")

    def __init__(
        self,
        db: DatabaseManager,
        languages: tuple[str, ...],
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.languages = languages
        self._clock = clock

    def _check_language(self, language: str) -> str:
        if language not in self.languages:
            raise ValidationError.single("language", f"Unsupported language {language!r}")
        return language

    async def index(self, language: str | None = None, page: int = 1, per_page: int = 50) -> dict[str, Any]:
        query = self.db.table("translations").order_by("language").order_by("key")
        if language:
            query.where("language", language)
        return (await query.paginate(page, per_page)).to_dict()

    async def find(self, translation_id: int) -> dict[str, Any]:
        row = await self.db.table("translations").where("id", translation_id).first()
        if row is None:
            raise NotFound("Translation not found")
        return row

    async def store(self, language: str, key: str, value: str) -> dict[str, Any]:
        """Create or replace the value for ``(language, key)``."""
        self._check_language(language)
        now = to_db(self._clock())
        updated = await (
            self.db.table("translations")
            .where("language", language)
            .where("key", key)
            .update({"value": value, "updated_at": now})
        )
        if not updated:
            await self.db.insert("translations", {"language": language, "key": key, "value": value})
        row = await self.db.table("translations").where("language", language).where("key", key).first()
        return row or {}

    async def update(self, translation_id: int, value: str) -> dict[str, Any]:
        row = await self.find(translation_id)
        await self.db.update(
            "translations", {"value": value, "updated_at": to_db(self._clock())}, {"id": translation_id}
        )
        return {**row, "value": value}

    async def delete(self, translation_id: int) -> None:
        await self.find(translation_id)
        await self.db.delete("translations", {"id": translation_id})

    async def import_catalog(self, language: str, entries: Mapping[str, Any]) -> int:
        """Upsert every ``key -> value`` pair; returns how many were written."""
        self._check_language(language)
        async with self.db.transaction():
            for key, value in entries.items():
                await self.store(language, str(key), str(value))
        logger.info("Imported %d %s translations", len(entries), language)
        return len(entries)

    async def export_catalog(self, language: str) -> dict[str, str]:
        self._check_language(language)
        rows = await self.db.table("translations").where("language", language).order_by("key").get()
        return {row["key"]: row["value"] for row in rows}


def _decode(value: str | None) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError:
        return value
