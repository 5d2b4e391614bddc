"""Forward-only SQL migration runner.

Migrations are ``.sql`` files applied in filename order::

    migrations/
        0001_create_users.sql
        0002_create_catalog.sql
        0003_create_billing.sql

Applied files are recorded in the ``migrations`` ledger together with
the batch they ran in. Every run that applies at least one file gets a
new batch number. Each file and its ledger row commit in one
transaction; a failure rolls that file back and stops the run.

Usage::

    from cineverse.data import Database, migrate

    db = Database("sqlite:///storage/cineverse.db")
    result = await migrate(db, "migrations/")
    print(result.summary)
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from cineverse.data.database import Database
from cineverse.data.errors import MigrationError

logger = logging.getLogger("cineverse.db")

LEDGER_TABLE = "migrations"

_CREATE_LEDGER_SQLITE = f"""
CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    migration   TEXT    NOT NULL UNIQUE,
    batch       INTEGER NOT NULL,
    executed_at TEXT    NOT NULL
)
"""

_CREATE_LEDGER_PG = f"""
CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
    id          SERIAL PRIMARY KEY,
    migration   TEXT    NOT NULL UNIQUE,
    batch       INTEGER NOT NULL,
    executed_at TEXT    NOT NULL
)
"""


@dataclass(frozen=True, slots=True)
class Migration:
    name: str
    sql: str


@dataclass(frozen=True, slots=True)
class MigrationResult:
    """What one ``migrate`` call did."""

    applied: list[str] = field(default_factory=list)
    batch: int | None = None

    @property
    def summary(self) -> str:
        if not self.applied:
            return "Nothing to migrate"
        return f"Applied {len(self.applied)} migration(s) in batch {self.batch}: {', '.join(self.applied)}"


def discover_migrations(directory: str | Path) -> list[Migration]:
    """Read every ``*.sql`` file in *directory*, sorted by filename.

    Raises:
        MigrationError: If the directory is missing or a file is empty.
    """
    path = Path(directory)
    if not path.is_dir():
        msg = f"Migration directory does not exist: {path}"
        raise MigrationError(msg)

    migrations: list[Migration] = []
    for sql_file in sorted(path.glob("*.sql")):
        sql = sql_file.read_text(encoding="utf-8").strip()
        if not sql:
            msg = f"Empty migration file: {sql_file.name}"
            raise MigrationError(msg)
        migrations.append(Migration(name=sql_file.stem, sql=sql))
    return migrations


async def applied_migrations(db: Database) -> list[dict[str, object]]:
    """Ledger rows in the order they were applied."""
    if not await db.table_exists(LEDGER_TABLE):
        return []
    return await db.table(LEDGER_TABLE).order_by("id").get()


async def migrate(db: Database, directory: str | Path) -> MigrationResult:
    """Apply pending migrations from *directory*.

    Raises:
        MigrationError: Naming the file that failed.
    """
    migrations = discover_migrations(directory)
    await db.execute_script(_CREATE_LEDGER_SQLITE if db.driver == "sqlite" else _CREATE_LEDGER_PG)

    done = {row["migration"] for row in await applied_migrations(db)}
    pending = [m for m in migrations if m.name not in done]
    if not pending:
        return MigrationResult()

    batch = int(await db.fetch_val(f"SELECT MAX(batch) FROM {LEDGER_TABLE}") or 0) + 1
    applied: list[str] = []
    for migration in pending:
        try:
            async with db.transaction():
                await db.execute_script(migration.sql)
                await db.insert(
                    LEDGER_TABLE,
                    {
                        "migration": migration.name,
                        "batch": batch,
                        "executed_at": datetime.now(UTC).isoformat(),
                    },
                )
        except Exception as exc:
            msg = f"Migration {migration.name} failed: {exc}"
            raise MigrationError(msg) from exc
        logger.info("Migrated %s (batch %d)", migration.name, batch)
        applied.append(migration.name)

    return MigrationResult(applied=applied, batch=batch)
