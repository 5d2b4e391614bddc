"""UTC timestamps in the ``YYYY-MM-DD HH:MM:SS`` form stored in TEXT columns.

The string form sorts and compares correctly in SQL, so expiry checks
can run as plain ``>`` comparisons in the database.
"""

from datetime import UTC, datetime

DB_FORMAT = "%Y-%m-%d %H:%M:%S"


def utcnow() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


def to_db(moment: datetime) -> str:
    return moment.astimezone(UTC).strftime(DB_FORMAT)


def from_db(value: str | datetime | None) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    parsed = datetime.fromisoformat(str(value))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def db_now() -> str:
    return to_db(utcnow())
