"""SQLite record store for launch rows."""
import logging
import sqlite3
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Union

from processor.models import LaunchRecord, LaunchStatus, StoredLaunch

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%S.%fZ'

SCHEMA = """
CREATE TABLE IF NOT EXISTS launches (
  launch_id      TEXT PRIMARY KEY,
  name           TEXT NOT NULL,
  net            TEXT NOT NULL,
  last_updated   TEXT NOT NULL,
  image_url      TEXT,
  provider_name  TEXT,
  location_name  TEXT,
  status         TEXT NOT NULL DEFAULT 'Upcoming',
  changed_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_launches_changed_at
ON launches(changed_at);
"""

UPSERT_SQL = """
INSERT INTO launches (
  launch_id, name, net, last_updated, image_url,
  provider_name, location_name, status, changed_at
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(launch_id) DO UPDATE SET
  name = excluded.name,
  net = excluded.net,
  last_updated = excluded.last_updated,
  image_url = excluded.image_url,
  provider_name = excluded.provider_name,
  location_name = excluded.location_name,
  status = excluded.status,
  changed_at = excluded.changed_at
"""

SELECT_COLUMNS = """
SELECT launch_id, name, net, last_updated, image_url,
       provider_name, location_name, status, changed_at
FROM launches
"""


def as_utc(value: datetime) -> datetime:
    """Convert value to an aware UTC datetime, taking naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """
    Encode a datetime as fixed-width UTC text.

    The fixed width keeps lexical order equal to chronological order,
    so range filters work on TEXT columns.
    """
    return as_utc(value).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Decode text written by format_timestamp into an aware datetime."""
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def initialize(conn: sqlite3.Connection) -> None:
    """Create the launches table and change-marker index if absent."""
    conn.executescript(SCHEMA)
    conn.commit()


def open_store(path: str = 'launches.db') -> sqlite3.Connection:
    """
    Open the store at path and make sure the schema exists.

    Args:
        path: SQLite database file, or ':memory:'

    Returns:
        Connection with sqlite3.Row as row factory
    """
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    initialize(conn)
    logger.debug(f"Opened launch store: {path}")
    return conn


def prune(conn: sqlite3.Connection, now: datetime) -> int:
    """
    Delete launches already in the past or cancelled in an earlier cycle.

    Returns:
        Number of rows deleted
    """
    cursor = conn.execute(
        "DELETE FROM launches WHERE net < ? OR status = ?",
        (format_timestamp(now), LaunchStatus.CANCELLED.value)
    )
    return cursor.rowcount


def load_key_set(conn: sqlite3.Connection) -> Dict[str, datetime]:
    """Return launch_id -> net for every stored row."""
    rows = conn.execute("SELECT launch_id, net FROM launches").fetchall()
    return {row[0]: parse_timestamp(row[1]) for row in rows}


def delete_launches(conn: sqlite3.Connection, launch_ids: Iterable[str]) -> int:
    """Delete the given launches, returning the number of rows removed."""
    params = [(launch_id,) for launch_id in launch_ids]
    if not params:
        return 0
    cursor = conn.executemany("DELETE FROM launches WHERE launch_id = ?", params)
    return cursor.rowcount


def mark_cancelled(
    conn: sqlite3.Connection,
    launch_ids: Iterable[str],
    now: datetime
) -> int:
    """
    Flag launches as cancelled and stamp the change marker.

    Descriptive columns keep their last known values.

    Returns:
        Number of rows updated
    """
    changed_at = format_timestamp(now)
    params = [
        (LaunchStatus.CANCELLED.value, changed_at, launch_id)
        for launch_id in launch_ids
    ]
    if not params:
        return 0
    cursor = conn.executemany(
        "UPDATE launches SET status = ?, changed_at = ? WHERE launch_id = ?",
        params
    )
    return cursor.rowcount


def upsert_launch(
    conn: sqlite3.Connection,
    record: LaunchRecord,
    now: datetime
) -> None:
    """Write every field of record as an Upcoming row changed at now."""
    conn.execute(
        UPSERT_SQL,
        (
            record.launch_id,
            record.name,
            format_timestamp(record.net),
            format_timestamp(record.last_updated),
            record.image_url,
            record.provider_name,
            record.location_name,
            LaunchStatus.UPCOMING.value,
            format_timestamp(now),
        )
    )


def get_launch(conn: sqlite3.Connection, launch_id: str) -> Optional[StoredLaunch]:
    row = conn.execute(
        SELECT_COLUMNS + " WHERE launch_id = ?", (launch_id,)
    ).fetchone()
    return _row_to_stored_launch(row) if row is not None else None


def todays_changes(
    conn: sqlite3.Connection,
    today: Union[date, datetime]
) -> List[StoredLaunch]:
    """
    Return launches whose change marker falls on the UTC calendar date of today.

    Args:
        conn: Store connection
        today: Date, or datetime converted to UTC before taking its date

    Returns:
        Changed launches ordered by net, empty when nothing changed
    """
    if isinstance(today, datetime):
        today = as_utc(today).date()

    day_start = datetime.combine(today, time.min, tzinfo=timezone.utc)
    day_end = day_start + timedelta(days=1)

    rows = conn.execute(
        SELECT_COLUMNS
        + " WHERE changed_at >= ? AND changed_at < ? ORDER BY net, launch_id",
        (format_timestamp(day_start), format_timestamp(day_end))
    ).fetchall()
    return [_row_to_stored_launch(row) for row in rows]


def _row_to_stored_launch(row) -> StoredLaunch:
    return StoredLaunch(
        launch_id=row[0],
        name=row[1],
        net=parse_timestamp(row[2]),
        last_updated=parse_timestamp(row[3]),
        image_url=row[4] or '',
        provider_name=row[5] or '',
        location_name=row[6] or '',
        status=LaunchStatus(row[7]),
        changed_at=parse_timestamp(row[8])
    )
