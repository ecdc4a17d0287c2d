"""Reconciliation of a fresh launch batch against the local store."""
import logging
import sqlite3
from datetime import datetime
from typing import Sequence

from processor.models import ErrorKind, LaunchRecord, PipelineError, SyncResult
from storage.launch_store import (
    as_utc,
    delete_launches,
    load_key_set,
    mark_cancelled,
    prune,
    upsert_launch,
)

logger = logging.getLogger(__name__)


def reconcile(
    conn: sqlite3.Connection,
    fresh: Sequence[LaunchRecord],
    now: datetime
) -> SyncResult:
    """
    Apply one reconciliation cycle in a single transaction.

    Prunes past and previously cancelled rows, cancels stored launches
    missing from fresh, inserts unseen launches and rewrites launches whose
    net moved. Fetched launches whose net is already before now are never
    written. A launch whose net is unchanged is skipped entirely, so
    descriptive-only upstream edits are not written.

    Args:
        conn: Store connection with no transaction open
        fresh: Launches from the latest fetch, unique by launch_id
        now: Timestamp of this cycle

    Returns:
        SyncResult with per-outcome counts, or with error set and the
        store left as it was before the cycle
    """
    try:
        with conn:
            pruned = prune(conn, now)
            existing = load_key_set(conn)

            fresh_ids = {record.launch_id for record in fresh}
            cancelled_ids = [
                launch_id for launch_id in existing
                if launch_id not in fresh_ids
            ]
            cancelled = mark_cancelled(conn, cancelled_ids, now)

            added = updated = skipped = 0
            expired_ids = []
            for record in fresh:
                stored_net = existing.get(record.launch_id)
                if as_utc(record.net) < as_utc(now):
                    expired_ids.append(record.launch_id)
                elif stored_net is None:
                    upsert_launch(conn, record, now)
                    added += 1
                elif stored_net == as_utc(record.net):
                    skipped += 1
                else:
                    upsert_launch(conn, record, now)
                    updated += 1

            # Launches fetched after their net are never written; a stored
            # row that moved into the past goes with them.
            delete_launches(conn, [i for i in expired_ids if i in existing])

            logger.debug(
                f"Reconciled batch of {len(fresh)}: {pruned} pruned, "
                f"{len(expired_ids)} expired, "
                f"{cancelled} cancelled, {added} added, {updated} updated, "
                f"{skipped} unchanged"
            )
    except sqlite3.Error as e:
        return SyncResult(
            error=PipelineError(
                kind=ErrorKind.STORE,
                message=f"Reconciliation rolled back: {e}"
            )
        )

    return SyncResult(
        added=added,
        updated=updated,
        cancelled=cancelled,
        pruned=pruned,
        skipped=skipped,
        expired=len(expired_ids)
    )
