from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Mapping

from .db import get_conn
from .registry import Collection
from .store import RecordStore


def _list_collection(config: Mapping, owner_id: str, collection: Collection) -> list[dict]:
    with get_conn(config) as conn:
        return RecordStore(conn, owner_id).list(collection)


def get_snapshot(owner_id: str, config: Mapping) -> dict[str, list[dict]]:
    """Read every collection for one owner, one query per collection.

    The queries run concurrently on their own connections.  If any of them
    fails the exception propagates and no partial snapshot is returned.
    """
    config = dict(config)
    workers = max(1, min(int(config.get("SNAPSHOT_WORKERS") or 1), len(Collection)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {
            collection: pool.submit(_list_collection, config, owner_id, collection)
            for collection in Collection
        }
        return {collection.value: future.result() for collection, future in futures.items()}
