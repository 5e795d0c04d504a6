"""
Best-effort snapshot persistence.

Two stores ship: a JSON Lines file (default) and a SQLite table through
SQLAlchemy. ``SnapshotWriter`` wraps any ``SnapshotGateway`` and guarantees the caller never
sees an exception: failures degrade to a ``local-<epoch ms>`` id and a warning.
"""
from __future__ import annotations

import json
import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, create_engine, insert, select
from sqlalchemy.engine import Engine

from trends.clock import SYSTEM_CLOCK, Clock
from trends.models import TrendRecord

logger = logging.getLogger(__name__)


class SnapshotGateway(Protocol):
    def save_snapshot(self, snapshot: Dict[str, Any]) -> str:
        ...


class JsonlSnapshotStore:
    """Appends one JSON document per line; the newest snapshot is the last line."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def save_snapshot(self, snapshot: Dict[str, Any]) -> str:
        snapshot_id = uuid.uuid4().hex
        line = json.dumps({"id": snapshot_id, **snapshot}, default=str)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        return snapshot_id

    def latest(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        with self._lock:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        for line in reversed(lines):
            if not line.strip():
                continue
            try:
                return json.loads(line)
            except ValueError:
                logger.warning("Skipping corrupt snapshot line in %s", self.path)
        return None


metadata = MetaData()

snapshots_table = Table(
    "trend_snapshots",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("snapshot_id", String, unique=True, nullable=False),
    Column("created_at", DateTime(timezone=True), index=True),
    Column("analysis", String, nullable=True),
    Column("payload", String, nullable=False),
)


class SqlSnapshotStore:
    """SQLite snapshot table; one row per aggregation, newest row wins."""

    def __init__(self, db_path: Path, *, clock: Clock = SYSTEM_CLOCK) -> None:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.engine: Engine = create_engine(f"sqlite:///{db_path}", future=True)
        self.clock = clock
        metadata.create_all(self.engine)

    def save_snapshot(self, snapshot: Dict[str, Any]) -> str:
        snapshot_id = uuid.uuid4().hex
        with self.engine.begin() as conn:
            conn.execute(
                insert(snapshots_table).values(
                    snapshot_id=snapshot_id,
                    created_at=self.clock.now(),
                    analysis=snapshot.get("analysis"),
                    payload=json.dumps(snapshot, default=str),
                )
            )
        return snapshot_id

    def latest(self) -> Optional[Dict[str, Any]]:
        query = select(snapshots_table.c.snapshot_id, snapshots_table.c.payload).order_by(
            snapshots_table.c.seq.desc()
        ).limit(1)
        with self.engine.connect() as conn:
            row = conn.execute(query).first()
        if row is None:
            return None
        return {"id": row.snapshot_id, **json.loads(row.payload)}

    def close(self) -> None:
        self.engine.dispose()


def records_from_snapshot(snapshot: Optional[Dict[str, Any]]) -> List[TrendRecord]:
    if not snapshot:
        return []
    records: List[TrendRecord] = []
    for items in (snapshot.get("trends") or {}).values():
        for item in items or []:
            try:
                records.append(TrendRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Ignoring malformed snapshot record: %s", exc)
    return records


class SnapshotWriter:
    def __init__(self, gateway: Optional[SnapshotGateway], *, clock: Clock = SYSTEM_CLOCK) -> None:
        self.gateway = gateway
        self.clock = clock
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="trend-snapshot")

    def _local_id(self) -> str:
        return f"local-{int(self.clock.time() * 1000)}"

    def save(self, snapshot: Dict[str, Any]) -> str:
        """Synchronous save that never raises."""
        if self.gateway is None:
            return self._local_id()
        try:
            return self.gateway.save_snapshot(snapshot)
        except Exception as exc:
            logger.warning("Failed to save trend snapshot (non-critical): %s", exc)
            return self._local_id()

    def submit(self, snapshot: Dict[str, Any]) -> Future:
        """Fire-and-forget save on the writer's own thread."""
        try:
            return self._executor.submit(self.save, snapshot)
        except RuntimeError as exc:
            logger.warning("Snapshot writer unavailable: %s", exc)
            done: Future = Future()
            done.set_result(self._local_id())
            return done

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
