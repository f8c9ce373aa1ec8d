from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ..config import settings
from ..domain.importers.items import normalize_item_rows
from ..domain.importers.roster import normalize_roster_rows
from ..domain.records import ItemUpsert, MergeResult
from ..stores.base import AssignmentStore

log = logging.getLogger("assignment_engine.imports")


def _utcnow() -> datetime:
    return datetime.utcnow()


@dataclass(frozen=True)
class ImportOutcome:
    batch_id: int
    source: str
    result: MergeResult

    def as_dict(self) -> dict:
        return {"batch_id": self.batch_id, "source": self.source, **self.result.as_dict()}


def _batches(rows: list[ItemUpsert], size: int) -> Iterable[list[ItemUpsert]]:
    size = max(1, int(size))
    for i in range(0, len(rows), size):
        yield rows[i : i + size]


def merge_item_rows(
    store: AssignmentStore,
    rows: Iterable[dict[str, str]],
    *,
    filename: Optional[str] = None,
    notes: Optional[str] = None,
    batch_size: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ImportOutcome:
    """
    Merge raw item rows into the work queue.

    Rows are normalized first (bad rows are reported, not fatal), then written
    batch by batch; each batch is one store transaction. Items that currently
    have an active assignment stay unavailable, everything else is requeued.
    """
    now = now or _utcnow()
    normalized, report = normalize_item_rows(rows)

    for batch in _batches(normalized, batch_size or settings.import_batch_size):
        r = store.merge_items(batch, now=now)
        report.inserted += r.inserted
        report.updated += r.updated
        report.preserved_active += r.preserved_active

    batch_id = store.record_import(source="items", result=report, filename=filename, notes=notes, now=now)
    log.info(
        "items_imported inserted=%s updated=%s preserved_active=%s skipped=%s",
        report.inserted,
        report.updated,
        report.preserved_active,
        report.skipped,
        extra={"batch_id": batch_id, "count": report.total},
    )
    return ImportOutcome(batch_id=batch_id, source="items", result=report)


def merge_roster_rows(
    store: AssignmentStore,
    rows: Iterable[dict[str, str]],
    *,
    filename: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ImportOutcome:
    now = now or _utcnow()
    normalized, report = normalize_roster_rows(rows)

    r = store.upsert_agents(
        normalized,
        default_role=settings.default_agent_role,
        default_capacity=settings.default_agent_capacity,
    )
    report.inserted += r.inserted
    report.updated += r.updated

    batch_id = store.record_import(source="agents", result=report, filename=filename, notes=notes, now=now)
    log.info(
        "roster_imported inserted=%s updated=%s skipped=%s",
        report.inserted,
        report.updated,
        report.skipped,
        extra={"batch_id": batch_id, "count": report.total},
    )
    return ImportOutcome(batch_id=batch_id, source="agents", result=report)
