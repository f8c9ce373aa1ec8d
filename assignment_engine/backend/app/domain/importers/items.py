from __future__ import annotations

from typing import Iterable

from ..records import ItemUpsert, MergeResult
from .base import optional_datetime, optional_int, optional_str, required

# Column aliases per field; the first non-empty one wins. Exports from the
# queue tool use dotted names, the consolidated file uses underscores.
ITEM_COLUMNS: dict[str, tuple[str, ...]] = {
    "item_id": ("abstract_product_id", "item.abstract_product_id", "item_abstract_product_id", "product_id", "item_id"),
    "name": ("product_name", "name"),
    "priority": ("rule_priority", "rule.priority", "priority"),
    "tenant_id": ("tenant_id", "TenantID", "Tenant ID"),
    "created_at": ("oldest_created_on", "sys_created_on", "created_on", "CreatedOn"),
    "count": ("count",),
}


def normalize_item_row(row: dict[str, str]) -> ItemUpsert:
    item_id = required(row, *ITEM_COLUMNS["item_id"])
    if not item_id:
        raise ValueError("missing item id")

    count = optional_int(row, *ITEM_COLUMNS["count"])
    return ItemUpsert(
        item_id=item_id,
        name=required(row, *ITEM_COLUMNS["name"]) or item_id,
        priority=optional_str(row, *ITEM_COLUMNS["priority"]),
        tenant_id=optional_str(row, *ITEM_COLUMNS["tenant_id"]),
        created_at=optional_datetime(row, *ITEM_COLUMNS["created_at"]),
        count=count if count and count > 0 else 1,
    )


def normalize_item_rows(rows: Iterable[dict[str, str]]) -> tuple[list[ItemUpsert], MergeResult]:
    """
    Normalize rows, collecting per-row errors instead of failing the batch.

    Row numbers in errors are 1-based file lines (the header is line 1).
    """
    out: list[ItemUpsert] = []
    report = MergeResult()
    for idx, row in enumerate(rows, start=2):
        try:
            out.append(normalize_item_row(row))
        except ValueError as e:
            report.skipped += 1
            report.errors.append(f"row {idx}: {e}")
    return out, report
