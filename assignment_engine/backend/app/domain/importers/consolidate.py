from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .base import format_datetime, has_any_column, parse_datetime, write_csv_text

# Raw queue exports carry one line per occurrence; the allocator works on one
# row per item. Consolidation groups occurrences by item id.
RAW_ITEM_ID = ("item.abstract_product_id",)
RAW_PRIORITY = ("rule.priority", "priority")
RAW_TENANT = ("tenant_id", "TenantID", "Tenant ID")
RAW_CREATED = ("sys_created_on", "created_on", "CreatedOn")

CONSOLIDATED_HEADERS = ["abstract_product_id", "rule_priority", "tenant_id", "oldest_created_on", "count"]


class ConsolidationError(ValueError):
    pass


@dataclass
class ConsolidatedItem:
    item_id: str
    priority: Optional[str]
    tenant_id: Optional[str]
    oldest_created_on: datetime
    count: int

    def as_row(self) -> dict[str, str]:
        return {
            "abstract_product_id": self.item_id,
            "rule_priority": self.priority or "",
            "tenant_id": self.tenant_id or "",
            "oldest_created_on": format_datetime(self.oldest_created_on),
            "count": str(self.count),
        }


def _resolve_columns(headers: list[str]) -> dict[str, str]:
    cols = {}
    for field, aliases in (
        ("item_id", RAW_ITEM_ID),
        ("priority", RAW_PRIORITY),
        ("tenant_id", RAW_TENANT),
        ("created", RAW_CREATED),
    ):
        hit = has_any_column(headers, *aliases)
        if hit is None:
            raise ConsolidationError(f"no {field} column (expected one of: {', '.join(aliases)})")
        cols[field] = hit
    return cols


def consolidate_rows(rows: Iterable[dict[str, str]]) -> list[ConsolidatedItem]:
    """
    Group raw occurrences by item id.

    - priority / tenant: first non-empty value seen for the item
    - oldest_created_on: minimum parsed creation date
    - count: number of occurrences kept
    Rows whose creation date does not parse are dropped. Output is sorted
    oldest first, then by item id.
    """
    rows = list(rows)
    if not rows:
        return []

    headers: list[str] = []
    for r in rows:
        for k in r.keys():
            if k not in headers:
                headers.append(k)
    cols = _resolve_columns(headers)

    grouped: dict[str, ConsolidatedItem] = {}
    for r in rows:
        item_id = (r.get(cols["item_id"]) or "").strip()
        created = parse_datetime(r.get(cols["created"]))
        if not item_id or created is None:
            continue

        g = grouped.get(item_id)
        if g is None:
            grouped[item_id] = ConsolidatedItem(
                item_id=item_id,
                priority=(r.get(cols["priority"]) or "").strip() or None,
                tenant_id=(r.get(cols["tenant_id"]) or "").strip() or None,
                oldest_created_on=created,
                count=1,
            )
            continue

        g.count += 1
        # first non-empty value wins
        if g.priority is None:
            g.priority = (r.get(cols["priority"]) or "").strip() or None
        if g.tenant_id is None:
            g.tenant_id = (r.get(cols["tenant_id"]) or "").strip() or None
        if created < g.oldest_created_on:
            g.oldest_created_on = created

    return sorted(grouped.values(), key=lambda g: (g.oldest_created_on, g.item_id))


def consolidated_csv(items: Iterable[ConsolidatedItem]) -> str:
    return write_csv_text((i.as_row() for i in items), CONSOLIDATED_HEADERS)
