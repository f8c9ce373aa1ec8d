from __future__ import annotations

from typing import Iterable

from ..records import AgentUpsert, MergeResult
from .base import optional_int, optional_str, required

ROSTER_COLUMNS: dict[str, tuple[str, ...]] = {
    "name": ("name", "agent name", "agent", "trimmed zoho name", "reviewer"),
    "role": ("role",),
    "capacity": ("capacity",),
}

# values that show up in the name column when a header row is repeated
HEADER_NAMES = frozenset({"trimmed zoho name", "name", "agent name"})


def normalize_roster_rows(rows: Iterable[dict[str, str]]) -> tuple[list[AgentUpsert], MergeResult]:
    out: list[AgentUpsert] = []
    report = MergeResult()
    seen: set[str] = set()

    for idx, row in enumerate(rows, start=2):
        name = required(row, *ROSTER_COLUMNS["name"])
        if not name or name.casefold() in HEADER_NAMES:
            report.skipped += 1
            continue
        if name.casefold() in seen:
            report.skipped += 1
            report.errors.append(f"row {idx}: duplicate agent {name}")
            continue

        capacity = optional_int(row, *ROSTER_COLUMNS["capacity"])
        if capacity is not None and capacity <= 0:
            report.skipped += 1
            report.errors.append(f"row {idx}: capacity must be positive")
            continue

        seen.add(name.casefold())
        out.append(AgentUpsert(name=name, role=optional_str(row, *ROSTER_COLUMNS["role"]), capacity=capacity))
    return out, report
