from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config import settings
from ..domain.importers.base import parse_csv_bytes
from ..domain.records import AgentUpsert
from ..stores.base import AssignmentStore
from .item_merge import merge_item_rows, merge_roster_rows

log = logging.getLogger("assignment_engine.bootstrap")

SAMPLE_AGENTS = ("Agent Sample 1", "Agent Sample 2")


@dataclass(frozen=True)
class BootstrapResult:
    agents_loaded: int
    agents_source: Optional[str]
    items_loaded: int
    items_source: Optional[str]

    def as_dict(self) -> dict:
        return {
            "agents_loaded": self.agents_loaded,
            "agents_source": self.agents_source,
            "items_loaded": self.items_loaded,
            "items_source": self.items_source,
        }


def _data_path(name: str, data_dir: Optional[str]) -> Path:
    p = Path(name)
    if p.is_absolute():
        return p
    return Path(data_dir or settings.data_dir) / p


def load_initial_data(
    store: AssignmentStore,
    *,
    data_dir: Optional[str] = None,
    roster_csv: Optional[str] = None,
    items_csv: Optional[str] = None,
) -> BootstrapResult:
    """
    Seed an empty store.

    - no agents: load the roster file, or two sample agents when it is missing/empty
    - no items: load the initial items file when present
    Existing data is never touched, so this is safe to run on every start.
    """
    agents_loaded, agents_source = 0, None
    if not store.list_agents():
        roster = _data_path(roster_csv or settings.roster_csv, data_dir)
        if roster.exists():
            out = merge_roster_rows(store, parse_csv_bytes(roster.read_bytes()), filename=roster.name)
            agents_loaded, agents_source = out.result.inserted, str(roster)
        if agents_loaded == 0:
            r = store.upsert_agents(
                [AgentUpsert(name=n) for n in SAMPLE_AGENTS],
                default_role=settings.default_agent_role,
                default_capacity=settings.default_agent_capacity,
            )
            agents_loaded, agents_source = r.inserted, "sample"
        log.info("agents_bootstrapped from %s", agents_source, extra={"count": agents_loaded})

    items_loaded, items_source = 0, None
    if not store.list_items():
        items = _data_path(items_csv or settings.initial_items_csv, data_dir)
        if items.exists():
            out = merge_item_rows(store, parse_csv_bytes(items.read_bytes()), filename=items.name)
            items_loaded, items_source = out.result.inserted, str(items)
            log.info("items_bootstrapped from %s", items_source, extra={"count": items_loaded})
        else:
            log.warning("initial items file not found: %s", items)

    return BootstrapResult(
        agents_loaded=agents_loaded,
        agents_source=agents_source,
        items_loaded=items_loaded,
        items_source=items_source,
    )
