# backend/app/cli/__main__.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from app.db import SessionLocal, init_db
from app.domain.importers.base import parse_csv_bytes
from app.domain.importers.consolidate import ConsolidationError, consolidate_rows, consolidated_csv
from app.services.bootstrap import load_initial_data
from app.services.item_merge import merge_item_rows
from app.stores.factory import build_store


def _seed(args: argparse.Namespace) -> int:
    init_db()
    db = SessionLocal()
    try:
        out = load_initial_data(
            build_store(db),
            data_dir=args.data_dir,
            roster_csv=args.roster,
            items_csv=args.items,
        )
    finally:
        db.close()
    print({"ok": True, **out.as_dict()})
    return 0


def _import_items(args: argparse.Namespace) -> int:
    init_db()
    path = Path(args.path)
    db = SessionLocal()
    try:
        out = merge_item_rows(build_store(db), parse_csv_bytes(path.read_bytes()), filename=path.name, notes=args.notes)
    finally:
        db.close()
    print({"ok": True, **out.as_dict()})
    return 0


def _consolidate(args: argparse.Namespace) -> int:
    rows: list[dict[str, str]] = []
    for p in args.inputs:
        rows.extend(parse_csv_bytes(Path(p).read_bytes()))
    try:
        items = consolidate_rows(rows)
    except ConsolidationError as e:
        print({"ok": False, "error": str(e)}, file=sys.stderr)
        return 2
    Path(args.output).write_text(consolidated_csv(items), encoding="utf-8")
    print({"ok": True, "inputs": len(args.inputs), "rows": len(rows), "items": len(items), "output": args.output})
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="python -m app.cli")
    sub = p.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed", help="load the roster and initial items into an empty store")
    seed.add_argument("--data-dir", default=None)
    seed.add_argument("--roster", default=None)
    seed.add_argument("--items", default=None)
    seed.set_defaults(func=_seed)

    imp = sub.add_parser("import-items", help="merge an items CSV into the queue")
    imp.add_argument("path")
    imp.add_argument("--notes", default=None)
    imp.set_defaults(func=_import_items)

    cons = sub.add_parser("consolidate", help="merge raw exports into one row per item")
    cons.add_argument("inputs", nargs="+")
    cons.add_argument("-o", "--output", default="output.csv")
    cons.set_defaults(func=_consolidate)

    args = p.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
