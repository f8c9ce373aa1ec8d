# backend/app/domain/importers/base.py
from __future__ import annotations

import csv
from datetime import datetime, timezone
from io import StringIO
from typing import Any, Iterable, Optional

# accepted timestamp layouts, tried in order after ISO-8601
_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y",
    "%d-%m-%Y %H:%M:%S",
)

OUTPUT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _clean_str(x: Any) -> str:
    return (str(x).strip() if x is not None else "").strip()


def _to_float(x: Any) -> Optional[float]:
    s = _clean_str(x).replace(",", "")
    if not s:
        return None
    try:
        return float(s)
    except ValueError:
        return None


def _to_int(x: Any) -> Optional[int]:
    f = _to_float(x)
    return int(f) if f is not None else None


def _naive_utc(d: datetime) -> datetime:
    # aware values are converted, not just stripped; naive values are taken as UTC
    if d.tzinfo is not None:
        return d.astimezone(timezone.utc).replace(tzinfo=None)
    return d


def parse_datetime(x: Any) -> Optional[datetime]:
    if isinstance(x, datetime):
        return _naive_utc(x)
    s = _clean_str(x)
    if not s:
        return None
    try:
        return _naive_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def format_datetime(d: Optional[datetime]) -> str:
    return d.strftime(OUTPUT_DATE_FORMAT) if d else ""


def parse_csv_bytes(data: bytes) -> list[dict[str, str]]:
    text = data.decode("utf-8-sig", errors="replace")
    reader = csv.DictReader(StringIO(text))
    out: list[dict[str, str]] = []
    for row in reader:
        out.append({(k or "").strip(): (v or "").strip() for k, v in row.items() if k is not None})
    return out


def write_csv_text(rows: Iterable[dict[str, Any]], headers: list[str]) -> str:
    buf = StringIO()
    w = csv.DictWriter(buf, fieldnames=headers, extrasaction="ignore", lineterminator="\n")
    w.writeheader()
    for r in rows:
        w.writerow({h: ("" if r.get(h) is None else r.get(h)) for h in headers})
    return buf.getvalue()


def _get_ci(row: dict[str, str], key: str) -> Optional[str]:
    # exact match first
    if key in row:
        return row.get(key)
    # case-insensitive fallback
    key_cf = key.casefold()
    for k, v in row.items():
        if (k or "").casefold() == key_cf:
            return v
    return None


def has_any_column(headers: Iterable[str], *keys: str) -> Optional[str]:
    """Return the first of `keys` present among `headers` (case-insensitive), else None."""
    lowered = {(h or "").strip().casefold(): h for h in headers}
    for k in keys:
        hit = lowered.get(k.casefold())
        if hit is not None:
            return hit
    return None


def required(row: dict[str, str], *keys: str) -> str:
    for k in keys:
        v = _get_ci(row, k)
        if v is not None and str(v).strip():
            return str(v).strip()
    return ""


def optional_str(row: dict[str, str], *keys: str) -> Optional[str]:
    v = required(row, *keys)
    return v or None


def optional_int(row: dict[str, str], *keys: str) -> Optional[int]:
    for k in keys:
        v = _get_ci(row, k)
        i = _to_int(v)
        if i is not None:
            return i
    return None


def optional_datetime(row: dict[str, str], *keys: str) -> Optional[datetime]:
    for k in keys:
        d = parse_datetime(_get_ci(row, k))
        if d is not None:
            return d
    return None
