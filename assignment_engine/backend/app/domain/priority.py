from __future__ import annotations

import enum
import re
from typing import Any

_DIGITS = re.compile(r"(\d+)")


class PriorityClass(enum.IntEnum):
    """Lower value = more urgent. P1 is offered before P2 before P3."""

    P1 = 1
    P2 = 2
    P3 = 3

    @property
    def label(self) -> str:
        return self.name


LOWEST = PriorityClass.P3


def parse_priority(raw: Any) -> PriorityClass:
    """
    Map an imported rule priority to a class.

    Accepts "1", "P1", "p2", "Priority 3", 2, 2.0. Anything missing or
    unparseable is the lowest class; numbers beyond the lowest clamp to it.
    """
    if raw is None:
        return LOWEST
    if isinstance(raw, PriorityClass):
        return raw

    s = str(raw).strip()
    if not s:
        return LOWEST

    m = _DIGITS.search(s)
    if not m:
        return LOWEST

    n = int(m.group(1))
    if n < PriorityClass.P1:
        return LOWEST
    if n > LOWEST:
        return LOWEST
    return PriorityClass(n)
