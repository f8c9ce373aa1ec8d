from __future__ import annotations

import pytest

from app.domain.priority import LOWEST, PriorityClass, parse_priority


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1", PriorityClass.P1),
        ("P1", PriorityClass.P1),
        ("p2", PriorityClass.P2),
        ("Priority 3", PriorityClass.P3),
        (2, PriorityClass.P2),
        (2.0, PriorityClass.P2),
    ],
)
def test_known_priorities(raw, expected):
    assert parse_priority(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "urgent", "0", "7", "P9"])
def test_missing_or_unknown_priority_is_lowest(raw):
    assert parse_priority(raw) is LOWEST


def test_lower_value_is_more_urgent():
    assert PriorityClass.P1 < PriorityClass.P2 < PriorityClass.P3
    assert PriorityClass.P2.label == "P2"
