from __future__ import annotations

from app.cli.__main__ import main


def test_consolidate_command_writes_one_row_per_item(tmp_path):
    raw = tmp_path / "export.csv"
    raw.write_text(
        "item.abstract_product_id,rule.priority,tenant_id,sys_created_on\n"
        "A,1,t,2026-01-02 00:00:00\n"
        "A,1,t,2026-01-01 00:00:00\n",
        encoding="utf-8",
    )
    out = tmp_path / "output.csv"

    assert main(["consolidate", str(raw), "-o", str(out)]) == 0

    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[1] == "A,1,t,2026-01-01 00:00:00,2"


def test_consolidate_command_fails_without_required_columns(tmp_path):
    raw = tmp_path / "export.csv"
    raw.write_text("foo,bar\n1,2\n", encoding="utf-8")

    assert main(["consolidate", str(raw), "-o", str(tmp_path / "o.csv")]) == 2
