from __future__ import annotations

from app.services.bootstrap import SAMPLE_AGENTS, load_initial_data


def test_empty_store_gets_sample_agents_and_file_items(store, tmp_path):
    (tmp_path / "output.csv").write_text(
        "abstract_product_id,rule_priority,tenant_id,oldest_created_on,count\nA,1,t,2026-01-01 00:00:00,2\n",
        encoding="utf-8",
    )

    out = load_initial_data(store, data_dir=str(tmp_path), roster_csv="missing.csv", items_csv="output.csv")

    assert out.agents_source == "sample"
    assert sorted(a.name for a in store.list_agents()) == sorted(SAMPLE_AGENTS)
    assert out.items_loaded == 1
    assert store.get_item("A").count == 2


def test_roster_file_wins_over_samples_and_reruns_are_noops(store, tmp_path):
    (tmp_path / "roster.csv").write_text("name,capacity\nFay,3\n", encoding="utf-8")

    first = load_initial_data(store, data_dir=str(tmp_path), items_csv="none.csv")
    second = load_initial_data(store, data_dir=str(tmp_path), items_csv="none.csv")

    assert first.agents_loaded == 1
    assert [a.name for a in store.list_agents()] == ["Fay"]
    assert second.agents_loaded == 0
    assert second.items_loaded == 0
