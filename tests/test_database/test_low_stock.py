"""Tests for low-stock queries across the three scopes."""

import pytest

from voltstock.config import Config


@pytest.fixture
def spread(repo, stocked, warehouse, van, engineer):
    """Charger: 2 at the warehouse, 8 in the van.
    RCBO: 6 at the warehouse, 4 in the van."""
    charger, rcbo, _ = stocked
    repo.record_transfer(charger.id, warehouse.id, van.id, 8)
    repo.record_transfer(rcbo.id, warehouse.id, van.id, 14)
    repo.record_material_usage(engineer.id, rcbo.id, 10, job_ref="JOB-1")
    return stocked


class TestLowStockScopes:
    def test_any_scope(self, repo, spread, warehouse, van):
        rows = repo.get_low_stock_items("any")
        assert [(r.item_sku, r.location_id, r.on_hand) for r in rows] == [
            ("RCBO-40A-B", van.id, 4),
            ("CHG-7KW-T2", warehouse.id, 2),
            ("RCBO-40A-B", warehouse.id, 6),
        ]

    def test_van_scope_only_vans(self, repo, spread, van):
        rows = repo.get_low_stock_items("van")
        assert len(rows) == 1
        assert rows[0].location_id == van.id
        assert rows[0].location_name == "Priya's Van"
        assert rows[0].shortfall == 4

    def test_total_scope_sums_locations(self, repo, spread):
        assert repo.get_low_stock_items("total") == []

    def test_total_scope_counts_unstocked_items(self, repo, items):
        rows = repo.get_low_stock_items("total")
        assert [(r.item_sku, r.on_hand, r.location_id) for r in rows] == [
            ("RCBO-40A-B", 0, None),
            ("CHG-7KW-T2", 0, None),
        ]

    def test_any_scope_ignores_items_without_ledger_rows(self, repo, items):
        assert repo.get_low_stock_items("any") == []

    def test_zero_reorder_point_never_low(self, repo, stocked, warehouse,
                                          depot):
        cable = stocked[2]
        repo.record_transfer(cable.id, warehouse.id, depot.id, 300)
        rows = repo.get_low_stock_items("any")
        assert cable.id not in {r.item_id for r in rows}

    def test_on_hand_equal_to_reorder_point_is_low(self, repo, stocked,
                                                   warehouse):
        repo.record_adjustment(stocked[0].id, warehouse.id, -6)
        rows = repo.get_low_stock_items("any")
        assert [(r.item_sku, r.on_hand) for r in rows] == [
            ("CHG-7KW-T2", 4)
        ]

    def test_inactive_items_are_skipped(self, repo, items):
        repo.deactivate_item(items[1].id)
        rows = repo.get_low_stock_items("total")
        assert [r.item_sku for r in rows] == ["CHG-7KW-T2"]

    def test_default_scope_from_config(self, repo, spread, monkeypatch):
        monkeypatch.setattr(Config, "LOW_STOCK_SCOPE", "van")
        assert len(repo.get_low_stock_items()) == 1

    def test_unknown_scope(self, repo, items):
        with pytest.raises(ValueError):
            repo.get_low_stock_items("everywhere")
