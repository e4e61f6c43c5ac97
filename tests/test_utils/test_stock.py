"""Tests for the low-stock predicate and scope filtering."""

import pytest

from voltstock.database.models import InventoryItem, Location, StockBalance
from voltstock.utils.stock import find_low_stock, is_low_stock


@pytest.fixture
def catalogue():
    items = [
        InventoryItem(id=1, sku="A-1", name="Isolator", reorder_point=5),
        InventoryItem(id=2, sku="B-2", name="Gland", reorder_point=10),
        InventoryItem(id=3, sku="C-3", name="Clips", reorder_point=0),
    ]
    locations = [
        Location(id=10, name="Warehouse", type="warehouse"),
        Location(id=20, name="Van 1", type="van", engineer_id=1),
    ]
    balances = [
        StockBalance(item_id=1, location_id=10, on_hand=20),
        StockBalance(item_id=1, location_id=20, on_hand=2),
        StockBalance(item_id=2, location_id=10, on_hand=3),
        StockBalance(item_id=3, location_id=20, on_hand=0),
    ]
    return items, balances, locations


class TestIsLowStock:
    @pytest.mark.parametrize("on_hand, reorder_point, expected", [
        (0, 5, True),
        (5, 5, True),
        (6, 5, False),
        (0, 0, False),
        (-2, 0, False),
        (-2, 1, True),
    ])
    def test_predicate(self, on_hand, reorder_point, expected):
        assert is_low_stock(on_hand, reorder_point) is expected


class TestFindLowStock:
    def test_any(self, catalogue):
        rows = find_low_stock(*catalogue, scope="any")
        assert [(r.item_id, r.location_id, r.shortfall) for r in rows] == [
            (2, 10, 7), (1, 20, 3),
        ]

    def test_van(self, catalogue):
        rows = find_low_stock(*catalogue, scope="van")
        assert [(r.item_id, r.location_name) for r in rows] == [
            (1, "Van 1")
        ]

    def test_total(self, catalogue):
        rows = find_low_stock(*catalogue, scope="total")
        assert [(r.item_id, r.on_hand) for r in rows] == [(2, 3)]
        assert rows[0].location_id is None

    def test_total_includes_items_without_balances(self, catalogue):
        items, _, locations = catalogue
        rows = find_low_stock(items, [], locations, scope="total")
        assert [r.item_sku for r in rows] == ["B-2", "A-1"]

    def test_ties_sorted_by_sku(self):
        items = [
            InventoryItem(id=1, sku="Z-9", reorder_point=4),
            InventoryItem(id=2, sku="M-5", reorder_point=4),
        ]
        rows = find_low_stock(items, [], [], scope="total")
        assert [r.item_sku for r in rows] == ["M-5", "Z-9"]

    def test_inactive_items_skipped(self, catalogue):
        items, balances, locations = catalogue
        items[1].is_active = 0
        rows = find_low_stock(items, balances, locations, scope="any")
        assert [r.item_id for r in rows] == [1]

    def test_unknown_scope(self, catalogue):
        with pytest.raises(ValueError, match="Unknown low stock scope"):
            find_low_stock(*catalogue, scope="depot")
