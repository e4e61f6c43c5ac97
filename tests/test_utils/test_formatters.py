"""Tests for display formatters."""

import pytest

from voltstock.utils.formatters import (
    format_currency,
    format_quantity,
    format_signed,
    format_status,
)


class TestFormatCurrency:
    def test_basic(self):
        assert format_currency(1234.5) == "£1,234.50"

    def test_zero(self):
        assert format_currency(0) == "£0.00"

    def test_rounds(self):
        assert format_currency(4.105) in ("£4.10", "£4.11")


class TestFormatQuantity:
    def test_normal(self):
        assert format_quantity(12, 4) == "12"

    def test_at_reorder_point(self):
        assert format_quantity(4, 4) == "4 (LOW)"

    def test_no_reorder_point(self):
        assert format_quantity(0) == "0"


class TestFormatSigned:
    @pytest.mark.parametrize("value, expected", [
        (3, "+3"), (-2, "-2"), (0, "0"),
    ])
    def test_signs(self, value, expected):
        assert format_signed(value) == expected


class TestFormatStatus:
    @pytest.mark.parametrize("status, expected", [
        ("in_pick", "Picking"),
        ("pending", "Pending Approval"),
        ("received_by_supplier", "Received by Supplier"),
        ("rejected", "Rejected"),
        ("some_new_state", "Some New State"),
    ])
    def test_labels(self, status, expected):
        assert format_status(status) == expected
