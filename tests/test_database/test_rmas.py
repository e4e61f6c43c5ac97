"""Tests for supplier returns (RMAs)."""

from datetime import date, datetime

import pytest

from voltstock.database.models import Rma, RmaLine


@pytest.fixture
def rma_id(repo, stocked, supplier, warehouse, admin_user):
    return repo.create_rma(
        Rma(item_id=stocked[0].id, supplier_id=supplier.id,
            serial_number="SN-0001", return_reason="faulty"),
        location_id=warehouse.id, user_id=admin_user.id,
    )


def _walk(repo, rma_id, *statuses):
    for status in statuses:
        repo.update_rma_status(rma_id, status)


class TestCreateRma:
    def test_defaults(self, repo, rma_id, supplier, admin_user):
        rma = repo.get_rma_by_id(rma_id)
        year = datetime.now().year
        assert rma.rma_number == f"RMA-{year}-001"
        assert rma.status == "pending_return"
        assert rma.item_sku == "CHG-7KW-T2"
        assert rma.supplier_name == supplier.name
        assert rma.created_by == admin_user.id
        assert rma.is_open

    def test_single_unit_line_by_default(self, repo, rma_id, stocked):
        lines = repo.get_rma_lines(rma_id)
        assert [(ln.item_id, ln.quantity) for ln in lines] == [
            (stocked[0].id, 1)
        ]

    def test_books_stock_out(self, repo, rma_id, stocked, warehouse):
        assert repo.get_on_hand(stocked[0].id, warehouse.id) == 9
        rma = repo.get_rma_by_id(rma_id)
        txn = repo.get_transactions(item_id=stocked[0].id,
                                    direction="out")[0]
        assert txn.reference == rma.rma_number
        assert txn.notes == "faulty"

    def test_without_location_books_nothing(self, repo, stocked, warehouse):
        repo.create_rma(Rma(item_id=stocked[0].id, return_reason="doa"))
        assert repo.get_on_hand(stocked[0].id, warehouse.id) == 10

    def test_explicit_lines(self, repo, stocked, warehouse):
        rma_id = repo.create_rma(
            Rma(item_id=stocked[1].id, return_reason="damaged"),
            [RmaLine(item_id=stocked[1].id, quantity=3,
                     condition_notes="Cracked casing")],
            location_id=warehouse.id,
        )
        lines = repo.get_rma_lines(rma_id)
        assert lines[0].quantity == 3
        assert lines[0].condition_notes == "Cracked casing"
        assert repo.get_on_hand(stocked[1].id, warehouse.id) == 17

    def test_numbers_advance(self, repo, rma_id, stocked):
        second = repo.create_rma(
            Rma(item_id=stocked[1].id, return_reason="other")
        )
        assert repo.get_rma_by_id(second).rma_number.endswith("-002")

    def test_skips_past_hand_entered_number(self, repo, stocked):
        year = datetime.now().year
        repo.create_rma(Rma(item_id=stocked[0].id, return_reason="faulty",
                            rma_number=f"RMA-{year}-005"))
        rma_id = repo.create_rma(
            Rma(item_id=stocked[1].id, return_reason="faulty")
        )
        assert repo.get_rma_by_id(rma_id).rma_number == f"RMA-{year}-006"

    def test_duplicate_number_rejected(self, repo, rma_id, stocked,
                                       warehouse):
        taken = repo.get_rma_by_id(rma_id).rma_number
        with pytest.raises(ValueError, match="already in use"):
            repo.create_rma(
                Rma(item_id=stocked[0].id, return_reason="faulty",
                    rma_number=taken),
                location_id=warehouse.id,
            )
        assert len(repo.get_rmas()) == 1
        assert repo.get_on_hand(stocked[0].id, warehouse.id) == 9

    @pytest.mark.parametrize("reason", ["", "  "])
    def test_reason_required(self, repo, items, reason):
        with pytest.raises(ValueError, match="return reason"):
            repo.create_rma(Rma(item_id=items[0].id, return_reason=reason))

    def test_non_positive_line_quantity(self, repo, items):
        with pytest.raises(ValueError):
            repo.create_rma(
                Rma(item_id=items[0].id, return_reason="faulty"),
                [RmaLine(item_id=items[0].id, quantity=0)],
            )

    def test_insufficient_stock_rolls_back(self, repo, stocked, depot):
        with pytest.raises(ValueError, match="Insufficient"):
            repo.create_rma(
                Rma(item_id=stocked[0].id, return_reason="faulty"),
                location_id=depot.id,
            )
        assert repo.get_rmas() == []


class TestRmaStatus:
    def test_ship_sets_tracking(self, repo, rma_id):
        repo.ship_rma(rma_id, "  DPD123  ")
        rma = repo.get_rma_by_id(rma_id)
        assert rma.status == "in_transit"
        assert rma.tracking_number == "DPD123"
        assert rma.return_date == date.today().isoformat()

    def test_ship_needs_tracking(self, repo, rma_id):
        with pytest.raises(ValueError, match="tracking number"):
            repo.ship_rma(rma_id, " ")
        assert repo.get_rma_by_id(rma_id).status == "pending_return"

    def test_full_cycle(self, repo, rma_id):
        repo.ship_rma(rma_id, "DPD123", return_date="2026-03-02")
        repo.update_rma_status(rma_id, "received_by_supplier")
        repo.update_rma_status(rma_id, "replacement_sent",
                               replacement_expected_date="2026-03-10")
        repo.receive_rma_replacement(rma_id, serial="SN-0002")
        repo.update_rma_status(rma_id, "closed", notes="Swapped on site")
        rma = repo.get_rma_by_id(rma_id)
        assert rma.status == "closed"
        assert rma.return_date == "2026-03-02"
        assert rma.replacement_expected_date == "2026-03-10"
        assert rma.replacement_serial_number == "SN-0002"
        assert rma.replacement_received_date == date.today().isoformat()
        assert rma.notes == "Swapped on site"
        assert not rma.is_open

    def test_supplier_may_close_without_replacement(self, repo, rma_id):
        _walk(repo, rma_id, "in_transit", "received_by_supplier", "closed")
        assert repo.get_rma_by_id(rma_id).status == "closed"

    @pytest.mark.parametrize("start, target", [
        ((), "received_by_supplier"),
        ((), "closed"),
        (("in_transit",), "cancelled"),
        (("cancelled",), "in_transit"),
    ])
    def test_invalid_transitions(self, repo, rma_id, start, target):
        _walk(repo, rma_id, *start)
        with pytest.raises(ValueError, match="Cannot move an RMA"):
            repo.update_rma_status(rma_id, target)

    def test_unknown_field(self, repo, rma_id):
        with pytest.raises(ValueError, match="Cannot update RMA field"):
            repo.update_rma_status(rma_id, "in_transit", status="closed")

    def test_unknown_rma(self, repo):
        with pytest.raises(ValueError, match="not found"):
            repo.update_rma_status(77, "in_transit")

    def test_filter_by_status(self, repo, rma_id, stocked):
        other = repo.create_rma(
            Rma(item_id=stocked[1].id, return_reason="wrong_item")
        )
        repo.update_rma_status(other, "cancelled")
        assert [r.id for r in repo.get_rmas("pending_return")] == [rma_id]
        assert len(repo.get_rmas()) == 2


class TestReplacement:
    def test_replacement_booked_in(self, repo, rma_id, stocked, warehouse,
                                   admin_user):
        _walk(repo, rma_id, "in_transit", "received_by_supplier",
              "replacement_sent")
        repo.receive_rma_replacement(rma_id, serial="SN-0002",
                                     location_id=warehouse.id,
                                     user_id=admin_user.id)
        assert repo.get_on_hand(stocked[0].id, warehouse.id) == 10
        txn = repo.get_transactions(item_id=stocked[0].id,
                                    direction="in")[0]
        assert txn.notes == "RMA replacement"
        assert txn.reference == repo.get_rma_by_id(rma_id).rma_number

    def test_replacement_needs_replacement_sent(self, repo, rma_id):
        with pytest.raises(ValueError):
            repo.receive_rma_replacement(rma_id)
