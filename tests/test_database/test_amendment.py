"""Tests for engineer purchase-order amendments."""

import pytest

from voltstock.database.models import (
    Engineer,
    PurchaseOrder,
    PurchaseOrderLine,
)


@pytest.fixture
def order(repo, items, supplier, engineer):
    order_id = repo.create_purchase_order(
        PurchaseOrder(supplier_id=supplier.id, engineer_id=engineer.id,
                      notes="For the Hartley job"),
        [
            PurchaseOrderLine(item_id=items[0].id, quantity=2),
            PurchaseOrderLine(item_id=items[1].id, quantity=6),
        ],
    )
    return repo.get_purchase_order_by_id(order_id)


class TestPreview:
    def test_preview_lines_and_total(self, repo, order, items):
        result = repo.preview_purchase_order_amendment(order.id, [
            {"item_id": items[0].id, "quantity": 3},
            {"item_id": items[2].id, "quantity": 50},
        ])
        summary = [(ln.item_id, ln.old_quantity, ln.new_quantity,
                    ln.difference) for ln in result.lines]
        assert summary == [
            (items[0].id, 2, 3, 1),
            (items[2].id, 0, 50, 50),
            (items[1].id, 6, 0, -6),
        ]
        assert result.total_amount == pytest.approx(3 * 389.0 + 50 * 4.10)
        assert result.adjustment_txn_ids == []

    def test_preview_writes_nothing(self, repo, order, items):
        repo.preview_purchase_order_amendment(
            order.id, [{"item_id": items[0].id, "quantity": 9}]
        )
        lines = repo.get_purchase_order_lines(order.id)
        assert [ln.quantity for ln in lines] == [2, 6]
        assert repo.get_purchase_order_by_id(order.id).status == "draft"

    def test_preview_rejects_duplicates(self, repo, order, items):
        with pytest.raises(ValueError, match="only once"):
            repo.preview_purchase_order_amendment(order.id, [
                {"item_id": items[0].id, "quantity": 1},
                {"item_id": items[0].id, "quantity": 2},
            ])

    def test_preview_unknown_order(self, repo, items):
        with pytest.raises(ValueError, match="not found"):
            repo.preview_purchase_order_amendment(
                404, [{"item_id": items[0].id, "quantity": 1}]
            )


class TestAmend:
    def test_lines_replaced_and_order_resubmitted(self, repo, order, items,
                                                  engineer, van,
                                                  engineer_user):
        result = repo.amend_purchase_order(
            order.id,
            [{"item_id": items[0].id, "quantity": 4},
             {"item_id": items[2].id, "quantity": 25}],
            "Customer upgraded to two chargers",
            engineer.id, user_id=engineer_user.id,
        )
        lines = repo.get_purchase_order_lines(order.id)
        assert [(ln.item_id, ln.quantity) for ln in lines] == [
            (items[0].id, 4), (items[2].id, 25),
        ]
        amended = repo.get_purchase_order_by_id(order.id)
        assert amended.status == "pending"
        assert amended.was_amended
        assert amended.amended_by == engineer.id
        assert amended.total_amount == pytest.approx(result.total_amount)
        assert amended.total_amount == pytest.approx(4 * 389.0 + 25 * 4.10)

    def test_amendment_note_appended(self, repo, order, items, engineer,
                                     van):
        repo.amend_purchase_order(
            order.id, [{"item_id": items[0].id, "quantity": 1}],
            "  Wrong charger size  ", engineer.id,
        )
        notes = repo.get_purchase_order_by_id(order.id).notes
        assert notes.startswith("For the Hartley job\n\n=== AMENDMENT ===")
        assert "Reason: Wrong charger size\n" in notes
        assert f"Amended by engineer: {engineer.id}\n" in notes
        assert "Amended at: " in notes

    def test_differences_booked_at_van(self, repo, order, items, engineer,
                                       van, engineer_user):
        result = repo.amend_purchase_order(
            order.id,
            [{"item_id": items[0].id, "quantity": 5}],
            "Extra units", engineer.id, user_id=engineer_user.id,
        )
        assert len(result.adjustment_txn_ids) == 2
        txns = [repo.get_transaction_by_id(t)
                for t in result.adjustment_txn_ids]
        assert {(t.item_id, t.qty) for t in txns} == {
            (items[0].id, 3), (items[1].id, -6),
        }
        for txn in txns:
            assert txn.direction == "adjust"
            assert txn.location_id == van.id
            assert txn.status == "approved"
            assert txn.reference == f"PO Amendment: {order.po_number}"
            assert txn.notes == "Extra units"

    def test_unchanged_lines_are_not_booked(self, repo, order, items,
                                            engineer, van):
        result = repo.amend_purchase_order(
            order.id,
            [{"item_id": items[0].id, "quantity": 2},
             {"item_id": items[1].id, "quantity": 7}],
            "One more RCBO", engineer.id,
        )
        assert len(result.adjustment_txn_ids) == 1
        assert repo.get_on_hand(items[1].id, van.id) == 1

    def test_engineer_without_van(self, repo, order, items):
        loner = Engineer(name="Contractor")
        loner.id = repo.create_engineer(loner)
        result = repo.amend_purchase_order(
            order.id, [{"item_id": items[0].id, "quantity": 3}],
            "Contractor amendment", loner.id,
        )
        assert result.adjustment_txn_ids == []
        assert repo.get_purchase_order_by_id(order.id).status == "pending"

    def test_approved_order_can_be_amended(self, repo, order, items,
                                           engineer, van):
        repo.update_purchase_order_status(order.id, "pending")
        repo.update_purchase_order_status(order.id, "approved")
        repo.amend_purchase_order(
            order.id, [{"item_id": items[0].id, "quantity": 1}],
            "Scope cut", engineer.id,
        )
        assert repo.get_purchase_order_by_id(order.id).status == "pending"


class TestAmendRejections:
    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_reason_required(self, repo, order, items, engineer, reason):
        with pytest.raises(ValueError, match="reason"):
            repo.amend_purchase_order(
                order.id, [{"item_id": items[0].id, "quantity": 1}],
                reason, engineer.id,
            )

    def test_items_required(self, repo, order, engineer):
        with pytest.raises(ValueError, match="at least one line"):
            repo.amend_purchase_order(order.id, [], "Nothing", engineer.id)

    def test_non_positive_quantity(self, repo, order, items, engineer):
        with pytest.raises(ValueError):
            repo.amend_purchase_order(
                order.id, [{"item_id": items[0].id, "quantity": 0}],
                "Zero", engineer.id,
            )

    def test_cancelled_order(self, repo, order, items, engineer):
        repo.update_purchase_order_status(order.id, "cancelled")
        with pytest.raises(ValueError, match="cannot be amended"):
            repo.amend_purchase_order(
                order.id, [{"item_id": items[0].id, "quantity": 1}],
                "Too late", engineer.id,
            )

    def test_received_stock_blocks_amendment(self, repo, order, items,
                                             engineer, van, warehouse):
        repo.update_purchase_order_status(order.id, "pending")
        repo.update_purchase_order_status(order.id, "approved")
        line = repo.get_purchase_order_lines(order.id)[0]
        repo.receive_purchase_order(
            order.id, [{"po_line_id": line.id, "quantity": 1}], warehouse.id
        )
        with pytest.raises(ValueError, match="already been received"):
            repo.amend_purchase_order(
                order.id, [{"item_id": items[0].id, "quantity": 5}],
                "More", engineer.id,
            )

    def test_failure_leaves_order_untouched(self, repo, order, items,
                                            engineer, van):
        with pytest.raises(ValueError):
            repo.amend_purchase_order(
                order.id,
                [{"item_id": items[0].id, "quantity": 1},
                 {"item_id": items[0].id, "quantity": 2}],
                "Duplicate", engineer.id,
            )
        lines = repo.get_purchase_order_lines(order.id)
        assert [ln.quantity for ln in lines] == [2, 6]
        assert repo.get_transactions(location_id=van.id) == []
