"""pytest-qt tests for the main tab pages."""

import pytest
from PySide6.QtWidgets import QInputDialog

from voltstock.database.models import (
    InventoryTxn,
    PurchaseOrder,
    PurchaseOrderLine,
    Rma,
    StockRequest,
    StockRequestLine,
    User,
)
from voltstock.database.repository import Repository


def select_row(table, text, column=0):
    """Select the row whose cell in ``column`` shows ``text``."""
    for row in range(table.rowCount()):
        cell = table.item(row, column)
        if cell is not None and cell.text() == text:
            table.setCurrentCell(row, column)
            return row
    raise AssertionError(f"{text!r} not found in table")


def column_texts(table, column=0):
    return [table.item(r, column).text() for r in range(table.rowCount())]


@pytest.fixture
def request_for_van(repo, items, engineer, van):
    return repo.create_stock_request(
        StockRequest(engineer_id=engineer.id,
                     destination_location_id=van.id),
        [StockRequestLine(item_id=items[0].id, qty=2)],
    )


# ── Dashboard ─────────────────────────────────────────────────

class TestDashboardPage:
    def test_cards_show_kpis(self, qtbot, repo, stocked, admin_user):
        from voltstock.ui.pages.dashboard_page import DashboardPage
        page = DashboardPage(repo, admin_user)
        qtbot.addWidget(page)
        assert page.cards["active_items"].value_label.text() == "3"
        assert page.cards["total_on_hand"].value_label.text() == "330"

    def test_pending_card_only_for_approvers(self, qtbot, repo,
                                             manager_user, admin_user):
        from voltstock.ui.pages.dashboard_page import DashboardPage
        manager_page = DashboardPage(repo, manager_user)
        admin_page = DashboardPage(repo, admin_user)
        qtbot.addWidget(manager_page)
        qtbot.addWidget(admin_page)
        assert manager_page.cards["pending_approvals"].isHidden()
        assert not admin_page.cards["pending_approvals"].isHidden()

    def test_low_stock_scope(self, qtbot, repo, items, admin_user):
        from voltstock.ui.pages.dashboard_page import DashboardPage
        page = DashboardPage(repo, admin_user)
        qtbot.addWidget(page)
        # Nothing is stocked anywhere, so only the total scope reports
        assert page.low_stock_table.rowCount() == 0
        page.scope_combo.setCurrentIndex(page.scope_combo.findData("total"))
        assert page.low_stock_table.rowCount() == 2
        assert page.low_stock_table.item(0, 2).text() == "All locations"

    def test_refresh_picks_up_new_stock(self, qtbot, repo, items, warehouse,
                                        admin_user):
        from voltstock.ui.pages.dashboard_page import DashboardPage
        page = DashboardPage(repo, admin_user)
        qtbot.addWidget(page)
        repo.record_transaction(InventoryTxn(
            item_id=items[0].id, location_id=warehouse.id, direction="in",
            qty=2,
        ))
        page.refresh_btn.click()
        assert page.cards["total_on_hand"].value_label.text() == "2"
        assert page.low_stock_table.rowCount() == 1


# ── Items ─────────────────────────────────────────────────────

class TestItemsPage:
    def test_lists_active_items(self, qtbot, repo, stocked, manager_user):
        from voltstock.ui.pages.items_page import ItemsPage
        page = ItemsPage(repo, manager_user)
        qtbot.addWidget(page)
        assert page.table.rowCount() == 3
        assert sorted(column_texts(page.table)) == [
            "CBL-SWA-6", "CHG-7KW-T2", "RCBO-40A-B",
        ]
        assert page.summary_label.text().startswith("3 items")

    def test_search(self, qtbot, repo, items, manager_user):
        from voltstock.ui.pages.items_page import ItemsPage
        page = ItemsPage(repo, manager_user)
        qtbot.addWidget(page)
        page.search_input.setText("rcbo")
        assert column_texts(page.table) == ["RCBO-40A-B"]

    def test_low_only(self, qtbot, repo, stocked, warehouse, manager_user):
        from voltstock.ui.pages.items_page import ItemsPage
        repo.record_adjustment(stocked[0].id, warehouse.id, -7,
                               reason="Damaged")
        page = ItemsPage(repo, manager_user)
        qtbot.addWidget(page)
        page.low_only_check.setChecked(True)
        assert column_texts(page.table) == ["CHG-7KW-T2"]
        assert page.table.item(0, 3).text() == "3 (LOW)"

    def test_selection_enables_actions(self, qtbot, repo, items,
                                       manager_user):
        from voltstock.ui.pages.items_page import ItemsPage
        page = ItemsPage(repo, manager_user)
        qtbot.addWidget(page)
        assert not page.edit_btn.isEnabled()
        select_row(page.table, "CHG-7KW-T2")
        assert page.edit_btn.isEnabled()
        assert page.selected_item().id == items[0].id

    def test_engineer_sees_no_edit_actions(self, qtbot, repo, items,
                                           engineer_user):
        from voltstock.ui.pages.items_page import ItemsPage
        page = ItemsPage(repo, engineer_user)
        qtbot.addWidget(page)
        for btn in (page.add_btn, page.edit_btn, page.transfer_btn,
                    page.adjust_btn, page.import_btn, page.deactivate_btn):
            assert btn.isHidden()

    def test_deactivate(self, qtbot, repo, items, manager_user,
                        message_boxes):
        from voltstock.ui.pages.items_page import ItemsPage
        page = ItemsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, "CBL-SWA-6")
        page._on_deactivate()
        assert message_boxes.kinds() == ["question"]
        assert "CBL-SWA-6" not in column_texts(page.table)
        assert repo.get_item_by_id(items[2].id).is_active == 0

    def test_deactivate_declined(self, qtbot, repo, items, manager_user,
                                 message_boxes):
        from PySide6.QtWidgets import QMessageBox
        from voltstock.ui.pages.items_page import ItemsPage
        message_boxes.answer = QMessageBox.No
        page = ItemsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, "CBL-SWA-6")
        page._on_deactivate()
        assert page.table.rowCount() == 3

    def test_add_emits_message(self, qtbot, repo, manager_user,
                               monkeypatch):
        from voltstock.ui.dialogs.item_dialog import ItemDialog
        from voltstock.ui.pages.items_page import ItemsPage
        monkeypatch.setattr(ItemDialog, "exec", lambda self: 1)
        page = ItemsPage(repo, manager_user)
        qtbot.addWidget(page)
        with qtbot.waitSignal(page.message) as blocker:
            page._on_add()
        assert blocker.args == ["Item added", "success"]


# ── Transactions ──────────────────────────────────────────────

class TestTransactionsPage:
    @pytest.fixture
    def pending(self, repo, stocked, warehouse, manager_user):
        return repo.record_adjustment(
            stocked[0].id, warehouse.id, -2, reason="Broken casing",
            user_id=manager_user.id, status="pending",
        )

    def test_lists_ledger(self, qtbot, repo, stocked, pending, admin_user):
        from voltstock.ui.pages.transactions_page import TransactionsPage
        page = TransactionsPage(repo, admin_user)
        qtbot.addWidget(page)
        assert page.table.rowCount() == 4
        assert "1 pending approval" in page.summary_label.text()

    def test_status_filter(self, qtbot, repo, stocked, pending, admin_user):
        from voltstock.ui.pages.transactions_page import TransactionsPage
        page = TransactionsPage(repo, admin_user)
        qtbot.addWidget(page)
        page.status_filter.setCurrentIndex(
            page.status_filter.findData("pending")
        )
        assert page.table.rowCount() == 1
        assert page.table.item(0, 5).text() == "-2"

    def test_manager_cannot_approve(self, qtbot, repo, pending,
                                    manager_user):
        from voltstock.ui.pages.transactions_page import TransactionsPage
        page = TransactionsPage(repo, manager_user)
        qtbot.addWidget(page)
        assert page.approve_btn.isHidden()
        assert page.reject_btn.isHidden()

    def test_selection_shows_audit(self, qtbot, repo, pending, admin_user):
        from voltstock.ui.pages.transactions_page import TransactionsPage
        page = TransactionsPage(repo, admin_user)
        qtbot.addWidget(page)
        select_row(page.table, "-2", column=5)
        assert page.approve_btn.isEnabled()
        assert page.audit_list.count() == 1
        assert "created" in page.audit_list.item(0).text()

    def test_approve(self, qtbot, repo, stocked, warehouse, pending,
                     admin_user):
        from voltstock.ui.pages.transactions_page import TransactionsPage
        page = TransactionsPage(repo, admin_user)
        qtbot.addWidget(page)
        select_row(page.table, "-2", column=5)
        with qtbot.waitSignal(page.message):
            page._on_approve()
        assert repo.get_transaction_by_id(pending).status == "approved"
        assert repo.get_on_hand(stocked[0].id, warehouse.id) == 8

    def test_reject_with_reason(self, qtbot, repo, pending, admin_user,
                                monkeypatch):
        from voltstock.ui.pages.transactions_page import TransactionsPage
        monkeypatch.setattr(QInputDialog, "getText",
                            lambda *a, **k: ("Recount found them", True))
        page = TransactionsPage(repo, admin_user)
        qtbot.addWidget(page)
        select_row(page.table, "-2", column=5)
        page._on_reject()
        txn = repo.get_transaction_by_id(pending)
        assert txn.status == "rejected"
        assert txn.rejection_reason == "Recount found them"

    def test_reject_without_reason_warns(self, qtbot, repo, pending,
                                         admin_user, monkeypatch,
                                         message_boxes):
        from voltstock.ui.pages.transactions_page import TransactionsPage
        monkeypatch.setattr(QInputDialog, "getText",
                            lambda *a, **k: ("", True))
        page = TransactionsPage(repo, admin_user)
        qtbot.addWidget(page)
        select_row(page.table, "-2", column=5)
        page._on_reject()
        assert message_boxes.calls[0][1] == "Cannot Reject"
        assert repo.get_transaction_by_id(pending).status == "pending"


# ── Stock Requests ────────────────────────────────────────────

class TestStockRequestsPage:
    def test_engineer_sees_own_requests(self, qtbot, repo, items,
                                        request_for_van, engineer_user,
                                        warehouse):
        from voltstock.database.models import Engineer
        from voltstock.ui.pages.stock_requests_page import StockRequestsPage
        other = repo.create_engineer(Engineer(name="Tom Reed"))
        repo.create_stock_request(
            StockRequest(engineer_id=other,
                         destination_location_id=warehouse.id),
            [StockRequestLine(item_id=items[1].id, qty=1)],
        )
        page = StockRequestsPage(repo, engineer_user)
        qtbot.addWidget(page)
        assert column_texts(page.table) == [str(request_for_van)]
        assert page.approve_btn.isHidden()
        assert not page.cancel_btn.isHidden()

    def test_buttons_follow_status(self, qtbot, repo, request_for_van,
                                   manager_user):
        from voltstock.ui.pages.stock_requests_page import StockRequestsPage
        page = StockRequestsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, str(request_for_van))
        assert page.approve_btn.isEnabled()
        assert page.reject_btn.isEnabled()
        assert not page.pick_btn.isEnabled()
        assert page.order_btn.isEnabled()
        assert page.lines_list.count() == 1

    def test_workflow_through_to_delivery(self, qtbot, repo, stocked,
                                          request_for_van, warehouse, van,
                                          manager_user, monkeypatch):
        from voltstock.ui.pages.stock_requests_page import StockRequestsPage
        monkeypatch.setattr(
            QInputDialog, "getItem",
            lambda *a, **k: (warehouse.name, True),
        )
        page = StockRequestsPage(repo, manager_user)
        qtbot.addWidget(page)
        for step in ("approved", "in_pick", "in_transit"):
            select_row(page.table, str(request_for_van))
            assert page._move(step)
        select_row(page.table, str(request_for_van))
        page._on_deliver()
        request = repo.get_stock_request_by_id(request_for_van)
        assert request.status == "delivered"
        assert request.source_location_id == warehouse.id
        assert repo.get_on_hand(stocked[0].id, van.id) == 2

    def test_deliver_without_stock_movement(self, qtbot, repo, stocked,
                                            request_for_van, van,
                                            manager_user, monkeypatch):
        from voltstock.ui.pages.stock_requests_page import (
            NO_STOCK_MOVE,
            StockRequestsPage,
        )
        monkeypatch.setattr(QInputDialog, "getItem",
                            lambda *a, **k: (NO_STOCK_MOVE, True))
        for step in ("approved", "in_pick", "in_transit"):
            repo.update_stock_request_status(request_for_van, step)
        page = StockRequestsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, str(request_for_van))
        page._on_deliver()
        assert repo.get_stock_request_by_id(
            request_for_van).status == "delivered"
        assert repo.get_on_hand(stocked[0].id, van.id) == 0

    def test_reject_appends_reason(self, qtbot, repo, request_for_van,
                                   manager_user, monkeypatch):
        from voltstock.ui.pages.stock_requests_page import StockRequestsPage
        monkeypatch.setattr(QInputDialog, "getText",
                            lambda *a, **k: ("Use the spare in stores", True))
        page = StockRequestsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, str(request_for_van))
        page._on_reject()
        request = repo.get_stock_request_by_id(request_for_van)
        assert request.status == "rejected"
        assert request.notes == "Rejected: Use the spare in stores"

    def test_invalid_move_warns(self, qtbot, repo, request_for_van,
                                manager_user, message_boxes):
        from voltstock.ui.pages.stock_requests_page import StockRequestsPage
        page = StockRequestsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, str(request_for_van))
        assert not page._move("delivered")
        assert message_boxes.kinds() == ["warning"]

    def test_cancel(self, qtbot, repo, request_for_van, engineer_user):
        from voltstock.ui.pages.stock_requests_page import StockRequestsPage
        page = StockRequestsPage(repo, engineer_user)
        qtbot.addWidget(page)
        select_row(page.table, str(request_for_van))
        page._on_cancel()
        assert repo.get_stock_request_by_id(
            request_for_van).status == "cancelled"

    def test_attach_photo(self, qtbot, repo, request_for_van, manager_user,
                          tmp_path, monkeypatch):
        from PySide6.QtWidgets import QFileDialog
        from voltstock.ui.pages.stock_requests_page import StockRequestsPage
        photo = tmp_path / "damaged.JPG"
        photo.write_bytes(b"\xff\xd8\xff")
        monkeypatch.setattr(QFileDialog, "getOpenFileName",
                            lambda *a, **k: (str(photo), ""))
        page = StockRequestsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, str(request_for_van))
        page._on_attach_photo()
        path = repo.get_stock_request_by_id(request_for_van).photo_path
        assert path.endswith(".jpg")


# ── Purchase Orders ───────────────────────────────────────────

class TestPurchaseOrdersPage:
    @pytest.fixture
    def order(self, repo, items, supplier, engineer):
        order_id = repo.create_purchase_order(
            PurchaseOrder(po_number="PO-TEST-001", supplier_id=supplier.id,
                          engineer_id=engineer.id),
            [PurchaseOrderLine(item_id=items[1].id, quantity=5)],
        )
        return order_id

    def test_lists_orders(self, qtbot, repo, order, manager_user):
        from voltstock.ui.pages.purchase_orders_page import (
            PurchaseOrdersPage,
        )
        page = PurchaseOrdersPage(repo, manager_user)
        qtbot.addWidget(page)
        assert column_texts(page.table) == ["PO-TEST-001"]
        assert page.table.item(0, 4).text() == "£342.50"

    def test_selection_loads_lines(self, qtbot, repo, order, manager_user):
        from voltstock.ui.pages.purchase_orders_page import (
            PurchaseOrdersPage,
        )
        page = PurchaseOrdersPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, "PO-TEST-001")
        assert page.lines_table.rowCount() == 1
        assert page.submit_btn.isEnabled()
        assert not page.approve_btn.isEnabled()
        assert not page.receive_btn.isEnabled()
        assert page.amend_btn.isEnabled()

    def test_submit_and_approve(self, qtbot, repo, order, manager_user):
        from voltstock.ui.pages.purchase_orders_page import (
            PurchaseOrdersPage,
        )
        page = PurchaseOrdersPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, "PO-TEST-001")
        assert page._move("pending")
        select_row(page.table, "PO-TEST-001")
        assert page._move("approved")
        select_row(page.table, "PO-TEST-001")
        assert page.receive_btn.isEnabled()
        assert repo.get_purchase_order_by_id(order).status == "approved"

    def test_amend_disabled_after_receipt(self, qtbot, repo, order,
                                          warehouse, manager_user):
        from voltstock.ui.pages.purchase_orders_page import (
            PurchaseOrdersPage,
        )
        repo.update_purchase_order_status(order, "pending")
        repo.update_purchase_order_status(order, "approved")
        line = repo.get_purchase_order_lines(order)[0]
        repo.receive_purchase_order(
            order, [{"po_line_id": line.id, "quantity": 2}], warehouse.id
        )
        page = PurchaseOrdersPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, "PO-TEST-001")
        assert not page.amend_btn.isEnabled()
        assert page.receive_btn.isEnabled()

    def test_engineer_sees_own_orders(self, qtbot, repo, order, items,
                                      engineer_user):
        from voltstock.ui.pages.purchase_orders_page import (
            PurchaseOrdersPage,
        )
        repo.create_purchase_order(
            PurchaseOrder(po_number="PO-TEST-002"),
            [PurchaseOrderLine(item_id=items[0].id, quantity=1)],
        )
        page = PurchaseOrdersPage(repo, engineer_user)
        qtbot.addWidget(page)
        assert column_texts(page.table) == ["PO-TEST-001"]
        assert page.new_btn.isHidden()
        assert not page.amend_btn.isHidden()

    def test_cancel(self, qtbot, repo, order, manager_user):
        from voltstock.ui.pages.purchase_orders_page import (
            PurchaseOrdersPage,
        )
        page = PurchaseOrdersPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, "PO-TEST-001")
        page._on_cancel()
        assert repo.get_purchase_order_by_id(order).status == "cancelled"


# ── Returns ───────────────────────────────────────────────────

class TestReturnsPage:
    @pytest.fixture
    def rma(self, repo, items, supplier):
        return repo.create_rma(Rma(
            rma_number="RMA-TEST-001", item_id=items[0].id,
            supplier_id=supplier.id, serial_number="SN-4410",
            return_reason="faulty",
        ))

    def test_lists_rmas(self, qtbot, repo, rma, manager_user):
        from voltstock.ui.pages.returns_page import ReturnsPage
        page = ReturnsPage(repo, manager_user)
        qtbot.addWidget(page)
        assert column_texts(page.table) == ["RMA-TEST-001"]
        assert page.table.item(0, 5).text() == "Faulty"
        assert "1 open" in page.summary_label.text()

    def test_search_by_serial(self, qtbot, repo, rma, manager_user):
        from voltstock.ui.pages.returns_page import ReturnsPage
        page = ReturnsPage(repo, manager_user)
        qtbot.addWidget(page)
        page.search_input.setText("sn-44")
        assert page.table.rowCount() == 1
        page.search_input.setText("nothing")
        assert page.table.rowCount() == 0

    def test_ship(self, qtbot, repo, rma, manager_user, monkeypatch):
        from voltstock.ui.pages.returns_page import ReturnsPage
        monkeypatch.setattr(QInputDialog, "getText",
                            lambda *a, **k: ("1Z999", True))
        page = ReturnsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, "RMA-TEST-001")
        assert page.ship_btn.isEnabled()
        page._on_ship()
        shipped = repo.get_rma_by_id(rma)
        assert shipped.status == "in_transit"
        assert shipped.tracking_number == "1Z999"

    def test_ship_needs_tracking(self, qtbot, repo, rma, manager_user,
                                 monkeypatch, message_boxes):
        from voltstock.ui.pages.returns_page import ReturnsPage
        monkeypatch.setattr(QInputDialog, "getText",
                            lambda *a, **k: ("  ", True))
        page = ReturnsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, "RMA-TEST-001")
        page._on_ship()
        assert message_boxes.kinds() == ["warning"]
        assert repo.get_rma_by_id(rma).status == "pending_return"

    def test_receive_replacement_into_stock(self, qtbot, repo, rma, items,
                                            warehouse, manager_user,
                                            monkeypatch):
        from voltstock.ui.pages.returns_page import ReturnsPage
        repo.ship_rma(rma, "1Z999")
        repo.update_rma_status(rma, "received_by_supplier")
        repo.update_rma_status(rma, "replacement_sent")
        monkeypatch.setattr(QInputDialog, "getText",
                            lambda *a, **k: ("SN-5000", True))
        monkeypatch.setattr(QInputDialog, "getItem",
                            lambda *a, **k: (warehouse.name, True))
        page = ReturnsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, "RMA-TEST-001")
        assert page.receive_btn.isEnabled()
        page._on_receive_replacement()
        received = repo.get_rma_by_id(rma)
        assert received.status == "replacement_received"
        assert received.replacement_serial_number == "SN-5000"
        assert repo.get_on_hand(items[0].id, warehouse.id) == 1

    def test_cancel(self, qtbot, repo, rma, manager_user):
        from voltstock.ui.pages.returns_page import ReturnsPage
        page = ReturnsPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.table, "RMA-TEST-001")
        page._on_cancel()
        assert repo.get_rma_by_id(rma).status == "cancelled"


# ── My Van ────────────────────────────────────────────────────

class TestVanStockPage:
    @pytest.fixture
    def van_stock(self, repo, stocked, warehouse, van):
        repo.record_transfer(stocked[0].id, warehouse.id, van.id, 5)
        repo.record_transfer(stocked[1].id, warehouse.id, van.id, 3)
        return stocked

    def test_no_van(self, qtbot, repo, manager_user):
        from voltstock.ui.pages.van_stock_page import VanStockPage
        page = VanStockPage(repo, manager_user)
        qtbot.addWidget(page)
        assert page.van_label.text() == "No van is assigned to you"
        assert page.table.rowCount() == 0
        assert not page.request_btn.isEnabled()

    def test_lists_van_stock(self, qtbot, repo, van_stock, engineer_user):
        from voltstock.ui.pages.van_stock_page import VanStockPage
        page = VanStockPage(repo, engineer_user)
        qtbot.addWidget(page)
        assert page.van_label.text() == "My Van -- Priya's Van"
        assert page.table.rowCount() == 2
        assert page.steppers[van_stock[0].id].quantity == 5
        assert "1 low" in page.summary_label.text()

    def test_engineer_taps_wait_for_approval(self, qtbot, repo, van_stock,
                                             van, engineer_user):
        from voltstock.ui.pages.van_stock_page import (
            QUICK_ADJUST_REASON,
            VanStockPage,
        )
        page = VanStockPage(repo, engineer_user, debounce_ms=10_000)
        qtbot.addWidget(page)
        stepper = page.steppers[van_stock[0].id]
        stepper.plus_btn.click()
        stepper.plus_btn.click()
        with qtbot.waitSignal(page.message) as blocker:
            page.adjuster.flush()
        assert blocker.args == ["Sent 1 adjustment(s) for approval", "info"]
        assert repo.get_on_hand(van_stock[0].id, van.id) == 5
        pending = repo.get_transactions(location_id=van.id, status="pending")
        assert [(t.qty, t.notes) for t in pending] == [
            (2, QUICK_ADJUST_REASON),
        ]
        row = select_row(page.table, "CHG-7KW-T2")
        assert page.table.item(row, 4).text() == "+2"

    def test_approver_taps_apply_immediately(self, qtbot, repo, van_stock,
                                             van, engineer):
        from voltstock.ui.pages.van_stock_page import VanStockPage
        lead = User(username="lead", display_name="Lead Engineer",
                    pin_hash=Repository.hash_pin("9999"), role="admin",
                    engineer_id=engineer.id)
        lead.id = repo.create_user(lead)
        page = VanStockPage(repo, lead, debounce_ms=10_000)
        qtbot.addWidget(page)
        page.steppers[van_stock[1].id].minus_btn.click()
        page.adjuster.flush()
        assert repo.get_on_hand(van_stock[1].id, van.id) == 2
        assert page.steppers[van_stock[1].id].quantity == 2

    def test_pending_decreases_limit_further_taps(self, qtbot, repo,
                                                  van_stock, van,
                                                  engineer_user):
        from voltstock.ui.pages.van_stock_page import VanStockPage
        page = VanStockPage(repo, engineer_user, debounce_ms=10_000)
        qtbot.addWidget(page)
        item_id = van_stock[1].id
        for _ in range(3):
            page.steppers[item_id].minus_btn.click()
        page.adjuster.flush()

        stepper = page.steppers[item_id]
        assert stepper.quantity == 0
        assert not stepper.minus_btn.isEnabled()
        stepper.minus_btn.click()
        page.adjuster.flush()
        pending = repo.get_transactions(location_id=van.id,
                                        status="pending")
        assert [t.qty for t in pending] == [-3]

    def test_hiding_flushes_pending_taps(self, qtbot, repo, van_stock, van,
                                         engineer_user):
        from voltstock.ui.pages.van_stock_page import VanStockPage
        page = VanStockPage(repo, engineer_user, debounce_ms=10_000)
        qtbot.addWidget(page)
        page.show()
        page.steppers[van_stock[0].id].minus_btn.click()
        page.hide()
        assert not page.adjuster.is_pending()
        assert len(repo.get_transactions(location_id=van.id,
                                         status="pending")) == 1

    def test_selection_enables_actions(self, qtbot, repo, van_stock,
                                       engineer_user):
        from voltstock.ui.pages.van_stock_page import VanStockPage
        page = VanStockPage(repo, engineer_user)
        qtbot.addWidget(page)
        assert not page.usage_btn.isEnabled()
        select_row(page.table, "RCBO-40A-B")
        assert page.usage_btn.isEnabled()
        assert page.selected_balance().item_id == van_stock[1].id
        assert page.return_btn.isEnabled()

    def test_return_needs_unclaimed_stock(self, qtbot, repo, van_stock, van,
                                          engineer_user):
        from voltstock.ui.pages.van_stock_page import VanStockPage
        repo.record_adjustment(van_stock[1].id, van.id, -3, reason="Used",
                               user_id=engineer_user.id, status="pending")
        page = VanStockPage(repo, engineer_user)
        qtbot.addWidget(page)
        select_row(page.table, "RCBO-40A-B")
        assert page.selected_available() == 0
        assert not page.return_btn.isEnabled()
        select_row(page.table, "CHG-7KW-T2")
        assert page.selected_available() == 5
        assert page.return_btn.isEnabled()

    def test_return_to_warehouse(self, qtbot, repo, van_stock, van,
                                 warehouse, engineer_user, monkeypatch):
        from voltstock.ui.dialogs.van_return_dialog import VanReturnDialog
        from voltstock.ui.pages.van_stock_page import VanStockPage

        def submit(dialog):
            dialog.warehouse_combo.setCurrentIndex(
                dialog.warehouse_combo.findData(warehouse.id)
            )
            dialog.qty_spin.setValue(2)
            dialog._submit()
            return dialog.result()

        monkeypatch.setattr(VanReturnDialog, "exec", submit)
        page = VanStockPage(repo, engineer_user)
        qtbot.addWidget(page)
        select_row(page.table, "CHG-7KW-T2")
        with qtbot.waitSignal(page.message) as blocker:
            page._on_return()
        assert blocker.args == [
            "Returned CHG-7KW-T2 to the warehouse", "success",
        ]
        assert repo.get_on_hand(van_stock[0].id, van.id) == 3
        assert repo.get_on_hand(van_stock[0].id, warehouse.id) == 7
        assert page.steppers[van_stock[0].id].quantity == 3

    def test_return_faulty_stock_on_rma(self, qtbot, repo, van_stock, van,
                                        engineer_user, monkeypatch):
        from voltstock.ui.dialogs.van_return_dialog import VanReturnDialog
        from voltstock.ui.pages.van_stock_page import VanStockPage

        def submit(dialog):
            dialog.rma_radio.setChecked(True)
            dialog._submit()
            return dialog.result()

        monkeypatch.setattr(VanReturnDialog, "exec", submit)
        page = VanStockPage(repo, engineer_user)
        qtbot.addWidget(page)
        select_row(page.table, "RCBO-40A-B")
        with qtbot.waitSignal(page.message) as blocker:
            page._on_return()
        rma = repo.get_rmas()[0]
        assert blocker.args == [f"Created {rma.rma_number}", "success"]
        assert rma.return_reason == "faulty"
        assert repo.get_on_hand(van_stock[1].id, van.id) == 2
        assert page.steppers[van_stock[1].id].quantity == 2


# ── Setup ─────────────────────────────────────────────────────

class TestSetupPage:
    def test_users_tab_is_admin_only(self, qtbot, repo, admin_user,
                                     manager_user):
        from voltstock.ui.pages.setup_page import SetupPage
        manager_page = SetupPage(repo, manager_user)
        qtbot.addWidget(manager_page)
        assert not manager_page.sections.isTabVisible(3)
        admin_page = SetupPage(repo, admin_user)
        qtbot.addWidget(admin_page)
        assert admin_page.sections.isTabVisible(3)
        assert column_texts(admin_page.users.table) == ["admin", "ops"]

    def test_lists_records(self, qtbot, repo, van, supplier, manager_user):
        from voltstock.ui.pages.setup_page import SetupPage
        page = SetupPage(repo, manager_user)
        qtbot.addWidget(page)
        assert page.locations.table.rowCount() == 4
        row = select_row(page.locations.table, "Priya's Van")
        assert page.locations.table.item(row, 3).text() == "Priya Shah"
        row = select_row(page.engineers.table, "Priya Shah")
        assert page.engineers.table.item(row, 3).text() == "Priya's Van"
        assert column_texts(page.suppliers.table) == [
            "ChargePoint Wholesale",
        ]

    def test_buttons_follow_selection(self, qtbot, repo, supplier,
                                      manager_user):
        from voltstock.ui.pages.setup_page import SetupPage
        page = SetupPage(repo, manager_user)
        qtbot.addWidget(page)
        assert not page.suppliers.edit_btn.isEnabled()
        select_row(page.suppliers.table, "ChargePoint Wholesale")
        assert page.suppliers.edit_btn.isEnabled()
        assert page.suppliers.deactivate_btn.isEnabled()

    def test_deactivate_empty_location(self, qtbot, repo, depot,
                                       manager_user, message_boxes):
        from voltstock.ui.pages.setup_page import SetupPage
        page = SetupPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.locations.table, depot.name)
        with qtbot.waitSignal(page.message) as blocker:
            page._deactivate_location()
        assert blocker.args == ["Location deactivated", "success"]
        assert message_boxes.kinds() == ["question"]
        row = select_row(page.locations.table, depot.name)
        assert page.locations.table.item(row, 4).text() == "No"

    def test_deactivate_stocked_location_refused(self, qtbot, repo, stocked,
                                                 warehouse, manager_user):
        from voltstock.ui.pages.setup_page import SetupPage
        page = SetupPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.locations.table, warehouse.name)
        with qtbot.waitSignal(page.message) as blocker:
            page._deactivate_location()
        assert blocker.args[1] == "error"
        assert "Move or write off" in blocker.args[0]
        assert repo.get_location_by_id(warehouse.id).is_active

    def test_declined_confirmation_changes_nothing(self, qtbot, repo,
                                                   supplier, manager_user,
                                                   message_boxes):
        from PySide6.QtWidgets import QMessageBox
        from voltstock.ui.pages.setup_page import SetupPage
        message_boxes.answer = QMessageBox.No
        page = SetupPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.suppliers.table, supplier.name)
        page._deactivate_supplier()
        assert repo.get_supplier_by_id(supplier.id).is_active

    def test_deactivate_engineer(self, qtbot, repo, engineer, van,
                                 manager_user):
        from voltstock.ui.pages.setup_page import SetupPage
        page = SetupPage(repo, manager_user)
        qtbot.addWidget(page)
        select_row(page.engineers.table, "Priya Shah")
        with qtbot.waitSignal(page.message) as blocker:
            page._deactivate_engineer()
        assert blocker.args == ["Engineer deactivated", "success"]
        assert not repo.get_location_by_id(van.id).is_active

    def test_cannot_deactivate_yourself(self, qtbot, repo, admin_user):
        from voltstock.ui.pages.setup_page import SetupPage
        page = SetupPage(repo, admin_user)
        qtbot.addWidget(page)
        select_row(page.users.table, "admin")
        with qtbot.waitSignal(page.message) as blocker:
            page._deactivate_user()
        assert blocker.args == ["You cannot deactivate yourself", "error"]
        assert repo.get_user_by_id(admin_user.id).is_active

    def test_deactivate_other_user(self, qtbot, repo, admin_user,
                                   manager_user):
        from voltstock.ui.pages.setup_page import SetupPage
        page = SetupPage(repo, admin_user)
        qtbot.addWidget(page)
        select_row(page.users.table, "ops")
        page._deactivate_user()
        assert not repo.get_user_by_id(manager_user.id).is_active

    def test_add_supplier_emits_message(self, qtbot, repo, manager_user,
                                        monkeypatch):
        from voltstock.ui.dialogs.supplier_dialog import SupplierDialog
        from voltstock.ui.pages.setup_page import SetupPage

        def submit(dialog):
            dialog.name_input.setText("Cable Direct")
            dialog._save()
            return dialog.result()

        monkeypatch.setattr(SupplierDialog, "exec", submit)
        page = SetupPage(repo, manager_user)
        qtbot.addWidget(page)
        with qtbot.waitSignal(page.message) as blocker:
            page._add_supplier()
        assert blocker.args == ["Supplier added", "success"]
        assert column_texts(page.suppliers.table) == ["Cable Direct"]
