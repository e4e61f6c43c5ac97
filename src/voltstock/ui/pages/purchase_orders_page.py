"""Purchase orders page: raise, approve, receive and amend supplier orders."""

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from voltstock.database.models import PurchaseOrder, User
from voltstock.database.repository import Repository
from voltstock.ui.widgets.data_table import DataTable, number_cell, text_cell
from voltstock.utils.constants import (
    AMENDABLE_ORDER_STATUSES,
    ORDER_STATUS_LABELS,
    ORDER_TRANSITIONS,
    role_has_permission,
)
from voltstock.utils.formatters import format_currency

OUTSTANDING_COLOR = "#f9e2af"

ORDER_STATUS_COLORS = {
    "draft": "#a6adc8",
    "pending": "#f9e2af",
    "approved": "#89b4fa",
    "received": "#a6e3a1",
    "cancelled": "#f38ba8",
}


class PurchaseOrdersPage(QWidget):
    """Order list with workflow actions and a line breakdown."""

    COLUMNS = [
        "PO #", "Supplier", "Status", "Lines", "Total", "Expected",
        "Received", "Amended", "Created",
    ]
    LINE_COLUMNS = ["SKU", "Item", "Ordered", "Received", "Unit Cost",
                    "Line Total"]

    message = Signal(str, str)

    def __init__(self, repo: Repository, current_user: User = None):
        super().__init__()
        self.repo = repo
        self.current_user = current_user
        role = current_user.role if current_user else ""
        self._can_create = role_has_permission(role, "orders_create")
        self._can_receive = role_has_permission(role, "orders_receive")
        self._can_amend = role_has_permission(role, "orders_amend")
        self._orders: list[PurchaseOrder] = []
        self._setup_ui()
        self.refresh()

    def _setup_ui(self):
        layout = QVBoxLayout(self)

        toolbar = QHBoxLayout()
        self.status_filter = QComboBox()
        self.status_filter.addItem("All Statuses", None)
        for status, label in ORDER_STATUS_LABELS.items():
            self.status_filter.addItem(label, status)
        self.status_filter.currentIndexChanged.connect(self.refresh)
        toolbar.addWidget(self.status_filter, 1)

        self.new_btn = QPushButton("+ New Order")
        self.new_btn.clicked.connect(self._on_new)
        toolbar.addWidget(self.new_btn)

        self.submit_btn = QPushButton("Submit")
        self.submit_btn.clicked.connect(lambda: self._move("pending"))
        toolbar.addWidget(self.submit_btn)

        self.approve_btn = QPushButton("Approve")
        self.approve_btn.clicked.connect(lambda: self._move("approved"))
        toolbar.addWidget(self.approve_btn)

        self.receive_btn = QPushButton("Receive")
        self.receive_btn.clicked.connect(self._on_receive)
        toolbar.addWidget(self.receive_btn)

        self.amend_btn = QPushButton("Amend")
        self.amend_btn.clicked.connect(self._on_amend)
        toolbar.addWidget(self.amend_btn)

        self.cancel_btn = QPushButton("Cancel Order")
        self.cancel_btn.clicked.connect(self._on_cancel)
        toolbar.addWidget(self.cancel_btn)

        for btn in (self.new_btn, self.submit_btn, self.approve_btn,
                    self.cancel_btn):
            btn.setVisible(self._can_create)
        self.receive_btn.setVisible(self._can_receive)
        self.amend_btn.setVisible(self._can_amend)
        layout.addLayout(toolbar)

        self.summary_label = QLabel("")
        self.summary_label.setStyleSheet("color: #a6adc8; padding: 2px;")
        layout.addWidget(self.summary_label)

        splitter = QSplitter(Qt.Vertical)
        self.table = DataTable(self.COLUMNS)
        self.table.selectionModel().selectionChanged.connect(
            self._on_selection_changed
        )
        splitter.addWidget(self.table)

        self.lines_table = DataTable(self.LINE_COLUMNS)
        splitter.addWidget(self.lines_table)
        layout.addWidget(splitter)

    def refresh(self):
        orders = self.repo.get_all_purchase_orders(
            status=self.status_filter.currentData()
        )
        if self.current_user and self.current_user.role == "engineer":
            orders = [
                o for o in orders
                if o.engineer_id == self.current_user.engineer_id
            ]
        self._orders = orders
        self._populate_table()

    def _populate_table(self):
        rows = [
            [
                order.po_number,
                order.supplier_name,
                text_cell(ORDER_STATUS_LABELS.get(order.status, order.status),
                          color=ORDER_STATUS_COLORS.get(order.status)),
                number_cell(order.line_count),
                text_cell(format_currency(order.total_amount),
                          align_right=True),
                order.expected_delivery_date,
                order.actual_delivery_date,
                "Yes" if order.was_amended else "",
                str(order.created_at or "")[:10],
            ]
            for order in self._orders
        ]
        self.table.set_rows(rows, keys=[o.id for o in self._orders])
        open_value = sum(o.total_amount for o in self._orders if o.is_open)
        self.summary_label.setText(
            f"{len(self._orders)} orders  |  "
            f"Open value: {format_currency(open_value)}"
        )
        self._on_selection_changed()

    def selected_order(self) -> PurchaseOrder | None:
        order_id = self.table.current_key()
        if not order_id:
            return None
        return self.repo.get_purchase_order_by_id(order_id)

    def _on_selection_changed(self):
        order = self.selected_order()
        allowed = ORDER_TRANSITIONS.get(order.status, []) if order else []
        self.submit_btn.setEnabled("pending" in allowed)
        self.approve_btn.setEnabled("approved" in allowed)
        self.cancel_btn.setEnabled("cancelled" in allowed)
        self.receive_btn.setEnabled(
            order is not None and order.status == "approved"
        )

        lines = self.repo.get_purchase_order_lines(order.id) if order else []
        self.amend_btn.setEnabled(
            order is not None
            and order.status in AMENDABLE_ORDER_STATUSES
            and not any(line.received_quantity for line in lines)
        )

        awaiting = order is not None and order.status == "approved"
        self.lines_table.set_rows([
            [
                line.item_sku,
                line.item_name,
                number_cell(line.quantity),
                text_cell(line.received_quantity,
                          color=OUTSTANDING_COLOR
                          if awaiting and line.outstanding else None,
                          align_right=True),
                format_currency(line.unit_cost),
                format_currency(line.line_total),
            ]
            for line in lines
        ])

    def _move(self, status: str) -> bool:
        order = self.selected_order()
        if not order:
            return False
        try:
            self.repo.update_purchase_order_status(order.id, status)
        except ValueError as e:
            QMessageBox.warning(self, "Error", str(e))
            return False
        self.message.emit(
            f"{order.po_number}: {ORDER_STATUS_LABELS.get(status, status)}",
            "info",
        )
        self.refresh()
        return True

    def _on_new(self):
        from voltstock.ui.dialogs.order_dialog import OrderDialog
        dialog = OrderDialog(self.repo, self.current_user, parent=self)
        if dialog.exec():
            self.message.emit("Purchase order created", "success")
            self.refresh()

    def _on_receive(self):
        order = self.selected_order()
        if not order:
            return
        from voltstock.ui.dialogs.receive_dialog import ReceiveDialog
        dialog = ReceiveDialog(self.repo, order.id, self.current_user,
                               parent=self)
        if dialog.exec():
            self.message.emit(f"Stock received for {order.po_number}",
                              "success")
            self.refresh()

    def _on_amend(self):
        order = self.selected_order()
        if not order:
            return
        from voltstock.ui.dialogs.amend_order_dialog import AmendOrderDialog
        dialog = AmendOrderDialog(self.repo, order.id, self.current_user,
                                  parent=self)
        if dialog.exec():
            self.message.emit(
                f"{order.po_number} amended; it needs re-approval",
                "warning",
            )
            self.refresh()

    def _on_cancel(self):
        order = self.selected_order()
        if not order:
            return
        reply = QMessageBox.question(
            self, "Cancel Order", f"Cancel {order.po_number}?",
            QMessageBox.Yes | QMessageBox.No,
        )
        if reply == QMessageBox.Yes:
            self._move("cancelled")
