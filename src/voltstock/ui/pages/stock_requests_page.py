"""Stock requests page: engineers ask for stock, the office fulfils it."""

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QListWidget,
    QMessageBox,
    QPushButton,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from voltstock.database.models import StockRequest, User
from voltstock.database.repository import Repository
from voltstock.ui.widgets.data_table import DataTable, number_cell, text_cell
from voltstock.utils.constants import (
    REQUEST_PRIORITY_LABELS,
    STOCK_REQUEST_STATUS_LABELS,
    STOCK_REQUEST_TRANSITIONS,
    role_has_permission,
)

HIGH_PRIORITY_COLOR = "#f38ba8"

REQUEST_STATUS_COLORS = {
    "submitted": "#f9e2af",
    "approved": "#89b4fa",
    "in_pick": "#cba6f7",
    "in_transit": "#89b4fa",
    "delivered": "#a6e3a1",
    "rejected": "#f38ba8",
    "cancelled": "#a6adc8",
}

NO_STOCK_MOVE = "(no stock movement)"


class StockRequestsPage(QWidget):
    """Request list with the fulfilment workflow as toolbar actions.

    Engineers only see their own requests and can only create or cancel
    them; the other steps belong to managers.
    """

    COLUMNS = [
        "#", "Engineer", "Deliver To", "Priority", "Status", "Lines",
        "Needed By", "Order Ref", "Created",
    ]

    message = Signal(str, str)

    def __init__(self, repo: Repository, current_user: User = None):
        super().__init__()
        self.repo = repo
        self.current_user = current_user
        role = current_user.role if current_user else ""
        self._can_create = role_has_permission(role, "requests_create")
        self._can_manage = role_has_permission(role, "requests_manage")
        self._can_order = role_has_permission(role, "orders_create")
        self._requests: list[StockRequest] = []
        self._setup_ui()
        self.refresh()

    def _setup_ui(self):
        layout = QVBoxLayout(self)

        toolbar = QHBoxLayout()
        self.status_filter = QComboBox()
        self.status_filter.addItem("All Statuses", None)
        for status, label in STOCK_REQUEST_STATUS_LABELS.items():
            self.status_filter.addItem(label, status)
        self.status_filter.currentIndexChanged.connect(self.refresh)
        toolbar.addWidget(self.status_filter, 1)

        self.new_btn = QPushButton("+ New Request")
        self.new_btn.clicked.connect(self._on_new)
        self.new_btn.setVisible(self._can_create)
        toolbar.addWidget(self.new_btn)

        self.photo_btn = QPushButton("Attach Photo")
        self.photo_btn.clicked.connect(self._on_attach_photo)
        toolbar.addWidget(self.photo_btn)

        self.order_btn = QPushButton("Create PO")
        self.order_btn.clicked.connect(self._on_create_order)
        self.order_btn.setVisible(self._can_order)
        toolbar.addWidget(self.order_btn)
        toolbar.addStretch()
        layout.addLayout(toolbar)

        actions = QHBoxLayout()
        self.approve_btn = QPushButton("Approve")
        self.approve_btn.clicked.connect(lambda: self._move("approved"))
        self.reject_btn = QPushButton("Reject")
        self.reject_btn.clicked.connect(self._on_reject)
        self.pick_btn = QPushButton("Start Picking")
        self.pick_btn.clicked.connect(lambda: self._move("in_pick"))
        self.dispatch_btn = QPushButton("Dispatch")
        self.dispatch_btn.clicked.connect(lambda: self._move("in_transit"))
        self.deliver_btn = QPushButton("Mark Delivered")
        self.deliver_btn.clicked.connect(self._on_deliver)
        self.cancel_btn = QPushButton("Cancel Request")
        self.cancel_btn.clicked.connect(self._on_cancel)

        self._action_buttons = {
            "approved": self.approve_btn,
            "rejected": self.reject_btn,
            "in_pick": self.pick_btn,
            "in_transit": self.dispatch_btn,
            "delivered": self.deliver_btn,
            "cancelled": self.cancel_btn,
        }
        for status, btn in self._action_buttons.items():
            btn.setEnabled(False)
            btn.setVisible(self._can_manage or status == "cancelled")
            actions.addWidget(btn)
        actions.addStretch()
        layout.addLayout(actions)

        self.summary_label = QLabel("")
        self.summary_label.setStyleSheet("color: #a6adc8; padding: 2px;")
        layout.addWidget(self.summary_label)

        splitter = QSplitter(Qt.Vertical)
        self.table = DataTable(self.COLUMNS, stretch_column=2)
        self.table.selectionModel().selectionChanged.connect(
            self._on_selection_changed
        )
        splitter.addWidget(self.table)

        self.lines_list = QListWidget()
        self.lines_list.setMaximumHeight(160)
        splitter.addWidget(self.lines_list)
        layout.addWidget(splitter)

    def _engineer_scope(self) -> int | None:
        """Engineers are limited to their own requests."""
        if self.current_user and self.current_user.role == "engineer":
            return self.current_user.engineer_id or -1
        return None

    def refresh(self):
        self._requests = self.repo.get_stock_requests(
            engineer_id=self._engineer_scope(),
            status=self.status_filter.currentData(),
            limit=None,
        )
        self._populate_table()

    def _populate_table(self):
        rows = [
            [
                str(req.id),
                req.engineer_name,
                req.destination_name,
                text_cell(
                    REQUEST_PRIORITY_LABELS.get(req.priority, req.priority),
                    color=HIGH_PRIORITY_COLOR
                    if req.priority == "high" else None,
                ),
                text_cell(
                    STOCK_REQUEST_STATUS_LABELS.get(req.status, req.status),
                    color=REQUEST_STATUS_COLORS.get(req.status),
                ),
                number_cell(req.line_count),
                req.needed_by,
                req.order_ref,
                str(req.created_at or "")[:16],
            ]
            for req in self._requests
        ]
        self.table.set_rows(rows, keys=[r.id for r in self._requests])

        counts = self.repo.get_stock_request_counts()
        self.summary_label.setText(
            f"{len(self._requests)} requests  |  "
            f"{counts['submitted']} submitted  |  "
            f"{counts['in_pick']} picking  |  "
            f"{counts['in_transit']} in transit"
        )
        self._on_selection_changed()

    def selected_request(self) -> StockRequest | None:
        request_id = self.table.current_key()
        if not request_id:
            return None
        return self.repo.get_stock_request_by_id(request_id)

    def _on_selection_changed(self):
        req = self.selected_request()
        allowed = STOCK_REQUEST_TRANSITIONS.get(req.status, []) if req else []
        for status, btn in self._action_buttons.items():
            btn.setEnabled(status in allowed)
        self.photo_btn.setEnabled(req is not None)
        self.order_btn.setEnabled(
            req is not None and req.purchase_order_id is None
            and req.status in ("submitted", "approved")
        )

        self.lines_list.clear()
        if not req:
            return
        for line in self.repo.get_stock_request_lines(req.id):
            self.lines_list.addItem(
                f"{line.qty} x {line.item_sku}  {line.item_name}"
            )
        if req.notes:
            self.lines_list.addItem(f"Notes: {req.notes}")
        if req.photo_path:
            self.lines_list.addItem(f"Photo: {req.photo_path}")

    def _move(self, status: str, notes: str | None = None,
              source_location_id: int | None = None) -> bool:
        req = self.selected_request()
        if not req:
            return False
        try:
            self.repo.update_stock_request_status(
                req.id, status,
                user_id=self.current_user.id if self.current_user else None,
                notes=notes,
                source_location_id=source_location_id,
            )
        except ValueError as e:
            QMessageBox.warning(self, "Error", str(e))
            return False
        self.message.emit(
            f"Request #{req.id}: "
            f"{STOCK_REQUEST_STATUS_LABELS.get(status, status)}",
            "info",
        )
        self.refresh()
        return True

    def _on_new(self):
        from voltstock.ui.dialogs.stock_request_dialog import (
            StockRequestDialog,
        )
        dialog = StockRequestDialog(self.repo, self.current_user, parent=self)
        if dialog.exec():
            self.message.emit(f"Request #{dialog.request_id} submitted",
                              "success")
            self.refresh()

    def _on_reject(self):
        reason, ok = QInputDialog.getText(
            self, "Reject Request", "Reason for rejecting:"
        )
        if ok:
            self._move("rejected", notes=f"Rejected: {reason.strip()}"
                       if reason.strip() else None)

    def _on_deliver(self):
        req = self.selected_request()
        if not req:
            return
        source_id = req.source_location_id
        if source_id is None:
            locations = [
                loc for loc in self.repo.get_all_locations()
                if loc.id != req.destination_location_id
            ]
            labels = [NO_STOCK_MOVE] + [loc.name for loc in locations]
            label, ok = QInputDialog.getItem(
                self, "Deliver Request",
                "Move the stock from:", labels, 0, False,
            )
            if not ok:
                return
            if label != NO_STOCK_MOVE:
                source_id = locations[labels.index(label) - 1].id
        self._move("delivered", source_location_id=source_id)

    def _on_cancel(self):
        req = self.selected_request()
        if not req:
            return
        reply = QMessageBox.question(
            self, "Cancel Request", f"Cancel request #{req.id}?",
            QMessageBox.Yes | QMessageBox.No,
        )
        if reply == QMessageBox.Yes:
            self._move("cancelled")

    def _on_attach_photo(self):
        req = self.selected_request()
        if not req:
            return
        filepath, _ = QFileDialog.getOpenFileName(
            self, "Attach Photo", "",
            "Images (*.png *.jpg *.jpeg *.heic);;All Files (*)",
        )
        if not filepath:
            return
        try:
            self.repo.attach_stock_request_photo(req.id, filepath)
        except (ValueError, OSError) as e:
            QMessageBox.warning(self, "Attach Failed", str(e))
            return
        self.message.emit("Photo attached", "success")
        self.refresh()

    def _on_create_order(self):
        req = self.selected_request()
        if not req:
            return
        from voltstock.ui.dialogs.order_dialog import OrderDialog
        dialog = OrderDialog(
            self.repo, self.current_user, stock_request_id=req.id,
            parent=self,
        )
        if dialog.exec():
            self.message.emit("Purchase order created", "success")
            self.refresh()
