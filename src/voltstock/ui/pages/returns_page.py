"""Returns & RMAs page: open returns and walk them through to closure."""

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from voltstock.database.repository import Repository
from voltstock.ui.widgets.data_table import DataTable, text_cell
from voltstock.utils.constants import (
    RETURN_REASON_LABELS,
    RMA_STATUS_LABELS,
    RMA_TRANSITIONS,
    role_has_permission,
)

RMA_STATUS_COLORS = {
    "pending_return": "#f9e2af",
    "in_transit": "#89b4fa",
    "received_by_supplier": "#89b4fa",
    "replacement_sent": "#cba6f7",
    "replacement_received": "#a6e3a1",
    "closed": "#a6adc8",
    "cancelled": "#f38ba8",
}


class ReturnsPage(QWidget):
    """View and manage RMAs."""

    COLUMNS = [
        "RMA #", "Item", "Supplier", "Serial", "Status", "Reason",
        "Tracking", "Replacement Due", "Created",
    ]

    message = Signal(str, str)

    def __init__(self, repo: Repository, current_user=None):
        super().__init__()
        self.repo = repo
        self.current_user = current_user
        self._can_manage = bool(current_user) and role_has_permission(
            current_user.role, "rmas_manage"
        )
        self._rmas = []
        self._setup_ui()
        self.refresh()

    def _setup_ui(self):
        layout = QVBoxLayout(self)

        # ── Toolbar ────────────────────────────────────────────
        toolbar = QHBoxLayout()

        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search RMAs...")
        self.search_input.textChanged.connect(self._on_search)
        toolbar.addWidget(self.search_input, 2)

        self.status_filter = QComboBox()
        self.status_filter.addItem("All Statuses", None)
        for status, label in RMA_STATUS_LABELS.items():
            self.status_filter.addItem(label, status)
        self.status_filter.currentIndexChanged.connect(self.refresh)
        toolbar.addWidget(self.status_filter, 1)

        self.new_btn = QPushButton("+ New RMA")
        self.new_btn.clicked.connect(self._on_new_rma)
        toolbar.addWidget(self.new_btn)
        layout.addLayout(toolbar)

        actions = QHBoxLayout()
        self.ship_btn = QPushButton("Ship to Supplier")
        self.ship_btn.clicked.connect(self._on_ship)
        self.supplier_btn = QPushButton("Supplier Received")
        self.supplier_btn.clicked.connect(
            lambda: self._move("received_by_supplier")
        )
        self.replacement_sent_btn = QPushButton("Replacement Sent")
        self.replacement_sent_btn.clicked.connect(
            lambda: self._move("replacement_sent")
        )
        self.receive_btn = QPushButton("Receive Replacement")
        self.receive_btn.clicked.connect(self._on_receive_replacement)
        self.close_btn = QPushButton("Close")
        self.close_btn.clicked.connect(lambda: self._move("closed"))
        self.cancel_btn = QPushButton("Cancel RMA")
        self.cancel_btn.clicked.connect(self._on_cancel)

        self._action_buttons = {
            "in_transit": self.ship_btn,
            "received_by_supplier": self.supplier_btn,
            "replacement_sent": self.replacement_sent_btn,
            "replacement_received": self.receive_btn,
            "closed": self.close_btn,
            "cancelled": self.cancel_btn,
        }
        for btn in self._action_buttons.values():
            btn.setEnabled(False)
            btn.setVisible(self._can_manage)
            actions.addWidget(btn)
        actions.addStretch()
        self.new_btn.setVisible(self._can_manage)
        layout.addLayout(actions)

        # ── Summary ───────────────────────────────────────────
        self.summary_label = QLabel("")
        self.summary_label.setStyleSheet("color: #a6adc8; padding: 2px;")
        layout.addWidget(self.summary_label)

        # ── Table ─────────────────────────────────────────────
        self.table = DataTable(self.COLUMNS, sortable=True)
        self.table.selectionModel().selectionChanged.connect(
            self._on_selection_changed
        )
        layout.addWidget(self.table)

    def refresh(self):
        self._rmas = self.repo.get_rmas(status=self.status_filter.currentData())
        self._on_search()

    def _on_search(self):
        search = self.search_input.text().strip().lower()
        if search:
            filtered = [
                r for r in self._rmas
                if search in r.rma_number.lower()
                or search in r.item_name.lower()
                or search in r.item_sku.lower()
                or search in (r.serial_number or "").lower()
            ]
        else:
            filtered = self._rmas
        self._populate_table(filtered)

    def _populate_table(self, rmas):
        rows = [
            [
                rma.rma_number,
                f"{rma.item_sku} {rma.item_name}",
                rma.supplier_name,
                rma.serial_number,
                text_cell(RMA_STATUS_LABELS.get(rma.status, rma.status),
                          color=RMA_STATUS_COLORS.get(rma.status)),
                RETURN_REASON_LABELS.get(rma.return_reason,
                                         rma.return_reason),
                rma.tracking_number,
                rma.replacement_expected_date,
                str(rma.created_at or "")[:10],
            ]
            for rma in rmas
        ]
        self.table.set_rows(rows, keys=[r.id for r in rmas])
        open_count = sum(1 for r in rmas if r.is_open)
        self.summary_label.setText(
            f"{len(rmas)} RMAs  |  {open_count} open"
        )
        self._on_selection_changed()

    def _get_selected_rma(self):
        rma_id = self.table.current_key()
        return self.repo.get_rma_by_id(rma_id) if rma_id else None

    def _on_selection_changed(self):
        rma = self._get_selected_rma()
        allowed = RMA_TRANSITIONS.get(rma.status, []) if rma else []
        for status, btn in self._action_buttons.items():
            btn.setEnabled(status in allowed)

    def _on_new_rma(self):
        from voltstock.ui.dialogs.rma_dialog import RmaDialog
        dlg = RmaDialog(self.repo, self.current_user, parent=self)
        if dlg.exec():
            self.message.emit("RMA created", "success")
            self.refresh()

    def _move(self, status: str, **fields) -> bool:
        rma = self._get_selected_rma()
        if not rma:
            return False
        try:
            self.repo.update_rma_status(rma.id, status, **fields)
        except ValueError as e:
            QMessageBox.warning(self, "Error", str(e))
            return False
        self.message.emit(
            f"{rma.rma_number}: {RMA_STATUS_LABELS.get(status, status)}",
            "info",
        )
        self.refresh()
        return True

    def _on_ship(self):
        rma = self._get_selected_rma()
        if not rma:
            return
        tracking, ok = QInputDialog.getText(
            self, "Ship RMA", f"Tracking number for {rma.rma_number}:"
        )
        if not ok:
            return
        try:
            self.repo.ship_rma(rma.id, tracking)
        except ValueError as e:
            QMessageBox.warning(self, "Error", str(e))
            return
        self.message.emit(f"{rma.rma_number} shipped", "info")
        self.refresh()

    def _on_receive_replacement(self):
        rma = self._get_selected_rma()
        if not rma:
            return
        serial, ok = QInputDialog.getText(
            self, "Replacement Received",
            f"Replacement serial number for {rma.rma_number}:",
        )
        if not ok:
            return
        locations = self.repo.get_all_locations()
        labels = ["(do not book into stock)"] + [loc.name for loc in locations]
        label, ok = QInputDialog.getItem(
            self, "Book Into Stock", "Receive replacement into:",
            labels, 0, False,
        )
        if not ok:
            return
        location_id = None
        if label in labels[1:]:
            location_id = locations[labels.index(label) - 1].id
        try:
            self.repo.receive_rma_replacement(
                rma.id, serial.strip(), location_id=location_id,
                user_id=self.current_user.id if self.current_user else None,
            )
        except ValueError as e:
            QMessageBox.warning(self, "Error", str(e))
            return
        self.message.emit(f"{rma.rma_number} replacement received", "success")
        self.refresh()

    def _on_cancel(self):
        rma = self._get_selected_rma()
        if not rma:
            return
        reply = QMessageBox.question(
            self, "Cancel RMA", f"Cancel {rma.rma_number}?",
            QMessageBox.Yes | QMessageBox.No,
        )
        if reply == QMessageBox.Yes:
            self._move("cancelled")
