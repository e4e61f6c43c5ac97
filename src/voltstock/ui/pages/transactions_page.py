"""Transactions page: the stock ledger with approval of pending rows."""

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QComboBox,
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

from voltstock.database.models import InventoryTxn, User
from voltstock.database.repository import Repository
from voltstock.ui.widgets.data_table import DataTable, text_cell
from voltstock.utils.constants import (
    TXN_DIRECTION_LABELS,
    TXN_STATUS_LABELS,
    role_has_permission,
)
from voltstock.utils.formatters import format_signed

TXN_STATUS_COLORS = {
    "pending": "#f9e2af",
    "approved": "#a6e3a1",
    "rejected": "#f38ba8",
}

LEDGER_LIMIT = 500


class TransactionsPage(QWidget):
    """Browse ledger rows; administrators approve or reject pending ones."""

    COLUMNS = [
        "Date", "SKU", "Item", "Location", "Direction", "Qty", "Status",
        "Reference", "By", "Notes",
    ]

    message = Signal(str, str)

    def __init__(self, repo: Repository, current_user: User = None):
        super().__init__()
        self.repo = repo
        self.current_user = current_user
        self._can_approve = bool(current_user) and role_has_permission(
            current_user.role, "txns_approve"
        )
        self._txns: list[InventoryTxn] = []
        self._setup_ui()
        self.refresh()

    def _setup_ui(self):
        layout = QVBoxLayout(self)

        # ── Filters ────────────────────────────────────────────
        toolbar = QHBoxLayout()

        self.location_filter = QComboBox()
        self.location_filter.addItem("All Locations", None)
        for loc in self.repo.get_all_locations(active_only=False):
            self.location_filter.addItem(loc.name, loc.id)
        self.location_filter.currentIndexChanged.connect(self.refresh)
        toolbar.addWidget(self.location_filter, 1)

        self.direction_filter = QComboBox()
        self.direction_filter.addItem("All Directions", None)
        for direction, label in TXN_DIRECTION_LABELS.items():
            self.direction_filter.addItem(label, direction)
        self.direction_filter.currentIndexChanged.connect(self.refresh)
        toolbar.addWidget(self.direction_filter, 1)

        self.status_filter = QComboBox()
        self.status_filter.addItem("All Statuses", None)
        for status, label in TXN_STATUS_LABELS.items():
            self.status_filter.addItem(label, status)
        self.status_filter.currentIndexChanged.connect(self.refresh)
        toolbar.addWidget(self.status_filter, 1)

        self.approve_btn = QPushButton("Approve")
        self.approve_btn.clicked.connect(self._on_approve)
        toolbar.addWidget(self.approve_btn)

        self.reject_btn = QPushButton("Reject")
        self.reject_btn.clicked.connect(self._on_reject)
        toolbar.addWidget(self.reject_btn)

        for btn in (self.approve_btn, self.reject_btn):
            btn.setEnabled(False)
            btn.setVisible(self._can_approve)
        layout.addLayout(toolbar)

        self.summary_label = QLabel("")
        self.summary_label.setStyleSheet("color: #a6adc8; padding: 2px;")
        layout.addWidget(self.summary_label)

        splitter = QSplitter(Qt.Vertical)

        self.table = DataTable(self.COLUMNS, stretch_column=2)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.selectionModel().selectionChanged.connect(
            self._on_selection_changed
        )
        splitter.addWidget(self.table)

        self.audit_list = QListWidget()
        self.audit_list.setMaximumHeight(140)
        splitter.addWidget(self.audit_list)
        layout.addWidget(splitter)

    def refresh(self):
        self._txns = self.repo.get_transactions(
            location_id=self.location_filter.currentData(),
            direction=self.direction_filter.currentData(),
            status=self.status_filter.currentData(),
            limit=LEDGER_LIMIT,
        )
        self._populate_table()

    def _populate_table(self):
        rows = [
            [
                str(txn.created_at or "")[:16],
                txn.item_sku,
                txn.item_name,
                txn.location_name,
                TXN_DIRECTION_LABELS.get(txn.direction, txn.direction),
                text_cell(format_signed(txn.signed_qty), align_right=True),
                text_cell(TXN_STATUS_LABELS.get(txn.status, txn.status),
                          color=TXN_STATUS_COLORS.get(txn.status)),
                txn.reference,
                txn.created_by_name,
                txn.rejection_reason or txn.notes,
            ]
            for txn in self._txns
        ]
        self.table.set_rows(rows, keys=[t.id for t in self._txns])
        pending = sum(1 for t in self._txns if t.status == "pending")
        self.summary_label.setText(
            f"{len(self._txns)} transactions  |  {pending} pending approval"
        )
        self._on_selection_changed()

    def selected_txn(self) -> InventoryTxn | None:
        txn_id = self.table.current_key()
        if not txn_id:
            return None
        return self.repo.get_transaction_by_id(txn_id)

    def _on_selection_changed(self):
        txn = self.selected_txn()
        is_pending = bool(txn) and txn.status == "pending"
        self.approve_btn.setEnabled(is_pending)
        self.reject_btn.setEnabled(is_pending)

        self.audit_list.clear()
        if not txn:
            return
        for entry in self.repo.get_transaction_audit(txn.id):
            text = (
                f"{str(entry.performed_at or '')[:16]}  {entry.action}"
                f"  by {entry.performed_by_name or 'system'}"
            )
            if entry.reason:
                text += f"  ({entry.reason})"
            self.audit_list.addItem(text)

    def _on_approve(self):
        txn = self.selected_txn()
        if not txn:
            return
        try:
            self.repo.approve_transaction(txn.id, self.current_user.id)
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Approve", str(e))
            return
        self.message.emit(f"Transaction {txn.id} approved", "success")
        self.refresh()

    def _on_reject(self):
        txn = self.selected_txn()
        if not txn:
            return
        reason, ok = QInputDialog.getText(
            self, "Reject Transaction",
            f"Reason for rejecting {txn.item_sku} "
            f"{format_signed(txn.signed_qty)} at {txn.location_name}:",
        )
        if not ok:
            return
        try:
            self.repo.reject_transaction(txn.id, self.current_user.id, reason)
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Reject", str(e))
            return
        self.message.emit(f"Transaction {txn.id} rejected", "info")
        self.refresh()
