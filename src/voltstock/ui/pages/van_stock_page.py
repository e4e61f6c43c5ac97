"""My Van page: an engineer's own van stock."""

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from voltstock.database.models import StockBalance, User
from voltstock.database.repository import Repository
from voltstock.ui.widgets.data_table import (
    LOW_STOCK_COLOR,
    DataTable,
    number_cell,
    text_cell,
)
from voltstock.ui.widgets.quantity_stepper import (
    DebouncedAdjuster,
    QuantityStepper,
)
from voltstock.utils.constants import role_has_permission
from voltstock.utils.formatters import format_signed
from voltstock.utils.stock import is_low_stock

QUICK_ADJUST_REASON = "Van quick adjustment"


class VanStockPage(QWidget):
    """Van contents with +/- steppers, material usage and stock counts.

    Stepper taps are coalesced by a :class:`DebouncedAdjuster` and written
    as one adjustment per item. Unless the user may approve ledger rows,
    those adjustments wait for approval and show in the Pending column.
    """

    COLUMNS = ["SKU", "Item", "Unit", "Quantity", "Pending", "Reorder Point"]

    message = Signal(str, str)

    def __init__(self, repo: Repository, current_user: User,
                 debounce_ms: int | None = None):
        super().__init__()
        self.repo = repo
        self.current_user = current_user
        self.engineer_id = current_user.engineer_id if current_user else None
        self._auto_approve = bool(current_user) and role_has_permission(
            current_user.role, "txns_approve"
        )
        self.van = None
        self._balances: list[StockBalance] = []
        self._pending: dict[int, int] = {}
        self.steppers: dict[int, QuantityStepper] = {}

        self.adjuster = DebouncedAdjuster(
            self._write_adjustment, delay_ms=debounce_ms, parent=self
        )
        self.adjuster.flushed.connect(self._on_flushed)
        self.adjuster.failed.connect(self._on_failed)

        self._setup_ui()
        self.refresh()

    def _setup_ui(self):
        layout = QVBoxLayout(self)

        self.van_label = QLabel("")
        self.van_label.setObjectName("PageTitle")
        layout.addWidget(self.van_label)

        toolbar = QHBoxLayout()
        self.usage_btn = QPushButton("Record Usage")
        self.usage_btn.clicked.connect(self._on_usage)
        toolbar.addWidget(self.usage_btn)

        self.count_btn = QPushButton("Report Incorrect Stock")
        self.count_btn.clicked.connect(self._on_count)
        toolbar.addWidget(self.count_btn)

        self.return_btn = QPushButton("Return Stock")
        self.return_btn.clicked.connect(self._on_return)
        toolbar.addWidget(self.return_btn)

        self.request_btn = QPushButton("Request Stock")
        self.request_btn.clicked.connect(self._on_request)
        toolbar.addWidget(self.request_btn)
        toolbar.addStretch()

        self.refresh_btn = QPushButton("Refresh")
        self.refresh_btn.clicked.connect(self.refresh)
        toolbar.addWidget(self.refresh_btn)
        layout.addLayout(toolbar)

        self.table = DataTable(self.COLUMNS)
        self.table.selectionModel().selectionChanged.connect(
            self._on_selection_changed
        )
        layout.addWidget(self.table)

        self.summary_label = QLabel("")
        self.summary_label.setStyleSheet("color: #a6adc8; padding: 2px;")
        layout.addWidget(self.summary_label)

    def refresh(self):
        self.van = van = (
            self.repo.get_engineer_van_location(self.engineer_id)
            if self.engineer_id else None
        )
        if not van:
            self.van_label.setText("No van is assigned to you")
            self._balances = []
            self._pending = {}
        else:
            self.van_label.setText(f"My Van -- {van.name}")
            self._balances = self.repo.get_van_stock(self.engineer_id)
            self._pending = {}
            for txn in self.repo.get_transactions(location_id=van.id,
                                                  status="pending"):
                self._pending[txn.item_id] = (
                    self._pending.get(txn.item_id, 0) + txn.signed_qty
                )
        self.request_btn.setEnabled(bool(van))
        self._populate_table()

    def _populate_table(self):
        rows = []
        low_count = 0
        for bal in self._balances:
            low = is_low_stock(bal.on_hand, bal.reorder_point)
            low_count += low
            pending = self._pending.get(bal.item_id, 0)
            rows.append([
                text_cell(bal.item_sku, color=LOW_STOCK_COLOR if low else None),
                bal.item_name,
                bal.unit,
                "",
                format_signed(pending) if pending else "",
                number_cell(bal.reorder_point),
            ])
        self.table.set_rows(rows, keys=[b.item_id for b in self._balances])

        # Quantity column hosts a live stepper per row; pending decreases
        # already claim stock, pending increases do not count until approved
        self.steppers = {}
        for row, bal in enumerate(self._balances):
            pending = self._pending.get(bal.item_id, 0)
            stepper = QuantityStepper(
                self.adjuster, bal.item_id, bal.location_id,
                bal.on_hand + min(pending, 0),
            )
            self.table.setCellWidget(row, 3, stepper)
            self.steppers[bal.item_id] = stepper

        self.summary_label.setText(
            f"{len(self._balances)} items in van  |  {low_count} low"
        )
        self._on_selection_changed()

    def selected_balance(self) -> StockBalance | None:
        row = self.table.currentRow()
        if row < 0 or row >= len(self._balances):
            return None
        return self._balances[row]

    def selected_available(self) -> int:
        bal = self.selected_balance()
        if not bal:
            return 0
        return bal.on_hand + min(self._pending.get(bal.item_id, 0), 0)

    def _on_selection_changed(self):
        has_row = self.selected_balance() is not None
        self.usage_btn.setEnabled(has_row)
        self.count_btn.setEnabled(has_row)
        self.return_btn.setEnabled(has_row and self.selected_available() > 0)

    # ── Debounced adjustments ───────────────────────────────────

    def _write_adjustment(self, item_id: int, location_id: int, delta: int):
        return self.repo.record_adjustment(
            item_id, location_id, delta,
            reason=QUICK_ADJUST_REASON,
            user_id=self.current_user.id,
            status="approved" if self._auto_approve else "pending",
        )

    def _on_flushed(self, count: int):
        if self._auto_approve:
            self.message.emit(f"Saved {count} adjustment(s)", "success")
        else:
            self.message.emit(
                f"Sent {count} adjustment(s) for approval", "info"
            )
        self.refresh()

    def _on_failed(self, error: str):
        self.message.emit(error, "error")
        self.refresh()

    def hideEvent(self, event):
        if self.adjuster.buffer.has_pending():
            self.adjuster.flush()
        super().hideEvent(event)

    # ── Actions ─────────────────────────────────────────────────

    def _on_usage(self):
        bal = self.selected_balance()
        if not bal:
            return
        from voltstock.ui.dialogs.adjustment_dialog import MaterialUsageDialog
        dialog = MaterialUsageDialog(
            self.repo, self.engineer_id, bal.item_id, bal.item_name,
            bal.on_hand, self.current_user, parent=self,
        )
        if dialog.exec():
            self.message.emit(f"Recorded usage of {bal.item_sku}", "success")
            self.refresh()

    def _on_count(self):
        bal = self.selected_balance()
        if not bal:
            return
        from voltstock.ui.dialogs.adjustment_dialog import StockCountDialog
        dialog = StockCountDialog(
            self.repo, self.engineer_id, bal.item_id, bal.item_name,
            bal.on_hand, self.current_user, parent=self,
        )
        if dialog.exec() and dialog.txn_id is not None:
            self.message.emit("Stock correction sent for approval", "info")
            self.refresh()

    def _on_return(self):
        bal = self.selected_balance()
        if not bal or not self.van:
            return
        from voltstock.ui.dialogs.van_return_dialog import VanReturnDialog
        dialog = VanReturnDialog(
            self.repo, self.van, bal.item_id, self.selected_available(),
            self.current_user, parent=self,
        )
        if not dialog.exec():
            return
        if dialog.rma_id is not None:
            rma = self.repo.get_rma_by_id(dialog.rma_id)
            self.message.emit(f"Created {rma.rma_number}", "success")
        else:
            self.message.emit(f"Returned {bal.item_sku} to the warehouse",
                              "success")
        self.refresh()

    def _on_request(self):
        from voltstock.ui.dialogs.stock_request_dialog import (
            StockRequestDialog,
        )
        dialog = StockRequestDialog(self.repo, self.current_user, parent=self)
        if dialog.exec():
            self.message.emit(f"Request #{dialog.request_id} submitted",
                              "success")
