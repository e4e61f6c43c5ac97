"""Engineer purchase order amendment dialog with a live preview."""

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMessageBox,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
)

from voltstock.database.models import User
from voltstock.database.repository import Repository
from voltstock.ui.dialogs.line_table import ItemLineTable
from voltstock.utils.formatters import format_currency, format_signed


class AmendOrderDialog(QDialog):
    """Change the quantities on an order before anything is received.

    Differences are booked against the engineer's van stock, so the
    preview shows them before the amendment is saved.
    """

    PREVIEW_COLUMNS = ["Item", "Old Qty", "New Qty", "Change", "Unit Cost"]

    def __init__(self, repo: Repository, order_id: int,
                 current_user: User, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.order_id = order_id
        self.current_user = current_user
        self.order = repo.get_purchase_order_by_id(order_id)
        self.amendment = None

        self.setWindowTitle(
            f"Amend {self.order.po_number}" if self.order else "Amend Order"
        )
        self.setMinimumSize(640, 600)
        self._setup_ui()
        for line in repo.get_purchase_order_lines(order_id):
            self.lines.add_line(line.item_id, line.quantity)
        self._refresh_preview()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self.engineer_combo = QComboBox()
        for eng in self.repo.get_all_engineers():
            self.engineer_combo.addItem(eng.name, eng.id)
        default_engineer = (
            self.current_user.engineer_id
            or (self.order.engineer_id if self.order else None)
        )
        if default_engineer:
            idx = self.engineer_combo.findData(default_engineer)
            if idx >= 0:
                self.engineer_combo.setCurrentIndex(idx)
        self.engineer_combo.setEnabled(self.current_user.role != "engineer")
        form.addRow("Engineer:", self.engineer_combo)

        self.reason_input = QLineEdit()
        self.reason_input.setPlaceholderText(
            "e.g. Customer added a second charger"
        )
        form.addRow("Reason *:", self.reason_input)
        layout.addLayout(form)

        layout.addWidget(QLabel("Amended lines:"))
        self.lines = ItemLineTable(self.repo.get_all_items())
        self.lines.lines_changed.connect(self._refresh_preview)
        layout.addWidget(self.lines, 1)

        layout.addWidget(QLabel("Preview:"))
        self.preview = QTableWidget(0, len(self.PREVIEW_COLUMNS))
        self.preview.setHorizontalHeaderLabels(self.PREVIEW_COLUMNS)
        self.preview.setEditTriggers(QTableWidget.NoEditTriggers)
        self.preview.horizontalHeader().setSectionResizeMode(
            0, QHeaderView.Stretch
        )
        layout.addWidget(self.preview, 1)

        self.total_label = QLabel("")
        self.total_label.setStyleSheet("font-weight: bold;")
        layout.addWidget(self.total_label)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Ok | QDialogButtonBox.Cancel
        )
        buttons.button(QDialogButtonBox.Ok).setText("Amend Order")
        buttons.accepted.connect(self._amend)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def amendment_items(self) -> list[dict]:
        merged: dict[int, int] = {}
        for item_id, qty in self.lines.lines():
            merged[item_id] = merged.get(item_id, 0) + qty
        return [{"item_id": k, "quantity": v} for k, v in merged.items()]

    def _refresh_preview(self):
        items = self.amendment_items()
        try:
            preview = self.repo.preview_purchase_order_amendment(
                self.order_id, items
            )
        except ValueError as e:
            self.total_label.setText(str(e))
            return

        self.preview.setRowCount(len(preview.lines))
        for row, line in enumerate(preview.lines):
            change = QTableWidgetItem(format_signed(line.difference))
            if line.difference > 0:
                change.setForeground(QColor("#a6e3a1"))
            elif line.difference < 0:
                change.setForeground(QColor("#f38ba8"))
            cells = [
                QTableWidgetItem(line.item_name),
                QTableWidgetItem(str(line.old_quantity)),
                QTableWidgetItem(str(line.new_quantity)),
                change,
                QTableWidgetItem(format_currency(line.unit_cost)),
            ]
            for col, cell in enumerate(cells):
                if col:
                    cell.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
                self.preview.setItem(row, col, cell)
        self.total_label.setText(
            f"New total: {format_currency(preview.total_amount)}"
        )

    def _amend(self):
        try:
            self.amendment = self.repo.amend_purchase_order(
                self.order_id,
                self.amendment_items(),
                self.reason_input.text(),
                self.engineer_combo.currentData(),
                user_id=self.current_user.id,
            )
        except ValueError as e:
            QMessageBox.warning(self, "Amendment Failed", str(e))
            return
        self.accept()
