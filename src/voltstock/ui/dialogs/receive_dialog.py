"""Dialog for receiving stock against an approved purchase order."""

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QMessageBox,
    QPushButton,
    QSpinBox,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
)

from voltstock.database.models import User
from voltstock.database.repository import Repository


class ReceiveDialog(QDialog):
    """Enter received quantities per line (partial receipts allowed)."""

    COLUMNS = ["SKU", "Item", "Ordered", "Received", "Outstanding",
               "Receive Now"]

    def __init__(self, repo: Repository, order_id: int,
                 current_user: User, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.order_id = order_id
        self.current_user = current_user
        self.order = repo.get_purchase_order_by_id(order_id)
        self._spinboxes: list[tuple[int, QSpinBox]] = []

        self.setWindowTitle(
            f"Receive {self.order.po_number}" if self.order else "Receive"
        )
        self.resize(720, 420)
        self._setup_ui()
        self._load_lines()

    def _setup_ui(self):
        layout = QVBoxLayout(self)

        form = QFormLayout()
        self.location_combo = QComboBox()
        for loc in self.repo.get_all_locations(location_type="warehouse"):
            self.location_combo.addItem(loc.name, loc.id)
        for loc in self.repo.get_all_locations(location_type="van"):
            self.location_combo.addItem(loc.name, loc.id)
        form.addRow("Receive into:", self.location_combo)
        layout.addLayout(form)

        self.table = QTableWidget()
        self.table.setColumnCount(len(self.COLUMNS))
        self.table.setHorizontalHeaderLabels(self.COLUMNS)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.table.horizontalHeader().setSectionResizeMode(
            1, QHeaderView.Stretch
        )
        layout.addWidget(self.table)

        btn_layout = QHBoxLayout()
        all_btn = QPushButton("Receive All Outstanding")
        all_btn.clicked.connect(self._fill_all)
        btn_layout.addWidget(all_btn)
        btn_layout.addStretch()
        self.receive_btn = QPushButton("Receive")
        self.receive_btn.setMinimumHeight(34)
        self.receive_btn.clicked.connect(self._receive)
        cancel_btn = QPushButton("Cancel")
        cancel_btn.setMinimumHeight(34)
        cancel_btn.clicked.connect(self.reject)
        btn_layout.addWidget(self.receive_btn)
        btn_layout.addWidget(cancel_btn)
        layout.addLayout(btn_layout)

        self.status_label = QLabel("")
        layout.addWidget(self.status_label)

    def _load_lines(self):
        lines = self.repo.get_purchase_order_lines(self.order_id)
        self.table.setRowCount(len(lines))
        self._spinboxes = []
        for row, line in enumerate(lines):
            self.table.setItem(row, 0, QTableWidgetItem(line.item_sku))
            self.table.setItem(row, 1, QTableWidgetItem(line.item_name))
            for col, value in ((2, line.quantity),
                               (3, line.received_quantity),
                               (4, line.outstanding)):
                cell = QTableWidgetItem(str(value))
                cell.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
                self.table.setItem(row, col, cell)

            spin = QSpinBox()
            spin.setRange(0, line.outstanding)
            spin.setEnabled(line.outstanding > 0)
            self.table.setCellWidget(row, 5, spin)
            self._spinboxes.append((line.id, spin))

        if self.order and self.order.status != "approved":
            self.receive_btn.setEnabled(False)
            self.status_label.setText(
                "Only approved orders can be received."
            )

    def _fill_all(self):
        for _, spin in self._spinboxes:
            spin.setValue(spin.maximum())

    def receipts(self) -> list[dict]:
        return [
            {"po_line_id": line_id, "quantity": spin.value()}
            for line_id, spin in self._spinboxes
            if spin.value() > 0
        ]

    def _receive(self):
        receipts = self.receipts()
        if not receipts:
            QMessageBox.information(self, "Info", "No quantities entered.")
            return
        try:
            self.repo.receive_purchase_order(
                self.order_id,
                receipts,
                self.location_combo.currentData(),
                received_by=self.current_user.id,
            )
        except ValueError as e:
            QMessageBox.warning(self, "Receive Failed", str(e))
            return
        self.accept()
