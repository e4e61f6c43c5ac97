"""Dialog for opening a return (RMA) for a defective item."""

from PySide6.QtCore import QDate
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDateEdit,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLineEdit,
    QMessageBox,
    QSpinBox,
    QTextEdit,
    QVBoxLayout,
)

from voltstock.database.models import Rma, RmaLine, User
from voltstock.database.repository import Repository
from voltstock.utils.constants import RETURN_REASON_LABELS


class RmaDialog(QDialog):
    """Create a return authorization.

    When a location is chosen the returned units are booked out of it
    straight away.
    """

    def __init__(self, repo: Repository, current_user: User,
                 item_id: int | None = None, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.current_user = current_user
        self.rma_id = None
        self._items = repo.get_all_items()

        self.setWindowTitle("New Return / RMA")
        self.setMinimumSize(480, 460)
        self._setup_ui()
        if item_id is not None:
            idx = self.item_combo.findData(item_id)
            if idx >= 0:
                self.item_combo.setCurrentIndex(idx)
        self._on_item_changed()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()
        form.setSpacing(8)

        self.rma_number_input = QLineEdit(self.repo.generate_rma_number())
        form.addRow("RMA Number:", self.rma_number_input)

        self.item_combo = QComboBox()
        for item in self._items:
            self.item_combo.addItem(f"{item.sku} — {item.name}", item.id)
        self.item_combo.currentIndexChanged.connect(self._on_item_changed)
        form.addRow("Item:", self.item_combo)

        self.supplier_combo = QComboBox()
        self.supplier_combo.addItem("(none)", None)
        for supplier in self.repo.get_all_suppliers():
            self.supplier_combo.addItem(supplier.name, supplier.id)
        form.addRow("Supplier:", self.supplier_combo)

        self.serial_input = QLineEdit()
        form.addRow("Serial Number:", self.serial_input)

        self.qty_spin = QSpinBox()
        self.qty_spin.setRange(1, 9999)
        form.addRow("Quantity:", self.qty_spin)

        self.reason_combo = QComboBox()
        for reason, label in RETURN_REASON_LABELS.items():
            self.reason_combo.addItem(label, reason)
        form.addRow("Reason:", self.reason_combo)

        location_row = QHBoxLayout()
        self.book_out_check = QCheckBox("Book out of")
        self.location_combo = QComboBox()
        for loc in self.repo.get_all_locations():
            self.location_combo.addItem(loc.name, loc.id)
        self.location_combo.setEnabled(False)
        self.book_out_check.toggled.connect(self.location_combo.setEnabled)
        location_row.addWidget(self.book_out_check)
        location_row.addWidget(self.location_combo, 1)
        form.addRow("Stock:", location_row)

        self.expected_date = QDateEdit(QDate.currentDate().addDays(14))
        self.expected_date.setCalendarPopup(True)
        form.addRow("Replacement due:", self.expected_date)

        self.notes_input = QTextEdit()
        self.notes_input.setMaximumHeight(60)
        self.notes_input.setPlaceholderText("Fault description...")
        form.addRow("Notes:", self.notes_input)
        layout.addLayout(form)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Save | QDialogButtonBox.Cancel
        )
        buttons.button(QDialogButtonBox.Save).setText("Create RMA")
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _on_item_changed(self):
        """Default the supplier to the item's usual supplier."""
        item_id = self.item_combo.currentData()
        item = next((i for i in self._items if i.id == item_id), None)
        if item and item.supplier_id:
            idx = self.supplier_combo.findData(item.supplier_id)
            if idx >= 0:
                self.supplier_combo.setCurrentIndex(idx)

    def build_rma(self) -> tuple[Rma, list[RmaLine]]:
        item_id = self.item_combo.currentData()
        rma = Rma(
            rma_number=self.rma_number_input.text().strip(),
            item_id=item_id,
            supplier_id=self.supplier_combo.currentData(),
            serial_number=self.serial_input.text().strip(),
            return_reason=self.reason_combo.currentData(),
            replacement_expected_date=self.expected_date.date().toString(
                "yyyy-MM-dd"
            ),
            notes=self.notes_input.toPlainText().strip(),
            created_by=self.current_user.id,
        )
        lines = [RmaLine(item_id=item_id, quantity=self.qty_spin.value())]
        return rma, lines

    def _save(self):
        if self.item_combo.currentData() is None:
            QMessageBox.warning(self, "No Item", "Select an item to return.")
            return
        rma, lines = self.build_rma()
        location_id = (
            self.location_combo.currentData()
            if self.book_out_check.isChecked() else None
        )
        try:
            self.rma_id = self.repo.create_rma(
                rma, lines, location_id=location_id,
                user_id=self.current_user.id,
            )
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Create RMA", str(e))
            return
        self.accept()
