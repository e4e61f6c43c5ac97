"""Add / Edit inventory item dialog."""

from typing import Optional

from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QDoubleSpinBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QSpinBox,
    QTextEdit,
    QVBoxLayout,
)

from voltstock.database.models import InventoryItem
from voltstock.database.repository import Repository

_UNITS = ["each", "m", "box", "pack", "roll", "kit"]


class ItemDialog(QDialog):
    """Create a catalogue item or edit an existing one.

    Stock levels are not edited here: quantities come from the ledger, so
    the dialog only shows the current total on hand.
    """

    def __init__(self, repo: Repository,
                 item: Optional[InventoryItem] = None, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.item = item
        self.saved_item_id: Optional[int] = None
        self.setWindowTitle("Edit Item" if item else "Add Item")
        self.setMinimumWidth(440)
        self._setup_ui()
        if item:
            self._populate(item)

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()
        form.setSpacing(8)

        self.sku_input = QLineEdit()
        self.sku_input.setMaxLength(50)
        self.sku_input.setPlaceholderText("e.g. CHG-7KW-T2")
        form.addRow("SKU *:", self.sku_input)

        self.name_input = QLineEdit()
        self.name_input.setMaxLength(100)
        self.name_input.setPlaceholderText("e.g. 7kW Type 2 Charger")
        form.addRow("Name *:", self.name_input)

        self.description_input = QTextEdit()
        self.description_input.setMaximumHeight(70)
        form.addRow("Description:", self.description_input)

        self.unit_combo = QComboBox()
        self.unit_combo.setEditable(True)
        self.unit_combo.addItems(_UNITS)
        form.addRow("Unit:", self.unit_combo)

        self.cost_spin = QDoubleSpinBox()
        self.cost_spin.setRange(0, 999999.99)
        self.cost_spin.setDecimals(2)
        self.cost_spin.setPrefix("£")
        form.addRow("Default Cost:", self.cost_spin)

        self.min_spin = QSpinBox()
        self.min_spin.setRange(0, 999999)
        form.addRow("Min Level:", self.min_spin)

        self.max_spin = QSpinBox()
        self.max_spin.setRange(0, 999999)
        form.addRow("Max Level:", self.max_spin)

        self.reorder_spin = QSpinBox()
        self.reorder_spin.setRange(0, 999999)
        self.reorder_spin.setToolTip(
            "Flag as low stock when on hand falls to this level (0 = never)"
        )
        form.addRow("Reorder Point:", self.reorder_spin)

        self.supplier_combo = QComboBox()
        self.supplier_combo.addItem("(none)", None)
        for supplier in self.repo.get_all_suppliers():
            self.supplier_combo.addItem(supplier.name, supplier.id)
        form.addRow("Supplier:", self.supplier_combo)

        self.on_hand_label = QLabel("0")
        form.addRow("On Hand:", self.on_hand_label)

        layout.addLayout(form)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Save | QDialogButtonBox.Cancel
        )
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _populate(self, item: InventoryItem):
        self.sku_input.setText(item.sku)
        self.name_input.setText(item.name)
        self.description_input.setPlainText(item.description or "")
        self.unit_combo.setCurrentText(item.unit)
        self.cost_spin.setValue(item.default_cost)
        self.min_spin.setValue(item.min_level)
        self.max_spin.setValue(item.max_level)
        self.reorder_spin.setValue(item.reorder_point)
        idx = self.supplier_combo.findData(item.supplier_id)
        if idx >= 0:
            self.supplier_combo.setCurrentIndex(idx)
        self.on_hand_label.setText(str(item.total_on_hand))

    def build_item(self) -> InventoryItem:
        return InventoryItem(
            id=self.item.id if self.item else None,
            sku=self.sku_input.text().strip(),
            name=self.name_input.text().strip(),
            description=self.description_input.toPlainText().strip(),
            unit=self.unit_combo.currentText().strip() or "each",
            default_cost=self.cost_spin.value(),
            min_level=self.min_spin.value(),
            max_level=self.max_spin.value(),
            reorder_point=self.reorder_spin.value(),
            supplier_id=self.supplier_combo.currentData(),
            is_active=self.item.is_active if self.item else 1,
        )

    def _save(self):
        item = self.build_item()
        if item.max_level and item.min_level > item.max_level:
            QMessageBox.warning(
                self, "Invalid Levels", "Min level cannot exceed max level."
            )
            return
        try:
            if item.id:
                self.repo.update_item(item)
                self.saved_item_id = item.id
            else:
                self.saved_item_id = self.repo.create_item(item)
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Save Item", str(e))
            return
        self.accept()
