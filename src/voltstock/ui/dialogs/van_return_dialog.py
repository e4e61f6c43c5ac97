"""Return stock from an engineer's van to a warehouse or to the supplier."""

from typing import Optional

from PySide6.QtWidgets import (
    QButtonGroup,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QRadioButton,
    QSpinBox,
    QVBoxLayout,
)

from voltstock.database.models import Location, Rma, RmaLine, User
from voltstock.database.repository import Repository
from voltstock.utils.constants import RETURN_REASON_LABELS, RETURN_REASONS

VAN_RETURN_REFERENCE = "Van return"


class VanReturnDialog(QDialog):
    """Send van stock back.

    Surplus stock is transferred to a warehouse. Faulty stock goes out on
    an RMA, which books it out of the van in the same step.
    """

    def __init__(self, repo: Repository, van: Location, item_id: int,
                 available: int, current_user: User, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.van = van
        self.item = repo.get_item_by_id(item_id)
        self.current_user = current_user
        self.transfer_ids: Optional[tuple[int, int]] = None
        self.rma_id: Optional[int] = None
        self.setWindowTitle("Return Stock")
        self.setMinimumWidth(420)
        self._setup_ui(available)
        self._on_mode_changed()

    def _setup_ui(self, available: int):
        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(
            f"<b>{self.item.name}</b> ({available} in {self.van.name})"
        ))

        modes = QHBoxLayout()
        self.warehouse_radio = QRadioButton("Return to warehouse")
        self.rma_radio = QRadioButton("Faulty: return to supplier")
        self.warehouse_radio.setChecked(True)
        self._mode_group = QButtonGroup(self)
        for radio in (self.warehouse_radio, self.rma_radio):
            self._mode_group.addButton(radio)
            modes.addWidget(radio)
        self.warehouse_radio.toggled.connect(self._on_mode_changed)
        layout.addLayout(modes)

        form = QFormLayout()
        self.qty_spin = QSpinBox()
        self.qty_spin.setRange(1, max(available, 1))
        form.addRow("Quantity:", self.qty_spin)

        self.warehouse_combo = QComboBox()
        for loc in self.repo.get_all_locations(location_type="warehouse"):
            self.warehouse_combo.addItem(loc.name, loc.id)
        form.addRow("Warehouse:", self.warehouse_combo)

        self.reason_combo = QComboBox()
        for key in RETURN_REASONS:
            self.reason_combo.addItem(RETURN_REASON_LABELS[key], key)
        form.addRow("Fault:", self.reason_combo)

        self.supplier_combo = QComboBox()
        self.supplier_combo.addItem("(none)", None)
        for supplier in self.repo.get_all_suppliers():
            self.supplier_combo.addItem(supplier.name, supplier.id)
        idx = self.supplier_combo.findData(self.item.supplier_id)
        if idx >= 0:
            self.supplier_combo.setCurrentIndex(idx)
        form.addRow("Supplier:", self.supplier_combo)

        self.notes_input = QLineEdit()
        self.notes_input.setPlaceholderText("e.g. Surplus after JOB-2291")
        form.addRow("Notes:", self.notes_input)
        self._form = form
        layout.addLayout(form)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Ok | QDialogButtonBox.Cancel
        )
        self.ok_btn = buttons.button(QDialogButtonBox.Ok)
        buttons.accepted.connect(self._submit)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _on_mode_changed(self):
        to_warehouse = self.warehouse_radio.isChecked()
        self._form.setRowVisible(self.warehouse_combo, to_warehouse)
        self._form.setRowVisible(self.reason_combo, not to_warehouse)
        self._form.setRowVisible(self.supplier_combo, not to_warehouse)
        self.ok_btn.setText(
            "Return to Warehouse" if to_warehouse else "Create RMA"
        )

    def _submit(self):
        qty = self.qty_spin.value()
        notes = self.notes_input.text().strip()
        try:
            if self.warehouse_radio.isChecked():
                self.transfer_ids = self.repo.record_transfer(
                    self.item.id, self.van.id,
                    self.warehouse_combo.currentData(), qty,
                    reference=VAN_RETURN_REFERENCE, notes=notes,
                    user_id=self.current_user.id,
                )
            else:
                self.rma_id = self.repo.create_rma(
                    Rma(
                        item_id=self.item.id,
                        supplier_id=self.supplier_combo.currentData(),
                        return_reason=self.reason_combo.currentData(),
                        notes=notes,
                    ),
                    [RmaLine(item_id=self.item.id, quantity=qty,
                             condition_notes=notes)],
                    location_id=self.van.id,
                    user_id=self.current_user.id,
                )
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Return Stock", str(e))
            return
        self.accept()
