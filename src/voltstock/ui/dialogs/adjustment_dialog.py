"""Stock adjustment and van stock-count dialogs."""

from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QSpinBox,
    QVBoxLayout,
)

from voltstock.database.models import InventoryItem, User
from voltstock.database.repository import Repository
from voltstock.utils.constants import role_has_permission


class AdjustmentDialog(QDialog):
    """Book a signed correction for an item at one location.

    Managers' adjustments go in as pending and wait for an administrator;
    administrators' adjustments apply immediately.
    """

    def __init__(self, repo: Repository, item: InventoryItem,
                 current_user: User, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.item = item
        self.current_user = current_user
        self.txn_id = None
        self.setWindowTitle(f"Adjust {item.sku}")
        self.setMinimumWidth(400)
        self._setup_ui()
        self._on_location_changed()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(f"<b>{self.item.name}</b>"))

        form = QFormLayout()
        self.location_combo = QComboBox()
        for loc in self.repo.get_all_locations():
            self.location_combo.addItem(loc.name, loc.id)
        self.location_combo.currentIndexChanged.connect(
            self._on_location_changed
        )
        form.addRow("Location:", self.location_combo)

        self.on_hand_label = QLabel("0")
        form.addRow("On hand:", self.on_hand_label)

        self.delta_spin = QSpinBox()
        self.delta_spin.setRange(-99999, 99999)
        self.delta_spin.setValue(0)
        form.addRow("Change (+/-):", self.delta_spin)

        self.reason_input = QLineEdit()
        self.reason_input.setPlaceholderText("e.g. Damaged in store")
        form.addRow("Reason *:", self.reason_input)
        layout.addLayout(form)

        self.approval_hint = QLabel("")
        self.approval_hint.setStyleSheet("color: #f9e2af;")
        layout.addWidget(self.approval_hint)
        if not self._applies_immediately():
            self.approval_hint.setText(
                "This adjustment will wait for administrator approval."
            )

        buttons = QDialogButtonBox(
            QDialogButtonBox.Ok | QDialogButtonBox.Cancel
        )
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _applies_immediately(self) -> bool:
        return role_has_permission(self.current_user.role, "txns_approve")

    def _on_location_changed(self):
        loc_id = self.location_combo.currentData()
        if loc_id is not None:
            self.on_hand_label.setText(
                str(self.repo.get_on_hand(self.item.id, loc_id))
            )

    def _save(self):
        delta = self.delta_spin.value()
        reason = self.reason_input.text().strip()
        if delta == 0:
            QMessageBox.information(self, "No Change", "Enter a non-zero change.")
            return
        if not reason:
            QMessageBox.warning(self, "Reason Required",
                                "Please give a reason for the adjustment.")
            return
        try:
            self.txn_id = self.repo.record_adjustment(
                self.item.id,
                self.location_combo.currentData(),
                delta,
                reason=reason,
                user_id=self.current_user.id,
                status="approved" if self._applies_immediately()
                else "pending",
            )
        except ValueError as e:
            QMessageBox.warning(self, "Adjustment Failed", str(e))
            return
        self.accept()


class StockCountDialog(QDialog):
    """Engineer reports what is physically in the van for one item."""

    def __init__(self, repo: Repository, engineer_id: int, item_id: int,
                 item_name: str, on_hand: int, current_user: User,
                 parent=None):
        super().__init__(parent)
        self.repo = repo
        self.engineer_id = engineer_id
        self.item_id = item_id
        self.current_user = current_user
        self.txn_id = None
        self.setWindowTitle("Report Incorrect Stock")
        self.setMinimumWidth(380)

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(f"<b>{item_name}</b>"))
        form = QFormLayout()
        form.addRow("System says:", QLabel(str(on_hand)))
        self.count_spin = QSpinBox()
        self.count_spin.setRange(0, 99999)
        self.count_spin.setValue(on_hand)
        form.addRow("Counted:", self.count_spin)
        self.reason_input = QLineEdit()
        self.reason_input.setPlaceholderText("e.g. Two units missing")
        form.addRow("Reason *:", self.reason_input)
        layout.addLayout(form)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Ok | QDialogButtonBox.Cancel
        )
        buttons.button(QDialogButtonBox.Ok).setText("Submit")
        buttons.accepted.connect(self._submit)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _submit(self):
        try:
            self.txn_id = self.repo.report_incorrect_stock(
                self.engineer_id,
                self.item_id,
                self.count_spin.value(),
                self.reason_input.text(),
                user_id=self.current_user.id,
            )
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Submit", str(e))
            return
        if self.txn_id is None:
            QMessageBox.information(
                self, "Stock Matches", "The count matches the system."
            )
        self.accept()


class MaterialUsageDialog(QDialog):
    """Book materials used on a job out of the engineer's van."""

    def __init__(self, repo: Repository, engineer_id: int, item_id: int,
                 item_name: str, on_hand: int, current_user: User,
                 parent=None):
        super().__init__(parent)
        self.repo = repo
        self.engineer_id = engineer_id
        self.item_id = item_id
        self.current_user = current_user
        self.txn_id = None
        self.setWindowTitle("Record Material Usage")
        self.setMinimumWidth(380)

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(f"<b>{item_name}</b> ({on_hand} in van)"))
        form = QFormLayout()
        self.qty_spin = QSpinBox()
        self.qty_spin.setRange(1, max(on_hand, 1))
        form.addRow("Quantity used:", self.qty_spin)
        self.job_input = QLineEdit()
        self.job_input.setPlaceholderText("e.g. JOB-2291")
        form.addRow("Job:", self.job_input)
        self.notes_input = QLineEdit()
        form.addRow("Notes:", self.notes_input)
        layout.addLayout(form)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Ok | QDialogButtonBox.Cancel
        )
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _save(self):
        try:
            self.txn_id = self.repo.record_material_usage(
                self.engineer_id,
                self.item_id,
                self.qty_spin.value(),
                job_ref=self.job_input.text().strip(),
                notes=self.notes_input.text().strip(),
                user_id=self.current_user.id,
            )
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Record Usage", str(e))
            return
        self.accept()
