"""Dialog for moving stock between two locations."""

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


class TransferDialog(QDialog):
    """Transfer one item from a source location to a destination."""

    def __init__(self, repo: Repository, item: InventoryItem,
                 current_user: User, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.item = item
        self.current_user = current_user
        self.txn_ids = None

        self.setWindowTitle(f"Transfer {item.sku}")
        self.setMinimumWidth(420)
        self._setup_ui()
        self._on_source_changed()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(f"<b>{self.item.name}</b>"))

        form = QFormLayout()
        balances = {
            b.location_id: b.on_hand
            for b in self.repo.get_item_location_balances(
                item_id=self.item.id
            )
        }
        self._balances = balances

        self.source_combo = QComboBox()
        self.dest_combo = QComboBox()
        for loc in self.repo.get_all_locations():
            on_hand = balances.get(loc.id, 0)
            if on_hand > 0:
                self.source_combo.addItem(
                    f"{loc.name} ({on_hand} on hand)", loc.id
                )
            self.dest_combo.addItem(loc.name, loc.id)
        self.source_combo.currentIndexChanged.connect(self._on_source_changed)
        form.addRow("From:", self.source_combo)
        form.addRow("To:", self.dest_combo)

        self.qty_spin = QSpinBox()
        self.qty_spin.setRange(1, 1)
        form.addRow("Quantity:", self.qty_spin)

        self.reference_input = QLineEdit()
        self.reference_input.setPlaceholderText("e.g. Job 4471")
        form.addRow("Reference:", self.reference_input)

        self.notes_input = QLineEdit()
        form.addRow("Notes:", self.notes_input)
        layout.addLayout(form)

        self.buttons = QDialogButtonBox(
            QDialogButtonBox.Ok | QDialogButtonBox.Cancel
        )
        self.buttons.button(QDialogButtonBox.Ok).setText("Transfer")
        self.buttons.accepted.connect(self._transfer)
        self.buttons.rejected.connect(self.reject)
        layout.addWidget(self.buttons)

    def _on_source_changed(self):
        source_id = self.source_combo.currentData()
        available = self._balances.get(source_id, 0)
        self.qty_spin.setRange(1, max(available, 1))
        self.buttons.button(QDialogButtonBox.Ok).setEnabled(available > 0)

    def _transfer(self):
        try:
            self.txn_ids = self.repo.record_transfer(
                self.item.id,
                self.source_combo.currentData(),
                self.dest_combo.currentData(),
                self.qty_spin.value(),
                reference=self.reference_input.text().strip(),
                notes=self.notes_input.text().strip(),
                user_id=self.current_user.id,
            )
        except ValueError as e:
            QMessageBox.warning(self, "Transfer Failed", str(e))
            return
        self.accept()
