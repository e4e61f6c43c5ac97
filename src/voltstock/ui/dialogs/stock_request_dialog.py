"""New stock request dialog."""

import uuid

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
    QVBoxLayout,
)

from voltstock.database.models import StockRequest, StockRequestLine, User
from voltstock.database.repository import Repository
from voltstock.ui.dialogs.line_table import ItemLineTable
from voltstock.utils.constants import REQUEST_PRIORITY_LABELS


class StockRequestDialog(QDialog):
    """Engineer (or manager on their behalf) asks for items to be delivered.

    The dialog carries one idempotency key for its lifetime, so pressing
    Submit twice never creates two requests.
    """

    def __init__(self, repo: Repository, current_user: User, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.current_user = current_user
        self.idempotency_key = uuid.uuid4().hex
        self.request_id = None

        self.setWindowTitle("New Stock Request")
        self.setMinimumSize(560, 520)
        self._setup_ui()
        self._on_engineer_changed()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self.engineer_combo = QComboBox()
        for eng in self.repo.get_all_engineers():
            self.engineer_combo.addItem(eng.name, eng.id)
        if self.current_user.engineer_id:
            idx = self.engineer_combo.findData(self.current_user.engineer_id)
            if idx >= 0:
                self.engineer_combo.setCurrentIndex(idx)
            self.engineer_combo.setEnabled(self.current_user.role != "engineer")
        self.engineer_combo.currentIndexChanged.connect(
            self._on_engineer_changed
        )
        form.addRow("Engineer:", self.engineer_combo)

        self.destination_combo = QComboBox()
        for loc in self.repo.get_all_locations():
            self.destination_combo.addItem(loc.name, loc.id)
        form.addRow("Deliver to:", self.destination_combo)

        self.priority_combo = QComboBox()
        for key, label in REQUEST_PRIORITY_LABELS.items():
            self.priority_combo.addItem(label, key)
        self.priority_combo.setCurrentIndex(
            self.priority_combo.findData("medium")
        )
        form.addRow("Priority:", self.priority_combo)

        needed_row = QHBoxLayout()
        self.needed_check = QCheckBox("Needed by")
        self.needed_date = QDateEdit(QDate.currentDate().addDays(1))
        self.needed_date.setCalendarPopup(True)
        self.needed_date.setEnabled(False)
        self.needed_check.toggled.connect(self.needed_date.setEnabled)
        needed_row.addWidget(self.needed_check)
        needed_row.addWidget(self.needed_date, 1)
        form.addRow("Date:", needed_row)

        self.order_ref_input = QLineEdit()
        self.order_ref_input.setPlaceholderText("e.g. customer order / job ref")
        form.addRow("Order Ref:", self.order_ref_input)

        self.notes_input = QLineEdit()
        form.addRow("Notes:", self.notes_input)
        layout.addLayout(form)

        self.lines = ItemLineTable(self.repo.get_all_items())
        self.lines.add_line()
        layout.addWidget(self.lines, 1)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Ok | QDialogButtonBox.Cancel
        )
        buttons.button(QDialogButtonBox.Ok).setText("Submit Request")
        buttons.accepted.connect(self._submit)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _on_engineer_changed(self):
        """Default the destination to the engineer's van."""
        engineer_id = self.engineer_combo.currentData()
        if engineer_id is None:
            return
        van = self.repo.get_engineer_van_location(engineer_id)
        if van:
            idx = self.destination_combo.findData(van.id)
            if idx >= 0:
                self.destination_combo.setCurrentIndex(idx)

    def build_request(self) -> tuple[StockRequest, list[StockRequestLine]]:
        request = StockRequest(
            engineer_id=self.engineer_combo.currentData(),
            destination_location_id=self.destination_combo.currentData(),
            priority=self.priority_combo.currentData(),
            needed_by=(
                self.needed_date.date().toString("yyyy-MM-dd")
                if self.needed_check.isChecked() else None
            ),
            order_ref=self.order_ref_input.text().strip(),
            notes=self.notes_input.text().strip(),
        )
        lines = [
            StockRequestLine(item_id=item_id, qty=qty)
            for item_id, qty in self.lines.lines()
        ]
        return request, lines

    def _submit(self):
        if self.engineer_combo.currentData() is None:
            QMessageBox.warning(self, "No Engineer",
                                "Add an engineer before requesting stock.")
            return
        request, lines = self.build_request()
        try:
            self.request_id = self.repo.create_stock_request(
                request, lines, idempotency_key=self.idempotency_key
            )
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Submit Request", str(e))
            return
        self.accept()
