"""Add / Edit supplier dialog."""

from typing import Optional

from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLineEdit,
    QMessageBox,
    QSpinBox,
    QVBoxLayout,
)

from voltstock.database.models import Supplier
from voltstock.database.repository import Repository


class SupplierDialog(QDialog):
    """Create a supplier or edit an existing one."""

    def __init__(self, repo: Repository,
                 supplier: Optional[Supplier] = None, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.supplier = supplier
        self.saved_id: Optional[int] = None
        self.setWindowTitle("Edit Supplier" if supplier else "Add Supplier")
        self.setMinimumWidth(420)
        self._setup_ui()
        if supplier:
            self._populate(supplier)

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self.name_input = QLineEdit()
        self.name_input.setMaxLength(100)
        form.addRow("Company Name *:", self.name_input)

        self.contact_input = QLineEdit()
        self.contact_input.setMaxLength(100)
        form.addRow("Contact Name:", self.contact_input)

        self.email_input = QLineEdit()
        self.email_input.setMaxLength(150)
        self.email_input.setPlaceholderText("orders@example.com")
        form.addRow("Email:", self.email_input)

        self.phone_input = QLineEdit()
        self.phone_input.setMaxLength(30)
        form.addRow("Phone:", self.phone_input)

        self.lead_time_spin = QSpinBox()
        self.lead_time_spin.setRange(0, 365)
        self.lead_time_spin.setValue(7)
        self.lead_time_spin.setSuffix(" days")
        form.addRow("Lead Time:", self.lead_time_spin)

        layout.addLayout(form)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Save | QDialogButtonBox.Cancel
        )
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _populate(self, supplier: Supplier):
        self.name_input.setText(supplier.name)
        self.contact_input.setText(supplier.contact_name or "")
        self.email_input.setText(supplier.contact_email or "")
        self.phone_input.setText(supplier.contact_phone or "")
        self.lead_time_spin.setValue(supplier.lead_time_days or 0)

    def _save(self):
        data = Supplier(
            id=self.supplier.id if self.supplier else None,
            name=self.name_input.text().strip(),
            contact_name=self.contact_input.text().strip(),
            contact_email=self.email_input.text().strip(),
            contact_phone=self.phone_input.text().strip(),
            lead_time_days=self.lead_time_spin.value(),
            is_active=self.supplier.is_active if self.supplier else 1,
        )
        try:
            if data.id:
                self.repo.update_supplier(data)
                self.saved_id = data.id
            else:
                self.saved_id = self.repo.create_supplier(data)
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Save Supplier", str(e))
            return
        self.accept()
