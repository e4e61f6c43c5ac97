"""Add / Edit stock location dialog."""

from typing import Optional

from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLineEdit,
    QMessageBox,
    QVBoxLayout,
)

from voltstock.database.models import Location
from voltstock.database.repository import Repository
from voltstock.utils.constants import LOCATION_TYPE_LABELS, LOCATION_TYPES


class LocationDialog(QDialog):
    """Create or edit a warehouse, van or job site."""

    def __init__(self, repo: Repository,
                 location: Optional[Location] = None, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.location = location
        self.saved_id: Optional[int] = None
        self.setWindowTitle("Edit Location" if location else "Add Location")
        self.setMinimumWidth(420)
        self._setup_ui()
        if location:
            self._populate(location)
        self._on_type_changed()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self.name_input = QLineEdit()
        self.name_input.setMaxLength(100)
        form.addRow("Name *:", self.name_input)

        self.code_input = QLineEdit()
        self.code_input.setMaxLength(20)
        self.code_input.setPlaceholderText("e.g. WH004")
        form.addRow("Code:", self.code_input)

        self.type_combo = QComboBox()
        for loc_type in LOCATION_TYPES:
            self.type_combo.addItem(LOCATION_TYPE_LABELS[loc_type], loc_type)
        self.type_combo.currentIndexChanged.connect(self._on_type_changed)
        form.addRow("Type:", self.type_combo)

        self.engineer_combo = QComboBox()
        self.engineer_combo.addItem("(none)", None)
        for engineer in self.repo.get_all_engineers():
            self.engineer_combo.addItem(engineer.name, engineer.id)
        form.addRow("Engineer:", self.engineer_combo)

        self.address_input = QLineEdit()
        self.address_input.setMaxLength(200)
        form.addRow("Address:", self.address_input)

        layout.addLayout(form)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Save | QDialogButtonBox.Cancel
        )
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _populate(self, location: Location):
        self.name_input.setText(location.name)
        self.code_input.setText(location.code or "")
        self.type_combo.setCurrentIndex(
            max(0, self.type_combo.findData(location.type))
        )
        idx = self.engineer_combo.findData(location.engineer_id)
        if idx >= 0:
            self.engineer_combo.setCurrentIndex(idx)
        self.address_input.setText(location.address or "")

    def _on_type_changed(self):
        self.engineer_combo.setEnabled(
            self.type_combo.currentData() == "van"
        )

    def _save(self):
        loc_type = self.type_combo.currentData()
        data = Location(
            id=self.location.id if self.location else None,
            name=self.name_input.text().strip(),
            code=self.code_input.text().strip() or None,
            type=loc_type,
            engineer_id=(
                self.engineer_combo.currentData()
                if loc_type == "van" else None
            ),
            address=self.address_input.text().strip(),
            is_active=self.location.is_active if self.location else 1,
        )
        try:
            if data.id:
                self.repo.update_location(data)
                self.saved_id = data.id
            else:
                self.saved_id = self.repo.create_location(data)
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Save Location", str(e))
            return
        self.accept()
