"""Add / Edit engineer dialog, with an optional van for new engineers."""

from typing import Optional

from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QGroupBox,
    QLineEdit,
    QMessageBox,
    QVBoxLayout,
)

from voltstock.database.models import Engineer, Location
from voltstock.database.repository import Repository


def default_van_name(engineer_name: str) -> str:
    first = engineer_name.strip().split(" ")[0] if engineer_name.strip() else ""
    return f"{first}'s Van" if first else ""


class EngineerDialog(QDialog):
    """Create an engineer (and their van) or edit an existing engineer.

    The van group only appears for new engineers and is checked by
    default; vans of existing engineers are edited on the Locations tab.
    """

    def __init__(self, repo: Repository,
                 engineer: Optional[Engineer] = None, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.engineer = engineer
        self.saved_id: Optional[int] = None
        self.setWindowTitle("Edit Engineer" if engineer else "Add Engineer")
        self.setMinimumWidth(420)
        self._van_name_touched = False
        self._setup_ui()
        if engineer:
            self._populate(engineer)

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self.name_input = QLineEdit()
        self.name_input.setMaxLength(100)
        self.name_input.setPlaceholderText("e.g. Priya Shah")
        self.name_input.textChanged.connect(self._on_name_changed)
        form.addRow("Name *:", self.name_input)

        self.email_input = QLineEdit()
        self.email_input.setMaxLength(150)
        form.addRow("Email:", self.email_input)

        self.phone_input = QLineEdit()
        self.phone_input.setMaxLength(30)
        form.addRow("Phone:", self.phone_input)
        layout.addLayout(form)

        self.van_group = QGroupBox("Create a van for this engineer")
        self.van_group.setCheckable(True)
        self.van_group.setChecked(True)
        van_form = QFormLayout(self.van_group)
        self.van_name_input = QLineEdit()
        self.van_name_input.textEdited.connect(self._on_van_name_edited)
        van_form.addRow("Van Name:", self.van_name_input)
        self.van_code_input = QLineEdit()
        self.van_code_input.setMaxLength(20)
        self.van_code_input.setPlaceholderText("e.g. VAN-04")
        van_form.addRow("Code:", self.van_code_input)
        self.van_group.setVisible(self.engineer is None)
        layout.addWidget(self.van_group)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Save | QDialogButtonBox.Cancel
        )
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _populate(self, engineer: Engineer):
        self.name_input.setText(engineer.name)
        self.email_input.setText(engineer.email or "")
        self.phone_input.setText(engineer.phone or "")

    def _on_name_changed(self, text: str):
        if not self._van_name_touched:
            self.van_name_input.setText(default_van_name(text))

    def _on_van_name_edited(self, _text: str):
        self._van_name_touched = True

    def _save(self):
        data = Engineer(
            id=self.engineer.id if self.engineer else None,
            name=self.name_input.text().strip(),
            email=self.email_input.text().strip(),
            phone=self.phone_input.text().strip(),
            is_active=self.engineer.is_active if self.engineer else 1,
        )
        try:
            if data.id:
                self.repo.update_engineer(data)
                self.saved_id = data.id
            else:
                van = None
                if self.van_group.isChecked():
                    van = Location(
                        name=self.van_name_input.text().strip(),
                        code=self.van_code_input.text().strip() or None,
                        type="van",
                    )
                self.saved_id = self.repo.create_engineer(data, van=van)
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Save Engineer", str(e))
            return
        self.accept()
