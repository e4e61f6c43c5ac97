"""Dialog for adding and editing user logins."""

from typing import Optional

from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QVBoxLayout,
)

from voltstock.database.models import User
from voltstock.database.repository import Repository
from voltstock.ui.login_dialog import MAX_PIN_LENGTH, validate_pin
from voltstock.utils.constants import USER_ROLE_LABELS, USER_ROLES


class UserDialog(QDialog):
    """Add a login or edit one. When editing, a blank PIN keeps the old one.

    Engineer logins must be linked to an engineer record so the My Van page
    can find their van.
    """

    def __init__(self, repo: Repository, user: Optional[User] = None,
                 current_user: Optional[User] = None, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.user = user
        self.current_user = current_user
        self.editing = user is not None
        self.saved_id: Optional[int] = None
        self.setWindowTitle("Edit User" if self.editing else "Add User")
        self.setMinimumWidth(420)
        self._setup_ui()
        if self.editing:
            self._populate(user)
        self._on_role_changed()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()
        form.setSpacing(10)

        self.username_input = QLineEdit()
        self.username_input.setPlaceholderText("e.g. jsmith")
        form.addRow("Username *:", self.username_input)

        self.display_name_input = QLineEdit()
        self.display_name_input.setPlaceholderText("e.g. John Smith")
        form.addRow("Display Name *:", self.display_name_input)

        self.role_combo = QComboBox()
        for role in USER_ROLES:
            self.role_combo.addItem(USER_ROLE_LABELS[role], role)
        self.role_combo.setCurrentIndex(USER_ROLES.index("engineer"))
        self.role_combo.currentIndexChanged.connect(self._on_role_changed)
        form.addRow("Role:", self.role_combo)

        self.engineer_combo = QComboBox()
        self.engineer_combo.addItem("(none)", None)
        for engineer in self.repo.get_all_engineers():
            self.engineer_combo.addItem(engineer.name, engineer.id)
        form.addRow("Engineer:", self.engineer_combo)

        self.pin_input = QLineEdit()
        self.pin_input.setEchoMode(QLineEdit.Password)
        self.pin_input.setMaxLength(MAX_PIN_LENGTH)
        self.pin_input.setPlaceholderText(
            "Leave blank to keep current" if self.editing else "4-6 digit PIN"
        )
        form.addRow("New PIN:" if self.editing else "PIN *:", self.pin_input)

        self.pin_confirm = QLineEdit()
        self.pin_confirm.setEchoMode(QLineEdit.Password)
        self.pin_confirm.setMaxLength(MAX_PIN_LENGTH)
        self.pin_confirm.setPlaceholderText("Confirm PIN")
        form.addRow("Confirm:", self.pin_confirm)

        layout.addLayout(form)

        self.error_label = QLabel("")
        self.error_label.setStyleSheet("color: #f38ba8;")
        layout.addWidget(self.error_label)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Save | QDialogButtonBox.Cancel
        )
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _populate(self, user: User):
        self.username_input.setText(user.username)
        self.display_name_input.setText(user.display_name)
        self.role_combo.setCurrentIndex(
            max(0, self.role_combo.findData(user.role))
        )
        idx = self.engineer_combo.findData(user.engineer_id)
        if idx >= 0:
            self.engineer_combo.setCurrentIndex(idx)

    def _on_role_changed(self):
        self.engineer_combo.setEnabled(
            self.role_combo.currentData() == "engineer"
        )

    def _problem(self) -> Optional[str]:
        if not self.display_name_input.text().strip():
            return "Display name is required"
        pin = self.pin_input.text()
        if pin or not self.editing:
            problem = validate_pin(pin, self.pin_confirm.text())
            if problem:
                return problem
        if (self.editing and self.current_user
                and self.user.id == self.current_user.id
                and self.role_combo.currentData() != self.user.role):
            return "You cannot change your own role"
        return None

    def _save(self):
        problem = self._problem()
        if problem:
            self.error_label.setText(problem)
            return

        role = self.role_combo.currentData()
        pin = self.pin_input.text()
        data = User(
            id=self.user.id if self.editing else None,
            username=self.username_input.text().strip(),
            display_name=self.display_name_input.text().strip(),
            pin_hash=(
                Repository.hash_pin(pin) if pin else self.user.pin_hash
            ),
            role=role,
            engineer_id=(
                self.engineer_combo.currentData()
                if role == "engineer" else None
            ),
            is_active=self.user.is_active if self.editing else 1,
        )
        try:
            if self.editing:
                self.repo.update_user(data)
                self.saved_id = data.id
            else:
                self.saved_id = self.repo.create_user(data)
        except ValueError as e:
            self.error_label.setText(str(e))
            return
        self.accept()
