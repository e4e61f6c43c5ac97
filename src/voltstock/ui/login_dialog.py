"""Sign-in and first-launch dialogs.

Both dialogs work off the ``users`` table: ``LoginDialog`` verifies a PIN
for an existing account, ``FirstRunDialog`` creates the first admin when
the table is empty.
"""

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog,
    QFormLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
)

from voltstock.config import Config
from voltstock.database.models import User
from voltstock.database.repository import Repository
from voltstock.utils.constants import APP_NAME, USER_ROLE_LABELS

MIN_PIN_LENGTH = 4
MAX_PIN_LENGTH = 6


def _heading(text: str) -> QLabel:
    label = QLabel(text)
    label.setAlignment(Qt.AlignCenter)
    label.setStyleSheet("font-size: 22px; font-weight: 600;")
    return label


def _caption(text: str) -> QLabel:
    label = QLabel(text)
    label.setAlignment(Qt.AlignCenter)
    label.setWordWrap(True)
    label.setStyleSheet("color: #7f849c;")
    return label


def _pin_edit(placeholder: str) -> QLineEdit:
    edit = QLineEdit()
    edit.setEchoMode(QLineEdit.Password)
    edit.setMaxLength(MAX_PIN_LENGTH)
    edit.setPlaceholderText(placeholder)
    return edit


def _error_line() -> QLabel:
    label = QLabel()
    label.setAlignment(Qt.AlignCenter)
    label.setObjectName("errorLabel")
    label.setStyleSheet("color: #e06c75;")
    return label


def validate_new_admin(username: str, display_name: str, pin: str,
                       confirm: str) -> str | None:
    """Return the first problem with the first-run form, or None."""
    if not username:
        return "Username is required"
    if not display_name:
        return "Display name is required"
    return validate_pin(pin, confirm)


def validate_pin(pin: str, confirm: str) -> str | None:
    if len(pin) < MIN_PIN_LENGTH:
        return f"PIN must be at least {MIN_PIN_LENGTH} digits"
    if not pin.isdigit():
        return "PIN must contain only digits"
    if pin != confirm:
        return "PINs do not match"
    return None


class LoginDialog(QDialog):
    """Pick an account from the list and type its PIN.

    The account that signed in last sits at the top and starts selected.
    """

    def __init__(self, repo: Repository, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.authenticated_user: User | None = None

        self.setWindowTitle(f"Sign in - {APP_NAME}")
        self.setMinimumSize(360, 420)
        self.setWindowFlag(Qt.WindowContextHelpButtonHint, False)
        self._build()
        self._populate()

    def _build(self):
        box = QVBoxLayout(self)
        box.setSpacing(10)
        box.addWidget(_heading(APP_NAME))
        box.addWidget(_caption("Choose your account, then enter your PIN"))

        self.user_list = QListWidget()
        self.user_list.currentItemChanged.connect(self._on_user_changed)
        box.addWidget(self.user_list, 1)

        self.pin_input = _pin_edit("PIN")
        self.pin_input.setAlignment(Qt.AlignCenter)
        self.pin_input.setMinimumHeight(34)
        self.pin_input.returnPressed.connect(self._attempt_login)
        box.addWidget(self.pin_input)

        self.login_btn = QPushButton("Sign In")
        self.login_btn.setDefault(True)
        self.login_btn.setMinimumHeight(34)
        self.login_btn.clicked.connect(self._attempt_login)
        box.addWidget(self.login_btn)

        self.error_label = _error_line()
        box.addWidget(self.error_label)

    def _populate(self):
        last = Config.LAST_LOGIN_USERNAME
        accounts = sorted(
            self.repo.get_all_users(active_only=True),
            key=lambda u: (u.username != last, u.display_name.lower()),
        )
        self.user_list.clear()
        for account in accounts:
            role = USER_ROLE_LABELS.get(account.role, account.role)
            row = QListWidgetItem(
                f"{account.display_name}  (@{account.username} · {role})"
            )
            row.setData(Qt.UserRole, account.username)
            self.user_list.addItem(row)
        if accounts:
            self.user_list.setCurrentRow(0)

    def _on_user_changed(self, current, _previous):
        self.pin_input.clear()
        self.error_label.clear()
        if current is not None:
            self.pin_input.setFocus()

    def _attempt_login(self):
        selected = self.user_list.currentItem()
        if selected is None:
            self.error_label.setText("Select a user first")
            return
        entered = self.pin_input.text().strip()
        if not entered:
            self.error_label.setText("Please enter your PIN")
            return

        account = self.repo.authenticate_user(
            selected.data(Qt.UserRole), entered
        )
        if account is None:
            self.error_label.setText("Invalid PIN")
            self.pin_input.clear()
            self.pin_input.setFocus()
            return
        Config.update_last_login(account.username)
        self.authenticated_user = account
        self.accept()


class FirstRunDialog(QDialog):
    """Creates the first administrator account."""

    def __init__(self, repo: Repository, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.created_user: User | None = None

        self.setWindowTitle(f"{APP_NAME} setup")
        self.setMinimumSize(400, 320)
        self.setWindowFlag(Qt.WindowContextHelpButtonHint, False)
        self._build()

    def _build(self):
        box = QVBoxLayout(self)
        box.setSpacing(14)
        box.addWidget(_heading(f"Welcome to {APP_NAME}"))
        box.addWidget(_caption(
            "There are no accounts yet. Set up an administrator to continue."
        ))

        self.username_input = QLineEdit()
        self.username_input.setPlaceholderText("admin")
        self.display_name_input = QLineEdit()
        self.display_name_input.setPlaceholderText("Sam Patel")
        self.pin_input = _pin_edit(
            f"{MIN_PIN_LENGTH}-{MAX_PIN_LENGTH} digits"
        )
        self.pin_confirm = _pin_edit("Repeat PIN")
        self.pin_confirm.returnPressed.connect(self._create_admin)

        form = QFormLayout()
        form.setSpacing(8)
        form.addRow("Username:", self.username_input)
        form.addRow("Display name:", self.display_name_input)
        form.addRow("PIN:", self.pin_input)
        form.addRow("Confirm PIN:", self.pin_confirm)
        box.addLayout(form)

        self.create_btn = QPushButton("Create Administrator")
        self.create_btn.setMinimumHeight(34)
        self.create_btn.clicked.connect(self._create_admin)
        box.addWidget(self.create_btn)

        self.error_label = _error_line()
        box.addWidget(self.error_label)

    def _create_admin(self):
        username = self.username_input.text().strip()
        pin = self.pin_input.text().strip()
        problem = validate_new_admin(
            username,
            self.display_name_input.text().strip(),
            pin,
            self.pin_confirm.text().strip(),
        )
        if problem:
            self.error_label.setText(problem)
            return

        admin = User(
            username=username,
            display_name=self.display_name_input.text().strip(),
            pin_hash=Repository.hash_pin(pin),
            role="admin",
            is_active=1,
        )
        try:
            admin.id = self.repo.create_user(admin)
        except ValueError as exc:
            self.error_label.setText(str(exc))
            return
        Config.update_last_login(username)
        self.created_user = admin
        self.accept()
