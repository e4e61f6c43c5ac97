"""Setup page: locations, engineers, suppliers and user logins."""

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QHBoxLayout,
    QMessageBox,
    QPushButton,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from voltstock.database.models import User
from voltstock.database.repository import Repository
from voltstock.ui.widgets.data_table import DataTable
from voltstock.utils.constants import (
    LOCATION_TYPE_LABELS,
    USER_ROLE_LABELS,
    role_has_permission,
)


def _yes_no(flag) -> str:
    return "Yes" if flag else "No"


class _Section(QWidget):
    """Toolbar of Add / Edit / Deactivate over a table of records."""

    def __init__(self, noun: str, columns: list[str], stretch_column: int = 0):
        super().__init__()
        layout = QVBoxLayout(self)

        toolbar = QHBoxLayout()
        self.add_btn = QPushButton(f"Add {noun}")
        self.edit_btn = QPushButton("Edit")
        self.deactivate_btn = QPushButton("Deactivate")
        for btn in (self.add_btn, self.edit_btn, self.deactivate_btn):
            toolbar.addWidget(btn)
        toolbar.addStretch()
        layout.addLayout(toolbar)

        self.table = DataTable(columns, stretch_column=stretch_column)
        self.table.selectionModel().selectionChanged.connect(
            self.update_buttons
        )
        layout.addWidget(self.table)
        self.update_buttons()

    def update_buttons(self):
        selected = self.table.current_key() is not None
        self.edit_btn.setEnabled(selected)
        self.deactivate_btn.setEnabled(selected)


class SetupPage(QWidget):
    """Reference data an administrator or manager maintains.

    Records are never deleted: deactivating hides a location, engineer,
    supplier or login from pickers while its history stays intact. The
    Users tab is limited to administrators.
    """

    message = Signal(str, str)

    def __init__(self, repo: Repository, current_user: User = None):
        super().__init__()
        self.repo = repo
        self.current_user = current_user
        role = current_user.role if current_user else ""
        self.can_manage_users = role_has_permission(role, "users_manage")
        self._setup_ui()
        self.refresh()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        self.sections = QTabWidget()

        self.locations = _Section(
            "Location", ["Name", "Code", "Type", "Engineer", "Active"]
        )
        self.locations.add_btn.clicked.connect(self._add_location)
        self.locations.edit_btn.clicked.connect(self._edit_location)
        self.locations.deactivate_btn.clicked.connect(
            self._deactivate_location
        )
        self.sections.addTab(self.locations, "Locations")

        self.engineers = _Section(
            "Engineer", ["Name", "Email", "Phone", "Van", "Active"]
        )
        self.engineers.add_btn.clicked.connect(self._add_engineer)
        self.engineers.edit_btn.clicked.connect(self._edit_engineer)
        self.engineers.deactivate_btn.clicked.connect(
            self._deactivate_engineer
        )
        self.sections.addTab(self.engineers, "Engineers")

        self.suppliers = _Section(
            "Supplier",
            ["Name", "Contact", "Email", "Phone", "Lead Time", "Active"],
        )
        self.suppliers.add_btn.clicked.connect(self._add_supplier)
        self.suppliers.edit_btn.clicked.connect(self._edit_supplier)
        self.suppliers.deactivate_btn.clicked.connect(
            self._deactivate_supplier
        )
        self.sections.addTab(self.suppliers, "Suppliers")

        self.users = _Section(
            "User",
            ["Username", "Display Name", "Role", "Engineer", "Active"],
            stretch_column=1,
        )
        self.users.add_btn.clicked.connect(self._add_user)
        self.users.edit_btn.clicked.connect(self._edit_user)
        self.users.deactivate_btn.clicked.connect(self._deactivate_user)
        index = self.sections.addTab(self.users, "Users")
        self.sections.setTabVisible(index, self.can_manage_users)

        layout.addWidget(self.sections)

    def refresh(self):
        locations = self.repo.get_all_locations(active_only=False)
        self.locations.table.set_rows(
            [[loc.name, loc.code or "",
              LOCATION_TYPE_LABELS.get(loc.type, loc.type),
              loc.engineer_name, _yes_no(loc.is_active)]
             for loc in locations],
            keys=[loc.id for loc in locations],
        )

        engineers = self.repo.get_all_engineers(active_only=False)
        van_names = {
            loc.engineer_id: loc.name for loc in locations
            if loc.type == "van" and loc.is_active
        }
        self.engineers.table.set_rows(
            [[e.name, e.email or "", e.phone or "",
              van_names.get(e.id, ""), _yes_no(e.is_active)]
             for e in engineers],
            keys=[e.id for e in engineers],
        )

        suppliers = self.repo.get_all_suppliers(active_only=False)
        self.suppliers.table.set_rows(
            [[s.name, s.contact_name or "", s.contact_email or "",
              s.contact_phone or "", f"{s.lead_time_days} days",
              _yes_no(s.is_active)]
             for s in suppliers],
            keys=[s.id for s in suppliers],
        )

        if self.can_manage_users:
            engineer_names = {e.id: e.name for e in engineers}
            users = self.repo.get_all_users(active_only=False)
            self.users.table.set_rows(
                [[u.username, u.display_name,
                  USER_ROLE_LABELS.get(u.role, u.role),
                  engineer_names.get(u.engineer_id, ""),
                  _yes_no(u.is_active)]
                 for u in users],
                keys=[u.id for u in users],
            )

        for section in (self.locations, self.engineers, self.suppliers,
                        self.users):
            section.update_buttons()

    def _confirm(self, title: str, text: str) -> bool:
        reply = QMessageBox.question(
            self, title, text, QMessageBox.Yes | QMessageBox.No,
        )
        return reply == QMessageBox.Yes

    def _run_deactivate(self, action, key, done: str):
        try:
            action(key)
        except ValueError as e:
            self.message.emit(str(e), "error")
            return
        self.message.emit(done, "success")
        self.refresh()

    # ── Locations ───────────────────────────────────────────────

    def _add_location(self):
        from voltstock.ui.dialogs.location_dialog import LocationDialog
        dialog = LocationDialog(self.repo, parent=self)
        if dialog.exec():
            self.message.emit("Location added", "success")
            self.refresh()

    def _edit_location(self):
        location_id = self.locations.table.current_key()
        if not location_id:
            return
        from voltstock.ui.dialogs.location_dialog import LocationDialog
        dialog = LocationDialog(
            self.repo, self.repo.get_location_by_id(location_id), parent=self
        )
        if dialog.exec():
            self.refresh()

    def _deactivate_location(self):
        location_id = self.locations.table.current_key()
        if location_id and self._confirm(
            "Deactivate Location", "Deactivate this location?"
        ):
            self._run_deactivate(self.repo.deactivate_location, location_id,
                                 "Location deactivated")

    # ── Engineers ───────────────────────────────────────────────

    def _add_engineer(self):
        from voltstock.ui.dialogs.engineer_dialog import EngineerDialog
        dialog = EngineerDialog(self.repo, parent=self)
        if dialog.exec():
            self.message.emit("Engineer added", "success")
            self.refresh()

    def _edit_engineer(self):
        engineer_id = self.engineers.table.current_key()
        if not engineer_id:
            return
        from voltstock.ui.dialogs.engineer_dialog import EngineerDialog
        dialog = EngineerDialog(
            self.repo, self.repo.get_engineer_by_id(engineer_id), parent=self
        )
        if dialog.exec():
            self.refresh()

    def _deactivate_engineer(self):
        engineer_id = self.engineers.table.current_key()
        if engineer_id and self._confirm(
            "Deactivate Engineer",
            "Deactivate this engineer? Their van is deactivated too.",
        ):
            self._run_deactivate(self.repo.deactivate_engineer, engineer_id,
                                 "Engineer deactivated")

    # ── Suppliers ───────────────────────────────────────────────

    def _add_supplier(self):
        from voltstock.ui.dialogs.supplier_dialog import SupplierDialog
        dialog = SupplierDialog(self.repo, parent=self)
        if dialog.exec():
            self.message.emit("Supplier added", "success")
            self.refresh()

    def _edit_supplier(self):
        supplier_id = self.suppliers.table.current_key()
        if not supplier_id:
            return
        from voltstock.ui.dialogs.supplier_dialog import SupplierDialog
        dialog = SupplierDialog(
            self.repo, self.repo.get_supplier_by_id(supplier_id), parent=self
        )
        if dialog.exec():
            self.refresh()

    def _deactivate_supplier(self):
        supplier_id = self.suppliers.table.current_key()
        if supplier_id and self._confirm(
            "Deactivate Supplier", "Deactivate this supplier?"
        ):
            self._run_deactivate(self.repo.deactivate_supplier, supplier_id,
                                 "Supplier deactivated")

    # ── Users ───────────────────────────────────────────────────

    def _add_user(self):
        from voltstock.ui.dialogs.user_dialog import UserDialog
        dialog = UserDialog(self.repo, current_user=self.current_user,
                            parent=self)
        if dialog.exec():
            self.message.emit("User added", "success")
            self.refresh()

    def _edit_user(self):
        user_id = self.users.table.current_key()
        if not user_id:
            return
        from voltstock.ui.dialogs.user_dialog import UserDialog
        dialog = UserDialog(
            self.repo, self.repo.get_user_by_id(user_id),
            current_user=self.current_user, parent=self,
        )
        if dialog.exec():
            self.refresh()

    def _deactivate_user(self):
        user_id = self.users.table.current_key()
        if not user_id:
            return
        if self.current_user and user_id == self.current_user.id:
            self.message.emit("You cannot deactivate yourself", "error")
            return
        if self._confirm("Deactivate User", "Deactivate this login?"):
            self._run_deactivate(self.repo.deactivate_user, user_id,
                                 "User deactivated")
