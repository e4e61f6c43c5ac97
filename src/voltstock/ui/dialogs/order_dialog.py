"""New purchase order dialog."""

from PySide6.QtCore import QDate
from PySide6.QtWidgets import (
    QComboBox,
    QDateEdit,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QVBoxLayout,
)

from voltstock.database.models import PurchaseOrder, PurchaseOrderLine, User
from voltstock.database.repository import Repository
from voltstock.ui.dialogs.line_table import ItemLineTable
from voltstock.utils.formatters import format_currency


class OrderDialog(QDialog):
    """Create a draft purchase order.

    Lines are costed at each item's default cost. When opened with a
    ``stock_request_id`` the request's lines are copied in and the order
    is linked back to the request.
    """

    def __init__(self, repo: Repository, current_user: User,
                 stock_request_id: int | None = None, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.current_user = current_user
        self.stock_request_id = stock_request_id
        self.order_id = None
        self._items = {i.id: i for i in repo.get_all_items()}

        self.setWindowTitle("New Purchase Order")
        self.setMinimumSize(560, 480)
        self._setup_ui()
        self._prefill_from_request()
        self._update_total()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self.po_number_input = QLineEdit(self.repo.generate_po_number())
        form.addRow("PO Number:", self.po_number_input)

        self.supplier_combo = QComboBox()
        self.supplier_combo.addItem("(none)", None)
        for supplier in self.repo.get_all_suppliers():
            self.supplier_combo.addItem(supplier.name, supplier.id)
        form.addRow("Supplier:", self.supplier_combo)

        self.expected_date = QDateEdit(QDate.currentDate().addDays(7))
        self.expected_date.setCalendarPopup(True)
        form.addRow("Expected:", self.expected_date)

        self.notes_input = QLineEdit()
        form.addRow("Notes:", self.notes_input)
        layout.addLayout(form)

        self.lines = ItemLineTable(self._items.values())
        self.lines.lines_changed.connect(self._update_total)
        layout.addWidget(self.lines, 1)

        self.total_label = QLabel("")
        self.total_label.setStyleSheet("font-weight: bold;")
        layout.addWidget(self.total_label)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Save | QDialogButtonBox.Cancel
        )
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _prefill_from_request(self):
        if not self.stock_request_id:
            self.lines.add_line()
            return
        for line in self.repo.get_stock_request_lines(self.stock_request_id):
            self.lines.add_line(line.item_id, line.qty)
        self.notes_input.setText(f"For stock request #{self.stock_request_id}")

    def _update_total(self):
        total = sum(
            qty * self._items[item_id].default_cost
            for item_id, qty in self.lines.lines()
            if item_id in self._items
        )
        self.total_label.setText(f"Estimated total: {format_currency(total)}")

    def _save(self):
        lines = [
            PurchaseOrderLine(item_id=item_id, quantity=qty)
            for item_id, qty in self.lines.lines()
        ]
        engineer_id = None
        if self.stock_request_id:
            request = self.repo.get_stock_request_by_id(self.stock_request_id)
            engineer_id = request.engineer_id if request else None
        order = PurchaseOrder(
            po_number=self.po_number_input.text().strip(),
            supplier_id=self.supplier_combo.currentData(),
            expected_delivery_date=self.expected_date.date().toString(
                "yyyy-MM-dd"
            ),
            notes=self.notes_input.text().strip(),
            stock_request_id=self.stock_request_id,
            engineer_id=engineer_id,
            created_by=self.current_user.id,
        )
        try:
            self.order_id = self.repo.create_purchase_order(order, lines)
        except ValueError as e:
            QMessageBox.warning(self, "Cannot Create Order", str(e))
            return
        self.accept()
