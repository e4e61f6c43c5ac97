"""Items page: the catalogue with stock totals and stock movement actions."""

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QCheckBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from voltstock.database.models import InventoryItem, User
from voltstock.database.repository import Repository
from voltstock.ui.widgets.data_table import (
    LOW_STOCK_COLOR,
    DataTable,
    number_cell,
    text_cell,
)
from voltstock.utils.constants import role_has_permission
from voltstock.utils.formatters import format_currency, format_quantity
from voltstock.utils.stock import is_low_stock


class ItemsPage(QWidget):
    """Catalogue view with search and item / stock actions."""

    COLUMNS = [
        "SKU", "Name", "Unit", "On Hand", "Reorder Point", "Min", "Max",
        "Default Cost", "Supplier",
    ]

    message = Signal(str, str)

    def __init__(self, repo: Repository, current_user: User = None):
        super().__init__()
        self.repo = repo
        self.current_user = current_user
        role = current_user.role if current_user else ""
        self._can = {
            perm: role_has_permission(role, perm)
            for perm in ("items_edit", "items_import", "items_export",
                         "stock_transfer", "stock_adjust", "rmas_manage")
        }
        self._items: list[InventoryItem] = []
        self._setup_ui()
        self.refresh()

    def _setup_ui(self):
        layout = QVBoxLayout(self)

        # ── Toolbar ─────────────────────────────────────────────
        toolbar = QHBoxLayout()

        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search by SKU or name...")
        self.search_input.textChanged.connect(self._on_search)
        toolbar.addWidget(self.search_input, 2)

        self.low_only_check = QCheckBox("Low stock only")
        self.low_only_check.toggled.connect(self._on_search)
        toolbar.addWidget(self.low_only_check)

        self.add_btn = QPushButton("+ Add Item")
        self.add_btn.clicked.connect(self._on_add)
        toolbar.addWidget(self.add_btn)

        self.import_btn = QPushButton("Import")
        self.import_btn.clicked.connect(self._on_import)
        toolbar.addWidget(self.import_btn)

        self.export_btn = QPushButton("Export")
        self.export_btn.clicked.connect(self._on_export)
        toolbar.addWidget(self.export_btn)
        layout.addLayout(toolbar)

        actions = QHBoxLayout()
        self.edit_btn = QPushButton("Edit")
        self.edit_btn.clicked.connect(self._on_edit)
        self.transfer_btn = QPushButton("Transfer")
        self.transfer_btn.clicked.connect(self._on_transfer)
        self.adjust_btn = QPushButton("Adjust")
        self.adjust_btn.clicked.connect(self._on_adjust)
        self.rma_btn = QPushButton("Return / RMA")
        self.rma_btn.clicked.connect(self._on_rma)
        self.deactivate_btn = QPushButton("Deactivate")
        self.deactivate_btn.clicked.connect(self._on_deactivate)
        self._selection_buttons = [
            self.edit_btn, self.transfer_btn, self.adjust_btn,
            self.rma_btn, self.deactivate_btn,
        ]
        for btn in self._selection_buttons:
            btn.setEnabled(False)
            actions.addWidget(btn)
        actions.addStretch()
        layout.addLayout(actions)

        self.add_btn.setVisible(self._can["items_edit"])
        self.edit_btn.setVisible(self._can["items_edit"])
        self.deactivate_btn.setVisible(self._can["items_edit"])
        self.import_btn.setVisible(self._can["items_import"])
        self.export_btn.setVisible(self._can["items_export"])
        self.transfer_btn.setVisible(self._can["stock_transfer"])
        self.adjust_btn.setVisible(self._can["stock_adjust"])
        self.rma_btn.setVisible(self._can["rmas_manage"])

        # ── Summary ───────────────────────────────────────────
        self.summary_label = QLabel("")
        self.summary_label.setStyleSheet("color: #a6adc8; padding: 2px;")
        layout.addWidget(self.summary_label)

        # ── Table ─────────────────────────────────────────────
        self.table = DataTable(self.COLUMNS, sortable=True)
        self.table.selectionModel().selectionChanged.connect(
            self._on_selection_changed
        )
        self.table.doubleClicked.connect(self._on_edit)
        layout.addWidget(self.table)

    def refresh(self):
        self._items = self.repo.get_all_items()
        self._on_search()

    def _on_search(self):
        search = self.search_input.text().strip().lower()
        items = self._items
        if search:
            items = [
                i for i in items
                if search in i.sku.lower() or search in i.name.lower()
            ]
        if self.low_only_check.isChecked():
            items = [
                i for i in items
                if is_low_stock(i.total_on_hand, i.reorder_point)
            ]
        self._populate_table(items)

    def _populate_table(self, items: list[InventoryItem]):
        rows = []
        low_count = 0
        for item in items:
            low = is_low_stock(item.total_on_hand, item.reorder_point)
            low_count += low
            rows.append([
                item.sku,
                item.name,
                item.unit,
                text_cell(
                    format_quantity(item.total_on_hand, item.reorder_point),
                    color=LOW_STOCK_COLOR if low else None,
                    align_right=True,
                ),
                number_cell(item.reorder_point),
                number_cell(item.min_level),
                number_cell(item.max_level),
                format_currency(item.default_cost),
                item.supplier_name,
            ])
        self.table.set_rows(rows, keys=[i.id for i in items])
        self.summary_label.setText(
            f"{len(items)} items  |  {low_count} at or below reorder point"
        )
        self._on_selection_changed()

    def selected_item(self) -> InventoryItem | None:
        item_id = self.table.current_key()
        return self.repo.get_item_by_id(item_id) if item_id else None

    def _on_selection_changed(self):
        has_selection = self.table.currentRow() >= 0
        for btn in self._selection_buttons:
            btn.setEnabled(has_selection)

    def _on_add(self):
        from voltstock.ui.dialogs.item_dialog import ItemDialog
        dialog = ItemDialog(self.repo, parent=self)
        if dialog.exec():
            self.message.emit("Item added", "success")
            self.refresh()

    def _on_edit(self):
        if not self._can["items_edit"]:
            return
        item = self.selected_item()
        if not item:
            return
        from voltstock.ui.dialogs.item_dialog import ItemDialog
        dialog = ItemDialog(self.repo, item=item, parent=self)
        if dialog.exec():
            self.refresh()

    def _on_transfer(self):
        item = self.selected_item()
        if not item:
            return
        from voltstock.ui.dialogs.transfer_dialog import TransferDialog
        dialog = TransferDialog(self.repo, item, self.current_user, parent=self)
        if dialog.exec():
            self.message.emit(f"Transferred {item.sku}", "success")
            self.refresh()

    def _on_adjust(self):
        item = self.selected_item()
        if not item:
            return
        from voltstock.ui.dialogs.adjustment_dialog import AdjustmentDialog
        dialog = AdjustmentDialog(
            self.repo, item, self.current_user, parent=self
        )
        if dialog.exec():
            self.refresh()

    def _on_rma(self):
        item = self.selected_item()
        if not item:
            return
        from voltstock.ui.dialogs.rma_dialog import RmaDialog
        dialog = RmaDialog(
            self.repo, self.current_user, item_id=item.id, parent=self
        )
        if dialog.exec():
            self.message.emit("RMA created", "success")
            self.refresh()

    def _on_deactivate(self):
        item = self.selected_item()
        if not item:
            return
        reply = QMessageBox.question(
            self, "Deactivate Item",
            f"Deactivate {item.sku} ({item.name})?\n"
            f"Its stock history is kept.",
            QMessageBox.Yes | QMessageBox.No,
        )
        if reply == QMessageBox.Yes:
            self.repo.deactivate_item(item.id)
            self.refresh()

    def _on_import(self):
        from voltstock.ui.dialogs.import_dialog import ImportDialog
        dialog = ImportDialog(self.repo, parent=self)
        dialog.exec()
        self.refresh()

    def _on_export(self):
        from voltstock.ui.dialogs.export_dialog import ExportDialog
        dialog = ExportDialog(self.repo, parent=self)
        dialog.exec()
