"""Dashboard page: headline numbers and the low-stock list."""

from PySide6.QtWidgets import (
    QComboBox,
    QFrame,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from voltstock.config import Config
from voltstock.database.models import User
from voltstock.database.repository import Repository
from voltstock.ui.widgets.data_table import (
    LOW_STOCK_COLOR,
    DataTable,
    number_cell,
    text_cell,
)
from voltstock.utils.constants import LOW_STOCK_SCOPES, role_has_permission

SCOPE_LABELS = {
    "any": "Any location",
    "van": "Vans only",
    "total": "Total across locations",
}


class SummaryCard(QFrame):
    """A styled card showing a metric."""

    def __init__(self, title: str, value: str = "0", parent=None):
        super().__init__(parent)
        self.setObjectName("SummaryCard")
        self.setFrameShape(QFrame.StyledPanel)
        layout = QVBoxLayout(self)
        self.title_label = QLabel(title)
        self.title_label.setObjectName("SummaryCardTitle")
        self.value_label = QLabel(value)
        self.value_label.setObjectName("SummaryCardValue")
        layout.addWidget(self.title_label)
        layout.addWidget(self.value_label)

    def set_value(self, value: str):
        self.value_label.setText(value)


class DashboardPage(QWidget):
    """Summary cards plus items at or below their reorder point."""

    LOW_STOCK_COLUMNS = ["SKU", "Item", "Location", "On Hand",
                         "Reorder Point", "Short By"]

    def __init__(self, repo: Repository, current_user: User, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.current_user = current_user
        self.kpis: dict = {}
        self._setup_ui()
        self.refresh()

    def _setup_ui(self):
        layout = QVBoxLayout(self)

        title = QLabel(
            f"Dashboard -- Welcome, {self.current_user.display_name}"
        )
        title.setObjectName("PageTitle")
        layout.addWidget(title)

        cards_layout = QGridLayout()
        self.cards: dict[str, SummaryCard] = {
            "active_items": SummaryCard("Active Items"),
            "total_on_hand": SummaryCard("Units On Hand"),
            "low_stock_items": SummaryCard("Low Stock"),
            "van_low_stock_items": SummaryCard("Van Low Stock"),
            "submitted_requests": SummaryCard("New Requests"),
            "in_pick_requests": SummaryCard("Being Picked"),
            "in_transit_requests": SummaryCard("In Transit"),
            "delivered_today": SummaryCard("Delivered Today"),
            "open_purchase_orders": SummaryCard("Open Orders"),
            "open_rmas": SummaryCard("Open RMAs"),
            "pending_approvals": SummaryCard("Awaiting Approval"),
        }
        for index, card in enumerate(self.cards.values()):
            cards_layout.addWidget(card, index // 4, index % 4)
        self.cards["pending_approvals"].setVisible(
            role_has_permission(self.current_user.role, "txns_approve")
        )
        layout.addLayout(cards_layout)

        group = QGroupBox("Low Stock")
        group_layout = QVBoxLayout(group)

        controls = QHBoxLayout()
        controls.addWidget(QLabel("Scope:"))
        self.scope_combo = QComboBox()
        for scope in LOW_STOCK_SCOPES:
            self.scope_combo.addItem(SCOPE_LABELS[scope], scope)
        idx = self.scope_combo.findData(Config.LOW_STOCK_SCOPE)
        if idx >= 0:
            self.scope_combo.setCurrentIndex(idx)
        self.scope_combo.currentIndexChanged.connect(self._load_low_stock)
        controls.addWidget(self.scope_combo)
        controls.addStretch()
        self.refresh_btn = QPushButton("Refresh")
        self.refresh_btn.clicked.connect(self.refresh)
        controls.addWidget(self.refresh_btn)
        group_layout.addLayout(controls)

        self.low_stock_table = DataTable(self.LOW_STOCK_COLUMNS)
        group_layout.addWidget(self.low_stock_table)
        layout.addWidget(group, 1)

    def refresh(self):
        self.kpis = self.repo.get_inventory_kpis()
        for key, card in self.cards.items():
            card.set_value(str(self.kpis.get(key, 0)))
        self._load_low_stock()

    def _load_low_stock(self):
        shortages = self.repo.get_low_stock_items(
            self.scope_combo.currentData()
        )
        self.low_stock_table.set_rows([
            [
                low.item_sku,
                low.item_name,
                low.location_name or "All locations",
                text_cell(low.on_hand, align_right=True,
                          color=LOW_STOCK_COLOR if low.on_hand <= 0 else None),
                number_cell(low.reorder_point),
                number_cell(low.shortfall),
            ]
            for low in shortages
        ])
