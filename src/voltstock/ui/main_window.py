"""Top-level window: one tab per page, a status bar of stock KPIs."""

from PySide6.QtCore import QTimer, Signal
from PySide6.QtWidgets import (
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QTabWidget,
)

from voltstock.database.connection import DatabaseConnection
from voltstock.database.models import User
from voltstock.database.repository import Repository
from voltstock.ui.widgets.toast_widget import ToastManager
from voltstock.utils.constants import (
    APP_NAME,
    DEFAULT_WINDOW_HEIGHT,
    DEFAULT_WINDOW_WIDTH,
    MIN_WINDOW_HEIGHT,
    MIN_WINDOW_WIDTH,
    USER_ROLE_LABELS,
    role_has_permission,
)

STATUS_REFRESH_MS = 60_000


class MainWindow(QMainWindow):
    """Hosts the pages the signed-in user's role is allowed to see.

    Emits ``logout_requested`` once the user confirms a logout; the window
    closes itself afterwards and ``app.main`` shows the login dialog again.
    """

    logout_requested = Signal()

    def __init__(self, db: DatabaseConnection, current_user: User):
        super().__init__()
        self.db = db
        self.repo = Repository(db)
        self.current_user = current_user

        role = USER_ROLE_LABELS.get(current_user.role, current_user.role)
        self.setWindowTitle(
            f"{APP_NAME} - {current_user.display_name} [{role}]"
        )
        self.resize(DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT)
        self.setMinimumSize(MIN_WINDOW_WIDTH, MIN_WINDOW_HEIGHT)

        self.toast = ToastManager(self)
        self._build_tabs()
        self._build_status_bar()
        self._refresh_status()

        self._status_timer = QTimer(self)
        self._status_timer.timeout.connect(self._refresh_status)
        self._status_timer.start(STATUS_REFRESH_MS)

    def _build_tabs(self):
        from voltstock.ui.pages.dashboard_page import DashboardPage
        from voltstock.ui.pages.items_page import ItemsPage
        from voltstock.ui.pages.purchase_orders_page import PurchaseOrdersPage
        from voltstock.ui.pages.returns_page import ReturnsPage
        from voltstock.ui.pages.setup_page import SetupPage
        from voltstock.ui.pages.stock_requests_page import StockRequestsPage
        from voltstock.ui.pages.transactions_page import TransactionsPage
        from voltstock.ui.pages.van_stock_page import VanStockPage

        args = (self.repo, self.current_user)
        self.dashboard_page = DashboardPage(*args)
        self.items_page = ItemsPage(*args)
        self.transactions_page = TransactionsPage(*args)
        self.stock_requests_page = StockRequestsPage(*args)
        self.purchase_orders_page = PurchaseOrdersPage(*args)
        self.returns_page = ReturnsPage(*args)
        self.van_stock_page = VanStockPage(*args)
        self.setup_page = SetupPage(*args)

        tabs = [
            (self.dashboard_page, "Dashboard", "tab_dashboard"),
            (self.items_page, "Items", "tab_items"),
            (self.transactions_page, "Transactions", "tab_transactions"),
            (self.stock_requests_page, "Stock Requests",
             "tab_stock_requests"),
            (self.purchase_orders_page, "Purchase Orders",
             "tab_purchase_orders"),
            (self.returns_page, "Returns && RMAs", "tab_returns"),
            (self.van_stock_page, "My Van", "tab_my_van"),
            (self.setup_page, "Setup", "tab_setup"),
        ]

        self.tabs = QTabWidget()
        self.tabs.setDocumentMode(True)
        for page, title, permission in tabs:
            index = self.tabs.addTab(page, title)
            self.tabs.setTabVisible(
                index,
                role_has_permission(self.current_user.role, permission),
            )
            if hasattr(page, "message"):
                page.message.connect(self.toast.show_toast)

        logout_btn = QPushButton("Logout")
        logout_btn.setObjectName("LogoutButton")
        logout_btn.clicked.connect(self._on_logout)
        self.tabs.setCornerWidget(logout_btn)

        self.tabs.currentChanged.connect(self._on_tab_changed)
        self.setCentralWidget(self.tabs)

    def _build_status_bar(self):
        bar = self.statusBar()
        self.status_label = QLabel("Ready")
        self.approvals_label = QLabel()
        self.approvals_label.setObjectName("PendingApprovalsLabel")
        self.items_count_label = QLabel()
        self.low_stock_label = QLabel()
        self.user_label = QLabel(f"User: {self.current_user.display_name}")

        bar.addWidget(self.status_label, 1)
        for label in (self.approvals_label, self.items_count_label,
                      self.low_stock_label, self.user_label):
            bar.addPermanentWidget(label)

    def _refresh_status(self):
        kpis = self.repo.get_inventory_kpis()
        pending = kpis["pending_approvals"]
        self.items_count_label.setText(f"Items: {kpis['active_items']}")
        self.low_stock_label.setText(f"Low Stock: {kpis['low_stock_items']}")
        self.approvals_label.setText(f"Pending: {pending}")
        # QSS keys off the dynamic "alert" property
        self.approvals_label.setProperty("alert", pending > 0)
        self.approvals_label.style().polish(self.approvals_label)

    def _on_tab_changed(self, index: int):
        page = self.tabs.widget(index)
        if hasattr(page, "refresh"):
            page.refresh()
        self._refresh_status()

    def _on_logout(self):
        answer = QMessageBox.question(
            self, "Logout",
            f"Sign out {self.current_user.display_name}?",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No,
        )
        if answer == QMessageBox.Yes:
            self.logout()

    def logout(self):
        """Write any buffered van taps, then hand back to the login loop."""
        self._status_timer.stop()
        adjuster = self.van_stock_page.adjuster
        if adjuster.buffer.has_pending():
            adjuster.flush()
        self.logout_requested.emit()
        self.close()
