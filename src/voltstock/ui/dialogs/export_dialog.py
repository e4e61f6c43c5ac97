"""Export dialog: choose a report, a format and a destination."""

from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFileDialog,
    QFormLayout,
    QMessageBox,
    QVBoxLayout,
)

from voltstock.database.repository import Repository
from voltstock.io.csv_handler import (
    export_items_csv,
    export_low_stock_csv,
    export_transactions_csv,
)
from voltstock.io.excel_handler import (
    export_items_excel,
    export_low_stock_excel,
    export_transactions_excel,
)

EXPORTERS = {
    ("items", "csv"): export_items_csv,
    ("items", "xlsx"): export_items_excel,
    ("transactions", "csv"): export_transactions_csv,
    ("transactions", "xlsx"): export_transactions_excel,
    ("low_stock", "csv"): export_low_stock_csv,
    ("low_stock", "xlsx"): export_low_stock_excel,
}


class ExportDialog(QDialog):
    """Export items, the ledger or the low-stock report."""

    def __init__(self, repo: Repository, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.setWindowTitle("Export Data")
        self.setMinimumWidth(400)
        self._setup_ui()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self.data_type = QComboBox()
        self.data_type.addItem("Items", "items")
        self.data_type.addItem("Transactions", "transactions")
        self.data_type.addItem("Low Stock", "low_stock")
        form.addRow("Data:", self.data_type)

        self.format_type = QComboBox()
        self.format_type.addItem("CSV (.csv)", "csv")
        self.format_type.addItem("Excel (.xlsx)", "xlsx")
        form.addRow("Format:", self.format_type)
        layout.addLayout(form)

        buttons = QDialogButtonBox(
            QDialogButtonBox.Save | QDialogButtonBox.Cancel
        )
        buttons.accepted.connect(self._on_export)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def export_to(self, filepath: str) -> int:
        data = self.data_type.currentData()
        fmt = self.format_type.currentData()
        return EXPORTERS[(data, fmt)](self.repo, filepath)

    def _on_export(self):
        data = self.data_type.currentData()
        fmt = self.format_type.currentData()
        ext = f".{fmt}"
        filepath, _ = QFileDialog.getSaveFileName(
            self, "Export To", f"{data}_export{ext}",
            f"{'CSV' if fmt == 'csv' else 'Excel'} Files (*{ext})",
        )
        if not filepath:
            return
        try:
            count = self.export_to(filepath)
        except OSError as e:
            QMessageBox.warning(self, "Export Failed", str(e))
            return
        QMessageBox.information(
            self, "Export Complete",
            f"Exported {count} rows to {filepath}",
        )
        self.accept()
