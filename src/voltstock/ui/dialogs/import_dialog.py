"""Bulk item import from a CSV or Excel sheet, matched on SKU."""

from pathlib import Path

from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QDialogButtonBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
)

from voltstock.database.repository import Repository
from voltstock.io.csv_handler import import_items_csv
from voltstock.io.excel_handler import import_items_excel

MAX_ERRORS_SHOWN = 20

IMPORTERS = {
    ".csv": import_items_csv,
    ".xlsx": import_items_excel,
}

_FILE_FILTER = (
    "Item sheets (*.csv *.xlsx);;CSV (*.csv);;Excel workbook (*.xlsx)"
)


def format_import_results(results: dict) -> str:
    """Render an importer's result dict as the summary shown to the user."""
    out = [f"{label}: {results[key]}" for label, key in (
        ("Imported", "imported"), ("Updated", "updated"),
        ("Skipped", "skipped"),
    )]
    errors = results["errors"]
    if errors:
        out.append("")
        out.append(f"Errors ({len(errors)}):")
        out += [f"  - {err}" for err in errors[:MAX_ERRORS_SHOWN]]
        hidden = len(errors) - MAX_ERRORS_SHOWN
        if hidden > 0:
            out.append(f"  ... and {hidden} more")
    return "\n".join(out)


class ImportDialog(QDialog):
    def __init__(self, repo: Repository, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.filepath: str | None = None
        self.results: dict | None = None
        self.setWindowTitle("Import Items")
        self.setMinimumSize(520, 360)
        self._build()

    def _build(self):
        pick_row = QHBoxLayout()
        self.file_label = QLabel("Choose a .csv or .xlsx file")
        choose_btn = QPushButton("Choose File...")
        choose_btn.clicked.connect(self._browse)
        pick_row.addWidget(self.file_label, 1)
        pick_row.addWidget(choose_btn)

        self.update_existing = QCheckBox(
            "Overwrite items whose SKU already exists"
        )
        self.results_text = QPlainTextEdit()
        self.results_text.setReadOnly(True)
        self.results_text.setPlaceholderText("Import summary appears here")

        buttons = QDialogButtonBox(QDialogButtonBox.Close)
        buttons.rejected.connect(self.reject)
        self.import_btn = buttons.addButton(
            "Import", QDialogButtonBox.ActionRole
        )
        self.import_btn.setEnabled(False)
        self.import_btn.clicked.connect(self._on_import)

        outer = QVBoxLayout(self)
        outer.addLayout(pick_row)
        outer.addWidget(self.update_existing)
        outer.addWidget(self.results_text, 1)
        outer.addWidget(buttons)

    def set_file(self, filepath: str):
        self.filepath = filepath
        self.file_label.setText(Path(filepath).name)
        self.import_btn.setEnabled(True)

    def _browse(self):
        chosen, _ = QFileDialog.getOpenFileName(
            self, "Import Items", "", _FILE_FILTER
        )
        if chosen:
            self.set_file(chosen)

    def run_import(self) -> dict | None:
        """Load the chosen file; returns the importer's result dict."""
        if not self.filepath:
            return None
        suffix = Path(self.filepath).suffix.lower()
        importer = IMPORTERS.get(suffix)
        if importer is None:
            self.results_text.setPlainText(f"Unsupported file type: {suffix}")
            return None
        self.results = importer(
            self.repo, self.filepath, self.update_existing.isChecked()
        )
        self.results_text.setPlainText(format_import_results(self.results))
        return self.results

    def _on_import(self):
        results = self.run_import()
        if not results:
            return
        changed = results["imported"] + results["updated"]
        if changed:
            QMessageBox.information(
                self, "Import Complete",
                f"{changed} item(s) imported or updated.",
            )
