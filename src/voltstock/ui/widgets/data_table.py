"""Read-only, row-selecting table shared by the list pages."""

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor
from PySide6.QtWidgets import QHeaderView, QTableWidget, QTableWidgetItem

KEY_ROLE = Qt.ItemDataRole.UserRole
_RIGHT = Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter

LOW_STOCK_COLOR = "#f38ba8"


def number_cell(value) -> QTableWidgetItem:
    """Right-aligned cell that sorts numerically."""
    cell = QTableWidgetItem()
    cell.setData(Qt.ItemDataRole.DisplayRole, value)
    cell.setTextAlignment(_RIGHT)
    return cell


def text_cell(text, color: str | None = None,
              align_right: bool = False) -> QTableWidgetItem:
    cell = QTableWidgetItem("" if text is None else str(text))
    if color:
        cell.setForeground(QColor(color))
    if align_right:
        cell.setTextAlignment(_RIGHT)
    return cell


class DataTable(QTableWidget):
    """QTableWidget preset: whole-row single selection, no in-place edits.

    ``set_rows`` stores an optional key (usually a database id) on every
    cell of a row under ``KEY_ROLE``; ``current_key`` reads it back for the
    selected row, whatever the sort order.
    """

    def __init__(self, columns: list[str], stretch_column: int = 1,
                 sortable: bool = False, parent=None):
        super().__init__(0, len(columns), parent)
        self._sortable = sortable
        self.setHorizontalHeaderLabels(columns)
        self.setSelectionBehavior(QTableWidget.SelectRows)
        self.setSelectionMode(QTableWidget.SingleSelection)
        self.setEditTriggers(QTableWidget.NoEditTriggers)
        self.setAlternatingRowColors(True)
        self.setSortingEnabled(sortable)
        self.horizontalHeader().setSectionResizeMode(
            stretch_column, QHeaderView.Stretch
        )

    def set_rows(self, rows: list[list], keys: list | None = None):
        """Replace the contents; plain values are wrapped in text cells."""
        # Sorting while inserting scatters a row's cells across rows
        self.setSortingEnabled(False)
        self.setRowCount(len(rows))
        for r, cells in enumerate(rows):
            key = keys[r] if keys is not None else None
            for c, cell in enumerate(cells):
                if not isinstance(cell, QTableWidgetItem):
                    cell = text_cell(cell)
                if key is not None:
                    cell.setData(KEY_ROLE, key)
                self.setItem(r, c, cell)
        self.setSortingEnabled(self._sortable)

    def current_key(self):
        row = self.currentRow()
        if row < 0:
            return None
        cell = self.item(row, 0)
        return cell.data(KEY_ROLE) if cell else None
