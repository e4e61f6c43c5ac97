"""Editable item/quantity table shared by request, order and amendment dialogs."""

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QHeaderView,
    QPushButton,
    QSpinBox,
    QTableWidget,
    QVBoxLayout,
    QWidget,
)


class ItemLineTable(QWidget):
    """A table of (item, quantity) rows with add / remove buttons."""

    lines_changed = Signal()

    def __init__(self, items, parent=None):
        super().__init__(parent)
        self._items = list(items)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.table = QTableWidget(0, 2)
        self.table.setHorizontalHeaderLabels(["Item", "Quantity"])
        self.table.horizontalHeader().setSectionResizeMode(
            0, QHeaderView.Stretch
        )
        self.table.setSelectionBehavior(QTableWidget.SelectRows)
        layout.addWidget(self.table)

        btns = QHBoxLayout()
        self.add_btn = QPushButton("+ Add Line")
        self.add_btn.clicked.connect(lambda: self.add_line())
        btns.addWidget(self.add_btn)
        self.remove_btn = QPushButton("Remove Line")
        self.remove_btn.clicked.connect(self.remove_selected)
        btns.addWidget(self.remove_btn)
        btns.addStretch()
        layout.addLayout(btns)

    def add_line(self, item_id: int | None = None, quantity: int = 1):
        row = self.table.rowCount()
        self.table.insertRow(row)

        combo = QComboBox()
        for item in self._items:
            combo.addItem(f"{item.sku} — {item.name}", item.id)
        if item_id is not None:
            idx = combo.findData(item_id)
            if idx >= 0:
                combo.setCurrentIndex(idx)
        combo.currentIndexChanged.connect(lambda *_: self.lines_changed.emit())
        self.table.setCellWidget(row, 0, combo)

        spin = QSpinBox()
        spin.setRange(1, 99999)
        spin.setValue(max(quantity, 1))
        spin.valueChanged.connect(lambda *_: self.lines_changed.emit())
        self.table.setCellWidget(row, 1, spin)
        self.lines_changed.emit()

    def remove_selected(self):
        row = self.table.currentRow()
        if row >= 0:
            self.table.removeRow(row)
            self.lines_changed.emit()

    def lines(self) -> list[tuple[int, int]]:
        """Return ``[(item_id, quantity), ...]`` in table order."""
        result = []
        for row in range(self.table.rowCount()):
            combo = self.table.cellWidget(row, 0)
            spin = self.table.cellWidget(row, 1)
            if combo is None or combo.currentData() is None:
                continue
            result.append((combo.currentData(), spin.value()))
        return result
