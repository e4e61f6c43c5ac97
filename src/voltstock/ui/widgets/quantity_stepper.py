"""Debounced +/- quantity buttons for van stock rows."""

import logging
import sqlite3

from PySide6.QtCore import QObject, Qt, QTimer, Signal
from PySide6.QtWidgets import QHBoxLayout, QLabel, QPushButton, QWidget

from voltstock.config import Config
from voltstock.utils.debounce import AdjustmentBuffer

logger = logging.getLogger(__name__)


class DebouncedAdjuster(QObject):
    """Collects taps from many steppers and writes them after a quiet period.

    ``writer(item_id, location_id, delta)`` performs the actual ledger
    write; it is only ever called with a non-zero net delta.
    """

    flushed = Signal(int)        # number of adjustments written
    failed = Signal(str)         # error message from the writer

    def __init__(self, writer, delay_ms: int | None = None, parent=None):
        super().__init__(parent)
        self.buffer = AdjustmentBuffer(writer)
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(
            Config.ADJUST_DEBOUNCE_MS if delay_ms is None else delay_ms
        )
        self._timer.timeout.connect(self.flush)

    @property
    def delay_ms(self) -> int:
        return self._timer.interval()

    def bump(self, item_id: int, location_id: int, delta: int) -> int:
        """Record a tap and restart the quiet-period timer."""
        net = self.buffer.add(item_id, location_id, delta)
        self._timer.start()
        return net

    def is_pending(self) -> bool:
        return self._timer.isActive() and self.buffer.has_pending()

    def flush(self):
        self._timer.stop()
        try:
            results = self.buffer.flush()
        except (ValueError, sqlite3.Error) as e:
            logger.warning("Quantity adjustment failed: %s", e)
            # Keys after the failing one are still buffered
            if self.buffer.has_pending():
                self._timer.start()
            self.failed.emit(str(e))
            return
        if results:
            self.flushed.emit(len(results))


class QuantityStepper(QWidget):
    """Shows an on-hand figure with - and + buttons.

    The displayed number updates immediately; the ledger write is left to
    the shared :class:`DebouncedAdjuster`.
    """

    changed = Signal(int)  # displayed quantity

    def __init__(self, adjuster: DebouncedAdjuster, item_id: int,
                 location_id: int, quantity: int, parent=None):
        super().__init__(parent)
        self.adjuster = adjuster
        self.item_id = item_id
        self.location_id = location_id
        self._base = quantity

        layout = QHBoxLayout(self)
        layout.setContentsMargins(2, 0, 2, 0)
        layout.setSpacing(4)

        self.minus_btn = QPushButton("-")
        self.minus_btn.setFixedWidth(28)
        self.minus_btn.clicked.connect(lambda: self._step(-1))
        layout.addWidget(self.minus_btn)

        self.value_label = QLabel(str(quantity))
        self.value_label.setAlignment(Qt.AlignCenter)
        self.value_label.setMinimumWidth(36)
        layout.addWidget(self.value_label)

        self.plus_btn = QPushButton("+")
        self.plus_btn.setFixedWidth(28)
        self.plus_btn.clicked.connect(lambda: self._step(1))
        layout.addWidget(self.plus_btn)

        self._sync()

    @property
    def quantity(self) -> int:
        return self._base + self.adjuster.buffer.pending(
            self.item_id, self.location_id
        )

    def _step(self, delta: int):
        if delta < 0 and self.quantity <= 0:
            return
        self.adjuster.bump(self.item_id, self.location_id, delta)
        self._sync()
        self.changed.emit(self.quantity)

    def _sync(self):
        qty = self.quantity
        self.value_label.setText(str(qty))
        self.minus_btn.setEnabled(qty > 0)
