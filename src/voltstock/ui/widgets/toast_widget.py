"""Transient notifications stacked in the corner of the main window."""

from PySide6.QtCore import QEasingCurve, QPropertyAnimation, Qt, QTimer
from PySide6.QtWidgets import (
    QGraphicsOpacityEffect,
    QLabel,
    QVBoxLayout,
    QWidget,
)

# severity -> (accent colour, lifetime in ms)
_SEVERITIES = {
    "info": ("#89b4fa", 3500),
    "success": ("#a6e3a1", 3500),
    "warning": ("#f9e2af", 5000),
    "error": ("#f38ba8", 6000),
}

_FADE_MS = 180
_MARGIN = 16
_GAP = 8


class Toast(QWidget):
    """One message bubble. Fades in, waits, fades out, deletes itself."""

    def __init__(self, message: str, severity: str = "info",
                 duration_ms: int | None = None, parent=None):
        super().__init__(parent)
        if severity not in _SEVERITIES:
            severity = "info"
        self.severity = severity
        accent, lifetime = _SEVERITIES[severity]

        self.setAttribute(Qt.WA_StyledBackground)
        self.setFixedWidth(320)

        self.label = QLabel(message)
        self.label.setWordWrap(True)
        self.label.setStyleSheet(
            "QLabel { background: #181825; color: #cdd6f4;"
            f" border-left: 4px solid {accent}; border-radius: 6px;"
            " padding: 10px 12px; }"
        )
        box = QVBoxLayout(self)
        box.setContentsMargins(0, 0, 0, 0)
        box.addWidget(self.label)
        self.adjustSize()

        self._opacity = QGraphicsOpacityEffect(self)
        self.setGraphicsEffect(self._opacity)
        self._fade = QPropertyAnimation(self._opacity, b"opacity", self)
        self._fade.setDuration(_FADE_MS)

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(duration_ms or lifetime)
        self._timer.timeout.connect(self.dismiss)

    def show_at(self, x: int, y: int):
        """Place the toast at parent coordinates ``(x, y)`` and start its clock."""
        self.move(x, y)
        self._run_fade(0.0, 1.0, QEasingCurve.OutQuad)
        self.show()
        self.raise_()
        self._timer.start()

    def dismiss(self):
        self._timer.stop()
        self._fade.finished.connect(self.deleteLater)
        self._run_fade(self._opacity.opacity(), 0.0, QEasingCurve.InQuad)

    def _run_fade(self, start: float, end: float, curve):
        self._fade.stop()
        self._fade.setStartValue(start)
        self._fade.setEndValue(end)
        self._fade.setEasingCurve(curve)
        self._fade.start()


class ToastManager:
    """Keeps track of live toasts and stacks new ones above them."""

    def __init__(self, host: QWidget):
        self._host = host
        self._live: list[Toast] = []

    @property
    def active_toasts(self) -> list[Toast]:
        return list(self._live)

    def show_toast(self, message: str, severity: str = "info",
                   duration_ms: int | None = None) -> Toast:
        toast = Toast(message, severity, duration_ms, parent=self._host)
        x = self._host.width() - toast.width() - _MARGIN
        y = self._host.height() - toast.height() - _MARGIN * 2
        y -= sum(t.height() + _GAP for t in self._live if t.isVisible())

        self._live.append(toast)
        toast.destroyed.connect(lambda: self._forget(toast))
        toast.show_at(max(x, 0), max(y, 0))
        return toast

    def success(self, message: str) -> Toast:
        return self.show_toast(message, "success")

    def error(self, message: str) -> Toast:
        return self.show_toast(message, "error")

    def _forget(self, toast: Toast):
        if toast in self._live:
            self._live.remove(toast)
