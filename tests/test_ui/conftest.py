"""Shared fixtures for UI tests using pytest-qt."""

import pytest
from PySide6.QtWidgets import QMessageBox


class MessageBoxRecorder:
    """Stands in for the static QMessageBox helpers during a test."""

    def __init__(self):
        self.calls = []
        self.answer = QMessageBox.Yes

    def _record(self, kind):
        def show(parent, title, text, *args, **kwargs):
            self.calls.append((kind, title, text))
            if kind == "question":
                return self.answer
            return QMessageBox.Ok
        return show

    def kinds(self):
        return [kind for kind, _, _ in self.calls]


@pytest.fixture(autouse=True)
def message_boxes(monkeypatch):
    """Never block on a modal message box; record what would be shown."""
    recorder = MessageBoxRecorder()
    for kind in ("warning", "information", "critical", "question"):
        monkeypatch.setattr(QMessageBox, kind, recorder._record(kind))
    return recorder
