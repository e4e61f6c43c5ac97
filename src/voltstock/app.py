"""Desktop entry point: logging, database, theme, then the login loop."""

import logging
import sys
from pathlib import Path

from PySide6.QtGui import QFont
from PySide6.QtWidgets import QApplication

from voltstock.config import Config
from voltstock.database.connection import DatabaseConnection
from voltstock.database.schema import initialize_database
from voltstock.utils.constants import APP_NAME, APP_ORGANIZATION

logger = logging.getLogger(__name__)

_STYLES_DIR = Path(__file__).parent / "ui" / "styles"


def _configure_logging():
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def apply_theme(app: QApplication, theme: str | None = None) -> bool:
    """Apply ``ui/styles/<theme>.qss``; ``Config.APP_THEME`` when omitted.

    Returns False and leaves the Qt default style if the sheet is missing.
    """
    name = (theme or Config.APP_THEME).lower()
    sheet = _STYLES_DIR / f"{name}.qss"
    if not sheet.is_file():
        logger.warning("Theme %r not found; using the default style", name)
        return False
    app.setStyleSheet(sheet.read_text(encoding="utf-8"))
    return True


def _sign_in(repo):
    """Run first-run setup or the PIN login; None when cancelled."""
    from voltstock.ui.login_dialog import FirstRunDialog, LoginDialog

    if repo.user_count() == 0:
        dialog = FirstRunDialog(repo)
        ok = dialog.exec() == FirstRunDialog.Accepted
        return dialog.created_user if ok else None

    dialog = LoginDialog(repo)
    ok = dialog.exec() == LoginDialog.Accepted
    return dialog.authenticated_user if ok else None


def main():
    _configure_logging()

    db = DatabaseConnection(Config.DATABASE_PATH)
    initialize_database(db)

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setOrganizationName(APP_ORGANIZATION)
    app.setFont(QFont("Segoe UI", 10))
    apply_theme(app)

    from voltstock.database.repository import Repository
    from voltstock.ui.main_window import MainWindow

    repo = Repository(db)

    # Logging out returns to the login dialog; closing the window quits
    signed_out = True
    while signed_out:
        user = _sign_in(repo)
        if user is None:
            break
        logger.info("User %s signed in as %s", user.username, user.role)

        window = MainWindow(db, user)
        signed_out = False

        def _on_logout():
            nonlocal signed_out
            signed_out = True

        window.logout_requested.connect(_on_logout)
        window.show()
        app.exec()

    sys.exit(0)


if __name__ == "__main__":
    main()
