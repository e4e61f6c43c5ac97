"""Runtime configuration.

Values come from ``.env`` (via python-dotenv) and can be overridden from
inside the app; overrides are written to ``data/settings.json`` and win
over the environment on the next start.
"""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_DATA_DIR = _PROJECT_ROOT / "data"
load_dotenv(_PROJECT_ROOT / ".env")

_SETTINGS_FILE = _DATA_DIR / "settings.json"


def _load_settings() -> dict:
    """Read settings.json; a missing or unreadable file counts as empty."""
    try:
        raw = _SETTINGS_FILE.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return {}


def _save_settings(settings: dict):
    _SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    _SETTINGS_FILE.write_text(json.dumps(settings, indent=2),
                              encoding="utf-8")


def _persist(**values):
    """Merge ``values`` into settings.json, keeping unrelated keys."""
    merged = _load_settings()
    merged.update(values)
    _save_settings(merged)


_saved = _load_settings()


def _setting(key: str, env_var: str, default: str):
    return _saved.get(key, os.getenv(env_var, default))


class Config:
    PROJECT_ROOT: Path = _PROJECT_ROOT
    DATABASE_PATH: Path = Path(
        os.getenv("DATABASE_PATH", str(_DATA_DIR / "voltstock.db"))
    )
    PHOTOS_DIRECTORY: str = _setting(
        "photos_directory", "PHOTOS_DIRECTORY", str(_DATA_DIR / "photos")
    )

    PO_NUMBER_PREFIX: str = _setting("po_number_prefix", "PO_NUMBER_PREFIX",
                                     "PO")
    RMA_NUMBER_PREFIX: str = _setting("rma_number_prefix",
                                      "RMA_NUMBER_PREFIX", "RMA")

    LOW_STOCK_SCOPE: str = _setting("low_stock_scope", "LOW_STOCK_SCOPE",
                                    "any")
    ADJUST_DEBOUNCE_MS: int = int(
        _setting("adjust_debounce_ms", "ADJUST_DEBOUNCE_MS", "600")
    )

    APP_THEME: str = _setting("app_theme", "APP_THEME", "dark")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    LAST_LOGIN_USERNAME: str = _saved.get("last_login_username", "")

    @classmethod
    def update_theme(cls, theme: str):
        cls.APP_THEME = theme
        _persist(app_theme=theme)

    @classmethod
    def update_number_prefixes(cls, po_prefix: str, rma_prefix: str):
        """Change the prefixes used for new PO and RMA numbers."""
        cls.PO_NUMBER_PREFIX = po_prefix
        cls.RMA_NUMBER_PREFIX = rma_prefix
        _persist(po_number_prefix=po_prefix, rma_number_prefix=rma_prefix)

    @classmethod
    def update_stock_settings(cls, low_stock_scope: str, debounce_ms: int):
        """Change the low-stock scope and the van stepper quiet period.

        Raises ValueError for a scope outside ``LOW_STOCK_SCOPES``.
        """
        from voltstock.utils.constants import LOW_STOCK_SCOPES
        if low_stock_scope not in LOW_STOCK_SCOPES:
            raise ValueError(f"Unknown low stock scope: {low_stock_scope}")
        cls.LOW_STOCK_SCOPE = low_stock_scope
        cls.ADJUST_DEBOUNCE_MS = debounce_ms
        _persist(low_stock_scope=low_stock_scope,
                 adjust_debounce_ms=debounce_ms)

    @classmethod
    def update_last_login(cls, username: str):
        cls.LAST_LOGIN_USERNAME = username
        _persist(last_login_username=username)

    @classmethod
    def update_photos_directory(cls, photos_dir: str):
        cls.PHOTOS_DIRECTORY = photos_dir
        _persist(photos_directory=photos_dir)
