"""Excel (XLSX) import and export for items, transactions and low stock."""

import logging
from pathlib import Path
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils.exceptions import InvalidFileException

from voltstock.database.repository import Repository
from voltstock.io.csv_handler import (
    apply_item_rows,
    item_record,
    low_stock_record,
    txn_record,
)

logger = logging.getLogger(__name__)

ITEM_HEADERS = [
    "SKU", "Name", "Description", "Unit", "Default Cost",
    "Min Level", "Max Level", "Reorder Point", "Supplier", "On Hand",
]

TXN_HEADERS = [
    "ID", "Date", "SKU", "Item", "Location", "Direction", "Qty",
    "Status", "Reference", "Notes", "Created By",
]

LOW_STOCK_HEADERS = [
    "SKU", "Item", "Location", "On Hand", "Reorder Point", "Shortfall",
]


def _save_sheet(filepath: str | Path, title: str, headers: list[str],
                records: list[dict]) -> int:
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = title

    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for record in records:
        ws.append([
            str(v) if v is not None and not isinstance(v, (int, float))
            else v
            for v in record.values()
        ])

    # Auto-fit column widths (approximate)
    for col in ws.columns:
        max_len = max(len(str(cell.value or "")) for cell in col)
        ws.column_dimensions[col[0].column_letter].width = min(max_len + 2, 40)

    wb.save(filepath)
    return len(records)


def export_items_excel(repo: Repository, filepath: str | Path) -> int:
    """Export all active items to an Excel workbook. Returns row count."""
    return _save_sheet(filepath, "Items", ITEM_HEADERS,
                       [item_record(i) for i in repo.get_all_items()])


def export_transactions_excel(repo: Repository, filepath: str | Path,
                              **filters) -> int:
    return _save_sheet(
        filepath, "Transactions", TXN_HEADERS,
        [txn_record(t) for t in repo.get_transactions(**filters)],
    )


def export_low_stock_excel(repo: Repository, filepath: str | Path,
                           scope: str = None) -> int:
    return _save_sheet(
        filepath, "Low Stock", LOW_STOCK_HEADERS,
        [low_stock_record(r) for r in repo.get_low_stock_items(scope)],
    )


def import_items_excel(
    repo: Repository,
    filepath: str | Path,
    update_existing: bool = False,
) -> dict:
    """Import items from the first sheet of a workbook. Returns results dict."""
    filepath = Path(filepath)
    results = {"imported": 0, "updated": 0, "skipped": 0, "errors": []}

    try:
        wb = load_workbook(filepath, read_only=True)
    except (OSError, ValueError, BadZipFile, InvalidFileException) as e:
        logger.warning("Workbook import from %s failed: %s", filepath, e)
        results["errors"].append(f"File error: {e}")
        return results

    ws = wb.active
    rows = list(ws.iter_rows(values_only=True))
    wb.close()
    if not rows:
        results["errors"].append("Empty workbook")
        return results

    # Use first row as header
    header = [str(h or "").strip().lower().replace(" ", "_") for h in rows[0]]
    header_map = {"cost": "default_cost", "reorder": "reorder_point",
                  "min": "min_level", "max": "max_level"}
    header = [header_map.get(h, h) for h in header]

    parsed = (
        (row_num, dict(zip(header, [
            "" if v is None else str(v) for v in row_data
        ])))
        for row_num, row_data in enumerate(rows[1:], start=2)
    )
    apply_item_rows(repo, parsed, update_existing, results)
    return results
