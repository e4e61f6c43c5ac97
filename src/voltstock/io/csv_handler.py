"""CSV import and export for items, the stock ledger and low-stock reports."""

import csv
import logging
from pathlib import Path

from voltstock.database.models import InventoryItem
from voltstock.database.repository import Repository
from voltstock.io.validators import validate_item_row

logger = logging.getLogger(__name__)

ITEM_CSV_COLUMNS = [
    "sku", "name", "description", "unit", "default_cost",
    "min_level", "max_level", "reorder_point", "supplier", "on_hand",
]

TXN_CSV_COLUMNS = [
    "id", "created_at", "sku", "item", "location", "direction", "qty",
    "status", "reference", "notes", "created_by",
]

LOW_STOCK_CSV_COLUMNS = [
    "sku", "item", "location", "on_hand", "reorder_point", "shortfall",
]


def _write_rows(filepath: str | Path, columns: list[str],
                rows: list[dict]) -> int:
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        writer.writerows(rows)
    return len(rows)


def item_record(item: InventoryItem) -> dict:
    return {
        "sku": item.sku,
        "name": item.name,
        "description": item.description,
        "unit": item.unit,
        "default_cost": item.default_cost,
        "min_level": item.min_level,
        "max_level": item.max_level,
        "reorder_point": item.reorder_point,
        "supplier": item.supplier_name,
        "on_hand": item.total_on_hand,
    }


def txn_record(txn) -> dict:
    return {
        "id": txn.id,
        "created_at": txn.created_at,
        "sku": txn.item_sku,
        "item": txn.item_name,
        "location": txn.location_name,
        "direction": txn.direction,
        "qty": txn.signed_qty,
        "status": txn.status,
        "reference": txn.reference,
        "notes": txn.notes,
        "created_by": txn.created_by_name,
    }


def low_stock_record(row) -> dict:
    return {
        "sku": row.item_sku,
        "item": row.item_name,
        "location": row.location_name or "All locations",
        "on_hand": row.on_hand,
        "reorder_point": row.reorder_point,
        "shortfall": row.shortfall,
    }


def export_items_csv(repo: Repository, filepath: str | Path) -> int:
    """Export all active items to CSV. Returns the number of rows written."""
    items = repo.get_all_items()
    return _write_rows(filepath, ITEM_CSV_COLUMNS,
                       [item_record(i) for i in items])


def export_transactions_csv(repo: Repository, filepath: str | Path,
                            **filters) -> int:
    """Export ledger rows (``get_transactions`` filters apply)."""
    txns = repo.get_transactions(**filters)
    return _write_rows(filepath, TXN_CSV_COLUMNS,
                       [txn_record(t) for t in txns])


def export_low_stock_csv(repo: Repository, filepath: str | Path,
                         scope: str = None) -> int:
    """Export the low-stock report for ``scope``."""
    rows = repo.get_low_stock_items(scope)
    return _write_rows(filepath, LOW_STOCK_CSV_COLUMNS,
                       [low_stock_record(r) for r in rows])


def _int(row: dict, key: str) -> int:
    return int(str(row.get(key, "") or 0).strip() or 0)


def apply_item_rows(repo: Repository, rows, update_existing: bool,
                    results: dict):
    """Create or update items from already-parsed ``(row_num, row)`` pairs."""
    suppliers = {s.name.lower(): s.id for s in repo.get_all_suppliers()}

    for row_num, row in rows:
        errors = validate_item_row(row, row_num)
        if errors:
            results["errors"].extend(errors)
            results["skipped"] += 1
            continue

        sku = str(row["sku"]).strip()
        existing = repo.get_item_by_sku(sku)
        supplier = str(row.get("supplier", "") or "").strip().lower()

        item = InventoryItem(
            id=existing.id if existing else None,
            sku=sku,
            name=str(row.get("name", "")).strip(),
            description=str(row.get("description", "") or "").strip(),
            unit=str(row.get("unit", "") or "").strip() or "each",
            default_cost=float(str(row.get("default_cost", "") or 0)),
            min_level=_int(row, "min_level"),
            max_level=_int(row, "max_level"),
            reorder_point=_int(row, "reorder_point"),
            supplier_id=suppliers.get(supplier),
        )

        try:
            if existing and update_existing:
                repo.update_item(item)
                results["updated"] += 1
            elif existing:
                results["skipped"] += 1
            else:
                repo.create_item(item)
                results["imported"] += 1
        except ValueError as e:
            results["errors"].append(f"Row {row_num}: {e}")
            results["skipped"] += 1


def import_items_csv(
    repo: Repository,
    filepath: str | Path,
    update_existing: bool = False,
) -> dict:
    """Import items from CSV. Returns results dict with counts and errors."""
    filepath = Path(filepath)
    results = {"imported": 0, "updated": 0, "skipped": 0, "errors": []}

    try:
        with open(filepath, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            apply_item_rows(
                repo, enumerate(reader, start=2), update_existing, results
            )
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        logger.warning("Item import from %s failed: %s", filepath, e)
        results["errors"].append(f"File error: {e}")

    logger.info("Imported items from %s: %s", filepath.name, {
        k: v for k, v in results.items() if k != "errors"
    })
    return results
