"""Standalone export script — export items, the ledger or low stock from command line."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from voltstock.config import Config
from voltstock.database.connection import DatabaseConnection
from voltstock.database.schema import initialize_database
from voltstock.database.repository import Repository
from voltstock.io.csv_handler import (
    export_items_csv,
    export_low_stock_csv,
    export_transactions_csv,
)
from voltstock.io.excel_handler import (
    export_items_excel,
    export_low_stock_excel,
    export_transactions_excel,
)

EXPORTERS = {
    ("items", ".csv"): export_items_csv,
    ("items", ".xlsx"): export_items_excel,
    ("transactions", ".csv"): export_transactions_csv,
    ("transactions", ".xlsx"): export_transactions_excel,
    ("low_stock", ".csv"): export_low_stock_csv,
    ("low_stock", ".xlsx"): export_low_stock_excel,
}


def main():
    if len(sys.argv) < 3:
        print("Usage: python export_csv.py <items|transactions|low_stock> "
              "<output.csv|output.xlsx>")
        sys.exit(1)

    data_type = sys.argv[1].lower()
    filepath = sys.argv[2]
    exporter = EXPORTERS.get((data_type, Path(filepath).suffix.lower()))
    if exporter is None:
        print(f"Cannot export '{data_type}' to {filepath}. Use items, "
              f"transactions or low_stock with a .csv or .xlsx file.")
        sys.exit(1)

    db = DatabaseConnection(Config.DATABASE_PATH)
    initialize_database(db)
    repo = Repository(db)

    count = exporter(repo, filepath)
    print(f"Exported {count} {data_type} rows to {filepath}")


if __name__ == "__main__":
    main()
