"""Standalone import script — import items from a CSV or Excel file."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from voltstock.config import Config
from voltstock.database.connection import DatabaseConnection
from voltstock.database.schema import initialize_database
from voltstock.database.repository import Repository
from voltstock.io.csv_handler import import_items_csv
from voltstock.io.excel_handler import import_items_excel


def main():
    if len(sys.argv) < 2:
        print("Usage: python import_csv.py <items.csv|items.xlsx> [--update]")
        sys.exit(1)

    filepath = sys.argv[1]
    update = "--update" in sys.argv

    db = DatabaseConnection(Config.DATABASE_PATH)
    initialize_database(db)
    repo = Repository(db)

    print(f"Importing from: {filepath}")
    if update:
        print("Mode: Update existing items")

    if Path(filepath).suffix.lower() == ".xlsx":
        results = import_items_excel(repo, filepath, update_existing=update)
    else:
        results = import_items_csv(repo, filepath, update_existing=update)

    print("\nResults:")
    print(f"  Imported: {results['imported']}")
    print(f"  Updated:  {results['updated']}")
    print(f"  Skipped:  {results['skipped']}")

    if results["errors"]:
        print(f"\nErrors ({len(results['errors'])}):")
        for err in results["errors"]:
            print(f"  - {err}")


if __name__ == "__main__":
    main()
