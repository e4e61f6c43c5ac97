"""Database schema definition, initialization, and migrations."""

import logging
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

# One statement per string; executed one at a time inside a transaction
_SCHEMA_STATEMENTS = [
    """CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # Engineers (field staff who own vans)
    """CREATE TABLE IF NOT EXISTS engineers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT,
        phone TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # Console users
    """CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        display_name TEXT NOT NULL,
        pin_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'engineer'
            CHECK (role IN ('admin', 'manager', 'engineer')),
        engineer_id INTEGER,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (engineer_id) REFERENCES engineers(id) ON DELETE SET NULL
    )""",

    # Suppliers
    """CREATE TABLE IF NOT EXISTS suppliers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        contact_name TEXT,
        contact_email TEXT,
        contact_phone TEXT,
        lead_time_days INTEGER NOT NULL DEFAULT 7
            CHECK (lead_time_days >= 0),
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # Inventory items (catalogue; quantities live in the ledger)
    """CREATE TABLE IF NOT EXISTS inventory_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        sku TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        description TEXT,
        unit TEXT NOT NULL DEFAULT 'each',
        default_cost REAL NOT NULL DEFAULT 0 CHECK (default_cost >= 0),
        min_level INTEGER NOT NULL DEFAULT 0 CHECK (min_level >= 0),
        max_level INTEGER NOT NULL DEFAULT 0 CHECK (max_level >= 0),
        reorder_point INTEGER NOT NULL DEFAULT 0 CHECK (reorder_point >= 0),
        supplier_id INTEGER,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (supplier_id) REFERENCES suppliers(id) ON DELETE SET NULL
    )""",

    # Stock locations: warehouses, engineer vans, job sites
    """CREATE TABLE IF NOT EXISTS inventory_locations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        code TEXT UNIQUE,
        type TEXT NOT NULL DEFAULT 'warehouse'
            CHECK (type IN ('warehouse', 'van', 'job_site')),
        engineer_id INTEGER,
        address TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (engineer_id) REFERENCES engineers(id) ON DELETE SET NULL,
        CHECK (type <> 'van' OR engineer_id IS NOT NULL)
    )""",

    # Stock ledger: every movement is a row, balances are derived
    """CREATE TABLE IF NOT EXISTS inventory_txns (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        item_id INTEGER NOT NULL,
        location_id INTEGER NOT NULL,
        direction TEXT NOT NULL CHECK (direction IN ('in', 'out', 'adjust')),
        qty INTEGER NOT NULL CHECK (qty <> 0),
        reference TEXT,
        notes TEXT,
        status TEXT NOT NULL DEFAULT 'approved'
            CHECK (status IN ('pending', 'approved', 'rejected')),
        created_by INTEGER,
        approved_by INTEGER,
        approved_at TIMESTAMP,
        rejection_reason TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (item_id) REFERENCES inventory_items(id) ON DELETE RESTRICT,
        FOREIGN KEY (location_id) REFERENCES inventory_locations(id)
            ON DELETE RESTRICT,
        FOREIGN KEY (created_by) REFERENCES users(id) ON DELETE SET NULL,
        FOREIGN KEY (approved_by) REFERENCES users(id) ON DELETE SET NULL,
        CHECK (direction = 'adjust' OR qty > 0)
    )""",

    # Approval audit trail
    """CREATE TABLE IF NOT EXISTS inventory_txn_audit (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        txn_id INTEGER NOT NULL,
        action TEXT NOT NULL
            CHECK (action IN ('created', 'approved', 'rejected')),
        reason TEXT,
        performed_by INTEGER,
        performed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (txn_id) REFERENCES inventory_txns(id) ON DELETE CASCADE,
        FOREIGN KEY (performed_by) REFERENCES users(id) ON DELETE SET NULL
    )""",

    # Engineer stock requests
    """CREATE TABLE IF NOT EXISTS stock_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        engineer_id INTEGER NOT NULL,
        destination_location_id INTEGER NOT NULL,
        source_location_id INTEGER,
        order_ref TEXT,
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high')),
        status TEXT NOT NULL DEFAULT 'submitted'
            CHECK (status IN ('submitted', 'approved', 'rejected', 'in_pick',
                              'in_transit', 'delivered', 'cancelled')),
        needed_by DATE,
        notes TEXT,
        photo_path TEXT,
        idempotency_key TEXT UNIQUE,
        purchase_order_id INTEGER,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (engineer_id) REFERENCES engineers(id) ON DELETE RESTRICT,
        FOREIGN KEY (destination_location_id)
            REFERENCES inventory_locations(id) ON DELETE RESTRICT,
        FOREIGN KEY (source_location_id)
            REFERENCES inventory_locations(id) ON DELETE SET NULL
    )""",

    """CREATE TABLE IF NOT EXISTS stock_request_lines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id INTEGER NOT NULL,
        item_id INTEGER NOT NULL,
        qty INTEGER NOT NULL CHECK (qty > 0),
        notes TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (request_id) REFERENCES stock_requests(id)
            ON DELETE CASCADE,
        FOREIGN KEY (item_id) REFERENCES inventory_items(id)
            ON DELETE RESTRICT
    )""",

    # Purchase orders
    """CREATE TABLE IF NOT EXISTS purchase_orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        po_number TEXT NOT NULL UNIQUE,
        supplier_id INTEGER,
        status TEXT NOT NULL DEFAULT 'draft'
            CHECK (status IN ('draft', 'pending', 'approved',
                              'received', 'cancelled')),
        order_date DATE DEFAULT CURRENT_DATE,
        expected_delivery_date DATE,
        actual_delivery_date DATE,
        total_amount REAL NOT NULL DEFAULT 0,
        notes TEXT,
        stock_request_id INTEGER,
        engineer_id INTEGER,
        amended_at TIMESTAMP,
        amended_by INTEGER,
        created_by INTEGER,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (supplier_id) REFERENCES suppliers(id) ON DELETE SET NULL,
        FOREIGN KEY (stock_request_id) REFERENCES stock_requests(id)
            ON DELETE SET NULL,
        FOREIGN KEY (engineer_id) REFERENCES engineers(id) ON DELETE SET NULL,
        FOREIGN KEY (amended_by) REFERENCES engineers(id) ON DELETE SET NULL,
        FOREIGN KEY (created_by) REFERENCES users(id) ON DELETE SET NULL
    )""",

    """CREATE TABLE IF NOT EXISTS purchase_order_lines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        purchase_order_id INTEGER NOT NULL,
        item_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL CHECK (quantity > 0),
        unit_cost REAL NOT NULL DEFAULT 0 CHECK (unit_cost >= 0),
        received_quantity INTEGER NOT NULL DEFAULT 0
            CHECK (received_quantity >= 0),
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (purchase_order_id) REFERENCES purchase_orders(id)
            ON DELETE CASCADE,
        FOREIGN KEY (item_id) REFERENCES inventory_items(id)
            ON DELETE RESTRICT
    )""",

    """CREATE TABLE IF NOT EXISTS purchase_receipts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        purchase_order_id INTEGER NOT NULL,
        po_line_id INTEGER NOT NULL,
        quantity_received INTEGER NOT NULL CHECK (quantity_received > 0),
        location_id INTEGER NOT NULL,
        received_by INTEGER,
        received_date DATE DEFAULT CURRENT_DATE,
        notes TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (purchase_order_id) REFERENCES purchase_orders(id)
            ON DELETE CASCADE,
        FOREIGN KEY (po_line_id) REFERENCES purchase_order_lines(id)
            ON DELETE CASCADE,
        FOREIGN KEY (location_id) REFERENCES inventory_locations(id)
            ON DELETE RESTRICT,
        FOREIGN KEY (received_by) REFERENCES users(id) ON DELETE SET NULL
    )""",

    # Returns & RMAs
    """CREATE TABLE IF NOT EXISTS returns_rmas (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        rma_number TEXT NOT NULL UNIQUE,
        item_id INTEGER NOT NULL,
        supplier_id INTEGER,
        serial_number TEXT,
        status TEXT NOT NULL DEFAULT 'pending_return'
            CHECK (status IN ('pending_return', 'in_transit',
                              'received_by_supplier', 'replacement_sent',
                              'replacement_received', 'closed',
                              'cancelled')),
        return_reason TEXT NOT NULL,
        return_date DATE,
        tracking_number TEXT,
        replacement_expected_date DATE,
        replacement_received_date DATE,
        replacement_serial_number TEXT,
        notes TEXT,
        created_by INTEGER,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (item_id) REFERENCES inventory_items(id)
            ON DELETE RESTRICT,
        FOREIGN KEY (supplier_id) REFERENCES suppliers(id) ON DELETE SET NULL,
        FOREIGN KEY (created_by) REFERENCES users(id) ON DELETE SET NULL
    )""",

    """CREATE TABLE IF NOT EXISTS returns_rma_lines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        rma_id INTEGER NOT NULL,
        item_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL CHECK (quantity > 0),
        condition_notes TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (rma_id) REFERENCES returns_rmas(id) ON DELETE CASCADE,
        FOREIGN KEY (item_id) REFERENCES inventory_items(id)
            ON DELETE RESTRICT
    )""",

    # Indexes
    "CREATE INDEX IF NOT EXISTS idx_txns_item ON inventory_txns(item_id)",
    "CREATE INDEX IF NOT EXISTS idx_txns_location "
    "ON inventory_txns(location_id)",
    "CREATE INDEX IF NOT EXISTS idx_txns_status ON inventory_txns(status)",
    "CREATE INDEX IF NOT EXISTS idx_stock_requests_engineer "
    "ON stock_requests(engineer_id)",
    "CREATE INDEX IF NOT EXISTS idx_stock_requests_status "
    "ON stock_requests(status)",
    "CREATE INDEX IF NOT EXISTS idx_request_lines_request "
    "ON stock_request_lines(request_id)",
    "CREATE INDEX IF NOT EXISTS idx_po_status ON purchase_orders(status)",
    "CREATE INDEX IF NOT EXISTS idx_po_lines_po "
    "ON purchase_order_lines(purchase_order_id)",
    "CREATE INDEX IF NOT EXISTS idx_rmas_status ON returns_rmas(status)",

    # Version stamp
    f"INSERT OR IGNORE INTO schema_version (version) VALUES ({SCHEMA_VERSION})",
]


# Tables whose updated_at is bumped on every UPDATE
_TIMESTAMPED_TABLES = (
    "inventory_items", "stock_requests", "purchase_orders", "returns_rmas",
)


def _touch_trigger(table: str) -> str:
    return (
        f"CREATE TRIGGER IF NOT EXISTS update_{table}_timestamp "
        f"AFTER UPDATE ON {table} "
        f"WHEN NEW.updated_at = OLD.updated_at BEGIN "
        f"UPDATE {table} SET updated_at = CURRENT_TIMESTAMP "
        f"WHERE id = NEW.id; END"
    )


_SEED_LOCATIONS = [
    ("Main Warehouse", "WH001", "warehouse"),
    ("South London Depot", "WH002", "warehouse"),
    ("North London Depot", "WH003", "warehouse"),
]


# ── v1 -> v2: transaction approval ──────────────────────────────
# v1 ledgers had no approval workflow: every row counted immediately.
_MIGRATION_V2_STATEMENTS = [
    "ALTER TABLE inventory_txns ADD COLUMN status TEXT NOT NULL "
    "DEFAULT 'approved' "
    "CHECK (status IN ('pending', 'approved', 'rejected'))",
    "ALTER TABLE inventory_txns ADD COLUMN approved_by INTEGER "
    "REFERENCES users(id) ON DELETE SET NULL",
    "ALTER TABLE inventory_txns ADD COLUMN approved_at TIMESTAMP",
    "ALTER TABLE inventory_txns ADD COLUMN rejection_reason TEXT",

    """CREATE TABLE IF NOT EXISTS inventory_txn_audit (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        txn_id INTEGER NOT NULL,
        action TEXT NOT NULL
            CHECK (action IN ('created', 'approved', 'rejected')),
        reason TEXT,
        performed_by INTEGER,
        performed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (txn_id) REFERENCES inventory_txns(id) ON DELETE CASCADE,
        FOREIGN KEY (performed_by) REFERENCES users(id) ON DELETE SET NULL
    )""",

    "CREATE INDEX IF NOT EXISTS idx_txns_status ON inventory_txns(status)",
    "INSERT OR REPLACE INTO schema_version (version) VALUES (2)",
]

# from-version -> statements that bring the schema up one step
_MIGRATIONS = {
    1: _MIGRATION_V2_STATEMENTS,
}


def _get_schema_version(conn) -> int:
    """Highest recorded schema version; 0 for a brand-new file."""
    try:
        row = conn.execute(
            "SELECT MAX(version) AS version FROM schema_version"
        ).fetchone()
    except sqlite3.OperationalError:
        return 0
    return (row["version"] or 0) if row else 0


def _create_schema(conn):
    for stmt in _SCHEMA_STATEMENTS:
        conn.execute(stmt)
    for table in _TIMESTAMPED_TABLES:
        conn.execute(_touch_trigger(table))
    conn.executemany(
        "INSERT OR IGNORE INTO inventory_locations (name, code, type) "
        "VALUES (?, ?, ?)",
        _SEED_LOCATIONS,
    )


def initialize_database(db_connection):
    """Bring the database file up to ``SCHEMA_VERSION``.

    A new file gets the full schema plus the seeded warehouses in one go;
    an older file is stepped forward through ``_MIGRATIONS``.
    """
    with db_connection.get_connection() as conn:
        found = _get_schema_version(conn)
        if found == 0:
            _create_schema(conn)
            logger.info("Created schema v%s", SCHEMA_VERSION)
            return
        for version in range(found, SCHEMA_VERSION):
            for stmt in _MIGRATIONS[version]:
                conn.execute(stmt)
        if found < SCHEMA_VERSION:
            logger.info("Migrated schema v%s -> v%s", found, SCHEMA_VERSION)
