"""Repository layer — all CRUD operations and queries."""

import hashlib
import logging
import shutil
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from voltstock.config import Config
from voltstock.utils.constants import (
    AMENDABLE_ORDER_STATUSES,
    AMENDMENT_NOTE_HEADER,
    LOCATION_TYPES,
    OPEN_ORDER_STATUSES,
    ORDER_TRANSITIONS,
    REQUEST_PRIORITIES,
    RMA_TRANSITIONS,
    STOCK_REQUEST_STATUSES,
    STOCK_REQUEST_TRANSITIONS,
    TXN_DIRECTIONS,
    TXN_STATUSES,
    USER_ROLES,
    role_has_permission,
)
from voltstock.utils.stock import find_low_stock

from .connection import DatabaseConnection
from .models import (
    AmendmentLine,
    AmendmentResult,
    Engineer,
    InventoryItem,
    InventoryTxn,
    Location,
    LowStockRow,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseReceipt,
    Rma,
    RmaLine,
    StockBalance,
    StockRequest,
    StockRequestLine,
    Supplier,
    TxnAudit,
    User,
)

logger = logging.getLogger(__name__)

# Signed contribution of one ledger row to a balance
_SIGNED_QTY = (
    "CASE t.direction WHEN 'in' THEN t.qty "
    "WHEN 'out' THEN -t.qty ELSE t.qty END"
)

_RMA_UPDATABLE_FIELDS = (
    "tracking_number", "return_date", "replacement_expected_date",
    "replacement_received_date", "replacement_serial_number", "notes",
)


def _row_to(model, row):
    """Build a dataclass from a row, ignoring columns it has no field for."""
    return model(**{
        k: row[k] for k in row.keys()
        if k in model.__dataclass_fields__
    })


class Repository:
    """Provides all database operations for the application."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    # ── Users ────────────────────────────────────────────────────

    @staticmethod
    def hash_pin(pin: str) -> str:
        """Hash a PIN using SHA-256."""
        return hashlib.sha256(pin.encode("utf-8")).hexdigest()

    def _validate_user(self, user: User):
        if user.role not in USER_ROLES:
            raise ValueError(f"Unknown role: {user.role}")
        if not user.username.strip():
            raise ValueError("Username is required")
        if user.role == "engineer" and not user.engineer_id:
            raise ValueError("An engineer login must be linked to an engineer")
        existing = self.get_user_by_username(user.username)
        if existing and existing.id != user.id:
            raise ValueError(f"Username '{user.username}' is already taken")

    def create_user(self, user: User) -> int:
        self._validate_user(user)
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO users
                    (username, display_name, pin_hash, role,
                     engineer_id, is_active)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                user.username, user.display_name, user.pin_hash,
                user.role, user.engineer_id, user.is_active,
            ))
            return cursor.lastrowid

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        rows = self.db.execute(
            "SELECT * FROM users WHERE id = ?", (user_id,)
        )
        return User(**dict(rows[0])) if rows else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        rows = self.db.execute(
            "SELECT * FROM users WHERE username = ?", (username,)
        )
        return User(**dict(rows[0])) if rows else None

    def authenticate_user(self, username: str, pin: str) -> Optional[User]:
        """Authenticate a user by username and PIN. Returns User or None."""
        user = self.get_user_by_username(username)
        if user and user.is_active and user.pin_hash == self.hash_pin(pin):
            return user
        return None

    def get_all_users(self, active_only: bool = True) -> list[User]:
        query = "SELECT * FROM users"
        if active_only:
            query += " WHERE is_active = 1"
        rows = self.db.execute(query + " ORDER BY display_name")
        return [User(**dict(r)) for r in rows]

    def update_user(self, user: User):
        self._validate_user(user)
        self.db.execute("""
            UPDATE users SET username = ?, display_name = ?, pin_hash = ?,
                role = ?, engineer_id = ?, is_active = ?
            WHERE id = ?
        """, (
            user.username, user.display_name, user.pin_hash, user.role,
            user.engineer_id, user.is_active, user.id,
        ))

    def deactivate_user(self, user_id: int):
        self.db.execute(
            "UPDATE users SET is_active = 0 WHERE id = ?", (user_id,)
        )

    def user_count(self) -> int:
        rows = self.db.execute("SELECT COUNT(*) AS cnt FROM users")
        return rows[0]["cnt"]

    # ── Engineers ───────────────────────────────────────────────

    def create_engineer(self, engineer: Engineer,
                        van: Optional[Location] = None) -> int:
        """Add an engineer. A ``van`` given here is created for them in
        the same transaction."""
        if not engineer.name.strip():
            raise ValueError("Engineer name is required")
        if van is not None:
            van.type = "van"
            self._validate_location(van, needs_engineer=False)
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO engineers (name, email, phone, is_active) "
                "VALUES (?, ?, ?, ?)",
                (engineer.name, engineer.email, engineer.phone,
                 engineer.is_active),
            )
            engineer_id = cursor.lastrowid
            if van is not None:
                van.engineer_id = engineer_id
                van.id = self._insert_location(conn, van)
        logger.info("Created engineer %s", engineer_id)
        return engineer_id

    def get_all_engineers(self, active_only: bool = True) -> list[Engineer]:
        query = "SELECT * FROM engineers"
        if active_only:
            query += " WHERE is_active = 1"
        rows = self.db.execute(query + " ORDER BY name")
        return [Engineer(**dict(r)) for r in rows]

    def get_engineer_by_id(self, engineer_id: int) -> Optional[Engineer]:
        rows = self.db.execute(
            "SELECT * FROM engineers WHERE id = ?", (engineer_id,)
        )
        return Engineer(**dict(rows[0])) if rows else None

    def update_engineer(self, engineer: Engineer):
        if not engineer.name.strip():
            raise ValueError("Engineer name is required")
        self.db.execute(
            "UPDATE engineers SET name = ?, email = ?, phone = ?, "
            "is_active = ? WHERE id = ?",
            (engineer.name, engineer.email, engineer.phone,
             engineer.is_active, engineer.id),
        )

    def deactivate_engineer(self, engineer_id: int):
        """Retire an engineer together with their vans.

        Refused while any of the engineer's vans still holds stock.
        """
        with self.db.get_connection() as conn:
            if self._stocked_location_count(
                conn, "l.engineer_id = ? AND l.type = 'van'", (engineer_id,)
            ):
                raise ValueError(
                    "Return the stock in this engineer's van first"
                )
            conn.execute(
                "UPDATE engineers SET is_active = 0 WHERE id = ?",
                (engineer_id,),
            )
            conn.execute(
                "UPDATE inventory_locations SET is_active = 0 "
                "WHERE engineer_id = ? AND type = 'van'",
                (engineer_id,),
            )
        logger.info("Deactivated engineer %s", engineer_id)

    # ── Suppliers ───────────────────────────────────────────────

    def _validate_supplier(self, supplier: Supplier):
        if not supplier.name.strip():
            raise ValueError("Supplier name is required")
        rows = self.db.execute(
            "SELECT id FROM suppliers WHERE name = ? COLLATE NOCASE",
            (supplier.name.strip(),),
        )
        if rows and rows[0]["id"] != supplier.id:
            raise ValueError(f"Supplier '{supplier.name}' already exists")

    def create_supplier(self, supplier: Supplier) -> int:
        self._validate_supplier(supplier)
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO suppliers
                    (name, contact_name, contact_email, contact_phone,
                     lead_time_days, is_active)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                supplier.name, supplier.contact_name,
                supplier.contact_email, supplier.contact_phone,
                supplier.lead_time_days, supplier.is_active,
            ))
            return cursor.lastrowid

    def get_all_suppliers(self, active_only: bool = True) -> list[Supplier]:
        query = "SELECT * FROM suppliers"
        if active_only:
            query += " WHERE is_active = 1"
        rows = self.db.execute(query + " ORDER BY name")
        return [Supplier(**dict(r)) for r in rows]

    def get_supplier_by_id(self, supplier_id: int) -> Optional[Supplier]:
        rows = self.db.execute(
            "SELECT * FROM suppliers WHERE id = ?", (supplier_id,)
        )
        return Supplier(**dict(rows[0])) if rows else None

    def update_supplier(self, supplier: Supplier):
        self._validate_supplier(supplier)
        self.db.execute("""
            UPDATE suppliers SET name = ?, contact_name = ?,
                contact_email = ?, contact_phone = ?,
                lead_time_days = ?, is_active = ?
            WHERE id = ?
        """, (
            supplier.name, supplier.contact_name, supplier.contact_email,
            supplier.contact_phone, supplier.lead_time_days,
            supplier.is_active, supplier.id,
        ))

    def delete_supplier(self, supplier_id: int):
        self.db.execute("DELETE FROM suppliers WHERE id = ?", (supplier_id,))

    def deactivate_supplier(self, supplier_id: int):
        self.db.execute(
            "UPDATE suppliers SET is_active = 0 WHERE id = ?", (supplier_id,)
        )

    # ── Inventory Items ─────────────────────────────────────────

    _ITEMS_SELECT = f"""
        SELECT i.*,
               COALESCE(s.name, '') AS supplier_name,
               COALESCE((
                   SELECT SUM({_SIGNED_QTY}) FROM inventory_txns t
                   WHERE t.item_id = i.id AND t.status = 'approved'
               ), 0) AS total_on_hand
        FROM inventory_items i
        LEFT JOIN suppliers s ON i.supplier_id = s.id
    """

    def get_all_items(self, active_only: bool = True) -> list[InventoryItem]:
        query = self._ITEMS_SELECT
        if active_only:
            query += " WHERE i.is_active = 1"
        rows = self.db.execute(query + " ORDER BY i.sku")
        return [InventoryItem(**dict(r)) for r in rows]

    def get_item_by_id(self, item_id: int) -> Optional[InventoryItem]:
        rows = self.db.execute(
            self._ITEMS_SELECT + " WHERE i.id = ?", (item_id,)
        )
        return InventoryItem(**dict(rows[0])) if rows else None

    def get_item_by_sku(self, sku: str) -> Optional[InventoryItem]:
        rows = self.db.execute(
            self._ITEMS_SELECT + " WHERE i.sku = ?", (sku,)
        )
        return InventoryItem(**dict(rows[0])) if rows else None

    def search_items(self, query: str) -> list[InventoryItem]:
        like = f"%{query}%"
        rows = self.db.execute(
            self._ITEMS_SELECT
            + " WHERE i.is_active = 1 AND (i.sku LIKE ? OR i.name LIKE ? "
              "OR i.description LIKE ?) ORDER BY i.sku",
            (like, like, like),
        )
        return [InventoryItem(**dict(r)) for r in rows]

    def create_item(self, item: InventoryItem) -> int:
        if not item.sku.strip():
            raise ValueError("SKU is required")
        if not item.name.strip():
            raise ValueError("Item name is required")
        if self.get_item_by_sku(item.sku):
            raise ValueError(f"An item with SKU '{item.sku}' already exists")
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO inventory_items
                    (sku, name, description, unit, default_cost,
                     min_level, max_level, reorder_point, supplier_id,
                     is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                item.sku, item.name, item.description, item.unit,
                item.default_cost, item.min_level, item.max_level,
                item.reorder_point, item.supplier_id, item.is_active,
            ))
            return cursor.lastrowid

    def update_item(self, item: InventoryItem):
        existing = self.get_item_by_sku(item.sku)
        if existing and existing.id != item.id:
            raise ValueError(f"An item with SKU '{item.sku}' already exists")
        self.db.execute("""
            UPDATE inventory_items SET
                sku = ?, name = ?, description = ?, unit = ?,
                default_cost = ?, min_level = ?, max_level = ?,
                reorder_point = ?, supplier_id = ?, is_active = ?
            WHERE id = ?
        """, (
            item.sku, item.name, item.description, item.unit,
            item.default_cost, item.min_level, item.max_level,
            item.reorder_point, item.supplier_id, item.is_active, item.id,
        ))

    def deactivate_item(self, item_id: int):
        """Hide an item from the catalogue; its ledger history stays."""
        self.db.execute(
            "UPDATE inventory_items SET is_active = 0 WHERE id = ?",
            (item_id,),
        )

    # ── Locations ───────────────────────────────────────────────

    _LOCATIONS_SELECT = """
        SELECT l.*, COALESCE(e.name, '') AS engineer_name
        FROM inventory_locations l
        LEFT JOIN engineers e ON l.engineer_id = e.id
    """

    def _validate_location(self, location: Location,
                           needs_engineer: bool = True):
        if location.type not in LOCATION_TYPES:
            raise ValueError(f"Unknown location type: {location.type}")
        if not location.name.strip():
            raise ValueError("Location name is required")
        if (needs_engineer and location.type == "van"
                and not location.engineer_id):
            raise ValueError("A van location must belong to an engineer")
        if location.code:
            rows = self.db.execute(
                "SELECT id FROM inventory_locations WHERE code = ?",
                (location.code,),
            )
            if rows and rows[0]["id"] != location.id:
                raise ValueError(
                    f"Location code '{location.code}' is already in use"
                )

    @staticmethod
    def _stocked_location_count(conn, where: str, params: tuple) -> int:
        """Locations matching ``where`` that still hold non-zero stock."""
        row = conn.execute(f"""
            SELECT COUNT(*) AS cnt FROM (
                SELECT t.location_id
                FROM inventory_txns t
                JOIN inventory_locations l ON t.location_id = l.id
                WHERE t.status = 'approved' AND {where}
                GROUP BY t.item_id, t.location_id
                HAVING SUM({_SIGNED_QTY}) != 0
            )
        """, params).fetchone()
        return row["cnt"]

    @staticmethod
    def _insert_location(conn, location: Location) -> int:
        cursor = conn.execute("""
            INSERT INTO inventory_locations
                (name, code, type, engineer_id, address, is_active)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            location.name, location.code or None, location.type,
            location.engineer_id, location.address, location.is_active,
        ))
        return cursor.lastrowid

    def create_location(self, location: Location) -> int:
        self._validate_location(location)
        with self.db.get_connection() as conn:
            return self._insert_location(conn, location)

    def get_all_locations(
        self, location_type: Optional[str] = None, active_only: bool = True
    ) -> list[Location]:
        query = self._LOCATIONS_SELECT + " WHERE 1 = 1"
        params = []
        if location_type:
            query += " AND l.type = ?"
            params.append(location_type)
        if active_only:
            query += " AND l.is_active = 1"
        rows = self.db.execute(query + " ORDER BY l.type, l.name",
                               tuple(params))
        return [Location(**dict(r)) for r in rows]

    def get_location_by_id(self, location_id: int) -> Optional[Location]:
        rows = self.db.execute(
            self._LOCATIONS_SELECT + " WHERE l.id = ?", (location_id,)
        )
        return Location(**dict(rows[0])) if rows else None

    def update_location(self, location: Location):
        self._validate_location(location)
        self.db.execute("""
            UPDATE inventory_locations SET name = ?, code = ?, type = ?,
                engineer_id = ?, address = ?, is_active = ?
            WHERE id = ?
        """, (
            location.name, location.code or None, location.type,
            location.engineer_id, location.address, location.is_active,
            location.id,
        ))

    def deactivate_location(self, location_id: int):
        """Hide a location. It must not hold any stock."""
        with self.db.get_connection() as conn:
            if self._stocked_location_count(conn, "l.id = ?",
                                            (location_id,)):
                raise ValueError(
                    "Move or write off the stock at this location first"
                )
            conn.execute(
                "UPDATE inventory_locations SET is_active = 0 WHERE id = ?",
                (location_id,),
            )
        logger.info("Deactivated location %s", location_id)

    def get_engineer_van_location(self, engineer_id: int) -> Optional[Location]:
        """Return the engineer's active van, or None if they have none."""
        rows = self.db.execute(
            self._LOCATIONS_SELECT
            + " WHERE l.engineer_id = ? AND l.type = 'van' "
              "AND l.is_active = 1 ORDER BY l.id LIMIT 1",
            (engineer_id,),
        )
        return Location(**dict(rows[0])) if rows else None

    @staticmethod
    def _van_location_id(conn, engineer_id: int) -> Optional[int]:
        row = conn.execute(
            "SELECT id FROM inventory_locations "
            "WHERE engineer_id = ? AND type = 'van' AND is_active = 1 "
            "ORDER BY id LIMIT 1",
            (engineer_id,),
        ).fetchone()
        return row["id"] if row else None

    # ── Stock Ledger ────────────────────────────────────────────

    @staticmethod
    def _validate_txn(direction: str, qty: int, status: str):
        if direction not in TXN_DIRECTIONS:
            raise ValueError(f"Unknown transaction direction: {direction}")
        if status not in TXN_STATUSES:
            raise ValueError(f"Unknown transaction status: {status}")
        if direction == "adjust":
            if qty == 0:
                raise ValueError("Adjustment quantity cannot be zero")
        elif qty <= 0:
            raise ValueError("Quantity must be greater than zero")

    @staticmethod
    def _on_hand(conn, item_id: int, location_id: int) -> int:
        row = conn.execute(
            f"SELECT COALESCE(SUM({_SIGNED_QTY}), 0) AS qty "
            "FROM inventory_txns t "
            "WHERE t.item_id = ? AND t.location_id = ? "
            "AND t.status = 'approved'",
            (item_id, location_id),
        ).fetchone()
        return row["qty"]

    def _insert_txn(self, conn, item_id: int, location_id: int,
                    direction: str, qty: int, reference: str = "",
                    notes: str = "", status: str = "approved",
                    created_by: int = None) -> int:
        """Insert a ledger row plus its 'created' audit row on ``conn``."""
        self._validate_txn(direction, qty, status)
        cursor = conn.execute("""
            INSERT INTO inventory_txns
                (item_id, location_id, direction, qty, reference, notes,
                 status, created_by)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            item_id, location_id, direction, qty, reference, notes,
            status, created_by,
        ))
        txn_id = cursor.lastrowid
        conn.execute(
            "INSERT INTO inventory_txn_audit "
            "(txn_id, action, performed_by) VALUES (?, 'created', ?)",
            (txn_id, created_by),
        )
        return txn_id

    def record_transaction(self, txn: InventoryTxn) -> int:
        """Append a row to the stock ledger.

        ``in``/``out`` rows need a positive quantity; ``adjust`` rows carry
        a non-zero signed quantity. Only approved rows count towards
        balances.
        """
        with self.db.get_connection() as conn:
            txn_id = self._insert_txn(
                conn, txn.item_id, txn.location_id, txn.direction,
                txn.qty, txn.reference, txn.notes, txn.status,
                txn.created_by,
            )
        logger.debug("Recorded %s txn %s (%s x item %s @ loc %s)",
                     txn.direction, txn_id, txn.qty, txn.item_id,
                     txn.location_id)
        return txn_id

    _TXNS_SELECT = """
        SELECT t.*,
               i.sku AS item_sku, i.name AS item_name,
               l.name AS location_name,
               COALESCE(u.display_name, '') AS created_by_name
        FROM inventory_txns t
        JOIN inventory_items i ON t.item_id = i.id
        JOIN inventory_locations l ON t.location_id = l.id
        LEFT JOIN users u ON t.created_by = u.id
    """

    def get_transactions(
        self,
        item_id: Optional[int] = None,
        location_id: Optional[int] = None,
        direction: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[InventoryTxn]:
        """Ledger rows, newest first, with item and location names."""
        query = self._TXNS_SELECT + " WHERE 1 = 1"
        params = []
        if item_id is not None:
            query += " AND t.item_id = ?"
            params.append(item_id)
        if location_id is not None:
            query += " AND t.location_id = ?"
            params.append(location_id)
        if direction:
            query += " AND t.direction = ?"
            params.append(direction)
        if status:
            query += " AND t.status = ?"
            params.append(status)
        query += " ORDER BY t.created_at DESC, t.id DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)
        rows = self.db.execute(query, tuple(params))
        return [InventoryTxn(**dict(r)) for r in rows]

    def get_transaction_by_id(self, txn_id: int) -> Optional[InventoryTxn]:
        rows = self.db.execute(
            self._TXNS_SELECT + " WHERE t.id = ?", (txn_id,)
        )
        return InventoryTxn(**dict(rows[0])) if rows else None

    def get_item_location_balances(
        self,
        location_id: Optional[int] = None,
        item_id: Optional[int] = None,
    ) -> list[StockBalance]:
        """One row per (item, location) that has approved ledger rows."""
        query = f"""
            SELECT t.item_id, t.location_id,
                   SUM({_SIGNED_QTY}) AS on_hand,
                   i.sku AS item_sku, i.name AS item_name, i.unit,
                   i.reorder_point,
                   l.name AS location_name, l.type AS location_type
            FROM inventory_txns t
            JOIN inventory_items i ON t.item_id = i.id
            JOIN inventory_locations l ON t.location_id = l.id
            WHERE t.status = 'approved'
        """
        params = []
        if location_id is not None:
            query += " AND t.location_id = ?"
            params.append(location_id)
        if item_id is not None:
            query += " AND t.item_id = ?"
            params.append(item_id)
        query += (
            " GROUP BY t.item_id, t.location_id"
            " ORDER BY i.sku, l.name"
        )
        rows = self.db.execute(query, tuple(params))
        return [StockBalance(**dict(r)) for r in rows]

    def get_on_hand(self, item_id: int, location_id: int) -> int:
        with self.db.get_connection() as conn:
            return self._on_hand(conn, item_id, location_id)

    def get_item_total_on_hand(self, item_id: int) -> int:
        rows = self.db.execute(
            f"SELECT COALESCE(SUM({_SIGNED_QTY}), 0) AS qty "
            "FROM inventory_txns t "
            "WHERE t.item_id = ? AND t.status = 'approved'",
            (item_id,),
        )
        return rows[0]["qty"]

    def _transfer(self, conn, item_id: int, from_location_id: int,
                  to_location_id: int, qty: int, reference: str = "",
                  notes: str = "", created_by: int = None) -> tuple[int, int]:
        if from_location_id == to_location_id:
            raise ValueError("Source and destination must be different")
        if qty <= 0:
            raise ValueError("Transfer quantity must be greater than zero")
        on_hand = self._on_hand(conn, item_id, from_location_id)
        if on_hand < qty:
            raise ValueError(
                f"Insufficient stock at source: have {on_hand}, need {qty}"
            )
        out_id = self._insert_txn(
            conn, item_id, from_location_id, "out", qty,
            reference, notes, "approved", created_by,
        )
        in_id = self._insert_txn(
            conn, item_id, to_location_id, "in", qty,
            reference, notes, "approved", created_by,
        )
        return out_id, in_id

    def record_transfer(self, item_id: int, from_location_id: int,
                        to_location_id: int, qty: int,
                        reference: str = "", notes: str = "",
                        user_id: int = None) -> tuple[int, int]:
        """Move stock between locations.

        Writes an ``out`` row at the source and an ``in`` row at the
        destination in one transaction. Returns ``(out_id, in_id)``.
        """
        with self.db.get_connection() as conn:
            ids = self._transfer(
                conn, item_id, from_location_id, to_location_id, qty,
                reference or "Transfer", notes, user_id,
            )
        logger.info("Transferred %s x item %s: loc %s -> loc %s",
                    qty, item_id, from_location_id, to_location_id)
        return ids

    def record_adjustment(self, item_id: int, location_id: int, delta: int,
                          reason: str = "", user_id: int = None,
                          status: str = "approved") -> int:
        """Write a signed ``adjust`` row (e.g. a stock count correction)."""
        return self.record_transaction(InventoryTxn(
            item_id=item_id,
            location_id=location_id,
            direction="adjust",
            qty=delta,
            reference="Adjustment",
            notes=reason,
            status=status,
            created_by=user_id,
        ))

    def _decide_transaction(self, txn_id: int, user_id: int,
                            new_status: str, reason: Optional[str]):
        with self.db.get_connection() as conn:
            user = conn.execute(
                "SELECT role, is_active FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            if (not user or not user["is_active"]
                    or not role_has_permission(user["role"], "txns_approve")):
                logger.warning("User %s may not decide txn %s",
                               user_id, txn_id)
                raise ValueError(
                    "Only administrators can approve or reject transactions"
                )
            row = conn.execute(
                "SELECT item_id, location_id, direction, qty, status "
                "FROM inventory_txns WHERE id = ?", (txn_id,)
            ).fetchone()
            if not row:
                raise ValueError(f"Transaction {txn_id} not found")
            if row["status"] != "pending":
                raise ValueError(
                    f"Transaction {txn_id} is already {row['status']}"
                )
            if new_status == "approved":
                delta = row["qty"]
                if row["direction"] == "out":
                    delta = -row["qty"]
                elif row["direction"] == "in":
                    delta = row["qty"]
                on_hand = self._on_hand(
                    conn, row["item_id"], row["location_id"]
                )
                if on_hand + delta < 0:
                    logger.warning("Txn %s would leave item %s at %s",
                                   txn_id, row["item_id"], on_hand + delta)
                    raise ValueError(
                        f"Approving would take stock below zero: "
                        f"have {on_hand}, change {delta:+d}"
                    )
            conn.execute("""
                UPDATE inventory_txns SET status = ?, approved_by = ?,
                    approved_at = CURRENT_TIMESTAMP, rejection_reason = ?
                WHERE id = ?
            """, (new_status, user_id, reason, txn_id))
            conn.execute(
                "INSERT INTO inventory_txn_audit "
                "(txn_id, action, reason, performed_by) VALUES (?, ?, ?, ?)",
                (txn_id, new_status, reason, user_id),
            )
        logger.info("Transaction %s %s by user %s", txn_id, new_status,
                    user_id)

    def approve_transaction(self, txn_id: int, user_id: int):
        """Approve a pending ledger row so it counts towards balances."""
        self._decide_transaction(txn_id, user_id, "approved", None)

    def reject_transaction(self, txn_id: int, user_id: int, reason: str):
        """Reject a pending ledger row. A reason is mandatory."""
        if not reason or not reason.strip():
            raise ValueError("A rejection reason is required")
        self._decide_transaction(txn_id, user_id, "rejected", reason.strip())

    def get_transaction_audit(self, txn_id: int) -> list[TxnAudit]:
        rows = self.db.execute("""
            SELECT a.*, COALESCE(u.display_name, '') AS performed_by_name
            FROM inventory_txn_audit a
            LEFT JOIN users u ON a.performed_by = u.id
            WHERE a.txn_id = ?
            ORDER BY a.id
        """, (txn_id,))
        return [TxnAudit(**dict(r)) for r in rows]

    # ── Low Stock ───────────────────────────────────────────────

    def get_low_stock_items(self, scope: Optional[str] = None
                            ) -> list[LowStockRow]:
        """Items at or below their reorder point in ``scope``.

        Defaults to ``Config.LOW_STOCK_SCOPE``.
        """
        return find_low_stock(
            self.get_all_items(active_only=True),
            self.get_item_location_balances(),
            self.get_all_locations(active_only=False),
            scope or Config.LOW_STOCK_SCOPE,
        )

    # ── Stock Requests ──────────────────────────────────────────

    _REQUESTS_SELECT = """
        SELECT sr.*,
               COALESCE(e.name, '') AS engineer_name,
               COALESCE(dl.name, '') AS destination_name,
               COALESCE(sl.name, '') AS source_name,
               (SELECT COUNT(*) FROM stock_request_lines srl
                WHERE srl.request_id = sr.id) AS line_count
        FROM stock_requests sr
        LEFT JOIN engineers e ON sr.engineer_id = e.id
        LEFT JOIN inventory_locations dl ON sr.destination_location_id = dl.id
        LEFT JOIN inventory_locations sl ON sr.source_location_id = sl.id
    """

    def create_stock_request(self, request: StockRequest,
                             lines: list[StockRequestLine],
                             idempotency_key: Optional[str] = None) -> int:
        """Create a request and its lines in one transaction.

        Submitting twice with the same idempotency key returns the first
        request's id without inserting anything.
        """
        key = idempotency_key or request.idempotency_key
        if not lines:
            raise ValueError("A stock request needs at least one line")
        if any(line.qty <= 0 for line in lines):
            raise ValueError("Requested quantities must be greater than zero")
        if request.priority not in REQUEST_PRIORITIES:
            raise ValueError(f"Unknown priority: {request.priority}")

        with self.db.get_connection() as conn:
            if key:
                existing = conn.execute(
                    "SELECT id FROM stock_requests WHERE idempotency_key = ?",
                    (key,),
                ).fetchone()
                if existing:
                    logger.info("Duplicate stock request key %s -> %s",
                                key, existing["id"])
                    return existing["id"]

            cursor = conn.execute("""
                INSERT INTO stock_requests
                    (engineer_id, destination_location_id,
                     source_location_id, order_ref, priority, status,
                     needed_by, notes, idempotency_key)
                VALUES (?, ?, ?, ?, ?, 'submitted', ?, ?, ?)
            """, (
                request.engineer_id, request.destination_location_id,
                request.source_location_id, request.order_ref,
                request.priority, request.needed_by, request.notes, key,
            ))
            request_id = cursor.lastrowid
            for line in lines:
                conn.execute(
                    "INSERT INTO stock_request_lines "
                    "(request_id, item_id, qty, notes) VALUES (?, ?, ?, ?)",
                    (request_id, line.item_id, line.qty, line.notes),
                )
        logger.info("Created stock request %s for engineer %s",
                    request_id, request.engineer_id)
        return request_id

    def get_stock_requests(
        self,
        engineer_id: Optional[int] = None,
        status: Optional[str] = None,
        limit: Optional[int] = 30,
    ) -> list[StockRequest]:
        query = self._REQUESTS_SELECT + " WHERE 1 = 1"
        params = []
        if engineer_id is not None:
            query += " AND sr.engineer_id = ?"
            params.append(engineer_id)
        if status:
            query += " AND sr.status = ?"
            params.append(status)
        query += " ORDER BY sr.created_at DESC, sr.id DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)
        rows = self.db.execute(query, tuple(params))
        return [StockRequest(**dict(r)) for r in rows]

    def get_stock_request_by_id(self, request_id: int
                                ) -> Optional[StockRequest]:
        rows = self.db.execute(
            self._REQUESTS_SELECT + " WHERE sr.id = ?", (request_id,)
        )
        return StockRequest(**dict(rows[0])) if rows else None

    def get_stock_request_lines(self, request_id: int
                                ) -> list[StockRequestLine]:
        rows = self.db.execute("""
            SELECT srl.*, i.sku AS item_sku, i.name AS item_name
            FROM stock_request_lines srl
            JOIN inventory_items i ON srl.item_id = i.id
            WHERE srl.request_id = ?
            ORDER BY srl.id
        """, (request_id,))
        return [StockRequestLine(**dict(r)) for r in rows]

    def update_stock_request_status(
        self,
        request_id: int,
        new_status: str,
        user_id: Optional[int] = None,
        notes: Optional[str] = None,
        source_location_id: Optional[int] = None,
    ):
        """Move a request along its status table.

        Delivering a request that has a source location moves every line
        from the source to the destination in the same transaction.
        """
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM stock_requests WHERE id = ?", (request_id,)
            ).fetchone()
            if not row:
                raise ValueError(f"Stock request {request_id} not found")
            current = row["status"]
            if new_status not in STOCK_REQUEST_TRANSITIONS.get(current, []):
                logger.warning("Rejected stock request %s move %s -> %s",
                               request_id, current, new_status)
                raise ValueError(
                    f"Cannot move a stock request from '{current}' "
                    f"to '{new_status}'"
                )

            source = source_location_id or row["source_location_id"]
            merged_notes = row["notes"] or ""
            if notes:
                merged_notes = (
                    f"{merged_notes}\n{notes}" if merged_notes else notes
                )
            conn.execute(
                "UPDATE stock_requests SET status = ?, notes = ?, "
                "source_location_id = ? WHERE id = ?",
                (new_status, merged_notes, source, request_id),
            )

            if new_status == "delivered" and source:
                lines = conn.execute(
                    "SELECT item_id, qty FROM stock_request_lines "
                    "WHERE request_id = ?",
                    (request_id,),
                ).fetchall()
                for line in lines:
                    self._transfer(
                        conn, line["item_id"], source,
                        row["destination_location_id"], line["qty"],
                        reference=f"Stock request #{request_id}",
                        created_by=user_id,
                    )
        logger.info("Stock request %s: %s -> %s", request_id, current,
                    new_status)

    def get_stock_request_counts(self) -> dict[str, int]:
        """Count of requests per status (every status present)."""
        counts = {s: 0 for s in STOCK_REQUEST_STATUSES}
        rows = self.db.execute(
            "SELECT status, COUNT(*) AS cnt FROM stock_requests "
            "GROUP BY status"
        )
        for r in rows:
            counts[r["status"]] = r["cnt"]
        return counts

    def attach_stock_request_photo(self, request_id: int,
                                   source_path: str) -> str:
        """Copy a photo into the photos directory and link it."""
        if not self.get_stock_request_by_id(request_id):
            raise ValueError(f"Stock request {request_id} not found")
        src = Path(source_path)
        if not src.is_file():
            raise ValueError(f"Photo not found: {source_path}")
        dest_dir = Path(Config.PHOTOS_DIRECTORY)
        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = dest_dir / (
            f"request_{request_id}_{uuid.uuid4().hex[:8]}{src.suffix.lower()}"
        )
        shutil.copy2(src, dest)
        self.db.execute(
            "UPDATE stock_requests SET photo_path = ? WHERE id = ?",
            (str(dest), request_id),
        )
        return str(dest)

    def _next_number(self, table: str, column: str, prefix: str) -> str:
        """Next ``{prefix}-{YYYY}-{NNN}`` after the highest number in use.

        Hand-entered numbers with a non-numeric suffix are ignored.
        """
        stem = f"{prefix}-{datetime.now().year}-"
        rows = self.db.execute(
            f"SELECT {column} AS number FROM {table} WHERE {column} LIKE ?",
            (stem + "%",),
        )
        highest = 0
        for row in rows:
            suffix = row["number"][len(stem):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{stem}{highest + 1:03d}"

    @staticmethod
    def _ensure_number_free(conn, table: str, column: str, number: str):
        taken = conn.execute(
            f"SELECT 1 FROM {table} WHERE {column} = ?", (number,)
        ).fetchone()
        if taken:
            raise ValueError(f"Number {number} is already in use")

    # ── Purchase Orders ─────────────────────────────────────────

    def generate_po_number(self) -> str:
        """Generate next sequential PO number like PO-2026-001."""
        return self._next_number(
            "purchase_orders", "po_number", Config.PO_NUMBER_PREFIX
        )

    @staticmethod
    def _default_cost(conn, item_id: int) -> float:
        row = conn.execute(
            "SELECT default_cost FROM inventory_items WHERE id = ?",
            (item_id,),
        ).fetchone()
        if not row:
            raise ValueError(f"Item {item_id} not found")
        return row["default_cost"] or 0.0

    @staticmethod
    def _recalculate_po_total(conn, order_id: int) -> float:
        row = conn.execute(
            "SELECT COALESCE(SUM(quantity * unit_cost), 0) AS total "
            "FROM purchase_order_lines WHERE purchase_order_id = ?",
            (order_id,),
        ).fetchone()
        total = round(row["total"], 2)
        conn.execute(
            "UPDATE purchase_orders SET total_amount = ? WHERE id = ?",
            (total, order_id),
        )
        return total

    def recalculate_po_total(self, order_id: int) -> float:
        with self.db.get_connection() as conn:
            return self._recalculate_po_total(conn, order_id)

    def create_purchase_order(self, order: PurchaseOrder,
                              lines: list[PurchaseOrderLine] = ()) -> int:
        """Create an order with its lines. Lines without a unit cost take
        the item's default cost."""
        if any(line.quantity <= 0 for line in lines):
            raise ValueError("Order quantities must be greater than zero")
        po_number = order.po_number or self.generate_po_number()
        with self.db.get_connection() as conn:
            self._ensure_number_free(
                conn, "purchase_orders", "po_number", po_number
            )
            cursor = conn.execute("""
                INSERT INTO purchase_orders
                    (po_number, supplier_id, status, order_date,
                     expected_delivery_date, notes, stock_request_id,
                     engineer_id, created_by)
                VALUES (?, ?, ?, COALESCE(?, CURRENT_DATE), ?, ?, ?, ?, ?)
            """, (
                po_number, order.supplier_id, order.status or "draft",
                order.order_date, order.expected_delivery_date,
                order.notes, order.stock_request_id, order.engineer_id,
                order.created_by,
            ))
            order_id = cursor.lastrowid
            for line in lines:
                unit_cost = line.unit_cost
                if unit_cost is None:
                    unit_cost = self._default_cost(conn, line.item_id)
                conn.execute(
                    "INSERT INTO purchase_order_lines "
                    "(purchase_order_id, item_id, quantity, unit_cost) "
                    "VALUES (?, ?, ?, ?)",
                    (order_id, line.item_id, line.quantity, unit_cost),
                )
            self._recalculate_po_total(conn, order_id)
            if order.stock_request_id:
                conn.execute(
                    "UPDATE stock_requests SET purchase_order_id = ? "
                    "WHERE id = ?",
                    (order_id, order.stock_request_id),
                )
        logger.info("Created purchase order %s (%s)", order_id, po_number)
        return order_id

    _ORDERS_SELECT = """
        SELECT po.*,
               COALESCE(s.name, '') AS supplier_name,
               (SELECT COUNT(*) FROM purchase_order_lines pol
                WHERE pol.purchase_order_id = po.id) AS line_count
        FROM purchase_orders po
        LEFT JOIN suppliers s ON po.supplier_id = s.id
    """

    def get_purchase_order_by_id(self, order_id: int
                                 ) -> Optional[PurchaseOrder]:
        rows = self.db.execute(
            self._ORDERS_SELECT + " WHERE po.id = ?", (order_id,)
        )
        return PurchaseOrder(**dict(rows[0])) if rows else None

    def get_all_purchase_orders(
        self, status: Optional[str] = None
    ) -> list[PurchaseOrder]:
        """Get all orders, optionally filtered by status."""
        query = self._ORDERS_SELECT
        params = []
        if status:
            query += " WHERE po.status = ?"
            params.append(status)
        query += " ORDER BY po.created_at DESC, po.id DESC"
        rows = self.db.execute(query, tuple(params))
        return [PurchaseOrder(**dict(r)) for r in rows]

    def get_purchase_order_lines(self, order_id: int
                                 ) -> list[PurchaseOrderLine]:
        rows = self.db.execute("""
            SELECT pol.*, i.sku AS item_sku, i.name AS item_name
            FROM purchase_order_lines pol
            JOIN inventory_items i ON pol.item_id = i.id
            WHERE pol.purchase_order_id = ?
            ORDER BY pol.id
        """, (order_id,))
        return [PurchaseOrderLine(**dict(r)) for r in rows]

    def get_purchase_receipts(self, order_id: int) -> list[PurchaseReceipt]:
        rows = self.db.execute(
            "SELECT * FROM purchase_receipts WHERE purchase_order_id = ? "
            "ORDER BY id",
            (order_id,),
        )
        return [_row_to(PurchaseReceipt, r) for r in rows]

    def get_purchase_order_for_stock_request(
        self, request_id: int
    ) -> Optional[PurchaseOrder]:
        rows = self.db.execute(
            self._ORDERS_SELECT
            + " WHERE po.stock_request_id = ? ORDER BY po.id DESC LIMIT 1",
            (request_id,),
        )
        return PurchaseOrder(**dict(rows[0])) if rows else None

    def update_purchase_order_status(self, order_id: int, status: str):
        """Move an order along its status table.

        Submitting needs at least one line; an order only becomes
        ``received`` once every line has been received in full.
        """
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT status FROM purchase_orders WHERE id = ?",
                (order_id,),
            ).fetchone()
            if not row:
                raise ValueError(f"Purchase order {order_id} not found")
            current = row["status"]
            if status not in ORDER_TRANSITIONS.get(current, []):
                logger.warning("Rejected PO %s move %s -> %s",
                               order_id, current, status)
                raise ValueError(
                    f"Cannot move a purchase order from '{current}' "
                    f"to '{status}'"
                )
            counts = conn.execute(
                "SELECT COUNT(*) AS lines, "
                "COALESCE(SUM(received_quantity < quantity), 0) AS open "
                "FROM purchase_order_lines WHERE purchase_order_id = ?",
                (order_id,),
            ).fetchone()
            if status == "pending" and counts["lines"] == 0:
                raise ValueError("Add at least one line before submitting")
            if status == "received" and (
                counts["lines"] == 0 or counts["open"] > 0
            ):
                raise ValueError(
                    "Receive every line before marking the order received"
                )
            conn.execute(
                "UPDATE purchase_orders SET status = ? WHERE id = ?",
                (status, order_id),
            )
        logger.info("Purchase order %s: %s -> %s", order_id, current, status)

    def receive_purchase_order(self, order_id: int, receipts: list[dict],
                               location_id: int,
                               received_by: Optional[int] = None) -> int:
        """Receive stock against an approved order.

        Each receipt dict has ``po_line_id`` and ``quantity`` (and an
        optional ``notes``). Receipts may be partial; receiving more than
        is outstanding on a line is rejected. Returns the number of
        receipts written.
        """
        if not receipts:
            raise ValueError("Nothing to receive")
        today = date.today().isoformat()
        with self.db.get_connection() as conn:
            order = conn.execute(
                "SELECT po_number, status FROM purchase_orders WHERE id = ?",
                (order_id,),
            ).fetchone()
            if not order:
                raise ValueError(f"Purchase order {order_id} not found")
            if order["status"] != "approved":
                raise ValueError(
                    f"Only approved orders can be received "
                    f"(order is {order['status']})"
                )

            for receipt in receipts:
                line_id = receipt["po_line_id"]
                qty = receipt["quantity"]
                if qty <= 0:
                    raise ValueError(
                        "Received quantity must be greater than zero"
                    )
                line = conn.execute(
                    "SELECT item_id, quantity, received_quantity "
                    "FROM purchase_order_lines "
                    "WHERE id = ? AND purchase_order_id = ?",
                    (line_id, order_id),
                ).fetchone()
                if not line:
                    raise ValueError(
                        f"Line {line_id} does not belong to this order"
                    )
                outstanding = line["quantity"] - line["received_quantity"]
                if qty > outstanding:
                    raise ValueError(
                        f"Over-receipt on line {line_id}: "
                        f"{outstanding} outstanding, {qty} received"
                    )
                conn.execute(
                    "UPDATE purchase_order_lines "
                    "SET received_quantity = received_quantity + ? "
                    "WHERE id = ?",
                    (qty, line_id),
                )
                conn.execute("""
                    INSERT INTO purchase_receipts
                        (purchase_order_id, po_line_id, quantity_received,
                         location_id, received_by, received_date, notes)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (
                    order_id, line_id, qty, location_id, received_by,
                    today, receipt.get("notes", ""),
                ))
                self._insert_txn(
                    conn, line["item_id"], location_id, "in", qty,
                    reference=order["po_number"],
                    created_by=received_by,
                )

            open_lines = conn.execute(
                "SELECT COUNT(*) AS cnt FROM purchase_order_lines "
                "WHERE purchase_order_id = ? "
                "AND received_quantity < quantity",
                (order_id,),
            ).fetchone()["cnt"]
            if open_lines == 0:
                conn.execute(
                    "UPDATE purchase_orders SET status = 'received', "
                    "actual_delivery_date = ? WHERE id = ?",
                    (today, order_id),
                )
                logger.info("Purchase order %s fully received", order_id)
        return len(receipts)

    def _build_amendment(self, conn, order_id: int,
                         items: list[dict]) -> list[AmendmentLine]:
        """Old vs new quantity per item; items dropped go to zero."""
        seen = set()
        for entry in items:
            if entry["quantity"] <= 0:
                raise ValueError(
                    "Amended quantities must be greater than zero"
                )
            if entry["item_id"] in seen:
                raise ValueError("Each item may appear only once")
            seen.add(entry["item_id"])

        old = {}
        for row in conn.execute(
            "SELECT pol.item_id, pol.quantity, pol.unit_cost, "
            "i.name AS item_name "
            "FROM purchase_order_lines pol "
            "JOIN inventory_items i ON pol.item_id = i.id "
            "WHERE pol.purchase_order_id = ? ORDER BY pol.id",
            (order_id,),
        ).fetchall():
            prev = old.get(row["item_id"])
            qty = row["quantity"] + (prev.old_quantity if prev else 0)
            old[row["item_id"]] = AmendmentLine(
                item_id=row["item_id"],
                item_name=row["item_name"],
                old_quantity=qty,
                new_quantity=0,
                unit_cost=row["unit_cost"],
            )

        result = []
        for entry in items:
            line = old.pop(entry["item_id"], None)
            if line is None:
                item = conn.execute(
                    "SELECT name, default_cost FROM inventory_items "
                    "WHERE id = ?",
                    (entry["item_id"],),
                ).fetchone()
                if not item:
                    raise ValueError(f"Item {entry['item_id']} not found")
                line = AmendmentLine(
                    item_id=entry["item_id"],
                    item_name=item["name"],
                    unit_cost=item["default_cost"] or 0.0,
                )
            elif not line.unit_cost:
                line.unit_cost = self._default_cost(conn, line.item_id)
            line.new_quantity = entry["quantity"]
            result.append(line)
        # Lines that were removed by the amendment
        result.extend(old.values())
        return result

    def preview_purchase_order_amendment(self, order_id: int,
                                         items: list[dict]
                                         ) -> AmendmentResult:
        """What ``amend_purchase_order`` would do, without writing."""
        with self.db.get_connection() as conn:
            if not conn.execute(
                "SELECT 1 FROM purchase_orders WHERE id = ?", (order_id,)
            ).fetchone():
                raise ValueError(f"Purchase order {order_id} not found")
            lines = self._build_amendment(conn, order_id, items)
        total = round(sum(
            ln.new_quantity * ln.unit_cost for ln in lines
        ), 2)
        return AmendmentResult(order_id=order_id, lines=lines,
                               total_amount=total)

    def amend_purchase_order(self, order_id: int, items: list[dict],
                             reason: str, engineer_id: int,
                             user_id: Optional[int] = None
                             ) -> AmendmentResult:
        """Replace an order's lines on behalf of an engineer.

        ``items`` is a list of ``{"item_id": ..., "quantity": ...}``. The
        order goes back to ``pending`` for review, gets an amendment note,
        and every quantity difference is booked as an ``adjust`` row at
        the engineer's van (when they have one). Everything happens in one
        transaction.
        """
        if not reason or not reason.strip():
            raise ValueError("An amendment reason is required")
        if not items:
            raise ValueError("An amended order needs at least one line")

        with self.db.get_connection() as conn:
            order = conn.execute(
                "SELECT * FROM purchase_orders WHERE id = ?", (order_id,)
            ).fetchone()
            if not order:
                raise ValueError(f"Purchase order {order_id} not found")
            if order["status"] not in AMENDABLE_ORDER_STATUSES:
                raise ValueError(
                    f"A {order['status']} purchase order cannot be amended"
                )
            received = conn.execute(
                "SELECT COUNT(*) AS cnt FROM purchase_receipts "
                "WHERE purchase_order_id = ?",
                (order_id,),
            ).fetchone()["cnt"]
            if received:
                raise ValueError(
                    "Stock has already been received against this order"
                )

            lines = self._build_amendment(conn, order_id, items)

            conn.execute(
                "DELETE FROM purchase_order_lines WHERE purchase_order_id = ?",
                (order_id,),
            )
            for line in lines:
                if line.new_quantity > 0:
                    conn.execute(
                        "INSERT INTO purchase_order_lines "
                        "(purchase_order_id, item_id, quantity, unit_cost) "
                        "VALUES (?, ?, ?, ?)",
                        (order_id, line.item_id, line.new_quantity,
                         line.unit_cost),
                    )

            now = datetime.now().isoformat(timespec="seconds")
            note = (
                f"\n\n{AMENDMENT_NOTE_HEADER}\n"
                f"Reason: {reason.strip()}\n"
                f"Amended by engineer: {engineer_id}\n"
                f"Amended at: {now}\n"
            )
            conn.execute("""
                UPDATE purchase_orders SET notes = ?, status = 'pending',
                    amended_at = ?, amended_by = ?
                WHERE id = ?
            """, ((order["notes"] or "") + note, now, engineer_id, order_id))
            total = self._recalculate_po_total(conn, order_id)

            txn_ids = []
            van_id = self._van_location_id(conn, engineer_id)
            if van_id:
                for line in lines:
                    if line.difference:
                        txn_ids.append(self._insert_txn(
                            conn, line.item_id, van_id, "adjust",
                            line.difference,
                            reference=f"PO Amendment: {order['po_number']}",
                            notes=reason.strip(),
                            created_by=user_id,
                        ))
            else:
                logger.info("Engineer %s has no van; no stock adjustments",
                            engineer_id)

        logger.info("Amended purchase order %s (%d lines, %d adjustments)",
                    order_id, len(lines), len(txn_ids))
        return AmendmentResult(
            order_id=order_id,
            lines=lines,
            total_amount=total,
            adjustment_txn_ids=txn_ids,
        )

    # ── Returns & RMAs ──────────────────────────────────────────

    def generate_rma_number(self) -> str:
        """Generate next sequential RMA number like RMA-2026-001."""
        return self._next_number(
            "returns_rmas", "rma_number", Config.RMA_NUMBER_PREFIX
        )

    def create_rma(self, rma: Rma, lines: Optional[list[RmaLine]] = None,
                   location_id: Optional[int] = None,
                   user_id: Optional[int] = None) -> int:
        """Open an RMA.

        With ``location_id`` the defective stock is booked ``out`` of that
        location. Without lines the RMA covers one unit of ``rma.item_id``.
        """
        if not rma.return_reason or not rma.return_reason.strip():
            raise ValueError("A return reason is required")
        lines = list(lines) if lines else [
            RmaLine(item_id=rma.item_id, quantity=1)
        ]
        if any(line.quantity <= 0 for line in lines):
            raise ValueError("Return quantities must be greater than zero")
        rma_number = rma.rma_number or self.generate_rma_number()

        with self.db.get_connection() as conn:
            self._ensure_number_free(
                conn, "returns_rmas", "rma_number", rma_number
            )
            cursor = conn.execute("""
                INSERT INTO returns_rmas
                    (rma_number, item_id, supplier_id, serial_number,
                     status, return_reason, replacement_expected_date,
                     notes, created_by)
                VALUES (?, ?, ?, ?, 'pending_return', ?, ?, ?, ?)
            """, (
                rma_number, rma.item_id, rma.supplier_id, rma.serial_number,
                rma.return_reason.strip(), rma.replacement_expected_date,
                rma.notes, rma.created_by or user_id,
            ))
            rma_id = cursor.lastrowid
            for line in lines:
                conn.execute(
                    "INSERT INTO returns_rma_lines "
                    "(rma_id, item_id, quantity, condition_notes) "
                    "VALUES (?, ?, ?, ?)",
                    (rma_id, line.item_id, line.quantity,
                     line.condition_notes),
                )
                if location_id:
                    on_hand = self._on_hand(conn, line.item_id, location_id)
                    if on_hand < line.quantity:
                        raise ValueError(
                            f"Insufficient stock to return: have {on_hand}, "
                            f"need {line.quantity}"
                        )
                    self._insert_txn(
                        conn, line.item_id, location_id, "out",
                        line.quantity, reference=rma_number,
                        notes=rma.return_reason.strip(),
                        created_by=user_id,
                    )
        logger.info("Created RMA %s (%s)", rma_id, rma_number)
        return rma_id

    _RMAS_SELECT = """
        SELECT r.*,
               i.sku AS item_sku, i.name AS item_name,
               COALESCE(s.name, '') AS supplier_name
        FROM returns_rmas r
        JOIN inventory_items i ON r.item_id = i.id
        LEFT JOIN suppliers s ON r.supplier_id = s.id
    """

    def get_rmas(self, status: Optional[str] = None) -> list[Rma]:
        query = self._RMAS_SELECT
        params = []
        if status:
            query += " WHERE r.status = ?"
            params.append(status)
        query += " ORDER BY r.created_at DESC, r.id DESC"
        rows = self.db.execute(query, tuple(params))
        return [Rma(**dict(r)) for r in rows]

    def get_rma_by_id(self, rma_id: int) -> Optional[Rma]:
        rows = self.db.execute(
            self._RMAS_SELECT + " WHERE r.id = ?", (rma_id,)
        )
        return Rma(**dict(rows[0])) if rows else None

    def get_rma_lines(self, rma_id: int) -> list[RmaLine]:
        rows = self.db.execute("""
            SELECT rl.*, i.sku AS item_sku, i.name AS item_name
            FROM returns_rma_lines rl
            JOIN inventory_items i ON rl.item_id = i.id
            WHERE rl.rma_id = ?
            ORDER BY rl.id
        """, (rma_id,))
        return [RmaLine(**dict(r)) for r in rows]

    @staticmethod
    def _update_rma_status(conn, rma_id: int, new_status: str,
                           fields: dict):
        unknown = set(fields) - set(_RMA_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(
                f"Cannot update RMA field(s): {', '.join(sorted(unknown))}"
            )
        row = conn.execute(
            "SELECT * FROM returns_rmas WHERE id = ?", (rma_id,)
        ).fetchone()
        if not row:
            raise ValueError(f"RMA {rma_id} not found")
        current = row["status"]
        if new_status not in RMA_TRANSITIONS.get(current, []):
            logger.warning("Rejected RMA %s move %s -> %s",
                           rma_id, current, new_status)
            raise ValueError(
                f"Cannot move an RMA from '{current}' to '{new_status}'"
            )
        set_clause = "status = ?"
        params = [new_status]
        for name in _RMA_UPDATABLE_FIELDS:
            if name in fields:
                set_clause += f", {name} = ?"
                params.append(fields[name])
        params.append(rma_id)
        conn.execute(
            f"UPDATE returns_rmas SET {set_clause} WHERE id = ?",
            tuple(params),
        )
        logger.info("RMA %s: %s -> %s", rma_id, current, new_status)
        return row

    def update_rma_status(self, rma_id: int, new_status: str, **fields):
        """Move an RMA along its status table, optionally setting fields
        such as ``tracking_number`` or ``replacement_expected_date``."""
        with self.db.get_connection() as conn:
            self._update_rma_status(conn, rma_id, new_status, fields)

    def ship_rma(self, rma_id: int, tracking_number: str,
                 return_date: Optional[str] = None):
        """Mark the defective unit as sent back to the supplier."""
        if not tracking_number or not tracking_number.strip():
            raise ValueError("A tracking number is required")
        self.update_rma_status(
            rma_id, "in_transit",
            tracking_number=tracking_number.strip(),
            return_date=return_date or date.today().isoformat(),
        )

    def receive_rma_replacement(self, rma_id: int, serial: str = "",
                                location_id: Optional[int] = None,
                                user_id: Optional[int] = None):
        """Record the replacement's arrival, optionally booking it ``in``."""
        with self.db.get_connection() as conn:
            row = self._update_rma_status(
                conn, rma_id, "replacement_received", {
                    "replacement_serial_number": serial,
                    "replacement_received_date": date.today().isoformat(),
                },
            )
            if location_id:
                lines = conn.execute(
                    "SELECT item_id, quantity FROM returns_rma_lines "
                    "WHERE rma_id = ?",
                    (rma_id,),
                ).fetchall()
                for line in lines:
                    self._insert_txn(
                        conn, line["item_id"], location_id, "in",
                        line["quantity"], reference=row["rma_number"],
                        notes="RMA replacement", created_by=user_id,
                    )

    # ── Engineer Workflows ──────────────────────────────────────

    def get_van_stock(self, engineer_id: int) -> list[StockBalance]:
        """Positive balances held in the engineer's van."""
        van = self.get_engineer_van_location(engineer_id)
        if not van:
            return []
        return [
            b for b in self.get_item_location_balances(location_id=van.id)
            if b.on_hand > 0
        ]

    def _require_van(self, conn, engineer_id: int) -> int:
        van_id = self._van_location_id(conn, engineer_id)
        if not van_id:
            raise ValueError("No van location is assigned to this engineer")
        return van_id

    def record_material_usage(self, engineer_id: int, item_id: int,
                              qty: int, job_ref: str = "",
                              notes: str = "",
                              user_id: Optional[int] = None) -> int:
        """Book materials used on a job out of the engineer's van."""
        if qty <= 0:
            raise ValueError("Quantity used must be greater than zero")
        with self.db.get_connection() as conn:
            van_id = self._require_van(conn, engineer_id)
            on_hand = self._on_hand(conn, item_id, van_id)
            if on_hand < qty:
                raise ValueError(
                    f"Insufficient van stock: have {on_hand}, need {qty}"
                )
            txn_id = self._insert_txn(
                conn, item_id, van_id, "out", qty,
                reference=job_ref or "Material usage", notes=notes,
                created_by=user_id,
            )
        logger.info("Engineer %s used %s x item %s", engineer_id, qty,
                    item_id)
        return txn_id

    def report_incorrect_stock(self, engineer_id: int, item_id: int,
                               counted_qty: int, reason: str,
                               user_id: Optional[int] = None
                               ) -> Optional[int]:
        """File a pending correction after a physical van count.

        Returns the pending txn id, or None when the count matches.
        """
        if counted_qty < 0:
            raise ValueError("Counted quantity cannot be negative")
        if not reason or not reason.strip():
            raise ValueError("Please describe why the stock is incorrect")
        with self.db.get_connection() as conn:
            van_id = self._require_van(conn, engineer_id)
            delta = counted_qty - self._on_hand(conn, item_id, van_id)
            if delta == 0:
                return None
            txn_id = self._insert_txn(
                conn, item_id, van_id, "adjust", delta,
                reference="Stock count", notes=reason.strip(),
                status="pending", created_by=user_id,
            )
        logger.info("Engineer %s reported item %s off by %+d (txn %s)",
                    engineer_id, item_id, delta, txn_id)
        return txn_id

    # ── Summaries ───────────────────────────────────────────────

    def get_inventory_kpis(self) -> dict:
        """Headline numbers for the dashboard."""
        low_any = self.get_low_stock_items("any")
        low_van = self.get_low_stock_items("van")
        counts = self.get_stock_request_counts()
        with self.db.get_connection() as conn:
            active_items = conn.execute(
                "SELECT COUNT(*) AS cnt FROM inventory_items "
                "WHERE is_active = 1"
            ).fetchone()["cnt"]
            delivered_today = conn.execute(
                "SELECT COUNT(*) AS cnt FROM stock_requests "
                "WHERE status = 'delivered' "
                "AND date(updated_at) = date('now')"
            ).fetchone()["cnt"]
            placeholders = ", ".join("?" for _ in OPEN_ORDER_STATUSES)
            open_orders = conn.execute(
                "SELECT COUNT(*) AS cnt FROM purchase_orders "
                f"WHERE status IN ({placeholders})",
                tuple(OPEN_ORDER_STATUSES),
            ).fetchone()["cnt"]
            open_rmas = conn.execute(
                "SELECT COUNT(*) AS cnt FROM returns_rmas "
                "WHERE status NOT IN ('closed', 'cancelled')"
            ).fetchone()["cnt"]
            pending = conn.execute(
                "SELECT COUNT(*) AS cnt FROM inventory_txns "
                "WHERE status = 'pending'"
            ).fetchone()["cnt"]
            total_units = conn.execute(
                f"SELECT COALESCE(SUM({_SIGNED_QTY}), 0) AS qty "
                "FROM inventory_txns t WHERE t.status = 'approved'"
            ).fetchone()["qty"]
        return {
            "active_items": active_items,
            "low_stock_items": len({r.item_id for r in low_any}),
            "van_low_stock_items": len({r.item_id for r in low_van}),
            "submitted_requests": counts["submitted"],
            "in_pick_requests": counts["in_pick"],
            "in_transit_requests": counts["in_transit"],
            "delivered_today": delivered_today,
            "open_purchase_orders": open_orders,
            "open_rmas": open_rmas,
            "pending_approvals": pending,
            "total_on_hand": total_units,
        }
