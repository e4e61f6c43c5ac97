"""Seed the database with realistic mock data for development and demos.

Creates:
  - 3 engineers, each with a van
  - 5 users (all PIN 1423): an admin, a manager and the three engineers
  - 4 suppliers
  - 18 items (chargers, protection, cable, mounting, consumables)
  - opening stock in the warehouses and part-stocked vans
  - stock requests and purchase orders in a mix of statuses
  - 2 RMAs

Run:
    python -m execution.seed_mock_data          (from project root)
    python execution/seed_mock_data.py          (direct)

WARNING: This script INSERTS data — run against a fresh DB to avoid
duplicates. Delete data/voltstock.db first for a clean start.
"""

import os
import sys

# Ensure project src is on the path
_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(_ROOT, "src"))

from voltstock.database.connection import DatabaseConnection
from voltstock.database.models import (
    Engineer,
    InventoryItem,
    InventoryTxn,
    Location,
    PurchaseOrder,
    PurchaseOrderLine,
    Rma,
    StockRequest,
    StockRequestLine,
    Supplier,
    User,
)
from voltstock.database.repository import Repository
from voltstock.database.schema import initialize_database

PIN = "1423"


def seed(repo: Repository):
    """Populate the database with mock data."""

    pin_hash = Repository.hash_pin(PIN)

    # ── 1. Engineers & vans ───────────────────────────────────────
    print("Creating engineers and vans...")
    engineers_data = [
        ("Priya Shah", "priya@example.com", "07700 900101", "VAN-01"),
        ("Tom Hughes", "tom@example.com", "07700 900102", "VAN-02"),
        ("Lena Novak", "lena@example.com", "07700 900103", "VAN-03"),
    ]
    engineer_ids = {}
    van_ids = {}
    for name, email, phone, code in engineers_data:
        eid = repo.create_engineer(Engineer(name=name, email=email,
                                            phone=phone))
        engineer_ids[name] = eid
        van_ids[name] = repo.create_location(Location(
            name=f"{name.split()[0]}'s Van", code=code, type="van",
            engineer_id=eid,
        ))
    print(f"  → {len(engineers_data)} engineers with vans")

    # ── 2. Users ──────────────────────────────────────────────────
    print("Creating users...")
    users = [
        ("admin", "Alex Morgan", "admin", None),
        ("ops", "Jordan Blake", "manager", None),
        ("priya", "Priya Shah", "engineer", engineer_ids["Priya Shah"]),
        ("tom", "Tom Hughes", "engineer", engineer_ids["Tom Hughes"]),
        ("lena", "Lena Novak", "engineer", engineer_ids["Lena Novak"]),
    ]
    user_ids = {}
    for username, display, role, eid in users:
        user_ids[username] = repo.create_user(User(
            username=username, display_name=display, pin_hash=pin_hash,
            role=role, engineer_id=eid,
        ))
    print(f"  → {len(users)} users created (all PIN {PIN})")
    admin_id = user_ids["admin"]

    # ── 3. Suppliers ──────────────────────────────────────────────
    print("Creating suppliers...")
    suppliers_data = [
        ("ChargePoint Wholesale", "Sam Reid", "orders@cpw.example.com", 5),
        ("Spark Electrical Supplies", "Dee Patel", "sales@spark.example.com", 2),
        ("CableCo", "Ian Ford", "trade@cableco.example.com", 3),
        ("Fixings Direct", "Mo Khan", "hello@fixings.example.com", 1),
    ]
    supplier_ids = {}
    for name, contact, email, lead in suppliers_data:
        supplier_ids[name] = repo.create_supplier(Supplier(
            name=name, contact_name=contact, contact_email=email,
            lead_time_days=lead,
        ))
    print(f"  → {len(suppliers_data)} suppliers")

    # ── 4. Items ──────────────────────────────────────────────────
    print("Creating items...")
    cpw = "ChargePoint Wholesale"
    spark = "Spark Electrical Supplies"
    items_data = [
        # sku, name, unit, cost, min, max, reorder, supplier
        ("CHG-7KW-T2", "7kW Type 2 Tethered Charger", "each", 389.00, 2, 12, 4, cpw),
        ("CHG-7KW-UT", "7kW Untethered Charger", "each", 359.00, 2, 10, 3, cpw),
        ("CHG-22KW-3P", "22kW Three-Phase Charger", "each", 849.00, 1, 4, 1, cpw),
        ("CHG-CABLE-5M", "Type 2 Charging Cable 5m", "each", 119.00, 2, 10, 3, cpw),
        ("PED-SINGLE", "Single Charger Pedestal", "each", 210.00, 0, 4, 1, cpw),
        ("RCBO-40A-B", "40A Type B RCBO", "each", 68.50, 5, 30, 8, spark),
        ("RCD-TYPEA-63", "63A Type A RCD", "each", 24.75, 5, 30, 6, spark),
        ("ISO-40A-IP65", "40A IP65 Isolator", "each", 18.20, 5, 40, 8, spark),
        ("CU-2WAY-EV", "2-Way EV Consumer Unit", "each", 54.00, 2, 15, 4, spark),
        ("SPD-T2", "Type 2 Surge Protection Device", "each", 42.00, 2, 20, 4, spark),
        ("CBL-SWA-6-3C", "6mm 3-Core SWA Cable", "m", 4.10, 50, 500, 100, "CableCo"),
        ("CBL-SWA-10-3C", "10mm 3-Core SWA Cable", "m", 6.35, 50, 400, 80, "CableCo"),
        ("CBL-TE-6", "6mm Twin & Earth", "m", 1.45, 50, 500, 100, "CableCo"),
        ("GLD-20-SWA", "20mm SWA Gland Kit", "pack", 3.80, 10, 100, 20, "CableCo"),
        ("EARTH-ROD-1.2", "1.2m Copper Earth Rod", "each", 12.60, 4, 30, 6, "Fixings Direct"),
        ("FIX-ANCHOR-M8", "M8 Masonry Anchors (box of 50)", "box", 9.95, 2, 20, 4, "Fixings Direct"),
        ("TRUNK-25x16", "25x16mm Mini Trunking 3m", "each", 2.30, 10, 100, 20, "Fixings Direct"),
        ("LBL-EV-WARN", "EV Warning Label Pack", "pack", 6.50, 5, 40, 8, spark),
    ]
    item_ids = {}
    for sku, name, unit, cost, lo, hi, reorder, supplier in items_data:
        item_ids[sku] = repo.create_item(InventoryItem(
            sku=sku, name=name, unit=unit, default_cost=cost,
            min_level=lo, max_level=hi, reorder_point=reorder,
            supplier_id=supplier_ids[supplier],
        ))
    print(f"  → {len(items_data)} items")

    # ── 5. Opening stock ──────────────────────────────────────────
    print("Booking opening stock...")
    warehouses = repo.get_all_locations(location_type="warehouse")
    main_wh = warehouses[0].id
    opening = {
        "CHG-7KW-T2": 10, "CHG-7KW-UT": 6, "CHG-22KW-3P": 1,
        "CHG-CABLE-5M": 5, "PED-SINGLE": 3, "RCBO-40A-B": 24,
        "RCD-TYPEA-63": 12, "ISO-40A-IP65": 30, "CU-2WAY-EV": 9,
        "SPD-T2": 3, "CBL-SWA-6-3C": 350, "CBL-SWA-10-3C": 60,
        "CBL-TE-6": 400, "GLD-20-SWA": 45, "EARTH-ROD-1.2": 14,
        "FIX-ANCHOR-M8": 8, "TRUNK-25x16": 60, "LBL-EV-WARN": 25,
    }
    for sku, qty in opening.items():
        repo.record_transaction(InventoryTxn(
            item_id=item_ids[sku], location_id=main_wh, direction="in",
            qty=qty, reference="Opening stock", created_by=admin_id,
        ))
    if len(warehouses) > 1:
        repo.record_transfer(item_ids["CHG-7KW-T2"], main_wh,
                             warehouses[1].id, 2, user_id=admin_id)
        repo.record_transfer(item_ids["RCBO-40A-B"], main_wh,
                             warehouses[1].id, 6, user_id=admin_id)

    van_loads = {
        "Priya Shah": {"CHG-7KW-T2": 2, "RCBO-40A-B": 4, "ISO-40A-IP65": 5,
                       "CBL-SWA-6-3C": 60, "GLD-20-SWA": 8},
        "Tom Hughes": {"CHG-7KW-UT": 1, "RCBO-40A-B": 2, "ISO-40A-IP65": 3,
                       "CBL-SWA-6-3C": 40, "EARTH-ROD-1.2": 2},
        "Lena Novak": {"CHG-7KW-T2": 1, "RCD-TYPEA-63": 2, "CU-2WAY-EV": 1,
                       "CBL-TE-6": 50, "TRUNK-25x16": 6},
    }
    for engineer, load in van_loads.items():
        for sku, qty in load.items():
            repo.record_transfer(
                item_ids[sku], main_wh, van_ids[engineer], qty,
                reference="Van restock", user_id=admin_id,
            )
    print("  → warehouses and vans stocked")

    # Usage, a pending count correction and a pending manager adjustment
    repo.record_material_usage(
        engineer_ids["Priya Shah"], item_ids["CBL-SWA-6-3C"], 18,
        job_ref="JOB-2291", user_id=user_ids["priya"],
    )
    repo.report_incorrect_stock(
        engineer_ids["Tom Hughes"], item_ids["ISO-40A-IP65"], 2,
        "One isolator cracked and binned", user_id=user_ids["tom"],
    )
    repo.record_adjustment(
        item_ids["TRUNK-25x16"], main_wh, -4, reason="Damaged in store",
        user_id=user_ids["ops"], status="pending",
    )

    # ── 6. Stock requests ─────────────────────────────────────────
    print("Creating stock requests...")
    requests_config = [
        ("Priya Shah", "high", [("CHG-7KW-T2", 2), ("RCBO-40A-B", 2)],
         ["approved", "in_pick", "in_transit", "delivered"]),
        ("Tom Hughes", "medium", [("CBL-SWA-10-3C", 25), ("GLD-20-SWA", 4)],
         ["approved", "in_pick"]),
        ("Lena Novak", "low", [("LBL-EV-WARN", 2)], []),
        ("Tom Hughes", "high", [("CHG-22KW-3P", 2)], []),
        ("Lena Novak", "medium", [("SPD-T2", 1)], ["rejected"]),
    ]
    request_ids = []
    for index, (engineer, priority, lines, moves) in enumerate(
        requests_config, start=1
    ):
        rid = repo.create_stock_request(
            StockRequest(
                engineer_id=engineer_ids[engineer],
                destination_location_id=van_ids[engineer],
                priority=priority,
                order_ref=f"JOB-{2300 + index}",
            ),
            [StockRequestLine(item_id=item_ids[sku], qty=qty)
             for sku, qty in lines],
            idempotency_key=f"seed-request-{index}",
        )
        for status in moves:
            repo.update_stock_request_status(
                rid, status, user_id=user_ids["ops"],
                notes="Out of stock at depot" if status == "rejected"
                else None,
                source_location_id=main_wh if status == "delivered"
                else None,
            )
        request_ids.append(rid)
    print(f"  → {len(requests_config)} stock requests")

    # ── 7. Purchase orders ────────────────────────────────────────
    print("Creating purchase orders...")
    orders_config = [
        (cpw, "draft", [("CHG-7KW-UT", 4)], None),
        (spark, "pending", [("RCBO-40A-B", 20), ("SPD-T2", 10)], None),
        ("CableCo", "approved", [("CBL-SWA-10-3C", 200)], None),
        (cpw, "approved", [("CHG-22KW-3P", 2)], request_ids[3]),
        ("Fixings Direct", "received",
         [("FIX-ANCHOR-M8", 10), ("EARTH-ROD-1.2", 12)], None),
        (cpw, "cancelled", [("PED-SINGLE", 2)], None),
    ]
    for supplier, status, lines, request_id in orders_config:
        request = (repo.get_stock_request_by_id(request_id)
                   if request_id else None)
        oid = repo.create_purchase_order(
            PurchaseOrder(
                supplier_id=supplier_ids[supplier],
                stock_request_id=request_id,
                engineer_id=request.engineer_id if request else None,
                notes=f"Mock order — {status}",
                created_by=admin_id,
            ),
            [PurchaseOrderLine(item_id=item_ids[sku], quantity=qty)
             for sku, qty in lines],
        )
        if status == "cancelled":
            repo.update_purchase_order_status(oid, "cancelled")
            continue
        if status == "draft":
            continue
        repo.update_purchase_order_status(oid, "pending")
        if status == "pending":
            continue
        repo.update_purchase_order_status(oid, "approved")
        if status == "received":
            repo.receive_purchase_order(
                oid,
                [{"po_line_id": line.id, "quantity": line.quantity}
                 for line in repo.get_purchase_order_lines(oid)],
                main_wh, received_by=admin_id,
            )
    print(f"  → {len(orders_config)} purchase orders")

    # ── 8. RMAs ───────────────────────────────────────────────────
    print("Creating RMAs...")
    shipped = repo.create_rma(
        Rma(item_id=item_ids["CHG-7KW-T2"],
            supplier_id=supplier_ids[cpw],
            serial_number="CP7-0042-1189", return_reason="faulty",
            notes="Display dead after first power-up"),
        location_id=main_wh, user_id=admin_id,
    )
    repo.ship_rma(shipped, "TRK-55120934GB")
    repo.create_rma(
        Rma(item_id=item_ids["RCBO-40A-B"],
            supplier_id=supplier_ids[spark],
            serial_number="", return_reason="damaged",
            notes="Casing cracked on delivery"),
        user_id=admin_id,
    )
    print("  → 2 RMAs")

    # ── Done ──────────────────────────────────────────────────────
    print("\n✓ Mock data seeded successfully!")
    print(f"  Users: {len(users)} (all PIN {PIN})")
    print(f"  Items: {len(items_data)}")
    print(f"  Vans: {len(engineers_data)}")
    print(f"  Stock requests: {len(requests_config)}")
    print(f"  Orders: {len(orders_config)}")
    print(f"  Suppliers: {len(suppliers_data)}")


def main():
    from voltstock.config import Config
    db_path = Config.DATABASE_PATH
    print(f"Database: {db_path}")

    # Confirm if DB exists
    if os.path.exists(db_path):
        resp = input("Database already exists. Seed anyway? (y/N): ").strip().lower()
        if resp != "y":
            print("Aborted.")
            return

    db = DatabaseConnection(db_path)
    initialize_database(db)
    repo = Repository(db)
    seed(repo)


if __name__ == "__main__":
    main()
