"""Shared test fixtures."""

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from voltstock.config import Config
from voltstock.database.connection import DatabaseConnection
from voltstock.database.models import (
    Engineer,
    InventoryItem,
    InventoryTxn,
    Location,
    Supplier,
    User,
)
from voltstock.database.repository import Repository
from voltstock.database.schema import initialize_database


@pytest.fixture(autouse=True)
def isolate_settings(tmp_path, monkeypatch):
    """Keep settings.json writes and photo copies inside the test's tmp dir."""
    import voltstock.config as config_mod
    monkeypatch.setattr(config_mod, "_SETTINGS_FILE",
                        tmp_path / "settings.json")
    monkeypatch.setattr(Config, "PHOTOS_DIRECTORY", str(tmp_path / "photos"))
    monkeypatch.setattr(Config, "LOW_STOCK_SCOPE", "any")
    monkeypatch.setattr(Config, "LAST_LOGIN_USERNAME", "")
    monkeypatch.setattr(Config, "PO_NUMBER_PREFIX", "PO")
    monkeypatch.setattr(Config, "RMA_NUMBER_PREFIX", "RMA")


@pytest.fixture
def db_path(tmp_path):
    """Provide a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def db(db_path):
    """Provide an initialized database connection."""
    conn = DatabaseConnection(db_path)
    initialize_database(conn)
    return conn


@pytest.fixture
def repo(db):
    """Provide a repository with an initialized database."""
    return Repository(db)


@pytest.fixture
def admin_user(repo):
    user = User(
        username="admin",
        display_name="Admin User",
        pin_hash=Repository.hash_pin("1234"),
        role="admin",
    )
    user.id = repo.create_user(user)
    return user


@pytest.fixture
def manager_user(repo):
    user = User(
        username="ops",
        display_name="Ops Manager",
        pin_hash=Repository.hash_pin("2345"),
        role="manager",
    )
    user.id = repo.create_user(user)
    return user


@pytest.fixture
def engineer(repo):
    eng = Engineer(name="Priya Shah", email="priya@example.com")
    eng.id = repo.create_engineer(eng)
    return eng


@pytest.fixture
def van(repo, engineer):
    loc = Location(name="Priya's Van", code="VAN-01", type="van",
                   engineer_id=engineer.id)
    loc.id = repo.create_location(loc)
    return loc


@pytest.fixture
def engineer_user(repo, engineer, van):
    user = User(
        username="priya",
        display_name="Priya Shah",
        pin_hash=Repository.hash_pin("3456"),
        role="engineer",
        engineer_id=engineer.id,
    )
    user.id = repo.create_user(user)
    return user


@pytest.fixture
def warehouse(repo):
    """The seeded main warehouse."""
    return repo.get_all_locations(location_type="warehouse")[0]


@pytest.fixture
def depot(repo):
    """A second seeded warehouse."""
    return repo.get_all_locations(location_type="warehouse")[1]


@pytest.fixture
def supplier(repo):
    s = Supplier(name="ChargePoint Wholesale", contact_name="Sam",
                 lead_time_days=5)
    s.id = repo.create_supplier(s)
    return s


@pytest.fixture
def items(repo, supplier):
    """Three catalogue items with reorder points."""
    created = []
    for sku, name, cost, reorder in [
        ("CHG-7KW-T2", "7kW Type 2 Charger", 389.00, 4),
        ("RCBO-40A-B", "40A Type B RCBO", 68.50, 8),
        ("CBL-SWA-6", "6mm SWA Cable", 4.10, 0),
    ]:
        item = InventoryItem(
            sku=sku, name=name, default_cost=cost,
            reorder_point=reorder, supplier_id=supplier.id,
        )
        item.id = repo.create_item(item)
        created.append(item)
    return created


@pytest.fixture
def stocked(repo, items, warehouse, admin_user):
    """Book opening stock for every item into the main warehouse."""
    for item, qty in zip(items, (10, 20, 300)):
        repo.record_transaction(InventoryTxn(
            item_id=item.id, location_id=warehouse.id, direction="in",
            qty=qty, reference="Opening stock", created_by=admin_user.id,
        ))
    return items
