"""Application-wide constants."""

APP_NAME = "VoltStock"
APP_VERSION = "1.0.0"
APP_ORGANIZATION = "VoltStock"

# User roles, highest privilege first
USER_ROLES = ["admin", "manager", "engineer"]

USER_ROLE_LABELS = {
    "admin": "Administrator",
    "manager": "Operations Manager",
    "engineer": "Engineer",
}

# ── Permissions ──────────────────────────────────────────────────
# Each key maps to the roles allowed to use that capability.
ROLE_PERMISSIONS: dict[str, list[str]] = {
    # Tab access
    "tab_dashboard": ["admin", "manager", "engineer"],
    "tab_items": ["admin", "manager"],
    "tab_transactions": ["admin", "manager"],
    "tab_stock_requests": ["admin", "manager", "engineer"],
    "tab_purchase_orders": ["admin", "manager", "engineer"],
    "tab_returns": ["admin", "manager"],
    "tab_my_van": ["engineer"],
    "tab_setup": ["admin", "manager"],
    # Inventory actions
    "items_edit": ["admin", "manager"],
    "items_import": ["admin", "manager"],
    "items_export": ["admin", "manager"],
    "stock_transfer": ["admin", "manager"],
    "stock_adjust": ["admin", "manager"],
    "txns_approve": ["admin"],
    # Requests & orders
    "requests_create": ["admin", "manager", "engineer"],
    "requests_manage": ["admin", "manager"],
    "orders_create": ["admin", "manager"],
    "orders_receive": ["admin", "manager"],
    "orders_amend": ["admin", "manager", "engineer"],
    "rmas_manage": ["admin", "manager"],
    # Setup
    "setup_manage": ["admin", "manager"],
    "users_manage": ["admin"],
}


def role_has_permission(role: str, permission: str) -> bool:
    """Return True when ``role`` is granted ``permission``."""
    return role in ROLE_PERMISSIONS.get(permission, [])


# ── Locations ────────────────────────────────────────────────────
LOCATION_TYPES = ["warehouse", "van", "job_site"]

LOCATION_TYPE_LABELS = {
    "warehouse": "Warehouse",
    "van": "Van",
    "job_site": "Job Site",
}

# ── Stock ledger ─────────────────────────────────────────────────
TXN_DIRECTIONS = ["in", "out", "adjust"]

TXN_DIRECTION_LABELS = {
    "in": "In",
    "out": "Out",
    "adjust": "Adjustment",
}

TXN_STATUSES = ["pending", "approved", "rejected"]

TXN_STATUS_LABELS = {
    "pending": "Pending Approval",
    "approved": "Approved",
    "rejected": "Rejected",
}

# "any": any single location at/below its reorder point
# "van": only van locations are considered
# "total": the item's on-hand summed across all locations
LOW_STOCK_SCOPES = ["any", "van", "total"]

# ── Stock requests ───────────────────────────────────────────────
STOCK_REQUEST_STATUSES = [
    "submitted", "approved", "rejected", "in_pick",
    "in_transit", "delivered", "cancelled",
]

STOCK_REQUEST_STATUS_LABELS = {
    "submitted": "Submitted",
    "approved": "Approved",
    "rejected": "Rejected",
    "in_pick": "Picking",
    "in_transit": "In Transit",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
}

STOCK_REQUEST_TRANSITIONS: dict[str, list[str]] = {
    "submitted": ["approved", "rejected", "cancelled"],
    "approved": ["in_pick", "cancelled"],
    "in_pick": ["in_transit", "cancelled"],
    "in_transit": ["delivered"],
    "rejected": [],
    "delivered": [],
    "cancelled": [],
}

REQUEST_PRIORITIES = ["low", "medium", "high"]

REQUEST_PRIORITY_LABELS = {
    "low": "Low",
    "medium": "Medium",
    "high": "High",
}

# ── Purchase orders ──────────────────────────────────────────────
ORDER_STATUSES = ["draft", "pending", "approved", "received", "cancelled"]

ORDER_STATUS_LABELS = {
    "draft": "Draft",
    "pending": "Pending Approval",
    "approved": "Approved",
    "received": "Received",
    "cancelled": "Cancelled",
}

ORDER_TRANSITIONS: dict[str, list[str]] = {
    "draft": ["pending", "cancelled"],
    "pending": ["approved", "cancelled"],
    "approved": ["received", "cancelled"],
    "received": [],
    "cancelled": [],
}

OPEN_ORDER_STATUSES = ["draft", "pending", "approved"]

# Orders in these statuses may still be amended (if nothing is received)
AMENDABLE_ORDER_STATUSES = ["draft", "pending", "approved"]

AMENDMENT_NOTE_HEADER = "=== AMENDMENT ==="

# ── Returns & RMAs ───────────────────────────────────────────────
RMA_STATUSES = [
    "pending_return", "in_transit", "received_by_supplier",
    "replacement_sent", "replacement_received", "closed", "cancelled",
]

RMA_STATUS_LABELS = {
    "pending_return": "Pending Return",
    "in_transit": "In Transit",
    "received_by_supplier": "Received by Supplier",
    "replacement_sent": "Replacement Sent",
    "replacement_received": "Replacement Received",
    "closed": "Closed",
    "cancelled": "Cancelled",
}

RMA_TRANSITIONS: dict[str, list[str]] = {
    "pending_return": ["in_transit", "cancelled"],
    "in_transit": ["received_by_supplier"],
    "received_by_supplier": ["replacement_sent", "closed"],
    "replacement_sent": ["replacement_received"],
    "replacement_received": ["closed"],
    "closed": [],
    "cancelled": [],
}

# Return reasons
RETURN_REASONS = ["faulty", "damaged", "wrong_item", "doa", "other"]

RETURN_REASON_LABELS = {
    "faulty": "Faulty",
    "damaged": "Damaged in Transit",
    "wrong_item": "Wrong Item",
    "doa": "Dead on Arrival",
    "other": "Other",
}

# Default window size
DEFAULT_WINDOW_WIDTH = 1200
DEFAULT_WINDOW_HEIGHT = 800
MIN_WINDOW_WIDTH = 900
MIN_WINDOW_HEIGHT = 600
