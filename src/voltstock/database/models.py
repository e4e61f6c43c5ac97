"""Data models for the database layer."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class User:
    id: Optional[int] = None
    username: str = ""
    display_name: str = ""
    pin_hash: str = ""
    role: str = "engineer"  # 'admin', 'manager', 'engineer'
    engineer_id: Optional[int] = None
    is_active: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Engineer:
    id: Optional[int] = None
    name: str = ""
    email: str = ""
    phone: str = ""
    is_active: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Supplier:
    id: Optional[int] = None
    name: str = ""
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    lead_time_days: int = 7
    is_active: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class InventoryItem:
    id: Optional[int] = None
    sku: str = ""
    name: str = ""
    description: str = ""
    unit: str = "each"
    default_cost: float = 0.0
    min_level: int = 0
    max_level: int = 0
    reorder_point: int = 0
    supplier_id: Optional[int] = None
    is_active: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Joined fields (not stored directly)
    supplier_name: str = field(default="", repr=False)
    total_on_hand: int = field(default=0, repr=False)

    @property
    def display_name(self) -> str:
        return self.name or self.sku or "(Unnamed)"


@dataclass
class Location:
    id: Optional[int] = None
    name: str = ""
    code: Optional[str] = None
    type: str = "warehouse"  # 'warehouse', 'van', 'job_site'
    engineer_id: Optional[int] = None
    address: str = ""
    is_active: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Joined fields
    engineer_name: str = field(default="", repr=False)

    @property
    def is_van(self) -> bool:
        return self.type == "van"


@dataclass
class InventoryTxn:
    """A single row of the stock ledger.

    ``qty`` is always positive for ``in``/``out``; for ``adjust`` it carries
    its own sign.
    """
    id: Optional[int] = None
    item_id: int = 0
    location_id: int = 0
    direction: str = "in"  # 'in', 'out', 'adjust'
    qty: int = 0
    reference: str = ""
    notes: str = ""
    status: str = "approved"  # 'pending', 'approved', 'rejected'
    created_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    # Joined fields
    item_sku: str = field(default="", repr=False)
    item_name: str = field(default="", repr=False)
    location_name: str = field(default="", repr=False)
    created_by_name: str = field(default="", repr=False)

    @property
    def signed_qty(self) -> int:
        """Quantity as it contributes to the stock balance."""
        if self.direction == "out":
            return -abs(self.qty)
        if self.direction == "in":
            return abs(self.qty)
        return self.qty


@dataclass
class TxnAudit:
    id: Optional[int] = None
    txn_id: int = 0
    action: str = ""  # 'created', 'approved', 'rejected'
    reason: Optional[str] = None
    performed_by: Optional[int] = None
    performed_at: Optional[datetime] = None
    performed_by_name: str = field(default="", repr=False)


@dataclass
class StockBalance:
    """Derived on-hand quantity of one item at one location."""
    item_id: int = 0
    location_id: int = 0
    on_hand: int = 0
    item_sku: str = ""
    item_name: str = ""
    unit: str = "each"
    reorder_point: int = 0
    location_name: str = ""
    location_type: str = ""


@dataclass
class LowStockRow:
    item_id: int = 0
    item_sku: str = ""
    item_name: str = ""
    location_id: Optional[int] = None  # None for the 'total' scope
    location_name: str = ""
    on_hand: int = 0
    reorder_point: int = 0

    @property
    def shortfall(self) -> int:
        return self.reorder_point - self.on_hand


@dataclass
class StockRequest:
    id: Optional[int] = None
    engineer_id: int = 0
    destination_location_id: int = 0
    source_location_id: Optional[int] = None
    order_ref: str = ""
    priority: str = "medium"  # 'low', 'medium', 'high'
    status: str = "submitted"
    needed_by: Optional[str] = None
    notes: str = ""
    photo_path: Optional[str] = None
    idempotency_key: Optional[str] = None
    purchase_order_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Joined fields
    engineer_name: str = field(default="", repr=False)
    destination_name: str = field(default="", repr=False)
    source_name: str = field(default="", repr=False)
    line_count: int = field(default=0, repr=False)


@dataclass
class StockRequestLine:
    id: Optional[int] = None
    request_id: int = 0
    item_id: int = 0
    qty: int = 0
    notes: str = ""
    created_at: Optional[datetime] = None
    item_sku: str = field(default="", repr=False)
    item_name: str = field(default="", repr=False)


@dataclass
class PurchaseOrder:
    id: Optional[int] = None
    po_number: str = ""
    supplier_id: Optional[int] = None
    status: str = "draft"
    order_date: Optional[str] = None
    expected_delivery_date: Optional[str] = None
    actual_delivery_date: Optional[str] = None
    total_amount: float = 0.0
    notes: str = ""
    stock_request_id: Optional[int] = None
    engineer_id: Optional[int] = None
    amended_at: Optional[datetime] = None
    amended_by: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Joined fields
    supplier_name: str = field(default="", repr=False)
    line_count: int = field(default=0, repr=False)

    @property
    def is_open(self) -> bool:
        return self.status in ("draft", "pending", "approved")

    @property
    def was_amended(self) -> bool:
        return self.amended_at is not None


@dataclass
class PurchaseOrderLine:
    id: Optional[int] = None
    purchase_order_id: int = 0
    item_id: int = 0
    quantity: int = 0
    unit_cost: Optional[float] = None  # None takes the item default cost
    received_quantity: int = 0
    created_at: Optional[datetime] = None
    item_sku: str = field(default="", repr=False)
    item_name: str = field(default="", repr=False)

    @property
    def line_total(self) -> float:
        return self.quantity * (self.unit_cost or 0.0)

    @property
    def outstanding(self) -> int:
        return max(0, self.quantity - self.received_quantity)


@dataclass
class PurchaseReceipt:
    id: Optional[int] = None
    purchase_order_id: int = 0
    po_line_id: int = 0
    quantity_received: int = 0
    location_id: int = 0
    received_by: Optional[int] = None
    received_date: Optional[str] = None
    notes: str = ""
    created_at: Optional[datetime] = None


@dataclass
class AmendmentLine:
    """One row of an amendment preview: what changes for an item."""
    item_id: int = 0
    item_name: str = ""
    old_quantity: int = 0
    new_quantity: int = 0
    unit_cost: float = 0.0

    @property
    def difference(self) -> int:
        return self.new_quantity - self.old_quantity


@dataclass
class AmendmentResult:
    order_id: int = 0
    lines: list = field(default_factory=list)  # list[AmendmentLine]
    total_amount: float = 0.0
    adjustment_txn_ids: list = field(default_factory=list)


@dataclass
class Rma:
    id: Optional[int] = None
    rma_number: str = ""
    item_id: int = 0
    supplier_id: Optional[int] = None
    serial_number: str = ""
    status: str = "pending_return"
    return_reason: str = ""
    return_date: Optional[str] = None
    tracking_number: str = ""
    replacement_expected_date: Optional[str] = None
    replacement_received_date: Optional[str] = None
    replacement_serial_number: str = ""
    notes: str = ""
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Joined fields
    item_sku: str = field(default="", repr=False)
    item_name: str = field(default="", repr=False)
    supplier_name: str = field(default="", repr=False)

    @property
    def is_open(self) -> bool:
        return self.status not in ("closed", "cancelled")


@dataclass
class RmaLine:
    id: Optional[int] = None
    rma_id: int = 0
    item_id: int = 0
    quantity: int = 1
    condition_notes: str = ""
    created_at: Optional[datetime] = None
    item_sku: str = field(default="", repr=False)
    item_name: str = field(default="", repr=False)
