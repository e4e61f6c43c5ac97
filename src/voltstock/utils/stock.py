"""Low-stock detection.

A single predicate decides whether stock is low: the on-hand quantity is at
or below a positive reorder point. Everything that flags low stock (the
dashboard, the items page, the low-stock report) goes through
:func:`find_low_stock` with an explicit scope.
"""

from collections import defaultdict

from voltstock.database.models import LowStockRow
from voltstock.utils.constants import LOW_STOCK_SCOPES


def is_low_stock(on_hand: int, reorder_point: int) -> bool:
    """True when a reorder point is set and on-hand is at or below it."""
    return reorder_point > 0 and on_hand <= reorder_point


def find_low_stock(items, balances, locations, scope: str = "any"):
    """Return a list of LowStockRow for items that are low in ``scope``.

    Args:
        items: iterable of InventoryItem (inactive items are skipped).
        balances: iterable of StockBalance rows.
        locations: iterable of Location, used for the 'van' filter.
        scope: 'any', 'van' or 'total'.

    For 'any' and 'van' only (item, location) pairs with a ledger row are
    examined. For 'total' every active item is examined and an item with
    no ledger rows counts as zero on hand.
    """
    if scope not in LOW_STOCK_SCOPES:
        raise ValueError(f"Unknown low stock scope: {scope}")

    items_by_id = {
        i.id: i for i in items if i.is_active and i.reorder_point > 0
    }
    location_by_id = {loc.id: loc for loc in locations}
    rows = []

    if scope == "total":
        totals = defaultdict(int)
        for bal in balances:
            totals[bal.item_id] += bal.on_hand
        for item in items_by_id.values():
            on_hand = totals.get(item.id, 0)
            if is_low_stock(on_hand, item.reorder_point):
                rows.append(LowStockRow(
                    item_id=item.id,
                    item_sku=item.sku,
                    item_name=item.name,
                    on_hand=on_hand,
                    reorder_point=item.reorder_point,
                ))
        return sorted(rows, key=lambda r: (-r.shortfall, r.item_sku))

    for bal in balances:
        item = items_by_id.get(bal.item_id)
        if item is None:
            continue
        loc = location_by_id.get(bal.location_id)
        if scope == "van" and (loc is None or not loc.is_van):
            continue
        if is_low_stock(bal.on_hand, item.reorder_point):
            rows.append(LowStockRow(
                item_id=item.id,
                item_sku=item.sku,
                item_name=item.name,
                location_id=bal.location_id,
                location_name=loc.name if loc else bal.location_name,
                on_hand=bal.on_hand,
                reorder_point=item.reorder_point,
            ))
    return sorted(rows, key=lambda r: (-r.shortfall, r.item_sku,
                                       r.location_name))
