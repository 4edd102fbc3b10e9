"""Unit normalizer: cartons plus loose pieces to a single piece count."""
from decimal import Decimal
from typing import Optional

from tradedesk.models import Item, Row

ONE = Decimal('1')


def packing_of(item: Optional[Item]) -> Decimal:
    """Pieces per full carton. 1 when the item is missing or has no packing."""
    if item is None or item.packing < ONE:
        return ONE
    return item.packing


def normalized_qty(row: Row, item: Optional[Item]) -> Decimal:
    """Billable quantity in pieces: full * packing + pcs."""
    return row.full * packing_of(item) + row.pcs


def normalized_bonus_qty(row: Row, item: Optional[Item]) -> Decimal:
    """Free-goods quantity in pieces: bonus_full * packing + bonus_pcs."""
    return row.bonus_full * packing_of(item) + row.bonus_pcs
