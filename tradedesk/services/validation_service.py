"""
Cross-row validation engine.

Checks here look at the whole row set at once: the same item may sit on more
than one row (normal and promotional rate, for instance) and stock has to be
compared with the combined demand.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from tradedesk.models import CatalogSnapshot, Item, PriceUpdateCandidate, Row, TransactionKind
from tradedesk.services.unit_normalizer import normalized_bonus_qty, normalized_qty
from tradedesk.utils.number_format import ZERO

logger = logging.getLogger(__name__)

PRICE_DRIFT_TOLERANCE = Decimal('0.01')
HUNDRED = Decimal('100')


def item_demand(rows: Iterable[Row], catalog: CatalogSnapshot) -> Dict[int, Decimal]:
    """Pieces requested per item across all rows, bonus included."""
    demand: Dict[int, Decimal] = {}
    for row in rows:
        item = catalog.find_item(row.item_id)
        if item is None:
            continue
        usage = normalized_qty(row, item) + normalized_bonus_qty(row, item)
        demand[item.id] = demand.get(item.id, ZERO) + usage
    return demand


def overstocked_items(rows: Iterable[Row], catalog: CatalogSnapshot) -> Set[int]:
    """Ids of items whose combined demand is above their current stock."""
    exceeded = set()
    for item_id, requested in item_demand(rows, catalog).items():
        item = catalog.find_item(item_id)
        if requested > item.stock:
            exceeded.add(item_id)
    return exceeded


def is_loss(row: Row, item: Optional[Item]) -> bool:
    """Rate strictly below the lowest non-zero reference price of the item."""
    if item is None:
        return False
    prices = item.reference_prices
    if not prices:
        return False
    return row.rate < min(prices)


def is_high_rate(row: Row) -> bool:
    """Purchase rate above the last recorded purchase rate for the item."""
    return row.last_purchase_rate > 0 and row.rate > row.last_purchase_rate


def checks_stock(kind: TransactionKind) -> bool:
    return kind is TransactionKind.SALE


def checks_loss(kind: TransactionKind) -> bool:
    return kind is TransactionKind.SALE


def checks_purchase_rate(kind: TransactionKind) -> bool:
    return kind is TransactionKind.PURCHASE


def detect_price_drift(rows: Iterable[Row], catalog: CatalogSnapshot,
                       markup_percent: Decimal) -> List[PriceUpdateCandidate]:
    """
    Purchase rows whose markup-adjusted rate moved away from the catalog trade price.

    One candidate per item; when an item repeats, the last row wins, the
    same order the backend would apply the updates in.
    """
    candidates: Dict[int, PriceUpdateCandidate] = {}
    for row in rows:
        item = catalog.find_item(row.item_id)
        if item is None:
            continue

        markup_amount = row.rate * markup_percent / HUNDRED
        implied_price = row.rate + markup_amount
        if abs(implied_price - item.trade_price) <= PRICE_DRIFT_TOLERANCE:
            continue

        candidates[item.id] = PriceUpdateCandidate(
            item_id=item.id,
            old_price=item.trade_price,
            new_price=implied_price,
            markup_percent=markup_percent,
            markup_amount=markup_amount,
            retail_price=item.retail_price,
        )

    if candidates:
        logger.info(f"[DRIFT] {len(candidates)} trade price update candidate(s): {sorted(candidates)}")
    return list(candidates.values())
