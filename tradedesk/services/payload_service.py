"""Submit payload builder - serializes a finished form for the backend."""
from typing import Any, Dict, Iterable, List, Optional

from tradedesk.models import FormView, PriceUpdateCandidate, RowView, TransactionKind
from tradedesk.utils.number_format import decimal_str, round_money


def _counterparty_key(kind: TransactionKind) -> str:
    return 'supplier_id' if kind is TransactionKind.PURCHASE else 'customer_id'


def _row_payload(view: RowView, kind: TransactionKind) -> Dict[str, Any]:
    row = view.row
    total_pcs = view.normalized_qty
    if kind is TransactionKind.SALE:
        # Bonus pieces leave stock on a sale.
        total_pcs += view.normalized_bonus_qty

    return {
        'item_id': row.item_id,
        'qty_carton': decimal_str(row.full),
        'qty_pcs': decimal_str(row.pcs),
        'bonus_qty_carton': decimal_str(row.bonus_full),
        'bonus_qty_pcs': decimal_str(row.bonus_pcs),
        'total_pcs': decimal_str(total_pcs),
        'trade_price': decimal_str(row.rate),
        'discount': decimal_str(round_money(view.discount_amount)),
        'gst_amount': decimal_str(round_money(view.tax_amount)),
        'subtotal': decimal_str(round_money(view.amount)),
    }


def build_submit_payload(
    view: FormView,
    allow_negative_stock: bool = False,
    update_prices: bool = False,
    price_updates: Optional[Iterable[PriceUpdateCandidate]] = None,
) -> Dict[str, Any]:
    """
    Build the document the backend stores.

    Only rows with an item are sent. Discount and tax travel as amounts;
    percentages stay inside the form.
    """
    header = view.header
    totals = view.totals
    rows: List[Dict[str, Any]] = [
        _row_payload(row_view, view.kind) for row_view in view.rows if row_view.row.item_id is not None
    ]

    payload: Dict[str, Any] = {
        'date': header.date,
        'invoice': header.invoice_number,
        'code': header.code,
        _counterparty_key(view.kind): header.account_id,
        'salesman_id': header.salesman_id,
        'firm_id': header.firm_id,
        'message_line_id': header.message_line_id,
        'print_format': header.print_format,
        'no_of_items': len(rows),
        'gross_total': decimal_str(totals.gross),
        'discount_total': decimal_str(totals.discount_total),
        'tax_total': decimal_str(totals.tax_total),
        'courier_charges': decimal_str(totals.freight),
        'net_total': decimal_str(totals.net),
        'previous_balance': decimal_str(totals.previous_balance),
        'paid_amount': decimal_str(totals.cash_received),
        # Unpaid part of this invoice only; the previous balance is already on the ledger.
        'remaining_amount': decimal_str(round_money(totals.net - totals.cash_received)),
        'items': rows,
    }

    if view.kind is TransactionKind.PURCHASE:
        payload['update_prices'] = bool(update_prices)
        payload['price_updates'] = [candidate.to_dict() for candidate in price_updates or ()]
    elif view.kind is TransactionKind.SALE:
        payload['allow_negative_stock'] = bool(allow_negative_stock)

    return payload
