"""
Transaction form state - pure reducer and view derivation.

Every user action goes through apply_action(state, action, catalog) and
returns a new DraftState; derive_view() then recomputes amounts, totals and
flags from scratch. Nothing derived is ever stored on the state.
"""
from dataclasses import replace
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from tradedesk.exceptions import BusinessLogicError
from tradedesk.models import (
    CatalogSnapshot, DraftState, EDITABLE_FIELDS, FormMode, FormView, InvoiceHeader,
    Item, Row, RowView, TransactionKind,
)
from tradedesk.services.totals_service import calculate_totals, compute_line, is_over_credit_limit
from tradedesk.services.unit_normalizer import normalized_bonus_qty, normalized_qty
from tradedesk.services import validation_service
from tradedesk.utils.number_format import ZERO, to_decimal, to_optional_id

HUNDRED = Decimal('100')

Action = Dict[str, Any]


def new_draft(kind: TransactionKind, mode: FormMode = FormMode.CREATE,
              invoice_number: str = '') -> DraftState:
    """Fresh form with a single empty row."""
    state = DraftState(kind=kind, mode=mode, header=InvoiceHeader.today(invoice_number))
    return _reset(state, {}, None)


def item_rows(state: DraftState) -> List[Row]:
    """Rows with an item attached; placeholder rows are skipped."""
    return [row for row in state.rows if row.item_id is not None]


# ---------------------------------------------------------------------------
# Row defaults
# ---------------------------------------------------------------------------

def _default_rate(state: DraftState, item: Item) -> Decimal:
    if state.kind is TransactionKind.PURCHASE:
        return item.trade_price or item.retail_price

    tier = state.header.price_tier
    if tier and item.price_tiers.get(tier, ZERO) > 0:
        return item.price_tiers[tier]
    return item.retail_price or item.trade_price


def _default_tax(state: DraftState, item: Item) -> Decimal:
    if state.kind is TransactionKind.PURCHASE and state.mode is FormMode.CREATE:
        return ZERO
    return item.tax_percent


def _allocate_ids(state: DraftState, count: int) -> Tuple[List[int], DraftState]:
    ids = list(range(state.next_row_id, state.next_row_id + count))
    return ids, replace(state, next_row_id=state.next_row_id + count)


def _replace_row(state: DraftState, row_id: Any, change: Callable[[Row], Row]) -> DraftState:
    try:
        row_id = int(row_id)
    except (TypeError, ValueError):
        return state
    rows = tuple(change(row) if row.row_id == row_id else row for row in state.rows)
    return replace(state, rows=rows)


def _percent_from_amount(amount: Any, subtotal: Decimal) -> Decimal:
    if subtotal <= 0:
        return ZERO
    return to_decimal(amount) / subtotal * HUNDRED


# ---------------------------------------------------------------------------
# Action handlers
# ---------------------------------------------------------------------------

def _add_row(state: DraftState, action: Action, catalog: CatalogSnapshot) -> DraftState:
    (row_id,), state = _allocate_ids(state, 1)
    return replace(state, rows=(Row(row_id=row_id),) + state.rows)


def _remove_row(state: DraftState, action: Action, catalog: CatalogSnapshot) -> DraftState:
    row_id = action.get('row_id')
    return replace(state, rows=tuple(row for row in state.rows if str(row.row_id) != str(row_id)))


def _update_row(state: DraftState, action: Action, catalog: CatalogSnapshot) -> DraftState:
    values = action.get('values') or {}
    editable = {name: value for name, value in values.items() if name in EDITABLE_FIELDS}
    return _replace_row(state, action.get('row_id'), lambda row: row.with_values(**editable))


def _select_item(state: DraftState, action: Action, catalog: CatalogSnapshot) -> DraftState:
    item = catalog.find_item(to_optional_id(action.get('item_id')))
    if item is None:
        return state

    def attach(row: Row) -> Row:
        return replace(row, item_id=item.id).with_values(
            rate=_default_rate(state, item),
            discount_percent=item.discount_percent,
            tax_percent=_default_tax(state, item),
            last_purchase_rate=ZERO,
        )

    return _replace_row(state, action.get('row_id'), attach)


def _set_last_purchase_rate(state: DraftState, action: Action, catalog: CatalogSnapshot) -> DraftState:
    rate = action.get('rate')
    return _replace_row(state, action.get('row_id'), lambda row: row.with_values(last_purchase_rate=rate))


def _load_all_items(state: DraftState, action: Action, catalog: CatalogSnapshot) -> DraftState:
    ids, state = _allocate_ids(state, len(catalog.items))
    rows = tuple(
        Row.build(
            row_id,
            item.id,
            rate=_default_rate(state, item),
            discount_percent=item.discount_percent,
            tax_percent=_default_tax(state, item),
        )
        for row_id, item in zip(ids, catalog.items)
    )
    return replace(state, rows=rows)


def _reset(state: DraftState, action: Action, catalog: Optional[CatalogSnapshot]) -> DraftState:
    (row_id,), state = _allocate_ids(state, 1)
    return replace(state, rows=(Row(row_id=row_id),))


def _load_lines(state: DraftState, action: Action, catalog: CatalogSnapshot) -> DraftState:
    """
    Load the lines of a stored document.

    Edit flows get quantities back and percentages recovered from the stored
    amounts. A return starts from the original sale with zero return
    quantities; what was sold is kept for display.
    """
    lines = action.get('lines') or []
    ids, state = _allocate_ids(state, len(lines))
    rows = []
    for row_id, line in zip(ids, lines):
        item = catalog.find_item(to_optional_id(line.get('item_id')))
        rate = line.get('rate', line.get('trade_price'))

        if state.kind is TransactionKind.SALE_RETURN:
            rows.append(Row.build(
                row_id,
                line.get('item_id'),
                rate=rate,
                discount_percent=item.discount_percent if item else ZERO,
                tax_percent=item.tax_percent if item else ZERO,
                sold_full=line.get('qty_carton'),
                sold_pcs=line.get('qty_pcs'),
            ))
            continue

        subtotal = to_decimal(line.get('subtotal'))
        rows.append(Row.build(
            row_id,
            line.get('item_id'),
            full=line.get('qty_carton'),
            pcs=line.get('qty_pcs'),
            bonus_full=line.get('bonus_qty_carton'),
            bonus_pcs=line.get('bonus_qty_pcs'),
            rate=rate,
            discount_percent=_percent_from_amount(line.get('discount'), subtotal),
            tax_percent=_percent_from_amount(line.get('gst_amount'), subtotal),
        ))

    if not rows:
        return _reset(state, action, catalog)
    return replace(state, rows=tuple(rows))


def _set_header(state: DraftState, action: Action, catalog: CatalogSnapshot) -> DraftState:
    values = dict(action.get('values') or {})

    if 'account_id' in values:
        account = catalog.find_account(to_optional_id(values['account_id']))
        if account is not None:
            values.setdefault('credit_limit', account.credit_limit)
            values.setdefault('markup_percent', account.markup_percent)
            values.setdefault('price_tier', account.price_tier)
            if account.salesman_id and not state.header.salesman_id:
                values.setdefault('salesman_id', account.salesman_id)
        else:
            values.setdefault('credit_limit', None)
            values.setdefault('markup_percent', 0)
            values.setdefault('price_tier', None)

    return replace(state, header=state.header.with_values(**values))


_HANDLERS: Dict[str, Callable[[DraftState, Action, CatalogSnapshot], DraftState]] = {
    'add_row': _add_row,
    'remove_row': _remove_row,
    'update_row': _update_row,
    'select_item': _select_item,
    'set_last_purchase_rate': _set_last_purchase_rate,
    'load_all_items': _load_all_items,
    'reset': _reset,
    'load_lines': _load_lines,
    'set_header': _set_header,
}


def apply_action(state: DraftState, action: Action, catalog: CatalogSnapshot) -> DraftState:
    """Apply one user action and return the new state. The input state is never mutated."""
    action_type = action.get('type')
    handler = _HANDLERS.get(action_type)
    if handler is None:
        raise BusinessLogicError(f'Unknown form action: {action_type}')
    return handler(state, action, catalog)


# ---------------------------------------------------------------------------
# View
# ---------------------------------------------------------------------------

def derive_view(state: DraftState, catalog: CatalogSnapshot) -> FormView:
    """Recompute every row amount, flag and invoice total from the current state."""
    kind = state.kind
    overstocked = (
        validation_service.overstocked_items(state.rows, catalog)
        if validation_service.checks_stock(kind) else set()
    )

    views = []
    lines = []
    for row in state.rows:
        item = catalog.find_item(row.item_id)
        line = compute_line(row, item, kind, state.mode)
        lines.append(line)
        views.append(RowView(
            row=row,
            normalized_qty=normalized_qty(row, item),
            normalized_bonus_qty=normalized_bonus_qty(row, item),
            amount=line.amount,
            discount_amount=line.discount_amount,
            tax_amount=line.tax_amount,
            line_total=line.line_total,
            stock_exceeded=item is not None and item.id in overstocked,
            is_loss=validation_service.checks_loss(kind) and validation_service.is_loss(row, item),
            high_rate=(
                item is not None
                and validation_service.checks_purchase_rate(kind)
                and validation_service.is_high_rate(row)
            ),
        ))

    header = state.header
    totals = calculate_totals(
        lines,
        kind,
        freight=header.freight,
        previous_balance=header.previous_balance,
        cash_received=header.cash_received,
    )

    return FormView(
        kind=kind,
        mode=state.mode,
        header=header,
        rows=views,
        totals=totals,
        over_credit_limit=is_over_credit_limit(totals, header.credit_limit),
    )


def load_document(state: DraftState, document: Dict[str, Any], catalog: CatalogSnapshot) -> DraftState:
    """
    Fill a form from a stored document.

    Edits take the whole header over. A sale return only inherits the
    customer and salesman of the sale it reverses, and keeps its own number.
    """
    values: Dict[str, Any] = {
        'account_id': document.get('supplier_id') or document.get('customer_id'),
        'salesman_id': document.get('salesman_id'),
        'firm_id': document.get('firm_id'),
        'message_line_id': document.get('message_line_id'),
    }
    if state.kind is not TransactionKind.SALE_RETURN:
        values.update(
            date=str(document.get('date') or '')[:10],
            invoice_number=document.get('invoice'),
            code=document.get('code'),
            print_format=document.get('print_format'),
            freight=document.get('courier_charges'),
            cash_received=document.get('paid_amount'),
            invoice_id=document.get('id'),
        )

    state = apply_action(state, {'type': 'set_header', 'values': values}, catalog)
    return apply_action(state, {'type': 'load_lines', 'lines': document.get('items') or []}, catalog)
