"""
Line and invoice totals calculator.

Tax and rounding differ per document type and are kept that way on purpose:

- Purchase: whole units for every total. Tax is only charged when editing
  a stored purchase; new purchases carry no tax.
- Sale: two decimals; tax is charged on the gross amount, not net of discount.
- Sale return: two decimals; tax is charged on the discounted amount.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from tradedesk.models import FormMode, InvoiceTotals, Item, Row, TransactionKind
from tradedesk.services.unit_normalizer import normalized_qty
from tradedesk.utils.number_format import ZERO, round_money, round_whole

HUNDRED = Decimal('100')


@dataclass(frozen=True)
class LineAmounts:
    """Monetary figures of a single row."""
    amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    line_total: Decimal = ZERO


def _percent_of(base: Decimal, percent: Decimal) -> Decimal:
    return base * percent / HUNDRED


def _tax_amount(kind: TransactionKind, mode: FormMode, amount: Decimal,
                discount_amount: Decimal, tax_percent: Decimal) -> Decimal:
    if kind is TransactionKind.PURCHASE:
        if mode is FormMode.CREATE:
            return ZERO
        return _percent_of(amount, tax_percent)
    if kind is TransactionKind.SALE_RETURN:
        return _percent_of(amount - discount_amount, tax_percent)
    return _percent_of(amount, tax_percent)


def compute_line(row: Row, item: Optional[Item], kind: TransactionKind,
                 mode: FormMode = FormMode.CREATE) -> LineAmounts:
    """
    Derive a row's amounts.

    Bonus quantities never reach the amount. A row without a known item
    contributes nothing.
    """
    if item is None:
        return LineAmounts()

    amount = normalized_qty(row, item) * row.rate
    discount_amount = _percent_of(amount, row.discount_percent)
    tax_amount = _tax_amount(kind, mode, amount, discount_amount, row.tax_percent)
    line_total = amount - discount_amount + tax_amount

    return LineAmounts(
        amount=amount,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        line_total=line_total,
    )


def calculate_totals(
    lines: Iterable[LineAmounts],
    kind: TransactionKind,
    freight: Decimal = ZERO,
    previous_balance: Decimal = ZERO,
    cash_received: Decimal = ZERO,
) -> InvoiceTotals:
    """Aggregate row amounts into invoice totals using the document type's rounding."""
    gross = ZERO
    discount_total = ZERO
    tax_total = ZERO
    for line in lines:
        gross += line.amount
        discount_total += line.discount_amount
        tax_total += line.tax_amount

    if kind is TransactionKind.PURCHASE:
        gross = round_whole(gross)
        discount_total = round_whole(discount_total)
        tax_total = round_whole(tax_total)
        net = round_whole(gross - discount_total + tax_total + freight)
        total_receivable = round_whole(net + previous_balance - cash_received)
    else:
        net = round_money(gross - discount_total + tax_total + freight)
        gross = round_money(gross)
        discount_total = round_money(discount_total)
        tax_total = round_money(tax_total)
        total_receivable = round_money(net + previous_balance - cash_received)

    return InvoiceTotals(
        gross=gross,
        discount_total=discount_total,
        tax_total=tax_total,
        freight=freight,
        net=net,
        previous_balance=previous_balance,
        cash_received=cash_received,
        total_receivable=total_receivable,
    )


def is_over_credit_limit(totals: InvoiceTotals, credit_limit: Optional[Decimal]) -> bool:
    """Advisory only: net above the account's credit limit."""
    if credit_limit is None:
        return False
    return totals.net > credit_limit
