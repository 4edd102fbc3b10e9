"""Invoice-level records: header, derived totals, draft state and form view."""
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from tradedesk.models.catalog import PRICE_TIER_KEYS
from tradedesk.models.line_item import FormMode, Row, RowView, TransactionKind
from tradedesk.utils.number_format import ZERO, decimal_str, to_decimal, to_non_negative, to_optional_id

PRINT_FORMATS = ('big', 'small')

_ID_FIELDS = ('account_id', 'salesman_id', 'firm_id', 'message_line_id', 'invoice_id')
_SIGNED_FIELDS = ('freight', 'previous_balance')
_UNSIGNED_FIELDS = ('cash_received', 'markup_percent')


@dataclass(frozen=True)
class InvoiceHeader:
    """Header fields of a transaction form."""

    date: str = ''
    invoice_number: str = ''
    code: str = ''
    account_id: Optional[int] = None
    salesman_id: Optional[int] = None
    firm_id: Optional[int] = None
    message_line_id: Optional[int] = None
    print_format: str = 'big'
    freight: Decimal = ZERO
    previous_balance: Decimal = ZERO
    cash_received: Decimal = ZERO
    markup_percent: Decimal = ZERO
    credit_limit: Optional[Decimal] = None
    price_tier: Optional[str] = None
    invoice_id: Optional[int] = None

    def with_values(self, **values: Any) -> 'InvoiceHeader':
        """Return a copy with the given fields coerced and replaced. Unknown keys are ignored."""
        changes: Dict[str, Any] = {}
        for name, value in values.items():
            if name in _ID_FIELDS:
                changes[name] = to_optional_id(value)
            elif name in _SIGNED_FIELDS:
                changes[name] = to_decimal(value)
            elif name in _UNSIGNED_FIELDS:
                changes[name] = to_non_negative(value)
            elif name == 'credit_limit':
                changes[name] = None if value in (None, '') else to_decimal(value)
            elif name == 'price_tier':
                changes[name] = value if value in PRICE_TIER_KEYS else None
            elif name == 'print_format':
                changes[name] = value if value in PRINT_FORMATS else 'big'
            elif name in ('date', 'invoice_number', 'code'):
                changes[name] = '' if value is None else str(value).strip()
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for name, value in data.items():
            if isinstance(value, Decimal):
                data[name] = decimal_str(value)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InvoiceHeader':
        return cls().with_values(**data)

    @classmethod
    def today(cls, invoice_number: str = '') -> 'InvoiceHeader':
        return cls(date=date.today().isoformat(), invoice_number=invoice_number)


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice aggregates. Always derived, never edited."""

    gross: Decimal = ZERO
    discount_total: Decimal = ZERO
    tax_total: Decimal = ZERO
    freight: Decimal = ZERO
    net: Decimal = ZERO
    previous_balance: Decimal = ZERO
    cash_received: Decimal = ZERO
    total_receivable: Decimal = ZERO

    def to_dict(self) -> Dict[str, str]:
        return {name: decimal_str(value) for name, value in asdict(self).items()}


@dataclass(frozen=True)
class PriceUpdateCandidate:
    """A purchase row whose markup-adjusted rate differs from the catalog trade price."""

    item_id: int
    old_price: Decimal
    new_price: Decimal
    markup_percent: Decimal
    markup_amount: Decimal
    retail_price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {name: decimal_str(value) if isinstance(value, Decimal) else value for name, value in data.items()}


@dataclass(frozen=True)
class DraftState:
    """
    Complete state of one transaction form session.

    Rows keep their on-screen order. next_row_id only ever grows, so a row id
    is never reused within a form.
    """

    kind: TransactionKind
    mode: FormMode = FormMode.CREATE
    rows: Tuple[Row, ...] = ()
    next_row_id: int = 1
    header: InvoiceHeader = field(default_factory=InvoiceHeader)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'mode': self.mode.value,
            'rows': [row.to_dict() for row in self.rows],
            'next_row_id': self.next_row_id,
            'header': self.header.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DraftState':
        return cls(
            kind=TransactionKind(data['kind']),
            mode=FormMode(data.get('mode', FormMode.CREATE.value)),
            rows=tuple(Row.from_dict(row) for row in data.get('rows') or []),
            next_row_id=int(data.get('next_row_id', 1)),
            header=InvoiceHeader.from_dict(data.get('header') or {}),
        )


@dataclass(frozen=True)
class FormView:
    """What the screen renders after every action."""

    kind: TransactionKind
    mode: FormMode
    header: InvoiceHeader
    rows: List[RowView]
    totals: InvoiceTotals
    over_credit_limit: bool = False

    @property
    def stock_exceeded(self) -> bool:
        return any(view.stock_exceeded for view in self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'mode': self.mode.value,
            'header': self.header.to_dict(),
            'rows': [view.to_dict() for view in self.rows],
            'totals': self.totals.to_dict(),
            'over_credit_limit': self.over_credit_limit,
            'stock_exceeded': self.stock_exceeded,
        }
