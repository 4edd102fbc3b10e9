"""Line item (row) records for transaction forms."""
import enum
from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Any, Dict, Optional

from tradedesk.utils.number_format import ZERO, decimal_str, to_non_negative, to_optional_id


class TransactionKind(str, enum.Enum):
    """Document type a form is editing. Drives tax, rounding and checks."""
    PURCHASE = 'purchase'
    SALE = 'sale'
    SALE_RETURN = 'sale_return'


class FormMode(str, enum.Enum):
    """Whether the form creates a new document or edits a stored one."""
    CREATE = 'create'
    EDIT = 'edit'


# Fields the user may type into. Everything else on a row is derived or set by the engine.
EDITABLE_FIELDS = ('full', 'pcs', 'bonus_full', 'bonus_pcs', 'rate', 'discount_percent', 'tax_percent')
NUMERIC_FIELDS = EDITABLE_FIELDS + ('last_purchase_rate', 'sold_full', 'sold_pcs')


@dataclass(frozen=True)
class Row:
    """
    One editable line of a transaction form.

    row_id is form-local and never sent to the backend. Amounts are not
    stored here; they are derived on every recompute.
    """

    row_id: int
    item_id: Optional[int] = None
    full: Decimal = ZERO
    pcs: Decimal = ZERO
    bonus_full: Decimal = ZERO
    bonus_pcs: Decimal = ZERO
    rate: Decimal = ZERO
    discount_percent: Decimal = ZERO
    tax_percent: Decimal = ZERO
    last_purchase_rate: Decimal = ZERO
    sold_full: Decimal = ZERO
    sold_pcs: Decimal = ZERO

    @classmethod
    def build(cls, row_id: int, item_id: Optional[int] = None, **values: Any) -> 'Row':
        """Create a row, coercing every numeric value (bad input becomes 0)."""
        numbers = {name: to_non_negative(values.get(name)) for name in NUMERIC_FIELDS}
        return cls(row_id=row_id, item_id=to_optional_id(item_id), **numbers)

    def with_values(self, **values: Any) -> 'Row':
        """Return a copy with the given numeric fields coerced and replaced."""
        changes = {name: to_non_negative(value) for name, value in values.items() if name in NUMERIC_FIELDS}
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {'row_id': self.row_id, 'item_id': self.item_id}
        for name in NUMERIC_FIELDS:
            data[name] = decimal_str(getattr(self, name))
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Row':
        numbers = {name: data.get(name) for name in NUMERIC_FIELDS}
        return cls.build(int(data['row_id']), data.get('item_id'), **numbers)


@dataclass(frozen=True)
class RowView:
    """A row together with everything derived from it."""

    row: Row
    normalized_qty: Decimal = ZERO
    normalized_bonus_qty: Decimal = ZERO
    amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    line_total: Decimal = ZERO
    stock_exceeded: bool = False
    is_loss: bool = False
    high_rate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = self.row.to_dict()
        for f in fields(self):
            if f.name == 'row':
                continue
            value = getattr(self, f.name)
            data[f.name] = decimal_str(value) if isinstance(value, Decimal) else value
        return data
