"""Catalog snapshot records received from the backend at form load."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from tradedesk.utils.number_format import ZERO, to_decimal, to_non_negative, to_optional_id

PRICE_TIER_KEYS = ('pt2', 'pt3', 'pt4', 'pt5', 'pt6', 'pt7')


@dataclass(frozen=True)
class Item:
    """Item master data. Read-only to the engine."""

    id: int
    title: str
    packing: Decimal = Decimal('1')
    trade_price: Decimal = ZERO
    retail_price: Decimal = ZERO
    price_tiers: Dict[str, Decimal] = field(default_factory=dict)
    discount_percent: Decimal = ZERO
    tax_percent: Decimal = ZERO
    stock: Decimal = ZERO
    short_name: str = ''
    company: str = ''

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Item':
        """Build an Item from a backend row, defaulting every missing number."""
        packing = to_decimal(data.get('packing_full')) or to_decimal(data.get('packing_qty'))
        if packing < 1:
            packing = Decimal('1')

        return cls(
            id=int(data['id']),
            title=str(data.get('title') or ''),
            packing=packing,
            trade_price=to_non_negative(data.get('trade_price')),
            retail_price=to_non_negative(data.get('retail')),
            price_tiers={key: to_non_negative(data.get(key)) for key in PRICE_TIER_KEYS},
            discount_percent=to_non_negative(data.get('discount')),
            tax_percent=to_non_negative(data.get('gst_percent')),
            stock=to_decimal(data.get('stock_1')),
            short_name=str(data.get('short_name') or ''),
            company=str(data.get('company') or ''),
        )

    @property
    def reference_prices(self) -> List[Decimal]:
        """Non-zero retail and price-tier points."""
        prices = [self.retail_price, *self.price_tiers.values()]
        return [price for price in prices if price > 0]


@dataclass(frozen=True)
class Account:
    """Customer or supplier account."""

    id: int
    title: str
    code: str = ''
    credit_limit: Optional[Decimal] = None
    credit_days: int = 0
    markup_percent: Decimal = ZERO
    price_tier: Optional[str] = None
    salesman_id: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Account':
        raw_limit = data.get('credit_limit')
        tier = data.get('price_tier') or data.get('category')
        return cls(
            id=int(data['id']),
            title=str(data.get('title') or ''),
            code=str(data.get('code') or ''),
            credit_limit=None if raw_limit in (None, '') else to_decimal(raw_limit),
            credit_days=int(to_decimal(data.get('aging_days'))),
            markup_percent=to_non_negative(data.get('markup_percent')),
            price_tier=str(tier) if tier in PRICE_TIER_KEYS else None,
            salesman_id=to_optional_id(data.get('saleman_id')),
        )


@dataclass(frozen=True)
class NamedOption:
    """Salesman, firm or message line: an id with a display label."""

    id: int
    label: str

    @classmethod
    def from_api(cls, data: Dict[str, Any], *label_keys: str) -> 'NamedOption':
        label = next((data[key] for key in label_keys if data.get(key)), data.get('id'))
        return cls(id=int(data['id']), label=str(label))


@dataclass(frozen=True)
class CatalogSnapshot:
    """Everything a transaction form needs from the catalog, frozen at load."""

    items: List[Item] = field(default_factory=list)
    accounts: List[Account] = field(default_factory=list)
    salesmen: List[NamedOption] = field(default_factory=list)
    firms: List[NamedOption] = field(default_factory=list)
    message_lines: List[NamedOption] = field(default_factory=list)
    next_invoice_number: str = ''

    def __post_init__(self):
        object.__setattr__(self, '_items_by_id', {item.id: item for item in self.items})
        object.__setattr__(self, '_accounts_by_id', {account.id: account for account in self.accounts})

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'CatalogSnapshot':
        return cls(
            items=[Item.from_api(row) for row in data.get('items') or []],
            accounts=[Account.from_api(row) for row in data.get('accounts') or []],
            salesmen=[NamedOption.from_api(row, 'name', 'shortname') for row in data.get('salemans') or []],
            firms=[NamedOption.from_api(row, 'name', 'title') for row in data.get('firms') or []],
            message_lines=[NamedOption.from_api(row, 'messageline') for row in data.get('messageLines') or []],
            next_invoice_number=str(data.get('nextInvoiceNo') or ''),
        )

    def find_item(self, item_id: Optional[int]) -> Optional[Item]:
        if item_id is None:
            return None
        return self._items_by_id.get(item_id)

    def find_account(self, account_id: Optional[int]) -> Optional[Account]:
        if account_id is None:
            return None
        return self._accounts_by_id.get(account_id)
