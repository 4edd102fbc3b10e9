"""Models package - exports the engine's records."""
from tradedesk.models.catalog import Item, Account, NamedOption, CatalogSnapshot, PRICE_TIER_KEYS
from tradedesk.models.line_item import TransactionKind, FormMode, Row, RowView, EDITABLE_FIELDS
from tradedesk.models.invoice import (
    InvoiceHeader, InvoiceTotals, PriceUpdateCandidate, DraftState, FormView, PRINT_FORMATS
)

__all__ = [
    # Catalog
    'Item', 'Account', 'NamedOption', 'CatalogSnapshot', 'PRICE_TIER_KEYS',
    # Rows
    'TransactionKind', 'FormMode', 'Row', 'RowView', 'EDITABLE_FIELDS',
    # Invoice
    'InvoiceHeader', 'InvoiceTotals', 'PriceUpdateCandidate', 'DraftState', 'FormView', 'PRINT_FORMATS',
]
