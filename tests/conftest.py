import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from tradedesk import create_app
from tradedesk.models import CatalogSnapshot, FormMode
from tradedesk.services.backend_client import BackendClient
from tradedesk.services.form_service import apply_action, new_draft


CATALOG_DATA = {
    'items': [
        {
            'id': 1, 'title': 'Biscuits Family Pack', 'short_name': 'BISC', 'company': 'Peek Foods',
            'packing_full': 12, 'trade_price': '100', 'retail': '120', 'pt2': '110', 'pt3': 0,
            'discount': '10', 'gst_percent': '5', 'stock_1': '50',
        },
        {
            'id': 2, 'title': 'Green Tea 100g', 'company': 'Leaf Co',
            'packing_full': None, 'packing_qty': 24, 'trade_price': '200', 'retail': '250',
            'discount': 0, 'gst_percent': 0, 'stock_1': 10,
        },
        {
            'id': 3, 'title': 'Soap Bar', 'packing_full': 0, 'trade_price': '50', 'retail': None,
            'stock_1': '100',
        },
    ],
    'accounts': [
        {
            'id': 1, 'title': 'Alpha Traders', 'code': 'ALP-01', 'credit_limit': '5000',
            'aging_days': 30, 'markup_percent': '20', 'price_tier': 'pt2', 'saleman_id': 2,
        },
        {'id': 2, 'title': 'Beta Store', 'code': 'BET-02', 'credit_limit': None},
    ],
    'salemans': [{'id': 2, 'name': 'Rafiq'}],
    'firms': [{'id': 1, 'name': 'Main Branch'}],
    'messageLines': [{'id': 1, 'messageline': 'Thank you for your business'}],
    'nextInvoiceNo': 'INV-0009',
}


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestingConfig')
    return app


@pytest.fixture(scope='function')
def backend(app):
    """Replace the HTTP backend with a mock."""
    backend = MagicMock(spec=BackendClient)
    backend.fetch_catalog.return_value = CATALOG_DATA
    backend.fetch_last_transaction.return_value = None
    backend.fetch_account_balance.return_value = Decimal('0')
    backend.submit_invoice.return_value = {'id': 501}
    app.extensions['backend'] = backend
    return backend


@pytest.fixture(scope='function')
def client(app, backend):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def catalog():
    return CatalogSnapshot.from_api(CATALOG_DATA)


@pytest.fixture
def fill_rows(catalog):
    """Build a form of the given kind with (item_id, values) rows."""
    def _fill(kind, rows, mode=FormMode.CREATE, header=None):
        state = new_draft(kind, mode, 'INV-0009')
        if header:
            state = apply_action(state, {'type': 'set_header', 'values': header}, catalog)
        for index, (item_id, values) in enumerate(rows):
            if index:
                state = apply_action(state, {'type': 'add_row'}, catalog)
            row_id = state.rows[0].row_id
            state = apply_action(state, {'type': 'select_item', 'row_id': row_id, 'item_id': item_id}, catalog)
            state = apply_action(state, {'type': 'update_row', 'row_id': row_id, 'values': values}, catalog)
        return state
    return _fill
