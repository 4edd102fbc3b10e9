"""
Unit tests for cross-row validation: stock, loss, purchase rate and price drift.
"""

from decimal import Decimal

from tradedesk.models import CatalogSnapshot, Item, Row, TransactionKind
from tradedesk.services import validation_service
from tradedesk.services.form_service import derive_view


def _drift_catalog(trade_price):
    return CatalogSnapshot(items=[Item(id=7, title='Cooking Oil', trade_price=Decimal(trade_price),
                                       retail_price=Decimal('150'))])


class TestStockOvershoot:
    """Demand is summed across every row of the same item."""

    def test_duplicate_rows_flagged_together(self, catalog, fill_rows):
        # 30 + 25 pieces of an item with 50 in stock
        state = fill_rows(TransactionKind.SALE, [
            (1, {'full': 2, 'pcs': 6}),
            (1, {'full': 2, 'pcs': 1}),
        ])

        view = derive_view(state, catalog)

        assert [v.normalized_qty for v in view.rows] == [Decimal('25'), Decimal('30')]
        assert all(v.stock_exceeded for v in view.rows)
        assert view.stock_exceeded is True

    def test_within_stock_not_flagged(self, catalog, fill_rows):
        state = fill_rows(TransactionKind.SALE, [(1, {'full': 2, 'pcs': 6}), (1, {'pcs': 20})])
        assert not any(v.stock_exceeded for v in derive_view(state, catalog).rows)

    def test_bonus_counts_towards_demand(self, catalog):
        rows = [Row.build(1, 2, pcs=8, bonus_pcs=3)]
        assert validation_service.item_demand(rows, catalog) == {2: Decimal('11')}
        assert validation_service.overstocked_items(rows, catalog) == {2}

    def test_other_items_unaffected(self, catalog, fill_rows):
        state = fill_rows(TransactionKind.SALE, [(2, {'pcs': 11}), (3, {'pcs': 1})])
        flags = {v.row.item_id: v.stock_exceeded for v in derive_view(state, catalog).rows}
        assert flags == {2: True, 3: False}

    def test_purchases_never_check_stock(self, catalog, fill_rows):
        state = fill_rows(TransactionKind.PURCHASE, [(2, {'full': 5})])
        assert not derive_view(state, catalog).stock_exceeded


class TestLossDetection:
    """Loss boundary is strictly below the lowest reference price."""

    def test_rate_equal_to_minimum_is_not_loss(self, catalog):
        assert validation_service.is_loss(Row.build(1, 1, rate=110), catalog.find_item(1)) is False

    def test_rate_below_minimum_is_loss(self, catalog):
        assert validation_service.is_loss(Row.build(1, 1, rate='109.99'), catalog.find_item(1)) is True

    def test_no_reference_prices(self, catalog):
        assert validation_service.is_loss(Row.build(1, 3, rate=1), catalog.find_item(3)) is False

    def test_missing_item(self):
        assert validation_service.is_loss(Row.build(1, 9, rate=1), None) is False

    def test_only_sales_show_loss(self, catalog, fill_rows):
        sale = fill_rows(TransactionKind.SALE, [(1, {'rate': 50})])
        purchase = fill_rows(TransactionKind.PURCHASE, [(1, {'rate': 50})])

        assert derive_view(sale, catalog).rows[0].is_loss is True
        assert derive_view(purchase, catalog).rows[0].is_loss is False


class TestHighRate:

    def test_above_last_purchase(self):
        assert validation_service.is_high_rate(Row.build(1, 1, rate=101, last_purchase_rate=100)) is True

    def test_equal_or_unknown_last_purchase(self):
        assert validation_service.is_high_rate(Row.build(1, 1, rate=100, last_purchase_rate=100)) is False
        assert validation_service.is_high_rate(Row.build(1, 1, rate=100)) is False


class TestPriceDrift:
    """Markup-adjusted rate against the catalog trade price."""

    def test_delta_of_one_cent_not_flagged(self):
        rows = [Row.build(1, 7, rate=100)]
        assert validation_service.detect_price_drift(rows, _drift_catalog('119.99'), Decimal('20')) == []

    def test_delta_above_one_cent_flagged(self):
        rows = [Row.build(1, 7, rate=100)]

        candidates = validation_service.detect_price_drift(rows, _drift_catalog('119.98'), Decimal('20'))

        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.item_id == 7
        assert candidate.old_price == Decimal('119.98')
        assert candidate.new_price == Decimal('120')
        assert candidate.markup_amount == Decimal('20')
        assert candidate.retail_price == Decimal('150')

    def test_delta_just_above_tolerance(self):
        rows = [Row.build(1, 7, rate=100)]
        assert len(validation_service.detect_price_drift(rows, _drift_catalog('119.989'), Decimal('20'))) == 1

    def test_repeated_item_last_row_wins(self):
        rows = [Row.build(1, 7, rate=90), Row.build(2, 7, rate=95)]

        candidates = validation_service.detect_price_drift(rows, _drift_catalog('80'), Decimal('0'))

        assert [c.new_price for c in candidates] == [Decimal('95')]

    def test_rows_without_item_skipped(self):
        rows = [Row(row_id=1), Row.build(2, 42, rate=10)]
        assert validation_service.detect_price_drift(rows, _drift_catalog('1'), Decimal('0')) == []
