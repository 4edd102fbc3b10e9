"""
Unit tests for the unit normalizer and the totals calculator.
"""

from decimal import Decimal

from tradedesk.models import FormMode, Item, Row, TransactionKind
from tradedesk.services.totals_service import calculate_totals, compute_line, is_over_credit_limit
from tradedesk.services.unit_normalizer import normalized_bonus_qty, normalized_qty, packing_of

CARTON = Item(id=1, title='Biscuits', packing=Decimal('12'))
LOOSE = Item(id=2, title='Loose', packing=Decimal('1'))


class TestUnitNormalizer:

    def test_cartons_and_pieces(self):
        row = Row.build(1, 1, full=2, pcs=3)
        assert normalized_qty(row, CARTON) == Decimal('27')

    def test_bonus_is_separate(self):
        row = Row.build(1, 1, full=1, bonus_full=1, bonus_pcs=2)
        assert normalized_qty(row, CARTON) == Decimal('12')
        assert normalized_bonus_qty(row, CARTON) == Decimal('14')

    def test_missing_item_packs_by_one(self):
        row = Row.build(1, None, full=2, pcs=3)
        assert packing_of(None) == Decimal('1')
        assert normalized_qty(row, None) == Decimal('5')

    def test_bad_input_counts_as_zero(self):
        row = Row.build(1, 1, full='', pcs='x')
        assert normalized_qty(row, CARTON) == Decimal('0')


class TestComputeLine:
    """Per-row amounts for each document type."""

    def test_bonus_never_billed(self):
        row = Row.build(1, 1, full=1, bonus_full=5, bonus_pcs=7, rate=10)
        assert compute_line(row, CARTON, TransactionKind.SALE).amount == Decimal('120')

    def test_purchase_create_has_no_tax(self):
        row = Row.build(1, 1, full=2, pcs=3, rate=100, discount_percent=10, tax_percent=5)
        line = compute_line(row, CARTON, TransactionKind.PURCHASE, FormMode.CREATE)

        assert line.amount == Decimal('2700')
        assert line.discount_amount == Decimal('270')
        assert line.tax_amount == Decimal('0')

    def test_purchase_edit_taxes_gross_amount(self):
        row = Row.build(1, 1, full=2, pcs=3, rate=100, discount_percent=10, tax_percent=5)
        line = compute_line(row, CARTON, TransactionKind.PURCHASE, FormMode.EDIT)
        assert line.tax_amount == Decimal('135')

    def test_sale_taxes_gross_amount(self):
        row = Row.build(1, 2, pcs=10, rate=100, discount_percent=10, tax_percent=5)
        line = compute_line(row, LOOSE, TransactionKind.SALE)

        assert line.tax_amount == Decimal('50')
        assert line.line_total == Decimal('950')

    def test_sale_return_taxes_discounted_amount(self):
        row = Row.build(1, 2, pcs=10, rate=100, discount_percent=10, tax_percent=5)
        line = compute_line(row, LOOSE, TransactionKind.SALE_RETURN)

        assert line.amount == Decimal('1000')
        assert line.discount_amount == Decimal('100')
        assert line.tax_amount == Decimal('45')
        assert line.line_total == Decimal('945')

    def test_missing_item_contributes_nothing(self):
        row = Row.build(1, 99, full='abc', pcs=4, rate=10)
        line = compute_line(row, None, TransactionKind.SALE)
        assert line.amount == Decimal('0')
        assert line.line_total == Decimal('0')


class TestCalculateTotals:
    """Invoice aggregation and rounding."""

    def test_purchase_scenario(self):
        row = Row.build(1, 1, full=2, pcs=3, rate=100, discount_percent=10)
        line = compute_line(row, CARTON, TransactionKind.PURCHASE)

        totals = calculate_totals([line], TransactionKind.PURCHASE, freight=Decimal('50'))

        assert totals.gross == Decimal('2700')
        assert totals.discount_total == Decimal('270')
        assert totals.net == Decimal('2480')

    def test_purchase_rounds_to_whole_units(self):
        row = Row.build(1, 2, pcs=3, rate='33.35', discount_percent=10)
        line = compute_line(row, LOOSE, TransactionKind.PURCHASE)

        totals = calculate_totals([line], TransactionKind.PURCHASE)

        assert totals.gross == Decimal('100')
        assert totals.discount_total == Decimal('10')
        assert totals.net == Decimal('90')

    def test_purchase_net_and_receivable_are_whole(self):
        row = Row.build(1, 1, full=2, pcs=3, rate=100, discount_percent=10)
        line = compute_line(row, CARTON, TransactionKind.PURCHASE)

        totals = calculate_totals([line], TransactionKind.PURCHASE, freight=Decimal('10.4'),
                                  previous_balance=Decimal('0.3'), cash_received=Decimal('100.2'))

        assert totals.net == Decimal('2440')
        assert totals.total_receivable == Decimal('2340')
        assert totals.net == totals.net.to_integral_value()

    def test_sale_keeps_two_decimals(self):
        row = Row.build(1, 2, pcs=3, rate='33.35', discount_percent=10)
        line = compute_line(row, LOOSE, TransactionKind.SALE)

        totals = calculate_totals([line], TransactionKind.SALE)

        assert totals.gross == Decimal('100.05')
        assert totals.discount_total == Decimal('10.01')
        assert totals.net == Decimal('90.05')

    def test_gross_is_sum_of_amounts(self):
        rows = [Row.build(1, 2, pcs=2, rate=10), Row.build(2, 2, pcs=1, rate='2.5'), Row.build(3, None, pcs=9, rate=9)]
        lines = [compute_line(rows[0], LOOSE, TransactionKind.SALE),
                 compute_line(rows[1], LOOSE, TransactionKind.SALE),
                 compute_line(rows[2], None, TransactionKind.SALE)]

        assert calculate_totals(lines, TransactionKind.SALE).gross == Decimal('22.50')

    def test_freight_moves_net_by_exact_delta(self):
        line = compute_line(Row.build(1, 2, pcs=7, rate='13.3', tax_percent=5), LOOSE, TransactionKind.SALE)

        without = calculate_totals([line], TransactionKind.SALE)
        with_freight = calculate_totals([line], TransactionKind.SALE, freight=Decimal('25.5'))

        assert with_freight.net - without.net == Decimal('25.5')
        assert with_freight.gross == without.gross
        assert with_freight.tax_total == without.tax_total

    def test_total_receivable(self):
        line = compute_line(Row.build(1, 2, pcs=10, rate=100), LOOSE, TransactionKind.SALE)

        totals = calculate_totals(
            [line], TransactionKind.SALE, previous_balance=Decimal('300'), cash_received=Decimal('500')
        )

        assert totals.total_receivable == Decimal('800.00')

    def test_totals_are_idempotent(self):
        line = compute_line(Row.build(1, 1, full=1, pcs=1, rate='9.99', discount_percent=3), CARTON,
                            TransactionKind.SALE)
        assert calculate_totals([line], TransactionKind.SALE) == calculate_totals([line], TransactionKind.SALE)

    def test_empty_invoice(self):
        totals = calculate_totals([], TransactionKind.SALE_RETURN)
        assert totals.net == Decimal('0')
        assert totals.total_receivable == Decimal('0')


class TestCreditLimit:

    def test_no_limit_never_exceeded(self):
        totals = calculate_totals([], TransactionKind.SALE, freight=Decimal('10'))
        assert is_over_credit_limit(totals, None) is False

    def test_net_above_limit(self):
        totals = calculate_totals([], TransactionKind.SALE, freight=Decimal('10'))
        assert is_over_credit_limit(totals, Decimal('9.99')) is True
        assert is_over_credit_limit(totals, Decimal('10')) is False
