"""
Unit tests for VAT categories and rounding

Covers:
1. round_off - half away from zero, idempotent on 2 decimal values
2. net_amount / vat_amount - net plus tax gives back the amount
3. Category lookup - unknown codes fall back to the standard category
4. report_tax_rate_id - "A-18.00" style ids used in Z reports
"""

import unittest
import sys
import os

# Add parent directory to path to import the vfd module
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from vfd.vat import (
    EXEMPTED_VAT,
    NON_TAXABLE_ITEM_CODE,
    STANDARD_VAT,
    TAXABLE_ITEM_CODE,
    VAT_CATEGORIES,
    net_amount,
    parse_tax_code,
    report_tax_rate_id,
    round_off,
    vat_amount,
    vat_id,
    vat_rate,
)


class TestRoundOff(unittest.TestCase):

    def test_rounds_to_two_decimals(self):
        self.assertEqual(round_off(4237.288135593), 4237.29)
        self.assertEqual(round_off(762.7100000000002), 762.71)

    def test_halves_round_away_from_zero(self):
        # builtin round() would give 0.12 here
        self.assertEqual(round_off(0.125), 0.13)
        self.assertEqual(round_off(-0.125), -0.13)
        self.assertEqual(round_off(2.5), 2.5)

    def test_idempotent(self):
        """Rounding an already rounded value changes nothing."""
        for value in [0.0, 0.01, 1.1, 19.99, 762.71, 4237.29, 8474.58, 1525.42, 1000000.0, -45.67]:
            with self.subTest(value=value):
                once = round_off(value)
                self.assertEqual(once, value)
                self.assertEqual(round_off(once), once)

    def test_idempotent_after_rounding(self):
        for value in [1 / 3, 2 / 3, 10000 / 1.18, 5000 / 1.18, 123.456789]:
            with self.subTest(value=value):
                once = round_off(value)
                self.assertEqual(round_off(once), once)


class TestTaxSplit(unittest.TestCase):

    def test_reconstruction(self):
        """net + tax gives back the amount, to the cent, for every category."""
        amounts = [0.01, 1.0, 99.99, 118.0, 1000.0, 5000.0, 10000.0, 12345.67, 999999.99]
        for category in VAT_CATEGORIES:
            for amount in amounts:
                with self.subTest(code=category.code, amount=amount):
                    net = net_amount(category.code, amount)
                    tax = vat_amount(category.code, amount)
                    self.assertAlmostEqual(net + tax, amount, places=2)

    def test_standard_rate_split(self):
        self.assertEqual(net_amount(TAXABLE_ITEM_CODE, 5000), 4237.29)
        self.assertEqual(vat_amount(TAXABLE_ITEM_CODE, 5000), 762.71)
        self.assertEqual(net_amount(TAXABLE_ITEM_CODE, 10000), 8474.58)
        self.assertEqual(vat_amount(TAXABLE_ITEM_CODE, 10000), 1525.42)

    def test_zero_rate_has_no_tax(self):
        self.assertEqual(net_amount(NON_TAXABLE_ITEM_CODE, 5000), 5000.0)
        self.assertEqual(vat_amount(NON_TAXABLE_ITEM_CODE, 5000), 0.0)

    def test_category_methods(self):
        self.assertEqual(STANDARD_VAT.net_amount(118), 100.0)
        self.assertEqual(STANDARD_VAT.amount(118), 18.0)
        self.assertEqual(EXEMPTED_VAT.amount(118), 0.0)


class TestCategories(unittest.TestCase):

    def test_ids_and_rates(self):
        expected = {1: ("A", 18.0), 2: ("B", 0.0), 3: ("C", 0.0), 4: ("D", 0.0), 5: ("E", 0.0)}
        for code, (letter, rate) in expected.items():
            with self.subTest(code=code):
                self.assertEqual(vat_id(code), letter)
                self.assertEqual(vat_rate(code), rate)

    def test_unknown_code_is_standard(self):
        for code in [0, 6, 99, -1]:
            with self.subTest(code=code):
                self.assertIs(parse_tax_code(code), STANDARD_VAT)

    def test_category_order(self):
        self.assertEqual([c.id for c in VAT_CATEGORIES], ["A", "B", "C", "D", "E"])

    def test_report_tax_rate_id(self):
        self.assertEqual(report_tax_rate_id(TAXABLE_ITEM_CODE), "A-18.00")
        self.assertEqual(report_tax_rate_id(NON_TAXABLE_ITEM_CODE), "C-0.00")
        self.assertEqual(report_tax_rate_id(5), "E-0.00")


if __name__ == '__main__':
    unittest.main()
