"""
Unit tests for receipt item processing (vfd.items.process_items)
"""

import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from vfd.items import process_items
from vfd.models import Item
from vfd.vat import NON_TAXABLE_ITEM_CODE, TAXABLE_ITEM_CODE


class TestProcessItems(unittest.TestCase):

    def test_discounted_taxable_item(self):
        """Price 2000, quantity 5, discount 5000 leaves 5000 taxable."""
        item = Item(id="1", description="Sugar 1kg", tax_code=TAXABLE_ITEM_CODE,
                    quantity=5, unit_price=2000, discount=5000)
        self.assertEqual(item.taxable_amount, 5000)

        result = process_items([item])

        self.assertEqual(len(result.vat_totals), 1)
        vat = result.vat_totals[0]
        self.assertEqual(vat.vat_rate, "A")
        self.assertAlmostEqual(vat.net_amount, 4237.29, places=2)
        self.assertAlmostEqual(vat.tax_amount, 762.71, places=2)
        self.assertAlmostEqual(result.totals.discount, 5000.00, places=2)
        self.assertAlmostEqual(result.totals.total_tax_incl, 5000.00, places=2)
        self.assertAlmostEqual(result.totals.total_tax_excl, 4237.29, places=2)

    def test_undiscounted_taxable_item(self):
        item = Item(id="1", description="Sugar 1kg", tax_code=TAXABLE_ITEM_CODE,
                    quantity=5, unit_price=2000)

        result = process_items([item])

        vat = result.vat_totals[0]
        self.assertAlmostEqual(vat.net_amount, 8474.58, places=2)
        self.assertAlmostEqual(vat.tax_amount, 1525.42, places=2)
        self.assertAlmostEqual(vat.net_amount + vat.tax_amount, 10000.00, places=2)
        self.assertAlmostEqual(result.totals.total_tax_incl, 10000.00, places=2)
        self.assertAlmostEqual(result.totals.discount, 0.0, places=2)

    def test_rendered_item_carries_gross_amount(self):
        item = Item(id="7", description="Rice", tax_code=TAXABLE_ITEM_CODE,
                    quantity=5, unit_price=2000, discount=5000)

        rendered = process_items([item]).items[0]

        self.assertEqual(rendered.id, "7")
        self.assertEqual(rendered.description, "Rice")
        self.assertEqual(rendered.quantity, 5)
        self.assertEqual(rendered.tax_code, TAXABLE_ITEM_CODE)
        self.assertEqual(rendered.amount, 10000)

    def test_vat_totals_grouped_in_first_seen_order(self):
        items = [
            Item(id="1", description="Bread", tax_code=NON_TAXABLE_ITEM_CODE, quantity=1, unit_price=1500),
            Item(id="2", description="Soda", tax_code=TAXABLE_ITEM_CODE, quantity=2, unit_price=1180),
            Item(id="3", description="Milk", tax_code=NON_TAXABLE_ITEM_CODE, quantity=2, unit_price=2000),
        ]

        result = process_items(items)

        self.assertEqual([item.id for item in result.items], ["1", "2", "3"])
        self.assertEqual([vat.vat_rate for vat in result.vat_totals], ["C", "A"])
        zero, standard = result.vat_totals
        self.assertAlmostEqual(zero.net_amount, 5500.0, places=2)
        self.assertAlmostEqual(zero.tax_amount, 0.0, places=2)
        self.assertAlmostEqual(standard.net_amount, 2000.0, places=2)
        self.assertAlmostEqual(standard.tax_amount, 360.0, places=2)
        self.assertAlmostEqual(result.totals.total_tax_incl, 7860.0, places=2)
        self.assertAlmostEqual(result.totals.total_tax_excl, 7500.0, places=2)

    def test_unknown_tax_code_is_taxed_as_standard(self):
        item = Item(id="1", description="Unknown", tax_code=42, quantity=1, unit_price=118)

        result = process_items([item])

        self.assertEqual(result.vat_totals[0].vat_rate, "A")
        self.assertAlmostEqual(result.vat_totals[0].tax_amount, 18.0, places=2)

    def test_no_items(self):
        result = process_items([])
        self.assertEqual(result.items, [])
        self.assertEqual(result.vat_totals, [])
        self.assertEqual(result.totals.total_tax_incl, 0.0)


if __name__ == '__main__':
    unittest.main()
