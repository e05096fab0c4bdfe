"""
Unit tests for the request models, payment types and ack codes
"""

import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from vfd.errors import (
    ApplicationRejection,
    NetworkError,
    VFDError,
    is_network_error,
    is_success,
    parse_error_code,
)
from vfd.models import Address, CustomerIDType, Item, Payment, PaymentType, Response, parse_payment


class TestParsePayment(unittest.TestCase):

    def test_numbers(self):
        expected = [PaymentType.CASH, PaymentType.CHEQUE, PaymentType.CCARD, PaymentType.EMONEY, PaymentType.INVOICE]
        for number, payment_type in enumerate(expected, start=1):
            with self.subTest(number=number):
                self.assertIs(parse_payment(number), payment_type)

    def test_names_are_case_insensitive(self):
        self.assertIs(parse_payment("emoney"), PaymentType.EMONEY)
        self.assertIs(parse_payment(" Invoice "), PaymentType.INVOICE)
        self.assertIs(parse_payment(PaymentType.CCARD), PaymentType.CCARD)

    def test_unknown_defaults_to_cash_with_warning(self):
        for value in [0, 6, "MPESA", None, 2.0, True]:
            with self.subTest(value=value):
                with self.assertLogs('vfd.models', level='WARNING'):
                    self.assertIs(parse_payment(value), PaymentType.CASH)

    def test_payment_maps_numbers(self):
        self.assertIs(Payment(4, 100).type, PaymentType.EMONEY)
        self.assertEqual(Payment("CASH", 100).type, "CASH")


class TestModels(unittest.TestCase):

    def test_item_amounts(self):
        item = Item(id="1", description="Sugar", tax_code=1, quantity=5, unit_price=2000, discount=5000)
        self.assertEqual(item.gross_amount, 10000)
        self.assertEqual(item.taxable_amount, 5000)

    def test_address_lines(self):
        address = Address(name="Duka", street="Uhuru St", mobile="0712345678", city="Arusha", country="Tanzania")
        self.assertEqual(address.as_list(), ["DUKA", "UHURU ST", "MOBILE: 0712345678", "ARUSHA,TANZANIA"])

    def test_customer_id_types(self):
        self.assertEqual(int(CustomerIDType.TIN), 1)
        self.assertEqual(int(CustomerIDType.NONE), 6)
        self.assertEqual(int(CustomerIDType.METER_NUMBER), 7)


class TestResponse(unittest.TestCase):

    def test_success(self):
        response = Response(number=31, date="2024-01-15", time="10:30:05", code=0, message="Success")
        self.assertTrue(response.ok)
        self.assertIs(response.raise_for_code(), response)

    def test_rejection_uses_code_table_without_message(self):
        with self.assertRaises(ApplicationRejection) as cm:
            Response(code=3).raise_for_code()
        self.assertEqual(cm.exception.code, 3)
        self.assertEqual(cm.exception.message, "Invalid TIN")
        self.assertIsInstance(cm.exception, VFDError)


class TestErrors(unittest.TestCase):

    def test_parse_error_code(self):
        self.assertEqual(parse_error_code(0), "SUCCESS")
        self.assertEqual(parse_error_code(7), "Invalid client header")
        self.assertEqual(parse_error_code(2), "Unknown error")
        self.assertTrue(is_success(0))
        self.assertFalse(is_success(8))

    def test_network_error(self):
        cause = ConnectionError("refused")
        err = NetworkError("receipt upload: network error", cause)
        self.assertIs(err.err, cause)
        self.assertEqual(str(err), "receipt upload: network error: refused")
        self.assertTrue(is_network_error(err))

    def test_is_network_error_follows_causes(self):
        try:
            try:
                raise NetworkError("fetch token", TimeoutError("slow"))
            except NetworkError as e:
                raise VFDError("wrapped") from e
        except VFDError as wrapped:
            self.assertTrue(is_network_error(wrapped))
        self.assertFalse(is_network_error(ApplicationRejection(None, "boom", status_code=500)))


if __name__ == '__main__':
    unittest.main()
