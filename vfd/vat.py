'''
VAT categories recognised by the VFD server.

There are five categories, identified by a letter (A-E) and a numeric code (1-5).
Only the standard category (A) carries a non zero rate. An unknown code is not
an error, it resolves to the standard category.
'''
from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP

STANDARD_VAT_ID = "A"
STANDARD_VAT_RATE = 18.00
STANDARD_VAT_CODE = 1
SPECIAL_VAT_ID = "B"
SPECIAL_VAT_RATE = 0.00
SPECIAL_VAT_CODE = 2
ZERO_VAT_ID = "C"
ZERO_VAT_RATE = 0.00
ZERO_VAT_CODE = 3
SPECIAL_RELIEF_VAT_ID = "D"
SPECIAL_RELIEF_VAT_RATE = 0.00
SPECIAL_RELIEF_VAT_CODE = 4
EXEMPTED_VAT_ID = "E"
EXEMPTED_VAT_RATE = 0.00
EXEMPTED_VAT_CODE = 5

TAXABLE_ITEM_CODE = 1
TAXABLE_ITEM_ID = "A"
NON_TAXABLE_ITEM_CODE = 3
NON_TAXABLE_ITEM_ID = "C"


def round_off(value: float) -> float:
    '''
    Round to 2 decimal places, halves away from zero.

    Same as round(value*100)/100 with a half-away-from-zero round. Python's
    builtin round() rounds halves to even, which is not what the VFD server does.
    '''
    cents = Decimal(value * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return float(cents) / 100


class ValueAddedTax(namedtuple("ValueAddedTax", ["id", "code", "name", "percentage"])):
    __slots__ = ()

    def net_amount(self, total_amount: float) -> float:
        """Amount collected by the seller without the VAT, rounded to 2 decimal places."""
        rate = 1.00 + (self.percentage / 100)
        return round_off(total_amount / rate)

    def amount(self, total_amount: float) -> float:
        """VAT charged to the buyer: what is left of total_amount after the rounded net amount."""
        return round_off(total_amount - self.net_amount(total_amount))

    @property
    def report_rate_id(self) -> str:
        return f"{self.id}-{self.percentage:.2f}"


STANDARD_VAT = ValueAddedTax(STANDARD_VAT_ID, STANDARD_VAT_CODE, "Standard ValueAddedTax", STANDARD_VAT_RATE)
SPECIAL_VAT = ValueAddedTax(SPECIAL_VAT_ID, SPECIAL_VAT_CODE, "Special ValueAddedTax", SPECIAL_VAT_RATE)
ZERO_VAT = ValueAddedTax(ZERO_VAT_ID, ZERO_VAT_CODE, "Zero ValueAddedTax", ZERO_VAT_RATE)
SPECIAL_RELIEF_VAT = ValueAddedTax(
    SPECIAL_RELIEF_VAT_ID, SPECIAL_RELIEF_VAT_CODE, "Special Relief ValueAddedTax", SPECIAL_RELIEF_VAT_RATE
)
EXEMPTED_VAT = ValueAddedTax(EXEMPTED_VAT_ID, EXEMPTED_VAT_CODE, "Exempted ValueAddedTax", EXEMPTED_VAT_RATE)

# ordered A to E, the order Z reports list them in
VAT_CATEGORIES = (STANDARD_VAT, SPECIAL_VAT, ZERO_VAT, SPECIAL_RELIEF_VAT, EXEMPTED_VAT)

_BY_CODE = {vat.code: vat for vat in VAT_CATEGORIES}


def parse_tax_code(code: int) -> ValueAddedTax:
    """Resolve a tax code to its category. Unknown codes give the standard category."""
    return _BY_CODE.get(code, STANDARD_VAT)


def vat_rate(tax_code: int) -> float:
    return parse_tax_code(tax_code).percentage


def vat_id(tax_code: int) -> str:
    '''
    Returns "A" for standard VAT, "B" for special VAT, "C" for zero VAT,
    "D" for special relief and "E" for exempted VAT.
    '''
    return parse_tax_code(tax_code).id


def net_amount(tax_code: int, price: float) -> float:
    '''
    Net price of a product of a certain VAT category, rounded to 2 decimal places.

    price = net_price + net_price * (vat_rate / 100)
    '''
    return parse_tax_code(tax_code).net_amount(price)


def vat_amount(tax_code: int, price: float) -> float:
    """VAT charged on price, computed as the remainder after the rounded net amount."""
    return parse_tax_code(tax_code).amount(price)


def report_tax_rate_id(tax_code: int) -> str:
    '''
    Rate id used in Z reports, "A-18.00" for standard VAT, "C-0.00" for zero VAT and so on.
    '''
    return parse_tax_code(tax_code).report_rate_id
