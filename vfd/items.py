'''
Line item processing for receipts.

TotalPrice = UnitPrice * Quantity
Amount = TotalPrice - Discount
TaxableAmount + TaxableAmount * TaxRate = Amount
'''
from dataclasses import dataclass, field
from typing import Iterable, List

from .vat import parse_tax_code


@dataclass
class RenderedItem:
    """An ITEM line of a receipt. amount is the gross amount, before the discount."""

    id: str
    description: str
    quantity: float
    tax_code: int
    amount: float


@dataclass
class VatTotal:
    '''
    Running VAT total of one category. vat_rate holds the category id for
    receipts and the "A-18.00" style rate id for Z reports.
    '''

    vat_rate: str
    net_amount: float = 0.0
    tax_amount: float = 0.0


@dataclass
class Totals:
    total_tax_excl: float = 0.0
    total_tax_incl: float = 0.0
    discount: float = 0.0


@dataclass
class ItemProcessResult:
    items: List[RenderedItem] = field(default_factory=list)
    vat_totals: List[VatTotal] = field(default_factory=list)
    totals: Totals = field(default_factory=Totals)


def process_items(items: Iterable) -> ItemProcessResult:
    '''
    Processes the items of a receipt request.

    Returns the ITEM lines in input order, the VAT totals of the categories the
    items touched (in the order they were first seen) and the discount, tax
    exclusive and tax inclusive totals. Nothing is rounded here except the per
    item VAT split, the document builder rounds the totals once.
    '''
    result = ItemProcessResult()
    vat_totals = {}

    for item in items:
        item_amount = item.quantity * item.unit_price
        result.items.append(
            RenderedItem(
                id=item.id,
                description=item.description,
                quantity=item.quantity,
                tax_code=item.tax_code,
                amount=item_amount,
            )
        )

        taxable_amount = item_amount - item.discount
        vat = parse_tax_code(item.tax_code)
        net = vat.net_amount(taxable_amount)
        tax = vat.amount(taxable_amount)

        result.totals.discount += item.discount
        result.totals.total_tax_excl += net
        result.totals.total_tax_incl += taxable_amount

        if vat.id not in vat_totals:
            vat_totals[vat.id] = VatTotal(vat_rate=vat.id, net_amount=net, tax_amount=tax)
        else:
            vat_totals[vat.id].net_amount += net
            vat_totals[vat.id].tax_amount += tax

    result.vat_totals = list(vat_totals.values())
    return result
