'''
Sums of VAT entries and payments for Z reports.

A Z report always lists the five VAT categories and the five payment types, in
a fixed order, whether anything was collected for them or not.
'''
import logging
from dataclasses import dataclass
from typing import Iterable, List

from .items import VatTotal
from .models import PaymentType
from .vat import VAT_CATEGORIES

logger = logging.getLogger(__name__)

REPORT_VAT_RATE_IDS = tuple(vat.report_rate_id for vat in VAT_CATEGORIES)
REPORT_PAYMENT_TYPES = tuple(p.value for p in PaymentType)


@dataclass
class PaymentTotal:
    type: str
    amount: float = 0.0


def _payment_type_key(payment_type) -> str:
    if isinstance(payment_type, PaymentType):
        return payment_type.value
    return str(payment_type)


def sum_vat_totals(vats: Iterable) -> List[VatTotal]:
    '''
    Sums VAT entries per rate id ("A-18.00", "B-0.00", ...).

    The rate id is built from the entry's id and rate, so the rate has to match
    the category's rate exactly. Entries that do not match any category are
    left out of the totals.
    '''
    totals = {rate_id: VatTotal(vat_rate=rate_id) for rate_id in REPORT_VAT_RATE_IDS}

    for vat in vats:
        rate_id = f"{vat.id}-{vat.rate:.2f}"
        total = totals.get(rate_id)
        if total is None:
            logger.warning(
                f"VAT entry {rate_id} does not match any VAT category, "
                f"net {vat.net_amount} and tax {vat.tax_amount} left out of the report"
            )
            continue
        total.net_amount += vat.net_amount
        total.tax_amount += vat.tax_amount

    return [totals[rate_id] for rate_id in REPORT_VAT_RATE_IDS]


def sum_payments(payments: Iterable) -> List[PaymentTotal]:
    '''
    Sums payments per type, in the order CASH, CHEQUE, CCARD, EMONEY, INVOICE.

    Payment types are matched by their exact name. Unknown types are left out.
    '''
    totals = {payment_type: PaymentTotal(type=payment_type) for payment_type in REPORT_PAYMENT_TYPES}

    for payment in payments:
        key = _payment_type_key(payment.type)
        total = totals.get(key)
        if total is None:
            logger.warning(f"payment type {key!r} is not recognised, {payment.amount} left out of the report")
            continue
        total.amount += payment.amount

    return [totals[payment_type] for payment_type in REPORT_PAYMENT_TYPES]
