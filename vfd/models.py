'''
Value objects passed into the vfd library by callers.

These are the inputs to receipts and Z reports plus the Response returned after
a submission. The XML wire structures live in vfd.schema.
'''
import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List

from .errors import ApplicationRejection, is_success, parse_error_code

logger = logging.getLogger(__name__)


class PaymentType(str, Enum):
    """The five payment types recognised by the VFD server, in report order."""

    CASH = "CASH"
    CHEQUE = "CHEQUE"
    CCARD = "CCARD"
    EMONEY = "EMONEY"
    INVOICE = "INVOICE"


_PAYMENTS_BY_NUMBER = {
    1: PaymentType.CASH,
    2: PaymentType.CHEQUE,
    3: PaymentType.CCARD,
    4: PaymentType.EMONEY,
    5: PaymentType.INVOICE,
}


def parse_payment(value) -> PaymentType:
    '''
    Parameters:
    value: int (1 CASH, 2 CHEQUE, 3 CCARD, 4 EMONEY, 5 INVOICE) or str (case insensitive)

    Anything that is not recognised becomes CASH. The fallback is logged as a
    warning because it silently moves the amount to the cash total.
    '''
    if isinstance(value, PaymentType):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        payment_type = _PAYMENTS_BY_NUMBER.get(value)
    elif isinstance(value, str):
        payment_type = PaymentType.__members__.get(value.strip().upper())
    else:
        payment_type = None

    if payment_type is None:
        logger.warning(f"unrecognised payment type {value!r}, defaulting to CASH")
        return PaymentType.CASH
    return payment_type


class CustomerIDType(IntEnum):
    '''
    Type of ID the customer used during purchase, included in the receipt.
    '''

    TIN = 1
    LICENCE = 2
    VOTER_ID = 3
    PASSPORT = 4
    NIDA = 5
    NONE = 6
    METER_NUMBER = 7


@dataclass
class Item:
    '''
    A purchased item. tax_code is 1 for taxable items and 3 for non taxable items.
    discount applies to the whole line, not per unit.
    '''

    id: str
    description: str
    tax_code: int
    quantity: float
    unit_price: float
    discount: float = 0.0

    @property
    def gross_amount(self) -> float:
        return self.quantity * self.unit_price

    @property
    def taxable_amount(self) -> float:
        return self.gross_amount - self.discount


@dataclass
class Payment:
    type: PaymentType
    amount: float

    def __post_init__(self):
        # strings are matched as given when aggregating, numbers are mapped here
        if not isinstance(self.type, (PaymentType, str)):
            self.type = parse_payment(self.type)


@dataclass
class VatEntry:
    '''
    VAT details for a Z report: category id, rate and the amounts collected.
    '''

    id: str
    rate: float
    tax_amount: float
    net_amount: float


@dataclass
class Customer:
    type: CustomerIDType = CustomerIDType.NONE
    id: str = ""
    name: str = ""
    mobile: str = ""


@dataclass
class ReceiptParams:
    date: str
    time: str
    tin: str
    registration_id: str
    efd_serial: str
    receipt_num: str = ""
    daily_counter: int = 0
    global_counter: int = 0
    z_num: str = ""
    receipt_v_num: str = ""


@dataclass
class ReportParams:
    date: str
    time: str
    vrn: str
    tin: str
    uin: str
    tax_office: str
    registration_id: str
    z_number: str
    efd_serial: str
    registration_date: str


@dataclass
class Address:
    name: str
    street: str
    mobile: str
    city: str
    country: str

    def as_list(self) -> List[str]:
        """Header lines printed at the top of a Z report."""
        return [
            self.name.upper(),
            self.street.upper(),
            f"MOBILE: {self.mobile}",
            f"{self.city},{self.country}".upper(),
        ]


@dataclass
class ReportTotals:
    daily_total_amount: float = 0.0
    gross: float = 0.0
    corrections: float = 0.0
    discounts: float = 0.0
    surcharges: float = 0.0
    tickets_void: int = 0
    tickets_void_total: float = 0.0
    tickets_fiscal: int = 0
    tickets_non_fiscal: int = 0


@dataclass
class ReceiptRequest:
    params: ReceiptParams
    customer: Customer
    items: List[Item]
    payments: List[Payment]


@dataclass
class ReportRequest:
    params: ReportParams
    address: Address
    totals: ReportTotals
    vats: List[VatEntry] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)


@dataclass
class RequestHeaders:
    '''
    cert_serial: serial of the certificate issued by the authority (sent base64 encoded)
    bearer_token: access token from fetch_token
    '''

    cert_serial: str
    bearer_token: str


@dataclass
class Response:
    '''
    Details returned after submitting a receipt or a Z report.

    number is the receipt number for receipts and the Z number for reports,
    date is YYYY-MM-DD, time is HH:MM:SS and code is the ack code (0 means success).
    '''

    number: int = 0
    date: str = ""
    time: str = ""
    code: int = 0
    message: str = ""

    @property
    def ok(self) -> bool:
        return is_success(self.code)

    def raise_for_code(self):
        """Raise ApplicationRejection if the ack code is not 0."""
        if not self.ok:
            raise ApplicationRejection(self.code, self.message or parse_error_code(self.code))
        return self
