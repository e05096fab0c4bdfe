'''
XML structures exchanged with the VFD server.

The tag names and their order are fixed by the authority. Documents are built
as lxml trees and rendered without an XML declaration; vfd.documents adds the
declaration and the EFDMS envelope after signing.
'''
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from lxml import etree

from .aggregate import PaymentTotal
from .errors import SerializationError
from .items import RenderedItem, Totals, VatTotal
from .models import ReportTotals, Response
from .vat import round_off

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


def format_money(value: float) -> str:
    return f"{value:.2f}"


def format_number(value) -> str:
    '''
    Shortest text that reads back as the same number, 5.0 as "5" and
    2500000.0 as "2.5e+06". Exponent form is used below 1e-4 and from 1e+6 up.
    '''
    if isinstance(value, int):
        return str(value)
    if value == 0:
        return "0"
    if not math.isfinite(value):
        return str(value)

    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(str(d) for d in digits)
    point = len(digits) + exponent
    exp = point - 1
    prefix = "-" if sign else ""

    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        return f"{prefix}{mantissa}e{'-' if exp < 0 else '+'}{abs(exp):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return prefix + digits + "0" * (point - len(digits))
    return f"{prefix}{digits[:point]}.{digits[point:]}"


def _sub(parent, tag: str, text="") -> etree._Element:
    element = etree.SubElement(parent, tag)
    # an empty string keeps the <TAG></TAG> form the server expects
    element.text = text
    return element


def _vat_totals_element(parent, vat_totals: List[VatTotal]):
    vat_totals_element = _sub(parent, "VATTOTALS")
    for vat in vat_totals:
        vat_element = _sub(vat_totals_element, "VATTOTAL")
        _sub(vat_element, "VATRATE", vat.vat_rate)
        _sub(vat_element, "NETTAMOUNT", format_money(vat.net_amount))
        _sub(vat_element, "TAXAMOUNT", format_money(vat.tax_amount))


def _payments_element(parent, payments: List[PaymentTotal]):
    payments_element = _sub(parent, "PAYMENTS")
    for payment in payments:
        payment_element = _sub(payments_element, "PAYMENT")
        _sub(payment_element, "PMTTYPE", payment.type)
        _sub(payment_element, "PMTAMOUNT", format_money(payment.amount))


# documents carry no attributes, so every quote in the output is element text
_TEXT_ESCAPES = (
    ("\"", "&#34;"),
    ("'", "&#39;"),
    ("\t", "&#x9;"),
    ("\n", "&#xA;"),
    ("&#13;", "&#xD;"),
)


def render(element) -> str:
    '''
    Serialise an element without XML declaration or pretty printing.

    Besides &, < and > the text escapes quotes, tabs, newlines and carriage
    returns as character references, the form the server signs and checks.
    '''
    try:
        text = etree.tostring(element, encoding="unicode")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"could not marshal {getattr(element, 'tag', element)!r}: {e}") from e
    for char, reference in _TEXT_ESCAPES:
        text = text.replace(char, reference)
    return text


@dataclass
class Receipt:
    '''RCT: a single sale receipt.'''

    date: str
    time: str
    tin: str
    reg_id: str
    efd_serial: str
    cust_id_type: int
    cust_id: str
    cust_name: str
    mobile_num: str
    rct_num: str
    dc: int
    gc: int
    z_num: str
    rct_v_num: str
    items: List[RenderedItem] = field(default_factory=list)
    totals: Totals = field(default_factory=Totals)
    payments: List[PaymentTotal] = field(default_factory=list)
    vat_totals: List[VatTotal] = field(default_factory=list)

    def round_off(self):
        """Round every monetary value to 2 decimal places."""
        self.totals.total_tax_excl = round_off(self.totals.total_tax_excl)
        self.totals.total_tax_incl = round_off(self.totals.total_tax_incl)
        self.totals.discount = round_off(self.totals.discount)
        for item in self.items:
            item.amount = round_off(item.amount)
        for vat in self.vat_totals:
            vat.net_amount = round_off(vat.net_amount)
            vat.tax_amount = round_off(vat.tax_amount)
        for payment in self.payments:
            payment.amount = round_off(payment.amount)

    def to_element(self):
        try:
            rct = etree.Element("RCT")
            _sub(rct, "DATE", self.date)
            _sub(rct, "TIME", self.time)
            _sub(rct, "TIN", self.tin)
            _sub(rct, "REGID", self.reg_id)
            _sub(rct, "EFDSERIAL", self.efd_serial)
            _sub(rct, "CUSTIDTYPE", str(int(self.cust_id_type)))
            _sub(rct, "CUSTID", self.cust_id)
            _sub(rct, "CUSTNAME", self.cust_name)
            _sub(rct, "MOBILENUM", self.mobile_num)
            _sub(rct, "RCTNUM", self.rct_num)
            _sub(rct, "DC", str(int(self.dc)))
            _sub(rct, "GC", str(int(self.gc)))
            _sub(rct, "ZNUM", self.z_num)
            _sub(rct, "RCTVNUM", self.rct_v_num)

            items = _sub(rct, "ITEMS")
            for item in self.items:
                item_element = _sub(items, "ITEM")
                _sub(item_element, "ID", item.id)
                _sub(item_element, "DESC", item.description)
                _sub(item_element, "QTY", format_number(item.quantity))
                _sub(item_element, "TAXCODE", str(int(item.tax_code)))
                _sub(item_element, "AMT", format_money(item.amount))

            totals = _sub(rct, "TOTALS")
            _sub(totals, "TOTALTAXEXCL", format_money(self.totals.total_tax_excl))
            _sub(totals, "TOTALTAXINCL", format_money(self.totals.total_tax_incl))
            _sub(totals, "DISCOUNT", format_money(self.totals.discount))

            _payments_element(rct, self.payments)
            _vat_totals_element(rct, self.vat_totals)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"could not marshal receipt: {e}") from e
        return rct


@dataclass
class ZReport:
    '''ZREPORT: the end of day summary.'''

    date: str
    time: str
    header_lines: List[str]
    vrn: str
    tin: str
    tax_office: str
    reg_id: str
    z_number: str
    efd_serial: str
    registration_date: str
    user: str
    sim_imsi: str
    totals: ReportTotals
    vat_totals: List[VatTotal]
    payments: List[PaymentTotal]
    vat_change_num: str
    head_change_num: str
    errors: str
    fw_version: str
    fw_checksum: str

    def round_off(self):
        """Round every monetary value to 2 decimal places."""
        t = self.totals
        t.daily_total_amount = round_off(t.daily_total_amount)
        t.gross = round_off(t.gross)
        t.corrections = round_off(t.corrections)
        t.discounts = round_off(t.discounts)
        t.surcharges = round_off(t.surcharges)
        t.tickets_void_total = round_off(t.tickets_void_total)
        for vat in self.vat_totals:
            vat.net_amount = round_off(vat.net_amount)
            vat.tax_amount = round_off(vat.tax_amount)
        for payment in self.payments:
            payment.amount = round_off(payment.amount)

    def to_element(self):
        try:
            report = etree.Element("ZREPORT")
            _sub(report, "DATE", self.date)
            _sub(report, "TIME", self.time)
            header = _sub(report, "HEADER")
            for line in self.header_lines:
                _sub(header, "LINE", line)
            _sub(report, "VRN", self.vrn)
            _sub(report, "TIN", self.tin)
            _sub(report, "TAXOFFICE", self.tax_office)
            _sub(report, "REGID", self.reg_id)
            _sub(report, "ZNUMBER", self.z_number)
            _sub(report, "EFDSERIAL", self.efd_serial)
            _sub(report, "REGISTRATIONDATE", self.registration_date)
            _sub(report, "USER", self.user)
            _sub(report, "SIMIMSI", self.sim_imsi)

            t = self.totals
            totals = _sub(report, "TOTALS")
            _sub(totals, "DAILYTOTALAMOUNT", format_money(t.daily_total_amount))
            _sub(totals, "GROSS", format_money(t.gross))
            _sub(totals, "CORRECTIONS", format_money(t.corrections))
            _sub(totals, "DISCOUNTS", format_money(t.discounts))
            _sub(totals, "SURCHARGES", format_money(t.surcharges))
            _sub(totals, "TICKETSVOID", str(int(t.tickets_void)))
            _sub(totals, "TICKETSVOIDTOTAL", format_money(t.tickets_void_total))
            _sub(totals, "TICKETSFISCAL", str(int(t.tickets_fiscal)))
            _sub(totals, "TICKETSNONFISCAL", str(int(t.tickets_non_fiscal)))

            _vat_totals_element(report, self.vat_totals)
            _payments_element(report, self.payments)

            changes = _sub(report, "CHANGES")
            _sub(changes, "VATCHANGENUM", self.vat_change_num)
            _sub(changes, "HEADCHANGENUM", self.head_change_num)
            _sub(report, "ERRORS", self.errors)
            _sub(report, "FWVERSION", self.fw_version)
            _sub(report, "FWCHECKSUM", self.fw_checksum)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"could not marshal report: {e}") from e
        return report


def registration_data(tin: str, cert_key: str) -> str:
    """REGDATA: the signed part of a registration request."""
    try:
        regdata = etree.Element("REGDATA")
        _sub(regdata, "TIN", tin)
        _sub(regdata, "CERTKEY", cert_key)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"could not marshal registration data: {e}") from e
    return render(regdata)


# ---------------------------
# Responses
# ---------------------------

def _parse(body: bytes, root_tag: str):
    try:
        root = etree.fromstring(body, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise SerializationError(f"could not decode response body: {e}") from e
    if root.tag != root_tag:
        raise SerializationError(f"expected element type <{root_tag}> but have <{root.tag}>")
    return root


def _text(parent, path: str) -> str:
    if parent is None:
        return ""
    return parent.findtext(path) or ""


def _int(parent, path: str) -> int:
    value = _text(parent, path).strip()
    if not value:
        return 0
    try:
        return int(value)
    except ValueError as e:
        raise SerializationError(f"{path} is not an integer: {value!r}") from e


def parse_error(body: bytes) -> str:
    '''
    Message of the error envelope returned with HTTP 500:
    <Error><Message>...</Message></Error>
    '''
    return _text(_parse(body, "Error"), "Message")


def _parse_ack(body: bytes, ack_tag: str, number_tag: str) -> Response:
    ack = _parse(body, "EFDMS").find(ack_tag)
    return Response(
        number=_int(ack, number_tag),
        date=_text(ack, "DATE"),
        time=_text(ack, "TIME"),
        code=_int(ack, "ACKCODE"),
        message=_text(ack, "ACKMSG"),
    )


def parse_receipt_ack(body: bytes) -> Response:
    '''<EFDMS><RCTACK><RCTNUM/><DATE/><TIME/><ACKCODE/><ACKMSG/></RCTACK>...</EFDMS>'''
    return _parse_ack(body, "RCTACK", "RCTNUM")


def parse_report_ack(body: bytes) -> Response:
    '''<EFDMS><ZACK><ZNUMBER/><DATE/><TIME/><ACKCODE/><ACKMSG/></ZACK>...</EFDMS>'''
    return _parse_ack(body, "ZACK", "ZNUMBER")


@dataclass
class TaxCodes:
    code_a: str = ""
    code_b: str = ""
    code_c: str = ""
    code_d: str = ""


@dataclass
class RegistrationResponse:
    '''
    Details returned after a successful registration. Store it, the server
    returns the same details on every later registration call.
    '''

    ack_code: str = ""
    ack_msg: str = ""
    reg_id: str = ""
    serial: str = ""
    uin: str = ""
    tin: str = ""
    vrn: str = ""
    mobile: str = ""
    address: str = ""
    street: str = ""
    city: str = ""
    country: str = ""
    name: str = ""
    receipt_code: str = ""
    region: str = ""
    routing_key: str = ""
    gc: int = 0
    tax_office: str = ""
    username: str = ""
    password: str = ""
    token_path: str = ""
    tax_codes: Optional[TaxCodes] = None


def parse_registration_ack(body: bytes) -> RegistrationResponse:
    resp = _parse(body, "EFDMS").find("EFDMSRESP")
    tax_codes = resp.find("TAXCODES") if resp is not None else None
    return RegistrationResponse(
        ack_code=_text(resp, "ACKCODE"),
        ack_msg=_text(resp, "ACKMSG"),
        reg_id=_text(resp, "REGID"),
        serial=_text(resp, "SERIAL"),
        uin=_text(resp, "UIN"),
        tin=_text(resp, "TIN"),
        vrn=_text(resp, "VRN"),
        mobile=_text(resp, "MOBILE"),
        address=_text(resp, "ADDRESS"),
        street=_text(resp, "STREET"),
        city=_text(resp, "CITY"),
        country=_text(resp, "COUNTRY"),
        name=_text(resp, "NAME"),
        receipt_code=_text(resp, "RECEIPTCODE"),
        region=_text(resp, "REGION"),
        routing_key=_text(resp, "ROUTINGKEY"),
        gc=_int(resp, "GC"),
        tax_office=_text(resp, "TAXOFFICE"),
        username=_text(resp, "USERNAME"),
        password=_text(resp, "PASSWORD"),
        token_path=_text(resp, "TOKENPATH"),
        tax_codes=TaxCodes(
            code_a=_text(tax_codes, "CODEA"),
            code_b=_text(tax_codes, "CODEB"),
            code_c=_text(tax_codes, "CODEC"),
            code_d=_text(tax_codes, "CODED"),
        ),
    )
