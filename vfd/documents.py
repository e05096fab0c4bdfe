'''
Receipt and Z report documents.

Building a document goes through four steps, always in this order:

1. assemble  - generate_receipt / generate_report
2. round     - Receipt.round_off / ZReport.round_off
3. canonical - render with lxml, strip_list_wrappers, force_report_decimals
4. envelope  - after signing, wrap payload and signature in <EFDMS>

The signature is computed over the output of step 3 and that exact text is
what ends up inside the envelope.
'''
import base64
import dataclasses
import logging
import re

from .aggregate import PaymentTotal, sum_payments, sum_vat_totals
from .crypto import sign, sign_payload
from .errors import SigningError
from .items import process_items
from .schema import Receipt, ZReport, render

logger = logging.getLogger(__name__)

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'

SIM_IMSI = "WEBAPI"
FW_VERSION = "3.0"
FW_CHECKSUM = "WEBAPI"
VAT_CHANGE_NUM = "0"
HEAD_CHANGE_NUM = "0"
REPORT_ERRORS = ""

# the server rejects the wrapper element around each payment and VAT total
_LIST_WRAPPERS = ("<PAYMENT>", "</PAYMENT>", "<VATTOTAL>", "</VATTOTAL>")

_DAILY_AMOUNT_RE = re.compile(r"<DAILYTOTALAMOUNT>.*?</DAILYTOTALAMOUNT>")
_GROSS_AMOUNT_RE = re.compile(r"<GROSS>.*?</GROSS>")


def strip_list_wrappers(payload: str) -> str:
    for tag in _LIST_WRAPPERS:
        payload = payload.replace(tag, "")
    return payload


def force_report_decimals(payload: str, totals) -> str:
    '''
    Write DAILYTOTALAMOUNT and GROSS with exactly two decimals, e.g. 1000000.00
    and not 1e+06, whatever the serializer produced for them.
    '''
    daily_amount_tag = f"<DAILYTOTALAMOUNT>{totals.daily_total_amount:.2f}</DAILYTOTALAMOUNT>"
    gross_amount_tag = f"<GROSS>{totals.gross:.2f}</GROSS>"
    payload = _DAILY_AMOUNT_RE.sub(lambda _: daily_amount_tag, payload)
    return _GROSS_AMOUNT_RE.sub(lambda _: gross_amount_tag, payload)


def envelope(payload: str, signature: bytes) -> bytes:
    '''
    Wrap a signed payload: <EFDMS>{payload}<EFDMSSIGNATURE>{base64}</EFDMSSIGNATURE></EFDMS>
    preceded by the XML declaration. payload is inserted as is.
    '''
    signature_b64 = base64.b64encode(signature).decode("ascii")
    document = f"<EFDMS>{payload}<EFDMSSIGNATURE>{signature_b64}</EFDMSSIGNATURE></EFDMS>"
    return f"{XML_HEADER}{document}".encode("utf-8")


# ---------------------------
# Receipts
# ---------------------------

def generate_receipt(params, customer, items, payments) -> Receipt:
    """Assemble a rounded RCT from the request parts."""
    result = process_items(items)
    receipt = Receipt(
        date=params.date,
        time=params.time,
        tin=params.tin,
        reg_id=params.registration_id,
        efd_serial=params.efd_serial,
        cust_id_type=int(customer.type),
        cust_id=customer.id,
        cust_name=customer.name,
        mobile_num=customer.mobile,
        rct_num=params.receipt_num,
        dc=params.daily_counter,
        gc=params.global_counter,
        z_num=params.z_num,
        rct_v_num=params.receipt_v_num,
        items=result.items,
        totals=result.totals,
        payments=[
            PaymentTotal(type=getattr(p.type, "value", p.type), amount=p.amount) for p in payments
        ],
        vat_totals=result.vat_totals,
    )

    # round off all values to 2 decimal places
    receipt.round_off()
    return receipt


def receipt_payload(params, customer, items, payments) -> str:
    """Canonical RCT text, the part of the receipt that gets signed."""
    receipt = generate_receipt(params, customer, items, payments)
    return strip_list_wrappers(render(receipt.to_element()))


def receipt_bytes(private_key, params, customer, items, payments) -> bytes:
    '''
    Level: Critical
    Returns the signed receipt, ready to be posted to the VFD server.

    Raises SigningError or SerializationError.
    '''
    payload = receipt_payload(params, customer, items, payments)
    try:
        signature = sign(private_key, payload.encode("utf-8"))
    except SigningError as e:
        raise SigningError(f"could not sign receipt: {e}") from e
    logger.info(f"Signed receipt {params.receipt_num} GC={params.global_counter} ({len(payload)} bytes)")
    return envelope(payload, signature)


# ---------------------------
# Z reports
# ---------------------------

def generate_report(params, address, vats, payments, totals) -> ZReport:
    """Assemble a rounded ZREPORT. VAT totals and payments are summed per category and type."""
    report = ZReport(
        date=params.date,
        time=params.time,
        header_lines=address.as_list(),
        vrn=params.vrn,
        tin=params.tin,
        tax_office=params.tax_office,
        reg_id=params.registration_id,
        z_number=params.z_number,
        efd_serial=params.efd_serial,
        registration_date=params.registration_date,
        user=params.uin,
        sim_imsi=SIM_IMSI,
        totals=dataclasses.replace(totals),
        vat_totals=sum_vat_totals(vats),
        payments=sum_payments(payments),
        vat_change_num=VAT_CHANGE_NUM,
        head_change_num=HEAD_CHANGE_NUM,
        errors=REPORT_ERRORS,
        fw_version=FW_VERSION,
        fw_checksum=FW_CHECKSUM,
    )
    report.round_off()
    return report


def report_payload(params, address, vats, payments, totals) -> str:
    """Canonical ZREPORT text, the part of the report that gets signed."""
    report = generate_report(params, address, vats, payments, totals)
    payload = strip_list_wrappers(render(report.to_element()))
    return force_report_decimals(payload, report.totals)


def report_bytes(private_key, params, address, vats, payments, totals) -> bytes:
    '''
    Level: Critical
    Returns the signed Z report, ready to be posted to the VFD server.

    Raises SigningError or SerializationError.
    '''
    payload = report_payload(params, address, vats, payments, totals)
    try:
        signature = sign_payload(private_key, payload.encode("utf-8"))
    except SigningError as e:
        raise SigningError(f"failed to sign the payload: {e}") from e
    logger.info(f"Signed Z report {params.z_number} ({len(payload)} bytes)")
    return envelope(payload, signature)
