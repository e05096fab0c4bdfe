'''
Client library for the Tanzania Revenue Authority (TRA) Virtual Fiscal Device
(VFD) API.

It builds sale receipts and end of day Z reports, signs them with the
certificate issued by TRA and submits them to the VFD server.

PLEASE NOTE THAT THE VFD IS A STATEFUL SYSTEM. YOU NEED TO KEEP TRACK OF THE
RECEIPT NUMBERS, THE DAILY AND GLOBAL COUNTERS AND THE Z NUMBER YOURSELF, THE
LIBRARY DOES NOT DO IT FOR YOU.

Typical use:

    key, cert = load_cert("cert.pfx", "password")
    client = Client(test_mode=True)
    token = client.fetch_token(Context.background(), TokenRequest(username, password))
    headers = RequestHeaders(cert_serial=serial, bearer_token=token.access_token)
    response = client.submit_receipt(Context(timeout=30), headers, key, receipt)
    response.raise_for_code()
'''
from .aggregate import PaymentTotal, sum_payments, sum_vat_totals
from .client import (
    Client,
    RawRequest,
    RegistrationRequest,
    TokenRequest,
    TokenResponse,
    fetch_token,
    register,
    submit,
    submit_document,
    submit_raw_request,
    submit_receipt,
    submit_report,
    wrap_token_callback,
)
from .config import Action, Env, receipt_link, request_url
from .context import Context, ContextCancelled, DeadlineExceeded
from .crypto import load_cert, load_cert_chain, load_private_key, sign, sign_payload, verify_signature
from .documents import generate_receipt, generate_report, receipt_bytes, report_bytes
from .errors import (
    ApplicationRejection,
    CertificateError,
    NetworkError,
    RegistrationError,
    SerializationError,
    SignatureVerificationError,
    SigningError,
    SubmissionError,
    TokenError,
    VFDError,
    is_network_error,
    is_success,
    parse_error_code,
)
from .items import process_items
from .models import (
    Address,
    Customer,
    CustomerIDType,
    Item,
    Payment,
    PaymentType,
    ReceiptParams,
    ReceiptRequest,
    ReportParams,
    ReportRequest,
    ReportTotals,
    RequestHeaders,
    Response,
    VatEntry,
    parse_payment,
)
from .schema import RegistrationResponse
from .vat import net_amount, parse_tax_code, report_tax_rate_id, round_off, vat_amount, vat_id, vat_rate

__all__ = [
    'Client',
    'Context',
    'ContextCancelled',
    'DeadlineExceeded',
    'Env',
    'Action',
    'request_url',
    'receipt_link',
    'register',
    'fetch_token',
    'wrap_token_callback',
    'submit_receipt',
    'submit_report',
    'submit',
    'submit_document',
    'submit_raw_request',
    'RawRequest',
    'RegistrationRequest',
    'RegistrationResponse',
    'TokenRequest',
    'TokenResponse',
    'load_cert',
    'load_cert_chain',
    'load_private_key',
    'sign',
    'sign_payload',
    'verify_signature',
    'generate_receipt',
    'generate_report',
    'receipt_bytes',
    'report_bytes',
    'process_items',
    'sum_vat_totals',
    'sum_payments',
    'PaymentTotal',
    'Address',
    'Customer',
    'CustomerIDType',
    'Item',
    'Payment',
    'PaymentType',
    'parse_payment',
    'ReceiptParams',
    'ReceiptRequest',
    'ReportParams',
    'ReportRequest',
    'ReportTotals',
    'RequestHeaders',
    'Response',
    'VatEntry',
    'round_off',
    'parse_tax_code',
    'vat_rate',
    'vat_id',
    'net_amount',
    'vat_amount',
    'report_tax_rate_id',
    'VFDError',
    'SigningError',
    'SignatureVerificationError',
    'SerializationError',
    'SubmissionError',
    'RegistrationError',
    'TokenError',
    'CertificateError',
    'NetworkError',
    'ApplicationRejection',
    'is_network_error',
    'is_success',
    'parse_error_code',
]
