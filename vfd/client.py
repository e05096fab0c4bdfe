'''
Talking to the VFD server.

Every call follows the same steps: build the document, sign it, POST it and
classify what comes back:

- transport failure, cancellation or deadline  -> NetworkError (safe to retry)
- HTTP 500                                      -> ApplicationRejection with the server's message
- anything else                                 -> Response with the ack code

A Response with a non zero code is still returned, check it with
Response.raise_for_code() or is_success(). Nothing is retried here: resending
a rejected receipt risks duplicate numbering.
'''
import base64
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from .config import (
    CONTENT_TYPE_XML,
    DEFAULT_TIMEOUT,
    REGISTRATION_REQUEST_CLIENT,
    SUBMIT_RECEIPT_ROUTING_KEY,
    SUBMIT_REPORT_ROUTING_KEY,
    TOKEN_TIMEOUT,
    Action,
    Env,
    receipt_link,
    request_url,
)
from .context import Context
from .crypto import sign
from .documents import receipt_bytes, report_bytes
from .errors import (
    ApplicationRejection,
    NetworkError,
    RegistrationError,
    SerializationError,
    SigningError,
    SubmissionError,
    TokenError,
)
from .models import ReceiptRequest, ReportRequest
from .schema import (
    parse_error,
    parse_receipt_ack,
    parse_registration_ack,
    parse_report_ack,
    registration_data,
)

logger = logging.getLogger(__name__)

_ROUTING_KEYS = {
    Action.SUBMIT_RECEIPT: SUBMIT_RECEIPT_ROUTING_KEY,
    Action.SUBMIT_REPORT: SUBMIT_REPORT_ROUTING_KEY,
}

_ACK_PARSERS = {
    Action.SUBMIT_RECEIPT: parse_receipt_ack,
    Action.SUBMIT_REPORT: parse_report_ack,
}


def encode_base64(value) -> str:
    if isinstance(value, str):
        value = value.encode("utf-8")
    return base64.b64encode(value).decode("ascii")


def check_network_error(ctx: Context, prefix: str, err: Exception) -> Exception:
    '''
    Turn an exception raised while sending a request into the error to raise.

    Cancellation and deadlines are reported first, whatever the transport said.
    Connection failures and timeouts are network errors, anything else is a
    SubmissionError.
    '''
    ctx_err = ctx.err()
    if ctx_err is not None:
        return NetworkError(f"{prefix}: context error (canceled or deadline exceeded)", ctx_err)
    if isinstance(err, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return NetworkError(f"{prefix}: network error", err)
    return SubmissionError(f"{prefix}: {err}")


def _send(session, url: str, outcome: dict, finished: threading.Event, **kwargs):
    try:
        outcome["response"] = session.post(url, **kwargs)
    except Exception as e:
        # re-raised by _post in the calling thread
        outcome["error"] = e
    finally:
        finished.set()


def _post(ctx: Optional[Context], session, url: str, prefix: str, timeout: float, **kwargs):
    '''
    POST on a worker thread and wait for the reply, the cancellation of ctx or
    its deadline, whichever comes first. A request that is abandoned keeps its
    worker until the transport timeout ends it; its reply is discarded.
    '''
    ctx = (ctx or Context.background()).with_cancel()
    try:
        ctx_err = ctx.err()
        if ctx_err is not None:
            raise NetworkError(f"{prefix}: context error (canceled or deadline exceeded)", ctx_err) from ctx_err

        outcome = {}
        finished = threading.Event()
        ctx.on_cancel(finished.set)
        worker = threading.Thread(
            target=_send,
            args=(session, url, outcome, finished),
            kwargs=dict(kwargs, timeout=max(ctx.remaining(timeout), 0.001)),
            name=f"vfd {prefix}",
            daemon=True,
        )
        worker.start()
        finished.wait(ctx.remaining())

        # a call cancelled while in flight never yields a result
        ctx_err = ctx.err()
        if ctx_err is not None:
            if worker.is_alive():
                logger.warning(f"{prefix}: abandoned the in-flight request to {url}: {ctx_err}")
            raise NetworkError(f"{prefix}: context error (canceled or deadline exceeded)", ctx_err) from ctx_err

        error = outcome.get("error")
        if isinstance(error, requests.exceptions.RequestException):
            raise check_network_error(ctx, prefix, error) from error
        if error is not None:
            raise error
        return outcome["response"]
    finally:
        ctx.cancel()


def _request_headers(headers, action: Action) -> dict:
    return {
        "Content-Type": CONTENT_TYPE_XML,
        "Routing-Key": _ROUTING_KEYS[action],
        "Cert-Serial": encode_base64(headers.cert_serial),
        "Authorization": f"bearer {headers.bearer_token}",
    }


def submit_document(ctx, url: str, headers, payload: bytes, action, session=requests, timeout=DEFAULT_TIMEOUT):
    '''
    POST an already signed receipt or report and classify the reply.

    Parameters:
    headers: RequestHeaders (certificate serial and bearer token)
    payload: bytes from receipt_bytes / report_bytes
    action: Action.SUBMIT_RECEIPT or Action.SUBMIT_REPORT

    Returns a Response, raises NetworkError, ApplicationRejection or SubmissionError.
    '''
    try:
        action = Action(action)
    except ValueError as e:
        raise SubmissionError(f"couldnt figure out the action {action!r}") from e
    if action not in _ACK_PARSERS:
        raise SubmissionError(f"couldnt figure out the action {action.value!r}")
    prefix = f"{action.value} upload"

    response = _post(
        ctx, session, url, prefix, timeout,
        data=payload,
        headers=_request_headers(headers, action),
    )

    if response.status_code == 500:
        try:
            message = parse_error(response.content)
        except SerializationError as e:
            raise SerializationError(f"{prefix} failed : {e}") from e
        logger.error(f"{prefix} rejected by the server: {message}")
        raise ApplicationRejection(None, message, status_code=500)

    try:
        result = _ACK_PARSERS[action](response.content)
    except SerializationError as e:
        raise SerializationError(f"{prefix} failed : {e}") from e

    if result.ok:
        logger.info(f"{prefix} accepted: number={result.number} date={result.date} time={result.time}")
    else:
        logger.error(f"{prefix} acknowledged with code {result.code}: {result.message}")
    return result


def submit_receipt(ctx, url: str, headers, private_key, receipt, session=requests, timeout=DEFAULT_TIMEOUT):
    '''
    Level: Critical
    Sign receipt (a ReceiptRequest) with private_key and upload it.
    '''
    payload = receipt_bytes(private_key, receipt.params, receipt.customer, receipt.items, receipt.payments)
    return submit_document(ctx, url, headers, payload, Action.SUBMIT_RECEIPT, session=session, timeout=timeout)


def submit_report(ctx, url: str, headers, private_key, report, session=requests, timeout=DEFAULT_TIMEOUT):
    '''
    Level: Critical
    Sign report (a ReportRequest) with private_key and upload it.
    '''
    payload = report_bytes(
        private_key, report.params, report.address, report.vats, report.payments, report.totals
    )
    return submit_document(ctx, url, headers, payload, Action.SUBMIT_REPORT, session=session, timeout=timeout)


def submit(ctx, url: str, headers, private_key, document, session=requests, timeout=DEFAULT_TIMEOUT):
    """Sign and upload document, a ReceiptRequest or a ReportRequest."""
    if isinstance(document, ReceiptRequest):
        return submit_receipt(ctx, url, headers, private_key, document, session=session, timeout=timeout)
    if isinstance(document, ReportRequest):
        return submit_report(ctx, url, headers, private_key, document, session=session, timeout=timeout)
    raise SubmissionError(f"cannot submit {type(document).__name__}, expected ReceiptRequest or ReportRequest")


@dataclass
class RawRequest:
    '''
    An XML receipt or Z report file, submitted as is.

    env: Env or env name, action: Action.SUBMIT_RECEIPT or Action.SUBMIT_REPORT
    '''

    env: Env
    action: Action
    file_path: str = ""


def submit_raw_request(ctx, headers, raw: RawRequest, session=requests, timeout=DEFAULT_TIMEOUT):
    """Read raw.file_path and post its content unchanged to the URL of raw.env and raw.action."""
    payload = b""
    if raw.file_path:
        try:
            with open(raw.file_path, "rb") as raw_file:
                payload = raw_file.read()
        except OSError as e:
            raise SubmissionError(f"could not read the request file: {e}") from e
    url = request_url(raw.env, raw.action)
    return submit_document(ctx, url, headers, payload, raw.action, session=session, timeout=timeout)


# ---------------------------
# Registration
# ---------------------------

@dataclass
class RegistrationRequest:
    tin: str
    cert_key: str
    cert_serial: str
    content_type: str = CONTENT_TYPE_XML


def register(ctx, url: str, private_key, request: RegistrationRequest, session=requests, timeout=DEFAULT_TIMEOUT):
    '''
    Register the virtual fiscal device.

    Registering is a one time operation, later calls return the same details,
    so store the RegistrationResponse. Raises RegistrationError when the server
    refuses the request.
    '''
    regdata = registration_data(request.tin, request.cert_key)
    try:
        signature = sign(private_key, regdata.encode("utf-8"))
    except SigningError as e:
        raise RegistrationError(f"registration failed: {e}") from e
    body = f"<EFDMS>{regdata}<EFDMSSIGNATURE>{encode_base64(signature)}</EFDMSSIGNATURE></EFDMS>"

    response = _post(
        ctx, session, url, "registration", timeout,
        data=body.encode("utf-8"),
        headers={
            "Content-Type": CONTENT_TYPE_XML,
            "Cert-Serial": encode_base64(request.cert_serial),
            "Client": REGISTRATION_REQUEST_CLIENT,
        },
    )

    try:
        if response.status_code == 500:
            message = parse_error(response.content)
            logger.error(f"Registration rejected by the server: {message}")
            raise RegistrationError(f"registration failed: {message}")
        result = parse_registration_ack(response.content)
    except SerializationError as e:
        raise RegistrationError(f"registration failed: {e}") from e

    if result.ack_code != "0":
        logger.error(f"Registration refused: {result.ack_code} {result.ack_msg}")
        raise RegistrationError(
            f"registration failed response code: {result.ack_code}, message: {result.ack_msg}"
        )
    logger.info(f"Registration was successful! REGID={result.reg_id}")
    return result


# ---------------------------
# Token
# ---------------------------

@dataclass
class TokenRequest:
    username: str
    password: str
    grant_type: str = "password"


@dataclass
class TokenResponse:
    code: str = ""
    message: str = ""
    access_token: str = ""
    token_type: str = ""
    expires_in: int = 0
    error: str = ""

    def __str__(self):
        return (
            f"FetchToken Response: [Code={self.code},Message={self.message},AccessToken={self.access_token},"
            f"TokenType={self.token_type},ExpiresIn={self.expires_in} seconds,Error={self.error}]"
        )


TokenCallback = Callable[[Context, TokenResponse], None]


def wrap_token_callback(callback: TokenCallback, *middlewares) -> TokenCallback:
    '''
    Chain middlewares around callback. Each middleware takes the next callback
    and returns a new one; the first middleware runs first.
    '''
    for middleware in reversed(middlewares):
        callback = middleware(callback)
    return callback


def fetch_token(ctx, url: str, request: TokenRequest, callback: TokenCallback = None, session=requests):
    '''
    Fetch the access token used to submit receipts and reports.

    The request is bounded to one minute. Raises TokenError if the server does
    not answer 200. Fetch a new token only when the previous one has expired.
    If callback is given it receives (ctx, response) before it is returned.
    '''
    ctx = (ctx or Context.background()).with_timeout(TOKEN_TIMEOUT)
    response = _post(
        ctx, session, url, "fetch token", TOKEN_TIMEOUT,
        data={
            "username": request.username,
            "password": request.password,
            "grant_type": request.grant_type,
        },
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    try:
        data = response.json()
    except ValueError as e:
        raise TokenError(f"response decode error: {e}") from e
    if not isinstance(data, dict):
        raise TokenError(f"response decode error: unexpected body {data!r}")

    try:
        expires_in = int(data.get("expires_in") or 0)
    except (TypeError, ValueError) as e:
        raise TokenError(f"response decode error: expires_in {data.get('expires_in')!r}") from e

    token = TokenResponse(
        code=response.headers.get("ACKCODE", ""),
        message=response.headers.get("ACKMSG", ""),
        access_token=data.get("access_token", ""),
        token_type=data.get("token_type", ""),
        expires_in=expires_in,
        error=data.get("error", ""),
    )

    if response.status_code != 200:
        logger.error(f"Fetch token failed with status {response.status_code}: {token.error or token.message}")
        raise TokenError(
            f"fetch token failed: error code=[{token.code}],message=[{token.message}], error=[{token.error}]"
        )

    if callback is not None:
        callback(ctx, token)
    return token


class Client:
    '''
    Holds the environment and the HTTP session used for every call.

    Parameters:
    test_mode: bool (True for the testing server, False for production)
    session: requests.Session or anything with a compatible post(), defaults to the requests module
    timeout: seconds a request may take when the context has no deadline
    '''

    def __init__(self, test_mode: bool = True, session=None, timeout: float = DEFAULT_TIMEOUT):
        self.env: Env = Env.TEST if test_mode else Env.PROD
        self.session = session if session is not None else requests
        self.timeout = timeout

    def url(self, action) -> str:
        return request_url(self.env, action)

    def register(self, ctx, private_key, request: RegistrationRequest, url: str = None):
        return register(
            ctx, url or self.url(Action.REGISTER), private_key, request,
            session=self.session, timeout=self.timeout,
        )

    def fetch_token(self, ctx, request: TokenRequest, callback: TokenCallback = None, url: str = None):
        return fetch_token(ctx, url or self.url(Action.FETCH_TOKEN), request, callback=callback, session=self.session)

    def submit_receipt(self, ctx, headers, private_key, receipt, url: str = None):
        return submit_receipt(
            ctx, url or self.url(Action.SUBMIT_RECEIPT), headers, private_key, receipt,
            session=self.session, timeout=self.timeout,
        )

    def submit_report(self, ctx, headers, private_key, report, url: str = None):
        return submit_report(
            ctx, url or self.url(Action.SUBMIT_REPORT), headers, private_key, report,
            session=self.session, timeout=self.timeout,
        )

    def submit_raw_request(self, ctx, headers, file_path: str, action):
        raw = RawRequest(env=self.env, action=Action(action), file_path=file_path)
        return submit_raw_request(ctx, headers, raw, session=self.session, timeout=self.timeout)

    def receipt_link(self, receipt_code: str, gc: int, receipt_time: str) -> str:
        return receipt_link(self.env, receipt_code, gc, receipt_time)
