'''
Exceptions raised by the vfd library.

ACKCODE  STATUS  DESCRIPTION                                 POSSIBLE REASON
0        SUCCESS Success
1        FAIL    Invalid Signature                           signature generated with missing nodes or empty lines in XML
3        FAIL    Invalid TIN                                 TIN specified with dash or wrong TIN specified
4        FAIL    VFD Registration Approval required          request posted without Client details, which is WEBAPI
5        FAIL    Unhandled Exception                         contact TRA for further troubleshooting
6        FAIL    Invalid Serial or Serial not Registered     CERTKEY is not registered to TIN sending registration request
7        FAIL    Invalid client header                       wrong client value specified
8        FAIL    Wrong Certificate used to Register Web API  wrong certificate used
'''

SUCCESS_CODE = 0
INVALID_SIGNATURE_CODE = 1
INVALID_TAX_ID = 3
APPROVAL_REQUIRED = 4
UNHANDLED_EXCEPTION = 5
INVALID_SERIAL = 6
INVALID_CLIENT_HEADER = 7
INVALID_CERTIFICATE = 8

_ERROR_MESSAGES = {
    SUCCESS_CODE: "SUCCESS",
    INVALID_SIGNATURE_CODE: "FAIL",
    INVALID_TAX_ID: "Invalid TIN",
    APPROVAL_REQUIRED: "VFD Registration Approval required",
    UNHANDLED_EXCEPTION: "Unhandled Exception",
    INVALID_SERIAL: "Invalid Serial or Serial not Registered to Web API/TIN",
    INVALID_CLIENT_HEADER: "Invalid client header",
    INVALID_CERTIFICATE: "Wrong Certificate used to Register Web API",
}


def parse_error_code(code: int) -> str:
    """Return the authority's description of an ack code."""
    return _ERROR_MESSAGES.get(code, "Unknown error")


def is_success(code: int) -> bool:
    return code == SUCCESS_CODE


class VFDError(Exception):
    """Base class for every error raised by this library."""


class SigningError(VFDError):
    """Raised when a payload cannot be signed or the fresh signature does not verify."""


class SignatureVerificationError(VFDError):
    """Raised when a base64 signature cannot be decoded or does not match the payload."""


class SerializationError(VFDError):
    """Raised when a document cannot be rendered or a response body cannot be decoded."""


class SubmissionError(VFDError):
    """Raised when a receipt or report exchange fails for a non network reason."""


class RegistrationError(VFDError):
    """Raised when the VFD registration request is refused."""


class TokenError(VFDError):
    """Raised when the token endpoint does not return 200."""


class NetworkError(VFDError):
    '''
    Raised on transport failures, cancellation or an exceeded deadline.

    Callers may retry on this error only. The underlying cause is kept on
    ``err`` and chained as ``__cause__``.
    '''

    def __init__(self, message: str, err: BaseException):
        self.message = message
        self.err = err
        super().__init__(f"{message}: {err}")


class ApplicationRejection(VFDError):
    '''
    Raised when the authority accepted the exchange but rejected the document.

    code is the ack code from the response body, or None when the rejection
    came as an HTTP 500 error envelope (status_code is then 500).
    '''

    def __init__(self, code, message: str, status_code: int = None):
        self.code = code
        self.message = message
        self.status_code = status_code
        if code is None:
            super().__init__(f"ApplicationRejection {status_code}: {message}")
        else:
            super().__init__(f"ApplicationRejection code={code}: {message}")


def is_network_error(err: BaseException) -> bool:
    """True if err, or anything in its cause chain, is a NetworkError."""
    while err is not None:
        if isinstance(err, NetworkError):
            return True
        err = err.__cause__
    return False


class CertificateError(VFDError):
    """Raised when a certificate or private key file cannot be loaded."""
