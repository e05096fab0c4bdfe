'''
Endpoints and fixed protocol values of the TRA VFD API.
'''
from enum import Enum

REGISTER_PRODUCTION_URL = "https://vfd.tra.go.tz/api/vfdRegReq"
FETCH_TOKEN_PRODUCTION_URL = "https://vfd.tra.go.tz/vfdtoken"
SUBMIT_RECEIPT_PRODUCTION_URL = "https://vfd.tra.go.tz/api/efdmsRctInfo"
SUBMIT_REPORT_PRODUCTION_URL = "https://vfd.tra.go.tz/api/efdmszreport"
VERIFY_RECEIPT_PRODUCTION_URL = "https://verify.tra.go.tz/"

REGISTER_TESTING_URL = "https://virtual.tra.go.tz/efdmsRctApi/api/vfdRegReq"
FETCH_TOKEN_TESTING_URL = "https://virtual.tra.go.tz/efdmsRctApi/vfdtoken"
SUBMIT_RECEIPT_TESTING_URL = "https://virtual.tra.go.tz/efdmsRctApi/api/efdmsRctInfo"
SUBMIT_REPORT_TESTING_URL = "https://virtual.tra.go.tz/efdmsRctApi/api/efdmszreport"
VERIFY_RECEIPT_TESTING_URL = "https://virtual.tra.go.tz/efdmsRctVerify/"

SUBMIT_RECEIPT_ROUTING_KEY = "vfdrct"
SUBMIT_REPORT_ROUTING_KEY = "vfdzreport"
CONTENT_TYPE_XML = "application/xml"
REGISTRATION_REQUEST_CLIENT = "webapi"

# seconds, used when the caller's context has no deadline
DEFAULT_TIMEOUT = 70
TOKEN_TIMEOUT = 60


class Env(str, Enum):
    DEV = "development"
    TEST = "test"
    STAGING = "staging"
    PROD = "production"

    @classmethod
    def parse(cls, value: str) -> "Env":
        """Unknown names give DEV."""
        aliases = {
            "development": cls.DEV,
            "dev": cls.DEV,
            "test": cls.TEST,
            "testing": cls.TEST,
            "staging": cls.STAGING,
            "production": cls.PROD,
            "prod": cls.PROD,
        }
        return aliases.get(str(value).strip().lower(), cls.DEV)

    def __str__(self):
        return self.value


class Action(str, Enum):
    REGISTER = "register"
    FETCH_TOKEN = "token"
    SUBMIT_RECEIPT = "receipt"
    SUBMIT_REPORT = "report"
    VERIFY_RECEIPT = "verification"


_PRODUCTION_URLS = {
    Action.REGISTER: REGISTER_PRODUCTION_URL,
    Action.FETCH_TOKEN: FETCH_TOKEN_PRODUCTION_URL,
    Action.SUBMIT_RECEIPT: SUBMIT_RECEIPT_PRODUCTION_URL,
    Action.SUBMIT_REPORT: SUBMIT_REPORT_PRODUCTION_URL,
    Action.VERIFY_RECEIPT: VERIFY_RECEIPT_PRODUCTION_URL,
}

_TESTING_URLS = {
    Action.REGISTER: REGISTER_TESTING_URL,
    Action.FETCH_TOKEN: FETCH_TOKEN_TESTING_URL,
    Action.SUBMIT_RECEIPT: SUBMIT_RECEIPT_TESTING_URL,
    Action.SUBMIT_REPORT: SUBMIT_REPORT_TESTING_URL,
    Action.VERIFY_RECEIPT: VERIFY_RECEIPT_TESTING_URL,
}


def request_url(env, action) -> str:
    '''
    URL of action in env. Every env other than production uses the testing
    server. Returns "" for an unknown action.
    '''
    urls = _PRODUCTION_URLS if Env.parse(env) == Env.PROD else _TESTING_URLS
    try:
        return urls[Action(action)]
    except ValueError:
        return ""


def receipt_link(env, receipt_code: str, gc: int, receipt_time: str) -> str:
    '''
    Link to verify a receipt online.

    Parameters:
    receipt_code: RECEIPTCODE from the registration response
    gc: global counter of the receipt
    receipt_time: HH:MM:SS
    '''
    base_url = request_url(env, Action.VERIFY_RECEIPT)
    return f"{base_url}{receipt_code}{gc}_{receipt_time.replace(':', '')}"
