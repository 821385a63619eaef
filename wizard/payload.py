import re
import secrets
import uuid
from datetime import datetime, timezone
from typing import TypedDict, Optional, Dict, Any

CRM_SOURCE = "balance-cypher-v2-clean"
SUBMIT_EVENT = "decode_email_submit"

ACCESS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ACCESS_CODE_LENGTH = 8

FIRST_NAME_MAX = 40
LAST_NAME_MAX = 60
EMAIL_MAX = 120

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class Applicant(TypedDict):
    """Applicant record in the shape the CRM expects."""
    firstName: str
    lastName: str
    email: str
    phone: str
    consent: bool
    vehicleType: str
    incomeAbove1800: str
    monthlyIncome: str
    yearsReceivingIncome: int
    monthsReceivingIncome: int
    dobMonth: int
    dobDay: int
    dobYear: int
    companyName: str
    jobTitle: str
    housingPayment: str
    street1: str
    street2: str
    city: str
    state: str
    zip: str
    yearsAtAddress: int
    monthsAtAddress: int
    ssn: str


class LeadPayload(TypedDict):
    source: str
    requestId: str
    startedAt: str
    tracking: Dict[str, Any]
    applicant: Applicant


def safe_trim_max(value: Optional[str], max_len: int) -> str:
    return (value or "").strip()[:max_len]


def is_valid_email(email: Optional[str]) -> bool:
    return bool(EMAIL_PATTERN.match((email or "").strip()))


def generate_access_code() -> str:
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))


def generate_request_id() -> str:
    return uuid.uuid4().hex


def build_lead_payload(
    first_name: str,
    last_name: str,
    email: str,
    access_code: str,
    client_context: Optional[Dict[str, Any]] = None,
) -> LeadPayload:
    """
    Build the payload for one submission attempt.

    Every call produces a new requestId. Fields this funnel does not collect
    are sent empty so the CRM always receives its full applicant schema.

    Args:
        first_name: Captured first name
        last_name: Captured last name
        email: Captured email
        access_code: Session access code, carried in tracking only
        client_context: userAgent / pageUrl / referrer of the caller

    Returns:
        Lead payload ready to post to the relay
    """
    context = client_context or {}

    return {
        "source": CRM_SOURCE,
        "requestId": generate_request_id(),
        "startedAt": datetime.now(timezone.utc).isoformat(),
        "tracking": {
            "event": SUBMIT_EVENT,
            "accessCode": access_code,
            "userAgent": context.get("userAgent"),
            "pageUrl": context.get("pageUrl"),
            "referrer": context.get("referrer"),
        },
        "applicant": {
            "firstName": safe_trim_max(first_name, FIRST_NAME_MAX),
            "lastName": safe_trim_max(last_name, LAST_NAME_MAX),
            "email": safe_trim_max(email, EMAIL_MAX),
            "phone": "",
            "consent": True,
            "vehicleType": "",
            "incomeAbove1800": "",
            "monthlyIncome": "",
            "yearsReceivingIncome": 0,
            "monthsReceivingIncome": 0,
            "dobMonth": 0,
            "dobDay": 0,
            "dobYear": 0,
            "companyName": "",
            "jobTitle": "",
            "housingPayment": "",
            "street1": "",
            "street2": "",
            "city": "",
            "state": "",
            "zip": "",
            "yearsAtAddress": 0,
            "monthsAtAddress": 0,
            "ssn": "",
        },
    }
