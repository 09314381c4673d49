"""
Student ID verification and email one-time passwords.
"""

import secrets
from dataclasses import dataclass
from datetime import timedelta

from django.utils import timezone


VALID_CONFIDENCE = 85
INVALID_CONFIDENCE = 30
REMOTE_MIN_CONFIDENCE = 70

SYSTEM_PROMPT = """You are an AI assistant specialized in verifying student ID cards.
Analyze the provided image or description and extract:
1. Student's full name
2. College/University name
3. ID expiry date (if visible)
4. Whether the ID appears authentic

Return only JSON with these fields:
- name: string (extracted name)
- college: string (extracted college name)
- expiryDate: string (YYYY-MM-DD format if available, null otherwise)
- isAuthentic: boolean (whether ID appears genuine)
- confidence: number (0-100, your confidence level)
- issues: string[] (any concerns about the ID)"""


@dataclass(frozen=True)
class VerificationResult:
    is_valid: bool
    confidence: int
    name: str = None
    college: str = None
    expiry_date: str = None
    matches_email: bool = False
    reason: str = None

    def as_dict(self):
        return {
            'is_valid': self.is_valid,
            'confidence': self.confidence,
            'name': self.name,
            'college': self.college,
            'expiry_date': self.expiry_date,
            'matches_email': self.matches_email,
            'reason': self.reason,
        }


def email_domain(email):
    """'jane@stanford.edu' -> 'stanford'"""
    _, _, host = (email or '').partition('@')
    return host.split('.')[0]


def college_from_email(email):
    domain = email_domain(email)
    if not domain:
        return None
    return f'{domain.capitalize()} University'


def verify_student(email, name, id_photo_url=None):
    """
    Accept a student ID when the account email is a .edu address.

    The photo itself is not inspected here; the college is derived from the
    email domain.
    """
    is_edu = (email or '').lower().endswith('.edu')
    return VerificationResult(
        is_valid=is_edu,
        confidence=VALID_CONFIDENCE if is_edu else INVALID_CONFIDENCE,
        name=name,
        college=college_from_email(email),
        matches_email=True,
        reason=None if is_edu else 'Email domain is not a .edu address',
    )


def generate_otp():
    """Six random digits, never starting with zero."""
    return str(100000 + secrets.randbelow(900000))


def otp_expiry(minutes):
    return timezone.now() + timedelta(minutes=minutes)


def is_otp_expired(expires_at):
    if expires_at is None:
        return True
    return timezone.now() > expires_at


def user_prompt(email, name, id_photo_url):
    return (
        'Verify this student ID submission:\n'
        f"User's claimed name: {name}\n"
        f"User's email: {email}\n"
        f'ID Photo URL: {id_photo_url}\n\n'
        'Extract the college from the email domain (e.g., @harvard.edu -> Harvard), '
        'check whether the name seems plausible and assume the photo URL is valid if provided.\n\n'
        'Return JSON with: name, college, expiryDate, isAuthentic, confidence, issues'
    )


def _optional_text(payload, key):
    value = payload.get(key) or None
    if value is not None and not isinstance(value, str):
        raise ValueError(f'{key} must be a string')
    return value


def from_payload(payload, email):
    """Build a verification result from a remote JSON answer; raises ValueError when unusable."""
    if not isinstance(payload, dict):
        raise ValueError('Verification payload must be an object')
    confidence = int(float(payload.get('confidence') or 0))
    issues = payload.get('issues') or []
    if not isinstance(issues, list):
        raise ValueError('issues must be a list')
    college = _optional_text(payload, 'college')
    domain = email_domain(email).lower()
    return VerificationResult(
        is_valid=bool(payload.get('isAuthentic')) and confidence > REMOTE_MIN_CONFIDENCE and not issues,
        confidence=confidence,
        name=_optional_text(payload, 'name'),
        college=college,
        expiry_date=_optional_text(payload, 'expiryDate'),
        matches_email=bool(college and domain and domain in college.lower()),
        reason=', '.join(str(issue) for issue in issues) or None,
    )
