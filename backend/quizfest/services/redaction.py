"""
PII masking for single-record search results.

The full record is needed to confirm an identity at the registration desk,
but the search screen is shown on shared machines, so contact details and
family names are partially hidden. Identifiers and school data stay
readable.

Bulk data is never redacted here; it is released only through the
step-up authenticated export.
"""

from typing import Optional

from quizfest.models.registration import Registration
from quizfest.schemas.registration import RedactedRegistrationView

MASK = "***"
ADDRESS_VISIBLE_CHARS = 20


def mask_name(name: str) -> str:
    """
    Keep the first word of a name and hide the rest.

    Example:
        >>> mask_name("Abdul Karim Mia")
        'Abdul ***'
        >>> mask_name("Karim")
        'Karim'
    """
    parts = name.split(" ")
    if len(parts) <= 1:
        return name
    return f"{parts[0]} {MASK}"


def mask_phone(phone: str) -> str:
    """
    Keep the first and last three digits.

    Numbers shorter than 7 characters would leave nothing hidden, so they
    are masked entirely.

    Example:
        >>> mask_phone("01712345678")
        '017*****678'
    """
    if len(phone) < 7:
        return "*" * len(phone)
    return phone[:3] + "*" * (len(phone) - 6) + phone[-3:]


def mask_email(email: Optional[str]) -> Optional[str]:
    """
    Keep two characters of the local part and the domain.

    Example:
        >>> mask_email("student@example.com")
        'st***@example.com'
    """
    if email is None:
        return None
    local, sep, domain = email.partition("@")
    if not sep or not domain or len(local) < 2:
        return f"{MASK}@{MASK}"
    return f"{local[:2]}{MASK}@{domain}"


def mask_address(address: str) -> str:
    if len(address) <= ADDRESS_VISIBLE_CHARS:
        return address
    return address[:ADDRESS_VISIBLE_CHARS] + "..."


def redact_registration(record: Registration) -> RedactedRegistrationView:
    """
    Build the masked view of one registration.

    Pure: the stored record is not modified.
    """
    return RedactedRegistrationView(
        registration_number=record.registration_number,
        name_english=record.name_english,
        name_bangla=record.name_bangla,
        father_name=mask_name(record.father_name),
        mother_name=mask_name(record.mother_name),
        student_id=record.student_id,
        class_name=record.class_name,
        section=record.section,
        blood_group=record.blood_group,
        phone_whatsapp=mask_phone(record.phone_whatsapp),
        email=mask_email(record.email),
        present_address=mask_address(record.present_address),
        permanent_address=mask_address(record.permanent_address),
        class_category=record.class_category,
        created_at=record.created_at,
    )
