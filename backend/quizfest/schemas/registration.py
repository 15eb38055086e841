"""
Pydantic schemas for registrations.

Defines the public registration form, the full admin record, the masked
search view and aggregate statistics.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import EmailStr, Field, field_validator

from quizfest.schemas.base import APIModel


class ClassCategory(str, Enum):
    """Competition brackets by school class."""
    CLASS_03_05 = "03-05"
    CLASS_06_08 = "06-08"
    CLASS_09_10 = "09-10"
    CLASS_11_12 = "11-12"


class RegistrationCreate(APIModel):
    """
    Public registration form.

    Mirrors the validation the registration page performs client-side;
    the server is the authority.
    """
    name_english: str = Field(..., min_length=2, max_length=200)
    name_bangla: str = Field(..., min_length=2, max_length=200)
    father_name: str = Field(..., min_length=2, max_length=200)
    mother_name: str = Field(..., min_length=2, max_length=200)
    student_id: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9-]+$")
    class_name: str = Field(..., alias="class", min_length=1, max_length=16)
    section: str = Field(..., min_length=1, max_length=32)
    blood_group: str = Field(..., min_length=1, max_length=8)
    phone_whatsapp: str = Field(..., min_length=10, max_length=32)
    email: EmailStr
    present_address: str = Field(..., min_length=10, max_length=500)
    permanent_address: str = Field(..., min_length=10, max_length=500)
    class_category: ClassCategory

    @field_validator(
        "name_english", "name_bangla", "father_name", "mother_name",
        "student_id", "section", "blood_group", "phone_whatsapp",
        "present_address", "permanent_address",
        mode="before",
    )
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip() if isinstance(v, str) else v


class RegistrationReceipt(APIModel):
    """What the registrant gets back after a successful submission."""
    registration_number: str
    name_english: str
    class_category: str
    created_at: datetime


class RegistrationCreatedResponse(APIModel):
    success: bool = True
    message: str = "Registration created successfully"
    data: RegistrationReceipt


class RegistrationRecord(APIModel):
    """
    Full, unredacted registration.

    Only returned by the step-up authenticated export path (and the bulk
    listing when ALLOW_BULK_LISTING is enabled).
    """
    registration_number: str
    name_english: str
    name_bangla: str
    father_name: str
    mother_name: str
    student_id: str
    class_name: str = Field(alias="class")
    section: str
    blood_group: str
    phone_whatsapp: str
    email: Optional[str] = None
    present_address: str
    permanent_address: str
    class_category: str
    created_at: datetime


class RedactedRegistrationView(APIModel):
    """
    Single-record search result with PII masked.

    Exists only for the duration of one response.
    """
    registration_number: str
    name_english: str
    name_bangla: str
    father_name: str
    mother_name: str
    student_id: str
    class_name: str = Field(alias="class")
    section: str
    blood_group: str
    phone_whatsapp: str
    email: Optional[str] = None
    present_address: str
    permanent_address: str
    class_category: str
    created_at: datetime


class RegistrationListResponse(APIModel):
    success: bool = True
    data: list[RegistrationRecord]


class RegistrationSearchResponse(APIModel):
    success: bool = True
    data: RedactedRegistrationView


class RegistrationStats(APIModel):
    """Aggregate counts only; safe to expose publicly."""
    total: int
    by_category: Dict[str, int]
