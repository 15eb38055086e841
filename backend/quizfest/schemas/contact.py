"""
Pydantic schemas for the public contact form.
"""

from datetime import datetime

from pydantic import EmailStr, Field

from quizfest.schemas.base import APIModel


class ContactCreate(APIModel):
    name: str = Field(..., min_length=2, max_length=200)
    email: EmailStr
    subject: str = Field(..., min_length=2, max_length=200)
    message: str = Field(..., min_length=10, max_length=5000)


class ContactRecord(APIModel):
    id: str
    name: str
    email: str
    subject: str
    message: str
    created_at: datetime


class ContactListResponse(APIModel):
    success: bool = True
    data: list[ContactRecord]
