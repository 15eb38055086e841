"""
Pydantic schemas for the bulk export endpoint.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import Field

from quizfest.schemas.base import APIModel
from quizfest.schemas.registration import RegistrationRecord


class ExportCategory(str, Enum):
    ALL = "all"
    CLASS_03_05 = "03-05"
    CLASS_06_08 = "06-08"
    CLASS_09_10 = "09-10"
    CLASS_11_12 = "11-12"


class ExportRequest(APIModel):
    """
    Step-up authenticated export request.

    The admin must re-enter the password even with a valid session.
    """
    password: str = Field(..., min_length=1, max_length=1024)
    category: ExportCategory = ExportCategory.ALL
    format: Literal["json", "csv"] = "json"


class ExportMetadata(APIModel):
    category: ExportCategory
    count: int
    exported_at: datetime
    file_name: str


class ExportResponse(APIModel):
    success: bool = True
    metadata: ExportMetadata
    records: list[RegistrationRecord]
