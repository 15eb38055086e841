"""
Step-up authorization for bulk export of registrant data.

Export is the only way to get unredacted data for more than one
registrant. A valid session is not enough: the admin must re-enter the
password, so an unattended logged-in browser cannot be used to pull the
whole table.
"""

import csv
import io
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from quizfest.core.audit import audit_event
from quizfest.core.exceptions import AuthenticationError
from quizfest.core.security import (
    AdminPrincipal,
    SessionClaims,
    is_fully_authenticated,
    verify_admin_credentials,
)
from quizfest.models.registration import Registration
from quizfest.repositories.registration import RegistrationRepository
from quizfest.schemas.export import ExportCategory

CSV_HEADERS = [
    "Registration Date",
    "Registration Number",
    "Name (English)",
    "Name (Bangla)",
    "Father's Name",
    "Mother's Name",
    "Student ID",
    "Class",
    "Section",
    "Blood Group",
    "Phone (WhatsApp)",
    "Email",
    "Present Address",
    "Permanent Address",
    "Class Category",
]


@dataclass
class ExportResult:
    category: ExportCategory
    records: List[Registration]
    exported_at: datetime
    file_name: str

    @property
    def count(self) -> int:
        return len(self.records)


def export_file_name(category: ExportCategory, exported_at: datetime) -> str:
    """
    Download name for an export.

    Example:
        >>> export_file_name(ExportCategory.CLASS_06_08, datetime(2025, 3, 1))
        'quiz-fest-class-06-08-registrations-2025-03-01.csv'
    """
    scope = "all" if category == ExportCategory.ALL else f"class-{category.value}"
    return f"quiz-fest-{scope}-registrations-{exported_at.date().isoformat()}.csv"


def _format_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%B %d, %Y").replace(" 0", " ")


def render_registrations_csv(records: Iterable[Registration]) -> str:
    """
    Render registrations as CSV with every field quoted.

    Column order matches the dashboard export admins already use with
    their spreadsheets.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow([
            _format_date(record.created_at),
            record.registration_number or "N/A",
            record.name_english,
            record.name_bangla,
            record.father_name,
            record.mother_name,
            record.student_id,
            record.class_name,
            record.section,
            record.blood_group,
            record.phone_whatsapp,
            record.email or "",
            record.present_address,
            record.permanent_address,
            record.class_category,
        ])
    return buffer.getvalue()


class ExportAuthorizer:
    """
    Releases full registrant records after re-verifying the admin password.

    Every attempt is audited with actor, client address and outcome;
    successful exports also record category and record count.

    Example:
        authorizer = ExportAuthorizer(principal, RegistrationRepository(db))
        result = await authorizer.authorize_export(claims, body.password, body.category, client_ip)
    """

    def __init__(self, principal: AdminPrincipal, repository: RegistrationRepository):
        self.principal = principal
        self.repository = repository

    async def authorize_export(
        self,
        session: Optional[SessionClaims],
        password: str,
        category: ExportCategory,
        client_ip: Optional[str],
        request_id: Optional[str] = None,
    ) -> ExportResult:
        """
        Verify the step-up password and load the requested records.

        Args:
            session: Claims of the caller's session
            password: Re-entered admin password
            category: "all" or one class bracket
            client_ip: Resolved client address, for the audit record
            request_id: Correlation ID, for the audit record

        Returns:
            ExportResult with unredacted records

        Raises:
            AuthenticationError: No fully authenticated session, or wrong password
        """
        if session is None or not is_fully_authenticated(session, self.principal):
            audit_event(
                "registrations.export",
                outcome="denied",
                actor=session.user if session else None,
                client_ip=client_ip,
                request_id=request_id,
                level="warning",
                category=category.value,
            )
            raise AuthenticationError()

        if not verify_admin_credentials(session.user, password, self.principal):
            audit_event(
                "registrations.export",
                outcome="failure",
                actor=session.user,
                client_ip=client_ip,
                request_id=request_id,
                level="warning",
                category=category.value,
                reason="invalid_password",
            )
            raise AuthenticationError("Invalid password")

        class_category = None if category == ExportCategory.ALL else category.value
        records = await self.repository.list(class_category=class_category)

        exported_at = datetime.now(timezone.utc)
        result = ExportResult(
            category=category,
            records=records,
            exported_at=exported_at,
            file_name=export_file_name(category, exported_at),
        )

        audit_event(
            "registrations.export",
            outcome="success",
            actor=session.user,
            client_ip=client_ip,
            request_id=request_id,
            category=category.value,
            count=result.count,
        )
        return result
