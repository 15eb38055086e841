"""
Admin data endpoints: listing, search, export, contact inbox.

Access rules for registrant data:
- Search returns one record with PII masked (routine desk lookups)
- Export returns full records, only after the password is re-entered
- Bulk listing is disabled unless ALLOW_BULK_LISTING is set
"""

import re

from fastapi import APIRouter
from fastapi.responses import Response

from quizfest.api.dependencies import (
    AdminSession,
    AppSettings,
    ClientIP,
    DatabaseSession,
    Principal,
    RequestID,
)
from quizfest.core.audit import audit_event
from quizfest.core.exceptions import AuthorizationError, InvalidRequestError, NotFoundError
from quizfest.repositories.contact import ContactRepository
from quizfest.repositories.registration import RegistrationRepository
from quizfest.schemas.contact import ContactListResponse, ContactRecord
from quizfest.schemas.export import ExportMetadata, ExportRequest, ExportResponse
from quizfest.schemas.registration import (
    RegistrationListResponse,
    RegistrationRecord,
    RegistrationSearchResponse,
)
from quizfest.services.export import ExportAuthorizer, render_registrations_csv
from quizfest.services.redaction import redact_registration

router = APIRouter(prefix="/admin")

MIN_SEARCH_TERM_LENGTH = 2
_SEARCH_TERM_DISALLOWED = re.compile(r"[^A-Za-z0-9-]")


def sanitize_search_term(term: str) -> str:
    """
    Reduce a search term to letters, digits and hyphens.

    Raises:
        InvalidRequestError: Fewer than 2 characters remain
    """
    cleaned = _SEARCH_TERM_DISALLOWED.sub("", term)
    if len(cleaned) < MIN_SEARCH_TERM_LENGTH:
        raise InvalidRequestError(
            "Search term must be at least 2 characters",
            errors=[{"field": "term", "message": "Use letters, digits or hyphens (min 2)"}],
        )
    return cleaned


@router.get(
    "/registrations",
    response_model=RegistrationListResponse,
    summary="List all registrations",
    description="Disabled unless ALLOW_BULK_LISTING is set; use export instead",
)
async def list_registrations(
    admin: AdminSession,
    settings: AppSettings,
    db: DatabaseSession,
    client_ip: ClientIP,
    request_id: RequestID,
) -> RegistrationListResponse:
    if not settings.allow_bulk_listing:
        audit_event(
            "registrations.list",
            outcome="denied",
            actor=admin.user,
            client_ip=client_ip,
            request_id=request_id,
            reason="bulk_listing_disabled",
        )
        raise AuthorizationError(
            "Bulk listing is disabled. Use search, or export with password confirmation."
        )

    records = await RegistrationRepository(db).list()

    audit_event(
        "registrations.list",
        outcome="success",
        actor=admin.user,
        client_ip=client_ip,
        request_id=request_id,
        count=len(records),
    )
    return RegistrationListResponse(
        data=[RegistrationRecord.model_validate(record) for record in records]
    )


@router.get(
    "/registrations/search/{term}",
    response_model=RegistrationSearchResponse,
    summary="Find one registration",
    description="Look up by registration number, then student ID. PII is masked.",
)
async def search_registration(
    term: str,
    admin: AdminSession,
    db: DatabaseSession,
    client_ip: ClientIP,
    request_id: RequestID,
) -> RegistrationSearchResponse:
    """
    Raises:
        InvalidRequestError: Term too short after sanitizing
        NotFoundError: No registration matches
    """
    cleaned = sanitize_search_term(term)
    registration = await RegistrationRepository(db).find_by_search_term(cleaned)

    if registration is None:
        audit_event(
            "registrations.search",
            outcome="not_found",
            actor=admin.user,
            client_ip=client_ip,
            request_id=request_id,
        )
        raise NotFoundError("Registration not found")

    audit_event(
        "registrations.search",
        outcome="success",
        actor=admin.user,
        client_ip=client_ip,
        request_id=request_id,
        registration_number=registration.registration_number,
    )
    return RegistrationSearchResponse(data=redact_registration(registration))


@router.post(
    "/export/csv",
    response_model=ExportResponse,
    summary="Export registrations",
    description="Full records for one category or all; requires the admin password",
    responses={200: {"content": {"text/csv": {}}}},
)
async def export_registrations(
    body: ExportRequest,
    admin: AdminSession,
    principal: Principal,
    db: DatabaseSession,
    client_ip: ClientIP,
    request_id: RequestID,
):
    """
    Step-up authenticated export.

    With format "csv" the records are returned as a CSV attachment;
    otherwise as JSON with export metadata for the client to render.

    Raises:
        AuthenticationError: Wrong password ("Invalid password")
    """
    authorizer = ExportAuthorizer(principal, RegistrationRepository(db))
    result = await authorizer.authorize_export(
        admin,
        body.password,
        body.category,
        client_ip,
        request_id=request_id,
    )

    if body.format == "csv":
        return Response(
            content=render_registrations_csv(result.records),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{result.file_name}"'},
        )

    return ExportResponse(
        metadata=ExportMetadata(
            category=result.category,
            count=result.count,
            exported_at=result.exported_at,
            file_name=result.file_name,
        ),
        records=[RegistrationRecord.model_validate(record) for record in result.records],
    )


@router.get(
    "/contact",
    response_model=ContactListResponse,
    summary="List contact form submissions",
)
async def list_contact_submissions(
    admin: AdminSession,
    db: DatabaseSession,
    client_ip: ClientIP,
    request_id: RequestID,
) -> ContactListResponse:
    submissions = await ContactRepository(db).list()

    audit_event(
        "contact.list",
        outcome="success",
        actor=admin.user,
        client_ip=client_ip,
        request_id=request_id,
        count=len(submissions),
    )
    return ContactListResponse(
        data=[ContactRecord.model_validate(submission) for submission in submissions]
    )
