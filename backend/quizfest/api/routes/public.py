"""
Public endpoints: registration form, aggregate statistics, contact form.

Nothing here returns row-level registrant data. The registration response
echoes only what the registrant needs for their records.
"""

from fastapi import APIRouter, status

from quizfest.api.dependencies import DatabaseSession
from quizfest.repositories.contact import ContactRepository
from quizfest.repositories.registration import RegistrationRepository
from quizfest.schemas.auth import SuccessResponse
from quizfest.schemas.contact import ContactCreate
from quizfest.schemas.registration import (
    RegistrationCreate,
    RegistrationCreatedResponse,
    RegistrationReceipt,
    RegistrationStats,
)

router = APIRouter()


@router.post(
    "/registrations",
    response_model=RegistrationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register for the quiz festival",
)
async def create_registration(
    body: RegistrationCreate,
    db: DatabaseSession,
) -> RegistrationCreatedResponse:
    """
    Raises:
        ConflictError: Student ID or email already registered
    """
    registration = await RegistrationRepository(db).create(body)
    return RegistrationCreatedResponse(
        data=RegistrationReceipt(
            registration_number=registration.registration_number,
            name_english=registration.name_english,
            class_category=registration.class_category,
            created_at=registration.created_at,
        )
    )


@router.get(
    "/registration-stats",
    response_model=RegistrationStats,
    summary="Registration counts per category",
)
async def registration_stats(db: DatabaseSession) -> RegistrationStats:
    by_category = await RegistrationRepository(db).count_by_category()
    return RegistrationStats(total=sum(by_category.values()), by_category=by_category)


@router.post(
    "/contact",
    response_model=SuccessResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message to the organisers",
)
async def create_contact_submission(body: ContactCreate, db: DatabaseSession) -> SuccessResponse:
    await ContactRepository(db).create(body)
    return SuccessResponse(success=True)
