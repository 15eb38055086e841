"""
Registration repository.

Provides data access for festival registrations: creation with duplicate
checks and registration number assignment, the two lookup keys used by the
admin search, category-filtered listing for export, and aggregate counts.
"""

from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quizfest.core.exceptions import ConflictError
from quizfest.core.logging_config import get_logger
from quizfest.models.registration import Registration
from quizfest.schemas.registration import ClassCategory, RegistrationCreate
from quizfest.services.registration_numbers import generate_registration_number

logger = get_logger(__name__)

DUPLICATE_MESSAGE = "A registration with these details already exists"


class RegistrationRepository:
    """
    Repository for registration data access.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, data: RegistrationCreate) -> Registration:
        """
        Store a new registration.

        Args:
            data: Validated registration form

        Returns:
            Created Registration with registration_number and created_at set

        Raises:
            ConflictError: Student ID or email already registered. The
                message does not say which, so the endpoint cannot be used
                to probe for enrolled students.
        """
        if await self.get_by_student_id(data.student_id) is not None:
            raise ConflictError(DUPLICATE_MESSAGE)
        if await self.get_by_email(data.email) is not None:
            raise ConflictError(DUPLICATE_MESSAGE)

        registration_number = await generate_registration_number(
            self.registration_number_exists
        )

        registration = Registration(
            registration_number=registration_number,
            name_english=data.name_english,
            name_bangla=data.name_bangla,
            father_name=data.father_name,
            mother_name=data.mother_name,
            student_id=data.student_id,
            class_name=data.class_name,
            section=data.section,
            blood_group=data.blood_group,
            phone_whatsapp=data.phone_whatsapp,
            email=data.email,
            present_address=data.present_address,
            permanent_address=data.permanent_address,
            class_category=data.class_category.value,
        )

        self.session.add(registration)
        try:
            await self.session.flush()
        except IntegrityError:
            # Lost a race with a concurrent submission for the same student
            await self.session.rollback()
            raise ConflictError(DUPLICATE_MESSAGE)

        await self.session.refresh(registration)

        logger.info(
            "Registration created",
            extra={
                "registration_number": registration.registration_number,
                "class_category": registration.class_category,
            }
        )
        return registration

    async def registration_number_exists(self, registration_number: str) -> bool:
        return await self.get_by_registration_number(registration_number) is not None

    async def get_by_registration_number(self, registration_number: str) -> Optional[Registration]:
        stmt = select(Registration).where(Registration.registration_number == registration_number)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_student_id(self, student_id: str) -> Optional[Registration]:
        stmt = select(Registration).where(Registration.student_id == student_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[Registration]:
        stmt = select(Registration).where(Registration.email == email).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_search_term(self, term: str) -> Optional[Registration]:
        """
        Resolve an admin search term to one registration.

        Tries the registration number first (case-insensitive via
        uppercasing, numbers are stored uppercase), then the student ID.

        Args:
            term: Sanitized search term

        Returns:
            Registration if either key matches, None otherwise
        """
        registration = await self.get_by_registration_number(term.upper())
        if registration is not None:
            return registration
        return await self.get_by_student_id(term)

    async def list(self, class_category: Optional[str] = None) -> List[Registration]:
        """
        List registrations, newest first.

        Args:
            class_category: Restrict to one bracket (e.g. "06-08"); None for all
        """
        stmt = select(Registration).order_by(Registration.created_at.desc())
        if class_category is not None:
            stmt = stmt.where(Registration.class_category == class_category)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_category(self) -> Dict[str, int]:
        """
        Number of registrations per category.

        Every category appears in the result, with 0 when empty.
        """
        stmt = (
            select(Registration.class_category, func.count(Registration.id))
            .group_by(Registration.class_category)
        )
        result = await self.session.execute(stmt)

        counts = {category.value: 0 for category in ClassCategory}
        for category, count in result.all():
            counts[category] = count
        return counts
