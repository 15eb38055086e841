"""
Contact submission repository.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quizfest.models.registration import ContactSubmission
from quizfest.schemas.contact import ContactCreate


class ContactRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, data: ContactCreate) -> ContactSubmission:
        submission = ContactSubmission(
            name=data.name.strip(),
            email=data.email,
            subject=data.subject.strip(),
            message=data.message.strip(),
        )
        self.session.add(submission)
        await self.session.flush()
        await self.session.refresh(submission)
        return submission

    async def list(self) -> List[ContactSubmission]:
        """All submissions, newest first."""
        stmt = select(ContactSubmission).order_by(ContactSubmission.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
