"""
Registration and contact submission models.

A registration is one student's entry into the quiz festival. It is
identified publicly by a generated registration number (``QF-XXXXX``) and
by the student id the registrant supplies, both unique.
"""

from sqlalchemy import Column, String, Text

from quizfest.models.base import Base, CreatedAtMixin, UUIDMixin


class Registration(Base, UUIDMixin, CreatedAtMixin):
    """
    Festival registration.

    Attributes:
        registration_number: Generated public identifier, e.g. "QF-0K3ZD"
        name_english / name_bangla: Student name in both scripts
        father_name / mother_name: Guardian names (masked in search results)
        student_id: Caller-supplied school id (unique)
        class_name: School class ("3" .. "12"), stored in column "class"
        section: Class section
        blood_group: e.g. "B+"
        phone_whatsapp: Contact number (masked in search results)
        email: Optional contact email (masked in search results)
        present_address / permanent_address: Free text (truncated in search results)
        class_category: Competition bracket, one of ClassCategory
    """

    __tablename__ = "registrations"

    registration_number = Column(String(16), nullable=False, unique=True, index=True)
    name_english = Column(Text, nullable=False)
    name_bangla = Column(Text, nullable=False)
    father_name = Column(Text, nullable=False)
    mother_name = Column(Text, nullable=False)
    student_id = Column(String(64), nullable=False, unique=True, index=True)
    class_name = Column("class", String(16), nullable=False)
    section = Column(String(32), nullable=False)
    blood_group = Column(String(8), nullable=False)
    phone_whatsapp = Column(String(32), nullable=False)
    email = Column(String(320), nullable=True, index=True)
    present_address = Column(Text, nullable=False)
    permanent_address = Column(Text, nullable=False)
    class_category = Column(String(8), nullable=False, index=True)

    def __repr__(self) -> str:
        # Identifiers only; never include PII in repr
        return f"Registration(id={self.id!r}, registration_number={self.registration_number!r})"


class ContactSubmission(Base, UUIDMixin, CreatedAtMixin):
    """Message sent through the public contact form."""

    __tablename__ = "contact_submissions"

    name = Column(Text, nullable=False)
    email = Column(String(320), nullable=False)
    subject = Column(Text, nullable=False)
    message = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"ContactSubmission(id={self.id!r})"
