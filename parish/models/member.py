from sqlalchemy import Column, String, ForeignKey, Date, DateTime, Boolean, Text, Enum as SQLEnum, Uuid, text, func
from sqlalchemy.orm import relationship
import uuid
from parish.db.base import Base
import enum


class Sex(str, enum.Enum):
    MALE = "M"
    FEMALE = "F"


class MaritalStatus(str, enum.Enum):
    """Etat civil."""
    SINGLE = "celibataire"
    MARRIED = "marie"
    WIDOWED = "veuf"


class Zone(str, enum.Enum):
    """Faritra (parish district)."""
    FIRST = "voalohany"
    SECOND = "faharoa"
    THIRD = "fahatelo"
    FOURTH = "fahefatra"
    FIFTH = "fahadimy"


def _enum_column(enum_cls, **kwargs):
    return Column(SQLEnum(enum_cls, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), **kwargs)


class Ministry(Base):
    """Sampana (ministry group) a member serves in."""
    __tablename__ = "ministry"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    members = relationship("Adherent", back_populates="ministry")


class Adherent(Base):
    """Registered parish member."""
    __tablename__ = "adherent"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    surname = Column(String(100), nullable=False, index=True)
    given_name = Column(String(100), nullable=False)
    sex = _enum_column(Sex, nullable=False)
    birth_date = Column(Date, nullable=True)
    address = Column(Text, nullable=True)
    neighborhood = Column(String(100), nullable=True, index=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    church_function = Column(String(100), nullable=True)
    registration_date = Column(Date, nullable=False, server_default=func.current_date())
    marital_status = _enum_column(MaritalStatus, nullable=True)
    communicant = Column(Boolean, nullable=False, default=False)
    zone = _enum_column(Zone, nullable=True)
    ministry_id = Column(Uuid(as_uuid=True), ForeignKey("ministry.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    # Relationships
    ministry = relationship("Ministry", back_populates="members")
    memberships = relationship("GroupMembership", back_populates="member", passive_deletes=True)
    dues = relationship("DuesRecord", back_populates="member", passive_deletes=True)
    contributions = relationship("Contribution", back_populates="member", passive_deletes=True)

    @property
    def full_name(self) -> str:
        return f"{self.surname} {self.given_name}".strip()
