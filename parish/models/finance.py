from sqlalchemy import Column, ForeignKey, Integer, Numeric, Date, DateTime, Boolean, Enum as SQLEnum, Uuid, UniqueConstraint, text, func
from sqlalchemy.orm import relationship
import uuid
from parish.db.base import Base
import enum


class ContributionType(str, enum.Enum):
    """Contribution types. Values are the stored codes."""
    TITHE = "dime"
    OFFERING = "offrande"
    GIFT = "don"


class DuesRecord(Base):
    """Monthly dues (adidy) of one member for one month."""
    __tablename__ = "dues_record"
    __table_args__ = (
        UniqueConstraint("member_id", "month", "year", name="uq_dues_member_period"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("adherent.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    paid = Column(Boolean, nullable=False, default=False)
    payment_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    member = relationship("Adherent", back_populates="dues")


class Contribution(Base):
    """Tithe, offering or gift received from a member."""
    __tablename__ = "contribution"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("adherent.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(SQLEnum(ContributionType, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    contribution_date = Column(Date, nullable=False, server_default=func.current_date(), index=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    member = relationship("Adherent", back_populates="contributions")
