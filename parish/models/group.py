from sqlalchemy import Column, String, ForeignKey, Date, DateTime, Text, Uuid, text, func
from sqlalchemy.orm import relationship
import uuid
from parish.db.base import Base


class Group(Base):
    """Parish group (groupe). Membership count is derived from the link table."""
    __tablename__ = "parish_group"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    memberships = relationship("GroupMembership", back_populates="group", passive_deletes=True)


class GroupMembership(Base):
    """Many-to-many link between members and groups. The (member, group) pair is the key."""
    __tablename__ = "group_membership"

    member_id = Column(Uuid(as_uuid=True), ForeignKey("adherent.id", ondelete="CASCADE"), primary_key=True)
    group_id = Column(Uuid(as_uuid=True), ForeignKey("parish_group.id", ondelete="CASCADE"), primary_key=True)
    joined_on = Column(Date, nullable=False, server_default=func.current_date())
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    member = relationship("Adherent", back_populates="memberships")
    group = relationship("Group", back_populates="memberships")
