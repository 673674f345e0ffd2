from sqlalchemy import Column, String, ForeignKey, DateTime, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from parish.db.base import Base


class User(Base):
    """Authenticated account. Optionally linked to the member record of its owner."""
    __tablename__ = "app_user"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    username = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    adherent_id = Column(Uuid(as_uuid=True), ForeignKey("adherent.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    role_assignment = relationship("UserRole", back_populates="user", uselist=False)
    adherent = relationship("Adherent")
