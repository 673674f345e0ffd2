from sqlalchemy import Column, ForeignKey, DateTime, Enum as SQLEnum, Uuid, text, func
from sqlalchemy.orm import relationship
import uuid
from parish.db.base import Base
import enum


class AppRole(str, enum.Enum):
    """Closed set of application roles, as stored in the role column."""
    ADMIN = "ADMIN"
    RESPONSABLE = "RESPONSABLE"
    SECRETAIRE = "SECRETAIRE"
    TRESORIER = "TRESORIER"
    MEMBRE = "MEMBRE"
    # Deprecated: read rights of MEMBRE, never issued to new users
    UTILISATEUR = "UTILISATEUR"


class UserRole(Base):
    """Role assignment. Exactly one row per user, enforced by the unique user_id."""
    __tablename__ = "user_role"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    role = Column(SQLEnum(AppRole, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False, default=AppRole.MEMBRE)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    user = relationship("User", back_populates="role_assignment")
