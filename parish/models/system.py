from sqlalchemy import Column, String, ForeignKey, DateTime, Text, JSON, Uuid, text, func
import uuid
from parish.db.base import Base


class SystemSetting(Base):
    """Key/value application setting (app name, toggles, numeric limits)."""
    __tablename__ = "system_setting"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    key = Column(String(100), nullable=False, unique=True, index=True)
    value = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now())
    updated_by = Column(Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True)
