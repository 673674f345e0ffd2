"""System configuration stored as key/value rows in ``system_setting``."""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from parish.models.system import SystemSetting
from parish.services.repository import Repository

logger = logging.getLogger(__name__)

SETTING_DESCRIPTIONS = {
    "app_name": "Nom de l'application",
    "email_notifications": "Activer les notifications par email",
    "auto_backup": "Sauvegarde automatique",
    "max_users_per_group": "Nombre maximum d'adhérents par groupe",
    "session_timeout": "Délai d'expiration de session (minutes)",
    "maintenance_mode": "Mode maintenance",
}


class SystemConfig(BaseModel):
    app_name: str = "FJKM Vatomandry"
    email_notifications: bool = True
    auto_backup: bool = True
    max_users_per_group: int = Field(50, ge=1)
    session_timeout: int = Field(30, ge=1)
    maintenance_mode: bool = False


class StoredConfig(BaseModel):
    config: SystemConfig
    last_saved: Optional[datetime] = None


class SettingsRepository(Repository[SystemSetting]):
    model = SystemSetting
    entity_name = "Setting"

    def query(self, **filters):
        return self.db.query(SystemSetting).order_by(SystemSetting.key)

    def get_config(self) -> StoredConfig:
        """Current configuration; keys that were never saved keep their defaults."""
        with self._store("load"):
            rows = self.db.query(SystemSetting).filter(
                SystemSetting.key.in_(list(SystemConfig.model_fields))
            ).all()
            last_saved = self.db.query(func.max(SystemSetting.updated_at)).scalar()
        values = {row.key: row.value for row in rows if row.value is not None}
        return StoredConfig(config=SystemConfig(**values), last_saved=last_saved)

    def get_value(self, key: str, default=None):
        with self._store("load"):
            row = self.db.query(SystemSetting).filter(SystemSetting.key == key).first()
        if row is None or row.value is None:
            return default
        return row.value

    def save_config(self, config: SystemConfig, updated_by: Optional[UUID] = None) -> StoredConfig:
        with self._store("save"):
            existing = {
                row.key: row
                for row in self.db.query(SystemSetting).filter(
                    SystemSetting.key.in_(list(SystemConfig.model_fields))
                ).all()
            }
            now = datetime.utcnow()
            for key, value in config.model_dump().items():
                row = existing.get(key)
                if row is None:
                    row = SystemSetting(key=key, description=SETTING_DESCRIPTIONS.get(key))
                    self.db.add(row)
                row.value = value
                row.updated_at = now
                row.updated_by = updated_by
            self.db.commit()
        logger.info("System configuration saved by %s", updated_by)
        return self.get_config()


def max_users_per_group(db: Session) -> int:
    return SettingsRepository(db).get_config().config.max_users_per_group
