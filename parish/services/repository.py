"""Base repository over one mapped entity.

Each entity repository exposes list / get_by_id / create / update / delete /
count. Store failures roll the session back and surface as
``RepositoryError``; they are not retried here.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parish.core.errors import NotFoundError, RepositoryError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


def blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class Repository(Generic[ModelT]):
    model: Type[ModelT]
    entity_name: str = "Record"

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _store(self, action: str):
        """Wrap a unit of store work: roll back and raise RepositoryError on failure."""
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("%s %s failed: %s", self.entity_name, action, e, exc_info=True)
            raise RepositoryError(f"Failed to {action} {self.entity_name.lower()}", cause=e)

    def query(self, **filters):
        return self.db.query(self.model)

    def list(self, **filters) -> List[ModelT]:
        with self._store("list"):
            return self.query(**filters).all()

    def count(self, **filters) -> int:
        with self._store("count"):
            return self.query(**filters).count()

    def get_by_id(self, entity_id: UUID) -> Optional[ModelT]:
        with self._store("load"):
            return self.db.get(self.model, entity_id)

    def get_or_404(self, entity_id: UUID) -> ModelT:
        entity = self.get_by_id(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.entity_name} not found")
        return entity

    def validate_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return data

    def validate_update(self, entity: ModelT, patch: Dict[str, Any]) -> Dict[str, Any]:
        return patch

    def create(self, data: Dict[str, Any]) -> ModelT:
        values = self.validate_create(dict(data))
        entity = self.model(**values)
        with self._store("create"):
            self.db.add(entity)
            self.db.commit()
            self.db.refresh(entity)
        logger.info("%s %s created", self.entity_name, entity.id)
        return entity

    def update(self, entity_id: UUID, patch: Dict[str, Any]) -> ModelT:
        entity = self.get_or_404(entity_id)
        values = self.validate_update(entity, dict(patch))
        for key, value in values.items():
            setattr(entity, key, value)
        with self._store("update"):
            self.db.commit()
            self.db.refresh(entity)
        return entity

    def delete(self, entity_id: UUID) -> None:
        entity = self.get_or_404(entity_id)
        with self._store("delete"):
            self.db.delete(entity)
            self.db.commit()
        logger.info("%s %s deleted", self.entity_name, entity_id)
