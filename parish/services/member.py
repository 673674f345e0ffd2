from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import or_

from parish.core.errors import ValidationError
from parish.models.group import Group, GroupMembership
from parish.models.member import Adherent, MaritalStatus, Ministry, Sex, Zone
from parish.services.repository import Repository, blank_to_none

logger = logging.getLogger(__name__)

OPTIONAL_TEXT_FIELDS = ("address", "neighborhood", "phone", "email", "church_function")


def _coerce_enum(enum_cls, value, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"Invalid {field_name}: {value!r} (expected one of {allowed})")


def _require_text(data: Dict[str, Any], field_name: str, label: str) -> str:
    value = blank_to_none(data.get(field_name))
    if value is None:
        raise ValidationError(f"{label} is required")
    return value


class MemberRepository(Repository[Adherent]):
    model = Adherent
    entity_name = "Adherent"

    def query(self, search: Optional[str] = None, sex: Optional[Sex] = None,
              neighborhood: Optional[str] = None, zone: Optional[Zone] = None,
              communicant: Optional[bool] = None, ministry_id: Optional[UUID] = None,
              registered_since: Optional[date] = None):
        q = self.db.query(Adherent)
        if search:
            pattern = f"%{search.strip()}%"
            q = q.filter(or_(Adherent.surname.ilike(pattern), Adherent.given_name.ilike(pattern)))
        if sex is not None:
            q = q.filter(Adherent.sex == _coerce_enum(Sex, sex, "sex"))
        if neighborhood:
            q = q.filter(Adherent.neighborhood == neighborhood)
        if zone is not None:
            q = q.filter(Adherent.zone == _coerce_enum(Zone, zone, "zone"))
        if communicant is not None:
            q = q.filter(Adherent.communicant == communicant)
        if ministry_id is not None:
            q = q.filter(Adherent.ministry_id == ministry_id)
        if registered_since is not None:
            q = q.filter(Adherent.registration_date >= registered_since)
        return q.order_by(Adherent.surname, Adherent.given_name)

    def _normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        for field_name in OPTIONAL_TEXT_FIELDS:
            if field_name in data:
                data[field_name] = blank_to_none(data[field_name])
        if "marital_status" in data:
            data["marital_status"] = _coerce_enum(MaritalStatus, blank_to_none(data["marital_status"]), "marital status")
        if "zone" in data:
            data["zone"] = _coerce_enum(Zone, blank_to_none(data["zone"]), "zone")
        if "ministry_id" in data and data["ministry_id"] is not None:
            if self.db.get(Ministry, data["ministry_id"]) is None:
                raise ValidationError("Ministry not found")
        return data

    def validate_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data["surname"] = _require_text(data, "surname", "Surname")
        data["given_name"] = _require_text(data, "given_name", "Given name")
        sex = blank_to_none(data.get("sex"))
        if sex is None:
            raise ValidationError("Sex is required")
        data["sex"] = _coerce_enum(Sex, sex, "sex")
        if data.get("communicant") is None:
            data["communicant"] = False
        if data.get("registration_date") is None:
            data["registration_date"] = date.today()
        return self._normalize(data)

    def validate_update(self, entity: Adherent, patch: Dict[str, Any]) -> Dict[str, Any]:
        if "surname" in patch:
            patch["surname"] = _require_text(patch, "surname", "Surname")
        if "given_name" in patch:
            patch["given_name"] = _require_text(patch, "given_name", "Given name")
        if "sex" in patch:
            patch["sex"] = _coerce_enum(Sex, blank_to_none(patch["sex"]), "sex")
            if patch["sex"] is None:
                raise ValidationError("Sex is required")
        if "communicant" in patch and patch["communicant"] is None:
            patch["communicant"] = False
        if "registration_date" in patch and patch["registration_date"] is None:
            del patch["registration_date"]
        return self._normalize(patch)

    def delete(self, entity_id: UUID) -> None:
        """Remove the member's group links, then the member.

        Two separate commits; if the second one fails the links are already gone.
        """
        member = self.get_or_404(entity_id)
        with self._store("unlink"):
            removed = self.db.query(GroupMembership).filter(
                GroupMembership.member_id == entity_id
            ).delete(synchronize_session=False)
            self.db.commit()
        logger.info("Removed %d group link(s) of adherent %s", removed, entity_id)
        with self._store("delete"):
            self.db.delete(member)
            self.db.commit()
        logger.info("Adherent %s deleted", entity_id)

    def groups_of(self, member_id: UUID) -> List[Group]:
        self.get_or_404(member_id)
        with self._store("list groups of"):
            return self.db.query(Group).join(GroupMembership).filter(
                GroupMembership.member_id == member_id
            ).order_by(Group.name).all()

    def communicants(self) -> List[Adherent]:
        return self.list(communicant=True)


class MinistryRepository(Repository[Ministry]):
    model = Ministry
    entity_name = "Ministry"

    def query(self, **filters):
        return self.db.query(Ministry).order_by(Ministry.name)

    def validate_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data["name"] = _require_text(data, "name", "Ministry name")
        data["description"] = blank_to_none(data.get("description"))
        return data

    def validate_update(self, entity: Ministry, patch: Dict[str, Any]) -> Dict[str, Any]:
        if "name" in patch:
            patch["name"] = _require_text(patch, "name", "Ministry name")
        if "description" in patch:
            patch["description"] = blank_to_none(patch["description"])
        return patch
