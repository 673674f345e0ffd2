"""Role model: closed role set, capability matrix and predicates.

Every capability check goes through ``CAPABILITY_MATRIX``. Roles do not
inherit from each other, so a role gets a capability only if its row lists it.
"""
import enum
from typing import Dict, FrozenSet, Iterable, Optional, Union

from parish.core.errors import ValidationError
from parish.models.role import AppRole


class Capability(str, enum.Enum):
    VIEW_ADHERENTS = "view_adherents"
    MANAGE_ADHERENTS = "manage_adherents"
    VIEW_FINANCES = "view_finances"
    MANAGE_FINANCES = "manage_finances"
    MANAGE_USERS = "manage_users"


CAPABILITY_MATRIX: Dict[AppRole, FrozenSet[Capability]] = {
    AppRole.ADMIN: frozenset({
        Capability.VIEW_ADHERENTS,
        Capability.MANAGE_ADHERENTS,
        Capability.VIEW_FINANCES,
        Capability.MANAGE_FINANCES,
        Capability.MANAGE_USERS,
    }),
    AppRole.RESPONSABLE: frozenset({
        Capability.VIEW_ADHERENTS,
        Capability.MANAGE_ADHERENTS,
        Capability.VIEW_FINANCES,
    }),
    AppRole.SECRETAIRE: frozenset({
        Capability.VIEW_ADHERENTS,
        Capability.MANAGE_ADHERENTS,
    }),
    AppRole.TRESORIER: frozenset({
        Capability.VIEW_ADHERENTS,
        Capability.VIEW_FINANCES,
        Capability.MANAGE_FINANCES,
    }),
    AppRole.MEMBRE: frozenset({
        Capability.VIEW_ADHERENTS,
    }),
    AppRole.UTILISATEUR: frozenset({
        Capability.VIEW_ADHERENTS,
    }),
}

DEFAULT_ROLE = AppRole.MEMBRE
ISSUABLE_ROLES = tuple(role for role in AppRole if role is not AppRole.UTILISATEUR)

ROLE_DESCRIPTIONS = {
    AppRole.ADMIN: "Accès complet au système, peut gérer tous les utilisateurs et paramètres",
    AppRole.RESPONSABLE: "Gestion des adhérents et des groupes, consultation des finances",
    AppRole.SECRETAIRE: "Gestion des adhérents et des groupes",
    AppRole.TRESORIER: "Gestion des finances et des contributions",
    AppRole.MEMBRE: "Consultation des informations de base",
    AppRole.UTILISATEUR: "Rôle hérité, équivalent à Membre",
}


def parse_role(value: Union[str, AppRole]) -> AppRole:
    """Parse a stored or submitted role value. Unknown values are rejected."""
    if isinstance(value, AppRole):
        return value
    try:
        return AppRole(value)
    except ValueError:
        raise ValidationError(f"Unknown role: {value!r}")


def has_role(assigned: Optional[AppRole], required: Union[AppRole, Iterable[AppRole]]) -> bool:
    """True iff the assigned role equals ``required`` or is one of them."""
    if assigned is None:
        return False
    if isinstance(required, AppRole):
        return assigned == required
    return assigned in tuple(required)


def has_capability(role: Optional[AppRole], capability: Capability) -> bool:
    if role is None:
        return False
    return capability in CAPABILITY_MATRIX[role]


def capabilities_of(role: Optional[AppRole]) -> FrozenSet[Capability]:
    if role is None:
        return frozenset()
    return CAPABILITY_MATRIX[role]


def can_manage_adherents(role: Optional[AppRole]) -> bool:
    return has_capability(role, Capability.MANAGE_ADHERENTS)


def can_manage_finances(role: Optional[AppRole]) -> bool:
    return has_capability(role, Capability.MANAGE_FINANCES)


def can_view_finances(role: Optional[AppRole]) -> bool:
    return has_capability(role, Capability.VIEW_FINANCES)


def can_manage_users(role: Optional[AppRole]) -> bool:
    return has_capability(role, Capability.MANAGE_USERS)


def is_admin(role: Optional[AppRole]) -> bool:
    return role == AppRole.ADMIN


def is_responsable(role: Optional[AppRole]) -> bool:
    return role == AppRole.RESPONSABLE


def capability_flags(role: Optional[AppRole]) -> dict:
    """Flags exposed to clients alongside the current session."""
    return {
        "is_admin": is_admin(role),
        "is_responsable": is_responsable(role),
        "can_manage_adherents": can_manage_adherents(role),
        "can_manage_finances": can_manage_finances(role),
        "can_view_finances": can_view_finances(role),
        "can_manage_users": can_manage_users(role),
    }
