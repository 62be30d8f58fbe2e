"""Default permission table per staff role.

Each module maps to the set of actions a role may perform on it. Admins can do
everything; assistants are read-only.
"""
from dental_clinic.models.user import UserRole

MODULES = ("patients", "appointments", "users", "settings")
ACTIONS = ("create", "read", "update", "delete")

_READ_ONLY: dict[str, frozenset[str]] = {
    "patients": frozenset({"read"}),
    "appointments": frozenset({"read"}),
    "users": frozenset(),
    "settings": frozenset(),
}

_FRONT_DESK = {
    **_READ_ONLY,
    "patients": frozenset({"create", "read", "update"}),
    "appointments": frozenset({"create", "read", "update"}),
}

DEFAULT_PERMISSIONS: dict[UserRole, dict[str, frozenset[str]]] = {
    UserRole.ADMIN: {module: frozenset(ACTIONS) for module in MODULES},
    UserRole.DENTIST: _FRONT_DESK,
    UserRole.RECEPTIONIST: _FRONT_DESK,
    UserRole.ASSISTANT: _READ_ONLY,
}


def has_permission(role: UserRole, module: str, action: str) -> bool:
    return action in DEFAULT_PERMISSIONS.get(role, _READ_ONLY).get(module, frozenset())
