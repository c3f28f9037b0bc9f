"""Role variants and the capabilities each of them grants."""
import enum
from dataclasses import dataclass
from typing import FrozenSet, Iterable

from fastapi import Depends

from core.exceptions import Forbidden
from core.security import get_current_user
from models.user import Role, User


class Capability(str, enum.Enum):
    MANAGE_OWN_PETS = "manage_own_pets"
    PAWMATCH = "pawmatch"
    READ_NOTIFICATIONS = "read_notifications"
    MANAGE_CATALOG = "manage_catalog"
    MODERATE_CONTENT = "moderate_content"
    MANAGE_USERS = "manage_users"


ROLE_CAPABILITIES = {
    Role.CUSTOMER: frozenset({
        Capability.MANAGE_OWN_PETS,
        Capability.PAWMATCH,
        Capability.READ_NOTIFICATIONS,
    }),
    Role.MERCHANT: frozenset({
        Capability.MANAGE_CATALOG,
        Capability.READ_NOTIFICATIONS,
    }),
    Role.MANAGER: frozenset({
        Capability.MODERATE_CONTENT,
        Capability.READ_NOTIFICATIONS,
    }),
    Role.ADMIN: frozenset(Capability),
}


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    missing: FrozenSet[Capability] = frozenset()

    @property
    def reason(self) -> str:
        if self.allowed:
            return ""
        names = ", ".join(sorted(c.value for c in self.missing))
        return f"Forbidden - missing capability: {names}"


def authorize(user: User, required: Iterable[Capability]) -> AuthorizationDecision:
    granted = ROLE_CAPABILITIES.get(user.role, frozenset())
    missing = frozenset(required) - granted
    return AuthorizationDecision(allowed=not missing, missing=missing)


def require_capabilities(*required: Capability):
    """Dependency factory: resolves to the current user if every capability is granted."""

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        decision = authorize(current_user, required)
        if not decision.allowed:
            raise Forbidden(decision.reason)
        return current_user

    return dependency
