from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional

from apps.cores.exceptions import AuthorizationError, InvalidStateError


@dataclass(frozen=True)
class Rule:
    """
    Guard for one transition.

    Checks run in a fixed order: role, then current status, then
    ownership. Admin-bypass rules let an admin skip the last two.
    """
    name: str
    roles: FrozenSet[str]
    sources: Optional[FrozenSet[str]]
    target: Optional[str] = None
    owner: Optional[Callable] = None
    owner_label: str = ""
    allow_system: bool = False
    admin_bypass: bool = False

    def check(self, obj, actor):
        if actor.is_system:
            if not self.allow_system:
                raise AuthorizationError(f"The system cannot {self.name}.")
        elif actor.role not in self.roles:
            allowed = ", ".join(sorted(self.roles))
            raise AuthorizationError(f"Only {allowed} can {self.name}.")

        if actor.is_admin and self.admin_bypass:
            return self

        if self.sources is not None and obj.status not in self.sources:
            allowed = ", ".join(sorted(self.sources))
            raise InvalidStateError(
                f"Cannot {self.name}: status is '{obj.status}', expected one of: {allowed}."
            )

        if self.owner is not None and not actor.is_system and not self.owner(obj, actor):
            raise AuthorizationError(f"Cannot {self.name}: {self.owner_label}.")

        return self
