from dataclasses import dataclass
from typing import Optional

from apps.cores.exceptions import AuthorizationError
from apps.users.models import Role, UserStatus


@dataclass(frozen=True)
class Actor:
    """
    Who is asking for a transition.

    Built once at the request boundary; the engines trust `role` from
    here on and never look at the raw user row again.
    """
    user_id: Optional[int]
    role: Optional[Role]
    label: str

    @classmethod
    def from_user(cls, user):
        if user is None or not user.is_authenticated:
            raise AuthorizationError("Authentication required.")
        if user.status == UserStatus.SUSPENDED:
            raise AuthorizationError("Account is suspended.")
        return cls(user_id=user.pk, role=Role(user.role), label=user.email)

    @classmethod
    def system(cls, label="system"):
        return cls(user_id=None, role=None, label=label)

    @property
    def is_system(self):
        return self.role is None

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    @property
    def is_client(self):
        return self.role == Role.CLIENT

    @property
    def is_tech(self):
        return self.role == Role.TECH
