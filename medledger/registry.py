"""
Identity & role registry – who holds which role.
"""

from typing import List

from medledger.errors import AlreadyRegistered, InvalidRole
from medledger.models import Role, RoleAssigned
from medledger.state import LedgerState


class IdentityRegistry:
    def __init__(self, state: LedgerState):
        self.state = state

    def role_of(self, identity: str) -> Role:
        """Return the identity's role, or Role.UNREGISTERED."""
        return self.state.role(identity)

    def is_a(self, identity: str, role: Role) -> bool:
        return self.state.role(identity) is role

    def members_of(self, role: Role) -> List[str]:
        """Identities holding *role*, in registration order."""
        return [identity for identity, held in self.state.roles().items() if held is role]

    def register(self, identity: str, role: Role) -> RoleAssigned:
        """Validate a self-registration and return the change to commit."""
        if role is Role.UNREGISTERED:
            raise InvalidRole("Cannot register an identity as Unregistered.")
        current = self.state.role(identity)
        if current is not Role.UNREGISTERED:
            raise AlreadyRegistered(f"{identity} is already registered as {current.value}.")
        return RoleAssigned(identity=identity, role=role)
