"""
Role tiers within an organization.

    VIEWER < OPERATOR < MANAGER < ADMIN

The ordering only feeds two derived predicates used by the case workflow
(manager-plus, operator-or-above). Everywhere else roles are plain labels
looked up in the capability matrix.
"""

from enum import Enum

from casedesk.auth.errors import UnknownRole


class Role(str, Enum):
    VIEWER = "VIEWER"
    OPERATOR = "OPERATOR"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"

    @property
    def tier(self) -> int:
        return _TIERS[self]

    def at_least(self, other: "Role") -> bool:
        return self.tier >= other.tier


_TIERS: dict[Role, int] = {
    Role.VIEWER: 0,
    Role.OPERATOR: 1,
    Role.MANAGER: 2,
    Role.ADMIN: 3,
}


def parse_role(value: Role | str) -> Role:
    """Coerce a wire value into a Role, raising UnknownRole otherwise."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise UnknownRole(value) from None


def is_manager_plus(role: Role) -> bool:
    return role.at_least(Role.MANAGER)


def is_operator_or_above(role: Role) -> bool:
    return role.at_least(Role.OPERATOR)
