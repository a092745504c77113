from __future__ import annotations

from interneefy.domain.claims import ALL_ROLES, Role

ROLES_ADMIN: frozenset[Role] = frozenset({Role.ADMIN})
ROLES_SUPERVISOR: frozenset[Role] = frozenset({Role.SUPERVISOR})
ROLES_INTERN: frozenset[Role] = frozenset({Role.INTERN})
ROLES_ANY: frozenset[Role] = ALL_ROLES
