from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any
from urllib.parse import quote, urlparse

from interneefy.domain.claims import Claims, Role
from interneefy.domain.permissions import (
    ROLES_ADMIN,
    ROLES_ANY,
    ROLES_INTERN,
    ROLES_SUPERVISOR,
)
from interneefy.infra.session_store import CredentialStore, SessionSnapshot

LOGIN_PATH = "/login"
DEFAULT_NEXT_PATH = "/dashboard"


@dataclass(frozen=True)
class NavItem:
    key: str
    label: str
    href: str
    description: str
    allowed_roles: frozenset[Role]


NAV_ITEMS: tuple[NavItem, ...] = (
    NavItem(
        key="dashboard",
        label="Dashboard",
        href="/dashboard",
        description="Role overview and summary.",
        allowed_roles=ROLES_ANY,
    ),
    NavItem(
        key="interns",
        label="Interns",
        href="/dashboard/interns",
        description="Intern roster, assignments and dates.",
        allowed_roles=ROLES_ADMIN,
    ),
    NavItem(
        key="supervisors",
        label="Supervisors",
        href="/dashboard/supervisors",
        description="Supervisor roster and supervisee load.",
        allowed_roles=ROLES_ADMIN,
    ),
    NavItem(
        key="domains",
        label="Domains",
        href="/dashboard/domains",
        description="Internship domains and placements.",
        allowed_roles=ROLES_ADMIN,
    ),
    NavItem(
        key="my-interns",
        label="My Interns",
        href="/dashboard/my-interns",
        description="Supervised interns and their progress.",
        allowed_roles=ROLES_SUPERVISOR,
    ),
    NavItem(
        key="assigned-tasks",
        label="Assigned Tasks",
        href="/dashboard/assigned-tasks",
        description="Tasks assigned to supervised interns.",
        allowed_roles=ROLES_SUPERVISOR,
    ),
    NavItem(
        key="evaluations",
        label="Evaluations",
        href="/dashboard/evaluations",
        description="Intern performance evaluations.",
        allowed_roles=ROLES_SUPERVISOR,
    ),
    NavItem(
        key="tasks",
        label="My Tasks",
        href="/dashboard/tasks",
        description="Own task board.",
        allowed_roles=ROLES_INTERN,
    ),
    NavItem(
        key="profile",
        label="My Profile",
        href="/dashboard/profile",
        description="Own account details.",
        allowed_roles=ROLES_ANY,
    ),
    NavItem(
        key="settings",
        label="Settings",
        href="/dashboard/settings",
        description="Company profile and branding.",
        allowed_roles=ROLES_ADMIN,
    ),
)


class NavPhase(StrEnum):
    HYDRATING = "HYDRATING"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATED = "AUTHENTICATED"


@dataclass(frozen=True)
class NavState:
    phase: NavPhase
    role: Role | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.phase == NavPhase.AUTHENTICATED


HYDRATING = NavState(NavPhase.HYDRATING)
UNAUTHENTICATED = NavState(NavPhase.UNAUTHENTICATED)


def resolve_nav_state(ready: bool, claims: Claims | None) -> NavState:
    if not ready:
        return HYDRATING
    if claims is None:
        return UNAUTHENTICATED
    return NavState(NavPhase.AUTHENTICATED, claims.role)


class RouteVerdict(StrEnum):
    ALLOW = "allow"
    WAIT = "wait"
    REDIRECT = "redirect"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class RouteDecision:
    verdict: RouteVerdict
    location: str | None = None
    nav_item: NavItem | None = None


def login_location(requested_path: str) -> str:
    return f"{LOGIN_PATH}?next={quote(requested_path, safe='')}"


def match_nav_item(path: str) -> NavItem | None:
    route = urlparse(path).path.rstrip("/") or "/"
    best: NavItem | None = None
    for item in NAV_ITEMS:
        if route == item.href or route.startswith(f"{item.href}/"):
            if best is None or len(item.href) > len(best.href):
                best = item
    return best


def is_visible(state: NavState, item: NavItem) -> bool:
    return state.is_authenticated and state.role in item.allowed_roles


def visible_nav_items(state: NavState, active_key: str | None = None) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for item in NAV_ITEMS:
        if not is_visible(state, item):
            continue
        rows.append(
            {
                "key": item.key,
                "label": item.label,
                "href": item.href,
                "description": item.description,
                "active": item.key == active_key,
            }
        )
    return rows


def route_decision(path: str, state: NavState) -> RouteDecision:
    item = match_nav_item(path)
    if state.phase == NavPhase.HYDRATING:
        return RouteDecision(RouteVerdict.WAIT, nav_item=item)
    if state.phase == NavPhase.UNAUTHENTICATED:
        return RouteDecision(RouteVerdict.REDIRECT, location=login_location(path), nav_item=item)
    if item is not None and not is_visible(state, item):
        return RouteDecision(RouteVerdict.FORBIDDEN, nav_item=item)
    return RouteDecision(RouteVerdict.ALLOW, nav_item=item)


def sanitize_next_path(next_path: str | None) -> str:
    if not next_path:
        return DEFAULT_NEXT_PATH
    parsed = urlparse(next_path)
    if parsed.scheme or parsed.netloc:
        return DEFAULT_NEXT_PATH
    if parsed.path != DEFAULT_NEXT_PATH and not parsed.path.startswith(f"{DEFAULT_NEXT_PATH}/"):
        return DEFAULT_NEXT_PATH
    sanitized = parsed.path
    if parsed.query:
        sanitized = f"{sanitized}?{parsed.query}"
    return sanitized


class NavigationTracker:
    """Follows a credential store and records navigation state transitions."""

    def __init__(self, store: CredentialStore, decode: Callable[[str | None], Claims | None]) -> None:
        self._decode = decode
        self.history: list[NavState] = [self._resolve(store.snapshot())]
        self._unsubscribe = store.subscribe(self._on_change)

    @property
    def state(self) -> NavState:
        return self.history[-1]

    def _resolve(self, snapshot: SessionSnapshot) -> NavState:
        claims = self._decode(snapshot.credential) if snapshot.credential else None
        return resolve_nav_state(snapshot.ready, claims)

    def _on_change(self, snapshot: SessionSnapshot) -> None:
        next_state = self._resolve(snapshot)
        if next_state != self.state:
            self.history.append(next_state)

    def close(self) -> None:
        self._unsubscribe()
