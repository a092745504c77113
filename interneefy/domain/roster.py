from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from interneefy.domain.claims import Role
from interneefy.domain.models import DomainRecord, User, UserRef

T = TypeVar("T")

DOMAIN_STATUS_ACTIVE = "Active"
DOMAIN_STATUS_INACTIVE = "Inactive"


@dataclass(frozen=True)
class UserSummary:
    interns: int
    supervisors: int
    admins: int


@dataclass(frozen=True)
class Page:
    rows: list[Any]
    number: int
    total_pages: int
    total_rows: int

    @property
    def has_previous(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages


def summarize_users(users: Iterable[User]) -> UserSummary:
    counts = {role: 0 for role in Role}
    for user in users:
        counts[user.role] += 1
    return UserSummary(
        interns=counts[Role.INTERN],
        supervisors=counts[Role.SUPERVISOR],
        admins=counts[Role.ADMIN],
    )


def initials(full_name: str | None) -> str:
    names = (full_name or "").split()
    if not names:
        return ""
    return f"{names[0][0]}{names[-1][0]}".upper() if len(names) > 1 else names[0][0].upper()


def users_with_role(users: Iterable[User], role: Role) -> list[User]:
    return [user for user in users if user.role == role]


def interns_supervised_by(users: Iterable[User], supervisor_id: str | None) -> list[User]:
    if supervisor_id is None:
        return []
    return [
        user
        for user in users
        if user.role == Role.INTERN and user.supervisor_id is not None and str(user.supervisor_id) == supervisor_id
    ]


def find_user(users: Iterable[User], user_id: str | int | None) -> User | None:
    if user_id is None:
        return None
    return next((user for user in users if str(user.id) == str(user_id)), None)


def filter_users(users: Iterable[User], *, search: str = "", role: str = "") -> list[User]:
    needle = search.strip().lower()
    rows: list[User] = []
    for user in users:
        if role and user.role != role:
            continue
        if needle and needle not in user.full_name.lower() and needle not in user.email.lower():
            continue
        rows.append(user)
    return rows


def paginate(rows: Sequence[T], page: int, page_size: int) -> Page:
    size = max(page_size, 1)
    total_pages = max(math.ceil(len(rows) / size), 1)
    number = min(max(page, 1), total_pages)
    start = (number - 1) * size
    return Page(rows=list(rows[start : start + size]), number=number, total_pages=total_pages, total_rows=len(rows))


def supervisee_counts(users: Iterable[User]) -> dict[int, int]:
    counts: dict[int, int] = {}
    for user in users:
        if user.role == Role.INTERN and user.supervisor_id is not None:
            counts[user.supervisor_id] = counts.get(user.supervisor_id, 0) + 1
    return counts


def build_domain_catalog(users: Iterable[User], *, active_intern_ids: set[int] | None = None) -> list[DomainRecord]:
    """Group interns and supervisors by their ``domain`` field.

    An intern counts as active when ``active_intern_ids`` is not given or contains
    the intern id. A domain with no active intern is reported as inactive.
    """
    grouped: dict[str, dict[str, Any]] = {}
    for user in users:
        name = (user.domain or "").strip()
        if not name or user.role == Role.ADMIN:
            continue
        entry = grouped.setdefault(name, {"supervisors": [], "active": 0, "total": 0})
        if user.role == Role.SUPERVISOR:
            entry["supervisors"].append(UserRef(id=user.id, full_name=user.full_name, email=user.email))
            continue
        entry["total"] += 1
        if active_intern_ids is None or user.id in active_intern_ids:
            entry["active"] += 1

    records: list[DomainRecord] = []
    for index, name in enumerate(sorted(grouped, key=str.lower), start=1):
        entry = grouped[name]
        records.append(
            DomainRecord(
                id=index,
                domain_name=name,
                supervisors=entry["supervisors"],
                active_interns=entry["active"],
                total_interns=entry["total"],
                status=DOMAIN_STATUS_ACTIVE if entry["active"] > 0 else DOMAIN_STATUS_INACTIVE,
            )
        )
    return records


def filter_domains(domains: Iterable[DomainRecord], search: str = "") -> list[DomainRecord]:
    needle = search.strip().lower()
    return [item for item in domains if not needle or needle in item.domain_name.lower()]


def select_options(users: Iterable[User]) -> list[tuple[str, str]]:
    return [(str(user.id), user.full_name) for user in users]


def supervisor_options(users: Iterable[User]) -> list[tuple[str, str]]:
    return select_options(users_with_role(users, Role.SUPERVISOR))
