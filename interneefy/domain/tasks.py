from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    APPROVED = "APPROVED"


class TaskPriority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.TODO: "To-Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.REVIEW: "In Review",
    TaskStatus.PENDING: "Pending",
    TaskStatus.COMPLETED: "Completed",
    TaskStatus.APPROVED: "Approved",
}

DONE_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.APPROVED})
AWAITING_REVIEW_STATUSES = frozenset({TaskStatus.REVIEW, TaskStatus.PENDING, TaskStatus.COMPLETED})


@dataclass(frozen=True)
class TaskProgress:
    total: int
    completed: int

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.completed / self.total * 100)


def calculate_progress(tasks: Iterable[Any]) -> TaskProgress:
    total = 0
    completed = 0
    for task in tasks:
        total += 1
        if task.status in DONE_STATUSES:
            completed += 1
    return TaskProgress(total=total, completed=completed)


def count_by_status(tasks: Iterable[Any], status: TaskStatus) -> int:
    return sum(1 for task in tasks if task.status == status)


def filter_tasks(tasks: Iterable[Any], *, search: str = "", status: str = "") -> list[Any]:
    needle = search.strip().lower()
    rows = []
    for task in tasks:
        if status and task.status != status:
            continue
        if needle:
            intern_name = task.intern.full_name if task.intern else ""
            haystack = f"{task.title} {task.description or ''} {intern_name}".lower()
            if needle not in haystack:
                continue
        rows.append(task)
    return rows
