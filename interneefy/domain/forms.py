"""Form state for create/edit dialogs.

A dialog is opened blank (create) or populated from a record (edit). Submitted
values are validated before any API call; on failure the dialog stays open with
the submitted values and the error messages, on success the caller redirects
and the dialog is rendered closed and blank again.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from interneefy.domain.claims import Role
from interneefy.domain.evaluations import score_in_range
from interneefy.domain.models import EvaluationCreate, TaskCreate, TaskUpdate, UserCreate, UserUpdate
from interneefy.domain.tasks import TaskPriority, TaskStatus

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

USER_FORM_FIELDS = ("full_name", "email", "domain", "supervisor_id", "start_date", "end_date")
SUPERVISOR_FORM_FIELDS = ("full_name", "email", "domain")
TASK_FORM_FIELDS = ("title", "description", "intern_id", "priority", "category", "due_date", "status")
EVALUATION_FORM_FIELDS = ("intern_id", "technical_score", "communication_score", "teamwork_score", "comments")
EVALUATION_DEFAULTS = {"technical_score": "5", "communication_score": "5", "teamwork_score": "5"}
COMPANY_FORM_FIELDS = ("name", "logo_url")


@dataclass
class DialogState:
    name: str
    open: bool = False
    values: dict[str, str] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    error_message: str | None = None
    record_id: str | None = None

    @classmethod
    def blank(cls, name: str, fields: Iterable[str], defaults: Mapping[str, str] | None = None) -> DialogState:
        values = {key: "" for key in fields}
        values.update(defaults or {})
        return cls(name=name, values=values)

    @classmethod
    def for_edit(cls, name: str, fields: Iterable[str], record: Mapping[str, Any], record_id: Any) -> DialogState:
        values = {key: _as_input(record.get(key)) for key in fields}
        return cls(name=name, open=True, values=values, record_id=str(record_id))

    @classmethod
    def submitted(
        cls,
        name: str,
        fields: Iterable[str],
        form: Mapping[str, Any],
        *,
        record_id: str | None = None,
    ) -> DialogState:
        values = {key: str(form.get(key) or "").strip() for key in fields}
        return cls(name=name, open=True, values=values, record_id=record_id)

    def fail(self, message: str | None = None, errors: Mapping[str, str] | None = None) -> DialogState:
        self.open = True
        self.error_message = message
        self.errors = dict(errors or {})
        return self


def _as_input(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "value"):
        value = value.value
    text = str(value)
    # ISO timestamps are shown in date inputs as YYYY-MM-DD.
    if len(text) > 10 and text[4:5] == "-" and text[10:11] == "T":
        return text[:10]
    return text


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value.strip()))


def require(values: Mapping[str, str], *keys: str) -> dict[str, str]:
    errors: dict[str, str] = {}
    for key in keys:
        if not (values.get(key) or "").strip():
            errors[key] = "This field is required."
    return errors


def validate_user_form(values: Mapping[str, str]) -> dict[str, str]:
    errors = require(values, "full_name", "email")
    email = values.get("email") or ""
    if "email" not in errors and not is_valid_email(email):
        errors["email"] = "Enter a valid email address."
    start, end = values.get("start_date") or "", values.get("end_date") or ""
    if start and end and end < start:
        errors["end_date"] = "End date must be after the start date."
    return errors


def validate_task_form(values: Mapping[str, str]) -> dict[str, str]:
    errors = require(values, "title", "intern_id")
    if "intern_id" not in errors and not values["intern_id"].isdigit():
        errors["intern_id"] = "Select an intern."
    if values.get("priority") and values["priority"] not in TaskPriority.__members__:
        errors["priority"] = "Select a priority."
    if values.get("status") and values["status"] not in TaskStatus.__members__:
        errors["status"] = "Select a status."
    return errors


def validate_evaluation_form(values: Mapping[str, str]) -> dict[str, str]:
    errors = require(values, "intern_id", "technical_score", "communication_score", "teamwork_score")
    if "intern_id" not in errors and not values["intern_id"].isdigit():
        errors["intern_id"] = "Select an intern."
    for key in ("technical_score", "communication_score", "teamwork_score"):
        if key in errors:
            continue
        raw = values[key]
        if not raw.isdigit() or not score_in_range(int(raw)):
            errors[key] = "Score must be between 1 and 10."
    return errors


def validate_company_form(values: Mapping[str, str]) -> dict[str, str]:
    return require(values, "name")


def validate_login_form(values: Mapping[str, str]) -> dict[str, str]:
    errors = require(values, "email", "password")
    if "email" not in errors and not is_valid_email(values["email"]):
        errors["email"] = "Enter a valid email address."
    return errors


def validate_signup_form(values: Mapping[str, str]) -> dict[str, str]:
    errors = require(values, "company_name", "full_name", "email", "password")
    if "email" not in errors and not is_valid_email(values["email"]):
        errors["email"] = "Enter a valid email address."
    if values.get("password") != values.get("confirm_password"):
        errors["confirm_password"] = "Passwords do not match. Please try again"
    if not values.get("agreed_to_terms"):
        errors["agreed_to_terms"] = "You must agree to the Terms of Service and Privacy Policy"
    return errors


def optional(value: str | None) -> str | None:
    text = (value or "").strip()
    return text or None


def optional_int(value: str | None) -> int | None:
    text = (value or "").strip()
    return int(text) if text.isdigit() else None


def user_create_from_form(values: Mapping[str, str], role: Role) -> UserCreate:
    return UserCreate(
        full_name=values["full_name"],
        email=values["email"],
        role=role,
        domain=optional(values.get("domain")),
        supervisor_id=optional_int(values.get("supervisor_id")),
        start_date=optional(values.get("start_date")),
        end_date=optional(values.get("end_date")),
    )


def user_update_from_form(values: Mapping[str, str]) -> UserUpdate:
    return UserUpdate(
        full_name=values["full_name"],
        email=values["email"],
        domain=optional(values.get("domain")),
        supervisor_id=optional_int(values.get("supervisor_id")),
        start_date=optional(values.get("start_date")),
        end_date=optional(values.get("end_date")),
    )


def task_create_from_form(values: Mapping[str, str]) -> TaskCreate:
    return TaskCreate(
        title=values["title"],
        intern_id=int(values["intern_id"]),
        priority=TaskPriority(values.get("priority") or TaskPriority.MEDIUM),
        description=optional(values.get("description")),
        due_date=optional(values.get("due_date")),
        category=optional(values.get("category")),
    )


def task_update_from_form(values: Mapping[str, str]) -> TaskUpdate:
    return TaskUpdate(
        title=values["title"],
        intern_id=int(values["intern_id"]),
        priority=TaskPriority(values.get("priority") or TaskPriority.MEDIUM),
        status=TaskStatus(values.get("status") or TaskStatus.TODO),
        description=optional(values.get("description")),
        due_date=optional(values.get("due_date")),
        category=optional(values.get("category")),
    )


def evaluation_from_form(values: Mapping[str, str]) -> EvaluationCreate:
    return EvaluationCreate(
        intern_id=int(values["intern_id"]),
        technical_score=int(values["technical_score"]),
        communication_score=int(values["communication_score"]),
        teamwork_score=int(values["teamwork_score"]),
        comments=optional(values.get("comments")),
    )
