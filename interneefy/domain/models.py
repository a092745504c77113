from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from pydantic.alias_generators import to_camel

from interneefy.domain.claims import Role
from interneefy.domain.evaluations import SCORE_MAX, SCORE_MIN
from interneefy.domain.evaluations import overall_score as mean_score
from interneefy.domain.tasks import TaskPriority, TaskStatus


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_payload(self, *, drop_none: bool = False) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude_none=drop_none)


class UserRef(ApiModel):
    id: int | None = None
    full_name: str
    email: str | None = None


class User(ApiModel):
    id: int
    full_name: str
    email: str
    role: Role
    domain: str | None = None
    supervisor_id: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    created_at: str | None = None
    experience: int | None = None
    supervisor: UserRef | None = None
    supervisees: list[UserRef] = PydanticField(default_factory=list)


class UserCreate(ApiModel):
    full_name: str
    email: str
    role: Role
    password: str | None = None
    domain: str | None = None
    supervisor_id: int | None = None
    start_date: str | None = None
    end_date: str | None = None


class UserUpdate(ApiModel):
    full_name: str | None = None
    email: str | None = None
    domain: str | None = None
    supervisor_id: int | None = None
    start_date: str | None = None
    end_date: str | None = None


class Task(ApiModel):
    id: int
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    category: str | None = None
    due_date: str | None = None
    created_at: str | None = None
    supervisor_id: int | None = None
    intern_id: int
    supervisor: UserRef | None = None
    intern: UserRef | None = None


class TaskCreate(ApiModel):
    title: str
    intern_id: int
    priority: TaskPriority = TaskPriority.MEDIUM
    description: str | None = None
    due_date: str | None = None
    category: str | None = None


class TaskUpdate(ApiModel):
    status: TaskStatus | None = None
    title: str | None = None
    description: str | None = None
    due_date: str | None = None
    priority: TaskPriority | None = None
    category: str | None = None
    intern_id: int | None = None


class Evaluation(ApiModel):
    id: int
    intern_id: int | None = None
    technical_score: int
    communication_score: int
    teamwork_score: int
    comments: str | None = None
    submitted_at: str | None = None
    intern: UserRef | None = None

    @property
    def overall_score(self) -> float:
        return mean_score(self.technical_score, self.communication_score, self.teamwork_score)


class EvaluationCreate(ApiModel):
    intern_id: int
    technical_score: int = PydanticField(ge=SCORE_MIN, le=SCORE_MAX)
    communication_score: int = PydanticField(ge=SCORE_MIN, le=SCORE_MAX)
    teamwork_score: int = PydanticField(ge=SCORE_MIN, le=SCORE_MAX)
    comments: str | None = None


class Company(ApiModel):
    id: int
    name: str
    logo_url: str | None = None
    created_at: str | None = None


class CompanyUpdate(ApiModel):
    name: str
    logo_url: str | None = None


class EnrollmentPoint(ApiModel):
    name: str
    interns: int


class DomainShare(ApiModel):
    name: str
    value: int


class LoginRequest(ApiModel):
    email: str
    password: str


class TokenResponse(ApiModel):
    token: str
    message: str | None = None
    role: str | None = None


class RegisterCompanyRequest(ApiModel):
    company_name: str
    full_name: str
    email: str
    password: str


class DomainRecord(ApiModel):
    id: int
    domain_name: str
    description: str = ""
    supervisors: list[UserRef] = PydanticField(default_factory=list)
    active_interns: int = 0
    total_interns: int = 0
    status: str = "Inactive"
