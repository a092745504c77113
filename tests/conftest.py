from __future__ import annotations

import json
import re
from collections.abc import Callable, Generator
from typing import Any

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from interneefy.infra.config import Settings
from interneefy.infra.context import AppContext
from interneefy.infra.session_store import CookieSessionStorage
from interneefy.main import create_app

API_BASE_URL = "http://api.test"
CSRF_COOKIE = "interneefy_csrf"
SESSION_COOKIE = "auth-token-storage"


def make_token(role: str, user_id: int = 1, full_name: str = "Ada Admin", company_id: int = 7) -> str:
    return jwt.encode(
        {"userId": user_id, "role": role, "companyId": company_id, "fullName": full_name},
        "test-signing-key",
        algorithm="HS256",
    )


def _user(user_id: int, full_name: str, email: str, role: str, **extra: Any) -> dict[str, Any]:
    return {"id": user_id, "fullName": full_name, "email": email, "role": role, **extra}


class FakeInterneefyApi:
    """In-memory stand-in for the Interneefy REST API behind ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.users: list[dict[str, Any]] = [
            _user(1, "Ada Admin", "ada@acme.test", "ADMIN"),
            _user(2, "Sam Supervisor", "sam@acme.test", "SUPERVISOR", domain="Web Development"),
            _user(3, "Sue Supervisor", "sue@acme.test", "SUPERVISOR", domain="Data Science"),
            _user(
                10,
                "Ian Intern",
                "ian@acme.test",
                "INTERN",
                domain="Web Development",
                supervisorId=2,
                startDate="2024-01-15T00:00:00.000Z",
                endDate="2024-06-15T00:00:00.000Z",
                supervisor={"id": 2, "fullName": "Sam Supervisor", "email": "sam@acme.test"},
            ),
            _user(11, "Ivy Intern", "ivy@acme.test", "INTERN", domain="Web Development", supervisorId=2),
            _user(12, "Ike Intern", "ike@acme.test", "INTERN", domain="Data Science", supervisorId=3),
        ]
        self.tasks: list[dict[str, Any]] = [
            {"id": 100, "title": "Build login page", "status": "IN_PROGRESS", "priority": "HIGH", "internId": 10,
             "supervisorId": 2, "dueDate": "2024-03-01T00:00:00.000Z",
             "intern": {"id": 10, "fullName": "Ian Intern"}},
            {"id": 101, "title": "Write API docs", "status": "COMPLETED", "priority": "LOW", "internId": 10,
             "supervisorId": 2, "intern": {"id": 10, "fullName": "Ian Intern"}},
            {"id": 102, "title": "Review pull request", "status": "REVIEW", "priority": "MEDIUM", "internId": 11,
             "supervisorId": 2, "intern": {"id": 11, "fullName": "Ivy Intern"}},
            {"id": 103, "title": "Clean dataset", "status": "TODO", "priority": "MEDIUM", "internId": 12,
             "supervisorId": 3, "intern": {"id": 12, "fullName": "Ike Intern"}},
        ]
        self.evaluations: list[dict[str, Any]] = []
        self.company: dict[str, Any] = {"id": 7, "name": "Acme Corp", "logoUrl": None}
        self.passwords: dict[str, str] = {"ada@acme.test": "secret"}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], httpx.Response] = {}
        self.offline = False
        self._next_id = 500

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def count(self, method: str, path: str) -> int:
        return self.calls.count((method, path))

    def fail(self, method: str, path: str, status_code: int, body: Any) -> None:
        self.failures[(method, path)] = httpx.Response(status_code, json=body)

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _caller(self, request: httpx.Request) -> dict[str, Any]:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return {}
        return jwt.decode(header.removeprefix("Bearer "), options={"verify_signature": False})

    def _find(self, rows: list[dict[str, Any]], row_id: str) -> dict[str, Any] | None:
        return next((row for row in rows if str(row["id"]) == row_id), None)

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.calls.append((method, path))
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)
        if (method, path) in self.failures:
            return self.failures[(method, path)]
        body = request.content
        payload = json.loads(body) if body else {}
        caller = self._caller(request)

        if path == "/":
            return httpx.Response(200, json={"status": "ok"})
        if path == "/api/auth/login" and method == "POST":
            if self.passwords.get(payload.get("email")) != payload.get("password"):
                return httpx.Response(401, json={"error": "Invalid credentials"})
            user = next(row for row in self.users if row["email"] == payload["email"])
            token = make_token(user["role"], user["id"], user["fullName"])
            return httpx.Response(200, json={"token": token, "role": user["role"]})
        if path == "/api/auth/register-company" and method == "POST":
            if any(row["email"] == payload.get("email") for row in self.users):
                return httpx.Response(400, json={"error": "Email already registered"})
            return httpx.Response(201, json={"message": "Company registered"})

        if path == "/api/users":
            if method == "GET":
                return httpx.Response(200, json=self.users)
            if any(row["email"] == payload.get("email") for row in self.users):
                return httpx.Response(400, json={"error": "Email already exists"})
            user = {"id": self._new_id(), **payload}
            self.users.append(user)
            return httpx.Response(201, json=user)
        match = re.fullmatch(r"/api/users/(\d+)", path)
        if match:
            user = self._find(self.users, match.group(1))
            if user is None:
                return httpx.Response(404, json={"error": "User not found"})
            if method == "GET":
                return httpx.Response(200, json=user)
            if method == "PUT":
                user.update(payload)
                return httpx.Response(200, json=user)
            self.users.remove(user)
            return httpx.Response(204)

        if path == "/api/tasks":
            if method == "GET":
                own = [row for row in self.tasks if str(row["internId"]) == str(caller.get("userId"))]
                return httpx.Response(200, json=own)
            task = {"id": self._new_id(), "status": "TODO", "supervisorId": caller.get("userId"), **payload}
            self.tasks.append(task)
            return httpx.Response(201, json=task)
        if path == "/api/supervision/tasks":
            if caller.get("role") == "SUPERVISOR":
                return httpx.Response(
                    200, json=[row for row in self.tasks if str(row["supervisorId"]) == str(caller["userId"])]
                )
            return httpx.Response(200, json=self.tasks)
        match = re.fullmatch(r"/api/tasks/(\d+)", path)
        if match:
            task = self._find(self.tasks, match.group(1))
            if task is None:
                return httpx.Response(404, json={"error": "Task not found"})
            if method == "GET":
                return httpx.Response(200, json=task)
            if method == "PUT":
                task.update(payload)
                return httpx.Response(200, json=task)
            self.tasks.remove(task)
            return httpx.Response(204)

        if path == "/api/evaluations/me":
            mine = [row for row in self.evaluations if str(row["internId"]) == str(caller.get("userId"))]
            if not mine:
                return httpx.Response(404, json={"error": "Evaluation not found"})
            return httpx.Response(200, json=mine[-1])
        if path == "/api/evaluations/supervisor":
            return httpx.Response(200, json=self.evaluations)
        if path == "/api/evaluations" and method == "POST":
            evaluation = {"id": self._new_id(), "submittedAt": "2024-05-01T00:00:00.000Z", **payload}
            self.evaluations.append(evaluation)
            return httpx.Response(201, json=evaluation)

        if path == "/api/company":
            if method == "PUT":
                self.company.update(payload)
            return httpx.Response(200, json=self.company)
        if path == "/api/statistics/enrollment":
            return httpx.Response(200, json=[{"name": "Jan", "interns": 2}, {"name": "Feb", "interns": 4}])
        if path == "/api/statistics/domains":
            shares = [{"name": "Web Development", "value": 2}, {"name": "Data Science", "value": 1}]
            return httpx.Response(200, json=shares)
        return httpx.Response(404, json={"error": f"no route for {method} {path}"})


@pytest.fixture()
def fake_api() -> FakeInterneefyApi:
    return FakeInterneefyApi()


@pytest.fixture()
def app_context(fake_api: FakeInterneefyApi) -> AppContext:
    settings = Settings(api_base_url=API_BASE_URL, page_size=10)
    return AppContext(
        settings=settings,
        storage=CookieSessionStorage(
            cookie_name=settings.session_cookie_name,
            max_age_seconds=settings.session_max_age_seconds,
        ),
        transport=fake_api.transport,
    )


@pytest.fixture()
def client(app_context: AppContext) -> Generator[TestClient, None, None]:
    test_client = TestClient(create_app(app_context))
    yield test_client
    test_client.close()


@pytest.fixture()
def login_as(client: TestClient) -> Callable[..., str]:
    """Put a session credential and a CSRF cookie on the test client; returns the CSRF token."""

    def _login(role: str, user_id: int = 1, full_name: str = "Ada Admin") -> str:
        client.cookies.set(SESSION_COOKIE, make_token(role, user_id, full_name))
        client.cookies.set(CSRF_COOKIE, "csrf-test-token")
        return "csrf-test-token"

    return _login
