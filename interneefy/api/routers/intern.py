from __future__ import annotations

import logging

from fastapi import APIRouter, Form, HTTPException, Request, status
from fastapi.responses import Response

from interneefy.api.console import (
    PageSession,
    access_denied,
    error_banner,
    failure_status,
    load_company_name,
    redirect_with_notice,
    render_console,
    resolve_ui_access,
    verify_csrf,
)
from interneefy.domain.claims import Role
from interneefy.domain.models import Evaluation, Task, TaskUpdate, User
from interneefy.domain.tasks import STATUS_LABELS, TaskStatus, calculate_progress
from interneefy.services.api_client import ApiFailure
from interneefy.services.cancellation import ViewLifetime
from interneefy.services.evaluation_service import EvaluationService
from interneefy.services.task_service import TaskService
from interneefy.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard")


async def _render_task_board(
    request: Request,
    page: PageSession,
    *,
    banner: dict[str, str] | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    tasks: list[Task] = []
    async with page.client() as client, ViewLifetime(request) as lifetime:
        try:
            tasks = await lifetime.run(TaskService(client).list_my_tasks())
        except ApiFailure as exc:
            banner = banner or error_banner(request, exc, prefix="Failed to load your tasks")
        company_name = await load_company_name(client, lifetime)

    if page.claims.subject_id is not None:
        tasks = [task for task in tasks if str(task.intern_id) == page.claims.subject_id]
    columns = [
        {"status": task_status, "label": label, "tasks": [task for task in tasks if task.status == task_status]}
        for task_status, label in STATUS_LABELS.items()
    ]
    return await render_console(
        request,
        page,
        template_name="tasks.html",
        active_nav="tasks",
        title="My Tasks",
        subtitle="Move your tasks along as you work on them.",
        status_code=status_code,
        company_name=company_name,
        banner=banner,
        columns=columns,
        progress=calculate_progress(tasks),
        status_choices=list(STATUS_LABELS.items()),
    )


@router.get("/tasks")
async def tasks_page(request: Request) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    return await _render_task_board(request, page)


@router.post("/tasks/{task_id}/status")
async def update_task_status(
    request: Request,
    task_id: int,
    task_status: str = Form("", alias="status"),
    csrf_token: str = Form(""),
) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    if task_status not in TaskStatus.__members__:
        return await _render_task_board(
            request,
            page,
            banner={"message": f"Unknown task status: {task_status or 'none'}", "retry_href": "/dashboard/tasks"},
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    try:
        async with page.client() as client:
            await TaskService(client).update_task(task_id, TaskUpdate(status=TaskStatus(task_status)))
    except ApiFailure as exc:
        return await _render_task_board(
            request,
            page,
            banner=error_banner(request, exc, prefix="Failed to update task"),
            status_code=failure_status(exc),
        )
    logger.info("task %s moved to %s", task_id, task_status)
    return redirect_with_notice("/dashboard/tasks", "task-updated")


@router.get("/profile")
async def profile_page(request: Request) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)

    me: User | None = None
    evaluation: Evaluation | None = None
    banner = None
    async with page.client() as client, ViewLifetime(request) as lifetime:
        try:
            if page.claims.subject_id is not None:
                me = await lifetime.run(UserService(client).get_user(page.claims.subject_id))
            if page.claims.role == Role.INTERN:
                evaluation = await lifetime.run(EvaluationService(client).get_my_evaluation())
        except ApiFailure as exc:
            banner = error_banner(request, exc, prefix="Failed to load your profile")
        company_name = await load_company_name(client, lifetime)

    return await render_console(
        request,
        page,
        template_name="profile.html",
        active_nav="profile",
        title="My Profile",
        subtitle="Your account details.",
        profile_name=me.full_name if me else None,
        company_name=company_name,
        banner=banner,
        me=me,
        evaluation=evaluation,
        show_evaluation=page.claims.role == Role.INTERN,
    )
