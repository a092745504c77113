from __future__ import annotations

import logging

from fastapi import APIRouter, Form, HTTPException, Query, Request, status
from fastapi.responses import Response

from interneefy.api.console import (
    PageSession,
    access_denied,
    error_banner,
    failure_message,
    failure_status,
    load_company_name,
    redirect_with_notice,
    render_console,
    resolve_ui_access,
    verify_csrf,
)
from interneefy.domain.forms import (
    EVALUATION_DEFAULTS,
    EVALUATION_FORM_FIELDS,
    TASK_FORM_FIELDS,
    DialogState,
    evaluation_from_form,
    task_create_from_form,
    task_update_from_form,
    validate_evaluation_form,
    validate_task_form,
)
from interneefy.domain.models import Evaluation, Task, User
from interneefy.domain.roster import filter_users, interns_supervised_by, select_options
from interneefy.domain.tasks import STATUS_LABELS, TaskPriority, TaskStatus, calculate_progress, filter_tasks
from interneefy.services.api_client import ApiFailure
from interneefy.services.cancellation import ViewLifetime
from interneefy.services.evaluation_service import EvaluationService
from interneefy.services.task_service import TaskService
from interneefy.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard")

CREATE_TASK_DIALOG = "create-task"
EDIT_TASK_DIALOG = "edit-task"
EVALUATION_DIALOG = "submit-evaluation"
TASK_DEFAULTS = {"priority": TaskPriority.MEDIUM.value, "status": TaskStatus.TODO.value}


async def _load_team(
    request: Request,
    page: PageSession,
    *,
    prefix: str,
) -> tuple[list[User], list[Task], dict[str, str] | None, str | None]:
    users: list[User] = []
    tasks: list[Task] = []
    banner = None
    async with page.client() as client, ViewLifetime(request) as lifetime:
        try:
            users = await lifetime.run(UserService(client).list_users())
            tasks = await lifetime.run(TaskService(client).list_supervision_tasks())
        except ApiFailure as exc:
            banner = error_banner(request, exc, prefix=prefix)
        company_name = await load_company_name(client, lifetime)
    return interns_supervised_by(users, page.claims.subject_id), tasks, banner, company_name


def _task_form(
    task_id: int | None,
    title: str,
    description: str,
    intern_id: str,
    priority: str,
    category: str,
    due_date: str,
    task_status: str,
) -> DialogState:
    form = {
        "title": title,
        "description": description,
        "intern_id": intern_id,
        "priority": priority,
        "category": category,
        "due_date": due_date,
        "status": task_status,
    }
    if task_id is None:
        return DialogState.submitted(CREATE_TASK_DIALOG, TASK_FORM_FIELDS, form)
    return DialogState.submitted(EDIT_TASK_DIALOG, TASK_FORM_FIELDS, form, record_id=str(task_id))


@router.get("/my-interns")
async def my_interns_page(request: Request, q: str = Query(default="")) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)

    interns, tasks, banner, company_name = await _load_team(request, page, prefix="Failed to load your interns")
    rows = [
        {"intern": intern, "progress": calculate_progress(task for task in tasks if task.intern_id == intern.id)}
        for intern in filter_users(interns, search=q)
    ]
    return await render_console(
        request,
        page,
        template_name="my_interns.html",
        active_nav="my-interns",
        title="My Interns",
        subtitle="Interns assigned to you and how far along they are.",
        company_name=company_name,
        banner=banner,
        rows=rows,
        search=q,
    )


async def _render_assigned_tasks(
    request: Request,
    page: PageSession,
    *,
    search: str = "",
    status_filter: str = "",
    edit_id: str | None = None,
    dialog: DialogState | None = None,
    banner: dict[str, str] | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    interns, tasks, load_banner, company_name = await _load_team(request, page, prefix="Failed to load tasks")
    dialogs = {
        CREATE_TASK_DIALOG: DialogState.blank(CREATE_TASK_DIALOG, TASK_FORM_FIELDS, TASK_DEFAULTS),
        EDIT_TASK_DIALOG: None,
    }
    if dialog is None and edit_id is not None:
        editing = next((task for task in tasks if str(task.id) == edit_id), None)
        if editing is not None:
            dialog = DialogState.for_edit(EDIT_TASK_DIALOG, TASK_FORM_FIELDS, editing.model_dump(), editing.id)
    if dialog is not None:
        dialogs[dialog.name] = dialog

    return await render_console(
        request,
        page,
        template_name="assigned_tasks.html",
        active_nav="assigned-tasks",
        title="Assigned Tasks",
        subtitle="Tasks you have handed out to your interns.",
        status_code=status_code,
        company_name=company_name,
        banner=banner or load_banner,
        tasks=filter_tasks(tasks, search=search, status=status_filter),
        intern_options=select_options(interns),
        search=search,
        status_filter=status_filter,
        status_choices=list(STATUS_LABELS.items()),
        priority_choices=[(priority.value, priority.value.title()) for priority in TaskPriority],
        dialogs=dialogs,
    )


@router.get("/assigned-tasks")
async def assigned_tasks_page(
    request: Request,
    q: str = Query(default=""),
    task_status: str = Query(default="", alias="status"),
    edit: str | None = Query(default=None),
) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    status_filter = task_status if task_status in TaskStatus.__members__ else ""
    return await _render_assigned_tasks(request, page, search=q, status_filter=status_filter, edit_id=edit)


@router.post("/assigned-tasks")
async def create_task(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    intern_id: str = Form(""),
    priority: str = Form(TaskPriority.MEDIUM.value),
    category: str = Form(""),
    due_date: str = Form(""),
    csrf_token: str = Form(""),
) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    dialog = _task_form(None, title, description, intern_id, priority, category, due_date, TaskStatus.TODO.value)
    errors = validate_task_form(dialog.values)
    if errors:
        return await _render_assigned_tasks(
            request,
            page,
            dialog=dialog.fail("Please correct the highlighted fields.", errors),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    try:
        async with page.client() as client:
            await TaskService(client).create_task(task_create_from_form(dialog.values))
    except ApiFailure as exc:
        return await _render_assigned_tasks(
            request,
            page,
            dialog=dialog.fail(failure_message(exc)),
            status_code=failure_status(exc),
        )
    logger.info("task %r assigned to intern %s", dialog.values["title"], dialog.values["intern_id"])
    return redirect_with_notice("/dashboard/assigned-tasks", "task-created")


@router.post("/assigned-tasks/{task_id}")
async def update_task(
    request: Request,
    task_id: int,
    title: str = Form(""),
    description: str = Form(""),
    intern_id: str = Form(""),
    priority: str = Form(TaskPriority.MEDIUM.value),
    category: str = Form(""),
    due_date: str = Form(""),
    task_status: str = Form(TaskStatus.TODO.value, alias="status"),
    csrf_token: str = Form(""),
) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    dialog = _task_form(task_id, title, description, intern_id, priority, category, due_date, task_status)
    errors = validate_task_form(dialog.values)
    if errors:
        return await _render_assigned_tasks(
            request,
            page,
            dialog=dialog.fail("Please correct the highlighted fields.", errors),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    try:
        async with page.client() as client:
            await TaskService(client).update_task(task_id, task_update_from_form(dialog.values))
    except ApiFailure as exc:
        return await _render_assigned_tasks(
            request,
            page,
            dialog=dialog.fail(failure_message(exc)),
            status_code=failure_status(exc),
        )
    logger.info("task %s updated", task_id)
    return redirect_with_notice("/dashboard/assigned-tasks", "task-updated")


@router.post("/assigned-tasks/{task_id}/delete")
async def delete_task(request: Request, task_id: int, csrf_token: str = Form("")) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    try:
        async with page.client() as client:
            await TaskService(client).delete_task(task_id)
    except ApiFailure as exc:
        return await _render_assigned_tasks(
            request,
            page,
            banner=error_banner(request, exc, prefix="Failed to delete task"),
            status_code=failure_status(exc),
        )
    logger.info("task %s deleted", task_id)
    return redirect_with_notice("/dashboard/assigned-tasks", "task-deleted")


async def _render_evaluations(
    request: Request,
    page: PageSession,
    *,
    intern_filter: str = "",
    dialog: DialogState | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    users: list[User] = []
    evaluations: list[Evaluation] = []
    banner = None
    async with page.client() as client, ViewLifetime(request) as lifetime:
        try:
            users = await lifetime.run(UserService(client).list_users())
            evaluations = await lifetime.run(EvaluationService(client).list_supervisor_evaluations())
        except ApiFailure as exc:
            banner = error_banner(request, exc, prefix="Failed to load evaluations")
        company_name = await load_company_name(client, lifetime)

    interns = interns_supervised_by(users, page.claims.subject_id)
    intern_names = {intern.id: intern.full_name for intern in interns}
    if intern_filter:
        evaluations = [item for item in evaluations if str(item.intern_id) == intern_filter]
    if dialog is None:
        defaults = {**EVALUATION_DEFAULTS, "intern_id": intern_filter}
        dialog = DialogState.blank(EVALUATION_DIALOG, EVALUATION_FORM_FIELDS, defaults)

    return await render_console(
        request,
        page,
        template_name="evaluations.html",
        active_nav="evaluations",
        title="Evaluations",
        subtitle="Score your interns on technical, communication and teamwork skills.",
        status_code=status_code,
        company_name=company_name,
        banner=banner,
        evaluations=evaluations,
        intern_options=select_options(interns),
        intern_names=intern_names,
        intern_filter=intern_filter,
        dialog=dialog,
    )


@router.get("/evaluations")
async def evaluations_page(request: Request, intern: str = Query(default="")) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    return await _render_evaluations(request, page, intern_filter=intern if intern.isdigit() else "")


@router.post("/evaluations")
async def submit_evaluation(
    request: Request,
    intern_id: str = Form(""),
    technical_score: str = Form(""),
    communication_score: str = Form(""),
    teamwork_score: str = Form(""),
    comments: str = Form(""),
    csrf_token: str = Form(""),
) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    form = {
        "intern_id": intern_id,
        "technical_score": technical_score,
        "communication_score": communication_score,
        "teamwork_score": teamwork_score,
        "comments": comments,
    }
    dialog = DialogState.submitted(EVALUATION_DIALOG, EVALUATION_FORM_FIELDS, form)
    errors = validate_evaluation_form(dialog.values)
    if errors:
        return await _render_evaluations(
            request,
            page,
            dialog=dialog.fail("Please correct the highlighted fields.", errors),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    try:
        async with page.client() as client:
            await EvaluationService(client).submit_evaluation(evaluation_from_form(dialog.values))
    except ApiFailure as exc:
        return await _render_evaluations(
            request,
            page,
            dialog=dialog.fail(failure_message(exc)),
            status_code=failure_status(exc),
        )
    logger.info("evaluation submitted for intern %s", dialog.values["intern_id"])
    return redirect_with_notice("/dashboard/evaluations", "evaluation-submitted")
