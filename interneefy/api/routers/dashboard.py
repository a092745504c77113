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
    require_role,
    resolve_ui_access,
    verify_csrf,
)
from interneefy.domain.claims import Role
from interneefy.domain.forms import (
    SUPERVISOR_FORM_FIELDS,
    USER_FORM_FIELDS,
    DialogState,
    user_create_from_form,
    validate_user_form,
)
from interneefy.domain.models import DomainShare, EnrollmentPoint, Task, User
from interneefy.domain.permissions import ROLES_ADMIN
from interneefy.domain.roster import (
    filter_users,
    find_user,
    interns_supervised_by,
    paginate,
    summarize_users,
    supervisor_options,
)
from interneefy.domain.tasks import (
    AWAITING_REVIEW_STATUSES,
    DONE_STATUSES,
    TaskStatus,
    calculate_progress,
    count_by_status,
)
from interneefy.services.api_client import ApiFailure
from interneefy.services.cancellation import ViewLifetime
from interneefy.services.statistics_service import StatisticsService
from interneefy.services.task_service import TaskService
from interneefy.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()

ADD_INTERN_DIALOG = "add-intern"
ADD_SUPERVISOR_DIALOG = "add-supervisor"
ROLE_FILTERS = ("", Role.ADMIN.value, Role.SUPERVISOR.value, Role.INTERN.value)


def _user_dialogs(dialog: DialogState | None = None) -> dict[str, DialogState]:
    dialogs = {
        ADD_INTERN_DIALOG: DialogState.blank(ADD_INTERN_DIALOG, USER_FORM_FIELDS),
        ADD_SUPERVISOR_DIALOG: DialogState.blank(ADD_SUPERVISOR_DIALOG, SUPERVISOR_FORM_FIELDS),
    }
    if dialog is not None:
        dialogs[dialog.name] = dialog
    return dialogs


async def _render_admin_dashboard(
    request: Request,
    page: PageSession,
    *,
    search: str = "",
    role_filter: str = "",
    page_number: int = 1,
    view_id: str | None = None,
    dialog: DialogState | None = None,
    banner: dict[str, str] | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    users: list[User] = []
    tasks: list[Task] = []
    enrollment: list[EnrollmentPoint] = []
    domain_shares: list[DomainShare] = []
    chart_error: str | None = None

    async with page.client() as client, ViewLifetime(request) as lifetime:
        try:
            users = await lifetime.run(UserService(client).list_users())
        except ApiFailure as exc:
            banner = banner or error_banner(request, exc, prefix="Failed to load user list")
        try:
            tasks = await lifetime.run(TaskService(client).list_supervision_tasks())
        except ApiFailure as exc:
            logger.info("tasks counter unavailable: %s", exc.message)
        statistics = StatisticsService(client)
        try:
            enrollment = await lifetime.run(statistics.enrollment())
            domain_shares = await lifetime.run(statistics.domain_distribution())
        except ApiFailure as exc:
            chart_error = failure_message(exc)
            logger.info("statistics unavailable: %s", chart_error)
        company_name = await load_company_name(client, lifetime)

    summary = summarize_users(users)
    table = paginate(filter_users(users, search=search, role=role_filter), page_number, page.context.settings.page_size)
    admin_profile = find_user(users, page.claims.subject_id)
    enrollment_peak = max((point.interns for point in enrollment), default=0)
    share_total = sum(share.value for share in domain_shares)

    return await render_console(
        request,
        page,
        template_name="dashboard_admin.html",
        active_nav="dashboard",
        title="Dashboard Overview",
        subtitle="Interns, supervisors and tasks across your company.",
        status_code=status_code,
        profile_name=admin_profile.full_name if admin_profile else None,
        company_name=company_name,
        banner=banner,
        summary=summary,
        tasks_in_progress=count_by_status(tasks, TaskStatus.IN_PROGRESS),
        enrollment=enrollment,
        enrollment_peak=enrollment_peak,
        domain_shares=domain_shares,
        share_total=share_total,
        chart_error=chart_error,
        table=table,
        search=search,
        role_filter=role_filter,
        role_filters=ROLE_FILTERS,
        supervisor_options=supervisor_options(users),
        selected_user=find_user(users, view_id),
        dialogs=_user_dialogs(dialog),
    )


async def _render_supervisor_dashboard(request: Request, page: PageSession) -> Response:
    users: list[User] = []
    tasks: list[Task] = []
    banner = None
    async with page.client() as client, ViewLifetime(request) as lifetime:
        try:
            users = await lifetime.run(UserService(client).list_users())
            tasks = await lifetime.run(TaskService(client).list_supervision_tasks())
        except ApiFailure as exc:
            banner = error_banner(request, exc, prefix="Failed to load your interns")
        company_name = await load_company_name(client, lifetime)

    interns = interns_supervised_by(users, page.claims.subject_id)
    progress_rows = [
        {"intern": intern, "progress": calculate_progress(task for task in tasks if task.intern_id == intern.id)}
        for intern in interns
    ]
    awaiting_review = [task for task in tasks if task.status in AWAITING_REVIEW_STATUSES]
    me = find_user(users, page.claims.subject_id)
    return await render_console(
        request,
        page,
        template_name="dashboard_supervisor.html",
        active_nav="dashboard",
        title="Supervisor Dashboard",
        subtitle="Progress of the interns you supervise.",
        profile_name=me.full_name if me else None,
        company_name=company_name,
        banner=banner,
        progress_rows=progress_rows,
        awaiting_review=awaiting_review,
        open_tasks=len(
            [task for task in tasks if task.status not in AWAITING_REVIEW_STATUSES and task.status not in DONE_STATUSES]
        ),
    )


async def _render_intern_dashboard(request: Request, page: PageSession) -> Response:
    me: User | None = None
    tasks: list[Task] = []
    banner = None
    async with page.client() as client, ViewLifetime(request) as lifetime:
        try:
            tasks = await lifetime.run(TaskService(client).list_my_tasks())
            if page.claims.subject_id is not None:
                me = await lifetime.run(UserService(client).get_user(page.claims.subject_id))
        except ApiFailure as exc:
            banner = error_banner(request, exc, prefix="Failed to load your dashboard")
        company_name = await load_company_name(client, lifetime)

    own_tasks = [
        task for task in tasks if page.claims.subject_id is None or str(task.intern_id) == page.claims.subject_id
    ]
    upcoming = sorted(
        (task for task in own_tasks if task.status not in DONE_STATUSES),
        key=lambda task: task.due_date or "9999-12-31",
    )
    return await render_console(
        request,
        page,
        template_name="dashboard_intern.html",
        active_nav="dashboard",
        title="My Internship",
        subtitle="Your tasks and progress at a glance.",
        profile_name=me.full_name if me else None,
        company_name=company_name,
        banner=banner,
        me=me,
        progress=calculate_progress(own_tasks),
        upcoming=upcoming[:5],
    )


@router.get("/dashboard")
async def dashboard(
    request: Request,
    q: str = Query(default=""),
    role: str = Query(default=""),
    page_number: int = Query(default=1, alias="page"),
    view: str | None = Query(default=None),
) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)

    if page.claims.role == Role.ADMIN:
        return await _render_admin_dashboard(
            request,
            page,
            search=q,
            role_filter=role if role in ROLE_FILTERS else "",
            page_number=page_number,
            view_id=view,
        )
    if page.claims.role == Role.SUPERVISOR:
        return await _render_supervisor_dashboard(request, page)
    return await _render_intern_dashboard(request, page)


@router.post("/dashboard/users")
async def create_user(
    request: Request,
    role: str = Form(Role.INTERN.value),
    full_name: str = Form(""),
    email: str = Form(""),
    domain: str = Form(""),
    supervisor_id: str = Form(""),
    start_date: str = Form(""),
    end_date: str = Form(""),
    csrf_token: str = Form(""),
) -> Response:
    try:
        page = await resolve_ui_access(request)
        require_role(page, ROLES_ADMIN)
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    new_role = Role.SUPERVISOR if role == Role.SUPERVISOR.value else Role.INTERN
    dialog_name, fields = (
        (ADD_SUPERVISOR_DIALOG, SUPERVISOR_FORM_FIELDS)
        if new_role == Role.SUPERVISOR
        else (ADD_INTERN_DIALOG, USER_FORM_FIELDS)
    )
    form = {
        "full_name": full_name,
        "email": email,
        "domain": domain,
        "supervisor_id": supervisor_id,
        "start_date": start_date,
        "end_date": end_date,
    }
    dialog = DialogState.submitted(dialog_name, fields, form)
    errors = validate_user_form(dialog.values)
    if errors:
        return await _render_admin_dashboard(
            request,
            page,
            dialog=dialog.fail("Please correct the highlighted fields.", errors),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    payload = user_create_from_form(dialog.values, new_role)
    try:
        async with page.client() as client:
            await UserService(client).create_user(payload)
    except ApiFailure as exc:
        return await _render_admin_dashboard(
            request,
            page,
            dialog=dialog.fail(failure_message(exc)),
            status_code=failure_status(exc),
        )
    logger.info("user %s created with role %s", payload.email, new_role.value)
    return redirect_with_notice("/dashboard", "user-created")


@router.post("/dashboard/users/{user_id}/delete")
async def delete_user(request: Request, user_id: int, csrf_token: str = Form("")) -> Response:
    try:
        page = await resolve_ui_access(request)
        require_role(page, ROLES_ADMIN)
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    try:
        async with page.client() as client:
            await UserService(client).delete_user(user_id)
    except ApiFailure as exc:
        return await _render_admin_dashboard(
            request,
            page,
            banner=error_banner(request, exc, prefix="Failed to delete user"),
            status_code=failure_status(exc),
        )
    logger.info("user %s deleted", user_id)
    return redirect_with_notice("/dashboard", "user-deleted")
