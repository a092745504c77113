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
from interneefy.domain.claims import Role
from interneefy.domain.forms import (
    COMPANY_FORM_FIELDS,
    SUPERVISOR_FORM_FIELDS,
    USER_FORM_FIELDS,
    DialogState,
    optional,
    user_create_from_form,
    user_update_from_form,
    validate_company_form,
    validate_user_form,
)
from interneefy.domain.models import Company, CompanyUpdate, User
from interneefy.domain.roster import (
    build_domain_catalog,
    filter_domains,
    filter_users,
    find_user,
    select_options,
    supervisee_counts,
    users_with_role,
)
from interneefy.services.api_client import ApiFailure
from interneefy.services.cancellation import ViewLifetime
from interneefy.services.company_service import CompanyService
from interneefy.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard")

EDIT_INTERN_DIALOG = "edit-intern"
ADD_SUPERVISOR_DIALOG = "add-supervisor"
COMPANY_FORM = "company"


async def _load_users(request: Request, page: PageSession) -> tuple[list[User], dict[str, str] | None, str | None]:
    async with page.client() as client, ViewLifetime(request) as lifetime:
        try:
            users = await lifetime.run(UserService(client).list_users())
        except ApiFailure as exc:
            users, banner = [], error_banner(request, exc, prefix="Failed to load users")
        else:
            banner = None
        company_name = await load_company_name(client, lifetime)
    return users, banner, company_name


async def _render_interns(
    request: Request,
    page: PageSession,
    *,
    search: str = "",
    edit_id: str | None = None,
    dialog: DialogState | None = None,
    banner: dict[str, str] | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    users, load_banner, company_name = await _load_users(request, page)
    supervisors = users_with_role(users, Role.SUPERVISOR)
    supervisor_names = {supervisor.id: supervisor.full_name for supervisor in supervisors}
    if dialog is None and edit_id is not None:
        editing = find_user(users_with_role(users, Role.INTERN), edit_id)
        if editing is not None:
            dialog = DialogState.for_edit(EDIT_INTERN_DIALOG, USER_FORM_FIELDS, editing.model_dump(), editing.id)

    return await render_console(
        request,
        page,
        template_name="interns.html",
        active_nav="interns",
        title="Interns",
        subtitle="Manage intern assignments, domains and dates.",
        status_code=status_code,
        company_name=company_name,
        banner=banner or load_banner,
        interns=filter_users(users_with_role(users, Role.INTERN), search=search),
        supervisor_options=select_options(supervisors),
        supervisor_names=supervisor_names,
        search=search,
        dialog=dialog,
    )


@router.get("/interns")
async def interns_page(
    request: Request,
    q: str = Query(default=""),
    edit: str | None = Query(default=None),
) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    return await _render_interns(request, page, search=q, edit_id=edit)


@router.post("/interns/{user_id}")
async def update_intern(
    request: Request,
    user_id: int,
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
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    form = {
        "full_name": full_name,
        "email": email,
        "domain": domain,
        "supervisor_id": supervisor_id,
        "start_date": start_date,
        "end_date": end_date,
    }
    dialog = DialogState.submitted(EDIT_INTERN_DIALOG, USER_FORM_FIELDS, form, record_id=str(user_id))
    errors = validate_user_form(dialog.values)
    if errors:
        return await _render_interns(
            request,
            page,
            dialog=dialog.fail("Please correct the highlighted fields.", errors),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    try:
        async with page.client() as client:
            await UserService(client).update_user(user_id, user_update_from_form(dialog.values))
    except ApiFailure as exc:
        return await _render_interns(
            request,
            page,
            dialog=dialog.fail(failure_message(exc)),
            status_code=failure_status(exc),
        )
    logger.info("intern %s updated", user_id)
    return redirect_with_notice("/dashboard/interns", "user-updated")


@router.post("/interns/{user_id}/delete")
async def delete_intern(request: Request, user_id: int, csrf_token: str = Form("")) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    try:
        async with page.client() as client:
            await UserService(client).delete_user(user_id)
    except ApiFailure as exc:
        return await _render_interns(
            request,
            page,
            banner=error_banner(request, exc, prefix="Failed to delete intern"),
            status_code=failure_status(exc),
        )
    logger.info("intern %s deleted", user_id)
    return redirect_with_notice("/dashboard/interns", "user-deleted")


async def _render_supervisors(
    request: Request,
    page: PageSession,
    *,
    search: str = "",
    dialog: DialogState | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    users, banner, company_name = await _load_users(request, page)
    counts = supervisee_counts(users)
    rows = [
        {"supervisor": supervisor, "supervisees": counts.get(supervisor.id, 0)}
        for supervisor in filter_users(users_with_role(users, Role.SUPERVISOR), search=search)
    ]
    return await render_console(
        request,
        page,
        template_name="supervisors.html",
        active_nav="supervisors",
        title="Supervisors",
        subtitle="Supervisors and the interns assigned to them.",
        status_code=status_code,
        company_name=company_name,
        banner=banner,
        rows=rows,
        search=search,
        dialog=dialog or DialogState.blank(ADD_SUPERVISOR_DIALOG, SUPERVISOR_FORM_FIELDS),
    )


@router.get("/supervisors")
async def supervisors_page(request: Request, q: str = Query(default="")) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    return await _render_supervisors(request, page, search=q)


@router.post("/supervisors")
async def create_supervisor(
    request: Request,
    full_name: str = Form(""),
    email: str = Form(""),
    domain: str = Form(""),
    csrf_token: str = Form(""),
) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    dialog = DialogState.submitted(
        ADD_SUPERVISOR_DIALOG,
        SUPERVISOR_FORM_FIELDS,
        {"full_name": full_name, "email": email, "domain": domain},
    )
    errors = validate_user_form(dialog.values)
    if errors:
        return await _render_supervisors(
            request,
            page,
            dialog=dialog.fail("Please correct the highlighted fields.", errors),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    payload = user_create_from_form(dialog.values, Role.SUPERVISOR)
    try:
        async with page.client() as client:
            await UserService(client).create_user(payload)
    except ApiFailure as exc:
        return await _render_supervisors(
            request,
            page,
            dialog=dialog.fail(failure_message(exc)),
            status_code=failure_status(exc),
        )
    logger.info("supervisor %s created", payload.email)
    return redirect_with_notice("/dashboard/supervisors", "user-created")


@router.get("/domains")
async def domains_page(request: Request, q: str = Query(default="")) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)

    users, banner, company_name = await _load_users(request, page)
    catalog = build_domain_catalog(users)
    return await render_console(
        request,
        page,
        template_name="domains.html",
        active_nav="domains",
        title="Domains",
        subtitle="Internship domains with their supervisors and interns.",
        company_name=company_name,
        banner=banner,
        domains=filter_domains(catalog, q),
        domain_total=len(catalog),
        search=q,
    )


async def _render_settings(
    request: Request,
    page: PageSession,
    *,
    form: DialogState | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    company: Company | None = None
    banner = None
    async with page.client() as client, ViewLifetime(request) as lifetime:
        try:
            company = await lifetime.run(CompanyService(client).get_company())
        except ApiFailure as exc:
            banner = error_banner(request, exc, prefix="Failed to load company settings")

    if form is None:
        form = (
            DialogState.for_edit(COMPANY_FORM, COMPANY_FORM_FIELDS, company.model_dump(), company.id)
            if company is not None
            else DialogState.blank(COMPANY_FORM, COMPANY_FORM_FIELDS)
        )
    return await render_console(
        request,
        page,
        template_name="settings.html",
        active_nav="settings",
        title="Settings",
        subtitle="Company profile shown across the console.",
        status_code=status_code,
        company_name=company.name if company else None,
        company=company,
        banner=banner,
        form=form,
    )


@router.get("/settings")
async def settings_page(request: Request) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    return await _render_settings(request, page)


@router.post("/settings")
async def update_settings(
    request: Request,
    name: str = Form(""),
    logo_url: str = Form(""),
    csrf_token: str = Form(""),
) -> Response:
    try:
        page = await resolve_ui_access(request)
    except HTTPException as exc:
        return await access_denied(request, exc)
    verify_csrf(request, csrf_token)

    form = DialogState.submitted(COMPANY_FORM, COMPANY_FORM_FIELDS, {"name": name, "logo_url": logo_url})
    errors = validate_company_form(form.values)
    if errors:
        return await _render_settings(
            request,
            page,
            form=form.fail("Please correct the highlighted fields.", errors),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    try:
        async with page.client() as client:
            await CompanyService(client).update_company(
                CompanyUpdate(name=form.values["name"], logo_url=optional(form.values["logo_url"]))
            )
    except ApiFailure as exc:
        return await _render_settings(
            request,
            page,
            form=form.fail(failure_message(exc)),
            status_code=failure_status(exc),
        )
    logger.info("company profile updated")
    return redirect_with_notice("/dashboard/settings", "company-updated")
