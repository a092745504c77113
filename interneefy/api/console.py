from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

from fastapi import HTTPException, Request, status
from fastapi.responses import RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from interneefy.domain.claims import Claims, Role
from interneefy.domain.evaluations import format_score
from interneefy.domain.navigation import (
    NavItem,
    NavState,
    RouteVerdict,
    login_location,
    match_nav_item,
    resolve_nav_state,
    route_decision,
    visible_nav_items,
)
from interneefy.domain.roster import initials
from interneefy.domain.tasks import STATUS_LABELS
from interneefy.infra.context import AppContext, get_app_context
from interneefy.infra.session_store import CredentialStore
from interneefy.services.api_client import ApiClient, ApiError, ApiFailure, ConnectivityError
from interneefy.services.cancellation import ViewLifetime
from interneefy.services.company_service import CompanyService

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "web" / "templates"))
templates.env.filters["score"] = format_score
templates.env.filters["status_label"] = lambda value: STATUS_LABELS.get(value, str(value))
templates.env.filters["day"] = lambda value: (value or "")[:10]
templates.env.filters["initials"] = initials

CSRF_COOKIE_NAME = "interneefy_csrf"
CSRF_MAX_AGE_SECONDS = 60 * 60 * 8

NOTICES: dict[str, str] = {
    "user-created": "User added successfully.",
    "user-updated": "User updated successfully.",
    "user-deleted": "User deleted successfully!",
    "task-created": "Task created.",
    "task-updated": "Task updated.",
    "task-deleted": "Task deleted.",
    "evaluation-submitted": "Evaluation submitted.",
    "company-updated": "Company settings saved.",
    "registered": "Registration successful! Please log in.",
    "logged-out": "You have been signed out.",
}

ROLE_LABELS = {"ADMIN": "Admin", "SUPERVISOR": "Supervisor", "INTERN": "Intern"}


@dataclass
class PageSession:
    context: AppContext
    store: CredentialStore
    claims: Claims
    nav_state: NavState
    nav_item: NavItem | None

    def client(self) -> ApiClient:
        return self.context.api_client(self.store.credential)


def new_csrf_token() -> str:
    return secrets.token_urlsafe(24)


def set_csrf_cookie(response: Response, csrf_token: str) -> None:
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=csrf_token,
        httponly=False,
        samesite="strict",
        max_age=CSRF_MAX_AGE_SECONDS,
        path="/",
    )


def current_csrf_token(request: Request) -> str:
    cached = getattr(request.state, "csrf_token", None)
    if cached:
        return cached
    token = request.cookies.get(CSRF_COOKIE_NAME) or new_csrf_token()
    request.state.csrf_token = token
    return token


def verify_csrf(request: Request, csrf_token: str) -> None:
    csrf_cookie = request.cookies.get(CSRF_COOKIE_NAME)
    if not csrf_cookie or not csrf_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid csrf token")
    if not secrets.compare_digest(csrf_cookie, csrf_token):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid csrf token")


async def open_store(request: Request) -> CredentialStore:
    store = get_app_context(request).credential_store()
    await store.hydrate(request)
    return store


async def resolve_ui_access(request: Request) -> PageSession:
    context = get_app_context(request)
    store = await open_store(request)
    claims = context.decoder.decode(store.credential) if store.credential else None
    nav_state = resolve_nav_state(store.ready, claims)
    decision = route_decision(request.url.path, nav_state)
    if decision.verdict == RouteVerdict.WAIT:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="session loading")
    if decision.verdict == RouteVerdict.REDIRECT or claims is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="sign in required")
    if decision.verdict == RouteVerdict.FORBIDDEN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="this page is not available for your role")
    return PageSession(
        context=context,
        store=store,
        claims=claims,
        nav_state=nav_state,
        nav_item=decision.nav_item,
    )


async def login_redirect(request: Request, *, clear_session: bool) -> RedirectResponse:
    requested_path = request.url.path if request.method == "GET" else "/dashboard"
    if request.method == "GET" and request.url.query:
        requested_path = f"{requested_path}?{request.url.query}"
    response = RedirectResponse(url=login_location(requested_path), status_code=status.HTTP_303_SEE_OTHER)
    if clear_session:
        store = get_app_context(request).credential_store()
        store.logout()
        await store.flush(request, response)
    return response


def render_loading(request: Request) -> Response:
    response = templates.TemplateResponse(
        request=request,
        name="loading.html",
        context={},
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    response.headers["Retry-After"] = "1"
    return response


def render_forbidden(request: Request, detail: str) -> Response:
    return templates.TemplateResponse(
        request=request,
        name="forbidden.html",
        context={"detail": detail},
        status_code=status.HTTP_403_FORBIDDEN,
    )


async def access_denied(request: Request, exc: HTTPException) -> Response:
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        return await login_redirect(request, clear_session=True)
    if exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        return render_loading(request)
    if exc.status_code == status.HTTP_403_FORBIDDEN:
        return render_forbidden(request, str(exc.detail))
    raise exc


def failure_message(exc: ApiFailure) -> str:
    if isinstance(exc, ConnectivityError):
        return exc.message
    return exc.message or "Something went wrong. Please try again."


def failure_status(exc: ApiFailure) -> int:
    if isinstance(exc, ConnectivityError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, ApiError) and 400 <= exc.status_code < 500:
        return exc.status_code
    return status.HTTP_502_BAD_GATEWAY


def error_banner(request: Request, exc: ApiFailure, *, prefix: str | None = None) -> dict[str, str]:
    message = failure_message(exc)
    logger.warning("page %s could not load data: %s", request.url.path, message)
    if request.method == "GET":
        retry_href = str(request.url.path) + (f"?{request.url.query}" if request.url.query else "")
    else:
        nav_item = match_nav_item(request.url.path)
        retry_href = nav_item.href if nav_item else request.url.path
    return {
        "message": f"{prefix}: {message}" if prefix else message,
        "retry_href": retry_href,
    }


def redirect_with_notice(path: str, notice: str, **params: str) -> RedirectResponse:
    query = urlencode({"notice": notice, **params})
    return RedirectResponse(url=f"{path}?{query}", status_code=status.HTTP_303_SEE_OTHER)


def display_name(claims: Claims, fallback: str | None = None) -> str:
    return claims.display_name or fallback or f"{ROLE_LABELS.get(claims.role.value, 'Team')} User"


def console_context(
    request: Request,
    page: PageSession,
    *,
    active_nav: str,
    title: str,
    subtitle: str,
    **extra: Any,
) -> dict[str, Any]:
    nav_rows = visible_nav_items(page.nav_state, active_nav)
    active_label = next((item["label"] for item in nav_rows if item["active"]), "Dashboard")
    name = display_name(page.claims, extra.pop("profile_name", None))
    notice_key = request.query_params.get("notice")
    context: dict[str, Any] = {
        "page_title": title,
        "page_subtitle": subtitle,
        "nav_items": nav_rows,
        "role": page.claims.role.value,
        "role_label": ROLE_LABELS.get(page.claims.role.value, page.claims.role.value),
        "user_id": page.claims.subject_id,
        "tenant_id": page.claims.tenant_id,
        "display_name": name,
        "initials": initials(name),
        "csrf_token": current_csrf_token(request),
        "breadcrumbs": ["Dashboard", active_label] if active_label != "Dashboard" else ["Dashboard"],
        "notice": NOTICES.get(notice_key or ""),
        "banner": None,
        "dialog": None,
        "company_name": None,
    }
    context.update(extra)
    return context


async def render_console(
    request: Request,
    page: PageSession,
    *,
    template_name: str,
    active_nav: str,
    title: str,
    subtitle: str,
    status_code: int = status.HTTP_200_OK,
    **extra: Any,
) -> Response:
    response = templates.TemplateResponse(
        request=request,
        name=template_name,
        context=console_context(
            request,
            page,
            active_nav=active_nav,
            title=title,
            subtitle=subtitle,
            **extra,
        ),
        status_code=status_code,
    )
    if not request.cookies.get(CSRF_COOKIE_NAME):
        set_csrf_cookie(response, current_csrf_token(request))
    await page.store.flush(request, response)
    return response


def require_role(page: PageSession, allowed_roles: frozenset[Role]) -> None:
    if page.claims.role not in allowed_roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="this action is not available for your role")


async def load_company_name(client: ApiClient, lifetime: ViewLifetime) -> str | None:
    try:
        company = await lifetime.run(CompanyService(client).get_company())
    except ApiFailure as exc:
        logger.info("company profile unavailable: %s", exc.message)
        return None
    return company.name
