from __future__ import annotations

import logging

from fastapi import APIRouter, Form, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse, Response

from interneefy.api.console import (
    CSRF_COOKIE_NAME,
    NOTICES,
    new_csrf_token,
    open_store,
    redirect_with_notice,
    set_csrf_cookie,
    templates,
    verify_csrf,
)
from interneefy.domain.forms import validate_login_form, validate_signup_form
from interneefy.domain.models import RegisterCompanyRequest
from interneefy.domain.navigation import DEFAULT_NEXT_PATH, LOGIN_PATH, sanitize_next_path
from interneefy.infra.context import get_app_context
from interneefy.services.api_client import ApiError, ApiFailure, ConnectivityError
from interneefy.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_FAILED_MESSAGE = "Login failed. Please check your credentials and try again."
LOGIN_ERROR_MESSAGE = "An error occurred during login. Please try again."


def _render_login(
    request: Request,
    *,
    next_path: str,
    email: str = "",
    error_message: str | None = None,
    errors: dict[str, str] | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    csrf_token = request.cookies.get(CSRF_COOKIE_NAME) or new_csrf_token()
    response = templates.TemplateResponse(
        request=request,
        name="login.html",
        context={
            "next_path": next_path,
            "email": email,
            "error_message": error_message,
            "errors": errors or {},
            "notice": NOTICES.get(request.query_params.get("notice") or ""),
            "csrf_token": csrf_token,
        },
        status_code=status_code,
    )
    set_csrf_cookie(response, csrf_token)
    return response


def _render_signup(
    request: Request,
    *,
    values: dict[str, str] | None = None,
    error_message: str | None = None,
    errors: dict[str, str] | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    csrf_token = request.cookies.get(CSRF_COOKIE_NAME) or new_csrf_token()
    response = templates.TemplateResponse(
        request=request,
        name="signup.html",
        context={
            "values": values or {},
            "error_message": error_message,
            "errors": errors or {},
            "csrf_token": csrf_token,
        },
        status_code=status_code,
    )
    set_csrf_cookie(response, csrf_token)
    return response


@router.get("/")
async def landing(request: Request) -> Response:
    store = await open_store(request)
    decoder = get_app_context(request).decoder
    signed_in = decoder.decode(store.credential) is not None if store.credential else False
    return templates.TemplateResponse(
        request=request,
        name="landing.html",
        context={"signed_in": signed_in},
    )


@router.get(LOGIN_PATH)
async def login_page(
    request: Request,
    next_path: str | None = Query(default=None, alias="next"),
) -> Response:
    safe_next = sanitize_next_path(next_path)
    store = await open_store(request)
    if store.credential and get_app_context(request).decoder.decode(store.credential) is not None:
        return RedirectResponse(url=safe_next, status_code=status.HTTP_303_SEE_OTHER)
    return _render_login(request, next_path=safe_next)


@router.post(LOGIN_PATH)
async def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    csrf_token: str = Form(""),
    next_path: str = Form(DEFAULT_NEXT_PATH, alias="next"),
) -> Response:
    safe_next = sanitize_next_path(next_path)
    try:
        verify_csrf(request, csrf_token)
    except HTTPException as exc:
        return _render_login(
            request,
            next_path=safe_next,
            email=email,
            error_message=str(exc.detail),
            status_code=exc.status_code,
        )

    values = {"email": email.strip(), "password": password}
    errors = validate_login_form(values)
    if errors:
        return _render_login(
            request,
            next_path=safe_next,
            email=values["email"],
            errors=errors,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    context = get_app_context(request)
    try:
        async with context.api_client() as client:
            result = await AuthService(client).login(values["email"], password)
    except ConnectivityError:
        return _render_login(
            request,
            next_path=safe_next,
            email=values["email"],
            error_message=LOGIN_ERROR_MESSAGE,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    except ApiFailure as exc:
        logger.info("login rejected for %s: %s", values["email"], exc.message)
        return _render_login(
            request,
            next_path=safe_next,
            email=values["email"],
            error_message=LOGIN_FAILED_MESSAGE,
            status_code=exc.status_code if isinstance(exc, ApiError) and exc.status_code < 500 else 502,
        )

    if context.decoder.decode(result.token) is None:
        return _render_login(
            request,
            next_path=safe_next,
            email=values["email"],
            error_message=LOGIN_FAILED_MESSAGE,
            status_code=status.HTTP_502_BAD_GATEWAY,
        )

    store = await open_store(request)
    store.set_credential(result.token)
    response = RedirectResponse(url=safe_next, status_code=status.HTTP_303_SEE_OTHER)
    await store.flush(request, response)
    set_csrf_cookie(response, new_csrf_token())
    return response


@router.post("/logout")
async def logout(request: Request, csrf_token: str = Form("")) -> RedirectResponse:
    verify_csrf(request, csrf_token)
    store = await open_store(request)
    store.logout()
    response = redirect_with_notice(LOGIN_PATH, "logged-out")
    await store.flush(request, response)
    set_csrf_cookie(response, new_csrf_token())
    return response


@router.get("/signup")
async def signup_page(request: Request) -> Response:
    return _render_signup(request)


@router.post("/signup")
async def signup_submit(
    request: Request,
    company_name: str = Form(""),
    full_name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    agreed_to_terms: str = Form(""),
    csrf_token: str = Form(""),
) -> Response:
    values = {
        "company_name": company_name.strip(),
        "full_name": full_name.strip(),
        "email": email.strip(),
    }
    try:
        verify_csrf(request, csrf_token)
    except HTTPException as exc:
        return _render_signup(request, values=values, error_message=str(exc.detail), status_code=exc.status_code)

    errors = validate_signup_form(
        {
            **values,
            "password": password,
            "confirm_password": confirm_password,
            "agreed_to_terms": agreed_to_terms,
        }
    )
    if errors:
        return _render_signup(
            request,
            values=values,
            errors=errors,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    payload = RegisterCompanyRequest(password=password, **values)
    try:
        async with get_app_context(request).api_client() as client:
            await AuthService(client).register_company(payload)
    except ConnectivityError as exc:
        return _render_signup(
            request,
            values=values,
            error_message=exc.message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    except ApiError as exc:
        return _render_signup(
            request,
            values=values,
            error_message=f"Registration failed: {exc.message}",
            status_code=exc.status_code if exc.status_code < 500 else status.HTTP_502_BAD_GATEWAY,
        )
    return redirect_with_notice(LOGIN_PATH, "registered")
