"""Async HTTP client for the Interneefy REST API.

Every call carries the session credential as a bearer header. Failures are
surfaced as :class:`ApiError` (the API answered with a non-2xx status) or
:class:`ConnectivityError` (no response at all). Nothing is retried here.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONNECTIVITY_MESSAGE = "A network error occurred. Please check your connection and try again."


class ApiFailure(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ApiError(ApiFailure):
    def __init__(self, status_code: int, message: str, response_text: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text

    def __str__(self) -> str:
        return self.message


class ResponseShapeError(ApiError):
    pass


class ConnectivityError(ApiFailure):
    def __init__(self, message: str = CONNECTIVITY_MESSAGE) -> None:
        super().__init__(message)


def error_message(response: httpx.Response) -> str:
    fallback = f"API Error: status {response.status_code}"
    try:
        data = response.json()
    except ValueError:
        return fallback
    if isinstance(data, dict):
        for key in ("error", "message", "detail"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


class ApiClient:
    def __init__(
        self,
        base_url: str,
        credential: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TransportError as exc:
            logger.error("api request %s %s failed without response: %s", method, path, exc)
            raise ConnectivityError() from exc

        if 200 <= response.status_code < 300:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise ResponseShapeError(response.status_code, "API returned a non-JSON body", response.text) from exc

        message = error_message(response)
        logger.warning("api request %s %s returned %s: %s", method, path, response.status_code, message)
        raise ApiError(response.status_code, message, response.text)

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def ping(self) -> bool:
        try:
            await self._client.get("/")
        except httpx.HTTPError:
            return False
        return True


def parse_as(model: Any, data: Any) -> Any:
    try:
        return TypeAdapter(model).validate_python(data)
    except ValidationError as exc:
        logger.warning("api response did not match %s: %s", model, exc)
        raise ResponseShapeError(200, "API returned an unexpected response") from exc
