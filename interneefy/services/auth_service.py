from __future__ import annotations

from typing import Any

from interneefy.domain.models import LoginRequest, RegisterCompanyRequest, TokenResponse
from interneefy.services.api_client import ApiClient, parse_as


class AuthService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def login(self, email: str, password: str) -> TokenResponse:
        payload = LoginRequest(email=email, password=password)
        data = await self._client.post("/api/auth/login", json=payload.to_payload())
        return parse_as(TokenResponse, data)

    async def register_company(self, payload: RegisterCompanyRequest) -> dict[str, Any]:
        data = await self._client.post("/api/auth/register-company", json=payload.to_payload())
        return data if isinstance(data, dict) else {}
