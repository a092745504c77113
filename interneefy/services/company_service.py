from __future__ import annotations

from interneefy.domain.models import Company, CompanyUpdate
from interneefy.services.api_client import ApiClient, parse_as


class CompanyService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_company(self) -> Company:
        data = await self._client.get("/api/company")
        return parse_as(Company, data)

    async def update_company(self, payload: CompanyUpdate) -> Company | None:
        data = await self._client.put("/api/company", json=payload.to_payload())
        return parse_as(Company, data) if data else None
