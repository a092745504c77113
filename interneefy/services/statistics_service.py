from __future__ import annotations

from interneefy.domain.models import DomainShare, EnrollmentPoint
from interneefy.services.api_client import ApiClient, parse_as


class StatisticsService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def enrollment(self) -> list[EnrollmentPoint]:
        data = await self._client.get("/api/statistics/enrollment")
        return parse_as(list[EnrollmentPoint], data or [])

    async def domain_distribution(self) -> list[DomainShare]:
        data = await self._client.get("/api/statistics/domains")
        return parse_as(list[DomainShare], data or [])
