from __future__ import annotations

from interneefy.domain.models import Evaluation, EvaluationCreate
from interneefy.services.api_client import ApiClient, ApiError, parse_as


class EvaluationService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_my_evaluation(self) -> Evaluation | None:
        try:
            data = await self._client.get("/api/evaluations/me")
        except ApiError as exc:
            if exc.status_code == 404:
                return None
            raise
        return parse_as(Evaluation, data) if data else None

    async def list_supervisor_evaluations(self) -> list[Evaluation]:
        data = await self._client.get("/api/evaluations/supervisor")
        return parse_as(list[Evaluation], data or [])

    async def submit_evaluation(self, payload: EvaluationCreate) -> Evaluation | None:
        data = await self._client.post("/api/evaluations", json=payload.to_payload(drop_none=True))
        return parse_as(Evaluation, data) if data else None
