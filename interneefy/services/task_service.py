from __future__ import annotations

from interneefy.domain.models import Task, TaskCreate, TaskUpdate
from interneefy.services.api_client import ApiClient, parse_as


class TaskService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def list_my_tasks(self) -> list[Task]:
        data = await self._client.get("/api/tasks")
        return parse_as(list[Task], data or [])

    async def list_supervision_tasks(self) -> list[Task]:
        data = await self._client.get("/api/supervision/tasks")
        return parse_as(list[Task], data or [])

    async def get_task(self, task_id: int | str) -> Task:
        data = await self._client.get(f"/api/tasks/{task_id}")
        return parse_as(Task, data)

    async def create_task(self, payload: TaskCreate) -> Task | None:
        data = await self._client.post("/api/tasks", json=payload.to_payload(drop_none=True))
        return parse_as(Task, data) if data else None

    async def update_task(self, task_id: int | str, payload: TaskUpdate) -> Task | None:
        data = await self._client.put(f"/api/tasks/{task_id}", json=payload.to_payload())
        return parse_as(Task, data) if data else None

    async def delete_task(self, task_id: int | str) -> None:
        await self._client.delete(f"/api/tasks/{task_id}")
