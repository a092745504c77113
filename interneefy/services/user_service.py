from __future__ import annotations

from interneefy.domain.models import User, UserCreate, UserUpdate
from interneefy.services.api_client import ApiClient, parse_as


class UserService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def list_users(self) -> list[User]:
        data = await self._client.get("/api/users")
        return parse_as(list[User], data or [])

    async def get_user(self, user_id: int | str) -> User:
        data = await self._client.get(f"/api/users/{user_id}")
        return parse_as(User, data)

    async def create_user(self, payload: UserCreate) -> User | None:
        data = await self._client.post("/api/users", json=payload.to_payload(drop_none=True))
        return parse_as(User, data) if data else None

    async def update_user(self, user_id: int | str, payload: UserUpdate) -> User | None:
        data = await self._client.put(f"/api/users/{user_id}", json=payload.to_payload())
        return parse_as(User, data) if data else None

    async def delete_user(self, user_id: int | str) -> None:
        await self._client.delete(f"/api/users/{user_id}")
