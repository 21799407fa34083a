from typing import Optional

import httpx

from msdata.api.schemas.users import UserCount, UserPage, UserResponse


class ApiClient:
    """Minimal synchronous users API client for the msdata CLI."""

    def __init__(self, base_url: str, token: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._http = httpx.Client(base_url=self.base_url, headers=headers, timeout=30.0, transport=transport)

    def list_users(self, page: int = 1, size: int = 20) -> UserPage:
        resp = self._http.get("/users", params={"page": page, "size": size})
        resp.raise_for_status()
        return UserPage.model_validate(resp.json())

    def get_user(self, user_id: int) -> UserResponse:
        resp = self._http.get(f"/users/{user_id}")
        resp.raise_for_status()
        return UserResponse.model_validate(resp.json())

    def count_users(self) -> int:
        resp = self._http.get("/users/count")
        resp.raise_for_status()
        return UserCount.model_validate(resp.json()).count

    def create_user(self, name: str, email: str) -> UserResponse:
        resp = self._http.post("/users", json={"name": name, "email": email})
        resp.raise_for_status()
        return UserResponse.model_validate(resp.json())

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
