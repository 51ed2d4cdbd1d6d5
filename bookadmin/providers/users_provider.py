from __future__ import annotations

from bookadmin.core.models import User, UserUpdate
from bookadmin.providers.api_client import ApiClient, parse_payload


def get_current_user(client: ApiClient) -> User:
    return parse_payload(User, client.get("/me"), method="GET", path="/me")


def update_user(client: ApiClient, user_id: str, update: UserUpdate) -> User:
    path = f"/users/{user_id}"
    return parse_payload(User, client.put(path, update), method="PUT", path=path)
