from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Header

# x-user-id names the acting player; without it the api key is used.
UserIdHeader = Annotated[Optional[str], Header(alias="x-user-id")]


def derive_player_id(api_key: str | None, user_id: str | None) -> str:
    return user_id or api_key or "anonymous"


__all__ = ["UserIdHeader", "derive_player_id"]
