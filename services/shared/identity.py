"""
Shared — Identity Lookup クライアント

ユーザー情報は外部の User Service が持つ。ここでは読み取り専用の
`GET /users/{id}` だけを使う。

呼び出し側にとってクリティカルな依存なので、失敗は例外で即座に伝える:
  - 404                       → NotFoundError
  - タイムアウト・通信エラー等 → DependencyUnavailableError
  - 読めないプロフィール       → DependencyUnavailableError
"""

import logging

import httpx
from pydantic import ConfigDict

from .errors import DependencyUnavailableError, NotFoundError
from .models import CamelModel

logger = logging.getLogger(__name__)


class UserProfile(CamelModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    username: str | None = None
    email: str | None = None
    full_name: str | None = None
    phone: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or self.id


class IdentityClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def get_user(self, user_id: str) -> UserProfile:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                resp = await client.get(f"{self.base_url}/users/{user_id}")
            except httpx.HTTPError as e:
                logger.warning("Identity lookup for %s failed: %s", user_id, e)
                raise DependencyUnavailableError(
                    f"User service unavailable: {e}", userId=user_id
                ) from e

        if resp.status_code == 404:
            raise NotFoundError(f"User {user_id} not found", userId=user_id)
        if resp.is_error:
            raise DependencyUnavailableError(
                f"User service responded {resp.status_code}", userId=user_id
            )
        try:
            return UserProfile.model_validate(resp.json())
        except ValueError as e:
            # JSONDecodeError と pydantic の ValidationError はどちらも ValueError
            logger.warning("Identity lookup for %s returned an unreadable body", user_id)
            raise DependencyUnavailableError(
                "User service sent an unreadable profile", userId=user_id
            ) from e
