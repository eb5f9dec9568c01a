"""
Shared — モデル共通部品

JSON 上は camelCase (userId, totalAmount ...)、Python 上は snake_case で扱う。
入力はどちらの表記でも受け付ける。
"""

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def new_id(prefix: str) -> str:
    """`ord-1f3a9c0e7b2d` 形式の識別子を生成する。"""
    return f"{prefix}-{uuid4().hex[:12]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
