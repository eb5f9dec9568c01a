"""
Shared — インメモリ・エンティティストア

識別子 → エンティティ の単純なマッピング。プロセス終了とともに消える。

単一ライター規律:
  - 各ストアは所有サービスだけが書き込む
  - 同じキーへの read-modify-write はキー単位のロック内で 1 ステップとして行う
  - エンティティは新しいコピーで丸ごと置き換える
    → 途中まで書き換えられた状態が他の操作から見えることはない
"""

import asyncio
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Generic, TypeVar

from pydantic import BaseModel

from .errors import NotFoundError

T = TypeVar("T", bound=BaseModel)


class EntityStore(Generic[T]):
    def __init__(self, entity_name: str) -> None:
        self.entity_name = entity_name
        self._items: dict[str, T] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def add(self, key: str, entity: T) -> T:
        if key in self._items:
            raise ValueError(f"{self.entity_name} {key} already exists")
        self._items[key] = entity
        self._locks[key] = asyncio.Lock()
        return entity

    def get(self, key: str) -> T | None:
        return self._items.get(key)

    def require(self, key: str) -> T:
        entity = self._items.get(key)
        if entity is None:
            raise NotFoundError(
                f"{self.entity_name} {key} not found",
                **{f"{self.entity_name.lower()}Id": key},
            )
        return entity

    def values(self) -> list[T]:
        return list(self._items.values())

    def replace(self, key: str, entity: T) -> T:
        self.require(key)
        self._items[key] = entity
        return entity

    @asynccontextmanager
    async def locked(self, key: str):
        """
        キー単位のロックを取る。ロック中の await をまたいでも他の書き込みは割り込まない。
        ロックは add() 済みのキーにだけ存在する。未知のキーは NotFoundError。
        """
        self.require(key)
        lock = self._locks[key]
        async with lock:
            yield

    async def update(self, key: str, change: Callable[[T], T]) -> T:
        """
        ロック内で現在値を読み、change が返した新しいエンティティで置き換える。
        change が例外を投げた場合は何も書き込まない。
        """
        async with self.locked(key):
            current = self.require(key)
            updated = change(current)
            self._items[key] = updated
            return updated
