"""
Shared — 成否シミュレーションのポリシー

決済の承認やメッセージ送信は実際の外部サービスを呼ばず、
成功確率と遅延でシミュレートする。テストでは FixedOutcome を注入して
結果を決定的にする。
"""

import asyncio
import random
from typing import Protocol


class OutcomePolicy(Protocol):
    def succeeds(self) -> bool: ...


class RandomOutcome:
    """success_rate の確率で成功する。"""

    def __init__(self, success_rate: float, rng: random.Random | None = None):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError(f"success_rate must be within [0, 1], got {success_rate}")
        self.success_rate = success_rate
        self.rng = rng or random.Random()

    def succeeds(self) -> bool:
        return self.rng.random() < self.success_rate


class FixedOutcome:
    """常に同じ結果を返す。"""

    def __init__(self, result: bool):
        self.result = result

    def succeeds(self) -> bool:
        return self.result


async def simulate_latency(seconds: float) -> None:
    if seconds > 0:
        await asyncio.sleep(seconds)
