"""
Payment Service — コマンドハンドラ (Write 側)

authorize_payment:
  1. pending の支払いレコードを保存
  2. プロセッサで決済をシミュレート
  3. completed / failed に更新（失敗は例外ではなく結果として返す）
  4. PaymentProcessed イベントを発行（配信は待たない）

refund_payment:
  completed の支払いだけを refunded にする。チェックと書き込みは
  同じキーのロック内で行うので、同時に 2 回返金されることはない。
"""

import logging

from ...shared.dispatcher import EventDispatcher
from ...shared.events import EventType, new_event
from ...shared.store import EntityStore
from .aggregate import Currency, Payment, PaymentMethod
from .events import PaymentProcessed, PaymentRefunded
from .processor import PaymentProcessor

logger = logging.getLogger(__name__)


async def authorize_payment(
    store: EntityStore[Payment],
    processor: PaymentProcessor,
    dispatcher: EventDispatcher,
    order_id: str,
    amount: float,
    currency: Currency,
    method: PaymentMethod,
) -> Payment:
    payment = Payment.open(order_id, amount, currency, method)
    store.add(payment.id, payment)
    logger.info("Payment record created: %s for order %s", payment.id, order_id)

    settlement = await processor.settle(amount)

    def apply_settlement(current: Payment) -> Payment:
        if settlement.approved:
            return current.complete(settlement.transaction_id)
        return current.fail(settlement.error)

    payment = await store.update(payment.id, apply_settlement)
    logger.info("Payment processed: %s -> %s", payment.id, payment.status.value)

    dispatcher.publish(
        new_event(
            EventType.PAYMENT_PROCESSED,
            PaymentProcessed(
                payment_id=payment.id,
                order_id=payment.order_id,
                status=payment.status.value,
                amount=payment.amount,
                currency=payment.currency.value,
                transaction_id=payment.transaction_id,
                processed_at=payment.processed_at,
                error=payment.error,
            ),
        )
    )
    return payment


async def refund_payment(
    store: EntityStore[Payment],
    processor: PaymentProcessor,
    dispatcher: EventDispatcher,
    payment_id: str,
) -> Payment:
    async with store.locked(payment_id):
        payment = store.require(payment_id)
        payment.check_refundable()

        refund_txn = await processor.settle_refund()
        payment = store.replace(payment_id, payment.refund(refund_txn))

    logger.info("Payment refunded: %s (%s)", payment.id, refund_txn)

    dispatcher.publish(
        new_event(
            EventType.PAYMENT_REFUNDED,
            PaymentRefunded(
                payment_id=payment.id,
                order_id=payment.order_id,
                amount=payment.amount,
                currency=payment.currency.value,
                refund_transaction_id=payment.refund_transaction_id,
                refunded_at=payment.refunded_at,
            ),
        )
    )
    return payment
