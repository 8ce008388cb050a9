# Overview: Payment gateway contract and the mock implementation used in development.

from __future__ import annotations

import abc
import uuid
from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app


@dataclass(frozen=True)
class PaymentRequest:
    order_id: int
    amount: Decimal
    description: str
    currency: str = "BDT"
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    transaction_id: str | None = None
    payment_url: str | None = None
    error: str | None = None


class PaymentGateway(abc.ABC):
    """
    Unreliable external payment provider.

    Callers treat anything other than a successful PaymentResult (including
    a raised exception) as "not captured". Refunds are credited to the
    buyer's wallet balance, so the provider is only ever asked to charge.
    """

    @abc.abstractmethod
    def create_payment(self, request: PaymentRequest) -> PaymentResult:
        ...


class MockPaymentGateway(PaymentGateway):
    """Approves everything and logs what a real provider would have received."""

    def create_payment(self, request: PaymentRequest) -> PaymentResult:
        current_app.logger.info(
            "[payment] would charge order %s amount %s %s", request.order_id, request.amount, request.currency
        )
        return PaymentResult(
            success=True,
            transaction_id=f"TXN_{uuid.uuid4().hex[:16]}",
            payment_url=f"https://payment.example.com/pay/{request.order_id}",
        )
