# Overview: Courier/delivery gateway contract and mock implementation.

from __future__ import annotations

import abc
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from sharewardrobe.time_utils import utcnow


@dataclass(frozen=True)
class DeliveryRequest:
    order_id: int
    from_address: str
    to_address: str
    is_return: bool = False
    contact_phone: str | None = None
    item_description: str | None = None


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    tracking_id: str | None = None
    estimated_delivery: datetime | None = None
    error: str | None = None


class DeliveryGateway(abc.ABC):
    """Best-effort courier API. Failures never block the caller."""

    @abc.abstractmethod
    def request_delivery(self, request: DeliveryRequest) -> DeliveryResult:
        ...

    @abc.abstractmethod
    def get_status(self, tracking_id: str) -> str:
        ...

    @abc.abstractmethod
    def cancel_delivery(self, tracking_id: str) -> bool:
        ...


class MockDeliveryGateway(DeliveryGateway):

    def request_delivery(self, request: DeliveryRequest) -> DeliveryResult:
        current_app.logger.info(
            "[delivery] would book %s for order %s: %s -> %s",
            "return pickup" if request.is_return else "delivery",
            request.order_id,
            request.from_address,
            request.to_address,
        )
        return DeliveryResult(
            success=True,
            tracking_id=f"TRK_{uuid.uuid4().hex[:12]}",
            estimated_delivery=utcnow() + timedelta(days=3),
        )

    def get_status(self, tracking_id: str) -> str:
        return "in_transit"

    def cancel_delivery(self, tracking_id: str) -> bool:
        current_app.logger.info("[delivery] would cancel %s", tracking_id)
        return True
