"""
Registry of external collaborators.

create_app() installs one Gateways instance in app.extensions; services take
explicit keyword arguments and fall back to it, so tests can pass fakes
either way.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from .payment_gateway import PaymentGateway, MockPaymentGateway
from .delivery_gateway import DeliveryGateway, MockDeliveryGateway
from .notification_service import NotificationSink, InAppNotificationSink

EXTENSION_KEY = "sharewardrobe.gateways"


@dataclass
class Gateways:
    payment: PaymentGateway
    delivery: DeliveryGateway
    notifications: NotificationSink


def _build_payment(name: str) -> PaymentGateway:
    if name == "mock":
        return MockPaymentGateway()
    raise ValueError(f"Unsupported PAYMENT_GATEWAY {name!r}")


def _build_delivery(name: str) -> DeliveryGateway:
    if name == "mock":
        return MockDeliveryGateway()
    raise ValueError(f"Unsupported DELIVERY_GATEWAY {name!r}")


def init_gateways(app: Flask) -> Gateways:
    gateways = Gateways(
        payment=_build_payment(app.config.get("PAYMENT_GATEWAY", "mock")),
        delivery=_build_delivery(app.config.get("DELIVERY_GATEWAY", "mock")),
        notifications=InAppNotificationSink(),
    )
    app.extensions[EXTENSION_KEY] = gateways
    return gateways


def get_gateways() -> Gateways:
    return current_app.extensions[EXTENSION_KEY]
