# backend/sharewardrobe/config.py
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/sharewardrobe.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///sharewardrobe.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # External collaborators; only the mock implementations ship with the backend
    PAYMENT_GATEWAY = os.environ.get("PAYMENT_GATEWAY", "mock")
    DELIVERY_GATEWAY = os.environ.get("DELIVERY_GATEWAY", "mock")

    # Destination for rental return pickups
    WAREHOUSE_ADDRESS = os.environ.get("WAREHOUSE_ADDRESS", "warehouse")
