# backend/pos/config.py
from __future__ import annotations
import os
from pathlib import Path


BACKEND_DIR = Path(__file__).resolve().parent.parent


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the desktop instance (pos.sqlite3)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("POS_LOG_LEVEL", "INFO")

    # Reorder threshold applied when a product is created without one
    DEFAULT_MIN_STOCK = int(os.environ.get("POS_DEFAULT_MIN_STOCK", "5"))
    TOP_PRODUCTS_LIMIT = int(os.environ.get("POS_TOP_PRODUCTS_LIMIT", "10"))

    BCRYPT_ROUNDS = int(os.environ.get("POS_BCRYPT_ROUNDS", "12"))

    # Apply pending Alembic migrations once when the app is created
    AUTO_MIGRATE = _env_flag("POS_AUTO_MIGRATE")
    MIGRATIONS_DIR = os.environ.get("POS_MIGRATIONS_DIR", str(BACKEND_DIR / "migrations"))
