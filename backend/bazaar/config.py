# backend/bazaar/config.py
from __future__ import annotations
import os


def _origins(raw: str) -> set[str]:
    return {o.strip() for o in raw.split(",") if o.strip()}


def _engine_options(uri: str) -> dict:
    # One shared connection: closing a session must not roll back the open
    # transaction of another one
    if uri in ("sqlite://", "sqlite:///:memory:"):
        return {"pool_reset_on_return": None}
    return {}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # In-memory SQLite by default: offers, auctions and likes live as long as
    # the process does.
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite://",
    )
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = _origins(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
    ))

    # Anti-sniping: a bid landing inside the window pushes the end time out.
    AUCTION_SNIPE_WINDOW_SECONDS = int(os.environ.get("AUCTION_SNIPE_WINDOW_SECONDS", "60"))
    AUCTION_SNIPE_EXTENSION_SECONDS = int(os.environ.get("AUCTION_SNIPE_EXTENSION_SECONDS", "20"))

    AUCTION_FEED_BID_LIMIT = 50
    AUCTION_HISTORY_BID_LIMIT = 100

    # JSON file with users, sessions and listings for the in-memory gateway
    GATEWAY_SEED_FILE = os.environ.get("GATEWAY_SEED_FILE")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)
    LOG_LEVEL = "DEBUG"
    GATEWAY_SEED_FILE = None
