# hrpay_api/extensions.py
import os

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

_PG_PREFIXES = ("postgres://", "postgresql://", "postgresql+psycopg2://")


def normalize_db_url(url: str) -> str:
    """Point any Postgres URL (Heroku ``postgres://``, bare or psycopg2) at the psycopg 3 driver."""
    if not url:
        return url
    for prefix in _PG_PREFIXES:
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def engine_options(url: str) -> dict:
    # sqlite (tests / local) keeps the Flask-SQLAlchemy defaults
    if not url or url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 270,
        "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "2")),
        "pool_timeout": 30,
    }
