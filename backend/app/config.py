# backend/app/config.py
from __future__ import annotations
import os


class Config:
    # SQLite DB stored next to the process by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///store_ledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Report results are served from memory for this long unless a ledger
    # mutation clears the cache first.
    REPORT_CACHE_TTL_SECONDS = float(os.environ.get("REPORT_CACHE_TTL_SECONDS", "30"))
    REPORT_CACHE_SWEEP_SECONDS = float(os.environ.get("REPORT_CACHE_SWEEP_SECONDS", "60"))

    LEDGER_RETRY_ATTEMPTS = int(os.environ.get("LEDGER_RETRY_ATTEMPTS", "3"))

    # Percentage seeded into settings.taxRate by `flask system init`
    DEFAULT_TAX_RATE = os.environ.get("DEFAULT_TAX_RATE", "0")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Browser frontends allowed to call the API (comma-separated in the env)
    CORS_ALLOWED_ORIGINS = frozenset(
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    )
