# backend/pos/config.py
from __future__ import annotations
import os

from dotenv import load_dotenv

load_dotenv()


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _database_url() -> str:
    # DATABASE_URL wins; otherwise assemble from the DB_* parts
    url = os.environ.get("DATABASE_URL")
    if url:
        return url

    host = os.environ.get("DB_HOST")
    if host:
        user = os.environ.get("DB_USER", "postgres")
        password = os.environ.get("DB_PASSWORD", "")
        port = os.environ.get("DB_PORT", "5432")
        name = os.environ.get("DB_NAME", "pos")
        return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"

    return "sqlite:///pos.sqlite3"


def _engine_options(url: str) -> dict:
    timeout_ms = int(os.environ.get("DB_STATEMENT_TIMEOUT_MS", "15000"))
    if url.startswith("postgresql"):
        return {
            "pool_pre_ping": True,
            "connect_args": {"options": f"-c statement_timeout={timeout_ms}"},
        }
    if url.startswith("sqlite"):
        # seconds to wait on a locked database file
        return {"connect_args": {"timeout": max(timeout_ms / 1000.0, 1.0)}}
    return {}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT
    JWT_SECRET = os.environ.get("JWT_SECRET", "dev-jwt-secret-change-me")
    JWT_EXPIRES_HOURS = int(os.environ.get("JWT_EXPIRES_HOURS", "24"))
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Payment gateways
    IPAYMU_BASE_URL = os.environ.get("IPAYMU_BASE_URL", "https://sandbox.ipaymu.com")
    IPAYMU_API_KEY = os.environ.get("IPAYMU_API_KEY", "")
    IPAYMU_VA = os.environ.get("IPAYMU_VA", "")
    IPAYMU_RETURN_URL = os.environ.get("IPAYMU_RETURN_URL", "")
    IPAYMU_CANCEL_URL = os.environ.get("IPAYMU_CANCEL_URL", "")
    IPAYMU_NOTIFY_URL = os.environ.get("IPAYMU_NOTIFY_URL", "")
    TSM_BASE_URL = os.environ.get("TSM_BASE_URL", "https://sandbox.tsm.co.id")
    GATEWAY_TIMEOUT_SECONDS = float(os.environ.get("GATEWAY_TIMEOUT_SECONDS", "15"))

    # Mail (Flask-Mail)
    MAIL_SERVER = os.environ.get("MAIL_SERVER") or os.environ.get("SMTP_HOST")
    MAIL_PORT = int(os.environ.get("MAIL_PORT") or os.environ.get("SMTP_PORT") or "587")
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME") or os.environ.get("SMTP_USER")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD") or os.environ.get("SMTP_PASSWORD")
    MAIL_USE_TLS = _bool_env("MAIL_USE_TLS", True)
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", "no-reply@pos.local")
    MAIL_SUPPRESS_SEND = _bool_env("MAIL_SUPPRESS_SEND", False)
    EMAIL_QUEUE_SIZE = int(os.environ.get("EMAIL_QUEUE_SIZE", "100"))
    EMAIL_WORKER_ENABLED = _bool_env("EMAIL_WORKER_ENABLED", True)

    # Recognized, consumed by external collaborators
    GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET = os.environ.get("GOOGLE_CLIENT_SECRET")
    GOOGLE_REDIRECT_URL = os.environ.get("GOOGLE_REDIRECT_URL")
    LOG_ENDPOINT = os.environ.get("LOG_ENDPOINT")

    # Redis / policy engine
    REDIS_ADDR = os.environ.get("REDIS_ADDR", "localhost:6379")
    REDIS_PASSWORD = os.environ.get("REDIS_PASSWORD") or None
    REDIS_DB = int(os.environ.get("REDIS_DB", "0"))
    POLICY_FILE = os.environ.get(
        "POLICY_FILE",
        os.path.join(os.path.dirname(__file__), "policy.csv"),
    )
    POLICY_CHANNEL = os.environ.get("POLICY_CHANNEL", "pos:policy:reload")
    POLICY_WATCHER_ENABLED = _bool_env("POLICY_WATCHER_ENABLED", False)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    PORT = int(os.environ.get("PORT", "8080"))
