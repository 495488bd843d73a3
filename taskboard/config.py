# config.py
"""Settings loaded from environment variables (+ optional .env file)."""

import os
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv(override=False)


def _env(name, default=""):
    value = os.getenv(name)
    return default if value is None else value


def _env_int(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "taskboard"
    jwt_secret_key: str = "change-me"
    jwt_access_minutes: int = 60
    jwt_refresh_days: int = 30
    upload_folder: str = "uploads"
    notify_window_seconds: int = 60
    log_level: str = "INFO"
    log_dir: str = ".local/taskboard"

    @classmethod
    def from_env(cls):
        return cls(
            mongo_uri=_env("MONGO_URI", cls.mongo_uri),
            mongo_db=_env("MONGO_DB", cls.mongo_db),
            jwt_secret_key=_env("JWT_SECRET_KEY", cls.jwt_secret_key),
            jwt_access_minutes=_env_int("JWT_ACCESS_MINUTES", cls.jwt_access_minutes),
            jwt_refresh_days=_env_int("JWT_REFRESH_DAYS", cls.jwt_refresh_days),
            upload_folder=_env("UPLOAD_FOLDER", cls.upload_folder),
            notify_window_seconds=_env_int("NOTIFY_WINDOW_SECONDS", cls.notify_window_seconds),
            log_level=_env("LOG_LEVEL", cls.log_level).upper(),
            log_dir=_env("LOG_DIR", cls.log_dir),
        )

    def flask_config(self):
        """Map settings onto the Flask config keys the extensions read."""
        return {
            "JWT_SECRET_KEY": self.jwt_secret_key,
            "JWT_ACCESS_TOKEN_EXPIRES": timedelta(minutes=self.jwt_access_minutes),
            "JWT_REFRESH_TOKEN_EXPIRES": timedelta(days=self.jwt_refresh_days),
            "UPLOAD_FOLDER": self.upload_folder,
            "NOTIFY_WINDOW_SECONDS": self.notify_window_seconds,
        }
