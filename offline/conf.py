import logging.config
from dataclasses import dataclass

from decouple import config


def _optional_float(value):
    if value in (None, ""):
        return None
    return float(value)


@dataclass(frozen=True)
class OfflineSettings:
    """Device-side settings, read from the environment or a .env file"""

    db_path: str
    api_url: str
    access_token: str
    sync_interval: float
    max_retries: int
    batch_size: int
    request_timeout: float | None
    log_file: str

    @classmethod
    def from_env(cls) -> "OfflineSettings":
        return cls(
            db_path=config("OFFLINE_DB_PATH", default="offline.sqlite3"),
            api_url=config("SYNC_API_URL", default="http://localhost:8000/api/v1"),
            access_token=config("SYNC_ACCESS_TOKEN", default=""),
            sync_interval=config("SYNC_INTERVAL_SECONDS", default=30, cast=float),
            max_retries=config("SYNC_MAX_RETRIES", default=3, cast=int),
            # keep at or below the server's SYNC_MAX_BATCH_SIZE
            batch_size=config("SYNC_BATCH_SIZE", default=100, cast=int),
            # no client-imposed timeout on the batch call unless configured
            request_timeout=config("SYNC_REQUEST_TIMEOUT", default=None, cast=_optional_float),
            log_file=config("OFFLINE_LOG_FILE", default="offline-sync.log"),
        )


def configure_logging(log_file: str = "offline-sync.log", level: str = "INFO"):
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "verbose": {
                    "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
                    "style": "{",
                },
                "simple": {
                    "format": "{levelname} {asctime} {message}",
                    "style": "{",
                },
            },
            "handlers": {
                "console": {
                    "level": level,
                    "class": "logging.StreamHandler",
                    "formatter": "simple",
                },
                "sync_file": {
                    "level": level,
                    "class": "logging.handlers.RotatingFileHandler",
                    "filename": log_file,
                    "maxBytes": 1024 * 1024 * 5,  # 5 MB
                    "backupCount": 3,
                    "formatter": "verbose",
                },
            },
            "loggers": {
                "offline": {
                    "handlers": ["console", "sync_file"],
                    "level": level,
                    "propagate": False,
                },
            },
        }
    )
