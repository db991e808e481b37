"""Environment-driven settings."""

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATA_DIR = Path.home() / ".carlog"


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """
    Runtime settings.

    Read from CARLOG_DATA_DIR, CARLOG_LOG_LEVEL, CARLOG_LOG_JSON and
    SECRET_KEY.
    """

    data_dir: Path = DEFAULT_DATA_DIR
    log_level: str = "INFO"
    log_json: bool = False
    secret_key: str = "dev-secret-key-change-in-prod"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            data_dir=Path(env.get("CARLOG_DATA_DIR") or DEFAULT_DATA_DIR).expanduser(),
            log_level=env.get("CARLOG_LOG_LEVEL") or "INFO",
            log_json=_truthy(env.get("CARLOG_LOG_JSON", "")),
            secret_key=env.get("SECRET_KEY") or cls.secret_key,
        )
